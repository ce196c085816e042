"""
Pytest fixtures for the voucher pipeline test suite.

Provides:
- Structured logging capture
- Deterministic clock
- In-memory repository / artifact store
- File-backed SQLite session factory (no external database required)
- Scripted notification gateways
"""

import json
import logging
import threading
import time
from io import StringIO
from typing import Callable, Iterable

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from voucher_kernel.db.base import Base
from voucher_kernel.domain.clock import DeterministicClock
from voucher_kernel.domain.types import Voucher
from voucher_kernel.logging_config import (
    LogContext,
    StructuredFormatter,
    configure_logging,
    reset_logging,
)
from voucher_kernel.repositories.memory import InMemoryOrderRepository
from voucher_kernel.storage.memory import InMemoryArtifactStore

import voucher_kernel.models  # noqa: F401  (registers tables on Base.metadata)

from voucher_batch.domain.types import DispatchOutcome


TEST_ACTOR = "ops@example.com"

HEADER = "name,mobileNumber,idType,govtIdNumber,empId"


def make_batch(*rows: str, header: bool = True) -> bytes:
    """Build a CSV batch upload from data lines."""
    lines = [HEADER] if header else []
    lines.extend(rows)
    return ("\n".join(lines) + "\n").encode("utf-8")


ALICE_ROW = "Alice,9876543210,AADHAAR,1234-5678-9012,E001"
BOB_ROW = "Bob,9123456780,PAN,ABCDE1234F,E002"


# =============================================================================
# Logging fixtures
# =============================================================================


@pytest.fixture(autouse=True, scope="session")
def _configure_test_logging():
    """Configure structured logging for the test suite."""
    reset_logging()
    configure_logging(level=logging.DEBUG)
    yield
    reset_logging()


@pytest.fixture(autouse=True)
def _clear_log_context():
    """Clear LogContext between tests to prevent cross-test contamination."""
    LogContext.clear()
    yield
    LogContext.clear()


@pytest.fixture
def captured_logs():
    """
    Capture voucher_kernel logs as parsed JSON dicts.

    Usage::

        def test_something(captured_logs, service):
            service.create_order(...)
            logs = captured_logs()
            assert any(r["message"] == "order_ingested" for r in logs)
    """
    stream = StringIO()
    handler = logging.StreamHandler(stream)
    handler.setFormatter(StructuredFormatter())
    root = logging.getLogger("voucher_kernel")
    previous_level = root.level
    root.setLevel(logging.DEBUG)
    root.addHandler(handler)

    def _get_records() -> list[dict]:
        lines = stream.getvalue().strip().split("\n")
        return [json.loads(line) for line in lines if line]

    yield _get_records

    root.removeHandler(handler)
    root.setLevel(previous_level)


# =============================================================================
# Core fixtures
# =============================================================================


@pytest.fixture
def clock() -> DeterministicClock:
    return DeterministicClock()


@pytest.fixture
def repository(clock) -> InMemoryOrderRepository:
    return InMemoryOrderRepository(clock=clock)


@pytest.fixture
def store() -> InMemoryArtifactStore:
    return InMemoryArtifactStore()


@pytest.fixture
def session_factory(tmp_path):
    """Session factory over a fresh file-backed SQLite database.

    A file database gives each worker thread its own connection, so
    concurrent sessions do not share one transaction.
    """
    engine = create_engine(
        f"sqlite:///{tmp_path / 'vouchers.db'}",
        connect_args={"check_same_thread": False},
    )
    Base.metadata.create_all(engine)
    factory = sessionmaker(bind=engine, expire_on_commit=False)
    yield factory
    Base.metadata.drop_all(engine)
    engine.dispose()


# =============================================================================
# Gateways
# =============================================================================


class ScriptedGateway:
    """NotificationGateway whose per-attempt results are scripted per recipient.

    ``script`` maps a recipient name to a list of results consumed one per
    attempt.  A result may be a bool, a DispatchOutcome, an Exception
    instance (raised), or a float (sleep that many seconds, then succeed).
    Once a list is exhausted the last entry repeats; unknown recipients
    succeed.
    """

    def __init__(self, script: dict[str, list] | None = None):
        self._script = {name: list(results) for name, results in (script or {}).items()}
        self._lock = threading.Lock()
        self.calls: list[str] = []

    def _next(self, name: str):
        with self._lock:
            self.calls.append(name)
            results = self._script.get(name)
            if not results:
                return True
            if len(results) > 1:
                return results.pop(0)
            return results[0]

    def send(self, voucher: Voucher) -> bool | DispatchOutcome:
        result = self._next(voucher.recipient_name)
        if isinstance(result, Exception):
            raise result
        if isinstance(result, float):
            time.sleep(result)
            return True
        return result

    def attempts(self, name: str) -> int:
        with self._lock:
            return self.calls.count(name)


@pytest.fixture
def make_gateway() -> Callable[..., ScriptedGateway]:
    def _make(script: dict[str, Iterable] | None = None) -> ScriptedGateway:
        return ScriptedGateway({k: list(v) for k, v in (script or {}).items()})

    return _make
