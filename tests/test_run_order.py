"""Tests for the scripts/run_order.py command line driver."""

import importlib.util
import re
from pathlib import Path

import pytest

from voucher_kernel.db.engine import reset_engine

from tests.conftest import ALICE_ROW, BOB_ROW, make_batch

SCRIPT = Path(__file__).resolve().parent.parent / "scripts" / "run_order.py"


@pytest.fixture
def run_order(tmp_path, monkeypatch, capsys):
    spec = importlib.util.spec_from_file_location("run_order", SCRIPT)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)

    monkeypatch.chdir(tmp_path)  # Default storage root is ./artifacts
    db_url = f"sqlite:///{tmp_path / 'cli.db'}"

    def _run(*args: str) -> tuple[int, str, str]:
        code = module.main(["--db-url", db_url, *args])
        captured = capsys.readouterr()
        return code, captured.out, captured.err

    yield _run
    reset_engine()


def test_full_cycle(run_order, tmp_path):
    batch = tmp_path / "batch.csv"
    batch.write_bytes(make_batch(ALICE_ROW, BOB_ROW))

    code, out, _ = run_order("ingest", "--file", str(batch), "--created-by", "ops@example.com")
    assert code == 0
    order_id = re.search(r"Order (\S+) created with 2 vouchers", out).group(1)

    code, out, _ = run_order("materialize", "--order-id", order_id)
    assert code == 0
    assert "Allotted: 2" in out

    code, out, _ = run_order("dispatch", "--order-id", order_id)
    assert code == 0
    assert "Order status: processed" in out

    code, out, _ = run_order("summary", "--order-id", order_id)
    assert code == 0
    assert "processed: 2" in out


def test_invalid_batch_reports_row(run_order, tmp_path):
    batch = tmp_path / "batch.csv"
    batch.write_bytes(make_batch(ALICE_ROW, "Bob,123,PAN,X,E2"))

    code, _, err = run_order("ingest", "--file", str(batch), "--created-by", "ops@example.com")

    assert code == 1
    assert "INVALID_MOBILE" in err
    assert "Row 3" in err


def test_missing_file(run_order, tmp_path):
    code, _, err = run_order("ingest", "--file", str(tmp_path / "nope.csv"), "--created-by", "x")
    assert code == 1
    assert "File not found" in err


def test_unknown_order(run_order):
    code, _, err = run_order("summary", "--order-id", "00000000-0000-0000-0000-000000000000")
    assert code == 1
    assert "ORDER_NOT_FOUND" in err
