"""
voucher_batch.domain.types -- Pure frozen dataclasses for the pipeline phases.

ZERO I/O.

``DispatchOutcome`` is the explicit result of one notification attempt.  It
separates retryable (transient) from non-retryable (permanent) failures
instead of collapsing every fault into "retry".
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from uuid import UUID

from voucher_kernel.domain.types import OrderStatus, VoucherStatus


# =============================================================================
# Dispatch outcome
# =============================================================================


class DispatchOutcomeKind(str, Enum):
    SUCCESS = "success"
    TRANSIENT_FAILURE = "transient_failure"  # Retry on a later pass
    PERMANENT_FAILURE = "permanent_failure"  # Voucher is halted


@dataclass(frozen=True)
class DispatchOutcome:
    """Result of one notification attempt for one voucher."""

    kind: DispatchOutcomeKind
    error: str | None = None

    @classmethod
    def success(cls) -> DispatchOutcome:
        return cls(DispatchOutcomeKind.SUCCESS)

    @classmethod
    def transient(cls, error: str) -> DispatchOutcome:
        return cls(DispatchOutcomeKind.TRANSIENT_FAILURE, error)

    @classmethod
    def permanent(cls, error: str) -> DispatchOutcome:
        return cls(DispatchOutcomeKind.PERMANENT_FAILURE, error)

    @property
    def ok(self) -> bool:
        return self.kind == DispatchOutcomeKind.SUCCESS


class VoucherDispatchStatus(str, Enum):
    """What one dispatch pass did with one voucher."""

    PROCESSED = "processed"  # Sent and moved to PROCESSED
    FAILED = "failed"  # Attempt failed; retry recorded
    HALTED = "halted"  # Permanent failure; retry recorded, no further attempts
    SKIPPED = "skipped"  # Sent, but another pass had already processed it
    EXHAUSTED = "exhausted"  # Not attempted: halted earlier or at the retry ceiling


# =============================================================================
# Phase results
# =============================================================================


@dataclass(frozen=True)
class VoucherDispatchResult:
    voucher_id: UUID
    code: str
    status: VoucherDispatchStatus
    retry_count: int = 0
    error: str | None = None
    duration_ms: int = 0


@dataclass(frozen=True)
class DispatchPassResult:
    """Summary of one dispatch pass over an order."""

    order_id: UUID
    order_status: OrderStatus  # Status after the pass
    attempted: int = 0
    succeeded: int = 0
    failed: int = 0
    skipped: int = 0
    exhausted: int = 0
    voucher_results: tuple[VoucherDispatchResult, ...] = ()
    duration_ms: int = 0

    @property
    def completed(self) -> bool:
        return self.order_status == OrderStatus.PROCESSED

    @property
    def had_failures(self) -> bool:
        return self.failed > 0


@dataclass(frozen=True)
class MaterializationResult:
    """Summary of one materialization run."""

    order_id: UUID
    order_status: OrderStatus
    materialized: int = 0
    allotted: int = 0
    declared_count: int = 0
    count_mismatch: bool = False
    purged: int = 0  # CREATED leftovers of aborted or superseded runs
    skipped: bool = False  # Order was no longer CREATED
    duration_ms: int = 0


@dataclass(frozen=True)
class OrderSummary:
    """Read model: where an order and its vouchers stand."""

    order_id: UUID
    order_status: OrderStatus
    declared_count: int
    voucher_counts: dict[VoucherStatus, int] = field(default_factory=dict)
    total_retries: int = 0
    failing_vouchers: int = 0  # ALLOTTED with retry_count > 0
    halted_vouchers: int = 0
    exhausted_vouchers: int = 0  # ALLOTTED, halted or at the retry ceiling

    @property
    def dispatchable_vouchers(self) -> int:
        return self.voucher_counts.get(VoucherStatus.ALLOTTED, 0) - self.exhausted_vouchers

    @property
    def needs_rerun(self) -> bool:
        """Another dispatch pass could still deliver something."""
        return self.order_status == OrderStatus.PROCESSING and self.dispatchable_vouchers > 0

    @property
    def stuck(self) -> bool:
        """Only exhausted vouchers keep the order from completing."""
        return (
            self.order_status == OrderStatus.PROCESSING
            and self.exhausted_vouchers > 0
            and self.dispatchable_vouchers == 0
        )
