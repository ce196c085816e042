"""
voucher_kernel.domain.types -- Pure frozen dataclasses for orders and vouchers.

ZERO I/O.

Invariants enforced:
    - Order status only advances: CREATED -> PROCESSING -> PROCESSED.
    - Voucher status only advances: CREATED -> ALLOTTED -> PROCESSED, plus the
      ALLOTTED -> ALLOTTED retry self-loop (retry_count grows, status kept).
    - Both tables are consulted by every repository implementation through
      ``can_transition()``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from uuid import UUID


# =============================================================================
# Status enums
# =============================================================================


class OrderStatus(str, Enum):
    """Order-level lifecycle status."""

    CREATED = "created"  # Batch accepted and artifact stored
    PROCESSING = "processing"  # Vouchers materialized and allotted
    PROCESSED = "processed"  # A dispatch pass finished with zero failures


class VoucherStatus(str, Enum):
    """Per-voucher lifecycle status."""

    CREATED = "created"  # Persisted, not yet eligible for dispatch
    ALLOTTED = "allotted"  # Eligible for dispatch (also the retry state)
    PROCESSED = "processed"  # Notification delivered


class IdType(str, Enum):
    """Identity-document types accepted in the batch file."""

    AADHAAR = "AADHAAR"
    PAN = "PAN"
    PASSPORT = "PASSPORT"
    DRIVING_LICENSE = "DRIVING_LICENSE"
    VOTER_ID = "VOTER_ID"
    EMPLOYEE_ID = "EMPLOYEE_ID"


ORDER_TRANSITIONS: dict[OrderStatus, frozenset[OrderStatus]] = {
    OrderStatus.CREATED: frozenset({OrderStatus.PROCESSING}),
    OrderStatus.PROCESSING: frozenset({OrderStatus.PROCESSED}),
    OrderStatus.PROCESSED: frozenset(),
}

VOUCHER_TRANSITIONS: dict[VoucherStatus, frozenset[VoucherStatus]] = {
    VoucherStatus.CREATED: frozenset({VoucherStatus.ALLOTTED}),
    VoucherStatus.ALLOTTED: frozenset({VoucherStatus.ALLOTTED, VoucherStatus.PROCESSED}),
    VoucherStatus.PROCESSED: frozenset(),
}


def can_transition(current: OrderStatus | VoucherStatus, new: OrderStatus | VoucherStatus) -> bool:
    """Return True if ``current -> new`` is a legal move for its entity."""
    if isinstance(current, OrderStatus) and isinstance(new, OrderStatus):
        return new in ORDER_TRANSITIONS[current]
    if isinstance(current, VoucherStatus) and isinstance(new, VoucherStatus):
        return new in VOUCHER_TRANSITIONS[current]
    return False


# =============================================================================
# Entity DTOs
# =============================================================================


@dataclass(frozen=True)
class Order:
    """Immutable snapshot of an order (one uploaded recipient list)."""

    id: UUID
    external_ref: str  # Correlates to the stored artifact key
    status: OrderStatus
    voucher_count: int  # Data rows at ingestion (header and blank lines excluded); never reconciled
    artifact_location: str
    created_by: str
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @property
    def artifact_key(self) -> str:
        return artifact_key_for(self.external_ref)


@dataclass(frozen=True)
class Voucher:
    """Immutable snapshot of one recipient's voucher."""

    id: UUID
    code: str
    order_id: UUID
    recipient_name: str
    recipient_mobile: str
    recipient_id_type: IdType
    recipient_govt_id: str
    recipient_emp_id: str
    status: VoucherStatus
    issuer_id: str
    retry_count: int = 0
    last_error: str | None = None
    halted: bool = False  # Gateway reported a permanent failure
    source_row: int | None = None
    run_id: UUID | None = None  # Materialization run that created it
    created_at: datetime | None = None
    updated_at: datetime | None = None


def artifact_key_for(external_ref: str) -> str:
    """Storage key for an order's batch file."""
    return f"{external_ref}_order_file.csv"
