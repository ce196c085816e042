"""
OrderRepository protocol (persistence port for orders and vouchers).

Contract:
    Every status change is a compare-and-set: the caller names the status it
    expects the record to be in, and the update only applies if the persisted
    status still matches.  ``transition_*`` methods return False when the
    record moved on under the caller; they raise
    ``InvalidStatusTransitionError`` when the requested move is illegal for
    the entity's state machine (e.g. backward).

    Implementations must be safe to call from multiple worker threads.

Architecture: voucher_kernel/repositories. Imports only from voucher_kernel.domain.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable
from uuid import UUID

from voucher_kernel.domain.types import Order, OrderStatus, Voucher, VoucherStatus


@runtime_checkable
class OrderRepository(Protocol):
    """Persistence of Order/Voucher records and their status updates."""

    # -- orders ---------------------------------------------------------------

    def add_order(self, order: Order) -> Order:
        """Persist a new order; returns the stored snapshot."""
        ...

    def get_order(self, order_id: UUID) -> Order:
        """Raises OrderNotFoundError."""
        ...

    def transition_order(
        self, order_id: UUID, expected: OrderStatus, new: OrderStatus,
    ) -> bool:
        """Conditional order status update."""
        ...

    # -- vouchers -------------------------------------------------------------

    def add_voucher(self, voucher: Voucher) -> Voucher:
        """Persist a new voucher.  Raises DuplicateVoucherCodeError."""
        ...

    def get_voucher(self, voucher_id: UUID) -> Voucher:
        """Raises VoucherNotFoundError."""
        ...

    def list_vouchers(
        self, order_id: UUID, status: VoucherStatus | None = None,
    ) -> tuple[Voucher, ...]:
        """Vouchers of an order, ordered by source row, optionally filtered."""
        ...

    def bulk_transition_vouchers(
        self,
        order_id: UUID,
        expected: VoucherStatus,
        new: VoucherStatus,
        run_id: UUID | None = None,
    ) -> int:
        """Move the order's vouchers in ``expected`` to ``new``; returns count.

        With ``run_id`` only vouchers created by that materialization run move.
        """
        ...

    def transition_voucher(
        self, voucher_id: UUID, expected: VoucherStatus, new: VoucherStatus,
    ) -> bool:
        """Conditional voucher status update."""
        ...

    def record_dispatch_failure(
        self, voucher_id: UUID, error: str, halt: bool = False,
    ) -> Voucher:
        """Increment retry_count and set last_error; status is left unchanged."""
        ...

    def delete_vouchers(
        self, order_id: UUID, status: VoucherStatus, run_id: UUID | None = None,
    ) -> int:
        """Remove the order's vouchers in ``status``, optionally one run's only; returns count."""
        ...
