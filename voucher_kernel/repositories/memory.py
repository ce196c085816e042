"""
InMemoryOrderRepository -- dict-backed OrderRepository for tests and demos.

All reads and writes take one re-entrant lock, so compare-and-set updates
are atomic with respect to the worker pools of the materializer and the
dispatch engine.
"""

from __future__ import annotations

import threading
from dataclasses import replace
from uuid import UUID

from voucher_kernel.domain.clock import Clock, SystemClock
from voucher_kernel.domain.types import (
    Order,
    OrderStatus,
    Voucher,
    VoucherStatus,
    can_transition,
)
from voucher_kernel.exceptions import (
    DuplicateVoucherCodeError,
    InvalidStatusTransitionError,
    OrderNotFoundError,
    VoucherNotFoundError,
)


class InMemoryOrderRepository:
    """OrderRepository held in process memory."""

    def __init__(self, clock: Clock | None = None):
        self._clock = clock or SystemClock()
        self._lock = threading.RLock()
        self._orders: dict[UUID, Order] = {}
        self._vouchers: dict[UUID, Voucher] = {}
        self._codes: set[str] = set()

    # -------------------------------------------------------------------------
    # Orders
    # -------------------------------------------------------------------------

    def add_order(self, order: Order) -> Order:
        now = self._clock.now()
        stored = replace(order, created_at=now, updated_at=now)
        with self._lock:
            self._orders[stored.id] = stored
        return stored

    def get_order(self, order_id: UUID) -> Order:
        with self._lock:
            order = self._orders.get(order_id)
        if order is None:
            raise OrderNotFoundError(str(order_id))
        return order

    def transition_order(
        self, order_id: UUID, expected: OrderStatus, new: OrderStatus,
    ) -> bool:
        if not can_transition(expected, new):
            raise InvalidStatusTransitionError("order", expected.value, new.value)
        with self._lock:
            order = self.get_order(order_id)
            if order.status != expected:
                return False
            self._orders[order_id] = replace(
                order, status=new, updated_at=self._clock.now(),
            )
            return True

    # -------------------------------------------------------------------------
    # Vouchers
    # -------------------------------------------------------------------------

    def add_voucher(self, voucher: Voucher) -> Voucher:
        now = self._clock.now()
        stored = replace(voucher, created_at=now, updated_at=now)
        with self._lock:
            if stored.order_id not in self._orders:
                raise OrderNotFoundError(str(stored.order_id))
            if stored.code in self._codes:
                raise DuplicateVoucherCodeError(stored.code)
            self._codes.add(stored.code)
            self._vouchers[stored.id] = stored
        return stored

    def get_voucher(self, voucher_id: UUID) -> Voucher:
        with self._lock:
            voucher = self._vouchers.get(voucher_id)
        if voucher is None:
            raise VoucherNotFoundError(str(voucher_id))
        return voucher

    def list_vouchers(
        self, order_id: UUID, status: VoucherStatus | None = None,
    ) -> tuple[Voucher, ...]:
        with self._lock:
            matches = [
                v for v in self._vouchers.values()
                if v.order_id == order_id and (status is None or v.status == status)
            ]
        matches.sort(key=lambda v: (v.source_row or 0, v.code))
        return tuple(matches)

    def bulk_transition_vouchers(
        self,
        order_id: UUID,
        expected: VoucherStatus,
        new: VoucherStatus,
        run_id: UUID | None = None,
    ) -> int:
        if not can_transition(expected, new):
            raise InvalidStatusTransitionError("voucher", expected.value, new.value)
        now = self._clock.now()
        count = 0
        with self._lock:
            for voucher_id, voucher in list(self._vouchers.items()):
                if self._matches(voucher, order_id, expected, run_id):
                    self._vouchers[voucher_id] = replace(
                        voucher, status=new, updated_at=now,
                    )
                    count += 1
        return count

    def transition_voucher(
        self, voucher_id: UUID, expected: VoucherStatus, new: VoucherStatus,
    ) -> bool:
        if not can_transition(expected, new):
            raise InvalidStatusTransitionError("voucher", expected.value, new.value)
        with self._lock:
            voucher = self.get_voucher(voucher_id)
            if voucher.status != expected:
                return False
            self._vouchers[voucher_id] = replace(
                voucher, status=new, updated_at=self._clock.now(),
            )
            return True

    def record_dispatch_failure(
        self, voucher_id: UUID, error: str, halt: bool = False,
    ) -> Voucher:
        with self._lock:
            voucher = self.get_voucher(voucher_id)
            if voucher.status != VoucherStatus.ALLOTTED:
                return voucher
            updated = replace(
                voucher,
                retry_count=voucher.retry_count + 1,
                last_error=error,
                halted=voucher.halted or halt,
                updated_at=self._clock.now(),
            )
            self._vouchers[voucher_id] = updated
            return updated

    def delete_vouchers(
        self, order_id: UUID, status: VoucherStatus, run_id: UUID | None = None,
    ) -> int:
        with self._lock:
            doomed = [
                v for v in self._vouchers.values()
                if self._matches(v, order_id, status, run_id)
            ]
            for voucher in doomed:
                del self._vouchers[voucher.id]
                self._codes.discard(voucher.code)
        return len(doomed)

    @staticmethod
    def _matches(
        voucher: Voucher, order_id: UUID, status: VoucherStatus, run_id: UUID | None,
    ) -> bool:
        return (
            voucher.order_id == order_id
            and voucher.status == status
            and (run_id is None or voucher.run_id == run_id)
        )
