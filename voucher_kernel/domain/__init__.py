"""
Pure domain layer.

Frozen DTOs, status enums and transition tables for orders and vouchers,
plus the injectable clock.  No ORM, database or file I/O.
"""

from voucher_kernel.domain.clock import Clock, DeterministicClock, SystemClock
from voucher_kernel.domain.types import (
    ORDER_TRANSITIONS,
    VOUCHER_TRANSITIONS,
    IdType,
    Order,
    OrderStatus,
    Voucher,
    VoucherStatus,
    artifact_key_for,
    can_transition,
)

__all__ = [
    "Clock",
    "DeterministicClock",
    "SystemClock",
    "IdType",
    "Order",
    "OrderStatus",
    "Voucher",
    "VoucherStatus",
    "ORDER_TRANSITIONS",
    "VOUCHER_TRANSITIONS",
    "artifact_key_for",
    "can_transition",
]
