"""
voucher_batch.domain -- Pure result types for materialization and dispatch.

ZERO I/O.  All types are frozen dataclasses.
"""

from voucher_batch.domain.types import (
    DispatchOutcome,
    DispatchOutcomeKind,
    DispatchPassResult,
    MaterializationResult,
    OrderSummary,
    VoucherDispatchResult,
    VoucherDispatchStatus,
)

__all__ = [
    "DispatchOutcome",
    "DispatchOutcomeKind",
    "DispatchPassResult",
    "MaterializationResult",
    "OrderSummary",
    "VoucherDispatchResult",
    "VoucherDispatchStatus",
]
