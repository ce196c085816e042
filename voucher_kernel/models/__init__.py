"""
voucher_kernel.models -- ORM models for order and voucher persistence.

Architecture: voucher_kernel/models. Imports from voucher_kernel.db.base only.
"""

from voucher_kernel.models.order import OrderModel, VoucherModel

__all__ = [
    "OrderModel",
    "VoucherModel",
]
