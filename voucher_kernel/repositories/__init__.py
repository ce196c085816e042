"""Order/voucher persistence: repository protocol and implementations."""

from voucher_kernel.repositories.base import OrderRepository
from voucher_kernel.repositories.memory import InMemoryOrderRepository
from voucher_kernel.repositories.sqlalchemy_repository import SqlAlchemyOrderRepository

__all__ = [
    "InMemoryOrderRepository",
    "OrderRepository",
    "SqlAlchemyOrderRepository",
]
