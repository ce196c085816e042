"""
ORM models for order and voucher persistence.

Contract:
    OrderModel and VoucherModel persist order batches and per-recipient
    vouchers.  Each has ``to_dto()`` / ``from_dto()`` round-trip methods.

Architecture: voucher_kernel/models. Imports from voucher_kernel.db.base only
    (domain types are imported lazily inside the DTO helpers).

Invariants enforced:
    - ``code`` is UNIQUE on VoucherModel.
    - ``external_ref`` is UNIQUE on OrderModel.
    - Status columns store the enum value; transitions are guarded by the
      repository, not the ORM.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING
from uuid import UUID

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from voucher_kernel.db.base import TrackedBase, UUIDString

if TYPE_CHECKING:
    from voucher_kernel.domain.types import Order, Voucher


class OrderModel(TrackedBase):
    """Persistent order record (one uploaded batch)."""

    __tablename__ = "orders"

    __table_args__ = (
        Index("ix_orders_status", "status"),
    )

    external_ref: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    voucher_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    artifact_location: Mapped[str] = mapped_column(Text, nullable=False)
    created_by: Mapped[str] = mapped_column(String(100), nullable=False)

    vouchers: Mapped[list["VoucherModel"]] = relationship(
        "VoucherModel",
        back_populates="order",
        foreign_keys="VoucherModel.order_id",
    )

    def to_dto(self) -> Order:
        from voucher_kernel.domain.types import Order, OrderStatus

        return Order(
            id=self.id,
            external_ref=self.external_ref,
            status=OrderStatus(self.status),
            voucher_count=self.voucher_count,
            artifact_location=self.artifact_location,
            created_by=self.created_by,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_dto(cls, dto: Order) -> OrderModel:
        return cls(
            id=dto.id,
            external_ref=dto.external_ref,
            status=dto.status.value,
            voucher_count=dto.voucher_count,
            artifact_location=dto.artifact_location,
            created_by=dto.created_by,
            **_timestamps(dto),
        )


class VoucherModel(TrackedBase):
    """Persistent voucher record with dispatch retry accounting."""

    __tablename__ = "vouchers"

    __table_args__ = (
        Index("ix_vouchers_order_status", "order_id", "status"),
        Index("ix_vouchers_order_run", "order_id", "run_id"),
    )

    code: Mapped[str] = mapped_column(String(16), nullable=False, unique=True)
    order_id: Mapped[UUID] = mapped_column(
        UUIDString(),
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
    )
    recipient_name: Mapped[str] = mapped_column(String(40), nullable=False)
    recipient_mobile: Mapped[str] = mapped_column(String(20), nullable=False)
    recipient_id_type: Mapped[str] = mapped_column(String(32), nullable=False)
    recipient_govt_id: Mapped[str] = mapped_column(String(40), nullable=False, default="")
    recipient_emp_id: Mapped[str] = mapped_column(String(40), nullable=False, default="")
    status: Mapped[str] = mapped_column(String(32), nullable=False)
    issuer_id: Mapped[str] = mapped_column(String(100), nullable=False)
    retry_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
    halted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    source_row: Mapped[int | None] = mapped_column(Integer, nullable=True)
    run_id: Mapped[UUID | None] = mapped_column(UUIDString(), nullable=True)

    order: Mapped["OrderModel"] = relationship(
        "OrderModel",
        back_populates="vouchers",
        foreign_keys=[order_id],
    )

    def to_dto(self) -> Voucher:
        from voucher_kernel.domain.types import IdType, Voucher, VoucherStatus

        return Voucher(
            id=self.id,
            code=self.code,
            order_id=self.order_id,
            recipient_name=self.recipient_name,
            recipient_mobile=self.recipient_mobile,
            recipient_id_type=IdType(self.recipient_id_type),
            recipient_govt_id=self.recipient_govt_id,
            recipient_emp_id=self.recipient_emp_id,
            status=VoucherStatus(self.status),
            issuer_id=self.issuer_id,
            retry_count=self.retry_count,
            last_error=self.last_error,
            halted=self.halted,
            source_row=self.source_row,
            run_id=self.run_id,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_dto(cls, dto: Voucher) -> VoucherModel:
        return cls(
            id=dto.id,
            code=dto.code,
            order_id=dto.order_id,
            recipient_name=dto.recipient_name,
            recipient_mobile=dto.recipient_mobile,
            recipient_id_type=dto.recipient_id_type.value,
            recipient_govt_id=dto.recipient_govt_id,
            recipient_emp_id=dto.recipient_emp_id,
            status=dto.status.value,
            issuer_id=dto.issuer_id,
            retry_count=dto.retry_count,
            last_error=dto.last_error,
            halted=dto.halted,
            source_row=dto.source_row,
            run_id=dto.run_id,
            **_timestamps(dto),
        )



def _timestamps(dto: Order | Voucher) -> dict[str, datetime]:
    """Only explicit timestamps; None leaves the server default in place."""
    values = {}
    if dto.created_at is not None:
        values["created_at"] = dto.created_at
    if dto.updated_at is not None:
        values["updated_at"] = dto.updated_at
    return values
