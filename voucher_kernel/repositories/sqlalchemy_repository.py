"""
SqlAlchemyOrderRepository -- OrderRepository over the ORM models.

Contract:
    One short session per call, taken from the injected session factory and
    committed before returning, so the repository can be shared by worker
    threads (a Session itself is not thread-safe).

    Status changes are single ``UPDATE ... WHERE id = :id AND status =
    :expected`` statements; the affected row count decides the outcome.  Two
    concurrent dispatch passes therefore cannot both move the same voucher to
    PROCESSED.

Failure modes:
    - IntegrityError on the unique voucher code -> DuplicateVoucherCodeError.
    - Any other SQLAlchemyError -> RepositoryError (original chained).
"""

from __future__ import annotations

from contextlib import contextmanager
from typing import Callable, Generator
from uuid import UUID

from sqlalchemy import delete, select, update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

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
    RepositoryError,
    VoucherKernelError,
    VoucherNotFoundError,
)
from voucher_kernel.logging_config import get_logger
from voucher_kernel.models.order import OrderModel, VoucherModel

logger = get_logger("repositories.sqlalchemy")


class SqlAlchemyOrderRepository:
    """OrderRepository backed by a relational database."""

    def __init__(
        self,
        session_factory: Callable[[], Session],
        clock: Clock | None = None,
    ):
        self._session_factory = session_factory
        self._clock = clock or SystemClock()

    @contextmanager
    def _scope(self) -> Generator[Session, None, None]:
        session = self._session_factory()
        try:
            yield session
            session.commit()
        except VoucherKernelError:
            session.rollback()
            raise
        except SQLAlchemyError as exc:
            session.rollback()
            logger.warning("repository_operation_failed", exc_info=True)
            raise RepositoryError(str(exc)) from exc
        finally:
            session.close()

    # -------------------------------------------------------------------------
    # Orders
    # -------------------------------------------------------------------------

    def add_order(self, order: Order) -> Order:
        now = self._clock.now()
        with self._scope() as session:
            model = OrderModel.from_dto(order)
            model.created_at = now
            model.updated_at = now
            session.add(model)
            session.flush()
            return model.to_dto()

    def get_order(self, order_id: UUID) -> Order:
        with self._scope() as session:
            model = session.get(OrderModel, order_id)
            if model is None:
                raise OrderNotFoundError(str(order_id))
            return model.to_dto()

    def transition_order(
        self, order_id: UUID, expected: OrderStatus, new: OrderStatus,
    ) -> bool:
        if not can_transition(expected, new):
            raise InvalidStatusTransitionError("order", expected.value, new.value)
        with self._scope() as session:
            result = session.execute(
                update(OrderModel)
                .where(OrderModel.id == order_id, OrderModel.status == expected.value)
                .values(status=new.value, updated_at=self._clock.now())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0 and session.get(OrderModel, order_id) is None:
                raise OrderNotFoundError(str(order_id))
            return result.rowcount == 1

    # -------------------------------------------------------------------------
    # Vouchers
    # -------------------------------------------------------------------------

    def add_voucher(self, voucher: Voucher) -> Voucher:
        now = self._clock.now()
        session = self._session_factory()
        try:
            model = VoucherModel.from_dto(voucher)
            model.created_at = now
            model.updated_at = now
            session.add(model)
            session.commit()
            return model.to_dto()
        except IntegrityError as exc:
            session.rollback()
            exists = session.execute(
                select(VoucherModel.id).where(VoucherModel.code == voucher.code)
            ).first()
            if exists is not None:
                raise DuplicateVoucherCodeError(voucher.code) from exc
            raise RepositoryError(str(exc)) from exc
        except SQLAlchemyError as exc:
            session.rollback()
            raise RepositoryError(str(exc)) from exc
        finally:
            session.close()

    def get_voucher(self, voucher_id: UUID) -> Voucher:
        with self._scope() as session:
            model = session.get(VoucherModel, voucher_id)
            if model is None:
                raise VoucherNotFoundError(str(voucher_id))
            return model.to_dto()

    def list_vouchers(
        self, order_id: UUID, status: VoucherStatus | None = None,
    ) -> tuple[Voucher, ...]:
        stmt = select(VoucherModel).where(VoucherModel.order_id == order_id)
        if status is not None:
            stmt = stmt.where(VoucherModel.status == status.value)
        stmt = stmt.order_by(VoucherModel.source_row, VoucherModel.code)
        with self._scope() as session:
            return tuple(m.to_dto() for m in session.execute(stmt).scalars().all())

    def bulk_transition_vouchers(
        self,
        order_id: UUID,
        expected: VoucherStatus,
        new: VoucherStatus,
        run_id: UUID | None = None,
    ) -> int:
        if not can_transition(expected, new):
            raise InvalidStatusTransitionError("voucher", expected.value, new.value)
        with self._scope() as session:
            result = session.execute(
                update(VoucherModel)
                .where(*_voucher_filter(order_id, expected, run_id))
                .values(status=new.value, updated_at=self._clock.now())
                .execution_options(synchronize_session=False)
            )
            return result.rowcount

    def transition_voucher(
        self, voucher_id: UUID, expected: VoucherStatus, new: VoucherStatus,
    ) -> bool:
        if not can_transition(expected, new):
            raise InvalidStatusTransitionError("voucher", expected.value, new.value)
        with self._scope() as session:
            result = session.execute(
                update(VoucherModel)
                .where(
                    VoucherModel.id == voucher_id,
                    VoucherModel.status == expected.value,
                )
                .values(status=new.value, updated_at=self._clock.now())
                .execution_options(synchronize_session=False)
            )
            if result.rowcount == 0 and session.get(VoucherModel, voucher_id) is None:
                raise VoucherNotFoundError(str(voucher_id))
            return result.rowcount == 1

    def record_dispatch_failure(
        self, voucher_id: UUID, error: str, halt: bool = False,
    ) -> Voucher:
        values = {
            "retry_count": VoucherModel.retry_count + 1,
            "last_error": error,
            "updated_at": self._clock.now(),
        }
        if halt:
            values["halted"] = True
        with self._scope() as session:
            session.execute(
                update(VoucherModel)
                .where(
                    VoucherModel.id == voucher_id,
                    VoucherModel.status == VoucherStatus.ALLOTTED.value,
                )
                .values(**values)
                .execution_options(synchronize_session=False)
            )
            model = session.get(VoucherModel, voucher_id)
            if model is None:
                raise VoucherNotFoundError(str(voucher_id))
            session.refresh(model)
            return model.to_dto()

    def delete_vouchers(
        self, order_id: UUID, status: VoucherStatus, run_id: UUID | None = None,
    ) -> int:
        with self._scope() as session:
            result = session.execute(
                delete(VoucherModel)
                .where(*_voucher_filter(order_id, status, run_id))
                .execution_options(synchronize_session=False)
            )
            return result.rowcount


def _voucher_filter(order_id: UUID, status: VoucherStatus, run_id: UUID | None) -> list:
    clauses = [VoucherModel.order_id == order_id, VoucherModel.status == status.value]
    if run_id is not None:
        clauses.append(VoucherModel.run_id == run_id)
    return clauses
