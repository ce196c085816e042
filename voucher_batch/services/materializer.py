"""
VoucherMaterializer -- create-then-allot for one order.

Contract:
    ``materialize()`` re-reads the order's stored artifact, re-validates
    every row, persists one CREATED voucher per row on a bounded worker
    pool, then (only after every row task succeeded) bulk-allots the
    vouchers and moves the order CREATED -> PROCESSING.

    Every run stamps its vouchers with a fresh ``run_id``.  Cleanup and
    allotment touch only the run's own vouchers, so two overlapping runs
    for one order cannot allot each other's rows.  The order transition
    decides the winner; the loser deletes what it wrote.

Invariants enforced:
    - All vouchers reach ALLOTTED before the order leaves CREATED, so a
      dispatch pass never sees a PROCESSING order with CREATED vouchers.
    - No partial allotment: any failed row task removes this run's CREATED
      vouchers and raises MaterializationError.
    - One run's vouchers per order: a run that finds the order already
      moved on, or loses the order transition, removes its own vouchers.
    - At-least-once tolerance: an order that is no longer CREATED is left
      untouched (result.skipped).

Non-goals:
    - Does NOT reconcile ``voucher_count``; a mismatch is logged and
      reported on the result only.
    - Does NOT fence dispatch against a losing run: its vouchers are
      ALLOTTED between its allotment and its cleanup, and a dispatch pass
      started in that window can see them.

Failure modes:
    - RowValidationError -- a stored row fails validation (nothing written).
    - StorageError -- artifact cannot be read.
    - MaterializationError -- one or more per-row persistence tasks failed.
    - OrderStateError -- another run moved the order out of CREATED while
      this run was allotting (this run's vouchers are removed first).
"""

from __future__ import annotations

import time
from uuid import UUID, uuid4

from voucher_kernel.domain.types import Order, OrderStatus, Voucher, VoucherStatus
from voucher_kernel.exceptions import (
    DuplicateVoucherCodeError,
    MaterializationError,
    OrderStateError,
)
from voucher_kernel.logging_config import LogContext, get_logger
from voucher_kernel.repositories.base import OrderRepository
from voucher_kernel.storage.base import ArtifactStore

from voucher_ingestion.adapters.csv_adapter import read_rows
from voucher_ingestion.domain.types import RecipientRow
from voucher_ingestion.domain.validators import validate_rows

from voucher_batch.domain.types import MaterializationResult
from voucher_batch.services.codes import CodeBook
from voucher_batch.services.pool import run_bounded

logger = get_logger("batch.materializer")


class VoucherMaterializer:
    """Materializes an order's vouchers from its stored artifact."""

    def __init__(
        self,
        repository: OrderRepository,
        store: ArtifactStore,
        max_workers: int = 8,
        code_attempts: int = 5,
    ):
        self._repository = repository
        self._store = store
        self._max_workers = max_workers
        self._code_attempts = code_attempts

    def materialize(self, order: Order) -> MaterializationResult:
        start_time = time.monotonic()

        with LogContext.bind(order_id=str(order.id), phase="materialize"):
            # The caller's snapshot may predate an earlier run.
            order = self._repository.get_order(order.id)
            if order.status != OrderStatus.CREATED:
                logger.info(
                    "materialize_skipped",
                    extra={"order_status": order.status.value},
                )
                return MaterializationResult(
                    order_id=order.id,
                    order_status=order.status,
                    declared_count=order.voucher_count,
                    skipped=True,
                )

            lines = self._store.get_lines(order.artifact_key)
            recipients = validate_rows(read_rows(lines))

            run_id = uuid4()
            codebook = CodeBook()
            outcomes = run_bounded(
                lambda recipient: self._persist(order, recipient, codebook, run_id),
                recipients,
                max_workers=self._max_workers,
                thread_name_prefix="voucher-materialize",
            )

            failures = [
                (recipient, outcome)
                for recipient, outcome in zip(recipients, outcomes)
                if not outcome.ok
            ]
            if failures:
                removed = self._repository.delete_vouchers(
                    order.id, VoucherStatus.CREATED, run_id=run_id,
                )
                first_error = str(failures[0][1].error)
                logger.error(
                    "materialize_aborted",
                    extra={
                        "run_id": run_id,
                        "failed_rows": len(failures),
                        "rows": len(recipients),
                        "removed": removed,
                        "first_error": first_error,
                    },
                )
                raise MaterializationError(
                    str(order.id),
                    [r.row_number for r, _ in failures if r.row_number is not None],
                    first_error,
                )

            current = self._repository.get_order(order.id)
            if current.status != OrderStatus.CREATED:
                removed = self._repository.delete_vouchers(
                    order.id, VoucherStatus.CREATED, run_id=run_id,
                )
                logger.warning(
                    "materialize_superseded",
                    extra={
                        "run_id": run_id,
                        "order_status": current.status.value,
                        "removed": removed,
                    },
                )
                return MaterializationResult(
                    order_id=order.id,
                    order_status=current.status,
                    declared_count=order.voucher_count,
                    skipped=True,
                )

            allotted = self._repository.bulk_transition_vouchers(
                order.id, VoucherStatus.CREATED, VoucherStatus.ALLOTTED, run_id=run_id,
            )
            logger.info("vouchers_allotted", extra={"run_id": run_id, "allotted": allotted})

            if not self._repository.transition_order(
                order.id, OrderStatus.CREATED, OrderStatus.PROCESSING,
            ):
                removed = self._repository.delete_vouchers(
                    order.id, VoucherStatus.ALLOTTED, run_id=run_id,
                )
                current = self._repository.get_order(order.id)
                logger.warning(
                    "materialize_lost_race",
                    extra={
                        "run_id": run_id,
                        "order_status": current.status.value,
                        "removed": removed,
                    },
                )
                raise OrderStateError(str(order.id), current.status.value, "materialize")

            # Leftovers of aborted or superseded runs.
            purged = self._repository.delete_vouchers(order.id, VoucherStatus.CREATED)
            if purged:
                logger.warning("stale_vouchers_purged", extra={"purged": purged})

            count_mismatch = len(recipients) != order.voucher_count
            if count_mismatch:
                logger.warning(
                    "voucher_count_mismatch",
                    extra={
                        "declared_count": order.voucher_count,
                        "materialized": len(recipients),
                    },
                )

            duration_ms = int((time.monotonic() - start_time) * 1000)
            logger.info(
                "order_materialized",
                extra={
                    "materialized": len(recipients),
                    "allotted": allotted,
                    "duration_ms": duration_ms,
                },
            )

            return MaterializationResult(
                order_id=order.id,
                order_status=OrderStatus.PROCESSING,
                materialized=len(recipients),
                allotted=allotted,
                declared_count=order.voucher_count,
                count_mismatch=count_mismatch,
                purged=purged,
                duration_ms=duration_ms,
            )

    def _persist(
        self, order: Order, recipient: RecipientRow, codebook: CodeBook, run_id: UUID,
    ) -> Voucher:
        """Persist one CREATED voucher, regenerating the code on collision."""
        code = ""
        for _ in range(self._code_attempts):
            code = codebook.reserve()
            try:
                return self._repository.add_voucher(
                    Voucher(
                        id=uuid4(),
                        code=code,
                        order_id=order.id,
                        recipient_name=recipient.name,
                        recipient_mobile=recipient.mobile_number,
                        recipient_id_type=recipient.id_type,
                        recipient_govt_id=recipient.govt_id_number,
                        recipient_emp_id=recipient.emp_id,
                        status=VoucherStatus.CREATED,
                        issuer_id=order.created_by,
                        source_row=recipient.row_number,
                        run_id=run_id,
                    )
                )
            except DuplicateVoucherCodeError:
                logger.debug("voucher_code_collision", extra={"code": code})
        raise DuplicateVoucherCodeError(code)
