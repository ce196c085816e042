"""
DispatchEngine -- one notification pass over an order's ALLOTTED vouchers.

Contract:
    ``process_order()`` sends every eligible ALLOTTED voucher through the
    notification gateway on a bounded pool, then records the outcomes on
    the coordinating thread.  A pass is safe to re-run: PROCESSED vouchers
    are never re-sent, and the ALLOTTED -> PROCESSED move is a conditional
    update, so a voucher cannot be processed twice by overlapping passes.

    The order moves PROCESSING -> PROCESSED only when the pass had no failed
    outcome and no voucher was left out at the retry ceiling.

Failure modes:
    - Per-voucher failures NEVER propagate; they are counted and recorded
      (retry_count + 1, last_error) and the voucher stays ALLOTTED.
    - OrderStateError -- the order is still CREATED (not materialized).
    - DispatchError -- the voucher set could not be loaded.
    - RepositoryError -- an outcome could not be recorded.
"""

from __future__ import annotations

import time
from typing import Any

from voucher_kernel.domain.types import Order, OrderStatus, Voucher, VoucherStatus
from voucher_kernel.exceptions import DispatchError, OrderStateError, RepositoryError
from voucher_kernel.logging_config import LogContext, get_logger
from voucher_kernel.repositories.base import OrderRepository

from voucher_batch.domain.types import (
    DispatchOutcome,
    DispatchOutcomeKind,
    DispatchPassResult,
    VoucherDispatchResult,
    VoucherDispatchStatus,
)
from voucher_batch.notify.base import NotificationGateway
from voucher_batch.services.pool import TaskOutcome, run_bounded

logger = get_logger("batch.dispatch")

SEND_FAILED_MESSAGE = "Failed to send sms"


def normalize_outcome(result: Any) -> DispatchOutcome:
    """Map a gateway return value onto a DispatchOutcome."""
    if isinstance(result, DispatchOutcome):
        return result
    if result is True:
        return DispatchOutcome.success()
    return DispatchOutcome.transient(SEND_FAILED_MESSAGE)


class DispatchEngine:
    """Runs dispatch passes against a NotificationGateway."""

    def __init__(
        self,
        repository: OrderRepository,
        gateway: NotificationGateway,
        max_workers: int = 8,
        send_timeout_seconds: float | None = 10.0,
        max_attempts: int | None = 10,
    ):
        self._repository = repository
        self._gateway = gateway
        self._max_workers = max_workers
        self._send_timeout = send_timeout_seconds
        self._max_attempts = max_attempts

    def is_exhausted(self, voucher: Voucher) -> bool:
        """True if the voucher must not be attempted again."""
        if voucher.halted:
            return True
        return self._max_attempts is not None and voucher.retry_count >= self._max_attempts

    def process_order(self, order: Order) -> DispatchPassResult:
        start_time = time.monotonic()

        with LogContext.bind(order_id=str(order.id), phase="dispatch"):
            if order.status == OrderStatus.PROCESSED:
                logger.info("dispatch_skipped_order_processed")
                return DispatchPassResult(order_id=order.id, order_status=order.status)
            if order.status == OrderStatus.CREATED:
                raise OrderStateError(str(order.id), order.status.value, "dispatch")

            try:
                allotted = self._repository.list_vouchers(order.id, VoucherStatus.ALLOTTED)
            except RepositoryError as exc:
                logger.exception("dispatch_load_failed")
                raise DispatchError(str(order.id), f"Cannot load vouchers: {exc}") from exc

            results: list[VoucherDispatchResult] = []
            eligible: list[Voucher] = []
            for voucher in allotted:
                if self.is_exhausted(voucher):
                    results.append(VoucherDispatchResult(
                        voucher_id=voucher.id,
                        code=voucher.code,
                        status=VoucherDispatchStatus.EXHAUSTED,
                        retry_count=voucher.retry_count,
                        error=voucher.last_error,
                    ))
                else:
                    eligible.append(voucher)

            exhausted = len(results)
            if exhausted:
                logger.warning(
                    "vouchers_exhausted",
                    extra={"exhausted": exhausted, "max_attempts": self._max_attempts},
                )

            outcomes = run_bounded(
                self._send,
                eligible,
                max_workers=self._max_workers,
                timeout=self._send_timeout,
                thread_name_prefix="voucher-dispatch",
            )

            # Status writes stay on this thread, after the barrier.
            for voucher, outcome in zip(eligible, outcomes):
                results.append(self._record(voucher, outcome))

            counts = {status: 0 for status in VoucherDispatchStatus}
            for result in results:
                counts[result.status] += 1
            failed = counts[VoucherDispatchStatus.FAILED] + counts[VoucherDispatchStatus.HALTED]

            order_status = order.status
            if failed == 0 and exhausted == 0:
                if self._repository.transition_order(
                    order.id, OrderStatus.PROCESSING, OrderStatus.PROCESSED,
                ):
                    logger.info("order_processed")
                order_status = self._repository.get_order(order.id).status

            duration_ms = int((time.monotonic() - start_time) * 1000)
            pass_result = DispatchPassResult(
                order_id=order.id,
                order_status=order_status,
                attempted=len(eligible),
                succeeded=counts[VoucherDispatchStatus.PROCESSED],
                failed=failed,
                skipped=counts[VoucherDispatchStatus.SKIPPED],
                exhausted=exhausted,
                voucher_results=tuple(results),
                duration_ms=duration_ms,
            )

            logger.info(
                "dispatch_pass_completed",
                extra={
                    "attempted": pass_result.attempted,
                    "succeeded": pass_result.succeeded,
                    "failed": pass_result.failed,
                    "skipped": pass_result.skipped,
                    "exhausted": pass_result.exhausted,
                    "order_status": order_status.value,
                    "duration_ms": duration_ms,
                },
            )
            return pass_result

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _send(self, voucher: Voucher) -> DispatchOutcome:
        """Gateway call, run on a pool thread."""
        with LogContext.bind(voucher_id=str(voucher.id)):
            try:
                return normalize_outcome(self._gateway.send(voucher))
            except Exception as exc:
                logger.warning(
                    "voucher_send_raised",
                    extra={"code": voucher.code, "error_type": type(exc).__name__},
                    exc_info=True,
                )
                return DispatchOutcome.transient(str(exc) or type(exc).__name__)

    def _record(self, voucher: Voucher, task: TaskOutcome) -> VoucherDispatchResult:
        if task.timed_out:
            outcome = DispatchOutcome.transient(f"Timed out after {self._send_timeout:g}s")
        elif task.error is not None:
            outcome = DispatchOutcome.transient(str(task.error) or type(task.error).__name__)
        else:
            outcome = task.value

        with LogContext.bind(voucher_id=str(voucher.id)):
            if outcome.ok:
                if self._repository.transition_voucher(
                    voucher.id, VoucherStatus.ALLOTTED, VoucherStatus.PROCESSED,
                ):
                    logger.info(
                        "voucher_dispatched",
                        extra={"code": voucher.code, "retry_count": voucher.retry_count},
                    )
                    status = VoucherDispatchStatus.PROCESSED
                else:
                    logger.info("voucher_already_processed", extra={"code": voucher.code})
                    status = VoucherDispatchStatus.SKIPPED
                return VoucherDispatchResult(
                    voucher_id=voucher.id,
                    code=voucher.code,
                    status=status,
                    retry_count=voucher.retry_count,
                    duration_ms=task.duration_ms,
                )

            halt = outcome.kind == DispatchOutcomeKind.PERMANENT_FAILURE
            error = outcome.error or SEND_FAILED_MESSAGE
            updated = self._repository.record_dispatch_failure(voucher.id, error, halt=halt)
            logger.warning(
                "voucher_dispatch_failed",
                extra={
                    "code": voucher.code,
                    "retry_count": updated.retry_count,
                    "last_error": error,
                    "halted": halt,
                    "timed_out": task.timed_out,
                },
            )
            return VoucherDispatchResult(
                voucher_id=voucher.id,
                code=voucher.code,
                status=VoucherDispatchStatus.HALTED if halt else VoucherDispatchStatus.FAILED,
                retry_count=updated.retry_count,
                error=error,
                duration_ms=task.duration_ms,
            )
