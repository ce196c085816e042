"""
OrderService -- composition root and facade for the voucher pipeline.

Contract:
    Wires BatchIngestor, VoucherMaterializer and DispatchEngine over one
    repository and one artifact store, and exposes the operations transport
    adapters (HTTP handlers, queue consumers, the CLI) call.  Every call
    binds ``LogContext`` so all log lines of that call carry the order and
    actor.

Non-goals:
    - Does NOT schedule phases -- materialization and dispatch passes are
      triggered externally, one call per trigger.
    - Does NOT resolve identity -- ``created_by`` arrives resolved.
"""

from __future__ import annotations

from collections import Counter
from typing import IO, TYPE_CHECKING, Callable
from uuid import UUID, uuid4

from sqlalchemy.orm import Session

from voucher_kernel.domain.clock import Clock, SystemClock
from voucher_kernel.domain.types import Order, Voucher, VoucherStatus
from voucher_kernel.logging_config import LogContext, get_logger
from voucher_kernel.repositories.base import OrderRepository
from voucher_kernel.repositories.sqlalchemy_repository import SqlAlchemyOrderRepository
from voucher_kernel.storage.base import ArtifactStore
from voucher_kernel.storage.local import LocalArtifactStore

from voucher_ingestion.services.ingestor import BatchIngestor

from voucher_batch.domain.types import DispatchPassResult, MaterializationResult, OrderSummary
from voucher_batch.notify.base import NotificationGateway
from voucher_batch.services.dispatch import DispatchEngine
from voucher_batch.services.materializer import VoucherMaterializer

if TYPE_CHECKING:
    from voucher_config.schema import VoucherConfig

logger = get_logger("batch.orchestrator")


class OrderService:
    """Facade over ingestion, materialization and dispatch."""

    def __init__(
        self,
        repository: OrderRepository,
        store: ArtifactStore,
        gateway: NotificationGateway,
        ingestor: BatchIngestor | None = None,
        materializer: VoucherMaterializer | None = None,
        dispatcher: DispatchEngine | None = None,
    ) -> None:
        self._repository = repository
        self._store = store
        self._ingestor = ingestor or BatchIngestor(repository, store)
        self._materializer = materializer or VoucherMaterializer(repository, store)
        self._dispatcher = dispatcher or DispatchEngine(repository, gateway)

    # -------------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------------

    @classmethod
    def from_config(
        cls,
        config: VoucherConfig,
        session_factory: Callable[[], Session],
        notifier: NotificationGateway,
        store: ArtifactStore | None = None,
        clock: Clock | None = None,
    ) -> OrderService:
        """Create a fully wired OrderService from a VoucherConfig.

        Args:
            config: Validated pipeline configuration.
            session_factory: Produces one SQLAlchemy session per repository call.
            notifier: Gateway used by dispatch passes.
            store: Optional artifact store. If None, a LocalArtifactStore
                rooted at ``config.storage.root``.
            clock: Optional clock for deterministic testing.
        """
        repository = SqlAlchemyOrderRepository(session_factory, clock=clock or SystemClock())
        effective_store = store if store is not None else LocalArtifactStore(config.storage.root)

        return cls(
            repository=repository,
            store=effective_store,
            gateway=notifier,
            materializer=VoucherMaterializer(
                repository,
                effective_store,
                max_workers=config.materialize.max_workers,
                code_attempts=config.materialize.code_attempts,
            ),
            dispatcher=DispatchEngine(
                repository,
                notifier,
                max_workers=config.dispatch.max_workers,
                send_timeout_seconds=config.dispatch.send_timeout_seconds,
                max_attempts=config.dispatch.max_attempts,
            ),
        )

    @property
    def repository(self) -> OrderRepository:
        return self._repository

    # -------------------------------------------------------------------------
    # Phases
    # -------------------------------------------------------------------------

    def create_order(self, file: bytes | IO[bytes], created_by: str) -> Order:
        """Validate and accept a batch upload; returns the CREATED order."""
        with LogContext.bind(correlation_id=str(uuid4()), actor_id=created_by, phase="ingest"):
            return self._ingestor.ingest(file, created_by)

    def create_vouchers(self, order_id: UUID) -> MaterializationResult:
        """Materialize and allot the vouchers of a CREATED order."""
        with LogContext.bind(correlation_id=str(uuid4()), order_id=str(order_id)):
            order = self._repository.get_order(order_id)
            with LogContext.bind(actor_id=order.created_by):
                return self._materializer.materialize(order)

    def process_order(self, order_id: UUID) -> DispatchPassResult:
        """Run one dispatch pass over the order's ALLOTTED vouchers."""
        with LogContext.bind(correlation_id=str(uuid4()), order_id=str(order_id)):
            order = self._repository.get_order(order_id)
            with LogContext.bind(actor_id=order.created_by):
                return self._dispatcher.process_order(order)

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def get_order(self, order_id: UUID) -> Order:
        return self._repository.get_order(order_id)

    def get_voucher(self, voucher_id: UUID) -> Voucher:
        return self._repository.get_voucher(voucher_id)

    def list_vouchers(
        self, order_id: UUID, status: VoucherStatus | None = None,
    ) -> tuple[Voucher, ...]:
        return self._repository.list_vouchers(order_id, status)

    def summarize_order(self, order_id: UUID) -> OrderSummary:
        order = self._repository.get_order(order_id)
        vouchers = self._repository.list_vouchers(order_id)
        counts = Counter(v.status for v in vouchers)

        return OrderSummary(
            order_id=order.id,
            order_status=order.status,
            declared_count=order.voucher_count,
            voucher_counts={status: counts.get(status, 0) for status in VoucherStatus},
            total_retries=sum(v.retry_count for v in vouchers),
            failing_vouchers=sum(
                1 for v in vouchers
                if v.status == VoucherStatus.ALLOTTED and v.retry_count > 0
            ),
            halted_vouchers=sum(1 for v in vouchers if v.halted),
            exhausted_vouchers=sum(
                1 for v in vouchers
                if v.status == VoucherStatus.ALLOTTED and self._dispatcher.is_exhausted(v)
            ),
        )
