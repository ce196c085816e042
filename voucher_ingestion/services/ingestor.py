"""
BatchIngestor -- accept or reject an uploaded recipient batch.

Contract:
    ``ingest()`` parses the upload, validates EVERY row, and only then stores
    the raw artifact and creates the Order in CREATED.  A single bad row
    rejects the batch: no artifact is written and no order exists.

    Parsed fields are not persisted here.  The materializer re-reads the
    stored artifact and re-validates it with the same validator module,
    so ingestion and materialization may run on different workers.

Failure modes:
    - RowValidationError (with row_number / raw_row) for any invalid row.
    - EmptyBatchError when the file has no data rows.
    - StorageError if the artifact cannot be stored.
"""

from __future__ import annotations

from typing import IO
from uuid import uuid4

from voucher_kernel.domain.types import Order, OrderStatus, artifact_key_for
from voucher_kernel.exceptions import EmptyBatchError, RowValidationError
from voucher_kernel.logging_config import LogContext, get_logger
from voucher_kernel.repositories.base import OrderRepository
from voucher_kernel.storage.base import BATCH_CONTENT_TYPE, ArtifactStore

from voucher_ingestion.adapters.csv_adapter import parse_batch, read_payload
from voucher_ingestion.domain.validators import validate_rows

logger = get_logger("ingestion.ingestor")


class BatchIngestor:
    """Validates a batch upload, stores the artifact, creates the order."""

    def __init__(self, repository: OrderRepository, store: ArtifactStore):
        self._repository = repository
        self._store = store

    def ingest(self, file: bytes | IO[bytes], created_by: str) -> Order:
        """Ingest a batch file on behalf of ``created_by``.

        Returns the created Order (status CREATED).
        """
        data = read_payload(file)
        try:
            rows = parse_batch(data)
        except UnicodeDecodeError as exc:
            raise RowValidationError(f"Batch file is not valid UTF-8: {exc}") from exc

        if not rows:
            raise EmptyBatchError()

        try:
            validate_rows(rows)
        except RowValidationError as exc:
            logger.warning(
                "batch_rejected",
                extra={
                    "created_by": created_by,
                    "row_number": exc.row_number,
                    "error_code": exc.code,
                    "reason": exc.reason,
                },
            )
            raise

        external_ref = str(uuid4())
        key = artifact_key_for(external_ref)
        location = self._store.put(data, BATCH_CONTENT_TYPE, key)

        order = self._repository.add_order(
            Order(
                id=uuid4(),
                external_ref=external_ref,
                status=OrderStatus.CREATED,
                voucher_count=len(rows),
                artifact_location=location,
                created_by=created_by,
            )
        )

        with LogContext.bind(order_id=str(order.id)):
            logger.info(
                "order_ingested",
                extra={
                    "external_ref": external_ref,
                    "artifact_key": key,
                    "voucher_count": order.voucher_count,
                    "created_by": created_by,
                },
            )
        return order
