"""
Tests for voucher_ingestion.services.ingestor.BatchIngestor.

Fail-fast ingestion: one bad row rejects the batch, and a rejected batch
leaves neither an artifact nor an order behind.
"""

from io import BytesIO

import pytest

from voucher_kernel.domain.types import OrderStatus
from voucher_kernel.exceptions import (
    EmptyBatchError,
    InvalidMobileError,
    RowValidationError,
    StorageError,
)
from voucher_kernel.storage.base import BATCH_CONTENT_TYPE

from voucher_ingestion.services.ingestor import BatchIngestor

from tests.conftest import ALICE_ROW, BOB_ROW, TEST_ACTOR, make_batch


@pytest.fixture
def ingestor(repository, store) -> BatchIngestor:
    return BatchIngestor(repository, store)


class TestIngestAccepted:

    def test_creates_order_in_created(self, ingestor, repository):
        order = ingestor.ingest(make_batch(ALICE_ROW, BOB_ROW), TEST_ACTOR)

        assert order.status == OrderStatus.CREATED
        assert order.voucher_count == 2  # Header is not a voucher
        assert order.created_by == TEST_ACTOR
        assert repository.get_order(order.id) == order

    def test_stores_raw_artifact(self, ingestor, store):
        data = make_batch(ALICE_ROW)
        order = ingestor.ingest(data, TEST_ACTOR)

        assert order.artifact_key == f"{order.external_ref}_order_file.csv"
        assert store.artifacts[order.artifact_key] == (data, BATCH_CONTENT_TYPE)
        assert order.artifact_location == f"memory://{order.artifact_key}"

    def test_accepts_file_object(self, ingestor):
        order = ingestor.ingest(BytesIO(make_batch(ALICE_ROW)), TEST_ACTOR)
        assert order.voucher_count == 1

    def test_headerless_batch(self, ingestor):
        order = ingestor.ingest(make_batch(ALICE_ROW, BOB_ROW, header=False), TEST_ACTOR)
        assert order.voucher_count == 2

    def test_voucher_count_skips_header_and_blank_lines(self, ingestor):
        order = ingestor.ingest(make_batch(ALICE_ROW, "", BOB_ROW, "   "), TEST_ACTOR)
        assert order.voucher_count == 2

    def test_logs_order_ingested(self, ingestor, captured_logs):
        order = ingestor.ingest(make_batch(ALICE_ROW), TEST_ACTOR)

        records = [r for r in captured_logs() if r["message"] == "order_ingested"]
        assert len(records) == 1
        assert records[0]["order_id"] == str(order.id)
        assert records[0]["voucher_count"] == 1


class TestIngestRejected:

    def test_invalid_row_rejects_whole_batch(self, ingestor, repository, store):
        data = make_batch(ALICE_ROW, "Bob,12345,PAN,X,E2")

        with pytest.raises(InvalidMobileError) as exc_info:
            ingestor.ingest(data, TEST_ACTOR)

        assert exc_info.value.row_number == 3
        assert store.artifacts == {}
        assert repository._orders == {}

    def test_rejection_is_logged(self, ingestor, captured_logs):
        with pytest.raises(RowValidationError):
            ingestor.ingest(make_batch("Alice,9876543210,SSN,X,E1"), TEST_ACTOR)

        records = [r for r in captured_logs() if r["message"] == "batch_rejected"]
        assert records[0]["error_code"] == "UNKNOWN_ID_TYPE"
        assert records[0]["row_number"] == 2

    def test_header_only_is_empty(self, ingestor):
        with pytest.raises(EmptyBatchError):
            ingestor.ingest(make_batch(), TEST_ACTOR)

    def test_empty_file_is_empty(self, ingestor):
        with pytest.raises(EmptyBatchError):
            ingestor.ingest(b"", TEST_ACTOR)

    def test_non_utf8_rejected(self, ingestor):
        with pytest.raises(RowValidationError):
            ingestor.ingest(b"\xff\xfe\x00garbage", TEST_ACTOR)

    def test_storage_failure_creates_no_order(self, repository):
        class BrokenStore:
            def put(self, data, content_type, key):
                raise StorageError(key, "disk full")

            def get_lines(self, key):
                raise AssertionError("not reached")

        ingestor = BatchIngestor(repository, BrokenStore())
        with pytest.raises(StorageError):
            ingestor.ingest(make_batch(ALICE_ROW), TEST_ACTOR)
        assert repository._orders == {}
