"""
Typed exception hierarchy for the voucher kernel.

===============================================================================
EXCEPTION HIERARCHY
===============================================================================

All exceptions inherit from VoucherKernelError:

    VoucherKernelError (base)
    |
    +-- RowValidationError
    |   +-- MalformedRowError
    |   +-- EmptyFieldError
    |   +-- FieldTooLongError
    |   +-- InvalidMobileError
    |   +-- UnknownIdTypeError
    |
    +-- EmptyBatchError
    |
    +-- StorageError
    |   +-- ArtifactNotFoundError
    |
    +-- RepositoryError
    |   +-- OrderNotFoundError
    |   +-- VoucherNotFoundError
    |   +-- DuplicateVoucherCodeError
    |   +-- InvalidStatusTransitionError
    |
    +-- OrderStateError
    +-- MaterializationError
    +-- DispatchError

===============================================================================
ERROR CODES - QUICK REFERENCE
===============================================================================

Category     | Code                        | When Raised
-------------|-----------------------------|--------------------------------------
Validation   | ROW_VALIDATION_FAILED       | Generic row rejection
             | MALFORMED_ROW               | Row does not have 5 fields
             | EMPTY_FIELD                 | Required field empty after cleaning
             | FIELD_TOO_LONG              | Field exceeds max length
             | INVALID_MOBILE              | Mobile number does not normalize
             | UNKNOWN_ID_TYPE             | idType not a known document type
             | EMPTY_BATCH                 | Batch file has no data rows
-------------|-----------------------------|--------------------------------------
Storage      | STORAGE_ERROR               | Artifact upload/download failed
             | ARTIFACT_NOT_FOUND          | No artifact stored under the key
-------------|-----------------------------|--------------------------------------
Repository   | REPOSITORY_ERROR            | Persistence layer failure
             | ORDER_NOT_FOUND             | Order id doesn't exist
             | VOUCHER_NOT_FOUND           | Voucher id doesn't exist
             | DUPLICATE_VOUCHER_CODE      | Voucher code already taken
             | INVALID_STATUS_TRANSITION   | Backward / illegal status move
-------------|-----------------------------|--------------------------------------
Pipeline     | ORDER_STATE_INVALID         | Phase invoked on wrong order status
             | MATERIALIZATION_FAILED      | Per-row persistence failed
             | DISPATCH_FAILED             | Voucher set could not be processed

===============================================================================
HANDLING PATTERNS
===============================================================================

    try:
        order = ingestor.ingest(payload, created_by="acct-1")
    except RowValidationError as e:
        return {"error": e.code, "row": e.row_number, "field": e.field}
    except StorageError as e:
        log.error("upload failed", extra={"key": e.key})

Per-voucher dispatch failures are NOT exceptions for callers of the
dispatch pass; they are recorded on the voucher and reported in the pass
result.
"""

from __future__ import annotations

from typing import Sequence


class VoucherKernelError(Exception):
    """
    Base exception for all voucher kernel errors.

    All subclasses carry a ``code`` class attribute for machine-readable
    error identification.
    """

    code: str = "VOUCHER_KERNEL_ERROR"


# Row validation


class RowValidationError(VoucherKernelError):
    """A batch row failed validation. Fatal for the whole batch."""

    code: str = "ROW_VALIDATION_FAILED"

    def __init__(
        self,
        message: str,
        field: str | None = None,
        value: str | None = None,
        row_number: int | None = None,
        raw_row: Sequence[str] | None = None,
    ):
        self.field = field
        self.value = value
        self.row_number = row_number
        self.raw_row = tuple(raw_row) if raw_row is not None else None
        self.reason = message
        super().__init__(self._render())

    def _render(self) -> str:
        if self.row_number is None:
            return self.reason
        return f"Row {self.row_number}: {self.reason}"

    def at_row(self, row_number: int, raw_row: Sequence[str]) -> RowValidationError:
        """Attach the offending row context and return self."""
        self.row_number = row_number
        self.raw_row = tuple(raw_row)
        self.args = (self._render(),)
        return self


class MalformedRowError(RowValidationError):
    """Row does not have the expected number of fields."""

    code: str = "MALFORMED_ROW"

    def __init__(self, expected: int, actual: int):
        self.expected = expected
        self.actual = actual
        super().__init__(f"Expected {expected} fields, got {actual}")


class EmptyFieldError(RowValidationError):
    """Required field is empty after cleaning."""

    code: str = "EMPTY_FIELD"

    def __init__(self, field: str, value: str | None = None):
        super().__init__(f"Field '{field}' must not be empty", field=field, value=value)


class FieldTooLongError(RowValidationError):
    """Field exceeds the maximum permitted length."""

    code: str = "FIELD_TOO_LONG"

    def __init__(self, field: str, value: str, max_length: int):
        self.max_length = max_length
        super().__init__(
            f"Field '{field}' exceeds {max_length} characters ({len(value)})",
            field=field,
            value=value,
        )


class InvalidMobileError(RowValidationError):
    """Mobile number does not normalize to a valid phone number."""

    code: str = "INVALID_MOBILE"

    def __init__(self, value: str):
        super().__init__(f"Invalid mobile number: {value!r}", field="mobile_number", value=value)


class UnknownIdTypeError(RowValidationError):
    """idType is not one of the known identity-document types."""

    code: str = "UNKNOWN_ID_TYPE"

    def __init__(self, value: str, allowed: Sequence[str]):
        self.allowed = list(allowed)
        super().__init__(
            f"Unknown id type {value!r}; expected one of {', '.join(self.allowed)}",
            field="id_type",
            value=value,
        )


class EmptyBatchError(VoucherKernelError):
    """Uploaded batch contains no data rows."""

    code: str = "EMPTY_BATCH"

    def __init__(self, message: str = "Batch file contains no data rows"):
        super().__init__(message)


# Storage


class StorageError(VoucherKernelError):
    """Artifact could not be stored or read."""

    code: str = "STORAGE_ERROR"

    def __init__(self, key: str, message: str):
        self.key = key
        super().__init__(f"Storage failure for {key}: {message}")


class ArtifactNotFoundError(StorageError):
    """No artifact exists under the requested key."""

    code: str = "ARTIFACT_NOT_FOUND"

    def __init__(self, key: str):
        super().__init__(key, "artifact not found")


# Repository


class RepositoryError(VoucherKernelError):
    """Base exception for persistence failures."""

    code: str = "REPOSITORY_ERROR"


class OrderNotFoundError(RepositoryError):
    """Order with given ID was not found."""

    code: str = "ORDER_NOT_FOUND"

    def __init__(self, order_id: str):
        self.order_id = order_id
        super().__init__(f"Order not found: {order_id}")


class VoucherNotFoundError(RepositoryError):
    """Voucher with given ID was not found."""

    code: str = "VOUCHER_NOT_FOUND"

    def __init__(self, voucher_id: str):
        self.voucher_id = voucher_id
        super().__init__(f"Voucher not found: {voucher_id}")


class DuplicateVoucherCodeError(RepositoryError):
    """Voucher code is already in use."""

    code: str = "DUPLICATE_VOUCHER_CODE"

    def __init__(self, voucher_code: str):
        self.voucher_code = voucher_code
        super().__init__(f"Voucher code already exists: {voucher_code}")


class InvalidStatusTransitionError(RepositoryError):
    """Requested status change is not a legal forward move."""

    code: str = "INVALID_STATUS_TRANSITION"

    def __init__(self, entity: str, from_status: str, to_status: str):
        self.entity = entity
        self.from_status = from_status
        self.to_status = to_status
        super().__init__(
            f"Illegal {entity} status transition: {from_status} -> {to_status}"
        )


# Pipeline


class OrderStateError(VoucherKernelError):
    """A pipeline phase was invoked on an order in the wrong status."""

    code: str = "ORDER_STATE_INVALID"

    def __init__(self, order_id: str, status: str, operation: str):
        self.order_id = order_id
        self.status = status
        self.operation = operation
        super().__init__(
            f"Cannot {operation} order {order_id} in status {status}"
        )


class MaterializationError(VoucherKernelError):
    """One or more per-row persistence tasks failed; nothing was allotted."""

    code: str = "MATERIALIZATION_FAILED"

    def __init__(self, order_id: str, failed_rows: Sequence[int], first_error: str):
        self.order_id = order_id
        self.failed_rows = list(failed_rows)
        self.first_error = first_error
        super().__init__(
            f"Materialization of order {order_id} failed on "
            f"{len(self.failed_rows)} row(s): {first_error}"
        )


class DispatchError(VoucherKernelError):
    """The dispatch pass could not run (voucher set unavailable)."""

    code: str = "DISPATCH_FAILED"

    def __init__(self, order_id: str, message: str):
        self.order_id = order_id
        super().__init__(f"Dispatch of order {order_id} failed: {message}")
