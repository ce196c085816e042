"""
Row validators for recipient batches.

One module serves both validation call sites (ingestion and
materialization) so the two passes cannot drift apart.

Rules, applied in order, first failure wins:
    1. name          -- cleaned, non-empty, <= 40 chars
    2. mobileNumber  -- normalizes to a 10-digit mobile number
    3. idType        -- member of IdType
    4. govtIdNumber  -- <= 40 chars
    5. empId         -- <= 40 chars

Architecture: voucher_ingestion/domain. ZERO I/O.
"""

from __future__ import annotations

import re
from typing import Iterable, Sequence

from voucher_kernel.domain.types import IdType
from voucher_kernel.exceptions import (
    EmptyFieldError,
    FieldTooLongError,
    InvalidMobileError,
    MalformedRowError,
    RowValidationError,
    UnknownIdTypeError,
)

from voucher_ingestion.domain.types import (
    BATCH_COLUMNS,
    MAX_FIELD_LENGTH,
    RawRow,
    RecipientRow,
)

_NAME_DISALLOWED = re.compile(r"[^\w\s.'\-]", re.UNICODE)
_WHITESPACE = re.compile(r"\s+")
_PHONE_SEPARATORS = re.compile(r"[\s\-().]")
_MOBILE = re.compile(r"^[6-9]\d{9}$")
_ID_TYPE_SEPARATORS = re.compile(r"[\s\-]+")
_HEADER_TOKENS = tuple(c.lower() for c in BATCH_COLUMNS)


# -----------------------------------------------------------------------------
# Field cleaners
# -----------------------------------------------------------------------------


def clean_name(value: str) -> str:
    """Strip disallowed characters and collapse whitespace."""
    cleaned = _NAME_DISALLOWED.sub("", value or "").replace("_", "")
    return _WHITESPACE.sub(" ", cleaned).strip()


def check_length(value: str, field: str, max_length: int = MAX_FIELD_LENGTH) -> str:
    if len(value) > max_length:
        raise FieldTooLongError(field, value, max_length)
    return value


def clean_mobile_number(value: str) -> str:
    """Normalize to a bare 10-digit mobile number.

    Accepts an optional +91 / 91 country prefix or a trunk 0.
    """
    raw = value or ""
    digits = _PHONE_SEPARATORS.sub("", raw.strip())
    if digits.startswith("+"):
        if not digits.startswith("+91"):
            raise InvalidMobileError(raw)
        digits = digits[3:]
    elif len(digits) == 12 and digits.startswith("91"):
        digits = digits[2:]
    elif len(digits) == 11 and digits.startswith("0"):
        digits = digits[1:]

    if not _MOBILE.match(digits):
        raise InvalidMobileError(raw)
    return digits


def parse_id_type(value: str) -> IdType:
    """Resolve an idType cell to IdType.

    Lenient about spelling on purpose.  Matching ignores case and
    surrounding whitespace; inner spaces or hyphens stand for "_", so
    "Driving License" and "voter-id" are accepted.  Anything that still
    names no member raises UnknownIdTypeError.
    """
    token = _ID_TYPE_SEPARATORS.sub("_", (value or "").strip()).upper()
    try:
        return IdType[token]
    except KeyError:
        raise UnknownIdTypeError(value, [t.name for t in IdType]) from None


# -----------------------------------------------------------------------------
# Row-level
# -----------------------------------------------------------------------------


def validate_row(fields: Sequence[str], row_number: int | None = None) -> RecipientRow:
    """Validate and normalize one batch row.

    Raises a RowValidationError subclass carrying the row context.
    """
    try:
        if len(fields) != len(BATCH_COLUMNS):
            raise MalformedRowError(len(BATCH_COLUMNS), len(fields))

        name = clean_name(fields[0])
        if not name:
            raise EmptyFieldError("name", fields[0])
        check_length(name, "name")

        mobile = clean_mobile_number(fields[1])
        id_type = parse_id_type(fields[2])
        govt_id = check_length(fields[3].strip(), "govt_id_number")
        emp_id = check_length(fields[4].strip(), "emp_id")
    except RowValidationError as exc:
        if row_number is not None:
            exc.at_row(row_number, fields)
        raise

    return RecipientRow(
        name=name,
        mobile_number=mobile,
        id_type=id_type,
        govt_id_number=govt_id,
        emp_id=emp_id,
        row_number=row_number,
    )


def validate_rows(rows: Iterable[RawRow]) -> list[RecipientRow]:
    """Validate every row; the first failure aborts the whole batch."""
    return [validate_row(row.fields, row.row_number) for row in rows]


def is_header_row(fields: Sequence[str]) -> bool:
    """True if the row carries the column names instead of data."""
    if len(fields) != len(BATCH_COLUMNS):
        return False
    normalized = tuple(re.sub(r"[\s_]", "", f).lower() for f in fields)
    return normalized == _HEADER_TOKENS
