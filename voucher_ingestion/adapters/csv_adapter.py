"""
CSV batch adapter.

Uses csv.reader so quoted fields may contain commas.  Blank lines are
dropped; a leading header row is skipped.  Row numbers are the source line
numbers (1-indexed) so validation errors point at the file.
"""

from __future__ import annotations

import csv
from typing import IO, Iterable

from voucher_kernel.storage.base import decode_lines

from voucher_ingestion.domain.types import RawRow
from voucher_ingestion.domain.validators import is_header_row


def read_rows(lines: Iterable[str], delimiter: str = ",") -> list[RawRow]:
    """Parse text lines into data rows, skipping blanks and a leading header."""
    rows: list[RawRow] = []
    reader = csv.reader(lines, delimiter=delimiter)
    for fields in reader:
        if not any(f.strip() for f in fields):
            continue
        if not rows and is_header_row(fields):
            continue
        rows.append(RawRow(row_number=reader.line_num, fields=tuple(fields)))
    return rows


def read_payload(file: bytes | IO[bytes]) -> bytes:
    """Return the uploaded batch as bytes."""
    if isinstance(file, (bytes, bytearray)):
        return bytes(file)
    return file.read()


def parse_batch(data: bytes, delimiter: str = ",") -> list[RawRow]:
    """Decode UTF-8 bytes (BOM tolerated) and parse data rows."""
    return read_rows(decode_lines(data), delimiter=delimiter)
