"""
voucher_ingestion.domain.types -- Pure frozen dataclasses for batch rows.

ZERO I/O.
"""

from __future__ import annotations

from dataclasses import dataclass

from voucher_kernel.domain.types import IdType

# Column order of the batch file
BATCH_COLUMNS: tuple[str, ...] = (
    "name",
    "mobileNumber",
    "idType",
    "govtIdNumber",
    "empId",
)

MAX_FIELD_LENGTH = 40


@dataclass(frozen=True)
class RawRow:
    """One data row as read from the batch file."""

    row_number: int  # Line number in the source file (1-indexed)
    fields: tuple[str, ...]


@dataclass(frozen=True)
class RecipientRow:
    """A validated, normalized recipient row."""

    name: str
    mobile_number: str  # 10 digits, country prefix removed
    id_type: IdType
    govt_id_number: str
    emp_id: str
    row_number: int | None = None
