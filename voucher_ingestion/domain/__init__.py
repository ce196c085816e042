"""
voucher_ingestion.domain -- Pure row types and validators.

ZERO I/O.
"""

from voucher_ingestion.domain.types import (
    BATCH_COLUMNS,
    MAX_FIELD_LENGTH,
    RawRow,
    RecipientRow,
)
from voucher_ingestion.domain.validators import (
    check_length,
    clean_mobile_number,
    clean_name,
    is_header_row,
    parse_id_type,
    validate_row,
    validate_rows,
)

__all__ = [
    "BATCH_COLUMNS",
    "MAX_FIELD_LENGTH",
    "RawRow",
    "RecipientRow",
    "check_length",
    "clean_mobile_number",
    "clean_name",
    "is_header_row",
    "parse_id_type",
    "validate_row",
    "validate_rows",
]
