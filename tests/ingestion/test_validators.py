"""
Tests for voucher_ingestion.domain.validators and the CSV adapter.

Validation is pure: same row in, same result out, regardless of where the
row sits in the batch.
"""

import pytest

from voucher_kernel.domain.types import IdType
from voucher_kernel.exceptions import (
    EmptyFieldError,
    FieldTooLongError,
    InvalidMobileError,
    MalformedRowError,
    RowValidationError,
    UnknownIdTypeError,
)

from voucher_ingestion.adapters.csv_adapter import parse_batch, read_rows
from voucher_ingestion.domain.types import RawRow
from voucher_ingestion.domain.validators import (
    clean_mobile_number,
    clean_name,
    is_header_row,
    parse_id_type,
    validate_row,
    validate_rows,
)


VALID = ("Alice", "9876543210", "AADHAAR", "1234-5678-9012", "E001")


# ---------------------------------------------------------------------------
# Field cleaners
# ---------------------------------------------------------------------------


class TestCleanName:

    def test_strips_disallowed_characters(self):
        assert clean_name("Al!ce@ #Smith") == "Alce Smith"

    def test_collapses_whitespace(self):
        assert clean_name("  Mary   Jane  ") == "Mary Jane"

    def test_keeps_apostrophe_hyphen_and_dot(self):
        assert clean_name("D'Souza-Rao Jr.") == "D'Souza-Rao Jr."

    def test_only_symbols_cleans_to_empty(self):
        assert clean_name("$$$") == ""


class TestCleanMobileNumber:

    @pytest.mark.parametrize("raw", [
        "9876543210",
        "+919876543210",
        "+91 98765 43210",
        "919876543210",
        "09876543210",
        "98765-43210",
        "(987) 654-3210",
    ])
    def test_accepted_forms_normalize_to_ten_digits(self, raw):
        assert clean_mobile_number(raw) == "9876543210"

    @pytest.mark.parametrize("raw", [
        "",
        "12345",
        "5876543210",  # Must start 6-9
        "98765432101",  # 11 digits without trunk zero
        "+449876543210",  # Foreign country code
        "98765abcde",
    ])
    def test_rejected(self, raw):
        with pytest.raises(InvalidMobileError) as exc_info:
            clean_mobile_number(raw)
        assert exc_info.value.field == "mobile_number"


class TestParseIdType:

    def test_case_insensitive(self):
        assert parse_id_type("aadhaar") is IdType.AADHAAR
        assert parse_id_type(" Pan ") is IdType.PAN

    def test_separators_map_to_underscore(self):
        assert parse_id_type("driving license") is IdType.DRIVING_LICENSE
        assert parse_id_type("voter-id") is IdType.VOTER_ID

    def test_unknown_lists_allowed_values(self):
        with pytest.raises(UnknownIdTypeError) as exc_info:
            parse_id_type("SSN")
        assert "PASSPORT" in exc_info.value.allowed
        assert exc_info.value.code == "UNKNOWN_ID_TYPE"


# ---------------------------------------------------------------------------
# Row validation
# ---------------------------------------------------------------------------


class TestValidateRow:

    def test_valid_row(self):
        row = validate_row(VALID, row_number=2)
        assert row.name == "Alice"
        assert row.mobile_number == "9876543210"
        assert row.id_type is IdType.AADHAAR
        assert row.govt_id_number == "1234-5678-9012"
        assert row.emp_id == "E001"
        assert row.row_number == 2

    def test_wrong_field_count(self):
        with pytest.raises(MalformedRowError) as exc_info:
            validate_row(VALID[:4], row_number=3)
        assert exc_info.value.row_number == 3
        assert exc_info.value.expected == 5
        assert exc_info.value.actual == 4

    def test_empty_name(self):
        with pytest.raises(EmptyFieldError) as exc_info:
            validate_row(("  ", *VALID[1:]))
        assert exc_info.value.field == "name"

    def test_name_too_long(self):
        with pytest.raises(FieldTooLongError) as exc_info:
            validate_row(("A" * 41, *VALID[1:]))
        assert exc_info.value.max_length == 40

    def test_name_at_limit(self):
        assert validate_row(("A" * 40, *VALID[1:])).name == "A" * 40

    def test_govt_id_too_long(self):
        fields = (*VALID[:3], "X" * 41, VALID[4])
        with pytest.raises(FieldTooLongError) as exc_info:
            validate_row(fields)
        assert exc_info.value.field == "govt_id_number"

    def test_emp_id_too_long(self):
        with pytest.raises(FieldTooLongError) as exc_info:
            validate_row((*VALID[:4], "E" * 41))
        assert exc_info.value.field == "emp_id"

    def test_first_failing_rule_wins(self):
        """Bad mobile AND bad id type: the mobile error is reported."""
        with pytest.raises(InvalidMobileError):
            validate_row(("Alice", "123", "SSN", "X", "E1"))

    def test_error_message_carries_row_context(self):
        with pytest.raises(RowValidationError) as exc_info:
            validate_row(("Alice", "123", "PAN", "X", "E1"), row_number=7)
        err = exc_info.value
        assert str(err).startswith("Row 7:")
        assert err.raw_row == ("Alice", "123", "PAN", "X", "E1")

    def test_result_independent_of_position(self):
        assert validate_row(VALID, 2).name == validate_row(VALID, 99).name


class TestValidateRows:

    def test_first_invalid_row_aborts(self):
        rows = [
            RawRow(row_number=2, fields=VALID),
            RawRow(row_number=3, fields=("Bob", "bad", "PAN", "X", "E2")),
            RawRow(row_number=4, fields=("", "bad", "PAN", "X", "E3")),
        ]
        with pytest.raises(InvalidMobileError) as exc_info:
            validate_rows(rows)
        assert exc_info.value.row_number == 3

    def test_all_valid(self):
        rows = [RawRow(row_number=i, fields=VALID) for i in (2, 3)]
        assert len(validate_rows(rows)) == 2


# ---------------------------------------------------------------------------
# CSV adapter
# ---------------------------------------------------------------------------


class TestCsvAdapter:

    def test_header_detected(self):
        assert is_header_row(["name", "mobileNumber", "idType", "govtIdNumber", "empId"])
        assert is_header_row(["Name", "mobile_number", "ID Type", "govt_id_number", "EMPID"])
        assert not is_header_row(list(VALID))

    def test_header_skipped_and_row_numbers_are_file_lines(self):
        rows = read_rows([
            "name,mobileNumber,idType,govtIdNumber,empId",
            "Alice,9876543210,AADHAAR,1,E1",
            "",
            "Bob,9123456780,PAN,2,E2",
        ])
        assert [r.row_number for r in rows] == [2, 4]
        assert rows[0].fields[0] == "Alice"

    def test_headerless_batch(self):
        rows = read_rows(["Alice,9876543210,AADHAAR,1,E1"])
        assert len(rows) == 1
        assert rows[0].row_number == 1

    def test_quoted_field_with_comma(self):
        rows = read_rows(['"Smith, Jane",9876543210,PAN,1,E1'])
        assert rows[0].fields[0] == "Smith, Jane"

    def test_bom_and_crlf_tolerated(self):
        data = "\ufeffname,mobileNumber,idType,govtIdNumber,empId\r\nAlice,9876543210,PAN,1,E1\r\n"
        rows = parse_batch(data.encode("utf-8"))
        assert len(rows) == 1
        assert rows[0].fields[-1] == "E1"
