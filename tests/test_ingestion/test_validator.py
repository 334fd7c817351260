"""Unit tests for record validation."""

from app.services.ingestion.base_parser import RawRow
from app.services.ingestion.header_mapper import map_headers
from app.services.ingestion.normalizer import normalize_record
from app.services.ingestion.validator import validate_records

HEADER = ["ACCOUNT NO", "EMAIL ADDRESS", "CELL NUMBER", "LAST PAYMENT AMOUNT"]


def _records(rows):
    mapped = map_headers(HEADER)
    return [
        normalize_record(RawRow(i, tuple(cells)), mapped, HEADER)
        for i, cells in enumerate(rows, start=2)
    ]


class TestValidateRecords:
    def test_missing_account_number_is_the_only_error(self):
        result = validate_records(
            _records(
                [
                    ["ACC001", "a@b.co", "0821234567", "10"],
                    ["", "a@b.co", "0821234567", "10"],
                    ["ACC003", "not-an-email", "12", "10"],
                ]
            )
        )

        assert [r.row_number for r in result.valid_records] == [2, 4]
        assert [r.row_number for r in result.invalid_records] == [3]
        assert len(result.errors) == 1
        assert result.errors[0].field == "ACCOUNT_NO"
        assert str(result.errors[0]).startswith("Row 3:")

    def test_contact_problems_are_warnings(self):
        result = validate_records(_records([["ACC001", "bad@", "abc", "10"]]))

        assert result.is_valid
        fields = {w.field for w in result.warnings}
        assert {"EMAIL_ADDRESS", "CELL_NUMBER"} <= fields

    def test_international_cell_number_is_accepted(self):
        result = validate_records(_records([["ACC001", "", "+27 82 123 4567", "10"]]))
        assert not any(w.field == "CELL_NUMBER" for w in result.warnings)

    def test_normalization_warnings_are_carried_for_every_record(self):
        result = validate_records(
            _records([["ACC001", "", "", "lots"], ["", "", "", "also bad"]])
        )
        rows_with_warnings = {w.row_number for w in result.warnings}
        assert rows_with_warnings == {2, 3}

    def test_partition_is_complete(self):
        rows = [[f"ACC{i:03d}" if i % 3 else "", "", "", "1"] for i in range(30)]
        result = validate_records(_records(rows))

        assert result.total == 30
        valid_ids = {id(r) for r in result.valid_records}
        invalid_ids = {id(r) for r in result.invalid_records}
        assert not valid_ids & invalid_ids

    def test_empty_input(self):
        result = validate_records([])
        assert result.total == 0
        assert result.is_valid
