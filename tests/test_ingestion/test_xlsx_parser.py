"""Tests for the XLSX payment file parser.

Workbooks are built in memory with openpyxl, with no fixtures on disk.
"""

from datetime import datetime

import pytest

from app.services.ingestion.base_parser import TableParseError
from app.services.ingestion.xlsx_parser import XlsxTableParser
from tests.helpers import build_xlsx


@pytest.fixture
def parser() -> XlsxTableParser:
    return XlsxTableParser()


class TestParseValidXlsx:
    def test_reads_first_sheet_only(self, parser: XlsxTableParser):
        content = build_xlsx(
            {
                "Payments": [["ACCOUNT NO", "AMOUNT"], ["ACC001", 150.5]],
                "Notes": [["ignored"], ["also ignored"]],
            }
        )
        table = parser.parse(content, "payments.xlsx")

        assert table.header == ["ACCOUNT NO", "AMOUNT"]
        rows = list(table.rows)
        assert len(rows) == 1
        assert rows[0].cells == ("ACC001", 150.5)

    def test_integral_floats_become_ints(self, parser: XlsxTableParser):
        content = build_xlsx(
            {"Sheet": [["ACCOUNT NO", "LAST PAYMENT DATE"], [12345.0, 20240115.0]]}
        )
        row = next(parser.parse(content, "numbers.xlsx").rows)
        assert row.cells == (12345, 20240115)
        assert all(isinstance(c, int) for c in row.cells)

    def test_datetimes_pass_through(self, parser: XlsxTableParser):
        when = datetime(2024, 1, 15)
        content = build_xlsx({"Sheet": [["ACCOUNT NO", "DATE"], ["A1", when]]})
        row = next(parser.parse(content, "dates.xlsx").rows)
        assert row.cells[1] == when

    def test_empty_rows_are_skipped(self, parser: XlsxTableParser):
        content = build_xlsx(
            {"Sheet": [["ACCOUNT NO"], [None], ["A1"], ["   "], ["A2"]]}
        )
        rows = list(parser.parse(content, "gaps.xlsx").rows)
        assert [r.cells[0] for r in rows] == ["A1", "A2"]
        assert [r.row_number for r in rows] == [3, 5]


class TestParseInvalidXlsx:
    def test_header_only_raises(self, parser: XlsxTableParser):
        content = build_xlsx({"Sheet": [["ACCOUNT NO", "AMOUNT"]]})
        with pytest.raises(TableParseError):
            parser.parse(content, "header_only.xlsx")

    def test_empty_sheet_raises(self, parser: XlsxTableParser):
        content = build_xlsx({"Sheet": []})
        with pytest.raises(TableParseError):
            parser.parse(content, "empty.xlsx")

    def test_corrupt_bytes_raise(self, parser: XlsxTableParser):
        with pytest.raises(TableParseError):
            parser.parse(b"this is not a zip archive", "broken.xlsx")
