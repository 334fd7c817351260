"""Tests for the legacy XLS payment file parser.

Workbooks are written in memory with xlwt.
"""

from datetime import datetime

import pytest

from app.services.ingestion.base_parser import TableParseError
from app.services.ingestion.registry import get_parser
from app.services.ingestion.xls_parser import XlsTableParser
from tests.helpers import build_xls


@pytest.fixture
def parser() -> XlsTableParser:
    return XlsTableParser()


class TestParseValidXls:
    def test_reads_first_sheet_only(self, parser: XlsTableParser):
        content = build_xls(
            {
                "Payments": [["ACCOUNT NO", "AMOUNT"], ["ACC001", 150.5]],
                "Notes": [["ignored"], ["also ignored"]],
            }
        )
        table = parser.parse(content, "payments.xls")

        assert table.header == ["ACCOUNT NO", "AMOUNT"]
        rows = list(table.rows)
        assert len(rows) == 1
        assert rows[0].cells == ("ACC001", 150.5)

    def test_integral_numbers_become_ints(self, parser: XlsTableParser):
        content = build_xls(
            {"Sheet": [["ACCOUNT NO", "LAST PAYMENT DATE"], [12345, 20240115]]}
        )
        row = next(parser.parse(content, "numbers.xls").rows)
        assert row.cells == (12345, 20240115)

    def test_date_cells_become_datetimes(self, parser: XlsTableParser):
        content = build_xls(
            {"Sheet": [["ACCOUNT NO", "LAST PAYMENT DATE"], ["ACC1", datetime(2024, 1, 15)]]}
        )
        row = next(parser.parse(content, "dates.xls").rows)
        assert row.cells[1] == datetime(2024, 1, 15)

    def test_empty_rows_are_skipped(self, parser: XlsTableParser):
        content = build_xls(
            {"Sheet": [["ACCOUNT NO", "AMOUNT"], [None, None], ["ACC001", 5]]}
        )
        rows = list(parser.parse(content, "gaps.xls").rows)
        assert [r.row_number for r in rows] == [3]
        assert rows[0].cells == ("ACC001", 5)


class TestParseInvalidXls:
    def test_header_only_raises(self, parser: XlsTableParser):
        content = build_xls({"Sheet": [["ACCOUNT NO", "AMOUNT"]]})
        with pytest.raises(TableParseError):
            parser.parse(content, "header_only.xls")

    def test_corrupt_bytes_raise(self, parser: XlsTableParser):
        with pytest.raises(TableParseError):
            parser.parse(b"\xd0\xcf\x11\xe0 not really a workbook", "broken.xls")


class TestSelection:
    def test_xls_extension_selects_xls_parser(self):
        assert get_parser("legacy.xls").file_type == "xls"

    def test_xlsx_extension_is_not_taken_for_xls(self):
        assert get_parser("modern.xlsx").file_type == "xlsx"

    def test_ms_excel_mime_type(self):
        assert get_parser("upload", "application/vnd.ms-excel").file_type == "xls"
