"""Legacy Excel (XLS, BIFF) payment file parser."""

from __future__ import annotations

from typing import Any, Iterator

import xlrd
from xlrd.compdoc import CompDocError

from app.core.logging import get_logger
from app.services.ingestion.base_parser import BaseTableParser, TableParseError

logger = get_logger(__name__)

_EMPTY_TYPES = (xlrd.XL_CELL_EMPTY, xlrd.XL_CELL_BLANK)


def _cell_value(cell: xlrd.sheet.Cell, datemode: int) -> Any:
    """Convert an xlrd cell to the same Python values the XLSX parser yields."""
    if cell.ctype in _EMPTY_TYPES:
        return None
    if cell.ctype == xlrd.XL_CELL_DATE:
        return xlrd.xldate.xldate_as_datetime(cell.value, datemode)
    if cell.ctype == xlrd.XL_CELL_BOOLEAN:
        return bool(cell.value)
    if cell.ctype == xlrd.XL_CELL_NUMBER and float(cell.value).is_integer():
        return int(cell.value)
    if isinstance(cell.value, str):
        return cell.value.strip()
    return cell.value


class XlsTableParser(BaseTableParser):
    """Parser for Excel 97-2003 workbooks.

    Same contract as the XLSX parser: first worksheet only, integral
    numbers as ints, date cells as ``datetime``.
    """

    file_type: str = "xls"
    extensions = (".xls",)
    content_types = ("application/vnd.ms-excel",)

    def iter_rows(self, file_content: bytes, filename: str) -> Iterator[tuple]:
        try:
            book = xlrd.open_workbook(file_contents=file_content, on_demand=True)
        except (xlrd.XLRDError, CompDocError, ValueError, IndexError) as exc:
            raise TableParseError(f"Cannot open {filename} as a workbook: {exc}") from exc

        try:
            if book.nsheets == 0:
                raise TableParseError(f"No sheets found in {filename}")
            if book.nsheets > 1:
                logger.info(
                    "%s has %d sheets, reading only %r",
                    filename,
                    book.nsheets,
                    book.sheet_names()[0],
                )

            sheet = book.sheet_by_index(0)
            for index in range(sheet.nrows):
                yield tuple(_cell_value(c, book.datemode) for c in sheet.row(index))
        finally:
            book.release_resources()
