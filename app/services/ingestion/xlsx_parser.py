"""Spreadsheet (XLSX) payment file parser."""

from __future__ import annotations

import io
import zipfile
from typing import Any, Iterator

import openpyxl
from openpyxl.utils.exceptions import InvalidFileException

from app.core.logging import get_logger
from app.services.ingestion.base_parser import BaseTableParser, TableParseError

logger = get_logger(__name__)


def _cell_value(value: Any) -> Any:
    """Normalize an openpyxl cell value.

    Integral floats (Excel stores every number as a float) become ints so
    that account numbers and compact dates like 20240115 survive as text.
    """
    if isinstance(value, float) and value.is_integer():
        return int(value)
    if isinstance(value, str):
        return value.strip()
    return value


class XlsxTableParser(BaseTableParser):
    """Parser for Excel workbooks.

    Always reads the first worksheet.  The workbook is opened in
    read-only mode so rows are streamed from the archive instead of
    materialising the whole sheet.
    """

    file_type: str = "xlsx"
    extensions = (".xlsx", ".xlsm")
    content_types = (
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        "application/vnd.ms-excel.sheet.macroenabled.12",
    )

    def iter_rows(self, file_content: bytes, filename: str) -> Iterator[tuple]:
        try:
            wb = openpyxl.load_workbook(
                io.BytesIO(file_content), read_only=True, data_only=True
            )
        except (InvalidFileException, zipfile.BadZipFile, KeyError, OSError) as exc:
            raise TableParseError(f"Cannot open {filename} as a workbook: {exc}") from exc

        try:
            if not wb.worksheets:
                raise TableParseError(f"No sheets found in {filename}")

            sheet = wb.worksheets[0]
            if len(wb.worksheets) > 1:
                logger.info(
                    "%s has %d sheets, reading only %r",
                    filename,
                    len(wb.worksheets),
                    sheet.title,
                )

            for row in sheet.iter_rows(values_only=True):
                yield tuple(_cell_value(v) for v in row)
        finally:
            wb.close()
