"""Registry of tabular parsers available to the upload pipeline."""

from __future__ import annotations

from typing import Optional

from app.services.ingestion.base_parser import (
    BaseTableParser,
    UnsupportedFormatError,
    select_parser,
)
from app.services.ingestion.csv_parser import CsvTableParser
from app.services.ingestion.xls_parser import XlsTableParser
from app.services.ingestion.xlsx_parser import XlsxTableParser

PARSERS: tuple[BaseTableParser, ...] = (
    CsvTableParser(),
    XlsxTableParser(),
    XlsTableParser(),
)


def get_parser(filename: str, content_type: Optional[str] = None) -> BaseTableParser:
    """Return the parser for an upload (raises ``UnsupportedFormatError``)."""
    return select_parser(PARSERS, filename, content_type)


def parser_for_type(file_type: str) -> BaseTableParser:
    """Return the parser registered for a stored ``FileBatch.file_type``."""
    for parser in PARSERS:
        if parser.file_type == file_type:
            return parser
    raise UnsupportedFormatError(f"No parser registered for file type {file_type!r}")
