"""Abstract base class and shared types for tabular payment file parsers."""

from __future__ import annotations

import itertools
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Iterable, Iterator, List, Optional

from app.core.logging import get_logger

logger = get_logger(__name__)


class TableParseError(ValueError):
    """The file cannot be turned into a header plus at least one data row."""


class UnsupportedFormatError(ValueError):
    """The declared file type has no parser."""


@dataclass(frozen=True)
class RawRow:
    """One data row as read from the file.

    Attributes:
        row_number: 1-based position in the source file (the header is row 1).
        cells: Cell values in column order.
    """

    row_number: int
    cells: tuple[Any, ...]


@dataclass
class ParsedTable:
    """Header row plus a lazy stream of data rows."""

    header: List[str]
    rows: Iterator[RawRow]


def is_blank(value: Any) -> bool:
    """True for cells that carry no data (None, empty or whitespace-only)."""
    if value is None:
        return True
    if isinstance(value, str):
        return value.strip() == ""
    return False


class BaseTableParser(ABC):
    """Base interface that every file-format parser must implement.

    Each parser is responsible for:
    1. Decoding raw upload bytes in its format (CSV, XLSX, ...)
    2. Returning the header row and a *stream* of data rows
    3. Skipping fully empty rows
    4. Raising ``TableParseError`` when there is no usable header + data
    """

    file_type: str
    extensions: tuple[str, ...] = ()
    content_types: tuple[str, ...] = ()

    @abstractmethod
    def iter_rows(self, file_content: bytes, filename: str) -> Iterator[tuple]:
        """Yield every row of the file (header included) as a tuple of cells."""

    def parse(self, file_content: bytes, filename: str) -> ParsedTable:
        """Parse file content into a header and a lazy row iterator.

        Args:
            file_content: Raw bytes of the uploaded file.
            filename: Original filename (used for log context).

        Returns:
            A ``ParsedTable``; its ``rows`` iterator is consumed once.

        Raises:
            TableParseError: Missing header, no data rows, or unreadable bytes.
        """
        non_empty = (
            (row_number, cells)
            for row_number, cells in enumerate(
                self.iter_rows(file_content, filename), start=1
            )
            if not all(is_blank(cell) for cell in cells)
        )

        header_entry = next(non_empty, None)
        first_data = next(non_empty, None)
        if header_entry is None or first_data is None:
            raise TableParseError(
                f"{filename} must contain a header row and at least one data row"
            )

        header = [self._header_text(cell) for cell in header_entry[1]]
        logger.info(
            "Parsed header for %s (%s): %d columns", filename, self.file_type, len(header)
        )

        def _rows() -> Iterator[RawRow]:
            for row_number, cells in itertools.chain([first_data], non_empty):
                yield RawRow(row_number=row_number, cells=tuple(cells))

        return ParsedTable(header=header, rows=_rows())

    def matches(self, filename: str, content_type: Optional[str]) -> bool:
        """True if this parser handles the given filename or MIME type."""
        lowered = (filename or "").lower()
        if any(lowered.endswith(ext) for ext in self.extensions):
            return True
        return bool(content_type) and content_type.split(";")[0].strip() in self.content_types

    @staticmethod
    def _header_text(cell: Any) -> str:
        return "" if cell is None else str(cell).strip()


def select_parser(
    parsers: Iterable[BaseTableParser],
    filename: str,
    content_type: Optional[str] = None,
) -> BaseTableParser:
    """Pick the parser for an upload, extension first, then MIME type.

    Raises:
        UnsupportedFormatError: If no parser claims the file.
    """
    parsers = list(parsers)
    lowered = (filename or "").lower()
    for parser in parsers:
        if any(lowered.endswith(ext) for ext in parser.extensions):
            return parser
    for parser in parsers:
        if parser.matches("", content_type):
            return parser
    supported = ", ".join(ext for p in parsers for ext in p.extensions)
    raise UnsupportedFormatError(
        f"Unsupported file format for {filename!r}. Supported: {supported}"
    )
