"""Delimited-text (CSV) payment file parser."""

from __future__ import annotations

import csv
import io
from typing import Iterator

from app.core.logging import get_logger
from app.services.ingestion.base_parser import BaseTableParser, TableParseError

logger = get_logger(__name__)

_CANDIDATE_DELIMITERS = ",;\t|"
# latin-1 maps every byte, so detection always ends with a usable codec.
_ENCODINGS = ("utf-8-sig", "cp1252", "latin-1")
_SNIFF_BYTES = 8192


class CsvTableParser(BaseTableParser):
    """Parser for comma/semicolon/tab/pipe separated payment files.

    The delimiter is sniffed from the first few KB; rows are read
    through a text stream so the whole file is never split into one
    in-memory list.
    """

    file_type: str = "csv"
    extensions = (".csv", ".txt")
    content_types = ("text/csv", "text/plain", "application/csv")

    def iter_rows(self, file_content: bytes, filename: str) -> Iterator[tuple]:
        encoding = self._detect_encoding(file_content)
        sample = file_content[:_SNIFF_BYTES].decode(encoding, errors="ignore")
        delimiter = self._sniff_delimiter(sample)
        logger.debug(
            "CSV %s: encoding=%s delimiter=%r", filename, encoding, delimiter
        )

        stream = io.TextIOWrapper(io.BytesIO(file_content), encoding=encoding, newline="")
        reader = csv.reader(stream, delimiter=delimiter)
        try:
            for cells in reader:
                yield tuple(cells)
        except csv.Error as exc:
            raise TableParseError(
                f"CSV parsing error at line {reader.line_num} in {filename}: {exc}"
            ) from exc
        except UnicodeDecodeError as exc:
            raise TableParseError(
                f"Cannot decode {filename} as {encoding}: {exc}"
            ) from exc
        finally:
            stream.close()

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _detect_encoding(file_content: bytes) -> str:
        """First of UTF-8 (BOM tolerant), cp1252, latin-1 that decodes the bytes."""
        for encoding in _ENCODINGS[:-1]:
            try:
                file_content.decode(encoding)
            except UnicodeDecodeError:
                continue
            return encoding
        return _ENCODINGS[-1]

    @staticmethod
    def _sniff_delimiter(sample: str) -> str:
        try:
            return csv.Sniffer().sniff(sample, delimiters=_CANDIDATE_DELIMITERS).delimiter
        except csv.Error:
            return ","
