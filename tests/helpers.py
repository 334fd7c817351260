"""Builders shared by the test modules."""

from __future__ import annotations

import csv
import io
from datetime import date, datetime

import openpyxl
import xlwt

from app.core.config import Settings

TEST_DATABASE_URL = "sqlite:///./test.db"


class RecordingNotifier:
    """Notifier that keeps every published event for assertions."""

    def __init__(self) -> None:
        self.events = []

    def publish(self, event) -> None:
        self.events.append(event)

    def types(self) -> list[str]:
        return [e.activity_type for e in self.events]


def make_config(**overrides) -> Settings:
    """Settings with test defaults; only the fields under test are overridden."""
    defaults = {"database_url": TEST_DATABASE_URL}
    defaults.update(overrides)
    return Settings(**defaults)


def build_csv(header: list[str], rows: list[list[object]], delimiter: str = ",") -> bytes:
    buffer = io.StringIO()
    writer = csv.writer(buffer, delimiter=delimiter, lineterminator="\n")
    writer.writerow(header)
    writer.writerows(rows)
    return buffer.getvalue().encode("utf-8")


def build_xlsx(sheets: dict[str, list[list[object]]]) -> bytes:
    """Workbook with one worksheet per entry, in insertion order."""
    wb = openpyxl.Workbook()
    wb.remove(wb.active)
    for title, rows in sheets.items():
        ws = wb.create_sheet(title)
        for row in rows:
            ws.append(row)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()


def build_xls(sheets: dict[str, list[list[object]]]) -> bytes:
    """Legacy (BIFF) workbook with one worksheet per entry.

    ``None`` cells are left unwritten; datetimes get a date format so
    readers see them as date cells.
    """
    wb = xlwt.Workbook()
    date_style = xlwt.easyxf(num_format_str="YYYY-MM-DD")
    for title, rows in sheets.items():
        ws = wb.add_sheet(title)
        for r, row in enumerate(rows):
            for c, value in enumerate(row):
                if value is None:
                    continue
                if isinstance(value, (datetime, date)):
                    ws.write(r, c, value, date_style)
                else:
                    ws.write(r, c, value)
    buffer = io.BytesIO()
    wb.save(buffer)
    return buffer.getvalue()
