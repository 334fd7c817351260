"""Record normalization for payment file rows.

These functions provide a single place to handle the messy reality of
externally produced payment files: currency symbols in amounts,
parenthesized negatives, compact ``YYYYMMDD`` dates exported as numbers,
``Yes``/``1``/``T`` flags, and critical columns that are simply missing.

Normalization never raises.  Anything that cannot be interpreted turns
into a typed fallback (``Decimal("0")``, ``False``, or ``UNKNOWN``) plus a
warning on the record, so the validator decides what is fatal.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, Iterable, Iterator, List, Optional, Sequence

from app.core.logging import get_logger
from app.services.ingestion.base_parser import RawRow, is_blank
from app.services.ingestion.header_mapper import CanonicalField

logger = get_logger(__name__)


class _Unknown:
    """Sentinel for a critical value that is absent or unparseable.

    Falsy, renders as ``"N/A"``, and is a single shared instance so
    ``value is UNKNOWN`` is the check to use.
    """

    _instance: Optional["_Unknown"] = None

    def __new__(cls) -> "_Unknown":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    def __bool__(self) -> bool:
        return False

    def __str__(self) -> str:
        return "N/A"

    def __repr__(self) -> str:
        return "UNKNOWN"

    def __reduce__(self) -> str:
        return "UNKNOWN"


UNKNOWN = _Unknown()

CRITICAL_FIELDS: tuple[str, ...] = (
    CanonicalField.ACCOUNT_NO.value,
    CanonicalField.ACCOUNT_HOLDER_NAME.value,
    CanonicalField.ACCOUNT_STATUS.value,
    CanonicalField.OUTSTANDING_TOTAL_BALANCE.value,
    CanonicalField.LAST_PAYMENT_AMOUNT.value,
    CanonicalField.LAST_PAYMENT_DATE.value,
)

NUMERIC_FIELDS: frozenset[str] = frozenset(
    {
        CanonicalField.VALUATION.value,
        CanonicalField.OUTSTANDING_BALANCE_CAPITAL.value,
        CanonicalField.OUTSTANDING_BALANCE_INTEREST.value,
        CanonicalField.OUTSTANDING_TOTAL_BALANCE.value,
        CanonicalField.LAST_PAYMENT_AMOUNT.value,
        CanonicalField.AGREEMENT_OUTSTANDING.value,
        CanonicalField.HOUSING_OUTSTANDING.value,
    }
)

DATE_FIELDS: frozenset[str] = frozenset({CanonicalField.LAST_PAYMENT_DATE.value})

BOOLEAN_FIELDS: frozenset[str] = frozenset(
    {
        CanonicalField.INDIGENT.value,
        CanonicalField.PENSIONER.value,
        CanonicalField.HAND_OVER.value,
    }
)

_TRUE_TOKENS = frozenset({"yes", "true", "y", "1", "t"})

# Everything that is not a digit, sign, or decimal point: currency
# symbols and codes, thousands separators, spaces.
_AMOUNT_NOISE = re.compile(r"[^\d.\-]")
_COMPACT_DATE = re.compile(r"^\d{8}$")
_MIN_YEAR = 1900
_MAX_YEAR = 2100

# Date formats we accept, ordered from most specific to least
_DATE_FORMATS: list[str] = [
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%d/%m/%Y %H:%M:%S",
    "%d/%m/%Y",
    "%m/%d/%Y",
    "%d-%m-%Y",
    "%d.%m.%Y",
    "%d %b %Y",
    "%d %B %Y",
]


@dataclass
class PaymentRecord:
    """One normalized row of a payment file.

    Attributes:
        row_number: Source row (1-based, header is row 1).
        values: Canonical (or ``COLUMN_<n>``) field name -> typed value.
        raw: Original header text -> original cell value.
        warnings: Human-readable normalization warnings.
    """

    row_number: int
    values: Dict[str, Any] = field(default_factory=dict)
    raw: Dict[str, Any] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)

    def get(self, name: str | CanonicalField, default: Any = None) -> Any:
        key = name.value if isinstance(name, CanonicalField) else name
        return self.values.get(key, default)

    @property
    def account_number(self) -> Any:
        return self.values.get(CanonicalField.ACCOUNT_NO.value, UNKNOWN)

    @property
    def payment_amount(self) -> Any:
        return self.values.get(CanonicalField.LAST_PAYMENT_AMOUNT.value, UNKNOWN)

    @property
    def payment_date(self) -> Any:
        return self.values.get(CanonicalField.LAST_PAYMENT_DATE.value, UNKNOWN)


def normalize_amount(value: Any) -> Optional[Decimal]:
    """Parse a monetary cell into a ``Decimal``.

    ``"R 1,234.50"`` -> ``Decimal("1234.50")``, ``"(150.00)"`` ->
    ``Decimal("-150.00")``.

    Returns:
        The parsed amount, or None if the cell holds no usable number.
    """
    if isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return Decimal(value)
    if isinstance(value, float):
        return Decimal(str(value))

    text = str(value).strip()
    negative = text.startswith("(") and text.endswith(")")
    if negative:
        text = text[1:-1]
    cleaned = _AMOUNT_NOISE.sub("", text)
    if cleaned in ("", "-", ".", "-."):
        return None
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        return None
    if not amount.is_finite():
        return None
    return -abs(amount) if negative else amount


def _compact_date(text: str) -> Optional[date]:
    year, month, day = int(text[:4]), int(text[4:6]), int(text[6:8])
    if not _MIN_YEAR <= year <= _MAX_YEAR:
        return None
    try:
        return date(year, month, day)
    except ValueError:
        return None


def normalize_date(value: Any) -> Optional[date]:
    """Parse a date cell.

    Accepts ``date``/``datetime`` objects, compact ``YYYYMMDD`` (string or
    number, calendar-checked), and the formats in ``_DATE_FORMATS``.

    Returns:
        The parsed date, or None if nothing matched.
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, bool):
        return None

    text = str(value).strip()
    if _COMPACT_DATE.match(text):
        return _compact_date(text)

    for fmt in _DATE_FORMATS:
        try:
            parsed = datetime.strptime(text, fmt).date()
        except ValueError:
            continue
        if _MIN_YEAR <= parsed.year <= _MAX_YEAR:
            return parsed
    return None


def normalize_boolean(value: Any) -> bool:
    """``yes/true/y/1/t`` (any case) -> True; anything else -> False."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in _TRUE_TOKENS


def normalize_account_number(value: Any) -> str:
    """Strip whitespace and uppercase the account number.

    Account creation uses the same rule so lookups line up.
    """
    return str(value).strip().upper()


def format_payment_date(value: Any) -> str:
    """Render a payment date as ``YYYY/MM/DD`` for display, else ``"N/A"``."""
    if value is UNKNOWN or value is None:
        return "N/A"
    parsed = value if isinstance(value, date) else normalize_date(value)
    if parsed is None:
        return "N/A"
    if isinstance(parsed, datetime):
        parsed = parsed.date()
    return parsed.strftime("%Y/%m/%d")


def _normalize_value(name: str, value: Any, warnings: List[str]) -> Any:
    if name in BOOLEAN_FIELDS:
        return normalize_boolean(value)

    if is_blank(value):
        if name in CRITICAL_FIELDS:
            warnings.append(f"{name} is missing")
            return UNKNOWN
        if name in NUMERIC_FIELDS:
            return Decimal("0")
        return None

    if name in NUMERIC_FIELDS:
        amount = normalize_amount(value)
        if amount is None:
            warnings.append(f"{name} value {value!r} is not a number, using 0")
            return Decimal("0")
        return amount

    if name in DATE_FIELDS:
        parsed = normalize_date(value)
        if parsed is None:
            warnings.append(f"{name} value {value!r} is not a recognised date")
            return UNKNOWN
        return parsed

    if name == CanonicalField.ACCOUNT_NO.value:
        return normalize_account_number(value)

    if isinstance(value, str):
        return value.strip()
    if isinstance(value, (datetime, date, int, float, Decimal)):
        return str(value)
    return value


def normalize_record(
    row: RawRow,
    headers: Sequence[str],
    original_headers: Optional[Sequence[str]] = None,
) -> PaymentRecord:
    """Turn a raw row into a ``PaymentRecord`` keyed by mapped header names.

    Args:
        row: The raw row as produced by a parser.
        headers: Mapped field names in column order (see ``map_headers``).
        original_headers: Header text as it appeared in the file, used as
            the keys of ``record.raw``.  Defaults to ``headers``.

    Returns:
        The normalized record.  Never raises.
    """
    mapped = headers
    original = original_headers if original_headers is not None else headers
    record = PaymentRecord(row_number=row.row_number)
    collected: Dict[str, Any] = {}

    for position, name in enumerate(mapped):
        cell = row.cells[position] if position < len(row.cells) else None
        label = original[position] if position < len(original) else name
        record.raw.setdefault(label or name, cell)
        # First non-blank value wins when two columns map to the same field.
        if name not in collected or (is_blank(collected[name]) and not is_blank(cell)):
            collected[name] = cell

    for name in CRITICAL_FIELDS:
        collected.setdefault(name, None)

    for name, cell in collected.items():
        record.values[name] = _normalize_value(name, cell, record.warnings)

    if record.warnings:
        logger.debug("Row %d normalized with %d warnings", row.row_number, len(record.warnings))
    return record


def normalize_rows(
    rows: Iterable[RawRow], headers: Sequence[str], original_headers: Sequence[str]
) -> Iterator[PaymentRecord]:
    """Lazily normalize a stream of raw rows."""
    for row in rows:
        yield normalize_record(row, headers, original_headers)
