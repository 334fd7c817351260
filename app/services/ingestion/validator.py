"""Record validation: split normalized records into valid and invalid sets."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, List

from app.core.logging import get_logger
from app.services.ingestion.header_mapper import CanonicalField
from app.services.ingestion.normalizer import UNKNOWN, PaymentRecord

logger = get_logger(__name__)

_EMAIL_PATTERN = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
_CELL_PATTERN = re.compile(r"^\+?[\d\s-]{10,15}$")


@dataclass(frozen=True)
class ValidationIssue:
    """An error or warning tied to one source row."""

    row_number: int
    field: str
    message: str

    def __str__(self) -> str:
        return f"Row {self.row_number}: {self.message}"


@dataclass
class ValidationResult:
    """Outcome of validating a file's records.

    ``valid_records`` and ``invalid_records`` partition the input: every
    record lands in exactly one of them, in input order.
    """

    valid_records: List[PaymentRecord] = field(default_factory=list)
    invalid_records: List[PaymentRecord] = field(default_factory=list)
    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.valid_records) + len(self.invalid_records)

    @property
    def is_valid(self) -> bool:
        return not self.invalid_records


def _contact_warnings(record: PaymentRecord) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []

    email = record.get(CanonicalField.EMAIL_ADDRESS)
    if email and not _EMAIL_PATTERN.match(str(email)):
        issues.append(
            ValidationIssue(
                record.row_number,
                CanonicalField.EMAIL_ADDRESS.value,
                f"Invalid email format: {email}",
            )
        )

    cell = record.get(CanonicalField.CELL_NUMBER)
    if cell and not _CELL_PATTERN.match(str(cell)):
        issues.append(
            ValidationIssue(
                record.row_number,
                CanonicalField.CELL_NUMBER.value,
                f"Invalid cell number format: {cell}",
            )
        )
    return issues


def validate_record(record: PaymentRecord) -> tuple[List[ValidationIssue], List[ValidationIssue]]:
    """Return ``(errors, warnings)`` for a single record."""
    errors: List[ValidationIssue] = []
    warnings = [
        ValidationIssue(record.row_number, "", message) for message in record.warnings
    ]

    if record.account_number is UNKNOWN or not record.account_number:
        errors.append(
            ValidationIssue(
                record.row_number,
                CanonicalField.ACCOUNT_NO.value,
                "Account number is required",
            )
        )

    warnings.extend(_contact_warnings(record))
    return errors, warnings


def validate_records(records: Iterable[PaymentRecord]) -> ValidationResult:
    """Partition records by the required-field rule.

    A record is invalid only when its account number is missing.  Bad
    contact details and normalization fallbacks are reported as warnings
    and never reject a record.
    """
    result = ValidationResult()
    for record in records:
        errors, warnings = validate_record(record)
        result.warnings.extend(warnings)
        if errors:
            result.errors.extend(errors)
            result.invalid_records.append(record)
        else:
            result.valid_records.append(record)

    logger.info(
        "Validated %d records: %d valid, %d invalid, %d warnings",
        result.total,
        len(result.valid_records),
        len(result.invalid_records),
        len(result.warnings),
    )
    return result
