"""Downloadable CSV template for payment file producers."""

from __future__ import annotations

import csv
import io

from app.services.ingestion.header_mapper import CanonicalField

TEMPLATE_FILENAME = "payment_upload_template.csv"

TEMPLATE_HEADERS: tuple[str, ...] = tuple(f.display_name for f in CanonicalField)

_EXAMPLE_ROW: dict[CanonicalField, str] = {
    CanonicalField.ACCOUNT_NO: "ACC001",
    CanonicalField.ACCOUNT_HOLDER_NAME: "John Doe",
    CanonicalField.ERF_NUMBER: "ERF123",
    CanonicalField.VALUATION: "500000",
    CanonicalField.VAT_REG_NUMBER: "VAT123456789",
    CanonicalField.COMPANY_CC_NUMBER: "CC123456789",
    CanonicalField.POSTAL_ADDRESS_1: "123 Main Street",
    CanonicalField.POSTAL_ADDRESS_2: "Suburb Name",
    CanonicalField.POSTAL_ADDRESS_3: "City Name",
    CanonicalField.POSTAL_CODE: "1234",
    CanonicalField.ID_NUMBER: "1234567890123",
    CanonicalField.EMAIL_ADDRESS: "john.doe@email.com",
    CanonicalField.CELL_NUMBER: "0821234567",
    CanonicalField.ACCOUNT_STATUS: "ACTIVE",
    CanonicalField.OCC_OWN: "OWN",
    CanonicalField.ACCOUNT_TYPE: "RESIDENTIAL",
    CanonicalField.OWNER_CATEGORY: "INDIVIDUAL",
    CanonicalField.GROUP_ACCOUNT: "NO",
    CanonicalField.CREDIT_INSTRUCITON: "STANDARD",
    CanonicalField.CREDIT_STATUS: "GOOD",
    CanonicalField.MAILING_INSTRUCTION: "POST",
    CanonicalField.STREET_ADDRESS: "123 Main Street",
    CanonicalField.TOWN: "Mahikeng",
    CanonicalField.SUBURB: "Central",
    CanonicalField.WARD: "Ward 1",
    CanonicalField.PROPERTY_CATEGORY: "RESIDENTIAL",
    CanonicalField.GIS_KEY: "GIS123",
    CanonicalField.INDIGENT: "NO",
    CanonicalField.PENSIONER: "NO",
    CanonicalField.HAND_OVER: "NO",
    CanonicalField.OUTSTANDING_BALANCE_CAPITAL: "10000.00",
    CanonicalField.OUTSTANDING_BALANCE_INTEREST: "500.00",
    CanonicalField.OUTSTANDING_TOTAL_BALANCE: "10500.00",
    CanonicalField.LAST_PAYMENT_AMOUNT: "1000.00",
    CanonicalField.LAST_PAYMENT_DATE: "20240115",
    CanonicalField.AGREEMENT_OUTSTANDING: "0.00",
    CanonicalField.AGREEMENT_TYPE: "NONE",
    CanonicalField.HOUSING_OUTSTANDING: "0.00",
}


def build_template_csv() -> str:
    """Header row of every canonical column plus one filled-in example."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(TEMPLATE_HEADERS)
    writer.writerow(_EXAMPLE_ROW.get(f, "") for f in CanonicalField)
    return buffer.getvalue()
