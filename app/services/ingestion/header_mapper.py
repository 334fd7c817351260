"""Header normalization: arbitrary column spellings -> canonical field names.

Producers of payment files label their columns however they like
("Acc No", "ACCOUNT NUMBER", "account"), so every header is squashed to
an upper-case underscore key and looked up in a static alias table.
Headers we do not recognise keep their data under a positional name
(``COLUMN_<n>``) instead of being dropped.
"""

from __future__ import annotations

import re
from enum import Enum
from types import MappingProxyType
from typing import Any, Iterable, List, Mapping

_SEPARATORS = re.compile(r"[\W_]+", re.UNICODE)


class CanonicalField(str, Enum):
    """The canonical columns of a payment file, in template order."""

    ACCOUNT_NO = "ACCOUNT_NO"
    ACCOUNT_HOLDER_NAME = "ACCOUNT_HOLDER_NAME"
    ERF_NUMBER = "ERF_NUMBER"
    VALUATION = "VALUATION"
    VAT_REG_NUMBER = "VAT_REG_NUMBER"
    COMPANY_CC_NUMBER = "COMPANY_CC_NUMBER"
    POSTAL_ADDRESS_1 = "POSTAL_ADDRESS_1"
    POSTAL_ADDRESS_2 = "POSTAL_ADDRESS_2"
    POSTAL_ADDRESS_3 = "POSTAL_ADDRESS_3"
    POSTAL_CODE = "POSTAL_CODE"
    ID_NUMBER = "ID_NUMBER"
    EMAIL_ADDRESS = "EMAIL_ADDRESS"
    CELL_NUMBER = "CELL_NUMBER"
    ACCOUNT_STATUS = "ACCOUNT_STATUS"
    OCC_OWN = "OCC_OWN"
    ACCOUNT_TYPE = "ACCOUNT_TYPE"
    OWNER_CATEGORY = "OWNER_CATEGORY"
    GROUP_ACCOUNT = "GROUP_ACCOUNT"
    # Misspelled in the municipal export format; producers still send it.
    CREDIT_INSTRUCITON = "CREDIT_INSTRUCITON"
    CREDIT_STATUS = "CREDIT_STATUS"
    MAILING_INSTRUCTION = "MAILING_INSTRUCTION"
    STREET_ADDRESS = "STREET_ADDRESS"
    TOWN = "TOWN"
    SUBURB = "SUBURB"
    WARD = "WARD"
    PROPERTY_CATEGORY = "PROPERTY_CATEGORY"
    GIS_KEY = "GIS_KEY"
    INDIGENT = "INDIGENT"
    PENSIONER = "PENSIONER"
    HAND_OVER = "HAND_OVER"
    OUTSTANDING_BALANCE_CAPITAL = "OUTSTANDING_BALANCE_CAPITAL"
    OUTSTANDING_BALANCE_INTEREST = "OUTSTANDING_BALANCE_INTEREST"
    OUTSTANDING_TOTAL_BALANCE = "OUTSTANDING_TOTAL_BALANCE"
    LAST_PAYMENT_AMOUNT = "LAST_PAYMENT_AMOUNT"
    LAST_PAYMENT_DATE = "LAST_PAYMENT_DATE"
    AGREEMENT_OUTSTANDING = "AGREEMENT_OUTSTANDING"
    AGREEMENT_TYPE = "AGREEMENT_TYPE"
    HOUSING_OUTSTANDING = "HOUSING_OUTSTANDING"

    @property
    def display_name(self) -> str:
        """Header text used in the upload template ("OCC/OWN", "ACCOUNT NO")."""
        if self is CanonicalField.OCC_OWN:
            return "OCC/OWN"
        return self.value.replace("_", " ")


# Extra spellings seen in the wild; every canonical name also maps to itself.
_ALIASES: dict[CanonicalField, tuple[str, ...]] = {
    CanonicalField.ACCOUNT_NO: (
        "ACCOUNT_NUMBER", "ACC_NO", "ACC_NUMBER", "ACCOUNT", "ACCT_NO",
        "ACCOUNT_NUM", "ACC_NUM",
    ),
    CanonicalField.ACCOUNT_HOLDER_NAME: (
        "ACCOUNT_HOLDER", "HOLDER_NAME", "CUSTOMER_NAME", "NAME", "DEBTOR_NAME",
    ),
    CanonicalField.ACCOUNT_STATUS: ("STATUS", "ACC_STATUS"),
    CanonicalField.OCC_OWN: (
        "OCCUPANCY_OWN", "OCCUPANCY_OWNERSHIP", "OCCUPIER_OWNER",
    ),
    CanonicalField.INDIGENT: ("IS_INDIGENT", "INDIGENT_STATUS"),
    CanonicalField.PENSIONER: ("IS_PENSIONER",),
    CanonicalField.HAND_OVER: ("HANDOVER", "HANDED_OVER"),
    CanonicalField.OUTSTANDING_TOTAL_BALANCE: (
        "OUTSTANDING_BALANCE", "TOTAL_BALANCE", "BALANCE", "TOTAL_OUTSTANDING",
    ),
    CanonicalField.LAST_PAYMENT_AMOUNT: (
        "PAYMENT_AMOUNT", "LAST_AMOUNT", "AMOUNT_PAID", "LAST_PAYMENT",
    ),
    CanonicalField.LAST_PAYMENT_DATE: (
        "PAYMENT_DATE", "DATE_PAID", "LAST_DATE",
    ),
    CanonicalField.CREDIT_INSTRUCITON: ("CREDIT_INSTRUCTION",),
    CanonicalField.EMAIL_ADDRESS: ("EMAIL", "E_MAIL", "E_MAIL_ADDRESS"),
    CanonicalField.CELL_NUMBER: (
        "CELL", "CELL_NO", "CELLPHONE", "MOBILE", "MOBILE_NUMBER", "PHONE",
        "PHONE_NUMBER", "CONTACT_NUMBER",
    ),
    CanonicalField.ID_NUMBER: ("ID_NO", "IDENTITY_NUMBER"),
    CanonicalField.VAT_REG_NUMBER: ("VAT_NUMBER", "VAT_NO"),
    CanonicalField.ERF_NUMBER: ("ERF", "ERF_NO"),
}


def normalize_header(header: Any) -> str:
    """Trim, uppercase, and collapse whitespace/punctuation runs to ``_``.

    ``"  Acc  No. "`` -> ``"ACC_NO"``, ``"OCC/OWN"`` -> ``"OCC_OWN"``.
    """
    if header is None:
        return ""
    text = str(header).strip().upper()
    return _SEPARATORS.sub("_", text).strip("_")


def _build_alias_table() -> Mapping[str, CanonicalField]:
    table: dict[str, CanonicalField] = {}
    for field in CanonicalField:
        table[normalize_header(field.value)] = field
        table[normalize_header(field.display_name)] = field
        for alias in _ALIASES.get(field, ()):
            key = normalize_header(alias)
            existing = table.get(key)
            if existing is not None and existing is not field:
                raise ValueError(f"Alias {alias!r} maps to both {existing} and {field}")
            table[key] = field
    return MappingProxyType(table)


ALIAS_TABLE: Mapping[str, CanonicalField] = _build_alias_table()


def synthetic_field_name(position: int) -> str:
    """Positional name for an unrecognised column (``position`` is 0-based)."""
    return f"COLUMN_{position + 1}"


def map_header(header: Any, position: int = 0) -> str:
    """Map one header cell to its canonical field name.

    Total and pure: any input, including ``None``, empty and non-ASCII
    text, returns a name.  Unknown headers get ``COLUMN_<position + 1>``.
    """
    field = ALIAS_TABLE.get(normalize_header(header))
    if field is not None:
        return field.value
    return synthetic_field_name(position)


def map_headers(headers: Iterable[Any]) -> List[str]:
    """Map a whole header row, preserving column order."""
    return [map_header(header, position) for position, header in enumerate(headers)]
