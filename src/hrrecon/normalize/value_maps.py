"""Lookup tables used by the field normalizer."""

from __future__ import annotations

from typing import Optional

# Organizational unit spellings seen across exports. None marks a value that
# is a role title, not a unit.
SECTION_ALIASES: dict[str, Optional[str]] = {
    "CEO'S OFFICE": "CEO OFFICE",
    "OPERATION": "OPERATIONS",
    "MANAGEMENT & OPERATION": "MANAGEMENT & OPERATIONS",
    "MANAGEMENT (ESPORT)": "ESPORTS MANAGEMENT",
    "E-SPORTS DEVELOPMENT": "ESPORTS DEVELOPMENT",
    "MANAGEMENT (FINANCE & HR)": "FINANCE & HR",
    "FINANCE DEPARTMENT": "FINANCE",
    "TECHNICAL IT & ASSETS": "IT & ASSETS",
    "WAREHOUSE & INVENTORY MANAGEMENT": "WAREHOUSE & INVENTORY",
    "ACADEMIC AFFAIR": "ACADEMIC AFFAIRS",
    "DIRECTOR": None,
    "CEO": None,
    "MANAGER": None,
    "EXECUTIVE": None,
    "ASSISTANT": None,
}

# Fields the unit aliases apply to
UNIT_FIELDS: frozenset[str] = frozenset({"department", "section"})

# Text that leaks into a name field from a neighbouring label
NAME_NOISE: tuple[str, ...] = ("BANK ACCOUNT NO",)

# Per-field code aliases, applied after upper-casing
CODE_ALIASES: dict[str, dict[str, str]] = {
    "gender": {"M": "MALE", "F": "FEMALE", "L": "MALE", "P": "FEMALE", "LELAKI": "MALE", "PEREMPUAN": "FEMALE"},
    "marital_status": {"S": "SINGLE", "M": "MARRIED", "D": "DIVORCED", "W": "WIDOWED", "BUJANG": "SINGLE", "BERKAHWIN": "MARRIED"},
    "nationality": {"MALAYSIA": "MALAYSIAN", "MY": "MALAYSIAN", "WARGANEGARA": "MALAYSIAN"},
    "payment_via": {"BANK TRANSFER": "BANK", "TUNAI": "CASH"},
}

DEDUCTION_KEYWORDS: tuple[str, ...] = ("ZAKAT", "PTPTN", "LOAN", "CP38", "HOUSE", "STAFF")

TRUE_WORDS: frozenset[str] = frozenset({"YES", "Y", "TRUE", "1"})
FALSE_WORDS: frozenset[str] = frozenset({"NO", "N", "FALSE", "0"})


def is_deduction(code: str, description: str) -> bool:
    text = f"{code} {description}".upper()
    return any(word in text for word in DEDUCTION_KEYWORDS)
