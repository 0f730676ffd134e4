"""Grid export label text -> canonical field name.

Labels are compared after ``normalize_label`` (trailing colon removed,
whitespace collapsed, case-folded).
"""

from __future__ import annotations

import re

from hrrecon.models.fields import BANK_CODE_BRANCH


def normalize_label(label: str) -> str:
    return re.sub(r"\s+", " ", label.strip().rstrip(":").strip()).casefold()


_LABELS: dict[str, str] = {
    # Personal
    "Name": "name",
    "I/C No. (New)": "ic_new",
    "I/C No. (OLD)": "ic_old",
    "Passport No.": "passport_no",
    "Nationality": "nationality",
    "Race": "race",
    "Religion": "religion",
    "Sex": "gender",
    "Gender": "gender",
    "Marital Status": "marital_status",
    "Birth Date": "birth_date",
    "Birth Place": "birth_place",
    "No. of Children": "children_count",
    "Region": "region",
    # Employment
    "HireDate": "hire_date",
    "Employment Date": "hire_date",
    "Confirm Date": "confirm_date",
    "Increment Date": "increment_date",
    "Resign Date": "resign_date",
    "Department": "department",
    "Section": "section",
    "Designation": "designation",
    "Position": "designation",
    "Occupation": "occupation",
    "Category": "category",
    "Job Grade": "grade",
    "Grade": "grade",
    "Cost Center": "cost_center",
    "Reporting To": "reporting_to",
    # Compensation
    "Current Basic": "current_basic",
    "Mid Basic": "mid_basic",
    "Previous Basic": "previous_basic",
    "Payment Type": "payment_type",
    "Payment Frequency": "payment_frequency",
    "Payment Via": "payment_via",
    # Statutory
    "EPF No.": "epf_no",
    "EPF No": "epf_no",
    "Socso No.": "socso_no",
    "SOCSO / KSPA No": "socso_no",
    "Income Tax No.": "income_tax_no",
    "Income Tax No": "income_tax_no",
    "Income Tax Branch": "income_tax_branch",
    "Zakat No.": "zakat_no",
    "EPF Group": "epf_group",
    "SOCSO Group": "socso_group",
    "EIS": "eis_group",
    "PCB/Tax Group": "pcb_group",
    "Deduct Levy": "deduct_levy",
    # Contact
    "E-Mail": "email",
    "Email": "email",
    "Mobile": "mobile",
    "H/Phone": "home_phone",
    "Home Telephone": "home_phone",
    "Address": "address",
    "City": "city",
    "State": "state",
    "Postcode": "postcode",
    "Country": "country",
    # Bank
    "Bank Code/ Branch": BANK_CODE_BRANCH,
    "Bank Code/Branch": BANK_CODE_BRANCH,
    "Bank Account No": "bank_account_no",
    "Bank Account No.": "bank_account_no",
}

GRID_LABELS: dict[str, str] = {normalize_label(k): v for k, v in _LABELS.items()}

# Labels whose value sits one cell further right than the standard offset.
VALUE_COLUMN_SHIFT: dict[str, int] = {
    normalize_label("E-Mail"): 1,
}

LINE_ITEM_SECTION_MARKER = normalize_label("Fixed Allowance / Deduction")


def field_for_label(label: str) -> str | None:
    return GRID_LABELS.get(normalize_label(label))
