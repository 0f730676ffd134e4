"""Label rules for the narrative export grammar.

Rules are plain data so they can be versioned and reviewed apart from the
parser. ``load_ruleset`` reads an alternative set from JSON:

    {"version": "2", "rules": [{"field": "name", "label": "Name", ...}]}
"""

from __future__ import annotations

import json
import re
from enum import StrEnum
from functools import cached_property
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError

from hrrecon.core.exceptions import HRReconError
from hrrecon.models.fields import BANK_CODE_BRANCH

RULESET_VERSION = "1"

_VALUE = r"(?P<value>.*?)(?=\s{2,}|\|?\s*$)"


class RuleScope(StrEnum):
    MAIN = "main"
    SPOUSE = "spouse"


class SectionMarker(StrEnum):
    MAIN = "main"
    SPOUSE = "spouse"
    LINE_ITEMS = "line_items"


# Marker text -> scope entered when a line contains it
SECTION_MARKERS: dict[str, SectionMarker] = {
    "PERSONAL DETAIL": SectionMarker.MAIN,
    "EMPLOYMENT DETAIL": SectionMarker.MAIN,
    "PAYMENT DETAIL": SectionMarker.MAIN,
    "STATUTORY BODY": SectionMarker.MAIN,
    "SPOUSE DETAIL": SectionMarker.SPOUSE,
    "FIXED ALLOWANCE": SectionMarker.LINE_ITEMS,
    "Fixed Allowance": SectionMarker.LINE_ITEMS,
}


class RulesetError(HRReconError):
    """Narrative ruleset file is missing or malformed."""


class NarrativeRule(BaseModel):
    """One label rule.

    ``pattern`` overrides the default label matcher and must define a
    ``value`` group. ``exclude`` lists substrings that disqualify a line.
    """

    field: str
    label: str
    pattern: Optional[str] = None
    exclude: list[str] = Field(default_factory=list)
    scope: RuleScope = RuleScope.MAIN
    value_on_next_line: bool = False
    next_line_pattern: Optional[str] = None
    repeatable: bool = False

    model_config = {"frozen": True}

    @cached_property
    def regex(self) -> re.Pattern[str]:
        if self.pattern:
            return re.compile(self.pattern)
        label = re.escape(self.label.rstrip("."))
        return re.compile(r"(?:^|\s{2,}|\|)\s*" + label + r"\.?(?![A-Za-z])\s*:?\s*" + _VALUE)

    @cached_property
    def next_line_regex(self) -> re.Pattern[str]:
        return re.compile(self.next_line_pattern or (r"^\s*" + _VALUE))

    def excluded(self, line: str) -> bool:
        return any(word in line for word in self.exclude)

    def match(self, line: str) -> Optional[str]:
        """Captured value on this line, or None when the rule does not apply."""
        if self.excluded(line):
            return None
        m = self.regex.search(line)
        if m is None:
            return None
        return m.group("value").strip()


class NarrativeRuleset(BaseModel):
    version: str = RULESET_VERSION
    rules: list[NarrativeRule] = Field(default_factory=list)

    def for_scope(self, scope: RuleScope) -> list[NarrativeRule]:
        return [r for r in self.rules if r.scope == scope]

    @cached_property
    def labels(self) -> tuple[str, ...]:
        """Label texts, longest first."""
        texts = {r.label.rstrip(".:").strip() for r in self.rules}
        return tuple(sorted(texts, key=lambda t: (-len(t), t)))

    def is_label(self, value: str) -> bool:
        """True when a captured value is really the next label on the line."""
        for label in self.labels:
            if value.startswith(label):
                rest = value[len(label):]
                if not rest or not rest[0].isalpha():
                    return True
        return False


def _rule(field: str, label: str, **kwargs) -> NarrativeRule:
    return NarrativeRule(field=field, label=label, **kwargs)


_MONEY_NEXT_LINE = r"RM\s*(?P<value>-?[\d,]+\.?\d*)"

DEFAULT_RULES: list[NarrativeRule] = [
    # Personal
    _rule("name", "Name", exclude=["Spouse", "spouse"]),
    _rule("ic_new", "I/C No. (New)"),
    _rule("ic_old", "I/C No. (OLD)"),
    _rule("passport_no", "Passport No."),
    _rule("nationality", "Nationality"),
    _rule("race", "Race", exclude=["Passport"]),
    _rule("religion", "Religion"),
    _rule("gender", "Sex"),
    _rule("marital_status", "Marital Status"),
    _rule("birth_date", "Birth Date"),
    _rule("birth_place", "Birth Place"),
    _rule("children_count", "No. of Children"),
    _rule("region", "Region"),
    # Employment
    _rule("hire_date", "HireDate"),
    _rule("hire_date", "Employment Date"),
    _rule("confirm_date", "Confirm Date"),
    _rule("increment_date", "Increment Date"),
    _rule("resign_date", "Resign Date"),
    _rule("department", "Department"),
    _rule("section", "Section", exclude=["Bank Account No"]),
    _rule("designation", "Designation"),
    _rule("occupation", "Occupation", exclude=["Country"]),
    _rule("category", "Category", exclude=["Category Category"]),
    _rule("grade", "Job Grade"),
    _rule("grade", "Grade"),
    _rule("cost_center", "Cost Center"),
    _rule("reporting_to", "Reporting To"),
    # Compensation
    _rule("current_basic", "Current Basic", value_on_next_line=True, next_line_pattern=_MONEY_NEXT_LINE),
    _rule("mid_basic", "Mid Basic", value_on_next_line=True, next_line_pattern=_MONEY_NEXT_LINE),
    _rule("previous_basic", "Previous Basic", value_on_next_line=True, next_line_pattern=_MONEY_NEXT_LINE),
    _rule("payment_type", "Payment Type"),
    _rule("payment_frequency", "Payment Frequency"),
    _rule("payment_via", "Payment Via"),
    # Statutory
    _rule("epf_no", "EPF No"),
    _rule("epf_no", "Epf No"),
    _rule("socso_no", "SOCSO / KSPA No"),
    _rule("socso_no", "Socso No"),
    _rule("income_tax_no", "Income Tax No"),
    _rule("income_tax_branch", "Income Tax Branch"),
    _rule("zakat_no", "Zakat No"),
    _rule("epf_group", "EPF Group", exclude=["EPF Nk"]),
    _rule("socso_group", "SOCSO Group"),
    _rule("eis_group", "EIS", exclude=["EPF"]),
    _rule("pcb_group", "PCB/Tax Group"),
    _rule("deduct_levy", "Deduct Levy"),
    # Contact
    _rule("email", "E-Mail", repeatable=True),
    _rule("email", "Email", repeatable=True),
    _rule("mobile", "Mobile", exclude=["Spouse"], repeatable=True),
    _rule("home_phone", "H/Phone"),
    _rule("home_phone", "Home Telephone"),
    _rule("address", "Address", exclude=["Email", "E-Mail"]),
    _rule("city", "City"),
    _rule("state", "State"),
    _rule("postcode", "Postcode"),
    _rule("country", "Country"),
    # Bank
    _rule(BANK_CODE_BRANCH, "Bank Code/ Branch"),
    _rule(BANK_CODE_BRANCH, "Bank Code/Branch"),
    _rule("bank_account_no", "Bank Account No"),
    # Spouse block
    _rule("spouse_name", "Name", scope=RuleScope.SPOUSE),
    _rule(
        "spouse_ic",
        "I/C No",
        scope=RuleScope.SPOUSE,
        pattern=r"(?:^|\s{2,}|\|)\s*I/C No\.?(?:\s*\((?:New|NEW)\))?\s*:?\s*" + _VALUE,
    ),
    _rule("spouse_occupation", "Occupation", scope=RuleScope.SPOUSE),
    _rule("spouse_employer", "Employer", scope=RuleScope.SPOUSE),
    _rule("spouse_employer", "Name of Employer", scope=RuleScope.SPOUSE),
    _rule("spouse_income_tax_no", "Income Tax No", scope=RuleScope.SPOUSE),
    _rule("spouse_income_tax_branch", "Income Tax Branch", scope=RuleScope.SPOUSE),
]


def default_ruleset() -> NarrativeRuleset:
    return NarrativeRuleset(version=RULESET_VERSION, rules=list(DEFAULT_RULES))


def load_ruleset(path: str | Path) -> NarrativeRuleset:
    """Load a ruleset from JSON.

    Raises:
        RulesetError: file unreadable, not JSON, or a rule is invalid.
    """
    try:
        payload = json.loads(Path(path).read_text(encoding="utf-8"))
        ruleset = NarrativeRuleset.model_validate(payload)
        for rule in ruleset.rules:
            rule.regex  # noqa: B018
    except (OSError, json.JSONDecodeError, ValidationError, re.error) as exc:
        raise RulesetError(f"Invalid narrative ruleset {path}: {exc}") from exc
    return ruleset
