"""Per-record builder shared by both parsers.

A builder lives for exactly one employee inside one parser call, so nothing
accumulates across records or files.
"""

from __future__ import annotations

import re
from typing import Iterable

from hrrecon.models.fields import BANK_CODE_BRANCH, FIELD_CATALOGUE, SourceGrammar
from hrrecon.models.fragments import RawFragment, RawLineItem

_CURRENCY_MARKER = re.compile(r"\bRM\b", re.IGNORECASE)
_WS = re.compile(r"\s+")


def clean_cell(value: str) -> str:
    """Collapse whitespace and strip stray quotes/pipes around a cell value."""
    value = _WS.sub(" ", value.replace('"', "")).strip()
    return value.strip("|").strip()


def is_placeholder(value: str, tokens: Iterable[str]) -> bool:
    compact = value.strip()
    if compact.upper() in {t.upper() for t in tokens}:
        return True
    # Separator-only patterns such as "/ /", " / / ", "--"
    return bool(compact) and not re.sub(r"[\s/\-|.]", "", compact)


def looks_like_currency(value: str) -> bool:
    return bool(_CURRENCY_MARKER.search(value))


def strip_currency(value: str) -> str:
    """Drop the currency marker, quotes and grouping commas from an amount."""
    value = _CURRENCY_MARKER.sub("", value)
    return value.replace(",", "").replace('"', "").strip()


def split_bank_code_branch(value: str) -> tuple[str, str]:
    """'MBB/KL' -> ('MBB', 'KL'); '/' -> ('', '')."""
    normalized = value.replace("\\", "/")
    code, _, branch = normalized.partition("/")
    return code.strip(), branch.strip()


class FragmentBuilder:
    """Accumulates one employee's raw fields. First value per field wins."""

    def __init__(
        self,
        organization_code: str,
        employee_no: str,
        source_grammar: SourceGrammar,
        source_file: str,
        placeholder_tokens: Iterable[str],
    ) -> None:
        self.organization_code = organization_code
        self.employee_no = employee_no
        self.source_grammar = source_grammar
        self.source_file = source_file
        self._placeholders = tuple(placeholder_tokens)
        self._fields: dict[str, str] = {}
        self._line_items: list[RawLineItem] = []

    def has(self, field: str) -> bool:
        return field in self._fields

    def set(self, field: str, value: str | None) -> bool:
        """Record a value unless absent, a placeholder, or already populated.

        Returns True when the value was stored.
        """
        if value is None:
            return False
        value = clean_cell(value)
        if not value or is_placeholder(value, self._placeholders):
            return False
        if field == BANK_CODE_BRANCH:
            code, branch = split_bank_code_branch(value)
            stored = self.set("bank_code", code)
            return self.set("bank_branch", branch) or stored
        if field not in FIELD_CATALOGUE or field in self._fields:
            return False
        if looks_like_currency(value):
            value = strip_currency(value)
        self._fields[field] = value
        return True

    def append(self, field: str, value: str | None, separator: str = " | ") -> bool:
        """Add another value to a multi-valued field such as email or mobile."""
        if field not in self._fields:
            return self.set(field, value)
        if value is None:
            return False
        value = clean_cell(value)
        if not value or is_placeholder(value, self._placeholders):
            return False
        existing = self._fields[field].split(separator)
        if value in existing:
            return False
        self._fields[field] = separator.join([*existing, value])
        return True

    def add_line_item(self, item: RawLineItem) -> None:
        self._line_items.append(item)

    def build(self) -> RawFragment:
        return RawFragment(
            organization_code=self.organization_code,
            employee_no=self.employee_no,
            source_grammar=self.source_grammar,
            source_file=self.source_file,
            field_map=dict(self._fields),
            line_items=tuple(self._line_items),
        )
