"""FieldNormalizer: raw strings to typed values.

``normalize_value`` never raises. A raw value that cannot be typed becomes
``TypedValue.null()``; ``normalize_fragment`` records each such case as a
``FieldNormalizationFailure`` attributed to the field and the employee.
"""

from __future__ import annotations

import re
from datetime import date
from typing import Callable, Optional

from hrrecon.core.logging_config import get_logger
from hrrecon.ingest.fragment_builder import is_placeholder
from hrrecon.models.fields import FIELD_CATALOGUE, FieldKind
from hrrecon.models.fragments import LineItem, NormalizedFragment, RawFragment, RawLineItem, TypedValue
from hrrecon.models.issues import FieldNormalizationFailure
from hrrecon.normalize.destring import DestringConfig, destring
from hrrecon.normalize.value_maps import (
    CODE_ALIASES,
    FALSE_WORDS,
    NAME_NOISE,
    SECTION_ALIASES,
    TRUE_WORDS,
    UNIT_FIELDS,
    is_deduction,
)

logger = get_logger(__name__)

_WS = re.compile(r"\s+")
_DMY = re.compile(r"^\s*(\d{1,2})[/\-.](\d{1,2})[/\-.](\d{4})\b")
_ISO = re.compile(r"^\s*(\d{4})-(\d{1,2})-(\d{1,2})\b")
_MONTH = re.compile(r"^\s*(\d{1,2})/(\d{4})\s*$")
_EMAIL = re.compile(r"^[^@\s|,;]+@[^@\s|,;]+\.[^@\s|,;]+$")
_SPLIT_MULTI = re.compile(r"[|,;/]")

_PLACEHOLDERS = ("", "/", "/ /", "//", "-", "|", "NULL", "N/A")

Outcome = tuple[TypedValue, Optional[str]]


def _collapse(value: str) -> str:
    return _WS.sub(" ", value).strip()


def _date(raw: str, field: Optional[str], config: DestringConfig) -> Outcome:
    m = _DMY.match(raw)
    if m:
        day, month, year = int(m.group(1)), int(m.group(2)), int(m.group(3))
    else:
        m = _ISO.match(raw)
        if not m:
            return TypedValue.null(), "no D/M/YYYY date"
        year, month, day = int(m.group(1)), int(m.group(2)), int(m.group(3))
    try:
        return TypedValue.of_date(date(year, month, day)), None
    except ValueError:
        return TypedValue.null(), "impossible calendar date"


def _money(raw: str, field: Optional[str], config: DestringConfig) -> Outcome:
    amount = destring(raw, config)
    if amount is None:
        return TypedValue.null(), "not a monetary amount"
    return TypedValue.of_money(amount), None


def _text(raw: str, field: Optional[str], config: DestringConfig) -> Outcome:
    value = _collapse(raw).rstrip("|").strip()
    if not value:
        return TypedValue.null(), "empty after cleanup"
    return TypedValue.of_text(value), None


def _name(raw: str, field: Optional[str], config: DestringConfig) -> Outcome:
    value = _collapse(raw).rstrip("|").strip().upper()
    if not value:
        return TypedValue.null(), "empty after cleanup"
    if value.isdigit():
        return TypedValue.null(), "numeric only"
    if any(noise in value for noise in NAME_NOISE):
        return TypedValue.null(), "label noise"
    if field in UNIT_FIELDS and value in SECTION_ALIASES:
        alias = SECTION_ALIASES[value]
        if alias is None:
            return TypedValue.null(), "role title, not an organizational unit"
        value = alias
    return TypedValue.of_text(value), None


def _code(raw: str, field: Optional[str], config: DestringConfig) -> Outcome:
    value = _collapse(raw).strip("|").strip().upper()
    if not value:
        return TypedValue.null(), "empty after cleanup"
    if field is not None:
        value = CODE_ALIASES.get(field, {}).get(value, value)
    return TypedValue.of_code(value), None


def _bool(raw: str, field: Optional[str], config: DestringConfig) -> Outcome:
    value = _collapse(raw).upper()
    if value in TRUE_WORDS:
        return TypedValue.of_bool(True), None
    if value in FALSE_WORDS:
        return TypedValue.of_bool(False), None
    return TypedValue.null(), "not a yes/no value"


def _email(raw: str, field: Optional[str], config: DestringConfig) -> Outcome:
    for candidate in re.split(r"[|,;\s]+", raw):
        candidate = candidate.strip().strip(".")
        if _EMAIL.match(candidate):
            return TypedValue.of_text(candidate.lower()), None
    return TypedValue.null(), "no email address"


def _phone(raw: str, field: Optional[str], config: DestringConfig) -> Outcome:
    for candidate in _SPLIT_MULTI.split(raw):
        candidate = candidate.strip()
        digits = re.sub(r"\D", "", candidate)
        if 7 <= len(digits) <= 15:
            prefix = "+" if candidate.startswith("+") else ""
            return TypedValue.of_text(prefix + digits), None
    return TypedValue.null(), "not a 7-15 digit phone number"


def _identity(raw: str, field: Optional[str], config: DestringConfig) -> Outcome:
    digits = re.sub(r"\D", "", raw)
    if len(digits) != 12:
        return TypedValue.null(), "expected 12 digits"
    return TypedValue.of_code(f"{digits[:6]}-{digits[6:8]}-{digits[8:]}"), None


_NORMALIZERS: dict[FieldKind, Callable[[str, Optional[str], DestringConfig], Outcome]] = {
    FieldKind.DATE: _date,
    FieldKind.MONEY: _money,
    FieldKind.TEXT: _text,
    FieldKind.NAME: _name,
    FieldKind.CODE: _code,
    FieldKind.BOOL: _bool,
    FieldKind.EMAIL: _email,
    FieldKind.PHONE: _phone,
    FieldKind.IDENTITY: _identity,
}


def normalize_with_reason(
    raw: Optional[str],
    kind: FieldKind,
    field: Optional[str] = None,
    config: DestringConfig | None = None,
) -> Outcome:
    """Typed value plus the reason it is Null, if a non-empty raw value was rejected."""
    if raw is None:
        return TypedValue.null(), None
    if is_placeholder(raw, _PLACEHOLDERS):
        return TypedValue.null(), None
    return _NORMALIZERS[kind](raw, field, config or DestringConfig())


def normalize_value(
    raw: Optional[str],
    kind: FieldKind,
    field: Optional[str] = None,
    config: DestringConfig | None = None,
) -> TypedValue:
    value, _ = normalize_with_reason(raw, kind, field, config)
    return value


def normalize_month(raw: Optional[str]) -> Optional[date]:
    """'12/2024' -> 2024-12-01."""
    if not raw:
        return None
    m = _MONTH.match(raw)
    if not m:
        return None
    month, year = int(m.group(1)), int(m.group(2))
    if not 1 <= month <= 12:
        return None
    return date(year, month, 1)


def _failure(fragment: RawFragment, field: str, raw: str, kind: str, reason: str) -> FieldNormalizationFailure:
    return FieldNormalizationFailure(
        organization_code=fragment.organization_code,
        employee_no=fragment.employee_no,
        source_grammar=fragment.source_grammar,
        field=field,
        raw_value=raw,
        kind=kind,
        reason=reason,
    )


def _line_item(item: RawLineItem, config: DestringConfig) -> tuple[Optional[LineItem], bool, Optional[str]]:
    amount = destring(item.amount, config)
    if amount is None:
        return None, False, "not a monetary amount"
    code = _collapse(item.code).upper()
    deduction = is_deduction(code, item.description) or amount < 0
    line_item = LineItem(
        code=code,
        description=_collapse(item.description).upper(),
        amount=abs(amount),
        period=_collapse(item.period).upper() or None,
        start=normalize_month(item.start),
        end=normalize_month(item.end),
    )
    return line_item, deduction, None


def normalize_fragment(fragment: RawFragment, config: DestringConfig | None = None) -> NormalizedFragment:
    """Type every field of a raw fragment and split its line items."""
    cfg = config or DestringConfig()
    fields: dict[str, TypedValue] = {}
    failures: list[FieldNormalizationFailure] = []

    for name, spec in FIELD_CATALOGUE.items():
        raw = fragment.field_map.get(name)
        if raw is None:
            continue
        value, reason = normalize_with_reason(raw, spec.kind, name, cfg)
        fields[name] = value
        if value.is_null and reason is not None:
            failures.append(_failure(fragment, name, raw, spec.kind.value, reason))

    allowances: list[LineItem] = []
    deductions: list[LineItem] = []
    for raw_item in fragment.line_items:
        item, deduction, reason = _line_item(raw_item, cfg)
        if item is None:
            failures.append(
                _failure(fragment, f"line_item:{raw_item.code}", raw_item.amount, FieldKind.MONEY.value, reason or "")
            )
            continue
        (deductions if deduction else allowances).append(item)

    if failures:
        logger.debug(
            "fragment_normalization_failures",
            organization_code=fragment.organization_code,
            employee_no=fragment.employee_no,
            fields=[f.field for f in failures],
        )

    return NormalizedFragment(
        organization_code=fragment.organization_code,
        employee_no=fragment.employee_no,
        source_grammar=fragment.source_grammar,
        source_file=fragment.source_file,
        fields=fields,
        allowances=tuple(sorted(set(allowances), key=LineItem.sort_key)),
        deductions=tuple(sorted(set(deductions), key=LineItem.sort_key)),
        failures=tuple(failures),
    )
