"""Fragment models: partial employee records produced per (file, employee)."""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel, Field

from hrrecon.models.fields import SourceGrammar
from hrrecon.models.issues import FieldNormalizationFailure


class RawLineItem(BaseModel):
    """One allowance/deduction row exactly as it appeared in the source."""

    line_no: str
    code: str = ""
    description: str = ""
    amount: str = ""
    period: str = ""
    start: str = ""
    end: str = ""

    model_config = {"frozen": True}


class RawFragment(BaseModel):
    """Untyped fields for one employee from one source file."""

    organization_code: str
    employee_no: str
    source_grammar: SourceGrammar
    source_file: str = ""
    field_map: dict[str, str] = Field(default_factory=dict)
    line_items: tuple[RawLineItem, ...] = ()

    model_config = {"frozen": True}

    @property
    def key(self) -> tuple[str, str]:
        return (self.organization_code, self.employee_no)


class ValueKind(StrEnum):
    DATE = "date"
    MONEY = "money"
    TEXT = "text"
    CODE = "code"
    BOOL = "bool"
    NULL = "null"


class TypedValue(BaseModel):
    """A normalized field value. Either fully typed or explicitly Null."""

    kind: ValueKind = ValueKind.NULL
    value: Any = None

    model_config = {"frozen": True}

    @classmethod
    def null(cls) -> TypedValue:
        return cls()

    @classmethod
    def of_date(cls, value: date) -> TypedValue:
        return cls(kind=ValueKind.DATE, value=value)

    @classmethod
    def of_money(cls, value: Decimal) -> TypedValue:
        return cls(kind=ValueKind.MONEY, value=value)

    @classmethod
    def of_text(cls, value: str) -> TypedValue:
        return cls(kind=ValueKind.TEXT, value=value)

    @classmethod
    def of_code(cls, value: str) -> TypedValue:
        return cls(kind=ValueKind.CODE, value=value)

    @classmethod
    def of_bool(cls, value: bool) -> TypedValue:
        return cls(kind=ValueKind.BOOL, value=value)

    @property
    def is_null(self) -> bool:
        return self.kind == ValueKind.NULL

    @property
    def magnitude(self) -> Optional[Decimal]:
        """Unsigned amount for money values; sign interpretation is the caller's."""
        if self.kind != ValueKind.MONEY:
            return None
        return abs(self.value)

    def display(self) -> str:
        if self.is_null:
            return ""
        if self.kind == ValueKind.DATE:
            return self.value.isoformat()
        return str(self.value)


class LineItem(BaseModel):
    """Normalized allowance or deduction entry. Amount is always a magnitude."""

    code: str
    description: str = ""
    amount: Decimal = Field(ge=0)
    period: Optional[str] = None
    start: Optional[date] = None
    end: Optional[date] = None

    model_config = {"frozen": True}

    def sort_key(self) -> tuple:
        return (
            self.code,
            self.description,
            self.amount,
            self.period or "",
            self.start or date.min,
            self.end or date.min,
        )


class NormalizedFragment(BaseModel):
    """Typed fields for one employee from one source file."""

    organization_code: str
    employee_no: str
    source_grammar: SourceGrammar
    source_file: str = ""
    fields: dict[str, TypedValue] = Field(default_factory=dict)
    allowances: tuple[LineItem, ...] = ()
    deductions: tuple[LineItem, ...] = ()
    failures: tuple[FieldNormalizationFailure, ...] = ()

    model_config = {"frozen": True}

    @property
    def key(self) -> tuple[str, str]:
        return (self.organization_code, self.employee_no)

    def get(self, field: str) -> TypedValue:
        return self.fields.get(field, TypedValue.null())
