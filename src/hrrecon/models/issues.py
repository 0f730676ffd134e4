"""Non-fatal issue records.

Each model here corresponds to a problem the pipeline tolerates: the run
keeps going and the issue is carried into the discrepancy report.
"""

from __future__ import annotations

from typing import Literal, Optional

from pydantic import BaseModel, Field

from hrrecon.models.fields import SourceGrammar


class MalformedLine(BaseModel):
    """A line inside a record scope that matched no known shape."""

    source_file: str
    line_no: int
    reason: str
    text: str = ""

    model_config = {"frozen": True}


class FieldNormalizationFailure(BaseModel):
    """A raw value that could not be typed and was stored as Null."""

    organization_code: str
    employee_no: str
    source_grammar: SourceGrammar
    field: str
    raw_value: str
    kind: str
    reason: str

    model_config = {"frozen": True}


class MergeConflict(BaseModel):
    """Both sources supplied a non-null, unequal value for one field."""

    field: str
    chosen_source: SourceGrammar
    chosen_value: str
    rejected_source: SourceGrammar
    rejected_value: str
    resolution: Literal["precedence", "first_processed", "same_source"]
    needs_review: bool = False

    model_config = {"frozen": True}


class UnresolvedOrganization(BaseModel):
    """Organization code with no canonical identifier."""

    code: str
    employee_count: int = 0

    model_config = {"frozen": True}


class IdentityIssue(BaseModel):
    """Identity number failed a consistency check."""

    organization_code: str
    employee_no: str
    field: str
    value: str
    checks: list[str] = Field(default_factory=list)
    detail: Optional[str] = None
