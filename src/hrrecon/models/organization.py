"""Organization mapping models."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, field_validator


class OrganizationMapping(BaseModel):
    """Short file-prefix code to canonical organization identifier."""

    code: str
    canonical_id: Optional[str] = None  # None: known code, not yet provisioned
    display_name: str = ""

    model_config = {"frozen": True, "str_strip_whitespace": True}

    @field_validator("code")
    @classmethod
    def _upper_code(cls, v: str) -> str:
        return v.upper()

    @field_validator("canonical_id")
    @classmethod
    def _blank_is_none(cls, v: Optional[str]) -> Optional[str]:
        return v or None

    @property
    def is_resolved(self) -> bool:
        return self.canonical_id is not None
