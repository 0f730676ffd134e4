"""Canonical field catalogue.

Every parser emits field names from this catalogue and the record builder
places each field in its section. Order here is the order fields appear in
provenance maps and completeness reports.
"""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel


class SourceGrammar(StrEnum):
    GRID = "grid"
    NARRATIVE = "narrative"


class Section(StrEnum):
    PERSONAL = "personal"
    EMPLOYMENT = "employment"
    COMPENSATION = "compensation"
    STATUTORY = "statutory"
    CONTACT = "contact"
    BANK = "bank"
    SPOUSE = "spouse"


class FieldKind(StrEnum):
    """Normalization rule applied to a raw field value."""

    DATE = "date"
    MONEY = "money"
    TEXT = "text"
    NAME = "name"  # organizational names; numeric-only input rejected
    CODE = "code"
    BOOL = "bool"
    EMAIL = "email"
    PHONE = "phone"
    IDENTITY = "identity"  # new-format national identity number


class FieldSpec(BaseModel):
    """Where a canonical field lives and how it is normalized."""

    name: str
    section: Section
    kind: FieldKind

    model_config = {"frozen": True}


def _spec(name: str, section: Section, kind: FieldKind) -> tuple[str, FieldSpec]:
    return name, FieldSpec(name=name, section=section, kind=kind)


FIELD_CATALOGUE: dict[str, FieldSpec] = dict([
    # --- Personal ---
    _spec("name", Section.PERSONAL, FieldKind.TEXT),
    _spec("ic_new", Section.PERSONAL, FieldKind.IDENTITY),
    _spec("ic_old", Section.PERSONAL, FieldKind.CODE),
    _spec("passport_no", Section.PERSONAL, FieldKind.CODE),
    _spec("nationality", Section.PERSONAL, FieldKind.CODE),
    _spec("race", Section.PERSONAL, FieldKind.CODE),
    _spec("religion", Section.PERSONAL, FieldKind.CODE),
    _spec("gender", Section.PERSONAL, FieldKind.CODE),
    _spec("marital_status", Section.PERSONAL, FieldKind.CODE),
    _spec("birth_date", Section.PERSONAL, FieldKind.DATE),
    _spec("birth_place", Section.PERSONAL, FieldKind.TEXT),
    _spec("children_count", Section.PERSONAL, FieldKind.CODE),
    _spec("region", Section.PERSONAL, FieldKind.CODE),
    # --- Employment ---
    _spec("hire_date", Section.EMPLOYMENT, FieldKind.DATE),
    _spec("confirm_date", Section.EMPLOYMENT, FieldKind.DATE),
    _spec("increment_date", Section.EMPLOYMENT, FieldKind.DATE),
    _spec("resign_date", Section.EMPLOYMENT, FieldKind.DATE),
    _spec("department", Section.EMPLOYMENT, FieldKind.NAME),
    _spec("section", Section.EMPLOYMENT, FieldKind.NAME),
    _spec("designation", Section.EMPLOYMENT, FieldKind.NAME),
    _spec("occupation", Section.EMPLOYMENT, FieldKind.NAME),
    _spec("category", Section.EMPLOYMENT, FieldKind.CODE),
    _spec("grade", Section.EMPLOYMENT, FieldKind.CODE),
    _spec("cost_center", Section.EMPLOYMENT, FieldKind.CODE),
    _spec("reporting_to", Section.EMPLOYMENT, FieldKind.TEXT),
    # --- Compensation ---
    _spec("current_basic", Section.COMPENSATION, FieldKind.MONEY),
    _spec("mid_basic", Section.COMPENSATION, FieldKind.MONEY),
    _spec("previous_basic", Section.COMPENSATION, FieldKind.MONEY),
    _spec("payment_type", Section.COMPENSATION, FieldKind.CODE),
    _spec("payment_frequency", Section.COMPENSATION, FieldKind.CODE),
    _spec("payment_via", Section.COMPENSATION, FieldKind.CODE),
    # --- Statutory ---
    _spec("epf_no", Section.STATUTORY, FieldKind.CODE),
    _spec("socso_no", Section.STATUTORY, FieldKind.CODE),
    _spec("income_tax_no", Section.STATUTORY, FieldKind.CODE),
    _spec("income_tax_branch", Section.STATUTORY, FieldKind.TEXT),
    _spec("zakat_no", Section.STATUTORY, FieldKind.CODE),
    _spec("epf_group", Section.STATUTORY, FieldKind.CODE),
    _spec("socso_group", Section.STATUTORY, FieldKind.CODE),
    _spec("eis_group", Section.STATUTORY, FieldKind.CODE),
    _spec("pcb_group", Section.STATUTORY, FieldKind.CODE),
    _spec("deduct_levy", Section.STATUTORY, FieldKind.BOOL),
    # --- Contact ---
    _spec("email", Section.CONTACT, FieldKind.EMAIL),
    _spec("mobile", Section.CONTACT, FieldKind.PHONE),
    _spec("home_phone", Section.CONTACT, FieldKind.PHONE),
    _spec("address", Section.CONTACT, FieldKind.TEXT),
    _spec("city", Section.CONTACT, FieldKind.TEXT),
    _spec("state", Section.CONTACT, FieldKind.TEXT),
    _spec("postcode", Section.CONTACT, FieldKind.CODE),
    _spec("country", Section.CONTACT, FieldKind.CODE),
    # --- Bank ---
    _spec("bank_code", Section.BANK, FieldKind.CODE),
    _spec("bank_branch", Section.BANK, FieldKind.CODE),
    _spec("bank_account_no", Section.BANK, FieldKind.CODE),
    # --- Spouse ---
    _spec("spouse_name", Section.SPOUSE, FieldKind.TEXT),
    _spec("spouse_ic", Section.SPOUSE, FieldKind.IDENTITY),
    _spec("spouse_occupation", Section.SPOUSE, FieldKind.TEXT),
    _spec("spouse_employer", Section.SPOUSE, FieldKind.TEXT),
    _spec("spouse_income_tax_no", Section.SPOUSE, FieldKind.CODE),
    _spec("spouse_income_tax_branch", Section.SPOUSE, FieldKind.TEXT),
])

# Raw composite field split by the parsers into bank_code / bank_branch.
BANK_CODE_BRANCH = "bank_code_branch"

IDENTITY_NUMBER_FIELDS: tuple[str, ...] = ("ic_new", "passport_no")


def fields_in(section: Section) -> list[str]:
    """Catalogue field names belonging to a section, in catalogue order."""
    return [name for name, spec in FIELD_CATALOGUE.items() if spec.section == section]
