"""Canonical Employee Record: the merged, normalized structure handed to the store.

Every personnel export, whichever grammar it came from, ends up in this
schema. Identity is the composite (organization_code, employee_no); every
other section may be partially or fully empty. Each section carries a
provenance map naming the source grammar that supplied each populated field.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal
from typing import Any, Optional

from pydantic import BaseModel, Field

from hrrecon.models.fields import FIELD_CATALOGUE, Section, SourceGrammar
from hrrecon.models.fragments import LineItem
from hrrecon.models.issues import MergeConflict


class FieldProvenance(BaseModel):
    """Which grammar supplied a merged field, and every value that disagreed with it."""

    source: SourceGrammar
    source_file: str = ""
    corroborated_by: list[SourceGrammar] = Field(default_factory=list)
    conflicts: list[MergeConflict] = Field(default_factory=list)


class _SectionBase(BaseModel):
    provenance: dict[str, FieldProvenance] = Field(default_factory=dict)

    model_config = {"str_strip_whitespace": True}


class PersonalSection(_SectionBase):
    name: Optional[str] = None
    ic_new: Optional[str] = None
    ic_old: Optional[str] = None
    passport_no: Optional[str] = None
    nationality: Optional[str] = None
    race: Optional[str] = None
    religion: Optional[str] = None
    gender: Optional[str] = None
    marital_status: Optional[str] = None
    birth_date: Optional[date] = None
    birth_place: Optional[str] = None
    children_count: Optional[str] = None
    region: Optional[str] = None


class EmploymentSection(_SectionBase):
    hire_date: Optional[date] = None
    confirm_date: Optional[date] = None
    increment_date: Optional[date] = None
    resign_date: Optional[date] = None
    department: Optional[str] = None
    section: Optional[str] = None
    designation: Optional[str] = None
    occupation: Optional[str] = None
    category: Optional[str] = None
    grade: Optional[str] = None
    cost_center: Optional[str] = None
    reporting_to: Optional[str] = None

    @property
    def is_active(self) -> bool:
        """No resign date means still employed."""
        return self.resign_date is None


class CompensationSection(_SectionBase):
    current_basic: Optional[Decimal] = None
    mid_basic: Optional[Decimal] = None
    previous_basic: Optional[Decimal] = None
    payment_type: Optional[str] = None
    payment_frequency: Optional[str] = None
    payment_via: Optional[str] = None
    allowances: list[LineItem] = Field(default_factory=list)
    deductions: list[LineItem] = Field(default_factory=list)

    @property
    def total_allowances(self) -> Decimal:
        return sum((item.amount for item in self.allowances), Decimal("0"))

    @property
    def total_deductions(self) -> Decimal:
        return sum((item.amount for item in self.deductions), Decimal("0"))


class StatutorySection(_SectionBase):
    epf_no: Optional[str] = None
    socso_no: Optional[str] = None
    income_tax_no: Optional[str] = None
    income_tax_branch: Optional[str] = None
    zakat_no: Optional[str] = None
    epf_group: Optional[str] = None
    socso_group: Optional[str] = None
    eis_group: Optional[str] = None
    pcb_group: Optional[str] = None
    deduct_levy: Optional[bool] = None


class ContactSection(_SectionBase):
    email: Optional[str] = None
    mobile: Optional[str] = None
    home_phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    postcode: Optional[str] = None
    country: Optional[str] = None


class BankSection(_SectionBase):
    bank_code: Optional[str] = None
    bank_branch: Optional[str] = None
    bank_account_no: Optional[str] = None

    @property
    def is_cash_payment(self) -> bool:
        return self.bank_code is None and self.bank_account_no is None


class SpouseSection(_SectionBase):
    spouse_name: Optional[str] = None
    spouse_ic: Optional[str] = None
    spouse_occupation: Optional[str] = None
    spouse_employer: Optional[str] = None
    spouse_income_tax_no: Optional[str] = None
    spouse_income_tax_branch: Optional[str] = None


SECTION_MODELS: dict[Section, type[_SectionBase]] = {
    Section.PERSONAL: PersonalSection,
    Section.EMPLOYMENT: EmploymentSection,
    Section.COMPENSATION: CompensationSection,
    Section.STATUTORY: StatutorySection,
    Section.CONTACT: ContactSection,
    Section.BANK: BankSection,
    Section.SPOUSE: SpouseSection,
}


class CanonicalEmployeeRecord(BaseModel):
    """Single employee record in canonical format."""

    # --- Identity ---
    organization_code: str = Field(min_length=1)
    employee_no: str = Field(min_length=1)
    organization_id: Optional[str] = None
    organization_name: Optional[str] = None

    # --- Sections ---
    personal: PersonalSection = Field(default_factory=PersonalSection)
    employment: EmploymentSection = Field(default_factory=EmploymentSection)
    compensation: CompensationSection = Field(default_factory=CompensationSection)
    statutory: StatutorySection = Field(default_factory=StatutorySection)
    contact: ContactSection = Field(default_factory=ContactSection)
    bank: BankSection = Field(default_factory=BankSection)
    spouse: SpouseSection = Field(default_factory=SpouseSection)

    # --- Processing Metadata ---
    source_files: list[str] = Field(default_factory=list)

    @property
    def key(self) -> tuple[str, str]:
        return (self.organization_code, self.employee_no)

    def section_for(self, field: str) -> _SectionBase:
        return getattr(self, FIELD_CATALOGUE[field].section.value)

    def get_field(self, field: str) -> Any:
        """Value of a catalogue field, wherever its section is."""
        return getattr(self.section_for(field), field)

    def provenance_for(self, field: str) -> Optional[FieldProvenance]:
        return self.section_for(field).provenance.get(field)

    def conflicts(self) -> list[MergeConflict]:
        """All merge conflicts recorded across sections, in catalogue order."""
        found: list[MergeConflict] = []
        for field in FIELD_CATALOGUE:
            prov = self.provenance_for(field)
            if prov is not None:
                found.extend(prov.conflicts)
        return found
