"""IdentityValidator: consistency checks on national identity numbers.

Checks on the new-format IC (``YYMMDD-PB-NNNN``):
  format, embedded date is a real calendar date, embedded date agrees with
  the birth date field, and the number differs from the spouse's.
"""

from __future__ import annotations

import re
from datetime import date
from typing import Iterable, Optional

from hrrecon.models.employee_record import CanonicalEmployeeRecord
from hrrecon.models.issues import IdentityIssue

_IC_FORMAT = re.compile(r"^\d{6}-\d{2}-\d{4}$")

CHECK_FORMAT = "format"
CHECK_EMBEDDED_DATE = "embedded_date_invalid"
CHECK_BIRTH_DATE = "birth_date_mismatch"
CHECK_SPOUSE = "same_as_spouse_ic"


def embedded_birth_date(ic: str, today: Optional[date] = None) -> Optional[date]:
    """Birth date encoded in the first six digits.

    Two-digit years later than the current year belong to the previous century.
    """
    digits = re.sub(r"\D", "", ic)
    if len(digits) < 6:
        return None
    yy, mm, dd = int(digits[0:2]), int(digits[2:4]), int(digits[4:6])
    current = (today or date.today()).year
    century = 2000 if 2000 + yy <= current else 1900
    try:
        return date(century + yy, mm, dd)
    except ValueError:
        return None


class IdentityValidator:
    def __init__(self, today: Optional[date] = None) -> None:
        self._today = today

    def validate(self, record: CanonicalEmployeeRecord) -> list[IdentityIssue]:
        ic = record.personal.ic_new
        if ic is None:
            return []
        checks: list[str] = []
        details: list[str] = []

        if not _IC_FORMAT.match(ic):
            checks.append(CHECK_FORMAT)
        embedded = embedded_birth_date(ic, self._today)
        if embedded is None:
            checks.append(CHECK_EMBEDDED_DATE)
        else:
            birth = record.personal.birth_date
            # Compare day/month/two-digit year; the century is not encoded.
            if birth is not None and (birth.day, birth.month, birth.year % 100) != (
                embedded.day,
                embedded.month,
                embedded.year % 100,
            ):
                checks.append(CHECK_BIRTH_DATE)
                details.append(f"birth_date={birth.isoformat()} ic_date={embedded.isoformat()}")
        if record.spouse.spouse_ic is not None and record.spouse.spouse_ic == ic:
            checks.append(CHECK_SPOUSE)

        if not checks:
            return []
        return [
            IdentityIssue(
                organization_code=record.organization_code,
                employee_no=record.employee_no,
                field="ic_new",
                value=ic,
                checks=checks,
                detail="; ".join(details) or None,
            )
        ]

    def validate_all(self, records: Iterable[CanonicalEmployeeRecord]) -> list[IdentityIssue]:
        issues: list[IdentityIssue] = []
        for record in records:
            issues.extend(self.validate(record))
        return issues
