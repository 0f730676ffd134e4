"""Type aliases used across hrrecon."""

from __future__ import annotations

from typing import Any

JsonDict = dict[str, Any]
OrganizationCode = str
EmployeeNo = str
RecordKey = tuple[OrganizationCode, EmployeeNo]
FieldName = str
RunId = str
