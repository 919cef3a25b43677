"""Schema-level validation.

Checks a whole LicenseDocument against a LicenseSchema: required fields are
present and every present value has the schema's type. Per-value rules
(formats, ranges) are the field validators' job and are not repeated here.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Tuple

from licensekit.core.coercion import describe_type, is_numeric, try_parse_datetime
from licensekit.core.document import LicenseDocument
from licensekit.core.errors import InvalidInputError, SchemaNonconformantError
from licensekit.core.schema.schema import LicenseSchema, list_inner_type

log = logging.getLogger("licensekit.validation")


@dataclass(frozen=True)
class SchemaValidationReport:
    ok: bool
    errors: List[str] = field(default_factory=list)
    notes: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"ok": self.ok, "errors": list(self.errors), "notes": list(self.notes)}


def _check_type(field_name: str, value: Any, expected: str, errors: List[str], notes: List[str]) -> None:
    normalized = expected.strip().lower()

    if normalized == "string":
        if not isinstance(value, str):
            errors.append(f"Field '{field_name}' should be string but is {describe_type(value)}")
        return

    if normalized in ("int", "integer"):
        numeric, number = is_numeric(value)
        if numeric and not math.isfinite(number):
            errors.append(f"Field '{field_name}' is out of range for int")
            return
        if not numeric or number % 1 != 0:
            errors.append(f"Field '{field_name}' should be int but is {describe_type(value)}")
        return

    if normalized in ("double", "float", "number", "decimal"):
        numeric, _ = is_numeric(value)
        if not numeric:
            errors.append(f"Field '{field_name}' should be numeric but is {describe_type(value)}")
        return

    if normalized in ("bool", "boolean"):
        if not isinstance(value, bool):
            errors.append(f"Field '{field_name}' should be bool but is {describe_type(value)}")
        return

    if normalized in ("datetime", "date"):
        if isinstance(value, datetime):
            return
        if isinstance(value, str):
            if try_parse_datetime(value) is None:
                errors.append(f"Field '{field_name}' should be datetime but string value cannot be parsed")
            return
        errors.append(f"Field '{field_name}' should be datetime but is {describe_type(value)}")
        return

    inner = list_inner_type(normalized)
    if inner is not None:
        if not isinstance(value, (list, tuple)):
            errors.append(f"Field '{field_name}' should be a list but is {describe_type(value)}")
            return
        for index, item in enumerate(value):
            if item is not None:
                _check_type(f"{field_name}[{index}]", item, inner, errors, notes)
        return

    note = f"Field '{field_name}' has unknown type '{expected}' - skipping type validation"
    log.info(note)
    notes.append(note)


class LicenseValidator:
    """
    Validates LicenseDocuments against one schema.

    Every field is checked and every problem collected; nothing stops at the
    first error.

    Time: O(total number of values including list elements)
    """

    def __init__(self, schema: LicenseSchema) -> None:
        if schema is None:
            raise InvalidInputError("schema is required")
        self.schema = schema

    def check(self, document: LicenseDocument) -> SchemaValidationReport:
        if document is None:
            raise InvalidInputError("document is required")
        errors: List[str] = []
        notes: List[str] = []
        for fd in self.schema.fields:
            value = document.get(fd.name)
            if value is None:
                if fd.required:
                    errors.append(f"Required field '{fd.name}' is missing or null")
                continue
            _check_type(fd.name, value, fd.type, errors, notes)

        if errors:
            log.debug("license failed schema '%s' with %d error(s)", self.schema.name, len(errors))
        return SchemaValidationReport(ok=not errors, errors=errors, notes=notes)

    def validate(self, document: LicenseDocument) -> Tuple[bool, List[str]]:
        report = self.check(document)
        return report.ok, report.errors

    def validate_or_raise(self, document: LicenseDocument) -> None:
        """Raise SchemaNonconformantError carrying every error."""
        report = self.check(document)
        if not report.ok:
            raise SchemaNonconformantError(report.errors)

    def schema_summary(self) -> str:
        return self.schema.summary()


def validate_document(document: LicenseDocument, schema: LicenseSchema) -> SchemaValidationReport:
    return LicenseValidator(schema).check(document)

