from __future__ import annotations

from typing import Iterable, List, Optional


class LicenseKitError(Exception):
    """
    Base exception for all licensekit failures.
    """

    pass


class InvalidInputError(LicenseKitError, ValueError):
    """
    Raised when a public operation receives a null or malformed argument.
    """

    pass


class TypeConversionError(LicenseKitError, ValueError):
    """
    Raised when a value cannot be coerced into the requested type.
    """

    pass


class MissingFileError(LicenseKitError, FileNotFoundError):
    """
    Raised when a processor or hasher is given a path that does not exist.
    """

    def __init__(self, path: str):
        self.path = path
        super().__init__(f"File not found: {path}")


class FieldRejectedError(LicenseKitError):
    """
    Raised at the point of write when a single field fails its validator.
    """

    def __init__(self, field_name: str, reason: str):
        self.field_name = field_name
        self.reason = reason
        super().__init__(f"Field '{field_name}' validation failed: {reason}")


class LicenseValidationError(LicenseKitError):
    """
    Aggregate failure carrying every issue found in one pass.
    """

    header = "License validation failed with the following issue(s):"

    def __init__(self, issues: Optional[Iterable[str]] = None):
        self.issues: List[str] = list(issues or [])
        super().__init__(self._render())

    def _render(self) -> str:
        lines = [self.header]
        if not self.issues:
            lines.append(" - (no details provided)")
        for issue in self.issues:
            lines.append(f" - {issue}")
        return "\n".join(lines)


class SchemaNonconformantError(LicenseValidationError):
    """
    Raised when a document does not conform to a schema.
    """

    header = "License does not conform to schema:"


class SchemaDefinitionError(LicenseValidationError):
    """
    Raised when a schema violates its own invariants.
    """

    header = "Schema validation failed:"
