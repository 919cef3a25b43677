"""Field-level validators.

Field validators answer "is this value valid for this field?" and return the
normalized value to store. They run on every write into a LicenseDocument.
Structural questions (is a required field present, does a field have the
schema's type) belong to the schema validator instead.
"""

from __future__ import annotations

import math
import threading
from typing import Any, Callable, Iterable, Optional, Tuple

from licensekit.core.coercion import describe_type, is_numeric, normalize_datetime
from licensekit.core.registry import Registry
from licensekit.core.results import ValidationResult

FieldValidator = Callable[[Any], ValidationResult]


def validate_license_id(value: Any) -> ValidationResult:
    """LicenseId: required, non-blank string; surrounding whitespace is trimmed."""
    if value is None:
        return ValidationResult.rejected("LicenseId is required and cannot be null")
    if isinstance(value, str):
        if not value.strip():
            return ValidationResult.rejected("LicenseId cannot be empty or whitespace")
        return ValidationResult.accepted(value.strip())
    return ValidationResult.rejected(f"LicenseId must be a string, but was {describe_type(value)}")


def validate_expiry_utc(value: Any) -> ValidationResult:
    """ExpiryUtc: required; any input the date/time ladder understands."""
    if value is None:
        return ValidationResult.rejected("ExpiryUtc is required and cannot be null")
    return normalize_datetime(value)


def validate_signature(value: Any) -> ValidationResult:
    """Signature: null means unsigned; otherwise a non-blank string."""
    if value is None:
        return ValidationResult.accepted_null()
    if isinstance(value, str):
        if not value.strip():
            return ValidationResult.rejected("Signature cannot be empty or whitespace if provided")
        return ValidationResult.accepted(value)
    return ValidationResult.rejected(
        f"Signature must be a string or null, but was {describe_type(value)}"
    )


def validate_max_users(value: Any) -> ValidationResult:
    if value is None:
        return ValidationResult.accepted_null()
    numeric, number = is_numeric(value)
    if not numeric:
        return ValidationResult.rejected(f"MaxUsers must be a number, but was {describe_type(value)}")
    if number < 0:
        return ValidationResult.rejected("MaxUsers must be non-negative")
    if not math.isfinite(number):
        return ValidationResult.rejected("MaxUsers is out of range")
    if number % 1 != 0:
        return ValidationResult.rejected("MaxUsers must be an integer")
    return ValidationResult.accepted(value if isinstance(value, int) else int(number))


def validate_customer_name(value: Any) -> ValidationResult:
    if value is None:
        return ValidationResult.accepted_null()
    if isinstance(value, str):
        if not value.strip():
            return ValidationResult.rejected("CustomerName cannot be empty or whitespace")
        return ValidationResult.accepted(value.strip())
    return ValidationResult.rejected(
        f"CustomerName must be a string, but was {describe_type(value)}"
    )


def builtin_validators() -> Iterable[Tuple[str, FieldValidator]]:
    """Built-in validators, keyed by field name."""
    return [
        ("LicenseId", validate_license_id),
        ("ExpiryUtc", validate_expiry_utc),
        ("Signature", validate_signature),
        ("MaxUsers", validate_max_users),
        ("CustomerName", validate_customer_name),
    ]


def new_validator_registry() -> Registry[FieldValidator]:
    return Registry(kind="validator", loader=builtin_validators)


_default: Optional[Registry[FieldValidator]] = None
_default_lock = threading.Lock()


def default_validators() -> Registry[FieldValidator]:
    """Process-wide validator registry used when no registry is passed."""
    global _default
    if _default is None:
        with _default_lock:
            if _default is None:
                _default = new_validator_registry()
    return _default


def register_validator(
    field_name: str,
    validator: FieldValidator,
    *,
    registry: Optional[Registry[FieldValidator]] = None,
) -> None:
    """Add or replace the validator for ``field_name``."""
    target = registry if registry is not None else default_validators()
    target.register(field_name, validator)
