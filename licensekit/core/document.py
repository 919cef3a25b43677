from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .errors import FieldRejectedError, InvalidInputError, LicenseValidationError
from .registry import Registry
from .validation.field_validators import FieldValidator, default_validators
from .values import Variant, to_variant

MANDATORY_FIELDS: Tuple[str, ...] = ("LicenseId", "ExpiryUtc", "Signature")


def _key(name: str) -> str:
    return name.casefold()


class LicenseDocument:
    """
    Case-insensitive field map where every write goes through a validator.

    The first spelling used for a field name is kept for output. There is no
    deletion API; a field can only be overwritten with another validated value.

    Security notes:
    - a rejected write leaves the document unchanged
    - values outside the Variant set never reach storage
    """

    def __init__(
        self,
        *,
        validators: Optional[Registry[FieldValidator]] = None,
        ensure_mandatory_keys: bool = True,
    ) -> None:
        self._validators = validators if validators is not None else default_validators()
        # casefolded name -> (display name, value)
        self._values: Dict[str, Tuple[str, Variant]] = {}
        if ensure_mandatory_keys:
            self.ensure_mandatory_keys()

    def ensure_mandatory_keys(self) -> None:
        """Add any absent mandatory field as null (no validation)."""
        for name in MANDATORY_FIELDS:
            if _key(name) not in self._values:
                self._values[_key(name)] = (name, None)

    @property
    def validators(self) -> Registry[FieldValidator]:
        return self._validators

    def _check(self, name: str, value: Any) -> Tuple[Optional[Variant], Optional[str]]:
        if not isinstance(name, str) or not name.strip():
            raise InvalidInputError("Field name must be a non-empty string")
        validator = self._validators.get(name)
        if validator is None:
            return to_variant(value), None
        result = validator(value)
        if not result.is_valid:
            return None, result.error
        return to_variant(result.value), None

    def _store(self, name: str, value: Variant) -> None:
        existing = self._values.get(_key(name))
        display = existing[0] if existing is not None else name
        self._values[_key(name)] = (display, value)

    def set(self, name: str, value: Any) -> None:
        """Validate and store a field value.

        Raises FieldRejectedError when the field validator rejects the value
        and InvalidInputError for blank names or unsupported value types.
        """
        normalized, error = self._check(name, value)
        if error is not None:
            raise FieldRejectedError(name, error)
        self._store(name, normalized)

    def try_set(self, name: str, value: Any) -> Optional[str]:
        """Non-raising form of set(); returns the rejection reason or None."""
        try:
            normalized, error = self._check(name, value)
        except InvalidInputError as e:
            return str(e)
        if error is not None:
            return error
        self._store(name, normalized)
        return None

    def get(self, name: str, default: Any = None) -> Any:
        if not isinstance(name, str):
            return default
        found = self._values.get(_key(name))
        return found[1] if found is not None else default

    def require(self, name: str) -> Any:
        """Return a field value, raising LicenseValidationError when the key is absent."""
        if not isinstance(name, str) or _key(name) not in self._values:
            raise LicenseValidationError([f"Required field '{name}' is not present in the license"])
        return self._values[_key(name)][1]

    def __getitem__(self, name: str) -> Any:
        return self.require(name)

    def __setitem__(self, name: str, value: Any) -> None:
        self.set(name, value)

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and _key(name) in self._values

    def __iter__(self) -> Iterator[str]:
        return iter([display for display, _ in self._values.values()])

    def __len__(self) -> int:
        return len(self._values)

    def __repr__(self) -> str:
        return f"LicenseDocument({self.to_dict()!r})"

    def keys(self) -> List[str]:
        return list(self)

    def items(self) -> List[Tuple[str, Variant]]:
        return list(self._values.values())

    def to_dict(self) -> Dict[str, Variant]:
        """Shallow copy of the stored fields keyed by display name."""
        return {display: value for display, value in self._values.values()}

    def ensure_mandatory_present(self) -> None:
        """Raise one LicenseValidationError listing every mandatory-field problem."""
        issues: List[str] = []
        for name in MANDATORY_FIELDS:
            if name not in self:
                issues.append(f"Missing mandatory field '{name}'")
                continue
            value = self.get(name)
            validator = self._validators.get(name)
            if validator is not None:
                result = validator(value)
                if not result.is_valid:
                    issues.append(f"{name}: {result.error}")
            elif value is None:
                issues.append(f"Mandatory field '{name}' is null")
        if issues:
            raise LicenseValidationError(issues)

    @property
    def license_id(self) -> Optional[str]:
        return self.get("LicenseId")

    @property
    def expiry_utc(self) -> Optional[datetime]:
        return self.get("ExpiryUtc")

    @property
    def signature(self) -> Optional[str]:
        return self.get("Signature")
