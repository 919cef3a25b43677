from __future__ import annotations

import json
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional, Sequence, Tuple

from licensekit.core.coercion import is_numeric, try_parse_datetime
from licensekit.core.errors import InvalidInputError, SchemaDefinitionError, TypeConversionError
from licensekit.core.values import ensure_utc

ALLOWED_TYPES: Tuple[str, ...] = (
    "string",
    "int",
    "double",
    "decimal",
    "bool",
    "datetime",
    "list<string>",
    "list<int>",
    "list<double>",
    "list<bool>",
)

_INT32_MIN = -(2**31)
_INT32_MAX = 2**31 - 1


def list_inner_type(type_name: str) -> Optional[str]:
    """Return ``T`` for ``list<T>`` (case-insensitive), else None."""

    t = (type_name or "").strip().lower()
    if t.startswith("list<") and t.endswith(">"):
        return t[5:-1].strip()
    return None


@dataclass(frozen=True, slots=True)
class FieldDescriptor:
    """One schema entry describing a single license field.

    - signed: the field is part of the bytes that get signed
    - required: a conforming document must carry a non-null value
    - default_value: used when the caller supplies nothing; must convert to ``type``
    - processor: name of a field processor run during license creation
    """

    name: str
    type: str
    signed: bool = True
    required: bool = False
    default_value: Any = None
    processor: Optional[str] = None

    @property
    def normalized_type(self) -> str:
        return (self.type or "").strip().lower()

    @property
    def is_list(self) -> bool:
        return list_inner_type(self.type) is not None

    def converted_default(self) -> Any:
        """The default value converted to the declared type (None when unset)."""
        if self.default_value is None:
            return None
        return convert_default(self.type, self.default_value)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "name": self.name,
            "type": self.type,
            "signed": self.signed,
            "required": self.required,
        }
        if self.default_value is not None:
            out["defaultValue"] = self.default_value
        if self.processor is not None:
            out["processor"] = self.processor
        return out


@dataclass(frozen=True, slots=True)
class LicenseSchema:
    """Immutable, self-checked description of the fields a license may carry.

    Construction enumerates every definition problem and raises a single
    SchemaDefinitionError, so a schema instance is always valid and may be
    shared by any number of documents.
    """

    name: str
    fields: Tuple[FieldDescriptor, ...] = field(default_factory=tuple)

    def __post_init__(self) -> None:
        object.__setattr__(self, "fields", tuple(self.fields or ()))
        errors = check_schema_definition(self.name, self.fields)
        if errors:
            raise SchemaDefinitionError(errors)

    def get_field(self, field_name: str) -> Optional[FieldDescriptor]:
        """Case-insensitive descriptor lookup."""
        wanted = (field_name or "").casefold()
        for fd in self.fields:
            if fd.name.casefold() == wanted:
                return fd
        return None

    def field_names(self) -> List[str]:
        return [fd.name for fd in self.fields]

    def signed_field_names(self) -> List[str]:
        return [fd.name for fd in self.fields if fd.signed]

    def unsigned_field_names(self) -> List[str]:
        return [fd.name for fd in self.fields if not fd.signed]

    def required_field_names(self) -> List[str]:
        return [fd.name for fd in self.fields if fd.required]

    def summary(self) -> str:
        lines = [f"Schema: {self.name}", "Fields:"]
        for fd in self.fields:
            required = " (Required)" if fd.required else ""
            signed = " [Signed]" if fd.signed else ""
            default = f" Default={fd.default_value}" if fd.default_value is not None else ""
            processor = f" Processor={fd.processor}" if fd.processor else ""
            lines.append(f"  - {fd.name}: {fd.type}{required}{signed}{default}{processor}")
        return "\n".join(lines)

    def to_dict(self) -> Dict[str, Any]:
        return {"name": self.name, "fields": [fd.to_dict() for fd in self.fields]}


def check_schema_definition(name: str, fields: Sequence[FieldDescriptor]) -> List[str]:
    """Return every problem with a schema definition (empty list when valid)."""

    errors: List[str] = []
    if not isinstance(name, str) or not name.strip():
        errors.append("Schema name must not be empty.")

    if not fields:
        errors.append("Schema must define at least one field.")
        return errors

    seen: Dict[str, int] = {}
    spelled: Dict[str, str] = {}
    for fd in fields:
        key = (fd.name or "").casefold()
        seen[key] = seen.get(key, 0) + 1
        spelled.setdefault(key, fd.name)
    duplicates = [spelled[k] for k, count in seen.items() if count > 1 and k]
    if duplicates:
        errors.append(f"Field names must be unique (duplicates: {', '.join(duplicates)}).")

    for fd in fields:
        if not isinstance(fd.name, str) or not fd.name.strip():
            errors.append("Every field must have a non-empty Name.")

        if not isinstance(fd.type, str) or not fd.type.strip():
            errors.append(f"Field '{fd.name}': Type must not be empty.")
            continue

        if fd.normalized_type not in ALLOWED_TYPES:
            errors.append(
                f"Field '{fd.name}': Unsupported type '{fd.type}'. "
                f"Allowed types: {', '.join(ALLOWED_TYPES)}"
            )
            continue

        if fd.default_value is not None:
            try:
                convert_default(fd.type, fd.default_value)
            except TypeConversionError as e:
                errors.append(
                    f"Field '{fd.name}': Default value '{fd.default_value}' "
                    f"is incompatible with type '{fd.type}' ({e})."
                )
    return errors


def _split_elements(value: Any) -> Optional[List[Any]]:
    """List forms of a default value, in precedence order.

    1) a non-string sequence is used as-is
    2) a string shaped like a JSON array is decoded
    3) a string containing a comma is split on commas
    A JSON-looking string that fails to decode is treated as a scalar.
    """

    if isinstance(value, (list, tuple)):
        return list(value)
    if not isinstance(value, str):
        return None
    s = value.strip()
    if s.startswith("[") and s.endswith("]"):
        try:
            decoded = json.loads(s)
        except json.JSONDecodeError:
            return None
        if isinstance(decoded, list):
            return decoded
    if "," in s:
        return [part.strip() for part in s.split(",")]
    return None


def _fail(type_name: str, value: Any) -> TypeConversionError:
    return TypeConversionError(f"Failed to convert value '{value}' to type '{type_name}'.")


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        result = value
    elif isinstance(value, (float, Decimal)):
        numeric, number = is_numeric(value)
        if not numeric or number != number or number in (float("inf"), float("-inf")):
            raise _fail("int", value)
        result = round(number)
    elif isinstance(value, str):
        try:
            result = int(value.strip())
        except ValueError:
            raise _fail("int", value) from None
    else:
        raise _fail("int", value)
    if not _INT32_MIN <= result <= _INT32_MAX:
        raise _fail("int", value)
    return result


def _to_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    numeric, number = is_numeric(value)
    if numeric:
        return number != 0
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered == "true":
            return True
        if lowered == "false":
            return False
    raise _fail("bool", value)


def _convert_scalar(type_name: str, value: Any) -> Any:
    if value is None:
        raise _fail(type_name, value)
    if type_name == "string":
        return str(value)
    if type_name == "int":
        return _to_int(value)
    if type_name == "double":
        if isinstance(value, bool):
            return float(value)
        try:
            return float(value.strip() if isinstance(value, str) else value)
        except (TypeError, ValueError):
            raise _fail(type_name, value) from None
    if type_name == "decimal":
        if isinstance(value, bool):
            return Decimal(int(value))
        try:
            return Decimal(str(value).strip())
        except InvalidOperation:
            raise _fail(type_name, value) from None
    if type_name == "bool":
        return _to_bool(value)
    if type_name == "datetime":
        if isinstance(value, datetime):
            try:
                return ensure_utc(value)
            except InvalidInputError:
                raise _fail(type_name, value) from None
        parsed = try_parse_datetime(str(value))
        if parsed is None:
            raise _fail(type_name, value)
        return parsed
    raise _fail(type_name, value)


def convert_default(type_name: str, value: Any) -> Any:
    """Convert a schema default value to ``type_name``.

    List parsing is tried first for every declared type, then the scalar rule.
    For ``list<T>`` elements use ``T``; a lone scalar becomes a one-item list.
    Raises TypeConversionError.
    """

    normalized = (type_name or "").strip().lower()
    inner = list_inner_type(normalized)
    element_type = inner if inner is not None else normalized

    elements = _split_elements(value)
    if elements is not None:
        return [_convert_scalar(element_type, item) for item in elements]
    if inner is not None:
        return [_convert_scalar(element_type, value)]
    return _convert_scalar(element_type, value)
