from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError

from licensekit.core.errors import InvalidInputError, MissingFileError, SchemaDefinitionError
from licensekit.utils.json_safe import to_jsonable

from .schema import FieldDescriptor, LicenseSchema

_JSON_SUFFIXES = {".json"}
_YAML_SUFFIXES = {".yml", ".yaml"}

# lower-cased, underscore-free key -> model attribute
_FIELD_KEYS = {
    "name": "name",
    "type": "type",
    "signed": "signed",
    "required": "required",
    "defaultvalue": "default_value",
    "default": "default_value",
    "processor": "processor",
}
_SCHEMA_KEYS = {"name": "name", "fields": "fields"}


class FieldDefinitionIn(BaseModel):
    """One field entry as written in a schema file."""

    model_config = ConfigDict(extra="ignore")

    name: str
    type: str
    signed: bool = True
    required: bool = False
    default_value: Any = None
    processor: Optional[str] = None


class SchemaDefinitionIn(BaseModel):
    """Top-level schema file shape."""

    model_config = ConfigDict(extra="ignore")

    name: str
    fields: List[FieldDefinitionIn] = Field(default_factory=list)


def _fold_keys(raw: Dict[str, Any], known: Dict[str, str]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key, value in raw.items():
        mapped = known.get(str(key).lower().replace("_", ""))
        if mapped is not None:
            out[mapped] = value
    return out


def _normalize(raw: Any) -> Dict[str, Any]:
    if not isinstance(raw, dict):
        raise InvalidInputError("Schema definition must be a mapping with 'name' and 'fields'")
    data = _fold_keys(raw, _SCHEMA_KEYS)
    fields = data.get("fields")
    if fields is None:
        data["fields"] = []
    elif isinstance(fields, list):
        data["fields"] = [
            _fold_keys(item, _FIELD_KEYS) if isinstance(item, dict) else item for item in fields
        ]
    return data


def _format_pydantic_errors(err: ValidationError) -> List[str]:
    issues = []
    for e in err.errors():
        where = ".".join(str(p) for p in e.get("loc", ()))
        issues.append(f"{where}: {e.get('msg')}" if where else str(e.get("msg")))
    return issues


def schema_from_dict(raw: Any) -> LicenseSchema:
    """Build a LicenseSchema from a decoded JSON/YAML structure.

    Keys are matched case-insensitively; ``defaultValue`` and ``default_value``
    are both accepted. Shape errors and definition errors both surface as
    SchemaDefinitionError.
    """
    try:
        model = SchemaDefinitionIn.model_validate(_normalize(raw))
    except ValidationError as e:
        raise SchemaDefinitionError(_format_pydantic_errors(e)) from None

    fields = [
        FieldDescriptor(
            name=f.name,
            type=f.type,
            signed=f.signed,
            required=f.required,
            default_value=f.default_value,
            processor=f.processor,
        )
        for f in model.fields
    ]
    return LicenseSchema(name=model.name, fields=tuple(fields))


def schema_from_json(text: str) -> LicenseSchema:
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        raise InvalidInputError(f"Schema is not valid JSON: {e}") from None
    return schema_from_dict(raw)


def schema_from_yaml(text: str) -> LicenseSchema:
    try:
        raw = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise InvalidInputError(f"Schema is not valid YAML: {e}") from None
    return schema_from_dict(raw)


def schema_to_json(schema: LicenseSchema) -> str:
    return json.dumps(to_jsonable(schema.to_dict()), indent=2)


def schema_to_yaml(schema: LicenseSchema) -> str:
    return yaml.safe_dump(to_jsonable(schema.to_dict()), sort_keys=False, default_flow_style=False)


def load_schema(path: Union[str, Path]) -> LicenseSchema:
    """Load a schema file, choosing the format by extension and then by content."""
    p = Path(path)
    if not p.is_file():
        raise MissingFileError(str(p))
    text = p.read_text(encoding="utf-8-sig")
    suffix = p.suffix.lower()
    if suffix in _JSON_SUFFIXES:
        return schema_from_json(text)
    if suffix in _YAML_SUFFIXES:
        return schema_from_yaml(text)
    if text.lstrip().startswith("{"):
        return schema_from_json(text)
    return schema_from_yaml(text)


def save_schema(schema: LicenseSchema, path: Union[str, Path]) -> Path:
    """Write a schema as JSON or YAML depending on the file extension."""
    p = Path(path)
    suffix = p.suffix.lower()
    if suffix in _JSON_SUFFIXES:
        text = schema_to_json(schema)
    elif suffix in _YAML_SUFFIXES:
        text = schema_to_yaml(schema)
    else:
        raise InvalidInputError(
            f"Unsupported schema file extension '{p.suffix}'. Use .json, .yml or .yaml."
        )
    p.parent.mkdir(parents=True, exist_ok=True)
    p.write_text(text, encoding="utf-8")
    return p
