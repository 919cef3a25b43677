from .loader import load_schema, save_schema, schema_from_dict, schema_from_json, schema_from_yaml
from .schema import (
    ALLOWED_TYPES,
    FieldDescriptor,
    LicenseSchema,
    check_schema_definition,
    convert_default,
    list_inner_type,
)

__all__ = [
    "ALLOWED_TYPES",
    "FieldDescriptor",
    "LicenseSchema",
    "check_schema_definition",
    "convert_default",
    "list_inner_type",
    "load_schema",
    "save_schema",
    "schema_from_dict",
    "schema_from_json",
    "schema_from_yaml",
]
