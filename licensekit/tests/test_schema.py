from dataclasses import FrozenInstanceError
from datetime import UTC, datetime
from decimal import Decimal
from pathlib import Path

import pytest

from licensekit.core.errors import (
    InvalidInputError,
    MissingFileError,
    SchemaDefinitionError,
    TypeConversionError,
)
from licensekit.core.schema import (
    FieldDescriptor,
    LicenseSchema,
    convert_default,
    load_schema,
    save_schema,
    schema_from_dict,
    schema_from_json,
    schema_from_yaml,
)

YAML_SCHEMA = """
Name: Standard
Fields:
  - Name: LicenseId
    Type: string
    Required: true
    Processor: GenerateGuid
  - Name: ExpiryUtc
    Type: datetime
    Required: true
    DefaultValue: "2030-01-01T00:00:00Z"
  - Name: MaxUsers
    Type: int
    DefaultValue: 10
  - Name: Modules
    Type: list<string>
    DefaultValue: core, reports
  - Name: Notes
    Type: string
    Signed: false
"""


def _schema() -> LicenseSchema:
    return LicenseSchema(
        name="S",
        fields=(
            FieldDescriptor("LicenseId", "string", required=True),
            FieldDescriptor("MaxUsers", "int", default_value="25"),
            FieldDescriptor("Comment", "string", signed=False),
        ),
    )


def test_schema_lookups() -> None:
    schema = _schema()

    assert schema.get_field("maxusers").name == "MaxUsers"
    assert schema.get_field("nope") is None
    assert schema.field_names() == ["LicenseId", "MaxUsers", "Comment"]
    assert schema.signed_field_names() == ["LicenseId", "MaxUsers"]
    assert schema.unsigned_field_names() == ["Comment"]
    assert schema.required_field_names() == ["LicenseId"]
    assert schema.get_field("MaxUsers").converted_default() == 25


def test_schema_is_immutable() -> None:
    schema = _schema()

    with pytest.raises(FrozenInstanceError):
        schema.name = "other"
    with pytest.raises(FrozenInstanceError):
        schema.fields[0].type = "int"


def test_duplicate_names_are_listed_once() -> None:
    with pytest.raises(SchemaDefinitionError) as exc:
        LicenseSchema(
            name="S",
            fields=(FieldDescriptor("X", "string"), FieldDescriptor("x", "int"), FieldDescriptor("X", "bool")),
        )
    assert exc.value.issues == ["Field names must be unique (duplicates: X)."]


def test_every_definition_problem_is_reported_together() -> None:
    with pytest.raises(SchemaDefinitionError) as exc:
        LicenseSchema(
            name=" ",
            fields=(
                FieldDescriptor("Count", "int", default_value="abc"),
                FieldDescriptor("Blob", "bytes"),
                FieldDescriptor("", "string"),
            ),
        )
    issues = exc.value.issues

    assert issues[0] == "Schema name must not be empty."
    assert any(i.startswith("Field 'Count': Default value 'abc' is incompatible with type 'int'") for i in issues)
    assert any(i.startswith("Field 'Blob': Unsupported type 'bytes'") for i in issues)
    assert "Every field must have a non-empty Name." in issues
    assert str(exc.value).startswith("Schema validation failed:")


def test_schema_needs_fields() -> None:
    with pytest.raises(SchemaDefinitionError) as exc:
        LicenseSchema(name="Empty", fields=())
    assert exc.value.issues == ["Schema must define at least one field."]


def test_type_names_are_case_insensitive() -> None:
    schema = LicenseSchema(name="S", fields=(FieldDescriptor("Tags", "List<String>", default_value="a"),))

    assert schema.fields[0].is_list
    assert schema.fields[0].converted_default() == ["a"]


def test_convert_default_scalars() -> None:
    assert convert_default("int", " 42 ") == 42
    assert convert_default("int", 2.6) == 3
    assert convert_default("bool", "TRUE") is True
    assert convert_default("bool", 0) is False
    assert convert_default("double", "1.5") == 1.5
    assert convert_default("decimal", "1.10") == Decimal("1.10")
    assert convert_default("datetime", "2027-12-31") == datetime(2027, 12, 31, tzinfo=UTC)
    assert convert_default("string", 7) == "7"


def test_convert_default_lists() -> None:
    assert convert_default("list<int>", "[1, 2]") == [1, 2]
    assert convert_default("list<int>", "1, 2,3") == [1, 2, 3]
    assert convert_default("list<bool>", [1, "false"]) == [True, False]
    assert convert_default("list<string>", "solo") == ["solo"]
    # list parsing wins even for scalar types
    assert convert_default("string", "a,b") == ["a", "b"]
    # malformed JSON falls back to the scalar rule
    assert convert_default("string", "[oops") == "[oops"


def test_convert_default_failures() -> None:
    with pytest.raises(TypeConversionError) as exc:
        convert_default("int", "abc")
    assert str(exc.value) == "Failed to convert value 'abc' to type 'int'."

    with pytest.raises(TypeConversionError):
        convert_default("int", 2**40)
    with pytest.raises(TypeConversionError):
        convert_default("bool", "maybe")
    with pytest.raises(TypeConversionError):
        convert_default("list<int>", "1,x")


def test_summary_lists_each_field() -> None:
    text = _schema().summary()

    assert text.splitlines()[0] == "Schema: S"
    assert "  - LicenseId: string (Required) [Signed]" in text
    assert "  - MaxUsers: int [Signed] Default=25" in text
    assert "  - Comment: string" in text.splitlines()


def test_yaml_keys_are_matched_case_insensitively() -> None:
    schema = schema_from_yaml(YAML_SCHEMA)

    assert schema.name == "Standard"
    assert schema.get_field("LicenseId").processor == "GenerateGuid"
    assert schema.get_field("MaxUsers").converted_default() == 10
    assert schema.get_field("Modules").converted_default() == ["core", "reports"]
    assert schema.unsigned_field_names() == ["Notes"]


def test_json_accepts_camel_and_snake_case() -> None:
    schema = schema_from_json(
        '{"name": "S", "fields": ['
        '{"name": "A", "type": "int", "defaultValue": 1},'
        '{"name": "B", "type": "int", "default_value": 2}]}'
    )

    assert [fd.default_value for fd in schema.fields] == [1, 2]


def test_shape_errors_surface_as_schema_errors() -> None:
    with pytest.raises(SchemaDefinitionError) as exc:
        schema_from_dict({"name": "S", "fields": [{"name": "A"}]})
    assert any("fields.0.type" in issue for issue in exc.value.issues)

    with pytest.raises(InvalidInputError):
        schema_from_dict(["not", "a", "mapping"])
    with pytest.raises(InvalidInputError):
        schema_from_json("{not json")


def test_save_and_load_round_trip(tmp_path: Path) -> None:
    schema = schema_from_yaml(YAML_SCHEMA)

    for name in ("schema.json", "schema.yaml", "schema.yml"):
        path = save_schema(schema, tmp_path / name)
        loaded = load_schema(path)
        assert loaded.to_dict() == schema.to_dict()


def test_load_detects_format_from_content(tmp_path: Path) -> None:
    p = tmp_path / "schema.def"
    p.write_text('{"name": "S", "fields": [{"name": "A", "type": "string"}]}', encoding="utf-8")
    assert load_schema(p).field_names() == ["A"]

    p.write_text("name: S\nfields:\n  - name: B\n    type: bool\n", encoding="utf-8")
    assert load_schema(p).field_names() == ["B"]


def test_load_and_save_errors(tmp_path: Path) -> None:
    with pytest.raises(MissingFileError):
        load_schema(tmp_path / "missing.json")
    with pytest.raises(InvalidInputError):
        save_schema(_schema(), tmp_path / "schema.txt")
