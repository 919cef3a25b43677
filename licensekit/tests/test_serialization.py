import json
from datetime import UTC, datetime
from decimal import Decimal

import pytest

from licensekit.core.document import LicenseDocument
from licensekit.core.errors import InvalidInputError, LicenseValidationError
from licensekit.core.schema import FieldDescriptor, LicenseSchema
from licensekit.core.serialization import (
    canonical_bytes,
    document_to_dict,
    from_json,
    new_serializer_registry,
    register_serializer,
    signing_exclusions,
    to_json,
)


def _document() -> LicenseDocument:
    doc = LicenseDocument()
    doc.set("LicenseId", "L1")
    doc.set("ExpiryUtc", 2027)
    doc.set("MaxUsers", 5)
    return doc


def test_to_json_renders_expiry_as_utc_instant():
    data = json.loads(to_json(_document()))

    assert data == {"LicenseId": "L1", "ExpiryUtc": "2027-01-01T00:00:00Z", "Signature": None, "MaxUsers": 5}


def test_to_json_refuses_incomplete_documents():
    with pytest.raises(LicenseValidationError):
        to_json(LicenseDocument())
    assert json.loads(to_json(LicenseDocument(), validate=False))["LicenseId"] is None


def test_round_trip_preserves_fields():
    doc = _document()
    doc.set("Features", ["a", "b"])
    doc.set("Limits", {"cpu": 4})

    again = from_json(to_json(doc))
    assert again.to_dict() == doc.to_dict()
    assert again.expiry_utc == datetime(2027, 1, 1, tzinfo=UTC)


def test_from_json_reports_every_rejected_field():
    text = json.dumps({"LicenseId": " ", "ExpiryUtc": "whenever", "MaxUsers": -1, "Note": "fine"})

    with pytest.raises(LicenseValidationError) as exc:
        from_json(text)
    issues = exc.value.issues
    assert len(issues) == 3
    assert issues[0] == "Field 'LicenseId': LicenseId cannot be empty or whitespace"
    assert issues[1].startswith("Field 'ExpiryUtc': String value 'whenever'")
    assert issues[2] == "Field 'MaxUsers': MaxUsers must be non-negative"


def test_from_json_adds_missing_mandatory_keys():
    doc = from_json('{"LicenseId": "L9"}')

    assert doc.keys() == ["LicenseId", "ExpiryUtc", "Signature"]
    assert doc.expiry_utc is None


@pytest.mark.parametrize("text", ["", "   ", "{broken", "[1, 2]", '"text"'])
def test_from_json_rejects_non_objects(text):
    with pytest.raises(InvalidInputError):
        from_json(text)


def test_canonical_bytes_exact_form():
    doc = _document()
    doc.set("Signature", "c2ln")

    assert canonical_bytes(doc) == b'{"ExpiryUtc":"2027-01-01T00:00:00Z","LicenseId":"L1","MaxUsers":5}'


def test_canonical_bytes_ignore_insertion_order_and_nested_order():
    a = LicenseDocument(ensure_mandatory_keys=False)
    a.set("LicenseId", "L1")
    a.set("Meta", {"b": 1, "a": [True, None]})
    b = LicenseDocument(ensure_mandatory_keys=False)
    b.set("Meta", {"a": [True, None], "b": 1})
    b.set("LicenseId", "L1")

    assert canonical_bytes(a) == canonical_bytes(b)
    assert canonical_bytes(a) == b'{"LicenseId":"L1","Meta":{"a":[true,null],"b":1}}'


def test_canonical_bytes_exclusions_are_case_insensitive():
    doc = _document()
    doc.set("Comment", "not signed")

    assert b"Comment" not in canonical_bytes(doc, ["comment"])
    assert b"Comment" in canonical_bytes(doc)


def test_canonical_bytes_keep_non_ascii_text():
    doc = _document()
    doc.set("CustomerName", "Müller")

    assert "Müller".encode("utf-8") in canonical_bytes(doc)


def test_decimals_serialize_as_numbers():
    doc = _document()
    doc.set("Price", Decimal("9.50"))
    doc.set("Units", Decimal("3"))

    data = document_to_dict(doc)
    assert data["Price"] == 9.5
    assert data["Units"] == 3


def test_signing_exclusions_come_from_schema():
    schema = LicenseSchema(
        name="S",
        fields=(FieldDescriptor("LicenseId", "string"), FieldDescriptor("Comment", "string", signed=False)),
    )
    assert signing_exclusions(schema) == ["Comment"]


def test_custom_serializer_registry():
    registry = new_serializer_registry()
    register_serializer("CustomerName", lambda v: v.upper() if isinstance(v, str) else v, registry=registry)
    doc = _document()
    doc.set("CustomerName", "acme")

    assert document_to_dict(doc, registry)["CustomerName"] == "ACME"
    assert document_to_dict(doc)["CustomerName"] == "acme"


def test_from_json_rejects_numbers_too_large_for_a_float():
    digits = "9" * 400
    text = '{"LicenseId": "L1", "ExpiryUtc": ' + digits + ', "MaxUsers": ' + digits + ', "Signature": null}'

    with pytest.raises(LicenseValidationError) as exc:
        from_json(text)
    assert exc.value.issues[0].startswith("Field 'ExpiryUtc': Numeric value 999")
    assert exc.value.issues[1] == "Field 'MaxUsers': MaxUsers is out of range"
