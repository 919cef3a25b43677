from datetime import UTC, datetime

import pytest

from licensekit.core.document import MANDATORY_FIELDS, LicenseDocument
from licensekit.core.errors import FieldRejectedError, InvalidInputError, LicenseValidationError
from licensekit.core.results import ValidationResult
from licensekit.core.validation.field_validators import new_validator_registry, register_validator


def test_new_document_has_mandatory_keys_set_to_null():
    doc = LicenseDocument()

    assert doc.keys() == list(MANDATORY_FIELDS)
    assert all(doc.get(name) is None for name in MANDATORY_FIELDS)
    assert len(LicenseDocument(ensure_mandatory_keys=False)) == 0


def test_field_names_are_case_insensitive_and_keep_first_spelling():
    doc = LicenseDocument(ensure_mandatory_keys=False)
    doc.set("customerName", "Acme")
    doc.set("CUSTOMERNAME", " Globex ")

    assert doc["CustomerName"] == "Globex"
    assert "customername" in doc
    assert list(doc) == ["customerName"]


def test_writes_are_normalized_by_validators():
    doc = LicenseDocument()
    doc["LicenseId"] = "  LIC-7  "
    doc["ExpiryUtc"] = "2027-12-31T23:59:59Z"
    doc["MaxUsers"] = 10.0

    assert doc.license_id == "LIC-7"
    assert doc.expiry_utc == datetime(2027, 12, 31, 23, 59, 59, tzinfo=UTC)
    assert doc["MaxUsers"] == 10


def test_rejected_write_leaves_document_unchanged():
    doc = LicenseDocument()
    doc.set("MaxUsers", 5)

    with pytest.raises(FieldRejectedError) as exc:
        doc.set("maxusers", -1)

    assert exc.value.field_name == "maxusers"
    assert exc.value.reason == "MaxUsers must be non-negative"
    assert str(exc.value) == "Field 'maxusers' validation failed: MaxUsers must be non-negative"
    assert doc["MaxUsers"] == 5


def test_try_set_reports_instead_of_raising():
    doc = LicenseDocument()

    assert doc.try_set("LicenseId", "") == "LicenseId cannot be empty or whitespace"
    assert doc.try_set("Anything", object()).startswith("Unsupported field value type")
    assert doc.try_set("LicenseId", "ok") is None
    assert doc.license_id == "ok"


def test_unvalidated_fields_accept_any_variant_value():
    doc = LicenseDocument()
    doc.set("Features", ("a", "b"))
    doc.set("Limits", {"cpu": 4, "nested": {"on": True}})

    assert doc["Features"] == ["a", "b"]
    assert doc["Limits"] == {"cpu": 4, "nested": {"on": True}}

    with pytest.raises(InvalidInputError):
        doc.set("Blob", object())
    with pytest.raises(InvalidInputError):
        doc.set("  ", "value")


def test_require_distinguishes_absent_from_null():
    doc = LicenseDocument()

    assert doc.require("Signature") is None
    assert doc.get("Missing") is None
    assert doc.get("Missing", "fallback") == "fallback"
    with pytest.raises(LicenseValidationError) as exc:
        doc["Missing"]
    assert exc.value.issues == ["Required field 'Missing' is not present in the license"]


def test_ensure_mandatory_present_collects_every_problem():
    doc = LicenseDocument()

    with pytest.raises(LicenseValidationError) as exc:
        doc.ensure_mandatory_present()

    assert exc.value.issues == [
        "LicenseId: LicenseId is required and cannot be null",
        "ExpiryUtc: ExpiryUtc is required and cannot be null",
    ]
    assert " - LicenseId: LicenseId is required and cannot be null" in str(exc.value)

    doc.set("LicenseId", "L1")
    doc.set("ExpiryUtc", 2030)
    doc.ensure_mandatory_present()


def test_mandatory_field_without_validator_must_not_be_null():
    registry = new_validator_registry()
    registry.unregister("Signature")
    doc = LicenseDocument(validators=registry)
    doc.set("LicenseId", "L1")
    doc.set("ExpiryUtc", 2030)

    with pytest.raises(LicenseValidationError) as exc:
        doc.ensure_mandatory_present()
    assert exc.value.issues == ["Mandatory field 'Signature' is null"]


def test_missing_mandatory_key_is_reported():
    doc = LicenseDocument(ensure_mandatory_keys=False)
    doc.set("LicenseId", "L1")
    doc.set("ExpiryUtc", 2030)

    with pytest.raises(LicenseValidationError) as exc:
        doc.ensure_mandatory_present()
    assert exc.value.issues == ["Missing mandatory field 'Signature'"]


def test_document_uses_its_own_validator_registry():
    registry = new_validator_registry()
    register_validator("Region", lambda v: ValidationResult.accepted(str(v).upper()), registry=registry)

    scoped = LicenseDocument(validators=registry)
    plain = LicenseDocument()
    scoped.set("region", "eu")
    plain.set("region", "eu")

    assert scoped["Region"] == "EU"
    assert plain["Region"] == "eu"
    assert scoped.validators is registry
