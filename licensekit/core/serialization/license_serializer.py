"""JSON forms of a LicenseDocument.

Two forms exist:
- the pretty form for files and humans (``to_json``)
- the canonical bytes a signature covers (``canonical_bytes``)

Security notes:
- canonical bytes use sorted keys and fixed separators so that signer and
  verifier produce identical input regardless of field order
- the signature field is never part of the canonical bytes
"""

from __future__ import annotations

import json
from typing import Any, Dict, Iterable, List, Optional

from licensekit.core.document import LicenseDocument
from licensekit.core.errors import InvalidInputError, LicenseValidationError
from licensekit.core.registry import Registry
from licensekit.core.schema.schema import LicenseSchema
from licensekit.core.validation.field_validators import FieldValidator
from licensekit.utils.json_safe import to_jsonable

from .field_serializers import FieldSerializer, default_serializers

SIGNATURE_FIELD = "Signature"


def document_to_dict(
    document: LicenseDocument,
    serializers: Optional[Registry[FieldSerializer]] = None,
) -> Dict[str, Any]:
    """JSON-ready dict; per-field serializers first, then the generic conversion."""
    registry = serializers if serializers is not None else default_serializers()
    out: Dict[str, Any] = {}
    for name, value in document.items():
        serializer = registry.get(name)
        if serializer is not None:
            value = serializer(value)
        out[name] = to_jsonable(value)
    return out


def to_json(
    document: LicenseDocument,
    *,
    validate: bool = True,
    indent: Optional[int] = 2,
    serializers: Optional[Registry[FieldSerializer]] = None,
) -> str:
    if validate:
        document.ensure_mandatory_present()
    return json.dumps(document_to_dict(document, serializers), indent=indent, ensure_ascii=False)


def from_json(
    text: str,
    validators: Optional[Registry[FieldValidator]] = None,
) -> LicenseDocument:
    """Parse a license JSON object, writing every field through its validator.

    All rejected fields are reported together in one LicenseValidationError.
    Mandatory keys missing from the JSON are added as null.
    """
    if text is None or not str(text).strip():
        raise InvalidInputError("License JSON is empty")
    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        raise InvalidInputError(f"License is not valid JSON: {e}") from None
    if not isinstance(raw, dict):
        raise InvalidInputError("License JSON root must be an object")

    document = LicenseDocument(validators=validators, ensure_mandatory_keys=False)
    issues: List[str] = []
    for name, value in raw.items():
        error = document.try_set(name, value)
        if error is not None:
            issues.append(f"Field '{name}': {error}")
    if issues:
        raise LicenseValidationError(issues)

    document.ensure_mandatory_keys()
    return document


def canonical_json(obj: Any) -> bytes:
    return json.dumps(obj, sort_keys=True, separators=(",", ":"), ensure_ascii=False).encode("utf-8")


def canonical_bytes(
    document: LicenseDocument,
    excluded_fields: Iterable[str] = (),
    serializers: Optional[Registry[FieldSerializer]] = None,
) -> bytes:
    """Compact, key-sorted UTF-8 JSON of the document without the signature.

    ``excluded_fields`` are matched case-insensitively at the top level only.
    """
    exclude = {SIGNATURE_FIELD.casefold()}
    exclude.update(name.casefold() for name in excluded_fields)
    payload = {
        name: value
        for name, value in document_to_dict(document, serializers).items()
        if name.casefold() not in exclude
    }
    return canonical_json(payload)


def signing_exclusions(schema: LicenseSchema) -> List[str]:
    """Schema fields marked ``signed: false``."""
    return schema.unsigned_field_names()
