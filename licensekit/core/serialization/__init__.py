from .field_serializers import (
    FieldSerializer,
    default_serializers,
    new_serializer_registry,
    register_serializer,
    serialize_expiry_utc,
)
from .license_serializer import (
    canonical_bytes,
    canonical_json,
    document_to_dict,
    from_json,
    signing_exclusions,
    to_json,
)

__all__ = [
    "FieldSerializer",
    "canonical_bytes",
    "canonical_json",
    "default_serializers",
    "document_to_dict",
    "from_json",
    "new_serializer_registry",
    "register_serializer",
    "serialize_expiry_utc",
    "signing_exclusions",
    "to_json",
]
