from __future__ import annotations

import threading
from datetime import datetime
from typing import Any, Callable, Iterable, Optional, Tuple

from licensekit.core.coercion import format_utc, try_parse_datetime
from licensekit.core.registry import Registry

FieldSerializer = Callable[[Any], Any]


def serialize_expiry_utc(value: Any) -> Any:
    """ISO-8601 UTC for datetimes and parseable strings; anything else unchanged."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return format_utc(value)
    if isinstance(value, str):
        parsed = try_parse_datetime(value)
        return format_utc(parsed) if parsed is not None else value
    return value


def builtin_serializers() -> Iterable[Tuple[str, FieldSerializer]]:
    return [("ExpiryUtc", serialize_expiry_utc)]


def new_serializer_registry() -> Registry[FieldSerializer]:
    return Registry(kind="serializer", loader=builtin_serializers)


_default: Optional[Registry[FieldSerializer]] = None
_default_lock = threading.Lock()


def default_serializers() -> Registry[FieldSerializer]:
    global _default
    if _default is None:
        with _default_lock:
            if _default is None:
                _default = new_serializer_registry()
    return _default


def register_serializer(
    field_name: str,
    serializer: FieldSerializer,
    *,
    registry: Optional[Registry[FieldSerializer]] = None,
) -> None:
    target = registry if registry is not None else default_serializers()
    target.register(field_name, serializer)
