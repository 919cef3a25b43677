"""Field processors.

A processor derives a field's value during schema-driven license creation,
before the field validator sees it. Processors are looked up by the name in a
field descriptor's ``processor`` entry.
"""

from __future__ import annotations

import threading
import uuid
from datetime import UTC, datetime
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from licensekit.core.canonicalization.registry import canonicalizer_for_path
from licensekit.core.errors import InvalidInputError, MissingFileError
from licensekit.core.hashing import hash_text_file, sha256_file
from licensekit.core.registry import Registry

from .context import ProcessorContext

FieldProcessor = Callable[[Any, ProcessorContext], Any]

DEFAULT_PREFIX = "PREFIX-"


def _truthy(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in ("1", "true", "yes", "on")
    return bool(value)


def _hash_one(path: str, ctx: ProcessorContext) -> str:
    full = ctx.resolve_path(path)
    if not full.is_file():
        raise MissingFileError(str(full))
    if _truthy(ctx.parameter("canonicalize")) and ctx.canonicalizers is not None:
        canonicalizer = canonicalizer_for_path(full, ctx.canonicalizers)
        if canonicalizer is not None:
            return hash_text_file(full, canonicalizer, ctx.encoding)
    return sha256_file(full)


def hash_file(value: Any, ctx: ProcessorContext) -> Optional[str]:
    """Lowercase hex SHA-256 of one file; relative paths use the working directory."""
    if value is None:
        return None
    if not isinstance(value, str):
        raise InvalidInputError(f"HashFile processor expects a path string, got {type(value).__name__}")
    return _hash_one(value, ctx)


def hash_files(value: Any, ctx: ProcessorContext) -> Optional[Dict[str, str]]:
    """Map each given path (as written) to its digest."""
    if value is None:
        return None
    if isinstance(value, str):
        paths: List[Any] = [value]
    elif isinstance(value, (list, tuple)):
        paths = list(value)
    else:
        raise InvalidInputError(
            f"HashFiles processor expects a list of paths or a path string, got {type(value).__name__}"
        )
    out: Dict[str, str] = {}
    for p in paths:
        if not isinstance(p, str):
            raise InvalidInputError(f"HashFiles processor expects path strings, got {type(p).__name__}")
        out[p] = _hash_one(p, ctx)
    return out


def generate_guid(value: Any, ctx: ProcessorContext) -> str:
    return str(uuid.uuid4())


def current_timestamp(value: Any, ctx: ProcessorContext) -> datetime:
    return datetime.now(UTC)


def to_upper(value: Any, ctx: ProcessorContext) -> Optional[str]:
    return None if value is None else str(value).upper()


def to_lower(value: Any, ctx: ProcessorContext) -> Optional[str]:
    return None if value is None else str(value).lower()


def pass_through(value: Any, ctx: ProcessorContext) -> Any:
    return value


def prefix(value: Any, ctx: ProcessorContext) -> Optional[str]:
    """Prepend ``parameters["prefix"]`` (default ``PREFIX-``)."""
    if value is None:
        return None
    return f"{ctx.parameter('prefix', DEFAULT_PREFIX)}{value}"


def builtin_processors() -> Iterable[Tuple[str, FieldProcessor]]:
    return [
        ("HashFile", hash_file),
        ("HashFiles", hash_files),
        ("GenerateGuid", generate_guid),
        ("CurrentTimestamp", current_timestamp),
        ("ToUpper", to_upper),
        ("ToLower", to_lower),
        ("PassThrough", pass_through),
        ("Prefix", prefix),
    ]


def new_processor_registry() -> Registry[FieldProcessor]:
    return Registry(kind="processor", loader=builtin_processors)


_default: Optional[Registry[FieldProcessor]] = None
_default_lock = threading.Lock()


def default_processors() -> Registry[FieldProcessor]:
    global _default
    if _default is None:
        with _default_lock:
            if _default is None:
                _default = new_processor_registry()
    return _default


def register_processor(
    name: str,
    processor: FieldProcessor,
    *,
    registry: Optional[Registry[FieldProcessor]] = None,
) -> None:
    """Add or replace a processor; a built-in name is overridden."""
    target = registry if registry is not None else default_processors()
    target.register(name, processor)
