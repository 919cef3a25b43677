from __future__ import annotations

import json
import logging
import threading
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple, Type, Union

from licensekit.core.errors import InvalidInputError, MissingFileError
from licensekit.core.registry import Registry

from .base import Canonicalizer, normalize_extension
from .inp import InpCanonicalizer
from .text import TextCanonicalizer

log = logging.getLogger("licensekit.canonicalization")

# identifier (and aliases) -> implementation
CANONICALIZER_TYPES: Dict[str, Type[Canonicalizer]] = {
    "text": TextCanonicalizer,
    "txt": TextCanonicalizer,
    "generic": TextCanonicalizer,
    "inp": InpCanonicalizer,
    "epanet": InpCanonicalizer,
}


def canonicalizer_type(identifier: str) -> Type[Canonicalizer]:
    found = CANONICALIZER_TYPES.get((identifier or "").strip().lower())
    if found is None:
        raise InvalidInputError(
            f"Unknown canonicalizer '{identifier}'. Known: {', '.join(sorted(CANONICALIZER_TYPES))}"
        )
    return found


def builtin_canonicalizers() -> Iterable[Tuple[str, Canonicalizer]]:
    entries: List[Tuple[str, Canonicalizer]] = []
    for c in (TextCanonicalizer(), InpCanonicalizer()):
        entries.extend((ext, c) for ext in sorted(c.extensions))
    return entries


def new_canonicalizer_registry() -> Registry[Canonicalizer]:
    """Extension -> canonicalizer registry preloaded with ``.txt`` and ``.inp``."""
    return Registry(kind="canonicalizer", loader=builtin_canonicalizers)


_default: Optional[Registry[Canonicalizer]] = None
_default_lock = threading.Lock()


def default_canonicalizers() -> Registry[Canonicalizer]:
    global _default
    if _default is None:
        with _default_lock:
            if _default is None:
                _default = new_canonicalizer_registry()
    return _default


def register_canonicalizer(
    canonicalizer: Canonicalizer,
    *,
    registry: Optional[Registry[Canonicalizer]] = None,
) -> None:
    """Register a canonicalizer under each of its extensions."""
    if canonicalizer is None or not canonicalizer.extensions:
        raise InvalidInputError("canonicalizer must declare at least one extension")
    target = registry if registry is not None else default_canonicalizers()
    for ext in sorted(canonicalizer.extensions):
        target.register(ext, canonicalizer)


def canonicalizer_for_path(
    path: Union[str, Path],
    registry: Optional[Registry[Canonicalizer]] = None,
) -> Optional[Canonicalizer]:
    target = registry if registry is not None else default_canonicalizers()
    ext = normalize_extension(Path(path).suffix)
    if not ext:
        return None
    return target.get(ext)


def _group_config(raw: object) -> Dict[str, List[str]]:
    """Accept ``{".inp": "inp"}`` or ``{"inp": [".inp", ".net"]}``; return id -> extensions."""
    if not isinstance(raw, dict):
        raise InvalidInputError("Canonicalizer config must be a JSON object")
    grouped: Dict[str, List[str]] = {}
    for key, value in raw.items():
        if isinstance(value, str):
            grouped.setdefault(value.strip().lower(), []).append(str(key))
        elif isinstance(value, list) and all(isinstance(v, str) for v in value):
            grouped.setdefault(str(key).strip().lower(), []).extend(value)
        else:
            raise InvalidInputError(f"Invalid canonicalizer config entry for '{key}'")
    return grouped


def load_canonicalizer_config(
    path: Union[str, Path],
    registry: Optional[Registry[Canonicalizer]] = None,
) -> List[str]:
    """Register canonicalizers described by a JSON config file.

    One canonicalizer instance is built per identifier and registered for
    all of that identifier's extensions. Returns the registered extensions.
    """
    p = Path(path)
    if not p.is_file():
        raise MissingFileError(str(p))
    try:
        raw = json.loads(p.read_text(encoding="utf-8-sig"))
    except json.JSONDecodeError as e:
        raise InvalidInputError(f"Could not parse canonicalizer config JSON: {e}") from None

    grouped = _group_config(raw)
    # resolve every identifier before registering anything
    built = [canonicalizer_type(identifier)(extensions) for identifier, extensions in grouped.items()]

    target = registry if registry is not None else default_canonicalizers()
    registered: List[str] = []
    for c in built:
        register_canonicalizer(c, registry=target)
        registered.extend(sorted(c.extensions))
    log.info("loaded %d canonicalizer extension(s) from %s", len(registered), p)
    return registered
