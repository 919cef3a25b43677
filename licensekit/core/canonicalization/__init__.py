"""File canonicalization.

Canonicalizers reduce a text file to a stable form before hashing so that
cosmetic edits (line endings, spacing, comments) do not change the digest.
They are pure functions over text; file I/O lives in licensekit.core.hashing.
"""

from .base import Canonicalizer, normalize_extension
from .inp import InpCanonicalizer
from .registry import (
    CANONICALIZER_TYPES,
    canonicalizer_for_path,
    canonicalizer_type,
    default_canonicalizers,
    load_canonicalizer_config,
    new_canonicalizer_registry,
    register_canonicalizer,
)
from .text import TextCanonicalizer

__all__ = [
    "CANONICALIZER_TYPES",
    "Canonicalizer",
    "InpCanonicalizer",
    "TextCanonicalizer",
    "canonicalizer_for_path",
    "canonicalizer_type",
    "default_canonicalizers",
    "load_canonicalizer_config",
    "new_canonicalizer_registry",
    "normalize_extension",
    "register_canonicalizer",
]
