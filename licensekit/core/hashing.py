"""SHA-256 helpers for license file hashes.

Text files may be canonicalized before hashing; everything else is hashed as
raw bytes. Digests are lowercase hex.
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import TYPE_CHECKING, List, Optional, Union

from .errors import InvalidInputError, MissingFileError

if TYPE_CHECKING:
    from .canonicalization.base import Canonicalizer
    from .registry import Registry

PathLike = Union[str, Path]

# accepted name -> Python codec; encoding never emits a BOM
_ENCODINGS = {
    "utf-8": "utf-8",
    "utf-16": "utf-16-le",
    "utf-16be": "utf-16-be",
    "utf-32": "utf-32-le",
    "ascii": "ascii",
    "us-ascii": "ascii",
    "latin1": "latin-1",
}

_BOM = "\ufeff"


def resolve_encoding(name: str) -> str:
    """Map an accepted encoding name to a Python codec (case-insensitive)."""
    codec = _ENCODINGS.get((name or "").strip().lower())
    if codec is None:
        raise InvalidInputError(
            f"Unsupported encoding: {name}. Supported: {', '.join(_ENCODINGS)}"
        )
    return codec


def sha256_hex(text: str, encoding: str = "utf-8") -> str:
    if text is None:
        raise InvalidInputError("text is required")
    return hashlib.sha256(text.encode(resolve_encoding(encoding))).hexdigest()


def sha256_file(path: PathLike, *, chunk_size: int = 1024 * 1024) -> str:
    """Stream SHA-256 of a file's raw bytes.

    Time:  O(n)
    Space: O(1)
    """

    p = Path(path)
    if not p.is_file():
        raise MissingFileError(str(p))
    h = hashlib.sha256()
    with p.open("rb") as f:
        while True:
            chunk = f.read(chunk_size)
            if not chunk:
                break
            h.update(chunk)
    return h.hexdigest()


def read_text(path: PathLike, encoding: str = "utf-8") -> str:
    """Read a text file; a leading byte-order mark is dropped."""
    p = Path(path)
    if not p.is_file():
        raise MissingFileError(str(p))
    codec = resolve_encoding(encoding)
    try:
        text = p.read_bytes().decode(codec)
    except UnicodeDecodeError:
        raise InvalidInputError(f"{p} is not valid {encoding} text") from None
    return text[1:] if text.startswith(_BOM) else text


def hash_text_file(
    path: PathLike,
    canonicalizer: Optional["Canonicalizer"] = None,
    encoding: str = "utf-8",
) -> str:
    """Hash a text file, canonicalizing it first when a canonicalizer is given."""
    text = read_text(path, encoding)
    if canonicalizer is not None:
        text = canonicalizer.canonicalize(text)
    return sha256_hex(text, encoding)


def hash_file_for_extension(
    path: PathLike,
    registry: Optional["Registry[Canonicalizer]"] = None,
    encoding: str = "utf-8",
) -> str:
    """Canonical text digest when the extension has a canonicalizer, else raw-bytes digest."""
    from .canonicalization.registry import canonicalizer_for_path

    canonicalizer = canonicalizer_for_path(path, registry)
    if canonicalizer is None:
        return sha256_file(path)
    return hash_text_file(path, canonicalizer, encoding)


def iter_files(folder: PathLike, pattern: str = "*", recursive: bool = True) -> List[str]:
    """Sorted absolute paths of files under ``folder`` matching ``pattern``."""
    root = Path(folder)
    if not root.is_dir():
        raise MissingFileError(str(root))
    matches = root.rglob(pattern) if recursive else root.glob(pattern)
    return sorted(str(p.resolve()) for p in matches if p.is_file())
