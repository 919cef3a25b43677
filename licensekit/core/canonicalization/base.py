from __future__ import annotations

from typing import FrozenSet, Iterable, Optional


def normalize_extension(ext: str) -> str:
    """Lower-case an extension and give it a leading dot."""
    e = (ext or "").strip().lower()
    if not e:
        return e
    return e if e.startswith(".") else "." + e


class Canonicalizer:
    """Base class for text canonicalizers.

    Subclasses implement ``canonicalize``; it must be pure, deterministic and
    idempotent (canonicalize(canonicalize(x)) == canonicalize(x)).
    Instances are callable so they can live in a Registry.

    Time:  O(n) in the input length
    Space: O(n)
    """

    default_extensions: FrozenSet[str] = frozenset()

    def __init__(self, extensions: Optional[Iterable[str]] = None) -> None:
        exts = frozenset(normalize_extension(e) for e in (extensions or ()) if e and e.strip())
        self.extensions: FrozenSet[str] = exts or frozenset(self.default_extensions)

    def canonicalize(self, text: str) -> str:
        raise NotImplementedError

    def __call__(self, text: str) -> str:
        return self.canonicalize(text)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(extensions={sorted(self.extensions)!r})"


def normalize_newlines(text: str) -> str:
    return text.replace("\r\n", "\n").replace("\r", "\n")


def join_lines(lines: Iterable[str]) -> str:
    """Join with ``\\n`` and end with exactly one newline."""
    return "\n".join(lines) + "\n"
