from __future__ import annotations

import re

from licensekit.core.errors import InvalidInputError

from .base import Canonicalizer, join_lines, normalize_newlines

_COLLAPSE_RE = re.compile(r"\s{2,}")
_COMMENT_MARKERS = ("#", ";", "//")


class TextCanonicalizer(Canonicalizer):
    """Generic text canonicalizer.

    - line endings normalized, trailing whitespace stripped
    - empty lines and full-line comments (``#``, ``;``, ``//``) dropped
    - whitespace runs inside a line collapsed to one space; leading-space
      indentation kept so YAML/Python-like files keep their structure
    """

    default_extensions = frozenset({".txt"})

    def canonicalize(self, text: str) -> str:
        if text is None:
            raise InvalidInputError("text is required")
        out = []
        for raw in normalize_newlines(text).split("\n"):
            line = raw.rstrip()
            if not line.strip():
                continue
            if line.lstrip().startswith(_COMMENT_MARKERS):
                continue
            body = line.lstrip(" ")
            indent = line[: len(line) - len(body)]
            out.append(indent + _COLLAPSE_RE.sub(" ", body))
        return join_lines(out)
