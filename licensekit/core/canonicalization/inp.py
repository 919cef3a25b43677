from __future__ import annotations

import re

from licensekit.core.errors import InvalidInputError

from .base import Canonicalizer, join_lines, normalize_newlines

_SECTION_RE = re.compile(r"^\s*\[(?P<name>[^\]]+)\]\s*$")
_WS_RE = re.compile(r"\s+")


class InpCanonicalizer(Canonicalizer):
    """Canonicalizer for EPANET ``.inp`` hydraulic network files.

    Edits that do not change the network (comments, spacing, blank lines,
    header case, the free-text [TITLE] block) do not change the output.

    Rules, applied per line:
    1) anything from the first ``;`` is a comment and removed
    2) a ``[name]`` line is a section header, re-emitted as ``[NAME]``
    3) [TITLE] headers are dropped and their bodies suppressed until the next header
    4) other lines are trimmed with whitespace runs collapsed; empty lines dropped
    """

    default_extensions = frozenset({".inp"})

    def canonicalize(self, text: str) -> str:
        if text is None:
            raise InvalidInputError("text is required")
        out = []
        in_title = False
        for raw in normalize_newlines(text).split("\n"):
            line = raw.split(";", 1)[0]
            m = _SECTION_RE.match(line)
            if m:
                section = m.group("name").strip().upper()
                in_title = section == "TITLE"
                if not in_title:
                    out.append(f"[{section}]")
                continue
            if in_title:
                continue
            line = _WS_RE.sub(" ", line.strip())
            if line:
                out.append(line)
        return join_lines(out)
