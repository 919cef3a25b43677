from __future__ import annotations

import base64
from dataclasses import asdict, is_dataclass
from datetime import date, datetime, time
from decimal import Decimal
from pathlib import Path
from typing import Any, Mapping

from licensekit.core.coercion import format_utc
from licensekit.core.values import ensure_utc


def to_jsonable(obj: Any) -> Any:
    """
    Convert license values and common Python objects to JSON-ready equivalents.

    - datetimes render as ISO-8601 UTC with a ``Z`` suffix (naive = UTC)
    - Decimals become JSON numbers
    - bytes are base64-encoded

    Does NOT execute or import anything dynamically.
    """
    if obj is None or isinstance(obj, (str, int, float, bool)):
        return obj

    if isinstance(obj, datetime):
        return format_utc(obj)
    if isinstance(obj, date):
        return format_utc(ensure_utc(datetime.combine(obj, time.min)))

    if isinstance(obj, Decimal):
        return int(obj) if obj == obj.to_integral_value() and obj.is_finite() else float(obj)

    if isinstance(obj, Path):
        return str(obj)

    if isinstance(obj, (bytes, bytearray)):
        return {"__bytes_b64__": base64.b64encode(bytes(obj)).decode("ascii")}

    if is_dataclass(obj) and not isinstance(obj, type):
        return to_jsonable(asdict(obj))

    if isinstance(obj, Mapping):
        return {str(k): to_jsonable(v) for k, v in obj.items()}

    # set/frozenset order is not stable; sort by repr for determinism
    if isinstance(obj, (set, frozenset)):
        return [to_jsonable(x) for x in sorted(obj, key=repr)]
    if isinstance(obj, (list, tuple)):
        return [to_jsonable(x) for x in obj]

    return str(obj)
