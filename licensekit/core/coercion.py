"""Type and date/time coercion.

Field values arrive from JSON, YAML, CLI arguments and Python callers, so the
same instant can show up as a datetime, a year, an epoch number or one of many
string spellings. The helpers here turn those into canonical typed values.

The date/time ladder is ordered; the first branch that succeeds wins even when
a later branch could also read the value (``2027`` is a year, not an epoch).
"""

from __future__ import annotations

import math
import re
from datetime import UTC, date, datetime, time, timedelta, timezone
from decimal import Decimal
from email.utils import parsedate_to_datetime
from typing import Any, Optional, Tuple

from .errors import InvalidInputError, TypeConversionError
from .results import ValidationResult
from .values import ensure_utc

# Representable range for datetime (years 1..9999), in epoch units.
_MIN_EPOCH_SECONDS = -62_135_596_800
_MAX_EPOCH_SECONDS = 253_402_300_799
_MIN_EPOCH_MILLIS = _MIN_EPOCH_SECONDS * 1000
_MAX_EPOCH_MILLIS = _MAX_EPOCH_SECONDS * 1000 + 999

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

_ISO_INSTANT_RE = re.compile(
    r"^(?P<y>\d{4})-(?P<mo>\d{2})-(?P<d>\d{2})T(?P<h>\d{2}):(?P<mi>\d{2}):(?P<s>\d{2})"
    r"(?:\.(?P<frac>\d{1,9}))?Z$"
)
_ISO_OFFSET_RE = re.compile(
    r"^(?P<y>\d{4})-(?P<mo>\d{2})-(?P<d>\d{2})T(?P<h>\d{2}):(?P<mi>\d{2}):(?P<s>\d{2})"
    r"(?:\.(?P<frac>\d{1,9}))?"
    r"(?P<off>Z|[+-]\d{2}(?::\d{2}(?::\d{2})?)?)$"
)

_LOCAL_DATETIME_PATTERNS = (
    re.compile(r"^(?P<y>\d{4})-(?P<mo>\d{1,2})-(?P<d>\d{1,2})T(?P<h>\d{1,2}):(?P<mi>\d{1,2}):(?P<s>\d{1,2})$"),
    re.compile(r"^(?P<y>\d{4})-(?P<mo>\d{1,2})-(?P<d>\d{1,2}) (?P<h>\d{1,2}):(?P<mi>\d{1,2}):(?P<s>\d{1,2})$"),
    re.compile(r"^(?P<mo>\d{1,2})/(?P<d>\d{1,2})/(?P<y>\d{4}) (?P<h>\d{1,2}):(?P<mi>\d{1,2}):(?P<s>\d{1,2})$"),
    re.compile(r"^(?P<d>\d{1,2})/(?P<mo>\d{1,2})/(?P<y>\d{4}) (?P<h>\d{1,2}):(?P<mi>\d{1,2}):(?P<s>\d{1,2})$"),
)

_LOCAL_DATE_PATTERNS = (
    re.compile(r"^(?P<y>\d{4})-(?P<mo>\d{1,2})-(?P<d>\d{1,2})$"),
    re.compile(r"^(?P<mo>\d{1,2})/(?P<d>\d{1,2})/(?P<y>\d{4})$"),
    re.compile(r"^(?P<d>\d{1,2})/(?P<mo>\d{1,2})/(?P<y>\d{4})$"),
    re.compile(r"^(?P<d>\d{1,2})-(?P<mo>\d{1,2})-(?P<y>\d{4})$"),
    re.compile(r"^(?P<mo>\d{1,2})-(?P<d>\d{1,2})-(?P<y>\d{4})$"),
)

_INTEGER_RE = re.compile(r"^[+-]?\d+$")

# Last-resort textual formats, tried after datetime.fromisoformat.
_FALLBACK_FORMATS = (
    "%Y/%m/%d",
    "%Y/%m/%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y.%m.%d",
    "%d.%m.%Y",
    "%d.%m.%Y %H:%M:%S",
    "%m/%d/%Y %H:%M",
    "%d %B %Y",
    "%d %b %Y",
    "%d %B %Y %H:%M:%S",
    "%B %d, %Y",
    "%b %d, %Y",
    "%B %d %Y",
    "%b %d %Y",
    "%A, %d %B %Y",
)


def is_numeric(value: Any) -> Tuple[bool, float]:
    """Return (True, value as float) for int, float and Decimal inputs.

    bool is not numeric. Decimal -> float may lose precision; ints too large
    for a float come back as signed infinity.
    """

    if isinstance(value, bool):
        return False, 0.0
    if isinstance(value, (int, float, Decimal)):
        try:
            return True, float(value)
        except OverflowError:
            return True, math.inf if value > 0 else -math.inf
    return False, 0.0


def describe_type(value: Any) -> str:
    """Human-readable type name for error messages."""

    if value is None:
        return "null"
    if isinstance(value, bool):
        return "bool"
    if isinstance(value, str):
        return "string"
    if isinstance(value, int):
        return "int"
    if isinstance(value, float):
        return "double"
    if isinstance(value, Decimal):
        return "decimal"
    if isinstance(value, (datetime, date)):
        return "datetime"
    if isinstance(value, (list, tuple)):
        return "list"
    if isinstance(value, dict):
        return "map"
    return type(value).__name__


def format_utc(value: datetime) -> str:
    """Render a datetime as ISO-8601 UTC with a ``Z`` suffix."""

    dt = ensure_utc(value)
    timespec = "microseconds" if dt.microsecond else "seconds"
    return dt.isoformat(timespec=timespec).replace("+00:00", "Z")


def _from_epoch(number: int) -> Optional[datetime]:
    if _MIN_EPOCH_SECONDS <= number <= _MAX_EPOCH_SECONDS:
        return _EPOCH + timedelta(seconds=number)
    if _MIN_EPOCH_MILLIS <= number <= _MAX_EPOCH_MILLIS:
        return _EPOCH + timedelta(milliseconds=number)
    return None


def _build(match: re.Match, tz: timezone = UTC) -> Optional[datetime]:
    parts = match.groupdict()
    frac = parts.get("frac") or ""
    micro = int(frac[:6].ljust(6, "0")) if frac else 0
    try:
        return datetime(
            int(parts["y"]),
            int(parts["mo"]),
            int(parts["d"]),
            int(parts.get("h") or 0),
            int(parts.get("mi") or 0),
            int(parts.get("s") or 0),
            micro,
            tzinfo=tz,
        )
    except ValueError:
        return None


def _parse_offset(raw: str) -> Optional[timezone]:
    if raw == "Z":
        return UTC
    sign = -1 if raw[0] == "-" else 1
    pieces = [int(p) for p in raw[1:].split(":")]
    hours = pieces[0]
    minutes = pieces[1] if len(pieces) > 1 else 0
    seconds = pieces[2] if len(pieces) > 2 else 0
    if hours > 18 or minutes > 59 or seconds > 59:
        return None
    return timezone(sign * timedelta(hours=hours, minutes=minutes, seconds=seconds))


def _best_effort(text: str) -> Optional[datetime]:
    try:
        return ensure_utc(datetime.fromisoformat(text))
    except ValueError:
        pass
    for fmt in _FALLBACK_FORMATS:
        try:
            return ensure_utc(datetime.strptime(text, fmt))
        except ValueError:
            continue
    try:
        return ensure_utc(parsedate_to_datetime(text))
    except (TypeError, ValueError, IndexError):
        return None


def try_parse_datetime(text: str) -> Optional[datetime]:
    """Parse a date/time string with the string branch of the ladder.

    Returns an aware UTC datetime, or None when no format matches.
    """

    if not isinstance(text, str) or not text.strip():
        return None
    s = text.strip()

    m = _ISO_INSTANT_RE.match(s)
    if m:
        parsed = _build(m)
        if parsed is not None:
            return parsed

    m = _ISO_OFFSET_RE.match(s)
    if m:
        tz = _parse_offset(m.group("off"))
        parsed = _build(m, tz) if tz is not None else None
        if parsed is not None:
            try:
                return ensure_utc(parsed)
            except InvalidInputError:
                return None

    for pattern in _LOCAL_DATETIME_PATTERNS:
        m = pattern.match(s)
        if m:
            parsed = _build(m)
            if parsed is not None:
                return parsed

    for pattern in _LOCAL_DATE_PATTERNS:
        m = pattern.match(s)
        if m:
            parsed = _build(m)
            if parsed is not None:
                return parsed

    if _INTEGER_RE.match(s):
        parsed = _from_epoch(int(s))
        if parsed is not None:
            return parsed

    return _best_effort(s)


def normalize_datetime(value: Any) -> ValidationResult:
    """Normalize an arbitrary input into a UTC datetime.

    Ladder, first success wins:
    1) datetime / date -> UTC
    2) numeric 1..9999 with no fraction -> Jan 1 of that year
    3) other numeric -> epoch seconds, then epoch milliseconds
    4) strings -> try_parse_datetime
    """

    if value is None:
        return ValidationResult.rejected("Date/time value is null")

    if isinstance(value, datetime):
        try:
            return ValidationResult.accepted(ensure_utc(value))
        except InvalidInputError as e:
            return ValidationResult.rejected(str(e))
    if isinstance(value, date):
        return ValidationResult.accepted(datetime.combine(value, time.min, tzinfo=UTC))

    numeric, number = is_numeric(value)
    if numeric:
        if not math.isfinite(number):
            return ValidationResult.rejected(
                f"Numeric value {value} could not be interpreted as a valid date/time"
            )
        if 1 <= number <= 9999 and number == math.floor(number):
            return ValidationResult.accepted(datetime(int(number), 1, 1, tzinfo=UTC))
        integral = value if isinstance(value, int) else int(number)
        parsed = _from_epoch(integral)
        if parsed is not None:
            return ValidationResult.accepted(parsed)
        return ValidationResult.rejected(
            f"Numeric value {value} could not be interpreted as a valid date/time"
        )

    if isinstance(value, str):
        parsed = try_parse_datetime(value)
        if parsed is not None:
            return ValidationResult.accepted(parsed)
        return ValidationResult.rejected(
            f"String value '{value}' could not be parsed as a valid date/time"
        )

    return ValidationResult.rejected(
        f"Value of type {describe_type(value)} is not a date/time"
    )


def coerce_datetime(value: Any) -> datetime:
    """Raising form of normalize_datetime."""

    result = normalize_datetime(value)
    if not result.is_valid:
        raise TypeConversionError(result.error)
    return result.value
