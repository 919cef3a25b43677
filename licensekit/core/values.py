from __future__ import annotations

from datetime import UTC, date, datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, List, Mapping, Union

from .errors import InvalidInputError

Variant = Union[None, str, int, float, Decimal, bool, datetime, List[Any], Dict[str, Any]]


class VariantKind(str, Enum):
    """
    Closed set of value kinds a license field may hold.

    Using str Enum keeps the kind usable as a stable label in messages.
    """

    NULL = "null"
    STRING = "string"
    INTEGER = "int"
    DOUBLE = "double"
    DECIMAL = "decimal"
    BOOLEAN = "bool"
    DATETIME = "datetime"
    LIST = "list"
    MAPPING = "map"


def kind_of(value: Any) -> VariantKind:
    """Classify a value into its VariantKind.

    bool is checked before int because bool is an int subclass in Python.
    date (without a time part) is accepted as DATETIME since to_variant
    promotes it to midnight UTC.

    Raises InvalidInputError for anything outside the closed set.
    """

    if value is None:
        return VariantKind.NULL
    if isinstance(value, bool):
        return VariantKind.BOOLEAN
    if isinstance(value, str):
        return VariantKind.STRING
    if isinstance(value, int):
        return VariantKind.INTEGER
    if isinstance(value, float):
        return VariantKind.DOUBLE
    if isinstance(value, Decimal):
        return VariantKind.DECIMAL
    if isinstance(value, (datetime, date)):
        return VariantKind.DATETIME
    if isinstance(value, (list, tuple)):
        return VariantKind.LIST
    if isinstance(value, Mapping):
        return VariantKind.MAPPING
    raise InvalidInputError(f"Unsupported field value type: {type(value).__name__}")


def ensure_utc(value: datetime) -> datetime:
    """Return an aware UTC datetime; naive values are taken to be UTC already.

    Raises InvalidInputError when the UTC instant falls outside years 1..9999.
    """

    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    try:
        return value.astimezone(UTC)
    except OverflowError:
        raise InvalidInputError(f"Date/time value {value.isoformat()} is out of range in UTC") from None


def to_variant(value: Any) -> Variant:
    """Convert an accepted input into its stored Variant form.

    - tuples become lists, mappings become dicts with str keys
    - date becomes midnight UTC, datetimes are normalized to UTC
    - nested containers are converted recursively
    """

    kind = kind_of(value)
    if kind is VariantKind.DATETIME:
        if not isinstance(value, datetime):
            return datetime.combine(value, time.min, tzinfo=UTC)
        return ensure_utc(value)
    if kind is VariantKind.LIST:
        return [to_variant(v) for v in value]
    if kind is VariantKind.MAPPING:
        return {str(k): to_variant(v) for k, v in value.items()}
    return value
