"""Value Binding — converts raw request values into typed property values.

Invariants:
    - Blank input (None, empty or whitespace-only string) converts to None
    - Conversion failures raise ValueError, never return a partial value
    - Nested JSON (objects, arrays) is never a valid scalar: ValueError, not TypeError
    - Pure functions — no IO, no database (related entities are loaded by the service)
"""

import uuid
from datetime import date, datetime, time
from decimal import Decimal, InvalidOperation
from enum import Enum
from typing import Any

from entitymvc.core.metadata import CustomDataType, PropertyMetadata, TEXT_TYPES

_TRUE = frozenset({"true", "on", "1", "yes"})
_FALSE = frozenset({"false", "off", "0", "no"})


def is_blank(raw: Any) -> bool:
    return raw is None or (isinstance(raw, str) and not raw.strip())


def is_scalar(raw: Any) -> bool:
    return not isinstance(raw, (dict, list, tuple, set))


def require_scalar(raw: Any) -> Any:
    if not is_scalar(raw):
        raise ValueError(f"expected a single value, got {type(raw).__name__}")
    return raw


def to_bool(raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    require_scalar(raw)
    text = str(raw).strip().lower()
    if text in _TRUE:
        return True
    if text in _FALSE:
        return False
    raise ValueError(f"not a boolean: {raw!r}")


def to_int(raw: Any) -> int:
    if isinstance(raw, bool):
        raise ValueError("booleans are not integers")
    if isinstance(raw, float) and not raw.is_integer():
        raise ValueError(f"not an integer: {raw!r}")
    if isinstance(raw, str):
        return int(raw.strip())
    if not isinstance(raw, (int, float, Decimal)):
        raise ValueError(f"not an integer: {raw!r}")
    return int(raw)


def to_float(raw: Any) -> float:
    if isinstance(raw, bool):
        raise ValueError("booleans are not numbers")
    if not isinstance(raw, (str, int, float, Decimal)):
        raise ValueError(f"not a number: {raw!r}")
    return float(raw)


def to_decimal(raw: Any) -> Decimal:
    require_scalar(raw)
    try:
        return Decimal(str(raw).strip())
    except InvalidOperation:
        raise ValueError(f"not a decimal: {raw!r}") from None


def to_enum(enum_type: type[Enum], raw: Any) -> Enum:
    if isinstance(raw, enum_type):
        return raw
    try:
        return enum_type(raw)
    except ValueError:
        pass
    if isinstance(raw, str):
        text = raw.strip()
        if text in enum_type.__members__:
            return enum_type[text]
        try:
            return enum_type(int(text))
        except ValueError:
            pass
    raise ValueError(f"{raw!r} is not a member of {enum_type.__name__}")


def parse_key(python_type: type | None, raw: Any) -> Any:
    """Parse an entity key; returns None when raw is blank or malformed."""
    if is_blank(raw) or not is_scalar(raw):
        return None
    try:
        if python_type is uuid.UUID:
            return raw if isinstance(raw, uuid.UUID) else uuid.UUID(str(raw).strip())
        if python_type is int:
            return to_int(raw)
    except ValueError:
        return None
    return str(raw).strip()


def convert_value(prop: PropertyMetadata, raw: Any) -> Any:
    """Convert raw input for a scalar property. Relations are not handled here."""
    if is_blank(raw):
        return None
    require_scalar(raw)
    data_type = prop.type
    if data_type == CustomDataType.BOOLEAN:
        return to_bool(raw)
    if data_type == CustomDataType.INTEGER:
        return to_int(raw)
    if data_type == CustomDataType.NUMBER:
        return to_float(raw)
    if data_type == CustomDataType.CURRENCY:
        return to_decimal(raw)
    if data_type == CustomDataType.DATE:
        return raw if isinstance(raw, date) else date.fromisoformat(str(raw).strip())
    if data_type == CustomDataType.DATE_TIME:
        return raw if isinstance(raw, datetime) else datetime.fromisoformat(str(raw).strip())
    if data_type == CustomDataType.TIME:
        return raw if isinstance(raw, time) else time.fromisoformat(str(raw).strip())
    if data_type == CustomDataType.ENUM:
        if prop.enum_type is None:
            raise ValueError(f"{prop.clr_name} has no enum type")
        return to_enum(prop.enum_type, raw)
    if data_type in TEXT_TYPES:
        return str(raw)
    if prop.python_type is uuid.UUID:
        return uuid.UUID(str(raw).strip())
    return raw
