"""Type inference and coercion for bound parameter values."""

from __future__ import annotations

import datetime
import decimal
import uuid
from typing import Any

from .models import BoundParameter, ParamType, Scalar

_TRUE = {"1", "true", "t", "yes", "y", "on"}
_FALSE = {"0", "false", "f", "no", "n", "off", ""}


class BindingError(ValueError):
    """Raised when a value cannot be represented as the requested kind."""


def infer_type(value: Any) -> ParamType:
    """Pick a kind from the runtime type: integer, boolean, null, then string."""

    # bool is an int subclass; it must not be bound as INTEGER.
    if isinstance(value, int) and not isinstance(value, bool):
        return ParamType.INTEGER
    if isinstance(value, bool):
        return ParamType.BOOLEAN
    if value is None:
        return ParamType.NULL
    return ParamType.STRING


def coerce(value: Any, kind: ParamType) -> Scalar:
    """Convert a (trimmed) value to the Python type the driver expects for `kind`."""

    if kind is ParamType.NULL:
        return None
    if kind is ParamType.STRING:
        return _as_text(value)
    if value is None:
        raise BindingError(f"Cannot bind None as {kind.value}.")
    if kind is ParamType.BOOLEAN:
        if isinstance(value, bool):
            return value
        if isinstance(value, int):
            return value != 0
        if isinstance(value, str):
            lowered = value.lower()
            if lowered in _TRUE:
                return True
            if lowered in _FALSE:
                return False
        raise BindingError(f"Value '{value}' is not a valid boolean.")
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, float) and not value.is_integer():
        raise BindingError(f"Value '{value}' is not a valid integer.")
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise BindingError(f"Value '{value}' is not a valid integer.") from exc


_INTEGER_TYPES = {"int2", "int4", "int8", "oid"}
_FLOAT_TYPES = {"float4", "float8"}
_TEXT_TYPES = {"text", "varchar", "bpchar", "char", "name", "citext", "json", "jsonb", "xml", "unknown"}


def adapt_to_server(value: Scalar, type_name: str) -> Any:
    """Convert a bound value to the Python type asyncpg encodes for `type_name`.

    Text is parsed into the declared type; non-text values bound to a text
    parameter are rendered as text. Other combinations pass through.
    """

    if value is None:
        return None
    if type_name in _TEXT_TYPES:
        return _as_text(value)
    if not isinstance(value, str):
        return value
    try:
        if type_name in _INTEGER_TYPES:
            return int(value)
        if type_name == "bool":
            return coerce(value, ParamType.BOOLEAN)
        if type_name == "numeric":
            return decimal.Decimal(value)
        if type_name in _FLOAT_TYPES:
            return float(value)
        if type_name == "date":
            return datetime.date.fromisoformat(value)
        if type_name in {"timestamp", "timestamptz"}:
            return datetime.datetime.fromisoformat(value)
        if type_name == "uuid":
            return uuid.UUID(value)
    except (ValueError, decimal.InvalidOperation) as exc:
        raise BindingError(f"Value '{value}' is not a valid {type_name}.") from exc
    return value


def _as_text(value: Any) -> str:
    # None binds as empty text; booleans use PostgreSQL's literal spelling.
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return value if isinstance(value, str) else str(value)


def bind(name: str, value: Any, kind: ParamType | None = None) -> BoundParameter:
    """Build the parameter stored on the statement.

    Only strings are trimmed; other kinds pass through unchanged.
    """

    if isinstance(value, str):
        value = value.strip()
    resolved = kind if kind is not None else infer_type(value)
    return BoundParameter(name=name, value=coerce(value, ParamType(resolved)), kind=ParamType(resolved))


__all__ = ["BindingError", "adapt_to_server", "bind", "coerce", "infer_type"]
