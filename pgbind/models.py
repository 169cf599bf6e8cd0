"""Shared dataclasses and enums used across the client modules."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Mapping

Row = dict[str, Any]
Scalar = int | bool | float | str | None


class ConnectionState(str, Enum):
    """Whether the client currently holds a connection handle."""

    DISCONNECTED = "disconnected"
    CONNECTED = "connected"


class ParamType(str, Enum):
    """Kind tag attached to every bound parameter."""

    INTEGER = "integer"
    BOOLEAN = "boolean"
    NULL = "null"
    STRING = "string"


@dataclass(frozen=True, slots=True)
class BoundParameter:
    """Value bound to a named placeholder."""

    name: str
    value: Scalar
    kind: ParamType


@dataclass(slots=True)
class StatementState:
    """The single prepared statement owned by a client."""

    query: str
    compiled: str
    names: tuple[str, ...]
    handle: Any
    params: dict[str, BoundParameter] = field(default_factory=dict)
    rows: list[Row] = field(default_factory=list)
    cursor: int = 0
    status: str | None = None
    executed: bool = False

    def positional_args(self) -> tuple[Scalar, ...]:
        """Bound values in placeholder order."""

        return tuple(self.params[name].value for name in self.names)

    def missing(self) -> tuple[str, ...]:
        return tuple(name for name in self.names if name not in self.params)

    def reset_result(self) -> None:
        self.rows = []
        self.cursor = 0
        self.executed = False


def row_to_dict(record: Mapping[str, Any]) -> Row:
    """Copy a driver record into a plain field-name keyed dict."""

    return {str(key): record[key] for key in record.keys()}


__all__ = [
    "BoundParameter",
    "ConnectionState",
    "ParamType",
    "Row",
    "Scalar",
    "StatementState",
    "row_to_dict",
]
