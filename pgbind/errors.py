"""Driver error type and the diagnostics rendered from it."""

from __future__ import annotations

import html
import re
import sys
from dataclasses import dataclass
from typing import NoReturn, TextIO

GENERIC_MESSAGE = "The database connection is currently unavailable!"

_QUOTED = re.compile(r"'([^']+)'")


@dataclass(frozen=True, slots=True)
class Diagnostic:
    """Driver message split around its first single-quoted fragment."""

    before: str
    fragment: str
    after: str


def split_message(message: str) -> Diagnostic:
    """Isolate the first `'...'` fragment; the fragment keeps its quotes."""

    match = _QUOTED.search(message)
    if match is None:
        return Diagnostic(before="", fragment="", after=message)
    return Diagnostic(
        before=message[: match.start()],
        fragment=match.group(0),
        after=message[match.end():],
    )


class DriverError(RuntimeError):
    """Raised for any failure reported by, or on the way to, the database driver."""

    def __init__(self, message: str, *, operation: str | None = None, sqlstate: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation
        self.sqlstate = sqlstate

    @classmethod
    def from_exception(cls, exc: BaseException, *, operation: str) -> DriverError:
        """Wrap a driver exception, prefixing the SQLSTATE when one is known."""

        sqlstate = getattr(exc, "sqlstate", None)
        text = str(exc) or exc.__class__.__name__
        message = f"SQLSTATE[{sqlstate}]: {text}" if sqlstate else text
        return cls(message, operation=operation, sqlstate=sqlstate)

    @property
    def diagnostic(self) -> Diagnostic:
        return split_message(self.message)

    def render(self, debug: bool) -> str:
        """HTML fragment shown to the user: detailed in debug mode, generic otherwise."""

        if not debug:
            return f"<div>{GENERIC_MESSAGE}</div>"
        parts = self.diagnostic
        return (
            "<h3>Database Error:</h3>\n"
            f"<div>{html.escape(parts.before)}</div>\n"
            f"<pre>{html.escape(parts.fragment)}</pre>\n"
            f"<div>{html.escape(parts.after)}</div>"
        )


def report_fatal(error: DriverError, *, debug: bool, stream: TextIO | None = None) -> NoReturn:
    """Write the rendered error to the primary output stream and terminate."""

    out = stream if stream is not None else sys.stdout
    out.write(error.render(debug) + "\n")
    out.flush()
    raise SystemExit(1)


__all__ = ["Diagnostic", "DriverError", "GENERIC_MESSAGE", "report_fatal", "split_message"]
