"""Translate `:name` placeholders into asyncpg's positional `$n` form."""

from __future__ import annotations

import re
from dataclasses import dataclass

_TOKEN = re.compile(
    r"""
    (?P<escaped>(?<![\w$])[Ee]'(?:[^'\\]|\\.|'')*')  # E'escape \' string'
    | (?P<dollar>\$(?P<tag>[A-Za-z_][A-Za-z0-9_]*|)\$.*?\$(?P=tag)\$)  # $tag$ body $tag$
    | (?P<literal>'(?:[^']|'')*')            # 'string literal'
    | (?P<ident>"(?:[^"]|"")*")            # "quoted identifier"
    | (?P<line_comment>--[^\n]*)
    | (?P<block_comment>/\*.*?\*/)
    | (?P<cast>::)
    | (?P<param>(?<![\w$]):(?P<name>[A-Za-z_][A-Za-z0-9_]*))
    """,
    re.VERBOSE | re.DOTALL,
)


class PlaceholderError(ValueError):
    """Raised when a statement mixes placeholder styles."""


@dataclass(frozen=True, slots=True)
class CompiledQuery:
    """SQL rewritten for the driver plus the name behind each `$n`."""

    source: str
    sql: str
    names: tuple[str, ...]

    def index_of(self, name: str) -> int:
        return self.names.index(name) + 1


def normalize_name(param: str) -> str:
    """Strip the leading colon accepted by `bind_value`."""

    return param[1:] if param.startswith(":") else param


def compile_named(query: str) -> CompiledQuery:
    """Rewrite every `:name` outside literals and comments into `$n`.

    A name used more than once maps to the same position.
    """

    names: list[str] = []

    def _replace(match: re.Match[str]) -> str:
        name = match.group("name")
        if name is None:
            return match.group(0)
        if name not in names:
            names.append(name)
        return f"${names.index(name) + 1}"

    sql = _TOKEN.sub(_replace, query)
    if names and re.search(r"\$\d", _outside_quotes(query)):
        raise PlaceholderError("Cannot mix named and positional placeholders.")
    return CompiledQuery(source=query, sql=sql, names=tuple(names))


def _outside_quotes(query: str) -> str:
    """Query text with literals, quoted identifiers and comments removed."""

    def _keep(match: re.Match[str]) -> str:
        if match.group("cast") or match.group("param"):
            return match.group(0)
        return ""

    return _TOKEN.sub(_keep, query)


__all__ = ["CompiledQuery", "PlaceholderError", "compile_named", "normalize_name"]
