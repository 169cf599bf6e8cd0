"""Command line entry point: run one statement and print its rows."""

from __future__ import annotations

import argparse
import json
import logging
import sys
from pathlib import Path

from .client import DatabaseClient
from .config import load_config
from .errors import DriverError, report_fatal
from .models import ParamType

LOG = logging.getLogger(__name__)


def parse_param(spec: str) -> tuple[str, str, ParamType | None]:
    """Split `NAME[:KIND]=VALUE` into its parts."""

    target, sep, value = spec.partition("=")
    if not sep or not target:
        raise argparse.ArgumentTypeError(f"Expected NAME[:KIND]=VALUE, got '{spec}'")
    name, _, kind_name = target.lstrip(":").partition(":")
    if not kind_name:
        return name, value, None
    try:
        return name, value, ParamType(kind_name.lower())
    except ValueError as exc:
        choices = ", ".join(kind.value for kind in ParamType)
        raise argparse.ArgumentTypeError(f"Unknown kind '{kind_name}' (choose from {choices})") from exc


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="pgbind", description=__doc__)
    parser.add_argument("sql", help="Statement to run; use :name placeholders for parameters")
    parser.add_argument("--config", type=Path, default=None, help="Path to a config.toml file")
    parser.add_argument("--debug", action="store_true", help="Show detailed database errors and debug logs")
    parser.add_argument(
        "--param",
        "-p",
        dest="params",
        action="append",
        type=parse_param,
        default=[],
        metavar="NAME[:KIND]=VALUE",
        help="Bind a placeholder value; KIND is integer, boolean, null or string",
    )
    parser.add_argument("--all", action="store_true", help="Print every row instead of the first one")
    parser.add_argument("--dump", action="store_true", help="Print the prepared statement before running it")
    return parser.parse_args(argv)


def run(client: DatabaseClient, args: argparse.Namespace) -> None:
    client.prepare(args.sql)
    for name, value, kind in args.params:
        client.bind_value(name, value, kind)
    if args.dump:
        print(client.debug_dump())
    if args.all:
        rows = client.fetch_all()
    else:
        row = client.fetch()
        rows = [row] if row is not None else []
    for row in rows:
        print(json.dumps(row, default=str))
    if not rows:
        print(f"{client.row_count()} row(s)")


def main(argv: list[str] | None = None) -> int:
    args = parse_args(sys.argv[1:] if argv is None else argv)
    logging.basicConfig(level=logging.DEBUG if args.debug else logging.WARNING)
    config = load_config(args.config).database
    if args.debug:
        config = config.with_debug(True)
    try:
        with DatabaseClient(config) as client:
            run(client, args)
    except DriverError as exc:
        LOG.debug("Terminating after database error", extra={"operation": exc.operation})
        report_fatal(exc, debug=config.debug)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
