"""Synchronous prepared-statement client on top of asyncpg."""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Coroutine, NoReturn, TypeVar

import asyncpg

from .binding import adapt_to_server, bind
from .config import ConnectionConfig
from .errors import DriverError
from .models import ConnectionState, ParamType, Row, StatementState, row_to_dict
from .placeholders import compile_named, normalize_name

LOG = logging.getLogger(__name__)

T = TypeVar("T")


class DatabaseClient:
    """Holds one connection and one prepared statement at a time.

    Every call blocks until the driver answers. asyncpg coroutines run on a
    private event loop thread started by `connect()` and stopped by `close()`.
    Driver failures surface as `DriverError`.
    """

    def __init__(self, config: ConnectionConfig | None = None) -> None:
        self._config = config or ConnectionConfig()
        self._state = ConnectionState.DISCONNECTED
        self._conn: Any = None
        self._statement: StatementState | None = None
        self._transaction: Any = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._loop_thread: threading.Thread | None = None

    @property
    def config(self) -> ConnectionConfig:
        return self._config

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def connected(self) -> bool:
        return self._state is ConnectionState.CONNECTED

    @property
    def in_transaction(self) -> bool:
        return self._transaction is not None

    def connect(self) -> None:
        """Open the connection described by the config."""

        if self._conn is not None:
            return
        # Flag records intent; it is rolled back if the attempt fails.
        self._state = ConnectionState.CONNECTED
        self._start_loop()
        LOG.debug(
            "Connecting",
            extra={"host": self._config.host, "port": self._config.port, "database": self._config.database},
        )
        try:
            self._conn = self._run(asyncpg.connect(**self._config.connect_kwargs()))
        except Exception as exc:
            self._state = ConnectionState.DISCONNECTED
            self._stop_loop()
            self._handle_error(exc, "connect")

    def close(self) -> None:
        """Release the connection handle. Never raises."""

        self._statement = None
        self._transaction = None
        conn, self._conn = self._conn, None
        if conn is not None and self._loop is not None:
            try:
                self._run(conn.close())
            except Exception:  # pragma: no cover - best effort cleanup
                LOG.exception("Failed to close connection", extra={"host": self._config.host})
        self._stop_loop()
        self._state = ConnectionState.DISCONNECTED

    def __enter__(self) -> DatabaseClient:
        self.connect()
        return self

    def __exit__(self, exc_type, exc, tb) -> bool:
        self.close()
        return False

    def __del__(self) -> None:  # pragma: no cover - best effort cleanup
        try:
            self._stop_loop()
        except Exception:
            pass

    def prepare(self, query: str) -> None:
        """Prepare `query` on the server, replacing the current statement."""

        conn = self._require_connection("prepare")
        self._statement = None
        try:
            compiled = compile_named(query)
            handle = self._run(conn.prepare(compiled.sql))
        except Exception as exc:
            self._handle_error(exc, "prepare")
        self._statement = StatementState(
            query=query,
            compiled=compiled.sql,
            names=compiled.names,
            handle=handle,
        )
        LOG.debug("Prepared statement", extra={"query": query, "params": compiled.names})

    def bind_value(self, param: str, value: Any, kind: ParamType | None = None) -> None:
        """Bind `value` to the `:param` placeholder, inferring its kind if omitted."""

        statement = self._require_statement("bind_value")
        name = normalize_name(param)
        if name not in statement.names:
            self._fail(f"Parameter ':{name}' is not defined in the statement.", "bind_value")
        try:
            parameter = bind(name, value, kind)
        except ValueError as exc:
            self._handle_error(exc, "bind_value")
        statement.params[name] = parameter
        statement.reset_result()

    def execute(self) -> bool:
        """Run the statement with its bound values and buffer the result."""

        statement = self._require_statement("execute")
        missing = statement.missing()
        if missing:
            self._fail(f"Parameter ':{missing[0]}' was not bound.", "execute")
        try:
            args = _server_args(statement)
            records = self._run(statement.handle.fetch(*args))
            status = statement.handle.get_statusmsg()
        except Exception as exc:
            self._handle_error(exc, "execute")
        statement.rows = [row_to_dict(record) for record in records]
        statement.cursor = 0
        statement.status = status
        statement.executed = True
        LOG.debug("Executed statement", extra={"status": status, "rows": len(statement.rows)})
        return True

    def fetch(self) -> Row | None:
        """Return the next row, executing first if there is no live result."""

        statement = self._require_statement("fetch")
        if not statement.executed:
            self.execute()
        if statement.cursor >= len(statement.rows):
            return None
        row = statement.rows[statement.cursor]
        statement.cursor += 1
        return row

    def fetch_all(self) -> list[Row]:
        """Re-execute the statement and return every row."""

        statement = self._require_statement("fetch_all")
        self.execute()
        rows = statement.rows[statement.cursor:]
        statement.cursor = len(statement.rows)
        return list(rows)

    def row_count(self) -> int:
        """Rows affected or returned by the last execution."""

        statement = self._statement
        if statement is None or statement.status is None:
            return 0
        return _rows_from_status(statement.status)

    def last_insert_id(self, sequence: str | None = None) -> Any:
        """Most recent value produced by a sequence in this session."""

        conn = self._require_connection("last_insert_id")
        try:
            if sequence is None:
                return self._run(conn.fetchval("SELECT lastval()"))
            return self._run(conn.fetchval("SELECT currval($1::regclass)", sequence))
        except Exception as exc:
            self._handle_error(exc, "last_insert_id")

    def debug_dump(self) -> str:
        """Describe the current statement and its parameters."""

        statement = self._require_statement("debug_dump")
        lines = [
            f"SQL: [{len(statement.query)}] {statement.query}",
            f"Prepared SQL: [{len(statement.compiled)}] {statement.compiled}",
            f"Params:  {len(statement.names)}",
        ]
        for position, name in enumerate(statement.names, start=1):
            lines.append(f"Key: Name: [{len(name) + 1}] :{name}")
            lines.append(f"position={position}")
            parameter = statement.params.get(name)
            if parameter is None:
                lines.append("bound=0")
                continue
            lines.append(f"kind={parameter.kind.value}")
            lines.append(f"value={parameter.value!r}")
        return "\n".join(lines)

    def begin_transaction(self) -> bool:
        conn = self._require_connection("begin_transaction")
        if self._transaction is not None:
            self._fail("There is already an active transaction.", "begin_transaction")
        transaction = conn.transaction()
        try:
            self._run(transaction.start())
        except Exception as exc:
            self._handle_error(exc, "begin_transaction")
        self._transaction = transaction
        LOG.debug("Transaction started")
        return True

    def commit_transaction(self) -> bool:
        transaction = self._take_transaction("commit_transaction")
        try:
            self._run(transaction.commit())
        except Exception as exc:
            self._handle_error(exc, "commit_transaction")
        LOG.debug("Transaction committed")
        return True

    def roll_back_transaction(self) -> bool:
        transaction = self._take_transaction("roll_back_transaction")
        try:
            self._run(transaction.rollback())
        except Exception as exc:
            self._handle_error(exc, "roll_back_transaction")
        LOG.debug("Transaction rolled back")
        return True

    def _take_transaction(self, operation: str) -> Any:
        self._require_connection(operation)
        transaction, self._transaction = self._transaction, None
        if transaction is None:
            self._fail("There is no active transaction.", operation)
        return transaction

    def _require_connection(self, operation: str) -> Any:
        if self._conn is None:
            self._fail("No open connection; call connect() first.", operation)
        return self._conn

    def _require_statement(self, operation: str) -> StatementState:
        self._require_connection(operation)
        if self._statement is None:
            self._fail("No prepared statement; call prepare() first.", operation)
        return self._statement

    def _fail(self, message: str, operation: str) -> NoReturn:
        self._handle_error(DriverError(message, operation=operation), operation)

    def _handle_error(self, exc: BaseException, operation: str) -> NoReturn:
        if isinstance(exc, DriverError):
            error = exc
        else:
            error = DriverError.from_exception(exc, operation=operation)
        LOG.warning(
            "Database operation failed",
            extra={"operation": operation, "sqlstate": error.sqlstate, "debug": self._config.debug},
        )
        if error is exc:
            raise error
        raise error from exc

    def _run(self, coro: Coroutine[Any, Any, T]) -> T:
        if self._loop is None:
            coro.close()
            raise DriverError("No open connection; call connect() first.")
        future = asyncio.run_coroutine_threadsafe(coro, self._loop)
        return future.result()

    def _start_loop(self) -> None:
        if self._loop is not None:
            return
        self._loop = asyncio.new_event_loop()
        self._loop_thread = threading.Thread(
            target=self._loop.run_forever,
            name="pgbind-client-loop",
            daemon=True,
        )
        self._loop_thread.start()

    def _stop_loop(self) -> None:
        loop, thread = self._loop, self._loop_thread
        self._loop = None
        self._loop_thread = None
        if loop is None:
            return
        loop.call_soon_threadsafe(loop.stop)
        if thread is not None:
            thread.join(timeout=1)
        if not loop.is_running():
            loop.close()


def _server_args(statement: StatementState) -> tuple[Any, ...]:
    """Bound values converted to the parameter types the server declared."""

    types = statement.handle.get_parameters()
    values = statement.positional_args()
    return tuple(
        adapt_to_server(value, types[index].name) if index < len(types) else value
        for index, value in enumerate(values)
    )


def _rows_from_status(status: str) -> int:
    """Trailing count of a command tag such as `UPDATE 3` or `INSERT 0 1`."""

    parts = status.split()
    if parts and parts[-1].isdigit():
        return int(parts[-1])
    return 0


__all__ = ["DatabaseClient"]
