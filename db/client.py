"""
db/client.py
------------
PostgreSQL client built on psycopg2's ThreadedConnectionPool.

The pool is opened lazily on the first operation, so constructing a client
never touches the network. Every operation is described by an `Operation`
and passed through the registered middlewares before it reaches the driver.
"""

import atexit
import threading
from contextlib import contextmanager
from typing import Any, Callable, Iterator, Optional, Sequence

import psycopg2
from psycopg2 import pool, extras

from db.errors import ClientClosedError, QueryError, format_query_error
from models.client_options import ClientOptions
from models.operation import Operation
from utils.logger import set_level

Middleware = Callable[[Operation, Callable[[Operation], Any]], Any]

EVENTS = ("before_exit",)


# ── Driver work functions ─────────────────────────────────
# Each receives a raw connection and the operation params.

def _fetch_all(conn, params: dict) -> list[dict]:
    with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
        cur.execute(params["sql"], params.get("params"))
        return [dict(row) for row in cur.fetchall()]


def _fetch_one(conn, params: dict) -> Optional[dict]:
    with conn.cursor(cursor_factory=extras.RealDictCursor) as cur:
        cur.execute(params["sql"], params.get("params"))
        row = cur.fetchone()
        return dict(row) if row else None


def _fetch_value(conn, params: dict) -> Any:
    with conn.cursor() as cur:
        cur.execute(params["sql"], params.get("params"))
        row = cur.fetchone()
        return row[0] if row else None


def _execute(conn, params: dict) -> int:
    with conn.cursor() as cur:
        cur.execute(params["sql"], params.get("params"))
        return cur.rowcount


def _execute_many(conn, params: dict) -> int:
    with conn.cursor() as cur:
        cur.executemany(params["sql"], params["seq_of_params"])
        return cur.rowcount


class DatabaseClient:
    """
    Shared handle to a PostgreSQL connection pool.

    Args:
        options: Client configuration (defaults to ClientOptions.from_config()).
        reconnect: Reopen the pool on demand after disconnect(). When False,
            operations after disconnect() raise ClientClosedError.
    """

    def __init__(self, options: Optional[ClientOptions] = None, reconnect: bool = True):
        self.options = options or ClientOptions.from_config()
        self.reconnect = reconnect
        self.logger = set_level("db.client", self.options.log)
        self._pool: Optional[pool.ThreadedConnectionPool] = None
        self._closed = False
        # Reentrant: signal handlers run disconnect() on the thread that may hold it.
        self._lock = threading.RLock()
        self._generation = 0
        self._middlewares: list[Middleware] = []
        self._listeners: dict[str, list[Callable[[], Any]]] = {e: [] for e in EVENTS}
        self._atexit_registered = False

    # ── Extension points ──────────────────────────────────

    def use(self, middleware: Middleware) -> None:
        """Append a middleware; the first registered runs outermost."""
        self._middlewares.append(middleware)

    def on(self, event: str, listener: Callable[[], Any]) -> None:
        """
        Subscribe to a client event.

        Raises:
            ValueError: If the event is not supported.
        """
        if event not in self._listeners:
            raise ValueError(f"Unsupported event {event!r}; expected one of {EVENTS}")
        self._listeners[event].append(listener)

    def emit(self, event: str) -> None:
        """Invoke all listeners of an event in subscription order."""
        for listener in list(self._listeners.get(event, ())):
            listener()

    def _on_interpreter_exit(self) -> None:
        if self.is_connected:
            self.emit("before_exit")

    # ── Connection management ─────────────────────────────

    @property
    def is_connected(self) -> bool:
        return self._pool is not None and not self._pool.closed

    def connect(self) -> pool.ThreadedConnectionPool:
        """
        Open the connection pool if it is not open yet.

        Returns:
            The live pool.

        Raises:
            ClientClosedError: If the client was disconnected and may not reconnect.
            psycopg2.OperationalError: If the database is unreachable.
        """
        with self._lock:
            if self._pool is not None and not self._pool.closed:
                return self._pool
            if self._closed and not self.reconnect:
                raise ClientClosedError("Client has been disconnected.")
            generation = self._generation
            try:
                opened = pool.ThreadedConnectionPool(
                    self.options.min_conn, self.options.max_conn, self.options.dsn
                )
            except psycopg2.OperationalError as e:
                self.logger.error(f"Failed to open database pool: {e}")
                raise
            # A signal handler may have called disconnect() while the pool was opening.
            if self._generation != generation:
                opened.closeall()
                raise ClientClosedError("Client was disconnected while connecting.")
            self._pool = opened
            self._closed = False
            if not self._atexit_registered:
                atexit.register(self._on_interpreter_exit)
                self._atexit_registered = True
            self.logger.info(
                f"Database pool opened (min={self.options.min_conn}, max={self.options.max_conn})."
            )
            return self._pool

    def disconnect(self) -> None:
        """Close every pooled connection. Safe to call when already disconnected."""
        with self._lock:
            current, self._pool = self._pool, None
            self._closed = True
            self._generation += 1
        if current is None or current.closed:
            return
        current.closeall()
        self.logger.info("Database pool closed.")

    # ── Dispatch ──────────────────────────────────────────

    def _dispatch(self, operation: Operation, handler: Callable[[Operation], Any]) -> Any:
        middlewares = tuple(self._middlewares)

        def call(index: int, op: Operation) -> Any:
            if index == len(middlewares):
                return handler(op)
            return middlewares[index](op, lambda next_op: call(index + 1, next_op))

        return call(0, operation)

    def _query_error(self, exc: Exception, operation: Operation) -> QueryError:
        message = format_query_error(exc, operation, self.options.error_format)
        return QueryError(message, operation, getattr(exc, "pgcode", None))

    def _acquire(self, operation: Operation):
        try:
            current = self.connect()
            return current, current.getconn()
        except psycopg2.Error as e:
            raise self._query_error(e, operation) from e

    def _release(self, current, conn) -> None:
        if current.closed:
            conn.close()
        else:
            current.putconn(conn)

    def _rollback(self, conn) -> None:
        try:
            conn.rollback()
        except psycopg2.Error as e:
            self.logger.warning(f"Rollback failed: {e}")

    def _execute_on(self, conn, operation: Operation, work, commit: bool) -> Any:
        self.logger.debug(f"{operation}: {operation.params.get('sql')}")
        try:
            result = work(conn, operation.params)
            if commit:
                conn.commit()
            return result
        except psycopg2.Error as e:
            raise self._query_error(e, operation) from e

    def _run(self, operation: Operation, work) -> Any:
        current, conn = self._acquire(operation)
        try:
            return self._execute_on(conn, operation, work, commit=True)
        except Exception:
            self._rollback(conn)
            raise
        finally:
            self._release(current, conn)

    def _call(self, action: str, work, params: dict, model: Optional[str]) -> Any:
        operation = Operation(model=model, action=action, params=params)
        return self._dispatch(operation, lambda op: self._run(op, work))

    # ── Operations ────────────────────────────────────────

    def fetch_all(self, sql: str, params: Any = None, model: Optional[str] = None) -> list[dict]:
        """Run a query and return every row as a dict."""
        return self._call("fetch_all", _fetch_all, {"sql": sql, "params": params}, model)

    def fetch_one(self, sql: str, params: Any = None, model: Optional[str] = None) -> Optional[dict]:
        """Run a query and return the first row as a dict, or None."""
        return self._call("fetch_one", _fetch_one, {"sql": sql, "params": params}, model)

    def fetch_value(self, sql: str, params: Any = None, model: Optional[str] = None) -> Any:
        """Run a query and return the first column of the first row, or None."""
        return self._call("fetch_value", _fetch_value, {"sql": sql, "params": params}, model)

    def execute(self, sql: str, params: Any = None, model: Optional[str] = None) -> int:
        """Run a statement and return the affected row count."""
        return self._call("execute", _execute, {"sql": sql, "params": params}, model)

    def execute_many(
        self, sql: str, seq_of_params: Sequence[Any], model: Optional[str] = None
    ) -> int:
        """Run a statement once per parameter set."""
        return self._call(
            "execute_many", _execute_many, {"sql": sql, "seq_of_params": seq_of_params}, model
        )

    def ping(self) -> bool:
        """Check connectivity with `SELECT 1`."""
        return self._call("ping", _fetch_value, {"sql": "SELECT 1"}, None) == 1

    @contextmanager
    def transaction(self) -> Iterator["Transaction"]:
        """
        Run several operations on one connection.

        Commits when the block exits cleanly, rolls back and re-raises otherwise.

        Usage:
            with db.transaction() as tx:
                tx.execute("UPDATE ...", (...,), model="accounts")
        """
        operation = Operation(action="transaction")
        current, conn = self._acquire(operation)
        try:
            yield Transaction(self, conn)
            try:
                conn.commit()
            except psycopg2.Error as e:
                raise self._query_error(e, operation) from e
        except Exception:
            self._rollback(conn)
            raise
        finally:
            self._release(current, conn)


class Transaction:
    """Operations bound to a single pooled connection; see DatabaseClient.transaction()."""

    def __init__(self, client: DatabaseClient, conn):
        self._client = client
        self._conn = conn

    def _call(self, action: str, work, params: dict, model: Optional[str]) -> Any:
        operation = Operation(model=model, action=action, params=params)
        return self._client._dispatch(
            operation,
            lambda op: self._client._execute_on(self._conn, op, work, commit=False),
        )

    def fetch_all(self, sql: str, params: Any = None, model: Optional[str] = None) -> list[dict]:
        return self._call("fetch_all", _fetch_all, {"sql": sql, "params": params}, model)

    def fetch_one(self, sql: str, params: Any = None, model: Optional[str] = None) -> Optional[dict]:
        return self._call("fetch_one", _fetch_one, {"sql": sql, "params": params}, model)

    def fetch_value(self, sql: str, params: Any = None, model: Optional[str] = None) -> Any:
        return self._call("fetch_value", _fetch_value, {"sql": sql, "params": params}, model)

    def execute(self, sql: str, params: Any = None, model: Optional[str] = None) -> int:
        return self._call("execute", _execute, {"sql": sql, "params": params}, model)

    def execute_many(
        self, sql: str, seq_of_params: Sequence[Any], model: Optional[str] = None
    ) -> int:
        return self._call(
            "execute_many", _execute_many, {"sql": sql, "seq_of_params": seq_of_params}, model
        )
