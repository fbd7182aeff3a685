"""
db/errors.py
------------
Exceptions raised by the database client.
"""

from typing import Optional

from models.operation import Operation


class DatabaseClientError(Exception):
    """Base class for all client errors."""


class ClientClosedError(DatabaseClientError):
    """An operation was issued on a client that does not reconnect after disconnect()."""


class QueryError(DatabaseClientError):
    """
    A driver error raised while running an operation.

    The original psycopg2 error is kept as ``__cause__``.
    """

    def __init__(self, message: str, operation: Operation, pgcode: Optional[str] = None):
        super().__init__(message)
        self.operation = operation
        self.model = operation.model
        self.action = operation.action
        self.pgcode = pgcode


def format_query_error(exc: Exception, operation: Operation, error_format: str) -> str:
    """
    Render a driver error according to the client's `error_format`.

    'minimal' keeps the first line of the driver message. 'pretty' and
    'colorless' add the operation, SQLSTATE and statement on separate lines.
    """
    text = str(exc).strip() or type(exc).__name__
    if error_format == "minimal":
        return text.splitlines()[0]

    lines = [f"Invalid `{operation}` invocation:", ""]
    pgcode = getattr(exc, "pgcode", None)
    if pgcode:
        lines.append(f"  SQLSTATE {pgcode}")
    lines.extend(f"  {line}" for line in text.splitlines())
    sql = operation.params.get("sql")
    if sql:
        lines.extend(["", "  Statement:", f"    {' '.join(str(sql).split())}"])
    return "\n".join(lines)
