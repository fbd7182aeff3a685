"""
db/middleware.py
----------------
Timing/logging middleware for the database client.

Every operation is timed. Successful operations are logged outside
production; failures are logged in every mode and re-raised untouched.
"""

import logging
import time
from typing import Any, Callable, Optional

from models.operation import Operation
from utils.logger import get_logger

_SCALARS = (str, bytes, bytearray, int, float, bool)


def describe_size(result: Any) -> str:
    """
    Size annotation appended to a success log line.

    Returns:
        ' items=N' for a list/tuple, ' item=1' for any other non-null
        structured value, '' for None and scalars.
    """
    if isinstance(result, (list, tuple)):
        return f" items={len(result)}"
    if result is not None and not isinstance(result, _SCALARS):
        return " item=1"
    return ""


def _elapsed_ms(start: float) -> int:
    return max(0, int((time.perf_counter() - start) * 1000))


def timing_middleware(
    is_production: bool, logger: Optional[logging.Logger] = None
) -> Callable[[Operation, Callable[[Operation], Any]], Any]:
    """
    Build the middleware to register with `DatabaseClient.use()`.

    Args:
        is_production: Suppresses success lines when True.
        logger: Destination logger (default: this module's logger).
    """
    log = logger or get_logger(__name__)

    def middleware(operation: Operation, call_next: Callable[[Operation], Any]) -> Any:
        start = time.perf_counter()
        try:
            result = call_next(operation)
        except BaseException:
            log.error(f"[db] {operation} FAILED after {_elapsed_ms(start)} ms")
            raise

        if not is_production:
            log.info(f"[db] {operation} ({_elapsed_ms(start)} ms){describe_size(result)}")
        return result

    return middleware
