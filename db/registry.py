"""
db/registry.py
--------------
Process-lifetime registry for expensive shared resources.

Reloading a module that builds the database client (e.g. under a
development auto-reloader) must not open a second pool. The registry
lives in its own module so it survives such reloads.
"""

import threading
from typing import Any, Callable

from utils.logger import get_logger

logger = get_logger(__name__)

CLIENT_KEY = "__db_client__"


class ResourceRegistry:
    """Keyed storage with a get-or-create guarded by a single lock."""

    def __init__(self):
        self._items: dict[str, Any] = {}
        self._lock = threading.Lock()

    def get_or_create(self, key: str, factory: Callable[[], Any]) -> Any:
        """
        Return the resource stored under `key`, building it once if absent.

        The factory runs at most once per key, even with concurrent callers.
        """
        with self._lock:
            if key not in self._items:
                self._items[key] = factory()
                logger.info(f"Registered shared resource '{key}'.")
            return self._items[key]

    def get(self, key: str, default: Any = None) -> Any:
        return self._items.get(key, default)

    def pop(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._items.pop(key, default)

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def __contains__(self, key: str) -> bool:
        return key in self._items


default_registry = ResourceRegistry()
