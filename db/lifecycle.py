"""
db/lifecycle.py
---------------
Graceful shutdown for the shared database client.

Two triggers lead to the same one-shot disconnect:
    - the client's `before_exit` event (interpreter about to exit);
    - SIGINT / SIGTERM delivered to the process.
"""

import enum
import logging
import signal
import threading
from typing import Iterable, Optional

from db.client import DatabaseClient
from utils.logger import get_logger


class LifecycleState(enum.Enum):
    ACTIVE = "active"
    DISCONNECTING = "disconnecting"
    DISCONNECTED = "disconnected"


DEFAULT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ShutdownController:
    """
    Closes the client exactly once, whichever trigger fires first.

    Args:
        client: The client to close.
        is_production: Silences the before-exit log line when True.
        logger: Destination logger (default: this module's logger).
    """

    def __init__(
        self,
        client: DatabaseClient,
        is_production: bool,
        logger: Optional[logging.Logger] = None,
    ):
        self.client = client
        self.is_production = is_production
        self.logger = logger or get_logger(__name__)
        self.state = LifecycleState.ACTIVE
        self._lock = threading.RLock()
        self._previous_handlers: dict[int, object] = {}
        client.on("before_exit", self.on_before_exit)

    def disconnect(self) -> None:
        """Close the client; errors are logged, never raised. Later calls are no-ops."""
        with self._lock:
            if self.state is not LifecycleState.ACTIVE:
                return
            self.state = LifecycleState.DISCONNECTING
        try:
            self.client.disconnect()
        except Exception as e:
            self.logger.error(f"[db] Error during disconnect: {e}")
        finally:
            self.state = LifecycleState.DISCONNECTED

    def on_before_exit(self) -> None:
        if not self.is_production:
            self.logger.info("[db] before_exit => disconnect")
        self.disconnect()

    def handle_signal(self, signum: int, frame) -> None:
        """Signal handler: disconnect, then defer to whatever handler was installed before."""
        name = signal.Signals(signum).name
        self.logger.info(f"[db] Received {name}. Closing DB connections...")
        self.disconnect()

        previous = self._previous_handlers.get(signum)
        if callable(previous):
            previous(signum, frame)
        elif previous == signal.SIG_DFL:
            signal.signal(signum, signal.SIG_DFL)
            signal.raise_signal(signum)

    def install_signal_handlers(self, signals: Iterable[int] = DEFAULT_SIGNALS) -> dict[int, object]:
        """
        Register `handle_signal` for each signal.

        Only the main thread may install handlers; elsewhere this logs a
        warning and installs nothing.

        Returns:
            The handlers that were replaced, keyed by signal number.
        """
        if threading.current_thread() is not threading.main_thread():
            self.logger.warning("Signal handlers not installed: not running in the main thread.")
            return {}
        for signum in signals:
            previous = signal.signal(signum, self.handle_signal)
            self._previous_handlers[signum] = signal.SIG_DFL if previous is None else previous
        return dict(self._previous_handlers)

    def uninstall_signal_handlers(self) -> None:
        """Restore the handlers replaced by install_signal_handlers()."""
        for signum, previous in self._previous_handlers.items():
            signal.signal(signum, previous)
        self._previous_handlers.clear()
