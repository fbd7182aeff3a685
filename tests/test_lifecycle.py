"""Unit tests for ShutdownController."""

import os
import signal
import subprocess
import sys
import threading
from pathlib import Path
from unittest.mock import Mock, patch

import pytest

from db.lifecycle import LifecycleState, ShutdownController


@pytest.fixture
def fake_client():
    return Mock(name="client")


class TestDisconnect:
    """The one-shot disconnect action."""

    def test_registers_before_exit_listener(self, fake_client):
        controller = ShutdownController(fake_client, is_production=False)

        fake_client.on.assert_called_once_with("before_exit", controller.on_before_exit)

    def test_disconnect_closes_client(self, fake_client):
        controller = ShutdownController(fake_client, is_production=False)

        controller.disconnect()

        fake_client.disconnect.assert_called_once_with()
        assert controller.state is LifecycleState.DISCONNECTED

    def test_second_disconnect_is_noop(self, fake_client):
        controller = ShutdownController(fake_client, is_production=False)

        controller.disconnect()
        controller.disconnect()

        fake_client.disconnect.assert_called_once_with()

    def test_disconnect_error_is_logged_not_raised(self, fake_client, test_logger, caplog):
        fake_client.disconnect.side_effect = RuntimeError("socket closed")
        controller = ShutdownController(fake_client, is_production=True, logger=test_logger)

        controller.disconnect()

        assert controller.state is LifecycleState.DISCONNECTED
        assert caplog.records[-1].levelname == "ERROR"
        assert "Error during disconnect: socket closed" in caplog.records[-1].getMessage()


class TestBeforeExit:
    """Trigger 1: the client's before_exit event."""

    def test_development_logs_transition(self, fake_client, test_logger, caplog):
        controller = ShutdownController(fake_client, is_production=False, logger=test_logger)

        controller.on_before_exit()

        assert caplog.records[-1].getMessage() == "[db] before_exit => disconnect"
        fake_client.disconnect.assert_called_once_with()

    def test_production_is_silent(self, fake_client, test_logger, caplog):
        controller = ShutdownController(fake_client, is_production=True, logger=test_logger)

        controller.on_before_exit()

        assert caplog.records == []
        fake_client.disconnect.assert_called_once_with()


class TestSignals:
    """Trigger 2: SIGINT / SIGTERM."""

    def test_handle_signal_logs_name_and_disconnects(self, fake_client, test_logger, caplog):
        controller = ShutdownController(fake_client, is_production=True, logger=test_logger)

        controller.handle_signal(signal.SIGTERM, None)

        assert caplog.records[0].getMessage() == "[db] Received SIGTERM. Closing DB connections..."
        fake_client.disconnect.assert_called_once_with()

    def test_two_signals_do_not_raise(self, fake_client, test_logger):
        controller = ShutdownController(fake_client, is_production=False, logger=test_logger)

        controller.handle_signal(signal.SIGINT, None)
        controller.handle_signal(signal.SIGTERM, None)

        fake_client.disconnect.assert_called_once_with()

    def test_signal_then_before_exit(self, fake_client, test_logger):
        controller = ShutdownController(fake_client, is_production=False, logger=test_logger)

        controller.handle_signal(signal.SIGINT, None)
        controller.on_before_exit()

        fake_client.disconnect.assert_called_once_with()

    def test_previous_handler_is_chained(self, fake_client):
        controller = ShutdownController(fake_client, is_production=False)
        previous = Mock()

        with patch("db.lifecycle.signal.signal", return_value=previous) as mock_signal:
            controller.install_signal_handlers([signal.SIGTERM])
            controller.handle_signal(signal.SIGTERM, None)

        mock_signal.assert_called_once_with(signal.SIGTERM, controller.handle_signal)
        previous.assert_called_once_with(signal.SIGTERM, None)

    def test_default_handler_reraises_signal(self, fake_client):
        controller = ShutdownController(fake_client, is_production=False)

        with patch("db.lifecycle.signal.signal", return_value=signal.SIG_DFL) as mock_signal, \
                patch("db.lifecycle.signal.raise_signal") as mock_raise:
            controller.install_signal_handlers([signal.SIGTERM])
            controller.handle_signal(signal.SIGTERM, None)

        mock_signal.assert_called_with(signal.SIGTERM, signal.SIG_DFL)
        mock_raise.assert_called_once_with(signal.SIGTERM)

    def test_ignored_signal_stays_ignored(self, fake_client):
        controller = ShutdownController(fake_client, is_production=False)

        with patch("db.lifecycle.signal.signal", return_value=signal.SIG_IGN), \
                patch("db.lifecycle.signal.raise_signal") as mock_raise:
            controller.install_signal_handlers([signal.SIGTERM])
            controller.handle_signal(signal.SIGTERM, None)

        mock_raise.assert_not_called()
        fake_client.disconnect.assert_called_once_with()

    def test_install_and_uninstall_real_handlers(self, fake_client):
        original = signal.getsignal(signal.SIGTERM)
        controller = ShutdownController(fake_client, is_production=False)

        replaced = controller.install_signal_handlers([signal.SIGTERM])
        try:
            assert signal.getsignal(signal.SIGTERM) == controller.handle_signal
            assert replaced[signal.SIGTERM] == original
        finally:
            controller.uninstall_signal_handlers()

        assert signal.getsignal(signal.SIGTERM) == original

    def test_install_outside_main_thread_is_skipped(self, fake_client, test_logger, caplog):
        controller = ShutdownController(fake_client, is_production=False, logger=test_logger)
        result = {}

        thread = threading.Thread(target=lambda: result.update(controller.install_signal_handlers()))
        thread.start()
        thread.join()

        assert result == {}
        assert "not running in the main thread" in caplog.records[-1].getMessage()


SIGTERM_DURING_CONNECT = """
import os
import signal
from unittest.mock import MagicMock, patch

from db.client import DatabaseClient
from db.lifecycle import ShutdownController
from models.client_options import ClientOptions

client = DatabaseClient(ClientOptions(dsn="postgresql://app@localhost:5432/app"))
ShutdownController(client, is_production=False).install_signal_handlers()


def opening(*args, **kwargs):
    os.kill(os.getpid(), signal.SIGTERM)
    for _ in range(10000):
        pass
    pool = MagicMock()
    pool.closed = False
    return pool


with patch("db.client.pool.ThreadedConnectionPool", side_effect=opening), \\
        patch("db.client.atexit.register"):
    try:
        client.connect()
    except Exception:
        pass
print("still running")
"""


@pytest.mark.skipif(not hasattr(signal, "SIGKILL"), reason="POSIX signal semantics")
class TestSignalDuringConnect:
    """A real SIGTERM delivered while the pool is being opened."""

    def test_process_terminates(self):
        root = Path(__file__).resolve().parents[1]
        env = dict(os.environ, PYTHONPATH=str(root), APP_ENV="development")

        result = subprocess.run(
            [sys.executable, "-c", SIGTERM_DURING_CONNECT],
            cwd=root,
            env=env,
            capture_output=True,
            text=True,
            timeout=20,
        )

        assert result.returncode == -signal.SIGTERM, result.stderr
        assert "Received SIGTERM" in result.stdout
        assert "still running" not in result.stdout
