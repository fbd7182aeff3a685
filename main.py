"""
main.py
-------
Entry point for a standalone connectivity check of the shared database client.

Responsibilities:
    - Build the shared client (graceful shutdown is wired on import).
    - Ping the database once and report the outcome.
    - Stay alive until SIGINT/SIGTERM so the shutdown path can be observed.
"""

import signal
import sys

import config
from db.errors import DatabaseClientError
from utils.logger import get_logger

logger = get_logger(__name__)


def main() -> int:
    """Run the check; returns the process exit status."""
    logger.info(f"Starting in {config.APP_ENV} mode (production={config.IS_PRODUCTION}).")

    from db.postgres import db, shutdown

    try:
        db.ping()
    except DatabaseClientError as e:
        logger.error(f"Database is not reachable: {e}")
        shutdown.disconnect()
        return 1

    logger.info("Database is reachable. Press Ctrl+C to stop.")
    if hasattr(signal, "pause"):
        try:
            signal.pause()
        except KeyboardInterrupt:
            pass
    shutdown.disconnect()
    logger.info("Stopped.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
