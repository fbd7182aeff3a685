"""
db/postgres.py
--------------
The application's shared database handle.

    from db.postgres import db
    rows = db.fetch_all("SELECT id, name FROM users", model="users")

Importing this module creates (or, outside production, reuses) the client
and wires graceful shutdown on SIGINT/SIGTERM and interpreter exit.
"""

import config
from db.factory import get_client
from db.lifecycle import ShutdownController
from db.registry import default_registry

CONTROLLER_KEY = "__db_shutdown__"


def _controller_for(client) -> ShutdownController:
    controller = ShutdownController(client, config.IS_PRODUCTION)
    controller.install_signal_handlers()
    return controller


db = get_client()

if config.IS_PRODUCTION:
    shutdown = _controller_for(db)
else:
    shutdown = default_registry.get_or_create(CONTROLLER_KEY, lambda: _controller_for(db))
