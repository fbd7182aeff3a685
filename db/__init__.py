"""
db/ - Database Layer
====================
Builds the shared PostgreSQL client, instruments every operation with
timing logs and closes the pool on shutdown. This layer has no
dependencies on application code.

The shared handle lives in `db.postgres`; importing it opens nothing
until the first query.
"""

from db.client import DatabaseClient, Transaction
from db.errors import ClientClosedError, DatabaseClientError, QueryError
from db.factory import create_client, get_client
from db.lifecycle import LifecycleState, ShutdownController
from db.registry import ResourceRegistry, default_registry

__all__ = [
    "ClientClosedError",
    "DatabaseClient",
    "DatabaseClientError",
    "LifecycleState",
    "QueryError",
    "ResourceRegistry",
    "ShutdownController",
    "Transaction",
    "create_client",
    "default_registry",
    "get_client",
]
