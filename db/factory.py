"""
db/factory.py
-------------
Builds configured database clients and hands out the shared instance.
"""

import logging
from typing import Callable, Optional

import config
from db.client import DatabaseClient
from db.middleware import timing_middleware
from db.registry import CLIENT_KEY, ResourceRegistry, default_registry
from models.client_options import ClientOptions
from utils.logger import get_logger

logger = get_logger(__name__)


def create_client(
    options: Optional[ClientOptions] = None,
    is_production: Optional[bool] = None,
    log: Optional[logging.Logger] = None,
) -> DatabaseClient:
    """
    Create a client with the timing middleware attached.

    Args:
        options: Client configuration (default: derived from config.py).
        is_production: Environment mode (default: config.IS_PRODUCTION).
        log: Logger used by the timing middleware.

    Returns:
        A DatabaseClient; no connection is opened yet.
    """
    if is_production is None:
        is_production = config.IS_PRODUCTION
    client = DatabaseClient(options or ClientOptions.from_config())
    client.use(timing_middleware(is_production, log))
    logger.info(
        f"Database client created (log={','.join(client.options.log)}, "
        f"error_format={client.options.error_format})."
    )
    return client


def get_client(
    registry: Optional[ResourceRegistry] = None,
    is_production: Optional[bool] = None,
    factory: Callable[[], DatabaseClient] = create_client,
) -> DatabaseClient:
    """
    Return the process-wide client.

    Outside production the instance is kept in the registry, so repeated
    calls (and module reloads) reuse it. In production the factory is
    called directly; the caller is expected to do this once per process.
    """
    if is_production is None:
        is_production = config.IS_PRODUCTION
    if is_production:
        return factory()
    return (registry or default_registry).get_or_create(CLIENT_KEY, factory)
