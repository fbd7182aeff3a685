"""
models/client_options.py
------------------------
Construction options for the database client.
"""

from dataclasses import dataclass, field

import config

ERROR_FORMATS = ("minimal", "pretty", "colorless")


@dataclass
class ClientOptions:
    """
    Represents the configuration handed to the client factory.

    Attributes:
        log: Event levels the client records ('query', 'info', 'warn', 'error').
        error_format: Detail level of raised query errors.
        dsn: libpq connection string or URL.
        min_conn: Minimum number of pooled connections.
        max_conn: Maximum number of pooled connections.
    """
    log: tuple[str, ...] = field(default_factory=lambda: ("info", "warn", "error"))
    error_format: str = "pretty"
    dsn: str = ""
    min_conn: int = 1
    max_conn: int = 10

    def __post_init__(self) -> None:
        if self.error_format not in ERROR_FORMATS:
            raise ValueError(
                f"error_format must be one of {ERROR_FORMATS}, got {self.error_format!r}"
            )
        if self.min_conn < 0 or self.max_conn < max(self.min_conn, 1):
            raise ValueError(
                f"Invalid pool bounds: min_conn={self.min_conn}, max_conn={self.max_conn}"
            )

    @classmethod
    def from_config(cls) -> "ClientOptions":
        """Build options from the environment-derived settings in config.py."""
        return cls(
            log=config.CLIENT_LOG_LEVELS,
            error_format=config.CLIENT_ERROR_FORMAT,
            dsn=config.DATABASE_URL,
            min_conn=config.DB_POOL_MIN,
            max_conn=config.DB_POOL_MAX,
        )
