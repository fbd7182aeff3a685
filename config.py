"""
config.py
---------
Central configuration module. Loads all environment variables
from the .env file and exposes them as typed constants.
"""

import os
from dotenv import load_dotenv

load_dotenv()


# ── Environment ───────────────────────────────────────────
APP_ENV: str = os.getenv("APP_ENV", "development")
IS_PRODUCTION: bool = APP_ENV == "production"

# ── PostgreSQL ────────────────────────────────────────────
DB_HOST: str = os.getenv("DB_HOST", "localhost")
DB_PORT: int = int(os.getenv("DB_PORT", "5432"))
DB_NAME: str = os.getenv("DB_NAME", "app")
DB_USER: str = os.getenv("DB_USER", "app_user")
DB_PASS: str = os.getenv("DB_PASS", "")

DATABASE_URL: str = os.getenv("DATABASE_URL") or (
    f"postgresql://{DB_USER}:{DB_PASS}@{DB_HOST}:{DB_PORT}/{DB_NAME}"
)

DB_POOL_MIN: int = int(os.getenv("DB_POOL_MIN", "1"))
DB_POOL_MAX: int = int(os.getenv("DB_POOL_MAX", "10"))

# ── Database client behaviour ─────────────────────────────
CLIENT_LOG_LEVELS: tuple[str, ...] = (
    ("warn", "error") if IS_PRODUCTION else ("info", "warn", "error")
)
CLIENT_ERROR_FORMAT: str = "minimal" if IS_PRODUCTION else "pretty"

# ── Logging ───────────────────────────────────────────────
LOG_LEVEL: str = (os.getenv("LOG_LEVEL", "INFO") or "INFO").upper()
