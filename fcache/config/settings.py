"""Cache settings.

Environment variables are loaded from a ``.env`` file using ``python-dotenv``
and exposed through a frozen Pydantic settings object.
"""

from __future__ import annotations

import logging
import os
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict

# Load environment variables from a .env file if present
load_dotenv()

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
DEFAULT_PATH = "~/.fcache/cache.db"
DEFAULT_BUCKET = "f-cache"
DEFAULT_TIMEOUT = 5.0  # seconds to wait on a locked database
DEFAULT_LOG_LEVEL = "INFO"


class Settings(BaseModel):
    """Immutable settings object used across the package."""

    path: str = DEFAULT_PATH
    bucket: str = DEFAULT_BUCKET
    timeout: float = DEFAULT_TIMEOUT
    log_level: str = DEFAULT_LOG_LEVEL
    log_file: Optional[str] = None

    model_config = ConfigDict(frozen=True)


def _build_settings() -> Settings:
    """Construct the ``Settings`` instance based on environment variables."""

    path = os.getenv("FCACHE_PATH") or DEFAULT_PATH
    bucket = os.getenv("FCACHE_BUCKET") or DEFAULT_BUCKET

    raw_timeout = os.getenv("FCACHE_TIMEOUT")
    if raw_timeout is None or not raw_timeout.strip():
        timeout = DEFAULT_TIMEOUT
    else:
        try:
            timeout = float(raw_timeout)
        except ValueError:
            raise RuntimeError(f"FCACHE_TIMEOUT must be a number, got {raw_timeout!r}") from None
        if timeout < 0:
            raise RuntimeError("FCACHE_TIMEOUT must not be negative")

    log_level = (os.getenv("FCACHE_LOG_LEVEL") or DEFAULT_LOG_LEVEL).upper()
    if not isinstance(logging.getLevelName(log_level), int):
        raise RuntimeError(f"Unsupported FCACHE_LOG_LEVEL: {log_level}")

    log_file = os.getenv("FCACHE_LOG_FILE") or None

    return Settings(
        path=path,
        bucket=bucket,
        timeout=timeout,
        log_level=log_level,
        log_file=log_file,
    )


# Public settings instance
settings = _build_settings()
