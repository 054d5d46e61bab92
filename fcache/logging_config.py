"""Logging setup and read statistics for fcache.

Modules log through ``logging.getLogger(__name__)``, so everything lands under
the ``fcache`` logger. The library leaves that logger alone unless
:func:`get_logger` is called; :meth:`fcache.cache.FileCache.from_settings`
does so, applications building caches directly may call it themselves.
"""

from __future__ import annotations

import json
import logging
import threading
from datetime import datetime, timezone
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any

LOG_NAME = "fcache"
MAX_BYTES = 5 * 1024 * 1024
BACKUP_COUNT = 5

# Whatever a bare LogRecord carries is standard; the rest came in via ``extra``.
_STANDARD_ATTRS = frozenset(
    vars(logging.LogRecord(LOG_NAME, logging.INFO, __file__, 0, "", (), None))
) | {"message", "asctime"}


class JsonFormatter(logging.Formatter):
    """One JSON object per line: time, level, logger, message and extras."""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "time": datetime.fromtimestamp(record.created, timezone.utc).isoformat(
                timespec="milliseconds"
            ),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        extra = {k: v for k, v in vars(record).items() if k not in _STANDARD_ATTRS}
        if extra:
            payload["extra"] = extra
        if record.exc_info:
            payload["exc"] = self.formatException(record.exc_info)
        return json.dumps(payload, ensure_ascii=False, default=str)


def get_logger() -> logging.Logger:
    """Attach JSON handlers to the ``fcache`` logger once and return it.

    Level and the optional rotating log file come from
    :mod:`fcache.config.settings`.
    """
    logger = logging.getLogger(LOG_NAME)
    if logger.handlers:
        return logger

    from fcache.config.settings import settings

    formatter = JsonFormatter()
    handlers: list[logging.Handler] = [logging.StreamHandler()]
    if settings.log_file:
        log_file = Path(settings.log_file).expanduser()
        log_file.parent.mkdir(parents=True, exist_ok=True)
        handlers.append(
            RotatingFileHandler(
                log_file, maxBytes=MAX_BYTES, backupCount=BACKUP_COUNT, encoding="utf-8"
            )
        )
    for handler in handlers:
        handler.setFormatter(formatter)
        logger.addHandler(handler)

    logger.setLevel(settings.log_level)
    logger.propagate = False
    return logger


class CacheStats:
    """Thread-safe hit/miss counters for cache reads."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def record_hit(self) -> None:
        with self._lock:
            self._hits += 1

    def record_miss(self) -> None:
        with self._lock:
            self._misses += 1

    def snapshot(self) -> tuple[int, int]:
        """Return ``(hits, misses)`` read together."""
        with self._lock:
            return self._hits, self._misses

    @property
    def hits(self) -> int:
        return self.snapshot()[0]

    @property
    def misses(self) -> int:
        return self.snapshot()[1]

    @property
    def hit_rate(self) -> float:
        """Hits as a percentage of all lookups, 0.0 before the first lookup."""
        hits, misses = self.snapshot()
        total = hits + misses
        return hits / total * 100 if total else 0.0

    def log_hit_rate(self) -> None:
        hits, misses = self.snapshot()
        total = hits + misses
        rate = round(hits / total * 100, 2) if total else 0.0
        logging.getLogger(LOG_NAME).info(
            "Cache hit-rate", extra={"hit_rate": rate, "hits": hits, "misses": misses}
        )
