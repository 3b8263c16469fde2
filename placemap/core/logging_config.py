from __future__ import annotations

import logging
import logging.handlers
import os

# Chatty third-party loggers kept at WARNING regardless of the app level.
QUIET_LOGGERS = ("aiohttp", "passlib", "multipart")


def configure_logging(
    *,
    log_dir: str,
    level: str = "INFO",
    sync_level: str | None = None,
    filename: str = "placemap.log",
) -> None:
    """Console plus rotating file logging for the API and the sync engine.

    ``sync_level`` overrides the level of ``placemap.sync`` only, e.g. DEBUG to
    see which stale search pages and review lists were dropped.
    """
    os.makedirs(log_dir, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(_level(level))
    if sync_level:
        logging.getLogger("placemap.sync").setLevel(_level(sync_level))
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)

    if root.handlers:
        return

    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console = logging.StreamHandler()
    console.setFormatter(formatter)

    file_handler = logging.handlers.RotatingFileHandler(
        filename=os.path.join(log_dir, filename),
        maxBytes=5 * 1024 * 1024,
        backupCount=3,
        encoding="utf-8",
    )
    file_handler.setFormatter(formatter)

    root.addHandler(console)
    root.addHandler(file_handler)


def _level(name: str) -> int:
    return getattr(logging, name.upper(), logging.INFO)
