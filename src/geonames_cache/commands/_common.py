"""Shared utilities used across CLI command modules."""

import logging
import sys
from pathlib import Path
from typing import Optional

import click


def _configure_logging(verbose: bool) -> None:
    """Configure logging for the GeoNames cache."""
    level = logging.DEBUG if verbose else logging.WARNING

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        stream=sys.stderr,
        force=True,
    )

    logging.getLogger("geonames_cache").setLevel(level)

    # Suppress noisy third-party loggers
    for noisy_logger in [
        "httpcore",
        "httpcore.http11",
        "httpcore.connection",
        "httpx",
    ]:
        logging.getLogger(noisy_logger).setLevel(logging.WARNING)


def _resolve_db_path(db_path: Optional[str] = None) -> Path:
    """Resolve the database path from an explicit --db value or the default."""
    if db_path is not None:
        return Path(db_path)
    from geonames_cache.config import DEFAULT_DB_PATH
    return DEFAULT_DB_PATH


def _get_storage(db_path: Optional[str], prefix: Optional[str]):
    """Open storage for the resolved path and table prefix, creating tables if needed."""
    from geonames_cache.config import DEFAULT_TABLE_PREFIX
    from geonames_cache.store import SQLiteStorage

    storage = SQLiteStorage(
        _resolve_db_path(db_path),
        table_prefix=DEFAULT_TABLE_PREFIX if prefix is None else prefix,
    )
    storage.create_tables()
    return storage
