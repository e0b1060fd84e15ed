"""
SQLite storage for the GeoNames cache.

Two tables are kept: country-level attributes keyed by geoname id and ISO2,
and a generic location cache keyed by geoname id. Table names in SQL are
written with the {prefix} placeholder and rewritten with the configured
table prefix before execution.
"""

import logging
import sqlite3
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator, Optional, Protocol, Sequence

from .config import DEFAULT_DB_PATH, DEFAULT_TABLE_PREFIX, TABLE_PREFIX_PLACEHOLDER
from .errors import StorageError

logger = logging.getLogger(__name__)

# Module-level shared connections by path
_shared_connections: dict[str, sqlite3.Connection] = {}

COUNTRIES_TABLE = f"{TABLE_PREFIX_PLACEHOLDER}geonames_countries"
LOCATIONS_TABLE = f"{TABLE_PREFIX_PLACEHOLDER}geonames_locations_cache"

CREATE_COUNTRIES = f"""
    CREATE TABLE IF NOT EXISTS {COUNTRIES_TABLE} (
        geoname_id INTEGER PRIMARY KEY,
        iso2 TEXT UNIQUE,
        iso3 TEXT,
        iso_numeric INTEGER,
        fips TEXT,
        country TEXT,
        capital TEXT,
        languages TEXT,
        continent TEXT,
        neighbours TEXT,
        area INTEGER,
        population INTEGER,
        tld TEXT,
        currency_code TEXT,
        currency_name TEXT,
        phone TEXT,
        postal_code_format TEXT,
        postal_code_regex TEXT,
        db_update TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
"""

CREATE_LOCATIONS = f"""
    CREATE TABLE IF NOT EXISTS {LOCATIONS_TABLE} (
        geoname_id INTEGER PRIMARY KEY,
        name TEXT,
        ascii_name TEXT,
        latitude REAL,
        longitude REAL,
        feature_class TEXT,
        feature_code TEXT,
        country_code TEXT,
        country_id INTEGER,
        admin1_code TEXT,
        admin2_code TEXT,
        continent_code TEXT,
        population INTEGER,
        elevation INTEGER,
        timezone TEXT,
        db_update TEXT NOT NULL DEFAULT CURRENT_TIMESTAMP
    )
"""

CREATE_INDEXES = [
    f"CREATE INDEX IF NOT EXISTS idx_{TABLE_PREFIX_PLACEHOLDER}locations_country_code "
    f"ON {LOCATIONS_TABLE}(country_code)",
    f"CREATE INDEX IF NOT EXISTS idx_{TABLE_PREFIX_PLACEHOLDER}locations_feature "
    f"ON {LOCATIONS_TABLE}(feature_class, feature_code)",
]


def _apply_pragmas(conn: sqlite3.Connection) -> None:
    """Apply PRAGMAs for a small, write-mostly-by-upsert cache."""
    conn.execute("PRAGMA journal_mode = WAL")
    conn.execute("PRAGMA temp_store = MEMORY")
    logger.debug("Applied PRAGMAs: journal_mode=WAL, temp_store=MEMORY")


def _get_shared_connection(db_path: Path) -> sqlite3.Connection:
    """Get or create a shared database connection for the given path."""
    path_key = str(db_path)

    if path_key not in _shared_connections:
        db_path.parent.mkdir(parents=True, exist_ok=True)

        conn = sqlite3.connect(str(db_path))
        conn.row_factory = sqlite3.Row
        _apply_pragmas(conn)

        _shared_connections[path_key] = conn
        logger.debug(f"Created shared database connection for {path_key}")

    return _shared_connections[path_key]


def close_shared_connection(db_path: Optional[Path] = None) -> None:
    """Close a shared database connection."""
    path_key = str(db_path or DEFAULT_DB_PATH)
    if path_key in _shared_connections:
        _shared_connections[path_key].close()
        del _shared_connections[path_key]
        logger.debug(f"Closed shared database connection for {path_key}")


class Storage(Protocol):
    """What the loader and repositories need from a storage backend."""

    def execute(self, sql: str, params: Sequence[Any] = ()) -> list[Any]: ...

    def replace_table_prefix(self, sql: str) -> str: ...

    def transaction(self) -> Any: ...


class SQLiteStorage:
    """
    SQLite-backed storage.

    Statements run in autocommit fashion unless wrapped in ``transaction()``,
    in which case the whole block commits or rolls back together.
    """

    def __init__(self, db_path: Optional[str | Path] = None, table_prefix: str = DEFAULT_TABLE_PREFIX):
        """
        Initialize the storage.

        Args:
            db_path: Path to database file (creates if not exists)
            table_prefix: Prefix substituted for {prefix} in table names
        """
        self._db_path = Path(db_path) if db_path else DEFAULT_DB_PATH
        self.table_prefix = table_prefix
        self._conn: Optional[sqlite3.Connection] = None
        self._in_transaction = False

    @property
    def db_path(self) -> Path:
        return self._db_path

    def _connect(self) -> sqlite3.Connection:
        """Get or create database connection using shared connection pool."""
        if self._conn is not None:
            return self._conn

        self._conn = _get_shared_connection(self._db_path)
        return self._conn

    def close(self) -> None:
        """Clear connection reference."""
        self._conn = None

    def replace_table_prefix(self, sql: str) -> str:
        """Rewrite the {prefix} placeholder with the configured table prefix."""
        return sql.replace(TABLE_PREFIX_PLACEHOLDER, self.table_prefix)

    def create_tables(self) -> None:
        """Create the country and location cache tables and their indexes."""
        for statement in [CREATE_COUNTRIES, CREATE_LOCATIONS, *CREATE_INDEXES]:
            self.execute(statement)
        logger.info(f"Ensured GeoNames tables with prefix '{self.table_prefix}' in {self._db_path}")

    def execute(self, sql: str, params: Sequence[Any] = ()) -> list[sqlite3.Row]:
        """
        Execute one statement and return its rows.

        Raises:
            StorageError: the database reported an error (not retried)
        """
        conn = self._connect()
        sql = self.replace_table_prefix(sql)
        try:
            cursor = conn.execute(sql, list(params))
            rows = cursor.fetchall()
            if not self._in_transaction:
                conn.commit()
        except sqlite3.Error as e:
            if not self._in_transaction:
                conn.rollback()
            raise StorageError(str(e), getattr(e, "sqlite_errorcode", None)) from e
        return rows

    @contextmanager
    def transaction(self) -> Iterator["SQLiteStorage"]:
        """Run a block of statements as one unit: all commit or none do."""
        conn = self._connect()
        if self._in_transaction:
            yield self
            return

        self._in_transaction = True
        try:
            yield self
            conn.commit()
        except BaseException:
            conn.rollback()
            raise
        finally:
            self._in_transaction = False

    def get_stats(self) -> dict[str, int]:
        """Row counts of the cache tables."""
        countries = self.execute(f"SELECT COUNT(*) FROM {COUNTRIES_TABLE}")[0][0]
        locations = self.execute(f"SELECT COUNT(*) FROM {LOCATIONS_TABLE}")[0][0]
        return {
            "countries": countries,
            "locations_cache": locations,
        }
