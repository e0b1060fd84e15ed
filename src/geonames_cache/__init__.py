"""
Local cache of GeoNames countries and locations.

Resolves mixed identifiers (records, payloads, geoname ids, ISO2 codes)
against a two-table SQLite cache, keeps one live record per id and code,
and persists records with coalescing upserts.
"""

__version__ = "0.1.0"

from geonames_cache.errors import (
    GeoNamesApiError,
    GeoNamesCacheError,
    IdentityConflictError,
    StorageError,
)
from geonames_cache.models import CountryRecord, LocationRecord
from geonames_cache.registry import EntityRegistry
from geonames_cache.normalizer import (
    ByCode,
    ById,
    Invalid,
    NormalizedRequest,
    Resolved,
    classify,
    normalize,
)
from geonames_cache.lookup import CountryLoader, build_country_query
from geonames_cache.merger import merge_row, merge_rows
from geonames_cache.persistence import CountryRepository, LocationRepository
from geonames_cache.store import SQLiteStorage
from geonames_cache.client import GeoNamesClient

__all__ = [
    # Models
    "CountryRecord",
    "LocationRecord",
    "EntityRegistry",
    # Normalizer
    "Resolved",
    "ById",
    "ByCode",
    "Invalid",
    "NormalizedRequest",
    "classify",
    "normalize",
    # Lookup and merge
    "CountryLoader",
    "build_country_query",
    "merge_row",
    "merge_rows",
    # Persistence
    "CountryRepository",
    "LocationRepository",
    "SQLiteStorage",
    "GeoNamesClient",
    # Errors
    "GeoNamesCacheError",
    "IdentityConflictError",
    "StorageError",
    "GeoNamesApiError",
]
