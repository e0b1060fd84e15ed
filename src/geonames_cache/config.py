"""
Runtime configuration for the GeoNames cache.

Values are module-level constants; a few can be overridden from the
environment, and the CLI overrides them again through its options.
"""

import os
from pathlib import Path

# Local cache directory
DEFAULT_CACHE_DIR = Path.home() / ".cache" / "geonames-cache"

DEFAULT_DB_FILENAME = "geonames.db"

DEFAULT_DB_PATH = Path(os.getenv("GEONAMES_CACHE_DB", str(DEFAULT_CACHE_DIR / DEFAULT_DB_FILENAME)))

# Prefix substituted for the {prefix} placeholder in table names
TABLE_PREFIX_PLACEHOLDER = "{prefix}"
DEFAULT_TABLE_PREFIX = os.getenv("GEONAMES_TABLE_PREFIX", "wp_")

# GeoNames web service
GEONAMES_API_URL = os.getenv("GEONAMES_API_URL", "http://api.geonames.org")
GEONAMES_USERNAME = os.getenv("GEONAMES_USERNAME", "demo")

# Feature class -> feature codes, used to pick rows out of the location cache
FEATURE_FILTERS: dict[str, dict[str, list[str]]] = {
    "countries_only": {
        "A": ["PCL", "PCLD", "PCLF", "PCLI", "PCLIX", "PCLS", "TERR"],
    },
}
