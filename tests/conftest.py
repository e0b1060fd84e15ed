"""
Shared test fixtures for geonames-cache.

Provides fresh temp databases, storage and registry instances, and a mocked
GeoNames API. Resets module-level shared connections between tests.
"""

from pathlib import Path
from unittest.mock import MagicMock

import pytest

from geonames_cache.models import CountryRecord
from geonames_cache.registry import EntityRegistry
from geonames_cache.store import SQLiteStorage


# ---------------------------------------------------------------------------
# Singleton reset (autouse) -- clears module-level caches every test
# ---------------------------------------------------------------------------

@pytest.fixture(autouse=True)
def _reset_shared_connections():
    """Close and clear shared connections so tests are fully isolated."""
    import geonames_cache.store as _store

    yield

    for conn in _store._shared_connections.values():
        conn.close()
    _store._shared_connections.clear()


# ---------------------------------------------------------------------------
# Storage & registry
# ---------------------------------------------------------------------------

@pytest.fixture
def db_path(tmp_path: Path) -> Path:
    """Return a path to a fresh temporary database file."""
    return tmp_path / "test_geonames.db"


@pytest.fixture
def storage(db_path: Path) -> SQLiteStorage:
    """SQLiteStorage with both cache tables created under the 'wp_' prefix."""
    storage = SQLiteStorage(db_path, table_prefix="wp_")
    storage.create_tables()
    return storage


@pytest.fixture
def registry() -> EntityRegistry:
    """Fresh country registry, as created at the start of a request."""
    return EntityRegistry(CountryRecord)


# ---------------------------------------------------------------------------
# Sample data
# ---------------------------------------------------------------------------

US_COUNTRY_ROW = dict(
    geoname_id=6252001,
    iso2="US",
    iso3="USA",
    iso_numeric=840,
    fips="US",
    country="United States",
    capital="Washington",
    languages="en-US,es-US,haw,fr",
    continent="NA",
    neighbours="CA,MX,CU",
    area=9629091,
    population=327167434,
    tld=".us",
    currency_code="USD",
    currency_name="Dollar",
    phone="1",
    postal_code_format="#####-####",
    postal_code_regex="^\\d{5}(-\\d{4})?$",
)

US_LOCATION_ROW = dict(
    geoname_id=6252001,
    name="United States",
    ascii_name="United States",
    latitude=39.76,
    longitude=-98.5,
    feature_class="A",
    feature_code="PCLI",
    country_code="US",
    country_id=6252001,
    continent_code="NA",
    population=327167434,
)

DE_LOCATION_ROW = dict(
    geoname_id=2921044,
    name="Germany",
    ascii_name="Germany",
    latitude=51.5,
    longitude=10.5,
    feature_class="A",
    feature_code="PCLI",
    country_code="DE",
    country_id=2921044,
    continent_code="EU",
    population=82927922,
)

BERLIN_LOCATION_ROW = dict(
    geoname_id=2950159,
    name="Berlin",
    ascii_name="Berlin",
    latitude=52.52,
    longitude=13.41,
    feature_class="P",
    feature_code="PPLC",
    country_code="DE",
    country_id=2921044,
    continent_code="EU",
    population=3426354,
)


def insert_row(storage: SQLiteStorage, table: str, row: dict) -> None:
    """Insert a raw row into wp_geonames_<table>."""
    columns = ", ".join(row)
    placeholders = ", ".join("?" * len(row))
    storage.execute(
        f"INSERT INTO {{prefix}}geonames_{table} ({columns}) VALUES ({placeholders})",
        list(row.values()),
    )


@pytest.fixture
def seeded_storage(storage: SQLiteStorage) -> SQLiteStorage:
    """
    Storage holding:
      - US in both tables,
      - Germany only in the location cache,
      - Berlin (a non-country feature with country code DE) in the location cache.
    """
    insert_row(storage, "countries", US_COUNTRY_ROW)
    insert_row(storage, "locations_cache", US_LOCATION_ROW)
    insert_row(storage, "locations_cache", DE_LOCATION_ROW)
    insert_row(storage, "locations_cache", BERLIN_LOCATION_ROW)
    return storage


# ---------------------------------------------------------------------------
# GeoNames API
# ---------------------------------------------------------------------------

US_API_FEATURE = {
    "geonameId": 6252001,
    "name": "United States",
    "asciiName": "United States",
    "lat": "39.76",
    "lng": "-98.5",
    "fcl": "A",
    "fcode": "PCLI",
    "countryCode": "US",
    "countryId": "6252001",
    "continentCode": "NA",
    "population": 327167434,
    "timezone": {"gmtOffset": -5, "timeZoneId": "America/New_York", "dstOffset": -4},
}

US_API_COUNTRY_INFO = {
    "continent": "NA",
    "capital": "Washington",
    "languages": "en-US,es-US,haw,fr",
    "geonameId": 6252001,
    "isoAlpha3": "USA",
    "fipsCode": "US",
    "population": "327167434",
    "isoNumeric": "840",
    "areaInSqKm": "9629091.0",
    "countryCode": "US",
    "countryName": "United States",
    "postalCodeFormat": "#####-####",
    "continentName": "North America",
    "currencyCode": "USD",
}


@pytest.fixture
def mock_api():
    """MagicMock standing in for GeoNamesClient.

    Pre-configured so that:
      - get() returns the US feature payload
      - country_info() returns the US country info payload
    """
    api = MagicMock()
    api.get.return_value = dict(US_API_FEATURE)
    api.country_info.return_value = dict(US_API_COUNTRY_INFO)
    return api
