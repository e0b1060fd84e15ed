"""
Coalescing upserts for cached records.

Every column update keeps the stored value when the incoming one is empty
(or zero for numeric columns), so saving a partial record never erases
richer data written earlier.
"""

import logging
from typing import Any, Optional, Protocol

from .errors import GeoNamesCacheError
from .models import CountryRecord, LocationRecord
from .store import COUNTRIES_TABLE, LOCATIONS_TABLE, Storage

logger = logging.getLogger(__name__)

COUNTRY_NUMERIC_COLUMNS = {"iso_numeric", "area", "population"}
LOCATION_NUMERIC_COLUMNS = {"latitude", "longitude", "country_id", "population", "elevation"}


class GeoNamesApi(Protocol):
    """The two GeoNames web service calls persistence relies on."""

    def get(self, geoname_id: int, style: str = "FULL") -> dict[str, Any]: ...

    def country_info(self, country_code: str) -> dict[str, Any]: ...


def build_upsert(table: str, columns: list[str], numeric_columns: set[str]) -> str:
    """
    INSERT ... ON CONFLICT(geoname_id) DO UPDATE with coalescing updates.

    Each column becomes ``COALESCE(NULLIF(excluded.col, <empty>), col)``, where
    <empty> is 0 for numeric columns and '' otherwise.
    """
    updates = ["db_update = CURRENT_TIMESTAMP"]
    for column in columns:
        if column == "geoname_id":
            continue
        empty = "0" if column in numeric_columns else "''"
        updates.append(f"{column} = COALESCE(NULLIF(excluded.{column}, {empty}), {column})")

    return (
        f"INSERT INTO {table} ({', '.join(columns)})\n"
        f"VALUES ({', '.join('?' * len(columns))})\n"
        f"ON CONFLICT(geoname_id) DO UPDATE SET\n    " + "\n  , ".join(updates)
    )


def _db_values(values: dict[str, Any], numeric_columns: set[str]) -> list[Any]:
    # Empty text is stored as NULL so the UNIQUE iso2 column tolerates unknown codes
    return [
        value if column in numeric_columns or value != "" else None
        for column, value in values.items()
    ]


class LocationRepository:
    """Persist LocationRecords into the location cache."""

    def __init__(self, storage: Storage, api: Optional[GeoNamesApi] = None):
        self.storage = storage
        self.api = api

    def _require_api(self) -> GeoNamesApi:
        if self.api is None:
            raise GeoNamesCacheError("A GeoNames client is required to complete this record")
        return self.api

    def complete_location(self, location: LocationRecord) -> None:
        """Fetch the full feature unless it was loaded from the cache or the API already."""
        if location.id_location is not None or location.id_api is not None:
            return
        if not location.geoname_id:
            raise GeoNamesCacheError("Cannot fetch a location without a geoname id")

        logger.info(f"Fetching location {location.geoname_id} from GeoNames")
        item = self._require_api().get(location.geoname_id, style="FULL")
        location.load_values(item)
        location.mark_loaded("api", item.get("geonameId") or location.geoname_id)

    def _upsert_location(self, location: LocationRecord) -> None:
        values = location.model_dump_for_db()
        sql = build_upsert(LOCATIONS_TABLE, list(values), LOCATION_NUMERIC_COLUMNS)
        self.storage.execute(sql, _db_values(values, LOCATION_NUMERIC_COLUMNS))

    def save(self, location: LocationRecord) -> None:
        """
        Upsert one location-cache row.

        Raises:
            GeoNamesApiError: fetching missing data failed
            StorageError: the write failed
        """
        self.complete_location(location)
        with self.storage.transaction():
            self._upsert_location(location)
        location.mark_loaded("location")


class CountryRepository(LocationRepository):
    """Persist CountryRecords into the country table and the location cache."""

    def complete_country(self, country: CountryRecord) -> None:
        """Fetch country info unless the record came from the country table."""
        if country.id_country is not None or not country.iso2:
            return

        logger.info(f"Fetching country info for {country.iso2} from GeoNames")
        item = self._require_api().country_info(country.iso2)
        country.load_values(item)

    def save(self, country: CountryRecord) -> None:
        """
        Upsert the country row and its location-cache row in one transaction.

        Missing data is fetched from GeoNames first: the full feature if the
        record was loaded neither from the cache nor the API, and the country
        info if it was not loaded from the country table. Nothing is written
        if a fetch fails, and a failed write leaves both tables untouched.

        Raises:
            GeoNamesApiError: fetching missing data failed
            StorageError: a write failed
        """
        country_fetched = False
        if not country.geoname_id:
            # Only the code is known: country info supplies the geoname id
            self.complete_country(country)
            country_fetched = True
        self.complete_location(country)
        if not country_fetched:
            self.complete_country(country)

        values = country.model_dump_for_country_db()
        sql = build_upsert(COUNTRIES_TABLE, list(values), COUNTRY_NUMERIC_COLUMNS)

        with self.storage.transaction():
            self.storage.execute(sql, _db_values(values, COUNTRY_NUMERIC_COLUMNS))
            self._upsert_location(country)

        country.mark_loaded("country")
        country.mark_loaded("location")
        logger.debug(f"Saved country {country.geoname_id} ({country.iso2})")
