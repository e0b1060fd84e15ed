"""
Batched country lookup.

All id and code requests from one normalize() call are resolved with a
single UNION query over the country table and the location cache, joined
on geoname id. A geoname id may have a country row without a cache row or
the other way round; the merger reconciles them.
"""

import logging
from typing import Any, Iterable, Optional

from .config import FEATURE_FILTERS
from .merger import merge_rows
from .models import CountryRecord
from .normalizer import normalize
from .registry import EntityRegistry
from .store import COUNTRIES_TABLE, LOCATIONS_TABLE, Storage

logger = logging.getLogger(__name__)

# One output column per record field; overlapping columns prefer non-empty values
_SELECT_COLUMNS = """
     COALESCE({first}.geoname_id, {second}.geoname_id)    AS id
    ,l.geoname_id                                          AS id_location
    ,c.geoname_id                                          AS id_country
    ,COALESCE(NULLIF(c.iso2, ''), l.country_code)          AS iso2
    ,c.iso3                                                AS iso3
    ,c.iso_numeric                                         AS iso_numeric
    ,c.fips                                                AS fips
    ,c.country                                             AS country_name
    ,c.capital                                             AS capital
    ,c.languages                                           AS languages
    ,c.neighbours                                          AS neighbours
    ,c.area                                                AS area
    ,c.tld                                                 AS tld
    ,c.currency_code                                       AS currency_code
    ,c.currency_name                                       AS currency_name
    ,c.phone                                               AS phone
    ,c.postal_code_format                                  AS postal_code_format
    ,c.postal_code_regex                                   AS postal_code_regex
    ,l.name                                                AS name
    ,l.ascii_name                                          AS ascii_name
    ,l.latitude                                            AS latitude
    ,l.longitude                                           AS longitude
    ,l.feature_class                                       AS feature_class
    ,l.feature_code                                        AS feature_code
    ,COALESCE(NULLIF(l.country_code, ''), c.iso2)          AS country_code
    ,l.country_id                                          AS country_id
    ,l.admin1_code                                         AS admin1_code
    ,l.admin2_code                                         AS admin2_code
    ,COALESCE(NULLIF(l.continent_code, ''), c.continent)   AS continent_code
    ,COALESCE(NULLIF(l.population, 0), c.population)       AS population
    ,l.elevation                                           AS elevation
    ,l.timezone                                            AS timezone
"""


def _placeholders(values: list[Any]) -> str:
    return ",".join("?" * len(values))


def _feature_clause(feature_filters: dict[str, list[str]]) -> tuple[str, list[str]]:
    """SQL matching any (feature_class, feature_code) pair of the allow-list."""
    clauses = []
    params: list[str] = []
    for feature_class, feature_codes in feature_filters.items():
        if not feature_codes:
            continue
        clauses.append(f"(l.feature_class = ? AND l.feature_code IN ({_placeholders(feature_codes)}))")
        params.append(feature_class)
        params.extend(feature_codes)
    return " OR ".join(clauses), params


def build_country_query(
    ids: Iterable[int],
    codes: Iterable[str],
    feature_filters: Optional[dict[str, list[str]]] = None,
) -> Optional[tuple[str, list[Any]]]:
    """
    Build the batched country query.

    Args:
        ids: Geoname ids to look up
        codes: ISO2 codes to look up
        feature_filters: Feature class -> codes marking country-level rows in the
            location cache (default: FEATURE_FILTERS["countries_only"])

    Returns:
        (sql, params), or None if there is nothing to look up. An empty id or
        code set omits its clause instead of matching a sentinel value.
    """
    ids = list(dict.fromkeys(ids))
    codes = list(dict.fromkeys(codes))
    if not ids and not codes:
        return None

    if feature_filters is None:
        feature_filters = FEATURE_FILTERS["countries_only"]

    selects: list[str] = []
    params: list[Any] = []

    # Country table, with whatever the location cache has for the same id
    conditions = []
    if ids:
        conditions.append(f"c.geoname_id IN ({_placeholders(ids)})")
        params.extend(ids)
    if codes:
        conditions.append(f"c.iso2 IN ({_placeholders(codes)})")
        params.extend(codes)
    selects.append(
        f"SELECT {_SELECT_COLUMNS.format(first='l', second='c')}"
        f"FROM {COUNTRIES_TABLE} c\n"
        f"LEFT JOIN {LOCATIONS_TABLE} l ON c.geoname_id = l.geoname_id\n"
        f"WHERE {' OR '.join(conditions)}"
    )

    # Location cache, for ids or country-level features without a country row
    conditions = []
    if ids:
        conditions.append(f"l.geoname_id IN ({_placeholders(ids)})")
        params.extend(ids)
    if codes:
        feature_sql, feature_params = _feature_clause(feature_filters)
        if feature_sql:
            conditions.append(f"(l.country_code IN ({_placeholders(codes)}) AND ({feature_sql}))")
            params.extend(codes)
            params.extend(feature_params)
        else:
            logger.debug("No feature filters configured; codes only match the country table")
    if conditions:
        selects.append(
            f"SELECT {_SELECT_COLUMNS.format(first='c', second='l')}"
            f"FROM {LOCATIONS_TABLE} l\n"
            f"LEFT JOIN {COUNTRIES_TABLE} c ON c.geoname_id = l.geoname_id\n"
            f"WHERE {' OR '.join(conditions)}"
        )

    return "\nUNION\n".join(selects), params


class CountryLoader:
    """
    Load countries from mixed identifiers.

    Normalizes the input against the registry, looks up whatever is missing
    with one query and merges the rows into live records.
    """

    def __init__(
        self,
        storage: Storage,
        registry: Optional[EntityRegistry] = None,
        feature_filters: Optional[dict[str, list[str]]] = None,
    ):
        self.storage = storage
        self.registry = registry if registry is not None else EntityRegistry(CountryRecord)
        self.feature_filters = feature_filters

    def load(self, items: Any) -> list[CountryRecord]:
        """
        Resolve ``items`` to country records.

        Args:
            items: One identifier or an iterable of them (see normalizer.classify)

        Returns:
            Distinct records for every identifier that could be resolved

        Raises:
            StorageError: the lookup query failed
        """
        request = normalize(items, self.registry)

        rows: list[Any] = []
        query = build_country_query(request.ids, request.codes, self.feature_filters)
        if query is not None:
            sql, params = query
            rows = self.storage.execute(sql, params)
            logger.debug(
                f"Country lookup for {len(request.ids)} id(s) and {len(request.codes)} code(s) "
                f"returned {len(rows)} row(s)"
            )

        return merge_rows(rows, request.resolved, self.registry)
