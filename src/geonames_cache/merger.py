"""Reconcile looked-up rows with records that are already live."""

import logging
from typing import Any, Iterable, Mapping

from .models import CountryRecord, as_mapping
from .registry import EntityRegistry

logger = logging.getLogger(__name__)


def merge_row(row: Mapping[str, Any], registry: EntityRegistry) -> CountryRecord:
    """
    Apply one query row to the registry.

    If a live record exists for the row's id (or, failing that, its ISO2 code),
    the row is merged into it field by field, never replacing a non-empty value
    with an empty one. Otherwise a new record is built and registered.
    """
    values = as_mapping(row)
    geoname_id = values.get("id") or 0
    iso2 = values.get("iso2") or ""

    entity = registry.get_by_id(geoname_id) if geoname_id else None
    if entity is None and iso2:
        entity = registry.get_by_code(iso2)

    if entity is None:
        entity = registry.register(CountryRecord.model_validate(values))
        logger.debug(f"Registered country {entity.geoname_id} ({entity.iso2}) from storage")
    else:
        entity.load_values(values)

    if values.get("id_location"):
        entity.mark_loaded("location", values["id_location"])
    if values.get("id_country"):
        entity.mark_loaded("country", values["id_country"])
    return entity


def merge_rows(
    rows: Iterable[Mapping[str, Any]],
    resolved: Iterable[CountryRecord],
    registry: EntityRegistry,
) -> list[CountryRecord]:
    """
    Combine query rows and pre-resolved records into one collection.

    Pre-resolved records are registered first so that any row sharing their
    id or code is merged into them rather than creating a second instance.

    Args:
        rows: Rows returned by the batched country query
        resolved: Records the caller (or the registry) already had
        registry: Registry shared with the normalizer

    Returns:
        Distinct records: those built from rows first, then remaining
        pre-resolved ones
    """
    resolved = list(resolved)
    for entity in resolved:
        registry.register(entity)

    results: dict[int, CountryRecord] = {}
    for row in rows:
        entity = merge_row(row, registry)
        results.setdefault(id(entity), entity)

    for entity in resolved:
        results.setdefault(id(entity), entity)

    return list(results.values())
