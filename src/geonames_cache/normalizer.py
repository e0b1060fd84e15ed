"""
Classification of mixed country identifiers.

Callers hand over whatever they have: live records, API payloads, geoname
ids or ISO2 codes. Each item is classified into exactly one of Resolved,
ById, ByCode or Invalid. Invalid items are logged and dropped; classifying
never raises on bad input.
"""

import logging
from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Optional, Union

from pydantic import ValidationError

from .models import CountryRecord, LocationRecord
from .registry import EntityRegistry

logger = logging.getLogger(__name__)

# Keys/attributes that carry a geoname id on generic objects
GEONAME_ID_FIELDS = ("geonameId", "geoname_id")


@dataclass(frozen=True)
class Resolved:
    """The live record is already at hand; no lookup needed."""

    entity: CountryRecord


@dataclass(frozen=True)
class ById:
    """Look the record up by geoname id."""

    geoname_id: int


@dataclass(frozen=True)
class ByCode:
    """Look the record up by ISO2 code."""

    code: str


@dataclass(frozen=True)
class Invalid:
    """Unusable input, dropped after logging."""

    reason: str


Classification = Union[Resolved, ById, ByCode, Invalid]


@dataclass
class NormalizedRequest:
    """Outcome of normalizing a batch of identifiers."""

    classifications: list[Classification] = field(default_factory=list)
    resolved: list[CountryRecord] = field(default_factory=list)
    ids: list[int] = field(default_factory=list)
    codes: list[str] = field(default_factory=list)
    invalid: int = 0

    def add(self, result: Classification) -> None:
        self.classifications.append(result)
        if isinstance(result, Resolved):
            if not any(result.entity is entity for entity in self.resolved):
                self.resolved.append(result.entity)
        elif isinstance(result, ById):
            if result.geoname_id not in self.ids:
                self.ids.append(result.geoname_id)
        elif isinstance(result, ByCode):
            if result.code not in self.codes:
                self.codes.append(result.code)
        else:
            self.invalid += 1

    @property
    def needs_lookup(self) -> bool:
        return bool(self.ids or self.codes)


def _as_geoname_id(value: Any) -> Optional[int]:
    """Positive int from an int or a digit string, else None."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, str) and value.strip().isdecimal():
        geoname_id = int(value.strip())
        return geoname_id if geoname_id > 0 else None
    return None


def _extract_geoname_id(item: Any) -> Optional[int]:
    for name in GEONAME_ID_FIELDS:
        if isinstance(item, Mapping):
            value = item.get(name)
        else:
            value = getattr(item, name, None)
        geoname_id = _as_geoname_id(value)
        if geoname_id:
            return geoname_id
    return None


def _invalid(reason: str) -> Invalid:
    logger.warning(reason)
    return Invalid(reason)


def classify(item: Any, registry: EntityRegistry) -> Classification:
    """
    Classify a single identifier.

    Args:
        item: CountryRecord, LocationRecord, mapping/object with a geoname id,
            int or digit string, or ISO2 string (any case)
        registry: Registry used to short-circuit already-loaded records

    Returns:
        One of Resolved, ById, ByCode, Invalid
    """
    if isinstance(item, CountryRecord):
        return Resolved(item)

    if isinstance(item, LocationRecord):
        # The id or code could be used here, but the record is still discarded.
        if item.geoname_id > 0:
            candidate: Any = item.geoname_id
        else:
            candidate = item.get_country_code()
        return _invalid(
            f"Received invalid Location object while loading a country object (candidate: {candidate!r})"
        )

    if isinstance(item, bool) or item is None:
        return _invalid(f"Received invalid input while loading a country object: {item!r}")

    geoname_id = _as_geoname_id(item)
    if geoname_id is not None:
        entity = registry.get_by_id(geoname_id)
        if entity is not None:
            return Resolved(entity)
        return ById(geoname_id)

    if isinstance(item, int):
        return _invalid(f"Received non-positive geoname id while loading a country object: {item}")

    if isinstance(item, str):
        # Stored codes are upper case and SQLite compares them case-sensitively
        code = item.strip().upper()
        if not code:
            return _invalid("Received empty country code while loading a country object")
        entity = registry.get_by_code(code)
        if entity is not None:
            return Resolved(entity)
        return ByCode(code)

    if isinstance(item, (bytes, float)):
        return _invalid(f"Received invalid input while loading a country object: {item!r}")

    # Generic payloads are only accepted for records that are already live
    geoname_id = _extract_geoname_id(item)
    entity = registry.get_by_id(geoname_id) if geoname_id else None
    if entity is None:
        return _invalid(f"Received invalid Location object while loading a country object: {item!r}")
    try:
        entity.load_values(item)
    except (ValidationError, TypeError) as e:
        return _invalid(f"Could not refresh country {geoname_id} from {item!r}: {e}")
    return Resolved(entity)


def normalize(items: Any, registry: EntityRegistry) -> NormalizedRequest:
    """
    Classify every item of ``items``.

    A single record, mapping, string or number is treated as a one-item list.
    Ids and codes are de-duplicated, keeping first-seen order.
    """
    if isinstance(items, (str, bytes, Mapping, LocationRecord)) or not isinstance(items, Iterable):
        items = [items]

    request = NormalizedRequest()
    for item in items:
        request.add(classify(item, registry))

    if request.invalid:
        logger.debug(f"Dropped {request.invalid} invalid identifier(s)")
    return request
