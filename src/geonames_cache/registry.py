"""
Identity map for live records.

A registry holds at most one instance per identifying value. For countries
that is one index by geoname id and one by ISO2 code. Create one per request
or process and pass it to the loader and repositories; entries are never
evicted while the registry lives.
"""

import logging
from typing import Any, Iterator, Optional

from .errors import IdentityConflictError
from .models import CountryRecord, LocationRecord, is_empty

logger = logging.getLogger(__name__)


class EntityRegistry:
    """Per-request identity map keyed by every identity field of ``record_type``."""

    def __init__(self, record_type: type[LocationRecord] = CountryRecord):
        self.record_type = record_type
        self._indices: dict[str, dict[Any, LocationRecord]] = {
            field: {} for field in record_type.IDENTITY_FIELDS
        }

    def get_by_id(self, geoname_id: int) -> Optional[LocationRecord]:
        """Live record for a geoname id, or None."""
        return self._indices["geoname_id"].get(int(geoname_id))

    def get_by_code(self, code: str) -> Optional[LocationRecord]:
        """Live record for an ISO2 code, or None (always None for non-country registries)."""
        index = self._indices.get("iso2")
        if index is None:
            return None
        return index.get(code)

    def register(self, entity: LocationRecord) -> LocationRecord:
        """
        Add ``entity`` under each of its non-empty identity values.

        All indices are checked before any is written, so a conflict leaves
        the registry untouched. Registering the same object again is a no-op.

        Raises:
            IdentityConflictError: another instance already holds one of the values
        """
        if not isinstance(entity, self.record_type):
            raise TypeError(f"Expected {self.record_type.__name__}, got {type(entity).__name__}")

        keys: dict[str, Any] = {}
        for field, index in self._indices.items():
            value = getattr(entity, field)
            if is_empty(value):
                continue
            self._check_free(index, field, value, entity)
            keys[field] = value

        for field, value in keys.items():
            self._indices[field][value] = entity
        entity._registry = self
        return entity

    def claim(self, entity: LocationRecord, field: str, value: Any) -> None:
        """Index a registered entity under a newly assigned identity value."""
        index = self._indices.get(field)
        if index is None:
            return
        self._check_free(index, field, value, entity)
        index[value] = entity

    @staticmethod
    def _check_free(index: dict[Any, LocationRecord], field: str, value: Any, entity: LocationRecord) -> None:
        holder = index.get(value)
        if holder is not None and holder is not entity:
            raise IdentityConflictError(f"An instance with this {field} already exists. Id: {value}")

    def clear(self) -> None:
        """Forget every record; used at the end of a request."""
        for entity in self:
            entity._registry = None
        for index in self._indices.values():
            index.clear()

    def __iter__(self) -> Iterator[LocationRecord]:
        seen: dict[int, LocationRecord] = {}
        for index in self._indices.values():
            for entity in index.values():
                seen.setdefault(id(entity), entity)
        return iter(list(seen.values()))

    def __len__(self) -> int:
        return sum(1 for _ in self)

    def __contains__(self, entity: object) -> bool:
        return any(entity is registered for registered in self)
