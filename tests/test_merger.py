"""Tests for merging query rows into live records."""

import pytest

from geonames_cache.errors import IdentityConflictError
from geonames_cache.merger import merge_row, merge_rows
from geonames_cache.models import CountryRecord
from geonames_cache.registry import EntityRegistry


def _row(**overrides) -> dict:
    row = {
        "id": 6252001,
        "id_location": 6252001,
        "id_country": 6252001,
        "iso2": "US",
        "iso3": "USA",
        "country_name": "United States",
        "capital": "Washington",
        "area": 9629091,
        "latitude": 39.76,
        "longitude": -98.5,
        "country_code": "US",
        "population": 327167434,
    }
    row.update(overrides)
    return row


class TestMergeRow:
    def test_new_record_is_registered(self, registry: EntityRegistry):
        us = merge_row(_row(), registry)
        assert isinstance(us, CountryRecord)
        assert registry.get_by_id(6252001) is us
        assert registry.get_by_code("US") is us
        assert us.id_location == 6252001
        assert us.id_country == 6252001

    def test_location_only_row(self, registry: EntityRegistry):
        de = merge_row(
            {"id": 2921044, "id_location": 2921044, "id_country": None, "iso2": "DE", "name": "Germany"},
            registry,
        )
        assert de.id_location == 2921044
        assert de.id_country is None

    def test_existing_record_is_filled(self, registry: EntityRegistry):
        us = registry.register(CountryRecord(geoname_id=6252001, iso2="US"))
        assert merge_row(_row(), registry) is us
        assert us.capital == "Washington"
        assert us.area == 9629091

    def test_matched_by_code_when_id_unknown(self, registry: EntityRegistry):
        us = registry.register(CountryRecord(iso2="US"))
        assert merge_row(_row(), registry) is us
        assert registry.get_by_id(6252001) is us

    def test_empty_row_values_never_overwrite(self, registry: EntityRegistry):
        us = registry.register(CountryRecord(geoname_id=6252001, iso2="US", capital="Washington", area=9629091))
        merge_row(_row(capital=None, area=0, iso3=""), registry)
        assert us.capital == "Washington"
        assert us.area == 9629091

    def test_idempotent(self, registry: EntityRegistry):
        us = merge_row(_row(), registry)
        snapshot = us.model_dump()
        merge_row(_row(), registry)
        assert us.model_dump() == snapshot
        assert len(registry) == 1

    def test_conflicting_code_raises(self, registry: EntityRegistry):
        registry.register(CountryRecord(geoname_id=6252001, iso2="UM"))
        with pytest.raises(IdentityConflictError):
            merge_row(_row(), registry)


class TestMergeRows:
    def test_rows_then_resolved(self, registry: EntityRegistry):
        de = CountryRecord(geoname_id=2921044, iso2="DE")
        result = merge_rows([_row()], [de], registry)
        assert [c.iso2 for c in result] == ["US", "DE"]

    def test_resolved_record_wins_over_row(self, registry: EntityRegistry):
        mine = CountryRecord(geoname_id=6252001)
        result = merge_rows([_row()], [mine], registry)
        assert len(result) == 1
        assert result[0] is mine
        assert mine.iso2 == "US"

    def test_duplicate_rows_collapse(self, registry: EntityRegistry):
        result = merge_rows([_row(), _row(id_country=None)], [], registry)
        assert len(result) == 1

    def test_empty_input(self, registry: EntityRegistry):
        assert merge_rows([], [], registry) == []

    def test_resolved_conflict_raises(self, registry: EntityRegistry):
        registry.register(CountryRecord(geoname_id=6252001, iso2="US"))
        with pytest.raises(IdentityConflictError):
            merge_rows([], [CountryRecord(geoname_id=6252001, iso2="US")], registry)
