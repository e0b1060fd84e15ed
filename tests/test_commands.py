"""Tests for the geonames-cache CLI."""

import json
from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from click.testing import CliRunner

from geonames_cache.commands import main
from geonames_cache.commands.lookup import _resolve_via_pycountry
from geonames_cache.errors import GeoNamesApiError
from geonames_cache.store import SQLiteStorage


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


class TestManagement:
    def test_init_creates_tables(self, runner: CliRunner, db_path: Path):
        result = runner.invoke(main, ["init", "--db", str(db_path)])
        assert result.exit_code == 0, result.output
        assert "Initialized" in result.output
        assert SQLiteStorage(db_path).get_stats() == {"countries": 0, "locations_cache": 0}

    def test_status(self, runner: CliRunner, seeded_storage: SQLiteStorage):
        result = runner.invoke(main, ["status", "--db", str(seeded_storage.db_path)])
        assert result.exit_code == 0, result.output
        assert "countries" in result.output
        assert "locations_cache" in result.output

    def test_version(self, runner: CliRunner):
        result = runner.invoke(main, ["--version"])
        assert result.exit_code == 0
        assert "0.1.0" in result.output


class TestLookup:
    def test_lookup_by_code_and_id(self, runner: CliRunner, seeded_storage: SQLiteStorage):
        result = runner.invoke(main, ["lookup", "--db", str(seeded_storage.db_path), "US", "2921044"])
        assert result.exit_code == 0, result.output
        assert "6252001" in result.output
        assert "Germany" in result.output

    def test_lookup_json(self, runner: CliRunner, seeded_storage: SQLiteStorage):
        result = runner.invoke(main, ["lookup", "--db", str(seeded_storage.db_path), "--json", "US"])
        assert result.exit_code == 0, result.output
        [us] = json.loads(result.output)
        assert us["iso2"] == "US"
        assert us["capital"] == "Washington"

    def test_lookup_resolves_names(self, runner: CliRunner, seeded_storage: SQLiteStorage):
        result = runner.invoke(
            main, ["lookup", "--db", str(seeded_storage.db_path), "--resolve-names", "--json", "Germany"]
        )
        assert result.exit_code == 0, result.output
        [de] = json.loads(result.output)
        assert de["geoname_id"] == 2921044

    def test_lookup_nothing_found(self, runner: CliRunner, seeded_storage: SQLiteStorage):
        result = runner.invoke(main, ["lookup", "--db", str(seeded_storage.db_path), "ZZ"])
        assert result.exit_code == 0
        assert "No countries found." in result.output


class TestFetch:
    def test_fetch_saves_new_country(self, runner: CliRunner, db_path: Path, mock_api: MagicMock):
        with patch("geonames_cache.client.GeoNamesClient", return_value=mock_api):
            result = runner.invoke(main, ["fetch", "--db", str(db_path), "US"])

        assert result.exit_code == 0, result.output
        assert "Saved 1 countries" in result.output
        assert SQLiteStorage(db_path).get_stats() == {"countries": 1, "locations_cache": 1}

    def test_fetch_duplicates_once(self, runner: CliRunner, db_path: Path, mock_api: MagicMock):
        with patch("geonames_cache.client.GeoNamesClient", return_value=mock_api):
            result = runner.invoke(main, ["fetch", "--db", str(db_path), "US", "US"])

        assert result.exit_code == 0, result.output
        mock_api.country_info.assert_called_once_with("US")

    def test_fetch_same_country_by_id_and_code(self, runner: CliRunner, db_path: Path, mock_api: MagicMock):
        with patch("geonames_cache.client.GeoNamesClient", return_value=mock_api):
            result = runner.invoke(main, ["fetch", "--db", str(db_path), "6252001", "us"])

        assert result.exit_code == 0, result.output
        assert "Saved 1 countries" in result.output
        mock_api.get.assert_called_once_with(6252001, style="FULL")
        mock_api.country_info.assert_called_once_with("US")
        assert SQLiteStorage(db_path).get_stats() == {"countries": 1, "locations_cache": 1}

    def test_fetch_cached_country_needs_no_api(
        self, runner: CliRunner, seeded_storage: SQLiteStorage, mock_api: MagicMock
    ):
        with patch("geonames_cache.client.GeoNamesClient", return_value=mock_api):
            result = runner.invoke(main, ["fetch", "--db", str(seeded_storage.db_path), "6252001"])

        assert result.exit_code == 0, result.output
        mock_api.get.assert_not_called()
        mock_api.country_info.assert_not_called()

    def test_fetch_api_failure(self, runner: CliRunner, db_path: Path, mock_api: MagicMock):
        mock_api.country_info.side_effect = GeoNamesApiError("daily limit exceeded", status=18)
        with patch("geonames_cache.client.GeoNamesClient", return_value=mock_api):
            result = runner.invoke(main, ["fetch", "--db", str(db_path), "US"])

        assert result.exit_code != 0
        assert "daily limit exceeded" in result.output


class TestResolveViaPycountry:
    def test_alpha_3(self):
        assert _resolve_via_pycountry("DEU") == "DE"

    def test_alpha_2(self):
        assert _resolve_via_pycountry("fr") == "FR"

    def test_name(self):
        assert _resolve_via_pycountry("Germany") == "DE"

    def test_unknown(self):
        assert _resolve_via_pycountry("Atlantis Nowhere") is None
