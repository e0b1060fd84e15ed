"""Country lookup and fetch commands."""

import json
import logging
from typing import Optional

import click
import pycountry

from ._common import _configure_logging, _get_storage

logger = logging.getLogger(__name__)


def _resolve_via_pycountry(text: str) -> Optional[str]:
    """Map a country name or alpha-3 code to its alpha-2 code."""
    text_clean = text.strip()
    if not text_clean:
        return None

    if len(text_clean) == 2:
        country = pycountry.countries.get(alpha_2=text_clean.upper())
        if country:
            return country.alpha_2

    if len(text_clean) == 3:
        country = pycountry.countries.get(alpha_3=text_clean.upper())
        if country:
            return country.alpha_2

    try:
        matches = pycountry.countries.search_fuzzy(text_clean)
        if matches:
            return matches[0].alpha_2
    except LookupError:
        pass

    return None


def _prepare_identifiers(identifiers: tuple[str, ...], resolve_names: bool) -> list[str]:
    """Optionally turn names and alpha-3 codes into alpha-2 before classification."""
    if not resolve_names:
        return list(identifiers)

    prepared = []
    for identifier in identifiers:
        if identifier.strip().isdecimal():
            prepared.append(identifier)
            continue
        alpha_2 = _resolve_via_pycountry(identifier)
        if alpha_2 is None:
            click.echo(f"Could not resolve '{identifier}' to a country code", err=True)
            continue
        if alpha_2 != identifier:
            logger.debug(f"Resolved '{identifier}' to {alpha_2}")
        prepared.append(alpha_2)
    return prepared


def _echo_countries(countries: list, as_json: bool) -> None:
    if as_json:
        click.echo(json.dumps([country.model_dump() for country in countries], indent=2))
        return

    click.echo(f"\n{'Geoname ID':>12}  {'ISO2':<4} {'ISO3':<4} {'Name':<32} {'Capital':<20} {'Population':>14}")
    click.echo("-" * 92)
    for country in countries:
        name = country.country_name or country.name
        click.echo(
            f"{country.geoname_id:>12}  {country.iso2:<4} {country.iso3:<4} {name:<32} "
            f"{country.capital:<20} {country.population:>14,}"
        )


@click.command("lookup")
@click.argument("identifiers", nargs=-1, required=True)
@click.option("--db", "db_path", type=click.Path(), help="Database path")
@click.option("--prefix", type=str, default=None, help="Table prefix")
@click.option("--resolve-names", is_flag=True, help="Map country names and alpha-3 codes to ISO2 via pycountry")
@click.option("--json", "as_json", is_flag=True, help="Print records as JSON")
@click.option("-v", "--verbose", is_flag=True, help="Verbose output")
def db_lookup(
    identifiers: tuple[str, ...],
    db_path: Optional[str],
    prefix: Optional[str],
    resolve_names: bool,
    as_json: bool,
    verbose: bool,
):
    """
    Resolve countries from the cache by geoname id or ISO2 code.

    \b
    Examples:
        geonames-cache lookup 6252001
        geonames-cache lookup US DE 2635167
        geonames-cache lookup --resolve-names Germany FRA --json
    """
    _configure_logging(verbose)

    from geonames_cache.lookup import CountryLoader

    storage = _get_storage(db_path, prefix)
    loader = CountryLoader(storage)
    countries = loader.load(_prepare_identifiers(identifiers, resolve_names))

    if not countries:
        click.echo("No countries found.", err=True)
        return

    _echo_countries(countries, as_json)


@click.command("fetch")
@click.argument("identifiers", nargs=-1, required=True)
@click.option("--db", "db_path", type=click.Path(), help="Database path")
@click.option("--prefix", type=str, default=None, help="Table prefix")
@click.option("--username", type=str, default=None, help="GeoNames username (default: GEONAMES_USERNAME)")
@click.option("--resolve-names", is_flag=True, help="Map country names and alpha-3 codes to ISO2 via pycountry")
@click.option("-v", "--verbose", is_flag=True, help="Verbose output")
def db_fetch(
    identifiers: tuple[str, ...],
    db_path: Optional[str],
    prefix: Optional[str],
    username: Optional[str],
    resolve_names: bool,
    verbose: bool,
):
    """
    Fetch countries from GeoNames and upsert them into the cache.

    Identifiers already cached are completed with whatever GeoNames adds;
    stored values are never replaced by empty ones.

    \b
    Examples:
        geonames-cache fetch US --username myaccount
        geonames-cache fetch 6252001 2921044
    """
    _configure_logging(verbose)

    from geonames_cache.client import GeoNamesClient
    from geonames_cache.errors import GeoNamesCacheError
    from geonames_cache.lookup import CountryLoader
    from geonames_cache.models import CountryRecord
    from geonames_cache.normalizer import normalize
    from geonames_cache.persistence import CountryRepository

    storage = _get_storage(db_path, prefix)
    loader = CountryLoader(storage)
    repository = CountryRepository(storage, GeoNamesClient(username=username))

    prepared = _prepare_identifiers(identifiers, resolve_names)
    countries = loader.load(prepared)

    def _save(country: CountryRecord) -> None:
        try:
            repository.save(country)
        except GeoNamesCacheError as e:
            raise click.ClickException(f"Failed to save {country.iso2 or country.geoname_id}: {e}") from e

    for country in countries:
        _save(country)

    # Anything the cache does not know yet starts as a bare record. Ids go
    # first: their saves learn the ISO2 code, so a code naming the same
    # country then resolves to that record instead of a second one.
    request = normalize(prepared, loader.registry)
    for geoname_id in request.ids:
        country = loader.registry.register(CountryRecord(geoname_id=geoname_id))
        _save(country)
        countries.append(country)

    for code in request.codes:
        country = loader.registry.get_by_code(code)
        if country is None:
            country = loader.registry.register(CountryRecord(iso2=code))
            _save(country)
        if not any(country is seen for seen in countries):
            countries.append(country)

    saved = len(countries)

    click.echo(f"Saved {saved:,} countries")
    _echo_countries(countries, as_json=False)
