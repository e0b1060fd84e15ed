"""CLI commands package: main click group and command registration."""

import click

from geonames_cache import __version__


@click.group()
@click.version_option(version=__version__)
@click.option("-v", "--verbose", is_flag=True, help="Verbose output")
@click.pass_context
def main(ctx: click.Context, verbose: bool):
    """
    Manage the local GeoNames country cache.

    \b
    Commands:
        init     Create the cache tables
        lookup   Resolve countries from the cache by geoname id or ISO2 code
        fetch    Fetch countries from GeoNames and upsert them into the cache
        status   Show row counts of the cache tables

    \b
    Examples:
        geonames-cache init
        geonames-cache lookup 6252001 DE FR
        geonames-cache lookup --resolve-names "United Kingdom" DEU
        geonames-cache fetch US --username myaccount
        geonames-cache status
    """
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose


# Register all commands
from .lookup import db_fetch, db_lookup

main.add_command(db_lookup)
main.add_command(db_fetch)

from .management import db_init, db_status

main.add_command(db_init)
main.add_command(db_status)
