"""Database management commands."""

from typing import Optional

import click

from ._common import _configure_logging, _get_storage


@click.command("init")
@click.option("--db", "db_path", type=click.Path(), help="Database path")
@click.option("--prefix", type=str, default=None, help="Table prefix (default: GEONAMES_TABLE_PREFIX or 'wp_')")
@click.option("-v", "--verbose", is_flag=True, help="Verbose output")
def db_init(db_path: Optional[str], prefix: Optional[str], verbose: bool):
    """
    Create the country and location cache tables.

    \b
    Examples:
        geonames-cache init
        geonames-cache init --db /tmp/geonames.db --prefix test_
    """
    _configure_logging(verbose)

    storage = _get_storage(db_path, prefix)
    click.echo(f"Initialized GeoNames cache tables in {storage.db_path}")


@click.command("status")
@click.option("--db", "db_path", type=click.Path(), help="Database path")
@click.option("--prefix", type=str, default=None, help="Table prefix")
def db_status(db_path: Optional[str], prefix: Optional[str]):
    """
    Show row counts of the cache tables.

    \b
    Examples:
        geonames-cache status
        geonames-cache status --db /path/to/geonames.db
    """
    storage = _get_storage(db_path, prefix)
    stats = storage.get_stats()

    click.echo("\nGeoNames Cache Status")
    click.echo("=" * 40)
    click.echo(f"Database: {storage.db_path}")
    click.echo(f"Table prefix: {storage.table_prefix}")
    click.echo(f"\n{'Table':<20} {'Records':>15}")
    click.echo("-" * 36)
    for table, count in stats.items():
        click.echo(f"{table:<20} {count:>15,}")
