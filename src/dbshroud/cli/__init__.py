"""CLI entry point: `dbshroud`."""

from __future__ import annotations

import logging

import click

from dbshroud.cli.analyze import analyze_cmd
from dbshroud.cli.connect import connect
from dbshroud.cli.mappings import mappings
from dbshroud.cli.schema import schema


@click.group()
@click.version_option(package_name="dbshroud")
@click.option("-v", "--verbose", is_flag=True, help="Log proxy activity to stderr.")
def main(verbose: bool) -> None:
    """dbshroud: policy-driven field encryption for database connections."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


main.add_command(analyze_cmd)
main.add_command(connect)
main.add_command(mappings)
main.add_command(schema)
