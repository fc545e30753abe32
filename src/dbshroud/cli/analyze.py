"""The `analyze` command: show how a statement maps to table.column."""

from __future__ import annotations

import click

from dbshroud.adapters._base import Paramstyle
from dbshroud.analyzer import analyze
from dbshroud.cli._output import format_statement
from dbshroud.cli._shared import FORMAT_OPTION


@click.command("analyze")
@click.argument("sql")
@click.option(
    "--paramstyle",
    type=click.Choice([p.value for p in Paramstyle]),
    default=Paramstyle.QMARK.value,
    help="Placeholder style: qmark (?) or format (%s).",
)
@click.option("--dialect", default=None, help="sqlglot dialect for the shape check.")
@FORMAT_OPTION
def analyze_cmd(sql: str, paramstyle: str, dialect: str | None, output_format: str) -> None:
    """Print the parameter and column mapping of SQL.

    \b
    Examples:
      dbshroud analyze "INSERT INTO users (name, email) VALUES (?, ?)" --format text
      dbshroud analyze "UPDATE users SET email = %s WHERE id = %s" --paramstyle format
    """
    parsed = analyze(sql, paramstyle=Paramstyle(paramstyle), dialect=dialect)
    click.echo(format_statement(parsed, output_format=output_format))
    if parsed is None:
        raise SystemExit(1)
