"""Helpers shared by CLI commands."""

from __future__ import annotations

import json
from typing import NoReturn

import click

from dbshroud.adapters._base import AdapterError, ConnectionConfig
from dbshroud.config import ProxyConfig, resolve_config
from dbshroud.driver import parse_db

FORMAT_OPTION = click.option(
    "--format", "output_format", type=click.Choice(["json", "text"]), default="json"
)


def resolve_db(value: str) -> ConnectionConfig:
    """Resolve --db: named connection or 'type:key=val' string."""
    try:
        return parse_db(value)
    except AdapterError as e:
        raise click.BadParameter(
            f"{e}\n  Add it: dbshroud connect add {value} <type> <param>=<val>",
            param_hint="'--db'",
        ) from e


def resolve_proxy(hub_url: str | None, instance_id: str | None) -> ProxyConfig:
    return resolve_config({"hub_url": hub_url, "instance_id": instance_id})


def fail(message: str, output_format: str) -> NoReturn:
    """Report an error in the selected format and exit 1."""
    if output_format == "json":
        click.echo(json.dumps({"error": message}, indent=2))
    else:
        click.echo(f"error: {message}", err=True)
    raise SystemExit(1)
