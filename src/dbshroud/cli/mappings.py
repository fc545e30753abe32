"""The `mappings` command: show the policy mapping the Hub serves."""

from __future__ import annotations

import click

from dbshroud.cli._output import format_mapping
from dbshroud.cli._shared import FORMAT_OPTION, fail, resolve_proxy
from dbshroud.hub.client import HubClient
from dbshroud.hub.models import HubError, flatten_mappings


@click.command("mappings")
@click.option("--hub-url", default=None, help="Hub API base URL.")
@click.option("--instance-id", default=None, help="Proxy instance id.")
@FORMAT_OPTION
def mappings(hub_url: str | None, instance_id: str | None, output_format: str) -> None:
    """Fetch and print enabled table.column -> policy mappings."""
    config = resolve_proxy(hub_url, instance_id)
    hub = HubClient(config.hub_url, timeout=config.hub_timeout)
    try:
        mapping = flatten_mappings(hub.get_mappings(config.instance_id))
    except HubError as e:
        fail(str(e), output_format)
    finally:
        hub.close()
    click.echo(format_mapping(mapping, output_format=output_format))
