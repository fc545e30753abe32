"""The `schema` command: list encryptable columns, optionally sync them to the Hub."""

from __future__ import annotations

import click

from dbshroud.adapters._base import AdapterError
from dbshroud.adapters._registry import get_adapter
from dbshroud.cli._output import format_schema
from dbshroud.cli._shared import FORMAT_OPTION, fail, resolve_db, resolve_proxy
from dbshroud.config import split_proxy_params
from dbshroud.hub.client import HubClient
from dbshroud.registry import ProxyInstanceState
from dbshroud.schema import SchemaSynchronizer, SchemaSyncStatus, collect_schema, schema_hash


@click.command("schema")
@click.option("--db", required=True, envvar="DBSHROUD_DB", help="Connection name or type:key=val.")
@click.option("--sync", "do_sync", is_flag=True, help="Upload the catalog to the Hub.")
@click.option("--hub-url", default=None, help="Hub API base URL.")
@click.option("--instance-id", default=None, help="Proxy instance id.")
@FORMAT_OPTION
def schema(
    db: str,
    do_sync: bool,
    hub_url: str | None,
    instance_id: str | None,
    output_format: str,
) -> None:
    """List the columns eligible for an encryption policy."""
    config = resolve_db(db)
    proxy_params, driver_params = split_proxy_params(config.params)
    config.params = driver_params

    try:
        adapter = get_adapter(config.db_type)()
        adapter.connect(config)
        try:
            columns = collect_schema(adapter)
        finally:
            adapter.close()
    except AdapterError as e:
        fail(str(e), output_format)

    status = None
    if do_sync:
        proxy = resolve_proxy(
            hub_url or proxy_params.get("hub_url"),
            instance_id or proxy_params.get("instance_id"),
        )
        hub = HubClient(proxy.hub_url, timeout=proxy.hub_timeout)
        try:
            result = SchemaSynchronizer(hub, ProxyInstanceState(proxy.instance_id)).sync(
                columns, force=True
            )
        finally:
            hub.close()
        if result is SchemaSyncStatus.FAILED:
            fail(f"Schema sync to {proxy.hub_url} failed", output_format)
        status = result.value

    click.echo(format_schema(columns, schema_hash(columns), status=status, output_format=output_format))
