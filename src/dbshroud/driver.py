"""Entry points: open or wrap a database connection behind the proxy."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

from dbshroud.adapters._base import AdapterError, ConnectionConfig, DatabaseType
from dbshroud.adapters._registry import adapter_for_connection, get_adapter
from dbshroud.config import resolve_config, split_proxy_params
from dbshroud.connections import get_connection
from dbshroud.hub.client import HubClient
from dbshroud.proxy import ProxyConnection
from dbshroud.registry import InstanceRegistry

logger = logging.getLogger(__name__)


def parse_db(value: str) -> ConnectionConfig:
    """Named connection first, then ``type:key=val,key=val``."""
    config = get_connection(value)
    if config is not None:
        return config

    if ":" not in value:
        raise AdapterError(
            f"Connection '{value}' is neither a named connection "
            f"nor in 'type:key=val' format"
        )
    db_type_str, params_str = value.split(":", 1)
    try:
        db_type = DatabaseType(db_type_str)
    except ValueError as e:
        valid = ", ".join(t.value for t in DatabaseType)
        raise AdapterError(f"Unknown database type '{db_type_str}'. Valid: {valid}") from e

    params: dict[str, str] = {}
    for part in filter(None, params_str.split(",")):
        if "=" not in part:
            raise AdapterError(f"Expected key=value pair, got '{part}'")
        k, v = part.split("=", 1)
        params[k.strip()] = v.strip()
    return ConnectionConfig(name=db_type_str, db_type=db_type, params=params)


def connect(
    db: str | ConnectionConfig,
    *,
    hub_factory: Callable[[], HubClient] | None = None,
    registry: InstanceRegistry | None = None,
    **overrides: Any,
) -> ProxyConnection:
    """Open a database connection behind the proxy.

    ``overrides`` win over proxy keys in the connection params, which win
    over process-wide overrides, the environment and the defaults.
    """
    config = parse_db(db) if isinstance(db, str) else db
    proxy_params, driver_params = split_proxy_params(config.params)
    proxy_config = resolve_config({**proxy_params, **overrides})

    adapter = get_adapter(config.db_type)()
    adapter.connect(ConnectionConfig(name=config.name, db_type=config.db_type, params=driver_params))
    logger.info("Connected to %s (%s) via proxy", config.name, config.db_type.value)
    try:
        return ProxyConnection(adapter, proxy_config, hub_factory=hub_factory, registry=registry)
    except Exception:
        adapter.close()
        raise


def wrap(
    connection: Any,
    *,
    hub_factory: Callable[[], HubClient] | None = None,
    registry: InstanceRegistry | None = None,
    **overrides: Any,
) -> ProxyConnection:
    """Put an already-open duckdb or psycopg connection behind the proxy."""
    adapter = adapter_for_connection(connection)
    return ProxyConnection(
        adapter, resolve_config(overrides), hub_factory=hub_factory, registry=registry
    )
