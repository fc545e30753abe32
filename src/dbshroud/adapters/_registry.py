"""Lazy adapter loading: driver modules are imported on first use."""

from __future__ import annotations

import importlib
from typing import Any

from dbshroud.adapters._base import AdapterError, DatabaseAdapter, DatabaseType

_ADAPTER_MAP: dict[DatabaseType, tuple[str, str]] = {
    DatabaseType.POSTGRES: ("dbshroud.adapters.postgres", "PostgresAdapter"),
    DatabaseType.DUCKDB: ("dbshroud.adapters.duckdb", "DuckDBAdapter"),
}

_EXTRAS: dict[DatabaseType, str] = {
    DatabaseType.POSTGRES: "postgres",
    DatabaseType.DUCKDB: "duckdb",
}

# Top-level module of a raw connection's class -> adapter that understands it.
_DRIVER_MODULES: dict[str, DatabaseType] = {
    "duckdb": DatabaseType.DUCKDB,
    "_duckdb": DatabaseType.DUCKDB,
    "psycopg": DatabaseType.POSTGRES,
}


def get_adapter(db_type: DatabaseType) -> type[DatabaseAdapter]:
    """Lazy-load an adapter class by database type.

    Raises AdapterError with install hint if the driver package is missing.
    """
    entry = _ADAPTER_MAP.get(db_type)
    if entry is None:
        raise AdapterError(f"No adapter registered for {db_type.value}")

    module_path, class_name = entry
    try:
        mod = importlib.import_module(module_path)
    except ImportError as e:
        extra = _EXTRAS.get(db_type, "all")
        raise AdapterError(
            f"Missing driver for {db_type.value}. "
            f"Install with: pip install 'dbshroud[{extra}]'"
        ) from e

    return getattr(mod, class_name)


def adapter_for_connection(conn: Any) -> DatabaseAdapter:
    """Pick and attach the adapter for an already-open DB-API connection."""
    root = type(conn).__module__.split(".", 1)[0]
    db_type = _DRIVER_MODULES.get(root)
    if db_type is None:
        raise AdapterError(
            f"Unsupported connection type {type(conn).__module__}.{type(conn).__name__}"
        )
    adapter = get_adapter(db_type)()
    adapter.attach(conn)
    return adapter
