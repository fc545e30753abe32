"""Database adapters: one DatabaseAdapter implementation per DB-API driver."""

from dbshroud.adapters._base import (
    AdapterError,
    ColumnInfo,
    ConnectionConfig,
    DatabaseAdapter,
    DatabaseType,
    Paramstyle,
    SchemaMetadata,
    TableInfo,
)
from dbshroud.adapters._registry import adapter_for_connection, get_adapter

__all__ = [
    "AdapterError",
    "ColumnInfo",
    "ConnectionConfig",
    "DatabaseAdapter",
    "DatabaseType",
    "Paramstyle",
    "SchemaMetadata",
    "TableInfo",
    "adapter_for_connection",
    "get_adapter",
]
