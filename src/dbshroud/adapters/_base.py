"""Adapter protocol between the proxy and the DB-API drivers it wraps."""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Any, Protocol, runtime_checkable


class DatabaseType(enum.Enum):
    POSTGRES = "postgres"
    DUCKDB = "duckdb"


class Paramstyle(enum.Enum):
    """PEP 249 positional placeholder styles the analyzer understands."""

    QMARK = "qmark"  # ?
    FORMAT = "format"  # %s


@dataclass
class ConnectionConfig:
    name: str
    db_type: DatabaseType
    params: dict[str, str] = field(default_factory=dict)


class AdapterError(Exception):
    """Raised by adapters for connection/introspection failures."""


@dataclass
class ColumnInfo:
    name: str
    data_type: str
    is_nullable: bool = True
    default: str | None = None
    is_auto_increment: bool = False


@dataclass
class TableInfo:
    schema: str | None
    name: str
    columns: list[ColumnInfo] = field(default_factory=list)


@dataclass
class SchemaMetadata:
    database: str | None = None
    tables: list[TableInfo] = field(default_factory=list)


# Never offered to the Hub as encryption candidates.
SYSTEM_SCHEMAS = frozenset({
    "information_schema",
    "performance_schema",
    "sys",
    "mysql",
    "pg_catalog",
    "pg_toast",
})


def is_system_schema(schema: str | None) -> bool:
    if schema is None:
        return False
    lowered = schema.lower()
    return (
        lowered in SYSTEM_SCHEMAS
        or lowered.startswith("pg_temp_")
        or lowered.startswith("pg_toast_temp_")
    )


@runtime_checkable
class DatabaseAdapter(Protocol):
    """One adapter instance per physical connection.

    ``connect`` opens a driver connection from config; ``attach`` adopts one
    the application already opened. Either way ``connection`` is the raw
    DB-API object the proxy delegates to.

    ``execution_handle`` is what a connection-level ``execute`` runs on, so
    session state and transactions behave as they do on the bare driver.
    """

    def connect(self, config: ConnectionConfig) -> Any: ...
    def attach(self, conn: Any) -> None: ...
    def close(self) -> None: ...
    def introspect(self) -> SchemaMetadata: ...
    def db_type(self) -> DatabaseType: ...
    def dialect(self) -> str: ...
    def paramstyle(self) -> Paramstyle: ...
    def execution_handle(self) -> Any: ...

    @property
    def connection(self) -> Any: ...
