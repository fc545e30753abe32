"""Schema catalog collection and change-detected upload to the Hub."""

from __future__ import annotations

import enum
import hashlib
import logging
import re
from collections.abc import Iterable

from dbshroud.adapters._base import (
    AdapterError,
    ColumnInfo,
    DatabaseAdapter,
    is_system_schema,
)
from dbshroud.hub.client import HubClient
from dbshroud.hub.models import HubError, SchemaColumn
from dbshroud.registry import ProxyInstanceState

logger = logging.getLogger(__name__)

_IDENTIFIER_NAMES = frozenset({"id", "uid", "uuid", "guid"})
_IDENTIFIER_SUFFIXES = ("_id", "_uid", "_uuid")
_AUDIT_COLUMNS = frozenset({"created_at", "updated_at", "deleted_at", "modified_at"})

_TEMPORAL_TYPE = re.compile(r"date|time")
_UUID_TYPE = re.compile(r"uuid|guid|uniqueidentifier")

_GENERATED_TIMESTAMP_DEFAULTS = ("current_timestamp", "now()")
_GENERATED_UUID_DEFAULTS = ("gen_random_uuid()", "uuid_generate_v4()")


class SchemaSyncStatus(enum.Enum):
    SYNCED = "synced"
    UNCHANGED = "unchanged"
    FAILED = "failed"


def is_encryptable(column: ColumnInfo) -> bool:
    """False for columns that can never carry an encryption policy.

    Auto-increment keys, temporal and UUID types, identifier-style names and
    columns filled by a generated timestamp/UUID default are all excluded.
    """
    if column.is_auto_increment:
        return False

    data_type = (column.data_type or "").lower()
    name = column.name.lower()
    default = (column.default or "").lower()

    if _TEMPORAL_TYPE.search(data_type) or data_type == "year":
        return False
    if _UUID_TYPE.search(data_type):
        return False
    if name in _IDENTIFIER_NAMES or name.endswith(_IDENTIFIER_SUFFIXES):
        return False

    generated_timestamp = any(m in default for m in _GENERATED_TIMESTAMP_DEFAULTS)
    if name in _AUDIT_COLUMNS and ("timestamp" in data_type or generated_timestamp):
        return False
    if generated_timestamp or any(m in default for m in _GENERATED_UUID_DEFAULTS):
        return False
    return True


def collect_schema(adapter: DatabaseAdapter) -> list[SchemaColumn]:
    """Introspect the connected database and keep the encryptable columns."""
    metadata = adapter.introspect()
    columns: list[SchemaColumn] = []
    for table in metadata.tables:
        if is_system_schema(table.schema):
            continue
        for col in table.columns:
            if not is_encryptable(col):
                continue
            columns.append(SchemaColumn(
                database_name=metadata.database,
                table_name=table.name,
                column_name=col.name,
                column_type=col.data_type,
                nullable=col.is_nullable,
                default_expression=col.default,
            ))
    logger.debug(
        "Collected %d encryptable column(s) from %d table(s)",
        len(columns), len(metadata.tables),
    )
    return columns


def _render(value: object) -> str:
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def schema_hash(columns: Iterable[SchemaColumn]) -> str:
    """SHA-256 over ``db|table|column|type|nullable|default`` lines, in order."""
    digest = hashlib.sha256()
    for c in columns:
        line = "|".join(_render(v) for v in (
            c.database_name,
            c.table_name,
            c.column_name,
            c.column_type,
            c.nullable,
            c.default_expression,
        ))
        digest.update(line.encode("utf-8"))
        digest.update(b"\n")
    return digest.hexdigest()


class SchemaSynchronizer:
    """Uploads the column catalog for one instance id, skipping unchanged uploads."""

    def __init__(self, hub: HubClient, state: ProxyInstanceState) -> None:
        self._hub = hub
        self._state = state

    def sync(self, columns: list[SchemaColumn], *, force: bool = False) -> SchemaSyncStatus:
        current = schema_hash(columns)
        if not force and current == self._state.last_schema_hash:
            logger.debug("Schema unchanged for %s, skipping upload", self._state.instance_id)
            return SchemaSyncStatus.UNCHANGED

        try:
            self._hub.sync_schema(self._state.instance_id, columns)
        except HubError as e:
            logger.warning("Schema sync failed for %s: %s", self._state.instance_id, e)
            return SchemaSyncStatus.FAILED

        self._state.last_schema_hash = current
        logger.info(
            "Schema synced for %s: %d column(s)", self._state.instance_id, len(columns)
        )
        return SchemaSyncStatus.SYNCED

    def sync_from(self, adapter: DatabaseAdapter, *, force: bool = False) -> SchemaSyncStatus:
        """Collect from ``adapter`` and sync; introspection errors count as failure."""
        try:
            columns = collect_schema(adapter)
        except AdapterError as e:
            logger.warning("Schema introspection failed for %s: %s", self._state.instance_id, e)
            return SchemaSyncStatus.FAILED
        return self.sync(columns, force=force)

    def clear_schema_hash(self) -> None:
        self._state.last_schema_hash = None
