"""Lazy adapter registry and connection-type detection."""

import duckdb
import pytest

from dbshroud.adapters._base import AdapterError, DatabaseType
from dbshroud.adapters._registry import adapter_for_connection, get_adapter


def test_get_duckdb_adapter():
    cls = get_adapter(DatabaseType.DUCKDB)
    assert cls.__name__ == "DuckDBAdapter"


def test_get_postgres_adapter():
    """Postgres adapter class can be loaded (psycopg may or may not be installed)."""
    try:
        cls = get_adapter(DatabaseType.POSTGRES)
        assert cls.__name__ == "PostgresAdapter"
    except AdapterError as e:
        assert "Missing driver" in str(e)
        assert "dbshroud[postgres]" in str(e)


def test_adapter_for_duckdb_connection():
    raw = duckdb.connect(":memory:")
    adapter = adapter_for_connection(raw)
    assert adapter.db_type() == DatabaseType.DUCKDB
    assert adapter.connection is raw
    adapter.close()


def test_adapter_for_unknown_connection():
    with pytest.raises(AdapterError, match="Unsupported connection type"):
        adapter_for_connection(object())
