"""DuckDB adapter: in-process, used for local databases and the test suite."""

from __future__ import annotations

import duckdb as _duckdb

from dbshroud.adapters._base import (
    AdapterError,
    ColumnInfo,
    ConnectionConfig,
    DatabaseType,
    Paramstyle,
    SchemaMetadata,
    TableInfo,
    is_system_schema,
)


def _is_sequence_default(default: str | None) -> bool:
    return default is not None and default.lower().startswith("nextval(")


class DuckDBAdapter:
    """Adapter over a duckdb connection (file or :memory:)."""

    def __init__(self) -> None:
        self._conn: _duckdb.DuckDBPyConnection | None = None

    def connect(self, config: ConnectionConfig) -> _duckdb.DuckDBPyConnection:
        path = config.params.get("path", ":memory:")
        try:
            self._conn = _duckdb.connect(path, config={"custom_user_agent": "dbshroud/0.1.0"})
        except Exception as e:
            raise AdapterError(f"DuckDB connection failed: {e}") from e
        return self._conn

    def attach(self, conn: _duckdb.DuckDBPyConnection) -> None:
        self._conn = conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    @property
    def connection(self) -> _duckdb.DuckDBPyConnection:
        return self._ensure_conn()

    def _ensure_conn(self) -> _duckdb.DuckDBPyConnection:
        if self._conn is None:
            raise AdapterError("Not connected. Call connect() first.")
        return self._conn

    def introspect(self) -> SchemaMetadata:
        # A cursor is a separate handle on the same database, so introspection
        # can run on a background thread while the application uses _conn.
        cur = self._ensure_conn().cursor()
        tables: list[TableInfo] = []

        try:
            database = cur.execute("SELECT current_database()").fetchone()[0]
            table_rows = cur.execute(
                "SELECT table_schema, table_name "
                "FROM information_schema.tables "
                "WHERE table_schema NOT IN ('pg_catalog', 'information_schema') "
                "AND table_type = 'BASE TABLE' "
                "AND table_catalog = current_database() "
                "ORDER BY table_schema, table_name"
            ).fetchall()

            for schema, table_name in table_rows:
                if is_system_schema(schema):
                    continue

                col_rows = cur.execute(
                    "SELECT column_name, data_type, is_nullable, column_default "
                    "FROM information_schema.columns "
                    "WHERE table_catalog = current_database() "
                    "AND table_schema = ? AND table_name = ? "
                    "ORDER BY ordinal_position",
                    [schema, table_name],
                ).fetchall()
                columns = [
                    ColumnInfo(
                        name=col_name,
                        data_type=data_type,
                        is_nullable=(nullable == "YES"),
                        default=default,
                        is_auto_increment=_is_sequence_default(default),
                    )
                    for col_name, data_type, nullable, default in col_rows
                ]
                tables.append(TableInfo(schema=schema, name=table_name, columns=columns))
        except Exception as e:
            raise AdapterError(f"DuckDB introspection failed: {e}") from e
        finally:
            cur.close()

        return SchemaMetadata(database=database, tables=tables)

    def db_type(self) -> DatabaseType:
        return DatabaseType.DUCKDB

    def dialect(self) -> str:
        return "duckdb"

    def paramstyle(self) -> Paramstyle:
        return Paramstyle.QMARK

    def execution_handle(self) -> _duckdb.DuckDBPyConnection:
        # DuckDBPyConnection.cursor() opens a duplicate connection with its own
        # transaction and temp schema; the connection itself executes in place.
        return self._ensure_conn()
