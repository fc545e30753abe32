"""PostgreSQL adapter: sync psycopg, catalog read from information_schema."""

from __future__ import annotations

import psycopg

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


class PostgresAdapter:
    """PostgreSQL adapter using psycopg."""

    def __init__(self) -> None:
        self._conn: psycopg.Connection | None = None

    def connect(self, config: ConnectionConfig) -> psycopg.Connection:
        dsn = config.params.get("dsn")
        if not dsn:
            raise AdapterError("PostgreSQL requires 'dsn' in connection params")
        try:
            self._conn = psycopg.connect(dsn, autocommit=True, application_name="dbshroud")
        except Exception as e:
            raise AdapterError(f"PostgreSQL connection failed: {e}") from e
        return self._conn

    def attach(self, conn: psycopg.Connection) -> None:
        self._conn = conn

    def close(self) -> None:
        if self._conn is not None:
            self._conn.close()
            self._conn = None

    @property
    def connection(self) -> psycopg.Connection:
        return self._ensure_conn()

    def _ensure_conn(self) -> psycopg.Connection:
        if self._conn is None:
            raise AdapterError("Not connected. Call connect() first.")
        return self._conn

    def _catalog_connection(self) -> tuple[psycopg.Connection, bool]:
        """Connection to read the catalog on, and whether we opened it.

        Reads on a non-autocommit application connection would leave it idle
        in a transaction the application never began, so those get a
        short-lived autocommit side connection instead.
        """
        conn = self._ensure_conn()
        if conn.autocommit:
            return conn, False
        kwargs = {"autocommit": True, "application_name": "dbshroud"}
        if conn.info.password:
            kwargs["password"] = conn.info.password
        try:
            return psycopg.connect(conn.info.dsn, **kwargs), True
        except Exception as e:
            raise AdapterError(f"PostgreSQL catalog connection failed: {e}") from e

    def introspect(self) -> SchemaMetadata:
        conn, owned = self._catalog_connection()
        tables: list[TableInfo] = []

        try:
            with conn.cursor() as cur:
                cur.execute("SELECT current_database()")
                database = cur.fetchone()[0]

                cur.execute(
                    "SELECT table_schema, table_name "
                    "FROM information_schema.tables "
                    "WHERE table_schema NOT IN ('pg_catalog', 'information_schema') "
                    "AND table_type = 'BASE TABLE' "
                    "ORDER BY table_schema, table_name"
                )
                table_rows = cur.fetchall()

                for schema, table_name in table_rows:
                    if is_system_schema(schema):
                        continue

                    cur.execute(
                        "SELECT column_name, data_type, is_nullable, column_default, is_identity "
                        "FROM information_schema.columns "
                        "WHERE table_schema = %s AND table_name = %s "
                        "ORDER BY ordinal_position",
                        (schema, table_name),
                    )
                    columns = [
                        ColumnInfo(
                            name=col_name,
                            data_type=data_type,
                            is_nullable=(nullable == "YES"),
                            default=default,
                            is_auto_increment=(
                                identity == "YES"
                                or (default or "").lower().startswith("nextval(")
                            ),
                        )
                        for col_name, data_type, nullable, default, identity in cur.fetchall()
                    ]
                    tables.append(TableInfo(schema=schema, name=table_name, columns=columns))
        except Exception as e:
            raise AdapterError(f"PostgreSQL introspection failed: {e}") from e
        finally:
            if owned:
                conn.close()

        return SchemaMetadata(database=database, tables=tables)

    def db_type(self) -> DatabaseType:
        return DatabaseType.POSTGRES

    def dialect(self) -> str:
        return "postgres"

    def paramstyle(self) -> Paramstyle:
        return Paramstyle.FORMAT

    def execution_handle(self) -> psycopg.Cursor:
        return self._ensure_conn().cursor()
