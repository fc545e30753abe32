"""CLI: `dbshroud schema` against a temp DuckDB file."""

from __future__ import annotations

import json
import tempfile
from unittest.mock import patch

import duckdb
from click.testing import CliRunner

from dbshroud.cli import main


def _create_test_db() -> str:
    """Create a temp DuckDB file with test tables and return the path."""
    with tempfile.NamedTemporaryFile(suffix=".duckdb", delete=True) as f:
        path = f.name
    conn = duckdb.connect(path)
    conn.execute("CREATE SCHEMA crm")
    conn.execute("CREATE TABLE main.users (id INTEGER, email VARCHAR, joined DATE)")
    conn.execute("CREATE TABLE crm.contacts (contact_uuid VARCHAR, phone VARCHAR NOT NULL)")
    conn.close()
    return path


def test_schema_json():
    path = _create_test_db()
    runner = CliRunner()
    result = runner.invoke(main, ["schema", "--db", f"duckdb:path={path}"])
    assert result.exit_code == 0
    data = json.loads(result.output)
    cols = {(c["tableName"], c["columnName"]) for c in data["columns"]}
    assert cols == {("users", "email"), ("contacts", "phone")}
    assert len(data["hash"]) == 64
    assert "sync" not in data


def test_schema_text():
    path = _create_test_db()
    runner = CliRunner()
    result = runner.invoke(main, ["schema", "--db", f"duckdb:path={path}", "--format", "text"])
    assert result.exit_code == 0
    assert "users.email  VARCHAR" in result.output
    assert "contacts.phone  VARCHAR  NOT NULL" in result.output
    assert "2 encryptable columns" in result.output


def test_schema_sync(fake_hub):
    path = _create_test_db()
    runner = CliRunner()
    with patch("dbshroud.cli.schema.HubClient", lambda url, **kw: fake_hub.client()):
        result = runner.invoke(main, [
            "schema", "--db", f"duckdb:path={path}", "--sync", "--instance-id", "cli-proxy",
        ])
    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["sync"] == "synced"
    (body,) = fake_hub.bodies["/schema/sync"]
    assert body["instanceId"] == "cli-proxy"
    assert len(body["schemas"]) == 2


def test_schema_sync_hub_down(fake_hub):
    path = _create_test_db()
    fake_hub.down = True
    runner = CliRunner()
    with patch("dbshroud.cli.schema.HubClient", lambda url, **kw: fake_hub.client()):
        result = runner.invoke(main, ["schema", "--db", f"duckdb:path={path}", "--sync"])
    assert result.exit_code == 1
    assert "failed" in json.loads(result.output)["error"]


def test_schema_bad_db():
    runner = CliRunner()
    result = runner.invoke(main, ["schema", "--db", "nowhere"])
    assert result.exit_code != 0
    assert "type:key=val" in result.output


def test_hub_client_is_built_from_config():
    path = _create_test_db()
    seen = {}

    def fake_client(url, **kw):
        seen["url"] = url
        raise SystemExit(3)

    runner = CliRunner()
    with patch("dbshroud.cli.schema.HubClient", fake_client):
        runner.invoke(main, [
            "schema", "--db", f"duckdb:path={path}", "--sync", "--hub-url", "http://hub:1/api",
        ])
    assert seen["url"] == "http://hub:1/api"
