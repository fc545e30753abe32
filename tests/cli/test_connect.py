"""CLI: `dbshroud connect` with the store redirected to a temp dir."""

from unittest.mock import patch

import pytest
from click.testing import CliRunner

from dbshroud.cli import main


@pytest.fixture(autouse=True)
def store(tmp_path):
    with patch("dbshroud.connections._CONNECTIONS_FILE", tmp_path / "connections.toml"):
        yield tmp_path / "connections.toml"


def test_add_list_remove(store):
    runner = CliRunner()
    result = runner.invoke(main, [
        "connect", "add", "app", "postgres",
        "dsn=postgresql://app:secret@db:5432/app", "instance_id=app-proxy",
    ])
    assert result.exit_code == 0
    assert store.exists()

    listed = runner.invoke(main, ["connect", "list"])
    assert "app (postgres)" in listed.output
    assert "secret" not in listed.output
    assert "****" in listed.output
    assert "instance_id=app-proxy" in listed.output

    removed = runner.invoke(main, ["connect", "remove", "app"])
    assert removed.exit_code == 0
    assert not store.exists()


def test_list_empty():
    result = CliRunner().invoke(main, ["connect", "list"])
    assert "No connections configured" in result.output


def test_remove_missing():
    result = CliRunner().invoke(main, ["connect", "remove", "ghost"])
    assert result.exit_code == 1


def test_add_rejects_bad_param():
    result = CliRunner().invoke(main, ["connect", "add", "x", "duckdb", "path"])
    assert result.exit_code != 0
    assert "Expected key=value" in result.output


def test_add_stores_proxy_options_typed(store):
    result = CliRunner().invoke(main, [
        "connect", "add", "local", "duckdb", "path=app.duckdb", "failOpen=no",
        "--instance-id", "local-1", "gate_timeout=2.5",
    ])
    assert result.exit_code == 0, result.output
    text = store.read_text()
    assert 'instance_id = "local-1"' in text
    assert "fail_open = false" in text
    assert "gate_timeout = 2.5" in text

    listed = CliRunner().invoke(main, ["connect", "list"])
    assert "local (duckdb): path=app.duckdb [proxy: " in listed.output
    assert "fail_open=false" in listed.output


def test_fail_closed_option(store):
    result = CliRunner().invoke(main, ["connect", "add", "x", "duckdb", "--fail-closed"])
    assert result.exit_code == 0, result.output
    assert "fail_open = false" in store.read_text()


def test_add_rejects_bad_fail_open(store):
    result = CliRunner().invoke(main, ["connect", "add", "x", "duckdb", "fail_open=maybe"])
    assert result.exit_code != 0
    assert "fail_open" in result.output
    assert not store.exists()


def test_add_rejects_bad_timeout(store):
    result = CliRunner().invoke(main, ["connect", "add", "x", "duckdb", "hub_timeout=soon"])
    assert result.exit_code != 0
    assert "hub_timeout" in result.output
    assert not store.exists()
