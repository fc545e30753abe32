"""End-to-end interception over in-memory DuckDB and the fake Hub."""

from __future__ import annotations

from unittest.mock import patch

import duckdb
import pytest

import dbshroud
from dbshroud.adapters.duckdb import DuckDBAdapter
from dbshroud.crypto import CryptoError
from dbshroud.proxy import ProxyConnection

FAST = {
    "hub_url": "http://hub.test/hub/api/v1",
    "schema_sync_delay": 0,
    "policy_load_delay": 0,
    "poll_interval": 3600,
}


def _open(fake_hub, registry, config) -> ProxyConnection:
    adapter = DuckDBAdapter()
    adapter.attach(duckdb.connect(":memory:"))
    conn = ProxyConnection(adapter, config, hub_factory=fake_hub.client, registry=registry)
    conn.execute("CREATE TABLE users (id INTEGER, email VARCHAR, name VARCHAR)")
    return conn


@pytest.fixture
def conn(fake_hub, registry, proxy_config):
    fake_hub.map("users", "email", "dadp")
    c = _open(fake_hub, registry, proxy_config)
    yield c
    c.close()


def _stored(conn: ProxyConnection) -> list[tuple]:
    return conn.raw.execute("SELECT email FROM users ORDER BY id").fetchall()


def test_insert_encrypts_and_select_decrypts(conn, fake_hub):
    with patch.object(conn.crypto, "encrypt", wraps=conn.crypto.encrypt) as encrypt, \
            patch.object(conn.crypto, "decrypt", wraps=conn.crypto.decrypt) as decrypt:
        conn.execute("INSERT INTO users (email) VALUES (?)", ["a@b.com"])
        encrypt.assert_called_once_with("a@b.com", "dadp")

        assert _stored(conn) == [(fake_hub.ciphertext("a@b.com", "dadp"),)]

        rows = conn.execute("SELECT email FROM users").fetchall()
        assert rows == [("a@b.com",)]
        decrypt.assert_called_once_with(fake_hub.ciphertext("a@b.com", "dadp"))


def test_unmapped_columns_pass_through(conn, fake_hub):
    conn.execute("INSERT INTO users (id, email, name) VALUES (?, ?, ?)", [1, "a@b.com", "Ada"])
    row = conn.raw.execute("SELECT id, name FROM users").fetchone()
    assert row == (1, "Ada")
    assert fake_hub.calls["/crypto/encrypt"] == 1


def test_null_and_non_text_values_untouched(conn, fake_hub):
    conn.execute("INSERT INTO users (id, email) VALUES (?, ?)", [1, None])
    assert _stored(conn) == [(None,)]
    assert conn.execute("SELECT email FROM users").fetchone() == (None,)
    assert fake_hub.calls["/crypto/encrypt"] == 0
    assert fake_hub.calls["/crypto/decrypt"] == 0


def test_alias_and_star_reads_are_decrypted(conn):
    conn.execute("INSERT INTO users (id, email, name) VALUES (?, ?, ?)", [1, "a@b.com", "Ada"])
    aliased = conn.execute("SELECT u.email AS email3_0_, u.name AS name3_0_ FROM users u")
    assert aliased.fetchall() == [("a@b.com", "Ada")]
    assert conn.execute("SELECT * FROM users").fetchall() == [(1, "a@b.com", "Ada")]


def test_where_parameter_stays_plaintext(conn, fake_hub):
    conn.execute("INSERT INTO users (id, email) VALUES (?, ?)", [1, "a@b.com"])
    before = fake_hub.calls["/crypto/encrypt"]
    rows = conn.execute("SELECT id FROM users WHERE email = ?", ["a@b.com"]).fetchall()
    assert rows == []
    assert fake_hub.calls["/crypto/encrypt"] == before


def test_update_encrypts_set_but_not_where(conn, fake_hub):
    conn.execute("INSERT INTO users (id, email, name) VALUES (?, ?, ?)", [1, "a@b.com", "Ada"])
    with patch.object(conn.crypto, "encrypt", wraps=conn.crypto.encrypt) as encrypt:
        conn.execute("UPDATE users SET email = ? WHERE name = ?", ["c@d.com", "Ada"])
        encrypt.assert_called_once_with("c@d.com", "dadp")
    assert _stored(conn) == [(fake_hub.ciphertext("c@d.com", "dadp"),)]


def test_executemany_encrypts_every_row(conn, fake_hub):
    cur = conn.cursor()
    cur.executemany(
        "INSERT INTO users (id, email) VALUES (?, ?)",
        [[1, "a@b.com"], [2, "c@d.com"]],
    )
    assert _stored(conn) == [
        (fake_hub.ciphertext("a@b.com", "dadp"),),
        (fake_hub.ciphertext("c@d.com", "dadp"),),
    ]


def test_fetch_variants_decrypt(conn):
    cur = conn.cursor()
    cur.executemany("INSERT INTO users (id, email) VALUES (?, ?)", [[i, f"u{i}@x"] for i in range(4)])
    cur.execute("SELECT email FROM users ORDER BY id")
    assert cur.fetchone() == ("u0@x",)
    assert cur.fetchmany(2) == [("u1@x",), ("u2@x",)]
    assert list(cur) == [("u3@x",)]


def test_named_parameters_pass_through(conn, fake_hub):
    conn.execute("INSERT INTO users (email) VALUES ($email)", {"email": "a@b.com"})
    assert _stored(conn) == [("a@b.com",)]
    assert fake_hub.calls["/crypto/encrypt"] == 0


def test_plaintext_legacy_rows_read_back_unchanged(conn):
    conn.raw.execute("INSERT INTO users (id, email) VALUES (1, 'legacy@x')")
    assert conn.execute("SELECT email FROM users").fetchall() == [("legacy@x",)]


def test_fail_open_writes_plaintext_when_hub_down(conn, fake_hub):
    fake_hub.down = True
    conn.execute("INSERT INTO users (email) VALUES (?)", ["a@b.com"])
    assert _stored(conn) == [("a@b.com",)]
    assert not conn.crypto.is_hub_available()
    assert fake_hub.calls["/notifications"] == 1


def test_fail_closed_aborts_statement(fake_hub, registry, proxy_config):
    fake_hub.map("users", "email", "dadp")
    conn = _open(fake_hub, registry, proxy_config.model_copy(update={"fail_open": False}))
    try:
        fake_hub.down = True
        with pytest.raises(CryptoError):
            conn.execute("INSERT INTO users (email) VALUES (?)", ["a@b.com"])
        assert _stored(conn) == []
    finally:
        conn.close()


def test_connections_share_instance_policies(conn, fake_hub, registry, proxy_config):
    other = _open(fake_hub, registry, proxy_config)
    try:
        assert other.policy_cache.resolve("users", "email") == "dadp"
        assert fake_hub.calls["/policy/mappings"] == 1
    finally:
        other.close()


def test_refresh_mappings(conn, fake_hub):
    fake_hub.map("users", "name", "pii")
    conn.refresh_mappings().join(5)
    conn.execute("INSERT INTO users (name) VALUES (?)", ["Ada"])
    assert conn.raw.execute("SELECT name FROM users").fetchone() == (
        fake_hub.ciphertext("Ada", "pii"),
    )


def test_temp_table_survives_across_execute_calls(conn):
    conn.execute("CREATE TEMP TABLE scratch (v VARCHAR)")
    conn.execute("INSERT INTO scratch VALUES (?)", ["x"])
    assert conn.execute("SELECT v FROM scratch").fetchall() == [("x",)]


def test_rollback_undoes_statements_run_through_execute(conn):
    conn.execute("BEGIN TRANSACTION")
    conn.execute("INSERT INTO users (id, email) VALUES (?, ?)", [1, "a@b.com"])
    conn.rollback()
    assert _stored(conn) == []


def test_commit_keeps_statements_run_through_execute(conn, fake_hub):
    conn.execute("BEGIN TRANSACTION")
    conn.execute("INSERT INTO users (id, email) VALUES (?, ?)", [1, "a@b.com"])
    conn.commit()
    assert _stored(conn) == [(fake_hub.ciphertext("a@b.com", "dadp"),)]


def test_close_is_idempotent(conn):
    conn.close()
    conn.close()
    assert conn.closed


def test_wrap_existing_connection(fake_hub, registry):
    fake_hub.map("users", "email", "dadp")
    raw = duckdb.connect(":memory:")
    raw.execute("CREATE TABLE users (email VARCHAR)")
    with dbshroud.wrap(raw, hub_factory=fake_hub.client, registry=registry, **FAST) as conn:
        conn.execute("INSERT INTO users (email) VALUES (?)", ["a@b.com"])
        assert raw.execute("SELECT email FROM users").fetchone()[0].startswith("dadp::ENC::")


def test_connect_strips_proxy_params(fake_hub, registry):
    conn = dbshroud.connect(
        "duckdb:path=:memory:,instance_id=e2e,fail_open=false",
        hub_factory=fake_hub.client,
        registry=registry,
        **FAST,
    )
    try:
        assert conn.config.instance_id == "e2e"
        assert conn.config.fail_open is False
        assert registry.get("e2e") is not None
        conn.cursor()
        assert fake_hub.calls["/policy/mappings"] == 1
    finally:
        conn.close()


def test_connect_unknown_type():
    with pytest.raises(dbshroud.AdapterError, match="Unknown database type"):
        dbshroud.connect("oracle:dsn=x")
