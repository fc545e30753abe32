"""Root conftest: shared fixtures, markers and an in-process fake Hub."""

from __future__ import annotations

import base64
import json
import os
import threading
from collections import Counter

import httpx
import pytest

from dbshroud.config import ProxyConfig, clear_process_overrides
from dbshroud.hub.client import HubClient
from dbshroud.registry import InstanceRegistry

HUB_URL = "http://hub.test/hub/api/v1"
_PREFIX = "/hub/api/v1"


def pytest_configure(config):
    config.addinivalue_line("markers", "postgres: requires running PostgreSQL server")


def pytest_collection_modifyitems(config, items):
    if os.environ.get("DBSHROUD_TEST_POSTGRES"):
        return

    skip_pg = pytest.mark.skip(reason="Postgres not available (set DBSHROUD_TEST_POSTGRES=1)")
    for item in items:
        if "postgres" in item.keywords:
            item.add_marker(skip_pg)


class FakeHub:
    """Hub double behind httpx.MockTransport.

    Ciphertext is ``<policy>::ENC::<base64>`` so tests can see which policy
    was applied. ``down = True`` makes every request fail to connect.
    """

    def __init__(self) -> None:
        self.mappings: list[dict] = []
        self.changed = False
        self.down = False
        self.reject_crypto = False
        self.calls: Counter[str] = Counter()
        self.bodies: dict[str, list] = {}
        self._lock = threading.Lock()

    def map(self, table: str, column: str, policy: str, *, enabled: bool = True) -> None:
        self.mappings.append({
            "instanceId": "proxy-1",
            "databaseName": "memory",
            "tableName": table,
            "columnName": column,
            "policyName": policy,
            "enabled": enabled,
        })

    @staticmethod
    def ciphertext(plaintext: str, policy: str) -> str:
        return f"{policy}::ENC::" + base64.b64encode(plaintext.encode()).decode()

    def handler(self, request: httpx.Request) -> httpx.Response:
        path = request.url.path.removeprefix(_PREFIX)
        body = json.loads(request.content) if request.content else None
        with self._lock:
            self.calls[path] += 1
            self.bodies.setdefault(path, []).append(body)
        if self.down:
            raise httpx.ConnectError("connection refused", request=request)

        if path == "/policy/mappings":
            return _ok(self.mappings)
        if path == "/policy/mappings/check":
            return _ok(self.changed)
        if path == "/schema/sync":
            return _ok(None)
        if path == "/notifications":
            return _ok(None)
        if path in ("/crypto/encrypt", "/crypto/decrypt") and self.reject_crypto:
            return httpx.Response(200, json={"success": False, "message": "policy not found"})
        if path == "/crypto/encrypt":
            return _ok(self.ciphertext(body["data"], body["policyName"]))
        if path == "/crypto/decrypt":
            value = body["encryptedData"]
            if "::ENC::" not in value:
                return _ok(None)
            return _ok(base64.b64decode(value.split("::ENC::", 1)[1]).decode())
        return httpx.Response(404, json={"success": False, "message": "no route"})

    def client(self) -> HubClient:
        return HubClient(HUB_URL, transport=httpx.MockTransport(self.handler))


def _ok(data) -> httpx.Response:
    return httpx.Response(200, json={"success": True, "data": data, "message": None})


@pytest.fixture
def fake_hub() -> FakeHub:
    return FakeHub()


@pytest.fixture
def registry():
    """Private instance registry; pollers are stopped after the test."""
    reg = InstanceRegistry()
    yield reg
    reg.clear()


@pytest.fixture
def proxy_config() -> ProxyConfig:
    """No settle delays and a poll period long enough for a single tick."""
    return ProxyConfig(
        hub_url=HUB_URL,
        schema_sync_delay=0.0,
        policy_load_delay=0.0,
        gate_timeout=5.0,
        poll_interval=3600.0,
    )


@pytest.fixture(autouse=True)
def _reset_process_overrides():
    yield
    clear_process_overrides()
