"""Policy load and poll tick against the fake Hub."""

from __future__ import annotations

from dbshroud.mappings import PolicyLoader
from dbshroud.policy_cache import PolicyCache
from dbshroud.registry import ProxyInstanceState


def _subscribed(state: ProxyInstanceState) -> PolicyCache:
    cache = PolicyCache()
    state.subscribe(cache)
    return cache


def test_load_publishes_enabled_mappings(fake_hub):
    fake_hub.map("users", "email", "pii")
    fake_hub.map("users", "phone", "phone", enabled=False)
    state = ProxyInstanceState("proxy-1")
    cache = _subscribed(state)

    assert PolicyLoader(fake_hub.client(), state).load() == 1
    assert cache.snapshot() == {"users.email": "pii"}
    assert state.last_mapping == {"users.email": "pii"}


def test_failed_load_keeps_last_known_good(fake_hub):
    fake_hub.map("users", "email", "pii")
    state = ProxyInstanceState("proxy-1")
    cache = _subscribed(state)
    loader = PolicyLoader(fake_hub.client(), state)
    loader.load()

    fake_hub.down = True
    assert loader.load() is None
    assert cache.resolve("users", "email") == "pii"


def test_poll_without_change_skips_full_fetch(fake_hub):
    loader = PolicyLoader(fake_hub.client(), ProxyInstanceState("proxy-1"))
    assert loader.poll() is False
    assert fake_hub.calls["/policy/mappings/check"] == 1
    assert fake_hub.calls["/policy/mappings"] == 0


def test_poll_with_change_reloads(fake_hub):
    state = ProxyInstanceState("proxy-1")
    cache = _subscribed(state)
    fake_hub.changed = True
    fake_hub.map("orders", "card", "pci")

    assert PolicyLoader(fake_hub.client(), state).poll() is True
    assert fake_hub.calls["/policy/mappings"] == 1
    assert cache.resolve("orders", "card") == "pci"


def test_probe_failure_reads_as_no_change(fake_hub):
    fake_hub.down = True
    loader = PolicyLoader(fake_hub.client(), ProxyInstanceState("proxy-1"))
    assert loader.has_changed() is False
    assert loader.poll() is False
