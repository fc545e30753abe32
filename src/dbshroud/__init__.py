"""dbshroud: transparent, policy-driven field encryption for DB-API connections."""

from dbshroud.adapters._base import AdapterError
from dbshroud.config import (
    ProxyConfig,
    clear_process_overrides,
    load_process_overrides,
    resolve_config,
    set_process_overrides,
)
from dbshroud.crypto import CryptoError
from dbshroud.driver import connect, wrap
from dbshroud.hub.models import HubError
from dbshroud.proxy import ProxyConnection, ProxyCursor
from dbshroud.registry import default_registry

__version__ = "0.1.0"

__all__ = [
    "AdapterError",
    "CryptoError",
    "HubError",
    "ProxyConfig",
    "ProxyConnection",
    "ProxyCursor",
    "clear_process_overrides",
    "connect",
    "default_registry",
    "load_process_overrides",
    "resolve_config",
    "set_process_overrides",
    "wrap",
]
