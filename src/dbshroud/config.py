"""Proxy settings and their resolution order.

Per-connection override > process-wide override > environment > default.
A blank value at any level falls through to the next one. Environment
variables carry the ``DBSHROUD_`` prefix (``DBSHROUD_HUB_URL``,
``DBSHROUD_FAIL_OPEN``, ...).
"""

from __future__ import annotations

import logging
import threading
import tomllib
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_HUB_URL = "http://localhost:9004/hub/api/v1"
DEFAULT_INSTANCE_ID = "proxy-1"

_TRUE_VALUES = frozenset({"true", "1", "yes", "on"})


def parse_bool(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in _TRUE_VALUES


class ProxyConfig(BaseSettings):
    """Settings for one proxied connection, read from DBSHROUD_* variables."""

    model_config = SettingsConfigDict(
        env_prefix="DBSHROUD_",
        case_sensitive=False,
        env_ignore_empty=True,
        str_strip_whitespace=True,
        extra="forbid",
        frozen=True,
    )

    hub_url: str = DEFAULT_HUB_URL
    instance_id: str = DEFAULT_INSTANCE_ID
    fail_open: bool = True
    hub_timeout: float = 10.0
    gate_timeout: float = 10.0
    poll_interval: float = 30.0
    schema_sync_delay: float = 1.0
    policy_load_delay: float = 1.5

    @field_validator("fail_open", mode="before")
    @classmethod
    def lenient_bool(cls, v: Any) -> bool:
        # Any non-empty value outside true/1/yes/on means False.
        return parse_bool(v)


_process_lock = threading.Lock()
_process_overrides: dict[str, Any] = {}


def _is_blank(value: Any) -> bool:
    return value is None or (isinstance(value, str) and not value.strip())


def _check_keys(values: Mapping[str, Any]) -> None:
    unknown = sorted(set(values) - set(ProxyConfig.model_fields))
    if unknown:
        raise ValueError(f"Unknown proxy setting(s): {', '.join(unknown)}")


def _non_blank(values: Mapping[str, Any]) -> dict[str, Any]:
    return {k: v for k, v in values.items() if not _is_blank(v)}


# Connection-string keys that configure the proxy rather than the driver.
_PROXY_KEYS = {
    "hub_url": "hub_url",
    "huburl": "hub_url",
    "instance_id": "instance_id",
    "instanceid": "instance_id",
    "fail_open": "fail_open",
    "failopen": "fail_open",
    "hub_timeout": "hub_timeout",
    "gate_timeout": "gate_timeout",
    "poll_interval": "poll_interval",
}

_BOOL_WORDS = _TRUE_VALUES | {"false", "0", "no", "off"}


def split_proxy_params(params: Mapping[str, Any]) -> tuple[dict[str, Any], dict[str, Any]]:
    """Separate proxy overrides (keys normalized) from driver params."""
    proxy: dict[str, Any] = {}
    driver: dict[str, Any] = {}
    for key, value in params.items():
        target = _PROXY_KEYS.get(key.lower())
        if target is None:
            driver[key] = value
        else:
            proxy[target] = value
    return proxy, driver


def validate_overrides(values: Mapping[str, Any]) -> dict[str, Any]:
    """Check stored overrides on their own and return them typed.

    Stricter than connection-time parsing: ``fail_open`` must be a
    recognised boolean word, so a typo is caught when it is saved rather
    than silently read as False later. The environment is not consulted.
    """
    _check_keys(values)
    values = _non_blank(values)
    fail_open = values.get("fail_open")
    if isinstance(fail_open, str) and fail_open.strip().lower() not in _BOOL_WORDS:
        raise ValueError(f"Invalid value for fail_open: {fail_open!r} (expected true or false)")
    config = ProxyConfig.model_validate(values)
    return config.model_dump(include=set(values))


def set_process_overrides(**values: Any) -> None:
    """Set process-wide overrides (merged into any already set)."""
    _check_keys(values)
    with _process_lock:
        _process_overrides.update(values)


def clear_process_overrides() -> None:
    with _process_lock:
        _process_overrides.clear()


def load_process_overrides(path: str | Path) -> dict[str, Any]:
    """Read process-wide overrides from a TOML file's ``[proxy]`` table (or top level)."""
    with open(path, "rb") as f:
        data = tomllib.load(f)
    section = data.get("proxy", data)
    values = {k: v for k, v in section.items() if not isinstance(v, dict)}
    set_process_overrides(**values)
    logger.debug("Loaded %d process override(s) from %s", len(values), path)
    return values


def resolve_config(overrides: Mapping[str, Any] | None = None) -> ProxyConfig:
    """Build a :class:`ProxyConfig` through the precedence chain.

    Init kwargs beat the environment in ``BaseSettings``, so the merged
    process and connection overrides go in as kwargs and everything they
    leave out is read from the environment or defaulted.

    Raises:
        ValueError: On an unknown key, or a value that does not validate
            (``pydantic.ValidationError`` is a ``ValueError``).
    """
    overrides = dict(overrides or {})
    _check_keys(overrides)
    with _process_lock:
        process = dict(_process_overrides)
    return ProxyConfig(**{**_non_blank(process), **_non_blank(overrides)})
