"""Named connection store: ~/.dbshroud/connections.toml (mode 0600).

Each table holds ``type``, the driver params and, optionally, proxy
overrides (``hub_url``, ``instance_id``, ``fail_open``, timeouts). Proxy
keys are normalized and validated when a connection is saved, so a bad
value fails at ``connect add`` rather than at first use.
"""

from __future__ import annotations

import os
import stat
import tomllib
from pathlib import Path
from typing import Any

from dbshroud.adapters._base import ConnectionConfig, DatabaseType
from dbshroud.config import split_proxy_params, validate_overrides

_CONNECTIONS_FILE = Path.home() / ".dbshroud" / "connections.toml"


def _toml_value(v: Any) -> str:
    if isinstance(v, bool):
        return "true" if v else "false"
    if isinstance(v, int | float):
        return repr(v)
    escaped = str(v).replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def _dump(data: dict[str, dict]) -> None:
    """Write the store as flat TOML tables, owner read/write only."""
    out: list[str] = []
    for name in sorted(data):
        out.append(f"[{name}]")
        out.extend(f"{key} = {_toml_value(val)}" for key, val in data[name].items())
        out.append("")

    _CONNECTIONS_FILE.parent.mkdir(parents=True, exist_ok=True, mode=0o700)
    _CONNECTIONS_FILE.write_text("\n".join(out))
    os.chmod(_CONNECTIONS_FILE, stat.S_IRUSR | stat.S_IWUSR)


def _load() -> dict[str, dict]:
    if not _CONNECTIONS_FILE.is_file():
        return {}
    return tomllib.loads(_CONNECTIONS_FILE.read_text())


def connections_path() -> Path:
    return _CONNECTIONS_FILE


def list_connections() -> dict[str, dict]:
    """All named connections as {name: {type, ...params}}."""
    return _load()


def get_connection(name: str) -> ConnectionConfig | None:
    """Named connection, or None when absent or its type is unknown."""
    entry = _load().get(name)
    if not isinstance(entry, dict):
        return None
    try:
        db_type = DatabaseType(entry.get("type"))
    except ValueError:
        return None
    params = {k: str(v) for k, v in entry.items() if k != "type"}
    return ConnectionConfig(name=name, db_type=db_type, params=params)


def save_connection(name: str, db_type: str, params: dict[str, Any]) -> Path:
    """Add or replace a named connection.

    Raises:
        ValueError: Unknown database type, or a proxy override that does
            not validate.
    """
    DatabaseType(db_type)
    proxy, driver = split_proxy_params(params)
    data = _load()
    data[name] = {"type": db_type, **driver, **validate_overrides(proxy)}
    _dump(data)
    return _CONNECTIONS_FILE


def remove_connection(name: str) -> bool:
    """Drop a named connection; the file goes away with the last one."""
    data = _load()
    if data.pop(name, None) is None:
        return False
    if data:
        _dump(data)
    else:
        _CONNECTIONS_FILE.unlink(missing_ok=True)
    return True
