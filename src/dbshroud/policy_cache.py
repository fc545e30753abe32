"""In-memory table.column -> policy name cache."""

from __future__ import annotations

import logging
import threading
from collections.abc import Mapping

logger = logging.getLogger(__name__)


def policy_key(table: str, column: str) -> str:
    """Case-preserved lookup key; callers own consistent casing."""
    return f"{table}.{column}"


class PolicyCache:
    """Policy lookups for one connection.

    Reads never lock: every writer builds a new dict and swaps the reference,
    so a reader sees either the old mapping or the new one, never a mix.
    """

    def __init__(self, mapping: Mapping[str, str] | None = None) -> None:
        self._lock = threading.Lock()
        self._mapping: dict[str, str] = dict(mapping or {})

    def resolve(self, table: str, column: str) -> str | None:
        return self._mapping.get(policy_key(table, column))

    def replace_all(self, mapping: Mapping[str, str]) -> None:
        fresh = dict(mapping)
        with self._lock:
            self._mapping = fresh
        logger.debug("Policy cache replaced: %d mapping(s)", len(fresh))

    def put(self, table: str, column: str, policy_name: str) -> None:
        with self._lock:
            updated = dict(self._mapping)
            updated[policy_key(table, column)] = policy_name
            self._mapping = updated

    def remove(self, table: str, column: str) -> None:
        with self._lock:
            updated = dict(self._mapping)
            updated.pop(policy_key(table, column), None)
            self._mapping = updated

    def clear(self) -> None:
        with self._lock:
            self._mapping = {}

    def snapshot(self) -> dict[str, str]:
        return dict(self._mapping)

    def __len__(self) -> int:
        return len(self._mapping)

    def __contains__(self, key: object) -> bool:
        return key in self._mapping
