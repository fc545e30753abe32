"""DB-API 2.0 connection and cursor wrappers that apply field policies."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable, Iterable, Iterator, Sequence
from typing import Any

from dbshroud.adapters._base import DatabaseAdapter
from dbshroud.analyzer import ParsedStatement, analyze
from dbshroud.config import ProxyConfig
from dbshroud.coordinator import InstanceCoordinator
from dbshroud.crypto import CryptoAdapter
from dbshroud.hub.client import HubClient
from dbshroud.interceptor import FieldInterceptor
from dbshroud.notifications import HubNotifier
from dbshroud.policy_cache import PolicyCache
from dbshroud.registry import InstanceRegistry

logger = logging.getLogger(__name__)


class ProxyCursor:
    """Wraps a driver cursor: encrypts bound parameters, decrypts fetched rows."""

    def __init__(self, cursor: Any, connection: ProxyConnection) -> None:
        self._cursor = cursor
        self._connection = connection
        self._parsed: ParsedStatement | None = None
        self._covered: list[str | None] | None = None

    def _prepare(self, sql: str) -> ParsedStatement | None:
        self._parsed = self._connection.analyze(sql)
        self._covered = None
        return self._parsed

    def _after_execute(self) -> None:
        self._covered = self._connection.interceptor.policies_for_result(
            self._parsed, self._cursor.description
        )

    # -- Execution -----------------------------------------------------------

    def execute(self, sql: str, params: Any = None) -> ProxyCursor:
        parsed = self._prepare(sql)
        if params is None:
            self._cursor.execute(sql)
        else:
            self._cursor.execute(sql, self._connection.interceptor.protect_parameters(parsed, params))
        self._after_execute()
        return self

    def executemany(self, sql: str, seq_of_params: Iterable[Any]) -> ProxyCursor:
        parsed = self._prepare(sql)
        protect = self._connection.interceptor.protect_parameters
        self._cursor.executemany(sql, [protect(parsed, params) for params in seq_of_params])
        self._after_execute()
        return self

    # -- Fetching ------------------------------------------------------------

    def _reveal(self, row: Any) -> Any:
        return self._connection.interceptor.reveal_row(self._covered, row)

    def fetchone(self) -> Any:
        return self._reveal(self._cursor.fetchone())

    def fetchmany(self, size: int | None = None) -> list[Any]:
        rows = self._cursor.fetchmany() if size is None else self._cursor.fetchmany(size)
        return [self._reveal(row) for row in rows]

    def fetchall(self) -> list[Any]:
        return [self._reveal(row) for row in self._cursor.fetchall()]

    def __iter__(self) -> Iterator[Any]:
        while True:
            row = self.fetchone()
            if row is None:
                return
            yield row

    # -- Pass-through --------------------------------------------------------

    @property
    def description(self) -> Sequence[Sequence[Any]] | None:
        return self._cursor.description

    @property
    def rowcount(self) -> int:
        return self._cursor.rowcount

    @property
    def raw(self) -> Any:
        return self._cursor

    def close(self) -> None:
        self._cursor.close()

    def __enter__(self) -> ProxyCursor:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        return getattr(self._cursor, name)


class ProxyConnection:
    """A DB-API connection whose statements pass through the field interceptor.

    Construction runs the instance bootstrap (schema sync, policy load,
    poller) in the background; ``cursor()`` and ``execute()`` wait for the
    first policy load before handing out an execution surface.
    """

    def __init__(
        self,
        adapter: DatabaseAdapter,
        config: ProxyConfig,
        *,
        hub_factory: Callable[[], HubClient] | None = None,
        registry: InstanceRegistry | None = None,
    ) -> None:
        if hub_factory is None:
            def hub_factory() -> HubClient:
                return HubClient(config.hub_url, timeout=config.hub_timeout)

        self._adapter = adapter
        self._config = config
        self._hub = hub_factory()
        self._policy_cache = PolicyCache()
        self._crypto = CryptoAdapter(self._hub, fail_open=config.fail_open)
        self._crypto.set_notifier(HubNotifier(self._hub, config.instance_id))
        self._interceptor = FieldInterceptor(self._policy_cache, self._crypto)
        self._coordinator = InstanceCoordinator(config, hub_factory, registry)
        self._ready = threading.Event()
        self._closed = False

        try:
            self._coordinator.bootstrap(adapter, self._policy_cache)
        except Exception:
            self._hub.close()
            raise
        logger.debug(
            "Opened proxy connection (%s, instance=%s, fail_open=%s)",
            adapter.dialect(), config.instance_id, config.fail_open,
        )

    # -- Accessors -----------------------------------------------------------

    @property
    def config(self) -> ProxyConfig:
        return self._config

    @property
    def adapter(self) -> DatabaseAdapter:
        return self._adapter

    @property
    def raw(self) -> Any:
        return self._adapter.connection

    @property
    def policy_cache(self) -> PolicyCache:
        return self._policy_cache

    @property
    def crypto(self) -> CryptoAdapter:
        return self._crypto

    @property
    def interceptor(self) -> FieldInterceptor:
        return self._interceptor

    @property
    def closed(self) -> bool:
        return self._closed

    def analyze(self, sql: str) -> ParsedStatement | None:
        return analyze(sql, paramstyle=self._adapter.paramstyle(), dialect=self._adapter.dialect())

    # -- Statement surface ---------------------------------------------------

    def _wait_ready(self) -> None:
        if self._ready.is_set():
            return
        self._coordinator.wait_for_policies()
        self._ready.set()

    def cursor(self) -> ProxyCursor:
        self._wait_ready()
        return ProxyCursor(self.raw.cursor(), self)

    def execute(self, sql: str, params: Any = None) -> ProxyCursor:
        self._wait_ready()
        return ProxyCursor(self._adapter.execution_handle(), self).execute(sql, params)

    def refresh_mappings(self) -> threading.Thread:
        """Reload policy mappings from the Hub in the background."""
        return self._coordinator.refresh()

    # -- Transaction / lifecycle ---------------------------------------------

    def commit(self) -> None:
        self.raw.commit()

    def rollback(self) -> None:
        self.raw.rollback()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        try:
            self._adapter.close()
        finally:
            self._hub.close()

    def __enter__(self) -> ProxyConnection:
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def __getattr__(self, name: str) -> Any:
        if name.startswith("_"):
            raise AttributeError(name)
        return getattr(self.raw, name)
