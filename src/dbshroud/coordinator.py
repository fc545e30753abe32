"""Per-connection bootstrap against the shared per-instance state.

1. Claim the schema-sync first run; sync on a background thread.
2. Claim the policy-load first run; load on a background thread, then open the gate.
3. Start the instance poller if none is running.
4. Before the first statement, wait (bounded) on the gate.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

from dbshroud.adapters._base import DatabaseAdapter
from dbshroud.config import ProxyConfig
from dbshroud.hub.client import HubClient
from dbshroud.mappings import PolicyLoader
from dbshroud.policy_cache import PolicyCache
from dbshroud.poller import PollScheduler
from dbshroud.registry import InstanceRegistry, ProxyInstanceState, default_registry
from dbshroud.schema import SchemaSynchronizer, SchemaSyncStatus

logger = logging.getLogger(__name__)


class InstanceCoordinator:
    def __init__(
        self,
        config: ProxyConfig,
        hub_factory: Callable[[], HubClient],
        registry: InstanceRegistry | None = None,
    ) -> None:
        self._config = config
        self._hub_factory = hub_factory
        self._state = (registry or default_registry).get_or_create(config.instance_id)

    @property
    def state(self) -> ProxyInstanceState:
        return self._state

    def _hub(self) -> HubClient:
        return self._state.background_hub(self._hub_factory)

    def _spawn(self, target: Callable[[], None], kind: str) -> threading.Thread:
        thread = threading.Thread(
            target=target,
            name=f"dbshroud-{kind}-{self._config.instance_id}",
            daemon=True,
        )
        thread.start()
        self._state.track(thread)
        return thread

    def bootstrap(self, adapter: DatabaseAdapter, cache: PolicyCache) -> None:
        """Steps 1-3. Never blocks on the Hub."""
        state = self._state
        state.subscribe(cache)

        if state.claim_schema_sync():
            self._spawn(lambda: self._run_schema_sync(adapter), "schema-sync")

        if state.claim_policy_load():
            self._spawn(self._run_policy_load, "policy-load")

        hub = self._hub()
        state.ensure_poll_scheduler(lambda: self._new_poll_scheduler(hub))

    def wait_for_policies(self) -> bool:
        """Step 4. False when the gate timed out; the caller proceeds either way."""
        gate = self._state.policy_load_gate
        if gate.is_set():
            return True
        if gate.wait(self._config.gate_timeout):
            return True
        logger.warning(
            "Policy load for %s not finished after %.1fs; continuing with current cache",
            self._config.instance_id, self._config.gate_timeout,
        )
        return False

    def refresh(self) -> threading.Thread:
        """Force a full policy reload in the background."""
        loader = PolicyLoader(self._hub(), self._state)
        return self._spawn(loader.load, "policy-refresh")

    # -- Background tasks ----------------------------------------------------

    def _run_schema_sync(self, adapter: DatabaseAdapter) -> None:
        state = self._state
        status = SchemaSyncStatus.FAILED
        try:
            if not state.stopping.wait(self._config.schema_sync_delay):
                status = SchemaSynchronizer(self._hub(), state).sync_from(adapter)
        except Exception:
            self._log_crash("Schema sync")
        if status is SchemaSyncStatus.FAILED:
            state.release_schema_sync()

    def _run_policy_load(self) -> None:
        state = self._state
        count = None
        try:
            if not state.stopping.wait(self._config.policy_load_delay):
                count = PolicyLoader(self._hub(), state).load()
        except Exception:
            self._log_crash("Policy load")
        finally:
            if count is None:
                state.release_policy_load()
            state.policy_load_gate.set()

    def _log_crash(self, task: str) -> None:
        # After shutdown the Hub client may already be closed under the worker.
        if self._state.stopping.is_set():
            logger.debug("%s for %s interrupted by shutdown", task, self._state.instance_id)
        else:
            logger.warning("%s crashed for %s", task, self._state.instance_id, exc_info=True)

    def _new_poll_scheduler(self, hub: HubClient) -> PollScheduler:
        loader = PolicyLoader(hub, self._state)
        return PollScheduler(
            loader.poll,
            self._config.poll_interval,
            name=f"dbshroud-policy-poll-{self._config.instance_id}",
        )
