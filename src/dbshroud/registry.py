"""Process-wide registry of per-instance-id coordination state."""

from __future__ import annotations

import logging
import threading
import weakref
from collections.abc import Callable, Mapping

from dbshroud.hub.client import HubClient
from dbshroud.policy_cache import PolicyCache
from dbshroud.poller import PollScheduler

logger = logging.getLogger(__name__)


class ProxyInstanceState:
    """Coordination state shared by every connection naming one instance id.

    The claim methods are compare-and-swap on a flag under the state lock:
    the first caller gets True, everyone else False until the claim is
    released. ``policy_load_gate`` is set once and never cleared.
    ``stopping`` is set by :meth:`shutdown`; background workers wait on it
    instead of sleeping so a shutdown wakes them.
    """

    def __init__(self, instance_id: str) -> None:
        self.instance_id = instance_id
        self.schema_sync_started = False
        self.policy_load_started = False
        self.policy_load_gate = threading.Event()
        self.poll_scheduler: PollScheduler | None = None
        self.stopping = threading.Event()
        self.last_schema_hash: str | None = None
        self.last_mapping: dict[str, str] | None = None
        self._hub: HubClient | None = None
        self._caches: weakref.WeakSet[PolicyCache] = weakref.WeakSet()
        self._workers: list[threading.Thread] = []
        self._lock = threading.Lock()

    # -- First-run claims ----------------------------------------------------

    def claim_schema_sync(self) -> bool:
        with self._lock:
            if self.schema_sync_started:
                return False
            self.schema_sync_started = True
            return True

    def release_schema_sync(self) -> None:
        with self._lock:
            self.schema_sync_started = False

    def claim_policy_load(self) -> bool:
        with self._lock:
            if self.policy_load_started:
                return False
            self.policy_load_started = True
            return True

    def release_policy_load(self) -> None:
        with self._lock:
            self.policy_load_started = False

    # -- Shared collaborators ------------------------------------------------

    def background_hub(self, factory: Callable[[], HubClient]) -> HubClient:
        """Hub client owned by the instance (sync, load, poll), created once."""
        with self._lock:
            if self._hub is None:
                self._hub = factory()
            return self._hub

    def track(self, worker: threading.Thread) -> None:
        """Remember a background worker so shutdown can wait for it."""
        with self._lock:
            self._workers = [w for w in self._workers if w.is_alive()]
            self._workers.append(worker)

    def ensure_poll_scheduler(self, factory: Callable[[], PollScheduler]) -> bool:
        """Create and start the instance poller unless one exists. True if started."""
        with self._lock:
            if self.poll_scheduler is not None:
                return False
            self.poll_scheduler = factory()
        self.poll_scheduler.start()
        return True

    # -- Policy fan-out ------------------------------------------------------

    def subscribe(self, cache: PolicyCache) -> None:
        """Feed ``cache`` from this instance's loads, seeding it with the last one."""
        with self._lock:
            self._caches.add(cache)
            if self.last_mapping is not None:
                cache.replace_all(self.last_mapping)

    def publish(self, mapping: Mapping[str, str]) -> int:
        """Atomically replace every subscribed cache. Returns the subscriber count."""
        snapshot = dict(mapping)
        with self._lock:
            self.last_mapping = snapshot
            caches = list(self._caches)
            for cache in caches:
                cache.replace_all(snapshot)
        return len(caches)

    def shutdown(self, timeout: float = 5.0) -> None:
        """Stop the poller, let in-flight workers finish, then close the Hub client."""
        self.stopping.set()
        with self._lock:
            scheduler, self.poll_scheduler = self.poll_scheduler, None
            workers, self._workers = self._workers, []
        if scheduler is not None:
            scheduler.stop()
        current = threading.current_thread()
        for worker in workers:
            if worker is not current:
                worker.join(timeout)
        with self._lock:
            hub, self._hub = self._hub, None
        if hub is not None:
            hub.close()


class InstanceRegistry:
    """Instance id -> :class:`ProxyInstanceState`, created on first use."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._states: dict[str, ProxyInstanceState] = {}

    def get_or_create(self, instance_id: str) -> ProxyInstanceState:
        with self._lock:
            state = self._states.get(instance_id)
            if state is None:
                state = ProxyInstanceState(instance_id)
                self._states[instance_id] = state
                logger.debug("Created proxy instance state: %s", instance_id)
            return state

    def get(self, instance_id: str) -> ProxyInstanceState | None:
        with self._lock:
            return self._states.get(instance_id)

    def clear(self, instance_id: str | None = None) -> None:
        """Drop state (all of it, or one instance id), stopping its poller."""
        with self._lock:
            if instance_id is None:
                dropped = list(self._states.values())
                self._states.clear()
            else:
                state = self._states.pop(instance_id, None)
                dropped = [state] if state is not None else []
        for state in dropped:
            state.shutdown()


default_registry = InstanceRegistry()
