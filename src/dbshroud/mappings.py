"""Policy mapping load and change-probe polling for one instance id."""

from __future__ import annotations

import logging

from dbshroud.hub.client import HubClient
from dbshroud.hub.models import HubError, flatten_mappings
from dbshroud.registry import ProxyInstanceState

logger = logging.getLogger(__name__)


class PolicyLoader:
    """Pulls enabled mappings from the Hub and publishes them to the instance."""

    def __init__(self, hub: HubClient, state: ProxyInstanceState) -> None:
        self._hub = hub
        self._state = state

    def load(self) -> int | None:
        """Full reload. Returns the mapping count, or None if the Hub call failed.

        On failure every subscribed cache keeps its last-known-good contents.
        """
        instance_id = self._state.instance_id
        try:
            mappings = self._hub.get_mappings(instance_id)
        except HubError as e:
            logger.warning("Policy load failed for %s: %s", instance_id, e)
            return None

        flattened = flatten_mappings(mappings)
        subscribers = self._state.publish(flattened)
        logger.info(
            "Loaded %d policy mapping(s) for %s into %d cache(s)",
            len(flattened), instance_id, subscribers,
        )
        return len(flattened)

    def has_changed(self) -> bool:
        """Cheap probe; a failed probe reads as "no change"."""
        try:
            return self._hub.mappings_changed(self._state.instance_id)
        except HubError as e:
            logger.warning("Policy change probe failed for %s: %s", self._state.instance_id, e)
            return False

    def poll(self) -> bool:
        """One poll tick: probe, then reload only on a positive answer."""
        if not self.has_changed():
            return False
        logger.debug("Policy change reported for %s, reloading", self._state.instance_id)
        return self.load() is not None
