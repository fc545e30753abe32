"""Reachability alerts posted to the Hub's notification endpoint."""

from __future__ import annotations

import logging

from dbshroud.hub.client import HubClient
from dbshroud.hub.models import HubError

logger = logging.getLogger(__name__)


class HubNotifier:
    """Posts ``CRYPTO_ERROR`` notifications for one proxy instance.

    Delivery is best effort: a failed post is logged and dropped.
    """

    def __init__(self, hub: HubClient, instance_id: str) -> None:
        self._hub = hub
        self._instance_id = instance_id

    def notify_encryption_error(self, policy_name: str, detail: str) -> bool:
        return self.send(
            title="Encryption failed",
            message=f"Encryption with policy '{policy_name}' failed: {detail}",
        )

    def notify_decryption_error(self, detail: str) -> bool:
        return self.send(title="Decryption failed", message=f"Decryption failed: {detail}")

    def send(self, title: str, message: str, *, level: str = "WARNING") -> bool:
        payload = {
            "type": "CRYPTO_ERROR",
            "level": level,
            "title": title,
            "message": message,
            "entityType": "PROXY",
            "entityId": self._instance_id,
        }
        try:
            self._hub.notify(payload)
        except HubError as e:
            logger.warning("Could not deliver notification '%s': %s", title, e)
            return False
        logger.debug("Notification sent: %s", title)
        return True
