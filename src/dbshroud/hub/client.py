"""HTTP client for the Hub: policy mappings, schema catalog, crypto, notifications."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any

import httpx

from dbshroud.hub.models import (
    HubError,
    HubProtocolError,
    HubRejectedError,
    HubResponse,
    PolicyMapping,
    SchemaColumn,
)

logger = logging.getLogger(__name__)


class HubClient:
    """Thin synchronous wrapper around the Hub REST API.

    Every method raises :class:`HubError` (or a subclass) on failure; the
    callers decide whether a failure is absorbed or propagated.

    Parameters
    ----------
    base_url:
        Root URL of the Hub API (e.g. ``http://localhost:9004/hub/api/v1``).
    timeout:
        Per-request read timeout in seconds.
    connect_timeout:
        TCP connect timeout in seconds.
    transport:
        Optional httpx transport; tests pass an ``httpx.MockTransport``.
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        connect_timeout: float = 5.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._client = httpx.Client(
            base_url=self._base_url,
            timeout=httpx.Timeout(timeout, connect=connect_timeout),
            headers={"Content-Type": "application/json"},
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    # -- Policy and schema ---------------------------------------------------

    def get_mappings(self, instance_id: str) -> list[PolicyMapping]:
        """Full policy-mapping list for ``instance_id``."""
        resp = self._request("GET", "/policy/mappings", params={"instanceId": instance_id})
        if resp.data is None:
            return []
        if not isinstance(resp.data, list):
            raise HubProtocolError("Policy mappings payload is not a list", path="/policy/mappings")
        return [PolicyMapping.from_json(item) for item in resp.data]

    def mappings_changed(self, instance_id: str) -> bool:
        """Cheap probe: has anything changed since this instance last checked?"""
        resp = self._request(
            "GET", "/policy/mappings/check", params={"instanceId": instance_id}
        )
        return bool(resp.data)

    def sync_schema(self, instance_id: str, columns: Sequence[SchemaColumn]) -> None:
        payload = {
            "instanceId": instance_id,
            "schemas": [c.to_json() for c in columns],
        }
        self._request("POST", "/schema/sync", json=payload)

    # -- Crypto --------------------------------------------------------------

    def encrypt(self, data: str, policy_name: str) -> str:
        resp = self._request(
            "POST", "/crypto/encrypt", json={"data": data, "policyName": policy_name}
        )
        if not isinstance(resp.data, str):
            raise HubProtocolError("Encrypt response carries no ciphertext", path="/crypto/encrypt")
        return resp.data

    def decrypt(self, encrypted_data: str) -> str | None:
        """Plaintext, or None when the Hub reports the value is not encrypted."""
        resp = self._request("POST", "/crypto/decrypt", json={"encryptedData": encrypted_data})
        if resp.data is not None and not isinstance(resp.data, str):
            raise HubProtocolError("Decrypt response is not text", path="/crypto/decrypt")
        return resp.data

    # -- Notifications -------------------------------------------------------

    def notify(self, payload: dict[str, Any]) -> None:
        self._request("POST", "/notifications", json=payload)

    # -- Lifecycle -----------------------------------------------------------

    def close(self) -> None:
        """Close the underlying HTTP connection pool."""
        self._client.close()

    @property
    def closed(self) -> bool:
        return self._client.is_closed

    # -- Internal helpers ----------------------------------------------------

    def _request(
        self,
        method: str,
        path: str,
        *,
        params: dict[str, str] | None = None,
        json: dict[str, Any] | None = None,
    ) -> HubResponse:
        """Send one request and return the decoded ``{success, data, message}`` envelope."""
        try:
            response = self._client.request(method, path, params=params, json=json)
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            logger.debug(
                "Hub returned %d for %s: %s",
                exc.response.status_code,
                path,
                exc.response.text[:500],
            )
            raise HubError(
                f"Hub returned {exc.response.status_code} for {path}",
                path=path,
                status_code=exc.response.status_code,
            ) from exc
        except httpx.RequestError as exc:
            raise HubError(f"Hub request to {path} failed: {exc}", path=path) from exc

        try:
            body = response.json()
        except ValueError as exc:
            raise HubProtocolError(f"Hub returned invalid JSON for {path}", path=path) from exc

        resp = HubResponse.from_json(body, path=path)
        if not resp.success:
            raise HubRejectedError(
                resp.message or f"Hub rejected {path}",
                path=path,
                status_code=response.status_code,
            )
        return resp
