"""Field encryption/decryption through the Hub with fail-open/fail-closed handling."""

from __future__ import annotations

import enum
import logging
import threading
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Protocol

from dbshroud.hub.client import HubClient
from dbshroud.hub.models import HubError, HubProtocolError, HubRejectedError

logger = logging.getLogger(__name__)

ENCRYPTED_MARKER = "::ENC::"


class CryptoFailure(enum.Enum):
    HUB_UNREACHABLE = "hub_unreachable"
    REJECTED = "rejected"
    MALFORMED_RESPONSE = "malformed_response"


class CryptoError(Exception):
    """Raised for crypto failures when the proxy runs fail-closed."""

    def __init__(self, message: str, failure: CryptoFailure):
        super().__init__(message)
        self.failure = failure


@dataclass(frozen=True)
class CryptoResult:
    """Outcome of one Hub crypto call: a value, or the kind of failure."""

    value: str | None = None
    failure: CryptoFailure | None = None
    detail: str = ""
    cause: HubError | None = field(default=None, compare=False, repr=False)


class Notifier(Protocol):
    def notify_encryption_error(self, policy_name: str, detail: str) -> bool: ...

    def notify_decryption_error(self, detail: str) -> bool: ...


def _classify(error: HubError) -> CryptoFailure:
    if isinstance(error, HubRejectedError):
        return CryptoFailure.REJECTED
    if isinstance(error, HubProtocolError):
        return CryptoFailure.MALFORMED_RESPONSE
    return CryptoFailure.HUB_UNREACHABLE


def _preview(value: str) -> str:
    return value[:8] + "..." if len(value) > 8 else value


class CryptoAdapter:
    """Encrypts and decrypts single text values via the Hub.

    Every call ends in exactly one interpretation of its :class:`CryptoResult`:
    success returns the Hub's value; failure returns the original input when
    ``fail_open`` is set and raises :class:`CryptoError` otherwise.
    """

    def __init__(
        self,
        hub: HubClient,
        *,
        fail_open: bool = True,
        notifier: Notifier | None = None,
    ) -> None:
        self._hub = hub
        self._fail_open = fail_open
        self._notifier = notifier
        self._hub_reachable = True
        self._lock = threading.Lock()

    @property
    def fail_open(self) -> bool:
        return self._fail_open

    def set_notifier(self, notifier: Notifier | None) -> None:
        self._notifier = notifier

    def is_hub_available(self) -> bool:
        return self._hub_reachable

    # -- Public operations ---------------------------------------------------

    def encrypt(self, plaintext: str, policy_name: str) -> str:
        result = self._call(lambda: self._hub.encrypt(plaintext, policy_name))
        failure = result.failure
        if failure is None:
            logger.debug(
                "Encrypted value (len=%d) with policy %s", len(plaintext), policy_name
            )
            return result.value if result.value is not None else plaintext
        return self._settle(
            result,
            failure,
            plaintext,
            operation="encrypt",
            notify=lambda n: n.notify_encryption_error(policy_name, result.detail),
        )

    def decrypt(self, ciphertext: str) -> str:
        result = self._call(lambda: self._hub.decrypt(ciphertext))
        failure = result.failure
        if failure is None:
            if result.value is None:
                logger.debug("Hub reports value %r is not encrypted", _preview(ciphertext))
                return ciphertext
            return result.value
        return self._settle(
            result,
            failure,
            ciphertext,
            operation="decrypt",
            notify=lambda n: n.notify_decryption_error(result.detail),
        )

    @staticmethod
    def is_encrypted_data(value: object) -> bool:
        """Structural check for the Hub's ciphertext envelope (non-authoritative)."""
        return isinstance(value, str) and ENCRYPTED_MARKER in value

    # -- Internal helpers ----------------------------------------------------

    def _call(self, fn: Callable[[], str | None]) -> CryptoResult:
        try:
            value = fn()
        except HubError as e:
            return CryptoResult(failure=_classify(e), detail=str(e), cause=e)
        self._mark_reachable()
        return CryptoResult(value=value)

    def _mark_reachable(self) -> None:
        with self._lock:
            if not self._hub_reachable:
                logger.info("Hub crypto service reachable again")
            self._hub_reachable = True

    def _mark_unreachable(self) -> bool:
        """Flip to unreachable. True only for the call that made the transition."""
        with self._lock:
            transitioned = self._hub_reachable
            self._hub_reachable = False
            return transitioned

    def _settle(
        self,
        result: CryptoResult,
        failure: CryptoFailure,
        original: str,
        *,
        operation: str,
        notify: Callable[[Notifier], bool],
    ) -> str:
        if self._mark_unreachable() and self._notifier is not None:
            notify(self._notifier)

        if self._fail_open:
            logger.warning(
                "Hub %s failed (%s), passing value through: %s",
                operation, failure.value, result.detail,
            )
            return original
        raise CryptoError(
            f"Hub {operation} failed ({failure.value}): {result.detail}",
            failure,
        ) from result.cause
