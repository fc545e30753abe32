"""Fixed-period background poller (one per proxy instance id)."""

from __future__ import annotations

import logging
import threading
from collections.abc import Callable

logger = logging.getLogger(__name__)


class PollScheduler:
    """Run ``tick`` on a daemon thread: immediately, then every ``interval`` seconds.

    A tick that raises is logged and the loop keeps going.
    """

    def __init__(self, tick: Callable[[], object], interval: float, *, name: str) -> None:
        self._tick = tick
        self._interval = interval
        self._name = name
        self._stop_event = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self._thread is not None:
            return

        self._stop_event.clear()

        def _run() -> None:
            while True:
                try:
                    self._tick()
                except Exception:
                    logger.warning("Poll tick failed (%s)", self._name, exc_info=True)
                if self._stop_event.wait(self._interval):
                    return

        self._thread = threading.Thread(target=_run, name=self._name, daemon=True)
        self._thread.start()
        logger.info("Policy polling started: %s (interval=%.0fs)", self._name, self._interval)

    def stop(self, timeout: float = 5.0) -> None:
        self._stop_event.set()
        if self._thread is not None:
            self._thread.join(timeout=timeout)
            self._thread = None
