"""Optional periodic time-sync emitter.

Runs on a daemon thread and shares the session's lock and encoder, so its
queries never interleave with an exchange from the main flow.
"""

from __future__ import annotations

import logging
import threading
import time
from typing import Callable

from .errors import TransportError
from .protocol import commands
from .session import DeviceSession

logger = logging.getLogger(__name__)


class KeepAlive:
    """Sends a time query every ``interval`` seconds until stopped."""

    def __init__(
        self,
        session: DeviceSession,
        interval: float = 10.0,
        timeout_ms: int | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._session = session
        self._interval = interval
        self._timeout_ms = timeout_ms or session.config.keepalive_timeout_ms
        self._clock = clock
        self._started_at = clock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None
        self.sent = 0
        self.failures = 0

    def timestamp_ms(self) -> int:
        """Milliseconds since the emitter was created, wrapped to 32 bits."""
        return int((self._clock() - self._started_at) * 1000) & 0xFFFFFFFF

    def tick(self) -> bytes | None:
        """Send one time query. Transfer errors are logged, not raised."""
        frame = commands.build_time_query(self._session.encoder, self.timestamp_ms())
        try:
            response = self._session.exchange(
                frame, "Remote timestamp", timeout_ms=self._timeout_ms
            )
        except (TransportError, ConnectionError) as e:
            self.failures += 1
            logger.warning("Timestamp request failed: %s", e)
            return None
        self.sent += 1
        return response

    def _run(self) -> None:
        while True:
            self.tick()
            if self._stop.wait(self._interval):
                break

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(
            target=self._run, name="it9910-keepalive", daemon=True
        )
        self._thread.start()
        logger.debug("Keep-alive started, interval %.1fs", self._interval)

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
