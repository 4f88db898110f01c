"""Transport-stream relay from the stream endpoint to a byte sink."""

from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import BinaryIO

from .errors import TransportFailure, TransportTimeout
from .session import DeviceSession

logger = logging.getLogger(__name__)


@dataclass
class CaptureStats:
    """Counters for one capture run."""

    chunks: int = 0
    bytes: int = 0
    timeouts: int = 0
    error: TransportFailure | None = None
    sink_closed: bool = False


class CaptureRelay:
    """Pulls transport-stream chunks from the device and forwards them.

    Timeouts are routine and retried. Any other transport error ends the
    run; there is no re-arming.

    Usage::

        relay = CaptureRelay(session, sys.stdout.buffer)
        stats = relay.run()
    """

    def __init__(
        self,
        session: DeviceSession,
        sink: BinaryIO,
        chunk_size: int | None = None,
        timeout_ms: int | None = None,
    ) -> None:
        self._session = session
        self._sink = sink
        self._chunk_size = chunk_size or session.config.stream_chunk_size
        self._timeout_ms = timeout_ms or session.config.stream_timeout_ms
        self._stop = threading.Event()
        self.stats = CaptureStats()

    def stop(self) -> None:
        """Ask the loop to return after the current read."""
        self._stop.set()

    def run(self) -> CaptureStats:
        """Relay until stopped, the sink closes, or a transport failure.

        Returns:
            The run's ``CaptureStats``; ``error`` is set if a transport
            failure ended it.
        """
        stats = self.stats
        while not self._stop.is_set():
            try:
                chunk = self._session.read_stream(self._chunk_size, self._timeout_ms)
            except TransportTimeout:
                stats.timeouts += 1
                logger.info("Timeout")
                continue
            except TransportFailure as e:
                stats.error = e
                logger.error("Failed to read TS stream: %s", e)
                break

            if not chunk:
                continue

            try:
                self._sink.write(chunk)
                self._sink.flush()
            except BrokenPipeError:
                stats.sink_closed = True
                logger.info("Output closed, stopping capture")
                break

            stats.chunks += 1
            stats.bytes += len(chunk)

        logger.info(
            "Capture ended: %d chunks, %d bytes, %d timeouts",
            stats.chunks,
            stats.bytes,
            stats.timeouts,
        )
        return stats
