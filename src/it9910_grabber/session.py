"""Device session and the bring-up sequence.

The grabber must be brought up in one fixed order before it streams:

1. reset, claim interface 0, select alt setting 0, clear halts on 0x81/0x83
2. read the profile (informational)
3. read the source (informational)
4. switch small PC grabber mode off
5. switch small PC grabber mode on
6. poll the PC grabber status until it reports ready
7. push the indexed PC grabber configuration, indices 0-21
8. set the capture state to START
9. push the 512-byte PC grabber configuration

Any transport error during these steps aborts the bring-up.
"""

from __future__ import annotations

import logging
import threading
import time
from enum import Enum
from typing import Callable, Protocol

from .config import GrabberConfig
from .errors import DeviceNotReadyError, GrabberError
from .protocol import commands
from .protocol.commands import CaptureState
from .protocol.framing import FrameEncoder
from .protocol.parser import is_ready, log_response

logger = logging.getLogger(__name__)


class Transport(Protocol):
    """The USB operations a session needs. ``USBConnection`` provides them."""

    def reset(self) -> None: ...

    def claim_interface(self, interface: int) -> None: ...

    def set_alternate_setting(self, interface: int, alt_setting: int) -> None: ...

    def clear_halt(self, endpoint: int) -> None: ...

    def write_bulk(self, endpoint: int, data: bytes, timeout_ms: int) -> int: ...

    def read_bulk(self, endpoint: int, size: int, timeout_ms: int) -> bytes: ...


class BringUpState(Enum):
    """Progress through the bring-up sequence."""

    IDLE = "idle"
    CLAIMED = "claimed"
    PROFILED = "profiled"
    SOURCED = "sourced"
    GRABBER_RESET = "grabber_reset"
    GRABBER_ENABLED = "grabber_enabled"
    READY = "ready"
    CONFIGURED = "configured"
    ARMED = "armed"
    STREAMING_READY = "streaming_ready"
    FAILED = "failed"


class DeviceSession:
    """Ties one frame encoder to one open device handle.

    All device access goes through ``exchange`` or ``read_stream``, which
    hold ``lock`` for the whole write-then-read so a background emitter can
    never slip a command between a request and its response.
    """

    def __init__(
        self,
        transport: Transport,
        config: GrabberConfig | None = None,
        encoder: FrameEncoder | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ) -> None:
        self.transport = transport
        self.config = config or GrabberConfig()
        self.encoder = encoder or FrameEncoder()
        self.lock = threading.Lock()
        self.state = BringUpState.IDLE
        self.poll_attempts = 0
        self._sleep = sleep

    # ─── DEVICE ACCESS ────────────────────────────────────────────────

    def exchange(
        self,
        frame: bytes,
        label: str | None = None,
        timeout_ms: int | None = None,
    ) -> bytes:
        """Send one command frame and read its response.

        Args:
            frame: Encoded command frame.
            label: If given, the classified response is logged under it.
            timeout_ms: Per-transfer timeout, defaults to the command timeout.

        Returns:
            The raw response bytes.

        Raises:
            TransportError: If either transfer fails.
        """
        cfg = self.config
        timeout = cfg.command_timeout_ms if timeout_ms is None else timeout_ms
        with self.lock:
            self.transport.write_bulk(cfg.ep_command_out, frame, timeout)
            response = self.transport.read_bulk(
                cfg.ep_status_in, cfg.response_buffer_size, timeout
            )
        if label is not None:
            log_response(label, response, logger)
        return response

    def read_stream(self, size: int, timeout_ms: int) -> bytes:
        """Read one chunk from the transport-stream endpoint."""
        with self.lock:
            return self.transport.read_bulk(self.config.ep_stream_in, size, timeout_ms)

    # ─── BRING-UP STEPS ───────────────────────────────────────────────

    def reset_and_claim(self) -> None:
        cfg = self.config
        with self.lock:
            self.transport.reset()
            self.transport.claim_interface(cfg.interface)
            self.transport.set_alternate_setting(cfg.interface, cfg.alt_setting)
            self.transport.clear_halt(cfg.ep_status_in)
            self.transport.clear_halt(cfg.ep_stream_in)
        self.state = BringUpState.CLAIMED

    def query_profile(self) -> bytes:
        response = self.exchange(commands.build_get_profile(self.encoder), "Profile")
        self.state = BringUpState.PROFILED
        return response

    def query_source(self) -> bytes:
        response = self.exchange(commands.build_get_source(self.encoder), "Source")
        self.state = BringUpState.SOURCED
        return response

    def apply_picture_settings(self) -> None:
        """Send any brightness/contrast/hue/saturation values from the config."""
        for name, value in self.config.picture_settings().items():
            logger.info("Setting %s to %d", name, value)
            self.exchange(
                commands.build_picture_setting(self.encoder, name, value),
                name.capitalize(),
            )

    def set_small_grabber(self, enable: bool) -> bytes:
        response = self.exchange(
            commands.build_set_pc_grabber_small(self.encoder, enable),
            "Returned PC grabber state",
        )
        self.state = (
            BringUpState.GRABBER_ENABLED if enable else BringUpState.GRABBER_RESET
        )
        return response

    def wait_until_ready(self) -> int:
        """Poll the PC grabber status until it reports ready.

        Waits forever unless ``config.max_poll_attempts`` is set.

        Returns:
            The number of status queries sent.

        Raises:
            DeviceNotReadyError: If the attempt limit is reached.
        """
        logger.info("Waiting for PC grabber...")
        limit = self.config.max_poll_attempts
        self.poll_attempts = 0
        while True:
            self.poll_attempts += 1
            response = self.exchange(
                commands.build_get_pc_grabber_small(self.encoder),
                "PC grabber state",
            )
            if is_ready(response):
                break
            if limit is not None and self.poll_attempts >= limit:
                raise DeviceNotReadyError(
                    f"PC grabber not ready after {self.poll_attempts} attempts"
                )
            self._sleep(self.config.poll_interval)

        self.state = BringUpState.READY
        return self.poll_attempts

    def push_indexed_configuration(self) -> None:
        logger.info("Setting PC grabber state...")
        for index in self.config.pc_grabber_indices:
            response = self.exchange(commands.build_set_pc_grabber(self.encoder, index))
            logger.debug("PC grabber index %d: %d byte response", index, len(response))
        self.state = BringUpState.CONFIGURED

    def arm_capture(self) -> bytes:
        logger.info("Starting capture...")
        response = self.exchange(
            commands.build_set_state(self.encoder, CaptureState.START), "State"
        )
        self.state = BringUpState.ARMED
        return response

    def push_large_configuration(self) -> bytes:
        response = self.exchange(
            commands.build_set_pc_grabber_large(self.encoder), "PC grabber"
        )
        self.state = BringUpState.STREAMING_READY
        return response

    def bring_up(self) -> None:
        """Run the full bring-up sequence.

        Raises:
            TransportError: On any transfer failure; the device is unusable.
            DeviceNotReadyError: If a poll limit is configured and reached.
        """
        try:
            self.reset_and_claim()
            self.query_profile()
            self.query_source()
            self.set_small_grabber(False)
            self.apply_picture_settings()
            self.set_small_grabber(True)
            self.wait_until_ready()
            self.push_indexed_configuration()
            self.arm_capture()
            self.push_large_configuration()
        except GrabberError:
            failed_in = self.state
            self.state = BringUpState.FAILED
            logger.error("Bring-up failed after state %s", failed_in.value)
            raise
