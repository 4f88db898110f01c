"""Runtime settings for a capture session."""

from __future__ import annotations

from dataclasses import dataclass

from .protocol.commands import PC_GRABBER_INDEX_COUNT

VENDOR_ID = 0x048D
PRODUCT_ID = 0x9910
CONTROL_INTERFACE = 0
ALT_SETTING = 0
EP_COMMAND_OUT = 0x02
EP_STATUS_IN = 0x81
EP_STREAM_IN = 0x83

COMMAND_TIMEOUT_MS = 2000
STREAM_TIMEOUT_MS = 1000
KEEPALIVE_TIMEOUT_MS = 5000
RESPONSE_BUFFER_SIZE = 0x200
STREAM_CHUNK_SIZE = 0x4000


@dataclass
class GrabberConfig:
    """Device addressing, timeouts, and optional bring-up extras.

    The defaults reproduce the stock bring-up sequence. ``max_poll_attempts``
    of ``None`` waits for readiness forever.
    """

    vendor_id: int = VENDOR_ID
    product_id: int = PRODUCT_ID
    interface: int = CONTROL_INTERFACE
    alt_setting: int = ALT_SETTING
    ep_command_out: int = EP_COMMAND_OUT
    ep_status_in: int = EP_STATUS_IN
    ep_stream_in: int = EP_STREAM_IN

    command_timeout_ms: int = COMMAND_TIMEOUT_MS
    stream_timeout_ms: int = STREAM_TIMEOUT_MS
    response_buffer_size: int = RESPONSE_BUFFER_SIZE
    stream_chunk_size: int = STREAM_CHUNK_SIZE

    poll_interval: float = 1.0
    max_poll_attempts: int | None = None
    pc_grabber_indices: range = range(PC_GRABBER_INDEX_COUNT)

    keepalive_interval: float | None = None
    keepalive_timeout_ms: int = KEEPALIVE_TIMEOUT_MS

    brightness: int | None = None
    contrast: int | None = None
    hue: int | None = None
    saturation: int | None = None

    def picture_settings(self) -> dict[str, int]:
        """Picture adjustments that were explicitly requested."""
        settings = {
            "brightness": self.brightness,
            "contrast": self.contrast,
            "hue": self.hue,
            "saturation": self.saturation,
        }
        return {name: value for name, value in settings.items() if value is not None}
