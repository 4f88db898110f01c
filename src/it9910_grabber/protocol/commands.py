"""Opcode constants and high-level command builders.

Each builder pins an opcode and an operation and shapes the payload. The
encoder is passed in so every frame draws from the session's sequence
counter.
"""

from __future__ import annotations

import struct
from enum import IntEnum

from . import blobs
from .framing import FrameEncoder, Operation

PC_GRABBER_INDEX_COUNT = 22  # indices 0..21, sent during bring-up


class Opcode(IntEnum):
    """Device feature/register selectors."""

    REBOOT = 0x0001
    STATE = 0x0002
    SOURCE = 0x0003
    FIRMWARE_STATUS = 0x0008
    PROFILE = 0x000A
    BRIGHTNESS = 0x0101
    CONTRAST = 0x0102
    HUE = 0x0103
    SATURATION = 0x0104
    KEYFRAME_RATE = 0x0202
    COMPRESSION_QUALITY = 0x0203
    PC_GRABBER = 0xE001
    TIME_QUERY = 0xF001
    HW_GRABBER = 0xF002


class CaptureState(IntEnum):
    """Values accepted by the STATE opcode."""

    START = 2


# Picture adjustments share one payload layout: a zero word then the value.
PICTURE_OPCODES: dict[str, Opcode] = {
    "brightness": Opcode.BRIGHTNESS,
    "contrast": Opcode.CONTRAST,
    "hue": Opcode.HUE,
    "saturation": Opcode.SATURATION,
}


def _u32(*values: int) -> bytes:
    """Pack unsigned 32-bit little-endian words."""
    try:
        return struct.pack(f"<{len(values)}I", *values)
    except struct.error as e:
        raise ValueError(f"Value out of 32-bit range: {values}") from e


def build_command(
    encoder: FrameEncoder,
    opcode: Opcode,
    operation: Operation,
    payload: bytes = b"",
) -> bytes:
    """Build a single frame for an opcode."""
    return encoder.build(opcode.value, operation, payload)


def build_reboot(encoder: FrameEncoder) -> bytes:
    """Build a Reboot command."""
    return build_command(encoder, Opcode.REBOOT, Operation.SET)


def build_set_state(encoder: FrameEncoder, value: int) -> bytes:
    """Build a State command.

    Args:
        value: Device state word, e.g. ``CaptureState.START``.
    """
    return build_command(encoder, Opcode.STATE, Operation.SET, _u32(value))


def build_get_source(encoder: FrameEncoder) -> bytes:
    """Build a Source read command."""
    return build_command(
        encoder, Opcode.SOURCE, Operation.GET, blobs.GET_SOURCE_QUERY
    )


def build_set_source(encoder: FrameEncoder, audio_source: int, video_source: int) -> bytes:
    """Build a Source select command.

    Args:
        audio_source: Audio input selector.
        video_source: Video input selector.
    """
    return build_command(
        encoder, Opcode.SOURCE, Operation.SET, _u32(audio_source, video_source)
    )


def build_picture_setting(encoder: FrameEncoder, name: str, value: int) -> bytes:
    """Build a brightness/contrast/hue/saturation command by name."""
    if name not in PICTURE_OPCODES:
        raise ValueError(
            f"Unknown picture setting '{name}'. Valid: {list(PICTURE_OPCODES)}"
        )
    return build_command(
        encoder, PICTURE_OPCODES[name], Operation.SET, _u32(0, value)
    )


def build_set_brightness(encoder: FrameEncoder, brightness: int) -> bytes:
    return build_picture_setting(encoder, "brightness", brightness)


def build_set_contrast(encoder: FrameEncoder, contrast: int) -> bytes:
    return build_picture_setting(encoder, "contrast", contrast)


def build_set_hue(encoder: FrameEncoder, hue: int) -> bytes:
    return build_picture_setting(encoder, "hue", hue)


def build_set_saturation(encoder: FrameEncoder, saturation: int) -> bytes:
    return build_picture_setting(encoder, "saturation", saturation)


def build_set_keyframe_rate(encoder: FrameEncoder, stream_index: int, rate: int) -> bytes:
    """Build a video compression keyframe-rate command for one stream."""
    return build_command(
        encoder, Opcode.KEYFRAME_RATE, Operation.SET, _u32(stream_index, rate)
    )


def build_set_compression_quality(
    encoder: FrameEncoder, stream_index: int, quality: int
) -> bytes:
    """Build a video compression quality command for one stream."""
    return build_command(
        encoder,
        Opcode.COMPRESSION_QUALITY,
        Operation.SET,
        _u32(stream_index, quality),
    )


def build_get_firmware_status(encoder: FrameEncoder) -> bytes:
    """Build a Firmware status read command."""
    return build_command(encoder, Opcode.FIRMWARE_STATUS, Operation.GET)


def build_get_profile(encoder: FrameEncoder) -> bytes:
    """Build a Profile read command."""
    return build_command(encoder, Opcode.PROFILE, Operation.GET)


def build_get_pc_grabber_small(encoder: FrameEncoder) -> bytes:
    """Build the PC grabber status query used while waiting for readiness."""
    return build_command(
        encoder, Opcode.PC_GRABBER, Operation.GET, blobs.PC_GRABBER_SMALL_QUERY
    )


def build_set_pc_grabber_small(encoder: FrameEncoder, enable: bool) -> bytes:
    """Build the command that switches small PC grabber mode on or off."""
    payload = bytearray(blobs.PC_GRABBER_SMALL_SET)
    payload[blobs.PC_GRABBER_SMALL_ENABLE_OFFSET] = 1 if enable else 0
    return build_command(encoder, Opcode.PC_GRABBER, Operation.SET, bytes(payload))


def build_set_pc_grabber(encoder: FrameEncoder, index: int) -> bytes:
    """Build one step of the indexed PC grabber configuration.

    The fixed template is sent unchanged except for the 32-bit index
    field at offset 0x0c.

    Args:
        index: Capture configuration index, 0-21 during bring-up.
    """
    payload = bytearray(blobs.PC_GRABBER_INDEXED)
    offset = blobs.PC_GRABBER_INDEX_OFFSET
    payload[offset : offset + 4] = _u32(index)
    return build_command(encoder, Opcode.PC_GRABBER, Operation.SET, bytes(payload))


def build_set_pc_grabber_large(encoder: FrameEncoder) -> bytes:
    """Build the final 512-byte PC grabber configuration command."""
    return build_command(
        encoder, Opcode.PC_GRABBER, Operation.SET, blobs.PC_GRABBER_LARGE
    )


def build_time_query(encoder: FrameEncoder, timestamp_ms: int) -> bytes:
    """Build a time sync query carrying the host timestamp in milliseconds."""
    return build_command(
        encoder, Opcode.TIME_QUERY, Operation.GET, _u32(timestamp_ms & 0xFFFFFFFF)
    )


def build_get_hw_grabber(encoder: FrameEncoder) -> bytes:
    """Build a hardware grabber read command."""
    return build_command(encoder, Opcode.HW_GRABBER, Operation.GET)
