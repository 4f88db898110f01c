"""Command frame encoder for the IT9910 bulk control endpoint.

Frame layout::

    +--------+---------+--------+-------+-----------+----------+-------+---------+
    | Length | Reserved| Opcode | Magic | Operation | Sequence | Magic | Payload |
    | 2 bytes| 2 bytes | 2 bytes| 10 99 |  4 bytes  |  2 bytes | 10 99 | n bytes |
    +--------+---------+--------+-------+-----------+----------+-------+---------+

- Length: little-endian, 16 + payload length
- Opcode: little-endian feature/register selector
- Operation: little-endian, GET = 1, SET = 2
- Sequence: little-endian 16-bit counter, one step per frame built
- All multi-byte fields are little-endian
"""

from __future__ import annotations

import struct
import threading
from dataclasses import dataclass
from enum import IntEnum

HEADER_SIZE = 0x10
MAX_FRAME_SIZE = 0xFFFF
MAX_PAYLOAD = MAX_FRAME_SIZE - HEADER_SIZE  # 65519
MAGIC = b"\x10\x99"
SEQUENCE_MODULUS = 0x10000

# length, reserved, opcode, magic, operation, sequence, magic
_HEADER = struct.Struct("<HHH2sIH2s")


class Operation(IntEnum):
    """Command operation kinds."""

    GET = 1
    SET = 2


@dataclass
class FrameHeader:
    """Decoded fixed header of a command or response frame."""

    length: int
    opcode: int
    operation: int
    sequence: int

    def __repr__(self) -> str:
        return (
            f"FrameHeader(length={self.length}, opcode=0x{self.opcode:04X}, "
            f"operation={self.operation}, sequence={self.sequence})"
        )


class FrameEncoder:
    """Builds outbound command frames and owns the sequence counter.

    One encoder belongs to one device session. The counter is guarded by a
    lock so a background emitter can share the encoder with the main flow.

    Usage::

        encoder = FrameEncoder()
        frame = encoder.build(0x000A, Operation.GET)
    """

    def __init__(self, start_sequence: int = 0) -> None:
        if not 0 <= start_sequence < SEQUENCE_MODULUS:
            raise ValueError(
                f"Sequence must be 0-{SEQUENCE_MODULUS - 1}, got {start_sequence}"
            )
        self._sequence = start_sequence
        self._lock = threading.Lock()

    @property
    def next_sequence(self) -> int:
        """Sequence number the next built frame will carry."""
        with self._lock:
            return self._sequence

    def _take_sequence(self) -> int:
        with self._lock:
            sequence = self._sequence
            self._sequence = (sequence + 1) % SEQUENCE_MODULUS
            return sequence

    def build(
        self,
        opcode: int,
        operation: Operation | int,
        payload: bytes = b"",
    ) -> bytes:
        """Build one command frame.

        Args:
            opcode: 16-bit feature selector.
            operation: ``Operation.GET`` or ``Operation.SET``.
            payload: Opcode-specific payload, copied verbatim after the header.

        Returns:
            The complete frame, ``16 + len(payload)`` bytes long.

        Raises:
            ValueError: If the opcode does not fit 16 bits, the operation is
                unknown, or the payload would overflow the length field.
                The sequence counter is left untouched in that case.
        """
        if not 0 <= opcode <= 0xFFFF:
            raise ValueError(f"Opcode must be 0x0000-0xFFFF, got {opcode:#x}")
        operation = Operation(operation)
        payload = bytes(payload)
        if len(payload) > MAX_PAYLOAD:
            raise ValueError(
                f"Payload must be at most {MAX_PAYLOAD} bytes, got {len(payload)}"
            )

        header = _HEADER.pack(
            HEADER_SIZE + len(payload),
            0,
            opcode,
            MAGIC,
            operation.value,
            self._take_sequence(),
            MAGIC,
        )
        return header + payload


def parse_header(data: bytes) -> FrameHeader | None:
    """Decode the fixed 16-byte header of a frame.

    Returns:
        A ``FrameHeader``, or ``None`` if the data is shorter than a header
        or either magic pair is wrong.
    """
    if len(data) < HEADER_SIZE:
        return None

    length, _, opcode, magic_a, operation, sequence, magic_b = _HEADER.unpack_from(
        data
    )
    if magic_a != MAGIC or magic_b != MAGIC:
        return None

    return FrameHeader(
        length=length,
        opcode=opcode,
        operation=operation,
        sequence=sequence,
    )
