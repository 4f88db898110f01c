"""Shared fixtures: a scripted in-memory stand-in for the USB connection."""

from __future__ import annotations

from collections import deque

import pytest

from it9910_grabber.protocol.commands import Opcode
from it9910_grabber.protocol.framing import HEADER_SIZE, Operation, parse_header

EMPTY_RESPONSE = bytes(HEADER_SIZE)


def ready_response(flag: int = 1) -> bytes:
    """A 28-byte PC grabber status response with the ready byte set."""
    data = bytearray(0x1C)
    data[0x18] = flag
    return bytes(data)


class FakeTransport:
    """Records every call and answers from scripted queues.

    ``status`` holds responses for the 0x81 endpoint; when it runs dry,
    PC grabber status queries get a ready response and everything else an
    empty header. ``stream`` holds bytes or exceptions for 0x83.
    """

    def __init__(self) -> None:
        self.calls: list[tuple] = []
        self.writes: list[bytes] = []
        self.status: deque = deque()
        self.stream: deque = deque()
        self.lock = None
        self.lock_held_on_write: list[bool] = []
        self.opened = False
        self.closed = False

    def open(self):
        self.opened = True

    def close(self) -> None:
        self.closed = True

    def reset(self) -> None:
        self.calls.append(("reset",))

    def claim_interface(self, interface: int) -> None:
        self.calls.append(("claim_interface", interface))

    def set_alternate_setting(self, interface: int, alt_setting: int) -> None:
        self.calls.append(("set_alternate_setting", interface, alt_setting))

    def clear_halt(self, endpoint: int) -> None:
        self.calls.append(("clear_halt", endpoint))

    def write_bulk(self, endpoint: int, data: bytes, timeout_ms: int) -> int:
        self.calls.append(("write_bulk", endpoint, timeout_ms))
        if self.lock is not None:
            self.lock_held_on_write.append(self.lock.locked())
        self.writes.append(bytes(data))
        return len(data)

    def read_bulk(self, endpoint: int, size: int, timeout_ms: int) -> bytes:
        self.calls.append(("read_bulk", endpoint, size, timeout_ms))
        if endpoint == 0x83:
            item = self.stream.popleft()
            if isinstance(item, BaseException):
                raise item
            return item
        if self.status:
            item = self.status.popleft()
            if isinstance(item, BaseException):
                raise item
            return item
        return self._default_status()

    def _default_status(self) -> bytes:
        header = parse_header(self.writes[-1]) if self.writes else None
        if (
            header is not None
            and header.opcode == Opcode.PC_GRABBER
            and header.operation == Operation.GET
        ):
            return ready_response()
        return EMPTY_RESPONSE

    def written_headers(self):
        return [parse_header(frame) for frame in self.writes]


@pytest.fixture
def transport() -> FakeTransport:
    return FakeTransport()
