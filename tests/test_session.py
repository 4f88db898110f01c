"""Tests for the bring-up sequence."""

from __future__ import annotations

import struct
import threading
import time

import pytest

from it9910_grabber.config import GrabberConfig
from it9910_grabber.errors import DeviceNotReadyError, TransportFailure, TransportTimeout
from it9910_grabber.keepalive import KeepAlive
from it9910_grabber.protocol import blobs
from it9910_grabber.protocol.commands import Opcode
from it9910_grabber.protocol.framing import HEADER_SIZE, parse_header
from it9910_grabber.session import BringUpState, DeviceSession


def _status(flag: int, length: int = 0x1C) -> bytes:
    data = bytearray(length)
    if length > 0x18:
        data[0x18] = flag
    return bytes(data)


class SleepRecorder:
    def __init__(self) -> None:
        self.calls: list[float] = []

    def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)


def _session(transport, config=None, sleep=None) -> DeviceSession:
    session = DeviceSession(transport, config, sleep=sleep or SleepRecorder())
    transport.lock = session.lock
    return session


def _pc_grabber_indices(transport) -> list[int]:
    indices = []
    for frame in transport.writes:
        payload = frame[HEADER_SIZE:]
        header = parse_header(frame)
        if header.opcode == Opcode.PC_GRABBER and len(payload) == 0x3C:
            indices.append(struct.unpack_from("<I", payload, 0x0C)[0])
    return indices


def test_reset_and_claim_order(transport):
    session = _session(transport)
    session.reset_and_claim()
    assert transport.calls == [
        ("reset",),
        ("claim_interface", 0),
        ("set_alternate_setting", 0, 0),
        ("clear_halt", 0x81),
        ("clear_halt", 0x83),
    ]
    assert session.state is BringUpState.CLAIMED


def test_full_bring_up_command_order(transport):
    """Profile, source, grabber off/on, one poll, 22 configs, state, large block."""
    session = _session(transport)
    session.bring_up()

    headers = transport.written_headers()
    opcodes = [h.opcode for h in headers]
    operations = [h.operation for h in headers]
    assert opcodes == (
        [Opcode.PROFILE, Opcode.SOURCE]
        + [Opcode.PC_GRABBER] * 3
        + [Opcode.PC_GRABBER] * 22
        + [Opcode.STATE, Opcode.PC_GRABBER]
    )
    assert operations[:5] == [1, 1, 2, 2, 1]
    assert all(op == 2 for op in operations[5:])
    assert transport.writes[2][HEADER_SIZE + 8] == 0
    assert transport.writes[3][HEADER_SIZE + 8] == 1
    assert transport.writes[-1][HEADER_SIZE:] == blobs.PC_GRABBER_LARGE
    assert session.state is BringUpState.STREAMING_READY


def test_sequence_numbers_follow_command_order(transport):
    session = _session(transport)
    session.bring_up()
    sequences = [h.sequence for h in transport.written_headers()]
    assert sequences == list(range(len(sequences)))


def test_every_write_is_followed_by_status_read(transport):
    session = _session(transport)
    session.bring_up()
    transfers = [c for c in transport.calls if c[0] in ("write_bulk", "read_bulk")]
    assert len(transfers) == 2 * len(transport.writes)
    for write, read in zip(transfers[::2], transfers[1::2]):
        assert write == ("write_bulk", 0x02, 2000)
        assert read == ("read_bulk", 0x81, 0x200, 2000)


def test_exchange_holds_lock_during_write(transport):
    session = _session(transport)
    session.bring_up()
    assert transport.lock_held_on_write
    assert all(transport.lock_held_on_write)
    assert not session.lock.locked()


def test_indexed_configuration_sends_every_index_in_order(transport):
    session = _session(transport)
    session.push_indexed_configuration()
    assert _pc_grabber_indices(transport) == list(range(22))
    template = blobs.PC_GRABBER_INDEXED
    for frame in transport.writes:
        payload = frame[HEADER_SIZE:]
        assert payload[:0x0C] == template[:0x0C]
        assert payload[0x10:] == template[0x10:]
    assert session.state is BringUpState.CONFIGURED


def test_ready_on_first_poll_does_not_sleep(transport):
    sleep = SleepRecorder()
    session = _session(transport, sleep=sleep)
    transport.status.append(_status(1))
    assert session.wait_until_ready() == 1
    assert sleep.calls == []
    assert len(transport.writes) == 1


def test_polls_until_ready(transport):
    sleep = SleepRecorder()
    session = _session(transport, sleep=sleep)
    transport.status.extend([_status(0), _status(1, length=0x20), _status(1)])
    assert session.wait_until_ready() == 3
    assert sleep.calls == [1.0, 1.0]
    assert session.state is BringUpState.READY


def test_poll_limit_raises(transport):
    config = GrabberConfig(max_poll_attempts=3)
    sleep = SleepRecorder()
    session = _session(transport, config, sleep=sleep)
    transport.status.extend([_status(0)] * 5)
    with pytest.raises(DeviceNotReadyError):
        session.wait_until_ready()
    assert session.poll_attempts == 3
    assert len(sleep.calls) == 2


def test_bring_up_aborts_on_transport_failure(transport):
    """A failed read after the source query stops everything."""
    session = _session(transport)
    transport.status.extend([bytes(16), TransportFailure("pipe error")])
    with pytest.raises(TransportFailure):
        session.bring_up()
    assert session.state is BringUpState.FAILED
    assert len(transport.writes) == 2


def test_bring_up_timeout_is_fatal(transport):
    session = _session(transport)
    transport.status.append(TransportTimeout("timed out"))
    with pytest.raises(TransportTimeout):
        session.bring_up()
    assert session.state is BringUpState.FAILED
    assert len(transport.writes) == 1


def test_poll_transport_error_propagates(transport):
    sleep = SleepRecorder()
    session = _session(transport, sleep=sleep)
    transport.status.extend([_status(0), TransportFailure("gone")])
    with pytest.raises(TransportFailure):
        session.wait_until_ready()
    assert sleep.calls == [1.0]


def test_picture_settings_sent_between_grabber_off_and_on(transport):
    config = GrabberConfig(brightness=0, contrast=100)
    session = _session(transport, config)
    session.bring_up()
    opcodes = [h.opcode for h in transport.written_headers()]
    assert opcodes[2:6] == [
        Opcode.PC_GRABBER,
        Opcode.BRIGHTNESS,
        Opcode.CONTRAST,
        Opcode.PC_GRABBER,
    ]


def test_no_picture_settings_by_default(transport):
    session = _session(transport)
    session.bring_up()
    opcodes = {h.opcode for h in transport.written_headers()}
    assert Opcode.BRIGHTNESS not in opcodes


def test_response_logged_with_label(transport, caplog):
    session = _session(transport)
    transport.status.append(bytes(16) + b"\x07")
    with caplog.at_level("INFO"):
        session.query_profile()
    assert "Profile: 07" in caplog.text


def test_read_stream_uses_stream_endpoint(transport):
    session = _session(transport)
    transport.stream.append(b"\x47" * 188)
    assert session.read_stream(0x4000, 1000) == b"\x47" * 188
    assert transport.calls[-1] == ("read_bulk", 0x83, 0x4000, 1000)


class ThreadRecordingTransport:
    """Records which thread issued each command transfer."""

    def __init__(self, inner) -> None:
        self.inner = inner
        self.transfers: list[tuple[str, str]] = []

    def __getattr__(self, name):
        return getattr(self.inner, name)

    def write_bulk(self, endpoint: int, data: bytes, timeout_ms: int) -> int:
        self.transfers.append(("write", threading.current_thread().name))
        time.sleep(0.001)
        return self.inner.write_bulk(endpoint, data, timeout_ms)

    def read_bulk(self, endpoint: int, size: int, timeout_ms: int) -> bytes:
        if endpoint == 0x81:
            self.transfers.append(("read", threading.current_thread().name))
        time.sleep(0.001)
        return self.inner.read_bulk(endpoint, size, timeout_ms)


def test_keepalive_never_splits_a_bring_up_exchange(transport):
    """Each write is answered by a read on the same thread before any other write."""
    recording = ThreadRecordingTransport(transport)
    session = DeviceSession(recording, sleep=SleepRecorder())
    keepalive = KeepAlive(session, interval=0.001)

    keepalive.start()
    try:
        session.bring_up()
    finally:
        keepalive.stop()

    transfers = recording.transfers
    assert keepalive.sent >= 1
    assert len(transfers) % 2 == 0
    for (kind_a, thread_a), (kind_b, thread_b) in zip(transfers[::2], transfers[1::2]):
        assert (kind_a, kind_b) == ("write", "read")
        assert thread_a == thread_b
    threads = {thread for _, thread in transfers}
    assert threads == {threading.current_thread().name, "it9910-keepalive"}
    assert session.state is BringUpState.STREAMING_READY
