"""Response classification for the status endpoint."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum

from .framing import HEADER_SIZE

logger = logging.getLogger(__name__)

READY_RESPONSE_SIZE = 0x1C
READY_FLAG_OFFSET = 0x18


class ResponseKind(Enum):
    """How much of a response frame arrived."""

    TOO_SHORT = "too_short"
    EMPTY = "empty"
    WITH_PAYLOAD = "with_payload"


@dataclass
class Response:
    """A classified response frame."""

    kind: ResponseKind
    raw: bytes
    payload: bytes = b""

    def __repr__(self) -> str:
        return (
            f"Response(kind={self.kind.name}, length={len(self.raw)}, "
            f"payload={self.payload.hex(' ') if self.payload else '(empty)'})"
        )


def classify(data: bytes) -> Response:
    """Classify a response as too short, header-only, or payload-bearing."""
    data = bytes(data)
    if len(data) < HEADER_SIZE:
        return Response(kind=ResponseKind.TOO_SHORT, raw=data)
    if len(data) == HEADER_SIZE:
        return Response(kind=ResponseKind.EMPTY, raw=data)
    return Response(
        kind=ResponseKind.WITH_PAYLOAD,
        raw=data,
        payload=data[HEADER_SIZE:],
    )


def is_ready(data: bytes) -> bool:
    """Return True if a PC grabber status response reports ready.

    The device answers with exactly 28 bytes once the grabber is up, and
    sets the byte at offset 0x18 to 1.
    """
    return len(data) == READY_RESPONSE_SIZE and data[READY_FLAG_OFFSET] == 1


def describe(label: str, data: bytes) -> str:
    """Render a one-line diagnostic for a response."""
    response = classify(data)
    if response.kind is ResponseKind.TOO_SHORT:
        return f"{label}: short response ({len(response.raw)} bytes)"
    if response.kind is ResponseKind.EMPTY:
        return f"{label}: no data"
    return f"{label}: {response.payload.hex(' ')}"


def log_response(label: str, data: bytes, log: logging.Logger | None = None) -> Response:
    """Log a classified response and return the classification.

    Short responses are logged as warnings. Nothing here retries.
    """
    log = log or logger
    response = classify(data)
    if response.kind is ResponseKind.TOO_SHORT:
        log.warning("%s", describe(label, data))
    else:
        log.info("%s", describe(label, data))
    return response
