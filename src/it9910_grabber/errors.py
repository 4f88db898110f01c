"""Exception hierarchy for the grabber."""

from __future__ import annotations


class GrabberError(Exception):
    """Base class for all grabber errors."""


class DeviceNotFoundError(GrabberError, ConnectionError):
    """No device with the expected vendor/product id is attached."""


class DeviceNotReadyError(GrabberError):
    """The PC grabber never reported ready within the allowed attempts."""


class TransportError(GrabberError):
    """A USB transfer or control request failed.

    The underlying library exception is kept on ``cause``.
    """

    def __init__(self, message: str, cause: BaseException | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class TransportTimeout(TransportError):
    """A transfer did not complete before its timeout."""


class TransportFailure(TransportError):
    """Any transfer error other than a timeout."""
