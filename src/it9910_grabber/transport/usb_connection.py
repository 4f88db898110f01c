"""USB bulk connection to the IT9910 capture device.

Uses ``pyusb`` + libusb. The device exposes a vendor interface 0 with a
command endpoint 0x02 (OUT), a status endpoint 0x81 (IN), and a
transport-stream endpoint 0x83 (IN).
"""

from __future__ import annotations

import errno
import logging
from dataclasses import dataclass

import usb.core
import usb.util

from ..config import CONTROL_INTERFACE, PRODUCT_ID, VENDOR_ID
from ..errors import DeviceNotFoundError, TransportFailure, TransportTimeout

logger = logging.getLogger(__name__)


@dataclass
class DeviceInfo:
    """Basic device identification from USB descriptors."""

    vendor_id: int = VENDOR_ID
    product_id: int = PRODUCT_ID
    manufacturer: str = ""
    product: str = ""
    bus: int | None = None
    address: int | None = None


def _is_timeout(error: usb.core.USBError) -> bool:
    if isinstance(error, usb.core.USBTimeoutError):
        return True
    return error.errno == errno.ETIMEDOUT


def _translate(action: str, error: usb.core.USBError):
    """Map a pyusb error onto the transport error taxonomy."""
    if _is_timeout(error):
        return TransportTimeout(f"{action} timed out", cause=error)
    return TransportFailure(f"{action} failed: {error}", cause=error)


class USBConnection:
    """Manages the USB handle to the grabber.

    Usage::

        conn = USBConnection()
        conn.open()
        conn.write_bulk(0x02, frame, timeout_ms=2000)
        response = conn.read_bulk(0x81, 0x200, timeout_ms=2000)
        conn.close()

    Every call below ``open()`` raises ``TransportTimeout`` or
    ``TransportFailure`` instead of the raw pyusb error.
    """

    def __init__(
        self,
        vendor_id: int = VENDOR_ID,
        product_id: int = PRODUCT_ID,
        interface: int = CONTROL_INTERFACE,
    ) -> None:
        self._vendor_id = vendor_id
        self._product_id = product_id
        self._interface = interface
        self._device = None
        self._claimed = False
        self._connected = False
        self._device_info = DeviceInfo(vendor_id=vendor_id, product_id=product_id)

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def device_info(self) -> DeviceInfo:
        return self._device_info

    def __enter__(self) -> USBConnection:
        self.open()
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def open(self) -> DeviceInfo:
        """Locate the device by vendor/product id and open it.

        Returns:
            DeviceInfo with USB descriptor information.

        Raises:
            DeviceNotFoundError: If no matching device is attached.
            TransportFailure: If the device is present but cannot be opened.
        """
        dev = usb.core.find(idVendor=self._vendor_id, idProduct=self._product_id)
        if dev is None:
            raise DeviceNotFoundError(
                f"No device found "
                f"({self._vendor_id:#06x}:{self._product_id:#06x})."
            )

        try:
            if dev.is_kernel_driver_active(self._interface):
                dev.detach_kernel_driver(self._interface)
        except NotImplementedError:
            # Not supported on every platform backend.
            pass
        except usb.core.USBError as e:
            raise _translate("Detaching kernel driver", e) from e

        self._device = dev
        self._connected = True
        self._device_info = DeviceInfo(
            vendor_id=self._vendor_id,
            product_id=self._product_id,
            manufacturer=self._get_string(dev.iManufacturer),
            product=self._get_string(dev.iProduct),
            bus=getattr(dev, "bus", None),
            address=getattr(dev, "address", None),
        )

        logger.info(
            "Opened %04x:%04x %s %s",
            self._vendor_id,
            self._product_id,
            self._device_info.manufacturer,
            self._device_info.product,
        )
        return self._device_info

    def _get_string(self, index: int) -> str:
        if not index:
            return ""
        try:
            return usb.util.get_string(self._device, index) or ""
        except (usb.core.USBError, ValueError) as e:
            logger.debug("Could not read string descriptor %d: %s", index, e)
            return ""

    def _require_device(self):
        if not self._connected:
            raise ConnectionError("Not connected to device")
        return self._device

    def reset(self) -> None:
        """Issue a USB port reset."""
        dev = self._require_device()
        try:
            dev.reset()
        except usb.core.USBError as e:
            raise _translate("Reset", e) from e

    def claim_interface(self, interface: int) -> None:
        dev = self._require_device()
        try:
            usb.util.claim_interface(dev, interface)
        except usb.core.USBError as e:
            raise _translate(f"Claiming interface {interface}", e) from e
        self._claimed = True

    def set_alternate_setting(self, interface: int, alt_setting: int) -> None:
        dev = self._require_device()
        try:
            dev.set_interface_altsetting(
                interface=interface, alternate_setting=alt_setting
            )
        except usb.core.USBError as e:
            raise _translate(
                f"Selecting alt setting {alt_setting} on interface {interface}", e
            ) from e

    def clear_halt(self, endpoint: int) -> None:
        dev = self._require_device()
        try:
            dev.clear_halt(endpoint)
        except usb.core.USBError as e:
            raise _translate(f"Clearing halt on {endpoint:#04x}", e) from e

    def write_bulk(self, endpoint: int, data: bytes, timeout_ms: int) -> int:
        """Write one bulk transfer.

        Returns:
            Number of bytes written.
        """
        dev = self._require_device()
        try:
            return dev.write(endpoint, data, timeout=timeout_ms)
        except usb.core.USBError as e:
            raise _translate(f"Write to {endpoint:#04x}", e) from e

    def read_bulk(self, endpoint: int, size: int, timeout_ms: int) -> bytes:
        """Read one bulk transfer of at most ``size`` bytes."""
        dev = self._require_device()
        try:
            data = dev.read(endpoint, size, timeout=timeout_ms)
        except usb.core.USBError as e:
            raise _translate(f"Read from {endpoint:#04x}", e) from e
        return bytes(data)

    def close(self) -> None:
        """Release the interface and the libusb handle."""
        if not self._connected:
            return

        try:
            if self._claimed:
                usb.util.release_interface(self._device, self._interface)
            usb.util.dispose_resources(self._device)
        except usb.core.USBError as e:
            logger.warning("Error closing device: %s", e)
        finally:
            self._device = None
            self._claimed = False
            self._connected = False
            logger.info("Disconnected")
