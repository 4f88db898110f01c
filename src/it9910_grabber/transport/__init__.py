"""Transport layer: pyusb-backed bulk connection."""

from .usb_connection import DeviceInfo, USBConnection
