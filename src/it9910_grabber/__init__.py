"""Userspace driver for the ITE IT9910 USB HDMI capture device."""

__version__ = "0.1.0"
