"""Command-line entry point.

Brings the grabber up and writes the captured transport stream to stdout
(or a file). Diagnostics go to stderr.

Exit status:
    0  capture stopped cleanly (output closed or interrupted)
    1  no device found
    2  bring-up failed
    3  capture ended on a transport failure
    4  output file could not be opened
"""

from __future__ import annotations

import argparse
import logging
import sys
from typing import BinaryIO, Sequence

from . import __version__
from .capture import CaptureRelay
from .config import GrabberConfig, PRODUCT_ID, VENDOR_ID
from .errors import DeviceNotFoundError, DeviceNotReadyError, TransportError
from .keepalive import KeepAlive
from .session import DeviceSession
from .transport.usb_connection import USBConnection

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_NOT_FOUND = 1
EXIT_BRING_UP_FAILED = 2
EXIT_CAPTURE_FAILED = 3
EXIT_OUTPUT_FAILED = 4


def _int_auto(value: str) -> int:
    """Parse decimal or 0x-prefixed hex."""
    try:
        return int(value, 0)
    except ValueError as e:
        raise argparse.ArgumentTypeError(f"not an integer: {value!r}") from e


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="it9910-grabber",
        description="Capture the transport stream from an IT9910 USB grabber.",
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--vendor-id", type=_int_auto, default=VENDOR_ID)
    parser.add_argument("--product-id", type=_int_auto, default=PRODUCT_ID)
    parser.add_argument(
        "-o",
        "--output",
        default="-",
        help="file to write the transport stream to ('-' for stdout)",
    )
    parser.add_argument(
        "--keepalive",
        type=float,
        metavar="SECONDS",
        help="send a time query every SECONDS while capturing",
    )
    parser.add_argument(
        "--max-poll-attempts",
        type=int,
        metavar="N",
        help="give up if the grabber is not ready after N status queries "
        "(default: wait forever)",
    )
    for name in ("brightness", "contrast", "hue", "saturation"):
        parser.add_argument(f"--{name}", type=int, help=f"set {name} before capture")

    verbosity = parser.add_mutually_exclusive_group()
    verbosity.add_argument("-v", "--verbose", action="store_true")
    verbosity.add_argument("-q", "--quiet", action="store_true")
    return parser


def config_from_args(args: argparse.Namespace) -> GrabberConfig:
    return GrabberConfig(
        vendor_id=args.vendor_id,
        product_id=args.product_id,
        max_poll_attempts=args.max_poll_attempts,
        keepalive_interval=args.keepalive,
        brightness=args.brightness,
        contrast=args.contrast,
        hue=args.hue,
        saturation=args.saturation,
    )


def setup_logging(verbose: bool = False, quiet: bool = False) -> None:
    level = logging.INFO
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    logging.basicConfig(
        level=level,
        stream=sys.stderr,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def run_capture(config: GrabberConfig, sink: BinaryIO) -> int:
    """Open the device, bring it up, and relay the stream into ``sink``."""
    conn = USBConnection(vendor_id=config.vendor_id, product_id=config.product_id)
    try:
        conn.open()
    except DeviceNotFoundError as e:
        logger.error("%s", e)
        return EXIT_NOT_FOUND
    except TransportError as e:
        logger.error("Could not open device: %s", e)
        return EXIT_BRING_UP_FAILED

    session = DeviceSession(conn, config)
    keepalive = None
    try:
        try:
            session.bring_up()
        except (TransportError, DeviceNotReadyError) as e:
            logger.error("Bring-up failed: %s", e)
            return EXIT_BRING_UP_FAILED

        if config.keepalive_interval:
            keepalive = KeepAlive(session, interval=config.keepalive_interval)
            keepalive.start()

        stats = CaptureRelay(session, sink).run()
        if stats.error is not None:
            return EXIT_CAPTURE_FAILED
        return EXIT_OK
    except KeyboardInterrupt:
        logger.info("Interrupted")
        return EXIT_OK
    finally:
        # The emitter finishes its in-flight exchange before the handle goes.
        if keepalive is not None:
            keepalive.stop()
        with session.lock:
            conn.close()


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose, args.quiet)
    config = config_from_args(args)

    if args.output == "-":
        return run_capture(config, sys.stdout.buffer)
    try:
        sink = open(args.output, "wb")
    except OSError as e:
        logger.error("Cannot open output %s: %s", args.output, e)
        return EXIT_OUTPUT_FAILED
    with sink:
        return run_capture(config, sink)


if __name__ == "__main__":
    sys.exit(main())
