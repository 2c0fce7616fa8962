import argparse
import asyncio
import logging
from typing import Sequence

from phiaccrual.core.utils.log import setup_logging
from phiaccrual.demo.receiver import Receiver
from phiaccrual.demo.sender import Sender

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]


class AddressError(Exception):
    pass


def split_address(address: str) -> tuple[str, int]:
    """Split 'host:port' into its parts, validating the port."""
    host, sep, port = address.rpartition(":")
    if not sep or not host:
        raise AddressError(f"Address must be host:port, got {address!r}")

    try:
        value = int(port)
    except ValueError:
        raise AddressError(f"Invalid port in {address!r}") from None

    if not 0 <= value <= 65535:
        raise AddressError(f"Port out of range in {address!r}")

    return host, value


def add_log_level(parser: argparse.ArgumentParser) -> None:
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=LOG_LEVELS,
        help=(
            "Logging verbosity.\n"
            "DEBUG    → traces every phi evaluation and predicted timeout.\n"
            "INFO     → connections and keepalives (default).\n"
            "WARNING  → only abandoned connections and connect retries.\n"
        ),
    )


def parse_receiver_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="phi-receiver",
        description=(
            "Accept TCP connections and watch each one with a φ-accrual failure detector.\n\n"
            "Every byte received counts as a heartbeat. Detector tunables are read from\n"
            "PHI_RECEIVER_* environment variables."
        ),
        formatter_class=argparse.RawTextHelpFormatter
    )

    parser.add_argument(
        "listener",
        type=str,
        help=(
            "Address (host:port) to listen on.\n"
            "Example: 127.0.0.1:9000"
        ),
    )
    add_log_level(parser)

    return parser.parse_args(argv)


def parse_sender_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="phi-sender",
        description="Connect to a phi-receiver and periodically write a keepalive byte.",
        formatter_class=argparse.RawTextHelpFormatter
    )

    parser.add_argument(
        "target",
        type=str,
        help=(
            "Receiver address (host:port).\n"
            "Example: 127.0.0.1:9000"
        ),
    )

    parser.add_argument(
        "--interval",
        type=float,
        default=1.0,
        help="Seconds between two keepalives. Defaults to 1."
    )
    add_log_level(parser)

    return parser.parse_args(argv)


def receiver_entrypoint(argv: Sequence[str] | None = None) -> None:
    args = parse_receiver_args(argv)
    setup_logging(args.log_level)

    try:
        host, port = split_address(args.listener)
    except AddressError as ex:
        print(f"Error: {ex}")
        exit(1)

    asyncio.run(Receiver(host, port).serve())


def sender_entrypoint(argv: Sequence[str] | None = None) -> None:
    args = parse_sender_args(argv)
    setup_logging(args.log_level)

    try:
        split_address(args.target)
    except AddressError as ex:
        print(f"Error: {ex}")
        exit(1)

    try:
        asyncio.run(Sender(args.target, interval=args.interval).run())
    except KeyboardInterrupt:
        logging.getLogger("phiaccrual.demo.sender").info("Interrupted, stopping")
