import contextlib
import signal
import sys
import threading
from collections.abc import Callable
from types import FrameType
from typing import Generator

SHUTDOWN_SIGNALS: tuple[signal.Signals, ...] = (signal.SIGINT, signal.SIGTERM)

if sys.platform == "win32":
    SHUTDOWN_SIGNALS += (signal.SIGBREAK,)

SignalCallback = Callable[[int, FrameType | None], None]


@contextlib.contextmanager
def signal_handler(handler: SignalCallback) -> Generator[None, None, None]:
    """
    Route shutdown signals to `handler` for the duration of the block.

    Signals received meanwhile are re-raised once the previous handlers are
    restored, so an outer handler still sees them. Outside the main thread
    signals cannot be installed and the block runs unchanged.
    """
    if threading.current_thread() is not threading.main_thread():
        yield
        return

    received: list[int] = []

    def capture(sig: int, frame: FrameType | None) -> None:
        received.append(sig)
        handler(sig, frame)

    previous = {sig: signal.signal(sig, capture) for sig in SHUTDOWN_SIGNALS}
    try:
        yield
    finally:
        for sig, old in previous.items():
            signal.signal(sig, old)

        for sig in dict.fromkeys(reversed(received)):
            if callable(previous[sig]) and previous[sig] is not signal.default_int_handler:
                signal.raise_signal(sig)
