"""Process-wide stop flag and the triggers that set it."""

from __future__ import annotations

import logging
import signal
import sys
import threading
from typing import Optional, TextIO

QUIT_TOKEN = "q"


class ShutdownSignal:
    """One-way stop flag shared by every supervisor and recorder.

    Once requested it stays set; there is no reset.
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    def request_shutdown(self) -> None:
        self._event.set()

    def is_shutdown_requested(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until shutdown is requested or ``timeout`` elapses."""
        return self._event.wait(timeout)


class ControlChannelListener(threading.Thread):
    """Read control lines from a text stream and stop on ``q``.

    Any other line is ignored. EOF ends the listener without requesting
    shutdown, so a detached stdin (e.g. under systemd) leaves signals as the
    only trigger.
    """

    def __init__(self, shutdown: ShutdownSignal, stream: Optional[TextIO] = None) -> None:
        super().__init__(name="control", daemon=True)
        self._shutdown = shutdown
        self._stream = stream
        self._log = logging.getLogger("control")

    def run(self) -> None:
        stream = self._stream if self._stream is not None else sys.stdin
        for line in stream:
            if line.strip() == QUIT_TOKEN:
                self._log.info("quit requested from control channel")
                self._shutdown.request_shutdown()
                return
            if self._shutdown.is_shutdown_requested():
                return
        self._log.debug("control channel closed; no longer listening")


def install_signal_handlers(shutdown: ShutdownSignal) -> None:
    """Route SIGINT/SIGTERM to ``shutdown``. Must run on the main thread."""
    log = logging.getLogger("control")

    def handle_signal(signum, frame):  # noqa
        log.info("received signal %s, shutting down...", signum)
        shutdown.request_shutdown()

    signal.signal(signal.SIGINT, handle_signal)
    signal.signal(signal.SIGTERM, handle_signal)


__all__ = [
    "QUIT_TOKEN",
    "ControlChannelListener",
    "ShutdownSignal",
    "install_signal_handlers",
]
