"""Fixed-delay retry loop wrapped around a stream recorder."""

from __future__ import annotations

import logging
import time
from typing import Any, Callable, Dict, Optional

from camrec.recorder import RecorderState, RecordingOutcome, StreamRecorder
from camrec.shutdown import ShutdownSignal
from camrec.targets import StreamTarget

DEFAULT_RETRY_DELAY = 5.0


class RetrySupervisor:
    """
    Keep one stream recording until shutdown.

    Each attempt gets a brand new recorder. Between attempts the supervisor
    waits ``retry_delay`` seconds on the shutdown signal, so a stop request
    ends the wait immediately. Retries never give up on their own.
    """

    def __init__(
        self,
        target: StreamTarget,
        shutdown: ShutdownSignal,
        recorder_factory: Callable[[StreamTarget, ShutdownSignal], StreamRecorder],
        *,
        retry_delay: float = DEFAULT_RETRY_DELAY,
    ) -> None:
        self.target = target
        self._shutdown = shutdown
        self._recorder_factory = recorder_factory
        self.retry_delay = max(0.0, float(retry_delay))
        self._log = logging.getLogger("supervisor")

        self.attempts = 0
        self.failures = 0
        self.total_segments = 0
        self.total_bytes = 0
        self.last_outcome: Optional[RecordingOutcome] = None
        self.last_attempt_started: Optional[float] = None
        self.running = False

    def _run_attempt(self) -> RecordingOutcome:
        try:
            recorder = self._recorder_factory(self.target, self._shutdown)
            return recorder.run()
        except Exception as exc:  # noqa: BLE001 - a bug in one attempt must not end the stream
            # Recorders classify their own failures; only bugs land here.
            self._log.exception("[stream %d] unexpected recorder error: %r", self.target.id, exc)
            return RecordingOutcome(state=RecorderState.FAILED, message=repr(exc))

    def _report(self, outcome: RecordingOutcome) -> None:
        tid = self.target.id
        address = self.target.address
        if outcome.ok:
            self._log.info("[stream %d] Ended for %s", tid, address)
            return
        kind = outcome.error_kind.value if outcome.error_kind else "unknown"
        self._log.error("[stream %d] Error processing %s: %s: %s", tid, address, kind, outcome.message)

    def run(self) -> None:
        tid = self.target.id
        self.running = True
        self._log.info("[stream %d] Starting: %s", tid, self.target.address)
        try:
            while not self._shutdown.is_shutdown_requested():
                self.attempts += 1
                self.last_attempt_started = time.time()
                outcome = self._run_attempt()
                self.last_outcome = outcome
                self.total_segments += outcome.segments_opened
                self.total_bytes += outcome.bytes_written
                if not outcome.ok:
                    self.failures += 1
                self._report(outcome)

                if self._shutdown.is_shutdown_requested():
                    break
                self._log.info(
                    "[stream %d] Retrying %s in %g seconds...", tid, self.target.address, self.retry_delay
                )
                self._shutdown.wait(self.retry_delay)
        finally:
            self.running = False
        self._log.info("[stream %d] Stopped: %s", tid, self.target.address)

    def snapshot(self) -> Dict[str, Any]:
        outcome = self.last_outcome
        return {
            "id": self.target.id,
            "address": self.target.address,
            "running": self.running,
            "attempts": self.attempts,
            "failures": self.failures,
            "segments": self.total_segments,
            "bytes_written": self.total_bytes,
            "last_state": outcome.state.value if outcome else None,
            "last_error": outcome.error_kind.value if outcome and outcome.error_kind else None,
            "last_message": outcome.message if outcome else "",
            "last_attempt_started": self.last_attempt_started,
        }


__all__ = ["DEFAULT_RETRY_DELAY", "RetrySupervisor"]
