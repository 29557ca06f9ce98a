"""One recording attempt for one stream: connect, record, split, drain."""

from __future__ import annotations

import enum
import logging
from dataclasses import dataclass
from typing import Any, Callable, Optional

from camrec.errors import ErrorKind, RecorderError
from camrec.segment_writer import SegmentWriter
from camrec.shutdown import ShutdownSignal
from camrec.targets import StreamTarget


class RecorderState(enum.Enum):
    CONNECTING = "connecting"
    STREAMING = "streaming"
    DRAINING = "draining"
    CLOSED = "closed"
    FAILED = "failed"


@dataclass
class RecordingOutcome:
    state: RecorderState
    error_kind: Optional[ErrorKind] = None
    message: str = ""
    segments_opened: int = 0
    segments_rotated: int = 0
    bytes_written: int = 0
    packets_written: int = 0

    @property
    def ok(self) -> bool:
        return self.state is RecorderState.CLOSED


class StreamRecorder:
    """
    Drives a single connection to a stream target.

    ``opener(address)`` returns a source exposing ``video_lane``,
    ``packets()`` and ``close()`` (see ``camrec.media_source``), or raises
    ``RecorderError``. ``writer_factory(address)`` returns a fresh
    ``SegmentWriter``. Every exit after a successful open passes through
    ``DRAINING``, which closes the segment file and the source.
    """

    def __init__(
        self,
        target: StreamTarget,
        shutdown: ShutdownSignal,
        *,
        opener: Callable[[str], Any],
        writer_factory: Callable[[str], SegmentWriter],
    ) -> None:
        self.target = target
        self._shutdown = shutdown
        self._opener = opener
        self._writer_factory = writer_factory
        self._log = logging.getLogger("recorder")
        self.state: Optional[RecorderState] = None
        self.transitions: list[RecorderState] = []
        self.packets_written = 0

    def _enter(self, state: RecorderState) -> None:
        self.state = state
        self.transitions.append(state)
        self._log.debug("[stream %d] -> %s", self.target.id, state.value)

    def _failed(self, error: RecorderError, writer: Optional[SegmentWriter] = None) -> RecordingOutcome:
        self._enter(RecorderState.FAILED)
        return self._outcome(RecorderState.FAILED, writer, error)

    def _outcome(
        self,
        state: RecorderState,
        writer: Optional[SegmentWriter],
        error: Optional[RecorderError] = None,
    ) -> RecordingOutcome:
        outcome = RecordingOutcome(
            state=state,
            error_kind=error.kind if error else None,
            message=error.message if error else "",
            packets_written=self.packets_written,
        )
        if writer is not None:
            outcome.segments_opened = writer.segments_opened
            outcome.segments_rotated = writer.segments_rotated
            outcome.bytes_written = writer.bytes_written
        return outcome

    def run(self) -> RecordingOutcome:
        tid = self.target.id
        address = self.target.address

        self._enter(RecorderState.CONNECTING)
        try:
            source = self._opener(address)
        except RecorderError as exc:
            return self._failed(exc)
        except Exception as exc:  # noqa: BLE001 - unexpected opener failure still ends the attempt
            self._log.exception("[stream %d] unexpected error while connecting: %r", tid, exc)
            return self._failed(RecorderError(ErrorKind.SOURCE_UNAVAILABLE, repr(exc)))

        writer = self._writer_factory(address)
        error: Optional[RecorderError] = None
        self._enter(RecorderState.STREAMING)
        try:
            path = writer.open()
            self._log.info("[stream %d] Started writing to %s", tid, path.name)
            video_lane = source.video_lane
            for packet in source.packets():
                if packet.lane == video_lane and packet.payload:
                    writer.append(packet.payload)
                    self.packets_written += 1
                if self._shutdown.is_shutdown_requested():
                    self._log.info("[stream %d] Stopping gracefully...", tid)
                    break
                # Never rotate once stopping; the new segment would stay empty.
                if packet.lane == video_lane and writer.due_for_rotation():
                    path = writer.rotate()
                    self._log.info("[stream %d] Created new file %s", tid, path.name)
        except RecorderError as exc:
            error = exc
        except Exception as exc:  # noqa: BLE001 - unexpected demux or write failure
            self._log.exception("[stream %d] unexpected error while streaming: %r", tid, exc)
            error = RecorderError(ErrorKind.STREAM_INTERRUPTED, repr(exc))
        finally:
            self._enter(RecorderState.DRAINING)
            error = self._drain(source, writer, error)

        if error is not None:
            return self._failed(error, writer)
        self._log.info("[stream %d] Finished writing to file", tid)
        self._enter(RecorderState.CLOSED)
        return self._outcome(RecorderState.CLOSED, writer)

    def _drain(
        self,
        source: Any,
        writer: SegmentWriter,
        error: Optional[RecorderError],
    ) -> Optional[RecorderError]:
        try:
            writer.close()
        except RecorderError as exc:
            if error is None:
                error = exc
            else:
                self._log.warning("[stream %d] flush failed while draining: %s", self.target.id, exc)
        try:
            source.close()
        except Exception as exc:  # noqa: BLE001 - diagnostics only
            self._log.warning("[stream %d] source close failed: %r", self.target.id, exc)
        return error


__all__ = ["RecorderState", "RecordingOutcome", "StreamRecorder"]
