"""Error taxonomy shared by the recorder, its media source and segment writer."""

from __future__ import annotations

import enum


class ErrorKind(enum.Enum):
    SOURCE_UNAVAILABLE = "source_unavailable"
    NO_VIDEO_STREAM = "no_video_stream"
    STREAM_INTERRUPTED = "stream_interrupted"
    IO_FAILURE = "io_failure"


class RecorderError(RuntimeError):
    """Raised when one recording attempt cannot continue.

    The kind is what the supervisor reports; the message keeps whatever
    diagnostic the failing layer (FFmpeg, the filesystem) produced.
    """

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __str__(self) -> str:
        return f"{self.kind.value}: {self.message}"


__all__ = ["ErrorKind", "RecorderError"]
