"""Time-bounded segment files for one stream."""

from __future__ import annotations

import contextlib
import os
import re
import time
from datetime import datetime
from pathlib import Path
from typing import BinaryIO, Callable, Optional

from camrec.errors import ErrorKind, RecorderError

DEFAULT_SEGMENT_SECONDS = 300
DEFAULT_EXTENSION = "mp4"
TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"

UNSAFE_ADDRESS_PATTERN = re.compile(r"[/\\:]")


def sanitize_address(address: str) -> str:
    """Make a stream address usable as a single path component."""
    return UNSAFE_ADDRESS_PATTERN.sub("_", address)


def segment_filename(address: str, when: datetime, extension: str = DEFAULT_EXTENSION) -> str:
    return f"{sanitize_address(address)}_{when.strftime(TIMESTAMP_FORMAT)}.{extension}"


class SegmentWriter:
    """
    Owns the single open output file of a stream.

    Payload bytes are written verbatim in arrival order. ``rotate()`` flushes
    and closes the current file before the next one is created, so at most one
    file is ever open. Names come from the address and the local wall-clock
    time of creation; elapsed time is measured on a monotonic clock.
    """

    def __init__(
        self,
        address: str,
        output_dir: str | os.PathLike[str],
        *,
        segment_seconds: float = DEFAULT_SEGMENT_SECONDS,
        extension: str = DEFAULT_EXTENSION,
        clock: Callable[[], float] = time.monotonic,
        now: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.address = address
        self.output_dir = Path(output_dir)
        self.segment_seconds = float(segment_seconds)
        self.extension = extension
        self._clock = clock
        self._now = now

        self._file: Optional[BinaryIO] = None
        self._opened_at = 0.0
        self.current_path: Optional[Path] = None
        self.segments_opened = 0
        self.segments_rotated = 0
        self.bytes_written = 0

    @property
    def is_open(self) -> bool:
        return self._file is not None

    def elapsed(self) -> float:
        if self._file is None:
            return 0.0
        return self._clock() - self._opened_at

    def open(self) -> Path:
        if self._file is not None:
            raise RuntimeError(f"segment already open: {self.current_path}")
        path = self.output_dir / segment_filename(self.address, self._now(), self.extension)
        try:
            self.output_dir.mkdir(parents=True, exist_ok=True)
            self._file = path.open("wb")
        except OSError as exc:
            raise RecorderError(
                ErrorKind.IO_FAILURE, f"failed to create output file {path}: {exc}"
            ) from exc
        self.current_path = path
        self._opened_at = self._clock()
        self.segments_opened += 1
        return path

    def append(self, data: bytes) -> None:
        if self._file is None:
            raise RuntimeError("append() called with no open segment")
        try:
            self._file.write(data)
        except OSError as exc:
            raise RecorderError(
                ErrorKind.IO_FAILURE, f"failed to write packet data: {exc}"
            ) from exc
        self.bytes_written += len(data)

    def due_for_rotation(self) -> bool:
        return self._file is not None and self.elapsed() >= self.segment_seconds

    def rotate(self) -> Path:
        self.close()
        path = self.open()
        self.segments_rotated += 1
        return path

    def close(self) -> None:
        """Flush and close the current file. Safe to call when nothing is open."""
        handle = self._file
        if handle is None:
            return
        self._file = None
        try:
            handle.flush()
        except OSError as exc:
            with contextlib.suppress(OSError):
                handle.close()
            raise RecorderError(
                ErrorKind.IO_FAILURE, f"failed to flush {self.current_path}: {exc}"
            ) from exc
        try:
            handle.close()
        except OSError as exc:
            raise RecorderError(
                ErrorKind.IO_FAILURE, f"failed to close {self.current_path}: {exc}"
            ) from exc


__all__ = [
    "DEFAULT_EXTENSION",
    "DEFAULT_SEGMENT_SECONDS",
    "SegmentWriter",
    "sanitize_address",
    "segment_filename",
]
