"""PyAV-backed network source: open an address, pick a video lane, demux packets."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Optional

import av
from av.error import FFmpegError, InvalidDataError

from camrec.errors import ErrorKind, RecorderError

DEFAULT_MAX_PACKET_ERRORS = 32


@dataclass(frozen=True)
class Packet:
    lane: int
    payload: Optional[bytes]


def build_open_options(address: str, rtsp_transport: Optional[str] = "tcp") -> Dict[str, str]:
    options: Dict[str, str] = {}
    if rtsp_transport and address.lower().startswith("rtsp"):
        options["rtsp_transport"] = rtsp_transport
    return options


def _timeout_arg(open_timeout: Optional[float], read_timeout: Optional[float]) -> Any:
    if open_timeout is None and read_timeout is None:
        return None
    return (open_timeout, read_timeout)


class AVMediaSource:
    """An opened input container plus the video lane selected for recording."""

    def __init__(
        self,
        container: Any,
        video_lane: int,
        *,
        max_packet_errors: int = DEFAULT_MAX_PACKET_ERRORS,
    ) -> None:
        self._container = container
        self.video_lane = video_lane
        self.max_packet_errors = max(1, int(max_packet_errors))
        self._closed = False
        self._log = logging.getLogger("media_source")

    def packets(self) -> Iterator[Packet]:
        """Yield demuxed packets until the source ends.

        An undecodable packet is dropped and demuxing resumes at the next one;
        a run of ``max_packet_errors`` of them, or any other FFmpeg failure,
        ends the stream with ``STREAM_INTERRUPTED``.
        """
        consecutive_errors = 0
        while True:
            try:
                for packet in self._container.demux():
                    consecutive_errors = 0
                    payload = bytes(packet) if packet.size else None
                    yield Packet(packet.stream.index, payload)
                return
            except InvalidDataError as exc:
                consecutive_errors += 1
                if consecutive_errors >= self.max_packet_errors:
                    raise RecorderError(
                        ErrorKind.STREAM_INTERRUPTED,
                        f"{consecutive_errors} consecutive invalid packets: {exc}",
                    ) from exc
                self._log.debug("skipping invalid packet: %s", exc)
            except (FFmpegError, OSError) as exc:
                raise RecorderError(ErrorKind.STREAM_INTERRUPTED, str(exc)) from exc

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._container.close()


def open_source(
    address: str,
    *,
    rtsp_transport: Optional[str] = "tcp",
    open_timeout: Optional[float] = None,
    read_timeout: Optional[float] = None,
    max_packet_errors: int = DEFAULT_MAX_PACKET_ERRORS,
) -> AVMediaSource:
    try:
        container = av.open(
            address,
            mode="r",
            options=build_open_options(address, rtsp_transport),
            timeout=_timeout_arg(open_timeout, read_timeout),
        )
    except (FFmpegError, OSError) as exc:
        raise RecorderError(ErrorKind.SOURCE_UNAVAILABLE, str(exc)) from exc

    stream = container.streams.best("video")
    if stream is None:
        container.close()
        raise RecorderError(ErrorKind.NO_VIDEO_STREAM, "No video stream found")
    return AVMediaSource(container, stream.index, max_packet_errors=max_packet_errors)


__all__ = [
    "AVMediaSource",
    "DEFAULT_MAX_PACKET_ERRORS",
    "Packet",
    "build_open_options",
    "open_source",
]
