"""Shared fakes for the recorder tests: a scripted source and a manual clock."""

from __future__ import annotations

import time
from datetime import datetime, timedelta

import pytest

from camrec.media_source import Packet
from camrec.segment_writer import SegmentWriter
from camrec.shutdown import ShutdownSignal

VIDEO = 0
AUDIO = 1


class FakeClock:
    def __init__(self, start: float = 0.0) -> None:
        self.t = start
        self.base = datetime(2024, 5, 1, 12, 0, 0)

    def __call__(self) -> float:
        return self.t

    def advance(self, seconds: float) -> None:
        self.t += seconds

    def now(self) -> datetime:
        return self.base + timedelta(seconds=self.t)


class FakeSource:
    """Replays a packet script; ``error`` is raised once the script runs out."""

    def __init__(self, packets, *, video_lane=VIDEO, error=None, before_packet=None):
        self._packets = list(packets)
        self.video_lane = video_lane
        self._error = error
        self._before_packet = before_packet
        self.closed = False
        self.yielded = 0

    def packets(self):
        for packet in self._packets:
            if self._before_packet is not None:
                self._before_packet(self.yielded)
            self.yielded += 1
            yield packet
        if self._error is not None:
            raise self._error

    def close(self):
        self.closed = True


class RecordingShutdown(ShutdownSignal):
    """Shutdown signal that records backoff waits instead of sleeping."""

    def __init__(self) -> None:
        super().__init__()
        self.waits: list[float] = []

    def wait(self, timeout=None):
        self.waits.append(timeout)
        return self.is_shutdown_requested()


def video_packets(count: int, payload: bytes = b"v") -> list[Packet]:
    return [Packet(VIDEO, payload) for _ in range(count)]


def wait_until(predicate, timeout: float = 5.0, interval: float = 0.01) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(interval)
    return predicate()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def writer_factory(tmp_path, clock):
    def factory(address: str) -> SegmentWriter:
        return SegmentWriter(address, tmp_path / "video", clock=clock, now=clock.now)

    return factory
