"""Runs one retry supervisor thread per stream target."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Dict, Iterable, List, Optional

from camrec.shutdown import ShutdownSignal
from camrec.supervisor import RetrySupervisor
from camrec.targets import StreamTarget


class StreamPool:
    """
    Owns the configured targets and their supervisors.

    Streams share nothing but the shutdown signal, so a failing stream never
    slows down the others. Duplicate addresses are recorded independently.
    """

    def __init__(
        self,
        targets: Iterable[StreamTarget],
        shutdown: ShutdownSignal,
        supervisor_factory: Callable[[StreamTarget, ShutdownSignal], RetrySupervisor],
    ) -> None:
        self.targets: List[StreamTarget] = list(targets)
        self._shutdown = shutdown
        self.supervisors: List[RetrySupervisor] = [
            supervisor_factory(target, shutdown) for target in self.targets
        ]
        self._threads: List[threading.Thread] = []
        self._log = logging.getLogger("pool")

    def start(self) -> None:
        if self._threads:
            return
        for supervisor in self.supervisors:
            thread = threading.Thread(
                target=supervisor.run,
                name=f"stream-{supervisor.target.id}",
                daemon=True,
            )
            self._threads.append(thread)
            thread.start()
        self._log.info("started %d stream supervisor(s)", len(self._threads))

    def wait_for_all(self, poll_interval: Optional[float] = 0.5) -> None:
        """Block until every supervisor has exited.

        Joins use a timeout so the main thread keeps servicing signals.
        """
        for thread in self._threads:
            while thread.is_alive():
                thread.join(poll_interval)

    def alive_count(self) -> int:
        return sum(1 for thread in self._threads if thread.is_alive())

    def snapshot(self) -> List[Dict[str, Any]]:
        return [supervisor.snapshot() for supervisor in self.supervisors]


__all__ = ["StreamPool"]
