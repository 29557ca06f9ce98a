#!/usr/bin/env python3
"""
Recorder daemon: record every address in the URL list until told to stop.

- One supervisor thread per address, retrying forever on failure
- Type ``q`` + Enter, or send SIGINT/SIGTERM, to stop all streams
"""

from __future__ import annotations

import functools
import logging
import sys
from pathlib import Path
from typing import Any, Dict, Optional

from camrec.config import active_config_path, get_cfg
from camrec.media_source import open_source
from camrec.pool import StreamPool
from camrec.recorder import StreamRecorder
from camrec.segment_writer import SegmentWriter
from camrec.shutdown import ControlChannelListener, ShutdownSignal, install_signal_handlers
from camrec.supervisor import RetrySupervisor
from camrec.targets import StreamTarget, read_targets

LOG_FORMAT = "[%(name)s] %(message)s"


def configure_logging(cfg: Dict[str, Any]) -> None:
    logging_cfg = cfg.get("logging", {})
    if logging_cfg.get("dev_mode"):
        level = logging.DEBUG
    else:
        level = getattr(logging, str(logging_cfg.get("level", "INFO")).upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)
    if not root.handlers:
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        root.addHandler(handler)


def build_recorder_factory(cfg: Dict[str, Any], output_dir: Path):
    recorder_cfg = cfg["recorder"]
    source_cfg = cfg["source"]

    opener = functools.partial(
        open_source,
        rtsp_transport=source_cfg.get("rtsp_transport"),
        open_timeout=source_cfg.get("open_timeout_seconds"),
        read_timeout=source_cfg.get("read_timeout_seconds"),
        max_packet_errors=int(source_cfg.get("max_packet_errors", 32)),
    )

    def writer_factory(address: str) -> SegmentWriter:
        return SegmentWriter(
            address,
            output_dir,
            segment_seconds=float(recorder_cfg["segment_seconds"]),
            extension=str(recorder_cfg["container_extension"]),
        )

    def recorder_factory(target: StreamTarget, shutdown: ShutdownSignal) -> StreamRecorder:
        return StreamRecorder(target, shutdown, opener=opener, writer_factory=writer_factory)

    return recorder_factory


def build_pool(cfg: Dict[str, Any], targets, shutdown: ShutdownSignal, output_dir: Path) -> StreamPool:
    recorder_factory = build_recorder_factory(cfg, output_dir)
    retry_delay = float(cfg["recorder"]["retry_delay_seconds"])

    def supervisor_factory(target: StreamTarget, signal: ShutdownSignal) -> RetrySupervisor:
        return RetrySupervisor(target, signal, recorder_factory, retry_delay=retry_delay)

    return StreamPool(targets, shutdown, supervisor_factory)


def _log_summary(log: logging.Logger, pool: StreamPool) -> None:
    for entry in pool.snapshot():
        log.info(
            "[stream %d] %s: %d attempt(s), %d failure(s), %d segment(s), %d bytes",
            entry["id"],
            entry["address"],
            entry["attempts"],
            entry["failures"],
            entry["segments"],
            entry["bytes_written"],
        )


def main(shutdown: Optional[ShutdownSignal] = None) -> int:
    cfg = get_cfg()
    configure_logging(cfg)
    log = logging.getLogger("daemon")
    log.debug("config: %s", active_config_path() or "defaults")

    urls_file = Path(cfg["paths"]["urls_file"])
    output_dir = Path(cfg["paths"]["output_dir"])
    try:
        targets = read_targets(urls_file)
    except (OSError, UnicodeDecodeError) as exc:
        log.error("cannot read stream list %s: %s", urls_file, exc)
        return 1
    output_dir.mkdir(parents=True, exist_ok=True)
    log.info("recording %d stream(s) into %s", len(targets), output_dir)

    if shutdown is None:
        shutdown = ShutdownSignal()
        install_signal_handlers(shutdown)
    if cfg["control"].get("stdin_listener", True):
        ControlChannelListener(shutdown).start()

    pool = build_pool(cfg, targets, shutdown, output_dir)
    pool.start()

    # Supervisors only exit after shutdown, so this returns once stop is requested.
    while pool.alive_count() and not shutdown.wait(0.5):
        pass
    if targets:
        log.info("Stopping all streams...")
    pool.wait_for_all()

    _log_summary(log, pool)
    log.info("All streams stopped. Program exiting.")
    return 0


if __name__ == "__main__":
    try:
        sys.stdout.reconfigure(line_buffering=True)
    except AttributeError:
        pass
    sys.exit(main())
