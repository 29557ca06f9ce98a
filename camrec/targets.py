"""Loading the list of stream addresses to record."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class StreamTarget:
    id: int
    address: str


def parse_targets(lines) -> list[StreamTarget]:
    """Turn raw input lines into targets, numbering them in order.

    Blank lines and ``#`` comments are skipped. Duplicate addresses are kept;
    each one becomes an independent stream.
    """
    targets: list[StreamTarget] = []
    for raw in lines:
        address = raw.strip()
        if not address or address.startswith("#"):
            continue
        targets.append(StreamTarget(id=len(targets), address=address))
    return targets


def read_targets(path: str | os.PathLike[str]) -> list[StreamTarget]:
    with Path(path).open("r", encoding="utf-8") as handle:
        return parse_targets(handle)


__all__ = ["StreamTarget", "parse_targets", "read_targets"]
