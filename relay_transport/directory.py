"""Contact directory hand-off types."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from .protocol import DirectorySnapshotDescriptor


class DirectoryUpdater(Protocol):
    """Consumer of downloaded directory snapshots (e.g., a Bloom filter store)."""

    def update(self, path: Path, capacity: int, hash_count: int, version: int) -> None:
        ...


@dataclass(frozen=True)
class DirectorySnapshot:
    """A snapshot delivered to the directory component."""

    path: Path
    descriptor: DirectorySnapshotDescriptor
