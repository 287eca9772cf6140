"""Shared data type definitions (Chunk, ProgressObserver)."""

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol


@dataclass(frozen=True)
class Chunk:
    """
    A contiguous byte range of a source file, materialized on local disk.
    """
    index: int
    size: int
    local_path: Path

    @property
    def display_index(self) -> int:
        """1-based position used in tags and user-facing messages."""
        return self.index + 1


class ProgressObserver(Protocol):
    """Receives advisory progress updates; rendering is up to the implementer."""

    def on_progress(self, current: int, total: int) -> None:
        ...


def notify_progress(observer: ProgressObserver | None, current: int, total: int) -> None:
    """Forward a progress update if an observer was supplied."""
    if observer is not None:
        observer.on_progress(current, total)
