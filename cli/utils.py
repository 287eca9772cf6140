"""Utility functions for CLI operations."""

import sys
from typing import Callable, Optional, TextIO

from cli.constants import GREEN, RESET


class ProgressBar:
    """Progress observer that draws a single updating line on stdout."""

    def __init__(
        self,
        label: str,
        formatter: Optional[Callable[[int], str]] = None,
        stream: Optional[TextIO] = None,
    ):
        """
        Initialize the progress bar.

        Args:
            label: Text shown before the counters (e.g. "Splitting file")
            formatter: Renders a counter value; defaults to str()
            stream: Output stream (defaults to stdout)
        """
        self.label = label
        self.formatter = formatter or str
        self.stream = stream if stream is not None else sys.stdout
        self._finished = False

    def on_progress(self, current: int, total: int) -> None:
        """Redraw the progress line; finishes it once current reaches total."""
        if self._finished:
            return
        progress = 100.0 if total <= 0 else (current / total) * 100
        self.stream.write(
            f"\r{self.label}: {self.formatter(current)} / {self.formatter(total)} "
            f"({GREEN}{progress:.1f}%{RESET})"
        )
        self.stream.flush()
        if current >= total:
            self.finish()

    def finish(self) -> None:
        """Finalize progress display with newline."""
        if self._finished:
            return
        self._finished = True
        self.stream.write('\n')
        self.stream.flush()


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in bytes to human-readable format with appropriate unit.

    Uses binary units (1024-based) and automatically selects the most
    appropriate unit (B, KiB, MiB, GiB, TiB).

    Args:
        size_bytes: File size in bytes

    Returns:
        Formatted string with size and unit (e.g., "1.50 MiB", "512 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"

    units = ['KiB', 'MiB', 'GiB', 'TiB']
    size = size_bytes / 1024.0

    for unit in units:
        if size < 1024.0:
            return f"{size:.2f} {unit}"
        size /= 1024.0

    return f"{size:.2f} PiB"
