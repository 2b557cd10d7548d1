"""
Terminal progress for chapter assembly.

Updates arrive from worker threads, so the reporter serializes its writes.
"""

import sys
import threading
import time
from dataclasses import dataclass, field
from typing import TextIO


@dataclass
class ProgressStats:
    """Counters of one progress run."""

    total: int
    current: int = 0
    failed: int = 0
    start_time: float = field(default_factory=time.time)

    @property
    def elapsed(self) -> float:
        return time.time() - self.start_time

    @property
    def percent(self) -> float:
        if self.total == 0:
            return 100.0
        return (self.current / self.total) * 100

    @property
    def eta(self) -> float | None:
        """Estimated seconds remaining, None before the first item."""
        if self.current == 0:
            return None
        return self.elapsed / self.current * (self.total - self.current)


def format_time(seconds: float | None) -> str:
    """Format seconds as human-readable time."""
    if seconds is None:
        return "--:--"
    if seconds < 60:
        return f"{seconds:.0f}s"
    if seconds < 3600:
        return f"{int(seconds // 60)}m {int(seconds % 60)}s"
    return f"{int(seconds // 3600)}h {int((seconds % 3600) // 60)}m"


class ProgressReporter:
    """Progress line for work finishing in any order.

    Usage:
        with ProgressReporter(total=len(chapters), desc="Assembling") as progress:
            for future in as_completed(futures):
                progress.update(item_name=chapter_id)
    """

    def __init__(
        self,
        total: int,
        desc: str = "Progress",
        unit: str = "chapters",
        stream: TextIO | None = None,
    ) -> None:
        """Initialize progress reporter.

        Args:
            total: Number of items expected
            desc: Prefix of the progress line
            unit: Unit name used in the summary
            stream: Output stream (defaults to stderr)
        """
        self.stats = ProgressStats(total=total)
        self.desc = desc
        self.unit = unit
        self._output = stream if stream is not None else sys.stderr
        self._is_tty = hasattr(self._output, "isatty") and self._output.isatty()
        self._lock = threading.Lock()
        self._last_line_len = 0

    def __enter__(self) -> "ProgressReporter":
        self.stats.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.finish()

    def update(self, success: bool = True, item_name: str | None = None) -> None:
        """Record one finished item."""
        with self._lock:
            self.stats.current += 1
            if not success:
                self.stats.failed += 1
            self._render(item_name)

    def _line(self, item_name: str | None) -> str:
        stats = self.stats
        bar_width = 20
        filled = int(bar_width * stats.percent / 100)
        bar = "█" * filled + "░" * (bar_width - filled)
        line = (
            f"{self.desc}: [{bar}] {stats.current}/{stats.total} "
            f"({stats.percent:.0f}%) [{format_time(stats.elapsed)}<{format_time(stats.eta)}]"
        )
        if item_name:
            name = item_name if len(item_name) <= 25 else "..." + item_name[-22:]
            line += f" | {name}"
        return line

    def _render(self, item_name: str | None) -> None:
        stats = self.stats
        line = self._line(item_name)
        if self._is_tty:
            clear = " " * max(0, self._last_line_len - len(line))
            self._output.write(f"\r{line}{clear}")
            self._last_line_len = len(line)
        elif stats.current in (1, stats.total) or stats.current % max(1, stats.total // 10) == 0:
            # Roughly every 10% when piped
            self._output.write(line + "\n")
        self._output.flush()

    def finish(self) -> None:
        """Print the summary line."""
        stats = self.stats
        with self._lock:
            if self._is_tty:
                self._output.write("\n")
            elapsed = format_time(stats.elapsed)
            if stats.failed:
                summary = (
                    f"✗ {self.desc} stopped: {stats.current - stats.failed}/{stats.total} "
                    f"{self.unit}, {stats.failed} failed ({elapsed})"
                )
            else:
                summary = f"✓ {self.desc} complete: {stats.current}/{stats.total} {self.unit} ({elapsed})"
            self._output.write(summary + "\n")
            self._output.flush()
