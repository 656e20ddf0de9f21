"""
Timing helpers for runs and individual model calls.
"""

from __future__ import annotations

import logging
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator, Optional


@dataclass
class TimingResult:
    """Result of a timed block."""
    name: str
    duration_sec: float = 0.0
    success: bool = True
    error: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.name}: {format_duration(self.duration_sec)}"


@contextmanager
def timed_operation(
    name: str,
    logger: Optional[logging.Logger] = None,
    log_level: int = logging.DEBUG,
) -> Iterator[TimingResult]:
    """
    Time a block and optionally log the duration.

    Usage:
        with timed_operation("render report.pdf", logger) as timing:
            ...
        print(timing.duration_sec)
    """
    result = TimingResult(name=name)
    start = time.perf_counter()

    try:
        yield result
    except Exception as e:
        result.success = False
        result.error = str(e)
        raise
    finally:
        result.duration_sec = time.perf_counter() - start
        if logger:
            msg = str(result)
            if not result.success:
                msg += f" (failed: {result.error})"
            logger.log(log_level, msg)


class Timer:
    """
    Accumulating timer keyed by phase name.

        timer = Timer()
        timer.start("extract")
        ...
        timer.stop("extract")
        timer.elapsed  # since construction
    """

    def __init__(self):
        self._starts: dict[str, float] = {}
        self._totals: dict[str, float] = {}
        self._counts: dict[str, int] = {}
        self._global_start = time.perf_counter()

    def start(self, name: str) -> None:
        self._starts[name] = time.perf_counter()

    def stop(self, name: str) -> float:
        """Stop a phase and return its duration (0.0 if never started)."""
        started = self._starts.pop(name, None)
        if started is None:
            return 0.0
        duration = time.perf_counter() - started
        self._totals[name] = self._totals.get(name, 0.0) + duration
        self._counts[name] = self._counts.get(name, 0) + 1
        return duration

    @property
    def elapsed(self) -> float:
        return time.perf_counter() - self._global_start

    def summary(self) -> str:
        lines = ["Timing Summary:"]
        for name in sorted(self._totals):
            count = self._counts[name]
            total = format_duration(self._totals[name])
            if count > 1:
                avg = format_duration(self._totals[name] / count)
                lines.append(f"  {name}: {total} total, {avg} avg ({count}x)")
            else:
                lines.append(f"  {name}: {total}")
        lines.append(f"  Total elapsed: {format_duration(self.elapsed)}")
        return "\n".join(lines)


def format_duration(seconds: float) -> str:
    """Human-readable duration: 850.0ms, 12.34s, 3m 5.2s, 1h 2m 3s."""
    if seconds < 1:
        return f"{seconds * 1000:.1f}ms"
    if seconds < 60:
        return f"{seconds:.2f}s"
    if seconds < 3600:
        minutes = int(seconds // 60)
        return f"{minutes}m {seconds % 60:.1f}s"
    hours = int(seconds // 3600)
    minutes = int((seconds % 3600) // 60)
    return f"{hours}h {minutes}m {seconds % 60:.0f}s"
