"""Phase timing for analysis runs."""

from __future__ import annotations

import time
from collections.abc import Callable

from cv_screener_core.models.analysis import PerformanceSummary


class PerformanceTimer:
    """Record named marks and the duration of named phases in milliseconds."""

    def __init__(self, clock: Callable[[], float] = time.perf_counter) -> None:
        self._clock = clock
        self._start = clock()
        self._marks: dict[str, float] = {}
        self._phase_started: dict[str, float] = {}
        self._phases: dict[str, float] = {}

    def mark(self, name: str) -> None:
        """Record a point in time."""
        self._marks[name] = self._clock()

    def start_phase(self, name: str) -> None:
        self._phase_started[name] = self._clock()

    def end_phase(self, name: str) -> int:
        """Close a phase and return its duration in ms; unknown phases are 0."""
        started = self._phase_started.pop(name, None)
        if started is None:
            return 0
        self._phases[name] = self._phases.get(name, 0.0) + (self._clock() - started)
        return self.phase_ms(name)

    def phase_ms(self, name: str) -> int:
        return int(round(self._phases.get(name, 0.0) * 1000))

    def since_mark_ms(self, name: str) -> int:
        """Milliseconds elapsed since a mark (0 when it was never set)."""
        marked = self._marks.get(name)
        if marked is None:
            return 0
        return int(round((self._clock() - marked) * 1000))

    def elapsed_ms(self) -> int:
        return int(round((self._clock() - self._start) * 1000))

    def summary(self, processed_count: int, total_count: int) -> PerformanceSummary:
        """Build the performance block of the 'complete' event."""
        return PerformanceSummary(
            total_time=self.elapsed_ms(),
            processed_count=processed_count,
            total_count=total_count,
            extraction_time=self.phase_ms("extraction"),
            ai_processing_time=self.phase_ms("ai_processing"),
        )
