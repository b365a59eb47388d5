"""Phase tracking for the conversion pipeline."""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Any, Callable, Iterable

import structlog

log = structlog.get_logger("ntrn.progress")

PIPELINE_PHASES = ("analysis", "planning", "scaffold", "conversion", "runtime_fix", "quality")

_STATUS_ICONS = {
    "completed": "+",
    "failed": "!",
    "skipped": "-",
    "running": "~",
    "pending": " ",
}


@dataclass
class PhaseProgress:
    phase: str
    status: str = "pending"  # "pending" | "running" | "completed" | "failed" | "skipped"
    start_time: float | None = None
    end_time: float | None = None
    detail: str = ""
    error: str | None = None

    @property
    def duration(self) -> float | None:
        if self.start_time is not None and self.end_time is not None:
            return round(self.end_time - self.start_time, 2)
        return None


class ProgressTracker:
    """Record each pipeline phase as it starts, finishes, fails or is skipped.

    *expected* names the phases a full run goes through. After a failure the
    ones never reached are reported as not run.
    """

    def __init__(
        self,
        expected: Iterable[str] = PIPELINE_PHASES,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.expected = tuple(expected)
        self.phases: list[PhaseProgress] = []
        self.callbacks: list[Callable[[PhaseProgress], None]] = []
        self._index: dict[str, PhaseProgress] = {}
        self._clock = clock

    def start_phase(self, phase: str) -> None:
        p = self._record(PhaseProgress(phase=phase, status="running", start_time=self._clock()))
        log.info("phase.start", phase=phase)
        self._notify(p)

    def complete_phase(self, phase: str, detail: str = "") -> None:
        p = self._finish(phase, "completed")
        if p:
            p.detail = detail
            log.info("phase.complete", phase=phase, detail=detail, duration=p.duration)
            self._notify(p)

    def fail_phase(self, phase: str, error: str) -> None:
        p = self._finish(phase, "failed")
        if p:
            p.error = error
            log.error("phase.failed", phase=phase, error=error)
            self._notify(p)

    def skip_phase(self, phase: str, reason: str) -> None:
        p = self._record(PhaseProgress(phase=phase, status="skipped", detail=reason))
        log.info("phase.skipped", phase=phase, reason=reason)
        self._notify(p)

    def get(self, phase: str) -> PhaseProgress | None:
        return self._index.get(phase)

    @property
    def failed_phase(self) -> str | None:
        return next((p.phase for p in self.phases if p.status == "failed"), None)

    def pending(self) -> list[str]:
        """Expected phases that have not been started or skipped."""
        return [name for name in self.expected if name not in self._index]

    def get_summary(self) -> dict[str, Any]:
        return {
            "phases": [
                {
                    "phase": p.phase,
                    "status": p.status,
                    "duration": p.duration,
                    "detail": p.detail,
                    "error": p.error,
                }
                for p in self.phases
            ],
            "failed_phase": self.failed_phase,
            "pending": self.pending(),
            "total_duration": round(sum(p.duration or 0 for p in self.phases), 2),
        }

    def summary_lines(self) -> list[str]:
        """One ``[icon] phase: detail`` line per phase, for terminal output."""
        lines = []
        for p in self.phases:
            icon = _STATUS_ICONS.get(p.status, "?")
            text = p.error if p.status == "failed" else p.detail
            duration = f" ({p.duration}s)" if p.duration is not None else ""
            lines.append(f"  [{icon}] {p.phase}: {text}{duration}".rstrip())
        if self.failed_phase:
            icon = _STATUS_ICONS["pending"]
            lines.extend(f"  [{icon}] {name}: not run" for name in self.pending())
        return lines

    def _record(self, p: PhaseProgress) -> PhaseProgress:
        self.phases.append(p)
        self._index[p.phase] = p
        return p

    def _finish(self, phase: str, status: str) -> PhaseProgress | None:
        p = self._index.get(phase)
        if p is None:
            log.debug("phase.unknown", phase=phase, status=status)
            return None
        p.status = status
        p.end_time = self._clock()
        return p

    def _notify(self, p: PhaseProgress) -> None:
        for cb in self.callbacks:
            try:
                cb(p)
            except Exception:
                log.debug("phase.callback_error", phase=p.phase, exc_info=True)
