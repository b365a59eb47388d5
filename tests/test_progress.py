"""Tests for ProgressTracker."""

from __future__ import annotations

import time

from ntrn.progress import PIPELINE_PHASES, ProgressTracker


class StepClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


class TestProgressTracker:
    def test_basic_flow(self):
        tracker = ProgressTracker()
        tracker.start_phase("analysis")
        tracker.complete_phase("analysis", detail="pages-router, 4 routes")

        summary = tracker.get_summary()
        assert len(summary["phases"]) == 1
        assert summary["phases"][0]["status"] == "completed"
        assert summary["phases"][0]["detail"] == "pages-router, 4 routes"

    def test_fail_phase(self):
        tracker = ProgressTracker()
        tracker.start_phase("scaffold")
        tracker.fail_phase("scaffold", "permission denied")

        summary = tracker.get_summary()
        assert summary["phases"][0]["status"] == "failed"
        assert summary["phases"][0]["error"] == "permission denied"

    def test_skip_phase(self):
        tracker = ProgressTracker()
        tracker.skip_phase("runtime_fix", "disabled")

        assert tracker.get("runtime_fix").status == "skipped"
        assert tracker.get("analysis") is None

    def test_duration(self):
        tracker = ProgressTracker()
        tracker.start_phase("planning")
        time.sleep(0.01)
        tracker.complete_phase("planning")

        p = tracker.phases[0]
        assert p.duration is not None
        assert p.duration >= 0.01

    def test_injected_clock(self):
        clock = StepClock()
        tracker = ProgressTracker(clock=clock)
        tracker.start_phase("conversion")
        clock.now = 2.5
        tracker.complete_phase("conversion", "3 converted")
        assert tracker.get("conversion").duration == 2.5
        assert tracker.get_summary()["total_duration"] == 2.5

    def test_callback(self):
        events = []
        tracker = ProgressTracker()
        tracker.callbacks.append(lambda p: events.append((p.phase, p.status)))

        tracker.start_phase("analysis")
        tracker.complete_phase("analysis")

        assert events == [("analysis", "running"), ("analysis", "completed")]

    def test_failing_callback_does_not_break_tracking(self):
        tracker = ProgressTracker()
        tracker.callbacks.append(lambda p: 1 / 0)
        tracker.start_phase("analysis")
        tracker.complete_phase("analysis")
        assert tracker.get("analysis").status == "completed"

    def test_summary_lines(self):
        clock = StepClock()
        tracker = ProgressTracker(clock=clock)
        tracker.start_phase("analysis")
        clock.now = 1.0
        tracker.complete_phase("analysis", "ok")
        tracker.start_phase("scaffold")
        tracker.fail_phase("scaffold", "disk full")
        tracker.skip_phase("runtime_fix", "disabled")
        assert tracker.summary_lines() == [
            "  [+] analysis: ok (1.0s)",
            "  [!] scaffold: disk full (0.0s)",
            "  [-] runtime_fix: disabled",
            "  [ ] planning: not run",
            "  [ ] conversion: not run",
            "  [ ] quality: not run",
        ]

    def test_pipeline_phase_names(self):
        assert PIPELINE_PHASES == (
            "analysis",
            "planning",
            "scaffold",
            "conversion",
            "runtime_fix",
            "quality",
        )

    def test_pending_phases(self):
        tracker = ProgressTracker()
        tracker.start_phase("analysis")
        tracker.complete_phase("analysis")
        tracker.start_phase("planning")
        assert tracker.pending() == ["scaffold", "conversion", "runtime_fix", "quality"]
        assert tracker.failed_phase is None
        assert not any("not run" in line for line in tracker.summary_lines())

        tracker.fail_phase("planning", "provider down")
        summary = tracker.get_summary()
        assert summary["failed_phase"] == "planning"
        assert summary["pending"] == ["scaffold", "conversion", "runtime_fix", "quality"]

    def test_custom_expected_phases(self):
        tracker = ProgressTracker(expected=("fix",))
        assert tracker.pending() == ["fix"]
        tracker.skip_phase("fix", "nothing to do")
        assert tracker.pending() == []

    def test_finishing_unknown_phase_is_ignored(self):
        tracker = ProgressTracker()
        tracker.complete_phase("conversion")
        tracker.fail_phase("conversion", "boom")
        assert tracker.phases == []
