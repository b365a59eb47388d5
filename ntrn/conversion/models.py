"""Data models for the conversion pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


@dataclass
class PlanPhase:
    name: str
    priority: str = "medium"
    files: list[str] = field(default_factory=list)
    strategy: str = ""


@dataclass
class MobileScreen:
    screen_name: str
    purpose: str = ""
    source_analysis: str = ""
    components: list[str] = field(default_factory=list)


@dataclass
class ConversionPlan:
    architecture: dict[str, Any] = field(default_factory=dict)
    phases: list[PlanPhase] = field(default_factory=list)
    mobile_screens: list[MobileScreen] = field(default_factory=list)
    app_purpose: str = ""
    critical_issues: list[dict[str, str]] = field(default_factory=list)
    quality_checks: list[str] = field(default_factory=list)
    from_ai: bool = False


@dataclass
class ValidationResult:
    is_valid: bool
    issues: list[str] = field(default_factory=list)


@dataclass
class ConversionResult:
    source_file: str | None
    success: bool = False
    skipped: bool = False
    output_file: str | None = None
    screen_name: str | None = None
    error: str | None = None
    issues: list[str] = field(default_factory=list)

    @property
    def status(self) -> str:
        if self.success:
            return "converted"
        return "skipped" if self.skipped else "failed"


@dataclass
class QualityCheck:
    name: str
    passed: bool
    findings: list[str] = field(default_factory=list)


@dataclass
class QualityReport:
    checks: list[QualityCheck] = field(default_factory=list)

    @property
    def passed(self) -> int:
        return sum(1 for c in self.checks if c.passed)

    @property
    def score(self) -> int:
        """Percentage of checks that passed; 100 when nothing was checked."""
        if not self.checks:
            return 100
        return round(self.passed / len(self.checks) * 100)


@dataclass
class ConversionSummary:
    results: list[ConversionResult] = field(default_factory=list)
    plan: ConversionPlan | None = None
    quality: QualityReport | None = None

    @property
    def converted(self) -> int:
        return sum(1 for r in self.results if r.success)

    @property
    def skipped(self) -> int:
        return sum(1 for r in self.results if r.skipped)

    @property
    def failed(self) -> int:
        return sum(1 for r in self.results if not r.success and not r.skipped)
