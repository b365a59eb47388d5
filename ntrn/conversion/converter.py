"""ProfessionalConverter: drive a Next.js project through the conversion pipeline.

Phases run in order and are recorded on a :class:`ProgressTracker`:

1. analysis     :class:`IntelligentProjectAnalyzer`
2. planning     one AI call, parsed into a :class:`ConversionPlan`
3. scaffold     an empty Expo project at the output path
4. conversion   one AI call per planned screen or phase file
5. runtime_fix  :class:`RuntimeErrorFixer` over the output project

A file that cannot be converted is recorded as failed or skipped and the run
continues. Nothing written to the output directory is rolled back.
"""

from __future__ import annotations

import asyncio
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Protocol

import structlog

from ntrn.analysis.analyzer import IntelligentProjectAnalyzer
from ntrn.analysis.code_parser import CodeParser
from ntrn.analysis.models import ProjectAnalysis
from ntrn.conversion.models import (
    ConversionPlan,
    ConversionResult,
    ConversionSummary,
    MobileScreen,
    PlanPhase,
)
from ntrn.conversion.paths import determine_output_path, pascal_case
from ntrn.conversion.plan import candidate_source_files, extract_code, fallback_plan, parse_plan
from ntrn.conversion.prompts import (
    format_file_prompt,
    format_fix_prompt,
    format_planning_prompt,
    format_screen_prompt,
)
from ntrn.conversion.quality import REVIEW_THRESHOLD, QualityChecker
from ntrn.conversion.scaffold import ExpoScaffolder, register_screen
from ntrn.conversion.validator import validate_code
from ntrn.core.config import ConversionConfig
from ntrn.exceptions import NtrnError, ProviderAPIError
from ntrn.fixer import FixReport, RuntimeErrorFixer, fix_source
from ntrn.progress import ProgressTracker
from ntrn.providers.models import AIResponse
from ntrn.providers.rate_limiter import (
    backoff_delay,
    is_quota_error,
    is_rate_limit_error,
    rate_limit_delay,
)

log = structlog.get_logger("ntrn.converter")

_STYLING_CHOICES = {"nativewind", "stylesheet", "styled-components"}


class AICaller(Protocol):
    async def call_ai(
        self,
        prompt: str,
        *,
        task: str = ...,
        temperature: float = ...,
        max_tokens: int = ...,
    ) -> AIResponse: ...


@dataclass
class FailureDiagnosis:
    reason: str
    solution: str
    can_auto_fix: bool


def diagnose_failure(result: ConversionResult) -> FailureDiagnosis:
    """Explain why a file failed and what the user can do about it."""
    error = (result.error or "").lower()
    source = (result.source_file or "").lower()
    if "rate limit" in error or "429" in error:
        return FailureDiagnosis(
            "AI API rate limit exceeded",
            "Wait a few minutes and retry, or run `ntrn provider switch`",
            True,
        )
    if "syntax" in error or "validation" in error:
        return FailureDiagnosis(
            "Generated code has syntax errors", "Re-run the conversion for this file", True
        )
    if "_app." in source or "_document." in source:
        return FailureDiagnosis(
            "Next.js-specific file (not needed in React Native)",
            "Nothing to do: App.tsx replaces it",
            False,
        )
    if "/api/" in f"/{source}" or "route." in source:
        return FailureDiagnosis(
            "Next.js API route (server-side code)",
            "Rewrite it as a client service under src/services",
            True,
        )
    if "not found" in error:
        return FailureDiagnosis(
            "Source file was not found", "Check whether the file exists or was moved", False
        )
    if "unsupported" in error or "not supported" in error:
        return FailureDiagnosis(
            "File contains patterns that have no React Native equivalent",
            "Rewrite it by hand for the mobile platform",
            False,
        )
    return FailureDiagnosis(
        "Unknown conversion error", "Run with -v and review the file manually", True
    )


def render_conversion_summary(summary: ConversionSummary) -> list[str]:
    """Result counts followed by guidance for every failed or skipped file."""
    lines = [
        f"Converted: {summary.converted}",
        f"Failed:    {summary.failed}",
        f"Skipped:   {summary.skipped}",
    ]
    failed = [r for r in summary.results if r.status == "failed"]
    skipped = [r for r in summary.results if r.status == "skipped"]
    if failed:
        lines.append("Failed files:")
        for result in failed:
            diagnosis = diagnose_failure(result)
            label = result.source_file or result.screen_name or "?"
            lines.append(f"  [!] {label}: {diagnosis.reason}")
            lines.append(f"      {diagnosis.solution}")
    if skipped:
        lines.append("Skipped files:")
        for result in skipped:
            label = result.source_file or result.screen_name or "?"
            lines.append(f"  [-] {label}: {result.error or 'skipped'}")
        lines.append("  Re-run `ntrn convert` later to retry rate-limited files.")
    plan = summary.plan
    if plan is not None and plan.app_purpose:
        lines.append(f"App purpose: {plan.app_purpose}")
    if plan is not None and plan.critical_issues:
        lines.append("Critical issues to address:")
        for issue in plan.critical_issues[:3]:
            lines.append(f"  [{issue.get('priority') or 'medium'}] {issue.get('issue') or '?'}")
    quality = summary.quality
    if quality is not None:
        lines.append(
            f"Quality score: {quality.score}% ({quality.passed}/{len(quality.checks)} checks passed)"
        )
        for check in quality.checks:
            if check.passed:
                continue
            lines.append(f"  [!] {check.name}")
            for finding in check.findings[:5]:
                lines.append(f"      {finding}")
        if quality.score < REVIEW_THRESHOLD:
            lines.append(f"  Quality score below {REVIEW_THRESHOLD}%: review the output by hand.")
    return lines


def _screen_component_name(name: str) -> str:
    base = pascal_case(name) or "Home"
    return base if base.endswith("Screen") else base + "Screen"


class ProfessionalConverter:
    """Convert the Next.js project at *source_path* into an Expo app at *output_path*."""

    def __init__(
        self,
        source_path: str | os.PathLike[str],
        output_path: str | os.PathLike[str],
        manager: AICaller,
        *,
        config: ConversionConfig | None = None,
        tracker: ProgressTracker | None = None,
        parser: CodeParser | None = None,
        ai_fix: bool = True,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self.source_path = Path(source_path)
        self.output_path = Path(output_path)
        self.manager = manager
        self.config = config or ConversionConfig()
        self.tracker = tracker or ProgressTracker()
        self.parser = parser or CodeParser()
        self.ai_fix = ai_fix and self.config.conversion.auto_fix
        self._sleep = sleep

        self.analysis: ProjectAnalysis | None = None
        self.plan: ConversionPlan | None = None
        self.fix_report: FixReport | None = None
        self.styling = self.config.styling.framework

    # ── pipeline ──────────────────────────────────────────────────────────

    async def convert(self) -> ConversionSummary:
        self.tracker.start_phase("analysis")
        try:
            self.analysis = IntelligentProjectAnalyzer(self.source_path).analyze()
        except NtrnError as exc:
            self.tracker.fail_phase("analysis", str(exc))
            raise
        self.tracker.complete_phase(
            "analysis",
            f"{self.analysis.patterns.routing.type}, "
            f"{len(self.analysis.patterns.routing.routes)} routes",
        )

        self.tracker.start_phase("planning")
        try:
            self.plan = await self.create_plan(self.analysis)
        except NtrnError as exc:
            self.tracker.fail_phase("planning", str(exc))
            raise
        self.styling = self._plan_styling(self.plan)
        log.info(
            "converter.plan",
            app_purpose=self.plan.app_purpose or None,
            critical_issues=[i.get("issue") for i in self.plan.critical_issues[:3]],
        )
        self.tracker.complete_phase(
            "planning",
            f"{'AI' if self.plan.from_ai else 'fallback'} plan, "
            f"{len(self.plan.mobile_screens)} screens, {len(self.plan.phases)} phases",
        )

        self.tracker.start_phase("scaffold")
        try:
            written = ExpoScaffolder(self.output_path, styling=self.styling).create(
                self.source_path if self.config.conversion.copy_assets else None
            )
        except OSError as exc:
            self.tracker.fail_phase("scaffold", str(exc))
            raise
        self.tracker.complete_phase("scaffold", f"{len(written)} files")

        self.tracker.start_phase("conversion")
        summary = ConversionSummary(results=await self.convert_plan(self.plan))
        self.tracker.complete_phase(
            "conversion",
            f"{summary.converted} converted, {summary.failed} failed, {summary.skipped} skipped",
        )

        if self.config.conversion.runtime_fix:
            self.tracker.start_phase("runtime_fix")
            self.fix_report = RuntimeErrorFixer(
                self.output_path, backups=self.config.files.backup_originals
            ).fix_project()
            self.tracker.complete_phase(
                "runtime_fix", f"{len(self.fix_report.fixed_files)} files fixed"
            )
        else:
            self.tracker.skip_phase("runtime_fix", "disabled in ntrn.config.json")

        summary.plan = self.plan
        if self.config.quality_improvement.enabled and self.plan.quality_checks:
            self.tracker.start_phase("quality")
            summary.quality = QualityChecker(self.output_path, self.parser).run(
                self.plan.quality_checks, summary.results
            )
            self.tracker.complete_phase(
                "quality",
                f"score {summary.quality.score}%, "
                f"{summary.quality.passed}/{len(summary.quality.checks)} checks passed",
            )
        else:
            self.tracker.skip_phase("quality", "no quality checks to run")

        log.info(
            "converter.complete",
            converted=summary.converted,
            failed=summary.failed,
            skipped=summary.skipped,
        )
        return summary

    async def create_plan(self, analysis: ProjectAnalysis) -> ConversionPlan:
        """Ask the AI for a plan; fall back to a page-per-screen plan on any failure."""
        prompt = format_planning_prompt(analysis.to_dict())
        try:
            response = await self.call_ai_with_retry(prompt, "planning")
        except ProviderAPIError as exc:
            log.warning("converter.planning_failed", error=str(exc))
            return fallback_plan(analysis)
        if response is None:
            return fallback_plan(analysis)
        return parse_plan(response.content, analysis)

    async def convert_plan(self, plan: ConversionPlan) -> list[ConversionResult]:
        results: list[ConversionResult] = []
        if plan.mobile_screens:
            for screen in plan.mobile_screens:
                log.info("converter.screen_start", screen=screen.screen_name)
                try:
                    result = await self.create_screen(screen)
                except Exception as exc:
                    log.error("converter.screen_error", screen=screen.screen_name, error=str(exc))
                    result = ConversionResult(
                        source_file=screen.source_analysis or None,
                        screen_name=screen.screen_name,
                        error=str(exc),
                    )
                self._log_result(result)
                results.append(result)
            return results

        for phase in plan.phases:
            log.info("converter.phase_start", phase=phase.name, files=len(phase.files))
            for rel_path in phase.files:
                try:
                    result = await self.convert_file(rel_path, phase)
                except Exception as exc:
                    log.error("converter.file_error", path=rel_path, error=str(exc))
                    result = ConversionResult(source_file=rel_path, error=str(exc))
                self._log_result(result)
                results.append(result)
        return results

    # ── per file ──────────────────────────────────────────────────────────

    async def convert_file(self, rel_path: str, phase: PlanPhase) -> ConversionResult:
        source_file = self.source_path / rel_path
        if not source_file.is_file():
            return ConversionResult(source_file=rel_path, error="File not found")
        if not self.config.files.selects(rel_path):
            return ConversionResult(
                source_file=rel_path,
                skipped=True,
                error="Excluded by the file patterns in ntrn.config.json",
            )

        output_rel = determine_output_path(rel_path)
        if output_rel is None:
            return ConversionResult(
                source_file=rel_path,
                skipped=True,
                error="Next.js-only file with no React Native counterpart",
            )

        source = source_file.read_text(encoding="utf-8", errors="replace")
        screen_name = Path(output_rel).stem if output_rel.startswith("src/screens/") else None
        prompt = format_file_prompt(rel_path, source, phase, self.styling, screen_name)
        response = await self.call_ai_with_retry(prompt, rel_path)
        if response is None:
            return ConversionResult(
                source_file=rel_path, skipped=True, error="AI request rate limited"
            )
        return await self._finish(
            rel_path, output_rel, response.content, screen_name=screen_name
        )

    async def create_screen(self, screen: MobileScreen) -> ConversionResult:
        screen_name = _screen_component_name(screen.screen_name)
        source_rel = self._find_source_file(screen.source_analysis)
        source = ""
        if source_rel is not None:
            source = (self.source_path / source_rel).read_text(encoding="utf-8", errors="replace")
        else:
            log.info("converter.no_source", screen=screen_name)

        if screen.screen_name != screen_name:
            screen = MobileScreen(
                screen_name=screen_name,
                purpose=screen.purpose,
                source_analysis=screen.source_analysis,
                components=screen.components,
            )
        response = await self.call_ai_with_retry(
            format_screen_prompt(screen, source, self.styling), screen_name
        )
        if response is None:
            return ConversionResult(
                source_file=source_rel,
                screen_name=screen_name,
                skipped=True,
                error="AI request rate limited",
            )
        return await self._finish(
            source_rel, f"src/screens/{screen_name}.tsx", response.content, screen_name=screen_name
        )

    async def _finish(
        self,
        source_rel: str | None,
        output_rel: str,
        reply: str,
        *,
        screen_name: str | None = None,
    ) -> ConversionResult:
        code = extract_code(reply)
        if not code:
            return ConversionResult(
                source_file=source_rel,
                screen_name=screen_name,
                error="Could not extract React Native code from the AI response",
            )

        code, issues = await self.finalize_code(code, label=output_rel)
        target = self.output_path / output_rel
        target.parent.mkdir(parents=True, exist_ok=True)
        target.write_text(code + "\n", encoding="utf-8")

        if screen_name and self.config.conversion.generate_navigation:
            register_screen(self.output_path, output_rel)
        return ConversionResult(
            source_file=source_rel,
            success=True,
            output_file=output_rel,
            screen_name=screen_name,
            issues=issues,
        )

    async def finalize_code(self, code: str, *, label: str = "") -> tuple[str, list[str]]:
        """Validate *code*, ask the AI to repair it, then apply the regex fixes.

        Returns the final code and the issues that remain.
        """
        validation = validate_code(code, self.parser)
        if not validation.is_valid and self.ai_fix:
            for _ in range(self.config.quality_improvement.max_iterations):
                fixed = await self.attempt_code_fix(code, validation.issues, label=label)
                if fixed is None:
                    break
                code = fixed
                validation = validate_code(code, self.parser)
                if validation.is_valid:
                    break

        if not validation.is_valid:
            outcome = fix_source(code)
            if outcome.changed:
                log.debug("converter.regex_fixed", path=label, fixes=outcome.applied)
                code = outcome.content
                validation = validate_code(code, self.parser)

        if validation.issues:
            log.warning("converter.issues_remaining", path=label, issues=validation.issues)
        return code, validation.issues

    async def attempt_code_fix(
        self, code: str, issues: list[str], *, label: str = ""
    ) -> str | None:
        try:
            response = await self.call_ai_with_retry(
                format_fix_prompt(code, issues), f"fix {label}".strip()
            )
        except ProviderAPIError as exc:
            log.warning("converter.fix_failed", path=label, error=str(exc))
            return None
        if response is None:
            return None
        return extract_code(response.content) or None

    # ── AI calls ──────────────────────────────────────────────────────────

    async def call_ai_with_retry(
        self, prompt: str, label: str, max_retries: int | None = None
    ) -> AIResponse | None:
        """Call the AI provider, retrying with backoff.

        Rate-limit errors wait longer between attempts and, once the attempts
        are used up, return ``None`` so the caller can mark the file skipped.
        An exhausted quota returns ``None`` at once. Other errors are re-raised
        after the last attempt.
        """
        attempts = max_retries or self.config.ai.retry_attempts
        for attempt in range(1, attempts + 1):
            try:
                return await self.manager.call_ai(
                    prompt,
                    task=label,
                    temperature=self.config.ai.temperature,
                    max_tokens=self.config.ai.max_tokens,
                )
            except NtrnError as exc:
                if isinstance(exc, ProviderAPIError) and is_quota_error(exc):
                    log.warning("converter.quota_exhausted", label=label, error=str(exc))
                    return None
                if is_rate_limit_error(exc):
                    if attempt == attempts:
                        log.warning("converter.file_skipped", label=label, attempts=attempts)
                        return None
                    wait = rate_limit_delay(attempt)
                    log.warning(
                        "converter.rate_limit_wait",
                        label=label,
                        wait_seconds=wait,
                        attempt=attempt,
                        max_retries=attempts,
                    )
                    await self._sleep(wait)
                    continue
                if not isinstance(exc, ProviderAPIError) or attempt == attempts:
                    raise
                delay = backoff_delay(attempt)
                log.warning(
                    "converter.retry",
                    label=label,
                    error=str(exc),
                    delay=delay,
                    attempt=attempt,
                    max_retries=attempts,
                )
                await self._sleep(delay)
        return None

    # ── helpers ───────────────────────────────────────────────────────────

    def _plan_styling(self, plan: ConversionPlan) -> str:
        styling = str(plan.architecture.get("styling") or "").lower()
        return styling if styling in _STYLING_CHOICES else self.config.styling.framework

    def _find_source_file(self, source_analysis: str) -> str | None:
        for candidate in candidate_source_files(source_analysis):
            candidate = candidate.lstrip("./")
            if self.config.files.selects(candidate) and (self.source_path / candidate).is_file():
                return candidate
        return None

    @staticmethod
    def _log_result(result: ConversionResult) -> None:
        label = result.output_file or result.source_file or result.screen_name
        if result.status == "converted":
            log.info("converter.file_converted", file=label, issues=len(result.issues))
        elif result.status == "skipped":
            log.warning("converter.file_skipped", file=label, reason=result.error)
        else:
            log.error("converter.file_failed", file=label, error=result.error)
