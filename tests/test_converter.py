"""Tests for ProfessionalConverter, driven by a scripted AI."""

from __future__ import annotations

import json

import pytest

from ntrn.analysis.analyzer import IntelligentProjectAnalyzer
from ntrn.conversion.converter import (
    ProfessionalConverter,
    diagnose_failure,
    render_conversion_summary,
)
from ntrn.conversion.models import (
    ConversionPlan,
    ConversionResult,
    ConversionSummary,
    PlanPhase,
    QualityCheck,
    QualityReport,
)
from ntrn.conversion.paths import screen_name_for
from ntrn.conversion.validator import MISSING_REACT_IMPORT
from ntrn.core.config import (
    ConversionConfig,
    ConversionSettings,
    FileSettings,
    QualitySettings,
)
from ntrn.exceptions import ProjectNotFoundError, ProviderAPIError, ProviderNotConfiguredError
from ntrn.progress import ProgressTracker
from ntrn.providers.models import AIResponse

WEB_CODE = "export default () => <div>hi</div>;"


def rn_screen(name: str) -> str:
    return (
        "```tsx\n"
        "import React from 'react';\n"
        "import { View, Text } from 'react-native';\n\n"
        f"export function {name}() {{\n"
        "  return (\n"
        "    <View>\n"
        f"      <Text>{name}</Text>\n"
        "    </View>\n"
        "  );\n"
        "}\n"
        "```"
    )


class ScriptedAI:
    """Answers ``call_ai`` from *handler(prompt, task)*; exceptions are raised."""

    def __init__(self, handler):
        self.handler = handler
        self.tasks: list[str] = []

    async def call_ai(self, prompt, *, task="", temperature=0.1, max_tokens=8192):
        self.tasks.append(task)
        result = self.handler(prompt, task)
        if isinstance(result, BaseException):
            raise result
        return AIResponse(content=result, provider="Mistral AI", model="test")


def page_handler(prompt, task):
    if task == "planning":
        return "I could not produce a plan."
    name = screen_name_for(task) or "Thing"
    return rn_screen(name)


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def make_converter(pages_project, tmp_path, sleeps):
    async def fake_sleep(seconds):
        sleeps.append(seconds)

    def factory(handler, **kwargs):
        ai = ScriptedAI(handler)
        converter = ProfessionalConverter(
            pages_project, tmp_path / "out", ai, sleep=fake_sleep, **kwargs
        )
        return converter, ai

    return factory


class TestCallAIWithRetry:
    @pytest.mark.anyio
    async def test_success(self, make_converter, sleeps):
        converter, ai = make_converter(lambda p, t: "ok")
        response = await converter.call_ai_with_retry("prompt", "label")
        assert response.content == "ok"
        assert ai.tasks == ["label"]
        assert sleeps == []

    @pytest.mark.anyio
    async def test_rate_limit_exhausted_returns_none(self, make_converter, sleeps):
        converter, ai = make_converter(
            lambda p, t: ProviderAPIError("Mistral AI", "rate limit exceeded", 429)
        )
        assert await converter.call_ai_with_retry("prompt", "pages/about.tsx") is None
        assert len(ai.tasks) == 3
        assert sleeps == [10.0, 20.0]

    @pytest.mark.anyio
    async def test_quota_error_not_retried(self, make_converter, sleeps):
        converter, ai = make_converter(
            lambda p, t: ProviderAPIError("Gemini", "quota exceeded for this project", 429)
        )
        assert await converter.call_ai_with_retry("prompt", "label") is None
        assert len(ai.tasks) == 1
        assert sleeps == []

    @pytest.mark.anyio
    async def test_transient_error_retried(self, make_converter, sleeps):
        replies = [ProviderAPIError("Mistral AI", "server error", 500), "ok"]
        converter, ai = make_converter(lambda p, t: replies.pop(0))
        response = await converter.call_ai_with_retry("prompt", "label")
        assert response.content == "ok"
        assert sleeps == [2.0]

    @pytest.mark.anyio
    async def test_persistent_error_raised(self, make_converter, sleeps):
        converter, ai = make_converter(lambda p, t: ProviderAPIError("Mistral AI", "boom", 500))
        with pytest.raises(ProviderAPIError):
            await converter.call_ai_with_retry("prompt", "label")
        assert len(ai.tasks) == 3
        assert sleeps == [2.0, 4.0]
        for delay in sleeps:
            assert 2.0 <= delay <= 30.0

    @pytest.mark.anyio
    async def test_max_retries_override(self, make_converter, sleeps):
        converter, ai = make_converter(lambda p, t: ProviderAPIError("Mistral AI", "boom", 500))
        with pytest.raises(ProviderAPIError):
            await converter.call_ai_with_retry("prompt", "label", max_retries=1)
        assert len(ai.tasks) == 1
        assert sleeps == []

    @pytest.mark.anyio
    async def test_other_errors_not_retried(self, make_converter):
        converter, ai = make_converter(lambda p, t: ProviderNotConfiguredError("no key"))
        with pytest.raises(ProviderNotConfiguredError):
            await converter.call_ai_with_retry("prompt", "label")
        assert len(ai.tasks) == 1


class TestConvertFile:
    PHASE = PlanPhase(name="Screens", priority="high")

    @pytest.mark.anyio
    async def test_converted(self, make_converter, tmp_path):
        converter, ai = make_converter(page_handler)
        result = await converter.convert_file("pages/about.tsx", self.PHASE)
        assert result.status == "converted"
        assert result.output_file == "src/screens/AboutScreen.tsx"
        assert result.screen_name == "AboutScreen"
        assert result.issues == []
        written = (tmp_path / "out/src/screens/AboutScreen.tsx").read_text()
        assert "export function AboutScreen()" in written
        assert not written.startswith("```")

    @pytest.mark.anyio
    async def test_missing_source(self, make_converter):
        converter, ai = make_converter(page_handler)
        result = await converter.convert_file("pages/missing.tsx", self.PHASE)
        assert result.status == "failed"
        assert result.error == "File not found"
        assert ai.tasks == []

    @pytest.mark.anyio
    async def test_next_only_file_skipped(self, make_converter):
        converter, ai = make_converter(page_handler)
        result = await converter.convert_file("pages/_app.tsx", self.PHASE)
        assert result.status == "skipped"
        assert ai.tasks == []

    @pytest.mark.anyio
    async def test_rate_limited_file_skipped(self, make_converter, sleeps):
        converter, ai = make_converter(
            lambda p, t: ProviderAPIError("Mistral AI", "Too many requests", 429)
        )
        result = await converter.convert_file("pages/about.tsx", self.PHASE)
        assert result.status == "skipped"
        assert result.error == "AI request rate limited"
        assert sleeps == [10.0, 20.0]

    @pytest.mark.anyio
    async def test_ai_fix_repairs_invalid_code(self, make_converter):
        def handler(prompt, task):
            if task.startswith("fix "):
                return rn_screen("AboutScreen")
            return WEB_CODE

        converter, ai = make_converter(handler)
        result = await converter.convert_file("pages/about.tsx", self.PHASE)
        assert result.status == "converted"
        assert result.issues == []
        assert ai.tasks == ["pages/about.tsx", "fix src/screens/AboutScreen.tsx"]

    @pytest.mark.anyio
    async def test_remaining_issues_still_saved(self, make_converter, tmp_path):
        converter, ai = make_converter(lambda p, t: WEB_CODE, ai_fix=False)
        result = await converter.convert_file("pages/about.tsx", self.PHASE)
        assert result.status == "converted"
        assert result.issues == [MISSING_REACT_IMPORT]
        written = (tmp_path / "out/src/screens/AboutScreen.tsx").read_text()
        assert "<View>hi</View>" in written
        assert "import { View } from 'react-native';" in written
        assert ai.tasks == ["pages/about.tsx"]

    @pytest.mark.anyio
    async def test_empty_reply_fails(self, make_converter):
        converter, ai = make_converter(lambda p, t: "```tsx\n```")
        result = await converter.convert_file("pages/about.tsx", self.PHASE)
        assert result.status == "failed"
        assert "Could not extract" in result.error


class TestConvertPlan:
    @pytest.mark.anyio
    async def test_errors_do_not_stop_the_run(self, make_converter):
        def handler(prompt, task):
            if task == "pages/about.tsx":
                return RuntimeError("network down")
            return page_handler(prompt, task)

        converter, ai = make_converter(handler)
        plan_phase = PlanPhase(name="Screens", files=["pages/about.tsx", "pages/index.tsx"])
        results = await converter.convert_plan(ConversionPlan(phases=[plan_phase]))
        assert [r.status for r in results] == ["failed", "converted"]
        assert results[0].error == "network down"


class TestCreatePlan:
    @pytest.mark.anyio
    async def test_fallback_on_provider_error(self, make_converter):
        converter, ai = make_converter(lambda p, t: ProviderAPIError("Mistral AI", "boom", 500))
        analysis = IntelligentProjectAnalyzer(converter.source_path).analyze()
        plan = await converter.create_plan(analysis)
        assert not plan.from_ai
        assert "pages/index.tsx" in plan.phases[0].files


class TestConvert:
    @pytest.mark.anyio
    async def test_fallback_plan_pipeline(self, make_converter, tmp_path):
        tracker = ProgressTracker()
        converter, ai = make_converter(page_handler, tracker=tracker)
        summary = await converter.convert()

        assert summary.converted == 3
        assert summary.skipped == 1
        assert summary.failed == 0
        assert ai.tasks[0] == "planning"
        assert converter.styling == "nativewind"

        out = tmp_path / "out"
        assert (out / "src/screens/ProductsIdScreen.tsx").is_file()
        assert (out / "assets/images/logo.png").is_file()
        navigator = (out / "src/navigation/AppNavigator.tsx").read_text()
        assert 'name="About"' in navigator
        assert 'name="ProductsId"' in navigator

        statuses = {p.phase: p.status for p in tracker.phases}
        assert statuses == {
            "analysis": "completed",
            "planning": "completed",
            "scaffold": "completed",
            "conversion": "completed",
            "runtime_fix": "completed",
            "quality": "completed",
        }
        assert converter.fix_report is not None
        assert summary.quality.score == 100
        assert summary.plan is converter.plan

    @pytest.mark.anyio
    async def test_screen_plan_pipeline(self, make_converter, tmp_path):
        plan = {
            "appPurpose": "Shop",
            "architecture": {"styling": "stylesheet"},
            "mobileScreens": [
                {
                    "screenName": "Product Details",
                    "purpose": "Show one product",
                    "sourceAnalysis": "Based on pages/products/[id].tsx",
                }
            ],
            "conversionStrategy": {"phases": []},
        }

        def handler(prompt, task):
            if task == "planning":
                return json.dumps(plan)
            assert "getServerSideProps" in prompt
            return rn_screen(task)

        tracker = ProgressTracker()
        converter, ai = make_converter(handler, tracker=tracker)
        summary = await converter.convert()

        assert ai.tasks == ["planning", "ProductDetailsScreen"]
        assert summary.converted == 1
        assert summary.results[0].source_file == "pages/products/[id].tsx"
        assert converter.styling == "stylesheet"
        assert tracker.get("planning").detail == "AI plan, 1 screens, 0 phases"
        navigator = (tmp_path / "out/src/navigation/AppNavigator.tsx").read_text()
        assert 'name="ProductDetails"' in navigator

    @pytest.mark.anyio
    async def test_runtime_fix_disabled(self, make_converter):
        config = ConversionConfig(conversion=ConversionSettings(runtime_fix=False))
        tracker = ProgressTracker()
        converter, ai = make_converter(page_handler, config=config, tracker=tracker)
        await converter.convert()
        assert tracker.get("runtime_fix").status == "skipped"
        assert converter.fix_report is None

    @pytest.mark.anyio
    async def test_quality_disabled(self, make_converter):
        config = ConversionConfig(quality_improvement=QualitySettings(enabled=False))
        tracker = ProgressTracker()
        converter, ai = make_converter(page_handler, config=config, tracker=tracker)
        summary = await converter.convert()
        assert tracker.get("quality").status == "skipped"
        assert summary.quality is None

    @pytest.mark.anyio
    async def test_web_output_lowers_quality_score(self, make_converter):
        def handler(prompt, task):
            if task == "planning":
                return "no plan"
            return (
                "```tsx\nimport Link from 'next/link';\n"
                "export default () => <Link>x</Link>;\n```"
            )

        config = ConversionConfig(
            conversion=ConversionSettings(auto_fix=False, runtime_fix=False)
        )
        converter, ai = make_converter(handler, config=config)
        summary = await converter.convert()
        assert summary.quality.score < 80
        lines = render_conversion_summary(summary)
        assert any(line.startswith("Quality score: ") for line in lines)
        assert "  Quality score below 80%: review the output by hand." in lines

    @pytest.mark.anyio
    async def test_excluded_file_skipped(self, make_converter):
        config = ConversionConfig(files=FileSettings(exclude_patterns=["pages/about.*"]))
        converter, ai = make_converter(page_handler, config=config)
        result = await converter.convert_file("pages/about.tsx", PlanPhase("Screens"))
        assert result.skipped
        assert result.error == "Excluded by the file patterns in ntrn.config.json"
        assert ai.tasks == []
        assert converter._find_source_file("Based on pages/about.tsx") is None
        assert converter._find_source_file("Based on pages/index.tsx") == "pages/index.tsx"

    @pytest.mark.anyio
    async def test_missing_project(self, tmp_path):
        tracker = ProgressTracker()
        converter = ProfessionalConverter(
            tmp_path / "nope", tmp_path / "out", ScriptedAI(page_handler), tracker=tracker
        )
        with pytest.raises(ProjectNotFoundError):
            await converter.convert()
        assert tracker.get("analysis").status == "failed"


class TestSummary:
    def test_diagnose(self):
        assert diagnose_failure(
            ConversionResult("pages/a.tsx", error="Mistral AI API error 429: slow down")
        ).reason == "AI API rate limit exceeded"
        assert diagnose_failure(
            ConversionResult("pages/a.tsx", error="File not found")
        ).reason == "Source file was not found"
        api = diagnose_failure(ConversionResult("pages/api/x.ts", error="boom"))
        assert api.reason == "Next.js API route (server-side code)"
        assert diagnose_failure(ConversionResult("lib/x.ts", error="boom")).can_auto_fix

    def test_render(self):
        summary = ConversionSummary(
            results=[
                ConversionResult("pages/index.tsx", success=True, output_file="src/screens/HomeScreen.tsx"),
                ConversionResult("pages/api/x.ts", error="boom"),
                ConversionResult("pages/about.tsx", skipped=True, error="AI request rate limited"),
            ]
        )
        lines = render_conversion_summary(summary)
        assert lines[:3] == ["Converted: 1", "Failed:    1", "Skipped:   1"]
        assert "  [!] pages/api/x.ts: Next.js API route (server-side code)" in lines
        assert "  [-] pages/about.tsx: AI request rate limited" in lines

    def test_render_all_converted(self):
        summary = ConversionSummary(results=[ConversionResult("a.tsx", success=True)])
        assert render_conversion_summary(summary) == ["Converted: 1", "Failed:    0", "Skipped:   0"]

    def test_render_plan_and_quality(self):
        summary = ConversionSummary(
            results=[ConversionResult("a.tsx", success=True)],
            plan=ConversionPlan(
                app_purpose="A shop",
                critical_issues=[{"issue": "SSR data fetching", "priority": "high"}],
            ),
            quality=QualityReport(
                checks=[
                    QualityCheck("Verify navigation structure works", True),
                    QualityCheck("Check for runtime errors", False, ["src/a.tsx: onClick"]),
                ]
            ),
        )
        lines = render_conversion_summary(summary)
        assert lines[3:] == [
            "App purpose: A shop",
            "Critical issues to address:",
            "  [high] SSR data fetching",
            "Quality score: 50% (1/2 checks passed)",
            "  [!] Check for runtime errors",
            "      src/a.tsx: onClick",
            "  Quality score below 80%: review the output by hand.",
        ]
