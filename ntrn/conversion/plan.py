"""Parse the AI conversion plan, or build one without AI."""

from __future__ import annotations

import json
import re
from typing import Any

import structlog

from ntrn.analysis.models import ProjectAnalysis
from ntrn.conversion.models import ConversionPlan, MobileScreen, PlanPhase

log = structlog.get_logger("ntrn.conversion")

QUALITY_CHECKS = [
    "Validate all imports are React Native compatible",
    "Ensure all text is wrapped in Text components",
    "Verify navigation structure works",
    "Check for runtime errors",
]

_FENCED_JSON_RE = re.compile(r"```(?:json)?\s*(\{[\s\S]*?\})\s*```")
_BARE_JSON_RE = re.compile(r"(\{[\s\S]*\})")
_CODE_BLOCK_RE = re.compile(r"```(?:typescript|tsx|ts|javascript|jsx|js)?[ \t]*\n?([\s\S]*?)\s*```")
_SOURCE_PATH_RE = re.compile(r"[\w@()\[\]./-]+\.(?:tsx|ts|jsx|js)\b")


def extract_json_object(text: str) -> dict[str, Any] | None:
    """First JSON object in *text*: a fenced block if present, else the outermost braces."""
    for pattern in (_FENCED_JSON_RE, _BARE_JSON_RE):
        match = pattern.search(text)
        if not match:
            continue
        try:
            value = json.loads(match.group(1))
        except ValueError:
            continue
        if isinstance(value, dict):
            return value
    return None


def extract_code(text: str) -> str:
    """Body of the first fenced code block, or the whole reply when there is none."""
    match = _CODE_BLOCK_RE.search(text)
    if match:
        return match.group(1).strip()
    return text.strip()


def _phases(raw: Any) -> list[PlanPhase]:
    phases = []
    for item in raw or []:
        if not isinstance(item, dict):
            continue
        files = item.get("files") or item.get("screens") or []
        phases.append(
            PlanPhase(
                name=str(item.get("name") or "Conversion"),
                priority=str(item.get("priority") or "medium"),
                files=[str(f) for f in files if f],
                strategy=str(item.get("strategy") or ""),
            )
        )
    return phases


def _screens(raw: Any) -> list[MobileScreen]:
    screens = []
    for item in raw or []:
        if not isinstance(item, dict) or not item.get("screenName"):
            continue
        screens.append(
            MobileScreen(
                screen_name=str(item["screenName"]),
                purpose=str(item.get("purpose") or ""),
                source_analysis=str(item.get("sourceAnalysis") or ""),
                components=[str(c) for c in item.get("components") or []],
            )
        )
    return screens


def fallback_plan(analysis: ProjectAnalysis) -> ConversionPlan:
    """A deterministic plan: convert every routed page into a screen."""
    return ConversionPlan(
        architecture={
            "navigation": "stack",
            "stateManagement": "native",
            "styling": "nativewind" if analysis.patterns.styling.has_tailwind else "stylesheet",
        },
        phases=[
            PlanPhase(
                name="Core Components Conversion",
                priority="high",
                files=analysis.patterns.routing.page_files,
                strategy="Convert page components to React Native screens",
            )
        ],
        critical_issues=[
            {"issue": r.title, "solution": r.description, "priority": r.priority}
            for r in analysis.recommendations
        ],
        quality_checks=list(QUALITY_CHECKS),
    )


def parse_plan(text: str, analysis: ProjectAnalysis) -> ConversionPlan:
    """Turn the planning reply into a :class:`ConversionPlan`.

    Replies in the screen-oriented format (``mobileScreens`` plus
    ``conversionStrategy``) and replies with a plain ``phases`` list are both
    accepted. Anything else falls back to :func:`fallback_plan`.
    """
    data = extract_json_object(text)
    if data is None:
        log.warning("plan.unparseable", reason="no JSON object in reply")
        return fallback_plan(analysis)

    architecture = data.get("architecture") if isinstance(data.get("architecture"), dict) else {}
    if data.get("mobileScreens") and isinstance(data.get("conversionStrategy"), dict):
        return ConversionPlan(
            architecture=architecture,
            phases=_phases(data["conversionStrategy"].get("phases")),
            mobile_screens=_screens(data["mobileScreens"]),
            app_purpose=str(data.get("appPurpose") or ""),
            quality_checks=list(QUALITY_CHECKS),
            from_ai=True,
        )

    phases = _phases(data.get("phases"))
    if phases:
        return ConversionPlan(
            architecture=architecture,
            phases=phases,
            app_purpose=str(data.get("appPurpose") or ""),
            critical_issues=[i for i in data.get("criticalIssues") or [] if isinstance(i, dict)],
            quality_checks=list(data.get("qualityChecks") or QUALITY_CHECKS),
            from_ai=True,
        )

    log.warning("plan.unparseable", reason="no screens or phases in reply")
    return fallback_plan(analysis)


def candidate_source_files(source_analysis: str) -> list[str]:
    """Source paths a screen description may refer to, most specific first."""
    candidates = _SOURCE_PATH_RE.findall(source_analysis)
    if "app/login" in source_analysis:
        candidates.append("app/login/page.tsx")
    if "app/dashboard" in source_analysis:
        candidates.append("app/dashboard/page.tsx")
    match = re.search(r"pages/([\w\[\]-]+)", source_analysis)
    if match:
        candidates.append(f"pages/{match.group(1)}.tsx")
    return list(dict.fromkeys(candidates))
