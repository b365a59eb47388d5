"""Prompts for planning, converting and repairing files."""

from __future__ import annotations

import json
from typing import Any

from ntrn.conversion.models import MobileScreen, PlanPhase

_MAX_SOURCE_CHARS = 20000

PLANNING_INSTRUCTIONS = """\
You are planning the migration of a Next.js web application to a React Native
app built with Expo SDK 53, React Navigation 7 and TypeScript.

# Task
Study the project analysis below and decide which mobile screens the app needs.
Base each screen on a real source file where one exists.

# Output
Reply with ONE JSON object in a ```json fenced block, with these keys:
- "appPurpose": one sentence describing what the app does
- "userJourneys": list of short strings
- "mobileScreens": list of {"screenName", "purpose", "sourceAnalysis", "components"}
  where "screenName" is PascalCase ending in "Screen" and "sourceAnalysis" names
  the source file path (for example "app/dashboard/page.tsx")
- "architecture": {"navigation": "stack" | "tab" | "drawer",
  "stateManagement": string, "styling": "nativewind" | "stylesheet"}
- "conversionStrategy": {"phases": [{"name", "priority", "files", "strategy"}]}
- "mobileEnhancements": list of short strings
"""

CONVERSION_RULES = """\
# Rules
1. Use React Native primitives only: View, Text, TouchableOpacity, TextInput,
   ScrollView, FlatList, Image. No HTML elements.
2. Every string rendered on screen must be inside <Text>.
3. Replace onClick with onPress and className with style objects from
   StyleSheet.create.
4. Replace next/link and next/router with React Navigation (useNavigation).
5. Replace next/image with Image from react-native.
6. Server-only code (getServerSideProps, API handlers) becomes client-side
   service calls.
7. Start with `import React from 'react';` and export the component.

# Output
Return ONLY the complete TypeScript file in a single ```tsx fenced block.
"""

FIX_INSTRUCTIONS = """\
You are fixing React Native code. Fix ONLY the listed issues, keep the logic
and behaviour unchanged, and return ONLY the fixed code in a ```tsx block.
"""


def _clip(source: str) -> str:
    if len(source) <= _MAX_SOURCE_CHARS:
        return source
    return source[:_MAX_SOURCE_CHARS] + "\n// … truncated …"


def describe_file_type(path: str) -> str:
    if "/page." in f"/{path}":
        return "page component (convert to screen)"
    if "/layout." in f"/{path}":
        return "layout component (convert to navigation structure)"
    if "components/" in path:
        return "UI component"
    if "api/" in path or "/route." in f"/{path}":
        return "API route (convert to a client service module)"
    return "module"


def format_planning_prompt(analysis: dict[str, Any]) -> str:
    """Planning prompt with the JSON analysis summary appended."""
    summary = {
        "routing": analysis.get("patterns", {}).get("routing"),
        "dependencies": analysis.get("dependencies"),
        "architecture": analysis.get("architecture"),
        "styling": analysis.get("patterns", {}).get("styling"),
        "data_fetching": analysis.get("patterns", {}).get("data_fetching"),
        "file_counts": analysis.get("structure", {}).get("file_counts"),
        "recommendations": analysis.get("recommendations"),
    }
    return (
        PLANNING_INSTRUCTIONS
        + "\n# Project analysis\n```json\n"
        + json.dumps(summary, indent=2, default=str)
        + "\n```\n"
    )


def format_file_prompt(
    path: str, source: str, phase: PlanPhase, styling: str, export_name: str | None = None
) -> str:
    parts = [
        "Convert this Next.js file to React Native.",
        f"File: {path}",
        f"Kind: {describe_file_type(path)}",
        f"Phase: {phase.name} ({phase.priority} priority)",
    ]
    if phase.strategy:
        parts.append(f"Strategy: {phase.strategy}")
    parts.append(f"Styling: {styling}")
    if export_name:
        parts.append(f"Export it as `export function {export_name}`.")
    parts.append("")
    parts.append(CONVERSION_RULES)
    parts.append(f"# Source\n```tsx\n{_clip(source)}\n```")
    return "\n".join(parts)


def format_screen_prompt(screen: MobileScreen, source: str, styling: str) -> str:
    parts = [
        f"Create the React Native screen `{screen.screen_name}`.",
        f"Purpose: {screen.purpose or 'not specified'}",
        f"Based on: {screen.source_analysis or 'no source file'}",
    ]
    if screen.components:
        parts.append(f"Components: {', '.join(screen.components)}")
    parts.append(f"Styling: {styling}")
    parts.append(
        f"Export it as `export function {screen.screen_name}` and type its props "
        f"with RootStackScreenProps from '../types/navigation'."
    )
    parts.append("")
    parts.append(CONVERSION_RULES)
    if source:
        parts.append(f"# Original source\n```tsx\n{_clip(source)}\n```")
    else:
        parts.append("No source file was found; build the screen from its purpose.")
    return "\n".join(parts)


def format_fix_prompt(code: str, issues: list[str]) -> str:
    issue_lines = "\n".join(f"- {issue}" for issue in issues)
    return f"{FIX_INSTRUCTIONS}\n# Issues\n{issue_lines}\n\n# Code\n```tsx\n{code}\n```\n"
