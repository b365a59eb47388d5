"""Quality checks run over the converted project after conversion.

Each plan quality check is matched by name to a check below. Names with no
automated check pass.
"""

from __future__ import annotations

import os
import re
from pathlib import Path
from typing import Callable

import structlog

from ntrn.analysis.code_parser import CodeParser
from ntrn.conversion.models import ConversionResult, QualityCheck, QualityReport

log = structlog.get_logger("ntrn.conversion")

REVIEW_THRESHOLD = 80

NAVIGATOR_FILE = "src/navigation/AppNavigator.tsx"

_NEXT_IMPORT_RE = re.compile(
    r"""(?:\bfrom\s+|\bimport\s+|\brequire\(\s*)"""
    r"""['"](next(?:/[^'"]*)?|@next/[^'"]*|next-[^'"]*)['"]"""
)
WEB_ONLY_PATTERNS = ("onClick", "<div", "<span", "className=", "window.", "document.")


class QualityChecker:
    """Score the files written by a conversion run."""

    def __init__(
        self, output_path: str | os.PathLike[str], parser: CodeParser | None = None
    ) -> None:
        self.output_path = Path(output_path)
        self.parser = parser or CodeParser()
        self._checks: dict[str, Callable[[dict[str, str]], list[str]]] = {
            "validate all imports are react native compatible": self.check_imports,
            "ensure all text is wrapped in text components": self.check_text_wrapping,
            "verify navigation structure works": self.check_navigation,
            "check for runtime errors": self.check_web_patterns,
        }

    def run(self, check_names: list[str], results: list[ConversionResult]) -> QualityReport:
        files = self._converted_files(results)
        report = QualityReport()
        for name in check_names:
            check = self._checks.get(name.strip().lower())
            findings = check(files) if check else []
            report.checks.append(QualityCheck(name=name, passed=not findings, findings=findings))
            log.info("quality.check", check=name, passed=not findings, findings=len(findings))
        if report.score < REVIEW_THRESHOLD:
            log.warning("quality.review_recommended", score=report.score)
        else:
            log.info("quality.complete", score=report.score)
        return report

    def check_imports(self, files: dict[str, str]) -> list[str]:
        findings = []
        for rel, content in files.items():
            for module in dict.fromkeys(_NEXT_IMPORT_RE.findall(content)):
                findings.append(f"{rel}: imports {module}")
        return findings

    def check_text_wrapping(self, files: dict[str, str]) -> list[str]:
        findings = []
        for rel, content in files.items():
            if not rel.endswith((".tsx", ".jsx")):
                continue
            texts = self.parser.unwrapped_text(self.parser.parse_source(content, rel))
            if texts:
                findings.append(f"{rel}: text outside <Text>: {texts[0]!r}")
        return findings

    def check_navigation(self, files: dict[str, str]) -> list[str]:
        navigator = self.output_path / NAVIGATOR_FILE
        if not navigator.is_file():
            return [f"{NAVIGATOR_FILE} is missing"]
        if "Stack.Navigator" not in navigator.read_text(encoding="utf-8", errors="replace"):
            return [f"{NAVIGATOR_FILE} does not render a navigator"]
        return []

    def check_web_patterns(self, files: dict[str, str]) -> list[str]:
        findings = []
        for rel, content in files.items():
            found = [p for p in WEB_ONLY_PATTERNS if p in content]
            if found:
                findings.append(f"{rel}: {', '.join(found)}")
        return findings

    def _converted_files(self, results: list[ConversionResult]) -> dict[str, str]:
        files = {}
        for result in results:
            if not result.success or not result.output_file:
                continue
            path = self.output_path / result.output_file
            try:
                files[result.output_file] = path.read_text(encoding="utf-8", errors="replace")
            except OSError as exc:
                log.debug("quality.read_failed", path=result.output_file, error=str(exc))
        return files
