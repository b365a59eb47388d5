"""Tests for the post-conversion quality checks."""

from __future__ import annotations

import pytest
from conftest import write_tree

from ntrn.conversion.models import ConversionResult, QualityReport
from ntrn.conversion.plan import QUALITY_CHECKS
from ntrn.conversion.quality import QualityChecker

CLEAN_SCREEN = """\
import React from 'react';
import { View, Text } from 'react-native';

export function AboutScreen() {
  return (
    <View>
      <Text>About</Text>
    </View>
  );
}
"""

WEB_SCREEN = """\
import React from 'react';
import Link from 'next/link';

export function ShopScreen() {
  return <div className="p-4" onClick={() => window.alert('x')}>Shop</div>;
}
"""

NAVIGATOR = "export function AppNavigator() { return <Stack.Navigator />; }\n"


def converted(*files: str) -> list[ConversionResult]:
    return [
        ConversionResult(f"pages/{i}.tsx", success=True, output_file=f)
        for i, f in enumerate(files)
    ]


@pytest.fixture
def output(tmp_path):
    return write_tree(
        tmp_path / "out",
        {
            "src/navigation/AppNavigator.tsx": NAVIGATOR,
            "src/screens/AboutScreen.tsx": CLEAN_SCREEN,
            "src/screens/ShopScreen.tsx": WEB_SCREEN,
        },
    )


class TestQualityChecker:
    def test_clean_output_scores_full(self, output):
        results = converted("src/screens/AboutScreen.tsx")
        report = QualityChecker(output).run(QUALITY_CHECKS, results)
        assert report.score == 100
        assert all(c.passed for c in report.checks)
        assert [c.name for c in report.checks] == QUALITY_CHECKS

    def test_web_output_fails_checks(self, output):
        report = QualityChecker(output).run(
            QUALITY_CHECKS,
            converted("src/screens/AboutScreen.tsx", "src/screens/ShopScreen.tsx"),
        )
        by_name = {c.name: c for c in report.checks}
        imports = by_name["Validate all imports are React Native compatible"]
        assert imports.findings == ["src/screens/ShopScreen.tsx: imports next/link"]
        text = by_name["Ensure all text is wrapped in Text components"]
        assert text.findings == ["src/screens/ShopScreen.tsx: text outside <Text>: 'Shop'"]
        web = by_name["Check for runtime errors"]
        assert web.findings == [
            "src/screens/ShopScreen.tsx: onClick, <div, className=, window."
        ]
        assert by_name["Verify navigation structure works"].passed
        assert report.passed == 1
        assert report.score == 25

    def test_missing_navigator(self, tmp_path):
        report = QualityChecker(tmp_path).run(["Verify navigation structure works"], [])
        assert not report.checks[0].passed
        assert report.checks[0].findings == ["src/navigation/AppNavigator.tsx is missing"]

    def test_unknown_check_passes(self, output):
        report = QualityChecker(output).run(["Check accessibility labels"], [])
        assert report.checks[0].passed

    def test_failed_and_missing_results_ignored(self, output):
        results = [
            ConversionResult(
                "pages/shop.tsx", error="boom", output_file="src/screens/ShopScreen.tsx"
            ),
            ConversionResult(
                "pages/gone.tsx", success=True, output_file="src/screens/GoneScreen.tsx"
            ),
        ]
        report = QualityChecker(output).run(QUALITY_CHECKS, results)
        assert report.score == 100

    def test_empty_report_scores_full(self):
        assert QualityReport().score == 100
