"""Checks that converted code looks like React Native rather than web React."""

from __future__ import annotations

import re

from ntrn.analysis.code_parser import CodeParser
from ntrn.conversion.models import ValidationResult

MISSING_REACT_IMPORT = "Missing React import"
MISSING_EXPORT = "Missing export statement"
HTML_ELEMENTS = "Contains HTML elements that should be converted to React Native components"
ON_CLICK = "Contains onClick events that should be onPress in React Native"
CLASS_NAME = "Contains className which should be style in React Native"
SYNTAX_ERRORS = "Contains syntax errors"

_HTML_TAG_RE = re.compile(r"<(?:div|span|p)(?=[\s>/])")


def validate_code(code: str, parser: CodeParser | None = None) -> ValidationResult:
    """Report web-only constructs left in *code*.

    With a *parser*, the code is also parsed as TSX and syntax errors are
    reported.
    """
    issues = []
    if "import React" not in code:
        issues.append(MISSING_REACT_IMPORT)
    if "export" not in code:
        issues.append(MISSING_EXPORT)
    if _HTML_TAG_RE.search(code):
        issues.append(HTML_ELEMENTS)
    if "onClick" in code:
        issues.append(ON_CLICK)
    if "className" in code:
        issues.append(CLASS_NAME)
    if parser is not None and parser.parse_source(code, "converted.tsx").has_errors:
        issues.append(SYNTAX_ERRORS)
    return ValidationResult(is_valid=not issues, issues=issues)
