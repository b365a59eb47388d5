"""RuntimeErrorFixer: regex repairs for common React Native runtime errors.

:func:`fix_source` is a pure text transform; :class:`RuntimeErrorFixer` applies
it to every source file of a generated Expo project and normalises its
``package.json``. Substitutions are purely textual, so the only guarantee is
that the web-only constructs they target are gone afterwards.
"""

from __future__ import annotations

import json
import os
import re
from dataclasses import dataclass, field
from pathlib import Path

import structlog

from ntrn.analysis.filters import is_source_file
from ntrn.conversion.scaffold import EXPO_DEPENDENCIES, EXPO_DEV_DEPENDENCIES, EXPO_MAIN, EXPO_SCRIPTS

log = structlog.get_logger("ntrn.fixer")

RN_COMPONENTS = (
    "View",
    "Text",
    "StyleSheet",
    "TouchableOpacity",
    "TextInput",
    "ScrollView",
    "FlatList",
    "Image",
)

UNAVAILABLE_MODULES = ("react-native-haptic-feedback", "expo-local-authentication")

WEB_ONLY_PACKAGES = ("next", "react-dom")

_SKIP_DIRS = {"node_modules", ".git", ".expo"}

# (pattern, replacement) applied in order
_HTML_TO_RN: list[tuple[re.Pattern[str], str]] = [
    (re.compile(r"<div(?=[\s>/])"), "<View"),
    (re.compile(r"</div>"), "</View>"),
    (re.compile(r"<span(?=[\s>/])"), "<Text"),
    (re.compile(r"</span>"), "</Text>"),
    (re.compile(r"<p(?=[\s>/])"), "<Text"),
    (re.compile(r"</p>"), "</Text>"),
    (re.compile(r"<button(?=[\s>/])"), "<TouchableOpacity"),
    (re.compile(r"</button>"), "</TouchableOpacity>"),
    (re.compile(r"<input(?=[\s>/])"), "<TextInput"),
    (re.compile(r"</input>"), ""),
    (re.compile(r"<img(?=[\s>/])"), "<Image"),
    (re.compile(r"\bonClick\b"), "onPress"),
    (re.compile(r"\bclassName\b"), "style"),
]

_NESTED_TEXT_RE = re.compile(r"<Text\b[^>]*>\s*(<Text\b[^>]*>[^<]*</Text>)\s*</Text>")
_ASSET_IMPORT_RE = re.compile(
    r"^import\s.+?\sfrom\s+['\"](?:\.\./)+(?:[^'\"]+/)?assets/[^'\"]+['\"];?[ \t]*$", re.MULTILINE
)
_REACT_IMPORT_RE = re.compile(r"^import\s+React\b.*$", re.MULTILINE)
_RN_IMPORT_RE = re.compile(r"import\s*\{([^}]*)\}\s*from\s*(['\"])react-native\2")


@dataclass
class FixOutcome:
    content: str
    applied: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.applied)


def _collapse_nested_text(text: str) -> str:
    previous = None
    while previous != text:
        previous = text
        text = _NESTED_TEXT_RE.sub(r"\1", text)
    return text


def _insert_after_react_import(text: str, line: str) -> str:
    match = _REACT_IMPORT_RE.search(text)
    if match:
        return text[: match.end()] + "\n" + line + text[match.end() :]
    return f"{line}\n{text}"


def _ensure_rn_imports(text: str, names: list[str]) -> str:
    match = _RN_IMPORT_RE.search(text)
    if match:
        existing = [n.strip() for n in match.group(1).split(",") if n.strip()]
        merged = existing + [n for n in names if n not in existing]
        quote = match.group(2)
        replacement = f"import {{ {', '.join(merged)} }} from {quote}react-native{quote}"
        return text[: match.start()] + replacement + text[match.end() :]
    return _insert_after_react_import(text, f"import {{ {', '.join(names)} }} from 'react-native';")


def _imported_rn_names(text: str) -> set[str]:
    names: set[str] = set()
    for match in _RN_IMPORT_RE.finditer(text):
        for part in match.group(1).split(","):
            part = part.strip()
            if part:
                names.add(part.split(" as ")[-1].strip())
    return names


def fix_source(text: str) -> FixOutcome:
    """Apply every repair to *text* and report which ones changed it."""
    outcome = FixOutcome(content=text)

    def apply(name: str, new: str) -> None:
        if new != outcome.content:
            outcome.content = new
            outcome.applied.append(name)

    apply("nested_text", _collapse_nested_text(outcome.content))
    apply(
        "asset_imports",
        _ASSET_IMPORT_RE.sub(
            lambda m: f"// asset import removed, file not bundled: {m.group(0).strip()}",
            outcome.content,
        ),
    )

    converted = outcome.content
    for pattern, replacement in _HTML_TO_RN:
        converted = pattern.sub(replacement, converted)
    apply("html_elements", converted)

    for module in UNAVAILABLE_MODULES:
        pattern = re.compile(rf"^import\s.+?\sfrom\s+['\"]{re.escape(module)}['\"];?[ \t]*$", re.MULTILINE)
        apply(
            "unavailable_modules",
            pattern.sub(f"// {module} import removed, not available in Expo Go", outcome.content),
        )

    content = outcome.content
    if "React." in content and "import React" not in content:
        apply("react_import", f"import React from 'react';\n{content}")

    content = outcome.content
    imported = _imported_rn_names(content)
    needed = [c for c in RN_COMPONENTS if c != "StyleSheet" and re.search(rf"<{c}(?=[\s>/])", content)]
    if "StyleSheet." in content or "style={" in content:
        needed.append("StyleSheet")
    missing = [c for c in needed if c not in imported]
    if missing:
        apply("react_native_imports", _ensure_rn_imports(content, missing))

    # "unavailable_modules" can be recorded once per module
    outcome.applied = list(dict.fromkeys(outcome.applied))
    return outcome


def _object_field(data: dict, key: str) -> dict:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        log.warning("fixer.package_json_field_invalid", field=key)
        return {}
    return dict(value)


@dataclass
class FixReport:
    fixed_files: list[str] = field(default_factory=list)
    errors: dict[str, str] = field(default_factory=dict)
    package_json_updated: bool = False


class RuntimeErrorFixer:
    """Repair every source file of an Expo project in place."""

    def __init__(self, project_path: str | os.PathLike[str], *, backups: bool = True) -> None:
        self.project_path = Path(project_path)
        self.backups = backups

    def fix_project(self) -> FixReport:
        report = FixReport()
        for path in self._source_files():
            try:
                if self.fix_file(path):
                    report.fixed_files.append(path.relative_to(self.project_path).as_posix())
            except (OSError, UnicodeDecodeError) as exc:
                rel = path.relative_to(self.project_path).as_posix()
                log.warning("fixer.file_failed", path=rel, error=str(exc))
                report.errors[rel] = str(exc)
        try:
            report.package_json_updated = self.fix_package_json()
        except (OSError, ValueError) as exc:
            log.warning("fixer.package_json_failed", error=str(exc))
            report.errors["package.json"] = str(exc)
        log.info(
            "fixer.complete",
            fixed=len(report.fixed_files),
            errors=len(report.errors),
            package_json=report.package_json_updated,
        )
        return report

    def fix_file(self, path: Path) -> bool:
        original = path.read_text(encoding="utf-8")
        outcome = fix_source(original)
        if not outcome.changed:
            return False
        if self.backups:
            path.with_name(path.name + ".backup").write_text(original, encoding="utf-8")
        path.write_text(outcome.content, encoding="utf-8")
        log.info(
            "fixer.file_fixed",
            path=path.relative_to(self.project_path).as_posix(),
            fixes=outcome.applied,
        )
        return True

    def fix_package_json(self) -> bool:
        """Align dependencies, scripts and entry point with the Expo template."""
        path = self.project_path / "package.json"
        if not path.is_file():
            return False
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            raise ValueError("package.json is not a JSON object")

        dependencies = {
            name: version
            for name, version in _object_field(data, "dependencies").items()
            if name not in WEB_ONLY_PACKAGES
        }
        dependencies.update(EXPO_DEPENDENCIES)
        dev_dependencies = _object_field(data, "devDependencies")
        dev_dependencies.update(EXPO_DEV_DEPENDENCIES)

        updated = dict(data)
        updated["dependencies"] = dependencies
        updated["devDependencies"] = dev_dependencies
        updated["scripts"] = {**_object_field(data, "scripts"), **EXPO_SCRIPTS}
        updated["main"] = EXPO_MAIN
        if updated == data:
            return False
        path.write_text(json.dumps(updated, indent=2) + "\n", encoding="utf-8")
        return True

    def _source_files(self) -> list[Path]:
        files: list[Path] = []
        src = self.project_path / "src"
        if src.is_dir():
            for dirpath, dirnames, filenames in os.walk(src):
                dirnames[:] = sorted(d for d in dirnames if d not in _SKIP_DIRS)
                files.extend(Path(dirpath) / n for n in sorted(filenames) if is_source_file(n))
        app = self.project_path / "App.tsx"
        if app.is_file():
            files.append(app)
        return files
