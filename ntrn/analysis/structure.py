"""Categorize a Next.js project's files by role (pages, components, hooks, …)."""

from __future__ import annotations

import os
from collections import Counter
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath

import structlog

from ntrn.analysis.filters import is_source_file, is_test_file, iter_files, should_skip_dir
from ntrn.analysis.models import DirectoryInfo, SourceFile

log = structlog.get_logger("ntrn.analysis")

CATEGORIES = (
    "pages",
    "api",
    "layouts",
    "components",
    "hooks",
    "contexts",
    "utils",
    "lib",
    "types",
    "styles",
)

MAX_DIRECTORY_DEPTH = 3

# Top-level directory (after an optional ``src/``) → category
_DIRECTORY_CATEGORIES: dict[str, str] = {
    "components": "components",
    "Components": "components",
    "ui": "components",
    "hooks": "hooks",
    "contexts": "contexts",
    "context": "contexts",
    "utils": "utils",
    "lib": "lib",
    "types": "types",
    "styles": "styles",
}


def categorize(rel_path: str | PurePosixPath) -> str | None:
    """Return the category for a project-relative path, or ``None``.

    Rules, first match wins:
      * ``pages/api/**`` and ``app/**/route.*`` are API routes
      * ``pages/**`` and ``app/**/page.*`` are pages, ``app/**/layout.*`` layouts
      * ``components``, ``hooks``, ``contexts``, ``utils``, ``lib``, ``types``,
        ``styles`` directories map to themselves (``ui`` counts as components)

    Each rule also applies beneath a leading ``src/``. Only JS/TS sources are
    categorized, except under ``styles``. Test and story files are ignored.
    """
    parts = PurePosixPath(rel_path).parts
    if not parts:
        return None
    if parts[0] == "src" and len(parts) > 1:
        parts = parts[1:]
    if len(parts) < 2:
        return None

    top, name = parts[0], parts[-1]
    if is_test_file(PurePosixPath(*parts)):
        return None

    if top == "styles":
        return "styles"
    if not is_source_file(name):
        return None

    stem = name.split(".", 1)[0]
    if top == "pages":
        return "api" if parts[1] == "api" else "pages"
    if top == "app":
        if stem == "route":
            return "api"
        if stem == "page":
            return "pages"
        if stem == "layout":
            return "layouts"
        return None
    return _DIRECTORY_CATEGORIES.get(top)


@dataclass
class ProjectStructure:
    root: Path
    files: dict[str, list[SourceFile]] = field(
        default_factory=lambda: {c: [] for c in CATEGORIES}
    )

    def counts(self) -> dict[str, int]:
        return {category: len(items) for category, items in self.files.items()}

    def paths(self, category: str) -> list[str]:
        return [f.path for f in self.files.get(category, [])]


def scan_structure(root: str | os.PathLike[str]) -> ProjectStructure:
    """Walk *root* and bucket every recognised file into its category."""
    root = Path(root)
    structure = ProjectStructure(root=root)
    for path in iter_files(root):
        rel = path.relative_to(root).as_posix()
        category = categorize(rel)
        if category is None:
            continue
        try:
            size = path.stat().st_size
        except OSError as exc:
            log.warning("structure.stat_failed", path=rel, error=str(exc))
            size = 0
        structure.files[category].append(
            SourceFile(path=rel, category=category, extension=path.suffix, size=size)
        )
    log.debug("structure.scanned", root=str(root), counts=structure.counts())
    return structure


def analyze_directory(path: str | os.PathLike[str], depth: int = 0) -> DirectoryInfo:
    """Summarize one directory: file count, extensions, subdirectories and patterns.

    Recurses into subdirectories down to ``MAX_DIRECTORY_DEPTH``; deeper levels
    are reported as skipped.
    """
    info = DirectoryInfo()
    if depth > MAX_DIRECTORY_DEPTH:
        info.skipped = True
        return info

    path = Path(path)
    patterns: set[str] = set()
    file_types: Counter[str] = Counter()
    try:
        entries = sorted(path.iterdir(), key=lambda p: p.name)
    except OSError as exc:
        info.error = str(exc)
        return info

    for entry in entries:
        if entry.is_dir():
            if should_skip_dir(entry.name):
                continue
            info.subdirectories.append(entry.name)
            info.children[entry.name] = analyze_directory(entry, depth + 1)
            continue

        info.file_count += 1
        file_types[entry.suffix] += 1
        name = entry.name
        if ".test." in name or ".spec." in name:
            patterns.add("testing")
        if ".stories." in name:
            patterns.add("storybook")
        if name in ("page.tsx", "page.jsx", "page.js"):
            patterns.add("app-router")
        if name in ("layout.tsx", "layout.jsx", "layout.js"):
            patterns.add("layout")

    info.file_types = dict(file_types)
    info.patterns = sorted(patterns)
    return info
