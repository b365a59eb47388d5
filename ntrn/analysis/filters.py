"""Source-file filtering shared by every scanner."""

from __future__ import annotations

import os
from collections.abc import Iterable, Iterator
from fnmatch import fnmatchcase
from pathlib import Path, PurePosixPath

SOURCE_EXTENSIONS = (".js", ".jsx", ".ts", ".tsx")

# Directories never worth descending into
SKIP_DIRS = {
    "node_modules",
    ".git",
    ".next",
    ".expo",
    ".turbo",
    ".vercel",
    "dist",
    "build",
    "out",
    "coverage",
}

_TEST_MARKERS = (".test.", ".spec.", ".stories.")


def is_source_file(path: str | os.PathLike[str]) -> bool:
    """True for JavaScript/TypeScript sources (``.js .jsx .ts .tsx``)."""
    return os.fspath(path).endswith(SOURCE_EXTENSIONS)


def is_test_file(path: str | os.PathLike[str]) -> bool:
    p = Path(path)
    return any(marker in p.name for marker in _TEST_MARKERS) or "__tests__" in p.parts


def matches_any(path: str | os.PathLike[str], patterns: Iterable[str]) -> bool:
    """True if any glob in *patterns* matches *path* or one of its trailing segments.

    ``*`` also crosses ``/``, and a leading ``**/`` matches at the top level too,
    so ``*.test.*`` and ``__tests__/**`` apply at any depth.
    """
    parts = PurePosixPath(os.fspath(path).replace("\\", "/")).parts
    tails = ["/".join(parts[i:]) for i in range(len(parts))]
    for pattern in patterns:
        if pattern.startswith("**/"):
            pattern = pattern[3:]
        if any(fnmatchcase(tail, pattern) for tail in tails):
            return True
    return False


def should_skip_dir(name: str) -> bool:
    return name in SKIP_DIRS or name.startswith(".")


def iter_files(root: str | os.PathLike[str]) -> Iterator[Path]:
    """Yield every regular file under *root*, skipping build and VCS directories."""
    for dirpath, dirnames, filenames in os.walk(root):
        dirnames[:] = sorted(d for d in dirnames if not should_skip_dir(d))
        for name in sorted(filenames):
            yield Path(dirpath) / name


def iter_source_files(root: str | os.PathLike[str]) -> Iterator[Path]:
    for path in iter_files(root):
        if is_source_file(path):
            yield path


def strip_source_extension(name: str) -> str:
    """``page.tsx`` → ``page``; names without a source extension are unchanged."""
    for ext in SOURCE_EXTENSIONS:
        if name.endswith(ext):
            return name[: -len(ext)]
    return name
