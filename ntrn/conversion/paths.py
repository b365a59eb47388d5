"""Where each converted Next.js file lands in the Expo project."""

from __future__ import annotations

import re
from pathlib import PurePosixPath

from ntrn.analysis.filters import strip_source_extension

# Next.js files with no React Native counterpart
NEXT_ONLY_STEMS = {"_app", "_document", "_error", "404", "500"}
# App Router files that become navigation structure rather than screens
APP_STRUCTURE_STEMS = {"layout", "loading", "error", "not-found", "template", "global-error"}

_WORD_RE = re.compile(r"[A-Za-z0-9]+")


def pascal_case(value: str) -> str:
    """``user-profile`` → ``UserProfile``; ``[id]`` → ``Id``; ``myButton`` → ``MyButton``."""
    return "".join(w[0].upper() + w[1:] for w in _WORD_RE.findall(value))


def _route_segments(parts: tuple[str, ...]) -> list[str]:
    """Drop route groups like ``(auth)``; keep the words of dynamic segments."""
    return [p for p in parts if not (p.startswith("(") and p.endswith(")"))]


def _with_suffix(name: str, suffix: str) -> str:
    return name if name.lower().endswith(suffix.lower()) else name + suffix


def _identifier(name: str, default: str, prefix: str = "Api") -> str:
    """*name* as a JS identifier; names starting with a digit get *prefix*."""
    if not name:
        return default
    return prefix + name if name[0].isdigit() else name


def _normalize(path: str) -> PurePosixPath:
    path = path.replace("\\", "/")
    while path.startswith(("./", "/")):
        path = path[2:] if path.startswith("./") else path[1:]
    return PurePosixPath(path)


def screen_name_for(path: str) -> str | None:
    """``app/dashboard/settings/page.tsx`` → ``DashboardSettingsScreen``."""
    output = determine_output_path(path)
    if output is None or not output.startswith("src/screens/"):
        return None
    return PurePosixPath(output).stem


def determine_output_path(path: str) -> str | None:
    """Map a project-relative source path to its path in the Expo project.

    Returns ``None`` for files with no mobile counterpart (``_app``,
    ``_document``, error pages, App Router layouts). Outputs are always under
    ``src/``; screens and services are flattened into one directory each.
    """
    rel = _normalize(path)
    parts = rel.parts
    if parts and parts[0] == "src" and len(parts) > 1:
        parts = parts[1:]
    if not parts:
        return None

    name = parts[-1]
    is_declaration = name.endswith(".d.ts")
    stem = name[: -len(".d.ts")] if is_declaration else strip_source_extension(name)
    has_jsx = name.endswith((".tsx", ".jsx"))
    top = parts[0] if len(parts) > 1 else ""
    dirs = parts[1:-1]

    if top in ("pages", "app"):
        if stem in NEXT_ONLY_STEMS:
            return None
        if (top == "pages" and dirs[:1] == ("api",)) or (top == "app" and stem == "route"):
            segments = _route_segments(dirs[1:] if dirs[:1] == ("api",) else dirs)
            if top == "pages":
                segments.append(stem)
            base = _identifier(pascal_case(" ".join(segments)), "Api")
            return f"src/services/{_with_suffix(base, 'Service')}.ts"
        if top == "app" and stem in APP_STRUCTURE_STEMS:
            return None
        segments = _route_segments(dirs)
        if stem not in ("page", "index"):
            segments.append(stem)
        base = _identifier(pascal_case(" ".join(segments)), "Home", prefix="Page")
        return f"src/screens/{_with_suffix(base, 'Screen')}.tsx"

    if top in ("api",):
        base = _identifier(pascal_case(" ".join(list(dirs) + [stem])), "Api")
        return f"src/services/{_with_suffix(base, 'Service')}.ts"

    if top in ("components", "Components", "ui"):
        sub = "/".join(dirs)
        prefix = f"src/components/{sub}/" if sub else "src/components/"
        return f"{prefix}{pascal_case(stem)}.tsx"

    if top in ("contexts", "context") or "context" in stem.lower():
        return f"src/contexts/{_with_suffix(pascal_case(stem), 'Context')}.tsx"

    if top == "hooks" or stem.startswith("use"):
        return f"src/hooks/{stem}{'.tsx' if has_jsx else '.ts'}"

    if top in ("lib", "utils"):
        sub = "/".join(dirs)
        prefix = f"src/utils/{sub}/" if sub else "src/utils/"
        return f"{prefix}{stem}{'.tsx' if has_jsx else '.ts'}"

    if top == "types" or is_declaration:
        sub = "/".join(dirs)
        prefix = f"src/types/{sub}/" if sub else "src/types/"
        return f"{prefix}{stem}.ts"

    parent = "/".join(parts[:-1])
    prefix = f"src/{parent}/" if parent else "src/"
    return f"{prefix}{stem}{'.tsx' if has_jsx or name.endswith('.js') else '.ts'}"
