"""IntelligentProjectAnalyzer: deep, AI-free analysis of a Next.js project.

The result feeds the conversion planning prompt, so every phase favours cheap
substring heuristics over real parsing and never raises on odd input: unreadable
files are skipped and a missing or malformed ``package.json`` yields an empty
dependency set.
"""

from __future__ import annotations

import json
import os
from pathlib import Path

import structlog

from ntrn.analysis.filters import (
    SOURCE_EXTENSIONS,
    iter_files,
    iter_source_files,
    should_skip_dir,
    strip_source_extension,
)
from ntrn.analysis.models import (
    ApiStats,
    Architecture,
    CodePatterns,
    ComponentInfo,
    ComponentStats,
    DataFetchingInfo,
    Dependency,
    DependencyReport,
    HookStats,
    PackageInfo,
    ProjectAnalysis,
    Recommendation,
    Route,
    RoutingInfo,
    StructureInfo,
    StylingInfo,
    TechStack,
)
from ntrn.analysis.structure import analyze_directory, scan_structure
from ntrn.exceptions import ProjectNotFoundError

log = structlog.get_logger("ntrn.analysis")

WELL_KNOWN_DIRECTORIES = (
    "app",
    "pages",
    "src",
    "components",
    "lib",
    "utils",
    "hooks",
    "styles",
    "public",
    "api",
    "types",
    "contexts",
)

CONFIG_FILES = (
    "next.config.js",
    "next.config.mjs",
    "tailwind.config.js",
    "tsconfig.json",
    ".eslintrc.json",
    "prettier.config.js",
)

# ── dependency categorization ─────────────────────────────────────────────

_UI_LIBRARIES = {"@mui/material", "@chakra-ui/react", "@mantine/core", "antd", "react-bootstrap"}
_STYLING = {"tailwindcss", "styled-components", "@emotion/react", "sass", "less"}
_STATE = {"redux", "@reduxjs/toolkit", "zustand", "jotai", "recoil", "valtio"}
_TESTING = {"jest", "@testing-library/react", "cypress", "playwright", "vitest"}
_API = {"@tanstack/react-query", "swr", "apollo-client", "relay", "axios", "fetch"}
_DATABASE = {"prisma", "drizzle-orm", "mongoose", "sequelize", "typeorm"}
_AUTH = {"next-auth", "@auth0/nextjs-auth0", "firebase", "supabase", "clerk"}

_COMPLEXITY_WEIGHTS = {
    "ui": 2,
    "styling": 1,
    "state_management": 3,
    "testing": 1,
    "api": 2,
    "database": 3,
    "auth": 2,
}

_SAMPLE_FILE_LIMIT = 10


def categorize_dependencies(deps: dict[str, str]) -> TechStack:
    stack = TechStack()
    for name, version in deps.items():
        if name in _UI_LIBRARIES:
            stack.ui.append(Dependency(name, version, "component-library"))
        if "shadcn" in name or "@radix-ui" in name:
            stack.ui.append(Dependency(name, version, "headless-ui"))
        if name in _STYLING:
            stack.styling.append(Dependency(name, version))
        if name in _STATE:
            stack.state_management.append(Dependency(name, version))
        if name in _TESTING:
            stack.testing.append(Dependency(name, version))
        if name in _API:
            stack.api.append(Dependency(name, version))
        if name in _DATABASE:
            stack.database.append(Dependency(name, version))
        if name in _AUTH:
            stack.auth.append(Dependency(name, version))
    return stack


def dependency_complexity(stack: TechStack) -> str:
    score = sum(len(getattr(stack, cat)) * weight for cat, weight in _COMPLEXITY_WEIGHTS.items())
    if score < 10:
        return "simple"
    if score < 25:
        return "moderate"
    if score < 40:
        return "complex"
    return "enterprise"


def scalability_for(score: int) -> str:
    if score < 5:
        return "small"
    if score < 15:
        return "medium"
    if score < 30:
        return "large"
    return "enterprise"


def _read_text(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        log.debug("analysis.read_failed", path=str(path), error=str(exc))
        return None


def _mapping_field(data: dict, key: str, path: Path) -> dict:
    value = data.get(key) or {}
    if not isinstance(value, dict):
        log.warning(
            "analysis.package_json_invalid", path=str(path), error=f"{key} is not an object"
        )
        return {}
    return dict(value)


class IntelligentProjectAnalyzer:
    """Run the five analysis phases over a Next.js project directory."""

    def __init__(self, root: str | os.PathLike[str]) -> None:
        self.root = Path(root)

    def analyze(self) -> ProjectAnalysis:
        if not self.root.is_dir():
            raise ProjectNotFoundError(f"Next.js project not found: {self.root}")

        log.info("analysis.start", root=str(self.root))
        analysis = ProjectAnalysis(root=str(self.root))
        analysis.structure = self.analyze_structure()
        package = analysis.structure.package or PackageInfo()
        analysis.dependencies = self.analyze_dependencies(package)
        analysis.patterns = self.analyze_code_patterns(package)
        analysis.architecture = self.analyze_architecture(analysis)
        analysis.recommendations = self.generate_recommendations(analysis)
        log.info(
            "analysis.complete",
            routing=analysis.patterns.routing.type,
            routes=len(analysis.patterns.routing.routes),
            complexity=analysis.dependencies.complexity,
            scalability=analysis.architecture.scalability,
        )
        return analysis

    # ── phase 1: structure ────────────────────────────────────────────────

    def analyze_structure(self) -> StructureInfo:
        info = StructureInfo()
        for name in WELL_KNOWN_DIRECTORIES:
            path = self.root / name
            if path.is_dir():
                info.directories[name] = analyze_directory(path)

        info.package = self.read_package_info()
        for name in CONFIG_FILES:
            path = self.root / name
            if path.is_file():
                info.configs[name] = self.analyze_config_file(path)

        info.file_counts = scan_structure(self.root).counts()
        return info

    def read_package_info(self) -> PackageInfo | None:
        path = self.root / "package.json"
        if not path.is_file():
            log.warning("analysis.no_package_json", root=str(self.root))
            return None
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            log.warning("analysis.package_json_invalid", path=str(path), error=str(exc))
            return None
        if not isinstance(data, dict):
            log.warning("analysis.package_json_invalid", path=str(path), error="not an object")
            return None
        return PackageInfo(
            name=data.get("name"),
            version=data.get("version"),
            scripts=list(_mapping_field(data, "scripts", path)),
            dependencies=_mapping_field(data, "dependencies", path),
            dev_dependencies=_mapping_field(data, "devDependencies", path),
        )

    def analyze_config_file(self, path: Path) -> dict:
        content = _read_text(path)
        if content is None:
            return {"error": "unreadable"}
        name = path.name
        if "next.config" in name:
            features = {
                "images": "images:" in content or "Image" in content,
                "experimental": "experimental:" in content,
                "webpack": "webpack:" in content,
                "env": "env:" in content,
                "rewrites": "rewrites:" in content,
                "redirects": "redirects:" in content,
            }
            return {"features": features, "has_custom_config": any(features.values())}
        if "tailwind" in name:
            return {
                "features": {
                    "dark_mode": "darkMode" in content,
                    "custom_theme": "theme:" in content and "extend" in content,
                    "plugins": "plugins:" in content,
                    "content": "content:" in content,
                }
            }
        if "tsconfig" in name:
            try:
                return json.loads(content)
            except ValueError as exc:
                return {"error": str(exc)}
        return {"analyzed": True, "size": len(content)}

    # ── phase 2: dependencies ─────────────────────────────────────────────

    def analyze_dependencies(self, package: PackageInfo) -> DependencyReport:
        deps = package.all_dependencies
        stack = categorize_dependencies(deps)
        return DependencyReport(
            total=len(deps), tech_stack=stack, complexity=dependency_complexity(stack)
        )

    # ── phase 3: code patterns ────────────────────────────────────────────

    def analyze_code_patterns(self, package: PackageInfo) -> CodePatterns:
        all_files = list(iter_files(self.root))
        return CodePatterns(
            routing=self.detect_routing(),
            components=self.analyze_components(),
            hooks=self.analyze_hooks(),
            api=self.analyze_api(),
            styling=self.analyze_styling(package, all_files),
            data_fetching=self.analyze_data_fetching(all_files),
        )

    def detect_routing(self) -> RoutingInfo:
        app_dir = self.root / "app"
        pages_dir = self.root / "pages"
        if app_dir.is_dir():
            return RoutingInfo(type="app-router", routes=self._app_routes(app_dir))
        if pages_dir.is_dir():
            return RoutingInfo(type="pages-router", routes=self._pages_routes(pages_dir))
        return RoutingInfo()

    def _app_routes(self, app_dir: Path) -> list[Route]:
        routes = []
        for path in iter_files(app_dir):
            segments = path.parent.relative_to(app_dir).parts
            route_path = "/" + "/".join(segments) if segments else "/"
            kind = strip_source_extension(path.name)
            route = Route(path=route_path, file=path.relative_to(self.root).as_posix(), kind=kind)
            if path.name.startswith("page."):
                route.is_page = True
            elif path.name.startswith("layout."):
                route.is_layout = True
            elif path.name.startswith("loading."):
                route.is_loading = True
            elif path.name.startswith("error."):
                route.is_error = True
            routes.append(route)
        return routes

    def _pages_routes(self, pages_dir: Path) -> list[Route]:
        routes = []
        for dirpath, dirnames, filenames in os.walk(pages_dir):
            base = Path(dirpath)
            if base == pages_dir:
                dirnames[:] = [d for d in dirnames if d != "api"]
            dirnames[:] = sorted(d for d in dirnames if not should_skip_dir(d))
            for name in sorted(filenames):
                if not name.endswith(SOURCE_EXTENSIONS):
                    continue
                path = base / name
                segments = list(path.parent.relative_to(pages_dir).parts)
                route_path = "/" + "/".join(segments + [strip_source_extension(name)])
                if route_path == "/index":
                    route_path = "/"
                routes.append(
                    Route(
                        path=route_path,
                        file=path.relative_to(self.root).as_posix(),
                        kind="page",
                        is_page=True,
                    )
                )
        return routes

    def analyze_components(self) -> ComponentStats:
        components_dir = self.root / "components"
        if not components_dir.is_dir():
            return ComponentStats()

        files = list(iter_files(components_dir))
        stats = ComponentStats(found=True, total=len(files))
        for path in files:
            if path.suffix not in (".tsx", ".jsx"):
                continue
            content = _read_text(path)
            if content is None:
                continue
            stats.by_name[path.stem] = ComponentInfo(
                path=path.relative_to(self.root).as_posix(),
                has_props="interface" in content or "type" in content,
                has_state="useState" in content or "useReducer" in content,
                has_effects="useEffect" in content,
                is_forward_ref="forwardRef" in content,
                is_memo="memo" in content,
                lines_of_code=len(content.split("\n")),
            )

        if stats.total:
            average = sum(c.lines_of_code for c in stats.by_name.values()) / stats.total
            if average > 200:
                stats.complexity = "complex"
            elif average > 100:
                stats.complexity = "moderate"
        return stats

    def analyze_hooks(self) -> HookStats:
        hooks_dir = self.root / "hooks"
        if not hooks_dir.is_dir():
            return HookStats()
        files = list(iter_source_files(hooks_dir))
        return HookStats(
            found=True,
            total=len(files),
            custom_hooks=sum(1 for f in files if f.name.startswith("use")),
        )

    def analyze_api(self) -> ApiStats:
        for api_dir in (self.root / "app" / "api", self.root / "pages" / "api"):
            if api_dir.is_dir():
                files = [f.relative_to(self.root).as_posix() for f in iter_source_files(api_dir)]
                return ApiStats(
                    found=True,
                    endpoints=len(files),
                    has_auth=any("auth" in f for f in files),
                    has_database=any("db" in f or "database" in f for f in files),
                )
        return ApiStats()

    def analyze_styling(self, package: PackageInfo, all_files: list[Path]) -> StylingInfo:
        deps = package.all_dependencies
        return StylingInfo(
            has_tailwind="tailwindcss" in deps,
            has_css=any(f.suffix == ".css" for f in all_files),
            has_scss=any(f.suffix in (".scss", ".sass") for f in all_files),
            has_styled_components="styled-components" in deps,
            has_emotion="@emotion/react" in deps or "@emotion/styled" in deps,
        )

    def analyze_data_fetching(self, all_files: list[Path]) -> DataFetchingInfo:
        info = DataFetchingInfo()
        sample = [f for f in all_files if f.suffix in (".tsx", ".jsx")][:_SAMPLE_FILE_LIMIT]
        for path in sample:
            content = _read_text(path)
            if content is None:
                continue
            if "getServerSideProps" in content:
                info.has_get_server_side_props = True
            if "getStaticProps" in content:
                info.has_get_static_props = True
            if "useEffect" in content:
                info.has_use_effect = True
            if "useQuery" in content or "useMutation" in content:
                info.has_react_query = True
            if "useSWR" in content:
                info.has_swr = True
        return info

    # ── phase 4: architecture ─────────────────────────────────────────────

    def analyze_architecture(self, analysis: ProjectAnalysis) -> Architecture:
        directories = analysis.structure.directories
        stack = analysis.dependencies.tech_stack
        patterns = analysis.patterns

        arch = Architecture()
        if "components" in directories and "hooks" in directories:
            arch.pattern = "component-based"
        if "lib" in directories and "utils" in directories:
            arch.pattern = "layered"
        if stack.state_management:
            arch.pattern = "state-driven"

        if patterns.routing.type == "app-router":
            arch.features["modern_routing"] = True
        if patterns.api.found:
            arch.features["full_stack"] = True

        score = len(directories)
        score += len(stack.state_management) * 3
        score += len(stack.ui) * 2
        score += len(patterns.routing.routes)
        if patterns.api.found:
            score += 5
        if patterns.components.total > 20:
            score += 5
        arch.score = score
        arch.scalability = scalability_for(score)
        return arch

    # ── phase 5: recommendations ──────────────────────────────────────────

    def generate_recommendations(self, analysis: ProjectAnalysis) -> list[Recommendation]:
        recs: list[Recommendation] = []
        patterns = analysis.patterns
        stack = analysis.dependencies.tech_stack

        if patterns.routing.type == "app-router":
            recs.append(
                Recommendation(
                    category="routing",
                    priority="high",
                    title="App Router Conversion",
                    description="Map App Router segments onto React Navigation stacks with typed params",
                    impact="Critical for navigation",
                )
            )
        if stack.state_management:
            lib = stack.state_management[0].name
            recs.append(
                Recommendation(
                    category="state",
                    priority="medium",
                    title=f"{lib} Migration",
                    description=f"Adapt {lib} stores for React Native and persist them with AsyncStorage",
                    impact="Important for state persistence",
                )
            )
        if patterns.styling.has_tailwind:
            recs.append(
                Recommendation(
                    category="styling",
                    priority="high",
                    title="NativeWind Integration",
                    description="Translate Tailwind classes with NativeWind to keep the design system",
                    impact="Essential for visual parity",
                )
            )
        if patterns.api.found:
            recs.append(
                Recommendation(
                    category="api",
                    priority="medium",
                    title="API Layer Adaptation",
                    description="Move API routes to an external backend and call it from service modules",
                    impact="Required for data access",
                )
            )
        if analysis.architecture.scalability in ("large", "enterprise"):
            recs.append(
                Recommendation(
                    category="performance",
                    priority="high",
                    title="Performance Optimization",
                    description="Lazy-load screens and virtualize long lists",
                    impact="Critical for large apps",
                )
            )
        return recs


def render_summary(analysis: ProjectAnalysis) -> list[str]:
    """Human-readable summary lines for the terminal."""
    stack = analysis.dependencies.tech_stack
    routing = analysis.patterns.routing
    lines = [
        "Architecture:",
        f"  Pattern:     {analysis.architecture.pattern}",
        f"  Scalability: {analysis.architecture.scalability}",
        f"  Complexity:  {analysis.dependencies.complexity}",
        "Tech stack:",
    ]
    for label, deps in (
        ("UI", stack.ui),
        ("Styling", stack.styling),
        ("State", stack.state_management),
    ):
        if deps:
            lines.append(f"  {label}: {', '.join(d.name for d in deps)}")
    lines += [
        "Routing:",
        f"  Type:   {routing.type}",
        f"  Routes: {len(routing.routes)}",
        "Files:",
    ]
    for category, count in analysis.structure.file_counts.items():
        if count:
            lines.append(f"  {category}: {count}")
    if analysis.recommendations:
        lines.append("Key recommendations:")
        for rec in analysis.recommendations[:3]:
            marker = "!" if rec.priority == "high" else "-"
            lines.append(f"  [{marker}] {rec.title}")
    return lines
