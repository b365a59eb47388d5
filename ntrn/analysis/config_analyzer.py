"""ConfigurationAnalyzer: Next.js, TypeScript, Tailwind, routing and env settings.

Everything here is regex or substring based; config modules are never executed.
"""

from __future__ import annotations

import json
import os
import re
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any

import structlog

from ntrn.analysis.filters import SOURCE_EXTENSIONS, iter_files, strip_source_extension

log = structlog.get_logger("ntrn.analysis")

NEXT_CONFIG_FILES = ("next.config.js", "next.config.mjs", "next.config.ts", "next.config.cjs")
TAILWIND_CONFIG_FILES = (
    "tailwind.config.js",
    "tailwind.config.mjs",
    "tailwind.config.ts",
    "tailwind.config.cjs",
)
POSTCSS_CONFIG_FILES = (
    "postcss.config.js",
    "postcss.config.mjs",
    "postcss.config.ts",
    "postcss.config.cjs",
    ".postcssrc.js",
    ".postcssrc.json",
)
ENV_FILES = (".env", ".env.local", ".env.development", ".env.production", ".env.test")
HTTP_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH")

_TS_COMPILER_KEYS = ("baseUrl", "target", "lib", "jsx", "module", "moduleResolution", "strict")

_REDIRECTS_RE = re.compile(r"redirects\s*[:=]\s*\[")
_REWRITES_RE = re.compile(r"rewrites\s*[:=]\s*\[")
_HEADERS_RE = re.compile(r"headers\s*[:=]\s*\[")
_IMAGES_RE = re.compile(r"images\s*[:=]\s*\{")
_THEME_RE = re.compile(r"theme\s*[:=]\s*\{")
_PARAM_RE = re.compile(r"\[([^\]]+)\]")
_ROUTE_GROUP_RE = re.compile(r"^\(([^)]+)\)$")
_ENV_VAR_RE = re.compile(r"^([A-Z_][A-Z0-9_]*)\s*=", re.MULTILINE)
_METHOD_RES = {
    method: re.compile(rf"export\s+(?:async\s+)?(?:const|function)\s+{method}\b")
    for method in HTTP_METHODS
}


@dataclass
class NextConfigInfo:
    exists: bool = False
    file: str | None = None
    image_optimization: bool = True
    redirects: int = 0
    rewrites: int = 0
    headers: int = 0
    error: str | None = None


@dataclass
class TypeScriptConfigInfo:
    exists: bool = False
    path_aliases: dict[str, list[str]] = field(default_factory=dict)
    compiler_options: dict[str, Any] = field(default_factory=dict)
    error: str | None = None


@dataclass
class TailwindConfigInfo:
    exists: bool = False
    file: str | None = None
    has_theme: bool = False
    via_postcss: bool = False
    via_package_json: bool = False
    error: str | None = None


@dataclass
class PagesRouterInfo:
    total_routes: int = 0
    dynamic_routes: int = 0
    catch_all_routes: int = 0
    routes: list[str] = field(default_factory=list)


@dataclass
class AppRouterInfo:
    total_routes: int = 0
    route_groups: list[str] = field(default_factory=list)
    layouts: int = 0
    loading_files: int = 0
    error_files: int = 0
    routes: list[str] = field(default_factory=list)


@dataclass
class RoutingPatterns:
    type: str = "none"  # "none" | "pages" | "app" | "both"
    pages_router: PagesRouterInfo = field(default_factory=PagesRouterInfo)
    app_router: AppRouterInfo = field(default_factory=AppRouterInfo)


@dataclass
class ApiRoute:
    path: str
    methods: list[str]
    is_dynamic: bool
    parameters: list[str]
    file: str

    @property
    def method(self) -> str:
        return ", ".join(self.methods)


@dataclass
class EnvFileInfo:
    file: str
    variables: list[str]


@dataclass
class ConfigurationReport:
    next_config: NextConfigInfo
    typescript_config: TypeScriptConfigInfo
    tailwind_config: TailwindConfigInfo
    routing: RoutingPatterns
    api_routes: list[ApiRoute]
    environment_files: list[EnvFileInfo]

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def detect_methods(content: str, *, allow_wildcard: bool = True) -> list[str]:
    """HTTP methods exported by a route module; ``["GET"]`` when none are found.

    A handler that switches on ``req.method`` handles every method (``*``).
    """
    methods = [m for m, pattern in _METHOD_RES.items() if pattern.search(content)]
    if not methods and allow_wildcard and ("req.method" in content or "request.method" in content):
        methods = ["*"]
    return methods or ["GET"]


class ConfigurationAnalyzer:
    def __init__(self, root: str | os.PathLike[str]) -> None:
        self.root = Path(root)

    def analyze(self, package_json: dict[str, Any] | None = None) -> ConfigurationReport:
        return ConfigurationReport(
            next_config=self.analyze_next_config(),
            typescript_config=self.analyze_typescript_config(),
            tailwind_config=self.analyze_tailwind_config(package_json),
            routing=self.detect_routing(),
            api_routes=self.identify_api_routes(),
            environment_files=self.analyze_environment_files(),
        )

    def analyze_next_config(self) -> NextConfigInfo:
        for name in NEXT_CONFIG_FILES:
            path = self.root / name
            if not path.is_file():
                continue
            if name.endswith(".ts"):
                # TypeScript configs would need compiling; only note presence.
                return NextConfigInfo(exists=True, file=name)
            try:
                content = path.read_text(encoding="utf-8", errors="replace")
            except OSError as exc:
                return NextConfigInfo(exists=True, file=name, error=str(exc))
            return NextConfigInfo(
                exists=True,
                file=name,
                image_optimization=_IMAGES_RE.search(content) is not None,
                redirects=len(_REDIRECTS_RE.findall(content)),
                rewrites=len(_REWRITES_RE.findall(content)),
                headers=len(_HEADERS_RE.findall(content)),
            )
        return NextConfigInfo()

    def analyze_typescript_config(self) -> TypeScriptConfigInfo:
        path = self.root / "tsconfig.json"
        if not path.is_file():
            return TypeScriptConfigInfo()
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as exc:
            log.warning("config_analyzer.tsconfig_invalid", path=str(path), error=str(exc))
            return TypeScriptConfigInfo(exists=True, error=str(exc))
        if not isinstance(data, dict):
            log.warning("config_analyzer.tsconfig_invalid", path=str(path), error="not an object")
            return TypeScriptConfigInfo(exists=True, error="tsconfig.json is not an object")
        options = data.get("compilerOptions")
        if not isinstance(options, dict):
            options = {}
        paths = options.get("paths")
        return TypeScriptConfigInfo(
            exists=True,
            path_aliases=dict(paths) if isinstance(paths, dict) else {},
            compiler_options={k: options.get(k) for k in _TS_COMPILER_KEYS},
        )

    def analyze_tailwind_config(self, package_json: dict[str, Any] | None = None) -> TailwindConfigInfo:
        for name in TAILWIND_CONFIG_FILES:
            path = self.root / name
            if not path.is_file():
                continue
            if name.endswith(".ts"):
                return TailwindConfigInfo(exists=True, file=name)
            try:
                content = path.read_text(encoding="utf-8", errors="replace")
            except OSError as exc:
                return TailwindConfigInfo(exists=True, file=name, error=str(exc))
            return TailwindConfigInfo(
                exists=True, file=name, has_theme=_THEME_RE.search(content) is not None
            )

        for name in POSTCSS_CONFIG_FILES:
            path = self.root / name
            if not path.is_file():
                continue
            try:
                content = path.read_text(encoding="utf-8", errors="replace")
            except OSError:
                continue
            if "tailwind" in content:
                return TailwindConfigInfo(exists=True, file=name, via_postcss=True)

        if package_json is None:
            package_json = self._read_package_json()
        deps: dict[str, Any] = {}
        for key in ("dependencies", "devDependencies"):
            value = package_json.get(key)
            if isinstance(value, dict):
                deps.update(value)
            elif value:
                log.warning("config_analyzer.package_json_invalid", field=key)
        if any(d in deps for d in ("tailwindcss", "@tailwindcss/forms", "@tailwindcss/typography")):
            return TailwindConfigInfo(exists=True, file="package.json", via_package_json=True)
        return TailwindConfigInfo()

    def detect_routing(self) -> RoutingPatterns:
        pages_base = self._first_dir("pages", "src/pages")
        app_base = self._first_dir("app", "src/app")

        routing = RoutingPatterns()
        if pages_base and app_base:
            routing.type = "both"
        elif pages_base:
            routing.type = "pages"
        elif app_base:
            routing.type = "app"

        if pages_base:
            info = routing.pages_router
            for path in iter_files(pages_base):
                rel = path.relative_to(pages_base)
                if not path.name.endswith(SOURCE_EXTENSIONS) or "api" in rel.parts[:-1]:
                    continue
                if path.name.startswith(("_app.", "_document.")):
                    continue
                rel_posix = rel.as_posix()
                info.routes.append(rel_posix)
                if "[" in rel_posix and "]" in rel_posix:
                    if "[..." in rel_posix:
                        info.catch_all_routes += 1
                    else:
                        info.dynamic_routes += 1
            info.total_routes = len(info.routes)

        if app_base:
            info_app = routing.app_router
            groups: set[str] = set()
            for path in iter_files(app_base):
                rel = path.relative_to(app_base)
                for part in rel.parts[:-1]:
                    match = _ROUTE_GROUP_RE.match(part)
                    if match:
                        groups.add(match.group(1))
                if not path.name.endswith(SOURCE_EXTENSIONS):
                    continue
                stem = strip_source_extension(path.name)
                if stem == "page":
                    info_app.routes.append(rel.as_posix())
                elif stem == "layout":
                    info_app.layouts += 1
                elif stem == "loading":
                    info_app.loading_files += 1
                elif stem == "error":
                    info_app.error_files += 1
            info_app.route_groups = sorted(groups)
            info_app.total_routes = len(info_app.routes)
        return routing

    def identify_api_routes(self) -> list[ApiRoute]:
        routes: list[ApiRoute] = []
        for base_name in ("pages/api", "src/pages/api"):
            base = self.root / base_name
            if not base.is_dir():
                continue
            for path in iter_files(base):
                if not path.name.endswith(SOURCE_EXTENSIONS):
                    continue
                rel = path.relative_to(base).as_posix()
                route_path = "/api/" + strip_source_extension(rel)
                route = self._api_route(path, route_path, allow_wildcard=True)
                if route:
                    routes.append(route)

        for base_name in ("app", "src/app"):
            base = self.root / base_name
            if not base.is_dir():
                continue
            for path in iter_files(base):
                if not path.name.endswith(SOURCE_EXTENSIONS):
                    continue
                if strip_source_extension(path.name) != "route":
                    continue
                segments = path.parent.relative_to(base).parts
                route = self._api_route(path, "/" + "/".join(segments), allow_wildcard=False)
                if route:
                    routes.append(route)
        return routes

    def analyze_environment_files(self) -> list[EnvFileInfo]:
        found = []
        for name in ENV_FILES:
            path = self.root / name
            if not path.is_file():
                continue
            try:
                content = path.read_text(encoding="utf-8", errors="replace")
            except OSError:
                continue
            found.append(EnvFileInfo(file=name, variables=_ENV_VAR_RE.findall(content)))
        return found

    # ── internal ───────────────────────────────────────────────────────────

    def _api_route(self, path: Path, route_path: str, *, allow_wildcard: bool) -> ApiRoute | None:
        try:
            content = path.read_text(encoding="utf-8", errors="replace")
        except OSError as exc:
            log.debug("config_analyzer.read_failed", path=str(path), error=str(exc))
            return None
        params = _PARAM_RE.findall(route_path)
        return ApiRoute(
            path=route_path,
            methods=detect_methods(content, allow_wildcard=allow_wildcard),
            is_dynamic=bool(params),
            parameters=params,
            file=path.relative_to(self.root).as_posix(),
        )

    def _first_dir(self, *candidates: str) -> Path | None:
        for candidate in candidates:
            path = self.root / candidate
            if path.is_dir():
                return path
        return None

    def _read_package_json(self) -> dict[str, Any]:
        path = self.root / "package.json"
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, ValueError):
            return {}
        return data if isinstance(data, dict) else {}
