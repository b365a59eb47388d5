"""Data models for project analysis."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass
class SourceFile:
    """A file assigned to a structural category (pages, components, …)."""

    path: str  # relative to the project root, POSIX separators
    category: str
    extension: str
    size: int = 0


@dataclass
class DirectoryInfo:
    file_count: int = 0
    subdirectories: list[str] = field(default_factory=list)
    file_types: dict[str, int] = field(default_factory=dict)
    patterns: list[str] = field(default_factory=list)
    children: dict[str, DirectoryInfo] = field(default_factory=dict)
    skipped: bool = False
    error: str | None = None


@dataclass
class PackageInfo:
    name: str | None = None
    version: str | None = None
    scripts: list[str] = field(default_factory=list)
    dependencies: dict[str, str] = field(default_factory=dict)
    dev_dependencies: dict[str, str] = field(default_factory=dict)

    @property
    def all_dependencies(self) -> dict[str, str]:
        return {**self.dependencies, **self.dev_dependencies}


@dataclass
class StructureInfo:
    directories: dict[str, DirectoryInfo] = field(default_factory=dict)
    package: PackageInfo | None = None
    configs: dict[str, dict[str, Any]] = field(default_factory=dict)
    file_counts: dict[str, int] = field(default_factory=dict)


@dataclass
class Dependency:
    name: str
    version: str
    category: str | None = None


@dataclass
class TechStack:
    framework: str = "Next.js"
    ui: list[Dependency] = field(default_factory=list)
    styling: list[Dependency] = field(default_factory=list)
    state_management: list[Dependency] = field(default_factory=list)
    testing: list[Dependency] = field(default_factory=list)
    api: list[Dependency] = field(default_factory=list)
    database: list[Dependency] = field(default_factory=list)
    auth: list[Dependency] = field(default_factory=list)


@dataclass
class DependencyReport:
    total: int = 0
    tech_stack: TechStack = field(default_factory=TechStack)
    complexity: str = "simple"


@dataclass
class Route:
    path: str
    file: str
    kind: str  # "page", "layout", "loading", "error", or the file stem
    is_page: bool = False
    is_layout: bool = False
    is_loading: bool = False
    is_error: bool = False


@dataclass
class RoutingInfo:
    type: str = "unknown"  # "app-router" | "pages-router" | "unknown"
    routes: list[Route] = field(default_factory=list)

    @property
    def page_files(self) -> list[str]:
        return [r.file for r in self.routes if r.is_page]


@dataclass
class ComponentInfo:
    path: str
    has_props: bool
    has_state: bool
    has_effects: bool
    is_forward_ref: bool
    is_memo: bool
    lines_of_code: int


@dataclass
class ComponentStats:
    found: bool = False
    total: int = 0
    by_name: dict[str, ComponentInfo] = field(default_factory=dict)
    complexity: str = "simple"


@dataclass
class HookStats:
    found: bool = False
    total: int = 0
    custom_hooks: int = 0


@dataclass
class ApiStats:
    found: bool = False
    endpoints: int = 0
    has_auth: bool = False
    has_database: bool = False


@dataclass
class StylingInfo:
    has_tailwind: bool = False
    has_css: bool = False
    has_scss: bool = False
    has_styled_components: bool = False
    has_emotion: bool = False


@dataclass
class DataFetchingInfo:
    has_get_server_side_props: bool = False
    has_get_static_props: bool = False
    has_use_effect: bool = False
    has_react_query: bool = False
    has_swr: bool = False


@dataclass
class CodePatterns:
    routing: RoutingInfo = field(default_factory=RoutingInfo)
    components: ComponentStats = field(default_factory=ComponentStats)
    hooks: HookStats = field(default_factory=HookStats)
    api: ApiStats = field(default_factory=ApiStats)
    styling: StylingInfo = field(default_factory=StylingInfo)
    data_fetching: DataFetchingInfo = field(default_factory=DataFetchingInfo)


@dataclass
class Architecture:
    pattern: str = "unknown"
    features: dict[str, bool] = field(default_factory=dict)
    scalability: str = "unknown"
    score: int = 0


@dataclass
class Recommendation:
    category: str
    priority: str  # "high" | "medium"
    title: str
    description: str
    impact: str


@dataclass
class ProjectAnalysis:
    root: str
    structure: StructureInfo = field(default_factory=StructureInfo)
    dependencies: DependencyReport = field(default_factory=DependencyReport)
    patterns: CodePatterns = field(default_factory=CodePatterns)
    architecture: Architecture = field(default_factory=Architecture)
    recommendations: list[Recommendation] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)
