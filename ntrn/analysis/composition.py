"""ComponentCompositionMapper: which files render which components."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any

import structlog

from ntrn.analysis.code_parser import CodeParser, PropInfo, RenderedComponent
from ntrn.analysis.filters import strip_source_extension
from ntrn.analysis.structure import ProjectStructure

log = structlog.get_logger("ntrn.analysis")

GRAPH_CATEGORIES = ("pages", "components", "utils", "lib")
MAX_TREE_DEPTH = 10


@dataclass
class CompositionNode:
    path: str
    component_name: str
    renders: list[RenderedComponent] = field(default_factory=list)
    receives: list[PropInfo] = field(default_factory=list)

    @property
    def passes_props(self) -> list[str]:
        return sorted({p for r in self.renders for p in r.props + r.callbacks})


@dataclass
class CompositionEdge:
    source: str
    component: str
    target: str | None  # resolved file path, when a node defines the component
    props: list[str] = field(default_factory=list)
    callbacks: list[str] = field(default_factory=list)


@dataclass
class CompositionGraph:
    nodes: dict[str, CompositionNode] = field(default_factory=dict)
    edges: list[CompositionEdge] = field(default_factory=list)

    def find_by_component(self, name: str) -> CompositionNode | None:
        for node in self.nodes.values():
            if node.component_name == name:
                return node
        return None


def extract_component_name(path: str) -> str:
    """``components/ui/Button.tsx`` → ``Button``."""
    return strip_source_extension(PurePosixPath(path.replace("\\", "/")).name)


class ComponentCompositionMapper:
    def __init__(self, parser: CodeParser | None = None) -> None:
        self.parser = parser or CodeParser()

    def build_graph(self, structure: ProjectStructure) -> CompositionGraph:
        graph = CompositionGraph()
        for category in GRAPH_CATEGORIES:
            for source in structure.files.get(category, []):
                parsed = self.parser.parse_file(structure.root / source.path)
                node = CompositionNode(
                    path=source.path, component_name=extract_component_name(source.path)
                )
                if parsed.success:
                    node.renders = self.parser.rendered_components(parsed)
                    node.receives = self.parser.declared_props(parsed)
                graph.nodes[source.path] = node

        for node in graph.nodes.values():
            for rendered in node.renders:
                target = graph.find_by_component(rendered.name)
                graph.edges.append(
                    CompositionEdge(
                        source=node.path,
                        component=rendered.name,
                        target=target.path if target else None,
                        props=list(rendered.props),
                        callbacks=list(rendered.callbacks),
                    )
                )
        log.debug("composition.built", nodes=len(graph.nodes), edges=len(graph.edges))
        return graph

    def visualize(
        self,
        graph: CompositionGraph,
        entry_points: list[str],
        max_depth: int = MAX_TREE_DEPTH,
    ) -> list[dict[str, Any]]:
        """Render trees rooted at *entry_points*.

        A file appears at most once across all trees; later references to it
        are leaves without children. Depth beyond *max_depth* is cut off.
        """
        visited: set[str] = set()

        def build(path: str, depth: int) -> dict[str, Any] | None:
            if depth > max_depth or path in visited:
                return None
            node = graph.nodes.get(path)
            if node is None:
                return None
            visited.add(path)
            children = []
            for rendered in node.renders:
                child: dict[str, Any] = {
                    "component_name": rendered.name,
                    "props": list(rendered.props),
                    "callbacks": list(rendered.callbacks),
                    "depth": depth + 1,
                }
                target = graph.find_by_component(rendered.name)
                if target is not None:
                    subtree = build(target.path, depth + 1)
                    if subtree is not None:
                        child["children"] = subtree["children"]
                        child["file"] = target.path
                children.append(child)
            return {
                "file": path,
                "component_name": node.component_name,
                "props": [p.name for p in node.receives],
                "children": children,
                "depth": depth,
            }

        trees = []
        for entry in entry_points:
            tree = build(entry, 0)
            if tree is not None:
                trees.append(tree)
        return trees
