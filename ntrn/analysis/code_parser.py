"""CodeParser: tree-sitter parsing of JavaScript/TypeScript sources.

Parsing is error tolerant: tree-sitter always returns a tree, and
``has_errors`` reports whether it had to recover from syntax errors.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path

import structlog
import tree_sitter
import tree_sitter_javascript
import tree_sitter_typescript

from ntrn.analysis.filters import SOURCE_EXTENSIONS

log = structlog.get_logger("ntrn.analysis")

_JS_LANGUAGE = tree_sitter.Language(tree_sitter_javascript.language())
_TS_LANGUAGE = tree_sitter.Language(tree_sitter_typescript.language_typescript())
_TSX_LANGUAGE = tree_sitter.Language(tree_sitter_typescript.language_tsx())

_LANGUAGES: dict[str, tuple[str, tree_sitter.Language]] = {
    ".js": ("javascript", _JS_LANGUAGE),
    ".jsx": ("javascript", _JS_LANGUAGE),
    ".ts": ("typescript", _TS_LANGUAGE),
    ".tsx": ("tsx", _TSX_LANGUAGE),
}

_JSX_ELEMENTS = ("jsx_opening_element", "jsx_self_closing_element")
_PROP_DECLARATIONS = ("interface_declaration", "type_alias_declaration")


@dataclass
class RenderedComponent:
    """A capitalised JSX element rendered by a file."""

    name: str
    props: list[str] = field(default_factory=list)
    callbacks: list[str] = field(default_factory=list)


@dataclass
class PropInfo:
    """A prop declared on a ``*Props`` interface or type alias."""

    name: str
    type: str | None = None
    required: bool = True


@dataclass
class ParsedFile:
    success: bool
    path: str
    content: str = ""
    language: str | None = None
    has_errors: bool = False
    error: str | None = None
    tree: tree_sitter.Tree | None = field(default=None, repr=False)


def _text(node: tree_sitter.Node | None) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8", errors="replace")


def _walk(node: tree_sitter.Node):
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.children))


class CodeParser:
    """Parse ``.js .jsx .ts .tsx`` files into tree-sitter syntax trees."""

    supported_extensions = SOURCE_EXTENSIONS

    def can_parse(self, path: str | os.PathLike[str]) -> bool:
        return Path(path).suffix in _LANGUAGES

    def parse_source(self, source: str, path: str = "module.tsx") -> ParsedFile:
        suffix = Path(path).suffix
        if suffix not in _LANGUAGES:
            return ParsedFile(success=False, path=path, error=f"unsupported file type: {suffix}")
        language_name, language = _LANGUAGES[suffix]
        parser = tree_sitter.Parser(language)
        tree = parser.parse(source.encode("utf-8"))
        return ParsedFile(
            success=True,
            path=path,
            content=source,
            language=language_name,
            has_errors=tree.root_node.has_error,
            tree=tree,
        )

    def parse_file(self, path: str | os.PathLike[str]) -> ParsedFile:
        path = Path(path)
        try:
            content = path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as exc:
            log.warning("parser.read_failed", path=str(path), error=str(exc))
            return ParsedFile(success=False, path=str(path), error=str(exc))
        parsed = self.parse_source(content, str(path))
        if parsed.has_errors:
            log.debug("parser.syntax_errors", path=str(path))
        return parsed

    # ── queries ───────────────────────────────────────────────────────────

    def rendered_components(self, parsed: ParsedFile) -> list[RenderedComponent]:
        """Capitalised JSX elements in document order, with their attribute names.

        Attributes named ``on<Upper>…`` are reported as callbacks, everything
        else as props. HTML intrinsics (``div``, ``span``) are not components.
        """
        if parsed.tree is None:
            return []
        rendered = []
        for node in _walk(parsed.tree.root_node):
            if node.type not in _JSX_ELEMENTS:
                continue
            name = _text(node.child_by_field_name("name"))
            if not name or not name[0].isupper():
                continue
            component = RenderedComponent(name=name)
            for attr in node.children:
                if attr.type != "jsx_attribute" or not attr.children:
                    continue
                attr_name = _text(attr.children[0])
                if len(attr_name) > 2 and attr_name.startswith("on") and attr_name[2].isupper():
                    component.callbacks.append(attr_name)
                else:
                    component.props.append(attr_name)
            rendered.append(component)
        return rendered

    def declared_props(self, parsed: ParsedFile) -> list[PropInfo]:
        """Props declared by interfaces or type aliases whose name ends in ``Props``."""
        if parsed.tree is None:
            return []
        props = []
        for node in _walk(parsed.tree.root_node):
            if node.type not in _PROP_DECLARATIONS:
                continue
            if not _text(node.child_by_field_name("name")).endswith("Props"):
                continue
            body = node.child_by_field_name("body") or node.child_by_field_name("value")
            if body is None:
                continue
            for member in body.children:
                if member.type != "property_signature":
                    continue
                type_text = _text(member.child_by_field_name("type")).lstrip(":").strip()
                props.append(
                    PropInfo(
                        name=_text(member.child_by_field_name("name")),
                        type=type_text or None,
                        required=not any(c.type == "?" for c in member.children),
                    )
                )
        return props

    def unwrapped_text(self, parsed: ParsedFile) -> list[str]:
        """Literal JSX text whose enclosing element is not a ``*Text`` component.

        React Native only renders strings inside ``<Text>``; anywhere else they
        crash at runtime. Fragments count as unwrapped.
        """
        if parsed.tree is None:
            return []
        found = []
        for node in _walk(parsed.tree.root_node):
            if node.type != "jsx_text" or not _text(node).strip():
                continue
            parent = node.parent
            if parent is None or parent.type != "jsx_element":
                continue
            opening = parent.child_by_field_name("open_tag") or parent.children[0]
            tag = _text(opening.child_by_field_name("name"))
            if not tag.split(".")[-1].endswith("Text"):
                found.append(_text(node).strip())
        return found
