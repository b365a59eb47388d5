"""Tests for the structure scanner."""

from __future__ import annotations

from conftest import write_tree

from ntrn.analysis.structure import (
    CATEGORIES,
    MAX_DIRECTORY_DEPTH,
    analyze_directory,
    categorize,
    scan_structure,
)


class TestCategorize:
    def test_pages_router(self):
        assert categorize("pages/index.tsx") == "pages"
        assert categorize("pages/blog/[slug].tsx") == "pages"
        assert categorize("src/pages/about.jsx") == "pages"
        assert categorize("pages/api/hello.ts") == "api"
        assert categorize("src/pages/api/users/[id].ts") == "api"

    def test_app_router(self):
        assert categorize("app/page.tsx") == "pages"
        assert categorize("app/dashboard/page.tsx") == "pages"
        assert categorize("app/layout.tsx") == "layouts"
        assert categorize("app/api/users/route.ts") == "api"
        assert categorize("src/app/settings/page.tsx") == "pages"
        assert categorize("app/dashboard/loading.tsx") is None

    def test_directories(self):
        assert categorize("components/Button.tsx") == "components"
        assert categorize("src/components/forms/Input.tsx") == "components"
        assert categorize("src/ui/Card.tsx") == "components"
        assert categorize("hooks/useAuth.ts") == "hooks"
        assert categorize("context/Theme.tsx") == "contexts"
        assert categorize("contexts/Cart.tsx") == "contexts"
        assert categorize("utils/format.ts") == "utils"
        assert categorize("lib/db.ts") == "lib"
        assert categorize("types/index.d.ts") == "types"

    def test_styles_accept_any_extension(self):
        assert categorize("styles/globals.css") == "styles"
        assert categorize("styles/theme.scss") == "styles"

    def test_non_source_outside_styles(self):
        assert categorize("components/Button.module.css") is None
        assert categorize("public/logo.png") is None

    def test_test_files_excluded(self):
        assert categorize("utils/format.test.ts") is None
        assert categorize("components/__tests__/Button.tsx") is None

    def test_root_files_uncategorized(self):
        assert categorize("next.config.js") is None
        assert categorize("middleware.ts") is None


class TestScanStructure:
    def test_exact_counts(self, pages_project):
        counts = scan_structure(pages_project).counts()
        assert counts == {
            "pages": 4,
            "api": 1,
            "layouts": 0,
            "components": 3,
            "hooks": 1,
            "contexts": 0,
            "utils": 1,
            "lib": 0,
            "types": 0,
            "styles": 1,
        }

    def test_three_components(self, tmp_path):
        write_tree(
            tmp_path,
            {
                "components/A.tsx": "",
                "components/B.jsx": "",
                "components/nested/C.ts": "",
                "components/readme.md": "",
            },
        )
        counts = scan_structure(tmp_path).counts()
        assert counts["components"] == 3
        assert sum(counts.values()) == 3

    def test_every_category_present(self, tmp_path):
        assert set(scan_structure(tmp_path).counts()) == set(CATEGORIES)

    def test_paths_are_relative_posix(self, pages_project):
        structure = scan_structure(pages_project)
        assert "components/Header.tsx" in structure.paths("components")
        entry = structure.files["components"][0]
        assert entry.category == "components"
        assert entry.extension in (".tsx", ".jsx")

    def test_node_modules_ignored(self, pages_project):
        structure = scan_structure(pages_project)
        all_paths = [p for c in CATEGORIES for p in structure.paths(c)]
        assert not any(p.startswith("node_modules") for p in all_paths)


class TestAnalyzeDirectory:
    def test_counts_and_patterns(self, tmp_path):
        write_tree(
            tmp_path,
            {
                "page.tsx": "",
                "layout.tsx": "",
                "Button.test.tsx": "",
                "Card.stories.tsx": "",
                "styles.css": "",
                "sub/x.ts": "",
            },
        )
        info = analyze_directory(tmp_path)
        assert info.file_count == 5
        assert info.file_types == {".tsx": 4, ".css": 1}
        assert info.subdirectories == ["sub"]
        assert info.children["sub"].file_count == 1
        assert info.patterns == ["app-router", "layout", "storybook", "testing"]

    def test_depth_limit(self, tmp_path):
        deep = tmp_path / "a" / "b" / "c" / "d" / "e"
        deep.mkdir(parents=True)
        (deep / "x.ts").write_text("")
        info = analyze_directory(tmp_path)
        node = info
        for name in ("a", "b", "c"):
            node = node.children[name]
        assert MAX_DIRECTORY_DEPTH == 3
        assert node.children["d"].skipped is True
        assert node.children["d"].file_count == 0

    def test_missing_directory(self, tmp_path):
        info = analyze_directory(tmp_path / "missing")
        assert info.error is not None
