"""Tests for codeatlas.analyzer.import_resolver - specifier resolution and edge collapsing."""

from __future__ import annotations

import pytest

from codeatlas.analyzer.import_resolver import (
    build_dependency_edges,
    edges_touching,
    resolve_specifier,
)
from codeatlas.models import DependencyEdge, FileRecord, ImportSpec


def _file(path: str, *imports: tuple[str, tuple[str, ...]]) -> FileRecord:
    return FileRecord(
        path=path,
        name=path.rsplit("/", 1)[-1],
        extension=".ts",
        type="other",
        lines=1,
        imports=tuple(ImportSpec(source=s, names=n) for s, n in imports),
    )


class TestResolveSpecifier:
    def test_relative_with_extension_fallback(self) -> None:
        assert resolve_specifier("./client", "db/index.ts", {"db/client.ts"}) == "db/client.ts"

    def test_parent_directory(self) -> None:
        known = {"db/client.ts"}
        assert resolve_specifier("../db/client", "api/users.ts", known) == "db/client.ts"

    def test_index_fallback(self) -> None:
        known = {"src/lib/index.tsx"}
        assert resolve_specifier("../lib", "src/app/x.ts", known) == "src/lib/index.tsx"

    def test_exact_match_first(self) -> None:
        known = {"a/b.ts", "a/b.ts.ts"}
        assert resolve_specifier("./b.ts", "a/x.ts", known) == "a/b.ts"

    def test_esm_js_specifier_finds_ts_source(self) -> None:
        assert resolve_specifier("./util.js", "main.ts", {"util.ts"}) == "util.ts"

    def test_alias_against_project_root(self) -> None:
        known = {"src/lib/a.ts"}
        aliases = {"@/": "src/"}
        resolved = resolve_specifier("@/lib/a", "src/app/page.tsx", known, aliases=aliases)
        assert resolved == "src/lib/a.ts"

    def test_alias_reexpressed_relative_to_scan_root(self) -> None:
        known = {"lib/a.ts"}
        aliases = {"@/": "src/"}
        resolved = resolve_specifier(
            "@/lib/a", "app/page.tsx", known, aliases=aliases, root_prefix="src"
        )
        assert resolved == "lib/a.ts"

    def test_alias_outside_scan_root(self) -> None:
        aliases = {"#shared/": "shared/"}
        assert (
            resolve_specifier("#shared/x", "a.ts", {"x.ts"}, aliases=aliases, root_prefix="src")
            is None
        )

    def test_longest_alias_wins(self) -> None:
        aliases = {"@/": "src/", "@/ui/": "packages/ui/"}
        known = {"packages/ui/button.tsx", "src/ui/button.tsx"}
        resolved = resolve_specifier("@/ui/button", "a.ts", known, aliases=aliases)
        assert resolved == "packages/ui/button.tsx"

    @pytest.mark.parametrize("source", ["react", "@supabase/supabase-js", "node:fs"])
    def test_bare_packages_are_external(self, source: str) -> None:
        assert resolve_specifier(source, "a.ts", {"react.ts"}, aliases={"@/": "src/"}) is None

    def test_escaping_root(self) -> None:
        assert resolve_specifier("../../x", "a/b.ts", {"x.ts"}) is None

    def test_missing_file(self) -> None:
        assert resolve_specifier("./nope", "a.ts", {"a.ts"}) is None


class TestBuildDependencyEdges:
    def test_collapses_multiple_imports_into_one_edge(self) -> None:
        files = [
            _file("a.ts", ("./b", ("x",)), ("./b.ts", ("y", "x"))),
            _file("b.ts"),
        ]
        result = build_dependency_edges(files)
        assert result.edges == [DependencyEdge(source="a.ts", target="b.ts", imports=("x", "y"))]

    def test_marks_external_flags(self) -> None:
        files = [_file("a.ts", ("./b", ("x",)), ("react", ("useState",))), _file("b.ts")]
        result = build_dependency_edges(files)
        flags = {i.source: i.is_external for i in result.files[0].imports}
        assert flags == {"./b": False, "react": True}

    def test_counts_only_in_repo_style_unresolved(self) -> None:
        files = [_file("a.ts", ("./missing", ("x",)), ("@/gone", ()), ("lodash", ("map",)))]
        result = build_dependency_edges(files, aliases={"@/": "src/"})
        assert result.unresolved == 2
        assert result.edges == []
        assert all(i.is_external for i in result.files[0].imports)

    def test_self_import_produces_no_edge(self) -> None:
        result = build_dependency_edges([_file("a.ts", ("./a", ("x",)))])
        assert result.edges == []
        assert result.files[0].imports[0].is_external is False

    def test_edges_reference_existing_files(self) -> None:
        files = [
            _file("src/a.ts", ("./b", ("b",)), ("../lib/c", ("c",))),
            _file("src/b.ts", ("./a", ("a",))),
            _file("lib/c.ts"),
        ]
        result = build_dependency_edges(files)
        paths = {f.path for f in files}
        assert len(result.edges) == 3
        for edge in result.edges:
            assert edge.source in paths
            assert edge.target in paths
            assert edge.source != edge.target

    def test_edges_touching(self) -> None:
        edges = [
            DependencyEdge("a.ts", "b.ts"),
            DependencyEdge("b.ts", "c.ts"),
            DependencyEdge("c.ts", "d.ts"),
        ]
        assert edges_touching(edges, "b.ts") == edges[:2]
