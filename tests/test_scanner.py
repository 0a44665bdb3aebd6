"""Tests for codeatlas.analyzer.scanner - the end-to-end scan pipeline."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from codeatlas.analyzer.scanner import extract_file, scan_project
from codeatlas.config import AnalyzerConfig
from codeatlas.errors import FileUnreadable, ScanTargetNotFound, ScanTimeout

if TYPE_CHECKING:
    from pathlib import Path


class TestExtractFile:
    def test_collects_content_facts(self, users_project: Path) -> None:
        parsed = extract_file(users_project / "db" / "client.ts", "db/client.ts")
        assert parsed.name == "client.ts"
        assert parsed.extension == ".ts"
        assert parsed.lines == 7
        assert [e.name for e in parsed.exports] == ["client"]
        assert [i.source for i in parsed.imports] == ["@supabase/supabase-js"]
        assert [c.service for c in parsed.external_calls] == ["supabase"]
        assert parsed.db_operations == ["SELECT"]

    def test_unreadable(self, tmp_path: Path) -> None:
        bad = tmp_path / "bad.ts"
        bad.write_bytes(b"\xff\xfe\x00\x81export const x = 1;")
        with pytest.raises(FileUnreadable):
            extract_file(bad, "bad.ts")

    def test_no_grammar_keeps_line_count(self, tmp_path: Path) -> None:
        f = tmp_path / "App.vue"
        f.write_text(
            "<template>\n  <div />\n</template>\n"
            "<script>fetch('https://api.openai.com/v1')</script>\n"
        )
        parsed = extract_file(f, "App.vue")
        assert parsed.lines == 4
        assert parsed.exports == []
        assert [c.service for c in parsed.external_calls] == ["openai"]


class TestRouteWithDatabaseClient:
    def test_files_edges_and_services(self, users_project: Path) -> None:
        snapshot = scan_project(users_project)

        assert [f.path for f in snapshot.files] == ["api/users.ts", "db/client.ts"]
        by_path = snapshot.file_by_path()
        assert by_path["api/users.ts"].type == "api_route"

        assert [e.to_dict() for e in snapshot.dependency_edges] == [
            {"from": "api/users.ts", "to": "db/client.ts", "imports": ["client"]}
        ]

        assert [s.to_dict() for s in snapshot.external_services] == [
            {"name": "supabase", "usage_count": 1, "files": ["db/client.ts"]}
        ]

        [route] = snapshot.api_routes
        assert route.methods == ("GET",)
        assert route.file == "api/users.ts"
        assert "users" in route.path

    def test_import_flags(self, users_project: Path) -> None:
        snapshot = scan_project(users_project)
        by_path = snapshot.file_by_path()
        assert by_path["api/users.ts"].imports[0].is_external is False
        assert by_path["db/client.ts"].imports[0].is_external is True


class TestFullProject:
    def test_stats(self, web_project: Path) -> None:
        snapshot = scan_project(web_project)
        stats = snapshot.stats
        assert stats.total_files == 13
        assert stats.total_lines == sum(f.lines for f in snapshot.files)
        assert stats.total_functions == 5
        assert stats.total_components == 6
        assert stats.total_api_routes == 3
        assert stats.total_pages == 3
        assert stats.total_external_services == 1
        assert stats.file_types == {
            "other": 2,
            "api_route": 3,
            "schema": 1,
            "component": 3,
            "hook": 1,
            "page": 3,
        }

    def test_routes_use_registration_hints(self, web_project: Path) -> None:
        snapshot = scan_project(web_project)
        routes = {r.path: r.methods for r in snapshot.api_routes}
        assert routes == {
            "/api/backlog": ("GET", "POST"),
            "/api/github": ("GET",),
            "/api/issues": ("GET",),
        }

    def test_pages_and_components(self, web_project: Path) -> None:
        snapshot = scan_project(web_project)
        pages = {p.path: p.components for p in snapshot.pages}
        assert pages["/Backlog"] == ("ItemCard",)
        assert pages["/Settings"] == ()

    def test_modules_partition_files(self, web_project: Path) -> None:
        snapshot = scan_project(web_project)
        names = {m.name for m in snapshot.modules}
        assert names == {
            "Server",
            "Server Routes",
            "Shared",
            "UI Components",
            "UI Hooks",
            "UI Views",
        }
        all_files = [p for m in snapshot.modules for p in m.files]
        assert sorted(all_files) == sorted(f.path for f in snapshot.files)
        assert len(all_files) == len(set(all_files))

    def test_edge_validity(self, web_project: Path) -> None:
        snapshot = scan_project(web_project)
        paths = {f.path for f in snapshot.files}
        assert snapshot.dependency_edges
        for edge in snapshot.dependency_edges:
            assert edge.source in paths
            assert edge.target in paths
            assert edge.source != edge.target

    def test_idempotent(self, web_project: Path) -> None:
        first = scan_project(web_project)
        second = scan_project(web_project)
        assert first.files == second.files
        assert first.dependency_edges == second.dependency_edges
        assert first.modules == second.modules

    def test_single_worker_matches_pool(self, web_project: Path) -> None:
        pooled = scan_project(web_project)
        serial = scan_project(web_project, config=AnalyzerConfig(max_workers=1))
        assert pooled.files == serial.files
        assert pooled.dependency_edges == serial.dependency_edges

    def test_subdir_scan(self, web_project: Path) -> None:
        snapshot = scan_project(web_project, "ui")
        assert snapshot.scan_root == str(web_project / "ui")
        assert all(f.path.startswith("src/") for f in snapshot.files)
        assert snapshot.stats.total_files == 7

    def test_db_operations(self, web_project: Path) -> None:
        snapshot = scan_project(web_project)
        items = snapshot.file_by_path()["server/store/items.ts"]
        assert items.db_operations == ("SELECT", "INSERT", "DELETE")


class TestDegradation:
    def test_unreadable_file_is_recorded(self, make_tree) -> None:
        root = make_tree({"a.ts": "export const a = 1;\n"})
        (root / "b.ts").write_bytes(b"\xff\xfe\x00\x81")
        snapshot = scan_project(root)
        by_path = snapshot.file_by_path()
        assert by_path["b.ts"].lines == 0
        assert by_path["b.ts"].exports == ()
        assert snapshot.warnings.unreadable_files == 1

    def test_unresolved_relative_import_counted(self, make_tree) -> None:
        root = make_tree({"a.ts": "import { x } from './gone';\nimport React from 'react';\n"})
        snapshot = scan_project(root)
        assert snapshot.warnings.unresolved_imports == 1
        assert snapshot.dependency_edges == ()
        assert all(i.is_external for i in snapshot.files[0].imports)

    def test_alias_with_tsconfig(self, make_tree) -> None:
        root = make_tree(
            {
                "tsconfig.json": '{"compilerOptions": {"paths": {"@app/*": ["./src/*"]}}}',
                "src/main.ts": "import { util } from '@app/lib/util';\n",
                "src/lib/util.ts": "export const util = 1;\n",
            }
        )
        snapshot = scan_project(root)
        assert [(e.source, e.target) for e in snapshot.dependency_edges] == [
            ("src/main.ts", "src/lib/util.ts")
        ]

    def test_alias_resolves_inside_subdir_scan(self, make_tree) -> None:
        root = make_tree(
            {
                "src/main.ts": "import { util } from '@/lib/util';\n",
                "src/lib/util.ts": "export const util = 1;\n",
            }
        )
        snapshot = scan_project(root, "src")
        assert [(e.source, e.target) for e in snapshot.dependency_edges] == [
            ("main.ts", "lib/util.ts")
        ]


class TestScanErrors:
    def test_missing_root(self, tmp_path: Path) -> None:
        with pytest.raises(ScanTargetNotFound):
            scan_project(tmp_path / "missing")

    def test_missing_subdir(self, users_project: Path) -> None:
        with pytest.raises(ScanTargetNotFound):
            scan_project(users_project, "src")

    def test_timeout(self, web_project: Path) -> None:
        with pytest.raises(ScanTimeout):
            scan_project(web_project, timeout=0)
