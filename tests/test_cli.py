"""Tests for the codeatlas CLI."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from click.testing import CliRunner

from codeatlas.cli import main

if TYPE_CHECKING:
    from pathlib import Path


def _run(*args: str):  # noqa: ANN202
    return CliRunner().invoke(main, list(args))


def _scan(project: Path) -> None:
    result = _run("scan", "--project", str(project))
    assert result.exit_code == 0, result.output


class TestScan:
    def test_scan_summary(self, users_project: Path) -> None:
        result = _run("scan", "--project", str(users_project))
        assert result.exit_code == 0, result.output
        assert "Scanned 2 files" in result.output
        assert (users_project / ".codeatlas" / "analysis.json").is_file()

    def test_scan_json(self, users_project: Path) -> None:
        result = _run("scan", "--project", str(users_project), "--json")
        assert result.exit_code == 0, result.output
        data = json.loads(result.output)
        assert data["stats"]["total_files"] == 2
        assert data["warnings"]["unreadable_files"] == 0

    def test_missing_subdir_fails(self, users_project: Path) -> None:
        result = _run("scan", "--project", str(users_project), "--subdir", "nope")
        assert result.exit_code != 0
        assert "nope" in result.output

    def test_subdir_outside_project_fails(self, users_project: Path, web_project: Path) -> None:
        result = _run("scan", "--project", str(users_project), "--subdir", str(web_project))
        assert result.exit_code == 1
        assert "outside the project root" in result.output
        assert not isinstance(result.exception, ValueError)

    def test_bad_config_fails(self, users_project: Path) -> None:
        config_dir = users_project / ".codeatlas"
        config_dir.mkdir()
        (config_dir / "config.yml").write_text("modules:\n  strategy: by-owner\n")
        result = _run("scan", "--project", str(users_project))
        assert result.exit_code != 0
        assert "by-owner" in result.output


class TestReads:
    def test_stats_json(self, users_project: Path) -> None:
        _scan(users_project)
        result = _run("stats", "--project", str(users_project), "--json")
        assert result.exit_code == 0, result.output
        assert json.loads(result.output)["stats"]["total_api_routes"] == 1

    def test_stats_table(self, users_project: Path) -> None:
        _scan(users_project)
        result = _run("stats", "--project", str(users_project))
        assert result.exit_code == 0, result.output
        assert "total files" in result.output
        assert "api_route" in result.output

    def test_stats_before_scan(self, users_project: Path) -> None:
        result = _run("stats", "--project", str(users_project), "--json")
        assert result.exit_code == 0
        assert json.loads(result.output) is None

    def test_files_json(self, web_project: Path) -> None:
        _scan(web_project)
        result = _run("files", "--project", str(web_project), "--type", "hook", "--json")
        data = json.loads(result.output)
        assert data["total"] == 1
        assert data["files"][0]["path"] == "ui/src/hooks/useItems.ts"

    def test_file_detail(self, users_project: Path) -> None:
        _scan(users_project)
        result = _run("file", "db/client.ts", "--project", str(users_project), "--json")
        data = json.loads(result.output)
        assert data["imported_by"] == [{"file": "api/users.ts", "imports": ["client"]}]

        text = _run("file", "api/users.ts", "--project", str(users_project))
        assert text.exit_code == 0, text.output
        assert "-> db/client.ts (client)" in text.output

    def test_file_not_found(self, users_project: Path) -> None:
        _scan(users_project)
        result = _run("file", "ghost.ts", "--project", str(users_project))
        assert result.exit_code != 0
        assert "ghost.ts" in result.output

    def test_routes_and_services(self, users_project: Path) -> None:
        _scan(users_project)
        routes = json.loads(_run("routes", "--project", str(users_project), "--json").output)
        assert routes["routes"][0]["path"] == "/api/users"
        services = _run("services", "--project", str(users_project))
        assert "supabase (1): db/client.ts" in services.output

    def test_deps_filter(self, web_project: Path) -> None:
        _scan(web_project)
        result = _run("deps", "--project", str(web_project), "--file", "shared/types.ts", "--json")
        assert json.loads(result.output) == {"edges": [], "total": 0}

    def test_modules_table(self, web_project: Path) -> None:
        _scan(web_project)
        result = _run("modules", "--project", str(web_project))
        assert result.exit_code == 0, result.output
        assert "UI Components" in result.output

    def test_graph(self, web_project: Path) -> None:
        _scan(web_project)
        data = json.loads(_run("graph", "--project", str(web_project)).output)
        assert data["view"] == "modules"
        assert {n["type"] for n in data["nodes"]} == {"moduleNode"}

        routes = json.loads(_run("graph", "--project", str(web_project), "--view", "routes").output)
        assert "svc:github" in [n["id"] for n in routes["nodes"]]

        bogus = json.loads(_run("graph", "--project", str(web_project), "--view", "bogus").output)
        assert bogus == {"nodes": [], "edges": [], "view": "bogus"}

    def test_search(self, users_project: Path) -> None:
        _scan(users_project)
        data = json.loads(_run("search", "users", "--project", str(users_project), "--json").output)
        assert data["total"] == 2
        assert {r["type"] for r in data["results"]} == {"file", "api_route"}
