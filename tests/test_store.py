"""Tests for codeatlas.store - snapshot ownership, swap and reload."""

from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from codeatlas.config import AnalyzerConfig, LabelTemplate
from codeatlas.errors import ScanInProgress, ScanTargetNotFound, ScanTimeout
from codeatlas.storage import JsonSnapshotStorage, MemorySnapshotStorage
from codeatlas.store import AnalysisStore

if TYPE_CHECKING:
    from pathlib import Path

    from codeatlas.models import AnalysisSnapshot


class _ReentrantStorage(MemorySnapshotStorage):
    """Starts a second scan while the first one is saving."""

    def __init__(self, root: Path) -> None:
        super().__init__()
        self.root = root
        self.store: AnalysisStore | None = None
        self.nested_error: Exception | None = None

    def save_snapshot(self, snapshot: AnalysisSnapshot) -> None:
        assert self.store is not None
        assert self.store.scanning
        try:
            self.store.scan(self.root)
        except ScanInProgress as exc:
            self.nested_error = exc
        super().save_snapshot(snapshot)


class TestScan:
    def test_scan_makes_snapshot_current(self, users_project: Path) -> None:
        storage = MemorySnapshotStorage()
        store = AnalysisStore(storage)
        snapshot = store.scan(users_project)
        assert store.get_current() is snapshot
        assert storage.saves == 1
        assert store.scanning is False

    def test_concurrent_scan_rejected(self, users_project: Path) -> None:
        storage = _ReentrantStorage(users_project)
        store = AnalysisStore(storage)
        storage.store = store
        store.scan(users_project)
        assert isinstance(storage.nested_error, ScanInProgress)
        assert storage.saves == 1
        assert store.scanning is False

    def test_failed_scans_keep_previous_snapshot(
        self, users_project: Path, web_project: Path
    ) -> None:
        store = AnalysisStore(MemorySnapshotStorage())
        first = store.scan(users_project)

        with pytest.raises(ScanTargetNotFound):
            store.scan(users_project, "missing")
        assert store.get_current() is first

        with pytest.raises(ScanTargetNotFound):
            store.scan(users_project, str(web_project))
        assert store.get_current() is first

        with pytest.raises(ScanTimeout):
            store.scan(web_project, timeout=0)
        assert store.get_current() is first
        assert store.scanning is False

    def test_rescan_replaces_snapshot(self, users_project: Path, web_project: Path) -> None:
        store = AnalysisStore(MemorySnapshotStorage())
        store.scan(users_project)
        store.scan(web_project)
        assert store.get_stats()["stats"]["total_files"] == 13


class TestColdStart:
    def test_reload_from_json(self, users_project: Path, tmp_path: Path) -> None:
        path = tmp_path / "cache" / "analysis.json"
        original = AnalysisStore(JsonSnapshotStorage(path)).scan(users_project)

        restarted = AnalysisStore(JsonSnapshotStorage(path))
        current = restarted.get_current()
        assert current is not None
        assert current.to_dict() == original.to_dict()
        assert [r.path for r in restarted.list_routes()] == ["/api/users"]

    def test_reload_keeps_configured_labels(self, make_tree, tmp_path: Path) -> None:
        root = make_tree(
            {
                ".codeatlas/config.yml": "relationship_labels:\n  - label: \"{count} links\"\n",
                "api/users.ts": "export function GET() {}\n",
                "ui/List.tsx": (
                    "import { GET } from '../api/users';\nexport const List = () => null;\n"
                ),
            }
        )
        path = tmp_path / "cache" / "analysis.json"
        first = AnalysisStore(JsonSnapshotStorage(path))
        first.scan(root)
        before = [e.data["relationship"] for e in first.compose_graph("modules").edges]
        assert before == ["1 links"]

        restarted = AnalysisStore(JsonSnapshotStorage(path))
        after = [e.data["relationship"] for e in restarted.compose_graph("modules").edges]
        assert after == before

    def test_reads_before_any_scan(self, tmp_path: Path) -> None:
        store = AnalysisStore(JsonSnapshotStorage(tmp_path / "none.json"))
        assert store.get_current() is None
        assert store.get_stats() == {}
        assert store.list_files() == []
        assert store.get_file("a.ts") is None
        assert store.list_routes() == []
        assert store.list_pages() == []
        assert store.list_modules() == []
        assert store.list_services() == []
        assert store.list_dependency_edges() == []
        assert store.search("a").total == 0
        assert store.compose_graph("modules").to_dict() == {"nodes": [], "edges": []}


class TestReads:
    def test_delegates_to_queries(self, web_project: Path) -> None:
        store = AnalysisStore(MemorySnapshotStorage())
        store.scan(web_project)
        assert len(store.list_files("page")) == 3
        assert store.get_file("shared/types.ts") is not None
        assert len(store.list_pages()) == 3
        assert [s.name for s in store.list_services()] == ["github"]
        assert store.search("Badge").total >= 1
        assert store.compose_graph("files", "UI Hooks").nodes[0].id == "ui/src/hooks/useItems.ts"

    def test_graph_uses_configured_templates(self, web_project: Path) -> None:
        config = AnalyzerConfig(relationship_labels=(LabelTemplate("*", "*", "{count} links"),))
        store = AnalysisStore(MemorySnapshotStorage(), config=config)
        store.scan(web_project)
        graph = store.compose_graph("modules")
        assert graph.edges
        assert all(e.data["relationship"].endswith(" links") for e in graph.edges)
