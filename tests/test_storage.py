"""Tests for codeatlas.storage - JSON snapshot persistence."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

from codeatlas.analyzer.scanner import scan_project
from codeatlas.storage import JsonSnapshotStorage, MemorySnapshotStorage

if TYPE_CHECKING:
    from pathlib import Path


class TestJsonSnapshotStorage:
    def test_round_trip(self, web_project: Path, tmp_path: Path) -> None:
        snapshot = scan_project(web_project)
        storage = JsonSnapshotStorage(tmp_path / "cache" / "analysis.json")
        storage.save_snapshot(snapshot)

        loaded = storage.load_snapshot()
        assert loaded is not None
        assert loaded.to_dict() == snapshot.to_dict()
        assert loaded.files == snapshot.files
        assert loaded.dependency_edges == snapshot.dependency_edges

    def test_edges_use_from_to_keys(self, users_project: Path, tmp_path: Path) -> None:
        path = tmp_path / "analysis.json"
        JsonSnapshotStorage(path).save_snapshot(scan_project(users_project))
        data = json.loads(path.read_text(encoding="utf-8"))
        assert data["dependency_edges"] == [
            {"from": "api/users.ts", "to": "db/client.ts", "imports": ["client"]}
        ]

    def test_overwrite_leaves_no_temp_files(self, users_project: Path, tmp_path: Path) -> None:
        cache = tmp_path / "cache"
        storage = JsonSnapshotStorage(cache / "analysis.json")
        storage.save_snapshot(scan_project(users_project))
        storage.save_snapshot(scan_project(users_project))
        assert [p.name for p in cache.iterdir()] == ["analysis.json"]

    def test_missing_file(self, tmp_path: Path) -> None:
        assert JsonSnapshotStorage(tmp_path / "missing.json").load_snapshot() is None

    def test_corrupt_file(self, tmp_path: Path) -> None:
        path = tmp_path / "analysis.json"
        path.write_text("{ truncated", encoding="utf-8")
        assert JsonSnapshotStorage(path).load_snapshot() is None

    def test_malformed_file(self, tmp_path: Path) -> None:
        path = tmp_path / "analysis.json"
        path.write_text(json.dumps({"files": []}), encoding="utf-8")
        assert JsonSnapshotStorage(path).load_snapshot() is None


class TestMemorySnapshotStorage:
    def test_counts_saves(self, users_project: Path) -> None:
        storage = MemorySnapshotStorage()
        assert storage.load_snapshot() is None
        snapshot = scan_project(users_project)
        storage.save_snapshot(snapshot)
        assert storage.load_snapshot() is snapshot
        assert storage.saves == 1
