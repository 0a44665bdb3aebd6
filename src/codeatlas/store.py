"""Analysis store: owns the current snapshot and serves every read from it."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import TYPE_CHECKING

from codeatlas import query
from codeatlas.analyzer.scanner import scan_project
from codeatlas.config import load_config
from codeatlas.errors import ConfigError, ScanInProgress
from codeatlas.graph.composer import compose_graph

if TYPE_CHECKING:
    from typing import Any

    from codeatlas.config import AnalyzerConfig
    from codeatlas.graph.composer import Graph
    from codeatlas.models import (
        AnalysisSnapshot,
        ApiRouteRecord,
        DependencyEdge,
        FileRecord,
        Module,
        PageRecord,
        ServiceUsage,
    )
    from codeatlas.query import FileDetail, SearchResults
    from codeatlas.storage import SnapshotStorage

logger = logging.getLogger(__name__)


class AnalysisStore:
    """Single owner of the current :class:`AnalysisSnapshot`.

    ``scan`` builds a new snapshot off to the side and swaps it in only once
    it is complete and persisted; readers always hold one whole snapshot.
    Only one scan may run at a time.
    """

    def __init__(self, storage: SnapshotStorage, *, config: AnalyzerConfig | None = None) -> None:
        self._storage = storage
        self._config = config
        self._current: AnalysisSnapshot | None = None
        self._loaded = False
        self._last_config = config
        self._scan_lock = threading.Lock()
        self._swap_lock = threading.Lock()

    @property
    def scanning(self) -> bool:
        return self._scan_lock.locked()

    def scan(
        self,
        root: Path | str,
        subdir: str | None = None,
        *,
        timeout: float | None = None,
    ) -> AnalysisSnapshot:
        """Scan *root* (optionally one subdirectory) and make the result current.

        Raises
        ------
        ScanInProgress
            When another scan on this store has not finished yet.
        ScanTargetNotFound
            When the root or subdirectory does not exist.
        ScanTimeout
            When the scan exceeds its time budget.
        """
        if not self._scan_lock.acquire(blocking=False):
            msg = "A scan is already running"
            raise ScanInProgress(msg)
        try:
            project_root = Path(root)
            config = self._config or load_config(project_root)
            snapshot = scan_project(project_root, subdir, config=config, timeout=timeout)
            self._storage.save_snapshot(snapshot)
            with self._swap_lock:
                self._current = snapshot
                self._loaded = True
                self._last_config = config
            return snapshot
        finally:
            self._scan_lock.release()

    def get_current(self) -> AnalysisSnapshot | None:
        """The in-memory snapshot, loading the persisted one on first use."""
        with self._swap_lock:
            if self._current is None and not self._loaded:
                self._current = self._storage.load_snapshot()
                self._loaded = True
                if self._current is not None:
                    logger.info("Loaded snapshot from %s", self._current.scanned_at)
                    if self._last_config is None:
                        self._last_config = self._reload_config(self._current)
            return self._current

    @staticmethod
    def _reload_config(snapshot: AnalysisSnapshot) -> AnalyzerConfig | None:
        """Config of the project a stored snapshot came from, or ``None`` if unusable."""
        if not snapshot.project_root:
            return None
        try:
            return load_config(Path(snapshot.project_root))
        except ConfigError as exc:
            logger.warning("Ignoring config of %s: %s", snapshot.project_root, exc)
            return None

    # -- reads --------------------------------------------------------------

    def get_stats(self) -> dict[str, Any]:
        return query.get_stats(self.get_current())

    def list_files(
        self, file_type: str | None = None, search: str | None = None
    ) -> list[FileRecord]:
        return query.list_files(self.get_current(), file_type, search)

    def get_file(self, path: str) -> FileDetail | None:
        return query.get_file(self.get_current(), path)

    def list_routes(self) -> list[ApiRouteRecord]:
        return query.list_routes(self.get_current())

    def list_pages(self) -> list[PageRecord]:
        return query.list_pages(self.get_current())

    def list_modules(self) -> list[Module]:
        return query.list_modules(self.get_current())

    def list_services(self) -> list[ServiceUsage]:
        return query.list_services(self.get_current())

    def list_dependency_edges(self, file: str | None = None) -> list[DependencyEdge]:
        return query.list_dependency_edges(self.get_current(), file)

    def compose_graph(self, view: str = "modules", module_filter: str | None = None) -> Graph:
        snapshot = self.get_current()
        config = self._config or self._last_config
        templates = config.relationship_labels if config else ()
        return compose_graph(snapshot, view, module_filter, templates=templates)

    def search(self, q: str) -> SearchResults:
        return query.search(self.get_current(), q)
