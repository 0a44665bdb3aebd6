"""Scan orchestrator: walk, extract, classify, resolve and aggregate one tree."""

from __future__ import annotations

import logging
import os
import time
from collections import Counter
from concurrent.futures import ALL_COMPLETED, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from codeatlas.analyzer.call_sites import (
    extract_db_operations,
    extract_external_calls,
    extract_route_methods,
)
from codeatlas.analyzer.classifier import classify_file
from codeatlas.analyzer.code_indexer import parse_source
from codeatlas.analyzer.import_resolver import build_dependency_edges
from codeatlas.analyzer.modules import build_modules
from codeatlas.analyzer.route_extractor import (
    aggregate_external_services,
    extract_api_routes,
    extract_pages,
)
from codeatlas.analyzer.walker import walk_files
from codeatlas.config import load_config
from codeatlas.errors import FileUnreadable, ScanTimeout
from codeatlas.models import (
    AnalysisSnapshot,
    ExportSymbol,
    ExternalCallSite,
    FileRecord,
    ImportSpec,
    ScanStats,
    ScanWarnings,
)

if TYPE_CHECKING:
    from concurrent.futures import Future
    from pathlib import Path

    from codeatlas.config import AnalyzerConfig

logger = logging.getLogger(__name__)


@dataclass
class ParsedFile:
    """Content-level facts about one file, before classification and resolution."""

    path: str
    name: str
    extension: str
    lines: int = 0
    size: int = 0
    exports: list[ExportSymbol] = field(default_factory=list)
    imports: list[ImportSpec] = field(default_factory=list)
    external_calls: list[ExternalCallSite] = field(default_factory=list)
    db_operations: list[str] = field(default_factory=list)
    route_methods: list[str] = field(default_factory=list)
    unreadable: bool = False

    def to_record(self) -> FileRecord:
        return FileRecord(
            path=self.path,
            name=self.name,
            extension=self.extension,
            type=classify_file(self.path, self.exports),
            lines=self.lines,
            size=self.size,
            exports=tuple(self.exports),
            imports=tuple(self.imports),
            external_calls=tuple(self.external_calls),
            db_operations=tuple(self.db_operations),
        )


def _extension(name: str) -> str:
    if name.endswith(".d.ts"):
        return ".ts"
    return os.path.splitext(name)[1]


def read_source(path: Path) -> str:
    """Read *path* as UTF-8 text.

    Raises
    ------
    FileUnreadable
        When the file cannot be opened or is not valid UTF-8.
    """
    try:
        return path.read_bytes().decode("utf-8")
    except OSError as exc:
        raise FileUnreadable(str(path), exc.strerror or str(exc)) from exc
    except UnicodeDecodeError as exc:
        raise FileUnreadable(str(path), "not valid UTF-8") from exc


def extract_file(path: Path, rel_path: str) -> ParsedFile:
    """Extract exports, imports, call sites and size facts from one file.

    Content that no grammar can parse keeps its line count and regex-level
    facts but reports no exports or imports.

    Raises
    ------
    FileUnreadable
        When the file cannot be read as text.
    """
    content = read_source(path)
    parsed = ParsedFile(
        path=rel_path,
        name=path.name,
        extension=_extension(path.name),
        lines=len(content.splitlines()),
        size=len(content),
    )

    source = parse_source(content, parsed.extension)
    if source is None:
        logger.debug("No syntax tree for %s, keeping line-count metadata", rel_path)
    else:
        parsed.exports = source.exports
        parsed.imports = source.imports

    parsed.external_calls = extract_external_calls(content)
    parsed.db_operations = extract_db_operations(content)
    parsed.route_methods = extract_route_methods(content)
    return parsed


def _extract_or_degrade(path: Path, rel_path: str) -> ParsedFile:
    try:
        return extract_file(path, rel_path)
    except FileUnreadable as exc:
        logger.warning("Cannot read %s: %s", rel_path, exc.reason)
        return ParsedFile(
            path=rel_path, name=path.name, extension=_extension(path.name), unreadable=True
        )


def _extract_all(
    paths: list[tuple[Path, str]],
    *,
    max_workers: int,
    deadline: float | None,
) -> list[ParsedFile]:
    """Extract every file on a bounded pool; results keep walk order."""
    if not paths:
        return []

    executor = ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="codeatlas-extract")
    futures: list[Future[ParsedFile]] = []
    try:
        futures = [executor.submit(_extract_or_degrade, p, rel) for p, rel in paths]
        timeout = None if deadline is None else max(0.0, deadline - time.monotonic())
        done, pending = wait(futures, timeout=timeout, return_when=ALL_COMPLETED)
        if pending:
            msg = f"Scan timed out after extracting {len(done)} of {len(futures)} files"
            raise ScanTimeout(msg)
        return [f.result() for f in futures]
    finally:
        executor.shutdown(wait=False, cancel_futures=True)


def _check_deadline(deadline: float | None, stage: str) -> None:
    if deadline is not None and time.monotonic() > deadline:
        msg = f"Scan timed out during {stage}"
        raise ScanTimeout(msg)


def _build_stats(
    snapshot_files: tuple[FileRecord, ...], routes: int, pages: int, services: int
) -> ScanStats:
    kinds = Counter(e.kind for f in snapshot_files for e in f.exports)
    return ScanStats(
        total_files=len(snapshot_files),
        total_lines=sum(f.lines for f in snapshot_files),
        total_functions=kinds["function"] + kinds["hook"],
        total_components=kinds["component"],
        total_api_routes=routes,
        total_pages=pages,
        total_external_services=services,
        file_types=dict(Counter(f.type for f in snapshot_files)),
    )


def scan_project(
    project_root: Path,
    subdir: str | None = None,
    *,
    config: AnalyzerConfig | None = None,
    timeout: float | None = None,
) -> AnalysisSnapshot:
    """Run the full pipeline over *project_root* (or one subdirectory of it).

    Returns a new immutable snapshot; nothing is persisted here.

    Raises
    ------
    ScanTargetNotFound
        When the root or subdirectory does not exist.
    ScanTimeout
        When the scan takes longer than *timeout* (or ``config.scan_timeout``).
    """
    started = time.monotonic()
    config = config or load_config(project_root)
    walk = walk_files(
        project_root, subdir, skip_dirs=config.skip_dirs, extensions=config.extensions
    )
    budget = timeout if timeout is not None else config.scan_timeout
    deadline = started + budget if budget is not None else None

    logger.info("Scanning %s (%d candidate files)", walk.root, len(walk.files))

    parsed = _extract_all(
        [(p, walk.relative(p)) for p in walk.files],
        max_workers=config.max_workers,
        deadline=deadline,
    )
    _check_deadline(deadline, "extraction")

    root_prefix = ""
    if walk.root != project_root:
        root_prefix = walk.root.relative_to(project_root).as_posix()
    resolution = build_dependency_edges(
        [p.to_record() for p in parsed], aliases=config.aliases, root_prefix=root_prefix
    )
    files = tuple(resolution.files)
    edges = tuple(resolution.edges)
    _check_deadline(deadline, "dependency resolution")

    route_hints = {p.path: p.route_methods for p in parsed if p.route_methods}
    routes = tuple(extract_api_routes(files, route_hints, route_prefix=config.route_prefix))
    pages = tuple(extract_pages(files))
    services = tuple(aggregate_external_services(files))
    modules = tuple(build_modules(files, edges, config.modules))
    _check_deadline(deadline, "module aggregation")

    duration_ms = int((time.monotonic() - started) * 1000)
    snapshot = AnalysisSnapshot(
        scanned_at=datetime.now(tz=timezone.utc).isoformat(),
        project_root=str(project_root),
        scan_root=str(walk.root),
        stats=_build_stats(files, len(routes), len(pages), len(services)),
        files=files,
        dependency_edges=edges,
        api_routes=routes,
        pages=pages,
        modules=modules,
        external_services=services,
        warnings=ScanWarnings(
            unreadable_files=sum(1 for p in parsed if p.unreadable),
            skipped_entries=walk.skipped,
            unresolved_imports=resolution.unresolved,
        ),
        duration_ms=duration_ms,
    )
    logger.info(
        "Scan complete: %d files, %d lines in %dms",
        snapshot.stats.total_files,
        snapshot.stats.total_lines,
        duration_ms,
    )
    return snapshot
