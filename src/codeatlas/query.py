"""Read-side queries over an optional snapshot.

Every function accepts ``None`` for "never scanned" and answers with an
empty result instead of raising, so callers never special-case a missing
snapshot.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from codeatlas.models import (
        AnalysisSnapshot,
        ApiRouteRecord,
        DependencyEdge,
        FileRecord,
        Module,
        PageRecord,
        ServiceUsage,
    )

# Search returns at most this many hits; ``total`` still counts all of them.
SEARCH_LIMIT = 50


@dataclass(frozen=True)
class FileDetail:
    """A file plus the edges that point at it and away from it."""

    file: FileRecord
    imported_by: list[dict[str, Any]] = field(default_factory=list)
    depends_on: list[dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "file": self.file.to_dict(),
            "imported_by": self.imported_by,
            "depends_on": self.depends_on,
        }


@dataclass(frozen=True)
class SearchHit:
    type: str  # "file", an export kind, "api_route" or "page"
    name: str
    detail: str
    file: str
    line: int | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "type": self.type,
            "name": self.name,
            "detail": self.detail,
            "file": self.file,
        }
        if self.line is not None:
            data["line"] = self.line
        return data


@dataclass(frozen=True)
class SearchResults:
    results: list[SearchHit] = field(default_factory=list)
    total: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"results": [r.to_dict() for r in self.results], "total": self.total}


def get_stats(snapshot: AnalysisSnapshot | None) -> dict[str, Any]:
    """Headline stats with scan time; empty dict before the first scan."""
    if snapshot is None:
        return {}
    return {
        "stats": snapshot.stats.to_dict(),
        "scanned_at": snapshot.scanned_at,
        "duration_ms": snapshot.duration_ms,
        "warnings": snapshot.warnings.to_dict(),
    }


def list_files(
    snapshot: AnalysisSnapshot | None,
    file_type: str | None = None,
    search: str | None = None,
) -> list[FileRecord]:
    """Files filtered by type and by a case-insensitive path/export substring."""
    if snapshot is None:
        return []
    files = list(snapshot.files)
    if file_type:
        files = [f for f in files if f.type == file_type]
    if search:
        needle = search.lower()
        files = [
            f
            for f in files
            if needle in f.path.lower() or any(needle in e.name.lower() for e in f.exports)
        ]
    return files


def get_file(snapshot: AnalysisSnapshot | None, path: str) -> FileDetail | None:
    """Look up one file with its ``imported_by`` and ``depends_on`` edges."""
    if snapshot is None:
        return None
    record = snapshot.file_by_path().get(path)
    if record is None:
        return None
    imported_by = [
        {"file": e.source, "imports": list(e.imports)}
        for e in snapshot.dependency_edges
        if e.target == path
    ]
    depends_on = [
        {"file": e.target, "imports": list(e.imports)}
        for e in snapshot.dependency_edges
        if e.source == path
    ]
    return FileDetail(file=record, imported_by=imported_by, depends_on=depends_on)


def list_routes(snapshot: AnalysisSnapshot | None) -> list[ApiRouteRecord]:
    return list(snapshot.api_routes) if snapshot else []


def list_pages(snapshot: AnalysisSnapshot | None) -> list[PageRecord]:
    return list(snapshot.pages) if snapshot else []


def list_modules(snapshot: AnalysisSnapshot | None) -> list[Module]:
    return list(snapshot.modules) if snapshot else []


def list_services(snapshot: AnalysisSnapshot | None) -> list[ServiceUsage]:
    return list(snapshot.external_services) if snapshot else []


def list_dependency_edges(
    snapshot: AnalysisSnapshot | None, file: str | None = None
) -> list[DependencyEdge]:
    """All edges, or only those with *file* at either end."""
    if snapshot is None:
        return []
    if not file:
        return list(snapshot.dependency_edges)
    return [e for e in snapshot.dependency_edges if file in (e.source, e.target)]


def search(
    snapshot: AnalysisSnapshot | None, query: str, *, limit: int = SEARCH_LIMIT
) -> SearchResults:
    """Case-insensitive substring search over paths, export names, routes and pages.

    Hits are ordered files first (a path hit, then that file's export hits),
    then routes, then pages.  At most *limit* are returned; ``total`` is the
    full count.
    """
    needle = query.strip().lower()
    if snapshot is None or not needle:
        return SearchResults()

    hits: list[SearchHit] = []
    for f in snapshot.files:
        if needle in f.path.lower():
            hits.append(SearchHit(type="file", name=f.name, detail=f.path, file=f.path))
        for e in f.exports:
            if needle in e.name.lower():
                hits.append(
                    SearchHit(type=e.kind, name=e.name, detail=f.path, file=f.path, line=e.line)
                )

    for route in snapshot.api_routes:
        if needle in route.path.lower():
            hits.append(
                SearchHit(
                    type="api_route",
                    name=route.path,
                    detail=", ".join(route.methods),
                    file=route.file,
                )
            )

    for page in snapshot.pages:
        if needle in page.path.lower():
            hits.append(SearchHit(type="page", name=page.path, detail=page.file, file=page.file))

    return SearchResults(results=hits[:limit], total=len(hits))
