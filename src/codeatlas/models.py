"""Snapshot data model: file records, edges, modules, routes and services.

Every type is a frozen dataclass.  ``to_dict()`` produces the JSON contract
(field names such as ``externalCalls`` or ``usage_count`` are part of it) and
``from_dict()`` reads it back, so a persisted snapshot round-trips exactly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

FILE_TYPES: tuple[str, ...] = (
    "page",
    "api_route",
    "component",
    "hook",
    "utility",
    "config",
    "schema",
    "test",
    "other",
)

EXPORT_KINDS: tuple[str, ...] = ("function", "hook", "component", "class", "constant", "type")

MODULE_KINDS: tuple[str, ...] = ("backend", "frontend", "integration", "data", "shared", "other")


# ---------------------------------------------------------------------------
# Per-file records
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ExportSymbol:
    """A top-level exported symbol."""

    name: str
    kind: str
    line: int  # 1-based
    is_default: bool = False
    params: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {
            "name": self.name,
            "kind": self.kind,
            "line": self.line,
            "isDefault": self.is_default,
        }
        if self.params is not None:
            data["params"] = self.params
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExportSymbol:
        return cls(
            name=data["name"],
            kind=data["kind"],
            line=int(data["line"]),
            is_default=bool(data.get("isDefault", False)),
            params=data.get("params"),
        )


@dataclass(frozen=True)
class ImportSpec:
    """One import (or re-export) statement."""

    source: str  # raw specifier, e.g. "./db/client" or "react"
    names: tuple[str, ...] = ()
    is_default: bool = False
    is_external: bool = True

    def to_dict(self) -> dict[str, Any]:
        return {
            "source": self.source,
            "names": list(self.names),
            "isDefault": self.is_default,
            "isExternal": self.is_external,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ImportSpec:
        return cls(
            source=data["source"],
            names=tuple(data.get("names", [])),
            is_default=bool(data.get("isDefault", False)),
            is_external=bool(data.get("isExternal", True)),
        )


@dataclass(frozen=True)
class ExternalCallSite:
    """A reference to a third-party service found in file content."""

    service: str
    detail: str
    line: int

    def to_dict(self) -> dict[str, Any]:
        return {"service": self.service, "detail": self.detail, "line": self.line}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ExternalCallSite:
        return cls(service=data["service"], detail=data.get("detail", ""), line=int(data["line"]))


@dataclass(frozen=True)
class FileRecord:
    """Structural summary of one source file."""

    path: str  # scan-root-relative POSIX path
    name: str
    extension: str
    type: str
    lines: int
    size: int = 0
    exports: tuple[ExportSymbol, ...] = ()
    imports: tuple[ImportSpec, ...] = ()
    external_calls: tuple[ExternalCallSite, ...] = ()
    db_operations: tuple[str, ...] = ()

    @property
    def services(self) -> list[str]:
        """Unique external service ids referenced by this file, in first-seen order."""
        return list(dict.fromkeys(call.service for call in self.external_calls))

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "name": self.name,
            "extension": self.extension,
            "type": self.type,
            "lines": self.lines,
            "size": self.size,
            "exports": [e.to_dict() for e in self.exports],
            "imports": [i.to_dict() for i in self.imports],
            "externalCalls": [c.to_dict() for c in self.external_calls],
            "dbOperations": list(self.db_operations),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> FileRecord:
        return cls(
            path=data["path"],
            name=data["name"],
            extension=data.get("extension", ""),
            type=data["type"],
            lines=int(data["lines"]),
            size=int(data.get("size", 0)),
            exports=tuple(ExportSymbol.from_dict(e) for e in data.get("exports", [])),
            imports=tuple(ImportSpec.from_dict(i) for i in data.get("imports", [])),
            external_calls=tuple(
                ExternalCallSite.from_dict(c) for c in data.get("externalCalls", [])
            ),
            db_operations=tuple(data.get("dbOperations", [])),
        )


@dataclass(frozen=True)
class DependencyEdge:
    """A directed, de-duplicated import relationship between two files."""

    source: str  # ``from`` in the JSON contract
    target: str  # ``to`` in the JSON contract
    imports: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"from": self.source, "to": self.target, "imports": list(self.imports)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> DependencyEdge:
        return cls(source=data["from"], target=data["to"], imports=tuple(data.get("imports", [])))


# ---------------------------------------------------------------------------
# Aggregates
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ModuleExport:
    """An export aggregated into a module, with the file it comes from."""

    name: str
    kind: str
    file: str

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "kind": self.kind, "file": self.file}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ModuleExport:
        return cls(name=data["name"], kind=data["kind"], file=data["file"])


@dataclass(frozen=True)
class Module:
    """A named, non-overlapping group of files."""

    name: str
    files: tuple[str, ...]
    description: str = ""
    short_description: str = ""
    exports: tuple[ModuleExport, ...] = ()
    dependencies: tuple[str, ...] = ()
    external_services: tuple[str, ...] = ()
    key_exports: tuple[str, ...] = ()
    file_type_summary: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "shortDescription": self.short_description,
            "files": list(self.files),
            "exports": [e.to_dict() for e in self.exports],
            "dependencies": list(self.dependencies),
            "externalServices": list(self.external_services),
            "keyExports": list(self.key_exports),
            "fileTypeSummary": dict(self.file_type_summary),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Module:
        return cls(
            name=data["name"],
            files=tuple(data.get("files", [])),
            description=data.get("description", ""),
            short_description=data.get("shortDescription", ""),
            exports=tuple(ModuleExport.from_dict(e) for e in data.get("exports", [])),
            dependencies=tuple(data.get("dependencies", [])),
            external_services=tuple(data.get("externalServices", [])),
            key_exports=tuple(data.get("keyExports", [])),
            file_type_summary={k: int(v) for k, v in data.get("fileTypeSummary", {}).items()},
        )


@dataclass(frozen=True)
class ApiRouteRecord:
    """An HTTP endpoint served by one route-handler file."""

    path: str
    methods: tuple[str, ...]
    file: str
    handlers: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "methods": list(self.methods),
            "file": self.file,
            "handlers": list(self.handlers),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ApiRouteRecord:
        return cls(
            path=data["path"],
            methods=tuple(data.get("methods", [])),
            file=data["file"],
            handlers=tuple(data.get("handlers", [])),
        )


@dataclass(frozen=True)
class PageRecord:
    """A user-facing page and the components it imports."""

    path: str
    file: str
    components: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"path": self.path, "file": self.file, "components": list(self.components)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> PageRecord:
        return cls(
            path=data["path"], file=data["file"], components=tuple(data.get("components", []))
        )


@dataclass(frozen=True)
class ServiceUsage:
    """How many files reference one external service."""

    name: str
    usage_count: int
    files: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {"name": self.name, "usage_count": self.usage_count, "files": list(self.files)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ServiceUsage:
        return cls(
            name=data["name"],
            usage_count=int(data["usage_count"]),
            files=tuple(data.get("files", [])),
        )


# ---------------------------------------------------------------------------
# Snapshot
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ScanStats:
    """Headline numbers for a snapshot."""

    total_files: int = 0
    total_lines: int = 0
    total_functions: int = 0
    total_components: int = 0
    total_api_routes: int = 0
    total_pages: int = 0
    total_external_services: int = 0
    file_types: dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "total_files": self.total_files,
            "total_lines": self.total_lines,
            "total_functions": self.total_functions,
            "total_components": self.total_components,
            "total_api_routes": self.total_api_routes,
            "total_pages": self.total_pages,
            "total_external_services": self.total_external_services,
            "file_types": dict(self.file_types),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScanStats:
        return cls(
            total_files=int(data.get("total_files", 0)),
            total_lines=int(data.get("total_lines", 0)),
            total_functions=int(data.get("total_functions", 0)),
            total_components=int(data.get("total_components", 0)),
            total_api_routes=int(data.get("total_api_routes", 0)),
            total_pages=int(data.get("total_pages", 0)),
            total_external_services=int(data.get("total_external_services", 0)),
            file_types={k: int(v) for k, v in data.get("file_types", {}).items()},
        )


@dataclass(frozen=True)
class ScanWarnings:
    """Non-fatal problems encountered during a scan."""

    unreadable_files: int = 0
    skipped_entries: int = 0
    unresolved_imports: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "unreadable_files": self.unreadable_files,
            "skipped_entries": self.skipped_entries,
            "unresolved_imports": self.unresolved_imports,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ScanWarnings:
        return cls(
            unreadable_files=int(data.get("unreadable_files", 0)),
            skipped_entries=int(data.get("skipped_entries", 0)),
            unresolved_imports=int(data.get("unresolved_imports", 0)),
        )


@dataclass(frozen=True)
class AnalysisSnapshot:
    """One complete, immutable result of a scan."""

    scanned_at: str
    project_root: str
    scan_root: str
    stats: ScanStats
    files: tuple[FileRecord, ...] = ()
    dependency_edges: tuple[DependencyEdge, ...] = ()
    api_routes: tuple[ApiRouteRecord, ...] = ()
    pages: tuple[PageRecord, ...] = ()
    modules: tuple[Module, ...] = ()
    external_services: tuple[ServiceUsage, ...] = ()
    warnings: ScanWarnings = field(default_factory=ScanWarnings)
    duration_ms: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "scanned_at": self.scanned_at,
            "project_root": self.project_root,
            "scan_root": self.scan_root,
            "duration_ms": self.duration_ms,
            "stats": self.stats.to_dict(),
            "warnings": self.warnings.to_dict(),
            "files": [f.to_dict() for f in self.files],
            "dependency_edges": [e.to_dict() for e in self.dependency_edges],
            "api_routes": [r.to_dict() for r in self.api_routes],
            "pages": [p.to_dict() for p in self.pages],
            "modules": [m.to_dict() for m in self.modules],
            "external_services": [s.to_dict() for s in self.external_services],
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AnalysisSnapshot:
        return cls(
            scanned_at=data["scanned_at"],
            project_root=data.get("project_root", ""),
            scan_root=data.get("scan_root", data.get("project_root", "")),
            duration_ms=int(data.get("duration_ms", 0)),
            stats=ScanStats.from_dict(data.get("stats", {})),
            warnings=ScanWarnings.from_dict(data.get("warnings", {})),
            files=tuple(FileRecord.from_dict(f) for f in data.get("files", [])),
            dependency_edges=tuple(
                DependencyEdge.from_dict(e) for e in data.get("dependency_edges", [])
            ),
            api_routes=tuple(ApiRouteRecord.from_dict(r) for r in data.get("api_routes", [])),
            pages=tuple(PageRecord.from_dict(p) for p in data.get("pages", [])),
            modules=tuple(Module.from_dict(m) for m in data.get("modules", [])),
            external_services=tuple(
                ServiceUsage.from_dict(s) for s in data.get("external_services", [])
            ),
        )

    def file_by_path(self) -> dict[str, FileRecord]:
        """Index of files keyed by path."""
        return {f.path: f for f in self.files}
