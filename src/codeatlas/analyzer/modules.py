"""Module aggregation: partition files into modules and summarize each one.

Partitioning is policy (see :class:`codeatlas.config.ModulePolicy`).  The
``directory`` strategy groups by the first one to three directory levels
and folds tiny groups into their parent; the ``top_level`` strategy groups
by the first path segment.  Either way every file lands in exactly one
module.
"""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass
from typing import TYPE_CHECKING

from codeatlas.config import ModulePolicy
from codeatlas.models import Module, ModuleExport

if TYPE_CHECKING:
    from collections.abc import Callable, Iterable, Sequence

    from codeatlas.models import DependencyEdge, FileRecord

ROOT_GROUP = "root"

# Aggregated module exports are capped at this many entries.
_MAX_MODULE_EXPORTS = 50
_KEY_EXPORT_KINDS = frozenset({"function", "component", "hook", "class"})

_SPECIAL_NAMES: dict[str, str] = {"ui": "UI", "cli": "CLI", "api": "API", "ws": "WebSocket"}


# ---------------------------------------------------------------------------
# Partitioning
# ---------------------------------------------------------------------------


def _directory_key(path: str, generic_dirs: frozenset[str]) -> str:
    parts = path.split("/")
    if len(parts) == 1:
        return ROOT_GROUP
    if len(parts) == 2:
        return parts[0]
    if parts[1] in generic_dirs and len(parts) > 3:
        return "/".join(parts[:3])
    return "/".join(parts[:2])


def _top_level_key(path: str) -> str:
    parts = path.split("/")
    return parts[0] if len(parts) > 1 else ROOT_GROUP


def group_files(paths: Iterable[str], policy: ModulePolicy | None = None) -> dict[str, list[str]]:
    """Partition *paths* into directory groups keyed by group path.

    Groups holding at most ``policy.merge_threshold`` files fold into their
    parent group when one exists.  Merges follow the parent's own target, so
    a file never ends up in two groups.
    """
    policy = policy or ModulePolicy()
    groups: dict[str, list[str]] = {}
    for path in paths:
        if policy.strategy == "top_level":
            key = _top_level_key(path)
        else:
            key = _directory_key(path, policy.generic_dirs)
        groups.setdefault(key, []).append(path)

    if policy.strategy == "top_level":
        return groups

    # Parents sort before their children, so target[parent] is always known.
    target: dict[str, str] = {}
    for key in sorted(groups):
        dest = key
        if len(groups[key]) <= policy.merge_threshold and "/" in key:
            parent = key.rsplit("/", 1)[0]
            if parent in groups:
                dest = target[parent]
        target[key] = dest

    merged: dict[str, list[str]] = {}
    for key in sorted(groups):
        merged.setdefault(target[key], []).extend(groups[key])
    return merged


def module_name(group: str) -> str:
    """Readable module name.

    ``server/routes`` -> ``Server Routes``, ``ui/src/views`` -> ``UI Views``.
    """
    parts = [p for p in group.split("/") if p != "src"] or [group]
    return " ".join(_SPECIAL_NAMES.get(p, p[:1].upper() + p[1:]) for p in parts)


# ---------------------------------------------------------------------------
# Module kind
# ---------------------------------------------------------------------------

MODULE_KIND_RULES: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("backend", ("route", "api", "server")),
    ("frontend", ("view", "component", "page", "ui")),
    ("integration", ("integration", "plugin")),
    ("data", ("data", "store", "schema")),
    ("shared", ("util", "lib", "shared")),
)


def infer_module_kind(module: Module) -> str:
    """Coarse architectural kind from the module name, first match wins.

    Falls back to ``integration`` for modules that reference any external
    service, else ``other``.
    """
    name = module.name.lower()
    for kind, needles in MODULE_KIND_RULES:
        if any(needle in name for needle in needles):
            return kind
    if module.external_services:
        return "integration"
    return "other"


# ---------------------------------------------------------------------------
# Descriptions
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class ModuleFacts:
    """Everything the description rules look at."""

    name: str
    group: str
    files: tuple[FileRecord, ...]
    exports: tuple[ModuleExport, ...]
    services: tuple[str, ...]
    summary: dict[str, int]
    key_exports: tuple[str, ...]
    db_operations: tuple[str, ...]

    @property
    def lower_name(self) -> str:
        return self.name.lower()

    @property
    def lower_group(self) -> str:
        return self.group.lower()

    @property
    def total_lines(self) -> int:
        return sum(f.lines for f in self.files)

    def count(self, file_type: str) -> int:
        return self.summary.get(file_type, 0)

    def export_names(self, *kinds: str) -> list[str]:
        return [e.name for e in self.exports if e.kind in kinds]


def _listing(names: Sequence[str], limit: int = 6) -> str:
    shown = ", ".join(names[:limit])
    if len(names) > limit:
        return f"{shown}, and {len(names) - limit} more"
    return shown


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


def _strip_ext(name: str) -> str:
    return name.rsplit(".", 1)[0]


def _describe_routes(m: ModuleFacts) -> tuple[str, str]:
    route_names = [
        _strip_ext(f.name)
        for f in m.files
        if f.type == "api_route" and _strip_ext(f.name) != "index"
    ]
    parts = ["This module handles the HTTP API endpoints of the application."]
    if route_names:
        files = _plural(m.count("api_route"), "route file")
        parts.append(f"It contains {files} covering: {_listing(route_names)}.")
    parts.append("Routes receive HTTP requests, process them, and return JSON responses.")
    if m.db_operations:
        parts.append("It reads and writes data to the persistence layer.")
    return " ".join(parts), f"Handles API requests for {_plural(len(route_names), 'endpoint')}"


def _describe_pages(m: ModuleFacts) -> tuple[str, str]:
    views = [_strip_ext(f.name) for f in m.files if f.type == "page"]
    parts = ["These are the main pages of the web application - what users see and interact with."]
    if views:
        parts.append(f"Includes {_plural(len(views), 'screen')}: {_listing(views)}.")
    parts.append("Each page fetches data from the API and renders interactive UI.")
    return " ".join(parts), f"{_plural(len(views), 'main screen')} of the web app"


def _describe_components(m: ModuleFacts) -> tuple[str, str]:
    names = m.export_names("component")
    parts = ["A library of reusable UI components that the pages are built from."]
    if names:
        parts.append(f"Contains {_plural(len(names), 'component')}: {_listing(names, 5)}.")
    return " ".join(parts), f"Reusable UI building blocks ({_plural(len(names), 'component')})"


def _describe_hooks(m: ModuleFacts) -> tuple[str, str]:
    names = m.export_names("hook")
    parts = ["Custom hooks that provide shared logic and state management across the UI."]
    if names:
        parts.append(f"Includes: {_listing(names, 5)}.")
    return " ".join(parts), f"Shared logic hooks ({_plural(len(names), 'hook')})"


def _describe_integrations(m: ModuleFacts) -> tuple[str, str]:
    services = ", ".join(m.services)
    parts = ["Handles connections to external tools and services."]
    if services:
        parts.append(f"Integrates with: {services}.")
    return " ".join(parts), f"Connects to external services ({services or 'plugins'})"


def _describe_analyzer(m: ModuleFacts) -> tuple[str, str]:
    return (
        "Scans the project's source code to extract structure and metadata: files, "
        "functions, imports, API routes, database operations, and external service usage.",
        "Scans and analyzes project source code",
    )


def _describe_schemas(m: ModuleFacts) -> tuple[str, str]:
    type_count = sum(1 for f in m.files for e in f.exports if e.kind == "type")
    parts = ["Contains shared type definitions and data structures used across the project."]
    if type_count:
        parts.append(f"Defines {_plural(type_count, 'type')} and interfaces.")
    return " ".join(parts), "Shared type definitions and data structures"


def _describe_server(m: ModuleFacts) -> tuple[str, str]:
    parts = [
        "The core server that runs the application: it starts the HTTP server, "
        "mounts API routes, and manages the application lifecycle."
    ]
    if m.services:
        parts.append(f"Connects to: {', '.join(m.services)}.")
    return " ".join(parts), "Core HTTP server and application entry point"


def _describe_store(m: ModuleFacts) -> tuple[str, str]:
    parts = ["The data persistence layer that stores and retrieves project information."]
    if m.db_operations:
        parts.append(f"Performs database operations: {', '.join(m.db_operations)}.")
    else:
        parts.append("Manages reading and writing data files.")
    return " ".join(parts), "Data persistence and storage layer"


def _describe_utilities(m: ModuleFacts) -> tuple[str, str]:
    names = m.export_names("function")
    parts = ["Utility functions and helpers used by other parts of the application."]
    if names:
        parts.append(f"Key functions: {_listing(names, 5)}.")
    return " ".join(parts), "Helper functions and utilities"


def _describe_cli(m: ModuleFacts) -> tuple[str, str]:
    parts = [
        "Provides a command-line interface for working with the application from the terminal."
    ]
    if m.key_exports:
        parts.append(f"Commands include: {_listing(list(m.key_exports), 5)}.")
    return " ".join(parts), "Command-line interface"


def _describe_config(m: ModuleFacts) -> tuple[str, str]:
    return (
        "Configuration files that control how the project is built, tested, and deployed.",
        "Project configuration files",
    )


def _describe_root(m: ModuleFacts) -> tuple[str, str]:
    return (
        "Top-level project files: configuration, entry points, and setup.",
        "Root-level project files",
    )


def _describe_generic(m: ModuleFacts) -> tuple[str, str]:
    functions = len(m.export_names("function", "hook"))
    files = _plural(len(m.files), "file")
    parts = [f"This module contains {files} with {m.total_lines:,} lines of code."]
    if m.key_exports:
        parts.append(f"Key exports: {_listing(list(m.key_exports), 5)}.")
    if m.services:
        parts.append(f"Uses external services: {', '.join(m.services)}.")
    detail = _plural(functions, "function") if functions else f"{m.total_lines:,} lines"
    return " ".join(parts), f"{files}, {detail}"


def _group_has(m: ModuleFacts, *needles: str) -> bool:
    return any(n in m.lower_group for n in needles)


if TYPE_CHECKING:
    DescriptionRule = tuple[
        str, Callable[[ModuleFacts], bool], Callable[[ModuleFacts], tuple[str, str]]
    ]

DESCRIPTION_RULES: tuple[DescriptionRule, ...] = (
    ("routes", lambda m: m.count("api_route") > 0 and "route" in m.lower_name, _describe_routes),
    (
        "pages",
        lambda m: m.count("page") > 0 or ("view" in m.lower_name and m.count("component") == 0),
        _describe_pages,
    ),
    (
        "components",
        lambda m: m.count("component") > 0 and _group_has(m, "component"),
        _describe_components,
    ),
    ("hooks", lambda m: m.count("hook") > 0 and _group_has(m, "hook"), _describe_hooks),
    ("integrations", lambda m: _group_has(m, "integration", "plugin"), _describe_integrations),
    ("analyzer", lambda m: _group_has(m, "analyzer", "scanner"), _describe_analyzer),
    (
        "schemas",
        lambda m: m.count("schema") > 0 or _group_has(m, "schema", "types", "shared"),
        _describe_schemas,
    ),
    (
        "server",
        lambda m: "server" in m.lower_name and "route" not in m.lower_name,
        _describe_server,
    ),
    ("store", lambda m: _group_has(m, "store", "data"), _describe_store),
    (
        "utilities",
        lambda m: m.count("utility") > 0 or _group_has(m, "util", "lib", "helper"),
        _describe_utilities,
    ),
    ("cli", lambda m: _group_has(m, "cli", "command"), _describe_cli),
    ("config", lambda m: m.count("config") > 0, _describe_config),
    ("root", lambda m: m.lower_group == ROOT_GROUP, _describe_root),
)


def describe_module(facts: ModuleFacts) -> tuple[str, str]:
    """``(description, shortDescription)`` from the first matching description rule."""
    for _name, predicate, build in DESCRIPTION_RULES:
        if predicate(facts):
            return build(facts)
    return _describe_generic(facts)


# ---------------------------------------------------------------------------
# Aggregation
# ---------------------------------------------------------------------------


def build_modules(
    files: Sequence[FileRecord],
    edges: Sequence[DependencyEdge] = (),
    policy: ModulePolicy | None = None,
) -> list[Module]:
    """Partition *files* into modules and aggregate their exports, services and types.

    Modules are ordered by file count (descending), then name.
    """
    policy = policy or ModulePolicy()
    groups = group_files((f.path for f in files), policy)

    # Groups that render to the same name become one module.
    module_of: dict[str, str] = {}
    group_of_module: dict[str, str] = {}
    for group, paths in groups.items():
        name = module_name(group)
        group_of_module.setdefault(name, group)
        for path in paths:
            module_of[path] = name

    members: dict[str, list[FileRecord]] = {}
    for f in files:
        members.setdefault(module_of[f.path], []).append(f)

    dependencies: dict[str, dict[str, None]] = {name: {} for name in members}
    for edge in edges:
        src = module_of.get(edge.source)
        dst = module_of.get(edge.target)
        if src is not None and dst is not None and src != dst:
            dependencies[src][dst] = None

    modules: list[Module] = []
    for name, module_files in members.items():
        exports = [
            ModuleExport(name=e.name, kind=e.kind, file=f.path)
            for f in module_files
            for e in f.exports
        ]
        services = tuple(dict.fromkeys(s for f in module_files for s in f.services))
        summary = dict(Counter(f.type for f in module_files))
        key_exports = tuple(
            [e.name for e in exports if e.kind in _KEY_EXPORT_KINDS][: policy.key_exports]
        )
        db_operations = tuple(dict.fromkeys(op for f in module_files for op in f.db_operations))

        facts = ModuleFacts(
            name=name,
            group=group_of_module[name],
            files=tuple(module_files),
            exports=tuple(exports),
            services=services,
            summary=summary,
            key_exports=key_exports,
            db_operations=db_operations,
        )
        description, short_description = describe_module(facts)

        modules.append(
            Module(
                name=name,
                files=tuple(f.path for f in module_files),
                description=description,
                short_description=short_description,
                exports=tuple([e for e in exports if e.kind != "type"][:_MAX_MODULE_EXPORTS]),
                dependencies=tuple(dependencies[name]),
                external_services=services,
                key_exports=key_exports,
                file_type_summary=summary,
            )
        )

    modules.sort(key=lambda m: (-len(m.files), m.name))
    return modules


def module_index(modules: Iterable[Module]) -> dict[str, str]:
    """Map of file path -> module name."""
    return {path: m.name for m in modules for path in m.files}
