"""Import resolver: map import specifiers to in-repo files and build edges."""

from __future__ import annotations

import logging
import posixpath
from dataclasses import dataclass, replace
from typing import TYPE_CHECKING

from codeatlas.models import DependencyEdge, FileRecord

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping, Sequence

logger = logging.getLogger(__name__)

# Extensions tried, in order, when a specifier omits one.
RESOLVE_EXTENSIONS: tuple[str, ...] = (".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs", ".d.ts")

# ESM-style TypeScript imports name the compiled file: './x.js' -> 'x.ts'.
_ESM_SOURCE_EXTENSIONS: dict[str, tuple[str, ...]] = {
    ".js": (".ts", ".tsx"),
    ".jsx": (".tsx",),
    ".mjs": (".mts", ".ts"),
    ".cjs": (".cts", ".ts"),
}


def is_relative(source: str) -> bool:
    return source == "." or source == ".." or source.startswith(("./", "../"))


def _alias_target(source: str, aliases: Mapping[str, str], root_prefix: str) -> str | None:
    """Rewrite an aliased specifier to a scan-root-relative base path.

    Alias targets are project-root-relative; *root_prefix* is the scan root
    relative to the project root (``""`` when scanning the whole project).
    Returns ``None`` when no alias applies or the target lies outside the
    scan root.
    """
    for prefix in sorted(aliases, key=len, reverse=True):
        if not source.startswith(prefix):
            continue
        joined = posixpath.normpath(aliases[prefix] + source[len(prefix) :])
        if not root_prefix:
            return joined
        if joined == root_prefix:
            return "."
        if joined.startswith(root_prefix + "/"):
            return joined[len(root_prefix) + 1 :]
        return None
    return None


def _candidates(base: str) -> list[str]:
    """Paths a base specifier may refer to, in priority order."""
    base = base.rstrip("/")
    candidates = [base]
    candidates.extend(base + ext for ext in RESOLVE_EXTENSIONS)
    candidates.extend(f"{base}/index{ext}" for ext in RESOLVE_EXTENSIONS)
    stem, ext = posixpath.splitext(base)
    for source_ext in _ESM_SOURCE_EXTENSIONS.get(ext, ()):
        candidates.append(stem + source_ext)
    return [posixpath.normpath(c) for c in candidates]


def is_resolvable_kind(source: str, aliases: Mapping[str, str]) -> bool:
    """True for specifiers that should point inside the repo (relative or aliased)."""
    return is_relative(source) or any(prefix and source.startswith(prefix) for prefix in aliases)


def resolve_specifier(
    source: str,
    from_path: str,
    known_paths: set[str] | frozenset[str],
    *,
    aliases: Mapping[str, str] | None = None,
    root_prefix: str = "",
) -> str | None:
    """Resolve an import specifier to the path of a scanned file.

    Relative specifiers resolve against the importing file's directory,
    aliased specifiers against the project root.  Extension and
    ``index`` fallbacks are tried in :data:`RESOLVE_EXTENSIONS` order.
    Returns ``None`` for bare package specifiers, specifiers escaping the
    scan root, and anything that matches no known file.
    """
    if is_relative(source):
        base = posixpath.normpath(posixpath.join(posixpath.dirname(from_path), source))
    else:
        alias_base = _alias_target(source, aliases or {}, root_prefix.strip("/"))
        if alias_base is None:
            return None
        base = alias_base

    if base == ".." or base.startswith("../"):
        return None

    for candidate in _candidates(base):
        if candidate in known_paths:
            return candidate
    return None


@dataclass
class ResolutionResult:
    """Files with resolved import flags plus the collapsed edge list."""

    files: list[FileRecord]
    edges: list[DependencyEdge]
    unresolved: int = 0


def build_dependency_edges(
    files: Sequence[FileRecord],
    *,
    aliases: Mapping[str, str] | None = None,
    root_prefix: str = "",
) -> ResolutionResult:
    """Resolve every import of every file and collapse them into edges.

    Each :class:`ImportSpec` gets ``is_external`` set according to whether it
    resolved.  All imports from one file into another collapse into a single
    edge whose ``imports`` is the de-duplicated union of bound names, in
    first-seen order.  Self-imports produce no edge.  ``unresolved`` counts
    relative/aliased specifiers that matched no file.
    """
    aliases = aliases or {}
    known_paths = frozenset(f.path for f in files)
    collapsed: dict[tuple[str, str], dict[str, None]] = {}
    resolved_files: list[FileRecord] = []
    unresolved = 0

    for record in files:
        new_imports = []
        for spec in record.imports:
            target = resolve_specifier(
                spec.source, record.path, known_paths, aliases=aliases, root_prefix=root_prefix
            )
            if target is None:
                if is_resolvable_kind(spec.source, aliases):
                    unresolved += 1
                    logger.debug("Unresolved import %r in %s", spec.source, record.path)
                new_imports.append(replace(spec, is_external=True))
                continue

            new_imports.append(replace(spec, is_external=False))
            if target == record.path:
                continue
            names = collapsed.setdefault((record.path, target), {})
            for name in spec.names:
                names.setdefault(name, None)

        resolved_files.append(replace(record, imports=tuple(new_imports)))

    edges = [
        DependencyEdge(source=src, target=dst, imports=tuple(names))
        for (src, dst), names in collapsed.items()
    ]
    return ResolutionResult(files=resolved_files, edges=edges, unresolved=unresolved)


def edges_touching(edges: Iterable[DependencyEdge], path: str) -> list[DependencyEdge]:
    """Edges where *path* is either endpoint."""
    return [e for e in edges if e.source == path or e.target == path]
