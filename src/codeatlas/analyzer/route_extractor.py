"""API route, page and external-service summaries derived from classified files."""

from __future__ import annotations

import posixpath
import re
from typing import TYPE_CHECKING

from codeatlas.analyzer.classifier import HTTP_METHODS
from codeatlas.models import ApiRouteRecord, PageRecord, ServiceUsage

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from codeatlas.models import FileRecord

# [id] -> :id, [...slug] -> :slug, [[...slug]] -> :slug
_DYNAMIC_SEGMENT_RE = re.compile(r"^\[{1,2}(?:\.\.\.)?([^\]]+)\]{1,2}$")
# (marketing) -- Next.js route groups don't appear in URLs.
_ROUTE_GROUP_RE = re.compile(r"^\(.+\)$")

_PAGE_ROOT_DIRS = frozenset({"app", "pages", "views", "screens"})
_INDEX_STEMS = frozenset({"index", "route", "page"})


def _split(path: str) -> list[str]:
    """Path segments with the file extension stripped from the last one."""
    segments = path.split("/")
    segments[-1] = posixpath.splitext(segments[-1])[0]
    return segments


def _last_index(segments: Sequence[str], names: frozenset[str] | set[str]) -> int:
    for i in range(len(segments) - 1, -1, -1):
        if segments[i].lower() in names:
            return i
    return -1


def _url(segments: Sequence[str]) -> str:
    cleaned: list[str] = []
    for seg in segments:
        if not seg or _ROUTE_GROUP_RE.match(seg):
            continue
        m = _DYNAMIC_SEGMENT_RE.match(seg)
        cleaned.append(f":{m.group(1)}" if m else seg)
    if cleaned and cleaned[-1].lower() in _INDEX_STEMS:
        cleaned.pop()
    return "/" + "/".join(cleaned)


def api_route_path(path: str, route_prefix: str = "/api") -> str:
    """URL path served by a route-handler file.

    ``app/api/users/route.ts`` -> ``/api/users``; ``api/users.ts`` ->
    ``/api/users``; ``server/routes/backlog.ts`` -> ``<prefix>/backlog``.
    """
    segments = _split(path)
    dirs = segments[:-1]

    if segments[-1] == "route":
        app_idx = _last_index(dirs, {"app"})
        if app_idx >= 0:
            return _url(segments[app_idx + 1 :])

    api_idx = _last_index(dirs, {"api"})
    if api_idx >= 0:
        return _url(segments[api_idx:])

    routes_idx = _last_index(dirs, {"routes"})
    if routes_idx >= 0:
        tail = _url(segments[routes_idx + 1 :])
        prefix = route_prefix.rstrip("/")
        if tail == "/":
            return prefix or "/"
        return prefix + tail

    return _url(segments)


def page_path(path: str) -> str:
    """URL path of a page file, relative to its ``app|pages|views|screens`` root."""
    segments = _split(path)
    root_idx = _last_index(segments[:-1], _PAGE_ROOT_DIRS)
    return _url(segments[root_idx + 1 :])


def extract_api_routes(
    files: Sequence[FileRecord],
    route_hints: Mapping[str, Sequence[str]] | None = None,
    *,
    route_prefix: str = "/api",
) -> list[ApiRouteRecord]:
    """One :class:`ApiRouteRecord` per ``api_route`` file.

    Methods come from exported ``GET``/``POST``/... handlers (Next.js), else
    from ``app.get(...)``-style registrations found in the file (*route_hints*),
    else default to ``GET``.
    """
    route_hints = route_hints or {}
    routes: list[ApiRouteRecord] = []

    for f in files:
        if f.type != "api_route":
            continue

        method_exports = list(dict.fromkeys(e.name for e in f.exports if e.name in HTTP_METHODS))
        if method_exports:
            methods = method_exports
            handlers = method_exports
        else:
            methods = list(route_hints.get(f.path, ())) or ["GET"]
            handlers = methods

        routes.append(
            ApiRouteRecord(
                path=api_route_path(f.path, route_prefix),
                methods=tuple(methods),
                file=f.path,
                handlers=tuple(handlers),
            )
        )

    return routes


def extract_pages(files: Sequence[FileRecord]) -> list[PageRecord]:
    """One :class:`PageRecord` per ``page`` file with its in-repo component imports."""
    pages: list[PageRecord] = []
    for f in files:
        if f.type != "page":
            continue
        components = dict.fromkeys(
            name
            for spec in f.imports
            if not spec.is_external
            for name in spec.names
            if name[:1].isupper()
        )
        pages.append(PageRecord(path=page_path(f.path), file=f.path, components=tuple(components)))
    return pages


def aggregate_external_services(files: Sequence[FileRecord]) -> list[ServiceUsage]:
    """Usage per external service, most used first (ties by name)."""
    usage: dict[str, dict[str, None]] = {}
    for f in files:
        for call in f.external_calls:
            usage.setdefault(call.service, {})[f.path] = None

    services = [
        ServiceUsage(name=name, usage_count=len(paths), files=tuple(paths))
        for name, paths in usage.items()
    ]
    services.sort(key=lambda s: (-s.usage_count, s.name))
    return services
