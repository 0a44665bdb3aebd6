"""Graph composer: module, file and route views derived from one snapshot.

Each view is a pure function ``(snapshot, module_filter, templates) ->
Graph``.  Nothing is cached or persisted per view; adding a view means adding
an entry to :data:`VIEWS`.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from codeatlas.analyzer.labels import relationship_label
from codeatlas.analyzer.modules import infer_module_kind

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from codeatlas.config import LabelTemplate
    from codeatlas.models import AnalysisSnapshot, ApiRouteRecord, FileRecord, Module

NODE_TYPES: tuple[str, ...] = ("moduleNode", "fileNode", "routeNode", "serviceNode")


@dataclass(frozen=True)
class GraphNode:
    id: str
    type: str
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "type": self.type, "data": dict(self.data)}


@dataclass(frozen=True)
class GraphEdge:
    id: str
    source: str
    target: str
    data: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "source": self.source,
            "target": self.target,
            "data": dict(self.data),
        }


@dataclass
class Graph:
    """Nodes and edges of one view."""

    nodes: list[GraphNode] = field(default_factory=list)
    edges: list[GraphEdge] = field(default_factory=list)

    def add_node(self, node: GraphNode) -> bool:
        """Append *node* unless a node with the same id exists; True when added."""
        if any(n.id == node.id for n in self.nodes):
            return False
        self.nodes.append(node)
        return True

    def to_dict(self) -> dict[str, Any]:
        return {
            "nodes": [n.to_dict() for n in self.nodes],
            "edges": [e.to_dict() for e in self.edges],
        }


def _edge_id(source: str, target: str) -> str:
    """Edge id unique per (source, target) pair whatever characters the ids contain."""
    return f"e:{len(source)}:{source}->{target}"


def _route_id(route: ApiRouteRecord) -> str:
    return f"route:{route.path}"


def _file_node(f: FileRecord) -> GraphNode:
    return GraphNode(
        id=f.path,
        type="fileNode",
        data={
            "label": f.name,
            "kind": f.type,
            "lines": f.lines,
            "exports": len(f.exports),
            "services": f.services,
            "fileType": f.type,
        },
    )


# ---------------------------------------------------------------------------
# Views
# ---------------------------------------------------------------------------


def modules_view(
    snapshot: AnalysisSnapshot,
    module_filter: str | None = None,
    templates: Sequence[LabelTemplate] = (),
) -> Graph:
    """One node per module; one labelled edge per pair of modules with imports between them."""
    graph = Graph()
    lines_by_path = {f.path: f.lines for f in snapshot.files}
    module_of: dict[str, str] = {}
    by_name: dict[str, Module] = {}

    for m in snapshot.modules:
        by_name[m.name] = m
        for path in m.files:
            module_of[path] = m.name
        graph.nodes.append(
            GraphNode(
                id=m.name,
                type="moduleNode",
                data={
                    "label": m.name,
                    "kind": infer_module_kind(m),
                    "lines": sum(lines_by_path.get(p, 0) for p in m.files),
                    "exports": len(m.exports),
                    "files": len(m.files),
                    "services": list(m.external_services),
                    "description": m.description,
                    "shortDescription": m.short_description,
                    "keyExports": list(m.key_exports),
                    "fileTypeSummary": dict(m.file_type_summary),
                },
            )
        )

    pairs: dict[tuple[str, str], dict[str, None]] = {}
    for edge in snapshot.dependency_edges:
        src = module_of.get(edge.source)
        dst = module_of.get(edge.target)
        if src is None or dst is None or src == dst:
            continue
        names = pairs.setdefault((src, dst), {})
        for name in edge.imports:
            names.setdefault(name, None)

    for (src, dst), names in pairs.items():
        imports = list(names)
        relationship = relationship_label(by_name[src], by_name[dst], imports, templates=templates)
        graph.edges.append(
            GraphEdge(
                id=_edge_id(src, dst),
                source=src,
                target=dst,
                data={"imports": imports, "label": relationship, "relationship": relationship},
            )
        )
    return graph


def files_view(
    snapshot: AnalysisSnapshot,
    module_filter: str | None = None,
    templates: Sequence[LabelTemplate] = (),
) -> Graph:
    """One node per file, optionally restricted to the files of one module."""
    graph = Graph()
    files = list(snapshot.files)
    if module_filter:
        module = next((m for m in snapshot.modules if m.name == module_filter), None)
        if module is None:
            return graph
        members = set(module.files)
        files = [f for f in files if f.path in members]

    paths = {f.path for f in files}
    graph.nodes.extend(_file_node(f) for f in files)
    for edge in snapshot.dependency_edges:
        if edge.source not in paths or edge.target not in paths:
            continue
        graph.edges.append(
            GraphEdge(
                id=_edge_id(edge.source, edge.target),
                source=edge.source,
                target=edge.target,
                data={"imports": list(edge.imports), "label": ", ".join(edge.imports)},
            )
        )
    return graph


def routes_view(
    snapshot: AnalysisSnapshot,
    module_filter: str | None = None,
    templates: Sequence[LabelTemplate] = (),
) -> Graph:
    """API routes linked to their handler files and the external services those touch."""
    graph = Graph()
    by_path = snapshot.file_by_path()

    for route in snapshot.api_routes:
        route_id = _route_id(route)
        graph.add_node(
            GraphNode(
                id=route_id,
                type="routeNode",
                data={
                    "label": route.path,
                    "kind": "api_route",
                    "lines": 0,
                    "exports": len(route.handlers),
                    "methods": list(route.methods),
                    "services": [],
                },
            )
        )

        handler = by_path.get(route.file)
        if handler is None:
            continue
        graph.add_node(_file_node(handler))
        graph.edges.append(
            GraphEdge(
                id=_edge_id(route_id, handler.path),
                source=route_id,
                target=handler.path,
                data={"imports": list(route.handlers), "label": ", ".join(route.handlers)},
            )
        )

        for service in handler.services:
            svc_id = f"svc:{service}"
            graph.add_node(
                GraphNode(
                    id=svc_id,
                    type="serviceNode",
                    data={
                        "label": service,
                        "kind": "external_service",
                        "lines": 0,
                        "exports": 0,
                        "services": [service],
                    },
                )
            )
            edge_id = _edge_id(handler.path, svc_id)
            if any(e.id == edge_id for e in graph.edges):
                continue
            graph.edges.append(
                GraphEdge(
                    id=edge_id,
                    source=handler.path,
                    target=svc_id,
                    data={"imports": [], "label": service},
                )
            )
    return graph


VIEWS: dict[str, Callable[..., Graph]] = {
    "modules": modules_view,
    "files": files_view,
    "routes": routes_view,
}


def compose_graph(
    snapshot: AnalysisSnapshot | None,
    view: str = "modules",
    module_filter: str | None = None,
    *,
    templates: Sequence[LabelTemplate] = (),
) -> Graph:
    """Build one view of *snapshot*.

    Unknown view names and a missing snapshot give an empty graph.
    """
    build = VIEWS.get(view)
    if snapshot is None or build is None:
        return Graph()
    return build(snapshot, module_filter, templates)
