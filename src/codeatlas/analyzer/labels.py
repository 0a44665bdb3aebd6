"""Plain-language labels for dependencies between two modules."""

from __future__ import annotations

from typing import TYPE_CHECKING

from codeatlas.analyzer.modules import infer_module_kind

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from codeatlas.config import LabelTemplate
    from codeatlas.models import Module

# (predicate on lower-cased target name, label).  The server rule depends on
# the source name too and is handled in _by_target_name.
_TARGET_NAME_RULES: tuple[tuple[Callable[[str], bool], str], ...] = (
    (lambda t: "store" in t or "data" in t, "reads and writes project data"),
    (lambda t: "route" in t and "api" in t, "handles API requests through"),
    (lambda t: "component" in t, "uses UI components from"),
    (lambda t: "hook" in t, "uses shared logic from"),
    (lambda t: "integration" in t or "plugin" in t, "connects to external services via"),
    (lambda t: "schema" in t or "type" in t or "shared" in t, "uses type definitions from"),
    (lambda t: "util" in t or "lib" in t or "helper" in t, "uses helper functions from"),
    (lambda t: "analyzer" in t or "scanner" in t, "triggers code analysis via"),
)

_KIND_PAIR_LABELS: dict[tuple[str, str], str] = {
    ("frontend", "backend"): "calls API endpoints in",
    ("frontend", "frontend"): "builds on views from",
    ("backend", "data"): "persists data through",
    ("backend", "backend"): "delegates requests to",
    ("backend", "integration"): "calls external services through",
    ("frontend", "shared"): "uses shared code from",
    ("backend", "shared"): "uses shared code from",
}


def _by_target_name(source_name: str, target_name: str) -> str | None:
    for predicate, label in _TARGET_NAME_RULES:
        if predicate(target_name):
            return label
    if "server" in target_name and "route" not in target_name:
        if "route" in source_name:
            return "routes are registered on"
        return "depends on server infrastructure from"
    if "view" in target_name or "page" in target_name:
        return "renders pages from"
    return None


def _by_imported_kinds(target: Module, import_names: Sequence[str]) -> str | None:
    kinds = {e.name: e.kind for e in target.exports}
    imported = [kinds.get(name) for name in import_names]
    if "component" in imported:
        return "renders components from"
    if "hook" in imported:
        return "uses hooks from"
    functions = imported.count("function")
    if functions:
        return f"uses {functions} function{'s' if functions != 1 else ''} from"
    if "class" in imported:
        return "extends classes from"
    if "constant" in imported:
        return "reads configuration from"
    return None


def _template_matches(template: LabelTemplate, source_kind: str, target_kind: str) -> bool:
    return template.source in ("*", source_kind) and template.target in ("*", target_kind)


def relationship_label(
    source: Module,
    target: Module,
    import_names: Sequence[str],
    *,
    templates: Sequence[LabelTemplate] = (),
) -> str:
    """Describe how *source* depends on *target*.

    Configured *templates* are tried first, then rules on the target's
    name, then (source kind, target kind) defaults, then the kinds of the
    imported symbols.  The last resort is ``"<N> imports"``.
    """
    source_kind = infer_module_kind(source)
    target_kind = infer_module_kind(target)
    count = len(import_names)

    for template in templates:
        if _template_matches(template, source_kind, target_kind):
            return template.label.format(count=count, source=source.name, target=target.name)

    label = _by_target_name(source.name.lower(), target.name.lower())
    if label:
        return label

    label = _KIND_PAIR_LABELS.get((source_kind, target_kind))
    if label:
        return label

    label = _by_imported_kinds(target, import_names)
    if label:
        return label

    return f"{count} import{'s' if count != 1 else ''}"
