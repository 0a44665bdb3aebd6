"""Export and import extraction from TypeScript/JavaScript via tree-sitter."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from tree_sitter import Language, Parser

from codeatlas.models import ExportSymbol, ImportSpec

if TYPE_CHECKING:
    from collections.abc import Callable

    from tree_sitter import Node as TSNode

_HOOK_RE = re.compile(r"^use[A-Z0-9]")

# Rendered parameter lists longer than this are truncated.
_MAX_PARAMS_LEN = 120

_FUNCTION_DECLS = frozenset({"function_declaration", "generator_function_declaration"})
_CLASS_DECLS = frozenset({"class_declaration", "abstract_class_declaration"})
_TYPE_DECLS = frozenset({"interface_declaration", "type_alias_declaration", "enum_declaration"})
_VARIABLE_DECLS = frozenset({"lexical_declaration", "variable_declaration"})

# Expression node types that evaluate to a function.  ``function`` is the
# pre-0.21 grammar name of ``function_expression``.
_FUNCTION_VALUES = frozenset(
    {"arrow_function", "function_expression", "function", "generator_function"}
)
# Wrappers that turn a PascalCase binding into a component.
_COMPONENT_WRAPPERS = frozenset({"memo", "forwardRef", "observer", "styled"})
# Expression wrappers that don't change what a value is.
_TRANSPARENT_EXPRESSIONS = frozenset(
    {"parenthesized_expression", "as_expression", "satisfies_expression", "non_null_expression"}
)


# ---- Language loaders (lazy, handle ImportError) ----


def _load_typescript() -> Language:
    import tree_sitter_typescript as tstypescript

    return Language(tstypescript.language_typescript())


def _load_tsx() -> Language:
    import tree_sitter_typescript as tstypescript

    return Language(tstypescript.language_tsx())


# Extension -> loader function mapping.  Plain JS may contain JSX, so it is
# parsed with the TSX grammar.
_EXTENSION_LOADERS: dict[str, Callable[[], Language]] = {
    ".ts": _load_typescript,
    ".mts": _load_typescript,
    ".cts": _load_typescript,
    ".tsx": _load_tsx,
    ".js": _load_tsx,
    ".jsx": _load_tsx,
    ".mjs": _load_tsx,
    ".cjs": _load_tsx,
}

# Cache for loaded languages (None means "tried and failed / unsupported").
_LANG_CACHE: dict[str, Language | None] = {}


def get_language(extension: str) -> Language | None:
    """Get the tree-sitter language for a file extension, or ``None`` if unavailable."""
    if extension in _LANG_CACHE:
        return _LANG_CACHE[extension]

    loader = _EXTENSION_LOADERS.get(extension)
    if loader is None:
        _LANG_CACHE[extension] = None
        return None

    try:
        language = loader()
    except ImportError:
        _LANG_CACHE[extension] = None
        return None

    _LANG_CACHE[extension] = language
    return language


def clear_cache() -> None:
    """Clear the language cache (useful for testing)."""
    _LANG_CACHE.clear()


# ---------------------------------------------------------------------------
# Kind heuristics
# ---------------------------------------------------------------------------


def function_kind(name: str) -> str:
    """Kind of a function-valued export: ``hook``, ``component`` or ``function``."""
    if _HOOK_RE.match(name):
        return "hook"
    if name[:1].isupper():
        return "component"
    return "function"


def _text(node: TSNode | None) -> str:
    if node is None or node.text is None:
        return ""
    return node.text.decode("utf-8")


def _render_params(node: TSNode | None) -> str | None:
    if node is None:
        return None
    rendered = " ".join(_text(node).split())
    if not rendered.startswith("("):
        rendered = f"({rendered})"
    if len(rendered) > _MAX_PARAMS_LEN:
        rendered = rendered[: _MAX_PARAMS_LEN - 4] + "...)"
    return rendered


def _unwrap_expression(node: TSNode) -> TSNode:
    while node.type in _TRANSPARENT_EXPRESSIONS:
        inner = next((c for c in node.named_children if c.type != "comment"), None)
        if inner is None:
            break
        node = inner
    return node


def _callee_name(call: TSNode) -> str:
    callee = _text(call.child_by_field_name("function"))
    return callee.rsplit(".", 1)[-1]


def _value_kind(name: str, value: TSNode | None) -> tuple[str, str | None]:
    """Kind and rendered params for ``const name = value``."""
    if _HOOK_RE.match(name):
        params = None
        if value is not None and _unwrap_expression(value).type in _FUNCTION_VALUES:
            params = _function_params(_unwrap_expression(value))
        return "hook", params
    if value is None:
        return "constant", None

    value = _unwrap_expression(value)
    if value.type in _FUNCTION_VALUES:
        return function_kind(name), _function_params(value)
    if value.type == "class":
        return "class", None
    if (
        value.type == "call_expression"
        and name[:1].isupper()
        and _callee_name(value) in _COMPONENT_WRAPPERS
    ):
        return "component", None
    return "constant", None


def _function_params(node: TSNode) -> str | None:
    params = node.child_by_field_name("parameters")
    if params is None:
        params = node.child_by_field_name("parameter")
    return _render_params(params)


# ---------------------------------------------------------------------------
# Declarations
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class _Symbol:
    name: str
    kind: str
    params: str | None = None


def _declared_symbols(decl: TSNode) -> list[_Symbol]:
    """Names bound by a top-level declaration node."""
    if decl.type in _FUNCTION_DECLS:
        name = _text(decl.child_by_field_name("name"))
        if not name:
            return []
        return [_Symbol(name, function_kind(name), _function_params(decl))]

    if decl.type in _CLASS_DECLS:
        name = _text(decl.child_by_field_name("name"))
        return [_Symbol(name, "class")] if name else []

    if decl.type in _TYPE_DECLS:
        name = _text(decl.child_by_field_name("name"))
        return [_Symbol(name, "type")] if name else []

    if decl.type in _VARIABLE_DECLS:
        symbols: list[_Symbol] = []
        for declarator in decl.named_children:
            if declarator.type != "variable_declarator":
                continue
            name_node = declarator.child_by_field_name("name")
            # Destructuring patterns bind no single name.
            if name_node is None or name_node.type != "identifier":
                continue
            name = _text(name_node)
            kind, params = _value_kind(name, declarator.child_by_field_name("value"))
            symbols.append(_Symbol(name, kind, params))
        return symbols

    return []


def _local_kinds(root: TSNode) -> dict[str, str]:
    """Map of top-level declared names to their kind (exported or not)."""
    kinds: dict[str, str] = {}
    for child in root.children:
        decl = child
        if child.type == "export_statement":
            decl = child.child_by_field_name("declaration") or child
        for symbol in _declared_symbols(decl):
            kinds.setdefault(symbol.name, symbol.kind)
    return kinds


# ---------------------------------------------------------------------------
# Export statements
# ---------------------------------------------------------------------------


def _fallback_kind(name: str, local_kinds: dict[str, str], default: str) -> str:
    if name in local_kinds:
        return local_kinds[name]
    if _HOOK_RE.match(name):
        return "hook"
    if name[:1].isupper():
        return "component"
    return default


def _default_export(value: TSNode, line: int, local_kinds: dict[str, str]) -> ExportSymbol:
    value = _unwrap_expression(value)

    if value.type == "identifier":
        name = _text(value)
        kind = _fallback_kind(name, local_kinds, "function")
        return ExportSymbol(name, kind, line, is_default=True)

    if value.type in _FUNCTION_VALUES:
        name = _text(value.child_by_field_name("name")) or "default"
        kind = function_kind(name) if name != "default" else "function"
        return ExportSymbol(name, kind, line, is_default=True, params=_function_params(value))

    if value.type == "class":
        name = _text(value.child_by_field_name("name")) or "default"
        return ExportSymbol(name, "class", line, is_default=True)

    if value.type == "call_expression" and _callee_name(value) in _COMPONENT_WRAPPERS:
        args = value.child_by_field_name("arguments")
        first = args.named_children[0] if args is not None and args.named_children else None
        name = _text(first) if first is not None and first.type == "identifier" else "default"
        return ExportSymbol(name, "component", line, is_default=True)

    return ExportSymbol("default", "constant", line, is_default=True)


def _export_clause_names(clause: TSNode) -> list[tuple[str, str]]:
    """``(local name, exported name)`` pairs of an ``export { ... }`` clause."""
    pairs: list[tuple[str, str]] = []
    for spec in clause.named_children:
        if spec.type != "export_specifier":
            continue
        local = _text(spec.child_by_field_name("name")).strip("'\"")
        alias = _text(spec.child_by_field_name("alias")).strip("'\"")
        if local:
            pairs.append((local, alias or local))
    return pairs


def _exports_from_statement(node: TSNode, local_kinds: dict[str, str]) -> list[ExportSymbol]:
    line = node.start_point.row + 1
    child_types = {c.type for c in node.children}
    is_default = "default" in child_types

    decl = node.child_by_field_name("declaration")
    if decl is not None:
        return [
            ExportSymbol(s.name, s.kind, line, is_default=is_default, params=s.params)
            for s in _declared_symbols(decl)
        ]

    value = node.child_by_field_name("value")
    if is_default and value is not None:
        return [_default_export(value, line, local_kinds)]

    type_only = "type" in child_types
    exports: list[ExportSymbol] = []
    for child in node.named_children:
        if child.type != "export_clause":
            continue
        for local, exported in _export_clause_names(child):
            if exported == "default":
                kind = _fallback_kind(local, local_kinds, "function")
                exports.append(ExportSymbol(local, kind, line, is_default=True))
                continue
            kind = "type" if type_only else _fallback_kind(local, local_kinds, "constant")
            exports.append(ExportSymbol(exported, kind, line))
    return exports


# ---------------------------------------------------------------------------
# Imports
# ---------------------------------------------------------------------------


def _string_value(node: TSNode | None) -> str | None:
    """Extract the unquoted value of a string node."""
    if node is None or node.type != "string":
        return None
    for sub in node.children:
        if sub.type == "string_fragment":
            return _text(sub)
    return None


def _statement_source(node: TSNode) -> str | None:
    source = _string_value(node.child_by_field_name("source"))
    if source is not None:
        return source
    for child in node.children:
        if child.type == "string":
            return _string_value(child)
    return None


def _import_spec(node: TSNode) -> ImportSpec | None:
    source = _statement_source(node)
    if not source:
        return None

    names: list[str] = []
    has_default = False
    for child in node.named_children:
        if child.type != "import_clause":
            continue
        for part in child.named_children:
            if part.type == "identifier":
                names.insert(0, _text(part))
                has_default = True
            elif part.type == "namespace_import":
                names.append("*")
            elif part.type == "named_imports":
                for spec in part.named_children:
                    if spec.type == "import_specifier":
                        name = _text(spec.child_by_field_name("name"))
                        if name:
                            names.append(name)

    return ImportSpec(source=source, names=tuple(dict.fromkeys(names)), is_default=has_default)


def _reexport_spec(node: TSNode) -> ImportSpec | None:
    source = _statement_source(node)
    if not source:
        return None
    names: list[str] = []
    for child in node.named_children:
        if child.type == "export_clause":
            names.extend(local for local, _ in _export_clause_names(child))
    if not names:
        names.append("*")
    return ImportSpec(source=source, names=tuple(dict.fromkeys(names)))


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


@dataclass
class ParsedSource:
    """Exports and imports found in one file."""

    exports: list[ExportSymbol] = field(default_factory=list)
    imports: list[ImportSpec] = field(default_factory=list)


def parse_source(content: str, extension: str) -> ParsedSource | None:
    """Extract top-level exports and imports from source text.

    Returns ``None`` when no grammar is available for *extension* or the
    content cannot be parsed, so callers can fall back to line-count-only
    metadata.  Exports are reported at the line where their ``export``
    statement starts; duplicate names (overloads) are reported once.
    """
    language = get_language(extension)
    if language is None:
        return None

    parser = Parser(language)
    try:
        tree = parser.parse(content.encode("utf-8"))
    except ValueError:
        return None

    root = tree.root_node
    local_kinds = _local_kinds(root)
    parsed = ParsedSource()
    seen: set[tuple[str, bool]] = set()

    for child in root.children:
        if child.type == "import_statement":
            spec = _import_spec(child)
            if spec is not None:
                parsed.imports.append(spec)
            continue

        if child.type != "export_statement":
            continue

        if _statement_source(child) is not None:
            spec = _reexport_spec(child)
            if spec is not None:
                parsed.imports.append(spec)

        for export in _exports_from_statement(child, local_kinds):
            key = (export.name, export.is_default)
            if key in seen:
                continue
            seen.add(key)
            parsed.exports.append(export)

    return parsed
