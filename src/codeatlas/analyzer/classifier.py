"""File classification: an ordered rule chain over path and exports.

Each rule is a ``(name, predicate, result)`` tuple; the first predicate that
holds decides the file type.  Predicates only look at the repo-relative path
and the extracted exports, so classification is pure and deterministic.
"""

from __future__ import annotations

import posixpath
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence

    from codeatlas.models import ExportSymbol

    Predicate = Callable[[str, Sequence[ExportSymbol]], bool]

HTTP_METHODS: frozenset[str] = frozenset(
    {"GET", "POST", "PUT", "PATCH", "DELETE", "HEAD", "OPTIONS"}
)

_ROUTE_DIRS = frozenset({"routes"})
_PAGE_DIRS = frozenset({"pages", "views", "screens"})
_UTILITY_DIRS = frozenset({"lib", "utils", "util", "helpers", "integrations", "plugins"})
_TEST_DIRS = frozenset({"__tests__", "__test__"})
_CONFIG_PREFIXES = ("tsconfig", "tailwind", "postcss", "eslint", ".eslintrc", "vite.config")
_PAGE_STEMS = frozenset({"page"})


def _parts(path: str) -> tuple[list[str], str]:
    """Lower-cased directory segments and file name."""
    segments = path.lower().split("/")
    return segments[:-1], segments[-1]


def _stem(filename: str) -> str:
    return filename.split(".", 1)[0]


def primary_export(exports: Sequence[ExportSymbol]) -> ExportSymbol | None:
    """The default export, else the first non-type export."""
    for export in exports:
        if export.is_default:
            return export
    for export in exports:
        if export.kind != "type":
            return export
    return None


# ---------------------------------------------------------------------------
# Predicates
# ---------------------------------------------------------------------------


def is_test_file(path: str, exports: Sequence[ExportSymbol] = ()) -> bool:
    dirs, filename = _parts(path)
    return ".test." in filename or ".spec." in filename or bool(_TEST_DIRS.intersection(dirs))


def is_route_handler(path: str, exports: Sequence[ExportSymbol]) -> bool:
    """``routes/`` files, ``api/`` files serving HTTP, and Next.js ``route.ts`` files."""
    if is_test_file(path):
        return False
    dirs, filename = _parts(path)
    if _ROUTE_DIRS.intersection(dirs):
        return True
    if _stem(filename) == "route" and ("app" in dirs or "api" in dirs):
        return True
    if "api" in dirs:
        if "pages" in dirs:
            return True
        return any(e.name in HTTP_METHODS for e in exports)
    return False


def is_page(path: str, exports: Sequence[ExportSymbol]) -> bool:
    if is_test_file(path):
        return False
    dirs, filename = _parts(path)
    return _stem(filename) in _PAGE_STEMS or bool(_PAGE_DIRS.intersection(dirs))


def exports_component(path: str, exports: Sequence[ExportSymbol]) -> bool:
    primary = primary_export(exports)
    return primary is not None and primary.kind == "component"


def exports_hook(path: str, exports: Sequence[ExportSymbol]) -> bool:
    primary = primary_export(exports)
    return primary is not None and primary.kind == "hook"


def is_config_file(path: str, exports: Sequence[ExportSymbol]) -> bool:
    _, filename = _parts(path)
    return ".config." in filename or filename.startswith(_CONFIG_PREFIXES)


def is_schema_file(path: str, exports: Sequence[ExportSymbol]) -> bool:
    """Schema/type modules by name, ``.d.ts`` files, or files exporting only types."""
    dirs, filename = _parts(path)
    if "schema" in filename or filename.endswith(".d.ts") or _stem(filename) == "types":
        return True
    if "types" in dirs or "schemas" in dirs:
        return True
    return bool(exports) and all(e.kind == "type" for e in exports)


def is_utility_file(path: str, exports: Sequence[ExportSymbol]) -> bool:
    dirs, _ = _parts(path)
    return bool(_UTILITY_DIRS.intersection(dirs))


# ---------------------------------------------------------------------------
# Rule chain
# ---------------------------------------------------------------------------

CLASSIFICATION_RULES: tuple[tuple[str, Predicate, str], ...] = (
    # 1. path / directory convention
    ("route-handler-path", is_route_handler, "api_route"),
    ("page-path", is_page, "page"),
    # 2. exported-symbol shape
    ("component-export", exports_component, "component"),
    ("hook-export", exports_hook, "hook"),
    # 3. filename convention
    ("test-name", is_test_file, "test"),
    ("config-name", is_config_file, "config"),
    ("schema-name", is_schema_file, "schema"),
    ("utility-dir", is_utility_file, "utility"),
)

DEFAULT_FILE_TYPE = "other"


def classify_file(path: str, exports: Sequence[ExportSymbol]) -> str:
    """Assign exactly one file type; first matching rule wins, else ``other``."""
    normalized = posixpath.normpath(path)
    for _name, predicate, result in CLASSIFICATION_RULES:
        if predicate(normalized, exports):
            return result
    return DEFAULT_FILE_TYPE
