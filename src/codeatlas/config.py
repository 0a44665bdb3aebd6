"""Analyzer configuration: ``.codeatlas/config.yml`` plus tsconfig path aliases."""

from __future__ import annotations

import json
import logging
import posixpath
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

import yaml

from codeatlas.analyzer.walker import CODE_EXTENSIONS, SKIP_DIRS
from codeatlas.errors import ConfigError

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)

CONFIG_DIR = ".codeatlas"
CONFIG_FILE = "config.yml"

# Well-known TS/JS path aliases mapped to directory names.
DEFAULT_ALIASES: dict[str, str] = {
    "@/": "src/",
    "~/": "src/",
}

# Directory names that carry no architectural meaning on their own.
DEFAULT_GENERIC_DIRS: frozenset[str] = frozenset({"src", "lib", "app", "source", "pkg"})

_MODULE_STRATEGIES = frozenset({"directory", "top_level"})


@dataclass(frozen=True)
class ModulePolicy:
    """How files are partitioned into modules."""

    strategy: str = "directory"
    generic_dirs: frozenset[str] = DEFAULT_GENERIC_DIRS
    merge_threshold: int = 2
    key_exports: int = 8


@dataclass(frozen=True)
class LabelTemplate:
    """A configured relationship label for a (source kind, target kind) pair.

    ``*`` matches any kind.  ``label`` may use ``{count}``, ``{source}`` and
    ``{target}`` placeholders.
    """

    source: str
    target: str
    label: str


@dataclass(frozen=True)
class AnalyzerConfig:
    """Resolved configuration for one project."""

    skip_dirs: frozenset[str] = SKIP_DIRS
    extensions: frozenset[str] = CODE_EXTENSIONS
    aliases: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_ALIASES))
    route_prefix: str = "/api"
    max_workers: int = 8
    scan_timeout: float | None = None
    cache_path: str = f"{CONFIG_DIR}/analysis.json"
    modules: ModulePolicy = field(default_factory=ModulePolicy)
    relationship_labels: tuple[LabelTemplate, ...] = ()


# ---------------------------------------------------------------------------
# tsconfig.json
# ---------------------------------------------------------------------------


def _read_json(path: Path) -> dict[str, Any]:
    """Read and parse a JSON file, returning empty dict on failure."""
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError):
        return {}
    return data if isinstance(data, dict) else {}


def read_tsconfig_aliases(project_root: Path) -> dict[str, str]:
    """Extract wildcard path aliases from ``tsconfig.json``.

    ``"@/*": ["./src/*"]`` becomes ``{"@/": "src/"}``.  Targets are made
    relative to the project root using ``compilerOptions.baseUrl``.  Only the
    first target of each alias is used; non-wildcard entries are ignored.
    """
    data = _read_json(project_root / "tsconfig.json")
    compiler_options = data.get("compilerOptions", {})
    if not isinstance(compiler_options, dict):
        return {}

    paths = compiler_options.get("paths")
    if not paths or not isinstance(paths, dict):
        return {}

    base_url = compiler_options.get("baseUrl")
    base = base_url if isinstance(base_url, str) and base_url else "."

    aliases: dict[str, str] = {}
    for key, targets in paths.items():
        if not key.endswith("*") or not isinstance(targets, list) or not targets:
            continue
        target = targets[0]
        if not isinstance(target, str) or not target.endswith("*"):
            continue
        prefix = key[:-1]
        joined = posixpath.normpath(posixpath.join(base, target[:-1]))
        if joined.startswith(".."):
            continue
        directory = "" if joined == "." else joined
        if directory and (not target[:-1] or target[:-1].endswith("/")):
            directory += "/"
        aliases[prefix] = directory
    return aliases


# ---------------------------------------------------------------------------
# config.yml
# ---------------------------------------------------------------------------


def _str_list(data: dict[str, Any], key: str) -> list[str] | None:
    value = data.get(key)
    if value is None:
        return None
    if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
        msg = f"'{key}' must be a list of strings"
        raise ConfigError(msg)
    return value


def _positive_int(data: dict[str, Any], key: str, default: int) -> int:
    value = data.get(key, default)
    if isinstance(value, bool) or not isinstance(value, int) or value < 0:
        msg = f"'{key}' must be a non-negative integer"
        raise ConfigError(msg)
    return value


def _parse_module_policy(data: Any) -> ModulePolicy:
    if data is None:
        return ModulePolicy()
    if not isinstance(data, dict):
        msg = "'modules' must be a mapping"
        raise ConfigError(msg)

    strategy = data.get("strategy", "directory")
    if strategy not in _MODULE_STRATEGIES:
        msg = f"Unknown module strategy '{strategy}' (expected one of {sorted(_MODULE_STRATEGIES)})"
        raise ConfigError(msg)

    generic = _str_list(data, "generic_dirs")
    return ModulePolicy(
        strategy=strategy,
        generic_dirs=frozenset(generic) if generic is not None else DEFAULT_GENERIC_DIRS,
        merge_threshold=_positive_int(data, "merge_threshold", 2),
        key_exports=_positive_int(data, "key_exports", 8),
    )


def _parse_label_templates(data: Any) -> tuple[LabelTemplate, ...]:
    if data is None:
        return ()
    if not isinstance(data, list):
        msg = "'relationship_labels' must be a list"
        raise ConfigError(msg)

    templates: list[LabelTemplate] = []
    for item in data:
        if not isinstance(item, dict) or not isinstance(item.get("label"), str):
            msg = "Each relationship label needs at least a 'label' string"
            raise ConfigError(msg)
        try:
            item["label"].format(count=0, source="", target="")
        except (KeyError, IndexError, ValueError) as exc:
            msg = f"Invalid placeholder in relationship label {item['label']!r}: {exc}"
            raise ConfigError(msg) from exc
        templates.append(
            LabelTemplate(
                source=str(item.get("source", "*")),
                target=str(item.get("target", "*")),
                label=item["label"],
            )
        )
    return tuple(templates)


def parse_config(
    data: dict[str, Any], *, tsconfig_aliases: dict[str, str] | None = None
) -> AnalyzerConfig:
    """Build an :class:`AnalyzerConfig` from an already-parsed mapping.

    Raises
    ------
    ConfigError
        When a key has the wrong type or an unknown value.
    """
    extra_skip = _str_list(data, "skip_dirs") or []
    extensions = _str_list(data, "extensions")
    if extensions is not None and not all(ext.startswith(".") for ext in extensions):
        msg = "'extensions' entries must start with '.'"
        raise ConfigError(msg)

    aliases = dict(DEFAULT_ALIASES)
    aliases.update(tsconfig_aliases or {})
    configured_aliases = data.get("aliases")
    if configured_aliases is not None:
        if not isinstance(configured_aliases, dict):
            msg = "'aliases' must be a mapping of prefix -> directory"
            raise ConfigError(msg)
        aliases.update({str(k): str(v) for k, v in configured_aliases.items()})

    timeout = data.get("scan_timeout")
    if timeout is not None and (isinstance(timeout, bool) or not isinstance(timeout, (int, float))):
        msg = "'scan_timeout' must be a number of seconds"
        raise ConfigError(msg)

    max_workers = _positive_int(data, "max_workers", 8)

    return AnalyzerConfig(
        skip_dirs=SKIP_DIRS | frozenset(extra_skip),
        extensions=frozenset(extensions) if extensions is not None else CODE_EXTENSIONS,
        aliases=aliases,
        route_prefix=str(data.get("route_prefix", "/api")).rstrip("/"),
        max_workers=max(1, max_workers),
        scan_timeout=float(timeout) if timeout is not None else None,
        cache_path=str(data.get("cache_path", f"{CONFIG_DIR}/analysis.json")),
        modules=_parse_module_policy(data.get("modules")),
        relationship_labels=_parse_label_templates(data.get("relationship_labels")),
    )


def load_config(project_root: Path) -> AnalyzerConfig:
    """Load ``<project_root>/.codeatlas/config.yml`` merged with tsconfig aliases.

    A missing config file yields the defaults.

    Raises
    ------
    ConfigError
        When the file is not valid YAML or not a mapping.
    """
    tsconfig_aliases = read_tsconfig_aliases(project_root)
    config_path = project_root / CONFIG_DIR / CONFIG_FILE
    if not config_path.is_file():
        return parse_config({}, tsconfig_aliases=tsconfig_aliases)

    try:
        data = yaml.safe_load(config_path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        msg = f"Invalid YAML in {config_path}: {exc}"
        raise ConfigError(msg) from exc

    if not isinstance(data, dict):
        msg = f"{config_path} must contain a mapping"
        raise ConfigError(msg)

    logger.debug("Loaded config from %s", config_path)
    return parse_config(data, tsconfig_aliases=tsconfig_aliases)
