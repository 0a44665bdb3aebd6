"""File walker: enumerate candidate source files under a scan root."""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from codeatlas.errors import ScanTargetNotFound

logger = logging.getLogger(__name__)

# Dependency, build and VCS directories never worth parsing.
SKIP_DIRS: frozenset[str] = frozenset(
    {
        "node_modules",
        ".next",
        ".git",
        "dist",
        "build",
        ".pglite",
        ".local_storage",
        "coverage",
        "__pycache__",
        ".cache",
        ".turbo",
        ".vercel",
        "out",
    }
)

# Source extensions to scan.
CODE_EXTENSIONS: frozenset[str] = frozenset({".ts", ".tsx", ".js", ".jsx", ".mjs", ".cjs"})


@dataclass
class WalkResult:
    """Outcome of a walk: the effective root and the ordered candidate files."""

    root: Path
    files: list[Path] = field(default_factory=list)
    skipped: int = 0

    def relative(self, path: Path) -> str:
        """POSIX path of *path* relative to the effective root."""
        return path.relative_to(self.root).as_posix()


def resolve_scan_root(project_root: Path, subdir: str | None = None) -> Path:
    """Return the effective scan root.

    Raises
    ------
    ScanTargetNotFound
        When the project root or the subdirectory is not a directory, or the
        subdirectory lies outside the project root.
    """
    if not project_root.is_dir():
        msg = f"Scan root does not exist: {project_root}"
        raise ScanTargetNotFound(msg)
    if not subdir:
        return project_root
    root = project_root / subdir
    if not root.is_dir():
        msg = f"Subdirectory does not exist: {root}"
        raise ScanTargetNotFound(msg)
    resolved = root.resolve()
    if not resolved.is_relative_to(project_root.resolve()):
        msg = f"Subdirectory is outside the project root: {subdir}"
        raise ScanTargetNotFound(msg)
    # Always a descendant of project_root, so paths relative to it stay valid.
    return project_root / resolved.relative_to(project_root.resolve())


def _walk(
    directory: Path,
    result: WalkResult,
    skip_dirs: frozenset[str],
    extensions: frozenset[str],
) -> None:
    try:
        with os.scandir(directory) as it:
            entries = sorted(it, key=lambda e: e.name)
    except OSError as exc:
        logger.warning("Cannot list %s: %s", directory, exc)
        result.skipped += 1
        return

    for entry in entries:
        if entry.name.startswith(".") or entry.name in skip_dirs:
            continue
        try:
            is_dir = entry.is_dir(follow_symlinks=False)
            is_file = entry.is_file()
        except OSError:
            result.skipped += 1
            continue

        if is_dir:
            _walk(Path(entry.path), result, skip_dirs, extensions)
        elif is_file and os.path.splitext(entry.name)[1] in extensions:
            result.files.append(Path(entry.path))


def walk_files(
    project_root: Path,
    subdir: str | None = None,
    *,
    skip_dirs: frozenset[str] = SKIP_DIRS,
    extensions: frozenset[str] = CODE_EXTENSIONS,
) -> WalkResult:
    """Enumerate source files depth-first in name order.

    Hidden entries, *skip_dirs* and files whose suffix is not in
    *extensions* are excluded.  Directories that cannot be listed are
    counted in ``skipped`` and otherwise ignored.
    """
    root = resolve_scan_root(project_root, subdir)
    result = WalkResult(root=root)
    _walk(root, result, skip_dirs, extensions)
    logger.debug("Walked %s: %d files, %d skipped", root, len(result.files), result.skipped)
    return result
