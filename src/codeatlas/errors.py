"""Exception taxonomy for scans and configuration."""

from __future__ import annotations


class CodeatlasError(Exception):
    """Base class for all codeatlas errors."""


class ConfigError(CodeatlasError):
    """Raised when ``.codeatlas/config.yml`` is malformed."""


class ScanError(CodeatlasError):
    """Base class for failures reported to the caller of ``scan``."""


class ScanTargetNotFound(ScanError):
    """The scan root (or the requested subdirectory) does not exist."""


class ScanInProgress(ScanError):
    """A scan is already running on this store; retry later."""


class ScanTimeout(ScanError):
    """The scan exceeded its time budget and was aborted."""


class FileUnreadable(CodeatlasError):
    """A single source file could not be read or decoded.

    Never escapes a scan: the scanner records the file with path-only
    metadata and counts it in the snapshot warnings.
    """

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"{path}: {reason}")
        self.path = path
        self.reason = reason
