"""Durable snapshot storage: one JSON blob per project."""

from __future__ import annotations

import json
import logging
import os
import tempfile
from typing import TYPE_CHECKING, Protocol

from codeatlas.models import AnalysisSnapshot

if TYPE_CHECKING:
    from pathlib import Path

logger = logging.getLogger(__name__)


class SnapshotStorage(Protocol):
    """Anything that can persist and reload the current snapshot."""

    def load_snapshot(self) -> AnalysisSnapshot | None: ...

    def save_snapshot(self, snapshot: AnalysisSnapshot) -> None: ...


class JsonSnapshotStorage:
    """Stores a snapshot as indented JSON at *path*.

    Writes go to a temporary file in the same directory and are moved into
    place with :func:`os.replace`, so readers never see a partial file.
    """

    def __init__(self, path: Path) -> None:
        self.path = path

    def load_snapshot(self) -> AnalysisSnapshot | None:
        """Return the stored snapshot, or ``None`` if missing or unreadable."""
        if not self.path.is_file():
            return None
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return AnalysisSnapshot.from_dict(data)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable snapshot %s: %s", self.path, exc)
        except (KeyError, TypeError, ValueError, AttributeError) as exc:
            logger.warning("Ignoring malformed snapshot %s: %s", self.path, exc)
        return None

    def save_snapshot(self, snapshot: AnalysisSnapshot) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = json.dumps(snapshot.to_dict(), ensure_ascii=False, indent=2)
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
            os.replace(tmp_name, self.path)
        except BaseException:
            if os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise
        logger.debug("Saved snapshot to %s", self.path)


class MemorySnapshotStorage:
    """Keeps the snapshot in memory only; for embedding and tests."""

    def __init__(self, snapshot: AnalysisSnapshot | None = None) -> None:
        self.snapshot = snapshot
        self.saves = 0

    def load_snapshot(self) -> AnalysisSnapshot | None:
        return self.snapshot

    def save_snapshot(self, snapshot: AnalysisSnapshot) -> None:
        self.snapshot = snapshot
        self.saves += 1
