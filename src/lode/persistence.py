#
# src/lode/persistence.py
#
"""
Stores framework snapshots (merged result trees and run history) as JSON.
"""

import json
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Any

import structlog

from lode.exceptions import SnapshotError
from lode.telemetry import StructLogger

log: StructLogger = structlog.get_logger("persistence")

SNAPSHOT_VERSION = 1
_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9_.-]")


class SnapshotStore:
    """One `<framework_id>.json` document per framework under `directory`."""

    def __init__(self, directory: Path):
        self.directory = Path(directory)

    def path_for(self, framework_id: str) -> Path:
        return self.directory / f"{_UNSAFE_CHARS.sub('_', framework_id)}.json"

    def save(self, framework_id: str, snapshot: Mapping[str, Any]) -> Path:
        """
        Raises:
            SnapshotError: When the document cannot be written.
        """
        path = self.path_for(framework_id)
        document = {"version": SNAPSHOT_VERSION, "framework": framework_id, **snapshot}
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp_path = path.with_suffix(".json.tmp")
            tmp_path.write_text(json.dumps(document, indent=2), encoding="utf-8")
            tmp_path.replace(path)
        except (OSError, TypeError, ValueError) as e:
            raise SnapshotError(f"Unable to write snapshot for '{framework_id}' to {path}: {e}") from e
        log.debug("Snapshot saved", framework_id=framework_id, path=str(path))
        return path

    def load(self, framework_id: str) -> dict[str, Any] | None:
        """
        Returns the stored snapshot, or None when there is none or it is unreadable.
        """
        path = self.path_for(framework_id)
        if not path.is_file():
            return None
        try:
            return self._read(path)
        except SnapshotError as e:
            log.warning("Ignoring corrupt snapshot", framework_id=framework_id, error=str(e))
            return None

    def _read(self, path: Path) -> dict[str, Any]:
        try:
            document = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise SnapshotError(f"Unable to read snapshot {path}: {e}") from e
        if not isinstance(document, dict) or not isinstance(document.get("suites", []), list):
            raise SnapshotError(f"Snapshot {path} does not have the expected layout")
        return document

    def delete(self, framework_id: str) -> bool:
        path = self.path_for(framework_id)
        if path.exists():
            path.unlink()
            return True
        return False


# 🔼⚙️
