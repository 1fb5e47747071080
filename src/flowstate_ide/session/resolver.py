"""Selection of the active workspace from an editor's storage tree.

An editor keeps one subdirectory per workspace under ``workspaceStorage``.
The workspace whose state store was written most recently is taken to be the
one in use; a fresh directory mtime is accepted as a weaker signal. This is a
heuristic: anything else touching those files looks like editor activity.
"""

from __future__ import annotations

import json
import logging
import os
import re
import threading
import time
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path
from typing import Any, Callable

from ..paths import decode_uri
from .models import OpenFile

logger = logging.getLogger(__name__)

GLOBAL_STORAGE_FILE = Path("globalStorage") / "storage.json"
WORKSPACE_STORAGE_DIR = "workspaceStorage"
STATE_STORE_FILE = "state.vscdb"
DESCRIPTOR_FILE = "workspace.json"
HISTORY_KEYS = (
    "workbench.panel.recentlyOpenedWorkspaces",
    "history.recentlyOpenedPathsList",
)

_FILE_URI = re.compile(r"file:///[^\s\\\"'<>|\x00-\x1f]+")


class CaptureCancelled(RuntimeError):
    """Raised when a capture is cancelled between workspace candidates."""


@dataclass(slots=True, frozen=True)
class WorkspaceCandidate:
    id: str
    mtime: float
    active: bool

    def sort_key(self) -> tuple[bool, float, str]:
        return (not self.active, -self.mtime, self.id)


@dataclass(slots=True)
class WorkspaceResolution:
    """Result of one resolver pass; empty lists when nothing was found."""

    workspace_id: str | None = None
    workspace_paths: list[str] = field(default_factory=list)
    open_files: list[OpenFile] = field(default_factory=list)
    recent_workspaces: list[str] = field(default_factory=list)
    skipped: list[str] = field(default_factory=list)

    @property
    def found(self) -> bool:
        return bool(self.workspace_paths or self.recent_workspaces)


class WorkspaceResolver:
    """Read an editor's User storage directory and pick the active workspace."""

    def __init__(
        self,
        storage_root: Path,
        *,
        recency_window: timedelta = timedelta(minutes=30),
        recent_limit: int = 10,
        windows: bool | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._root = Path(storage_root)
        self._window = recency_window.total_seconds()
        self._recent_limit = recent_limit
        self._windows = os.name == "nt" if windows is None else windows
        self._clock = clock

    @property
    def storage_root(self) -> Path:
        return self._root

    @property
    def workspace_storage(self) -> Path:
        return self._root / WORKSPACE_STORAGE_DIR

    def _decode(self, uri: Any) -> str:
        return decode_uri(uri, windows=self._windows) if isinstance(uri, str) else ""

    def recent_workspaces(self) -> list[str]:
        """Return up to ``recent_limit`` decoded workspace paths, newest first."""

        path = self._root / GLOBAL_STORAGE_FILE
        if not path.is_file():
            return []
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning("Could not read editor history", extra={"path": str(path), "error": str(exc)})
            return []
        if not isinstance(data, dict):
            return []

        entries = next(
            (
                data[key]["entries"]
                for key in HISTORY_KEYS
                if isinstance(data.get(key), dict) and isinstance(data[key].get("entries"), list) and data[key]["entries"]
            ),
            [],
        )

        recent: list[str] = []
        for entry in entries:
            if not isinstance(entry, dict):
                continue
            uri = entry.get("folderUri")
            if not uri and isinstance(entry.get("workspace"), dict):
                uri = entry["workspace"].get("configPath")
            decoded = self._decode(uri)
            if decoded and decoded not in recent:
                recent.append(decoded)
            if len(recent) >= self._recent_limit:
                break
        return recent

    def workspace_ids(self) -> list[str]:
        try:
            return sorted(entry.name for entry in os.scandir(self.workspace_storage) if entry.is_dir())
        except OSError:
            return []

    def _recent_candidate(self, workspace_id: str, now: float) -> WorkspaceCandidate | None:
        directory = self.workspace_storage / workspace_id
        state_store = directory / STATE_STORE_FILE
        if state_store.is_file():
            mtime = state_store.stat().st_mtime
            if now - mtime < self._window:
                return WorkspaceCandidate(workspace_id, mtime, True)
        mtime = directory.stat().st_mtime
        if now - mtime < self._window:
            return WorkspaceCandidate(workspace_id, mtime, False)
        return None

    def _any_candidate(self, workspace_id: str) -> WorkspaceCandidate:
        directory = self.workspace_storage / workspace_id
        state_store = directory / STATE_STORE_FILE
        source = state_store if state_store.is_file() else directory
        return WorkspaceCandidate(workspace_id, source.stat().st_mtime, False)

    def scan_candidates(
        self,
        *,
        cancel: threading.Event | None = None,
        skipped: list[str] | None = None,
    ) -> list[WorkspaceCandidate]:
        """Return recently used workspaces, best first."""

        now = self._clock()
        candidates: list[WorkspaceCandidate] = []
        for workspace_id in self.workspace_ids():
            if cancel is not None and cancel.is_set():
                raise CaptureCancelled(f"Capture cancelled while scanning {self._root}")
            try:
                candidate = self._recent_candidate(workspace_id, now)
            except OSError as exc:
                logger.warning(
                    "Skipping unreadable workspace storage",
                    extra={"workspace_id": workspace_id, "error": str(exc)},
                )
                if skipped is not None:
                    skipped.append(workspace_id)
                continue
            if candidate is not None:
                candidates.append(candidate)
        return sorted(candidates, key=WorkspaceCandidate.sort_key)

    def fallback_candidates(self, *, cancel: threading.Event | None = None) -> list[WorkspaceCandidate]:
        """Return every workspace with a readable mtime, newest first, none marked active."""

        candidates: list[WorkspaceCandidate] = []
        for workspace_id in self.workspace_ids():
            if cancel is not None and cancel.is_set():
                raise CaptureCancelled(f"Capture cancelled while scanning {self._root}")
            try:
                candidates.append(self._any_candidate(workspace_id))
            except OSError:
                continue
        return sorted(candidates, key=WorkspaceCandidate.sort_key)

    def select(
        self,
        *,
        cancel: threading.Event | None = None,
        skipped: list[str] | None = None,
    ) -> WorkspaceCandidate | None:
        active = self.scan_candidates(cancel=cancel, skipped=skipped)
        if active:
            return active[0]
        fallback = self.fallback_candidates(cancel=cancel)
        if fallback:
            logger.info(
                "No recently active workspace; using most recent",
                extra={"workspace_id": fallback[0].id},
            )
            return fallback[0]
        return None

    def workspace_folder(self, workspace_id: str) -> str | None:
        """Decode the folder (or workspace file) recorded in a workspace descriptor."""

        path = self.workspace_storage / workspace_id / DESCRIPTOR_FILE
        if not path.is_file():
            return None
        data = json.loads(path.read_text(encoding="utf-8"))
        if not isinstance(data, dict):
            return None
        decoded = self._decode(data.get("folder")) or self._decode(data.get("workspace"))
        return decoded or None

    def open_files(self, workspace_id: str) -> list[OpenFile]:
        """Pattern-extract file references from the state store, keeping files that exist."""

        path = self.workspace_storage / workspace_id / STATE_STORE_FILE
        if not path.is_file():
            return []
        content = path.read_bytes().decode("utf-8", errors="replace")

        files: list[OpenFile] = []
        seen: set[str] = set()
        for uri in _FILE_URI.findall(content):
            decoded = self._decode(uri)
            if not decoded or decoded in seen:
                continue
            seen.add(decoded)
            if os.path.exists(decoded):
                files.append(OpenFile(path=decoded))
        return files

    def resolve(self, *, cancel: threading.Event | None = None) -> WorkspaceResolution:
        """Run the full pass: history, candidate selection, descriptor, open files."""

        resolution = WorkspaceResolution(recent_workspaces=self.recent_workspaces())
        selected = self.select(cancel=cancel, skipped=resolution.skipped)
        if selected is None:
            return resolution

        resolution.workspace_id = selected.id
        try:
            folder = self.workspace_folder(selected.id)
            files = self.open_files(selected.id)
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as exc:
            logger.warning(
                "Failed to read selected workspace",
                extra={"workspace_id": selected.id, "error": str(exc)},
            )
            resolution.skipped.append(selected.id)
            return resolution

        if folder and folder not in resolution.workspace_paths:
            resolution.workspace_paths.append(folder)
        resolution.open_files.extend(files)
        logger.debug(
            "Resolved workspace",
            extra={
                "workspace_id": selected.id,
                "active": selected.active,
                "folder": folder,
                "open_files": len(files),
            },
        )
        return resolution


__all__ = [
    "CaptureCancelled",
    "DESCRIPTOR_FILE",
    "GLOBAL_STORAGE_FILE",
    "HISTORY_KEYS",
    "STATE_STORE_FILE",
    "WORKSPACE_STORAGE_DIR",
    "WorkspaceCandidate",
    "WorkspaceResolution",
    "WorkspaceResolver",
]
