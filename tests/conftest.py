from __future__ import annotations

import json
import os
import time
from pathlib import Path
from typing import Callable

import pytest


@pytest.fixture
def now() -> float:
    return time.time()


@pytest.fixture
def make_workspace() -> Callable[..., Path]:
    """Create ``<root>/workspaceStorage/<id>`` the way editors lay it out."""

    def _make(
        storage_root: Path,
        workspace_id: str,
        *,
        folder: Path | None = None,
        descriptor_text: str | None = None,
        state_store: bytes | None = None,
        state_mtime: float | None = None,
        dir_mtime: float | None = None,
    ) -> Path:
        directory = storage_root / "workspaceStorage" / workspace_id
        directory.mkdir(parents=True, exist_ok=True)
        if folder is not None:
            (directory / "workspace.json").write_text(
                json.dumps({"folder": folder.as_uri()}), encoding="utf-8"
            )
        if descriptor_text is not None:
            (directory / "workspace.json").write_text(descriptor_text, encoding="utf-8")
        if state_store is not None:
            store = directory / "state.vscdb"
            store.write_bytes(state_store)
            if state_mtime is not None:
                os.utime(store, (state_mtime, state_mtime))
        if dir_mtime is not None:
            os.utime(directory, (dir_mtime, dir_mtime))
        return directory

    return _make


@pytest.fixture
def write_history() -> Callable[..., Path]:
    def _write(storage_root: Path, payload: dict) -> Path:
        path = storage_root / "globalStorage" / "storage.json"
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(payload), encoding="utf-8")
        return path

    return _write
