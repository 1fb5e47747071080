from __future__ import annotations

import threading
from datetime import timedelta
from pathlib import Path

import pytest

from flowstate_ide.session import CaptureCancelled, WorkspaceResolver


def make_resolver(root: Path, now: float, **kwargs) -> WorkspaceResolver:
    return WorkspaceResolver(root, windows=False, clock=lambda: now, **kwargs)


def test_recent_state_store_beats_stale_directory(tmp_path: Path, now: float, make_workspace) -> None:
    root = tmp_path / "User"
    folder_a = tmp_path / "project-a"
    folder_a.mkdir()
    make_workspace(root, "aaa", folder=folder_a, state_store=b"{}", state_mtime=now - 5 * 60)
    make_workspace(root, "bbb", folder=tmp_path / "project-b", dir_mtime=now - 40 * 60)

    resolution = make_resolver(root, now).resolve()

    assert resolution.workspace_id == "aaa"
    assert resolution.workspace_paths == [str(folder_a)]


def test_active_candidate_beats_newer_inactive(tmp_path: Path, now: float, make_workspace) -> None:
    root = tmp_path / "User"
    make_workspace(root, "store", state_store=b"{}", state_mtime=now - 20 * 60, dir_mtime=now - 20 * 60)
    make_workspace(root, "dir-only", dir_mtime=now - 60)

    candidates = make_resolver(root, now).scan_candidates()

    assert [(c.id, c.active) for c in candidates] == [("store", True), ("dir-only", False)]


def test_fallback_picks_most_recent_when_nothing_is_fresh(tmp_path: Path, now: float, make_workspace) -> None:
    root = tmp_path / "User"
    make_workspace(root, "older", state_store=b"{}", state_mtime=now - 7200, dir_mtime=now - 7200)
    make_workspace(root, "newer", dir_mtime=now - 3600)

    resolver = make_resolver(root, now)

    assert resolver.scan_candidates() == []
    selected = resolver.select()
    assert selected is not None
    assert selected.id == "newer"
    assert selected.active is False


def test_identical_mtimes_resolve_by_id(tmp_path: Path, now: float, make_workspace) -> None:
    root = tmp_path / "User"
    make_workspace(root, "beta", dir_mtime=now - 60)
    make_workspace(root, "alpha", dir_mtime=now - 60)

    assert make_resolver(root, now).select().id == "alpha"


def test_recency_window_is_configurable(tmp_path: Path, now: float, make_workspace) -> None:
    root = tmp_path / "User"
    make_workspace(root, "ws", state_store=b"{}", state_mtime=now - 10 * 60, dir_mtime=now - 10 * 60)

    narrow = make_resolver(root, now, recency_window=timedelta(minutes=5))

    assert narrow.scan_candidates() == []


def test_recent_workspaces_use_fallback_history_key(tmp_path: Path, write_history) -> None:
    root = tmp_path / "User"
    write_history(
        root,
        {
            "workbench.panel.recentlyOpenedWorkspaces": {"entries": []},
            "history.recentlyOpenedPathsList": {
                "entries": [
                    {"folderUri": "file:///home/dev/alpha"},
                    {"workspace": {"configPath": "file:///home/dev/team.code-workspace"}},
                    {"folderUri": "file:///home/dev/alpha"},
                    {"fileUri": "file:///home/dev/notes.md"},
                    {"folderUri": "vscode-remote://ssh-remote+box/srv"},
                    {"folderUri": "file:///home/dev/my%20project"},
                    {"folderUri": "file:///home/dev/ignored"},
                ]
            },
        },
    )

    resolver = make_resolver(root, 0.0, recent_limit=3)

    assert resolver.recent_workspaces() == [
        "/home/dev/alpha",
        "/home/dev/team.code-workspace",
        "/home/dev/my project",
    ]


def test_recent_workspaces_tolerate_corrupt_history(tmp_path: Path) -> None:
    root = tmp_path / "User"
    history = root / "globalStorage" / "storage.json"
    history.parent.mkdir(parents=True)
    history.write_text("{broken", encoding="utf-8")

    assert make_resolver(root, 0.0).recent_workspaces() == []


def test_open_files_are_extracted_and_filtered(tmp_path: Path, now: float, make_workspace) -> None:
    root = tmp_path / "User"
    project = tmp_path / "project"
    project.mkdir()
    main = project / "main.py"
    main.write_text("print('hi')\n", encoding="utf-8")
    readme = project / "README.md"
    readme.write_text("# hi\n", encoding="utf-8")
    deleted = project / "deleted.py"

    blob = (
        b"\x00\x01SQLite format 3\x00"
        + f'{{"resource":"{main.as_uri()}"}}'.encode()
        + b"\xff\xfe"
        + f'["{readme.as_uri()}","{main.as_uri()}"]'.encode()
        + f'"{deleted.as_uri()}"'.encode()
    )
    make_workspace(root, "ws", folder=project, state_store=blob, state_mtime=now - 30)

    resolution = make_resolver(root, now).resolve()

    assert [item.path for item in resolution.open_files] == [str(main), str(readme)]
    assert resolution.workspace_paths == [str(project)]


def test_invalid_descriptor_skips_workspace(tmp_path: Path, now: float, make_workspace) -> None:
    root = tmp_path / "User"
    make_workspace(root, "broken", descriptor_text="{not json", state_store=b"{}", state_mtime=now - 60)

    resolution = make_resolver(root, now).resolve()

    assert resolution.workspace_id == "broken"
    assert resolution.skipped == ["broken"]
    assert resolution.workspace_paths == []
    assert not resolution.found


def test_missing_storage_root_resolves_to_nothing(tmp_path: Path) -> None:
    resolution = make_resolver(tmp_path / "absent", 0.0).resolve()

    assert resolution.workspace_id is None
    assert not resolution.found


def test_cancel_aborts_scan(tmp_path: Path, now: float, make_workspace) -> None:
    root = tmp_path / "User"
    make_workspace(root, "ws", dir_mtime=now - 60)
    cancel = threading.Event()
    cancel.set()

    with pytest.raises(CaptureCancelled):
        make_resolver(root, now).resolve(cancel=cancel)
