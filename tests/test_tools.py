from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from flowstate_ide.config import FlowStateSettings
from flowstate_ide.editors import IDEName
from flowstate_ide.engine import FlowStateEngine
from flowstate_ide.process import FakeEditorLauncher, FakeProcessDetector
from flowstate_ide.tools import register_tools


class StubTool:
    def __init__(self, fn, name):
        self.fn = fn
        self.name = name


class StubServer:
    def __init__(self) -> None:
        self._tools: dict[str, StubTool] = {}

    def tool(self, *args, **kwargs):
        provided_name = None
        if args and isinstance(args[0], str):
            provided_name = args[0]
        provided_name = kwargs.get("name", provided_name)

        def decorator(fn):
            tool_name = provided_name or fn.__name__
            tool = StubTool(fn, tool_name)
            self._tools[tool_name] = tool
            return tool

        return decorator


class StubLogger:
    def __init__(self) -> None:
        self.messages: list[tuple[str, str, dict]] = []

    def info(self, message, extra=None):
        self.messages.append(("info", message, extra or {}))

    def warning(self, message, extra=None):
        self.messages.append(("warning", message, extra or {}))

    def debug(self, message, extra=None):
        self.messages.append(("debug", message, extra or {}))


class StubContext:
    def __init__(self) -> None:
        self.logger = StubLogger()


def build(tmp_path: Path, monkeypatch: pytest.MonkeyPatch, *, running=(IDEName.VSCODE,)):
    monkeypatch.setenv("FLOWSTATE_EDITOR_PROFILE_PATHS", str(tmp_path / "profiles"))
    settings = FlowStateSettings()
    launcher = FakeEditorLauncher()
    engine = FlowStateEngine.from_settings(
        settings,
        detector=FakeProcessDetector(running),
        launcher=launcher,
        env={"XDG_CONFIG_HOME": str(tmp_path / "config"), "HOME": str(tmp_path)},
    )
    server = StubServer()
    handles = register_tools(server, engine=engine, settings=settings)
    return server, handles, launcher


def seed_workspace(tmp_path: Path, make_workspace, now: float) -> Path:
    project = tmp_path / "project"
    project.mkdir()
    make_workspace(
        tmp_path / "config" / "Code" / "User",
        "ws1",
        folder=project,
        state_store=b"{}",
        state_mtime=now - 30,
    )
    return project


def test_register_tools_names(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    server, _, _ = build(tmp_path, monkeypatch)

    assert set(server._tools) == {"capture_ide_sessions", "restore_ide_session", "list_editors"}


def test_capture_tool_records_last_capture(tmp_path, monkeypatch, make_workspace, now) -> None:
    project = seed_workspace(tmp_path, make_workspace, now)
    _, handles, _ = build(tmp_path, monkeypatch)
    context = StubContext()

    result = asyncio.run(
        handles.capture_ide_sessions.fn(editors=["vscode", "cursor"], context=context)  # type: ignore[attr-defined]
    )

    assert result["totalSessions"] == 1
    assert result["sessions"][0]["workspacePaths"] == [str(project)]
    assert "VSCode" in handles.captures_state
    assert handles.captures_state["VSCode"]["session"]["ideName"] == "VSCode"
    level, message, extra = context.logger.messages[-1]
    assert (level, message) == ("info", "Captured editor sessions")
    assert extra["states"] == {"VSCode": "SessionReady", "Cursor": "NotRunning"}


def test_restore_tool_reuses_last_capture(tmp_path, monkeypatch, make_workspace, now) -> None:
    project = seed_workspace(tmp_path, make_workspace, now)
    _, handles, launcher = build(tmp_path, monkeypatch)
    asyncio.run(handles.capture_ide_sessions.fn(editors=["VSCode"]))  # type: ignore[attr-defined]

    result = asyncio.run(handles.restore_ide_session.fn(ide_name="vscode"))  # type: ignore[attr-defined]

    assert result["ok"] is True
    assert launcher.invocations == [("code", str(project))]
    assert handles.restores_state[-1]["launched"] == 1


def test_restore_tool_accepts_session_payload(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _, handles, launcher = build(tmp_path, monkeypatch)
    context = StubContext()

    result = asyncio.run(
        handles.restore_ide_session.fn(  # type: ignore[attr-defined]
            session={"ideName": "Cursor", "workspacePaths": ["/no/such/dir"]},
            context=context,
        )
    )

    assert result["ok"] is False
    assert result["targets"][0]["status"] == "missing"
    assert launcher.invocations == []
    assert context.logger.messages[-1][0] == "warning"


def test_restore_tool_requires_session_or_capture(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _, handles, _ = build(tmp_path, monkeypatch)

    with pytest.raises(ValueError):
        asyncio.run(handles.restore_ide_session.fn())  # type: ignore[attr-defined]
    with pytest.raises(ValueError, match="No captured session"):
        asyncio.run(handles.restore_ide_session.fn(ide_name="Cursor"))  # type: ignore[attr-defined]


def test_list_editors_reports_catalog(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    _, handles, _ = build(tmp_path, monkeypatch)

    catalog = handles.list_editors.fn()  # type: ignore[attr-defined]

    by_ide = {entry["ide"]: entry for entry in catalog}
    assert set(by_ide) == {"VSCode", "Cursor", "Unknown"}
    assert by_ide["VSCode"]["process_name"] == "code"
    assert by_ide["Cursor"]["storage_root"] == str(tmp_path / "config" / "Cursor" / "User")
    assert by_ide["Unknown"]["launchable"] is False
