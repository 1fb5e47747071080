from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from flowstate_ide.config import FlowStateSettings
from flowstate_ide.editors import IDEName
from flowstate_ide.engine import FlowStateEngine
from flowstate_ide.process import FakeEditorLauncher, FakeProcessDetector
from flowstate_ide.server import create_server


def build_engine(tmp_path: Path, settings: FlowStateSettings) -> FlowStateEngine:
    return FlowStateEngine.from_settings(
        settings,
        detector=FakeProcessDetector([IDEName.CURSOR]),
        launcher=FakeEditorLauncher(),
        env={"XDG_CONFIG_HOME": str(tmp_path / "config"), "HOME": str(tmp_path)},
    )


def test_create_server_starts_detector_and_reports_status(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FLOWSTATE_EDITOR_PROFILE_PATHS", str(tmp_path / "profiles"))
    settings = FlowStateSettings()
    engine = build_engine(tmp_path, settings)

    server = create_server(settings, engine=engine)

    assert getattr(server, "engine") is engine
    assert engine.detector.started

    asyncio.run(engine.capture([IDEName.CURSOR, IDEName.VSCODE]))

    status = getattr(server, "status_snapshot")()
    assert status["editors"]["ids"] == ["Cursor", "Unknown", "VSCode"]
    assert status["editors"]["error"] is None
    assert status["platform"] == "linux"
    assert status["capture"]["context_filename"] == ".flowstate_context.md"
    assert status["detector"]["started"] is True
    events = {(event["ide"], event["running"]) for event in status["detector"]["events"]}
    assert events == {("Cursor", True), ("VSCode", False)}
    assert status["restores"] == []

    engine.stop()
    assert not engine.detector.started


def test_status_reports_profile_errors(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    profiles = tmp_path / "profiles"
    profiles.mkdir()
    (profiles / "broken.yaml").write_text("launch_alias: code\n", encoding="utf-8")
    monkeypatch.setenv("FLOWSTATE_EDITOR_PROFILE_PATHS", str(profiles))
    settings = FlowStateSettings()

    server = create_server(settings, engine=build_engine(tmp_path, settings))

    status = getattr(server, "status_snapshot")("req-1")
    assert status["editors"]["ids"] == []
    assert "'ide' key" in status["editors"]["error"]
    assert status["request_id"] == "req-1"
    assert status["editors"]["profile_paths"] == [str(profiles)]
