from __future__ import annotations

import argparse
import importlib.util
import json
from pathlib import Path

import pytest

from flowstate_ide.editors import IDEName
from flowstate_ide.engine import FlowStateEngine
from flowstate_ide.process import FakeEditorLauncher, FakeProcessDetector

MODULE_PATH = Path(__file__).resolve().parents[1] / "scripts" / "flowstate_diag.py"


def load_diag():
    spec = importlib.util.spec_from_file_location("flowstate_diag_test_module", MODULE_PATH)
    assert spec and spec.loader
    diag = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(diag)
    return diag


@pytest.fixture
def fake_engine(monkeypatch: pytest.MonkeyPatch, tmp_path: Path):
    diag = load_diag()
    launcher = FakeEditorLauncher()
    built: dict[str, FlowStateEngine] = {}

    def fake_load_engine(settings, *, analyzer=None):
        engine = FlowStateEngine.from_settings(
            settings,
            analyzer=analyzer,
            detector=FakeProcessDetector([IDEName.VSCODE]),
            launcher=launcher,
            env={"XDG_CONFIG_HOME": str(tmp_path / "config"), "HOME": str(tmp_path)},
        )
        built["engine"] = engine
        return engine

    monkeypatch.setattr(diag, "load_engine", fake_load_engine)
    return diag, launcher, built


def seed(tmp_path: Path, make_workspace, now: float) -> Path:
    project = tmp_path / "project"
    project.mkdir()
    make_workspace(tmp_path / "config" / "Code" / "User", "ws", folder=project, state_store=b"{}", state_mtime=now - 30)
    return project


def test_parser_requires_known_command() -> None:
    parser = load_diag().build_parser()

    args = parser.parse_args(["capture", "--editor", "VSCode", "--editor", "Cursor", "--no-document"])

    assert args.editor == ["VSCode", "Cursor"]
    assert args.no_document is True
    with pytest.raises(SystemExit):
        parser.parse_args(["teleport"])


def test_capture_command_writes_report(fake_engine, tmp_path, make_workspace, now, capsys) -> None:
    diag, _, _ = fake_engine
    project = seed(tmp_path, make_workspace, now)
    analysis = tmp_path / "analysis.json"
    analysis.write_text(json.dumps({"gitBranch": "main", "continuationPrompt": "Resume."}), encoding="utf-8")
    output = tmp_path / "report.json"

    diag.main(["capture", "--editor", "VSCode", "--analysis", str(analysis), "--output", str(output)])

    printed = json.loads(capsys.readouterr().out)
    assert printed == json.loads(output.read_text(encoding="utf-8"))
    assert printed["totalSessions"] == 1
    assert printed["sessions"][0]["contextFile"]["path"] == str(project / ".flowstate_context.md")
    assert "**Git Branch**: `main`" in (project / ".flowstate_context.md").read_text(encoding="utf-8")


def test_capture_command_rejects_invalid_analysis(fake_engine, tmp_path, capsys) -> None:
    diag, _, built = fake_engine
    analysis = tmp_path / "analysis.json"
    analysis.write_text(json.dumps({"todoItems": [{"file": "a.py"}]}), encoding="utf-8")

    with pytest.raises(SystemExit):
        diag.cmd_capture(argparse.Namespace(editor=None, analysis=str(analysis), no_document=False, output=None))

    assert "Invalid analysis file" in capsys.readouterr().out
    assert built == {}


def test_restore_command_reads_capture_report(fake_engine, tmp_path, capsys) -> None:
    diag, launcher, _ = fake_engine
    project = tmp_path / "project"
    project.mkdir()
    report = tmp_path / "capture.json"
    report.write_text(
        json.dumps(
            {
                "sessions": [
                    {"ideName": "VSCode", "workspacePaths": [str(project)]},
                    {"ideName": "Cursor", "workspacePaths": [str(project)]},
                ],
                "totalSessions": 2,
            }
        ),
        encoding="utf-8",
    )

    diag.main(["restore", str(report), "--editor", "vscode"])

    printed = json.loads(capsys.readouterr().out)
    assert [item["ide"] for item in printed] == ["VSCode"]
    assert printed[0]["ok"] is True
    assert launcher.invocations == [("code", str(project))]


def test_restore_command_reports_unreadable_file(fake_engine, tmp_path, capsys) -> None:
    diag, _, _ = fake_engine

    with pytest.raises(SystemExit):
        diag.main(["restore", str(tmp_path / "missing.json")])

    assert "Could not read" in capsys.readouterr().out


def test_load_engine_reports_profile_errors(monkeypatch, tmp_path, capsys) -> None:
    diag = load_diag()
    (tmp_path / "broken.yaml").write_text("ide: [\n", encoding="utf-8")
    monkeypatch.setenv("FLOWSTATE_EDITOR_PROFILE_PATHS", str(tmp_path))

    with pytest.raises(SystemExit):
        diag.load_engine(diag.FlowStateSettings())

    assert "Editor profiles unavailable" in capsys.readouterr().out
