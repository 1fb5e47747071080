"""FlowState IDE diagnostics CLI."""

from __future__ import annotations

import argparse
import asyncio
import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from flowstate_ide.analysis import StaticAnalyzer
from flowstate_ide.config import FlowStateSettings
from flowstate_ide.editors import ProfileLoadError
from flowstate_ide.engine import FlowStateEngine
from flowstate_ide.session.models import IDESession


def load_engine(settings: FlowStateSettings, *, analyzer: StaticAnalyzer | None = None) -> FlowStateEngine:
    engine = FlowStateEngine.from_settings(settings, analyzer=analyzer)
    try:
        engine.profiles.load_all()
    except ProfileLoadError as exc:
        print(f"Editor profiles unavailable: {exc}")
        raise SystemExit(1)
    return engine


def _read_json(path: Path) -> Any:
    try:
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError) as exc:
        print(f"Could not read {path}: {exc}")
        raise SystemExit(1)


def cmd_editors(args: argparse.Namespace) -> None:
    settings = FlowStateSettings()
    engine = load_engine(settings)
    platform = engine.detector.platform
    payload = []
    for profile in engine.profiles.load_all().values():
        storage_root = profile.resolve_storage_root(platform, engine.env)
        payload.append(
            {
                "ide": profile.ide.value,
                "title": profile.title,
                "process_name": profile.process_name(platform),
                "launch_alias": profile.launch_alias,
                "install_paths": [str(path) for path in profile.install_paths(platform, engine.env)],
                "storage_root": str(storage_root) if storage_root is not None else None,
            }
        )
    print(json.dumps(payload, indent=2))


def cmd_capture(args: argparse.Namespace) -> None:
    settings = FlowStateSettings()
    analyzer = None
    if args.analysis:
        try:
            analyzer = StaticAnalyzer(_read_json(Path(args.analysis)))
        except ValidationError as exc:
            print(f"Invalid analysis file {args.analysis}: {exc}")
            raise SystemExit(1)
    engine = load_engine(settings, analyzer=analyzer)

    report = asyncio.run(engine.capture(args.editor or None, write_document=not args.no_document))
    payload = report.to_dict()
    if args.output:
        Path(args.output).write_text(json.dumps(payload, indent=2), encoding="utf-8")
    print(json.dumps(payload, indent=2))


def cmd_restore(args: argparse.Namespace) -> None:
    settings = FlowStateSettings()
    engine = load_engine(settings)

    document = _read_json(Path(args.file))
    raw_sessions = document.get("sessions", []) if isinstance(document, dict) and "sessions" in document else [document]
    try:
        sessions = [IDESession.model_validate(raw) for raw in raw_sessions]
    except ValidationError as exc:
        print(f"Invalid session file {args.file}: {exc}")
        raise SystemExit(1)

    if args.editor:
        wanted = {name.lower() for name in args.editor}
        sessions = [session for session in sessions if session.ide_name.value.lower() in wanted]

    reports = [asyncio.run(engine.restore(session)) for session in sessions]
    print(json.dumps([report.to_dict() for report in reports], indent=2))


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="FlowState IDE diagnostics")
    sub = parser.add_subparsers(dest="cmd")

    p_editors = sub.add_parser("editors", help="List editor profiles for this platform")
    p_editors.set_defaults(func=cmd_editors)

    p_capture = sub.add_parser("capture", help="Capture running editor sessions")
    p_capture.add_argument(
        "--editor",
        action="append",
        help="Editor to capture (VSCode, Cursor); repeat for several. Defaults to all.",
    )
    p_capture.add_argument("--analysis", help="JSON file with a workspace analysis to render")
    p_capture.add_argument(
        "--no-document",
        action="store_true",
        help="Do not create or read the workspace context document",
    )
    p_capture.add_argument("--output", help="Also write the capture report to this file")
    p_capture.set_defaults(func=cmd_capture)

    p_restore = sub.add_parser("restore", help="Reopen editors from a captured session file")
    p_restore.add_argument("file", help="IDESession JSON or a capture report")
    p_restore.add_argument("--editor", action="append", help="Only restore these editors")
    p_restore.set_defaults(func=cmd_restore)

    return parser


def main(argv: list[str] | None = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    if not hasattr(args, "func"):
        parser.print_help()
        return
    args.func(args)


if __name__ == "__main__":
    main()
