"""Wiring of the capture/restore engine from settings."""

from __future__ import annotations

import os
import threading
from dataclasses import dataclass
from typing import Iterable, Mapping

from .analysis import WorkspaceAnalyzer
from .config import FlowStateSettings, get_settings
from .editors import EditorProfileLoader, IDEName
from .process.detector import EventSink, ProcessDetector
from .process.launcher import EditorLauncher
from .session.capture import CaptureOutcome, CaptureReport, SessionCapturer
from .session.context_document import ContextDocumentGenerator
from .session.models import IDESession
from .session.restore import RestoreReport, SessionRestorer


@dataclass(slots=True)
class FlowStateEngine:
    """Capture and restore sharing one profile table and one document writer."""

    settings: FlowStateSettings
    profiles: EditorProfileLoader
    detector: ProcessDetector
    launcher: EditorLauncher
    documents: ContextDocumentGenerator
    capturer: SessionCapturer
    restorer: SessionRestorer
    env: dict[str, str]

    @classmethod
    def from_settings(
        cls,
        settings: FlowStateSettings | None = None,
        *,
        analyzer: WorkspaceAnalyzer | None = None,
        detector: ProcessDetector | None = None,
        launcher: EditorLauncher | None = None,
        event_sink: EventSink | None = None,
        env: Mapping[str, str] | None = None,
    ) -> "FlowStateEngine":
        settings = settings or get_settings()
        env = dict(env) if env is not None else dict(os.environ)
        profiles = EditorProfileLoader(settings.editor_profile_paths)
        detector = detector or ProcessDetector(
            timeout=settings.process_check_timeout,
            event_sink=event_sink,
        )
        launcher = launcher or EditorLauncher(timeout=settings.launch_timeout, env=env)
        documents = ContextDocumentGenerator(
            filename=settings.context_filename,
            summary_limit=settings.context_summary_limit,
            todo_limit=settings.context_todo_limit,
        )
        capturer = SessionCapturer(
            profiles=profiles,
            detector=detector,
            documents=documents,
            analyzer=analyzer,
            recency_window=settings.recency_window,
            recent_limit=settings.recent_workspace_limit,
            env=env,
        )
        restorer = SessionRestorer(
            profiles=profiles,
            launcher=launcher,
            documents=documents,
            analyzer=analyzer,
        )
        return cls(
            settings=settings,
            profiles=profiles,
            detector=detector,
            launcher=launcher,
            documents=documents,
            capturer=capturer,
            restorer=restorer,
            env=env,
        )

    def start(self, event_sink: EventSink | None = None) -> None:
        self.detector.start(event_sink)

    def stop(self) -> None:
        self.detector.stop()

    async def capture(
        self,
        ides: Iterable[IDEName | str] | None = None,
        *,
        cancel: threading.Event | None = None,
        write_document: bool = True,
    ) -> CaptureReport:
        return await self.capturer.capture_all(ides, cancel=cancel, write_document=write_document)

    async def capture_one(
        self,
        ide: IDEName | str,
        *,
        cancel: threading.Event | None = None,
    ) -> CaptureOutcome:
        return await self.capturer.capture(ide, cancel=cancel)

    async def restore(
        self,
        session: IDESession,
        *,
        cancel: threading.Event | None = None,
    ) -> RestoreReport:
        return await self.restorer.restore(session, cancel=cancel)


__all__ = ["FlowStateEngine"]
