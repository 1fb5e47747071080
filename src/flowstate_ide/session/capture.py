"""Capture of editor sessions: detect, resolve, document."""

from __future__ import annotations

import asyncio
import logging
import os
import threading
import time
from dataclasses import dataclass, field
from datetime import timedelta
from enum import Enum
from typing import Any, Callable, Iterable, Mapping

from ..analysis import WorkspaceAnalyzer, run_analysis
from ..editors import EditorProfile, EditorProfileLoader, IDEName, ProfileLoadError
from ..process.detector import ProcessDetector
from .context_document import ContextDocumentGenerator
from .models import IDESession
from .resolver import CaptureCancelled, WorkspaceResolver

logger = logging.getLogger(__name__)

DEFAULT_EDITORS = (IDEName.VSCODE, IDEName.CURSOR)


class CaptureState(str, Enum):
    NOT_CHECKED = "NotChecked"
    NOT_RUNNING = "NotRunning"
    NO_WORKSPACE = "NoWorkspace"
    SESSION_READY = "SessionReady"
    CANCELLED = "Cancelled"


@dataclass(slots=True)
class CaptureOutcome:
    """Where one editor's capture ended, with the session when one was produced."""

    ide: IDEName
    state: CaptureState = CaptureState.NOT_CHECKED
    session: IDESession | None = None
    workspace_id: str | None = None
    skipped_workspaces: list[str] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "ide": self.ide.value,
            "state": self.state.value,
            "workspace_id": self.workspace_id,
            "skipped_workspaces": list(self.skipped_workspaces),
            "error": self.error,
            "session": self.session.to_payload() if self.session is not None else None,
        }


@dataclass(slots=True)
class CaptureReport:
    outcomes: list[CaptureOutcome] = field(default_factory=list)

    @property
    def sessions(self) -> list[IDESession]:
        return [outcome.session for outcome in self.outcomes if outcome.session is not None]

    @property
    def total_sessions(self) -> int:
        return len(self.sessions)

    def to_dict(self) -> dict[str, Any]:
        return {
            "sessions": [session.to_payload() for session in self.sessions],
            "totalSessions": self.total_sessions,
            "outcomes": [
                {key: value for key, value in outcome.to_dict().items() if key != "session"}
                for outcome in self.outcomes
            ],
        }


class SessionCapturer:
    """Run the per-editor capture state machine."""

    def __init__(
        self,
        *,
        profiles: EditorProfileLoader,
        detector: ProcessDetector,
        documents: ContextDocumentGenerator,
        analyzer: WorkspaceAnalyzer | None = None,
        recency_window: timedelta = timedelta(minutes=30),
        recent_limit: int = 10,
        env: Mapping[str, str] | None = None,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self._profiles = profiles
        self._detector = detector
        self._documents = documents
        self._analyzer = analyzer
        self._recency_window = recency_window
        self._recent_limit = recent_limit
        self._env = dict(env) if env is not None else dict(os.environ)
        self._clock = clock

    def resolver_for(self, profile: EditorProfile) -> WorkspaceResolver | None:
        platform = self._detector.platform
        root = profile.resolve_storage_root(platform, self._env)
        if root is None:
            return None
        return WorkspaceResolver(
            root,
            recency_window=self._recency_window,
            recent_limit=self._recent_limit,
            windows=platform == "win32",
            clock=self._clock,
        )

    async def capture(
        self,
        ide: IDEName | str,
        *,
        cancel: threading.Event | None = None,
        write_document: bool = True,
    ) -> CaptureOutcome:
        """Capture one editor. Never raises for expected or per-workspace failures."""

        ide = IDEName.parse(ide)
        outcome = CaptureOutcome(ide=ide)
        try:
            profile = self._profiles.get(ide)
        except ProfileLoadError as exc:
            logger.error("Editor profiles could not be loaded", extra={"ide": ide.value, "error": str(exc)})
            outcome.error = str(exc)
            return outcome

        if not await self._detector.is_running(profile):
            logger.info("Editor not running", extra={"ide": ide.value})
            outcome.state = CaptureState.NOT_RUNNING
            return outcome

        resolver = self.resolver_for(profile)
        if resolver is None:
            logger.info("Editor has no storage location", extra={"ide": ide.value})
            outcome.state = CaptureState.NO_WORKSPACE
            return outcome

        try:
            resolution = await asyncio.to_thread(resolver.resolve, cancel=cancel)
        except CaptureCancelled:
            logger.info("Capture cancelled", extra={"ide": ide.value})
            outcome.state = CaptureState.CANCELLED
            return outcome

        outcome.workspace_id = resolution.workspace_id
        outcome.skipped_workspaces = list(resolution.skipped)
        if not resolution.found:
            logger.info(
                "No workspace detected",
                extra={"ide": ide.value, "storage_root": str(resolver.storage_root)},
            )
            outcome.state = CaptureState.NO_WORKSPACE
            return outcome

        session = IDESession(
            ide_name=ide,
            workspace_paths=resolution.workspace_paths,
            open_files=resolution.open_files,
            recent_workspaces=resolution.recent_workspaces,
        )

        if cancel is not None and cancel.is_set():
            outcome.state = CaptureState.CANCELLED
            return outcome

        if session.workspace_paths and write_document:
            workspace = session.workspace_paths[0]
            analysis = await run_analysis(self._analyzer, workspace, ide)
            session.context_file = await asyncio.to_thread(
                self._documents.for_capture, workspace, ide, analysis
            )

        outcome.state = CaptureState.SESSION_READY
        outcome.session = session
        logger.info(
            "Captured editor session",
            extra={
                "ide": ide.value,
                "workspaces": len(session.workspace_paths),
                "open_files": len(session.open_files),
                "recent_workspaces": len(session.recent_workspaces),
                "context_file": session.context_file is not None,
            },
        )
        return outcome

    async def capture_all(
        self,
        ides: Iterable[IDEName | str] | None = None,
        *,
        cancel: threading.Event | None = None,
        write_document: bool = True,
    ) -> CaptureReport:
        """Capture several editors concurrently; each editor's steps stay sequential."""

        targets = list(ides) if ides is not None else list(DEFAULT_EDITORS)
        results = await asyncio.gather(
            *(self.capture(ide, cancel=cancel, write_document=write_document) for ide in targets),
            return_exceptions=True,
        )
        outcomes: list[CaptureOutcome] = []
        for ide, result in zip(targets, results):
            if isinstance(result, CaptureOutcome):
                outcomes.append(result)
                continue
            if not isinstance(result, Exception):
                raise result
            logger.error(
                "Editor capture failed",
                extra={"ide": IDEName.parse(ide).value, "error": str(result)},
                exc_info=result,
            )
            outcomes.append(CaptureOutcome(ide=IDEName.parse(ide), error=str(result) or type(result).__name__))
        report = CaptureReport(outcomes=outcomes)
        logger.info("Capture finished", extra={"total_sessions": report.total_sessions})
        return report


__all__ = [
    "CaptureOutcome",
    "CaptureReport",
    "CaptureState",
    "DEFAULT_EDITORS",
    "SessionCapturer",
]
