"""Relaunching editors from a previously captured session."""

from __future__ import annotations

import asyncio
import logging
import os
import threading
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Literal

from ..analysis import WorkspaceAnalyzer, run_analysis
from ..editors import EditorProfile, EditorProfileLoader, IDEName
from ..process.launcher import EditorLauncher
from .context_document import ContextDocumentGenerator
from .models import ContextFile, IDESession

logger = logging.getLogger(__name__)


class LaunchStatus(str, Enum):
    LAUNCHED = "launched"
    MISSING = "missing"
    FAILED = "failed"
    UNSUPPORTED = "unsupported"
    CANCELLED = "cancelled"


@dataclass(slots=True)
class LaunchTarget:
    """What happened to one workspace or file during a restore."""

    path: str
    kind: Literal["workspace", "file"]
    status: LaunchStatus
    extra_arguments: list[str] = field(default_factory=list)
    executable: str | None = None
    attempted: list[str] = field(default_factory=list)
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "path": self.path,
            "kind": self.kind,
            "status": self.status.value,
            "extra_arguments": list(self.extra_arguments),
            "executable": self.executable,
            "attempted": list(self.attempted),
            "error": self.error,
        }


@dataclass(slots=True)
class RestoreReport:
    ide: IDEName
    targets: list[LaunchTarget] = field(default_factory=list)
    context_file: ContextFile | None = None

    @property
    def launched(self) -> list[LaunchTarget]:
        return [target for target in self.targets if target.status is LaunchStatus.LAUNCHED]

    @property
    def not_launched(self) -> list[LaunchTarget]:
        return [target for target in self.targets if target.status is not LaunchStatus.LAUNCHED]

    @property
    def ok(self) -> bool:
        return bool(self.targets) and not self.not_launched

    def to_dict(self) -> dict[str, Any]:
        return {
            "ide": self.ide.value,
            "ok": self.ok,
            "launched": len(self.launched),
            "not_launched": len(self.not_launched),
            "targets": [target.to_dict() for target in self.targets],
            "context_file": self.context_file.path if self.context_file is not None else None,
        }


class SessionRestorer:
    """Reopen a captured session's workspaces, or its first file, in the same editor."""

    def __init__(
        self,
        *,
        profiles: EditorProfileLoader,
        launcher: EditorLauncher,
        documents: ContextDocumentGenerator,
        analyzer: WorkspaceAnalyzer | None = None,
    ) -> None:
        self._profiles = profiles
        self._launcher = launcher
        self._documents = documents
        self._analyzer = analyzer

    async def restore(
        self,
        session: IDESession,
        *,
        cancel: threading.Event | None = None,
    ) -> RestoreReport:
        """Restore ``session``; unreachable targets are reported, never raised."""

        ide = session.ide_name
        profile = self._profiles.get(ide)
        report = RestoreReport(ide=ide)
        logger.info("Restoring editor session", extra={"ide": ide.value})

        if session.workspace_paths and not _cancelled(cancel):
            workspace = session.workspace_paths[0]
            if Path(workspace).is_dir():
                analysis = await run_analysis(self._analyzer, workspace, ide)
                report.context_file = await asyncio.to_thread(
                    self._documents.for_restore, workspace, ide, analysis, session.context_file
                )

        for workspace in session.workspace_paths:
            document = self._documents.path_for(workspace)
            extra = [str(document)] if document.is_file() else []
            report.targets.append(await self._open(profile, "workspace", workspace, extra, cancel))

        if not session.workspace_paths and session.open_files:
            first_file = session.open_files[0].path
            report.targets.append(await self._open(profile, "file", first_file, [], cancel))

        logger.info(
            "Restore finished",
            extra={
                "ide": ide.value,
                "launched": len(report.launched),
                "not_launched": len(report.not_launched),
            },
        )
        return report

    async def _open(
        self,
        profile: EditorProfile,
        kind: Literal["workspace", "file"],
        path: str,
        extra: list[str],
        cancel: threading.Event | None,
    ) -> LaunchTarget:
        if _cancelled(cancel):
            return LaunchTarget(path=path, kind=kind, status=LaunchStatus.CANCELLED)
        if not os.path.exists(path):
            logger.warning("Restore target no longer exists", extra={"kind": kind, "path": path})
            return LaunchTarget(path=path, kind=kind, status=LaunchStatus.MISSING)
        if not profile.launchable:
            logger.warning("No launch command for editor", extra={"ide": profile.ide.value, "path": path})
            return LaunchTarget(
                path=path,
                kind=kind,
                status=LaunchStatus.UNSUPPORTED,
                error=f"{profile.title} cannot be launched",
            )

        attempt = await self._launcher.launch(profile, [path, *extra])
        if attempt.launched:
            logger.info(
                "Opened in editor",
                extra={"ide": profile.ide.value, "path": path, "executable": attempt.executable},
            )
            status = LaunchStatus.LAUNCHED
        else:
            logger.warning(
                "Could not open in editor",
                extra={"ide": profile.ide.value, "path": path, "error": attempt.error},
            )
            status = LaunchStatus.FAILED
        return LaunchTarget(
            path=path,
            kind=kind,
            status=status,
            extra_arguments=extra,
            executable=attempt.executable,
            attempted=attempt.attempted,
            error=attempt.error,
        )


def _cancelled(cancel: threading.Event | None) -> bool:
    return cancel is not None and cancel.is_set()


__all__ = ["LaunchStatus", "LaunchTarget", "RestoreReport", "SessionRestorer"]
