"""Rendering and persistence of the workspace continuation document."""

from __future__ import annotations

import contextlib
import logging
import os
import re
import stat
import tempfile
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Iterable

from ..config import DEFAULT_CONTEXT_FILENAME
from ..editors.models import IDEName
from .models import AnalysisResult, ContextFile, TodoItem

logger = logging.getLogger(__name__)

PRIORITY_MARKERS = {"high": "🔴", "medium": "🟡", "low": "🟢"}
_PRIORITY_RANK = {"high": 0, "medium": 1, "low": 2}
_UMASK = os.umask(0o022)
os.umask(_UMASK)
FOOTER = "*Auto-generated by FlowState. Edit to add more context.*\n"


class DocumentWriteError(RuntimeError):
    """Raised when the context document cannot be persisted."""


def format_timestamp(moment: datetime) -> str:
    moment = moment.astimezone(timezone.utc)
    return moment.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def _basename(path: str) -> str:
    return re.split(r"[\\/]", path.rstrip("\\/"))[-1] or path


def _plural(count: int, noun: str) -> str:
    return f"{count} {noun}{'' if count == 1 else 's'}"


def top_priority_todo(todos: Iterable[TodoItem]) -> TodoItem | None:
    """Highest-priority TODO; the earliest one wins among equals."""

    return min(todos, key=lambda todo: _PRIORITY_RANK[todo.priority], default=None)


def _file_list(title: str, files: list[str]) -> list[str]:
    if not files:
        return []
    lines = [f"### {title} ({_plural(len(files), 'file')})\n"]
    lines.extend(f"- `{_basename(file)}`\n" for file in files)
    lines.append("\n")
    return lines


def render_context_document(
    workspace_path: str,
    ide_name: IDEName,
    analysis: AnalysisResult,
    *,
    generated_at: datetime,
    restored_at: datetime | None = None,
    summary_limit: int = 5,
    todo_limit: int = 5,
) -> str:
    """Render the markdown continuation document for one workspace."""

    parts: list[str] = [
        f"# {ide_name.value} Workspace Context\n\n",
        f"**Workspace**: {workspace_path}\n",
        f"**Last Updated**: {format_timestamp(generated_at)}\n",
    ]
    if restored_at is not None:
        parts.append(f"**Restored**: {format_timestamp(restored_at)}\n")
    if analysis.git_branch:
        parts.append(f"**Git Branch**: `{analysis.git_branch}`\n")
    if analysis.time_since_last_work:
        parts.append(f"**Last Work**: {analysis.time_since_last_work}\n")
    parts.append("\n---\n\n")

    parts.append("## ⚡ Quick Start\n\n")
    if analysis.most_recent_file:
        parts.append(f"**Primary Focus**: `{_basename(analysis.most_recent_file)}`\n\n")
        parts.append("This was the most recently edited file. Start here to continue your work.\n\n")
    status = analysis.git_status
    if status is not None and (status.modified or status.untracked):
        parts.append("**Uncommitted Changes**:\n")
        if status.modified:
            parts.append(f"- {_plural(len(status.modified), 'modified file')}\n")
        if status.untracked:
            parts.append(f"- {_plural(len(status.untracked), 'untracked file')}\n")
        parts.append("\nConsider committing or continuing work on these changes.\n\n")
    next_todo = top_priority_todo(analysis.todo_items)
    if next_todo is not None:
        parts.append(f"**Next TODO**: {_basename(next_todo.file)}:{next_todo.line} - {next_todo.text}\n\n")
    parts.append("---\n\n")

    parts.append("## 🤖 File Changes\n\n")
    parts.extend(_file_list("AI-Assisted", analysis.files_edited_by_ai))
    parts.extend(_file_list("Manual Changes", analysis.files_edited_manually))
    if analysis.recent_changes:
        parts.append("### Recent Activity\n")
        parts.extend(f"- {change.summary}\n" for change in analysis.recent_changes[:summary_limit])
        parts.append("\n")
    parts.append("---\n\n")

    if analysis.todo_items:
        parts.append("## 📋 Outstanding TODOs\n\n")
        for todo in analysis.todo_items[:todo_limit]:
            parts.append(f"{PRIORITY_MARKERS[todo.priority]} **{_basename(todo.file)}:{todo.line}**\n")
            parts.append(f"   {todo.text}\n\n")
        parts.append("---\n\n")

    if analysis.recommendations:
        parts.append("## 💡 Recommendations\n\n")
        parts.extend(f"{index}. {rec}\n" for index, rec in enumerate(analysis.recommendations, start=1))
        parts.append("\n---\n\n")

    parts.append(analysis.continuation_prompt)
    parts.append("\n---\n")
    parts.append(FOOTER)
    return "".join(parts)


class ContextDocumentGenerator:
    """Create, preserve or annotate ``.flowstate_context.md`` in a workspace root.

    Writes go through a temporary file and ``os.replace`` so readers never see
    a partial document, and at most one writer per document path runs at a
    time. Capture and restore must share one generator for that guarantee.
    """

    def __init__(
        self,
        *,
        filename: str = DEFAULT_CONTEXT_FILENAME,
        summary_limit: int = 5,
        todo_limit: int = 5,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self._filename = filename
        self._summary_limit = summary_limit
        self._todo_limit = todo_limit
        self._clock = clock or (lambda: datetime.now(timezone.utc))
        self._locks: dict[str, threading.Lock] = {}
        self._locks_guard = threading.Lock()

    @property
    def filename(self) -> str:
        return self._filename

    def path_for(self, workspace_path: str) -> Path:
        return Path(workspace_path) / self._filename

    def lock_for(self, path: Path) -> threading.Lock:
        key = os.path.normcase(os.path.abspath(path))
        with self._locks_guard:
            return self._locks.setdefault(key, threading.Lock())

    def render(
        self,
        workspace_path: str,
        ide_name: IDEName,
        analysis: AnalysisResult,
        *,
        restored_at: datetime | None = None,
    ) -> str:
        return render_context_document(
            workspace_path,
            ide_name,
            analysis,
            generated_at=self._clock(),
            restored_at=restored_at,
            summary_limit=self._summary_limit,
            todo_limit=self._todo_limit,
        )

    def read(self, path: Path) -> str | None:
        try:
            return path.read_bytes().decode("utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as exc:
            logger.warning("Could not read context document", extra={"path": str(path), "error": str(exc)})
            return None

    def write(self, path: Path, content: str) -> None:
        with self.lock_for(path):
            self._replace(path, content)

    def update(self, path: Path, transform: Callable[[str | None], str | None]) -> str | None:
        """Read, transform and write under the path lock; ``None`` from ``transform`` skips the write."""

        with self.lock_for(path):
            content = transform(self.read(path))
            if content is not None:
                self._replace(path, content)
            return content

    def _replace(self, path: Path, content: str) -> None:
        temp_name: str | None = None
        try:
            fd, temp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
            with os.fdopen(fd, "w", encoding="utf-8", newline="") as handle:
                handle.write(content)
                handle.flush()
                os.fsync(handle.fileno())
            try:
                mode = stat.S_IMODE(path.stat().st_mode)
            except FileNotFoundError:
                mode = 0o666 & ~_UMASK
            os.chmod(temp_name, mode)
            os.replace(temp_name, path)
        except OSError as exc:
            if temp_name is not None:
                with contextlib.suppress(OSError):
                    os.unlink(temp_name)
            raise DocumentWriteError(f"Could not write {path}: {exc}") from exc

    def for_capture(
        self,
        workspace_path: str,
        ide_name: IDEName,
        analysis: AnalysisResult | None,
    ) -> ContextFile | None:
        """Regenerate from ``analysis``, or pass an existing document through untouched."""

        path = self.path_for(workspace_path)
        if analysis is None:
            existing = self.read(path)
            if existing is None:
                return None
            logger.info("Using existing context document", extra={"path": str(path)})
            return ContextFile(path=str(path), content=existing)

        content = self.render(workspace_path, ide_name, analysis)
        existed = path.exists()
        try:
            self.write(path, content)
        except DocumentWriteError as exc:
            logger.warning("Context document not written", extra={"path": str(path), "error": str(exc)})
            stale = self.read(path)
            return ContextFile(path=str(path), content=stale) if stale is not None else None

        logger.info(
            "Updated context document" if existed else "Created context document",
            extra={"path": str(path)},
        )
        return ContextFile(path=str(path), content=content)

    def for_restore(
        self,
        workspace_path: str,
        ide_name: IDEName,
        analysis: AnalysisResult | None,
        previous: ContextFile | None = None,
    ) -> ContextFile | None:
        """Regenerate with a restore stamp, or append a restore note to the existing document."""

        if not Path(workspace_path).is_dir():
            return None
        path = self.path_for(workspace_path)
        restored_at = self._clock()

        def _transform(current: str | None) -> str | None:
            if analysis is not None:
                return self.render(workspace_path, ide_name, analysis, restored_at=restored_at)
            base = current if current is not None else (previous.content if previous else None)
            if base is None:
                return None
            return base + f"\n\n---\n**Restored**: {format_timestamp(restored_at)}\n"

        try:
            content = self.update(path, _transform)
        except DocumentWriteError as exc:
            logger.warning("Context document not restored", extra={"path": str(path), "error": str(exc)})
            return None
        if content is None:
            return None
        logger.info("Restored context document", extra={"path": str(path), "regenerated": analysis is not None})
        return ContextFile(path=str(path), content=content)


__all__ = [
    "ContextDocumentGenerator",
    "DocumentWriteError",
    "FOOTER",
    "PRIORITY_MARKERS",
    "format_timestamp",
    "render_context_document",
    "top_priority_todo",
]
