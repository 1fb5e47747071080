"""Session models, workspace resolution and context documents."""

from .context_document import ContextDocumentGenerator, DocumentWriteError, render_context_document
from .models import (
    AnalysisResult,
    ContextFile,
    CursorPosition,
    FileChange,
    GitStatus,
    IDESession,
    OpenFile,
    TodoItem,
)
from .resolver import CaptureCancelled, WorkspaceCandidate, WorkspaceResolution, WorkspaceResolver

__all__ = [
    "AnalysisResult",
    "CaptureCancelled",
    "ContextDocumentGenerator",
    "ContextFile",
    "CursorPosition",
    "DocumentWriteError",
    "FileChange",
    "GitStatus",
    "IDESession",
    "OpenFile",
    "TodoItem",
    "WorkspaceCandidate",
    "WorkspaceResolution",
    "WorkspaceResolver",
    "render_context_document",
]
