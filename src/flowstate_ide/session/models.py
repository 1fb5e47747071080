"""Session and analysis models exchanged with the control plane."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from ..config import MAX_RECENT_WORKSPACES
from ..editors.models import IDEName

TodoPriority = Literal["high", "medium", "low"]


class WireModel(BaseModel):
    """Base model that serializes with camelCase keys and accepts either casing."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


def _dedupe(values: list[str]) -> list[str]:
    seen: set[str] = set()
    ordered: list[str] = []
    for value in values:
        if value and value not in seen:
            seen.add(value)
            ordered.append(value)
    return ordered


class CursorPosition(WireModel):
    line: int
    column: int


class OpenFile(WireModel):
    """A file the editor had open that still existed at capture time."""

    path: str
    cursor_position: CursorPosition | None = None
    is_active: bool | None = None


class ContextFile(WireModel):
    path: str
    content: str


class IDESession(WireModel):
    """Everything needed to reopen one editor where the developer left off."""

    ide_name: IDEName
    workspace_paths: list[str] = Field(default_factory=list)
    open_files: list[OpenFile] = Field(default_factory=list)
    recent_workspaces: list[str] = Field(default_factory=list)
    context_file: ContextFile | None = None

    @field_validator("ide_name", mode="before")
    @classmethod
    def _parse_ide_name(cls, value: Any) -> IDEName:
        return IDEName.parse(value if isinstance(value, (str, IDEName)) else None)

    @field_validator("workspace_paths")
    @classmethod
    def _dedupe_paths(cls, value: list[str]) -> list[str]:
        return _dedupe(value)

    @field_validator("recent_workspaces")
    @classmethod
    def _cap_recent(cls, value: list[str]) -> list[str]:
        return _dedupe(value)[:MAX_RECENT_WORKSPACES]

    @field_validator("open_files")
    @classmethod
    def _dedupe_open_files(cls, value: list[OpenFile]) -> list[OpenFile]:
        seen: set[str] = set()
        unique: list[OpenFile] = []
        for item in value:
            if item.path not in seen:
                seen.add(item.path)
                unique.append(item)
        return unique

    @property
    def is_empty(self) -> bool:
        return not self.workspace_paths and not self.recent_workspaces

    def add_workspace_path(self, path: str) -> bool:
        if not path or path in self.workspace_paths:
            return False
        self.workspace_paths.append(path)
        return True

    def add_open_file(self, open_file: OpenFile) -> bool:
        if any(existing.path == open_file.path for existing in self.open_files):
            return False
        self.open_files.append(open_file)
        return True


class GitStatus(WireModel):
    modified: list[str] = Field(default_factory=list)
    untracked: list[str] = Field(default_factory=list)


class FileChange(WireModel):
    file: str
    change_type: Literal["added", "modified", "deleted"] = "modified"
    lines_added: int = 0
    lines_removed: int = 0
    summary: str


class TodoItem(WireModel):
    file: str
    line: int
    text: str
    priority: TodoPriority = "medium"

    @field_validator("priority", mode="before")
    @classmethod
    def _normalize_priority(cls, value: Any) -> str:
        normalized = str(value or "medium").strip().lower()
        return normalized if normalized in {"high", "medium", "low"} else "low"


class AnalysisResult(WireModel):
    """Workspace analysis produced by an external analyzer; rendered, never computed here."""

    git_branch: str | None = None
    git_status: GitStatus | None = None
    most_recent_file: str | None = None
    time_since_last_work: str | None = None
    files_edited_by_ai: list[str] = Field(default_factory=list, alias="filesEditedByAI")
    files_edited_manually: list[str] = Field(default_factory=list)
    recent_changes: list[FileChange] = Field(default_factory=list)
    todo_items: list[TodoItem] = Field(default_factory=list)
    recommendations: list[str] = Field(default_factory=list)
    continuation_prompt: str = ""


__all__ = [
    "AnalysisResult",
    "ContextFile",
    "CursorPosition",
    "FileChange",
    "GitStatus",
    "IDESession",
    "OpenFile",
    "TodoItem",
    "TodoPriority",
    "WireModel",
]
