"""Editor capability models: one profile per supported editor variant."""

from __future__ import annotations

import re
import sys
from enum import Enum
from pathlib import Path
from typing import Any, Mapping

from pydantic import BaseModel, Field, field_validator

PLATFORMS = ("win32", "darwin", "linux")

_ENV_REFERENCE = re.compile(r"%([A-Za-z_][A-Za-z0-9_]*)%|\$\{([A-Za-z_][A-Za-z0-9_]*)\}|\$([A-Za-z_][A-Za-z0-9_]*)")


class IDEName(str, Enum):
    """Editors whose sessions can be captured."""

    VSCODE = "VSCode"
    CURSOR = "Cursor"
    UNKNOWN = "Unknown"

    @classmethod
    def parse(cls, value: "str | IDEName | None") -> "IDEName":
        if isinstance(value, IDEName):
            return value
        needle = (value or "").strip().lower().replace(" ", "")
        for member in cls:
            if needle in {member.value.lower(), member.name.lower()}:
                return member
        if needle in {"code", "visualstudiocode"}:
            return cls.VSCODE
        return cls.UNKNOWN


def current_platform() -> str:
    """Map ``sys.platform`` onto the platform keys used by editor profiles."""

    if sys.platform.startswith("win"):
        return "win32"
    if sys.platform == "darwin":
        return "darwin"
    return "linux"


def _home(env: Mapping[str, str]) -> Path:
    home = env.get("HOME") or env.get("USERPROFILE")
    return Path(home) if home else Path.home()


def expand_template(template: str, env: Mapping[str, str]) -> Path | None:
    """Expand ``%VAR%``/``$VAR``/``~`` references; ``None`` when a variable is unset."""

    missing = False

    def _replace(match: re.Match[str]) -> str:
        nonlocal missing
        name = match.group(1) or match.group(2) or match.group(3)
        value = env.get(name)
        if not value:
            missing = True
            return ""
        return value

    expanded = _ENV_REFERENCE.sub(_replace, template)
    if missing:
        return None
    if expanded.startswith("~"):
        expanded = str(_home(env)) + expanded[1:]
    return Path(expanded)


class EditorProfile(BaseModel):
    """Everything that differs between editors, looked up once per operation."""

    ide: IDEName = Field(..., description="Editor variant this profile describes.")
    title: str = Field(..., description="Display name for the editor.")
    process_names: dict[str, str] = Field(
        default_factory=dict,
        description="Process or image name to look for, keyed by platform.",
    )
    storage_dir_name: str | None = Field(
        default=None,
        description="Vendor directory holding the editor's User storage tree.",
    )
    storage_root: Path | None = Field(
        default=None,
        description="Explicit User storage directory; overrides the platform default.",
    )
    launch_alias: str | None = Field(
        default=None, description="Short command name used to open the editor."
    )
    fallback_paths: dict[str, list[str]] = Field(
        default_factory=dict,
        description="Absolute install paths tried when the alias fails, keyed by platform.",
    )
    metadata: dict[str, Any] = Field(default_factory=dict)

    @field_validator("process_names", "fallback_paths")
    @classmethod
    def _check_platform_keys(cls, value: dict[str, Any]) -> dict[str, Any]:
        unknown = set(value) - set(PLATFORMS)
        if unknown:
            raise ValueError(f"Unknown platform keys: {', '.join(sorted(unknown))}")
        return value

    @field_validator("launch_alias", "storage_dir_name")
    @classmethod
    def _blank_to_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        stripped = value.strip()
        return stripped or None

    @property
    def launchable(self) -> bool:
        return bool(self.launch_alias or any(self.fallback_paths.values()))

    def process_name(self, platform: str) -> str | None:
        return self.process_names.get(platform)

    def resolve_storage_root(self, platform: str, env: Mapping[str, str]) -> Path | None:
        if self.storage_root is not None:
            return self.storage_root.expanduser()
        if not self.storage_dir_name:
            return None

        if platform == "win32":
            base = Path(env["APPDATA"]) if env.get("APPDATA") else _home(env)
        elif platform == "darwin":
            base = _home(env) / "Library" / "Application Support"
        else:
            xdg = env.get("XDG_CONFIG_HOME")
            base = Path(xdg) if xdg else _home(env) / ".config"
        return base / self.storage_dir_name / "User"

    def install_paths(self, platform: str, env: Mapping[str, str]) -> list[Path]:
        paths: list[Path] = []
        for template in self.fallback_paths.get(platform, []):
            expanded = expand_template(template, env)
            if expanded is not None:
                paths.append(expanded)
        return paths


__all__ = ["EditorProfile", "IDEName", "PLATFORMS", "current_platform", "expand_template"]
