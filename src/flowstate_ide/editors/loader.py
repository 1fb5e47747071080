"""Editor profile loading: built-in capability table plus YAML overrides."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable

import yaml
from pydantic import ValidationError

from .models import EditorProfile, IDEName

_BUILTIN_PROFILES: tuple[dict[str, Any], ...] = (
    {
        "ide": IDEName.VSCODE,
        "title": "Visual Studio Code",
        "process_names": {"win32": "Code.exe", "darwin": "Code", "linux": "code"},
        "storage_dir_name": "Code",
        "launch_alias": "code",
        "fallback_paths": {
            "win32": [
                "%LOCALAPPDATA%/Programs/Microsoft VS Code/Code.exe",
                "%ProgramFiles%/Microsoft VS Code/Code.exe",
            ],
            "darwin": [
                "/Applications/Visual Studio Code.app/Contents/Resources/app/bin/code",
                "~/Applications/Visual Studio Code.app/Contents/Resources/app/bin/code",
            ],
            "linux": ["/usr/bin/code", "/usr/share/code/bin/code", "/snap/bin/code"],
        },
    },
    {
        "ide": IDEName.CURSOR,
        "title": "Cursor",
        "process_names": {"win32": "Cursor.exe", "darwin": "Cursor", "linux": "cursor"},
        "storage_dir_name": "Cursor",
        "launch_alias": "cursor",
        "fallback_paths": {
            "win32": ["%LOCALAPPDATA%/Programs/cursor/Cursor.exe"],
            "darwin": [
                "/Applications/Cursor.app/Contents/Resources/app/bin/cursor",
                "~/Applications/Cursor.app/Contents/Resources/app/bin/cursor",
            ],
            "linux": ["/usr/bin/cursor", "/opt/Cursor/cursor", "~/.local/bin/cursor"],
        },
    },
    {
        "ide": IDEName.UNKNOWN,
        "title": "Unknown editor",
    },
)


class ProfileLoadError(RuntimeError):
    """Raised when one or more editor profile files cannot be parsed."""


def builtin_profiles() -> dict[IDEName, EditorProfile]:
    """Return a fresh copy of the built-in capability table."""

    return {
        profile.ide: profile
        for profile in (EditorProfile.model_validate(entry) for entry in _BUILTIN_PROFILES)
    }


class EditorProfileLoader:
    """Loads editor profiles, layering YAML overrides on the built-in table."""

    def __init__(self, search_paths: Iterable[Path] | None = None) -> None:
        paths = [Path(path) for path in (search_paths or [])]
        self._search_paths: list[Path] = [path for path in paths if path.exists()]

    @property
    def search_paths(self) -> list[Path]:
        """Return the normalized search paths."""

        return list(self._search_paths)

    def load_all(self) -> dict[IDEName, EditorProfile]:
        """Load profiles from the built-in table and all configured search paths.

        Override files are partial: only the keys they set replace the
        built-in values. Later search paths override earlier ones.
        """

        profiles = builtin_profiles()
        errors: list[str] = []

        for base in self._search_paths:
            for path in sorted(base.glob("*.yml")) + sorted(base.glob("*.yaml")):
                try:
                    text = path.read_text(encoding="utf-8")
                except (OSError, UnicodeDecodeError) as exc:
                    errors.append(f"Failed to read editor profile {path}: {exc}")
                    continue
                try:
                    document = yaml.safe_load(text)
                except yaml.YAMLError as exc:
                    errors.append(f"Failed to parse YAML in {path}: {exc}")
                    continue

                if document is None:
                    continue
                if not isinstance(document, dict) or "ide" not in document:
                    errors.append(f"Editor profile in {path} must be a mapping with an 'ide' key")
                    continue

                ide = IDEName.parse(str(document["ide"]))
                if ide is IDEName.UNKNOWN and str(document["ide"]).strip().lower() != "unknown":
                    errors.append(f"Editor profile in {path} names an unrecognized editor {document['ide']!r}")
                    continue
                base_profile = profiles.get(ide)
                merged = base_profile.model_dump() if base_profile is not None else {}
                merged.update(document)
                merged["ide"] = ide

                try:
                    profile = EditorProfile.model_validate(merged)
                except ValidationError as exc:
                    errors.append(f"Editor profile validation error in {path}: {exc}")
                    continue

                profiles[profile.ide] = profile

        if errors:
            raise ProfileLoadError("; ".join(errors))

        return profiles

    def get(self, ide: IDEName | str) -> EditorProfile:
        """Return the profile for one editor; unrecognized names map to Unknown."""

        profiles = self.load_all()
        return profiles[IDEName.parse(ide)]


__all__ = ["EditorProfileLoader", "ProfileLoadError", "builtin_profiles"]
