"""Async launcher for editor command-line entry points."""

from __future__ import annotations

import asyncio
import logging
import os
import shutil
import subprocess
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, Mapping

from ..editors.models import EditorProfile, current_platform
from .utils import sanitize_environment

logger = logging.getLogger(__name__)


class LauncherError(RuntimeError):
    """Base class for editor launch errors."""


class EditorNotFoundError(LauncherError):
    """Raised when no executable can be found for an editor."""


@dataclass(slots=True)
class LaunchResult:
    """Holds the outcome of a single editor command invocation.

    ``returncode`` is ``None`` when the command was still running once the
    launch timeout elapsed; that still counts as a successful launch.
    """

    args: tuple[str, ...]
    returncode: int | None
    stdout: str
    stderr: str

    @property
    def detached(self) -> bool:
        return self.returncode is None

    @property
    def ok(self) -> bool:
        return self.returncode is None or self.returncode == 0


@dataclass(slots=True)
class LaunchAttempt:
    """Outcome of the alias-then-fallback chain for one launch target."""

    launched: bool
    executable: str | None = None
    attempted: list[str] = field(default_factory=list)
    error: str | None = None
    result: LaunchResult | None = None


class EditorLauncher:
    """Open workspaces and files in an editor, alias first then install paths."""

    def __init__(
        self,
        *,
        platform: str | None = None,
        timeout: float = 10.0,
        env: Mapping[str, str] | None = None,
    ) -> None:
        self._platform = platform or current_platform()
        self._timeout = timeout
        self._env = dict(env) if env is not None else dict(os.environ)
        self._detached: list[subprocess.Popen] = []

    @property
    def platform(self) -> str:
        return self._platform

    def executables(self, profile: EditorProfile) -> list[tuple[str, Path | None]]:
        """Return ``(label, resolved executable)`` pairs in the order they are tried.

        The resolved executable is ``None`` when the alias is not on PATH or
        the install path does not exist.
        """

        entries: list[tuple[str, Path | None]] = []
        seen: set[Path] = set()
        if profile.launch_alias:
            resolved = shutil.which(profile.launch_alias, path=self._env.get("PATH"))
            executable = Path(resolved) if resolved else None
            entries.append((profile.launch_alias, executable))
            if executable is not None:
                seen.add(executable)
        for path in profile.install_paths(self._platform, self._env):
            if path in seen:
                continue
            seen.add(path)
            entries.append((str(path), path if path.is_file() else None))
        return entries

    async def launch(self, profile: EditorProfile, targets: Iterable[str]) -> LaunchAttempt:
        """Try each executable for ``profile`` until one launch attempt succeeds."""

        arguments = [str(target) for target in targets]
        attempted: list[str] = []
        last_error: str | None = None

        for label, executable in self.executables(profile):
            attempted.append(label)
            try:
                result = await self._attempt(label, executable, arguments)
            except EditorNotFoundError as exc:
                last_error = str(exc)
                logger.debug("Launch candidate unavailable", extra={"candidate": label})
                continue
            except (OSError, LauncherError) as exc:
                last_error = f"{label}: {exc}"
                logger.warning(
                    "Editor command failed",
                    extra={"candidate": label, "error": str(exc)},
                )
                continue
            return LaunchAttempt(
                launched=True,
                executable=str(executable),
                attempted=attempted,
                result=result,
            )

        if not attempted:
            last_error = f"No launch command configured for {profile.title}"
        return LaunchAttempt(launched=False, attempted=attempted, error=last_error)

    async def _attempt(self, label: str, executable: Path | None, arguments: list[str]) -> LaunchResult:
        if executable is None:
            raise EditorNotFoundError(f"{label} not found")
        result = await self._invoke(str(executable), *arguments)
        if not result.ok:
            raise LauncherError(result.stderr.strip() or f"exited with code {result.returncode}")
        return result

    @property
    def detached(self) -> list[subprocess.Popen]:
        """Launched editors that were still running when their launch timeout elapsed."""

        self._detached = [process for process in self._detached if process.poll() is None]
        return list(self._detached)

    async def _invoke(self, *args: str) -> LaunchResult:
        return await asyncio.to_thread(self._spawn, tuple(args))

    def _spawn(self, args: tuple[str, ...]) -> LaunchResult:
        # Editors outlive the launch call: no pipes, own session, no loop transport.
        process = subprocess.Popen(
            args,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
            env=sanitize_environment(),
            start_new_session=True,
        )
        try:
            returncode = process.wait(timeout=self._timeout)
        except subprocess.TimeoutExpired:
            self._detached.append(process)
            return LaunchResult(args=args, returncode=None, stdout="", stderr="")
        return LaunchResult(args=args, returncode=returncode, stdout="", stderr="")


class FakeEditorLauncher(EditorLauncher):
    """Test double that treats every candidate as installed and records invocations."""

    def __init__(
        self,
        responses: Iterable[LaunchResult] | None = None,
        *,
        platform: str = "linux",
        env: Mapping[str, str] | None = None,
    ) -> None:
        super().__init__(platform=platform, env=env or {"HOME": "/home/user"})
        self._responses = list(responses or [])
        self._invocations: list[tuple[str, ...]] = []

    def executables(self, profile: EditorProfile) -> list[tuple[str, Path | None]]:  # type: ignore[override]
        entries: list[tuple[str, Path | None]] = []
        if profile.launch_alias:
            entries.append((profile.launch_alias, Path(profile.launch_alias)))
        for path in profile.install_paths(self._platform, self._env):
            entries.append((str(path), path))
        return entries

    async def _invoke(self, *args: str) -> LaunchResult:  # type: ignore[override]
        self._invocations.append(tuple(args))
        if self._responses:
            return self._responses.pop(0)
        return LaunchResult(args=tuple(args), returncode=0, stdout="", stderr="")

    @property
    def invocations(self) -> list[tuple[str, ...]]:
        return self._invocations


__all__ = [
    "EditorLauncher",
    "EditorNotFoundError",
    "FakeEditorLauncher",
    "LaunchAttempt",
    "LaunchResult",
    "LauncherError",
]
