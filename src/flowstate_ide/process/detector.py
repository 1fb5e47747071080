"""Platform-specific detection of running editor processes."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import PurePath
from typing import Callable, Iterable, Mapping

from ..editors.models import EditorProfile, IDEName, current_platform
from .utils import sanitize_environment, sanitize_process_name

logger = logging.getLogger(__name__)


class ProcessCheckError(RuntimeError):
    """Raised when a process enumeration command cannot be used."""


@dataclass(slots=True)
class ProcessListing:
    """Holds the output of a process enumeration command."""

    args: tuple[str, ...]
    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


@dataclass(slots=True)
class DetectorEvent:
    """Emitted to the event sink for every process check while the detector is started."""

    ide: IDEName
    process_name: str | None
    running: bool
    platform: str
    error: str | None = None
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


EventSink = Callable[[DetectorEvent], None]


class ProcessDetector:
    """Check whether an editor process is running; fails open to ``False``."""

    def __init__(
        self,
        *,
        platform: str | None = None,
        timeout: float = 5.0,
        sanitizer: Callable[[str], str] = sanitize_process_name,
        event_sink: EventSink | None = None,
    ) -> None:
        self._platform = platform or current_platform()
        self._timeout = timeout
        self._sanitizer = sanitizer
        self._event_sink = event_sink
        self._started = False

    @property
    def platform(self) -> str:
        return self._platform

    @property
    def started(self) -> bool:
        return self._started

    def start(self, event_sink: EventSink | None = None) -> None:
        """Begin forwarding detector events, optionally replacing the event sink."""

        if event_sink is not None:
            self._event_sink = event_sink
        self._started = True

    def stop(self) -> None:
        self._started = False

    def enumeration_command(self, process_name: str) -> tuple[str, ...]:
        if self._platform == "win32":
            return ("tasklist", "/FI", f"IMAGENAME eq {process_name}")
        return ("ps", "-A", "-o", "args=")

    def matches(self, output: str, process_name: str) -> bool:
        if self._platform == "win32":
            return process_name.lower() in output.lower()
        lines = [line.strip() for line in output.splitlines() if line.strip()]
        if self._platform == "darwin":
            return any(process_name in line for line in lines)
        return any(PurePath(line.split()[0]).name == process_name for line in lines)

    async def is_running(self, profile: EditorProfile) -> bool:
        """Return whether the editor described by ``profile`` has a live process."""

        raw_name = profile.process_name(self._platform)
        if not raw_name:
            logger.debug(
                "No process name configured",
                extra={"ide": profile.ide.value, "platform": self._platform},
            )
            self._emit(profile.ide, None, False, error="no process name configured")
            return False

        error: str | None = None
        running = False
        try:
            process_name = self._sanitizer(raw_name)
            if not process_name:
                raise ProcessCheckError(f"Process name {raw_name!r} is empty after sanitization")
            listing = await self._invoke(*self.enumeration_command(process_name))
            if not listing.ok:
                raise ProcessCheckError(
                    listing.stderr.strip()
                    or f"{listing.args[0]} exited with code {listing.returncode}"
                )
            running = self.matches(listing.stdout, process_name)
        except asyncio.TimeoutError:
            error = f"process enumeration timed out after {self._timeout:g}s"
        except (OSError, ProcessCheckError, TypeError, ValueError) as exc:
            error = str(exc) or exc.__class__.__name__

        if error is not None:
            logger.warning(
                "Process check failed; treating editor as not running",
                extra={"ide": profile.ide.value, "process_name": raw_name, "error": error},
            )
        else:
            logger.debug(
                "Process check complete",
                extra={"ide": profile.ide.value, "process_name": raw_name, "running": running},
            )

        self._emit(profile.ide, raw_name, running, error=error)
        return running

    async def _invoke(self, *args: str) -> ProcessListing:
        process = await asyncio.create_subprocess_exec(
            *args,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=sanitize_environment(),
        )
        try:
            stdout_bytes, stderr_bytes = await asyncio.wait_for(
                process.communicate(), timeout=self._timeout
            )
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise
        stdout = stdout_bytes.decode("utf-8", errors="replace")
        stderr = stderr_bytes.decode("utf-8", errors="replace")
        return ProcessListing(args=tuple(args), returncode=process.returncode, stdout=stdout, stderr=stderr)

    def _emit(self, ide: IDEName, process_name: str | None, running: bool, *, error: str | None = None) -> None:
        if not self._started or self._event_sink is None:
            return
        event = DetectorEvent(
            ide=ide,
            process_name=process_name,
            running=running,
            platform=self._platform,
            error=error,
        )
        try:
            self._event_sink(event)
        except Exception:  # sink errors stay out of detection results
            logger.exception("Detector event sink raised", extra={"ide": ide.value})


class FakeProcessDetector(ProcessDetector):
    """Test double that reports a fixed running state per editor."""

    def __init__(
        self,
        running: Mapping[IDEName, bool] | Iterable[IDEName] | None = None,
        *,
        platform: str = "linux",
        event_sink: EventSink | None = None,
    ) -> None:
        super().__init__(platform=platform, event_sink=event_sink)
        if isinstance(running, Mapping):
            self._running = dict(running)
        else:
            self._running = {ide: True for ide in (running or [])}
        self._checks: list[IDEName] = []

    async def is_running(self, profile: EditorProfile) -> bool:  # type: ignore[override]
        self._checks.append(profile.ide)
        running = self._running.get(profile.ide, False)
        self._emit(profile.ide, profile.process_name(self._platform), running)
        return running

    @property
    def checks(self) -> list[IDEName]:
        return self._checks


__all__ = [
    "DetectorEvent",
    "EventSink",
    "FakeProcessDetector",
    "ProcessCheckError",
    "ProcessDetector",
    "ProcessListing",
]
