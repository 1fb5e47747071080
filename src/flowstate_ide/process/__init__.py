"""Editor process detection and launch utilities."""

from .detector import DetectorEvent, EventSink, FakeProcessDetector, ProcessDetector
from .launcher import (
    EditorLauncher,
    EditorNotFoundError,
    FakeEditorLauncher,
    LaunchAttempt,
    LaunchResult,
    LauncherError,
)
from .utils import sanitize_process_name

__all__ = [
    "DetectorEvent",
    "EditorLauncher",
    "EditorNotFoundError",
    "EventSink",
    "FakeEditorLauncher",
    "FakeProcessDetector",
    "LaunchAttempt",
    "LaunchResult",
    "LauncherError",
    "ProcessDetector",
    "sanitize_process_name",
]
