"""FastMCP server bootstrap for FlowState IDE capture and restore."""

import json
import logging
from collections import deque
from datetime import datetime, timezone
from typing import Any, Optional

from fastmcp import Context, FastMCP

from . import __version__
from .config import FlowStateSettings, get_settings
from .editors import ProfileLoadError
from .engine import FlowStateEngine
from .process.detector import DetectorEvent
from .tools import register_tools

DETECTOR_EVENT_HISTORY = 20


def configure_logging(level: str) -> None:
    """Configure root logging for the FlowState server."""

    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="[%(asctime)s] [%(levelname)s] %(name)s: %(message)s",
    )


def create_server(
    settings: Optional[FlowStateSettings] = None,
    engine: FlowStateEngine | None = None,
) -> FastMCP:
    """Instantiate the FastMCP server with capture/restore tools and a status resource."""

    settings = settings or get_settings()
    engine = engine or FlowStateEngine.from_settings(settings)

    detector_events: deque[dict[str, Any]] = deque(maxlen=DETECTOR_EVENT_HISTORY)

    def _record_detector_event(event: DetectorEvent) -> None:
        detector_events.append(
            {
                "ide": event.ide.value,
                "process_name": event.process_name,
                "running": event.running,
                "platform": event.platform,
                "error": event.error,
                "timestamp": event.timestamp.isoformat(),
            }
        )

    server = FastMCP(
        name="FlowState IDE",
        instructions=(
            "FlowState captures the working context of running code editors (active "
            "workspace, open files, recent workspaces and a markdown context document) "
            "and reopens the same editor against it later."
        ),
    )

    handles = register_tools(server, engine=engine, settings=settings)
    engine.start(_record_detector_event)

    def status_snapshot(request_id: Any = None) -> dict[str, Any]:
        try:
            profiles = engine.profiles.load_all()
            editor_ids = sorted(ide.value for ide in profiles)
            profile_error: str | None = None
        except ProfileLoadError as exc:
            editor_ids = []
            profile_error = str(exc)

        captures = {
            ide: {
                "captured_at": entry["captured_at"],
                "workspace_paths": entry["session"].get("workspacePaths", []),
                "open_files": len(entry["session"].get("openFiles", [])),
                "context_file": entry["session"].get("contextFile", {}).get("path"),
            }
            for ide, entry in handles.captures_state.items()
        }

        payload = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "server_version": __version__,
            "log_level": settings.log_level,
            "platform": engine.detector.platform,
            "editors": {
                "count": len(editor_ids),
                "ids": editor_ids,
                "error": profile_error,
                "profile_paths": [str(path) for path in engine.profiles.search_paths],
            },
            "capture": {
                "recency_window_minutes": settings.recency_window_minutes,
                "recent_workspace_limit": settings.recent_workspace_limit,
                "context_filename": settings.context_filename,
                "last_captures": captures,
            },
            "restores": handles.restores_state[-5:],
            "detector": {
                "started": engine.detector.started,
                "events": list(detector_events),
            },
            "request_id": request_id,
        }
        return payload

    @server.resource(
        "resource://flowstate/status",
        name="flowstate_status",
        title="FlowState IDE Status",
        description="Provides the current runtime status for the FlowState IDE server.",
        mime_type="application/json",
        tags={"status", "health"},
    )
    def status_resource(context: Context) -> str:
        """Return a JSON string summarizing basic runtime state."""

        return json.dumps(status_snapshot(getattr(context, "request_id", None)))

    setattr(server, "engine", engine)
    setattr(server, "status_snapshot", status_snapshot)
    setattr(server, "tool_handles", handles)
    setattr(server, "detector_events", detector_events)
    return server


def main() -> None:
    """Entry point for running the FlowState server via CLI."""

    settings = get_settings()
    configure_logging(settings.log_level)

    server = create_server(settings)
    engine: FlowStateEngine = getattr(server, "engine")
    logging.getLogger(__name__).info(
        "Launching FlowState IDE server",
        extra={
            "version": __version__,
            "log_level": settings.log_level,
            "platform": engine.detector.platform,
        },
    )
    try:
        server.run()
    finally:
        engine.stop()


if __name__ == "__main__":
    main()
