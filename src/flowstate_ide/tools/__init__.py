"""Tool registration for FlowState IDE."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any

from fastmcp import Context, FastMCP

from ..config import FlowStateSettings
from ..editors import IDEName
from ..engine import FlowStateEngine
from ..session.models import IDESession


@dataclass(slots=True)
class ToolHandles:
    capture_ide_sessions: Any
    restore_ide_session: Any
    list_editors: Any
    captures_state: dict[str, dict[str, Any]]
    restores_state: list[dict[str, Any]]


def register_tools(
    server: FastMCP,
    *,
    engine: FlowStateEngine,
    settings: FlowStateSettings,
) -> ToolHandles:
    """Register FlowState's MCP tools on the server."""

    captures_state: dict[str, dict[str, Any]] = {}
    restores_state: list[dict[str, Any]] = []

    async def _capture_ide_sessions(
        editors: list[str] | None = None,
        write_document: bool = True,
        context: Context | None = None,
    ) -> dict[str, Any]:
        """Capture workspace, open files and context document for running editors."""

        targets = [IDEName.parse(name) for name in editors] if editors else None
        report = await engine.capture(targets, write_document=write_document)
        captured_at = datetime.now(timezone.utc).isoformat()
        for session in report.sessions:
            captures_state[session.ide_name.value] = {
                "captured_at": captured_at,
                "session": session.to_payload(),
            }

        _emit_log(
            context,
            "info",
            "Captured editor sessions",
            extra={
                "total_sessions": report.total_sessions,
                "context_filename": settings.context_filename if write_document else None,
                "states": {outcome.ide.value: outcome.state.value for outcome in report.outcomes},
            },
        )
        return report.to_dict()

    async def _restore_ide_session(
        session: dict[str, Any] | None = None,
        ide_name: str | None = None,
        context: Context | None = None,
    ) -> dict[str, Any]:
        """Relaunch an editor from a session payload or from its last capture."""

        if session is None:
            if not ide_name:
                raise ValueError("Provide a session payload or an ide_name with a prior capture")
            key = IDEName.parse(ide_name).value
            entry = captures_state.get(key)
            if entry is None:
                raise ValueError(f"No captured session for '{ide_name}'")
            session = entry["session"]

        model = IDESession.model_validate(session)
        report = await engine.restore(model)
        summary = {
            "ide": report.ide.value,
            "restored_at": datetime.now(timezone.utc).isoformat(),
            "launched": len(report.launched),
            "not_launched": len(report.not_launched),
        }
        restores_state.append(summary)

        _emit_log(
            context,
            "info" if report.ok else "warning",
            "Restored editor session",
            extra=summary,
        )
        return report.to_dict()

    def _list_editors(context: Context | None = None) -> list[dict[str, Any]]:
        """List supported editors and how they are detected and launched."""

        platform = engine.detector.platform
        catalog = []
        for profile in engine.profiles.load_all().values():
            storage_root = profile.resolve_storage_root(platform, engine.env)
            catalog.append(
                {
                    "ide": profile.ide.value,
                    "title": profile.title,
                    "process_name": profile.process_name(platform),
                    "launch_alias": profile.launch_alias,
                    "launchable": profile.launchable,
                    "storage_root": str(storage_root) if storage_root is not None else None,
                }
            )

        _emit_log(context, "debug", "Listing editor profiles", extra={"count": len(catalog)})
        return catalog

    tool_capture = server.tool(
        name="capture_ide_sessions",
        description=(
            "Detect running editors (VSCode, Cursor), resolve their active workspace, "
            "open files and recent workspaces, and write the workspace context document. "
            "Optionally restrict to specific editors."
        ),
    )(_capture_ide_sessions)

    tool_restore = server.tool(
        name="restore_ide_session",
        description=(
            "Reopen an editor against a captured session. Pass the session payload, or "
            "an ide_name to reuse the last capture made by this server."
        ),
    )(_restore_ide_session)

    tool_list = server.tool(
        name="list_editors",
        description="List supported editors with process names, launch commands and storage roots.",
    )(_list_editors)

    return ToolHandles(
        capture_ide_sessions=tool_capture,
        restore_ide_session=tool_restore,
        list_editors=tool_list,
        captures_state=captures_state,
        restores_state=restores_state,
    )


__all__ = ["register_tools", "ToolHandles"]

logger = logging.getLogger(__name__)


def _emit_log(
    context: Context | None,
    level: str,
    message: str,
    *,
    extra: dict[str, Any] | None = None,
) -> None:
    """Best-effort logging that prefers the MCP context logger when available."""

    payload = extra or {}

    if context is not None:
        ctx_logger = getattr(context, "logger", None)
        if ctx_logger is not None:
            log_method = getattr(ctx_logger, level, None)
            if callable(log_method):
                log_method(message, extra=payload)
                return

    fallback = getattr(logger, level, logger.info)
    fallback(message, extra=payload)
