"""Contract for the external workspace analyzer."""

from __future__ import annotations

import asyncio
import inspect
import logging
from typing import Any, Awaitable, Mapping, Protocol, Union

from pydantic import ValidationError

from .editors.models import IDEName
from .session.models import AnalysisResult

logger = logging.getLogger(__name__)

AnalyzerOutput = Union[AnalysisResult, Mapping[str, Any], None]


class WorkspaceAnalyzer(Protocol):
    """Produces git/TODO insight for a workspace. May return ``None`` or raise."""

    def analyze(
        self, workspace_path: str, ide_name: IDEName
    ) -> AnalyzerOutput | Awaitable[AnalyzerOutput]:
        ...


class StaticAnalyzer:
    """Returns the same pre-computed analysis for every workspace."""

    def __init__(self, result: AnalysisResult | Mapping[str, Any] | None) -> None:
        if result is not None and not isinstance(result, AnalysisResult):
            result = AnalysisResult.model_validate(result)
        self._result = result
        self.calls: list[tuple[str, IDEName]] = []

    def analyze(self, workspace_path: str, ide_name: IDEName) -> AnalysisResult | None:
        self.calls.append((workspace_path, ide_name))
        return self._result


async def run_analysis(
    analyzer: WorkspaceAnalyzer | None,
    workspace_path: str,
    ide_name: IDEName,
) -> AnalysisResult | None:
    """Invoke ``analyzer`` and coerce its output; any failure degrades to ``None``."""

    if analyzer is None:
        return None

    try:
        if inspect.iscoroutinefunction(analyzer.analyze):
            output = await analyzer.analyze(workspace_path, ide_name)
        else:
            output = await asyncio.to_thread(analyzer.analyze, workspace_path, ide_name)
            if inspect.isawaitable(output):
                output = await output
    except Exception as exc:  # analyzer is external code
        logger.warning(
            "Workspace analysis failed",
            extra={"workspace": workspace_path, "ide": ide_name.value, "error": str(exc)},
        )
        return None

    if output is None or isinstance(output, AnalysisResult):
        return output
    try:
        return AnalysisResult.model_validate(output)
    except ValidationError as exc:
        logger.warning(
            "Workspace analysis returned an invalid result",
            extra={"workspace": workspace_path, "ide": ide_name.value, "error": str(exc)},
        )
        return None


__all__ = ["StaticAnalyzer", "WorkspaceAnalyzer", "run_analysis"]
