"""Tool catalogue offered to the oracle and the executor that resolves its requests."""

from __future__ import annotations

from typing import Any, Mapping, Protocol

from oncall_copilot.logging_config import get_logger
from oncall_copilot.models import ToolCall, ToolDeclaration, ToolRequest, now_utc

logger = get_logger(__name__)

NO_DATA_RESULT: dict[str, Any] = {"status": "error", "message": "no data"}


def _service_param(description: str = "Service name, e.g. API or PaymentSvc") -> dict[str, Any]:
    return {"type": "string", "description": description}


TOOL_CATALOGUE: list[ToolDeclaration] = [
    ToolDeclaration(
        name="get_recent_logs",
        description="Fetch the most recent log lines for a service.",
        parameters={
            "type": "object",
            "properties": {
                "service": _service_param(),
                "level": {"type": "string", "description": "Minimum level: INFO, WARN or ERROR"},
            },
            "required": ["service"],
        },
    ),
    ToolDeclaration(
        name="get_metric_history",
        description="Return the recent time series of a metric around the alert window.",
        parameters={
            "type": "object",
            "properties": {
                "metric": {"type": "string", "description": "Metric name, e.g. http_5xx_rate"},
                "service": _service_param(),
            },
            "required": ["metric"],
        },
    ),
    ToolDeclaration(
        name="get_dependency_health",
        description="Report the health of the upstream and downstream dependencies of a service.",
        parameters={
            "type": "object",
            "properties": {"service": _service_param()},
            "required": ["service"],
        },
    ),
    ToolDeclaration(
        name="get_recent_deploys",
        description="List deployments that touched a service recently.",
        parameters={
            "type": "object",
            "properties": {
                "service": _service_param(),
                "window_minutes": {"type": "integer", "description": "Look-back window in minutes"},
            },
            "required": ["service"],
        },
    ),
    ToolDeclaration(
        name="get_resource_saturation",
        description="Report CPU, memory, connection pool and thread pool saturation for a service.",
        parameters={
            "type": "object",
            "properties": {"service": _service_param()},
            "required": ["service"],
        },
    ),
]

TOOL_NAMES = frozenset(tool.name for tool in TOOL_CATALOGUE)


class ToolResultSource(Protocol):
    def lookup(self, subject_id: str, tool_name: str) -> dict[str, Any] | None:
        ...


class StaticToolResults:
    """Read-only ``(subject_id, tool_name) -> result`` table."""

    def __init__(self, table: Mapping[str, Mapping[str, dict[str, Any]]]) -> None:
        self._table = table

    def lookup(self, subject_id: str, tool_name: str) -> dict[str, Any] | None:
        return self._table.get(subject_id, {}).get(tool_name)


class ToolExecutor:
    def __init__(
        self,
        source: ToolResultSource,
        catalogue: list[ToolDeclaration] | None = None,
    ) -> None:
        self.source = source
        self.catalogue = catalogue if catalogue is not None else TOOL_CATALOGUE
        self._known = {tool.name for tool in self.catalogue}

    def execute(self, subject_id: str, request: ToolRequest, sequence: int) -> ToolCall:
        result = None
        if request.name in self._known:
            result = self.source.lookup(subject_id, request.name)

        if result is None:
            logger.info(
                "tool_lookup_miss",
                extra={"subject_id": subject_id, "tool": request.name},
            )
            result = dict(NO_DATA_RESULT)

        return ToolCall(
            id=f"TC_{sequence}",
            tool=request.name,
            args=dict(request.args),
            result=result,
            timestamp=now_utc(),
        )
