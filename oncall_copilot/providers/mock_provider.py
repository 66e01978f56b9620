from __future__ import annotations

import json
import re
from typing import Any

from oncall_copilot.config import ModelProfile
from oncall_copilot.models import ChatTurn, OracleResponse, ToolDeclaration, ToolRequest
from oncall_copilot.providers.base import OracleProvider, check_call_shape

_SERVICE_PATTERN = re.compile(r"^service: (\S+)$", re.MULTILINE)


class MockProvider(OracleProvider):
    """Offline oracle: walks the tool catalogue in order, then writes a canned report."""

    def __init__(self, tool_budget: int = 3) -> None:
        self.tool_budget = tool_budget

    async def generate(
        self,
        messages: list[ChatTurn],
        profile: ModelProfile,
        *,
        tools: list[ToolDeclaration] | None = None,
        response_schema: dict[str, Any] | None = None,
        system_instruction: str | None = None,
    ) -> OracleResponse:
        check_call_shape(tools, response_schema)
        service = _service_from(messages)

        if tools:
            requested = {turn.tool_request.name for turn in messages if turn.tool_request}
            if len(requested) < self.tool_budget:
                for tool in tools:
                    if tool.name not in requested:
                        return OracleResponse(
                            tool_request=ToolRequest(name=tool.name, args={"service": service})
                        )
            return OracleResponse(text="Mock: enough evidence gathered.")

        return OracleResponse(text=json.dumps(_mock_report(messages, service)))


def _service_from(messages: list[ChatTurn]) -> str:
    for turn in messages:
        if turn.text:
            match = _SERVICE_PATTERN.search(turn.text)
            if match:
                return match.group(1)
    return "unknown"


def _mock_report(messages: list[ChatTurn], service: str) -> dict[str, Any]:
    results = [turn.tool_result for turn in messages if turn.tool_result is not None]
    useful = [r for r in results if r.payload.get("status") != "error"]
    cited = [r.call_id for r in useful if r.call_id]
    return {
        "summary": f"Mock: {service} is degraded; {len(useful)} of {len(results)} tool lookups returned data.",
        "hypothesis": "Mock: recent deploy or dependency degradation",
        "alternative_hypothesis": "Mock: resource saturation",
        "confidence": 0.55,
        "evidence_logs": ["LOG_1", *cited],
        "evidence_runbooks": ["RB-A"],
        "steps": [
            {
                "id": "S1",
                "action": f"Check dependency health for {service}",
                "reason": "Upstream failures are the most common cause of error spikes",
                "expectation": "At least one dependency reports degraded",
                "cites_logs": ["LOG_1"],
                "cites_runbooks": ["RB-A"],
                "if_pass_next": "S2",
                "if_fail_next": "END",
            },
            {
                "id": "S2",
                "action": "Roll back the most recent deploy",
                "reason": "Recent deploys correlate with the onset",
                "expectation": "Error rate returns to baseline",
                "cites_logs": [],
                "cites_runbooks": ["RB-A"],
                "if_pass_next": "END",
                "if_fail_next": "END",
            },
        ],
        "communication_draft": f"Investigating elevated errors on {service}. Next update in 15 minutes.",
        "questions_to_ask": ["Was there a config change alongside the last deploy?"],
        "missing_signals": ["Per-dependency latency breakdown"],
        "estimated_time_saved_minutes": 10,
    }
