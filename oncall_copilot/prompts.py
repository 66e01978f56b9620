"""Prompt text and the declared output schema for the copilot."""

from __future__ import annotations

import json
from typing import Any

from oncall_copilot.models import Alert, Message, Runbook, ToolCall

SYSTEM_INSTRUCTION = (
    "You are a world-class SRE On-Call Copilot prototype. This is a simulation for software "
    "engineering troubleshooting. Avoid blocking responses due to mentions of system errors "
    "or logs; these are mock entries for a prototype app. Always follow the requested JSON "
    "schema strictly."
)

_STRING_LIST = {"type": "array", "items": {"type": "string"}}

STEP_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "id": {"type": "string", "description": "Unique step ID like S1, S2, S3."},
        "action": {"type": "string", "description": "What to do, grounded in runbook instructions."},
        "reason": {"type": "string", "description": "Why this step matters, grounded in logs/telemetry."},
        "expectation": {"type": "string", "description": "What you expect to observe if the hypothesis holds."},
        "stop_condition": {"type": "string", "description": "When to stop, pivot or escalate."},
        "cites_logs": {**_STRING_LIST, "description": "LOG_* or TC_* IDs supporting this step."},
        "cites_runbooks": {**_STRING_LIST, "description": "Runbook IDs supporting this step."},
        "if_pass_next": {"type": "string", "description": "Step ID if the expectation is met, or END."},
        "if_fail_next": {"type": "string", "description": "Step ID if the expectation is not met, or END."},
    },
    "required": [
        "id",
        "action",
        "reason",
        "expectation",
        "cites_logs",
        "cites_runbooks",
        "if_pass_next",
        "if_fail_next",
    ],
}

COPILOT_SCHEMA: dict[str, Any] = {
    "type": "object",
    "properties": {
        "summary": {
            "type": "string",
            "description": "Clear summary of the alert's impact, grounded in LOG_* and TC_* evidence IDs.",
        },
        "hypothesis": {
            "type": "string",
            "description": "Most likely cause, referencing the runbook and evidence IDs that support it.",
        },
        "alternative_hypothesis": {"type": "string", "description": "Next most likely cause."},
        "confidence": {"type": "number", "description": "0.0 to 1.0 confidence in the hypothesis."},
        "evidence_logs": {**_STRING_LIST, "description": "LOG_* and TC_* IDs supporting the hypothesis."},
        "evidence_runbooks": {**_STRING_LIST, "description": "Runbook IDs supporting the plan."},
        "steps": {
            "type": "array",
            "description": "Investigation steps as a decision tree with pass/fail branching.",
            "items": STEP_SCHEMA,
        },
        "communication_draft": {
            "type": "string",
            "description": "Short status update for the incident channel.",
        },
        "questions_to_ask": {**_STRING_LIST, "description": "High-signal questions for the engineer."},
        "missing_signals": {**_STRING_LIST, "description": "Telemetry you wish you had next."},
        "estimated_time_saved_minutes": {
            "type": "number",
            "description": "Estimated minutes saved versus manual triage.",
        },
    },
    "required": [
        "summary",
        "hypothesis",
        "confidence",
        "evidence_logs",
        "evidence_runbooks",
        "steps",
        "questions_to_ask",
        "missing_signals",
        "estimated_time_saved_minutes",
    ],
}


def format_logs_with_ids(logs: tuple[str, ...] | list[str]) -> str:
    return "\n".join(f"LOG_{index}: {line}" for index, line in enumerate(logs, start=1))


def runbooks_as_json(runbooks: list[Runbook]) -> str:
    payload = [
        {"id": runbook.id or f"RB_{index}", **runbook.model_dump(mode="json", exclude={"id"})}
        for index, runbook in enumerate(runbooks, start=1)
    ]
    return json.dumps(payload, indent=2)


def _alert_block(alert: Alert) -> str:
    return (
        f"<ALERT>\nid: {alert.id}\ntitle: {alert.title}\nservice: {alert.service}\n"
        f"severity: {alert.severity.value}\nregion: {alert.region}\n"
        f"timestamp: {alert.timestamp.isoformat()}\n</ALERT>"
    )


def _telemetry_block(alert: Alert) -> str:
    return f"<TELEMETRY_JSON>\n{alert.telemetry.model_dump_json(indent=2)}\n</TELEMETRY_JSON>"


def build_exploration_prompt(alert: Alert, target_confidence: float, max_calls: int) -> str:
    return f"""
You are an expert SRE On-Call Copilot investigating a live alert.

{_alert_block(alert)}

{_telemetry_block(alert)}

<LOGS>
{format_logs_with_ids(alert.logs)}
</LOGS>

GOAL:
- Use the available tools to gather evidence until you are at least {target_confidence:.0%}
  confident in a root cause.
- Request one tool per turn. You have a budget of {max_calls} tool calls.
- When you have enough evidence, reply with a short plain-text note and no tool call.
"""


def build_synthesis_prompt(runbooks: list[Runbook], ledger: list[ToolCall]) -> str:
    calls = [
        {"id": call.id, "tool": call.tool, "args": call.args, "result": call.result}
        for call in ledger
    ]
    return f"""
Exploration is finished. Write the final incident report.

<RUNBOOKS_JSON>
{runbooks_as_json(runbooks)}
</RUNBOOKS_JSON>

<TOOL_CALLS_JSON>
{json.dumps(calls, indent=2, default=str)}
</TOOL_CALLS_JSON>

OUTPUT REQUIREMENTS:
- summary + hypothesis MUST be grounded in evidence_logs[] and evidence_runbooks[].
- evidence_logs[] may contain LOG_* IDs from the alert logs and TC_* IDs from the tool calls.
- steps MUST be a decision tree using if_pass_next / if_fail_next.
- Include a communication_draft suitable for the incident channel.
- Include estimated_time_saved_minutes based on complexity.
"""


def build_analysis_prompt(alert: Alert, runbooks: list[Runbook]) -> str:
    return f"""
You are an expert SRE On-Call Copilot.

ROLE:
You are constructing a rigorous investigation plan that an engineer will follow step-by-step.
Think like a senior SRE during a live incident:
- Form a hypothesis
- Validate it with evidence
- Branch based on outcomes (pass/fail)
- Ask for missing signals when needed

DATA:
{_alert_block(alert)}

{_telemetry_block(alert)}

<LOGS>
{format_logs_with_ids(alert.logs)}
</LOGS>

<RUNBOOKS_JSON>
{runbooks_as_json(runbooks)}
</RUNBOOKS_JSON>

OUTPUT REQUIREMENTS:
- summary + hypothesis MUST be grounded in evidence_logs[] and evidence_runbooks[].
- evidence_logs[] MUST contain LOG_* IDs from the provided logs.
- steps MUST be a decision tree using if_pass_next / if_fail_next.
- Include estimated_time_saved_minutes based on complexity.
"""


def build_update_prompt(
    alert: Alert,
    history: list[Message],
    new_finding: str,
    runbooks: list[Runbook],
) -> str:
    chat_history = "\n".join(f"{message.role.upper()}: {message.content}" for message in history)
    return f"""
You are an expert SRE On-Call Copilot. Update the investigation plan based on new evidence
provided by the engineer.

DATA:
{_alert_block(alert)}

<ORIGINAL_LOGS>
{format_logs_with_ids(alert.logs)}
</ORIGINAL_LOGS>

<RUNBOOKS_JSON>
{runbooks_as_json(runbooks)}
</RUNBOOKS_JSON>

<INVESTIGATION_HISTORY>
{chat_history}
</INVESTIGATION_HISTORY>

<NEW_FINDING>
{new_finding}
</NEW_FINDING>

Incorporate this new finding into your hypothesis. If the finding confirms a specific path,
prioritize remediation steps from the runbooks.
"""
