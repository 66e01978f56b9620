from __future__ import annotations

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, computed_field

from oncall_copilot.formatting import format_confidence, normalize_confidence


def now_utc() -> datetime:
    return datetime.now(timezone.utc)


class AlertSeverity(str, Enum):
    CRITICAL = "CRITICAL"
    WARNING = "WARNING"


class Telemetry(BaseModel):
    model_config = ConfigDict(frozen=True)

    cpu_usage: float
    db_connections: int
    redis_latency: float
    thread_pool_usage: float
    recent_deploy: str
    error_rate: float
    memory_usage: float


class Alert(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    title: str
    service: str
    severity: AlertSeverity
    timestamp: datetime
    region: str
    telemetry: Telemetry
    logs: tuple[str, ...] = ()


class Runbook(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    symptoms: tuple[str, ...] = ()
    checks: tuple[str, ...] = ()
    likely_causes: tuple[str, ...] = ()
    remediation: tuple[str, ...] = ()


# Oracle boundary


class ToolDeclaration(BaseModel):
    name: str
    description: str
    parameters: dict[str, Any] = Field(default_factory=dict)


class ToolRequest(BaseModel):
    name: str
    args: dict[str, Any] = Field(default_factory=dict)
    call_id: str | None = None


class ToolResult(BaseModel):
    name: str
    payload: dict[str, Any]
    call_id: str | None = None


class ChatTurn(BaseModel):
    role: Literal["user", "model", "tool"]
    text: str | None = None
    tool_request: ToolRequest | None = None
    tool_result: ToolResult | None = None


class OracleResponse(BaseModel):
    text: str | None = None
    tool_request: ToolRequest | None = None


# Investigation state


class ToolCall(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    tool: str
    args: dict[str, Any] = Field(default_factory=dict)
    result: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=now_utc)


class Step(BaseModel):
    id: str = ""
    action: str = ""
    reason: str = ""
    expectation: str = ""
    stop_condition: str | None = None
    cites_logs: list[str] = Field(default_factory=list)
    cites_runbooks: list[str] = Field(default_factory=list)
    if_pass_next: str | None = None
    if_fail_next: str | None = None
    completed: bool = False


class CopilotState(BaseModel):
    summary: str = ""
    hypothesis: str = ""
    alternative_hypothesis: str | None = None
    # Raw oracle value; may arrive as a fraction or a percentage.
    confidence: float = 0.0
    evidence_logs: list[str] = Field(default_factory=list)
    evidence_runbooks: list[str] = Field(default_factory=list)
    steps: list[Step] = Field(default_factory=list)
    tool_calls: list[ToolCall] = Field(default_factory=list)
    communication_draft: str | None = None
    estimated_time_saved_minutes: float | None = None
    questions_to_ask: list[str] = Field(default_factory=list)
    missing_signals: list[str] = Field(default_factory=list)
    is_investigation_complete: bool = False

    @computed_field  # type: ignore[prop-decorator]
    @property
    def confidence_normalized(self) -> float:
        return normalize_confidence(self.confidence)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def confidence_display(self) -> str:
        return format_confidence(self.confidence)


class Message(BaseModel):
    role: Literal["user", "assistant"]
    content: str
    state: CopilotState | None = None


class FindingRequest(BaseModel):
    finding: str
    history: list[Message] = Field(default_factory=list)


class InvestigationStatus(BaseModel):
    alert_id: str
    run_id: str
    status: Literal["running", "complete", "failed"]
    state: CopilotState | None = None
    error: str | None = None
    updated_at: datetime = Field(default_factory=now_utc)
