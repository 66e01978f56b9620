"""Autonomous investigation loop: tool exploration followed by one synthesis call."""

from __future__ import annotations

import asyncio
import inspect
import uuid
from enum import Enum
from typing import Any, Awaitable, Callable, Protocol, Sequence

from oncall_copilot.codec import decode_as
from oncall_copilot.config import CopilotSettings
from oncall_copilot.logging_config import get_logger
from oncall_copilot.models import (
    Alert,
    ChatTurn,
    CopilotState,
    OracleResponse,
    Runbook,
    ToolCall,
    ToolResult,
)
from oncall_copilot.prompts import (
    COPILOT_SCHEMA,
    SYSTEM_INSTRUCTION,
    build_exploration_prompt,
    build_synthesis_prompt,
)
from oncall_copilot.providers.base import OracleProvider
from oncall_copilot.retry import with_retry
from oncall_copilot.tools import ToolExecutor

logger = get_logger(__name__)

PROGRESS_STEP = 0.1
PROGRESS_CEILING = 0.6


class InvestigationPhase(str, Enum):
    EXPLORING = "exploring"
    SYNTHESIZING = "synthesizing"
    COMPLETE = "complete"


_NEXT_PHASE = {
    InvestigationPhase.EXPLORING: InvestigationPhase.SYNTHESIZING,
    InvestigationPhase.SYNTHESIZING: InvestigationPhase.COMPLETE,
}


class InvestigationObserver(Protocol):
    def on_snapshot(self, state: CopilotState) -> Any:
        ...


class _CallbackObserver:
    def __init__(self, callback: Callable[[CopilotState], Any]) -> None:
        self._callback = callback

    def on_snapshot(self, state: CopilotState) -> Any:
        return self._callback(state)


def as_observer(
    sink: InvestigationObserver | Callable[[CopilotState], Any],
) -> InvestigationObserver:
    if hasattr(sink, "on_snapshot"):
        return sink  # type: ignore[return-value]
    return _CallbackObserver(sink)


def progress_confidence(iteration: int) -> float:
    return min(PROGRESS_CEILING, PROGRESS_STEP * (iteration + 1))


class InvestigationRun:
    """Conversation, ledger and phase of a single investigation."""

    def __init__(self, alert: Alert, runbooks: Sequence[Runbook], run_id: str | None = None) -> None:
        self.alert = alert
        self.runbooks = list(runbooks)
        self.run_id = run_id or str(uuid.uuid4())
        self.phase = InvestigationPhase.EXPLORING
        self.messages: list[ChatTurn] = []
        self.ledger: list[ToolCall] = []
        self.iterations = 0

    def advance(self, phase: InvestigationPhase) -> None:
        if _NEXT_PHASE.get(self.phase) != phase:
            raise RuntimeError(f"invalid transition {self.phase.value} -> {phase.value}")
        self.phase = phase

    @property
    def log_extra(self) -> dict[str, Any]:
        return {"investigation_id": self.run_id, "alert_id": self.alert.id}


class Investigator:
    def __init__(
        self,
        provider: OracleProvider,
        executor: ToolExecutor,
        settings: CopilotSettings | None = None,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.provider = provider
        self.executor = executor
        self.settings = settings or CopilotSettings()
        self._sleep = sleep

    async def run_investigation(
        self,
        alert: Alert,
        runbooks: Sequence[Runbook],
        on_update: InvestigationObserver | Callable[[CopilotState], Any],
        *,
        run_id: str | None = None,
    ) -> CopilotState:
        observer = as_observer(on_update)
        run = InvestigationRun(alert, runbooks, run_id=run_id)
        run.messages.append(
            ChatTurn(
                role="user",
                text=build_exploration_prompt(
                    alert, self.settings.target_confidence, self.settings.max_iterations
                ),
            )
        )
        logger.info("investigation_started", extra=run.log_extra)

        await self._explore(run, observer)

        run.advance(InvestigationPhase.SYNTHESIZING)
        report = await self._synthesize(run)

        final = report.model_copy(
            update={"tool_calls": list(run.ledger), "is_investigation_complete": True}
        )
        run.advance(InvestigationPhase.COMPLETE)
        await _emit(observer, final)

        logger.info(
            "investigation_complete",
            extra={**run.log_extra, "tool_calls": len(run.ledger), "iterations": run.iterations},
        )
        return final

    async def _explore(self, run: InvestigationRun, observer: InvestigationObserver) -> None:
        for iteration in range(self.settings.max_iterations):
            if iteration > 0:
                await self._sleep(self.settings.call_pause_seconds)
            run.iterations += 1

            messages = list(run.messages)
            response = await self._call_oracle(
                lambda: self.provider.generate(
                    messages,
                    self.settings.exploration,
                    tools=self.executor.catalogue,
                    system_instruction=SYSTEM_INSTRUCTION,
                )
            )

            request = response.tool_request
            if request is None:
                if response.text:
                    run.messages.append(ChatTurn(role="model", text=response.text))
                logger.info("exploration_stopped", extra={**run.log_extra, "iteration": iteration})
                return

            call = self.executor.execute(run.alert.id, request, sequence=len(run.ledger) + 1)
            run.ledger.append(call)
            call_id = request.call_id or call.id
            run.messages.append(
                ChatTurn(
                    role="model",
                    text=response.text,
                    tool_request=request.model_copy(update={"call_id": call_id}),
                )
            )
            run.messages.append(
                ChatTurn(
                    role="tool",
                    tool_result=ToolResult(name=call.tool, payload=call.result, call_id=call_id),
                )
            )
            logger.info(
                "tool_call_resolved",
                extra={**run.log_extra, "tool": call.tool, "call_id": call.id, "iteration": iteration},
            )

            await _emit(observer, self._progress_snapshot(run, iteration))

        logger.info(
            "exploration_ceiling_reached",
            extra={**run.log_extra, "max_iterations": self.settings.max_iterations},
        )

    async def _synthesize(self, run: InvestigationRun) -> CopilotState:
        run.messages.append(
            ChatTurn(role="user", text=build_synthesis_prompt(run.runbooks, run.ledger))
        )
        messages = list(run.messages)
        response = await self._call_oracle(
            lambda: self.provider.generate(
                messages,
                self.settings.synthesis,
                response_schema=COPILOT_SCHEMA,
                system_instruction=SYSTEM_INSTRUCTION,
            )
        )
        return decode_as(response.text, CopilotState)

    def _progress_snapshot(self, run: InvestigationRun, iteration: int) -> CopilotState:
        last = run.ledger[-1]
        return CopilotState(
            summary=(
                f"Investigating {run.alert.title}: {len(run.ledger)} tool call(s) so far, "
                f"last was {last.tool}."
            ),
            hypothesis="Gathering evidence...",
            confidence=progress_confidence(iteration),
            tool_calls=list(run.ledger),
            is_investigation_complete=False,
        )

    async def _call_oracle(self, operation: Callable[[], Awaitable[OracleResponse]]) -> OracleResponse:
        return await with_retry(
            operation,
            max_attempts=self.settings.max_attempts,
            initial_delay=self.settings.retry_initial_delay,
            sleep=self._sleep,
        )


async def _emit(observer: InvestigationObserver, state: CopilotState) -> None:
    result = observer.on_snapshot(state)
    if inspect.isawaitable(result):
        await result
