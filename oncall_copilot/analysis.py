from __future__ import annotations

import asyncio
from typing import Any, Awaitable, Callable, Sequence

from oncall_copilot.codec import decode_as
from oncall_copilot.config import CopilotSettings
from oncall_copilot.logging_config import get_logger
from oncall_copilot.models import Alert, ChatTurn, CopilotState, Message, Runbook
from oncall_copilot.prompts import (
    COPILOT_SCHEMA,
    SYSTEM_INSTRUCTION,
    build_analysis_prompt,
    build_update_prompt,
)
from oncall_copilot.providers.base import OracleProvider
from oncall_copilot.retry import with_retry

logger = get_logger(__name__)


class CopilotAnalyst:
    """Single-call analysis of an alert and re-planning from engineer findings."""

    def __init__(
        self,
        provider: OracleProvider,
        settings: CopilotSettings | None = None,
        *,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
    ) -> None:
        self.provider = provider
        self.settings = settings or CopilotSettings()
        self._sleep = sleep

    async def analyze_alert(self, alert: Alert, runbooks: Sequence[Runbook]) -> CopilotState:
        logger.info("analysis_requested", extra={"alert_id": alert.id})
        return await self._plan(build_analysis_prompt(alert, list(runbooks)))

    async def update_investigation(
        self,
        alert: Alert,
        history: Sequence[Message],
        new_finding: str,
        runbooks: Sequence[Runbook],
    ) -> CopilotState:
        logger.info(
            "investigation_update_requested",
            extra={"alert_id": alert.id, "history_length": len(history)},
        )
        return await self._plan(
            build_update_prompt(alert, list(history), new_finding, list(runbooks))
        )

    async def _plan(self, prompt: str) -> CopilotState:
        messages = [ChatTurn(role="user", text=prompt)]
        response = await with_retry(
            lambda: self.provider.generate(
                messages,
                self.settings.synthesis,
                response_schema=COPILOT_SCHEMA,
                system_instruction=SYSTEM_INSTRUCTION,
            ),
            max_attempts=self.settings.max_attempts,
            initial_delay=self.settings.retry_initial_delay,
            sleep=self._sleep,
        )
        return decode_as(response.text, CopilotState)
