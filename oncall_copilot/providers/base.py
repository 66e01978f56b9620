from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from oncall_copilot.config import ModelProfile
from oncall_copilot.models import ChatTurn, OracleResponse, ToolDeclaration


class OracleProvider(ABC):
    """One completion call: a conversation plus either tools or an output schema."""

    @abstractmethod
    async def generate(
        self,
        messages: list[ChatTurn],
        profile: ModelProfile,
        *,
        tools: list[ToolDeclaration] | None = None,
        response_schema: dict[str, Any] | None = None,
        system_instruction: str | None = None,
    ) -> OracleResponse:
        raise NotImplementedError


def check_call_shape(
    tools: list[ToolDeclaration] | None, response_schema: dict[str, Any] | None
) -> None:
    if tools and response_schema is not None:
        raise ValueError("tools and response_schema are mutually exclusive")
