from __future__ import annotations

from typing import Any

import httpx

from oncall_copilot.config import ModelProfile
from oncall_copilot.logging_config import get_logger
from oncall_copilot.models import ChatTurn, OracleResponse, ToolDeclaration, ToolRequest
from oncall_copilot.providers.base import OracleProvider, check_call_shape

logger = get_logger(__name__)


class GeminiProvider(OracleProvider):
    def __init__(
        self,
        api_key: str,
        base_url: str = "https://generativelanguage.googleapis.com/v1beta",
        timeout: float = 60.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

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
        body = _build_request(messages, profile, tools, response_schema, system_instruction)
        url = f"{self.base_url}/models/{profile.model}:generateContent"

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            resp = await client.post(url, params={"key": self.api_key}, json=body)
            if resp.is_error:
                # Error bodies carry the RESOURCE_EXHAUSTED status used for back-off.
                await resp.aread()
            resp.raise_for_status()
            data = resp.json()

        return _parse_response(data)


def _build_request(
    messages: list[ChatTurn],
    profile: ModelProfile,
    tools: list[ToolDeclaration] | None,
    response_schema: dict[str, Any] | None,
    system_instruction: str | None,
) -> dict[str, Any]:
    generation_config: dict[str, Any] = {
        "temperature": profile.temperature,
        "topP": profile.top_p,
    }
    if profile.thinking_budget is not None:
        generation_config["thinkingConfig"] = {"thinkingBudget": profile.thinking_budget}
    if response_schema is not None:
        generation_config["responseMimeType"] = "application/json"
        generation_config["responseSchema"] = to_gemini_schema(response_schema)

    body: dict[str, Any] = {
        "contents": [_to_content(turn) for turn in messages],
        "generationConfig": generation_config,
    }
    if system_instruction:
        body["systemInstruction"] = {"parts": [{"text": system_instruction}]}
    if tools:
        body["tools"] = [
            {
                "functionDeclarations": [
                    {
                        "name": tool.name,
                        "description": tool.description,
                        "parameters": to_gemini_schema(tool.parameters),
                    }
                    for tool in tools
                ]
            }
        ]
    return body


def _to_content(turn: ChatTurn) -> dict[str, Any]:
    if turn.tool_request is not None:
        part: dict[str, Any] = {
            "functionCall": {"name": turn.tool_request.name, "args": turn.tool_request.args}
        }
        return {"role": "model", "parts": [part]}
    if turn.tool_result is not None:
        part = {
            "functionResponse": {
                "name": turn.tool_result.name,
                "response": turn.tool_result.payload,
            }
        }
        return {"role": "user", "parts": [part]}
    role = "model" if turn.role == "model" else "user"
    return {"role": role, "parts": [{"text": turn.text or ""}]}


def to_gemini_schema(schema: dict[str, Any]) -> dict[str, Any]:
    """Gemini expects OpenAPI-style upper-case type names."""
    converted: dict[str, Any] = {}
    for key, value in schema.items():
        if key == "type" and isinstance(value, str):
            converted[key] = value.upper()
        elif key == "properties" and isinstance(value, dict):
            converted[key] = {name: to_gemini_schema(prop) for name, prop in value.items()}
        elif key == "items" and isinstance(value, dict):
            converted[key] = to_gemini_schema(value)
        else:
            converted[key] = value
    return converted


def _parse_response(data: dict[str, Any]) -> OracleResponse:
    candidates = data.get("candidates") or []
    if not candidates:
        feedback = data.get("promptFeedback", {})
        logger.warning("gemini_no_candidates", extra={"block_reason": feedback.get("blockReason")})
        return OracleResponse()

    candidate = candidates[0]
    parts = (candidate.get("content") or {}).get("parts") or []
    texts: list[str] = []
    for part in parts:
        call = part.get("functionCall")
        if call:
            return OracleResponse(
                tool_request=ToolRequest(name=call.get("name", ""), args=call.get("args") or {}),
                text="".join(texts) or None,
            )
        if "text" in part and not part.get("thought"):
            texts.append(part["text"])

    if not texts:
        logger.warning("gemini_empty_content", extra={"finish_reason": candidate.get("finishReason")})
    return OracleResponse(text="".join(texts) or None)
