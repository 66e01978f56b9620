from __future__ import annotations

import json
from typing import Any

import httpx

from oncall_copilot.config import ModelProfile
from oncall_copilot.logging_config import get_logger
from oncall_copilot.models import ChatTurn, OracleResponse, ToolDeclaration, ToolRequest
from oncall_copilot.providers.base import OracleProvider, check_call_shape

logger = get_logger(__name__)


class OpenAIProvider(OracleProvider):
    def __init__(
        self,
        api_key: str,
        base_url: str = "https://api.openai.com/v1",
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

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json",
        }
        payload = _build_payload(messages, profile, tools, response_schema, system_instruction)

        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            resp = await client.post(f"{self.base_url}/chat/completions", headers=headers, json=payload)
            resp.raise_for_status()
            data = resp.json()

        return _parse_response(data)


def _build_payload(
    messages: list[ChatTurn],
    profile: ModelProfile,
    tools: list[ToolDeclaration] | None,
    response_schema: dict[str, Any] | None,
    system_instruction: str | None,
) -> dict[str, Any]:
    chat: list[dict[str, Any]] = []
    if system_instruction:
        chat.append({"role": "system", "content": system_instruction})
    chat.extend(_to_message(turn) for turn in messages)

    payload: dict[str, Any] = {"model": profile.model, "messages": chat}
    if profile.reasoning_effort:
        payload["reasoning_effort"] = profile.reasoning_effort
    else:
        payload["temperature"] = profile.temperature
        payload["top_p"] = profile.top_p

    if tools:
        payload["tools"] = [
            {
                "type": "function",
                "function": {
                    "name": tool.name,
                    "description": tool.description,
                    "parameters": tool.parameters,
                },
            }
            for tool in tools
        ]
        payload["tool_choice"] = "auto"
    if response_schema is not None:
        payload["response_format"] = {
            "type": "json_schema",
            "json_schema": {"name": "copilot_state", "schema": response_schema},
        }
    return payload


def _to_message(turn: ChatTurn) -> dict[str, Any]:
    if turn.tool_request is not None:
        request = turn.tool_request
        return {
            "role": "assistant",
            "content": turn.text,
            "tool_calls": [
                {
                    "id": request.call_id,
                    "type": "function",
                    "function": {"name": request.name, "arguments": json.dumps(request.args)},
                }
            ],
        }
    if turn.tool_result is not None:
        return {
            "role": "tool",
            "tool_call_id": turn.tool_result.call_id,
            "content": json.dumps(turn.tool_result.payload, default=str),
        }
    role = "assistant" if turn.role == "model" else "user"
    return {"role": role, "content": turn.text or ""}


def _parse_response(data: dict[str, Any]) -> OracleResponse:
    choices = data.get("choices") or []
    if not choices:
        return OracleResponse()
    message = choices[0].get("message") or {}

    tool_calls = message.get("tool_calls") or []
    if tool_calls:
        call = tool_calls[0]
        function = call.get("function") or {}
        try:
            args = json.loads(function.get("arguments") or "{}")
        except json.JSONDecodeError:
            logger.warning("openai_tool_arguments_invalid", extra={"tool": function.get("name")})
            args = {"_raw": function.get("arguments")}
        if not isinstance(args, dict):
            args = {"_raw": args}
        return OracleResponse(
            tool_request=ToolRequest(name=function.get("name", ""), args=args, call_id=call.get("id")),
            text=message.get("content"),
        )

    if message.get("refusal"):
        logger.warning("openai_refusal", extra={"refusal": message["refusal"]})
    return OracleResponse(text=message.get("content"))
