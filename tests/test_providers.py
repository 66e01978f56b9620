import json

import httpx
import pytest

from oncall_copilot.codec import decode_as
from oncall_copilot.config import CopilotSettings, ModelProfile
from oncall_copilot.models import ChatTurn, CopilotState, ToolRequest, ToolResult
from oncall_copilot.prompts import COPILOT_SCHEMA
from oncall_copilot.providers.factory import build_provider
from oncall_copilot.providers.gemini_provider import GeminiProvider, to_gemini_schema
from oncall_copilot.providers.mock_provider import MockProvider
from oncall_copilot.providers.openai_provider import OpenAIProvider
from oncall_copilot.retry import is_rate_limited
from oncall_copilot.tools import TOOL_CATALOGUE

PROFILE = ModelProfile(model="test-model", thinking_budget=512)

CONVERSATION = [
    ChatTurn(role="user", text="<ALERT>\nid: ALRT-001\nservice: API\n</ALERT>"),
    ChatTurn(role="model", tool_request=ToolRequest(name="get_dependency_health", args={"service": "API"}, call_id="TC_1")),
    ChatTurn(role="tool", tool_result=ToolResult(name="get_dependency_health", payload={"PaymentSvc": "Degraded"}, call_id="TC_1")),
]


class Capture:
    def __init__(self, status=200, body=None):
        self.status = status
        self.body = body or {}
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status, json=self.body)

    @property
    def last_json(self):
        return json.loads(self.requests[-1].content)


@pytest.mark.asyncio
async def test_mock_provider_walks_catalogue_then_reports():
    provider = MockProvider(tool_budget=2)
    messages = CONVERSATION[:1]

    first = await provider.generate(messages, PROFILE, tools=TOOL_CATALOGUE)
    assert first.tool_request.name == TOOL_CATALOGUE[0].name
    assert first.tool_request.args == {"service": "API"}

    messages = messages + [
        ChatTurn(role="model", tool_request=first.tool_request),
        ChatTurn(role="model", tool_request=ToolRequest(name=TOOL_CATALOGUE[1].name)),
    ]
    stop = await provider.generate(messages, PROFILE, tools=TOOL_CATALOGUE)
    assert stop.tool_request is None
    assert stop.text

    final = await provider.generate(CONVERSATION, PROFILE, response_schema=COPILOT_SCHEMA)
    state = decode_as(final.text, CopilotState)
    assert state.summary.startswith("Mock:")
    assert "TC_1" in state.evidence_logs


@pytest.mark.asyncio
async def test_tools_and_schema_are_mutually_exclusive():
    with pytest.raises(ValueError):
        await MockProvider().generate(CONVERSATION, PROFILE, tools=TOOL_CATALOGUE, response_schema=COPILOT_SCHEMA)


@pytest.mark.asyncio
async def test_gemini_tool_turn():
    capture = Capture(
        body={
            "candidates": [
                {"content": {"parts": [{"functionCall": {"name": "get_recent_deploys", "args": {"service": "API"}}}]}}
            ]
        }
    )
    provider = GeminiProvider(api_key="k", transport=httpx.MockTransport(capture))

    response = await provider.generate(CONVERSATION, PROFILE, tools=TOOL_CATALOGUE, system_instruction="be brief")

    assert response.tool_request.name == "get_recent_deploys"
    assert response.tool_request.args == {"service": "API"}
    request = capture.requests[-1]
    assert request.url.path.endswith("/models/test-model:generateContent")
    assert request.url.params["key"] == "k"
    body = capture.last_json
    declarations = body["tools"][0]["functionDeclarations"]
    assert declarations[0]["parameters"]["type"] == "OBJECT"
    assert body["systemInstruction"]["parts"][0]["text"] == "be brief"
    assert body["generationConfig"]["thinkingConfig"] == {"thinkingBudget": 512}
    assert body["contents"][1]["parts"][0]["functionCall"]["name"] == "get_dependency_health"
    assert body["contents"][2]["parts"][0]["functionResponse"]["response"] == {"PaymentSvc": "Degraded"}


@pytest.mark.asyncio
async def test_gemini_schema_turn_returns_text():
    capture = Capture(body={"candidates": [{"content": {"parts": [{"text": '{"summary": "s"}'}]}}]})
    provider = GeminiProvider(api_key="k", transport=httpx.MockTransport(capture))

    response = await provider.generate(CONVERSATION, PROFILE, response_schema=COPILOT_SCHEMA)

    assert response.text == '{"summary": "s"}'
    assert response.tool_request is None
    config = capture.last_json["generationConfig"]
    assert config["responseMimeType"] == "application/json"
    assert config["responseSchema"]["properties"]["steps"]["items"]["type"] == "OBJECT"
    assert "tools" not in capture.last_json


@pytest.mark.asyncio
async def test_gemini_rate_limit_surfaces_as_http_error():
    capture = Capture(status=429, body={"error": {"code": 429, "status": "RESOURCE_EXHAUSTED"}})
    provider = GeminiProvider(api_key="k", transport=httpx.MockTransport(capture))

    with pytest.raises(httpx.HTTPStatusError) as info:
        await provider.generate(CONVERSATION, PROFILE, tools=TOOL_CATALOGUE)

    assert is_rate_limited(info.value)


def test_gemini_schema_conversion_is_recursive():
    converted = to_gemini_schema(COPILOT_SCHEMA)
    assert converted["type"] == "OBJECT"
    assert converted["properties"]["evidence_logs"]["items"]["type"] == "STRING"
    assert converted["required"] == COPILOT_SCHEMA["required"]


@pytest.mark.asyncio
async def test_openai_tool_call_parsing_and_payload():
    capture = Capture(
        body={
            "choices": [
                {
                    "message": {
                        "content": None,
                        "tool_calls": [
                            {
                                "id": "call_9",
                                "type": "function",
                                "function": {"name": "get_metric_history", "arguments": '{"metric": "http_5xx_rate"}'},
                            }
                        ],
                    }
                }
            ]
        }
    )
    provider = OpenAIProvider(api_key="sk", transport=httpx.MockTransport(capture))

    response = await provider.generate(CONVERSATION, PROFILE, tools=TOOL_CATALOGUE, system_instruction="sys")

    assert response.tool_request.name == "get_metric_history"
    assert response.tool_request.args == {"metric": "http_5xx_rate"}
    assert response.tool_request.call_id == "call_9"
    assert capture.requests[-1].headers["Authorization"] == "Bearer sk"
    payload = capture.last_json
    assert payload["messages"][0] == {"role": "system", "content": "sys"}
    assert payload["messages"][2]["tool_calls"][0]["id"] == "TC_1"
    assert payload["messages"][3] == {
        "role": "tool",
        "tool_call_id": "TC_1",
        "content": json.dumps({"PaymentSvc": "Degraded"}),
    }
    assert payload["tools"][0]["function"]["name"] == TOOL_CATALOGUE[0].name
    assert payload["tool_choice"] == "auto"


@pytest.mark.asyncio
async def test_openai_schema_turn():
    capture = Capture(body={"choices": [{"message": {"content": '{"summary": "s"}'}}]})
    provider = OpenAIProvider(api_key="sk", transport=httpx.MockTransport(capture))
    profile = ModelProfile(model="o4-mini", reasoning_effort="high")

    response = await provider.generate(CONVERSATION, profile, response_schema=COPILOT_SCHEMA)

    assert response.text == '{"summary": "s"}'
    payload = capture.last_json
    assert payload["response_format"]["json_schema"]["schema"] == COPILOT_SCHEMA
    assert payload["reasoning_effort"] == "high"
    assert "temperature" not in payload
    assert "tools" not in payload


def test_build_provider_selection():
    assert isinstance(build_provider(CopilotSettings()), MockProvider)
    assert isinstance(build_provider(CopilotSettings(llm_provider="openai")), MockProvider)
    assert isinstance(build_provider(CopilotSettings(llm_provider="openai", openai_api_key="sk")), OpenAIProvider)
    assert isinstance(build_provider(CopilotSettings(llm_provider="gemini", gemini_api_key="g")), GeminiProvider)


def test_settings_from_env(monkeypatch):
    monkeypatch.setenv("LLM_PROVIDER", "Gemini")
    monkeypatch.setenv("SYNTHESIS_MODEL", "deep-model")
    monkeypatch.setenv("INVESTIGATION_MAX_ITERATIONS", "4")
    monkeypatch.setenv("LLM_TEMPERATURE", "0.0")

    settings = CopilotSettings.from_env()

    assert settings.llm_provider == "gemini"
    assert settings.synthesis.model == "deep-model"
    assert settings.synthesis.temperature == 0.0
    assert settings.max_iterations == 4
    assert settings.max_attempts == 5
