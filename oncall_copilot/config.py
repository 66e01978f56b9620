from __future__ import annotations

import os

from pydantic import BaseModel, Field


class ModelProfile(BaseModel):
    """Latency/quality trade-off for one phase of an investigation."""

    model: str
    temperature: float = 0.1
    top_p: float = 0.95
    thinking_budget: int | None = None
    reasoning_effort: str | None = None


class CopilotSettings(BaseModel):
    llm_provider: str = "mock"
    gemini_api_key: str | None = None
    gemini_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    openai_api_key: str | None = None
    openai_base_url: str = "https://api.openai.com/v1"
    llm_timeout_seconds: float = 60.0

    exploration: ModelProfile = Field(
        default_factory=lambda: ModelProfile(model="gemini-2.5-flash", thinking_budget=1024)
    )
    synthesis: ModelProfile = Field(
        default_factory=lambda: ModelProfile(model="gemini-2.5-pro", thinking_budget=8000)
    )

    max_attempts: int = 5
    retry_initial_delay: float = 2.0

    max_iterations: int = 8
    call_pause_seconds: float = 1.0
    target_confidence: float = 0.8

    @classmethod
    def from_env(cls) -> "CopilotSettings":
        temperature = float(os.environ.get("LLM_TEMPERATURE", "0.1"))
        return cls(
            llm_provider=os.environ.get("LLM_PROVIDER", "mock").lower(),
            gemini_api_key=os.environ.get("GEMINI_API_KEY"),
            openai_api_key=os.environ.get("OPENAI_API_KEY"),
            llm_timeout_seconds=float(os.environ.get("LLM_TIMEOUT_SECONDS", "60")),
            exploration=ModelProfile(
                model=os.environ.get("EXPLORATION_MODEL", "gemini-2.5-flash"),
                temperature=temperature,
                thinking_budget=int(os.environ.get("EXPLORATION_THINKING_BUDGET", "1024")),
                reasoning_effort=os.environ.get("EXPLORATION_REASONING_EFFORT"),
            ),
            synthesis=ModelProfile(
                model=os.environ.get("SYNTHESIS_MODEL", "gemini-2.5-pro"),
                temperature=temperature,
                thinking_budget=int(os.environ.get("SYNTHESIS_THINKING_BUDGET", "8000")),
                reasoning_effort=os.environ.get("SYNTHESIS_REASONING_EFFORT"),
            ),
            max_attempts=int(os.environ.get("LLM_MAX_ATTEMPTS", "5")),
            retry_initial_delay=float(os.environ.get("LLM_RETRY_INITIAL_DELAY", "2.0")),
            max_iterations=int(os.environ.get("INVESTIGATION_MAX_ITERATIONS", "8")),
            call_pause_seconds=float(os.environ.get("INVESTIGATION_CALL_PAUSE_SECONDS", "1.0")),
            target_confidence=float(os.environ.get("INVESTIGATION_TARGET_CONFIDENCE", "0.8")),
        )
