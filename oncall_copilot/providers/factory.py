from __future__ import annotations

from oncall_copilot.config import CopilotSettings
from oncall_copilot.logging_config import get_logger
from oncall_copilot.providers.base import OracleProvider
from oncall_copilot.providers.gemini_provider import GeminiProvider
from oncall_copilot.providers.mock_provider import MockProvider
from oncall_copilot.providers.openai_provider import OpenAIProvider

logger = get_logger(__name__)


def build_provider(settings: CopilotSettings) -> OracleProvider:
    provider = settings.llm_provider.lower()

    if provider == "gemini":
        if settings.gemini_api_key:
            return GeminiProvider(
                api_key=settings.gemini_api_key,
                base_url=settings.gemini_base_url,
                timeout=settings.llm_timeout_seconds,
            )
        logger.warning("gemini_api_key_missing")

    elif provider == "openai":
        if settings.openai_api_key:
            return OpenAIProvider(
                api_key=settings.openai_api_key,
                base_url=settings.openai_base_url,
                timeout=settings.llm_timeout_seconds,
            )
        logger.warning("openai_api_key_missing")

    # default + safety net
    return MockProvider()
