"""LLM provider abstraction layer."""

import os

from docs_translator.config.models import LLMConfig as AppLLMConfig
from docs_translator.llm.base import LLMProvider
from docs_translator.llm.claude import ClaudeProvider
from docs_translator.llm.models import LLMConfig, LLMError, LLMResponse, TokenUsage
from docs_translator.llm.openai_adapter import OpenAIProvider

_PROVIDER_MAP: dict[str, type[LLMProvider]] = {
    "anthropic": ClaudeProvider,
    "openai": OpenAIProvider,
}


def create_llm_provider(config: AppLLMConfig) -> LLMProvider:
    """Create an LLM provider from app-level config.

    Resolves the API key from the env var in config.api_key_env, then
    bridges the app-level LLMConfig to the provider-level LLMConfig.
    """
    cls = _PROVIDER_MAP.get(config.provider)
    if cls is None:
        raise ValueError(
            f"Unsupported LLM provider: {config.provider!r}. "
            f"Supported: {', '.join(_PROVIDER_MAP)}"
        )
    api_key = os.environ.get(config.api_key_env)
    if not api_key:
        raise ValueError(
            f"Missing API key: set environment variable {config.api_key_env!r}"
        )
    llm_config = LLMConfig(
        provider=config.provider,
        model=config.model,
        max_tokens=config.max_tokens,
        temperature=config.temperature,
        api_key=api_key,
        base_url=config.base_url,
        timeout=config.timeout,
        max_retries=config.max_retries,
    )
    return cls(llm_config)


__all__ = [
    "ClaudeProvider",
    "LLMConfig",
    "LLMError",
    "LLMProvider",
    "LLMResponse",
    "OpenAIProvider",
    "TokenUsage",
    "create_llm_provider",
]
