"""Abstract LLM interface for the translator."""

from __future__ import annotations

from abc import ABC, abstractmethod

from docs_translator.llm.models import LLMConfig, LLMResponse


class LLMProvider(ABC):
    """Provider-agnostic interface for a single chat completion.

    Translation is one request per document (or per chunk), so adapters
    only need one-shot generation.
    """

    def __init__(self, config: LLMConfig) -> None:
        self.config = config

    @abstractmethod
    async def generate(
        self,
        system: str,
        user: str,
        max_tokens: int | None = None,
    ) -> LLMResponse:
        """Generate a complete response (one-shot)."""
        ...
