"""Translate documents through an LLM provider."""

from __future__ import annotations

import asyncio
import logging
import re

from docs_translator.errors import TranslationError
from docs_translator.llm.base import LLMProvider
from docs_translator.llm.models import LLMError, TokenUsage
from docs_translator.translator.chunker import ContentChunker
from docs_translator.translator.prompts import (
    CONNECTIVITY_SYSTEM_PROMPT,
    build_system_prompt,
    build_user_prompt,
)
from docs_translator.vcs.models import TranslationFile

logger = logging.getLogger(__name__)

TRANSLATION_PREFIXES = (
    "Here is the translation:",
    "Here's the translation:",
    "Translation:",
    "Translated content:",
    "Here is the translated content:",
    "Here's the translated content:",
)

REQUIRED_FRONTMATTER_KEYS = ("title",)

SIZE_RATIO = (0.5, 2.0)
STRUCTURE_RATIO = (0.8, 1.2)

_FENCED_CODE = re.compile(r"^ {0,3}(`{3,}|~{3,}).*?^ {0,3}\1[`~]*[ \t]*$", re.M | re.S)
_HEADING = re.compile(r"^ {0,3}#{1,6}\s", re.M)
_LINK = re.compile(r"\[[^\]]*\]\([^)\s]+(?:\s+\"[^\"]*\")?\)")
_FRONTMATTER = re.compile(r"\A---\n(.*?)\n---", re.S)
_FRONTMATTER_KEY = re.compile(r"^([A-Za-z_]\w*):", re.M)
_WRAPPING_FENCE = re.compile(r"\A```(?:markdown|md|mdx)?\n(.*)\n```\s*\Z", re.S)


def _headings(text: str) -> int:
    return len(_HEADING.findall(_FENCED_CODE.sub("", text)))


def _frontmatter_keys(text: str) -> set[str] | None:
    match = _FRONTMATTER.match(text)
    if match is None:
        return None
    return set(_FRONTMATTER_KEY.findall(match.group(1)))


class Translator:
    """Turns a source document into its target-language version.

    Documents over the model's input budget are split by the
    ``ContentChunker``, translated piece by piece and reassembled.
    """

    def __init__(
        self,
        llm: LLMProvider,
        chunker: ContentChunker,
        source_language: str = "en",
        target_language: str = "pt",
        glossary: str | None = None,
    ) -> None:
        self.llm = llm
        self.chunker = chunker
        self.source_language = source_language
        self.target_language = target_language
        self.glossary = glossary
        self.usage = TokenUsage(input_tokens=0, output_tokens=0)

    @property
    def system_prompt(self) -> str:
        return build_system_prompt(self.source_language, self.target_language, self.glossary)

    async def test_connectivity(self) -> bool:
        """Send a minimal request to confirm credentials and model name."""
        try:
            await self.llm.generate(CONNECTIVITY_SYSTEM_PROMPT, "ping", max_tokens=5)
        except LLMError as e:
            logger.error("LLM connectivity check failed: %s", e)
            return False
        return True

    async def translate_content(self, file: TranslationFile) -> str:
        if not file.content.strip():
            raise TranslationError(
                "file has no content to translate",
                operation="translate_content",
                metadata={"path": file.path},
            )

        if self.chunker.needs_chunking(file.content):
            chunked = self.chunker.chunk(file.content)
            logger.info("Translating %s in %d chunks", file.path, len(chunked))
            tasks = [
                asyncio.create_task(self._complete(chunk, context))
                for chunk, context in zip(chunked.chunks, chunked.contexts)
            ]
            try:
                pieces = await asyncio.gather(*tasks)
            except BaseException:
                # A failed chunk fails the file, so sibling requests are abandoned.
                for task in tasks:
                    task.cancel()
                await asyncio.gather(*tasks, return_exceptions=True)
                raise
            translated = self.chunker.reassemble(chunked, list(pieces))
        else:
            translated = await self._complete(file.content)

        translated = self._match_trailing_newline(translated, file.content)
        self.validate(file, translated)
        return translated

    async def _complete(self, content: str, context: str = "") -> str:
        response = await self.llm.generate(
            self.system_prompt, build_user_prompt(content, context)
        )
        self.usage = TokenUsage(
            input_tokens=self.usage.input_tokens + response.usage.input_tokens,
            output_tokens=self.usage.output_tokens + response.usage.output_tokens,
        )
        return self.strip_preamble(response.content, source=content)

    @staticmethod
    def strip_preamble(text: str, source: str = "") -> str:
        """Remove chatty prefixes and a wrapping code fence the model may add."""
        stripped = text.lstrip()
        for prefix in TRANSLATION_PREFIXES:
            if stripped.startswith(prefix):
                stripped = stripped[len(prefix):].lstrip()
                break
        else:
            stripped = text
        match = _WRAPPING_FENCE.match(stripped)
        if match and not source.lstrip().startswith("```"):
            stripped = match.group(1) + "\n"
        return stripped

    @staticmethod
    def _match_trailing_newline(translated: str, original: str) -> str:
        suffix = original[len(original.rstrip("\n")):]
        return translated.rstrip("\n") + suffix

    def validate(self, file: TranslationFile, translated: str) -> None:
        """Reject unusable output; warn about suspicious structure drift.

        Raises:
            TranslationError: empty output, or every heading was lost.
        """
        if not translated.strip():
            raise TranslationError(
                "translation is empty", operation="validate", metadata={"path": file.path}
            )

        source_headings = _headings(file.content)
        translated_headings = _headings(translated)
        if source_headings and not translated_headings:
            raise TranslationError(
                f"all {source_headings} headings lost in translation",
                operation="validate",
                metadata={"path": file.path},
            )

        size_ratio = len(translated) / len(file.content)
        if not SIZE_RATIO[0] <= size_ratio <= SIZE_RATIO[1]:
            logger.warning("%s: translation size ratio %.2f out of range", file.path, size_ratio)

        checks = {
            "heading": (source_headings, translated_headings),
            "code block": (
                len(_FENCED_CODE.findall(file.content)),
                len(_FENCED_CODE.findall(translated)),
            ),
            "link": (len(_LINK.findall(file.content)), len(_LINK.findall(translated))),
        }
        for name, (before, after) in checks.items():
            if before and not STRUCTURE_RATIO[0] <= after / before <= STRUCTURE_RATIO[1]:
                logger.warning("%s: %s count changed from %d to %d", file.path, name, before, after)

        source_keys = _frontmatter_keys(file.content)
        if source_keys is None:
            return
        translated_keys = _frontmatter_keys(translated)
        if translated_keys is None:
            logger.warning("%s: frontmatter lost in translation", file.path)
            return
        missing = source_keys - translated_keys
        if missing:
            level = logging.WARNING if missing.intersection(REQUIRED_FRONTMATTER_KEYS) else logging.INFO
            logger.log(level, "%s: frontmatter keys missing: %s", file.path, ", ".join(sorted(missing)))
