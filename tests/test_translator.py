"""Tests for the LLM-backed document translator."""

from __future__ import annotations

import asyncio
import logging
from unittest.mock import patch

import pytest

from docs_translator.errors import ChunkCountMismatchError, TranslationError
from docs_translator.llm.models import LLMError, LLMResponse, TokenUsage
from docs_translator.translator.chunker import ChunkedContent, ContentChunker
from docs_translator.translator.translator import Translator
from tests.conftest import make_file


def _response(content: str) -> LLMResponse:
    return LLMResponse(
        content=content,
        usage=TokenUsage(input_tokens=10, output_tokens=20),
        model="test-model",
    )


@pytest.fixture
def chunker():
    with patch("docs_translator.translator.chunker._load_encoder", return_value=None):
        yield ContentChunker(model_limit_tokens=100, system_prompt_reserve=0, chunk_token_buffer=40)


@pytest.fixture
def translator(mock_llm_provider, chunker):
    return Translator(mock_llm_provider, chunker, "en", "pt", glossary="hook -> hook")


class TestPrompts:
    def test_system_prompt_names_languages_and_glossary(self, translator):
        prompt = translator.system_prompt
        assert "from English to Portuguese" in prompt
        assert "hook -> hook" in prompt

    def test_system_prompt_without_glossary(self, mock_llm_provider, chunker):
        t = Translator(mock_llm_provider, chunker, "en", "es")
        assert "GLOSSARY" not in t.system_prompt
        assert "Spanish" in t.system_prompt


class TestTranslateContent:
    async def test_single_request(self, translator, mock_llm_provider, translation_file):
        result = await translator.translate_content(translation_file)

        assert result == "# Introdução\n\nAlguma documentação.\n"
        mock_llm_provider.generate.assert_awaited_once()
        system, user = mock_llm_provider.generate.await_args.args
        assert system == translator.system_prompt
        assert user == translation_file.content
        assert translator.usage.input_tokens == 100
        assert translator.usage.output_tokens == 250

    async def test_empty_file_rejected(self, translator, mock_llm_provider):
        with pytest.raises(TranslationError):
            await translator.translate_content(make_file(content="  \n"))
        mock_llm_provider.generate.assert_not_called()

    async def test_trailing_newline_matches_source(self, translator, mock_llm_provider):
        mock_llm_provider.generate.return_value = _response("# Olá")
        result = await translator.translate_content(make_file(content="# Hello\n\n"))
        assert result == "# Olá\n\n"

    async def test_missing_trailing_newline_kept_missing(self, translator, mock_llm_provider):
        mock_llm_provider.generate.return_value = _response("# Olá\n")
        result = await translator.translate_content(make_file(content="# Hello"))
        assert result == "# Olá"

    async def test_large_file_is_chunked(self, translator, mock_llm_provider, chunker):
        content = "\n\n".join(f"Paragraph {i} " + " ".join(["text"] * 18) for i in range(10)) + "\n"
        expected_chunks = len(chunker.chunk(content))
        mock_llm_provider.generate.side_effect = lambda system, user, **kw: _response(
            "Parágrafo " + " ".join(["texto"] * 18) + "\n"
        )

        result = await translator.translate_content(make_file(content=content))

        assert expected_chunks > 1
        assert mock_llm_provider.generate.await_count == expected_chunks
        assert result.count("Parágrafo") == expected_chunks
        assert result.endswith("texto\n")
        assert translator.usage.output_tokens == 20 * expected_chunks

    async def test_later_chunks_carry_context(self, translator, mock_llm_provider, chunker):
        content = "\n\n".join(f"Paragraph {i} " + " ".join(["text"] * 18) for i in range(10)) + "\n"
        mock_llm_provider.generate.side_effect = lambda system, user, **kw: _response("Parágrafo\n")

        await translator.translate_content(make_file(content=content))

        prompts = [call.args[1] for call in mock_llm_provider.generate.await_args_list]
        assert "<previous_context>" not in prompts[0]
        assert all("<previous_context>" in p for p in prompts[1:])

    async def test_chunk_count_mismatch_propagates(self, translator, mock_llm_provider, chunker):
        chunked = ChunkedContent(chunks=["a\n", "b\n"], separators=["\n"], contexts=["", "a"])
        mock_llm_provider.generate.side_effect = lambda system, user, **kw: _response("x\n")

        with (
            patch.object(chunker, "needs_chunking", return_value=True),
            patch.object(chunker, "chunk", return_value=chunked),
            patch.object(chunker, "reassemble", side_effect=ChunkCountMismatchError(2, 1)),
        ):
            with pytest.raises(ChunkCountMismatchError):
                await translator.translate_content(make_file(content="a\n\nb\n"))
        assert mock_llm_provider.generate.await_count == 2

    async def test_failed_chunk_cancels_remaining_chunks(self, translator, mock_llm_provider):
        content = "\n\n".join(f"Paragraph {i} " + " ".join(["text"] * 18) for i in range(10)) + "\n"
        cancelled = []

        async def generate(system, user, **kw):
            if "Paragraph 0 " in user and "<previous_context>" not in user:
                raise LLMError("claude", "generate", RuntimeError("overloaded"))
            try:
                await asyncio.sleep(30)
            except asyncio.CancelledError:
                cancelled.append(user)
                raise
            return _response("Parágrafo\n")

        mock_llm_provider.generate.side_effect = generate

        with pytest.raises(LLMError):
            await translator.translate_content(make_file(content=content))

        assert len(cancelled) == mock_llm_provider.generate.await_count - 1
        assert cancelled

    async def test_llm_error_propagates(self, translator, mock_llm_provider, translation_file):
        mock_llm_provider.generate.side_effect = LLMError("claude", "generate", RuntimeError("boom"))
        with pytest.raises(LLMError):
            await translator.translate_content(translation_file)


class TestStripPreamble:
    def test_removes_known_prefix(self):
        assert Translator.strip_preamble("Here is the translation:\n# Olá\n") == "# Olá\n"

    def test_unwraps_markdown_fence(self):
        assert Translator.strip_preamble("```markdown\n# Olá\n\nTexto\n```") == "# Olá\n\nTexto\n"

    def test_keeps_fence_when_source_is_code(self):
        text = "```js\nconst a = 1;\n```"
        assert Translator.strip_preamble("```\nx\n```", source="```\ny\n```") == "```\nx\n```"
        assert Translator.strip_preamble(text) == text

    def test_plain_text_untouched(self):
        assert Translator.strip_preamble("  Olá mundo\n") == "  Olá mundo\n"


class TestValidate:
    def test_empty_translation_raises(self, translator, translation_file):
        with pytest.raises(TranslationError, match="empty"):
            translator.validate(translation_file, "   \n")

    def test_lost_headings_raise(self, translator):
        source = make_file(content="# A\n\ntext\n\n## B\n\nmore\n")
        with pytest.raises(TranslationError, match="headings lost"):
            translator.validate(source, "texto\n\nmais texto traduzido\n")

    def test_headings_inside_code_are_ignored(self, translator):
        source = make_file(content="```sh\n# comment\n```\n")
        translator.validate(source, "```sh\n# comentário\n```\n")

    def test_size_drift_only_warns(self, translator, caplog):
        source = make_file(content="# A\n\n" + "text " * 50)
        with caplog.at_level(logging.WARNING):
            translator.validate(source, "# A\n\nx\n")
        assert "size ratio" in caplog.text

    def test_missing_required_frontmatter_key_warns(self, translator, caplog):
        source = make_file(content="---\ntitle: Intro\nid: x\n---\n# Intro\n")
        with caplog.at_level(logging.WARNING):
            translator.validate(source, "---\nid: x\n---\n# Introdução\n")
        assert "frontmatter keys missing: title" in caplog.text


class TestConnectivity:
    async def test_success(self, translator, mock_llm_provider):
        assert await translator.test_connectivity() is True
        assert mock_llm_provider.generate.await_args.kwargs["max_tokens"] == 5

    async def test_failure(self, translator, mock_llm_provider):
        mock_llm_provider.generate.side_effect = LLMError("openai", "generate", RuntimeError("401"))
        assert await translator.test_connectivity() is False
