"""Token-aware splitting of large Markdown documents.

Chunks are contiguous slices of the source. Each chunk sent to the model
ends with exactly one newline; the exact whitespace that originally
followed it is kept in ``ChunkedContent.separators`` so reassembly is
lossless. The final chunk keeps the document's own trailing newlines.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field

import tiktoken

from docs_translator.errors import ChunkCountMismatchError

logger = logging.getLogger(__name__)

_FENCE = re.compile(r"^ {0,3}(`{3,}|~{3,})")
_HEADING = re.compile(r"^ {0,3}#{1,6}(\s|$)")
_WORD = re.compile(r"\S+\s*|\s+")


@dataclass
class ChunkedContent:
    """A document split for translation.

    ``contexts[i]`` is the tail of the chunk before ``chunks[i]``. It is
    prompt context only and never part of any chunk.
    """

    chunks: list[str]
    separators: list[str] = field(default_factory=list)
    final_suffix: str = ""
    contexts: list[str] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.chunks)


class ContentChunker:
    """Splits text that does not fit the model's input budget.

    Token counts come from tiktoken. If the encoding cannot be loaded the
    chunker estimates with a fixed characters-per-token ratio.
    """

    def __init__(
        self,
        model_limit_tokens: int = 4000,
        system_prompt_reserve: int = 1000,
        chunk_token_buffer: int = 500,
        chunk_overlap: int = 200,
        chars_per_token: float = 3.5,
        tokenizer_model: str = "gpt-4o",
    ) -> None:
        self.max_input_tokens = model_limit_tokens - system_prompt_reserve
        self.chunk_tokens = max(1, self.max_input_tokens - chunk_token_buffer)
        self.chunk_overlap = chunk_overlap
        self.chars_per_token = chars_per_token
        self._encoder = _load_encoder(tokenizer_model)

    @classmethod
    def from_config(cls, config) -> ContentChunker:
        return cls(
            model_limit_tokens=config.model_limit_tokens,
            system_prompt_reserve=config.system_prompt_reserve,
            chunk_token_buffer=config.chunk_token_buffer,
            chunk_overlap=config.chunk_overlap,
            chars_per_token=config.chars_per_token,
            tokenizer_model=config.tokenizer_model,
        )

    # -- token estimates -------------------------------------------------------

    def count_tokens(self, text: str) -> int:
        if not text:
            return 0
        if self._encoder is not None:
            try:
                return len(self._encoder.encode(text, disallowed_special=()))
            except ValueError as e:
                logger.debug("Tokenizer failed, estimating from length: %s", e)
        return math.ceil(len(text) / self.chars_per_token)

    def needs_chunking(self, text: str) -> bool:
        return self.count_tokens(text) > self.max_input_tokens

    # -- split -----------------------------------------------------------------

    def chunk(self, text: str) -> ChunkedContent:
        """Split ``text`` at the strongest structural boundaries that fit."""
        if not text:
            return ChunkedContent(chunks=[""], contexts=[""])

        raw = self._pack(_split_blocks(text), level=0)
        raw = _merge_blank(raw)

        final_suffix = text[len(text.rstrip("\n")):]
        chunks: list[str] = []
        separators: list[str] = []
        for piece in raw[:-1]:
            body = piece.rstrip()
            chunks.append(body + "\n")
            separators.append(piece[len(body):])
        chunks.append(raw[-1])

        contexts = [""] + [self._tail(piece) for piece in raw[:-1]]
        logger.debug("Split %d chars into %d chunks", len(text), len(chunks))
        return ChunkedContent(
            chunks=chunks,
            separators=separators,
            final_suffix=final_suffix,
            contexts=contexts,
        )

    def reassemble(self, chunked: ChunkedContent, translated: list[str]) -> str:
        """Join translated chunks using the recorded separators.

        Raises:
            ChunkCountMismatchError: if the counts differ. Nothing is joined.
        """
        if len(translated) != len(chunked.chunks):
            raise ChunkCountMismatchError(len(chunked.chunks), len(translated))

        parts: list[str] = []
        for i, piece in enumerate(translated[:-1]):
            parts.append(piece.rstrip() + chunked.separators[i])
        parts.append(translated[-1].rstrip("\n") + chunked.final_suffix)
        return "".join(parts)

    def _pack(self, pieces: list[str], level: int) -> list[str]:
        """Greedily merge consecutive pieces up to the chunk budget."""
        out: list[str] = []
        current = ""
        current_tokens = 0
        for piece in pieces:
            tokens = self.count_tokens(piece)
            if tokens > self.chunk_tokens and len(piece) > 1:
                if current:
                    out.append(current)
                    current, current_tokens = "", 0
                out.extend(self._pack(self._split_finer(piece, level), level + 1))
                continue
            if current and current_tokens + tokens > self.chunk_tokens:
                out.append(current)
                current, current_tokens = "", 0
            current += piece
            current_tokens += tokens
        if current:
            out.append(current)
        return out

    def _split_finer(self, text: str, level: int) -> list[str]:
        if level == 0:
            return text.splitlines(keepends=True)
        if level == 1:
            return _WORD.findall(text)
        # Windows never exceed half the input, so every level shrinks the piece.
        width = max(1, min(int(self.chunk_tokens * self.chars_per_token), len(text) // 2))
        return [text[i : i + width] for i in range(0, len(text), width)]

    def _tail(self, text: str) -> str:
        """Last ``chunk_overlap`` tokens of ``text``, trimmed to a line start."""
        if self.chunk_overlap <= 0:
            return ""
        text = text.rstrip()
        approx = int(self.chunk_overlap * self.chars_per_token)
        tail = text[-approx:] if len(text) > approx else text
        newline = tail.find("\n")
        if newline != -1 and len(tail) < len(text):
            tail = tail[newline + 1 :]
        return tail.strip()


def _load_encoder(model: str):
    try:
        try:
            return tiktoken.encoding_for_model(model)
        except KeyError:
            return tiktoken.get_encoding("cl100k_base")
    except Exception as e:  # encoding files are downloaded on first use
        logger.warning(
            "tiktoken encoding unavailable (%s); estimating tokens from length", e
        )
        return None


def _split_blocks(text: str) -> list[str]:
    """Split into blocks at blank lines and before headings and code fences.

    Lines inside a fenced code block never start a new block. Blank lines
    stay attached to the block they follow.
    """
    blocks: list[str] = []
    current = ""
    fence: str | None = None
    boundary = False

    for line in text.splitlines(keepends=True):
        if fence is not None:
            current += line
            stripped = line.strip()
            if stripped.startswith(fence) and set(stripped) == {fence[0]}:
                fence = None
                boundary = True
            continue

        if not line.strip():
            current += line
            if current.strip():
                boundary = True
            continue

        opener = _FENCE.match(line)
        if current.strip() and (boundary or opener or _HEADING.match(line)):
            blocks.append(current)
            current = ""
        current += line
        boundary = False
        if opener:
            fence = opener.group(1)

    if current:
        blocks.append(current)
    return blocks


def _merge_blank(pieces: list[str]) -> list[str]:
    """Fold whitespace-only pieces into their neighbour."""
    merged: list[str] = []
    for piece in pieces:
        if merged and not piece.strip():
            merged[-1] += piece
        elif merged and not merged[-1].strip():
            merged[-1] += piece
        else:
            merged.append(piece)
    return merged or [""]
