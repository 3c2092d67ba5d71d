"""Translation: chunking, language detection and the LLM-backed translator."""

from docs_translator.translator.chunker import ChunkedContent, ContentChunker
from docs_translator.translator.language import (
    LanguageAnalysis,
    LanguageDetector,
    language_name,
)
from docs_translator.translator.translator import Translator

__all__ = [
    "ChunkedContent",
    "ContentChunker",
    "LanguageAnalysis",
    "LanguageDetector",
    "Translator",
    "language_name",
]
