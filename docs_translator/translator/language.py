"""Language detection for deciding whether a document is already translated."""

from __future__ import annotations

import logging
import re

from langdetect import DetectorFactory, LangDetectException, detect_langs
from pydantic import BaseModel

logger = logging.getLogger(__name__)

# langdetect is non-deterministic unless seeded
DetectorFactory.seed = 0

MIN_CONTENT_LENGTH = 10
TRANSLATION_RATIO_THRESHOLD = 0.5

LANGUAGE_NAMES: dict[str, str] = {
    "ar": "Arabic",
    "bn": "Bengali",
    "de": "German",
    "en": "English",
    "es": "Spanish",
    "fa": "Persian",
    "fr": "French",
    "he": "Hebrew",
    "hi": "Hindi",
    "id": "Indonesian",
    "it": "Italian",
    "ja": "Japanese",
    "ko": "Korean",
    "nl": "Dutch",
    "pl": "Polish",
    "pt": "Portuguese",
    "pt-br": "Brazilian Portuguese",
    "ru": "Russian",
    "tr": "Turkish",
    "uk": "Ukrainian",
    "vi": "Vietnamese",
    "zh-cn": "Simplified Chinese",
    "zh-tw": "Traditional Chinese",
}

_FENCED_CODE = re.compile(r"^ {0,3}(`{3,}|~{3,}).*?^ {0,3}\1[`~]*\s*$", re.M | re.S)
_INLINE_CODE = re.compile(r"`[^`\n]*`")
_URL = re.compile(r"https?://\S+")
_TAG = re.compile(r"</?[A-Za-z][^>]*>")
_LINK_TARGET = re.compile(r"\]\([^)]*\)")
_FRONTMATTER_KEYS = re.compile(r"^[\w-]+:\s*", re.M)


def language_name(code: str) -> str:
    """Human-readable name for a language code, or the code itself."""
    return LANGUAGE_NAMES.get(code.lower(), code)


def _same_language(detected: str, configured: str) -> bool:
    detected, configured = detected.lower(), configured.lower()
    if detected == configured:
        return True
    # zh-cn and zh-tw are distinct; pt and pt-br are not
    if detected.startswith("zh") or configured.startswith("zh"):
        return False
    return detected.split("-")[0] == configured.split("-")[0]


class LanguageAnalysis(BaseModel):
    """Outcome of analysing one document."""

    detected_language: str | None = None
    detected_score: float = 0.0
    target_score: float = 0.0
    source_score: float = 0.0
    ratio: float = 0.0
    is_translated: bool = False

    @property
    def confidence(self) -> float:
        """Probability of the detected language itself."""
        return self.detected_score


class LanguageDetector:
    """Scores a document for the source and target languages.

    Code, URLs and markup are removed before detection since they are
    English regardless of the prose language.
    """

    def __init__(self, source_language: str = "en", target_language: str = "pt") -> None:
        self.source_language = source_language
        self.target_language = target_language

    @staticmethod
    def clean_content(content: str) -> str:
        text = _FENCED_CODE.sub(" ", content)
        text = _INLINE_CODE.sub(" ", text)
        text = _LINK_TARGET.sub("]", text)
        text = _URL.sub(" ", text)
        text = _TAG.sub(" ", text)
        text = _FRONTMATTER_KEYS.sub("", text)
        return re.sub(r"\s+", " ", text).strip()

    def analyze(self, content: str) -> LanguageAnalysis:
        text = self.clean_content(content or "")
        if len(text) < MIN_CONTENT_LENGTH:
            return LanguageAnalysis()

        try:
            candidates = detect_langs(text)
        except LangDetectException as e:
            logger.debug("Language detection failed: %s", e)
            return LanguageAnalysis()

        target_score = 0.0
        source_score = 0.0
        for candidate in candidates:
            if _same_language(candidate.lang, self.target_language):
                target_score = max(target_score, candidate.prob)
            elif _same_language(candidate.lang, self.source_language):
                source_score = max(source_score, candidate.prob)

        detected = candidates[0].lang if candidates else None
        if detected and _same_language(detected, self.target_language):
            detected = self.target_language
        elif detected and _same_language(detected, self.source_language):
            detected = self.source_language

        ratio = target_score / ((target_score + source_score) or 1)
        return LanguageAnalysis(
            detected_language=detected,
            detected_score=candidates[0].prob if candidates else 0.0,
            target_score=target_score,
            source_score=source_score,
            ratio=ratio,
            is_translated=ratio > TRANSLATION_RATIO_THRESHOLD,
        )

    def is_translated(self, content: str) -> bool:
        return self.analyze(content).is_translated
