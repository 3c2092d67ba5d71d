from .loader import load_config
from .models import (
    CacheConfig,
    ChunkingConfig,
    DiscoveryConfig,
    LLMConfig,
    TranslationConfig,
    TranslatorConfig,
    VCSConfig,
)

__all__ = [
    "CacheConfig",
    "ChunkingConfig",
    "DiscoveryConfig",
    "LLMConfig",
    "TranslationConfig",
    "TranslatorConfig",
    "VCSConfig",
    "load_config",
]
