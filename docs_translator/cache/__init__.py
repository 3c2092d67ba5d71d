from .language_cache import CacheKey, LanguageCache, LanguageCacheEntry

__all__ = ["CacheKey", "LanguageCache", "LanguageCacheEntry"]
