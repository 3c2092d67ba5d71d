from pydantic import BaseModel, Field, field_validator
from typing import Literal


class LLMConfig(BaseModel):
    provider: Literal["anthropic", "openai"] = "anthropic"
    model: str = "claude-sonnet-4-20250514"
    api_key_env: str = "ANTHROPIC_API_KEY"
    max_tokens: int = 8192
    temperature: float = 0.3
    timeout: int = 120
    max_retries: int = 3
    base_url: str | None = None


class VCSConfig(BaseModel):
    provider: Literal["github"] = "github"
    token_env: str = "GITHUB_TOKEN"
    upstream: str = "reactjs/react.dev"
    fork: str | None = None
    base_branch: str | None = None
    timeout: int = 30
    include: list[str] = ["src/**/*.md"]
    exclude: list[str] = []
    glossary_path: str | None = "GLOSSARY.md"
    progress_issue: int | None = None

    @field_validator("upstream", "fork")
    @classmethod
    def _check_repo_id(cls, v: str | None) -> str | None:
        if v is None:
            return v
        parts = v.split("/")
        if len(parts) != 2 or not parts[0] or not parts[1]:
            raise ValueError(f"expected 'owner/repo', got {v!r}")
        return v


class TranslationConfig(BaseModel):
    source_language: str = "en"
    target_language: str = "pt"
    batch_size: int = Field(default=10, ge=1)
    max_consecutive_failures: int = Field(default=5, ge=1)
    branch_prefix: str = "translate/"
    branch_strip_segments: int = Field(default=2, ge=0)
    recreate_stale_branches: bool = True
    sync_fork: bool = True


class ChunkingConfig(BaseModel):
    model_limit_tokens: int = 4000
    system_prompt_reserve: int = 1000
    chunk_token_buffer: int = 500
    chunk_overlap: int = 200
    chars_per_token: float = 3.5
    tokenizer_model: str = "gpt-4o"


class CacheConfig(BaseModel):
    path: str = ".docs-translator/cache.db"
    ttl_seconds: int = 3600
    min_confidence: float = Field(default=0.8, ge=0.0, le=1.0)


class DiscoveryConfig(BaseModel):
    fetch_batch_size: int = Field(default=10, ge=1)


class TranslatorConfig(BaseModel):
    llm: LLMConfig = Field(default_factory=LLMConfig)
    vcs: VCSConfig = Field(default_factory=VCSConfig)
    translation: TranslationConfig = Field(default_factory=TranslationConfig)
    chunking: ChunkingConfig = Field(default_factory=ChunkingConfig)
    cache: CacheConfig = Field(default_factory=CacheConfig)
    discovery: DiscoveryConfig = Field(default_factory=DiscoveryConfig)
    log_level: Literal["debug", "info", "warn", "error"] = "info"
    log_format: Literal["text", "json"] = "text"
