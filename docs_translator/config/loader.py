"""YAML config loading with env var expansion."""

import os
import re
from pathlib import Path

import yaml
from pydantic import ValidationError

from .models import TranslatorConfig


def load_config(cli_path: str | None = None) -> TranslatorConfig:
    """Load config with resolution order: CLI > project-local > user-global > defaults."""
    config_paths = [
        Path(cli_path) if cli_path else None,
        Path("./docs-translator.yaml"),
        Path.home() / ".docs-translator" / "config.yaml",
    ]

    for path in config_paths:
        if path and path.exists():
            try:
                with open(path) as f:
                    raw = yaml.safe_load(f)
                if raw is None:
                    continue
                raw = _expand_env_vars(raw)
                return TranslatorConfig(**raw)
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in {path}: {e}") from e
            except ValidationError as e:
                raise ValueError(f"Invalid config in {path}: {e}") from e

    return TranslatorConfig()


def _expand_env_vars(obj: object) -> object:
    """Recursively expand ${VAR} references in strings."""
    if isinstance(obj, str):
        return re.sub(r"\$\{(\w+)\}", lambda m: os.environ.get(m.group(1), ""), obj)
    elif isinstance(obj, dict):
        return {k: _expand_env_vars(v) for k, v in obj.items()}
    elif isinstance(obj, list):
        return [_expand_env_vars(v) for v in obj]
    return obj


# Default YAML template for `docs-translator config init`
DEFAULT_CONFIG_TEMPLATE = """\
# docs-translator.yaml

# LLM Provider
llm:
  provider: "anthropic"        # anthropic | openai
  model: "claude-sonnet-4-20250514"
  api_key_env: "ANTHROPIC_API_KEY"
  max_tokens: 8192
  temperature: 0.3
  timeout: 120
  max_retries: 3

# Hosting platform
vcs:
  provider: "github"
  token_env: "GITHUB_TOKEN"
  upstream: "reactjs/react.dev"
  # fork: "your-user/react.dev"  # omit to push branches to upstream directly
  # base_branch: "main"          # defaults to the repository default branch
  timeout: 30
  include: ["src/**/*.md"]
  exclude: []
  glossary_path: "GLOSSARY.md"
  # progress_issue: 1

# Translation
translation:
  source_language: "en"
  target_language: "pt"
  batch_size: 10
  max_consecutive_failures: 5
  branch_prefix: "translate/"
  branch_strip_segments: 2     # src/content/learn/a.md -> translate/learn/a.md
  recreate_stale_branches: true
  sync_fork: true

# Chunking of large documents
chunking:
  model_limit_tokens: 4000
  system_prompt_reserve: 1000
  chunk_token_buffer: 500
  chunk_overlap: 200

# Language detection cache
cache:
  path: ".docs-translator/cache.db"
  ttl_seconds: 3600
  min_confidence: 0.8

discovery:
  fetch_batch_size: 10

# Logging
log_level: "info"              # debug | info | warn | error
log_format: "text"             # text | json
"""
