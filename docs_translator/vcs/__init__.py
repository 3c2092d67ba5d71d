"""VCS providers for the translation pipeline."""

import os

from docs_translator.config.models import VCSConfig
from docs_translator.vcs.base import VCSProvider
from docs_translator.vcs.github import GitHubProvider
from docs_translator.vcs.models import (
    BranchRef,
    PullRequestInfo,
    PullRequestStatus,
    RepositoryFile,
    RepositoryInfo,
    TranslationFile,
)


def create_provider(config: VCSConfig) -> VCSProvider:
    """Create a VCS provider from config.

    Resolves the token from the environment variable named in config.token_env.
    """
    if config.provider != "github":
        raise ValueError(
            f"Unsupported VCS provider: {config.provider!r}. "
            "Currently only 'github' is supported."
        )
    token = os.environ.get(config.token_env, "")
    if not token:
        raise ValueError(
            f"VCS token not found. Set the {config.token_env} environment variable."
        )
    return GitHubProvider(token=token, timeout=config.timeout)


__all__ = [
    "BranchRef",
    "GitHubProvider",
    "PullRequestInfo",
    "PullRequestStatus",
    "RepositoryFile",
    "RepositoryInfo",
    "TranslationFile",
    "VCSProvider",
    "create_provider",
]
