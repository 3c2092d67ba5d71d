"""Shared test fixtures for docs-translator."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from unittest.mock import AsyncMock, MagicMock

import pytest

from docs_translator.config.models import TranslatorConfig
from docs_translator.errors import VCSError
from docs_translator.llm.base import LLMProvider
from docs_translator.llm.models import LLMConfig as LLMRuntimeConfig, LLMResponse, TokenUsage
from docs_translator.vcs.base import VCSProvider
from docs_translator.vcs.models import (
    BranchRef,
    PullRequestInfo,
    PullRequestStatus,
    RepositoryFile,
    RepositoryInfo,
    TranslationFile,
)

UPSTREAM = "acme/docs"
FORK = "bot/docs"


@dataclass
class FakePR:
    number: int
    head_owner: str
    head_ref: str
    author: str
    files: list[str] = field(default_factory=list)
    mergeable: bool | None = True
    mergeable_state: str = "clean"
    open: bool = True
    title: str = ""
    body: str = ""


class FakeVCSProvider(VCSProvider):
    """In-memory hosting platform that counts every call."""

    def __init__(self, login: str = "bot") -> None:
        self.login = login
        self.calls: Counter[str] = Counter()
        self.repos: dict[str, RepositoryInfo] = {
            UPSTREAM: RepositoryInfo(full_name=UPSTREAM, default_branch="main", can_push=False),
            FORK: RepositoryInfo(full_name=FORK, default_branch="main", can_push=True, parent=UPSTREAM),
        }
        self.branches: dict[tuple[str, str], str] = {
            (UPSTREAM, "main"): "base-sha",
            (FORK, "main"): "base-sha",
        }
        self.behind: set[str] = set()
        self.prs: dict[int, FakePR] = {}
        self.blobs: dict[str, str] = {}
        self.files: dict[tuple[str, str], str] = {}
        self.tree: list[RepositoryFile] = []
        self.commits: list[tuple[str, str, str]] = []
        self.comments: list[tuple[int, str]] = []
        self.fail: dict[str, Exception] = {}
        self._next_pr = 100

    def _hit(self, name: str) -> None:
        self.calls[name] += 1
        if name in self.fail:
            raise self.fail[name]

    def add_pr(self, **kwargs) -> FakePR:
        pr = FakePR(**kwargs)
        self.prs[pr.number] = pr
        return pr

    @property
    def open_prs(self) -> list[FakePR]:
        return [pr for pr in self.prs.values() if pr.open]

    async def get_authenticated_user(self) -> str:
        self._hit("get_authenticated_user")
        return self.login

    async def get_repository(self, repo_id: str) -> RepositoryInfo:
        self._hit("get_repository")
        return self.repos[repo_id]

    async def sync_fork(self, repo_id: str, branch: str) -> None:
        self._hit("sync_fork")
        self.branches[(repo_id, branch)] = self.branches[(UPSTREAM, branch)]

    async def get_tree(self, repo_id: str, ref: str) -> list[RepositoryFile]:
        self._hit("get_tree")
        return list(self.tree)

    async def get_blob_content(self, repo_id: str, sha: str) -> str:
        self._hit("get_blob_content")
        if sha not in self.blobs:
            raise VCSError("blob not found", operation="get_blob_content", status_code=404)
        return self.blobs[sha]

    async def get_file_content(self, repo_id, path, ref=None):
        self._hit("get_file_content")
        return self.files.get((repo_id, path))

    async def get_branch(self, repo_id: str, name: str) -> BranchRef | None:
        self._hit("get_branch")
        sha = self.branches.get((repo_id, name))
        return BranchRef(name=name, sha=sha) if sha else None

    async def create_branch(self, repo_id: str, name: str, base_branch: str) -> BranchRef:
        self._hit("create_branch")
        sha = self.branches[(repo_id, base_branch)]
        self.branches[(repo_id, name)] = sha
        self.behind.discard(name)
        return BranchRef(name=name, sha=sha)

    async def delete_branch(self, repo_id: str, name: str) -> None:
        self._hit("delete_branch")
        self.branches.pop((repo_id, name), None)

    async def is_branch_behind(self, repo_id: str, branch: str, base_branch: str) -> bool:
        self._hit("is_branch_behind")
        return branch in self.behind

    async def commit_file(self, repo_id, branch, path, content, sha, message) -> str:
        self._hit("commit_file")
        self.commits.append((branch, path, content))
        return f"commit-{len(self.commits)}"

    async def list_open_pull_requests(self, repo_id: str) -> list[PullRequestInfo]:
        self._hit("list_open_pull_requests")
        return [self._info(pr) for pr in self.open_prs]

    async def list_pull_request_files(self, repo_id: str, number: int) -> list[str]:
        self._hit("list_pull_request_files")
        pr = self.prs[number]
        committed = [path for branch, path, _ in self.commits if branch == pr.head_ref]
        return list(dict.fromkeys([*pr.files, *committed]))

    async def find_pull_request(self, repo_id, head_branch, head_owner):
        self._hit("find_pull_request")
        for pr in self.open_prs:
            if pr.head_ref == head_branch and pr.head_owner == head_owner:
                return self._info(pr)
        return None

    async def get_pull_request_status(self, repo_id: str, number: int) -> PullRequestStatus:
        self._hit("get_pull_request_status")
        pr = self.prs[number]
        return PullRequestStatus.from_mergeability(pr.mergeable, pr.mergeable_state, pr.author)

    async def create_pull_request(self, repo_id, *, title, body, head, base) -> PullRequestInfo:
        self._hit("create_pull_request")
        owner, _, branch = head.rpartition(":")
        self._next_pr += 1
        pr = self.add_pr(
            number=self._next_pr,
            head_owner=owner or repo_id.split("/")[0],
            head_ref=branch,
            author=self.login,
            title=title,
            body=body,
        )
        return self._info(pr)

    async def close_pull_request(self, repo_id: str, number: int) -> None:
        self._hit("close_pull_request")
        self.prs[number].open = False

    async def create_comment(self, repo_id: str, number: int, body: str) -> None:
        self._hit("create_comment")
        self.comments.append((number, body))

    @staticmethod
    def _info(pr: FakePR) -> PullRequestInfo:
        return PullRequestInfo(
            number=pr.number, title=pr.title, head_ref=pr.head_ref, author=pr.author
        )


def make_file(
    path: str = "src/content/learn/intro.md",
    content: str = "# Intro\n\nSome docs.\n",
    sha: str | None = "sha-intro",
) -> TranslationFile:
    return TranslationFile(path=path, sha=sha, size=len(content), content=content)


@pytest.fixture
def fake_vcs():
    return FakeVCSProvider()


@pytest.fixture
def translation_file():
    return make_file()


@pytest.fixture
def mock_llm_provider():
    provider = MagicMock(spec=LLMProvider)
    provider.config = LLMRuntimeConfig(provider="anthropic", model="test-model")
    provider.generate = AsyncMock(
        return_value=LLMResponse(
            content="# Introdução\n\nAlguma documentação.\n",
            usage=TokenUsage(input_tokens=100, output_tokens=250),
            model="test-model",
        )
    )
    return provider


@pytest.fixture
def sample_config():
    return TranslatorConfig(vcs={"upstream": UPSTREAM, "fork": FORK})
