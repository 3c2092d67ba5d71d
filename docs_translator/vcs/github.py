"""GitHub VCS provider using PyGithub."""

from __future__ import annotations

import asyncio
import base64
import logging
import os
from collections.abc import Callable
from functools import cached_property
from typing import TypeVar

import requests
from github import Auth, Github, GithubException, UnknownObjectException
from github.Repository import Repository

from docs_translator.errors import map_github_error, map_transport_error
from docs_translator.vcs.base import VCSProvider
from docs_translator.vcs.models import (
    BranchRef,
    PullRequestInfo,
    PullRequestStatus,
    RepositoryFile,
    RepositoryInfo,
)

logger = logging.getLogger(__name__)

T = TypeVar("T")


class GitHubProvider(VCSProvider):
    """GitHub implementation of VCSProvider using PyGithub.

    PyGithub is synchronous, so all blocking calls are wrapped
    with asyncio.to_thread() to avoid blocking the event loop.
    Every GithubException and requests transport error is re-raised as a
    classified VCSError.
    """

    def __init__(self, token: str | None = None, timeout: int = 30):
        self._token = token or os.environ.get("GITHUB_TOKEN", "")
        if not self._token:
            raise ValueError(
                "GitHub token required. Pass token= or set GITHUB_TOKEN env var."
            )
        self._timeout = timeout

    @cached_property
    def _client(self) -> Github:
        auth = Auth.Token(self._token)
        return Github(auth=auth, timeout=self._timeout)

    def _get_repo(self, repo_id: str) -> Repository:
        """Get a PyGithub Repository object by 'owner/repo' identifier."""
        return self._client.get_repo(repo_id)

    async def _run(self, operation: str, fn: Callable[[], T], **context: object) -> T:
        def _sync() -> T:
            try:
                return fn()
            except GithubException as e:
                raise map_github_error(e, operation, **context) from e
            except requests.RequestException as e:
                raise map_transport_error(e, operation, **context) from e

        return await asyncio.to_thread(_sync)

    @staticmethod
    def _to_pr_info(pr) -> PullRequestInfo:
        return PullRequestInfo(
            number=pr.number,
            title=pr.title or "",
            url=pr.html_url or "",
            head_ref=pr.head.ref if pr.head else "",
            author=pr.user.login if pr.user else None,
        )

    # -- repository -----------------------------------------------------------

    async def get_authenticated_user(self) -> str:
        return await self._run(
            "get_authenticated_user", lambda: self._client.get_user().login
        )

    async def get_repository(self, repo_id: str) -> RepositoryInfo:
        def _sync() -> RepositoryInfo:
            repo = self._get_repo(repo_id)
            permissions = repo.permissions
            return RepositoryInfo(
                full_name=repo.full_name,
                default_branch=repo.default_branch,
                can_push=bool(permissions and permissions.push),
                parent=repo.parent.full_name if repo.fork and repo.parent else None,
            )

        return await self._run("get_repository", _sync, repo=repo_id)

    async def sync_fork(self, repo_id: str, branch: str) -> None:
        def _sync() -> None:
            merged = self._get_repo(repo_id).merge_upstream(branch)
            logger.info(
                "Fork %s synced (%s): %s", repo_id, merged.merge_type, merged.message
            )

        await self._run("sync_fork", _sync, repo=repo_id, branch=branch)

    async def get_tree(self, repo_id: str, ref: str) -> list[RepositoryFile]:
        def _sync() -> list[RepositoryFile]:
            tree = self._get_repo(repo_id).get_git_tree(ref, recursive=True)
            return [
                RepositoryFile(path=el.path, sha=el.sha, size=el.size)
                for el in tree.tree
                if el.type == "blob"
            ]

        return await self._run("get_tree", _sync, repo=repo_id, ref=ref)

    async def get_blob_content(self, repo_id: str, sha: str) -> str:
        def _sync() -> str:
            blob = self._get_repo(repo_id).get_git_blob(sha)
            if blob.encoding == "base64":
                return base64.b64decode(blob.content).decode("utf-8")
            return blob.content

        return await self._run("get_blob_content", _sync, repo=repo_id, sha=sha)

    async def get_file_content(
        self, repo_id: str, path: str, ref: str | None = None
    ) -> str | None:
        def _sync() -> str | None:
            repo = self._get_repo(repo_id)
            try:
                content = repo.get_contents(path, ref=ref or repo.default_branch)
            except UnknownObjectException:
                return None
            if isinstance(content, list):
                raise ValueError(f"Path '{path}' is a directory, not a file.")
            return content.decoded_content.decode()

        return await self._run("get_file_content", _sync, repo=repo_id, path=path)

    # -- branches -------------------------------------------------------------

    async def get_branch(self, repo_id: str, name: str) -> BranchRef | None:
        def _sync() -> BranchRef | None:
            try:
                ref = self._get_repo(repo_id).get_git_ref(f"heads/{name}")
            except UnknownObjectException:
                return None
            return BranchRef(name=name, sha=ref.object.sha)

        return await self._run("get_branch", _sync, repo=repo_id, branch=name)

    async def create_branch(self, repo_id: str, name: str, base_branch: str) -> BranchRef:
        def _sync() -> BranchRef:
            repo = self._get_repo(repo_id)
            base = repo.get_git_ref(f"heads/{base_branch}")
            repo.create_git_ref(f"refs/heads/{name}", base.object.sha)
            return BranchRef(name=name, sha=base.object.sha)

        return await self._run("create_branch", _sync, repo=repo_id, branch=name)

    async def delete_branch(self, repo_id: str, name: str) -> None:
        def _sync() -> None:
            try:
                self._get_repo(repo_id).get_git_ref(f"heads/{name}").delete()
            except UnknownObjectException:
                logger.debug("Branch %s already gone from %s", name, repo_id)

        await self._run("delete_branch", _sync, repo=repo_id, branch=name)

    async def is_branch_behind(self, repo_id: str, branch: str, base_branch: str) -> bool:
        def _sync() -> bool:
            comparison = self._get_repo(repo_id).compare(base_branch, branch)
            return comparison.behind_by > 0

        return await self._run("is_branch_behind", _sync, repo=repo_id, branch=branch)

    async def commit_file(
        self,
        repo_id: str,
        branch: str,
        path: str,
        content: str,
        sha: str | None,
        message: str,
    ) -> str:
        def _sync() -> str:
            repo = self._get_repo(repo_id)
            if sha is None:
                return repo.create_file(path, message, content, branch=branch)["commit"].sha
            try:
                result = repo.update_file(path, message, content, sha, branch=branch)
            except GithubException as e:
                if e.status != 409:
                    raise
                # The branch already carries an earlier commit of this file.
                current = repo.get_contents(path, ref=branch)
                logger.info("Retrying commit of %s on %s with branch SHA", path, branch)
                result = repo.update_file(path, message, content, current.sha, branch=branch)
            return result["commit"].sha

        return await self._run("commit_file", _sync, repo=repo_id, path=path, branch=branch)

    # -- pull requests --------------------------------------------------------

    async def list_open_pull_requests(self, repo_id: str) -> list[PullRequestInfo]:
        def _sync() -> list[PullRequestInfo]:
            pulls = self._get_repo(repo_id).get_pulls(state="open")
            return [self._to_pr_info(pr) for pr in pulls]

        return await self._run("list_open_pull_requests", _sync, repo=repo_id)

    async def list_pull_request_files(self, repo_id: str, number: int) -> list[str]:
        def _sync() -> list[str]:
            pr = self._get_repo(repo_id).get_pull(number)
            return [f.filename for f in pr.get_files()]

        return await self._run("list_pull_request_files", _sync, repo=repo_id, pr=number)

    async def find_pull_request(
        self, repo_id: str, head_branch: str, head_owner: str
    ) -> PullRequestInfo | None:
        def _sync() -> PullRequestInfo | None:
            pulls = self._get_repo(repo_id).get_pulls(
                state="open", head=f"{head_owner}:{head_branch}"
            )
            for pr in pulls:
                return self._to_pr_info(pr)
            return None

        return await self._run("find_pull_request", _sync, repo=repo_id, branch=head_branch)

    async def get_pull_request_status(self, repo_id: str, number: int) -> PullRequestStatus:
        def _sync() -> PullRequestStatus:
            pr = self._get_repo(repo_id).get_pull(number)
            return PullRequestStatus.from_mergeability(
                pr.mergeable,
                pr.mergeable_state,
                created_by=pr.user.login if pr.user else None,
            )

        return await self._run("get_pull_request_status", _sync, repo=repo_id, pr=number)

    async def create_pull_request(
        self,
        repo_id: str,
        *,
        title: str,
        body: str,
        head: str,
        base: str,
    ) -> PullRequestInfo:
        def _sync() -> PullRequestInfo:
            repo = self._get_repo(repo_id)
            pr = repo.create_pull(
                title=title,
                body=body,
                head=head,
                base=base,
                maintainer_can_modify=":" in head,
            )
            return self._to_pr_info(pr)

        return await self._run("create_pull_request", _sync, repo=repo_id, head=head)

    async def close_pull_request(self, repo_id: str, number: int) -> None:
        await self._run(
            "close_pull_request",
            lambda: self._get_repo(repo_id).get_pull(number).edit(state="closed"),
            repo=repo_id,
            pr=number,
        )

    async def create_comment(self, repo_id: str, number: int, body: str) -> None:
        await self._run(
            "create_comment",
            lambda: self._get_repo(repo_id).get_issue(number).create_comment(body),
            repo=repo_id,
            number=number,
        )
