"""Branch and pull request lifecycle for translated files.

Every decision is made against the remote state on each run: a branch is
reused while its PR is mergeable (or merely behind), and replaced when the
PR has conflicts.
"""

from __future__ import annotations

import logging

from docs_translator.errors import TranslatorError, VCSError
from docs_translator.vcs.base import VCSProvider
from docs_translator.vcs.models import BranchRef, PullRequestInfo, TranslationFile

logger = logging.getLogger(__name__)

CONFLICT_COMMENT = (
    "This PR has merge conflicts and is being closed. "
    "A new PR with the updated translation will be created."
)


class BranchManager:
    """Creates, reuses and replaces per-file translation branches and PRs.

    Branches live in ``head_repo`` (the fork, or upstream itself) and PRs
    are opened against ``upstream``. ``active_branches`` holds branches
    created during this run that have not yet landed in a PR.
    """

    def __init__(
        self,
        vcs: VCSProvider,
        *,
        upstream: str,
        head_repo: str,
        base_branch: str,
        branch_prefix: str = "translate/",
        strip_segments: int = 2,
        recreate_stale_branches: bool = True,
    ) -> None:
        self.vcs = vcs
        self.upstream = upstream
        self.head_repo = head_repo
        self.head_owner = head_repo.split("/")[0]
        self.base_branch = base_branch
        self.branch_prefix = branch_prefix
        self.strip_segments = strip_segments
        self.recreate_stale_branches = recreate_stale_branches
        self.active_branches: set[str] = set()

    def branch_name(self, path: str) -> str:
        """``src/content/learn/a.md`` -> ``translate/learn/a.md`` with the defaults."""
        parts = path.split("/")
        kept = parts[self.strip_segments:] if len(parts) > self.strip_segments else parts[-1:]
        return self.branch_prefix + "/".join(kept)

    def _head(self, branch: str) -> str:
        if self.head_repo == self.upstream:
            return branch
        return f"{self.head_owner}:{branch}"

    # -- branches --------------------------------------------------------------

    async def create_or_get_branch(self, file: TranslationFile) -> BranchRef:
        name = self.branch_name(file.path)
        existing = await self.vcs.get_branch(self.head_repo, name)
        if existing is None:
            return await self.create_branch(name)

        pr = await self.find_pull_request(name)
        if pr is not None:
            status = await self.vcs.get_pull_request_status(self.upstream, pr.number)
            if status.has_conflicts:
                logger.info("PR #%d on %s has conflicts, replacing it", pr.number, name)
                await self._close_with_comment(pr)
                await self.delete_branch(name)
                return await self.create_branch(name)
            logger.debug("Reusing %s with open PR #%d (%s)", name, pr.number, status.mergeable_state)
            return existing

        if self.recreate_stale_branches and await self._is_behind(name):
            logger.info("Branch %s has no PR and is behind %s, recreating", name, self.base_branch)
            await self.delete_branch(name)
            return await self.create_branch(name)

        logger.debug("Reusing existing branch %s", name)
        return existing

    async def create_branch(self, name: str) -> BranchRef:
        self.active_branches.add(name)
        try:
            branch = await self.vcs.create_branch(self.head_repo, name, self.base_branch)
        except Exception:
            self.active_branches.discard(name)
            raise
        logger.debug("Created branch %s from %s", name, self.base_branch)
        return branch

    async def delete_branch(self, name: str) -> None:
        await self.vcs.delete_branch(self.head_repo, name)
        self.active_branches.discard(name)
        logger.debug("Deleted branch %s", name)

    async def _is_behind(self, name: str) -> bool:
        try:
            return await self.vcs.is_branch_behind(self.head_repo, name, self.base_branch)
        except VCSError as e:
            logger.warning("Could not compare %s with %s, assuming up to date: %s", name, self.base_branch, e)
            return False

    # -- pull requests ---------------------------------------------------------

    async def find_pull_request(self, branch: str) -> PullRequestInfo | None:
        return await self.vcs.find_pull_request(self.upstream, branch, self.head_owner)

    async def _close_with_comment(self, pr: PullRequestInfo) -> None:
        await self.vcs.create_comment(self.upstream, pr.number, CONFLICT_COMMENT)
        await self.vcs.close_pull_request(self.upstream, pr.number)

    async def create_or_update_pull_request(
        self, branch: str, title: str, body: str
    ) -> PullRequestInfo:
        existing = await self.find_pull_request(branch)
        if existing is not None:
            status = await self.vcs.get_pull_request_status(self.upstream, existing.number)
            if not status.needs_update:
                self.active_branches.discard(branch)
                logger.debug("PR #%d already open for %s", existing.number, branch)
                return existing
            logger.info("Replacing PR #%d for %s (%s)", existing.number, branch, status.mergeable_state)
            await self._close_with_comment(existing)

        pr = await self.vcs.create_pull_request(
            self.upstream,
            title=title,
            body=body,
            head=self._head(branch),
            base=self.base_branch,
        )
        self.active_branches.discard(branch)
        logger.info("Opened PR #%d for %s", pr.number, branch)
        return pr

    # -- cancellation ----------------------------------------------------------

    async def cleanup(self) -> list[str]:
        """Delete branches from this run that have no PR or a conflicted PR.

        Best-effort: failures are logged per branch. Returns deleted names.
        """
        deleted = []
        for name in sorted(self.active_branches):
            try:
                pr = await self.find_pull_request(name)
                if pr is not None:
                    status = await self.vcs.get_pull_request_status(self.upstream, pr.number)
                    if not status.has_conflicts:
                        self.active_branches.discard(name)
                        continue
                await self.delete_branch(name)
                deleted.append(name)
            except TranslatorError as e:
                logger.warning("Cleanup of branch %s failed: %s", name, e)
        if deleted:
            logger.info("Cleaned up %d unfinished branches", len(deleted))
        return deleted
