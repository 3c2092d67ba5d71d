"""Abstract VCS interface for the translation pipeline."""

from abc import ABC, abstractmethod

from docs_translator.vcs.models import (
    BranchRef,
    PullRequestInfo,
    PullRequestStatus,
    RepositoryFile,
    RepositoryInfo,
)


class VCSProvider(ABC):
    """Abstract base class for hosting-platform providers.

    Every ``repo_id`` is in "owner/repo" format. Implementations raise
    ``docs_translator.errors.VCSError`` for API failures.
    """

    @abstractmethod
    async def get_authenticated_user(self) -> str:
        """Login of the account the token belongs to."""
        ...

    @abstractmethod
    async def get_repository(self, repo_id: str) -> RepositoryInfo:
        """Fetch repository metadata, including push permission."""
        ...

    @abstractmethod
    async def sync_fork(self, repo_id: str, branch: str) -> None:
        """Merge the upstream branch into the fork's branch of the same name."""
        ...

    @abstractmethod
    async def get_tree(self, repo_id: str, ref: str) -> list[RepositoryFile]:
        """List every blob in the tree at ``ref``, recursively."""
        ...

    @abstractmethod
    async def get_blob_content(self, repo_id: str, sha: str) -> str:
        """Fetch and decode a blob by SHA."""
        ...

    @abstractmethod
    async def get_file_content(
        self, repo_id: str, path: str, ref: str | None = None
    ) -> str | None:
        """Fetch a text file by path, or None if it does not exist.

        Args:
            repo_id: Repository identifier in "owner/repo" format.
            path: File path within the repository.
            ref: Branch or commit; the default branch when omitted.
        """
        ...

    @abstractmethod
    async def get_branch(self, repo_id: str, name: str) -> BranchRef | None:
        """Return the branch head, or None if the branch does not exist."""
        ...

    @abstractmethod
    async def create_branch(self, repo_id: str, name: str, base_branch: str) -> BranchRef:
        """Create ``name`` pointing at the current head of ``base_branch``."""
        ...

    @abstractmethod
    async def delete_branch(self, repo_id: str, name: str) -> None:
        """Delete a branch. Deleting a missing branch is not an error."""
        ...

    @abstractmethod
    async def is_branch_behind(self, repo_id: str, branch: str, base_branch: str) -> bool:
        """True when ``base_branch`` has commits that ``branch`` lacks."""
        ...

    @abstractmethod
    async def commit_file(
        self,
        repo_id: str,
        branch: str,
        path: str,
        content: str,
        sha: str | None,
        message: str,
    ) -> str:
        """Create or update a file on a branch and return the commit SHA.

        Args:
            sha: Expected blob SHA of the file being replaced.
        """
        ...

    @abstractmethod
    async def list_open_pull_requests(self, repo_id: str) -> list[PullRequestInfo]:
        """List all open pull requests."""
        ...

    @abstractmethod
    async def list_pull_request_files(self, repo_id: str, number: int) -> list[str]:
        """Paths changed by a pull request."""
        ...

    @abstractmethod
    async def find_pull_request(
        self, repo_id: str, head_branch: str, head_owner: str
    ) -> PullRequestInfo | None:
        """Find the open pull request whose head is ``head_owner:head_branch``."""
        ...

    @abstractmethod
    async def get_pull_request_status(self, repo_id: str, number: int) -> PullRequestStatus:
        """Fetch fresh mergeability for a pull request."""
        ...

    @abstractmethod
    async def create_pull_request(
        self,
        repo_id: str,
        *,
        title: str,
        body: str,
        head: str,
        base: str,
    ) -> PullRequestInfo:
        """Open a pull request. ``head`` may be "owner:branch" for forks."""
        ...

    @abstractmethod
    async def close_pull_request(self, repo_id: str, number: int) -> None:
        ...

    @abstractmethod
    async def create_comment(self, repo_id: str, number: int, body: str) -> None:
        """Comment on an issue or pull request."""
        ...
