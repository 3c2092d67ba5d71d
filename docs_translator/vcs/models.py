"""Pydantic models for hosting-platform data."""

from __future__ import annotations

import re

from pydantic import BaseModel, ConfigDict, Field

_FRONTMATTER_TITLE = re.compile(r"^title:\s*['\"]?(.+?)['\"]?\s*$", re.M)
_FIRST_HEADING = re.compile(r"^#\s+(.+?)\s*#*\s*$", re.M)


class RepositoryInfo(BaseModel):
    """Repository metadata relevant to publishing translations."""

    model_config = ConfigDict(frozen=True)

    full_name: str = Field(description="owner/repo")
    default_branch: str = "main"
    can_push: bool = False
    parent: str | None = Field(default=None, description="Upstream full name when this is a fork")


class RepositoryFile(BaseModel):
    """A blob in a repository tree snapshot."""

    model_config = ConfigDict(frozen=True)

    path: str
    sha: str | None = Field(default=None, description="Git blob SHA of the content")
    size: int | None = None

    @property
    def filename(self) -> str:
        return self.path.rsplit("/", 1)[-1]


class TranslationFile(RepositoryFile):
    """A repository file with its content fetched."""

    content: str

    @property
    def title(self) -> str:
        """Document title from frontmatter or first heading, else the filename."""
        if self.content.startswith("---"):
            end = self.content.find("\n---", 3)
            match = _FRONTMATTER_TITLE.search(self.content, 0, max(end, 0))
            if match:
                return match.group(1)
        match = _FIRST_HEADING.search(self.content)
        if match:
            return match.group(1)
        return self.filename


class BranchRef(BaseModel):
    """A branch head."""

    model_config = ConfigDict(frozen=True)

    name: str
    sha: str

    @property
    def ref(self) -> str:
        return f"refs/heads/{self.name}"


class PullRequestInfo(BaseModel):
    """An open pull request."""

    model_config = ConfigDict(frozen=True)

    number: int
    title: str = ""
    url: str = ""
    head_ref: str = ""
    author: str | None = None


class PullRequestStatus(BaseModel):
    """Mergeability snapshot of a pull request. Always computed fresh."""

    model_config = ConfigDict(frozen=True)

    has_conflicts: bool
    mergeable: bool | None = None
    mergeable_state: str = "unknown"
    needs_update: bool
    created_by: str | None = None

    @classmethod
    def from_mergeability(
        cls,
        mergeable: bool | None,
        mergeable_state: str | None,
        created_by: str | None = None,
    ) -> PullRequestStatus:
        """Derive status from the platform's mergeability fields.

        Only ``mergeable is False`` together with a ``dirty`` state counts as a
        conflict. ``behind`` and a still-computing ``mergeable=None`` do not.
        """
        state = mergeable_state or "unknown"
        has_conflicts = mergeable is False and state == "dirty"
        return cls(
            has_conflicts=has_conflicts,
            mergeable=mergeable,
            mergeable_state=state,
            needs_update=has_conflicts,
            created_by=created_by,
        )
