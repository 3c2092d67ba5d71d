"""Pydantic models for a pipeline run."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from docs_translator.vcs.models import (
    BranchRef,
    PullRequestInfo,
    PullRequestStatus,
    TranslationFile,
)


class InvalidPRRecord(BaseModel):
    """An open PR covering a file that cannot be merged as-is."""

    pr_number: int
    status: PullRequestStatus


class ProcessedFileResult(BaseModel):
    """Outcome of one file's branch -> translate -> commit -> PR workflow.

    Fields fill in as steps complete. On failure ``error`` is set and the
    partial branch/translation are kept for the report.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True)

    filename: str
    path: str
    branch: BranchRef | None = None
    translation: str | None = None
    pull_request: PullRequestInfo | None = None
    error: Exception | None = None
    skipped: bool = False
    elapsed_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.error is None and not self.skipped and self.pull_request is not None


class DiscoveryStats(BaseModel):
    total: int = 0
    duplicates: int = 0
    cached_translated: int = 0
    valid_open_prs: int = 0
    invalid_open_prs: int = 0
    status_check_errors: int = 0
    missing_identity: int = 0
    fetch_failures: int = 0
    fetched: int = 0
    already_translated: int = 0
    to_translate: int = 0


class DiscoveryResult(BaseModel):
    files_to_translate: list[TranslationFile] = Field(default_factory=list)
    invalid_prs_by_file: dict[str, InvalidPRRecord] = Field(default_factory=dict)
    stats: DiscoveryStats = Field(default_factory=DiscoveryStats)


class RunStatistics(BaseModel):
    """Summary printed at the end of a run."""

    discovery: DiscoveryStats = Field(default_factory=DiscoveryStats)
    results: list[ProcessedFileResult] = Field(default_factory=list)
    elapsed_seconds: float = 0.0
    input_tokens: int = 0
    output_tokens: int = 0
    candidates: list[str] = Field(default_factory=list)
    cancelled: bool = False
    cleaned_branches: list[str] = Field(default_factory=list)

    @property
    def successes(self) -> list[ProcessedFileResult]:
        return [r for r in self.results if r.succeeded]

    @property
    def failures(self) -> list[ProcessedFileResult]:
        return [r for r in self.results if r.error is not None]

    @property
    def success_rate(self) -> float:
        attempted = len(self.successes) + len(self.failures)
        return len(self.successes) / attempted if attempted else 0.0
