"""Translation pipeline: discovery, branch/PR lifecycle, batch execution."""

from docs_translator.pipeline.branches import CONFLICT_COMMENT, BranchManager
from docs_translator.pipeline.discovery import FileDiscovery, filter_tree
from docs_translator.pipeline.executor import CancellationToken, TranslationBatchExecutor
from docs_translator.pipeline.models import (
    DiscoveryResult,
    DiscoveryStats,
    InvalidPRRecord,
    ProcessedFileResult,
    RunStatistics,
)
from docs_translator.pipeline.runner import Runner

__all__ = [
    "CONFLICT_COMMENT",
    "BranchManager",
    "CancellationToken",
    "DiscoveryResult",
    "DiscoveryStats",
    "FileDiscovery",
    "InvalidPRRecord",
    "ProcessedFileResult",
    "Runner",
    "RunStatistics",
    "TranslationBatchExecutor",
    "filter_tree",
]
