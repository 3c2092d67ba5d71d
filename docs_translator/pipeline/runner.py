"""One end-to-end translation run."""

from __future__ import annotations

import logging
import time

from docs_translator.cache import LanguageCache
from docs_translator.config.models import TranslatorConfig
from docs_translator.errors import InitializationError, ResourceLoadError, VCSError
from docs_translator.llm import create_llm_provider
from docs_translator.llm.base import LLMProvider
from docs_translator.pipeline.branches import BranchManager
from docs_translator.pipeline.discovery import FileDiscovery, filter_tree
from docs_translator.pipeline.executor import CancellationToken, TranslationBatchExecutor
from docs_translator.pipeline.models import DiscoveryResult, RunStatistics
from docs_translator.pipeline.reporting import build_results_comment
from docs_translator.translator.chunker import ContentChunker
from docs_translator.translator.language import LanguageDetector
from docs_translator.translator.translator import Translator
from docs_translator.vcs import create_provider
from docs_translator.vcs.base import VCSProvider
from docs_translator.vcs.models import RepositoryFile

logger = logging.getLogger(__name__)


class Runner:
    """Wires the services together and runs the pipeline once.

    Order: connectivity and permission checks, fork sync, tree and
    glossary loading, discovery, batch execution, cleanup if cancelled,
    progress comment.
    """

    def __init__(
        self,
        config: TranslatorConfig,
        vcs: VCSProvider,
        llm: LLMProvider,
        cache: LanguageCache,
        *,
        cancellation: CancellationToken | None = None,
    ) -> None:
        self.config = config
        self.vcs = vcs
        self.cache = cache
        self.cancellation = cancellation or CancellationToken()
        self.upstream = config.vcs.upstream
        self.head_repo = config.vcs.fork or config.vcs.upstream
        self.base_branch = config.vcs.base_branch
        self.login: str | None = None
        self.translator = Translator(
            llm,
            ContentChunker.from_config(config.chunking),
            source_language=config.translation.source_language,
            target_language=config.translation.target_language,
        )

    @classmethod
    def from_config(
        cls, config: TranslatorConfig, *, cancellation: CancellationToken | None = None
    ) -> Runner:
        """Build a runner with real providers. Raises ValueError on missing credentials."""
        return cls(
            config,
            create_provider(config.vcs),
            create_llm_provider(config.llm),
            LanguageCache(
                config.cache.path,
                ttl_seconds=config.cache.ttl_seconds,
                min_confidence=config.cache.min_confidence,
            ),
            cancellation=cancellation,
        )

    # -- setup -----------------------------------------------------------------

    async def initialize(self) -> None:
        """Check LLM access, token permissions and fork freshness.

        Raises:
            InitializationError: any check fails.
        """
        if not await self.translator.test_connectivity():
            raise InitializationError("LLM connectivity check failed", operation="initialize")

        try:
            self.login = await self.vcs.get_authenticated_user()
            upstream = await self.vcs.get_repository(self.upstream)
            head = upstream if self.head_repo == self.upstream else await self.vcs.get_repository(self.head_repo)
        except VCSError as e:
            raise InitializationError(
                f"cannot access repositories: {e}", operation="verify_permissions", status_code=e.status_code
            ) from e
        if not head.can_push:
            raise InitializationError(
                f"token for {self.login} cannot push to {self.head_repo}",
                operation="verify_permissions",
            )
        self.base_branch = self.base_branch or upstream.default_branch
        logger.info("Authenticated as %s; publishing from %s to %s", self.login, self.head_repo, self.upstream)

        if self.head_repo != self.upstream and self.config.translation.sync_fork:
            await self._sync_fork()

    async def _sync_fork(self) -> None:
        try:
            upstream_head = await self.vcs.get_branch(self.upstream, self.base_branch)
            fork_head = await self.vcs.get_branch(self.head_repo, self.base_branch)
            if upstream_head is not None and fork_head is not None and upstream_head.sha == fork_head.sha:
                logger.debug("Fork %s is up to date", self.head_repo)
                return
            logger.info("Syncing fork %s with %s", self.head_repo, self.upstream)
            await self.vcs.sync_fork(self.head_repo, self.base_branch)
        except VCSError as e:
            raise InitializationError(
                f"fork sync failed: {e}", operation="sync_fork", status_code=e.status_code
            ) from e

    async def load_tree(self) -> list[RepositoryFile]:
        try:
            tree = await self.vcs.get_tree(self.head_repo, self.base_branch)
        except VCSError as e:
            raise ResourceLoadError(f"cannot load repository tree: {e}", operation="load_tree") from e
        files = filter_tree(tree, self.config.vcs.include, self.config.vcs.exclude)
        logger.info("Tree has %d blobs, %d match the docs filter", len(tree), len(files))
        return files

    async def load_glossary(self) -> str | None:
        path = self.config.vcs.glossary_path
        if not path:
            return None
        try:
            glossary = await self.vcs.get_file_content(self.upstream, path, self.base_branch)
        except VCSError as e:
            raise ResourceLoadError(f"cannot load glossary {path}: {e}", operation="load_glossary") from e
        if glossary is None:
            logger.info("No glossary at %s, translating without one", path)
        else:
            logger.info("Loaded glossary %s (%d chars)", path, len(glossary))
        return glossary

    # -- run -------------------------------------------------------------------

    async def discover(self, tree: list[RepositoryFile]) -> DiscoveryResult:
        discovery = FileDiscovery(
            self.vcs,
            self.cache,
            LanguageDetector(
                self.config.translation.source_language,
                self.config.translation.target_language,
            ),
            content_repo=self.head_repo,
            pr_repo=self.upstream,
            target_language=self.config.translation.target_language,
            fetch_batch_size=self.config.discovery.fetch_batch_size,
            own_logins=[self.login or "", self.head_repo.split("/")[0]],
        )
        return await discovery.discover(tree)

    async def run(self, *, dry_run: bool = False) -> RunStatistics:
        started = time.monotonic()
        await self.initialize()
        tree = await self.load_tree()
        self.translator.glossary = await self.load_glossary()

        discovered = await self.discover(tree)
        stats = RunStatistics(
            discovery=discovered.stats,
            candidates=[f.path for f in discovered.files_to_translate],
        )
        if dry_run or not discovered.files_to_translate:
            stats.elapsed_seconds = time.monotonic() - started
            return stats

        branches = BranchManager(
            self.vcs,
            upstream=self.upstream,
            head_repo=self.head_repo,
            base_branch=self.base_branch,
            branch_prefix=self.config.translation.branch_prefix,
            strip_segments=self.config.translation.branch_strip_segments,
            recreate_stale_branches=self.config.translation.recreate_stale_branches,
        )
        executor = TranslationBatchExecutor(
            self.vcs,
            self.translator,
            branches,
            target_language=self.config.translation.target_language,
            invalid_prs=discovered.invalid_prs_by_file,
            max_consecutive_failures=self.config.translation.max_consecutive_failures,
            cancellation=self.cancellation,
        )
        stats.results = await executor.process_batches(
            discovered.files_to_translate, self.config.translation.batch_size
        )

        if self.cancellation.cancelled:
            stats.cancelled = True
            stats.cleaned_branches = await branches.cleanup()

        await self._post_progress(stats)
        stats.input_tokens = self.translator.usage.input_tokens
        stats.output_tokens = self.translator.usage.output_tokens
        stats.elapsed_seconds = time.monotonic() - started
        logger.info(
            "Run finished: %d succeeded, %d failed (%.0f%%) in %.1fs",
            len(stats.successes),
            len(stats.failures),
            stats.success_rate * 100,
            stats.elapsed_seconds,
        )
        return stats

    async def _post_progress(self, stats: RunStatistics) -> None:
        issue = self.config.vcs.progress_issue
        if issue is None or not stats.successes:
            return
        comment = build_results_comment(
            stats.successes, strip_segments=self.config.translation.branch_strip_segments
        )
        try:
            await self.vcs.create_comment(self.upstream, issue, comment)
        except VCSError as e:
            logger.warning("Could not comment on progress issue #%d: %s", issue, e)
