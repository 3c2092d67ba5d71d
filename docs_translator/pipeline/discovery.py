"""File discovery: reduce a repository tree to the files that need translating."""

from __future__ import annotations

import asyncio
import logging
import re
from collections.abc import Iterable
from functools import lru_cache

from docs_translator.cache import LanguageCache, LanguageCacheEntry
from docs_translator.errors import TranslatorError
from docs_translator.pipeline.models import DiscoveryResult, DiscoveryStats, InvalidPRRecord
from docs_translator.translator.language import LanguageDetector
from docs_translator.vcs.base import VCSProvider
from docs_translator.vcs.models import PullRequestStatus, RepositoryFile, TranslationFile

logger = logging.getLogger(__name__)


@lru_cache(maxsize=64)
def _glob_regex(pattern: str) -> re.Pattern[str]:
    """Translate a path glob where ``**`` spans directories and ``*`` does not."""
    out = []
    i = 0
    while i < len(pattern):
        if pattern.startswith("**/", i):
            out.append("(?:.*/)?")
            i += 3
        elif pattern.startswith("**", i):
            out.append(".*")
            i += 2
        elif pattern[i] == "*":
            out.append("[^/]*")
            i += 1
        elif pattern[i] == "?":
            out.append("[^/]")
            i += 1
        else:
            out.append(re.escape(pattern[i]))
            i += 1
    return re.compile("".join(out) + r"\Z")


def filter_tree(
    files: Iterable[RepositoryFile], include: list[str], exclude: list[str] | None = None
) -> list[RepositoryFile]:
    """Keep files matching any include glob and no exclude glob."""
    exclude = exclude or []
    return [
        f
        for f in files
        if any(_glob_regex(p).match(f.path) for p in include)
        and not any(_glob_regex(p).match(f.path) for p in exclude)
    ]


def _batched(items: list, size: int) -> list[list]:
    return [items[i : i + size] for i in range(0, len(items), size)]


class FileDiscovery:
    """Sequential filters from a tree listing to ``DiscoveryResult``.

    Stages: deduplicate, language cache, open pull requests, content
    fetch, language detection. Each stage sees only the previous stage's
    output.
    """

    def __init__(
        self,
        vcs: VCSProvider,
        cache: LanguageCache,
        detector: LanguageDetector,
        *,
        content_repo: str,
        pr_repo: str,
        target_language: str,
        fetch_batch_size: int = 10,
        own_logins: Iterable[str] = (),
    ) -> None:
        self.vcs = vcs
        self.cache = cache
        self.detector = detector
        self.content_repo = content_repo
        self.pr_repo = pr_repo
        self.target_language = target_language
        self.fetch_batch_size = fetch_batch_size
        self.own_logins = {login.lower() for login in own_logins if login}

    async def discover(self, tree: list[RepositoryFile]) -> DiscoveryResult:
        stats = DiscoveryStats(total=len(tree))

        candidates = self._deduplicate(tree, stats)
        candidates = self._filter_cached(candidates, stats)
        candidates, invalid = await self._filter_open_prs(candidates, stats)
        fetched = await self._fetch_contents(candidates, stats)
        to_translate = self._filter_translated(fetched, stats)

        stats.to_translate = len(to_translate)
        logger.info(
            "Discovery: %d files -> %d to translate "
            "(%d cached, %d covered by open PRs, %d already translated)",
            stats.total,
            stats.to_translate,
            stats.cached_translated,
            stats.valid_open_prs,
            stats.already_translated,
        )
        return DiscoveryResult(
            files_to_translate=to_translate, invalid_prs_by_file=invalid, stats=stats
        )

    # -- stage 1 ---------------------------------------------------------------

    def _deduplicate(
        self, files: list[RepositoryFile], stats: DiscoveryStats
    ) -> list[RepositoryFile]:
        seen: set[str] = set()
        unique = []
        for f in files:
            if f.path in seen:
                continue
            seen.add(f.path)
            unique.append(f)
        stats.duplicates = len(files) - len(unique)
        return unique

    # -- stage 2 ---------------------------------------------------------------

    def _filter_cached(
        self, files: list[RepositoryFile], stats: DiscoveryStats
    ) -> list[RepositoryFile]:
        keys = [(f.filename, f.sha) for f in files if f.sha]
        entries = self.cache.get_many(keys)
        remaining = []
        for f in files:
            entry = entries.get((f.filename, f.sha)) if f.sha else None
            if self.cache.is_translated_hit(entry, self.target_language):
                logger.debug(
                    "Skipping %s: cached as %s (confidence %.2f)",
                    f.path,
                    entry.detected_language,
                    entry.confidence,
                )
                stats.cached_translated += 1
                continue
            remaining.append(f)
        return remaining

    # -- stage 3 ---------------------------------------------------------------

    async def _pull_request_map(self) -> dict[str, tuple[int, str | None]]:
        """Map changed file path -> (PR number, PR author) over all open PRs."""
        pulls = await self.vcs.list_open_pull_requests(self.pr_repo)
        mapping: dict[str, tuple[int, str | None]] = {}

        async def _files(number: int) -> list[str]:
            try:
                return await self.vcs.list_pull_request_files(self.pr_repo, number)
            except TranslatorError as e:
                logger.warning("Could not list files of PR #%d, ignoring it: %s", number, e)
                return []

        for batch in _batched(pulls, self.fetch_batch_size):
            listings = await asyncio.gather(*(_files(pr.number) for pr in batch))
            for pr, paths in zip(batch, listings):
                for path in paths:
                    mapping.setdefault(path, (pr.number, pr.author))
        return mapping

    async def _filter_open_prs(
        self, files: list[RepositoryFile], stats: DiscoveryStats
    ) -> tuple[list[RepositoryFile], dict[str, InvalidPRRecord]]:
        pr_map = await self._pull_request_map()
        invalid: dict[str, InvalidPRRecord] = {}
        statuses: dict[int, PullRequestStatus | None] = {}

        async def _status(number: int) -> PullRequestStatus | None:
            try:
                return await self.vcs.get_pull_request_status(self.pr_repo, number)
            except TranslatorError as e:
                logger.warning("Status check for PR #%d failed, keeping file: %s", number, e)
                return None

        numbers = sorted({pr_map[f.path][0] for f in files if f.path in pr_map})
        for batch in _batched(numbers, self.fetch_batch_size):
            for number, status in zip(batch, await asyncio.gather(*map(_status, batch))):
                statuses[number] = status

        remaining = []
        for f in files:
            if f.path not in pr_map:
                remaining.append(f)
                continue
            number, author = pr_map[f.path]
            status = statuses.get(number)
            if status is None:
                stats.status_check_errors += 1
                remaining.append(f)
                continue
            if not status.needs_update:
                logger.debug("Skipping %s: covered by open PR #%d", f.path, number)
                stats.valid_open_prs += 1
                continue
            stats.invalid_open_prs += 1
            remaining.append(f)
            owner = (status.created_by or author or "").lower()
            if owner and owner in self.own_logins:
                # our own stale PR; the branch manager supersedes it
                logger.info("Own PR #%d for %s has conflicts, will be replaced", number, f.path)
                continue
            invalid[f.path] = InvalidPRRecord(pr_number=number, status=status)
            logger.info(
                "PR #%d for %s is %s, re-translating", number, f.path, status.mergeable_state
            )
        return remaining, invalid

    # -- stage 4 ---------------------------------------------------------------

    async def _fetch_contents(
        self, files: list[RepositoryFile], stats: DiscoveryStats
    ) -> list[TranslationFile]:
        valid = []
        for f in files:
            if not f.path or not f.sha:
                logger.warning("Dropping tree entry without path or sha: %r", f.path)
                stats.missing_identity += 1
                continue
            valid.append(f)

        async def _fetch(f: RepositoryFile) -> TranslationFile | None:
            try:
                content = await self.vcs.get_blob_content(self.content_repo, f.sha)
            except (TranslatorError, UnicodeDecodeError) as e:
                logger.warning("Failed to fetch %s: %s", f.path, e)
                stats.fetch_failures += 1
                return None
            return TranslationFile(path=f.path, sha=f.sha, size=f.size, content=content)

        fetched: list[TranslationFile] = []
        for batch in _batched(valid, self.fetch_batch_size):
            for item in await asyncio.gather(*map(_fetch, batch)):
                if item is not None:
                    fetched.append(item)
        stats.fetched = len(fetched)
        return fetched

    # -- stage 5 ---------------------------------------------------------------

    def _filter_translated(
        self, files: list[TranslationFile], stats: DiscoveryStats
    ) -> list[TranslationFile]:
        remaining = []
        for f in files:
            analysis = self.detector.analyze(f.content)
            if f.sha and analysis.detected_language:
                self.cache.set(
                    (f.filename, f.sha),
                    LanguageCacheEntry(
                        detected_language=analysis.detected_language,
                        confidence=analysis.confidence,
                    ),
                )
            if analysis.is_translated:
                logger.debug("Skipping %s: already %s (ratio %.2f)", f.path, self.target_language, analysis.ratio)
                stats.already_translated += 1
                continue
            remaining.append(f)
        return remaining
