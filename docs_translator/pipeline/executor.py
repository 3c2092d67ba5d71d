"""Batched, circuit-broken execution of the per-file translation workflow."""

from __future__ import annotations

import asyncio
import logging
import time

from docs_translator.errors import CircuitOpenError, TranslatorError
from docs_translator.llm.models import LLMError
from docs_translator.pipeline.branches import BranchManager
from docs_translator.pipeline.models import InvalidPRRecord, ProcessedFileResult
from docs_translator.pipeline.reporting import (
    build_commit_message,
    build_pr_body,
    build_pr_title,
)
from docs_translator.translator.translator import Translator
from docs_translator.vcs.base import VCSProvider
from docs_translator.vcs.models import TranslationFile

logger = logging.getLogger(__name__)


class CancellationToken:
    """Cooperative stop flag, set from a signal handler."""

    def __init__(self) -> None:
        self._cancelled = False
        self.reason: str | None = None

    def cancel(self, reason: str = "cancelled") -> None:
        if not self._cancelled:
            logger.warning("Stopping after in-flight files finish (%s)", reason)
        self._cancelled = True
        self.reason = reason

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class TranslationBatchExecutor:
    """Runs branch -> translate -> commit -> PR for each file.

    Files run concurrently within a batch; batches run in order. After
    ``max_consecutive_failures`` failures in a row, files fail fast with
    ``CircuitOpenError`` until a success resets the count.
    """

    def __init__(
        self,
        vcs: VCSProvider,
        translator: Translator,
        branches: BranchManager,
        *,
        target_language: str,
        invalid_prs: dict[str, InvalidPRRecord] | None = None,
        max_consecutive_failures: int = 5,
        cancellation: CancellationToken | None = None,
    ) -> None:
        self.vcs = vcs
        self.translator = translator
        self.branches = branches
        self.target_language = target_language
        self.invalid_prs = invalid_prs or {}
        self.max_consecutive_failures = max_consecutive_failures
        self.cancellation = cancellation or CancellationToken()
        self.consecutive_failures = 0
        self.completed = 0
        self.failed = 0

    @property
    def circuit_open(self) -> bool:
        return self.consecutive_failures >= self.max_consecutive_failures

    async def process_batches(
        self, files: list[TranslationFile], batch_size: int
    ) -> list[ProcessedFileResult]:
        batches = [files[i : i + batch_size] for i in range(0, len(files), batch_size)]
        results: list[ProcessedFileResult] = []
        for index, batch in enumerate(batches, start=1):
            if self.cancellation.cancelled:
                logger.info("Not starting batch %d/%d: run cancelled", index, len(batches))
                break
            batch_results = await asyncio.gather(*(self.process_file(f) for f in batch))
            results.extend(batch_results)
            logger.info(
                "Batch %d/%d done: %d/%d files processed, %d failed",
                index,
                len(batches),
                self.completed + self.failed,
                len(files),
                self.failed,
            )
        return results

    async def process_file(self, file: TranslationFile) -> ProcessedFileResult:
        result = ProcessedFileResult(filename=file.filename, path=file.path)
        if self.cancellation.cancelled:
            result.skipped = True
            return result

        if self.circuit_open:
            result.error = CircuitOpenError(
                self.consecutive_failures,
                self.max_consecutive_failures,
                metadata={"path": file.path},
            )
            self.failed += 1
            logger.warning("Skipping %s: %s", file.path, result.error)
            return result

        started = time.monotonic()
        step = "create_or_get_branch"
        try:
            result.branch = await self.branches.create_or_get_branch(file)

            step = "translate"
            result.translation = await self.translator.translate_content(file)

            step = "commit"
            await self.vcs.commit_file(
                self.branches.head_repo,
                result.branch.name,
                file.path,
                result.translation,
                file.sha,
                build_commit_message(file, self.target_language),
            )

            step = "pull_request"
            body = build_pr_body(
                file,
                result,
                target_language=self.target_language,
                invalid_pr=self.invalid_prs.get(file.path),
                elapsed_seconds=time.monotonic() - started,
            )
            result.pull_request = await self.branches.create_or_update_pull_request(
                result.branch.name, build_pr_title(file, self.target_language), body
            )
        except Exception as e:
            result.error = self._classify(e, step, file)
            self.consecutive_failures += 1
            self.failed += 1
            logger.error("Failed %s at %s: %s", file.path, step, result.error)
            await self._discard_branch(result)
        else:
            self.consecutive_failures = 0
            self.completed += 1
            logger.info("Translated %s -> PR #%d", file.path, result.pull_request.number)
        finally:
            result.elapsed_seconds = time.monotonic() - started
        return result

    @staticmethod
    def _classify(error: Exception, step: str, file: TranslationFile) -> Exception:
        if isinstance(error, (TranslatorError, LLMError)):
            return error
        wrapped = TranslatorError(str(error) or type(error).__name__, operation=step, metadata={"path": file.path})
        wrapped.__cause__ = error
        return wrapped

    async def _discard_branch(self, result: ProcessedFileResult) -> None:
        """Delete a branch created for this file in this run, if any."""
        if result.branch is None or result.branch.name not in self.branches.active_branches:
            return
        try:
            await self.branches.delete_branch(result.branch.name)
        except TranslatorError as e:
            logger.warning("Could not delete branch %s after failure: %s", result.branch.name, e)
