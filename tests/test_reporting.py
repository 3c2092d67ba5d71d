"""Tests for PR titles, bodies and the progress comment."""

from __future__ import annotations

from docs_translator.pipeline.models import InvalidPRRecord, ProcessedFileResult
from docs_translator.pipeline.reporting import (
    COMMENT_PREFIX,
    build_commit_message,
    build_pr_body,
    build_pr_title,
    build_results_comment,
    format_elapsed,
    format_size,
)
from docs_translator.vcs.models import BranchRef, PullRequestInfo, PullRequestStatus
from tests.conftest import make_file


def _result(path: str, number: int | None) -> ProcessedFileResult:
    return ProcessedFileResult(
        filename=path.rsplit("/", 1)[-1],
        path=path,
        pull_request=PullRequestInfo(number=number) if number else None,
    )


def test_format_size():
    assert format_size(512) == "512 B"
    assert format_size(2048) == "2.0 KB"


def test_format_elapsed():
    assert format_elapsed(4.2) == "4s"
    assert format_elapsed(125) == "2m 5s"


def test_title_and_commit_message(translation_file):
    assert build_pr_title(translation_file, "pt") == "Translate `intro.md` to Portuguese"
    assert build_commit_message(translation_file, "es") == (
        "docs: translate `src/content/learn/intro.md` to Spanish"
    )


class TestBuildPRBody:
    def test_contains_stats(self, translation_file):
        result = ProcessedFileResult(
            filename="intro.md",
            path=translation_file.path,
            branch=BranchRef(name="translate/learn/intro.md", sha="x"),
            translation="# Introdução\n\nAlguma documentação.\n",
        )

        body = build_pr_body(translation_file, result, target_language="pt", elapsed_seconds=3)

        assert "**Portuguese**" in body
        assert "`src/content/learn/intro.md`" in body
        assert "`refs/heads/translate/learn/intro.md`" in body
        assert "~3s" in body
        assert "Existing PR detected" not in body

    def test_mentions_unmergeable_pr(self, translation_file):
        record = InvalidPRRecord(
            pr_number=42, status=PullRequestStatus.from_mergeability(False, "dirty")
        )
        result = ProcessedFileResult(filename="intro.md", path=translation_file.path)

        body = build_pr_body(translation_file, result, target_language="pt", invalid_pr=record)

        assert "Existing PR detected" in body
        assert "(#42)" in body
        assert "`dirty`" in body
        assert "`unknown`" in body

    def test_empty_source(self):
        file = make_file(content="")
        result = ProcessedFileResult(filename=file.filename, path=file.path)
        assert "0.00x" in build_pr_body(file, result, target_language="pt")


class TestResultsComment:
    def test_groups_by_directory(self):
        comment = build_results_comment(
            [
                _result("src/content/reference/react/useState.md", 12),
                _result("src/content/learn/b.md", 11),
                _result("src/content/learn/a.md", 10),
                _result("src/content/learn/failed.md", None),
            ]
        )

        assert comment.startswith(COMMENT_PREFIX)
        body = comment.split("\n\n")[1]
        assert body.splitlines() == [
            "- `learn`",
            "  - `a.md`: #10",
            "  - `b.md`: #11",
            "- `reference/react`",
            "  - `useState.md`: #12",
        ]
        assert "failed.md" not in comment
        assert "###### Notes" in comment

    def test_top_level_files_not_indented(self):
        comment = build_results_comment([_result("docs/index.md", 3)], strip_segments=1)
        assert "\n- `index.md`: #3\n" in comment
