"""Markdown rendering for pull request bodies and the progress comment."""

from __future__ import annotations

from collections import defaultdict
from datetime import UTC, datetime

from docs_translator.pipeline.models import InvalidPRRecord, ProcessedFileResult
from docs_translator.translator.language import language_name
from docs_translator.vcs.models import TranslationFile

COMMENT_PREFIX = "The following pages were translated and pull requests were opened:"
COMMENT_SUFFIX = """\
###### Notes

- Translations are machine-generated and need human review for accuracy and fluency.
- Some files may already have translation PRs under review. Duplicates were checked, but please double-check.\
"""


def format_size(size: int) -> str:
    if size < 1024:
        return f"{size} B"
    return f"{size / 1024:.1f} KB"


def format_elapsed(seconds: float) -> str:
    if seconds < 60:
        return f"{seconds:.0f}s"
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}m {secs}s"


def build_pr_title(file: TranslationFile, target_language: str) -> str:
    return f"Translate `{file.filename}` to {language_name(target_language)}"


def build_commit_message(file: TranslationFile, target_language: str) -> str:
    return f"docs: translate `{file.path}` to {language_name(target_language)}"


def _conflict_notice(invalid_pr: InvalidPRRecord | None) -> str:
    if invalid_pr is None:
        return ""
    return (
        "\n> [!IMPORTANT]\n"
        f"> **Existing PR detected**: this file already has an open PR (#{invalid_pr.pr_number}) "
        f"that cannot be merged (`{invalid_pr.status.mergeable_state}`).\n>\n"
        "> This PR carries a fresh translation. Maintainers can decide which one to merge.\n"
    )


def build_pr_body(
    file: TranslationFile,
    result: ProcessedFileResult,
    *,
    target_language: str,
    invalid_pr: InvalidPRRecord | None = None,
    elapsed_seconds: float = 0.0,
) -> str:
    """PR description with size stats and, when present, a stale-PR note."""
    source_size = len(file.content.encode())
    translation_size = len((result.translation or "").encode())
    ratio = translation_size / source_size if source_size else 0.0
    branch_ref = result.branch.ref if result.branch else "unknown"

    return f"""\
This PR contains an automated translation of the referenced page to **{language_name(target_language)}**.
{_conflict_notice(invalid_pr)}
> [!IMPORTANT]
> This translation was generated with an LLM and **requires human review** for accuracy, tone and terminology.

<details>
<summary>Details</summary>

| Metric | Value |
|--------|-------|
| **Source size** | {format_size(source_size)} |
| **Translation size** | {format_size(translation_size)} |
| **Content ratio** | {ratio:.2f}x |
| **File path** | `{file.path}` |
| **Processing time** | ~{format_elapsed(elapsed_seconds)} |

- **Generated**: {datetime.now(UTC).date().isoformat()}
- **Branch**: `{branch_ref}`

</details>"""


def build_results_comment(results: list[ProcessedFileResult], strip_segments: int = 2) -> str:
    """Group successful results by directory for the progress issue."""
    groups: dict[str, list[ProcessedFileResult]] = defaultdict(list)
    for result in results:
        if result.pull_request is None:
            continue
        parts = result.path.split("/")[strip_segments:-1]
        groups["/".join(parts)].append(result)

    lines = []
    for directory in sorted(groups):
        if directory:
            lines.append(f"- `{directory}`")
        indent = "  " if directory else ""
        for result in sorted(groups[directory], key=lambda r: r.filename):
            lines.append(f"{indent}- `{result.filename}`: #{result.pull_request.number}")

    return f"{COMMENT_PREFIX}\n\n" + "\n".join(lines) + f"\n\n{COMMENT_SUFFIX}"
