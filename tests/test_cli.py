"""Tests for the docs-translator CLI."""

from __future__ import annotations

from pathlib import Path
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from typer.testing import CliRunner

from docs_translator.cache import LanguageCache, LanguageCacheEntry
from docs_translator.cli import app
from docs_translator.errors import InitializationError
from docs_translator.pipeline.models import DiscoveryStats, ProcessedFileResult, RunStatistics
from docs_translator.vcs.models import PullRequestInfo

runner = CliRunner()


@pytest.fixture(autouse=True)
def _isolate(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.setattr("pathlib.Path.home", lambda: tmp_path / "fakehome")


def _write_config(root: Path) -> Path:
    path = root / "docs-translator.yaml"
    path.write_text(
        "vcs:\n  upstream: acme/docs\n  fork: bot/docs\n"
        f"cache:\n  path: {root / 'cache.db'}\n"
    )
    return path


def _stats() -> RunStatistics:
    return RunStatistics(
        discovery=DiscoveryStats(total=3, fetched=2, to_translate=2),
        results=[
            ProcessedFileResult(
                filename="a.md", path="src/content/learn/a.md", pull_request=PullRequestInfo(number=101)
            ),
            ProcessedFileResult(
                filename="b.md", path="src/content/learn/b.md", error=RuntimeError("model down")
            ),
        ],
        candidates=["src/content/learn/a.md", "src/content/learn/b.md"],
        elapsed_seconds=12.5,
    )


# ── config ──────────────────────────────────────────────────────────


def test_config_init_writes_template(tmp_path: Path):
    result = runner.invoke(app, ["config", "init"])
    assert result.exit_code == 0
    assert (tmp_path / "docs-translator.yaml").is_file()


def test_config_init_refuses_overwrite(tmp_path: Path):
    _write_config(tmp_path)
    result = runner.invoke(app, ["config", "init"])
    assert result.exit_code == 1
    assert "already exists" in result.output


def test_config_show(tmp_path: Path):
    _write_config(tmp_path)
    result = runner.invoke(app, ["config", "show"])
    assert result.exit_code == 0
    assert "acme/docs" in result.output


def test_invalid_config_exits(tmp_path: Path):
    (tmp_path / "docs-translator.yaml").write_text("vcs:\n  upstream: nope\n")
    result = runner.invoke(app, ["config", "show"])
    assert result.exit_code == 1
    assert "Invalid config" in result.output


# ── cache ───────────────────────────────────────────────────────────


def test_cache_stats_and_clear(tmp_path: Path):
    _write_config(tmp_path)
    cache = LanguageCache(str(tmp_path / "cache.db"))
    cache.set(("a.md", "1"), LanguageCacheEntry(detected_language="pt", confidence=0.9))
    cache.close()

    result = runner.invoke(app, ["cache", "stats"])
    assert result.exit_code == 0
    assert "language:pt" in result.output

    result = runner.invoke(app, ["cache", "clear"])
    assert result.exit_code == 0
    assert "Removed 1 entries" in result.output


# ── run ─────────────────────────────────────────────────────────────


@pytest.fixture
def fake_runner():
    instance = MagicMock()
    instance.run = AsyncMock(return_value=_stats())
    with (
        patch("docs_translator.cli.Runner") as runner_cls,
        patch("docs_translator.cli.configure_logging"),
    ):
        runner_cls.from_config.return_value = instance
        yield runner_cls, instance


def test_run_prints_results(tmp_path: Path, fake_runner):
    _write_config(tmp_path)
    runner_cls, instance = fake_runner

    result = runner.invoke(app, ["run", "--batch-size", "3", "--target", "es"])

    assert result.exit_code == 0, result.output
    config = runner_cls.from_config.call_args.args[0]
    assert config.translation.batch_size == 3
    assert config.translation.target_language == "es"
    instance.run.assert_awaited_once_with(dry_run=False)
    instance.cache.close.assert_called_once()
    assert "1 succeeded" in result.output
    assert "model down" in result.output


def test_run_dry_run_skips_results(tmp_path: Path, fake_runner):
    _write_config(tmp_path)
    _, instance = fake_runner

    result = runner.invoke(app, ["run", "--dry-run"])

    assert result.exit_code == 0
    instance.run.assert_awaited_once_with(dry_run=True)
    assert "dry run" in result.output
    assert "src/content/learn/b.md" in result.output
    assert "succeeded" not in result.output


def test_run_initialization_failure_exits(tmp_path: Path, fake_runner):
    _write_config(tmp_path)
    _, instance = fake_runner
    instance.run.side_effect = InitializationError("token cannot push", operation="verify_permissions")

    result = runner.invoke(app, ["run"])

    assert result.exit_code == 1
    assert "cannot push" in result.output
    instance.cache.close.assert_called_once()


def test_run_missing_credentials_exits(tmp_path: Path):
    _write_config(tmp_path)
    with (
        patch("docs_translator.cli.Runner.from_config", side_effect=ValueError("VCS token not found")),
        patch("docs_translator.cli.configure_logging"),
    ):
        result = runner.invoke(app, ["run"])
    assert result.exit_code == 1
    assert "VCS token not found" in result.output
