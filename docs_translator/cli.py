"""CLI entry point for docs-translator."""

from __future__ import annotations

import asyncio
import signal
from pathlib import Path
from typing import Annotated

import typer
import yaml
from rich import print as rprint
from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from docs_translator.cache import LanguageCache
from docs_translator.config import TranslatorConfig, load_config
from docs_translator.config.loader import DEFAULT_CONFIG_TEMPLATE
from docs_translator.errors import InitializationError, ResourceLoadError
from docs_translator.log import configure_logging
from docs_translator.pipeline import CancellationToken, Runner, RunStatistics

app = typer.Typer(
    name="docs-translator",
    help="Translate a documentation repository and open one pull request per file.",
)

config_app = typer.Typer(help="Manage docs-translator configuration.")
app.add_typer(config_app, name="config")

cache_app = typer.Typer(help="Inspect the language-detection cache.")
app.add_typer(cache_app, name="cache")

# Global state
_config: TranslatorConfig | None = None
_verbose: bool = False


def _get_config() -> TranslatorConfig:
    if _config is None:
        return load_config()
    return _config


@app.callback()
def main(
    config: Annotated[
        str | None, typer.Option("--config", "-c", help="Path to docs-translator.yaml")
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Debug logging")] = False,
) -> None:
    """Global options."""
    global _config, _verbose
    try:
        _config = load_config(config)
    except ValueError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    _verbose = verbose


def _display_discovery(stats: RunStatistics) -> None:
    d = stats.discovery
    panel_text = (
        f"[dim]Tree files:[/dim]          {d.total}\n"
        f"[dim]Duplicates:[/dim]          {d.duplicates}\n"
        f"[dim]Cached translated:[/dim]   {d.cached_translated}\n"
        f"[dim]Valid open PRs:[/dim]      {d.valid_open_prs}\n"
        f"[dim]Conflicted PRs:[/dim]      {d.invalid_open_prs}\n"
        f"[dim]Fetched:[/dim]             {d.fetched}\n"
        f"[dim]Already translated:[/dim]  {d.already_translated}\n"
        f"[bold]To translate:[/bold]        {d.to_translate}"
    )
    rprint(Panel(panel_text, title="Discovery", border_style="blue"))


def _display_candidates(stats: RunStatistics) -> None:
    table = Table(title=f"Files to translate ({len(stats.candidates)})")
    table.add_column("Path", style="cyan")
    for path in stats.candidates:
        table.add_row(path)
    rprint(table)


def _display_results(stats: RunStatistics) -> None:
    table = Table(title=f"Results ({len(stats.results)} files)")
    table.add_column("File", style="cyan")
    table.add_column("Status")
    table.add_column("PR / Error")
    for r in stats.results:
        if r.succeeded:
            table.add_row(r.path, "[green]ok[/green]", f"#{r.pull_request.number}")
        elif r.skipped:
            table.add_row(r.path, "[yellow]skipped[/yellow]", "-")
        else:
            table.add_row(r.path, "[red]failed[/red]", str(r.error))
    rprint(table)
    rprint(
        f"[bold]{len(stats.successes)}[/bold] succeeded, "
        f"[bold]{len(stats.failures)}[/bold] failed, "
        f"success rate {stats.success_rate:.0%}, "
        f"{stats.input_tokens + stats.output_tokens} tokens, "
        f"{stats.elapsed_seconds:.1f}s"
    )
    if stats.cancelled:
        rprint(f"[yellow]Cancelled.[/yellow] Removed {len(stats.cleaned_branches)} unfinished branches.")


async def _run(runner: Runner, token: CancellationToken, dry_run: bool) -> RunStatistics:
    loop = asyncio.get_running_loop()
    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, token.cancel, sig.name)
        except NotImplementedError:  # Windows event loops
            pass
    return await runner.run(dry_run=dry_run)


@app.command()
def run(
    dry_run: bool = typer.Option(False, "--dry-run", help="Stop after discovery"),
    batch_size: int | None = typer.Option(None, "--batch-size", min=1, help="Files per batch"),
    target: str | None = typer.Option(None, "--target", help="Target language code"),
) -> None:
    """Discover untranslated files, translate them and open pull requests."""
    cfg = _get_config()
    if batch_size is not None:
        cfg.translation.batch_size = batch_size
    if target is not None:
        cfg.translation.target_language = target
    configure_logging(cfg.log_level, cfg.log_format, verbose=_verbose)

    rprint(
        f"[bold]Translating[/bold] {cfg.vcs.upstream} to "
        f"{cfg.translation.target_language} (provider: {cfg.llm.provider})..."
    )
    token = CancellationToken()
    try:
        runner = Runner.from_config(cfg, cancellation=token)
    except ValueError as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)

    try:
        stats = asyncio.run(_run(runner, token, dry_run))
    except (InitializationError, ResourceLoadError) as e:
        rprint(f"[red]Error:[/red] {e}")
        raise typer.Exit(1)
    finally:
        runner.cache.close()

    _display_discovery(stats)
    if dry_run:
        _display_candidates(stats)
        rprint("[yellow](dry run: no branches or PRs created)[/yellow]")
        return
    _display_results(stats)


@config_app.command("show")
def config_show() -> None:
    """Show current resolved configuration."""
    cfg = _get_config()
    rprint(Syntax(yaml.dump(cfg.model_dump(), default_flow_style=False), "yaml"))


@config_app.command("init")
def config_init(
    force: bool = typer.Option(False, "--force", help="Overwrite existing config"),
) -> None:
    """Create default docs-translator.yaml in current directory."""
    target = Path("docs-translator.yaml")
    if target.exists() and not force:
        rprint("[yellow]docs-translator.yaml already exists.[/yellow] Use --force to overwrite.")
        raise typer.Exit(1)
    target.write_text(DEFAULT_CONFIG_TEMPLATE)
    rprint(f"[green]Created[/green] {target}")


@cache_app.command("stats")
def cache_stats() -> None:
    """Show language cache statistics."""
    cfg = _get_config()
    cache = LanguageCache(cfg.cache.path, ttl_seconds=cfg.cache.ttl_seconds)
    stats = cache.stats()
    cache.close()

    table = Table(title="Language Cache")
    table.add_column("entry", style="cyan")
    table.add_column("count", justify="right", style="green")
    for key, count in stats.items():
        table.add_row(key, str(count))
    rprint(table)


@cache_app.command("clear")
def cache_clear(
    expired_only: bool = typer.Option(False, "--expired", help="Only drop expired entries"),
) -> None:
    """Delete cached language detections."""
    cfg = _get_config()
    cache = LanguageCache(cfg.cache.path, ttl_seconds=cfg.cache.ttl_seconds)
    removed = cache.purge_expired() if expired_only else cache.clear()
    cache.close()
    rprint(f"[green]Removed[/green] {removed} entries")


if __name__ == "__main__":
    app()
