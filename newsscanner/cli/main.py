from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

import typer
from rich.console import Console
from rich.table import Table

from newsscanner.cache.recency import RecencyCache, build_store
from newsscanner.core.config import as_list, load_config_file, load_env, merge_config
from newsscanner.core.errors import ScanInputError
from newsscanner.core.models import ScanResults
from newsscanner.infra.logging import add_file_handler, init_logging
from newsscanner.scan.runner import DEFAULT_SOURCES, ScanConfig, build_scanner
from newsscanner.services.results import group_by_category, load_latest_results, save_scan_results
from newsscanner.services.runs import runs_base_dir

app = typer.Typer(help="News scanner: discover, classify and dedupe new political articles")

console = Console(highlight=False)

_CONFIG_OPTION = typer.Option(None, "--config", exists=True, dir_okay=False, readable=True)


def _load_conf(config: Optional[Path], overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    return merge_config(load_config_file(config), load_env(), overrides)


def _read_sources_file(path: Path) -> List[str]:
    lines = path.read_text(encoding="utf-8").splitlines()
    return [ln.strip() for ln in lines if ln.strip() and not ln.strip().startswith("#")]


def _render(results: ScanResults, categories: List[str]) -> None:
    groups = group_by_category(results, categories)
    when = datetime.fromtimestamp(results.timestamp / 1000).strftime("%Y-%m-%d %H:%M:%S")
    console.print(f"[dim]Last scanned on: {when}[/]")
    if not groups:
        console.print("[yellow]No new articles found.[/]")
        return
    for cat, arts in groups.items():
        table = Table(title=f"{cat} ({len(arts)})", show_lines=False, expand=True)
        table.add_column("Headline", ratio=3)
        table.add_column("Source", ratio=1)
        table.add_column("URL", ratio=2, overflow="fold")
        for a in arts:
            table.add_row(a.headline, a.source, a.url)
        console.print(table)


@app.callback()
def main(
    log_file: Optional[Path] = typer.Option(None, "--log-file", help="Also write logs to this file"),
) -> None:
    init_logging()
    if log_file:
        add_file_handler(str(log_file))


@app.command()
def scan(
    sources: Optional[List[str]] = typer.Argument(None, help="Homepage URLs to scan"),
    sources_file: Optional[Path] = typer.Option(
        None, "--sources-file", exists=True, dir_okay=False, readable=True, help="One URL per line"
    ),
    force: bool = typer.Option(False, "--force", help="Clear the recency cache before scanning"),
    batch_size: Optional[int] = typer.Option(None, "--batch-size", min=1),
    save: bool = typer.Option(True, "--save/--no-save", help="Save results under the runs directory"),
    config: Optional[Path] = _CONFIG_OPTION,
) -> None:
    """Scan news homepages for new, politically relevant articles."""
    conf = _load_conf(config, {"batch_size": batch_size})

    src_list: List[str] = list(sources or [])
    if sources_file:
        src_list.extend(_read_sources_file(sources_file))
    if not src_list:
        src_list = as_list(conf.get("sources")) or list(DEFAULT_SOURCES)

    scanner = build_scanner(conf)
    with console.status("Starting scan...") as status:
        try:
            results = scanner.scan(src_list, on_progress=status.update, force=force)
        except ScanInputError as e:
            typer.secho(str(e), fg=typer.colors.RED)
            raise typer.Exit(code=2)

    if save:
        path = save_scan_results(results, runs_base_dir(conf))
        typer.echo(f"Saved scan results: {path}")
    if results.articles:
        typer.secho(
            f"Scan complete! Found {len(results.articles)} unique political articles.",
            fg=typer.colors.GREEN,
        )
    _render(results, ScanConfig.from_config(conf).categories)


@app.command("clear-cache")
def clear_cache(config: Optional[Path] = _CONFIG_OPTION) -> None:
    """Forget every recently processed URL."""
    cfg = ScanConfig.from_config(_load_conf(config))
    RecencyCache(build_store(cfg.cache_backend, cfg.cache_path), cfg.recency_hours).clear()
    typer.echo("Recency cache cleared.")


@app.command()
def show(config: Optional[Path] = _CONFIG_OPTION) -> None:
    """Print the most recent saved scan results."""
    conf = _load_conf(config)
    results = load_latest_results(runs_base_dir(conf))
    if results is None:
        typer.secho("No saved scan results.", fg=typer.colors.YELLOW)
        raise typer.Exit(code=1)
    _render(results, ScanConfig.from_config(conf).categories)


if __name__ == "__main__":  # pragma: no cover
    app()
