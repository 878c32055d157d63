from __future__ import annotations

import importlib
import logging
import os
import sys
from pathlib import Path
from typing import List, Optional

import typer
from dotenv import load_dotenv
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import default_builder
from .config import AppConfig
from .gen.snippets import build_snippets
from .models import CompileResult
from .parsing.discovery import discover_feature_files
from .rendering.generator import generate_files
from .steps.bindings import StepRegistry


app = typer.Typer(add_completion=False, no_args_is_help=True)
console = Console()


def _setup_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )


def _load_config(
    features_dir: Optional[str] = None,
    out_dir: Optional[str] = None,
    steps: Optional[List[str]] = None,
    import_fixtures_from: Optional[str] = None,
    title_format: Optional[str] = None,
    concurrency: Optional[int] = None,
) -> AppConfig:
    load_dotenv(override=False)
    config = AppConfig()
    if features_dir:
        config.features_dir = features_dir
    if out_dir:
        config.output_dir = out_dir
    if steps:
        config.steps = list(steps)
    if import_fixtures_from:
        config.import_fixtures_from = import_fixtures_from
    if title_format:
        config.examples_title_format = title_format
    if concurrency:
        config.concurrency = concurrency
    return config


def _load_registry(modules: List[str]) -> StepRegistry:
    # step modules live in the user's project, not next to the installed script
    cwd = os.getcwd()
    if cwd not in sys.path:
        sys.path.insert(0, cwd)
    for module in modules:
        try:
            importlib.import_module(module)
        except ImportError as exc:
            raise typer.BadParameter(f"Cannot import step module {module}: {exc}") from exc
    return default_builder.build()


def _print_undefined(results: List[CompileResult]) -> None:
    undefined = [step for result in results for step in result.undefined_steps]
    if not undefined:
        return
    console.print(f"\n[bold red]Missing step definitions:[/bold red] {len(undefined)}\n")
    for step in undefined:
        console.print(f"  {step.uri}:{step.line}  [dim]{step.role.value}[/dim]  {step.text}")
    console.print("\n[bold]Use these snippets or adjust your step patterns:[/bold]\n")
    for snippet in build_snippets(undefined):
        console.print(snippet, markup=False, highlight=False)
        console.print()


@app.command()
def gen(
    features_dir: Optional[str] = typer.Argument(None, help="Directory with .feature files"),
    out_dir: Optional[str] = typer.Option(None, help="Directory to write generated test modules"),
    steps: Optional[List[str]] = typer.Option(None, help="Python module registering step definitions"),
    import_fixtures_from: Optional[str] = typer.Option(
        None, help="Module star-imported by generated files to provide keyword fixtures"
    ),
    title_format: Optional[str] = typer.Option(None, help="Default title for scenario outline rows"),
    concurrency: Optional[int] = typer.Option(None, help="Max documents compiled in parallel"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """Compile feature files into pytest modules."""
    _setup_logging(verbose)
    cfg = _load_config(features_dir, out_dir, steps, import_fixtures_from, title_format, concurrency)
    root = Path(cfg.features_dir).resolve()
    if not root.exists():
        raise typer.BadParameter(f"Features directory not found: {root}")

    registry = _load_registry(cfg.steps)
    console.print(f"Loaded [bold]{len(registry)}[/bold] step definitions")

    paths = discover_feature_files(root, cfg.ignore_globs)
    if not paths:
        console.print("[yellow]No feature files found[/yellow]")
        raise typer.Exit(code=0)

    out_path = Path(cfg.output_dir).resolve()

    def _result_ready(i, total, result: CompileResult):
        pct = int(i * 100 / max(1, total))
        if result.error:
            console.print(f"[red]Failed[/red] {result.uri}  [dim]{i}/{total} ({pct}%)[/dim]")
        else:
            console.print(f"[green]Created[/green] {result.output_path}  [dim]{i}/{total} ({pct}%)[/dim]")

    results = generate_files(paths, registry, cfg, root, out_path, result_callback=_result_ready)

    table = Table(title="Generated Tests")
    table.add_column("Feature")
    table.add_column("File")
    table.add_column("Undefined", justify="right")
    for result in results:
        table.add_row(result.uri, result.output_path or "-", str(len(result.undefined_steps)))
    console.print(table)

    _print_undefined(results)

    errors = [result for result in results if result.error]
    for result in errors:
        console.print(f"[bold red]Error[/bold red] {result.uri}: {result.error}")

    if errors or any(result.undefined_steps for result in results):
        raise typer.Exit(code=1)


@app.command()
def export(
    steps: Optional[List[str]] = typer.Option(None, help="Python module registering step definitions"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
):
    """List registered step definitions."""
    _setup_logging(verbose)
    cfg = _load_config(steps=steps)
    registry = _load_registry(cfg.steps)

    table = Table(title="Step Definitions")
    table.add_column("Role")
    table.add_column("Pattern")
    table.add_column("Fixture")
    table.add_column("Location")
    for binding in registry:
        fixture = binding.pom_node.fixture_name if binding.pom_node else ""
        table.add_row(binding.role.value, binding.pattern_string, fixture, binding.location)
    console.print(table)
    console.print(f"[bold]{len(registry)}[/bold] step definitions")


if __name__ == "__main__":  # pragma: no cover
    app()
