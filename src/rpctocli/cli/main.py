"""rpctocli: find net/rpc services in a Go package."""
from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from ..config import Settings, load_settings
from ..indexer.errors import SourceLoadError
from ..indexer.service import AnalyzerService

console = Console()
err_console = Console(stderr=True)
app = typer.Typer(add_completion=False, no_args_is_help=True)


def _resolve_settings(
    config_path: Optional[Path],
    directory: Optional[Path],
    types: Optional[str],
) -> Settings:
    settings = load_settings(config_path)
    if directory:
        settings.source_dir = Path(directory).expanduser().resolve()
    if types:
        settings.types = [name.strip() for name in types.split(",") if name.strip()]
    return settings


def _configure_logging(settings: Settings, verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, settings.log_level, logging.WARNING)
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


@app.command()
def scan(
    directory: Optional[Path] = typer.Argument(None, help="Go package directory (default: cwd)"),
    types: Optional[str] = typer.Option(None, "--type", "-t", help="Comma-separated service names"),
    as_json: bool = typer.Option(False, "--json", help="Print the registry as JSON"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to rpctocli.yaml"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every decision"),
):
    """List the RPC services and methods of a Go package."""
    settings = _resolve_settings(config, directory, types)
    _configure_logging(settings, verbose)

    try:
        registry = AnalyzerService(settings).analyze()
    except SourceLoadError as exc:
        err_console.print(f"[red]Failed to load package:[/red] {escape(str(exc))}")
        raise typer.Exit(1)

    if as_json:
        typer.echo(json.dumps(registry.to_dict(), indent=2, ensure_ascii=False))
        return

    if not len(registry):
        console.print(f"[yellow]No RPC services found in package {registry.package}[/yellow]")
        return

    table = Table(title=f"RPC services in package {registry.package}")
    table.add_column("Service", style="cyan")
    table.add_column("Method", style="bold")
    table.add_column("Args")
    table.add_column("Reply")
    table.add_column("Location", style="dim")

    for method in registry.methods():
        table.add_row(
            method.service,
            method.name,
            escape(method.args.type_text()),
            escape(method.reply.type_text()),
            f"{method.file_path.name}:{method.line}",
        )

    console.print(table)
    for collision in registry.collisions:
        console.print(
            f"[yellow]{collision.kept.qualified_name} declared more than once; "
            f"using {collision.kept.file_path.name}:{collision.kept.line}[/yellow]"
        )


@app.command()
def explain(
    directory: Optional[Path] = typer.Argument(None, help="Go package directory (default: cwd)"),
    show_all: bool = typer.Option(False, "--all", "-a", help="Include plain functions"),
    config: Optional[Path] = typer.Option(None, "--config", "-c", help="Path to rpctocli.yaml"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log every decision"),
):
    """Show why each method is or is not an RPC method."""
    settings = _resolve_settings(config, directory, None)
    _configure_logging(settings, verbose)

    try:
        verdicts = AnalyzerService(settings).explain()
    except SourceLoadError as exc:
        err_console.print(f"[red]Failed to load package:[/red] {escape(str(exc))}")
        raise typer.Exit(1)

    table = Table(title="RPC eligibility")
    table.add_column("Declaration", style="cyan")
    table.add_column("Verdict")
    table.add_column("Location", style="dim")

    for verdict in verdicts:
        decl = verdict.decl
        if not decl.is_method and not show_all:
            continue
        if verdict.accepted:
            outcome = "[green]rpc[/green]"
        else:
            outcome = f"[red]{verdict.rejection.value}[/red]"
            if verdict.detail:
                outcome += f" [dim]({escape(verdict.detail)})[/dim]"
        table.add_row(escape(decl.signature()), outcome, f"{decl.file_path.name}:{decl.line}")

    console.print(table)


if __name__ == "__main__":
    app()
