"""Typer-based CLI for Diff1cult patch-target change detection."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape
from rich.table import Table

from . import __version__
from .analyzer import PatchAnalyzer
from .config_manager import load_settings, save_settings, settings_as_dict
from .models import AnalysisReport
from .parser import CSharpParser, ParserUnavailableError, SourceTreeError, load_source_tree
from .patches import PatchExtractor
from .report import write_html_report, write_json_report
from .run_log import PACKAGE_LOGGER
from .symbols import SymbolIndex

app = typer.Typer(
    help="Diff1cult: spot game-source changes in methods your Harmony patches target.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()


def version_callback(value: bool):
    """Print version and exit."""
    if value:
        typer.echo(f"Diff1cult v{__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Optional[bool] = typer.Option(
        None,
        "--version",
        "-v",
        help="Show version and exit.",
        callback=version_callback,
        is_eager=True,
    )
):
    """Diff1cult: compare patched methods between two versions of a game's source."""
    pass


def _fail(message: str) -> None:
    console.print(f"[bold red]Error:[/bold red] {escape(message)}")
    raise typer.Exit(code=1)


def _load_tree(root: Path, parser: Optional[CSharpParser] = None):
    try:
        return load_source_tree(root, parser or CSharpParser())
    except (SourceTreeError, ParserUnavailableError) as exc:
        _fail(str(exc))


def _print_summary(report: AnalysisReport) -> None:
    console.print(
        f"\n[bold]{report.total_patches}[/bold] patches, "
        f"[yellow]{len(report.items)}[/yellow] changed, "
        f"[green]{report.unchanged}[/green] unchanged, "
        f"[red]{report.skipped}[/red] skipped"
    )

    if report.items:
        table = Table(title="\nChanged Targets", show_header=True, show_lines=False)
        table.add_column("Id", style="cyan", width=10)
        table.add_column("Patch -> Target", min_width=30)
        table.add_column("Modified lines", justify="right")
        for item in report.items:
            table.add_row(item.id, item.label, str(len(item.diff.pairs)))
        console.print(table)

    if report.diagnostics:
        table = Table(title="\nDiagnostics", show_header=True, show_lines=False)
        table.add_column("Kind", style="red", width=16)
        table.add_column("Message", min_width=30)
        for diag in report.diagnostics:
            table.add_row(diag.kind.value, diag.message)
        console.print(table)


@app.command("analyze")
def analyze(
    old_source: Path = typer.Argument(..., exists=True, file_okay=False, help="Old game source directory."),
    new_source: Path = typer.Argument(..., exists=True, file_okay=False, help="New game source directory."),
    mod_source: Path = typer.Argument(..., exists=True, file_okay=False, help="Mod source directory."),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="HTML report path."),
    json_output: Optional[Path] = typer.Option(None, "--json", help="Also write a JSON report here."),
    threshold: Optional[float] = typer.Option(
        None, "--threshold", "-t", min=0.0, max=1.0,
        help="Line pairing threshold (pairs need similarity strictly above it).",
    ),
    verbose: bool = typer.Option(False, "--verbose", help="Stream progress and debug logging."),
):
    """Report every patched method whose body changed between OLD and NEW."""
    settings = load_settings()
    if threshold is not None:
        settings.pairing_threshold = threshold
    output = output or Path(settings.output)

    package_logger = logging.getLogger(PACKAGE_LOGGER)
    handler: Optional[logging.Handler] = None
    if verbose:
        handler = RichHandler(console=console, show_path=False)
        package_logger.addHandler(handler)
        package_logger.setLevel(logging.DEBUG)

    try:
        report = PatchAnalyzer(settings).run(old_source, new_source, mod_source)
    except (SourceTreeError, ParserUnavailableError) as exc:
        _fail(str(exc))
    finally:
        if handler is not None:
            package_logger.removeHandler(handler)
            package_logger.setLevel(logging.NOTSET)

    write_html_report(report, output)
    typer.echo(f"Report written to {output}")
    if json_output is not None:
        write_json_report(report, json_output)
        typer.echo(f"JSON report written to {json_output}")

    _print_summary(report)


@app.command("patches")
def list_patches(
    mod_source: Path = typer.Argument(..., exists=True, file_okay=False, help="Mod source directory."),
):
    """List the Harmony patch declarations found in a mod."""
    settings = load_settings()
    tree = _load_tree(mod_source)
    extractor = PatchExtractor(patch_marker=settings.patch_marker, marker_family=settings.marker_family)
    patches = extractor.extract(tree)

    if not patches:
        typer.echo("No patch methods found.")
        raise typer.Exit(code=0)

    for patch in patches:
        typer.echo(f"{patch.declaring_file}:{patch.declaring_member} -> {patch.target_class}.{patch.target_member}")
    typer.echo(f"\n{len(patches)} patch methods.")


@app.command("resolve")
def resolve(
    source: Path = typer.Argument(..., exists=True, file_okay=False, help="Source tree to index."),
    name: str = typer.Argument(..., help="Class or struct name, full or partial."),
):
    """Show how a type name resolves against one source tree."""
    index = SymbolIndex.build(_load_tree(source), source.name)
    result = index.resolve(name)

    if result.ok:
        typer.echo(f"{result.qualname}  ({result.file_path})")
        return
    if result.candidates:
        typer.echo(f"'{name}' is ambiguous:", err=True)
        for candidate in result.candidates:
            typer.echo(f"   - {candidate} ({index.file_for(candidate)})", err=True)
    else:
        typer.echo(f"'{name}' not found in {source}.", err=True)
    raise typer.Exit(code=1)


@app.command("show-config")
def show_config():
    """Print the effective analysis settings."""
    table = Table(title="Settings", show_header=True)
    table.add_column("Key", style="cyan")
    table.add_column("Value")
    for key, value in settings_as_dict(load_settings()).items():
        table.add_row(key, str(value))
    console.print(table)


@app.command("init-config")
def init_config():
    """Write the effective settings to config.toml so they can be edited."""
    path = save_settings(load_settings())
    typer.echo(f"Wrote {path}")


if __name__ == "__main__":
    app()
