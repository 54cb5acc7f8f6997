"""Typer application wiring for the bibvault CLI."""

from __future__ import annotations

from pathlib import Path
import sys

from rich.traceback import Traceback
import typer

from bibvault.core.bibliography import ParsedBibliography, parse_bibliography
from bibvault.core.config import VaultConfig, discover_config, load_config
from bibvault.core.diagnostics import format_event_message
from bibvault.core.exceptions import BibliographyParseError, ConfigError, exception_hint
from bibvault.core.storage import DocumentStore, FileSystemStore, OverlayStore
from bibvault.core.sync import SyncReport, synchronize
from bibvault.version import get_version

from .bibliography import print_bibliography_overview
from .diagnostics import CliEmitter
from .state import debug_enabled, emit_error, emit_warning, get_cli_state, set_cli_state


SUCCESS_MESSAGE = "BibTeX processing complete!"
FAILURE_MESSAGE = "Failed to parse BibTeX data."

app = typer.Typer(
    help="Turn BibTeX into cross-linked reference and author notes.",
    context_settings={"help_option_names": ["--help"]},
    no_args_is_help=True,
)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(get_version())
        raise typer.Exit()


@app.callback()
def _app_root(
    ctx: typer.Context,
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the installed version and exit.",
    ),
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase CLI verbosity. Combine multiple times for additional diagnostics.",
    ),
    debug: bool = typer.Option(
        False,
        "--debug/--no-debug",
        help="Show full tracebacks when an unexpected error occurs.",
    ),
) -> None:
    _ = version
    ctx.obj = set_cli_state(verbosity=verbose, debug=debug)


def _read_input(source: Path | None) -> str:
    if source is None or str(source) == "-":
        return sys.stdin.read()
    try:
        return source.read_text(encoding="utf-8")
    except OSError as exc:
        emit_error(f"Unable to read '{source}'.", exception=exc)
        raise typer.Exit(code=1) from exc


def _resolve_config(config_path: Path | None, vault: Path | None) -> VaultConfig:
    try:
        if config_path is not None:
            return load_config(config_path)
        if vault is not None:
            return discover_config(vault)
    except ConfigError as exc:
        emit_error(exception_hint(exc) or str(exc), exception=exc)
        raise typer.Exit(code=1) from exc
    return VaultConfig()


def _parse_or_exit(text: str, config: VaultConfig, emitter: CliEmitter) -> ParsedBibliography:
    try:
        return parse_bibliography(text, config=config, emitter=emitter)
    except BibliographyParseError as exc:
        emit_error(FAILURE_MESSAGE, exception=exc)
        raise typer.Exit(code=1) from exc


def _print_summary(parsed: ParsedBibliography, report: SyncReport, *, dry_run: bool) -> None:
    state = get_cli_state()
    console = state.console
    # Failures are already printed as events from verbosity 1 up.
    for payload in state.consume_events("document_failed"):
        if state.verbosity < 1:
            emit_warning(format_event_message("document_failed", payload) or "Skipped document")
    prefix = "[dim](dry run)[/] " if dry_run else ""
    console.print(
        f"{prefix}{len(parsed.references)} references, {len(parsed.authors)} authors: "
        f"{len(report.created)} created, {len(report.patched)} updated, "
        f"{len(report.unchanged)} unchanged, {len(report.failed)} skipped.",
        soft_wrap=True,
    )
    if parsed.dropped_entries:
        console.print(f"[yellow]{parsed.dropped_entries} entries dropped.[/]", soft_wrap=True)


@app.command(name="import")
def import_bibliography(
    source: Path | None = typer.Argument(
        None,
        metavar="BIBFILE",
        help="BibTeX file to import. Reads standard input when omitted or '-'.",
        dir_okay=False,
    ),
    vault: Path = typer.Option(
        Path("."),
        "--vault",
        help="Root folder receiving the generated documents.",
        file_okay=False,
        resolve_path=True,
    ),
    config_path: Path | None = typer.Option(
        None,
        "--config",
        help="YAML configuration file. Defaults to .bibvault.yml in the vault.",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
    dry_run: bool = typer.Option(
        False,
        "--dry-run",
        help="Compute every change without writing to the vault.",
    ),
) -> None:
    """Create reference and author documents from a BibTeX bibliography."""
    config = _resolve_config(config_path, vault)
    get_cli_state().consume_events("document_failed")
    emitter = CliEmitter()
    parsed = _parse_or_exit(_read_input(source), config, emitter)

    store: DocumentStore = FileSystemStore(vault)
    if dry_run:
        store = OverlayStore(store)
    report = synchronize(parsed, store, config=config, emitter=emitter)

    _print_summary(parsed, report, dry_run=dry_run)
    get_cli_state().console.print(SUCCESS_MESSAGE, soft_wrap=True)


@app.command(name="inspect")
def inspect_bibliography(
    source: Path | None = typer.Argument(
        None,
        metavar="BIBFILE",
        help="BibTeX file to inspect. Reads standard input when omitted or '-'.",
        dir_okay=False,
    ),
    config_path: Path | None = typer.Option(
        None,
        "--config",
        help="YAML configuration file providing field rules.",
        exists=True,
        dir_okay=False,
        readable=True,
    ),
) -> None:
    """Parse a bibliography and print its references, authors and warnings."""
    config = _resolve_config(config_path, None)
    parsed = _parse_or_exit(_read_input(source), config, CliEmitter())
    print_bibliography_overview(parsed, console=get_cli_state().console)


def main() -> None:
    """Entry point compatible with console scripts."""
    try:
        app()
    except typer.Exit:
        raise
    except KeyboardInterrupt as exc:
        if debug_enabled():
            raise
        emit_error("Operation cancelled by user.", exception=exc)
        raise typer.Exit(code=1) from exc
    except SystemExit:
        raise
    except Exception as exc:  # pragma: no cover - defensive catch-all
        state = get_cli_state()
        if state.show_tracebacks:
            tb = Traceback.from_exception(
                type(exc),
                exc,
                exc.__traceback__,
                show_locals=state.verbosity >= 2,
            )
            state.err_console.print(tb)
        else:
            emit_error(str(exc), exception=exc)
        raise typer.Exit(code=1) from exc


__all__ = ["app", "main"]
