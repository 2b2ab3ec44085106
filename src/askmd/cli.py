"""CLI entrypoint for askmd."""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.table import Table

from . import __version__
from .ask import run_ask
from .config import Settings, ensure_config, load_settings, save_settings, update_setting
from .errors import AskmdError, SessionFileError
from .output import Output, plural
from .paths import SESSION_FILENAME, config_path
from .refresh import refresh_session
from .resolver import ReferenceResolver
from .session_log import SessionLogger, log_exception, set_active_logger


console = Console(highlight=False)
app = typer.Typer(add_completion=False, help="Chat with Claude through a Markdown file.")
cfg_app = typer.Typer(add_completion=False, help="Show or change ~/.askmd/config.yaml.")
app.add_typer(cfg_app, name="cfg")

NEW_SESSION = "# [1] Human\n\n\n"


def _output() -> Output:
    return Output(console)


def _fail(exc: BaseException) -> None:
    """Print an error the way every command does and exit with status 1."""
    error = AskmdError.from_exception(exc)
    log_exception("cli", exc)
    _output().error(error.message)
    if error.help:
        console.print()
        _output().hint(error.help)
    raise typer.Exit(code=1)


def _start_logging(settings: Settings) -> None:
    logger = SessionLogger(settings.debug)
    set_active_logger(logger if logger.enabled else None)


@app.callback(invoke_without_command=True)
def main(
    ctx: typer.Context,
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model to use (opus/sonnet/haiku)"),
    refresh: bool = typer.Option(False, "--refresh", "-r", help="Re-expand all references with current content"),
    session: Path = typer.Option(Path(SESSION_FILENAME), "--session", help="Session file"),
    version: bool = typer.Option(False, "--version", "-v", help="Show version and exit"),
) -> None:
    """Answer the last Human turn in session.md."""
    if version:
        typer.echo(__version__)
        raise typer.Exit()
    if ctx.invoked_subcommand is not None:
        return
    settings = load_settings()
    _start_logging(settings)
    try:
        asyncio.run(run_ask(session, settings, model=model, refresh=refresh, output=_output()))
    except KeyboardInterrupt:
        raise typer.Exit(code=130)
    except Exception as exc:  # noqa: BLE001
        _fail(exc)


@app.command()
def init(path: Path = typer.Argument(Path(SESSION_FILENAME), help="Session file to create")) -> None:
    """Create a new session.md."""
    out = _output()
    try:
        if path.exists():
            raise SessionFileError(f"{path} already exists", "Delete it to start fresh")
        path.write_text(NEW_SESSION, encoding="utf-8")
    except OSError as exc:
        _fail(SessionFileError(f"Cannot write {path}: {exc.strerror or exc}"))
    except AskmdError as exc:
        _fail(exc)
    out.success(f"Created {path}")
    try:
        ensure_config()
    except (OSError, AskmdError) as exc:
        out.warning(f"Could not create config file: {exc}")
    out.info()
    out.info("Next steps:")
    out.info(f"1. Add your question to {path}")
    out.info("2. Run: askmd")


@app.command()
def refresh(path: Path = typer.Argument(Path(SESSION_FILENAME), help="Session file to refresh")) -> None:
    """Refresh all expanded file, directory and URL references."""
    out = _output()
    settings = load_settings()
    _start_logging(settings)
    try:
        if not path.is_file():
            raise SessionFileError(f"File not found: {path}")
        resolver = ReferenceResolver(path.parent, settings.expansion_options(), output=out)
        result = refresh_session(path, resolver, out)
    except Exception as exc:  # noqa: BLE001
        _fail(exc)
    if result.refreshed:
        out.success(f"Refreshed {plural(result.count, 'file')}")
    else:
        out.info("No expanded references found to refresh")
        out.hint("Use [[path/]] or [[file.ext]] to expand files")


@app.command()
def version() -> None:
    """Show version."""
    typer.echo(__version__)


@cfg_app.callback(invoke_without_command=True)
def cfg_show(ctx: typer.Context) -> None:
    """Show the current configuration."""
    if ctx.invoked_subcommand is not None:
        return
    try:
        ensure_config()
    except (OSError, AskmdError) as exc:
        _fail(exc)
    settings = load_settings()
    console.print(f"[dim]Config: {config_path()}[/dim]")
    table = Table(show_header=False, box=None, pad_edge=False)
    table.add_column("key", style="cyan")
    table.add_column("value")
    table.add_row("model", settings.model)
    table.add_row("temperature", str(settings.temperature))
    table.add_row("max_tokens", str(settings.max_tokens) if settings.max_tokens else "[dim](model default)[/dim]")
    table.add_row("filter", "on" if settings.filter else "off")
    table.add_row("web", "on" if settings.web else "off")
    table.add_row("exclude", plural(len(settings.exclude), "pattern"))
    table.add_row("debug", str(settings.debug) if settings.debug else "[dim]off[/dim]")
    console.print(table)


@cfg_app.command("set")
def cfg_set(
    key: str = typer.Argument(..., help="Setting name"),
    value: str = typer.Argument(..., help="New value"),
) -> None:
    """Set one configuration value."""
    try:
        updated = update_setting(key, value)
    except (OSError, AskmdError) as exc:
        _fail(exc)
    name = "max_tokens" if key == "maxTokens" else key
    _output().success(f"{name} set to {getattr(updated, name)}")


@cfg_app.command("reset")
def cfg_reset() -> None:
    """Write default configuration."""
    try:
        save_settings(Settings())
    except (OSError, AskmdError) as exc:
        _fail(exc)
    _output().success("Reset to defaults")


@cfg_app.command("path")
def cfg_path() -> None:
    """Print the config file location."""
    typer.echo(str(config_path()))


if __name__ == "__main__":
    app()
