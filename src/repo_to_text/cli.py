"""
CLI entry point for repo-to-text.

Provides a command-line interface for flattening GitHub repositories and wikis into a
single text file or a zip archive, plus the companion wiki service.
"""

from __future__ import annotations

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import pyperclip
import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.progress import Progress, SpinnerColumn, TextColumn

from . import __version__
from .config import TEXT_OUTPUT_NAME, ZIP_OUTPUT_NAME, ExportFormat
from .config_loader import ConfigError, Settings, load_settings
from .errors import RepoToTextError, format_failure
from .session import Session, TokenStore
from .utils import build_tree, estimate_tokens

# Initialize CLI app
app = typer.Typer(
    name="repo-to-text",
    help="Flatten GitHub repositories and wikis into prompt-ready text.",
    add_completion=False,
)

console = Console()
err_console = Console(stderr=True)

logger = logging.getLogger("repo_to_text")


def setup_logging(verbose: bool = False) -> None:
    """Route library logging through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"repo-to-text version {__version__}")
        raise typer.Exit()


def parse_list(values: Optional[list[str]]) -> list[str]:
    """Flatten repeatable, comma-separated option values."""
    result = []
    for value in values or []:
        result.extend(v.strip() for v in value.split(",") if v.strip())
    return result


def get_settings() -> Settings:
    try:
        return load_settings()
    except ConfigError as e:
        err_console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(1)


def resolve_token(token: Optional[str], store: TokenStore) -> Optional[str]:
    """Use the explicit token, else the persisted one."""
    if token is not None:
        return token
    return store.load()


def fail(action: str, error: BaseException) -> None:
    err_console.print(f"[red]{format_failure(action, error)}[/red]", highlight=False)
    raise typer.Exit(1)


async def _load(session: Session, url: str, token: Optional[str], hide: Optional[str]) -> None:
    with Progress(
        SpinnerColumn(),
        TextColumn("[progress.description]{task.description}"),
        console=err_console,
        transient=True,
    ) as progress:
        progress.add_task("Fetching repository tree...", total=None)
        await session.load(url, token)
    if hide:
        session.selection.set_hidden_extensions(hide)


@app.callback()
def main_callback(
    verbose: bool = typer.Option(False, "--verbose", help="Show debug logging."),
    version: bool = typer.Option(
        False,
        "--version", "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """Flatten GitHub repositories and wikis into prompt-ready text."""
    setup_logging(verbose)


@app.command()
def tree(
    url: str = typer.Argument(..., help="Repository or wiki URL."),
    token: Optional[str] = typer.Option(
        None,
        "--token", "-t",
        help="GitHub access token (saved for later runs; pass '' to clear).",
    ),
    hide: Optional[str] = typer.Option(
        None,
        "--hide",
        help="Comma-separated extensions to hide (e.g. 'md,lock').",
    ),
) -> None:
    """
    Show the file tree of a repository or wiki.

    Examples:

        repo-to-text tree https://github.com/owner/repo

        repo-to-text tree https://github.com/owner/repo/tree/dev/src --hide md,json
    """
    settings = get_settings()
    if hide is None:
        hide = settings.hidden_extensions
    store = TokenStore()
    token = resolve_token(token, store)

    async def run() -> Session:
        async with Session(settings, store) as session:
            await _load(session, url, token, hide)
            return session

    try:
        session = asyncio.run(run())
    except RepoToTextError as e:
        fail("fetching repository contents", e)
        return

    selection = session.selection
    visible = [e.path for e in selection.visible_set()]
    loaded = session.loaded
    label = loaded.parsed.ref.full_name if loaded else url
    console.print(build_tree(visible, root_name=label), highlight=False)
    console.print()
    counts = selection.extension_counts()
    console.print("[cyan]Extensions:[/cyan]")
    for ext in selection.extensions():
        hidden = " (hidden)" if ext in selection.hidden_extensions else ""
        console.print(f"  {ext}: {counts[ext]}{hidden}", highlight=False)
    console.print(f"\n[green]{len(visible)} of {len(selection.all_files)} files visible[/green]")


@app.command()
def export(
    url: str = typer.Argument(..., help="Repository or wiki URL."),
    token: Optional[str] = typer.Option(
        None,
        "--token", "-t",
        help="GitHub access token (saved for later runs; pass '' to clear).",
    ),
    hide: Optional[str] = typer.Option(
        None,
        "--hide",
        help="Comma-separated extensions to hide (e.g. 'md,lock').",
    ),
    ext: Optional[list[str]] = typer.Option(
        None,
        "--ext", "-e",
        help="Select files with these extensions (repeatable or comma-separated).",
    ),
    include: Optional[list[str]] = typer.Option(
        None,
        "--include", "-i",
        help="Select files matching these gitignore-style patterns (repeatable).",
    ),
    fmt: ExportFormat = typer.Option(
        ExportFormat.TEXT,
        "--format", "-f",
        help="Output format: 'text' or 'zip'.",
    ),
    output: Optional[Path] = typer.Option(
        None,
        "--output", "-o",
        help=f"Output file (default: {TEXT_OUTPUT_NAME} or {ZIP_OUTPUT_NAME}; '-' for stdout).",
    ),
    no_tree: bool = typer.Option(
        False,
        "--no-tree",
        help="Omit the directory structure preamble from text output.",
    ),
    copy: bool = typer.Option(
        False,
        "--copy",
        help="Also copy text output to the clipboard.",
    ),
) -> None:
    """
    Export selected files as a text bundle or zip archive.

    Without --ext/--include every visible file is selected.

    Examples:

        repo-to-text export https://github.com/owner/repo

        repo-to-text export https://github.com/owner/repo --ext py,md -o context.txt

        repo-to-text export https://github.com/owner/repo --include "src/**" --format zip
    """
    settings = get_settings()
    if hide is None:
        hide = settings.hidden_extensions
    store = TokenStore()
    token = resolve_token(token, store)
    action = "generating zip file" if fmt == ExportFormat.ZIP else "generating text file"

    exts = parse_list(ext)
    patterns = parse_list(include)

    async def run() -> tuple[Session, str | bytes | None]:
        async with Session(settings, store) as session:
            try:
                await _load(session, url, token, hide)
            except RepoToTextError as e:
                fail("fetching repository contents", e)

            selection = session.selection
            if exts or patterns:
                selection.select_extensions(exts)
                selection.select_globs(patterns)
            else:
                selection.select_all()

            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=err_console,
                transient=True,
            ) as progress:
                count = len(selection.get_selected_files())
                progress.add_task(f"Fetching {count} files...", total=None)
                if fmt == ExportFormat.ZIP:
                    result: str | bytes | None = await session.generate_zip(token)
                else:
                    result = await session.generate_text(token, tree=not no_tree)
            return session, result

    try:
        session, result = asyncio.run(run())
    except RepoToTextError as e:
        fail(action, e)
        return

    if result is None:
        err_console.print("[yellow]Result discarded: a newer request superseded it.[/yellow]")
        raise typer.Exit(1)

    selected = len(session.selection.get_selected_files())

    if isinstance(result, bytes):
        target = output or Path(ZIP_OUTPUT_NAME)
        target.write_bytes(result)
        console.print(f"[green]✓ Wrote {selected} files to {target}[/green]")
        return

    if output is not None and str(output) == "-":
        sys.stdout.write(result)
    else:
        target = output or Path(TEXT_OUTPUT_NAME)
        target.write_text(result, encoding="utf-8")
        console.print(f"[green]✓ Wrote {selected} files to {target}[/green]")
        console.print(f"  Estimated tokens: {estimate_tokens(result):,}")

    if copy:
        try:
            pyperclip.copy(result)
            err_console.print("[dim]Copied to clipboard[/dim]")
        except pyperclip.PyperclipException as e:
            logger.error("Failed to copy text: %s", e)


@app.command("token")
def token_command(
    value: Optional[str] = typer.Argument(None, help="Token to save."),
    clear: bool = typer.Option(False, "--clear", help="Remove the saved token."),
) -> None:
    """Show, save, or clear the persisted GitHub access token."""
    store = TokenStore()
    if clear:
        store.save(None)
        console.print("[green]Token cleared[/green]")
        return
    if value is not None:
        store.save(value)
        console.print("[green]Token saved[/green]" if value.strip() else "[green]Token cleared[/green]")
        return

    saved = store.load()
    if saved is None:
        console.print("[yellow]No token saved[/yellow]")
    else:
        masked = saved[:4] + "…" if len(saved) > 4 else "…"
        console.print(f"Saved token: {masked} ({store.path})", highlight=False)


@app.command("serve-wiki")
def serve_wiki(
    host: str = typer.Option("0.0.0.0", "--host", help="Interface to bind."),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Port (default: PORT or 3000)."),
    repos_dir: Optional[Path] = typer.Option(
        None,
        "--repos-dir",
        help="Directory holding wiki mirrors.",
    ),
) -> None:
    """Run the companion wiki service."""
    from .wiki_service import create_app

    settings = get_settings().with_overrides(port=port, repos_dir=repos_dir)
    logging.getLogger("repo_to_text").setLevel(logging.INFO)
    flask_app = create_app(settings)
    console.print(f"[cyan]Wiki service listening on {host}:{settings.port}[/cyan]")
    console.print(f"[dim]Mirrors in {settings.repos_dir.resolve()}[/dim]")
    flask_app.run(host=host, port=settings.port)


def main() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    main()
