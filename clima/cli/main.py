"""clima CLI - Download the latest il manifesto edition."""
import asyncio
import logging
from pathlib import Path
from typing import List

import typer
from rich.console import Console
from rich.logging import RichHandler

from clima import setup_logging
from clima.client import ClimaClient
from clima.core.edition import OutputMode
from clima.core.exceptions import (
    ArticleUnavailableError,
    AuthUnreachableError,
    ClimaException,
    FetchUnexpectedResponseError,
    FetchUnreachableError,
    InvalidCredentialsError,
    MergeError,
    MissingCredentialsError,
    SessionExpiredError,
    UnexpectedResponseError,
)
from clima.core.session import DEFAULT_CREDENTIALS_FILE, JSONSession, resolve_credentials

app = typer.Typer(
    name="clima",
    help="Download the latest il manifesto edition as PDF or ePub",
    add_completion=False
)
console = Console(stderr=True)

EXIT_UNEXPECTED = 1
EXIT_CREDENTIALS = 2
EXIT_UNREACHABLE = 3
EXIT_CONTENT_CHANGED = 4
EXIT_MERGE = 5

# Checked in order; the first matching family wins
ERROR_EXITS = (
    ((InvalidCredentialsError, MissingCredentialsError), EXIT_CREDENTIALS,
     "Login failed, check your email and password"),
    ((AuthUnreachableError, FetchUnreachableError), EXIT_UNREACHABLE,
     "il manifesto is unreachable, try again later"),
    ((UnexpectedResponseError, FetchUnexpectedResponseError,
      ArticleUnavailableError, SessionExpiredError), EXIT_CONTENT_CHANGED,
     "The site answered in an unexpected way, it may have changed"),
    ((MergeError,), EXIT_MERGE,
     "Could not merge the articles into one ePub"),
)


def run_async(coro):
    """Run async function."""
    return asyncio.run(coro)


def configure_logging(verbose: bool) -> None:
    """Send clima logs to stderr through rich."""
    level = logging.DEBUG if verbose else logging.INFO
    handler = RichHandler(console=console, show_path=verbose, markup=False)
    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(logging.WARNING)
    setup_logging(level)


def exit_code_for(error: ClimaException) -> int:
    for families, code, _ in ERROR_EXITS:
        if isinstance(error, families):
            return code
    return EXIT_UNEXPECTED


def message_for(error: ClimaException) -> str:
    for families, _, message in ERROR_EXITS:
        if isinstance(error, families):
            return message
    return "Unexpected error"


def selected_modes(pdf: bool, epub: bool, single_epub: bool) -> List[OutputMode]:
    """Requested outputs in download order; --single-epub wins over --epub."""
    modes = []
    if pdf:
        modes.append(OutputMode.PDF)
    if single_epub:
        modes.append(OutputMode.SINGLE_EPUB)
    elif epub:
        modes.append(OutputMode.EPUB)
    return modes


@app.command()
def download(
    pdf: bool = typer.Option(False, "--pdf", help="Download the edition PDF"),
    epub: bool = typer.Option(False, "--epub", help="Download one ePub per article"),
    single_epub: bool = typer.Option(
        False, "--single-epub", help="Merge the articles into one ePub (implies --epub)"
    ),
    keep_files: bool = typer.Option(
        False, "--keep-files", help="With --single-epub, keep the per-article ePubs"
    ),
    email: str = typer.Option(None, "--email", "-e", envvar="CLIMA_EMAIL", help="Account email"),
    password: str = typer.Option(
        None, "--password", "-p", envvar="CLIMA_PASSWORD", help="Account password"
    ),
    session_file: Path = typer.Option(
        Path(JSONSession.DEFAULT_NAME), "--session-file", help="Where the login session is kept"
    ),
    credentials_file: Path = typer.Option(
        Path(DEFAULT_CREDENTIALS_FILE), "--credentials-file", help="Bootstrap credentials file"
    ),
    output_dir: Path = typer.Option(Path("."), "--output-dir", "-o", help="Output directory"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Debug logging"),
):
    """Download the latest edition."""
    configure_logging(verbose)

    modes = selected_modes(pdf, epub, single_epub)
    if not modes:
        console.print("[yellow]Nothing to do: pass --pdf, --epub or --single-epub[/yellow]")
        raise typer.Exit(0)

    credentials = resolve_credentials(email, password, credentials_file)

    async def do_download():
        written = []
        async with ClimaClient(session_file, credentials=credentials, output_dir=output_dir) as clima:
            for mode in modes:
                written.extend(await clima.download(mode, keep_files=keep_files))
        return written

    try:
        written = run_async(do_download())
    except ClimaException as e:
        console.print(f"[red]{message_for(e)}:[/red] {e}")
        raise typer.Exit(exit_code_for(e))

    for path in written:
        console.print(f"[green]Saved[/green] {path}")


def main():
    """Entry point."""
    app()


if __name__ == "__main__":
    main()
