"""CLI interface for sfwsdl using Typer."""

import logging
from pathlib import Path
from typing import Optional

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from sfwsdl.exceptions import ActivationRequiredError, WsdlDownloadError
from sfwsdl.models import (
    DEFAULT_COOKIES_DIRECTORY,
    DEFAULT_OUTPUT_DIRECTORY,
    DEFAULT_WSDL_URI,
    DownloadConfig,
    Environment,
    SessionKey,
)
from sfwsdl.session import SessionManager
from sfwsdl.storage import CookieStorage
from sfwsdl.validity import check_session

app = typer.Typer(help="Download Salesforce WSDLs, reusing login sessions between runs")
console = Console()


def _setup_logging(verbose: bool, quiet: bool) -> None:
    if verbose:
        level = logging.DEBUG
    elif quiet:
        level = logging.WARNING
    else:
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=console, show_path=False)],
        force=True,
    )
    # httpx logs every request at INFO; keep it for --verbose only.
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


def _environment(sandbox: bool) -> Environment:
    return Environment.SANDBOX if sandbox else Environment.PRODUCTION


def _handle_error(e: WsdlDownloadError) -> None:
    """Print a fatal error and exit."""
    if isinstance(e, ActivationRequiredError):
        console.print("[red]Need activation.[/red] Open the below URL with a browser from the same public IP:")
        console.print(e.url, soft_wrap=True, markup=False)
    else:
        console.print(f"[red]Error: {escape(e.message)}[/red]")
    raise typer.Exit(1)


@app.command()
def download(
    username: str = typer.Option(..., "--username", "-u", envvar="SFDC_USERNAME", help="Salesforce username"),
    password: str = typer.Option(
        ...,
        "--password",
        "-p",
        envvar="SFDC_PASSWORD",
        prompt=True,
        hide_input=True,
        help="Password, without the security token",
    ),
    sandbox: bool = typer.Option(
        False, "--sandbox", envvar="SFDC_USE_SANDBOX", help="Log in at test.salesforce.com"
    ),
    wsdl_uri: str = typer.Option(
        DEFAULT_WSDL_URI,
        "--wsdl-uri",
        envvar="SFDC_WSDL_URI",
        help="Relative URI of the WSDL (e.g. services/wsdl/class/MyApexClass)",
    ),
    filename: Optional[str] = typer.Option(
        None, "--filename", envvar="SFDC_WSDL_FILENAME", help="Override the filename sent by the server"
    ),
    output_directory: Path = typer.Option(
        DEFAULT_OUTPUT_DIRECTORY,
        "--output-directory",
        "-o",
        envvar="SFDC_WSDL_OUTPUT_DIRECTORY",
        help="Directory to save the WSDL to",
    ),
    cookies_directory: Path = typer.Option(
        DEFAULT_COOKIES_DIRECTORY,
        "--cookies-directory",
        envvar="SFDC_COOKIES_DIRECTORY",
        help="Directory where session cookies are kept",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug output"),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only show warnings and errors"),
) -> None:
    """Download a WSDL from Salesforce."""
    _setup_logging(verbose, quiet)

    config = DownloadConfig(
        username=username,
        password=password,
        environment=_environment(sandbox),
        wsdl_uri=wsdl_uri,
        filename=filename,
        output_directory=output_directory,
        cookies_directory=cookies_directory,
    )

    try:
        with SessionManager() as manager:
            result = manager.download(config)
    except WsdlDownloadError as e:
        _handle_error(e)
        return

    how = "cached session" if result.reused_session else "new session"
    console.print(f"[green]Saved:[/green] {result.path} ({how} at {result.endpoint})", soft_wrap=True)


@app.command()
def status(
    username: str = typer.Option(..., "--username", "-u", envvar="SFDC_USERNAME", help="Salesforce username"),
    sandbox: bool = typer.Option(False, "--sandbox", envvar="SFDC_USE_SANDBOX"),
    cookies_directory: Path = typer.Option(
        DEFAULT_COOKIES_DIRECTORY, "--cookies-directory", envvar="SFDC_COOKIES_DIRECTORY"
    ),
) -> None:
    """Show whether a cached session can be reused."""
    _setup_logging(False, True)

    key = SessionKey(_environment(sandbox), username)
    storage = CookieStorage(cookies_directory)
    endpoint = check_session(storage.load(key))

    if endpoint:
        console.print(f"[green]Session alive[/green] for {username} at {endpoint}")
    else:
        console.print(f"[yellow]No valid session[/yellow] for {username}. Next download will log in.")


@app.command()
def forget(
    username: str = typer.Option(..., "--username", "-u", envvar="SFDC_USERNAME", help="Salesforce username"),
    sandbox: bool = typer.Option(False, "--sandbox", envvar="SFDC_USE_SANDBOX"),
    cookies_directory: Path = typer.Option(
        DEFAULT_COOKIES_DIRECTORY, "--cookies-directory", envvar="SFDC_COOKIES_DIRECTORY"
    ),
) -> None:
    """Delete cached cookies so the next download logs in again."""
    key = SessionKey(_environment(sandbox), username)
    storage = CookieStorage(cookies_directory)

    try:
        removed = storage.delete(key)
    except OSError as e:
        console.print(f"[red]Error: could not delete {storage.cookie_path(key)}: {e}[/red]")
        raise typer.Exit(1)

    if removed:
        console.print(f"[green]Removed:[/green] {storage.cookie_path(key)}")
    else:
        console.print(f"[yellow]No cookies stored for {username}.[/yellow]")


if __name__ == "__main__":
    app()
