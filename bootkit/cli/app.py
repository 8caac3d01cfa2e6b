"""
Defines the command-line interface for the application using Typer.
"""

import asyncio
import logging
import os
import time
from pathlib import Path

import aiohttp
import typer
from pydantic import ValidationError
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from bootkit import __version__
from bootkit.exceptions import BootkitError, ConfigurationError
from bootkit.extract import Extractor
from bootkit.fetch import Fetcher
from bootkit.install import Installer
from bootkit.models.config import BootkitConfig
from bootkit.models.fetch import FetchRequest
from bootkit.models.manifest import Manifest
from bootkit.storage import ConfigManager, InstallRecords
from bootkit.system import PrivilegedExecutor
from bootkit.utils.formatting import format_size
from bootkit.verification import Verifier

from .formatters import (
    print_config,
    print_install_summary,
    print_records_table,
    print_validation_table,
)
from .progress_manager import RichProgressReporter

console = Console()

logging.basicConfig(
    level="INFO",
    format="%(message)s",
    datefmt="[%X]",
    handlers=[
        RichHandler(
            console=console,
            rich_tracebacks=True,
            show_path=False,
            show_level=False,
            markup=True,
        )
    ],
)
log = logging.getLogger("bootkit")

app = typer.Typer(
    name="bootkit",
    help=(
        "Fetch, verify, extract and install third-party artifacts. Use 'bootkit"
        " <command> --help' for more info."
    ),
    rich_markup_mode="rich",
    pretty_exceptions_show_locals=False,
    add_completion=False,
)


def get_config_dir() -> Path:
    base_dir = Path(os.getenv("XDG_CONFIG_HOME", "~/.config"))
    return base_dir.expanduser() / "bootkit"


CONFIG_DIR = get_config_dir()
CONFIG_FILE = CONFIG_DIR / "config.ini"


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: int = typer.Option(
        0,
        "--verbose",
        "-v",
        count=True,
        help="Increase logging verbosity (-vv for debug).",
    ),
    quiet: bool = typer.Option(False, "--quiet", "-q", help="Only show warnings."),
    version: bool = typer.Option(
        False, "--version", help="Show version and exit.", is_eager=True
    ),
    show_config: bool = typer.Option(
        False, "--show-config", help="Display the current configuration."
    ),
):
    """bootkit: machine bootstrapping from third-party artifacts."""
    if version:
        console.print(f"[bold]bootkit[/bold] version [cyan]{__version__}[/cyan]")
        raise typer.Exit()

    log_level = "INFO"
    if quiet:
        log_level = "WARNING"
    if verbose >= 2:
        log_level = "DEBUG"
    logging.getLogger("bootkit").setLevel(log_level)

    if show_config:
        config_manager = ConfigManager(CONFIG_FILE)
        print_config(CONFIG_FILE, config_manager.get_config_as_dict())
        raise typer.Exit()

    if ctx.invoked_subcommand is None:
        console.print(ctx.get_help())


def _parse_headers(headers: list[str] | None) -> dict[str, str]:
    """Turns repeated 'Name: value' options into a header mapping."""
    parsed = {}
    for header in headers or []:
        name, sep, value = header.partition(":")
        if not sep or not name.strip():
            raise typer.BadParameter(
                f"Header '{header}' must look like 'Name: value'.", param_hint="--header"
            )
        parsed[name.strip()] = value.strip()
    return parsed


def _signatures(
    md5: str | None, sha1: str | None, sha256: str | None, pgp: str | None
) -> dict[str, str]:
    return {
        kind: value
        for kind, value in {"md5": md5, "sha1": sha1, "sha256": sha256, "pgp": pgp}.items()
        if value
    }


def _cli_overrides(**options) -> dict:
    return {key: value for key, value in options.items() if value is not None}


def _build_fetcher(config: BootkitConfig, verifier: Verifier) -> Fetcher:
    return Fetcher(
        verifier=verifier,
        reporter=RichProgressReporter(console),
        poll_interval=config.poll_interval,
        chunk_size=config.chunk_size,
        open_html_in_browser=config.open_html_in_browser,
        timeout=aiohttp.ClientTimeout(
            total=None,
            sock_connect=config.connect_timeout,
            sock_read=config.read_timeout,
        ),
    )


def _build_installer(config: BootkitConfig, fetcher: Fetcher) -> Installer:
    records = InstallRecords(CONFIG_DIR) if config.record_installs else None
    return Installer(
        Extractor(fetcher),
        PrivilegedExecutor(config.elevate_argv, dry_run=config.dry_run),
        fetcher.verifier,
        records,
    )


@app.command()
def init(
    dest: str | None = typer.Option(None, "--dest", help="Default install prefix."),
    no_sudo: bool = typer.Option(
        False, "--no-sudo", help="Run file operations without sudo by default."
    ),
    force: bool = typer.Option(
        False, "--force", "-f", help="Overwrite an existing configuration without asking."
    ),
):
    """Write a configuration file with default settings."""
    if (
        CONFIG_FILE.exists()
        and not force
        and not typer.confirm("Configuration file already exists. Overwrite it?")
    ):
        raise typer.Abort()

    settings = _cli_overrides(dest_root=dest, elevate_command="" if no_sudo else None)
    # Validate before writing anything
    try:
        BootkitConfig(**settings)
    except ValidationError as e:
        raise ConfigurationError(f"Configuration validation failed:\n{e}") from e
    ConfigManager(CONFIG_FILE).save_new_config(settings)
    console.print(f"\n[bold green]✓ Configuration saved to '{CONFIG_FILE}'[/bold green]")


@app.command()
def fetch(
    url: str = typer.Argument(..., help="URL of the artifact."),
    output_dir: Path = typer.Option(
        Path("."), "--output-dir", "-o", help="Where to save the file."
    ),
    header: list[str] | None = typer.Option(  # noqa: B008
        None, "--header", "-H", help="Extra request header, 'Name: value'."
    ),
    md5: str | None = typer.Option(None, "--md5", help="Expected MD5 digest."),
    sha1: str | None = typer.Option(None, "--sha1", help="Expected SHA-1 digest."),
    sha256: str | None = typer.Option(None, "--sha256", help="Expected SHA-256 digest."),
    pgp: str | None = typer.Option(
        None, "--pgp", help="Detached PGP signature (path or URL)."
    ),
    max_redirects: int | None = typer.Option(
        None, "--max-redirects", help="Redirect budget (default 10)."
    ),
):
    """Download and verify an artifact without installing it."""
    headers = _parse_headers(header)
    cli_options = _cli_overrides(redirect_limit=max_redirects)

    async def _fetch_async():
        config = ConfigManager(CONFIG_FILE).load_config(cli_options)
        request = FetchRequest(
            url,
            headers=headers,
            signatures=_signatures(md5, sha1, sha256, pgp),
            redirect_limit=config.redirect_limit,
        )
        output_dir.mkdir(parents=True, exist_ok=True)
        async with _build_fetcher(config, Verifier(config.gpg_binary)) as fetcher:
            payload = await fetcher.fetch(request, output_dir)
        console.print(
            f"[green]✓ Saved[/green] [bold]{escape(str(payload.path))}[/bold]"
            f" [dim]({format_size(payload.size)})[/dim]"
        )

    asyncio.run(_fetch_async())


@app.command()
def install(
    manifest: Path = typer.Argument(
        ..., exists=True, dir_okay=False, help="JSON manifest: category -> patterns."
    ),
    url: str = typer.Argument(..., help="URL of the artifact to install."),
    dest: str | None = typer.Option(
        None, "--dest", "-d", help="Install prefix (default /usr/local)."
    ),
    header: list[str] | None = typer.Option(  # noqa: B008
        None, "--header", "-H", help="Extra request header, 'Name: value'."
    ),
    md5: str | None = typer.Option(None, "--md5", help="Expected MD5 digest."),
    sha1: str | None = typer.Option(None, "--sha1", help="Expected SHA-1 digest."),
    sha256: str | None = typer.Option(None, "--sha256", help="Expected SHA-256 digest."),
    pgp: str | None = typer.Option(
        None, "--pgp", help="Detached PGP signature (path or URL)."
    ),
    max_redirects: int | None = typer.Option(
        None, "--max-redirects", help="Redirect budget (default 10)."
    ),
    name: str | None = typer.Option(
        None, "--name", "-n", help="Record the install under this name."
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Download and extract, but only print file operations."
    ),
    no_sudo: bool = typer.Option(
        False, "--no-sudo", help="Run file operations as the current user."
    ),
):
    """Download an artifact and install the files its manifest selects."""
    headers = _parse_headers(header)
    cli_options = _cli_overrides(
        dest_root=dest,
        redirect_limit=max_redirects,
        dry_run=dry_run or None,
        elevate_command="" if no_sudo else None,
    )

    async def _install_async():
        config = ConfigManager(CONFIG_FILE).load_config(cli_options)
        manifest_model = Manifest.from_file(manifest)
        request = FetchRequest(
            url,
            headers=headers,
            signatures=_signatures(md5, sha1, sha256, pgp),
            redirect_limit=config.redirect_limit,
        )
        async with _build_fetcher(config, Verifier(config.gpg_binary)) as fetcher:
            installer = _build_installer(config, fetcher)
            start_time = time.monotonic()
            mappings = await installer.install(
                manifest_model, request, Path(config.dest_root), name=name
            )
        print_install_summary(mappings, time.monotonic() - start_time, config.dry_run)

    asyncio.run(_install_async())


@app.command()
def uninstall(
    manifest: Path | None = typer.Argument(
        None, exists=True, dir_okay=False, help="JSON manifest used for the install."
    ),
    name: str | None = typer.Option(
        None, "--name", "-n", help="Remove a recorded install instead."
    ),
    dest: str | None = typer.Option(
        None, "--dest", "-d", help="Install prefix (default /usr/local)."
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Only print file operations."
    ),
    no_sudo: bool = typer.Option(
        False, "--no-sudo", help="Run file operations as the current user."
    ),
):
    """Remove installed files, by manifest or by recorded name."""
    if (manifest is None) == (name is None):
        console.print("[red]✗ Provide either a MANIFEST or --name, not both.[/red]")
        raise typer.Exit(code=1)

    cli_options = _cli_overrides(
        dest_root=dest,
        dry_run=dry_run or None,
        elevate_command="" if no_sudo else None,
    )

    async def _uninstall_async():
        config = ConfigManager(CONFIG_FILE).load_config(cli_options)
        async with _build_fetcher(config, Verifier(config.gpg_binary)) as fetcher:
            installer = _build_installer(config, fetcher)
            if name is not None:
                if installer.records is None:
                    installer.records = InstallRecords(CONFIG_DIR)
                removed = await installer.uninstall_recorded(name)
            else:
                removed = await installer.uninstall(
                    Manifest.from_file(manifest), Path(config.dest_root)
                )
        for path in removed:
            console.print(f"  [red]-[/red] {escape(str(path))}")

    asyncio.run(_uninstall_async())


@app.command(name="list")
def list_installs():
    """Show recorded installs."""

    async def _list_async():
        records = InstallRecords(CONFIG_DIR)
        print_records_table(await records.list_all())

    asyncio.run(_list_async())


@app.command()
def validate():
    """Validate the current configuration."""
    try:
        config = ConfigManager(CONFIG_FILE).load_config()
    except BootkitError as e:
        console.print(f"[red]✗ Configuration is invalid: {e}[/red]")
        raise typer.Exit(code=1) from e
    print_validation_table(config)
