"""
Functions for formatting and displaying data in the console using Rich.
"""

from pathlib import Path
from typing import Any

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from bootkit.install.mapping import InstallMapping
from bootkit.models.config import BootkitConfig
from bootkit.storage.records import InstallRecord
from bootkit.utils.formatting import format_duration


def format_error_with_suggestions(
    error: Exception, context: dict | None = None
) -> Panel:
    """Formats an error with actionable suggestions into a Rich Panel."""
    error_type = type(error).__name__
    error_msg = str(error)

    suggestions_map = {
        "TooManyRedirects": [
            "• The download URL may point at a redirect loop.",
            "• Raise the limit with `--max-redirects` if the chain is legitimate.",
        ],
        "DownloadFailed": [
            "• Check the URL in a browser; the server may require login or cookies.",
            "• Pass required headers with `-H 'Name: value'`.",
            "• Check your internet connection.",
        ],
        "UnsupportedContentType": [
            "• The server did not name the file and sent an unknown content type.",
            "• Use a URL that ends in the artifact's file name.",
        ],
        "SignatureMismatch": [
            "• The artifact may have changed upstream; re-check the published digest.",
            "• Do not install the file until the mismatch is explained.",
        ],
        "UnknownSignatureKind": [
            "• Supported signature kinds are md5, sha1, sha256 and pgp.",
        ],
        "UnsupportedArchiveFormat": [
            "• Supported formats: .zip, .gz/.tar.gz, .bz2, .xz, .dmg, .pkg, .safariextz.",
        ],
        "ExtractionFailed": [
            "• Make sure unzip, gunzip, tar (and hdiutil on macOS) are installed.",
            "• The archive may be corrupt; try downloading it again.",
        ],
        "PrivilegedCommandFailed": [
            "• Check that you can run sudo, or use `--no-sudo` for a user-owned prefix.",
            "• Files copied before the failure were left in place.",
        ],
        "ManifestError": [
            "• A manifest is a JSON object of category -> list of glob patterns.",
            "• Run `bootkit list` to see recorded installs.",
        ],
        "ConfigurationError": [
            "• Run `bootkit --show-config` to inspect the current settings.",
            "• Run `bootkit init --force` to recreate the configuration file.",
        ],
        "ClientResponseError": [
            "• A network connection issue occurred.",
            "• Please try again in a few minutes.",
        ],
        "TimeoutError": [
            "• The download timed out, which may indicate network throttling.",
            "• Increase `read_timeout` in the configuration file.",
        ],
    }

    suggestions = suggestions_map.get(
        error_type, ["• Run the command with -vv for detailed logs."]
    )

    error_text = Text()
    error_text.append(f"{error_type}: ", style="bold red")
    error_text.append(error_msg)

    suggestion_text = Text("\n".join(suggestions))

    content = Table.grid(padding=(1, 0))
    content.add_row(error_text)
    content.add_row()
    content.add_row(Text("Suggestions", style="bold yellow"))
    content.add_row(suggestion_text)

    if context:
        content.add_row()
        content.add_row(Text(f"Context: {context}", style="dim"))

    return Panel(
        content,
        title="[bold red]An Error Occurred[/bold red]",
        border_style="red",
        expand=False,
    )


def print_config(config_path: Path, config_data: dict[str, Any]):
    """Displays the current configuration file values."""
    console = Console()
    content = ""
    for key, value in sorted(config_data.items()):
        content += f"{key} = {value}\n"

    console.print(
        Panel(
            escape(content.strip()) or "[dim](defaults)[/dim]",
            title=f"Configuration ([dim]{config_path}[/dim])",
            border_style="cyan",
        )
    )


def print_validation_table(config: BootkitConfig):
    """Displays a summary of the current settings."""
    console = Console()
    table = Table(show_header=False, box=None, padding=(0, 2))
    table.add_column(style="bold cyan")
    table.add_column()

    elevation = config.elevate_command or "(none, runs as current user)"
    table.add_row("Destination:", f"[green]{escape(config.dest_root)}[/green]")
    table.add_row("Elevation:", escape(elevation))
    table.add_row("Redirect Limit:", str(config.redirect_limit))
    table.add_row("Poll Interval:", f"{config.poll_interval:g}s")
    table.add_row(
        "Timeouts:", f"connect {config.connect_timeout:g}s, read {config.read_timeout:g}s"
    )
    table.add_row("GPG:", escape(config.gpg_binary))
    table.add_row(
        "Install Records:", "✓ Enabled" if config.record_installs else "✗ Disabled"
    )
    table.add_row(
        "Open HTML Pages:", "✓ Enabled" if config.open_html_in_browser else "✗ Disabled"
    )

    console.print(
        Panel(
            table,
            title="[bold green]✓ Validated Settings[/bold green]",
            border_style="green",
        )
    )


def print_install_summary(
    mappings: list[InstallMapping], duration_s: float, dry_run: bool = False
):
    """Displays the files placed by an install."""
    console = Console()
    table = Table(show_header=True, header_style="bold cyan", box=None, padding=(0, 2))
    table.add_column("Category", style="magenta")
    table.add_column("Installed As", style="green")

    for mapping in mappings:
        table.add_row(mapping.category, escape(str(mapping.destination)))

    verb = "Would install" if dry_run else "Installed"
    console.print(
        Panel(
            table if mappings else Text("Nothing matched the manifest.", style="yellow"),
            title=(
                f"[bold]{verb} {len(mappings)} file(s) in "
                f"{format_duration(duration_s)}[/bold]"
            ),
            border_style="green" if mappings else "yellow",
        )
    )


def print_records_table(records: list[InstallRecord]):
    """Displays recorded installs."""
    console = Console()
    if not records:
        console.print("[dim]No installs recorded yet.[/dim]")
        return

    table = Table(title="Recorded Installs")
    table.add_column("Name", style="cyan")
    table.add_column("Destination", style="green")
    table.add_column("Categories", style="magenta")
    table.add_column("Installed", style="dim")
    table.add_column("Source", style="dim", overflow="fold")
    for record in records:
        categories = ", ".join(category for category, _ in record.manifest.items())
        table.add_row(
            record.name,
            escape(str(record.dest_root)),
            categories,
            record.installed_at,
            escape(record.url),
        )
    console.print(table)
