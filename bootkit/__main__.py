"""
Console entry point: runs the typer app and turns escaped errors into exit codes.
"""

import asyncio
import logging
import sys

import typer
from rich.console import Console

from bootkit.cli.app import app
from bootkit.cli.formatters import format_error_with_suggestions
from bootkit.exceptions import BootkitError

log = logging.getLogger("bootkit")

EXIT_FAILURE = 1
EXIT_CANCELLED = 128 + 2  # SIGINT


def exit_code_for(error: BaseException) -> int:
    """Process exit status for an error that escaped the CLI."""
    if isinstance(error, (KeyboardInterrupt, asyncio.CancelledError)):
        return EXIT_CANCELLED
    return EXIT_FAILURE


def report(error: BaseException, console: Console) -> None:
    """Prints an escaped error for the user; the traceback only goes to debug logs."""
    if exit_code_for(error) == EXIT_CANCELLED:
        console.print("\n[yellow]⚠️  Operation cancelled by user.[/yellow]")
        return
    context = None if isinstance(error, BootkitError) else {"type": "Unexpected"}
    console.print()
    console.print(format_error_with_suggestions(error, context))
    log.debug("Traceback of the failure:", exc_info=error)


def main() -> None:
    try:
        app()
    except (typer.Exit, typer.Abort):
        return
    except (Exception, KeyboardInterrupt, asyncio.CancelledError) as e:
        report(e, Console(stderr=True))
        sys.exit(exit_code_for(e))


if __name__ == "__main__":
    main()
