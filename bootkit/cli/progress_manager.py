"""
Renders download progress snapshots as a Rich progress bar.
"""

import logging

from rich.console import Console
from rich.progress import (
    BarColumn,
    DownloadColumn,
    Progress,
    SpinnerColumn,
    TaskID,
    TextColumn,
    TimeRemainingColumn,
    TransferSpeedColumn,
)

from bootkit.models.progress import ProgressSnapshot

log = logging.getLogger("bootkit")


class RichProgressReporter:
    """
    A progress reporter for the download poller. Shows a percentage bar when the
    server sent a Content-Length, otherwise a spinner with bytes transferred.
    """

    def __init__(self, console: Console):
        self.console = console
        self.progress = Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}", justify="left"),
            BarColumn(bar_width=30),
            "[progress.percentage]{task.percentage:>3.0f}%",
            "•",
            DownloadColumn(),
            "•",
            TransferSpeedColumn(),
            "•",
            TimeRemainingColumn(),
            console=console,
            transient=False,
        )
        self._task_id: TaskID | None = None

    def start(self, snapshot: ProgressSnapshot) -> None:
        description = snapshot.filename
        if len(description) > 40:
            description = description[:37] + "..."
        self._task_id = self.progress.add_task(
            f"[cyan]{description}[/cyan]", total=snapshot.total_bytes, start=True
        )
        self.progress.start()

    def update(self, snapshot: ProgressSnapshot) -> None:
        if self._task_id is not None:
            self.progress.update(self._task_id, completed=snapshot.bytes_received)

    def finish(self, snapshot: ProgressSnapshot, success: bool) -> None:
        if self._task_id is None:
            return
        self.progress.update(self._task_id, completed=snapshot.bytes_received)
        self.progress.stop()
        self.progress.remove_task(self._task_id)
        self._task_id = None
        if not success:
            log.error(f"[red]✗ Download of {snapshot.filename} failed.[/red]")
