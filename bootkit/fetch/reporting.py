"""
Progress reporters fed by the download poller.
"""

import logging
from typing import Protocol

from bootkit.models.progress import ProgressSnapshot
from bootkit.utils.formatting import format_size

log = logging.getLogger(__name__)


class ProgressReporter(Protocol):
    """Receives read-only progress snapshots; never touches the transfer."""

    def start(self, snapshot: ProgressSnapshot) -> None: ...

    def update(self, snapshot: ProgressSnapshot) -> None: ...

    def finish(self, snapshot: ProgressSnapshot, success: bool) -> None: ...


def describe(snapshot: ProgressSnapshot) -> str:
    """'Downloading x.zip: 42%' when the size is known, else bytes so far."""
    percent = snapshot.percent
    if percent is not None:
        return f"Downloading {snapshot.filename}: {percent:.0f}%"
    return f"Downloading {snapshot.filename}: {format_size(snapshot.bytes_received)}"


class LogProgressReporter:
    """Writes one progress line per poll to the application log."""

    def start(self, snapshot: ProgressSnapshot) -> None:
        log.debug(describe(snapshot))

    def update(self, snapshot: ProgressSnapshot) -> None:
        log.info(describe(snapshot))

    def finish(self, snapshot: ProgressSnapshot, success: bool) -> None:
        if success:
            log.info(f"Downloading {snapshot.filename}: done")
        else:
            log.info(f"Downloading {snapshot.filename}: [red]failed[/red]")


class NullProgressReporter:
    def start(self, snapshot: ProgressSnapshot) -> None:
        pass

    def update(self, snapshot: ProgressSnapshot) -> None:
        pass

    def finish(self, snapshot: ProgressSnapshot, success: bool) -> None:
        pass
