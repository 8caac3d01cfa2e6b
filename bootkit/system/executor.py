"""
Runs filesystem mutations that may need elevated privileges.

Callers describe what to do with an `Operation` (kind + explicit paths); the
executor turns it into an argv list behind an elevation prefix such as
``sudo --``. No shell is involved, so paths never need quoting.
"""

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from bootkit.exceptions import PrivilegedCommandFailed

log = logging.getLogger(__name__)

DEFAULT_ELEVATE_ARGV = ["sudo", "--"]


class OperationKind(Enum):
    """Filesystem mutations the installer is allowed to request."""

    MKDIR = "mkdir"
    COPY = "copy"
    REMOVE_FILE = "remove_file"
    REMOVE_DIR = "remove_dir"


@dataclass(frozen=True)
class Operation:
    kind: OperationKind
    destination: Path
    source: Path | None = None
    recursive: bool = False

    def __post_init__(self):
        if self.kind is OperationKind.COPY and self.source is None:
            raise ValueError("A copy operation needs a source path.")

    def argv(self) -> list[str]:
        """The unprivileged command implementing this operation."""
        dest = str(self.destination)
        if self.kind is OperationKind.MKDIR:
            return ["mkdir", "-p", "--", dest]
        if self.kind is OperationKind.COPY:
            if self.recursive:
                # Contents of source into an existing destination directory
                return ["cp", "-R", "--", f"{self.source}/.", dest]
            return ["cp", "--", str(self.source), dest]
        if self.kind is OperationKind.REMOVE_FILE:
            return ["rm", "--", dest]
        return ["rmdir", "--", dest]

    def __str__(self) -> str:
        if self.source is not None:
            return f"{self.kind.value} {self.source} -> {self.destination}"
        return f"{self.kind.value} {self.destination}"


@dataclass(frozen=True)
class CommandResult:
    success: bool
    returncode: int = 0
    stderr: str = ""


def is_dir_empty(path: Path) -> bool:
    """True when `path` is a directory with no entries."""
    return not any(Path(path).iterdir())


class PrivilegedExecutor:
    """
    Executes operations one at a time, in submission order.

    Args:
        elevate_argv: Prefix prepended to every command. An empty list runs
            commands as the current user.
        dry_run: Log operations without executing them.
    """

    def __init__(self, elevate_argv: list[str] | None = None, dry_run: bool = False):
        self.elevate_argv = (
            list(DEFAULT_ELEVATE_ARGV) if elevate_argv is None else list(elevate_argv)
        )
        self.dry_run = dry_run
        self._lock = asyncio.Lock()

    async def run(self, operation: Operation) -> CommandResult:
        """Runs an operation and reports whether it succeeded."""
        argv = [*self.elevate_argv, *operation.argv()]
        if self.dry_run:
            log.info(f"  [cyan]→ (Dry Run)[/] {' '.join(argv)}")
            return CommandResult(True)

        async with self._lock:
            tag = "(sudo) " if self.elevate_argv else ""
            log.debug(f"{tag}{' '.join(argv)}")
            try:
                proc = await asyncio.create_subprocess_exec(
                    *argv,
                    stdout=asyncio.subprocess.DEVNULL,
                    stderr=asyncio.subprocess.PIPE,
                )
            except FileNotFoundError as e:
                return CommandResult(False, 127, str(e))
            _, stderr = await proc.communicate()

        return CommandResult(
            proc.returncode == 0,
            proc.returncode,
            stderr.decode(errors="replace").strip(),
        )

    async def run_checked(self, operation: Operation) -> CommandResult:
        """
        Runs an operation, raising if it fails.

        Raises:
            PrivilegedCommandFailed: If the command exits with a non-zero status.
        """
        result = await self.run(operation)
        if not result.success:
            raise PrivilegedCommandFailed(operation, result.returncode, result.stderr)
        return result
