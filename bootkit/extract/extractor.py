"""
Unpacks fetched payloads with the platform's archive tools.

Each payload is classified into an `ArchiveState` by its suffix. Compressed
payloads are decompressed and the result is classified again, which is how a
``.tar.gz`` becomes a tarball and then a directory. Supporting another format is
a new entry in `SUFFIX_STATES` (and `DECOMPRESSORS` for a new compressor).
"""

import asyncio
import contextlib
import logging
import tempfile
from collections.abc import AsyncIterator
from enum import Enum
from pathlib import Path

from bootkit.exceptions import ExtractionFailed, UnsupportedArchiveFormat
from bootkit.fetch import Fetcher
from bootkit.models.fetch import FetchRequest

log = logging.getLogger(__name__)


class ArchiveState(Enum):
    ZIPPED = "zipped"
    COMPRESSED = "compressed"
    TARRED = "tarred"
    MOUNTED = "mounted"
    PASS_THROUGH = "pass_through"


SUFFIX_STATES = {
    ".zip": ArchiveState.ZIPPED,
    ".gz": ArchiveState.COMPRESSED,
    ".tgz": ArchiveState.COMPRESSED,
    ".bz2": ArchiveState.COMPRESSED,
    ".xz": ArchiveState.COMPRESSED,
    ".dmg": ArchiveState.MOUNTED,
    ".pkg": ArchiveState.PASS_THROUGH,
    ".safariextz": ArchiveState.PASS_THROUGH,
}

# suffix -> (command, suffix of the decompressed file)
DECOMPRESSORS = {
    ".gz": (["gunzip", "-q"], ""),
    ".tgz": (["gunzip", "-q"], ".tar"),
    ".bz2": (["bunzip2", "-q"], ""),
    ".xz": (["unxz", "-q"], ""),
}


def classify(path: Path, nested: bool = False) -> ArchiveState:
    """
    Maps a payload to its extraction state.

    A bare ``.tar`` is only accepted as the output of a decompression step.

    Raises:
        UnsupportedArchiveFormat: If no strategy handles the suffix.
    """
    suffix = path.suffix.lower()
    if nested and suffix == ".tar":
        return ArchiveState.TARRED
    if suffix in SUFFIX_STATES:
        return SUFFIX_STATES[suffix]
    raise UnsupportedArchiveFormat(path, suffix)


async def run_tool(argv: list[str], cwd: Path | None = None) -> str:
    """Runs an archive utility and returns its stdout."""
    log.debug(f"Running {' '.join(argv)}")
    try:
        proc = await asyncio.create_subprocess_exec(
            *argv,
            cwd=cwd,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as e:
        raise ExtractionFailed(argv, 127, f"command not found: {argv[0]}") from e
    stdout, stderr = await proc.communicate()
    if proc.returncode != 0:
        raise ExtractionFailed(
            argv, proc.returncode, stderr.decode(errors="replace").strip()
        )
    return stdout.decode(errors="replace")


class Extractor:
    """Yields the directory holding a payload's installable contents."""

    def __init__(self, fetcher: Fetcher | None = None):
        self.fetcher = fetcher

    @contextlib.asynccontextmanager
    async def fetch_and_extract(self, request: FetchRequest) -> AsyncIterator[Path]:
        """
        Downloads, verifies and unpacks `request.url`. The download directory
        and every working directory are removed when the block exits.
        """
        if self.fetcher is None:
            raise RuntimeError("fetch_and_extract() requires an Extractor with a Fetcher.")
        async with self.fetcher.fetch_to_tempdir(request) as payload:
            async with self.extract(payload.path) as root:
                yield root

    @contextlib.asynccontextmanager
    async def extract(self, payload: Path) -> AsyncIterator[Path]:
        """
        Unpacks `payload` and yields the extraction root.

        Raises:
            UnsupportedArchiveFormat: If the payload's suffix is not handled.
            ExtractionFailed: If an archive tool fails.
        """
        payload = Path(payload)
        state = classify(payload)
        log.info(f"Extracting [cyan]{payload.name}[/cyan]")
        async with self._enter(state, payload) as root:
            yield root

    def _enter(self, state: ArchiveState, payload: Path):
        handlers = {
            ArchiveState.ZIPPED: self._unzip,
            ArchiveState.COMPRESSED: self._decompress,
            ArchiveState.TARRED: self._untar,
            ArchiveState.MOUNTED: self._mount_dmg,
            ArchiveState.PASS_THROUGH: self._pass_through,
        }
        return handlers[state](payload)

    @contextlib.asynccontextmanager
    async def _unzip(self, payload: Path) -> AsyncIterator[Path]:
        with tempfile.TemporaryDirectory(
            prefix=f"{payload.stem}-", dir=payload.parent
        ) as exdir:
            await run_tool(["unzip", "-q", str(payload), "-d", exdir])
            yield Path(exdir)

    @contextlib.asynccontextmanager
    async def _decompress(self, payload: Path) -> AsyncIterator[Path]:
        """Decompresses in place; a tarball inside is unpacked next to it."""
        suffix = payload.suffix.lower()
        command, inner_suffix = DECOMPRESSORS[suffix]
        exdir = payload.parent
        await run_tool([*command, payload.name], cwd=exdir)
        inner = exdir / (payload.stem + inner_suffix)

        if inner.suffix.lower() == ".tar":
            async with self._enter(classify(inner, nested=True), inner) as root:
                yield root
        else:
            yield exdir

    @contextlib.asynccontextmanager
    async def _untar(self, tarball: Path) -> AsyncIterator[Path]:
        exdir = tarball.parent
        await run_tool(["tar", "-x", "-f", str(tarball), "-C", str(exdir)])
        yield exdir

    @contextlib.asynccontextmanager
    async def _mount_dmg(self, payload: Path) -> AsyncIterator[Path]:
        # hdiutil attach prints: /dev node, tab, content hint, tab, mount point.
        # The mount point is the last field of the last line.
        output = await run_tool(["hdiutil", "attach", str(payload)])
        lines = [line for line in output.splitlines() if line.strip()]
        mount_point = lines[-1].split("\t")[-1].strip() if lines else ""
        if not mount_point:
            raise ExtractionFailed(
                ["hdiutil", "attach", str(payload)], 0, "no mount point reported"
            )
        log.info(f"Mounted {payload.name} at {mount_point}")
        try:
            yield Path(mount_point)
        finally:
            try:
                await run_tool(["hdiutil", "detach", mount_point])
                log.debug(f"Detached {mount_point}")
            except ExtractionFailed as e:
                log.error(f"[red]Failed to detach {mount_point}: {e}[/red]")

    @contextlib.asynccontextmanager
    async def _pass_through(self, payload: Path) -> AsyncIterator[Path]:
        yield payload.parent
