"""
Manifest-driven installation and removal of extracted files.
"""

import logging
import os
from collections.abc import Callable, Mapping
from pathlib import Path

from rich.markup import escape

from bootkit.exceptions import ManifestError, SignatureMismatch
from bootkit.extract import Extractor
from bootkit.models.fetch import FetchRequest
from bootkit.models.manifest import Manifest
from bootkit.storage.records import InstallRecords
from bootkit.system import Operation, OperationKind, PrivilegedExecutor, is_dir_empty
from bootkit.verification import Verifier

from .mapping import InstallMapping, plan_install, plan_uninstall

log = logging.getLogger(__name__)

ManifestLike = Manifest | Mapping[str, list[str]]


class Installer:
    """
    Copies files from a fetched archive into a destination tree, and removes
    them again, as directed by a manifest.

    Every filesystem change goes through the privileged executor, one operation
    at a time, in manifest order. A failure stops the run; files already copied
    stay in place.
    """

    def __init__(
        self,
        extractor: Extractor,
        executor: PrivilegedExecutor,
        verifier: Verifier | None = None,
        records: InstallRecords | None = None,
        dir_empty: Callable[[Path], bool] = is_dir_empty,
    ):
        self.extractor = extractor
        self.executor = executor
        self.verifier = verifier or Verifier()
        self.records = records
        self.dir_empty = dir_empty

    async def install(
        self,
        manifest: ManifestLike,
        request: FetchRequest,
        dest_root: Path,
        name: str | None = None,
    ) -> list[InstallMapping]:
        """
        Fetches, verifies and extracts `request.url`, then copies every file the
        manifest selects to `dest_root/<category>/...`.

        Args:
            manifest: Category -> glob patterns, relative to the archive root.
            request: What to download.
            dest_root: Installation prefix, e.g. /usr/local.
            name: When given and a records store is configured, the manifest is
                recorded under this name for a later `uninstall_recorded`.

        Returns:
            The mappings that were copied, in order.
        """
        manifest = Manifest.from_mapping(manifest)
        dest_root = Path(dest_root).expanduser()
        installed: list[InstallMapping] = []

        async with self.extractor.fetch_and_extract(request) as root:
            for mapping in plan_install(manifest, root, dest_root):
                await self._install_one(mapping)
                installed.append(mapping)

        if not installed:
            log.warning("[yellow]No files in the archive matched the manifest.[/yellow]")
        else:
            log.info(f"[green]✓ Installed {len(installed)} file(s) into {dest_root}[/green]")

        if name and self.records is not None and not self.executor.dry_run:
            await self.records.add(name, request.url, dest_root, manifest)
        return installed

    async def _install_one(self, mapping: InstallMapping) -> None:
        source = mapping.source
        signature = source.with_suffix(".sig")
        if signature != source and signature.is_file():
            result = await self.verifier.check_pgp(signature, source)
            if not result.success:
                raise SignatureMismatch(source, "pgp")
            log.debug(f"Signature ok for {source.name}")

        is_dir = source.is_dir()
        # A directory lands as the destination itself, a file inside its parent
        target_dir = mapping.destination if is_dir else mapping.destination.parent
        await self.executor.run_checked(Operation(OperationKind.MKDIR, target_dir))
        await self.executor.run_checked(
            Operation(OperationKind.COPY, mapping.destination, source, recursive=is_dir)
        )
        log.debug(f"Installed {escape(str(mapping.destination))}")

    async def uninstall(self, manifest: ManifestLike, dest_root: Path) -> list[Path]:
        """
        Removes what `manifest` installed under `dest_root`.

        Directories are removed only when empty; non-empty ones are left alone.

        Returns:
            The paths that were removed.
        """
        manifest = Manifest.from_mapping(manifest)
        dest_root = Path(dest_root).expanduser()
        removed: list[Path] = []

        for _category, target in plan_uninstall(manifest, dest_root):
            if not os.path.lexists(target):
                continue
            if target.is_dir() and not target.is_symlink():
                if not self.dir_empty(target):
                    log.info(
                        f"  [yellow]○ Keeping:[/] [dim]{escape(str(target))}[/dim]"
                        " (directory not empty)"
                    )
                    continue
                await self.executor.run_checked(Operation(OperationKind.REMOVE_DIR, target))
            else:
                await self.executor.run_checked(Operation(OperationKind.REMOVE_FILE, target))
            log.debug(f"Removed {escape(str(target))}")
            removed.append(target)

        log.info(f"[green]✓ Removed {len(removed)} path(s) from {dest_root}[/green]")
        return removed

    async def uninstall_recorded(self, name: str) -> list[Path]:
        """
        Replays the manifest recorded for `name` and forgets the record.

        Raises:
            ManifestError: If no records store is configured or nothing is
                recorded under `name`.
        """
        if self.records is None:
            raise ManifestError("Install records are disabled.")
        record = await self.records.get(name)
        if record is None:
            raise ManifestError(f"No install recorded under '{name}'.")

        removed = await self.uninstall(record.manifest, record.dest_root)
        if not self.executor.dry_run:
            await self.records.remove(name)
        return removed
