"""
Manages the SQLite database that records installed manifests so they can be
removed later by name.
"""

import asyncio
import logging
import sqlite3
from dataclasses import dataclass
from pathlib import Path

from pydantic import ValidationError

from bootkit.models.manifest import Manifest

log = logging.getLogger(__name__)


@dataclass(frozen=True)
class InstallRecord:
    name: str
    url: str
    dest_root: Path
    manifest: Manifest
    installed_at: str = ""


class InstallRecords:
    """
    A thread-safe SQLite store of install records. Queries run in worker
    threads, bounded by a small semaphore.
    """

    def __init__(self, config_dir_path: Path, pool_size: int = 2):
        self.db_path = Path(config_dir_path) / "installs.sqlite"
        self._connection_semaphore = asyncio.Semaphore(pool_size)
        self._initialize_db()

    def _get_connection(self) -> sqlite3.Connection:
        """Gets a new database connection with optimized PRAGMA settings."""
        try:
            conn = sqlite3.connect(self.db_path, timeout=30, check_same_thread=False)
            conn.execute("PRAGMA journal_mode=WAL;")
            conn.execute("PRAGMA synchronous=NORMAL;")
            return conn
        except sqlite3.Error as e:
            log.error(f"Failed to connect to install records: {e}")
            raise

    def _initialize_db(self) -> None:
        """Creates the database and table if they don't exist."""
        try:
            self.db_path.parent.mkdir(parents=True, exist_ok=True)
            with self._get_connection() as conn:
                conn.execute(
                    """
                    CREATE TABLE IF NOT EXISTS installs (
                        name TEXT PRIMARY KEY NOT NULL,
                        url TEXT NOT NULL,
                        dest_root TEXT NOT NULL,
                        manifest TEXT NOT NULL,
                        installed_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP
                    );
                    """
                )
                conn.commit()
        except (OSError, sqlite3.Error) as e:
            log.error(f"Failed to initialize install records at '{self.db_path}': {e}")

    async def _run_in_executor(self, func, *args):
        """Runs a synchronous database function within the connection semaphore."""
        async with self._connection_semaphore:
            return await asyncio.to_thread(func, *args)

    @staticmethod
    def _row_to_record(row: tuple) -> InstallRecord | None:
        name, url, dest_root, manifest_json, installed_at = row
        try:
            manifest = Manifest.model_validate_json(manifest_json)
        except ValidationError as e:
            log.warning(f"[yellow]Ignoring corrupt install record '{name}': {e}[/yellow]")
            return None
        return InstallRecord(name, url, Path(dest_root), manifest, str(installed_at))

    def _add_sync(self, name: str, url: str, dest_root: Path, manifest: Manifest) -> bool:
        try:
            with self._get_connection() as conn:
                conn.execute(
                    "INSERT OR REPLACE INTO installs (name, url, dest_root, manifest)"
                    " VALUES (?, ?, ?, ?)",
                    (name, url, str(dest_root), manifest.to_json()),
                )
                conn.commit()
            return True
        except sqlite3.Error as e:
            log.error(f"Failed to record install '{name}': {e}")
            return False

    async def add(self, name: str, url: str, dest_root: Path, manifest: Manifest) -> bool:
        """Records (or replaces) an install under `name`."""
        return await self._run_in_executor(self._add_sync, name, url, dest_root, manifest)

    def _get_sync(self, name: str) -> InstallRecord | None:
        try:
            with self._get_connection() as conn:
                row = conn.execute(
                    "SELECT name, url, dest_root, manifest, installed_at"
                    " FROM installs WHERE name = ?",
                    (name,),
                ).fetchone()
        except sqlite3.Error as e:
            log.error(f"Failed to read install record '{name}': {e}")
            return None
        return self._row_to_record(row) if row else None

    async def get(self, name: str) -> InstallRecord | None:
        return await self._run_in_executor(self._get_sync, name)

    def _remove_sync(self, name: str) -> bool:
        try:
            with self._get_connection() as conn:
                cursor = conn.execute("DELETE FROM installs WHERE name = ?", (name,))
                conn.commit()
                return cursor.rowcount > 0
        except sqlite3.Error as e:
            log.error(f"Failed to delete install record '{name}': {e}")
            return False

    async def remove(self, name: str) -> bool:
        """Deletes a record; returns False when nothing was recorded under `name`."""
        return await self._run_in_executor(self._remove_sync, name)

    def _list_sync(self) -> list[InstallRecord]:
        try:
            with self._get_connection() as conn:
                rows = conn.execute(
                    "SELECT name, url, dest_root, manifest, installed_at"
                    " FROM installs ORDER BY name"
                ).fetchall()
        except sqlite3.Error as e:
            log.error(f"Failed to list install records: {e}")
            return []
        return [record for row in rows if (record := self._row_to_record(row))]

    async def list_all(self) -> list[InstallRecord]:
        return await self._run_in_executor(self._list_sync)
