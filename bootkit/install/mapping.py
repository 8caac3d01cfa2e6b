"""
Expands manifest patterns into concrete source and destination paths.
"""

import glob
import os
from collections.abc import Iterator
from dataclasses import dataclass
from fnmatch import fnmatchcase
from pathlib import Path

from bootkit.models.manifest import Manifest


@dataclass(frozen=True)
class InstallMapping:
    category: str
    source: Path
    destination: Path


def expand(root: Path, pattern: str) -> list[Path]:
    """Sorted matches of `pattern` under `root`; ``**`` spans directories."""
    full = os.path.join(glob.escape(str(root)), pattern)
    return [Path(p) for p in sorted(glob.glob(full, recursive=True))]


def destination_for(category: str, relative: Path, dest_root: Path) -> Path:
    """
    ``dest_root/category/relative``, unless `relative` already starts with the
    category directory, in which case it is not repeated.
    """
    if fnmatchcase(relative.as_posix(), f"{category}/*"):
        return dest_root / relative
    return dest_root / category / relative


def plan_install(manifest: Manifest, root: Path, dest_root: Path) -> list[InstallMapping]:
    """
    Maps every file matched under the extraction root to its destination.

    Order follows the manifest: category, then pattern, then sorted matches.
    Overlapping patterns produce duplicate mappings on purpose.
    """
    root = Path(root)
    mappings = []
    for category, patterns in manifest.items():
        for pattern in patterns:
            for source in expand(root, pattern):
                relative = source.relative_to(root)
                mappings.append(
                    InstallMapping(
                        category, source, destination_for(category, relative, dest_root)
                    )
                )
    return mappings


def removal_pattern(category: str, pattern: str) -> str:
    """Makes a manifest pattern relative to the destination root."""
    if pattern.startswith(f"{category}/"):
        return pattern
    return f"{category}/{pattern}"


def plan_uninstall(manifest: Manifest, dest_root: Path) -> Iterator[tuple[str, Path]]:
    """
    Installed paths a manifest covers, as (category, path) in manifest order.

    Each pattern is globbed only when reached, so paths removed for an earlier
    pattern are not yielded again for an overlapping later one.
    """
    for category, patterns in manifest.items():
        for pattern in patterns:
            for target in expand(dest_root, removal_pattern(category, pattern)):
                yield category, target
