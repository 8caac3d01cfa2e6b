"""
Digest computation and detached PGP signature checks for downloaded files.
"""

import asyncio
import hashlib
import logging
from dataclasses import dataclass
from pathlib import Path

log = logging.getLogger(__name__)

SUPPORTED_ALGORITHMS = ("md5", "sha1", "sha256")


@dataclass(frozen=True)
class VerificationResult:
    success: bool
    output: str = ""


class Verifier:
    """
    Computes file digests with hashlib and delegates PGP checks to the `gpg`
    binary. Hashing runs in a worker thread so large files do not stall the
    event loop.
    """

    HASH_CHUNK_SIZE = 1048576  # 1 MB

    def __init__(self, gpg_binary: str = "gpg"):
        self.gpg_binary = gpg_binary

    def _digest_sync(self, path: Path, algorithm: str) -> str:
        hasher = hashlib.new(algorithm)
        with open(path, "rb") as f:
            while chunk := f.read(self.HASH_CHUNK_SIZE):
                hasher.update(chunk)
        return hasher.hexdigest()

    async def digest(self, path: Path, algorithm: str) -> str:
        """
        Returns the lowercase hex digest of a file.

        Args:
            path: The file to hash.
            algorithm: One of md5, sha1 or sha256.

        Raises:
            ValueError: If the algorithm is not supported.
        """
        if algorithm not in SUPPORTED_ALGORITHMS:
            raise ValueError(f"Unsupported digest algorithm: {algorithm}")
        return await asyncio.to_thread(self._digest_sync, Path(path), algorithm)

    async def check_pgp(
        self, signature: Path, target: Path | None = None
    ) -> VerificationResult:
        """
        Verifies a detached signature with `gpg --verify`.

        Args:
            signature: Path to the detached `.sig`/`.asc` file.
            target: The signed file. When omitted gpg derives it from the
                signature's name.

        Returns:
            A VerificationResult whose `success` reflects gpg's exit status.
        """
        argv = [self.gpg_binary, "--batch", "--verify", str(signature)]
        if target is not None:
            argv.append(str(target))
        log.debug(f"Running {' '.join(argv)}")
        try:
            proc = await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError:
            log.error(f"[red]PGP check impossible: '{self.gpg_binary}' not found.[/red]")
            return VerificationResult(False, f"{self.gpg_binary} not found")
        _, stderr = await proc.communicate()
        output = stderr.decode(errors="replace").strip()
        return VerificationResult(proc.returncode == 0, output)
