"""
Conjunctive verification of a file against a set of expected signatures.
"""

import logging
from collections.abc import Awaitable, Callable, Mapping
from pathlib import Path

from bootkit.exceptions import SignatureMismatch, UnknownSignatureKind
from bootkit.models.fetch import DIGEST_KINDS

from .verifier import Verifier

log = logging.getLogger(__name__)

PgpResolver = Callable[[str], Awaitable[Path]]


async def _local_signature(ref: str) -> Path:
    return Path(ref).expanduser()


async def verify_signatures(
    signatures: Mapping[str, str],
    target: Path,
    verifier: Verifier,
    resolve_pgp: PgpResolver | None = None,
) -> None:
    """
    Checks every (kind, expected) entry against `target`, in order.

    Every entry must pass; the first failure raises and the remaining entries
    are not checked.

    Args:
        signatures: Kind tag -> expected digest, or detached signature reference
            for `pgp`.
        target: The downloaded file.
        verifier: Digest and PGP backend.
        resolve_pgp: Turns a `pgp` reference into a local signature path.
            Defaults to treating the reference as a filesystem path.

    Raises:
        SignatureMismatch: On the first failing entry.
        UnknownSignatureKind: For a tag outside md5, sha1, sha256 and pgp.
    """
    resolve_pgp = resolve_pgp or _local_signature
    for kind, expected in signatures.items():
        if kind in DIGEST_KINDS:
            actual = await verifier.digest(target, kind)
            if actual.lower() != expected.strip().lower():
                raise SignatureMismatch(target, kind, expected, actual)
            log.debug(f"{kind} ok for {target.name}")
        elif kind == "pgp":
            signature_path = await resolve_pgp(expected)
            result = await verifier.check_pgp(signature_path, target)
            if not result.success:
                log.debug(f"gpg output for {target.name}: {result.output}")
                raise SignatureMismatch(target, kind)
            log.debug(f"pgp ok for {target.name}")
        else:
            raise UnknownSignatureKind(kind)
    if signatures:
        log.info(f"[green]✓ {target.name} has a valid signature.[/green]")
