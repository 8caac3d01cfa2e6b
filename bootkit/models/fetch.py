"""
Data structures describing a single download: what to request and what came back.
"""

from collections.abc import Mapping
from dataclasses import dataclass, field
from pathlib import Path

from bootkit.exceptions import UnknownSignatureKind
from bootkit.models.config import DEFAULT_REDIRECT_LIMIT

DIGEST_KINDS = ("md5", "sha1", "sha256")
SIGNATURE_KINDS = (*DIGEST_KINDS, "pgp")


def normalize_signatures(signatures: Mapping[str, str] | None) -> dict[str, str]:
    """
    Validates expected signatures and returns it as a plain ordered dict.

    Kind tags are matched case-insensitively. Empty values are dropped so that
    unset CLI options do not turn into checks.

    Raises:
        UnknownSignatureKind: If a tag is not one of md5, sha1, sha256 or pgp.
    """
    normalized: dict[str, str] = {}
    for kind, expected in (signatures or {}).items():
        tag = str(kind).strip().lower()
        if tag not in SIGNATURE_KINDS:
            raise UnknownSignatureKind(str(kind))
        if expected is None or not str(expected).strip():
            continue
        normalized[tag] = str(expected).strip()
    return normalized


@dataclass(frozen=True)
class FetchRequest:
    """A single download attempt. The redirect budget is never negative."""

    url: str
    headers: Mapping[str, str] = field(default_factory=dict)
    signatures: Mapping[str, str] = field(default_factory=dict)
    redirect_limit: int = DEFAULT_REDIRECT_LIMIT

    def __post_init__(self):
        if not self.url:
            raise ValueError("A fetch request needs a URL.")
        if self.redirect_limit < 0:
            raise ValueError(
                f"Redirect limit cannot be negative, got {self.redirect_limit}."
            )
        object.__setattr__(self, "headers", dict(self.headers))
        object.__setattr__(self, "signatures", normalize_signatures(self.signatures))


@dataclass(frozen=True)
class FetchedPayload:
    """A downloaded and verified file inside a scoped temporary directory."""

    path: Path
    filename: str
    source_url: str
    size: int = 0

    @property
    def directory(self) -> Path:
        return self.path.parent
