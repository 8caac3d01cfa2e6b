"""
Verification Layer.

This package checks downloaded files against expected digests and detached
PGP signatures.
"""

from .signatures import verify_signatures
from .verifier import VerificationResult, Verifier

__all__ = ["VerificationResult", "Verifier", "verify_signatures"]
