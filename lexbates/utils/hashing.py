"""Hashing utilities for content-addressed artifacts and registry entries."""

import hashlib


def compute_sha256(content: bytes) -> str:
    """Compute SHA-256 hash of content.

    Artifact references (``sha256:<hex>``) and ledger entry hashes both use
    this digest.

    Args:
        content: Bytes to hash

    Returns:
        Hexadecimal hash string
    """
    return hashlib.sha256(content).hexdigest()
