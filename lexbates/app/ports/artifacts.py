"""Artifact store port interface."""

from __future__ import annotations

from typing import Protocol


class ArtifactStorePort(Protocol):
    """Port interface for binary artifact storage.

    References are opaque to callers. Stored artifacts are never modified in
    place; writing new content always yields a reference to new bytes.

    Side effects: Reads/writes files (offline).
    """

    def read(self, ref: str) -> bytes:
        """Return the bytes stored under ``ref``.

        Raises:
            StorageError: If the artifact is missing or unreadable
        """
        ...

    def write(self, data: bytes) -> str:
        """Persist ``data`` and return its reference."""
        ...

    def exists(self, ref: str) -> bool:
        """Return True when ``ref`` resolves to stored bytes."""
        ...
