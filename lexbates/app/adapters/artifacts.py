"""Content-addressed filesystem artifact store."""

from __future__ import annotations

import os
import re
import tempfile
from pathlib import Path

from lexbates.app.ports import ArtifactStorePort
from lexbates.errors import StorageError
from lexbates.utils.hashing import compute_sha256

_REF_PATTERN = re.compile(r"^sha256:([0-9a-f]{64})$")


class FileSystemArtifactStore(ArtifactStorePort):
    """Store artifacts under ``root`` keyed by their SHA-256 digest.

    References look like ``sha256:<hex>``. Identical bytes share one file, and
    a stored file is never rewritten, so originals survive any number of
    labeling passes.
    """

    def __init__(self, root: Path) -> None:
        self._root = Path(root)

    def _resolve(self, ref: str) -> Path:
        match = _REF_PATTERN.match(ref or "")
        if match is None:
            raise StorageError(f"Malformed artifact reference: {ref!r}")
        digest = match.group(1)
        return self._root / digest[:2] / digest

    def read(self, ref: str) -> bytes:
        path = self._resolve(ref)
        try:
            return path.read_bytes()
        except FileNotFoundError as exc:
            raise StorageError(f"Artifact not found: {ref}") from exc
        except OSError as exc:
            raise StorageError(f"Unable to read artifact {ref}: {exc}") from exc

    def write(self, data: bytes) -> str:
        ref = f"sha256:{compute_sha256(data)}"
        destination = self._resolve(ref)
        if destination.exists():
            return ref

        tmp_path: str | None = None
        try:
            destination.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(dir=str(destination.parent), suffix=".tmp")
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_path, destination)
            tmp_path = None
        except OSError as exc:
            raise StorageError(f"Unable to write artifact {ref}: {exc}") from exc
        finally:
            if tmp_path is not None:
                try:
                    os.unlink(tmp_path)
                except FileNotFoundError:
                    pass
        return ref

    def exists(self, ref: str) -> bool:
        try:
            return self._resolve(ref).is_file()
        except StorageError:
            return False

    def path_for(self, ref: str) -> Path:
        """Return the on-disk location of ``ref`` (used by CLI exports)."""
        return self._resolve(ref)
