"""Bates ledger port interface and DTOs."""

from __future__ import annotations

import json
from datetime import datetime
from typing import Protocol

from pydantic import BaseModel, Field

from lexbates.app.ports.numbering import NumberingConfig
from lexbates.utils.hashing import compute_sha256
from lexbates.utils.identifiers import new_id, utc_now

GENESIS_HASH = "0" * 64
GENESIS_SIGNATURE = "0" * 64


class LedgerEntry(BaseModel):
    """Immutable record of one Bates label application.

    Entries are linked in a hash chain and sealed with an HMAC signature so the
    registry file is tamper-evident.
    """

    id: str = Field(default_factory=new_id, description="Ledger entry identifier")
    config_id: str = Field(..., description="Numbering configuration used")
    document_id: str = Field(..., description="Document that received the label")
    sequence_number: int = Field(..., ge=0, description="Number consumed from the series")
    rendered_label: str = Field(..., description="Label text, e.g. TEST00042")
    applied_by: str | None = Field(default=None, description="Principal that applied the label")
    original_artifact_ref: str = Field(..., description="Artifact reference of the input bytes")
    labeled_artifact_ref: str = Field(..., description="Artifact reference of the labeled bytes")
    stamped: bool = Field(
        True, description="False when the artifact type could not carry a visual label"
    )
    position: str | None = Field(default=None, description="Stamp placement used")
    created_at: datetime = Field(default_factory=utc_now)
    chain_sequence: int | None = Field(
        default=None, ge=1, description="Position of the entry in the registry file"
    )
    previous_hash: str = Field(default=GENESIS_HASH, description="Hash of the preceding entry")
    entry_hash: str | None = Field(default=None, description="SHA-256 of the entry content")
    signature: str | None = Field(default=None, description="HMAC seal over the chain link")

    def compute_hash(self) -> str:
        """Compute deterministic hash of entry content.

        Returns:
            SHA-256 hash of entry (excluding entry_hash and signature fields)
        """
        data = self.model_dump(
            mode="json",
            exclude={"entry_hash", "signature"},
            exclude_none=True,
        )
        content = json.dumps(data, sort_keys=True, separators=(",", ":"))
        return compute_sha256(content.encode("utf-8"))


class LedgerPort(Protocol):
    """Port interface for the Bates numbering registry.

    Adapters implementing this port must provide:
    - An atomic, per-configuration claim-next primitive
    - Append-only, durable entry recording
    - Uniqueness of (config_id, sequence_number)

    Side effects: Writes to the registry (offline).
    """

    def next_sequence_number(self, config: NumberingConfig) -> int:
        """Return the number the next claim would hand out, without claiming it."""
        ...

    def claim_next(self, config: NumberingConfig) -> int:
        """Atomically reserve and return the next sequence number for ``config``."""
        ...

    def record_application(self, entry: LedgerEntry) -> LedgerEntry:
        """Durably append ``entry``.

        Raises:
            ConflictError: If the sequence number was already recorded for the config
        """
        ...

    def has_entries(self, config_id: str) -> bool:
        """Return True when at least one entry references ``config_id``."""
        ...

    def entries(self, config_ids: set[str] | None = None) -> list[LedgerEntry]:
        """Return entries (optionally restricted to ``config_ids``) by sequence number."""
        ...

    def get(self, entry_id: str) -> LedgerEntry | None:
        ...

    def verify(self) -> tuple[bool, list[str]]:
        """Verify chain integrity and uniqueness."""
        ...
