"""Append-only Bates registry with per-configuration number claims.

The registry is a JSONL hash chain: each entry carries the hash of its
predecessor and an HMAC signature chained over the previous signature, and a
sealed ``.meta`` file records the tip so truncation is detectable. Number
claims are tracked separately in ``claims.json`` so an abandoned number is
never handed out twice, even across restarts.
"""

from __future__ import annotations

import hashlib
import hmac
import json
import logging
import os
import threading
from collections import defaultdict
from pathlib import Path
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from lexbates.app.ports.ledger import (
    GENESIS_HASH,
    GENESIS_SIGNATURE,
    LedgerEntry,
    LedgerPort,
)
from lexbates.app.ports.numbering import NumberingConfig
from lexbates.errors import ConflictError, StorageError
from lexbates.utils.crypto import write_secure_file
from lexbates.utils.jsonl import atomic_write_json

logger = logging.getLogger(__name__)

CLAIMS_VERSION = 1


class BatesRegistry(LedgerPort):
    """Durable ledger of Bates label applications.

    Entries are never rewritten or removed. ``(config_id, sequence_number)`` is
    unique across the file, and ``claim_next`` is serialized per configuration.
    """

    def __init__(
        self,
        registry_path: Path,
        *,
        hmac_key: bytes,
        claims_path: Path | None = None,
    ) -> None:
        self.registry_path = Path(registry_path)
        self.registry_path.parent.mkdir(parents=True, exist_ok=True)
        self._metadata_path = self.registry_path.with_suffix(".meta")
        self._claims_path = (
            Path(claims_path)
            if claims_path is not None
            else self.registry_path.parent / "claims.json"
        )
        self._hmac_key = hmac_key

        # Guards the append path and the in-memory index.
        self._lock = threading.RLock()
        self._config_locks: dict[str, threading.Lock] = {}
        self._config_locks_guard = threading.Lock()

        self._entries: list[LedgerEntry] = []
        self._by_id: dict[str, LedgerEntry] = {}
        self._sequences: dict[str, set[int]] = defaultdict(set)
        self._claims: dict[str, int] = {}

        self._last_hash = GENESIS_HASH
        self._last_sequence = 0
        self._last_signature = GENESIS_SIGNATURE

        self._bootstrap_state()

    # ---------------------------------------------------------------------#
    # Internal helpers
    # ---------------------------------------------------------------------#

    def _bootstrap_state(self) -> None:
        """Restore the index, chain tip and claim high-water marks from disk."""
        try:
            entries = self._read_entries()
        except (OSError, ValueError) as exc:
            raise StorageError(f"Unable to load Bates registry: {exc}") from exc

        for entry in entries:
            self._index(entry)

        if entries:
            last_entry = entries[-1]
            self._last_hash = last_entry.entry_hash or GENESIS_HASH
            self._last_sequence = last_entry.chain_sequence or len(entries)
            self._last_signature = last_entry.signature or GENESIS_SIGNATURE

        self._claims = self._load_claims()
        self._ensure_metadata_initialized()
        logger.debug(
            "Bates registry loaded: %d entries, %d configurations with claims",
            len(entries),
            len(self._claims),
        )

    def _index(self, entry: LedgerEntry) -> None:
        self._entries.append(entry)
        self._by_id[entry.id] = entry
        self._sequences[entry.config_id].add(entry.sequence_number)

    def _ensure_metadata_initialized(self) -> None:
        try:
            metadata = self._load_metadata()
        except ValueError:
            # Leave a damaged metadata file in place so verify() reports it.
            return

        if metadata is None:
            last_hash = None if self._last_sequence == 0 else self._last_hash
            self._write_metadata(self._last_sequence, last_hash)

    def _read_entries(self) -> list[LedgerEntry]:
        if not self.registry_path.exists():
            return []

        entries: list[LedgerEntry] = []
        with open(self.registry_path, encoding="utf-8") as fh:
            for line_num, raw_line in enumerate(fh, 1):
                line = raw_line.strip()
                if not line:
                    continue
                try:
                    entries.append(LedgerEntry.model_validate_json(line))
                except PydanticValidationError as exc:
                    raise ValueError(
                        f"Invalid entry at line {line_num} in {self.registry_path}: {exc}"
                    ) from exc
        return entries

    def _load_claims(self) -> dict[str, int]:
        try:
            raw = self._claims_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return {}
        except OSError as exc:
            raise StorageError(f"Unable to read claim state: {exc}") from exc

        try:
            data = json.loads(raw)
            return {str(key): int(value) for key, value in data.get("claims", {}).items()}
        except (ValueError, TypeError, AttributeError) as exc:
            raise StorageError(f"Claim state is corrupt: {exc}") from exc

    def _persist_claims(self) -> None:
        atomic_write_json(
            self._claims_path,
            {"version": CLAIMS_VERSION, "claims": self._claims},
        )

    def _config_lock(self, config_id: str) -> threading.Lock:
        with self._config_locks_guard:
            lock = self._config_locks.get(config_id)
            if lock is None:
                lock = threading.Lock()
                self._config_locks[config_id] = lock
            return lock

    def _compute_signature(self, entry: LedgerEntry, previous_signature: str) -> str:
        payload = "|".join(
            [
                str(entry.chain_sequence or 0),
                entry.previous_hash,
                entry.entry_hash or "",
                previous_signature,
            ]
        ).encode("utf-8")
        return hmac.new(self._hmac_key, payload, hashlib.sha256).hexdigest()

    def _compute_metadata_hmac(self, last_sequence: int, last_hash: str | None) -> str:
        payload = f"{last_sequence}:{last_hash or GENESIS_HASH}".encode("utf-8")
        return hmac.new(self._hmac_key, payload, hashlib.sha256).hexdigest()

    def _write_metadata(self, last_sequence: int, last_hash: str | None) -> None:
        payload = {
            "version": 1,
            "last_sequence": last_sequence,
            "last_hash": last_hash,
            "hmac": self._compute_metadata_hmac(last_sequence, last_hash),
        }
        data = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")
        write_secure_file(self._metadata_path, data)

    def _load_metadata(self) -> dict[str, Any] | None:
        try:
            raw = self._metadata_path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None

        data = json.loads(raw)
        expected_hmac = self._compute_metadata_hmac(
            int(data.get("last_sequence", 0)), data.get("last_hash")
        )
        actual_hmac = data.get("hmac")

        if not isinstance(actual_hmac, str) or not hmac.compare_digest(expected_hmac, actual_hmac):
            raise ValueError("Registry metadata HMAC mismatch")

        return data

    def _highest_recorded(self, config_id: str) -> int | None:
        sequences = self._sequences.get(config_id)
        return max(sequences) if sequences else None

    # ---------------------------------------------------------------------#
    # Public API
    # ---------------------------------------------------------------------#

    def next_sequence_number(self, config: NumberingConfig) -> int:
        with self._lock:
            candidates = [config.start_number]
            recorded = self._highest_recorded(config.id)
            if recorded is not None:
                candidates.append(recorded + 1)
            claimed = self._claims.get(config.id)
            if claimed is not None:
                candidates.append(claimed + 1)
            return max(candidates)

    def claim_next(self, config: NumberingConfig) -> int:
        with self._config_lock(config.id):
            number = self.next_sequence_number(config)
            with self._lock:
                previous = self._claims.get(config.id)
                self._claims[config.id] = number
                try:
                    self._persist_claims()
                except OSError as exc:
                    if previous is None:
                        self._claims.pop(config.id, None)
                    else:
                        self._claims[config.id] = previous
                    raise StorageError(f"Unable to reserve a Bates number: {exc}") from exc
            logger.debug("Claimed sequence %s for configuration %s", number, config.id)
            return number

    def record_application(self, entry: LedgerEntry) -> LedgerEntry:
        with self._lock:
            if entry.sequence_number in self._sequences.get(entry.config_id, set()):
                raise ConflictError(
                    f"Sequence number {entry.sequence_number} already recorded "
                    f"for configuration {entry.config_id}"
                )
            if entry.id in self._by_id:
                raise ConflictError(f"Ledger entry already exists: {entry.id}")

            chain_sequence = self._last_sequence + 1
            sealed = entry.model_copy(
                update={
                    "chain_sequence": chain_sequence,
                    "previous_hash": self._last_hash,
                    "entry_hash": None,
                    "signature": None,
                }
            )
            sealed.entry_hash = sealed.compute_hash()
            sealed.signature = self._compute_signature(sealed, self._last_signature)

            # Append with fsync; a recorded label must survive a crash.
            try:
                with open(self.registry_path, "a", encoding="utf-8") as fh:
                    fh.write(sealed.model_dump_json() + "\n")
                    fh.flush()
                    os.fsync(fh.fileno())
            except OSError as exc:
                raise StorageError(f"Unable to append to Bates registry: {exc}") from exc

            self._index(sealed)
            self._last_sequence = chain_sequence
            self._last_hash = sealed.entry_hash or GENESIS_HASH
            self._last_signature = sealed.signature or GENESIS_SIGNATURE

            try:
                self._write_metadata(chain_sequence, sealed.entry_hash)
            except OSError as exc:
                # Entry is durable; stale metadata will surface in verify().
                logger.warning("Registry metadata not updated after entry %s: %s", sealed.id, exc)

            return sealed.model_copy(deep=True)

    def has_entries(self, config_id: str) -> bool:
        with self._lock:
            return bool(self._sequences.get(config_id))

    def entries(self, config_ids: set[str] | None = None) -> list[LedgerEntry]:
        with self._lock:
            selected = [
                entry.model_copy(deep=True)
                for entry in self._entries
                if config_ids is None or entry.config_id in config_ids
            ]
        selected.sort(key=lambda entry: (entry.sequence_number, entry.chain_sequence or 0))
        return selected

    def get(self, entry_id: str) -> LedgerEntry | None:
        with self._lock:
            entry = self._by_id.get(entry_id)
            return entry.model_copy(deep=True) if entry is not None else None

    def verify(self) -> tuple[bool, list[str]]:
        """Verify the on-disk chain, signatures, metadata and number uniqueness.

        Returns:
            Tuple of (is_valid, list of error messages).
        """
        errors: list[str] = []

        try:
            metadata = self._load_metadata()
        except ValueError as exc:
            return False, [f"Registry metadata integrity failure: {exc}"]

        with self._lock:
            try:
                entries = self._read_entries()
            except (OSError, ValueError) as exc:
                return False, [f"Unable to read Bates registry: {exc}"]

        if not entries:
            if metadata and int(metadata.get("last_sequence", 0)) > 0:
                return False, ["Bates registry appears truncated (metadata expects entries)."]
            return True, []

        previous_hash = GENESIS_HASH
        previous_signature = GENESIS_SIGNATURE
        seen_numbers: dict[tuple[str, int], int] = {}
        seen_documents: dict[str, int] = {}

        for idx, entry in enumerate(entries, 1):
            if entry.entry_hash is None or entry.signature is None:
                errors.append(f"Entry {idx} is missing its hash or signature.")
                break

            expected_hash = entry.compute_hash()
            if not hmac.compare_digest(entry.entry_hash, expected_hash):
                errors.append(f"Entry {idx} has invalid hash; content was modified.")
                break

            if entry.previous_hash != previous_hash:
                errors.append(f"Entry {idx} breaks hash chain.")
                break

            expected_signature = self._compute_signature(entry, previous_signature)
            if not hmac.compare_digest(entry.signature, expected_signature):
                errors.append(f"Entry {idx} has invalid signature; registry may have been tampered.")
                break

            if entry.chain_sequence != idx:
                errors.append(
                    f"Entry {idx} sequence mismatch (expected {idx}, got {entry.chain_sequence})."
                )
                break

            key = (entry.config_id, entry.sequence_number)
            if key in seen_numbers:
                errors.append(
                    f"Entry {idx}: duplicate Bates number {entry.rendered_label} "
                    f"(first recorded at entry {seen_numbers[key]})"
                )
            else:
                seen_numbers[key] = idx

            if entry.document_id in seen_documents:
                errors.append(
                    f"Entry {idx}: document {entry.document_id} labeled more than once "
                    f"(first at entry {seen_documents[entry.document_id]})"
                )
            else:
                seen_documents[entry.document_id] = idx

            previous_hash = entry.entry_hash
            previous_signature = entry.signature

        if errors:
            return False, errors

        if metadata is None:
            return False, ["Registry metadata file is missing."]

        last_entry = entries[-1]
        if int(metadata.get("last_sequence", 0)) != last_entry.chain_sequence:
            errors.append("Registry metadata sequence mismatch; possible truncation.")
        elif metadata.get("last_hash") != last_entry.entry_hash:
            errors.append("Registry metadata hash mismatch; possible truncation or tampering.")

        return not errors, errors
