"""Tests for the hash-chained Bates registry and its number claims."""

from __future__ import annotations

import json
import threading
from pathlib import Path

import pytest

from lexbates.app.ports import LedgerEntry, NumberingConfig
from lexbates.errors import ConflictError, StorageError
from lexbates.registry import BatesRegistry

HMAC_KEY = b"k" * 32


def _registry(temp_dir: Path) -> BatesRegistry:
    return BatesRegistry(temp_dir / "bates" / "registry.jsonl", hmac_key=HMAC_KEY)


def _config(start_number: int = 1) -> NumberingConfig:
    return NumberingConfig(
        name="Production", case_id="case-1", prefix="TEST", start_number=start_number
    )


def _entry(config: NumberingConfig, number: int, document_id: str | None = None) -> LedgerEntry:
    return LedgerEntry(
        config_id=config.id,
        document_id=document_id or f"doc-{number}",
        sequence_number=number,
        rendered_label=config.render(number),
        applied_by="tester",
        original_artifact_ref="sha256:" + "a" * 64,
        labeled_artifact_ref="sha256:" + "b" * 64,
    )


def test_empty_registry_starts_at_start_number(temp_dir: Path) -> None:
    registry = _registry(temp_dir)
    config = _config(start_number=10)

    assert registry.next_sequence_number(config) == 10
    assert registry.claim_next(config) == 10
    assert registry.next_sequence_number(config) == 11
    assert not registry.has_entries(config.id)


def test_claims_survive_restart(temp_dir: Path) -> None:
    config = _config()
    registry = _registry(temp_dir)
    assert registry.claim_next(config) == 1
    assert registry.claim_next(config) == 2

    reopened = _registry(temp_dir)

    # Claimed-but-unrecorded numbers are abandoned, never reissued.
    assert reopened.claim_next(config) == 3
    claims = json.loads((temp_dir / "bates" / "claims.json").read_text(encoding="utf-8"))
    assert claims["claims"][config.id] == 3


def test_record_application_chains_and_seals_entries(temp_dir: Path) -> None:
    registry = _registry(temp_dir)
    config = _config()

    first = registry.record_application(_entry(config, registry.claim_next(config)))
    second = registry.record_application(_entry(config, registry.claim_next(config)))

    assert first.chain_sequence == 1
    assert second.chain_sequence == 2
    assert second.previous_hash == first.entry_hash
    assert second.signature and second.signature != first.signature
    assert registry.has_entries(config.id)
    assert registry.get(first.id).rendered_label == "TEST00001"
    assert registry.verify() == (True, [])


def test_duplicate_sequence_number_is_rejected(temp_dir: Path) -> None:
    registry = _registry(temp_dir)
    config = _config()
    registry.record_application(_entry(config, 1))

    with pytest.raises(ConflictError):
        registry.record_application(_entry(config, 1, document_id="other"))

    other_config = _config()
    registry.record_application(_entry(other_config, 1))
    assert len(registry.entries()) == 2


def test_entries_filter_and_sort_by_sequence_number(temp_dir: Path) -> None:
    registry = _registry(temp_dir)
    config = _config()
    other = _config()
    registry.record_application(_entry(config, 5))
    registry.record_application(_entry(other, 1))
    registry.record_application(_entry(config, 2))

    numbers = [entry.sequence_number for entry in registry.entries({config.id})]

    assert numbers == [2, 5]
    assert registry.next_sequence_number(config) == 6


def test_reopen_rebuilds_index(temp_dir: Path) -> None:
    config = _config()
    registry = _registry(temp_dir)
    registry.record_application(_entry(config, registry.claim_next(config)))

    reopened = _registry(temp_dir)

    assert reopened.has_entries(config.id)
    assert reopened.next_sequence_number(config) == 2
    appended = reopened.record_application(_entry(config, reopened.claim_next(config)))
    assert appended.chain_sequence == 2
    assert reopened.verify() == (True, [])


def test_verify_detects_tampered_entry(temp_dir: Path) -> None:
    registry = _registry(temp_dir)
    config = _config()
    registry.record_application(_entry(config, 1))
    registry.record_application(_entry(config, 2))

    path = temp_dir / "bates" / "registry.jsonl"
    lines = path.read_text(encoding="utf-8").splitlines()
    record = json.loads(lines[0])
    record["rendered_label"] = "TEST99999"
    lines[0] = json.dumps(record)
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")

    is_valid, errors = registry.verify()

    assert not is_valid
    assert "invalid hash" in errors[0]


def test_verify_detects_truncation(temp_dir: Path) -> None:
    registry = _registry(temp_dir)
    config = _config()
    registry.record_application(_entry(config, 1))
    registry.record_application(_entry(config, 2))

    path = temp_dir / "bates" / "registry.jsonl"
    first_line = path.read_text(encoding="utf-8").splitlines()[0]
    path.write_text(first_line + "\n", encoding="utf-8")

    is_valid, errors = registry.verify()

    assert not is_valid
    assert "metadata" in errors[0]


def test_verify_rejects_foreign_key(temp_dir: Path) -> None:
    registry = _registry(temp_dir)
    config = _config()
    registry.record_application(_entry(config, 1))

    impostor = BatesRegistry(temp_dir / "bates" / "registry.jsonl", hmac_key=b"x" * 32)

    is_valid, _errors = impostor.verify()
    assert not is_valid


def test_corrupt_registry_raises_storage_error(temp_dir: Path) -> None:
    path = temp_dir / "bates" / "registry.jsonl"
    path.parent.mkdir(parents=True)
    path.write_text("{not json\n", encoding="utf-8")

    with pytest.raises(StorageError):
        _registry(temp_dir)


def test_concurrent_claims_are_unique(temp_dir: Path) -> None:
    registry = _registry(temp_dir)
    config = _config(start_number=100)
    claimed: list[int] = []
    claimed_lock = threading.Lock()

    def worker() -> None:
        for _ in range(25):
            number = registry.claim_next(config)
            with claimed_lock:
                claimed.append(number)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert len(claimed) == 200
    assert sorted(claimed) == list(range(100, 300))
