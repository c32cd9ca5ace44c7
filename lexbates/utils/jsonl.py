"""JSONL reading and writing helpers with durability guarantees."""

from __future__ import annotations

import json
import os
import tempfile
from collections.abc import Iterable, Iterator
from pathlib import Path
from typing import Any, cast

from lexbates.utils.schema import SchemaStamp, build_schema_stamp


def _normalize_record(record: Any, *, schema_stamp: SchemaStamp | None = None) -> str:
    """Convert supported record types into a JSON string."""
    typed_payload: dict[str, Any]
    if hasattr(record, "model_dump"):
        payload = cast(Any, record).model_dump(mode="json")
        if not isinstance(payload, dict):
            raise TypeError("Pydantic model_dump did not return a mapping.")
        typed_payload = dict(payload)
    elif isinstance(record, dict):
        typed_payload = dict(record)
    else:
        raise TypeError(
            "Unsupported record type for JSONL serialization: "
            f"{type(record)!r}. Provide dict or Pydantic model."
        )

    if schema_stamp is not None:
        typed_payload = schema_stamp.apply(typed_payload)

    return json.dumps(typed_payload, separators=(",", ":"), sort_keys=True, ensure_ascii=False)


def _atomic_write_text(destination: Path, lines: Iterable[str]) -> None:
    """Write ``lines`` through a temporary file and ``os.replace`` it into place."""
    destination.parent.mkdir(parents=True, exist_ok=True)

    fd: int | None = None
    tmp_path: str | None = None

    try:
        fd, tmp_path = tempfile.mkstemp(
            dir=str(destination.parent),
            prefix=destination.name,
            suffix=".tmp",
            text=True,
        )

        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            fd = None  # Ownership transferred to file object
            for line in lines:
                handle.write(line)
                handle.write("\n")
            handle.flush()
            os.fsync(handle.fileno())

        os.replace(tmp_path, destination)
        tmp_path = None
    finally:
        if fd is not None:
            os.close(fd)
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except FileNotFoundError:
                pass


def atomic_write_jsonl(
    path: Path,
    records: Iterable[Any],
    *,
    schema_id: str | None = None,
    schema_version: int | None = None,
) -> None:
    """Write ``records`` to ``path`` atomically as JSONL.

    The write is performed via a temporary file followed by an ``os.replace``
    once the contents are flushed and fsynced, ensuring durability even if the
    process crashes mid-write.
    """
    schema_stamp: SchemaStamp | None = None
    if schema_id is not None or schema_version is not None:
        if schema_id is None or schema_version is None:
            raise ValueError("Both schema_id and schema_version are required when stamping records.")
        schema_stamp = build_schema_stamp(schema_id=schema_id, schema_version=schema_version)

    _atomic_write_text(
        Path(path),
        (_normalize_record(record, schema_stamp=schema_stamp) for record in records),
    )


def atomic_write_json(path: Path, payload: dict[str, Any]) -> None:
    """Atomically replace ``path`` with a single JSON document."""
    _atomic_write_text(Path(path), [json.dumps(payload, sort_keys=True, separators=(",", ":"))])


def read_jsonl(path: Path) -> Iterator[dict[str, Any]]:
    """Yield parsed records from ``path``, skipping blank lines.

    Raises:
        ValueError: If a line is not valid JSON
    """
    with Path(path).open("r", encoding="utf-8") as handle:
        for line_num, raw_line in enumerate(handle, 1):
            line = raw_line.strip()
            if not line:
                continue
            try:
                yield json.loads(line)
            except json.JSONDecodeError as exc:
                raise ValueError(f"Invalid JSON at line {line_num} in {path}: {exc}") from exc
