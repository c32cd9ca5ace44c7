"""Utility modules for common operations."""

from lexbates.utils.hashing import compute_sha256
from lexbates.utils.jsonl import atomic_write_json, atomic_write_jsonl, read_jsonl
from lexbates.utils.labels import natural_sort_key, render_label, to_base36, zero_pad
from lexbates.utils.schema import SchemaStamp, build_schema_stamp, strip_schema_metadata

__all__ = [
    "atomic_write_json",
    "atomic_write_jsonl",
    "build_schema_stamp",
    "compute_sha256",
    "natural_sort_key",
    "read_jsonl",
    "render_label",
    "SchemaStamp",
    "strip_schema_metadata",
    "to_base36",
    "zero_pad",
]
