"""Identifier and timestamp factories for stored records."""

from __future__ import annotations

import uuid
from datetime import UTC, datetime


def new_id() -> str:
    """Return a new opaque record identifier."""
    return uuid.uuid4().hex


def utc_now() -> datetime:
    """Return the current timezone-aware UTC time."""
    return datetime.now(UTC)
