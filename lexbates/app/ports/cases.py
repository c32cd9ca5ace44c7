"""Case store port interface and DTOs."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol

from pydantic import BaseModel, Field

from lexbates.utils.identifiers import new_id, utc_now


class Case(BaseModel):
    """Litigation matter owning configurations, documents and exhibits."""

    id: str = Field(default_factory=new_id, description="Case identifier")
    name: str = Field(..., min_length=1, description="Human readable matter name")
    created_at: datetime = Field(default_factory=utc_now)


class CaseStorePort(Protocol):
    """Port interface for case lookups.

    The labeling core only needs ``exists`` for validation; ``add`` and
    ``list`` back the CLI.
    """

    def exists(self, case_id: str) -> bool:
        """Return True when ``case_id`` is known."""
        ...

    def get(self, case_id: str) -> Case | None:
        """Return the case or None."""
        ...

    def add(self, case: Case) -> Case:
        """Persist a new case."""
        ...

    def list(self) -> list[Case]:
        """Return all cases."""
        ...
