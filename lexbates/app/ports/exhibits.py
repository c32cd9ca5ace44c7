"""Exhibit and exhibit package store ports and DTOs."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Protocol

from pydantic import BaseModel, Field

from lexbates.utils.identifiers import new_id, utc_now

ExhibitStatus = Literal["designated", "prepared", "used", "admitted", "rejected"]
EventType = Literal["deposition", "hearing", "trial", "other"]

EXHIBIT_STATUSES: tuple[str, ...] = ("designated", "prepared", "used", "admitted", "rejected")
EVENT_TYPES: tuple[str, ...] = ("deposition", "hearing", "trial", "other")


class Exhibit(BaseModel):
    """A document designated as evidence within a case."""

    id: str = Field(default_factory=new_id, description="Exhibit identifier")
    document_id: str = Field(..., description="Underlying document")
    case_id: str = Field(..., description="Case scoping exhibit number uniqueness")
    title: str = Field(..., min_length=1, description="Exhibit title")
    description: str | None = Field(default=None)
    exhibit_number: str | None = Field(default=None, description="Assigned exhibit number")
    exhibit_artifact_ref: str | None = Field(
        default=None, description="Artifact reference of the stickered document"
    )
    status: ExhibitStatus = Field("designated")
    created_by: str | None = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class ExhibitPackage(BaseModel):
    """Ordered bundle of exhibits prepared for a hearing, deposition or trial."""

    id: str = Field(default_factory=new_id)
    name: str = Field(..., min_length=1)
    description: str | None = Field(default=None)
    case_id: str = Field(...)
    exhibit_ids: list[str] = Field(default_factory=list)
    event_type: EventType = Field("other")
    created_by: str | None = Field(default=None)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class ExhibitStorePort(Protocol):
    """Port interface for exhibit records.

    Adapters must enforce uniqueness of (case_id, exhibit_number) among
    exhibits that carry a number.
    """

    def get(self, exhibit_id: str) -> Exhibit | None:
        ...

    def add(self, exhibit: Exhibit) -> Exhibit:
        ...

    def update(self, exhibit_id: str, fields: dict[str, Any]) -> Exhibit:
        ...

    def delete(self, exhibit_id: str) -> bool:
        ...

    def find(self, **criteria: Any) -> list[Exhibit]:
        ...

    def find_number_holder(
        self, case_id: str, exhibit_number: str, *, exclude_id: str | None = None
    ) -> Exhibit | None:
        """Return the exhibit in ``case_id`` holding ``exhibit_number``, if any."""
        ...


class PackageStorePort(Protocol):
    """Port interface for exhibit package records."""

    def get(self, package_id: str) -> ExhibitPackage | None:
        ...

    def add(self, package: ExhibitPackage) -> ExhibitPackage:
        ...

    def find(self, **criteria: Any) -> list[ExhibitPackage]:
        ...
