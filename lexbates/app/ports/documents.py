"""Document store port interface and DTOs."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Protocol

from pydantic import BaseModel, Field

from lexbates.utils.identifiers import new_id, utc_now

PDF_MIME_TYPE = "application/pdf"


class BatesLabelRef(BaseModel):
    """Reference from a document to the ledger entry that labeled it."""

    ledger_entry_id: str = Field(..., description="Ledger entry created by the application")
    rendered_label: str = Field(..., description="Label stamped onto the document")


class Document(BaseModel):
    """Document record as seen by the labeling core."""

    id: str = Field(default_factory=new_id, description="Document identifier")
    name: str = Field(..., description="Display name (usually the original filename)")
    case_id: str = Field(..., description="Owning case")
    binary_ref: str = Field(..., description="Artifact store reference for the original bytes")
    mime_type: str = Field(..., description="MIME type of the original bytes")
    size: int = Field(0, ge=0, description="Size of the original bytes")
    bates_label: BatesLabelRef | None = Field(
        default=None, description="Bates label currently applied, if any"
    )
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)


class DocumentStorePort(Protocol):
    """Port interface for document records.

    Side effects: Writes document records (offline).
    """

    def get(self, document_id: str) -> Document | None:
        """Return the document or None."""
        ...

    def update(self, document_id: str, fields: dict[str, Any]) -> Document:
        """Apply ``fields`` to the stored document and return the new version."""
        ...

    def find(self, **criteria: Any) -> list[Document]:
        """Return documents whose attributes equal every criterion."""
        ...

    def add(self, document: Document) -> Document:
        """Persist a new document record."""
        ...
