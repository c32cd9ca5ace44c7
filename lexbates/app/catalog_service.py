"""Case and document registration for the labeling core."""

from __future__ import annotations

import logging
import mimetypes
from pathlib import Path

from lexbates.app.ports import (
    ArtifactStorePort,
    Case,
    CaseStorePort,
    Document,
    DocumentStorePort,
)
from lexbates.errors import NotFoundError, StorageError, ValidationError

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"


def detect_mime_type(file_path: Path) -> str:
    """Detect MIME type of file from its name.

    Args:
        file_path: Path to file

    Returns:
        MIME type string (``application/octet-stream`` when unknown)
    """
    mime_type, _ = mimetypes.guess_type(str(file_path))
    return mime_type or DEFAULT_MIME_TYPE


class CatalogService:
    """Register cases and documents; documents are copied into the artifact store."""

    def __init__(
        self,
        *,
        case_store: CaseStorePort,
        document_store: DocumentStorePort,
        artifact_store: ArtifactStorePort,
    ) -> None:
        self.cases = case_store
        self.documents = document_store
        self.artifacts = artifact_store

    def add_case(self, name: str) -> Case:
        if not name or not name.strip():
            raise ValidationError("Case name is required")
        case = self.cases.add(Case(name=name.strip()))
        logger.info("Registered case %s (%s)", case.id, case.name)
        return case

    def list_cases(self) -> list[Case]:
        return self.cases.list()

    def get_case(self, case_id: str) -> Case:
        case = self.cases.get(case_id)
        if case is None:
            raise NotFoundError(f"Case not found: {case_id}")
        return case

    def register_document(
        self,
        path: Path,
        case_id: str,
        *,
        name: str | None = None,
        mime_type: str | None = None,
    ) -> Document:
        """Copy ``path`` into the artifact store and record it under ``case_id``."""
        self.get_case(case_id)

        source = Path(path)
        if not source.is_file():
            raise NotFoundError(f"File not found: {source}")
        try:
            data = source.read_bytes()
        except OSError as exc:
            raise StorageError(f"Unable to read {source}: {exc}") from exc

        document = Document(
            name=(name or "").strip() or source.name,
            case_id=case_id,
            binary_ref=self.artifacts.write(data),
            mime_type=mime_type or detect_mime_type(source),
            size=len(data),
        )
        stored = self.documents.add(document)
        logger.info("Registered document %s (%s, %d bytes)", stored.id, stored.name, stored.size)
        return stored

    def list_documents(self, case_id: str | None = None) -> list[Document]:
        documents = self.documents.find(case_id=case_id) if case_id else self.documents.find()
        return sorted(documents, key=lambda document: document.created_at)

    def get_document(self, document_id: str) -> Document:
        document = self.documents.get(document_id)
        if document is None:
            raise NotFoundError(f"Document not found: {document_id}")
        return document
