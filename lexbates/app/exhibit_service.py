"""Exhibit designation, numbering, stickers, exhibit lists and packages."""

from __future__ import annotations

import csv
import io
import logging
from collections import Counter
from collections.abc import Sequence
from typing import Any

from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from lexbates.app.ports import (
    ArtifactStorePort,
    CaseStorePort,
    Document,
    DocumentStorePort,
    Exhibit,
    ExhibitPackage,
    ExhibitStorePort,
    LedgerPort,
    PackageStorePort,
    StampPort,
)
from lexbates.app.ports.documents import PDF_MIME_TYPE
from lexbates.app.ports.exhibits import EXHIBIT_STATUSES
from lexbates.app.results import ExhibitBatchItemResult, SearchPage, paginate
from lexbates.config import Settings, get_settings
from lexbates.errors import (
    ConflictError,
    LexBatesError,
    NotFoundError,
    ValidationError,
    describe_validation_error,
)
from lexbates.utils.labels import format_exhibit_number, natural_sort_key

logger = logging.getLogger(__name__)

EXHIBIT_LIST_HEADER = ("Exhibit Number", "Title", "Description", "Bates Number", "Status")


class PackageDetail(BaseModel):
    """Exhibit package joined with its exhibits, in package order."""

    package: ExhibitPackage
    exhibits: list[Exhibit] = Field(default_factory=list)
    missing_exhibit_ids: list[str] = Field(
        default_factory=list, description="Referenced exhibits that no longer exist"
    )


class PackageBuild(BaseModel):
    """Result of merging a package's exhibits into one PDF."""

    package_id: str
    artifact_ref: str
    page_count: int
    included_exhibit_ids: list[str] = Field(default_factory=list)
    skipped_exhibit_ids: list[str] = Field(default_factory=list)
    watermark: str | None = None


class ExhibitService:
    """Manage exhibits within a case.

    Exhibit numbers are free-form strings, unique within a case among the
    exhibits that carry one. Assigning a number renders an ``EXHIBIT <n>``
    sticker on the first page when the underlying document is a PDF.
    """

    def __init__(
        self,
        *,
        exhibit_store: ExhibitStorePort,
        package_store: PackageStorePort,
        document_store: DocumentStorePort,
        case_store: CaseStorePort,
        artifact_store: ArtifactStorePort,
        stamper: StampPort,
        ledger: LedgerPort | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.exhibits = exhibit_store
        self.packages = package_store
        self.documents = document_store
        self.cases = case_store
        self.artifacts = artifact_store
        self.stamper = stamper
        self.ledger = ledger
        self._settings = settings or get_settings()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_case(self, case_id: str | None) -> str:
        if not case_id or not case_id.strip():
            raise ValidationError("Case ID is required")
        if not self.cases.exists(case_id):
            raise NotFoundError(f"Case not found: {case_id}")
        return case_id

    def _require_document(self, document_id: str) -> Document:
        document = self.documents.get(document_id)
        if document is None:
            raise NotFoundError(f"Document not found: {document_id}")
        return document

    def _current_artifact_ref(self, document: Document) -> str:
        """Prefer the Bates-labeled artifact so exhibits carry both marks."""
        if document.bates_label is not None and self.ledger is not None:
            entry = self.ledger.get(document.bates_label.ledger_entry_id)
            if entry is not None:
                return entry.labeled_artifact_ref
        return document.binary_ref

    def _bates_number(self, document: Document | None) -> str:
        if document is None or document.bates_label is None:
            return ""
        return document.bates_label.rendered_label

    @staticmethod
    def _sorted(exhibits: list[Exhibit]) -> list[Exhibit]:
        return sorted(
            exhibits,
            key=lambda exhibit: (natural_sort_key(exhibit.exhibit_number), exhibit.created_at),
        )

    # ------------------------------------------------------------------
    # Exhibit records
    # ------------------------------------------------------------------

    def create(
        self,
        document_id: str,
        case_id: str,
        *,
        title: str | None = None,
        description: str | None = None,
        exhibit_number: str | None = None,
        status: str = "designated",
        created_by: str | None = None,
    ) -> Exhibit:
        if not document_id or not document_id.strip():
            raise ValidationError("Document ID is required")
        self._require_case(case_id)
        document = self._require_document(document_id)

        try:
            exhibit = Exhibit(
                document_id=document_id,
                case_id=case_id,
                title=(title or "").strip() or document.name,
                description=description,
                exhibit_number=(exhibit_number or "").strip() or None,
                status=status,
                created_by=created_by or self._settings.default_principal,
            )
        except PydanticValidationError as exc:
            raise ValidationError(describe_validation_error(exc)) from exc

        number = exhibit.exhibit_number
        if number:
            if self.exhibits.find_number_holder(case_id, number):
                raise ConflictError(f"Exhibit number {number} is already used in this case")
            exhibit.exhibit_artifact_ref = self._render_sticker(document, number)

        stored = self.exhibits.add(exhibit)
        logger.info("Created exhibit %s for document %s", stored.id, document_id)
        return stored

    def get(self, exhibit_id: str) -> Exhibit:
        exhibit = self.exhibits.get(exhibit_id)
        if exhibit is None:
            raise NotFoundError(f"Exhibit not found: {exhibit_id}")
        return exhibit

    def list(
        self,
        *,
        case_id: str | None = None,
        status: str | None = None,
        page: int = 1,
        limit: int = 10,
    ) -> SearchPage[Exhibit]:
        """List exhibits in natural exhibit-number order (unassigned last)."""
        criteria: dict[str, Any] = {}
        if case_id is not None:
            criteria["case_id"] = case_id
        if status is not None:
            if status not in EXHIBIT_STATUSES:
                raise ValidationError(f"Invalid exhibit status: {status}")
            criteria["status"] = status
        return paginate(self._sorted(self.exhibits.find(**criteria)), page, limit)

    def update(
        self,
        exhibit_id: str,
        *,
        title: str | None = None,
        description: str | None = None,
        status: str | None = None,
    ) -> Exhibit:
        self.get(exhibit_id)
        fields: dict[str, Any] = {}
        if title is not None:
            if not title.strip():
                raise ValidationError("Exhibit title cannot be blank")
            fields["title"] = title.strip()
        if description is not None:
            fields["description"] = description
        if status is not None:
            if status not in EXHIBIT_STATUSES:
                raise ValidationError(f"Invalid exhibit status: {status}")
            fields["status"] = status
        if not fields:
            return self.get(exhibit_id)
        return self.exhibits.update(exhibit_id, fields)

    def update_status(self, exhibit_id: str, status: str) -> Exhibit:
        if not status:
            raise ValidationError("Status is required")
        return self.update(exhibit_id, status=status)

    def status_counts(self, case_id: str) -> dict[str, int]:
        """Return the number of exhibits in ``case_id`` for every status."""
        if not case_id or not case_id.strip():
            raise ValidationError("Case ID is required")
        counts = Counter(exhibit.status for exhibit in self.exhibits.find(case_id=case_id))
        return {status: counts.get(status, 0) for status in EXHIBIT_STATUSES}

    def delete(self, exhibit_id: str) -> None:
        if not self.exhibits.delete(exhibit_id):
            raise NotFoundError(f"Exhibit not found: {exhibit_id}")
        logger.info("Deleted exhibit %s", exhibit_id)

    # ------------------------------------------------------------------
    # Numbering
    # ------------------------------------------------------------------

    def assign(self, exhibit_id: str, exhibit_number: str) -> Exhibit:
        """Assign ``exhibit_number`` and render the exhibit sticker.

        Raises:
            ValidationError: If the number is blank
            NotFoundError: If the exhibit does not exist
            ConflictError: If another exhibit in the case holds the number
            RenderError: If the sticker cannot be drawn
        """
        number = (exhibit_number or "").strip()
        if not number:
            raise ValidationError("Exhibit number is required")

        exhibit = self.get(exhibit_id)
        if self.exhibits.find_number_holder(exhibit.case_id, number, exclude_id=exhibit.id):
            raise ConflictError(f"Exhibit number {number} is already used in this case")

        document = self.documents.get(exhibit.document_id)
        if document is None:
            logger.warning(
                "Document %s for exhibit %s is missing; assigning %s without a sticker",
                exhibit.document_id,
                exhibit.id,
                number,
            )
            artifact_ref = None
        else:
            artifact_ref = self._render_sticker(document, number)

        updated = self.exhibits.update(
            exhibit.id,
            {"exhibit_number": number, "exhibit_artifact_ref": artifact_ref},
        )
        logger.info("Assigned exhibit number %s to exhibit %s", number, exhibit.id)
        return updated

    def _render_sticker(self, document: Document, number: str) -> str | None:
        """Draw ``EXHIBIT <number>`` on the document's current artifact; return the new ref."""
        if not self.stamper.supports(document.mime_type):
            logger.info("Document %s type %s takes no sticker", document.id, document.mime_type)
            return None
        source = self.artifacts.read(self._current_artifact_ref(document))
        result = self.stamper.stamp_badge(source, f"EXHIBIT {number}", mime_type=document.mime_type)
        return self.artifacts.write(result.data)

    def batch_assign(
        self,
        exhibit_ids: Sequence[str],
        start_number: int,
        *,
        prefix: str = "",
        suffix: str = "",
    ) -> list[ExhibitBatchItemResult]:
        """Assign ``prefix + (start_number + i) + suffix`` to each exhibit in order.

        The counter advances for every item, including failed ones, so each
        exhibit's number depends only on its position in the request.
        """
        if not exhibit_ids:
            raise ValidationError("At least one exhibit ID is required")
        if start_number is None or start_number < 1:
            raise ValidationError("Start number must be a positive integer")

        results: list[ExhibitBatchItemResult] = []
        for offset, exhibit_id in enumerate(exhibit_ids):
            number = format_exhibit_number(prefix, start_number + offset, suffix)
            try:
                self.assign(exhibit_id, number)
            except LexBatesError as exc:
                results.append(
                    ExhibitBatchItemResult(
                        exhibit_id=exhibit_id,
                        success=False,
                        exhibit_number=number,
                        error=exc.kind,
                        message=exc.message,
                    )
                )
                continue
            results.append(
                ExhibitBatchItemResult(exhibit_id=exhibit_id, success=True, exhibit_number=number)
            )
        return results

    # ------------------------------------------------------------------
    # Exhibit list
    # ------------------------------------------------------------------

    def generate_exhibit_list(
        self, case_id: str, format: str = "json"
    ) -> list[dict[str, Any]] | str:
        """Exhibits of ``case_id`` in natural number order, as rows or CSV text."""
        if not case_id or not case_id.strip():
            raise ValidationError("Case ID is required")
        if format not in ("json", "csv"):
            raise ValidationError(f"Unsupported exhibit list format: {format}")

        rows: list[dict[str, Any]] = []
        for exhibit in self._sorted(self.exhibits.find(case_id=case_id)):
            document = self.documents.get(exhibit.document_id)
            rows.append(
                {
                    "exhibit_id": exhibit.id,
                    "exhibit_number": exhibit.exhibit_number or "",
                    "title": exhibit.title,
                    "description": exhibit.description or "",
                    "bates_number": self._bates_number(document),
                    "status": exhibit.status,
                    "document_id": exhibit.document_id,
                    "document_name": document.name if document is not None else "",
                }
            )

        if format == "json":
            return rows

        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(EXHIBIT_LIST_HEADER)
        for row in rows:
            writer.writerow(
                [
                    row["exhibit_number"],
                    row["title"],
                    row["description"],
                    row["bates_number"],
                    row["status"],
                ]
            )
        return buffer.getvalue()

    # ------------------------------------------------------------------
    # Packages
    # ------------------------------------------------------------------

    def create_package(
        self,
        name: str,
        case_id: str,
        exhibit_ids: Sequence[str],
        *,
        description: str | None = None,
        event_type: str = "other",
        created_by: str | None = None,
    ) -> ExhibitPackage:
        if not name or not name.strip():
            raise ValidationError("Package name is required")
        self._require_case(case_id)
        if not exhibit_ids:
            raise ValidationError("At least one exhibit ID is required")
        if len(set(exhibit_ids)) != len(exhibit_ids):
            raise ValidationError("Exhibit IDs must not repeat within a package")

        for exhibit_id in exhibit_ids:
            exhibit = self.get(exhibit_id)
            if exhibit.case_id != case_id:
                raise ValidationError(f"Exhibit {exhibit_id} belongs to a different case")

        try:
            package = ExhibitPackage(
                name=name.strip(),
                description=description,
                case_id=case_id,
                exhibit_ids=list(exhibit_ids),
                event_type=event_type,
                created_by=created_by or self._settings.default_principal,
            )
        except PydanticValidationError as exc:
            raise ValidationError(describe_validation_error(exc)) from exc

        stored = self.packages.add(package)
        logger.info("Created exhibit package %s with %d exhibits", stored.id, len(exhibit_ids))
        return stored

    def get_package(self, package_id: str) -> PackageDetail:
        package = self.packages.get(package_id)
        if package is None:
            raise NotFoundError(f"Exhibit package not found: {package_id}")

        detail = PackageDetail(package=package)
        for exhibit_id in package.exhibit_ids:
            exhibit = self.exhibits.get(exhibit_id)
            if exhibit is None:
                detail.missing_exhibit_ids.append(exhibit_id)
            else:
                detail.exhibits.append(exhibit)
        return detail

    def build_package_pdf(self, package_id: str, *, watermark: str | None = None) -> PackageBuild:
        """Merge the package's exhibits into one PDF stored in the artifact store.

        Stickered exhibits contribute their stickered artifact; others fall back
        to the document's current artifact. Non-PDF documents are skipped.
        """
        detail = self.get_package(package_id)

        parts: list[bytes] = []
        included: list[str] = []
        skipped: list[str] = list(detail.missing_exhibit_ids)
        for exhibit in detail.exhibits:
            document = self.documents.get(exhibit.document_id)
            if document is None or not self.stamper.supports(document.mime_type):
                logger.warning(
                    "Skipping exhibit %s in package %s: no page-addressable document",
                    exhibit.id,
                    package_id,
                )
                skipped.append(exhibit.id)
                continue
            ref = exhibit.exhibit_artifact_ref or self._current_artifact_ref(document)
            parts.append(self.artifacts.read(ref))
            included.append(exhibit.id)

        if not parts:
            raise ValidationError("Package has no PDF exhibits to merge")

        merged = self.stamper.merge(parts)
        if watermark:
            merged = self.stamper.stamp_watermark(
                merged, watermark, mime_type=PDF_MIME_TYPE
            ).data

        artifact_ref = self.artifacts.write(merged)
        page_count = self.stamper.page_count(merged, mime_type=PDF_MIME_TYPE)
        logger.info(
            "Built package %s: %d exhibits, %d pages (%s)",
            package_id,
            len(included),
            page_count,
            artifact_ref,
        )
        return PackageBuild(
            package_id=package_id,
            artifact_ref=artifact_ref,
            page_count=page_count,
            included_exhibit_ids=included,
            skipped_exhibit_ids=skipped,
            watermark=watermark or None,
        )
