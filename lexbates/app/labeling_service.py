"""Bates labeling: claim a number, stamp the document, record and link it.

Every application moves through the same steps: the next number is claimed
from the registry, the document bytes are stamped into a new artifact, the
registry records the application, and finally the document record is linked
to the registry entry. A number claimed for an application that then fails is
abandoned and leaves a gap; it is never handed out again.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import Iterator, Sequence
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeout
from contextlib import contextmanager

from lexbates.app.ports import (
    ArtifactStorePort,
    BatesLabelRef,
    ConfigStorePort,
    Document,
    DocumentStorePort,
    LedgerEntry,
    LedgerPort,
    NumberingConfig,
    StampPort,
    StampResult,
)
from lexbates.app.ports.stamp import STAMP_POSITIONS, StampPosition
from lexbates.app.results import BatchItemResult
from lexbates.config import Settings, get_settings
from lexbates.errors import (
    ConflictError,
    LexBatesError,
    NotFoundError,
    RenderError,
    StorageError,
    ValidationError,
)

logger = logging.getLogger(__name__)


class LabelingService:
    """Apply Bates labels to single documents or ordered batches."""

    def __init__(
        self,
        *,
        document_store: DocumentStorePort,
        artifact_store: ArtifactStorePort,
        config_store: ConfigStorePort,
        ledger: LedgerPort,
        stamper: StampPort,
        settings: Settings | None = None,
    ) -> None:
        self.documents = document_store
        self.artifacts = artifact_store
        self.configs = config_store
        self.ledger = ledger
        self.stamper = stamper
        self._settings = settings or get_settings()
        self._inflight: set[str] = set()
        self._inflight_lock = threading.Lock()

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def apply_label(
        self,
        document_id: str,
        config_id: str,
        *,
        position: str | None = None,
        applied_by: str | None = None,
    ) -> LedgerEntry:
        """Label one document and return the new registry entry.

        Raises:
            NotFoundError: If the document or configuration does not exist
            ConflictError: If the document already carries a Bates label
            RenderError: If the document cannot be stamped
            StorageError: If a store fails
        """
        resolved_position = self._resolve_position(position)
        with self._reserve_document(document_id):
            document = self._load_unlabeled(document_id)
            config = self._require_config(config_id)
            number = self.ledger.claim_next(config)
            return self._complete(document, config, number, resolved_position, applied_by)

    def batch_apply_labels(
        self,
        document_ids: Sequence[str],
        config_id: str,
        *,
        position: str | None = None,
        applied_by: str | None = None,
    ) -> list[BatchItemResult]:
        """Label documents in input order, isolating per-document failures.

        A document that is missing or already labeled fails before any number
        is claimed for it. Failures after the claim burn that number. Only a
        failure of the number allocator itself aborts the batch.
        """
        if not document_ids:
            raise ValidationError("At least one document ID is required")
        config = self._require_config(config_id)
        resolved_position = self._resolve_position(position)

        results: list[BatchItemResult] = []
        for document_id in document_ids:
            try:
                with self._reserve_document(document_id):
                    try:
                        document = self._load_unlabeled(document_id)
                    except LexBatesError as exc:
                        results.append(self._failed_item(document_id, exc))
                        continue

                    try:
                        number = self.ledger.claim_next(config)
                    except LexBatesError as exc:
                        logger.error(
                            "Bates allocation failed for configuration %s; "
                            "aborting batch after %d item(s)",
                            config.id,
                            len(results),
                        )
                        raise StorageError(
                            f"Number allocation failed, batch aborted: {exc.message}"
                        ) from exc

                    try:
                        entry = self._complete(
                            document, config, number, resolved_position, applied_by
                        )
                    except LexBatesError as exc:
                        results.append(self._failed_item(document_id, exc, number))
                        continue
            except ConflictError as exc:
                # Raised by the reservation when the document is being labeled elsewhere.
                results.append(self._failed_item(document_id, exc))
                continue

            results.append(
                BatchItemResult(
                    document_id=document_id,
                    success=True,
                    rendered_label=entry.rendered_label,
                    sequence_number=entry.sequence_number,
                    stamped=entry.stamped,
                    ledger_entry_id=entry.id,
                )
            )

        succeeded = sum(1 for item in results if item.success)
        logger.info(
            "Batch labeling with configuration %s: %d succeeded, %d failed",
            config.id,
            succeeded,
            len(results) - succeeded,
        )
        return results

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    @contextmanager
    def _reserve_document(self, document_id: str) -> Iterator[None]:
        """Keep two concurrent applications from labeling the same document."""
        with self._inflight_lock:
            if document_id in self._inflight:
                raise ConflictError(f"Document {document_id} is already being labeled")
            self._inflight.add(document_id)
        try:
            yield
        finally:
            with self._inflight_lock:
                self._inflight.discard(document_id)

    def _resolve_position(self, position: str | None) -> StampPosition:
        resolved = position or self._settings.default_position
        if resolved not in STAMP_POSITIONS:
            raise ValidationError(
                f"Invalid position '{resolved}'. Choose one of: {', '.join(STAMP_POSITIONS)}"
            )
        return resolved  # type: ignore[return-value]

    def _require_config(self, config_id: str) -> NumberingConfig:
        config = self.configs.get(config_id)
        if config is None:
            raise NotFoundError(f"Bates configuration not found: {config_id}")
        return config

    def _load_unlabeled(self, document_id: str) -> Document:
        document = self.documents.get(document_id)
        if document is None:
            raise NotFoundError(f"Document not found: {document_id}")
        if document.bates_label is not None:
            raise ConflictError(
                f"Document already has a Bates label: {document.bates_label.rendered_label}"
            )
        return document

    def _render(
        self, data: bytes, label: str, document: Document, position: StampPosition
    ) -> StampResult:
        timeout = self._settings.render_timeout_seconds
        executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="lexbates-render")
        try:
            future = executor.submit(
                self.stamper.stamp_text,
                data,
                label,
                mime_type=document.mime_type,
                position=position,
            )
            try:
                return future.result(timeout=timeout)
            except FutureTimeout as exc:
                future.cancel()
                raise RenderError(
                    f"Rendering {document.name} timed out after {timeout:g} seconds"
                ) from exc
        finally:
            # A timed-out render keeps running in the background; its output is discarded.
            executor.shutdown(wait=False)

    def _complete(
        self,
        document: Document,
        config: NumberingConfig,
        number: int,
        position: StampPosition,
        applied_by: str | None,
    ) -> LedgerEntry:
        label = config.render(number)
        try:
            original = self.artifacts.read(document.binary_ref)
            result = self._render(original, label, document, position)
            if result.stamped:
                labeled_ref = self.artifacts.write(result.data)
            else:
                logger.warning(
                    "Document %s (%s) cannot carry a visual label; recording %s without a stamp",
                    document.id,
                    document.mime_type,
                    label,
                )
                labeled_ref = document.binary_ref

            entry = self.ledger.record_application(
                LedgerEntry(
                    config_id=config.id,
                    document_id=document.id,
                    sequence_number=number,
                    rendered_label=label,
                    applied_by=applied_by or self._settings.default_principal,
                    original_artifact_ref=document.binary_ref,
                    labeled_artifact_ref=labeled_ref,
                    stamped=result.stamped,
                    position=position,
                )
            )
        except LexBatesError as exc:
            logger.warning(
                "Abandoned Bates number %s (%s) for document %s: %s",
                label,
                number,
                document.id,
                exc.message,
            )
            raise

        try:
            self.documents.update(
                document.id,
                {
                    "bates_label": BatesLabelRef(
                        ledger_entry_id=entry.id, rendered_label=entry.rendered_label
                    )
                },
            )
        except LexBatesError:
            logger.error(
                "Registry entry %s (%s) recorded but document %s could not be linked",
                entry.id,
                entry.rendered_label,
                document.id,
            )
            raise

        logger.info("Applied Bates label %s to document %s", entry.rendered_label, document.id)
        return entry

    @staticmethod
    def _failed_item(
        document_id: str, exc: LexBatesError, number: int | None = None
    ) -> BatchItemResult:
        return BatchItemResult(
            document_id=document_id,
            success=False,
            sequence_number=number,
            error=exc.kind,
            message=exc.message,
        )
