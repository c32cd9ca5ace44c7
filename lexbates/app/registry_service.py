"""Bates registry queries, reports and integrity verification."""

from __future__ import annotations

import csv
import io
import logging
from typing import Any, Literal

from lexbates.app.ports import (
    ArtifactStorePort,
    ConfigStorePort,
    DocumentStorePort,
    LedgerEntry,
    LedgerPort,
    NumberingConfig,
)
from lexbates.app.results import SearchPage, paginate
from lexbates.errors import NotFoundError, StorageError, ValidationError
from lexbates.utils.hashing import compute_sha256

logger = logging.getLogger(__name__)

ReportFormat = Literal["json", "csv"]

BATES_REPORT_HEADER = ("Bates Number", "Document Name", "Applied By", "Applied Date")


class RegistryService:
    """Read side of the Bates registry: peek, search, list, report and verify."""

    def __init__(
        self,
        *,
        ledger: LedgerPort,
        config_store: ConfigStorePort,
        document_store: DocumentStorePort,
        artifact_store: ArtifactStorePort,
    ) -> None:
        self.ledger = ledger
        self.configs = config_store
        self.documents = document_store
        self.artifacts = artifact_store

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _require_config(self, config_id: str) -> NumberingConfig:
        config = self.configs.get(config_id)
        if config is None:
            raise NotFoundError(f"Bates configuration not found: {config_id}")
        return config

    def _scope(self, config_id: str | None, case_id: str | None) -> set[str] | None:
        """Resolve the set of configuration ids a query covers (None = all)."""
        scope: set[str] | None = None
        if config_id is not None:
            self._require_config(config_id)
            scope = {config_id}
        if case_id is not None:
            case_configs = {config.id for config in self.configs.find(case_id=case_id)}
            scope = case_configs if scope is None else scope & case_configs
        return scope

    def _document_name(self, document_id: str) -> str:
        document = self.documents.get(document_id)
        return document.name if document is not None else ""

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def next_sequence_number(self, config_id: str) -> dict[str, Any]:
        """Peek at the next number (and label) without claiming it."""
        config = self._require_config(config_id)
        number = self.ledger.next_sequence_number(config)
        return {
            "config_id": config.id,
            "next_sequence_number": number,
            "next_label": config.render(number),
        }

    def find_by_label(
        self,
        pattern: str,
        *,
        case_id: str | None = None,
        page: int = 1,
        limit: int = 10,
    ) -> SearchPage[LedgerEntry]:
        """Case-insensitive substring search over rendered labels."""
        if pattern is None or not pattern.strip():
            raise ValidationError("Search pattern is required")

        needle = pattern.strip().lower()
        matches = [
            entry
            for entry in self.ledger.entries(self._scope(None, case_id))
            if needle in entry.rendered_label.lower()
        ]
        return paginate(matches, page, limit)

    def list_entries(
        self,
        *,
        config_id: str | None = None,
        case_id: str | None = None,
        page: int = 1,
        limit: int = 10,
    ) -> SearchPage[LedgerEntry]:
        return paginate(self.ledger.entries(self._scope(config_id, case_id)), page, limit)

    def report(
        self,
        *,
        config_id: str | None = None,
        case_id: str | None = None,
        format: str = "json",
    ) -> list[dict[str, Any]] | str:
        """Return every matching entry ascending by sequence number.

        JSON rows join each entry with its configuration and document names.
        CSV output has the header ``Bates Number,Document Name,Applied By,Applied Date``.
        """
        if config_id is None and case_id is None:
            raise ValidationError("Either a configuration ID or a case ID is required")
        if format not in ("json", "csv"):
            raise ValidationError(f"Unsupported report format: {format}")

        entries = self.ledger.entries(self._scope(config_id, case_id))
        config_names: dict[str, str] = {}
        rows: list[dict[str, Any]] = []
        for entry in entries:
            if entry.config_id not in config_names:
                config = self.configs.get(entry.config_id)
                config_names[entry.config_id] = config.name if config is not None else ""
            rows.append(
                {
                    "bates_number": entry.rendered_label,
                    "sequence_number": entry.sequence_number,
                    "config_id": entry.config_id,
                    "config_name": config_names[entry.config_id],
                    "document_id": entry.document_id,
                    "document_name": self._document_name(entry.document_id),
                    "applied_by": entry.applied_by or "",
                    "applied_date": entry.created_at.isoformat(),
                    "ledger_entry_id": entry.id,
                    "stamped": entry.stamped,
                }
            )

        if format == "json":
            return rows

        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")
        writer.writerow(BATES_REPORT_HEADER)
        for row in rows:
            writer.writerow(
                [row["bates_number"], row["document_name"], row["applied_by"], row["applied_date"]]
            )
        return buffer.getvalue()

    def verify(self, *, check_artifacts: bool = True) -> tuple[bool, list[str]]:
        """Verify the registry chain and, optionally, every referenced artifact.

        Artifact references are content addresses, so each stored file is
        re-hashed and compared against its reference.
        """
        is_valid, errors = self.ledger.verify()
        errors = list(errors)
        if not check_artifacts:
            return is_valid, errors

        for entry in self.ledger.entries():
            for ref in (entry.original_artifact_ref, entry.labeled_artifact_ref):
                try:
                    data = self.artifacts.read(ref)
                except StorageError as exc:
                    errors.append(f"{entry.rendered_label}: {exc.message}")
                    continue
                if f"sha256:{compute_sha256(data)}" != ref:
                    errors.append(f"{entry.rendered_label}: artifact {ref} content mismatch")

        if errors:
            logger.warning("Bates registry verification found %d problem(s)", len(errors))
        return not errors, errors
