"""JSONL-backed record stores for cases, documents, configs and exhibits."""

from __future__ import annotations

import logging
import threading
from pathlib import Path
from typing import Any, ClassVar, Generic, TypeVar

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from lexbates.app.ports.cases import Case
from lexbates.app.ports.documents import Document
from lexbates.app.ports.exhibits import Exhibit, ExhibitPackage
from lexbates.app.ports.numbering import NumberingConfig
from lexbates.errors import (
    ConflictError,
    NotFoundError,
    StorageError,
    ValidationError,
    describe_validation_error,
)
from lexbates.utils.identifiers import utc_now
from lexbates.utils.jsonl import atomic_write_jsonl, read_jsonl
from lexbates.utils.schema import strip_schema_metadata

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)


class JsonlRecordStore(Generic[ModelT]):
    """Keyed collection of pydantic records persisted as one JSONL file.

    The whole file is rewritten atomically on every mutation. Reads are served
    from memory; an internal lock serializes read-modify-write cycles.
    """

    model: ClassVar[type[BaseModel]]
    schema_id: ClassVar[str]
    label: ClassVar[str] = "Record"

    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._lock = threading.RLock()
        self._records: dict[str, ModelT] = self._load()

    def _load(self) -> dict[str, ModelT]:
        if not self._path.exists():
            return {}

        records: dict[str, ModelT] = {}
        try:
            for raw in read_jsonl(self._path):
                record = self.model.model_validate(strip_schema_metadata(raw))
                records[record.id] = record  # type: ignore[attr-defined]
        except (OSError, ValueError) as exc:
            raise StorageError(f"Unable to load {self.schema_id} store: {exc}") from exc
        logger.debug("Loaded %d %s records from %s", len(records), self.schema_id, self._path)
        return records

    def _flush(self) -> None:
        try:
            atomic_write_jsonl(
                self._path,
                self._records.values(),
                schema_id=self.schema_id,
                schema_version=1,
            )
        except OSError as exc:
            raise StorageError(f"Unable to write {self.schema_id} store: {exc}") from exc

    def _missing(self, record_id: str) -> NotFoundError:
        return NotFoundError(f"{self.label} not found: {record_id}")

    def _check_insert(self, record: ModelT) -> None:
        """Hook for subclasses enforcing secondary unique indexes."""

    def _check_update(self, current: ModelT, updated: ModelT) -> None:
        """Hook for subclasses enforcing secondary unique indexes."""

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get(self, record_id: str) -> ModelT | None:
        with self._lock:
            record = self._records.get(record_id)
            return record.model_copy(deep=True) if record is not None else None

    def add(self, record: ModelT) -> ModelT:
        with self._lock:
            record_id = record.id  # type: ignore[attr-defined]
            if record_id in self._records:
                raise ConflictError(f"{self.label} already exists: {record_id}")
            self._check_insert(record)
            self._records[record_id] = record.model_copy(deep=True)
            try:
                self._flush()
            except StorageError:
                del self._records[record_id]
                raise
            return record.model_copy(deep=True)

    def update(self, record_id: str, fields: dict[str, Any]) -> ModelT:
        with self._lock:
            current = self._records.get(record_id)
            if current is None:
                raise self._missing(record_id)

            payload = current.model_dump()
            payload.update(fields)
            if "updated_at" in type(current).model_fields:
                payload["updated_at"] = utc_now()
            try:
                updated = type(current).model_validate(payload)
            except PydanticValidationError as exc:
                raise ValidationError(describe_validation_error(exc)) from exc

            self._check_update(current, updated)
            self._records[record_id] = updated
            try:
                self._flush()
            except StorageError:
                self._records[record_id] = current
                raise
            return updated.model_copy(deep=True)

    def delete(self, record_id: str) -> bool:
        with self._lock:
            removed = self._records.pop(record_id, None)
            if removed is None:
                return False
            try:
                self._flush()
            except StorageError:
                self._records[record_id] = removed
                raise
            return True

    def find(self, **criteria: Any) -> list[ModelT]:
        with self._lock:
            return [
                record.model_copy(deep=True)
                for record in self._records.values()
                if all(getattr(record, key) == value for key, value in criteria.items())
            ]

    def all(self) -> list[ModelT]:
        return self.find()


class CaseStore(JsonlRecordStore[Case]):
    """Case records."""

    model = Case
    schema_id = "case"
    label = "Case"

    def exists(self, case_id: str) -> bool:
        with self._lock:
            return case_id in self._records

    def list(self) -> list[Case]:
        return sorted(self.all(), key=lambda case: case.created_at)


class DocumentStore(JsonlRecordStore[Document]):
    """Document records."""

    model = Document
    schema_id = "document"
    label = "Document"


class ConfigStore(JsonlRecordStore[NumberingConfig]):
    """Numbering configuration records."""

    model = NumberingConfig
    schema_id = "numbering_config"
    label = "Bates configuration"


class ExhibitStore(JsonlRecordStore[Exhibit]):
    """Exhibit records with a unique (case_id, exhibit_number) index."""

    model = Exhibit
    schema_id = "exhibit"
    label = "Exhibit"

    def find_number_holder(
        self, case_id: str, exhibit_number: str, *, exclude_id: str | None = None
    ) -> Exhibit | None:
        with self._lock:
            for record in self._records.values():
                if record.id == exclude_id:
                    continue
                if record.case_id == case_id and record.exhibit_number == exhibit_number:
                    return record.model_copy(deep=True)
            return None

    def _check_insert(self, record: Exhibit) -> None:
        if record.exhibit_number and self.find_number_holder(
            record.case_id, record.exhibit_number
        ):
            raise ConflictError(
                f"Exhibit number {record.exhibit_number} is already used in this case"
            )

    def _check_update(self, current: Exhibit, updated: Exhibit) -> None:
        if not updated.exhibit_number:
            return
        if (
            updated.exhibit_number == current.exhibit_number
            and updated.case_id == current.case_id
        ):
            return
        if self.find_number_holder(
            updated.case_id, updated.exhibit_number, exclude_id=updated.id
        ):
            raise ConflictError(
                f"Exhibit number {updated.exhibit_number} is already used in this case"
            )


class PackageStore(JsonlRecordStore[ExhibitPackage]):
    """Exhibit package records."""

    model = ExhibitPackage
    schema_id = "exhibit_package"
    label = "Exhibit package"
