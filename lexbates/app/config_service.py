"""Numbering configuration management with post-use immutability."""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from lexbates.app.ports import CaseStorePort, ConfigStorePort, LedgerPort, NumberingConfig
from lexbates.app.ports.numbering import LOCKED_CONFIG_FIELDS, MUTABLE_CONFIG_FIELDS
from lexbates.config import Settings, get_settings
from lexbates.errors import (
    ConflictError,
    NotFoundError,
    ValidationError,
    describe_validation_error,
)

logger = logging.getLogger(__name__)


class NumberingConfigService:
    """Create, inspect and edit Bates numbering configurations.

    Once the registry holds an entry for a configuration its prefix, suffix,
    start number and format are frozen, and the configuration can no longer
    be deleted.
    """

    def __init__(
        self,
        *,
        config_store: ConfigStorePort,
        case_store: CaseStorePort,
        ledger: LedgerPort,
        settings: Settings | None = None,
    ) -> None:
        self.configs = config_store
        self.cases = case_store
        self.ledger = ledger
        self._settings = settings or get_settings()

    def create(
        self,
        name: str,
        case_id: str,
        *,
        prefix: str = "",
        suffix: str = "",
        start_number: int = 1,
        padding: int | None = None,
        format: str = "sequential",
        created_by: str | None = None,
    ) -> NumberingConfig:
        if not name or not name.strip():
            raise ValidationError("Configuration name is required")
        if not case_id or not case_id.strip():
            raise ValidationError("Case ID is required")
        if not self.cases.exists(case_id):
            raise NotFoundError(f"Case not found: {case_id}")

        try:
            config = NumberingConfig(
                name=name.strip(),
                case_id=case_id,
                prefix=prefix or "",
                suffix=suffix or "",
                start_number=start_number,
                padding=self._settings.default_padding if padding is None else padding,
                format=format,
                created_by=created_by or self._settings.default_principal,
            )
        except PydanticValidationError as exc:
            raise ValidationError(describe_validation_error(exc)) from exc

        stored = self.configs.add(config)
        logger.info("Created numbering configuration %s (%s)", stored.id, stored.name)
        return stored

    def get(self, config_id: str) -> NumberingConfig:
        config = self.configs.get(config_id)
        if config is None:
            raise NotFoundError(f"Bates configuration not found: {config_id}")
        return config

    def list(self, case_id: str | None = None) -> list[NumberingConfig]:
        """Return configurations, newest first."""
        criteria: dict[str, Any] = {}
        if case_id is not None:
            criteria["case_id"] = case_id
        # Reverse insertion order first so equal timestamps still list newest first.
        return sorted(
            self.configs.find(**criteria)[::-1],
            key=lambda config: config.created_at,
            reverse=True,
        )

    def is_locked(self, config_id: str) -> bool:
        """Return True when the registry already references ``config_id``."""
        return self.ledger.has_entries(config_id)

    def update(self, config_id: str, **fields: Any) -> NumberingConfig:
        current = self.get(config_id)

        unknown = set(fields) - LOCKED_CONFIG_FIELDS - MUTABLE_CONFIG_FIELDS
        if unknown:
            raise ValidationError(
                f"Unknown configuration field(s): {', '.join(sorted(unknown))}"
            )

        if "name" in fields and (fields["name"] is None or not str(fields["name"]).strip()):
            raise ValidationError("Configuration name is required")

        changed = {
            key: value for key, value in fields.items() if getattr(current, key) != value
        }
        locked = sorted(set(fields) & LOCKED_CONFIG_FIELDS)
        if locked and self.ledger.has_entries(config_id):
            raise ConflictError(
                "Cannot modify prefix, suffix, start number or format after labels have been "
                f"applied (attempted: {', '.join(locked)})"
            )

        if not changed:
            return current

        updated = self.configs.update(config_id, changed)
        logger.info("Updated numbering configuration %s: %s", config_id, sorted(changed))
        return updated

    def delete(self, config_id: str) -> None:
        self.get(config_id)
        if self.ledger.has_entries(config_id):
            raise ConflictError(
                "Cannot delete a Bates configuration that has been used to label documents"
            )
        self.configs.delete(config_id)
        logger.info("Deleted numbering configuration %s", config_id)
