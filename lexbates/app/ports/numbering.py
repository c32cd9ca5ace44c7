"""Numbering configuration port interface and DTOs."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal, Protocol

from pydantic import BaseModel, Field

from lexbates.utils.identifiers import new_id, utc_now
from lexbates.utils.labels import render_label

NumberingFormat = Literal["sequential", "alphanumeric"]

# Fields frozen once the registry holds an entry for the configuration.
LOCKED_CONFIG_FIELDS: frozenset[str] = frozenset({"prefix", "suffix", "start_number", "format"})
MUTABLE_CONFIG_FIELDS: frozenset[str] = frozenset({"name", "padding"})


class NumberingConfig(BaseModel):
    """Definition of a Bates label series."""

    id: str = Field(default_factory=new_id, description="Configuration identifier")
    name: str = Field(..., min_length=1, description="Display name of the series")
    prefix: str = Field("", description="Text placed before the number")
    suffix: str = Field("", description="Text placed after the number")
    start_number: int = Field(1, ge=1, description="First sequence number handed out")
    padding: int = Field(5, ge=0, description="Minimum digit width, zero-filled")
    format: NumberingFormat = Field("sequential", description="Numeric rendering of the sequence")
    case_id: str = Field(..., min_length=1, description="Owning case")
    created_by: str | None = Field(default=None, description="Principal that created the series")
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def render(self, sequence_number: int) -> str:
        """Render the label for ``sequence_number`` under this configuration."""
        return render_label(
            self.prefix, sequence_number, self.padding, self.suffix, fmt=self.format
        )


class ConfigStorePort(Protocol):
    """Port interface for numbering configuration records."""

    def get(self, config_id: str) -> NumberingConfig | None:
        ...

    def add(self, config: NumberingConfig) -> NumberingConfig:
        ...

    def update(self, config_id: str, fields: dict[str, Any]) -> NumberingConfig:
        ...

    def delete(self, config_id: str) -> bool:
        ...

    def find(self, **criteria: Any) -> list[NumberingConfig]:
        ...
