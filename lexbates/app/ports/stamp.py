"""Stamp port interface for label rendering (Bates, exhibit stickers, watermarks)."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Literal, Protocol

from pydantic import BaseModel, Field

StampPosition = Literal["bottom-right", "bottom-left", "top-left", "top-right"]
STAMP_POSITIONS: tuple[str, ...] = ("bottom-right", "bottom-left", "top-left", "top-right")


class StampResult(BaseModel):
    """Rendered artifact returned by every stamping operation."""

    data: bytes = Field(..., description="Bytes of the new artifact")
    stamped: bool = Field(
        ..., description="False when the input type was passed through unmodified"
    )
    pages_stamped: int = Field(0, ge=0, description="Number of pages that received a mark")


class StampPort(Protocol):
    """Port interface for artifact stamping.

    Implementations are pure: they never mutate the input bytes and always
    return new bytes. Unsupported artifact types pass through unchanged with
    ``stamped=False``.
    """

    def supports(self, mime_type: str) -> bool:
        """Return True when ``mime_type`` is page-addressable for this renderer."""
        ...

    def stamp_text(
        self,
        data: bytes,
        text: str,
        *,
        mime_type: str,
        position: StampPosition = "bottom-right",
    ) -> StampResult:
        """Draw ``text`` on every page at ``position``."""
        ...

    def stamp_badge(self, data: bytes, text: str, *, mime_type: str) -> StampResult:
        """Draw a bordered sticker with ``text`` in the top-right of the first page."""
        ...

    def stamp_watermark(self, data: bytes, text: str, *, mime_type: str) -> StampResult:
        """Draw diagonal translucent ``text`` across every page."""
        ...

    def merge(self, parts: Sequence[bytes]) -> bytes:
        """Concatenate page-addressable ``parts`` into a single artifact."""
        ...

    def page_count(self, data: bytes, *, mime_type: str) -> int:
        """Return page count (0 for unsupported types)."""
        ...
