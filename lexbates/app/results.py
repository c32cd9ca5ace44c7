"""Structured outcomes for single and batch operations."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Generic, TypeVar

from pydantic import BaseModel, Field

from lexbates.errors import LexBatesError, ValidationError

T = TypeVar("T")


class Outcome(BaseModel, Generic[T]):
    """Either ``success`` with a payload, or an error kind with a message."""

    success: bool
    payload: T | None = None
    error: str | None = None
    message: str | None = None

    @classmethod
    def ok(cls, payload: T) -> Outcome[T]:
        return cls(success=True, payload=payload)

    @classmethod
    def failed(cls, exc: LexBatesError) -> Outcome[Any]:
        return cls(success=False, error=exc.kind, message=exc.message)

    @classmethod
    def capture(cls, func: Callable[..., T], *args: Any, **kwargs: Any) -> Outcome[T]:
        """Run ``func`` and convert a :class:`LexBatesError` into a failed outcome.

        Unexpected exceptions propagate.
        """
        try:
            return cls.ok(func(*args, **kwargs))
        except LexBatesError as exc:
            return cls.failed(exc)

    def to_dict(self) -> dict[str, Any]:
        if self.success:
            payload = self.payload
            if isinstance(payload, BaseModel):
                payload = payload.model_dump(mode="json")
            elif isinstance(payload, list):
                payload = [
                    item.model_dump(mode="json") if isinstance(item, BaseModel) else item
                    for item in payload
                ]
            return {"success": True, "payload": payload}
        return {"success": False, "error": self.error, "message": self.message}


class BatchItemResult(BaseModel):
    """Per-document result of a batch Bates application."""

    document_id: str = Field(..., description="Document the item refers to")
    success: bool = Field(...)
    rendered_label: str | None = Field(default=None, description="Label applied on success")
    sequence_number: int | None = Field(
        default=None, description="Number consumed (also set when a claimed number was burned)"
    )
    stamped: bool | None = Field(default=None, description="Whether a visual label was drawn")
    ledger_entry_id: str | None = Field(default=None)
    error: str | None = Field(default=None, description="Error kind on failure")
    message: str | None = Field(default=None, description="Error message on failure")


class ExhibitBatchItemResult(BaseModel):
    """Per-exhibit result of a batch exhibit number assignment."""

    exhibit_id: str = Field(...)
    success: bool = Field(...)
    exhibit_number: str = Field(..., description="Number attempted for this item")
    error: str | None = Field(default=None)
    message: str | None = Field(default=None)


class SearchPage(BaseModel, Generic[T]):
    """One page of a paginated listing."""

    items: list[T] = Field(default_factory=list)
    count: int = Field(0, description="Items on this page")
    total: int = Field(0, description="Items across all pages")
    total_pages: int = Field(0)
    current_page: int = Field(1)


def paginate(items: list[T], page: int, limit: int) -> SearchPage[T]:
    """Slice ``items`` into a :class:`SearchPage` (``page`` is 1-based)."""
    if page < 1:
        raise ValidationError("page must be at least 1")
    if limit < 1:
        raise ValidationError("limit must be at least 1")

    total = len(items)
    total_pages = (total + limit - 1) // limit
    start = (page - 1) * limit
    window = items[start : start + limit]
    return SearchPage(
        items=window,
        count=len(window),
        total=total,
        total_pages=total_pages,
        current_page=page,
    )
