"""Error taxonomy shared by services, adapters and the CLI."""

from pydantic import ValidationError as PydanticValidationError


class LexBatesError(Exception):
    """Base class for errors surfaced to callers.

    ``kind`` is the stable identifier reported in structured outcomes.
    Messages are shown to the user and should not leak filesystem internals.
    """

    kind = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

class ValidationError(LexBatesError):
    """Raised when input is missing or malformed."""

    kind = "validation_error"

class NotFoundError(LexBatesError):
    """Raised when a referenced case, config, document or exhibit does not exist."""

    kind = "not_found"

class ConflictError(LexBatesError):
    """Raised on immutability violations, duplicate numbers or double labeling."""

    kind = "conflict"

class RenderError(LexBatesError):
    """Raised when an artifact cannot be stamped."""

    kind = "render_error"

class StorageError(LexBatesError):
    """Raised when an underlying store fails to read or write."""

    kind = "storage_error"


def describe_validation_error(exc: PydanticValidationError) -> str:
    """Flatten a pydantic error into a single user-facing sentence."""
    parts = []
    for error in exc.errors():
        location = ".".join(str(item) for item in error.get("loc", ())) or "value"
        parts.append(f"{location}: {error.get('msg', 'invalid')}")
    return "; ".join(parts)
