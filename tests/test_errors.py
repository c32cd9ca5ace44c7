"""Tests for the shared error taxonomy and pydantic error flattening."""

from __future__ import annotations

import pytest
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from lexbates.bootstrap import ApplicationContainer
from lexbates.errors import LexBatesError, ValidationError, describe_validation_error


class _Sample(BaseModel):
    name: str
    count: int = Field(..., ge=1)


def test_describe_validation_error_names_each_field() -> None:
    with pytest.raises(PydanticValidationError) as excinfo:
        _Sample.model_validate({"count": 0})

    message = describe_validation_error(excinfo.value)

    parts = message.split("; ")
    assert len(parts) == 2
    assert sorted(part.split(":")[0] for part in parts) == ["count", "name"]


def test_describe_validation_error_joins_nested_locations() -> None:
    class Outer(BaseModel):
        inner: _Sample

    with pytest.raises(PydanticValidationError) as excinfo:
        Outer.model_validate({"inner": {"name": "x", "count": -5}})

    assert describe_validation_error(excinfo.value).startswith("inner.count: ")


def test_services_report_flattened_model_errors(
    container: ApplicationContainer, case_id: str
) -> None:
    with pytest.raises(ValidationError) as excinfo:
        container.config_service.create("Production", case_id, format="roman")

    assert excinfo.value.message.startswith("format: ")
    assert excinfo.value.kind == "validation_error"
    assert isinstance(excinfo.value, LexBatesError)
