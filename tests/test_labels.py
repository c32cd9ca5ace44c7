"""Tests for Bates and exhibit label formatting."""

from __future__ import annotations

import pytest

from lexbates.app.ports import NumberingConfig
from lexbates.utils.labels import (
    format_exhibit_number,
    natural_sort_key,
    render_label,
    to_base36,
    zero_pad,
)


def test_render_label_pads_to_width() -> None:
    assert render_label("TEST", 42, 5) == "TEST00042"


def test_padding_is_a_minimum_width() -> None:
    assert render_label("", 123456, 5) == "123456"
    assert zero_pad("123456", 3) == "123456"


def test_render_label_with_suffix_and_zero_padding() -> None:
    assert render_label("ABC-", 7, 0, "-CONF") == "ABC-7-CONF"


def test_alphanumeric_format_uses_upper_case_base36() -> None:
    assert to_base36(0) == "0"
    assert to_base36(35) == "Z"
    assert to_base36(36) == "10"
    assert render_label("X", 35, 3, fmt="alphanumeric") == "X00Z"


def test_base36_rejects_negative_numbers() -> None:
    with pytest.raises(ValueError):
        to_base36(-1)


def test_numbering_config_render_uses_its_fields() -> None:
    config = NumberingConfig(name="Production", case_id="c1", prefix="ACME", padding=6)
    assert config.render(1) == "ACME000001"


def test_format_exhibit_number_is_unpadded() -> None:
    assert format_exhibit_number("PX-", 9, "a") == "PX-9a"


def test_natural_sort_orders_numbers_and_puts_unassigned_last() -> None:
    values = ["10", None, "2", "A", "1", ""]
    ordered = sorted(values, key=natural_sort_key)
    assert ordered[:4] == ["1", "2", "10", "A"]
    assert set(ordered[4:]) == {None, ""}
