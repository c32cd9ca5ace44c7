"""Label formatting helpers for Bates and exhibit numbering."""

from __future__ import annotations

import re
from typing import Literal

NumberingFormatName = Literal["sequential", "alphanumeric"]

_BASE36_DIGITS = "0123456789ABCDEFGHIJKLMNOPQRSTUVWXYZ"
_NATURAL_SPLIT = re.compile(r"(\d+)")


def to_base36(number: int) -> str:
    """Render a non-negative integer in upper-case base 36."""
    if number < 0:
        raise ValueError(f"Cannot render negative number in base 36: {number}")
    if number == 0:
        return "0"
    digits: list[str] = []
    while number:
        number, remainder = divmod(number, 36)
        digits.append(_BASE36_DIGITS[remainder])
    return "".join(reversed(digits))


def zero_pad(value: str, width: int) -> str:
    """Left-pad ``value`` with zeros to ``width``; never truncates."""
    return value.rjust(max(0, width), "0")


def render_label(
    prefix: str,
    sequence_number: int,
    padding: int,
    suffix: str = "",
    *,
    fmt: NumberingFormatName = "sequential",
) -> str:
    """Render a Bates label such as ``TEST00042``.

    Padding is a minimum width: ``render_label("", 123456, 5)`` is ``"123456"``.
    """
    if fmt == "alphanumeric":
        numeric = to_base36(sequence_number)
    else:
        numeric = str(sequence_number)
    return f"{prefix}{zero_pad(numeric, padding)}{suffix}"


def format_exhibit_number(prefix: str, number: int, suffix: str = "") -> str:
    """Render an exhibit number from a batch counter (no padding)."""
    return f"{prefix}{number}{suffix}"


def natural_sort_key(value: str | None) -> tuple[int, list[tuple[int, int | str]]]:
    """Sort key ordering ``"2"`` before ``"10"`` and unassigned values last."""
    if value is None or value == "":
        return (1, [])
    parts: list[tuple[int, int | str]] = []
    for chunk in _NATURAL_SPLIT.split(value):
        if not chunk:
            continue
        if chunk.isdigit():
            parts.append((0, int(chunk)))
        else:
            parts.append((1, chunk.lower()))
    return (0, parts)
