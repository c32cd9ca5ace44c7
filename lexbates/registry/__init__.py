"""Bates numbering registry."""

from lexbates.registry.ledger import BatesRegistry

__all__ = ["BatesRegistry"]
