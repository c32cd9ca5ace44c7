"""Port interfaces for the LexBates application layer.

These protocol interfaces define contracts for adapters.
Domain logic depends on these ports, never on concrete implementations.
"""

__all__ = [
    "ArtifactStorePort",
    "BatesLabelRef",
    "Case",
    "CaseStorePort",
    "ConfigStorePort",
    "Document",
    "DocumentStorePort",
    "Exhibit",
    "ExhibitPackage",
    "ExhibitStorePort",
    "LedgerEntry",
    "LedgerPort",
    "NumberingConfig",
    "PackageStorePort",
    "StampPort",
    "StampResult",
]

from lexbates.app.ports.artifacts import ArtifactStorePort
from lexbates.app.ports.cases import Case, CaseStorePort
from lexbates.app.ports.documents import BatesLabelRef, Document, DocumentStorePort
from lexbates.app.ports.exhibits import (
    Exhibit,
    ExhibitPackage,
    ExhibitStorePort,
    PackageStorePort,
)
from lexbates.app.ports.ledger import LedgerEntry, LedgerPort
from lexbates.app.ports.numbering import ConfigStorePort, NumberingConfig
from lexbates.app.ports.stamp import StampPort, StampResult
