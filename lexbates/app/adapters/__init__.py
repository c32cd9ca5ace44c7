"""Concrete adapters wiring application ports to built-in implementations."""

from __future__ import annotations

from .artifacts import FileSystemArtifactStore
from .pdf_stamper import PDFStamperAdapter
from .records import (
    CaseStore,
    ConfigStore,
    DocumentStore,
    ExhibitStore,
    JsonlRecordStore,
    PackageStore,
)

__all__ = [
    "CaseStore",
    "ConfigStore",
    "DocumentStore",
    "ExhibitStore",
    "FileSystemArtifactStore",
    "JsonlRecordStore",
    "PackageStore",
    "PDFStamperAdapter",
]
