"""Application layer for LexBates.

This layer orchestrates numbering and labeling without direct filesystem I/O.
All side effects are delegated to adapters via port interfaces.
"""

__all__ = [
    "CatalogService",
    "ExhibitService",
    "LabelingService",
    "NumberingConfigService",
    "RegistryService",
]

from lexbates.app.catalog_service import CatalogService
from lexbates.app.config_service import NumberingConfigService
from lexbates.app.exhibit_service import ExhibitService
from lexbates.app.labeling_service import LabelingService
from lexbates.app.registry_service import RegistryService
