"""Application bootstrap wiring ports, adapters, and services."""

from __future__ import annotations

from dataclasses import dataclass

from lexbates.app import (
    CatalogService,
    ExhibitService,
    LabelingService,
    NumberingConfigService,
    RegistryService,
)
from lexbates.app.adapters import (
    CaseStore,
    ConfigStore,
    DocumentStore,
    ExhibitStore,
    FileSystemArtifactStore,
    PackageStore,
    PDFStamperAdapter,
)
from lexbates.app.ports import LedgerPort, StampPort
from lexbates.config import Settings, get_settings
from lexbates.registry import BatesRegistry


@dataclass(slots=True)
class ApplicationContainer:
    """Aggregates wired services and adapters for the CLI layer."""

    settings: Settings
    catalog_service: CatalogService
    config_service: NumberingConfigService
    registry_service: RegistryService
    labeling_service: LabelingService
    exhibit_service: ExhibitService
    ledger_port: LedgerPort
    stamper: StampPort
    artifact_store: FileSystemArtifactStore


def _create_ledger(settings: Settings) -> BatesRegistry:
    return BatesRegistry(
        settings.get_registry_path(),
        hmac_key=settings.get_registry_hmac_key(),
        claims_path=settings.get_bates_dir() / "claims.json",
    )


def bootstrap_application(settings: Settings | None = None) -> ApplicationContainer:
    """Instantiate adapters and services for CLI consumption."""

    active_settings = settings or get_settings()

    case_store = CaseStore(active_settings.get_collection_path("cases"))
    document_store = DocumentStore(active_settings.get_collection_path("documents"))
    config_store = ConfigStore(active_settings.get_collection_path("configs"))
    exhibit_store = ExhibitStore(active_settings.get_collection_path("exhibits"))
    package_store = PackageStore(active_settings.get_collection_path("packages"))
    artifact_store = FileSystemArtifactStore(active_settings.get_artifact_dir())
    stamper = PDFStamperAdapter()
    ledger = _create_ledger(active_settings)

    catalog_service = CatalogService(
        case_store=case_store,
        document_store=document_store,
        artifact_store=artifact_store,
    )
    config_service = NumberingConfigService(
        config_store=config_store,
        case_store=case_store,
        ledger=ledger,
        settings=active_settings,
    )
    registry_service = RegistryService(
        ledger=ledger,
        config_store=config_store,
        document_store=document_store,
        artifact_store=artifact_store,
    )
    labeling_service = LabelingService(
        document_store=document_store,
        artifact_store=artifact_store,
        config_store=config_store,
        ledger=ledger,
        stamper=stamper,
        settings=active_settings,
    )
    exhibit_service = ExhibitService(
        exhibit_store=exhibit_store,
        package_store=package_store,
        document_store=document_store,
        case_store=case_store,
        artifact_store=artifact_store,
        stamper=stamper,
        ledger=ledger,
        settings=active_settings,
    )

    return ApplicationContainer(
        settings=active_settings,
        catalog_service=catalog_service,
        config_service=config_service,
        registry_service=registry_service,
        labeling_service=labeling_service,
        exhibit_service=exhibit_service,
        ledger_port=ledger,
        stamper=stamper,
        artifact_store=artifact_store,
    )
