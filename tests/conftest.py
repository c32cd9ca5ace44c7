"""Pytest configuration and fixtures."""

import gc
import shutil
import tempfile
import time
from collections.abc import Callable, Generator, Sequence
from pathlib import Path

import fitz  # type: ignore[import]
import pytest

from lexbates.bootstrap import ApplicationContainer, bootstrap_application
from lexbates.config import Settings


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    tmpdir = tempfile.mkdtemp()
    try:
        yield Path(tmpdir)
    finally:
        # Force garbage collection to release any file handles
        gc.collect()
        # Small delay to allow OS to release file locks
        time.sleep(0.1)
        shutil.rmtree(tmpdir, ignore_errors=True)


@pytest.fixture
def override_settings(temp_dir: Path) -> Generator[Settings, None, None]:
    """Provide isolated LexBates settings scoped to tests."""

    import lexbates.config as config_module

    original_settings = getattr(config_module, "_settings", None)

    data_dir = temp_dir / "appdata"
    config_dir = temp_dir / "appconfig"
    data_dir.mkdir(parents=True, exist_ok=True)
    config_dir.mkdir(parents=True, exist_ok=True)

    settings = config_module.Settings(
        data_dir=data_dir,
        config_dir=config_dir,
        default_principal="paralegal@example.com",
        render_timeout_seconds=30,
    )

    config_module._settings = settings

    try:
        yield settings
    finally:
        config_module._settings = original_settings


@pytest.fixture
def container(override_settings: Settings) -> ApplicationContainer:
    """Fully wired application backed by the temporary data directory."""
    return bootstrap_application(override_settings)


def build_pdf(
    pages: int = 1,
    *,
    sizes: Sequence[tuple[float, float]] | None = None,
    text: str = "Sample Page",
) -> bytes:
    """Return the bytes of a small PDF; ``sizes`` overrides per-page dimensions."""
    doc = fitz.open()
    try:
        page_sizes = list(sizes) if sizes is not None else [(612, 792)] * pages
        for index, (width, height) in enumerate(page_sizes):
            page = doc.new_page(width=width, height=height)
            page.insert_text((72, 72), f"{text} {index + 1}")
        return doc.tobytes()
    finally:
        doc.close()


@pytest.fixture
def make_pdf(temp_dir: Path) -> Callable[..., Path]:
    """Factory writing sample PDFs into the temporary directory."""

    def _make(name: str = "sample.pdf", pages: int = 1, **kwargs) -> Path:
        path = temp_dir / name
        path.write_bytes(build_pdf(pages, **kwargs))
        return path

    return _make


def page_text(data: bytes, page_index: int = 0) -> str:
    """Extract text from one page of PDF bytes."""
    doc = fitz.open(stream=data, filetype="pdf")
    try:
        return doc[page_index].get_text()
    finally:
        doc.close()


@pytest.fixture
def case_id(container: ApplicationContainer) -> str:
    """Identifier of a freshly registered case."""
    return container.catalog_service.add_case("Acme v. Widgets").id


@pytest.fixture
def register_pdf(
    container: ApplicationContainer, case_id: str, make_pdf: Callable[..., Path]
) -> Callable[..., str]:
    """Factory registering a generated PDF as a document; returns the document ID."""

    def _register(name: str = "doc.pdf", pages: int = 1, **kwargs) -> str:
        path = make_pdf(name, pages, text=f"{name} page", **kwargs)
        return container.catalog_service.register_document(path, case_id).id

    return _register
