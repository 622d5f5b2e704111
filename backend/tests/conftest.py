"""
Pytest configuration and fixtures
"""

from pathlib import Path

import pytest
from fastapi.testclient import TestClient
from PIL import Image

from app.config import settings
from app.main import app
from app.services import (
    ExportPipeline,
    FileAssetLoader,
    MemoryCertificateStore,
    PillowRasterizer,
    reset_batch_registry,
    reset_export_pipeline,
    reset_store,
)
from app.services.rate_limiter import batch_rate_limiter
from app.services.template_service import get_template

TEMPLATE_IMAGES = {
    "classic-blue.png": (569, 437),
    "uploaded-landscape.png": (800, 600),
}


def _reset_singletons():
    reset_store()
    reset_export_pipeline()
    reset_batch_registry()
    batch_rate_limiter.reset()


@pytest.fixture
def asset_dir(tmp_path) -> Path:
    """Directory holding generated template images."""
    directory = tmp_path / "assets"
    directory.mkdir()
    for name, size in TEMPLATE_IMAGES.items():
        Image.new("RGB", size, (220, 230, 250)).save(directory / name)
    return directory


@pytest.fixture(autouse=True)
def isolated_settings(tmp_path, asset_dir, monkeypatch):
    """Point every test at in-memory storage and generated template images."""
    monkeypatch.setattr(settings, "STORAGE_BACKEND", "memory")
    monkeypatch.setattr(settings, "STORAGE_PATH", str(tmp_path / "store"))
    monkeypatch.setattr(settings, "TEMPLATE_ASSET_DIR", str(asset_dir))
    monkeypatch.setattr(settings, "ASSET_LOAD_TIMEOUT_MS", 200)
    monkeypatch.setattr(settings, "ASSET_POLL_INTERVAL_MS", 20)
    monkeypatch.setattr(settings, "PUBLIC_BASE_URL", "https://certs.example.com")
    _reset_singletons()
    yield
    _reset_singletons()


@pytest.fixture
def client():
    """FastAPI test client fixture"""
    return TestClient(app)


@pytest.fixture
def memory_store():
    return MemoryCertificateStore(base_url="https://certs.example.com")


@pytest.fixture
def pipeline(asset_dir):
    """Export pipeline on Pillow with a short asset timeout."""
    return ExportPipeline(
        rasterizer=PillowRasterizer(),
        asset_loader=FileAssetLoader(str(asset_dir), poll_interval_ms=20),
        load_timeout_ms=200,
    )


@pytest.fixture
def classic_template():
    return get_template("classic-blue")


@pytest.fixture
def landscape_template():
    return get_template("uploaded-landscape")


@pytest.fixture
def classic_values():
    return {
        "name": "Ada Lovelace",
        "date": "October 18, 2026",
        "certificateId": "CH-0001",
    }
