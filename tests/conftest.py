"""Shared fixtures: isolated config, database and sample images."""

import io
import os
import sys
from pathlib import Path

import pytest

# Ensure project root is on sys.path so that top-level modules
# like `vault` resolve when running tests from anywhere.
CURRENT_DIR = os.path.dirname(__file__)
PROJECT_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

from PIL import Image as PILImage  # noqa: E402

from config import VaultConfig  # noqa: E402
from database import init_db, make_engine  # noqa: E402
from models import UploadDescriptor  # noqa: E402
from vault import AssetVault  # noqa: E402


@pytest.fixture
def make_image():
    """Encode a solid-colour image in memory."""

    def _make(size=(64, 48), fmt="PNG", color=(200, 30, 30), mode="RGB") -> bytes:
        buf = io.BytesIO()
        PILImage.new(mode, size, color).save(buf, format=fmt)
        return buf.getvalue()

    return _make


@pytest.fixture
def config(tmp_path: Path) -> VaultConfig:
    return VaultConfig(
        image_dir=tmp_path / "images",
        database_url=f"sqlite:///{tmp_path / 'vault.db'}",
    )


@pytest.fixture
def engine(config):
    engine = make_engine(config.database_url)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def vault(config, engine) -> AssetVault:
    return AssetVault(config, engine)


@pytest.fixture
def write_upload(tmp_path: Path):
    """Write bytes to an upload dir and return a descriptor for them."""
    upload_dir = tmp_path / "uploads"
    upload_dir.mkdir()
    counter = iter(range(10_000))

    def _write(data: bytes, name: str = "upload.png") -> UploadDescriptor:
        path = upload_dir / f"php{next(counter)}.tmp"
        path.write_bytes(data)
        return UploadDescriptor(
            temporary_path=path, original_name=name, declared_size=len(data)
        )

    return _write
