import io
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from inventory_service.core_settings import Settings
from inventory_service.infrastructure.db import Database
from inventory_service.infrastructure.storage import ImageStorage
from inventory_service.main import create_app


@pytest.fixture
def settings(tmp_path) -> Settings:
    return Settings(
        DATABASE_URL=f"sqlite:///{tmp_path / 'inventory.db'}",
        UPLOAD_DIR=str(tmp_path / "uploads"),
        RUN_MIGRATIONS=False,
        LOG_LEVEL="WARNING",
    )


@pytest.fixture
def app(settings):
    return create_app(settings)


@pytest.fixture
def client(app):
    with TestClient(app) as c:
        yield c


@pytest.fixture
def database(settings):
    db = Database.from_settings(settings)
    db.init_models()
    yield db
    db.dispose()


@pytest.fixture
def storage(settings):
    return ImageStorage(settings.UPLOAD_DIR)


@pytest.fixture
def upload_dir(settings) -> Path:
    return Path(settings.UPLOAD_DIR)


@pytest.fixture
def create_product(client):
    """Create a product through the API and return its listed record."""
    def _fn(name="Widget", value="9.99", quantity="10", minQuantity="2", image=None):
        files = {"image": image} if image else None
        resp = client.post(
            "/api/products",
            data={"name": name, "value": value, "quantity": quantity, "minQuantity": minQuantity},
            files=files,
        )
        assert resp.status_code == 201, resp.text
        matches = [p for p in client.get("/api/products").json() if p["name"] == name.strip()]
        return max(matches, key=lambda p: p["id"])
    return _fn


@pytest.fixture
def get_product(client):
    def _fn(product_id):
        for product in client.get("/api/products").json():
            if product["id"] == product_id:
                return product
        return None
    return _fn


@pytest.fixture
def image_file():
    def _fn(name="photo.png", content=b"\x89PNG\r\n\x1a\nfake-image-bytes"):
        return (name, io.BytesIO(content), "image/png")
    return _fn
