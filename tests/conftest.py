# tests/conftest.py
import pytest
from fastapi.testclient import TestClient

from storefront.config import Settings
from storefront.database import CATEGORIES, FLAVORS, InMemoryBackend
from storefront.main import create_app

ADMIN_TOKEN = "admin-token"
OTHER_TOKEN = "other-token"
ADMIN_EMAIL = "admin@example.com"


@pytest.fixture
def backend():
    b = InMemoryBackend(base_url="http://supabase.test")
    b.add_user(ADMIN_TOKEN, ADMIN_EMAIL)
    b.add_user(OTHER_TOKEN, "someone@example.com")
    b.add_bucket("products")
    b.seed(CATEGORIES, descripcion="Proteínas", isActivo=True)
    b.seed(FLAVORS, descripcion="Chocolate")
    b.seed(FLAVORS, descripcion="Vainilla")
    return b


@pytest.fixture
def settings():
    return Settings(admin_emails=(ADMIN_EMAIL,))


@pytest.fixture
def client(backend, settings):
    return TestClient(create_app(settings, backend))


@pytest.fixture
def admin_headers():
    return {"Authorization": f"Bearer {ADMIN_TOKEN}"}


@pytest.fixture
def product_payload():
    return {
        "nombre": "Whey 2lb",
        "precio": 25000,
        "categoria": 1,
        "cantidad_stock": 3,
        "sabores": [1, 2],
    }
