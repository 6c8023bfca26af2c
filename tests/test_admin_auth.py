# tests/test_admin_auth.py
import pytest
from fastapi.testclient import TestClient

from storefront.config import Settings
from storefront.main import create_app

ADMIN_ROUTES = [
    ("GET", "/admin/products"),
    ("POST", "/admin/products"),
    ("PATCH", "/admin/products"),
    ("DELETE", "/admin/products"),
    ("GET", "/admin/categories"),
    ("GET", "/admin/flavors"),
    ("POST", "/admin/upload"),
    ("POST", "/admin/upload-url"),
]

# no route matches these, the gate must still answer first
UNMATCHED_ADMIN_ROUTES = [
    ("GET", "/admin/orders"),
    ("PUT", "/admin/products"),
    ("GET", "/admin"),
]


@pytest.mark.parametrize("method,path", ADMIN_ROUTES + UNMATCHED_ADMIN_ROUTES)
def test_missing_token_is_unauthorized(client, backend, method, path):
    calls = []
    original = backend.insert

    async def tracking_insert(*args, **kwargs):
        calls.append(args)
        return await original(*args, **kwargs)

    backend.insert = tracking_insert
    r = client.request(method, path, json={"nombre": "Whey", "precio": 1, "categoria": 1, "cantidad_stock": 1})
    assert r.status_code == 401
    assert r.json() == {"error": "Unauthorized"}
    assert calls == []


@pytest.mark.parametrize("header", ["Basic abc", "Bearer ", "Bearer unknown-token"])
def test_bad_token_is_unauthorized(client, header):
    r = client.get("/admin/products", headers={"Authorization": header})
    assert r.status_code == 401


def test_token_exchange_failure_is_unauthorized(client, backend, admin_headers):
    backend.fail_next = "auth service down"
    r = client.get("/admin/products", headers=admin_headers)
    assert r.status_code == 401


@pytest.mark.parametrize("method,path", ADMIN_ROUTES)
def test_email_outside_allow_list_is_forbidden(client, method, path):
    r = client.request(method, path, headers={"Authorization": "Bearer other-token"})
    assert r.status_code == 403
    assert r.json() == {"error": "Forbidden"}


def test_allow_list_is_case_insensitive(backend):
    app = create_app(Settings(admin_emails=("admin@example.com",)), backend)
    backend.add_user("upper", "ADMIN@Example.com")
    r = TestClient(app).get("/admin/products", headers={"Authorization": "Bearer upper"})
    assert r.status_code == 200


def test_empty_allow_list_admits_any_user(backend, caplog):
    client = TestClient(create_app(Settings(admin_emails=()), backend))
    r = client.get("/admin/products", headers={"Authorization": "Bearer other-token"})
    assert r.status_code == 200
    assert "ADMIN_EMAILS is empty" in caplog.text


def test_unknown_admin_paths_with_token_are_not_found(client, admin_headers):
    assert client.get("/admin/orders", headers=admin_headers).status_code == 404
    assert client.put("/admin/products", headers=admin_headers).status_code == 405


def test_lookalike_paths_are_not_gated(client):
    assert client.get("/administrator").status_code == 404
