# tests/test_upload.py
from fastapi.testclient import TestClient

from storefront.admin import default_upload_path, safe_filename
from storefront.config import Settings
from storefront.main import create_app


def test_safe_filename():
    assert safe_filename("mi foto (1).png") == "mi_foto__1_.png"
    assert safe_filename("whey-2lb_v2.JPG") == "whey-2lb_v2.JPG"
    assert safe_filename("proteína.png") == "prote_na.png"


def test_default_upload_path():
    assert default_upload_path("a b.png", now_ms=1700000000000) == "uploads/1700000000000_a_b.png"
    assert default_upload_path("x.png").startswith("uploads/")


def test_upload_defaults(client, backend, admin_headers):
    files = {"file": ("foto final.png", b"\x89PNG", "image/png")}
    r = client.post("/admin/upload", files=files, headers=admin_headers)
    assert r.status_code == 200
    body = r.json()
    assert body["bucket"] == "products"
    assert body["path"].startswith("uploads/") and body["path"].endswith("_foto_final.png")
    assert body["publicUrl"] == f"http://supabase.test/storage/v1/object/public/products/{body['path']}"
    assert backend.buckets["products"][body["path"]] == (b"\x89PNG", "image/png")


def test_upload_explicit_path_and_bucket(client, backend, admin_headers):
    backend.add_bucket("gallery")
    files = {"file": ("a.jpg", b"data", "image/jpeg")}
    r = client.post("/admin/upload", files=files, data={"path": "p/1.jpg", "bucket": "gallery"},
                    headers=admin_headers)
    assert r.json() == {
        "bucket": "gallery",
        "path": "p/1.jpg",
        "publicUrl": "http://supabase.test/storage/v1/object/public/gallery/p/1.jpg",
    }


def test_upload_uses_configured_bucket(backend, admin_headers):
    backend.add_bucket("media")
    client = TestClient(create_app(Settings(admin_emails=(), storage_bucket="media"), backend))
    r = client.post("/admin/upload", files={"file": ("a.jpg", b"x", "image/jpeg")}, headers=admin_headers)
    assert r.json()["bucket"] == "media"


def test_upload_errors(client, admin_headers):
    r = client.post("/admin/upload", data={"path": "x"}, headers=admin_headers)
    assert r.status_code == 400
    assert r.json() == {"error": "file required"}

    r = client.post("/admin/upload", files={"file": ("a.jpg", b"x", "image/jpeg")},
                    data={"bucket": "missing"}, headers=admin_headers)
    assert r.status_code == 400
    assert r.json() == {"error": "Bucket not found"}


def test_upload_url_falls_back_to_first_bucket(client, admin_headers):
    r = client.post("/admin/upload-url", json={"path": "uploads/x.png"}, headers=admin_headers)
    assert r.status_code == 200
    data = r.json()["data"]
    assert data["bucket"] == "products"
    assert data["path"] == "uploads/x.png"
    assert data["signedUrl"].endswith(f"?token={data['token']}")
    assert data["publicUrl"] == "http://supabase.test/storage/v1/object/public/products/uploads/x.png"


def test_upload_url_no_buckets(client, backend, admin_headers):
    backend.buckets.clear()
    r = client.post("/admin/upload-url", json={"path": "x.png"}, headers=admin_headers)
    assert r.status_code == 400
    assert r.json() == {"error": "no buckets available"}


def test_upload_url_requires_path(client, admin_headers):
    r = client.post("/admin/upload-url", json={"bucket": "products"}, headers=admin_headers)
    assert r.status_code == 400
    assert r.json() == {"error": "path required"}


def test_public_url_matches_quoted_object_path(client, admin_headers):
    files = {"file": ("a.png", b"x", "image/png")}
    r = client.post("/admin/upload", files=files, data={"path": "fotos/mi foto.png"}, headers=admin_headers)
    assert r.json()["path"] == "fotos/mi foto.png"
    assert r.json()["publicUrl"] == "http://supabase.test/storage/v1/object/public/products/fotos/mi%20foto.png"
