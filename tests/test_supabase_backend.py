# tests/test_supabase_backend.py
import json

import httpx
import pytest

from storefront.database import PRODUCTS, Query
from storefront.exceptions import StoreError
from storefront.supabase import SupabaseBackend, build_params

URL = "https://abc.supabase.co"


def make_backend(handler):
    return SupabaseBackend(URL, "service-key", "anon-key", timeout=5, transport=httpx.MockTransport(handler))


def test_build_params():
    q = (Query(PRODUCTS).where(isActivo=True, categoria=3)
         .search(("nombre", "descripcion"), "whey")
         .order("created_at", desc=True).take(6))
    assert build_params(q) == [
        ("select", "*"),
        ("isActivo", "eq.true"),
        ("categoria", "eq.3"),
        ("or", '(nombre.ilike."*whey*",descripcion.ilike."*whey*")'),
        ("order", "created_at.desc"),
        ("limit", "6"),
    ]
    assert build_params(Query("sabores").where_in("id", [1, 2])) == [("select", "*"), ("id", "in.(1,2)")]


def test_build_params_quotes_search_term():
    q = Query(PRODUCTS).search(("nombre",), 'a,b "c"')
    assert build_params(q)[1] == ("or", '(nombre.ilike."*a,b \\"c\\"*")')


@pytest.mark.asyncio
async def test_select_sends_service_key():
    seen = {}

    def handler(request):
        seen["path"] = request.url.path
        seen["params"] = dict(request.url.params)
        seen["auth"] = request.headers["authorization"]
        seen["apikey"] = request.headers["apikey"]
        return httpx.Response(200, json=[{"id": 1}])

    rows = await make_backend(handler).select(Query(PRODUCTS).where(isActivo=True))
    assert rows == [{"id": 1}]
    assert seen == {
        "path": "/rest/v1/productos",
        "params": {"select": "*", "isActivo": "eq.true"},
        "auth": "Bearer service-key",
        "apikey": "service-key",
    }


@pytest.mark.asyncio
async def test_insert_returns_representation():
    def handler(request):
        assert request.method == "POST"
        assert request.headers["prefer"] == "return=representation"
        return httpx.Response(201, json=[{"id": 7, **json.loads(request.content)}])

    row = await make_backend(handler).insert(PRODUCTS, {"nombre": "Whey"})
    assert row == {"id": 7, "nombre": "Whey"}


@pytest.mark.asyncio
async def test_update_requires_exactly_one_row():
    def handler(request):
        assert request.method == "PATCH"
        assert request.url.params["id"] == "eq.5"
        return httpx.Response(200, json=[])

    with pytest.raises(StoreError, match="no\\) rows"):
        await make_backend(handler).update(PRODUCTS, 5, {"precio": 1})


@pytest.mark.asyncio
async def test_error_response_becomes_store_error():
    def handler(request):
        return httpx.Response(409, json={"message": "violates foreign key constraint", "code": "23503"})

    with pytest.raises(StoreError) as exc:
        await make_backend(handler).insert(PRODUCTS, {"categoria": 9})
    assert str(exc.value) == "violates foreign key constraint"
    assert exc.value.details["status"] == 409


@pytest.mark.asyncio
async def test_transport_error_becomes_store_error():
    def handler(request):
        raise httpx.ConnectTimeout("timed out", request=request)

    with pytest.raises(StoreError, match="backend unreachable"):
        await make_backend(handler).delete(PRODUCTS, 1)


@pytest.mark.asyncio
async def test_get_user():
    def handler(request):
        assert request.url.path == "/auth/v1/user"
        assert request.headers["apikey"] == "anon-key"
        if request.headers["authorization"] == "Bearer good":
            return httpx.Response(200, json={"id": "u-1", "email": "a@b.co", "role": "authenticated"})
        return httpx.Response(401, json={"msg": "invalid JWT"})

    backend = make_backend(handler)
    user = await backend.get_user("good")
    assert (user.id, user.email) == ("u-1", "a@b.co")
    assert await backend.get_user("bad") is None


@pytest.mark.asyncio
async def test_get_user_outage_raises():
    backend = make_backend(lambda request: httpx.Response(500, json={"message": "boom"}))
    with pytest.raises(StoreError):
        await backend.get_user("any")


@pytest.mark.asyncio
async def test_storage_calls():
    def handler(request):
        path = request.url.path
        if path == "/storage/v1/object/products/uploads/a.png":
            assert request.headers["x-upsert"] == "true"
            assert request.headers["content-type"] == "image/png"
            assert request.content == b"img"
            return httpx.Response(200, json={"Key": "products/uploads/a.png"})
        if path == "/storage/v1/object/upload/sign/products/uploads/a.png":
            return httpx.Response(200, json={"url": "/object/upload/sign/products/uploads/a.png?token=tok123"})
        if path == "/storage/v1/bucket":
            return httpx.Response(200, json=[{"id": "products", "name": "products"}, {"id": "x", "name": "x"}])
        return httpx.Response(404, json={"message": "not found"})

    backend = make_backend(handler)
    uploaded = await backend.upload("products", "uploads/a.png", b"img", content_type="image/png")
    assert uploaded == {"path": "uploads/a.png", "fullPath": "products/uploads/a.png"}

    signed = await backend.create_signed_upload_url("products", "uploads/a.png")
    assert signed == {
        "signedUrl": f"{URL}/storage/v1/object/upload/sign/products/uploads/a.png?token=tok123",
        "token": "tok123",
        "path": "uploads/a.png",
    }

    assert await backend.list_buckets() == ["products", "x"]
    assert backend.public_url("products", "uploads/a.png") == f"{URL}/storage/v1/object/public/products/uploads/a.png"


def test_public_url_quotes_path():
    backend = make_backend(lambda request: httpx.Response(200, json={}))
    assert (backend.public_url("products", "uploads/mi foto.png")
            == f"{URL}/storage/v1/object/public/products/uploads/mi%20foto.png")
