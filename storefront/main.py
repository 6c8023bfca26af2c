# storefront/main.py
import logging
from typing import Any, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query as QueryParam, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .admin import (
    create_product_logic, delete_product_logic, list_categories_logic, list_flavors_logic,
    list_products_logic, update_product_logic, upload_logic, upload_url_logic,
)
from .auth import bearer_token, require_admin
from .catalog import CatalogClient, FEATURED_LIMIT
from .config import Settings, load_settings
from .database import Backend, InMemoryBackend, seed_demo_data
from .exceptions import PayloadValidationError, StoreError
from .supabase import SupabaseBackend

logger = logging.getLogger(__name__)


def build_backend(settings: Settings) -> Backend:
    if settings.supabase_configured:
        return SupabaseBackend(settings.supabase_url, settings.supabase_service_key,
                               settings.supabase_anon_key, timeout=settings.http_timeout)
    logger.warning("Supabase is not configured; serving the in-memory demo backend")
    backend = InMemoryBackend()
    seed_demo_data(backend)
    return backend


async def read_json(request: Request) -> Any:
    body = await request.body()
    if not body:
        return None
    try:
        return await request.json()
    except ValueError:
        raise HTTPException(status_code=400, detail="invalid JSON body")


def get_backend(request: Request) -> Backend:
    return request.app.state.backend


def get_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_catalog(request: Request) -> CatalogClient:
    return CatalogClient(request.app.state.backend, raise_errors=True)


# ---------------------------
# Admin endpoints
# ---------------------------
admin_router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


@admin_router.get("/products")
async def admin_list_products(backend: Backend = Depends(get_backend)):
    return await list_products_logic(backend)


@admin_router.post("/products", status_code=201)
async def admin_create_product(request: Request, backend: Backend = Depends(get_backend)):
    return await create_product_logic(backend, await read_json(request))


@admin_router.patch("/products")
async def admin_update_product(request: Request, backend: Backend = Depends(get_backend)):
    return await update_product_logic(backend, await read_json(request))


@admin_router.delete("/products")
async def admin_delete_product(request: Request, backend: Backend = Depends(get_backend)):
    return await delete_product_logic(backend, await read_json(request))


@admin_router.get("/categories")
async def admin_list_categories(backend: Backend = Depends(get_backend)):
    return await list_categories_logic(backend)


@admin_router.get("/flavors")
async def admin_list_flavors(backend: Backend = Depends(get_backend)):
    return await list_flavors_logic(backend)


@admin_router.post("/upload")
async def admin_upload(request: Request, backend: Backend = Depends(get_backend),
                       settings: Settings = Depends(get_settings)):
    # form parsed here, not as endpoint params, so the admin gate runs first
    form = await request.form()

    def text(name: str) -> Optional[str]:
        value = form.get(name)
        return value if isinstance(value, str) and value else None

    return await upload_logic(backend, settings, form.get("file"), path=text("path"), bucket=text("bucket"))


@admin_router.post("/upload-url")
async def admin_upload_url(request: Request, backend: Backend = Depends(get_backend),
                           settings: Settings = Depends(get_settings)):
    return await upload_url_logic(backend, settings, await read_json(request))


# ---------------------------
# Storefront endpoints
# ---------------------------
store_router = APIRouter(tags=["storefront"])


def _unavailable(e: StoreError):
    return HTTPException(status_code=503, detail=f"catalog unavailable: {e}")


@store_router.get("/products")
async def list_products(catalog: CatalogClient = Depends(get_catalog)):
    try:
        return await catalog.list_active_products()
    except StoreError as e:
        raise _unavailable(e)


@store_router.get("/products/featured")
async def featured_products(limit: int = QueryParam(FEATURED_LIMIT, ge=1, le=50),
                            catalog: CatalogClient = Depends(get_catalog)):
    try:
        return await catalog.list_featured_products(limit)
    except StoreError as e:
        raise _unavailable(e)


@store_router.get("/products/search")
async def search_products(q: str = QueryParam(..., min_length=1), catalog: CatalogClient = Depends(get_catalog)):
    try:
        return await catalog.search_products(q)
    except StoreError as e:
        raise _unavailable(e)


@store_router.get("/categories")
async def list_categories(catalog: CatalogClient = Depends(get_catalog)):
    try:
        return await catalog.list_categories()
    except StoreError as e:
        raise _unavailable(e)


@store_router.get("/categories/{category_id}/products")
async def products_by_category(category_id: int, catalog: CatalogClient = Depends(get_catalog)):
    try:
        return await catalog.list_products_by_category(category_id)
    except StoreError as e:
        raise _unavailable(e)


@store_router.get("/flavors")
async def list_flavors(catalog: CatalogClient = Depends(get_catalog)):
    try:
        return await catalog.list_flavors()
    except StoreError as e:
        raise _unavailable(e)


@store_router.get("/health")
async def health(request: Request):
    return {"status": "ok", "backend": type(request.app.state.backend).__name__}


# ---------------------------
# Error rendering: every failure is {"error": message}
# ---------------------------
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse({"error": exc.detail}, status_code=exc.status_code, headers=getattr(exc, "headers", None))


async def request_validation_handler(request: Request, exc: RequestValidationError):
    issues = [
        {"field": ".".join(str(p) for p in err["loc"]), "message": err["msg"]}
        for err in exc.errors()
    ]
    message = "; ".join(f"{i['field']}: {i['message']}" for i in issues)
    return JSONResponse({"error": message, "issues": issues}, status_code=400)


async def validation_error_handler(request: Request, exc: PayloadValidationError):
    return JSONResponse({"error": exc.message, "issues": exc.issues}, status_code=400)


async def unexpected_error_handler(request: Request, exc: Exception):
    logger.exception(f"Unhandled error on {request.method} {request.url.path}")
    return JSONResponse({"error": str(exc) or "internal error"}, status_code=500)


def is_admin_path(path: str) -> bool:
    return path == "/admin" or path.startswith("/admin/")


async def admin_token_guard(request: Request, call_next):
    # unknown /admin paths and methods are 401 too, not 404/405
    if is_admin_path(request.url.path) and bearer_token(request) is None:
        return JSONResponse({"error": "Unauthorized"}, status_code=401)
    return await call_next(request)


def create_app(settings: Optional[Settings] = None, backend: Optional[Backend] = None) -> FastAPI:
    settings = settings or load_settings()
    app = FastAPI(title="proteina-store")
    app.state.settings = settings
    app.state.backend = backend if backend is not None else build_backend(settings)

    app.middleware("http")(admin_token_guard)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, request_validation_handler)
    app.add_exception_handler(PayloadValidationError, validation_error_handler)
    app.add_exception_handler(Exception, unexpected_error_handler)

    app.include_router(admin_router)
    app.include_router(store_router)
    return app


app = create_app()


if __name__ == "__main__":
    import os
    import uvicorn
    from .logging_config import setup_logging

    setup_logging(app.state.settings)
    uvicorn.run(app, host="0.0.0.0", port=int(os.getenv("PORT", 8085)))
