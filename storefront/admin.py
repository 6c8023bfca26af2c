import logging
import re
import time
from typing import Any, Dict, Optional

from fastapi import HTTPException
from starlette.datastructures import UploadFile

from .config import DEFAULT_BUCKET, Settings
from .core import (
    ProductDeleteIn, ProductIn, ProductPatchIn, UploadUrlIn,
    make_product_changes, make_product_row, parse_payload,
)
from .database import Backend, CATEGORIES, FLAVORS, PRODUCTS, Query
from .exceptions import StoreError

# Request handling for the /admin routes. Every function here runs after
# require_admin has accepted the caller.

logger = logging.getLogger(__name__)

_UNSAFE_CHARS = re.compile(r"[^a-zA-Z0-9._-]")


def safe_filename(name: str) -> str:
    return _UNSAFE_CHARS.sub("_", name or "")


def default_upload_path(filename: str, now_ms: Optional[int] = None) -> str:
    stamp = now_ms if now_ms is not None else int(time.time() * 1000)
    return f"uploads/{stamp}_{safe_filename(filename)}"


# Products
async def list_products_logic(backend: Backend):
    try:
        rows = await backend.select(Query(PRODUCTS).order("created_at", desc=True))
    except StoreError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"data": rows}


async def create_product_logic(backend: Backend, payload: Any):
    parsed = parse_payload(ProductIn, payload)
    try:
        row = await backend.insert(PRODUCTS, make_product_row(parsed))
    except StoreError as e:
        raise HTTPException(status_code=400, detail=str(e))
    logger.info(f"Created product {row.get('id')} ({row.get('nombre')})")
    return {"data": row}


async def update_product_logic(backend: Backend, payload: Any):
    parsed = parse_payload(ProductPatchIn, payload)
    changes = make_product_changes(parsed)
    try:
        row = await backend.update(PRODUCTS, parsed.id, changes)
    except StoreError as e:
        raise HTTPException(status_code=400, detail=str(e))
    logger.info(f"Updated product {parsed.id}: {sorted(changes)}")
    return {"data": row}


async def delete_product_logic(backend: Backend, payload: Any):
    if not isinstance(payload, dict) or not payload.get("id"):
        raise HTTPException(status_code=400, detail="id required")
    parsed = parse_payload(ProductDeleteIn, payload)
    try:
        await backend.delete(PRODUCTS, parsed.id)
    except StoreError as e:
        raise HTTPException(status_code=400, detail=str(e))
    logger.info(f"Deleted product {parsed.id}")
    return {"ok": True}


# Lookups
async def list_categories_logic(backend: Backend):
    try:
        rows = await backend.select(Query(CATEGORIES).order("descripcion"))
    except StoreError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"data": rows}


async def list_flavors_logic(backend: Backend):
    try:
        rows = await backend.select(Query(FLAVORS).order("descripcion"))
    except StoreError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return {"data": rows}


# Uploads
async def upload_logic(backend: Backend, settings: Settings, file: Optional[UploadFile],
                       path: Optional[str] = None, bucket: Optional[str] = None) -> Dict[str, Any]:
    if not isinstance(file, UploadFile) or not file.filename:
        raise HTTPException(status_code=400, detail="file required")

    bucket = bucket or settings.storage_bucket or DEFAULT_BUCKET
    path = path or default_upload_path(file.filename)
    data = await file.read()

    try:
        await backend.upload(bucket, path, data,
                             content_type=file.content_type or "application/octet-stream", upsert=True)
    except StoreError as e:
        logger.error(f"upload error: {e}")
        raise HTTPException(status_code=400, detail=str(e))

    logger.info(f"Uploaded {len(data)} bytes to {bucket}/{path}")
    return {"bucket": bucket, "path": path, "publicUrl": backend.public_url(bucket, path)}


async def upload_url_logic(backend: Backend, settings: Settings, payload: Any):
    parsed = parse_payload(UploadUrlIn, payload)
    try:
        bucket = parsed.bucket or settings.storage_bucket
        if not bucket:
            buckets = await backend.list_buckets()
            if not buckets:
                raise HTTPException(status_code=400, detail="no buckets available")
            bucket = buckets[0]
        if not parsed.path:
            raise HTTPException(status_code=400, detail="path required")

        signed = await backend.create_signed_upload_url(bucket, parsed.path, upsert=True)
    except StoreError as e:
        logger.error(f"upload-url error: {e}")
        raise HTTPException(status_code=400, detail=str(e))

    return {"data": {**signed, "bucket": bucket, "publicUrl": backend.public_url(bucket, parsed.path)}}
