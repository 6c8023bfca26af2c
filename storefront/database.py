# storefront/database.py
import itertools
import logging
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

from .exceptions import StoreError
from .models import AuthUser

logger = logging.getLogger(__name__)

# Table names in the external store.
PRODUCTS = "productos"
CATEGORIES = "categorias"
FLAVORS = "sabores"


@dataclass
class Query:
    """A select against one table: equality filters, one `in` filter, an
    optional case-insensitive "any of these columns contains" filter,
    ordering and a limit. Both backends interpret the same object."""
    table: str
    eq: Dict[str, Any] = field(default_factory=dict)
    in_: Optional[Tuple[str, List[Any]]] = None
    contains_any: Optional[Tuple[Tuple[str, ...], str]] = None
    order_by: Optional[str] = None
    descending: bool = False
    limit: Optional[int] = None

    def where(self, **filters) -> "Query":
        self.eq.update(filters)
        return self

    def where_in(self, column: str, values) -> "Query":
        self.in_ = (column, list(values))
        return self

    def search(self, columns, term: str) -> "Query":
        self.contains_any = (tuple(columns), term)
        return self

    def order(self, column: str, desc: bool = False) -> "Query":
        self.order_by = column
        self.descending = desc
        return self

    def take(self, n: int) -> "Query":
        self.limit = n
        return self


class Backend:
    """What the storefront needs from the backend-as-a-service.

    Implementations raise StoreError for any failure reported by the
    service; get_user returns None for a token it does not accept.
    """

    async def select(self, query: Query) -> List[Dict[str, Any]]:
        raise NotImplementedError

    async def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    async def update(self, table: str, row_id: int, values: Dict[str, Any]) -> Dict[str, Any]:
        raise NotImplementedError

    async def delete(self, table: str, row_id: int) -> None:
        raise NotImplementedError

    async def get_user(self, token: str) -> Optional[AuthUser]:
        raise NotImplementedError

    async def upload(self, bucket: str, path: str, data: bytes,
                     content_type: str = "application/octet-stream", upsert: bool = True) -> Dict[str, Any]:
        raise NotImplementedError

    def public_url(self, bucket: str, path: str) -> str:
        raise NotImplementedError

    async def create_signed_upload_url(self, bucket: str, path: str, upsert: bool = True) -> Dict[str, Any]:
        raise NotImplementedError

    async def list_buckets(self) -> List[str]:
        raise NotImplementedError


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def _matches(row: Dict[str, Any], query: Query) -> bool:
    for col, val in query.eq.items():
        if row.get(col) != val:
            return False
    if query.in_ is not None:
        col, values = query.in_
        if row.get(col) not in values:
            return False
    if query.contains_any is not None:
        cols, term = query.contains_any
        term = term.lower()
        if not any(term in str(row[c]).lower() for c in cols if row.get(c) is not None):
            return False
    return True


def _sort_key(column: str):
    def key(row):
        v = row.get(column)
        # nulls last, like Postgres ascending order
        return (v is None, v if v is not None else 0)
    return key


class InMemoryBackend(Backend):
    """Process-local stand-in for Supabase, used by tests and demo mode."""

    def __init__(self, base_url: str = "http://localhost:8085"):
        self.base_url = base_url.rstrip("/")
        self.tables: Dict[str, List[Dict[str, Any]]] = {PRODUCTS: [], CATEGORIES: [], FLAVORS: []}
        self.users: Dict[str, AuthUser] = {}
        self.buckets: Dict[str, Dict[str, Tuple[bytes, str]]] = {}
        self.signed_uploads: Dict[str, Tuple[str, str]] = {}
        self._ids = {name: itertools.count(1) for name in self.tables}
        self.fail_next: Optional[str] = None

    # ---------------------------
    # Test helpers
    # ---------------------------
    def add_user(self, token: str, email: str) -> AuthUser:
        user = AuthUser(id=uuid.uuid4().hex, email=email)
        self.users[token] = user
        return user

    def add_bucket(self, name: str) -> None:
        self.buckets.setdefault(name, {})

    def seed(self, table: str, **row) -> Dict[str, Any]:
        return self._insert_row(table, row)

    def _check_failure(self):
        if self.fail_next:
            message, self.fail_next = self.fail_next, None
            raise StoreError(message)

    def _table(self, table: str) -> List[Dict[str, Any]]:
        if table not in self.tables:
            raise StoreError(f'relation "public.{table}" does not exist')
        return self.tables[table]

    def _insert_row(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        rows = self._table(table)
        new = dict(row)
        if new.get("id") is None:
            new["id"] = next(self._ids[table])
        if table != FLAVORS:
            new.setdefault("created_at", _now_iso())
        rows.append(new)
        return dict(new)

    def _check_category(self, values: Dict[str, Any]):
        if "categoria" not in values:
            return
        if not any(c["id"] == values["categoria"] for c in self.tables[CATEGORIES]):
            raise StoreError(
                'insert or update on table "productos" violates foreign key constraint "productos_categoria_fkey"',
                details={"categoria": values["categoria"]},
            )

    # ---------------------------
    # Tables
    # ---------------------------
    async def select(self, query: Query) -> List[Dict[str, Any]]:
        self._check_failure()
        rows = [dict(r) for r in self._table(query.table) if _matches(r, query)]
        if query.order_by:
            rows.sort(key=_sort_key(query.order_by), reverse=query.descending)
        if query.limit is not None:
            rows = rows[:query.limit]
        return rows

    async def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        self._check_failure()
        if table == PRODUCTS:
            self._check_category(row)
        return self._insert_row(table, row)

    async def update(self, table: str, row_id: int, values: Dict[str, Any]) -> Dict[str, Any]:
        self._check_failure()
        if table == PRODUCTS:
            self._check_category(values)
        for row in self._table(table):
            if row["id"] == row_id:
                row.update(values)
                return dict(row)
        raise StoreError("JSON object requested, multiple (or no) rows returned", details={"id": row_id})

    async def delete(self, table: str, row_id: int) -> None:
        self._check_failure()
        rows = self._table(table)
        rows[:] = [r for r in rows if r["id"] != row_id]

    # ---------------------------
    # Auth
    # ---------------------------
    async def get_user(self, token: str) -> Optional[AuthUser]:
        self._check_failure()
        return self.users.get(token)

    # ---------------------------
    # Storage
    # ---------------------------
    def _bucket(self, bucket: str) -> Dict[str, Tuple[bytes, str]]:
        if bucket not in self.buckets:
            raise StoreError("Bucket not found", details={"bucket": bucket})
        return self.buckets[bucket]

    async def upload(self, bucket: str, path: str, data: bytes,
                     content_type: str = "application/octet-stream", upsert: bool = True) -> Dict[str, Any]:
        self._check_failure()
        objects = self._bucket(bucket)
        if path in objects and not upsert:
            raise StoreError("The resource already exists", details={"path": path})
        objects[path] = (data, content_type)
        return {"path": path, "fullPath": f"{bucket}/{path}"}

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{bucket}/{quote(path)}"

    async def create_signed_upload_url(self, bucket: str, path: str, upsert: bool = True) -> Dict[str, Any]:
        self._check_failure()
        self._bucket(bucket)
        token = uuid.uuid4().hex
        self.signed_uploads[token] = (bucket, path)
        return {
            "signedUrl": f"{self.base_url}/storage/v1/object/upload/sign/{bucket}/{path}?token={token}",
            "token": token,
            "path": path,
        }

    async def list_buckets(self) -> List[str]:
        self._check_failure()
        return list(self.buckets)


DEMO_ADMIN_TOKEN = "demo-admin-token"


def seed_demo_data(backend: InMemoryBackend, admin_email: str = "admin@example.com") -> None:
    """Populate an empty in-memory backend so the API is browsable."""
    backend.add_bucket("products")
    backend.add_user(DEMO_ADMIN_TOKEN, admin_email)

    proteinas = backend.seed(CATEGORIES, descripcion="Proteínas", isActivo=True)
    creatinas = backend.seed(CATEGORIES, descripcion="Creatinas", isActivo=True)
    backend.seed(CATEGORIES, descripcion="Pre-entrenos", isActivo=True)

    chocolate = backend.seed(FLAVORS, descripcion="Chocolate")
    vainilla = backend.seed(FLAVORS, descripcion="Vainilla")
    frutilla = backend.seed(FLAVORS, descripcion="Frutilla")

    # created_at spaced out so "newest first" is deterministic
    base = time.time()
    samples = [
        ("Whey Gold Standard 2lb", proteinas["id"], 350000, True, [chocolate["id"], vainilla["id"]]),
        ("Creatina Monohidratada 300g", creatinas["id"], 180000, False, None),
        ("Iso 100 5lb", proteinas["id"], 720000, True, [chocolate["id"], frutilla["id"]]),
    ]
    for offset, (nombre, categoria, precio, oferta, sabores) in enumerate(samples):
        backend.seed(
            PRODUCTS,
            nombre=nombre,
            descripcion=None,
            precio=precio,
            categoria=categoria,
            isActivo=True,
            isOferta=oferta,
            cantidad_stock=10,
            sabores=sabores,
            url_imagen="",
            galeria_urls=None,
            created_at=datetime.fromtimestamp(base + offset, timezone.utc).isoformat(),
        )
    logger.info("Seeded in-memory demo data (admin token: %s)", DEMO_ADMIN_TOKEN)
