# storefront/catalog.py
import logging
from typing import Any, Dict, List

from pydantic import ValidationError

from .database import Backend, CATEGORIES, FLAVORS, PRODUCTS, Query
from .exceptions import StoreError
from .models import Category, Flavor, ProductDetails

logger = logging.getLogger(__name__)

FEATURED_LIMIT = 6


class CatalogClient:
    """Read-only storefront queries with category and flavor rows attached.

    By default a failed query is logged and yields an empty list, so callers
    cannot tell "nothing matched" from "the store is down". Pass
    raise_errors=True to get the StoreError instead.
    """

    def __init__(self, backend: Backend, raise_errors: bool = False):
        self.backend = backend
        self.raise_errors = raise_errors

    async def _guarded(self, what: str, coro) -> List[Any]:
        try:
            return await coro
        except StoreError as e:
            logger.error(f"Error fetching {what}: {e}")
            if self.raise_errors:
                raise
            return []
        except ValidationError as e:
            logger.error(f"Malformed {what} row: {e}")
            if self.raise_errors:
                raise StoreError(f"malformed {what} row", details={"errors": e.error_count()}) from e
            return []

    async def _with_details(self, rows: List[Dict[str, Any]]) -> List[ProductDetails]:
        if not rows:
            return []

        category_ids = sorted({r["categoria"] for r in rows if r.get("categoria") is not None})
        flavor_ids = sorted({fid for r in rows for fid in (r.get("sabores") or [])})

        categories: Dict[int, Dict[str, Any]] = {}
        if category_ids:
            found = await self.backend.select(Query(CATEGORIES).where_in("id", category_ids))
            categories = {c["id"]: c for c in found}

        flavors: Dict[int, Dict[str, Any]] = {}
        if flavor_ids:
            found = await self.backend.select(Query(FLAVORS).where_in("id", flavor_ids))
            flavors = {f["id"]: f for f in found}

        out = []
        for r in rows:
            out.append(ProductDetails.model_validate({
                **r,
                "categoria_info": categories.get(r.get("categoria")),
                "sabores_info": [flavors[fid] for fid in (r.get("sabores") or []) if fid in flavors],
            }))
        return out

    async def _products(self, query: Query) -> List[ProductDetails]:
        rows = await self.backend.select(query)
        return await self._with_details(rows)

    # ---------------------------
    # Products
    # ---------------------------
    async def list_active_products(self) -> List[ProductDetails]:
        q = Query(PRODUCTS).where(isActivo=True).order("created_at", desc=True)
        return await self._guarded("productos", self._products(q))

    async def list_products_by_category(self, category_id: int) -> List[ProductDetails]:
        q = Query(PRODUCTS).where(categoria=category_id, isActivo=True).order("created_at", desc=True)
        return await self._guarded("productos por categoria", self._products(q))

    async def list_featured_products(self, limit: int = FEATURED_LIMIT) -> List[ProductDetails]:
        q = (Query(PRODUCTS).where(isActivo=True, isOferta=True)
             .order("created_at", desc=True).take(limit))
        return await self._guarded("productos destacados", self._products(q))

    async def search_products(self, query: str) -> List[ProductDetails]:
        q = (Query(PRODUCTS).where(isActivo=True)
             .search(("nombre", "descripcion"), query)
             .order("created_at", desc=True))
        return await self._guarded("búsqueda de productos", self._products(q))

    # ---------------------------
    # Lookups
    # ---------------------------
    async def _categories(self) -> List[Category]:
        rows = await self.backend.select(Query(CATEGORIES).where(isActivo=True).order("descripcion"))
        return [Category.model_validate(r) for r in rows]

    async def _flavors(self) -> List[Flavor]:
        rows = await self.backend.select(Query(FLAVORS).order("descripcion"))
        return [Flavor.model_validate(r) for r in rows]

    async def list_categories(self) -> List[Category]:
        return await self._guarded("categorias", self._categories())

    async def list_flavors(self) -> List[Flavor]:
        return await self._guarded("sabores", self._flavors())
