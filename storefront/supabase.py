# storefront/supabase.py
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import httpx

from .database import Backend, Query
from .exceptions import StoreError
from .models import AuthUser

logger = logging.getLogger(__name__)


def _literal(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    return str(value)


def _quoted(value: str) -> str:
    # PostgREST logic trees split on , ( ) so free text goes in double quotes
    escaped = value.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'


def build_params(query: Query) -> List[tuple]:
    """Translate a Query into PostgREST query-string parameters."""
    params = [("select", "*")]
    for col, val in query.eq.items():
        params.append((col, f"eq.{_literal(val)}"))
    if query.in_ is not None:
        col, values = query.in_
        params.append((col, "in.(" + ",".join(_literal(v) for v in values) + ")"))
    if query.contains_any is not None:
        cols, term = query.contains_any
        pattern = _quoted(f"*{term}*")
        params.append(("or", "(" + ",".join(f"{c}.ilike.{pattern}" for c in cols) + ")"))
    if query.order_by:
        params.append(("order", f"{query.order_by}.{'desc' if query.descending else 'asc'}"))
    if query.limit is not None:
        params.append(("limit", str(query.limit)))
    return params


def _error_message(r: httpx.Response) -> str:
    try:
        body = r.json()
    except ValueError:
        return r.text or f"HTTP {r.status_code}"
    if isinstance(body, dict):
        return body.get("message") or body.get("error_description") or body.get("msg") or body.get("error") or f"HTTP {r.status_code}"
    return f"HTTP {r.status_code}"


class SupabaseBackend(Backend):
    """Backend over Supabase's REST surfaces: PostgREST for tables, GoTrue
    for token exchange and Storage for buckets and objects.

    Table and storage calls authenticate with the service-role key; token
    exchange uses the anon key, as a browser client would.
    """

    def __init__(self, url: str, service_key: str, anon_key: str,
                 timeout: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.url = url.rstrip("/")
        self.service_key = service_key
        self.anon_key = anon_key
        self.timeout = timeout
        self.transport = transport

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(base_url=self.url, timeout=self.timeout, transport=self.transport)

    def _service_headers(self, **extra) -> Dict[str, str]:
        headers = {"apikey": self.service_key, "Authorization": f"Bearer {self.service_key}"}
        headers.update(extra)
        return headers

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            async with self._client() as client:
                r = await client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.error(f"Supabase {method} {path} failed: {e}")
            raise StoreError(f"backend unreachable: {e}") from e
        if r.status_code >= 400:
            message = _error_message(r)
            logger.warning(f"Supabase {method} {path} -> {r.status_code}: {message}")
            raise StoreError(message, details={"status": r.status_code})
        return r

    # ---------------------------
    # Tables (PostgREST)
    # ---------------------------
    async def select(self, query: Query) -> List[Dict[str, Any]]:
        r = await self._request("GET", f"/rest/v1/{query.table}",
                                params=build_params(query), headers=self._service_headers())
        return r.json()

    async def insert(self, table: str, row: Dict[str, Any]) -> Dict[str, Any]:
        r = await self._request("POST", f"/rest/v1/{table}", json=row,
                                headers=self._service_headers(Prefer="return=representation"))
        rows = r.json()
        if not rows:
            raise StoreError("insert returned no row")
        return rows[0]

    async def update(self, table: str, row_id: int, values: Dict[str, Any]) -> Dict[str, Any]:
        r = await self._request("PATCH", f"/rest/v1/{table}", json=values,
                                params={"id": f"eq.{row_id}", "select": "*"},
                                headers=self._service_headers(Prefer="return=representation"))
        rows = r.json()
        if len(rows) != 1:
            raise StoreError("JSON object requested, multiple (or no) rows returned", details={"id": row_id})
        return rows[0]

    async def delete(self, table: str, row_id: int) -> None:
        await self._request("DELETE", f"/rest/v1/{table}", params={"id": f"eq.{row_id}"},
                            headers=self._service_headers())

    # ---------------------------
    # Auth (GoTrue)
    # ---------------------------
    async def get_user(self, token: str) -> Optional[AuthUser]:
        headers = {"apikey": self.anon_key, "Authorization": f"Bearer {token}"}
        try:
            r = await self._request("GET", "/auth/v1/user", headers=headers)
        except StoreError as e:
            if e.details.get("status") in (401, 403):
                return None
            raise
        body = r.json()
        if not body or not body.get("id"):
            return None
        return AuthUser.model_validate(body)

    # ---------------------------
    # Storage
    # ---------------------------
    async def upload(self, bucket: str, path: str, data: bytes,
                     content_type: str = "application/octet-stream", upsert: bool = True) -> Dict[str, Any]:
        headers = self._service_headers(**{"Content-Type": content_type, "x-upsert": "true" if upsert else "false"})
        r = await self._request("POST", f"/storage/v1/object/{bucket}/{quote(path)}",
                                content=data, headers=headers)
        body = r.json()
        return {"path": path, "fullPath": body.get("Key", f"{bucket}/{path}")}

    def public_url(self, bucket: str, path: str) -> str:
        return f"{self.url}/storage/v1/object/public/{bucket}/{quote(path)}"

    async def create_signed_upload_url(self, bucket: str, path: str, upsert: bool = True) -> Dict[str, Any]:
        headers = self._service_headers(**{"x-upsert": "true" if upsert else "false"})
        r = await self._request("POST", f"/storage/v1/object/upload/sign/{bucket}/{quote(path)}",
                                headers=headers)
        signed = httpx.URL(f"{self.url}/storage/v1{r.json()['url']}")
        token = signed.params.get("token")
        if not token:
            raise StoreError("signed upload URL has no token")
        return {"signedUrl": str(signed), "token": token, "path": path}

    async def list_buckets(self) -> List[str]:
        r = await self._request("GET", "/storage/v1/bucket", headers=self._service_headers())
        return [b["name"] for b in r.json()]
