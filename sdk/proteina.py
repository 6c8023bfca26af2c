# sdk/proteina.py
import mimetypes
import os
import requests
import httpx
from typing import Any, Dict, Optional
from rich import print


class StoreClient:
    def __init__(self, base_url: str = "http://localhost:8085", token: Optional[str] = None, timeout: int = 10):
        self.base_url = base_url.rstrip("/")
        self.session = requests.Session()
        self.timeout = timeout
        if token:
            self.set_token(token)

    def set_token(self, token: str):
        self.session.headers.update({"Authorization": f"Bearer {token}"})

    # ---------------------------
    # Storefront (public)
    # ---------------------------
    def list_products(self):
        r = self.session.get(f"{self.base_url}/products", timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def featured_products(self, limit: int = 6):
        r = self.session.get(f"{self.base_url}/products/featured", params={"limit": limit}, timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def search_products(self, query: str):
        r = self.session.get(f"{self.base_url}/products/search", params={"q": query}, timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def products_by_category(self, category_id: int):
        r = self.session.get(f"{self.base_url}/categories/{category_id}/products", timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def list_categories(self):
        r = self.session.get(f"{self.base_url}/categories", timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def list_flavors(self):
        r = self.session.get(f"{self.base_url}/flavors", timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    # ---------------------------
    # Admin (bearer token required)
    # ---------------------------
    def admin_products(self):
        r = self.session.get(f"{self.base_url}/admin/products", timeout=self.timeout)
        r.raise_for_status()
        return r.json()["data"]

    def admin_categories(self):
        r = self.session.get(f"{self.base_url}/admin/categories", timeout=self.timeout)
        r.raise_for_status()
        return r.json()["data"]

    def admin_flavors(self):
        r = self.session.get(f"{self.base_url}/admin/flavors", timeout=self.timeout)
        r.raise_for_status()
        return r.json()["data"]

    def create_product(self, **fields):
        r = self.session.post(f"{self.base_url}/admin/products", json=fields, timeout=self.timeout)
        r.raise_for_status()
        return r.json()["data"]

    def update_product(self, product_id: int, **fields):
        r = self.session.patch(f"{self.base_url}/admin/products", json={"id": product_id, **fields}, timeout=self.timeout)
        r.raise_for_status()
        return r.json()["data"]

    def delete_product(self, product_id: int):
        r = self.session.delete(f"{self.base_url}/admin/products", json={"id": product_id}, timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def upload_image(self, file_path: str, path: Optional[str] = None, bucket: Optional[str] = None) -> Dict[str, Any]:
        content_type = mimetypes.guess_type(file_path)[0] or "application/octet-stream"
        data = {}
        if path:
            data["path"] = path
        if bucket:
            data["bucket"] = bucket
        with open(file_path, "rb") as fh:
            files = {"file": (os.path.basename(file_path), fh, content_type)}
            r = self.session.post(f"{self.base_url}/admin/upload", files=files, data=data, timeout=self.timeout)
        r.raise_for_status()
        return r.json()

    def request_upload_url(self, path: str, bucket: Optional[str] = None) -> Dict[str, Any]:
        payload = {"path": path}
        if bucket:
            payload["bucket"] = bucket
        r = self.session.post(f"{self.base_url}/admin/upload-url", json=payload, timeout=self.timeout)
        r.raise_for_status()
        return r.json()["data"]

    # Direct upload through a signed URL: the bytes skip the API server
    async def upload_signed_async(self, file_path: str, path: str, bucket: Optional[str] = None):
        signed = self.request_upload_url(path, bucket)
        content_type = mimetypes.guess_type(file_path)[0] or "application/octet-stream"
        with open(file_path, "rb") as fh:
            content = fh.read()
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            r = await client.put(signed["signedUrl"], content=content,
                                 headers={"Content-Type": content_type, "x-upsert": "true"})
            r.raise_for_status()
        return signed["publicUrl"]

    def error_message(self, e: requests.exceptions.HTTPError) -> str:
        try:
            return e.response.json().get("error", str(e))
        except ValueError:
            return str(e)


if __name__ == "__main__":
    import argparse
    import asyncio
    import json

    parser = argparse.ArgumentParser(description="Proteína Pura store client")
    parser.add_argument("--base-url", default=os.getenv("STORE_URL", "http://127.0.0.1:8085"))
    parser.add_argument("--token", default=os.getenv("STORE_TOKEN"), help="Admin bearer token")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # ---------------------------
    # Storefront commands
    # ---------------------------
    subparsers.add_parser("list-products", help="List active products")
    ft = subparsers.add_parser("featured", help="List products on offer")
    ft.add_argument("--limit", type=int, default=6)
    sp = subparsers.add_parser("search", help="Search products by name or description")
    sp.add_argument("--query", required=True)
    bc = subparsers.add_parser("by-category", help="Active products of one category")
    bc.add_argument("--category-id", type=int, required=True)
    subparsers.add_parser("categories", help="List active categories")
    subparsers.add_parser("flavors", help="List flavors")

    # ---------------------------
    # Admin commands
    # ---------------------------
    subparsers.add_parser("admin-products", help="List every product (admin)")
    cp = subparsers.add_parser("create-product", help="Create a product (admin)")
    cp.add_argument("--json", required=True, help="Product fields as a JSON object")
    up = subparsers.add_parser("update-product", help="Patch a product (admin)")
    up.add_argument("--id", type=int, required=True)
    up.add_argument("--json", required=True, help="Fields to change as a JSON object")
    dp = subparsers.add_parser("delete-product", help="Delete a product (admin)")
    dp.add_argument("--id", type=int, required=True)
    ui = subparsers.add_parser("upload", help="Upload an image (admin)")
    ui.add_argument("--file", required=True)
    ui.add_argument("--path")
    ui.add_argument("--bucket")
    us = subparsers.add_parser("upload-signed", help="Upload an image through a signed URL (admin)")
    us.add_argument("--file", required=True)
    us.add_argument("--path", required=True)
    us.add_argument("--bucket")

    args = parser.parse_args()
    c = StoreClient(base_url=args.base_url, token=args.token)

    try:
        if args.command == "list-products":
            print(c.list_products())
        elif args.command == "featured":
            print(c.featured_products(args.limit))
        elif args.command == "search":
            print(c.search_products(args.query))
        elif args.command == "by-category":
            print(c.products_by_category(args.category_id))
        elif args.command == "categories":
            print(c.list_categories())
        elif args.command == "flavors":
            print(c.list_flavors())
        elif args.command == "admin-products":
            print(c.admin_products())
        elif args.command == "create-product":
            print(c.create_product(**json.loads(args.json)))
        elif args.command == "update-product":
            print(c.update_product(args.id, **json.loads(args.json)))
        elif args.command == "delete-product":
            print(c.delete_product(args.id))
        elif args.command == "upload":
            print(c.upload_image(args.file, args.path, args.bucket))
        elif args.command == "upload-signed":
            print(asyncio.run(c.upload_signed_async(args.file, args.path, args.bucket)))
    except requests.exceptions.HTTPError as e:
        print(f"[red]{e.response.status_code}: {c.error_message(e)}[/red]")
