#!/usr/bin/env python
import os
import tempfile

from sdk.proteina import StoreClient
from storefront.cart import CartStore, MemoryStorage
from storefront.checkout import checkout
from storefront.database import DEMO_ADMIN_TOKEN
from storefront.models import CheckoutContact, ProductDetails

# Walkthrough against a server started without Supabase settings
# (python -m storefront.main), which serves seeded demo data.


def main():
    c = StoreClient(base_url=os.getenv("STORE_URL", "http://127.0.0.1:8085"))

    # -----------------------------
    # Browse the catalog
    # -----------------------------
    print("Listing categories...")
    categories = c.list_categories()
    print(categories)

    print("\nListing products...")
    products = c.list_products()
    for p in products:
        print(f"  {p['id']}: {p['nombre']} ({p['precio']})")

    print("\nFeatured products...")
    print([p["nombre"] for p in c.featured_products(limit=2)])

    print("\nSearching for 'whey'...")
    print([p["nombre"] for p in c.search_products("whey")])

    # -----------------------------
    # Admin: create and patch a product
    # -----------------------------
    c.set_token(DEMO_ADMIN_TOKEN)
    flavors = c.admin_flavors()
    print("\nCreating a product as admin...")
    created = c.create_product(
        nombre="BCAA 2:1:1 400g",
        precio=150000,
        categoria=categories[0]["id"],
        cantidad_stock=5,
        sabores=[flavors[0]["id"]],
        isOferta=True,
    )
    print(created)

    print("\nLowering its price...")
    print(c.update_product(created["id"], precio=135000))

    print("\nUploading an image...")
    with tempfile.NamedTemporaryFile(suffix=".png", delete=False) as fh:
        fh.write(b"\x89PNG\r\n\x1a\n")
        image_path = fh.name
    try:
        uploaded = c.upload_image(image_path)
    finally:
        os.unlink(image_path)
    print(uploaded)
    print(c.update_product(created["id"], url_imagen=uploaded["publicUrl"]))

    print("\nRequesting a signed upload URL...")
    print(c.request_upload_url("uploads/manual.png"))

    # -----------------------------
    # Cart and checkout
    # -----------------------------
    print("\nFilling a cart...")
    cart = CartStore(MemoryStorage())
    details = [ProductDetails.model_validate(p) for p in c.list_products()]
    bcaa = next(p for p in details if p.id == created["id"])
    cart.add_to_cart(bcaa, bcaa.sabores_info[0])
    cart.add_to_cart(bcaa, bcaa.sabores_info[0])
    cart.add_to_cart(details[-1])
    for item in cart.items:
        print(f"  {item.producto.nombre} x{item.quantity}")
    print(f"Items: {cart.get_cart_items_count()}  Total: {cart.get_cart_total()}")

    print("\nCheckout link...")
    contact = CheckoutContact(fullName="Ana Demo", ciRuc="1234567-8", address="Av. España 123")
    print(checkout(cart, contact, os.getenv("SHOP_PHONE", "+595 981 000000")))

    # -----------------------------
    # Clean up
    # -----------------------------
    print("\nDeleting the demo product...")
    print(c.delete_product(created["id"]))


if __name__ == "__main__":
    main()
