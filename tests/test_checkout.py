# tests/test_checkout.py
from urllib.parse import parse_qs, urlparse

import pytest

from storefront.cart import CartStore, MemoryStorage
from storefront.checkout import (
    CHECKOUT_STORAGE_KEY, ContactStore, build_whatsapp_message, checkout, sanitize_phone, shipping_cost,
)
from storefront.exceptions import CheckoutError
from storefront.models import CheckoutContact, Flavor, Product

CONTACT = CheckoutContact(fullName="Ana Pérez", ciRuc="1234567-8", address="Av. España 123")


def filled_cart(precio=10000):
    cart = CartStore(MemoryStorage())
    whey = Product(id=1, nombre="Whey", precio=precio, categoria=1)
    cart.add_to_cart(whey, Flavor(id=1, descripcion="Chocolate"))
    cart.add_to_cart(whey, Flavor(id=1, descripcion="Chocolate"))
    cart.add_to_cart(Product(id=2, nombre="Shaker", precio=5000, categoria=1))
    return cart


def test_shipping_cost():
    assert shipping_cost(0, has_items=False) == 0
    assert shipping_cost(25000) == 8000
    assert shipping_cost(50000) == 8000
    assert shipping_cost(50001) == 0


def test_sanitize_phone():
    assert sanitize_phone("+595 (981) 123-456") == "595981123456"
    assert sanitize_phone("") == ""


def test_message_lines():
    message = build_whatsapp_message(filled_cart().items, CONTACT)
    assert message.splitlines() == [
        "Nuevo pedido desde la web",
        "Nombre: Ana Pérez",
        "CI/RUC: 1234567-8",
        "Dirección: Av. España 123",
        "",
        "Items:",
        "1. Whey | Sabor: Chocolate | Cant: 2 | Gs. 20.000",
        "2. Shaker | Cant: 1 | Gs. 5.000",
        "",
        "Subtotal: Gs. 25.000",
        "Envío: Gs. 8.000",
        "Total: Gs. 33.000",
    ]


def test_free_shipping_in_message():
    message = build_whatsapp_message(filled_cart(precio=30000).items, CONTACT)
    assert "Envío: Gratis" in message
    assert message.endswith("Total: Gs. 65.000")


def test_checkout_url():
    url = checkout(filled_cart(), CONTACT, "+595 981 000000")
    parsed = urlparse(url)
    assert parsed.netloc == "wa.me"
    assert parsed.path == "/595981000000"
    text = parse_qs(parsed.query)["text"][0]
    assert text.startswith("Nuevo pedido desde la web\nNombre: Ana Pérez")


def test_checkout_requires_contact_and_items():
    with pytest.raises(CheckoutError, match="completa nombre"):
        checkout(filled_cart(), CheckoutContact(fullName="Ana", ciRuc=" ", address="x"), "1")
    with pytest.raises(CheckoutError, match="vacío"):
        checkout(CartStore(MemoryStorage()), CONTACT, "1")


def test_contact_store():
    storage = MemoryStorage()
    contacts = ContactStore(storage)
    assert contacts.load() == CheckoutContact()
    contacts.save(CONTACT)
    assert ContactStore(storage).load() == CONTACT

    storage.data[CHECKOUT_STORAGE_KEY] = "garbage"
    assert contacts.load() == CheckoutContact()
