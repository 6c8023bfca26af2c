# storefront/checkout.py
import json
import logging
import re
from typing import Iterable
from urllib.parse import quote

from pydantic import ValidationError

from .cart import CartStore, KeyValueStorage
from .exceptions import CheckoutError, StorageError
from .formatting import format_currency, format_shipping
from .models import CartLineItem, CheckoutContact

logger = logging.getLogger(__name__)

CHECKOUT_STORAGE_KEY = "pp_checkout"
FREE_SHIPPING_OVER = 50000
SHIPPING_FEE = 8000


def shipping_cost(subtotal: float, has_items: bool = True) -> float:
    if not has_items:
        return 0
    return 0 if subtotal > FREE_SHIPPING_OVER else SHIPPING_FEE


def sanitize_phone(phone: str) -> str:
    return re.sub(r"[^\d]", "", phone or "")


def build_whatsapp_message(items: Iterable[CartLineItem], contact: CheckoutContact) -> str:
    items = list(items)
    subtotal = sum(i.producto.precio * i.quantity for i in items)
    shipping = shipping_cost(subtotal, bool(items))

    lines = [
        "Nuevo pedido desde la web",
        f"Nombre: {contact.fullName}",
        f"CI/RUC: {contact.ciRuc}",
        f"Dirección: {contact.address}",
        "",
        "Items:",
    ]
    for idx, item in enumerate(items, start=1):
        sabor = f" | Sabor: {item.sabor_seleccionado.descripcion}" if item.sabor_seleccionado else ""
        lines.append(f"{idx}. {item.producto.nombre}{sabor} | Cant: {item.quantity} | "
                     f"{format_currency(item.producto.precio * item.quantity)}")
    lines.append("")
    lines.append(f"Subtotal: {format_currency(subtotal)}")
    lines.append(f"Envío: {format_shipping(shipping)}")
    lines.append(f"Total: {format_currency(subtotal + shipping)}")
    return "\n".join(lines)


def whatsapp_url(phone: str, message: str) -> str:
    return f"https://wa.me/{sanitize_phone(phone)}?text={quote(message, safe='')}"


def checkout(cart: CartStore, contact: CheckoutContact, phone: str) -> str:
    """Validate the order and return the wa.me link that carries it."""
    if not (contact.fullName.strip() and contact.ciRuc.strip() and contact.address.strip()):
        raise CheckoutError("Por favor completa nombre, CI/RUC y dirección para continuar.")
    if not cart.items:
        raise CheckoutError("Tu carrito está vacío.")
    return whatsapp_url(phone, build_whatsapp_message(cart.items, contact))


class ContactStore:
    """Remembers the last checkout contact fields for pre-fill."""

    def __init__(self, storage: KeyValueStorage, key: str = CHECKOUT_STORAGE_KEY):
        self.storage = storage
        self.key = key

    def load(self) -> CheckoutContact:
        try:
            raw = self.storage.get(self.key)
            if raw:
                return CheckoutContact.model_validate(json.loads(raw))
        except (StorageError, OSError, ValueError, ValidationError) as e:
            logger.debug(f"Ignoring stored checkout contact: {e}")
        return CheckoutContact()

    def save(self, contact: CheckoutContact) -> None:
        try:
            self.storage.set(self.key, contact.model_dump_json())
        except (StorageError, OSError) as e:
            logger.debug(f"Could not persist checkout contact: {e}")
