"""
Client-side shopping cart.

The cart lives in the client session and is persisted to a local key-value
store (the browser's localStorage in the web client, a JSON file in the
terminal client) under a fixed key. Every mutation rewrites the whole list.

Line items are merged by identity key (product id, selected flavor id or
None). Prices are snapshots taken when the product is added, so the total
does not move if the catalog price changes later.

Nothing in here raises on storage problems: a corrupt stored value resets
the cart to empty, and failed writes are logged.
"""
import json
import logging
import os
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from pydantic import TypeAdapter, ValidationError

from .exceptions import StorageError
from .models import CartLineItem, Flavor, Product, ProductDetails

logger = logging.getLogger(__name__)

CART_STORAGE_KEY = "proteina-pura-cart"

_line_items = TypeAdapter(List[CartLineItem])


class KeyValueStorage:
    """get/set/remove of string values, localStorage style."""

    def get(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def set(self, key: str, value: str) -> None:
        raise NotImplementedError

    def remove(self, key: str) -> None:
        raise NotImplementedError


class MemoryStorage(KeyValueStorage):
    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self.data: Dict[str, str] = dict(initial or {})

    def get(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def set(self, key: str, value: str) -> None:
        self.data[key] = value

    def remove(self, key: str) -> None:
        self.data.pop(key, None)


class JsonFileStorage(KeyValueStorage):
    """All keys in one JSON object on disk; writes go through a temp file."""

    def __init__(self, path):
        self.path = Path(path)

    def _read_all(self) -> Dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            text = self.path.read_text(encoding="utf-8")
        except OSError as e:
            raise StorageError(f"cannot read {self.path}: {e}") from e
        try:
            data = json.loads(text)
        except ValueError as e:
            # the next write replaces the file
            logger.warning(f"Ignoring corrupt storage file {self.path}: {e}")
            return {}
        return data if isinstance(data, dict) else {}

    def _write_all(self, data: Dict[str, str]) -> None:
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            tmp.write_text(json.dumps(data, ensure_ascii=False), encoding="utf-8")
            os.replace(tmp, self.path)
        except OSError as e:
            raise StorageError(f"cannot write {self.path}: {e}") from e

    def get(self, key: str) -> Optional[str]:
        value = self._read_all().get(key)
        return value if isinstance(value, str) else None

    def set(self, key: str, value: str) -> None:
        data = self._read_all()
        data[key] = value
        self._write_all(data)

    def remove(self, key: str) -> None:
        data = self._read_all()
        if key in data:
            del data[key]
            self._write_all(data)


def _key(product_id: int, flavor_id: Optional[int]) -> Tuple[int, Optional[int]]:
    return (product_id, flavor_id)


class CartStore:
    def __init__(self, storage: KeyValueStorage, key: str = CART_STORAGE_KEY, autoload: bool = True):
        self.storage = storage
        self.key = key
        self._items: List[CartLineItem] = []
        # Writes are suppressed until the stored cart has been read (or the
        # read was given up), so an early save cannot clobber it.
        self._loaded = False
        if autoload:
            self.load()

    @property
    def loaded(self) -> bool:
        return self._loaded

    @property
    def items(self) -> Tuple[CartLineItem, ...]:
        return tuple(self._items)

    def load(self) -> None:
        try:
            raw = self.storage.get(self.key)
        except (StorageError, OSError) as e:
            logger.error(f"Error loading cart from storage: {e}")
            self._items = []
            self._loaded = True
            return

        if raw is None:
            self._items = []
        else:
            try:
                data = json.loads(raw)
                if not isinstance(data, list):
                    raise ValueError(f"expected a list, got {type(data).__name__}")
                self._items = _line_items.validate_python(data)
            except (ValueError, ValidationError) as e:
                # json.JSONDecodeError is a ValueError
                logger.warning(f"Discarding corrupt cart in storage: {e}")
                self._items = []
                self._discard()
        self._loaded = True

    def _discard(self) -> None:
        try:
            self.storage.remove(self.key)
        except (StorageError, OSError) as e:
            logger.error(f"Error removing corrupt cart: {e}")

    def _save(self) -> None:
        if not self._loaded:
            return
        payload = json.dumps(_line_items.dump_python(self._items, mode="json"), ensure_ascii=False)
        try:
            self.storage.set(self.key, payload)
        except (StorageError, OSError) as e:
            logger.error(f"Error saving cart to storage: {e}")

    def _find(self, product_id: int, flavor_id: Optional[int]) -> Optional[CartLineItem]:
        wanted = _key(product_id, flavor_id)
        for item in self._items:
            if item.key == wanted:
                return item
        return None

    # ---------------------------
    # Mutations
    # ---------------------------
    def add_to_cart(self, product: Product, flavor: Optional[Flavor] = None) -> CartLineItem:
        existing = self._find(product.id, flavor.id if flavor else None)
        if existing is not None:
            existing.quantity += 1
            item = existing
        else:
            snapshot = ProductDetails.model_validate(product.model_dump())
            item = CartLineItem(
                producto=snapshot,
                quantity=1,
                sabor_seleccionado=flavor.model_copy() if flavor else None,
            )
            self._items.append(item)
        self._save()
        return item

    def remove_from_cart(self, product_id: int, flavor_id: Optional[int] = None) -> None:
        wanted = _key(product_id, flavor_id)
        self._items = [i for i in self._items if i.key != wanted]
        self._save()

    def update_quantity(self, product_id: int, flavor_id: Optional[int], new_quantity: int) -> None:
        if new_quantity <= 0:
            self.remove_from_cart(product_id, flavor_id)
            return
        item = self._find(product_id, flavor_id)
        if item is None:
            return
        item.quantity = new_quantity
        self._save()

    def clear_cart(self) -> None:
        self._items = []
        self._save()

    # ---------------------------
    # Aggregates
    # ---------------------------
    def get_cart_total(self) -> float:
        return sum(i.producto.precio * i.quantity for i in self._items)

    def get_cart_items_count(self) -> int:
        return sum(i.quantity for i in self._items)
