# storefront/models.py
from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional

# Field names mirror the columns of the external store so rows validate as-is.


class Category(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    descripcion: str
    isActivo: bool = True
    created_at: Optional[str] = None


class Flavor(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    descripcion: str = ""


class Product(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    nombre: str
    descripcion: Optional[str] = None
    precio: float = Field(ge=0)
    categoria: int
    isActivo: bool = True
    isOferta: bool = False
    cantidad_stock: int = Field(default=0, ge=0)
    sabores: Optional[List[int]] = None
    url_imagen: str = ""
    galeria_urls: Optional[List[str]] = None
    created_at: Optional[str] = None


class ProductDetails(Product):
    categoria_info: Optional[Category] = None
    sabores_info: List[Flavor] = Field(default_factory=list)


class CartLineItem(BaseModel):
    producto: ProductDetails
    quantity: int = Field(ge=1)
    sabor_seleccionado: Optional[Flavor] = None

    @property
    def key(self):
        flavor_id = self.sabor_seleccionado.id if self.sabor_seleccionado else None
        return (self.producto.id, flavor_id)


class CheckoutContact(BaseModel):
    fullName: str = ""
    ciRuc: str = ""
    address: str = ""


class AuthUser(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: str
    email: Optional[str] = None
