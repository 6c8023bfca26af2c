# storefront/core.py
from pydantic import (
    AfterValidator, AnyUrl, BaseModel, ConfigDict, Field, TypeAdapter, ValidationError, field_validator,
)
from typing import Annotated, Any, Dict, List, Optional, Type, TypeVar

from .exceptions import PayloadValidationError

_url = TypeAdapter(AnyUrl)


def _check_url(value: str) -> str:
    # validate the shape but keep the caller's exact string
    try:
        _url.validate_python(value)
    except ValidationError:
        raise ValueError("must be a valid URL")
    return value


def _check_optional_url(value: str) -> str:
    return value if value == "" else _check_url(value)


Url = Annotated[str, AfterValidator(_check_url)]
ImageUrl = Annotated[str, AfterValidator(_check_optional_url)]


class ProductIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    nombre: str = Field(min_length=2)
    descripcion: Optional[str] = None
    precio: float = Field(ge=0)
    categoria: int
    isActivo: bool = True
    isOferta: bool = False
    cantidad_stock: int = Field(ge=0)
    sabores: Optional[List[int]] = None
    url_imagen: Optional[ImageUrl] = ""
    galeria_urls: Optional[List[Url]] = None


class ProductPatchIn(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: int
    nombre: Optional[str] = Field(default=None, min_length=2)
    descripcion: Optional[str] = None
    precio: Optional[float] = Field(default=None, ge=0)
    categoria: Optional[int] = None
    isActivo: Optional[bool] = None
    isOferta: Optional[bool] = None
    cantidad_stock: Optional[int] = Field(default=None, ge=0)
    sabores: Optional[List[int]] = None
    url_imagen: Optional[ImageUrl] = None
    galeria_urls: Optional[List[Url]] = None

    @field_validator("nombre", "precio", "categoria", "isActivo", "isOferta", "cantidad_stock", mode="before")
    @classmethod
    def _not_null(cls, v):
        # omitted is fine, an explicit null is not: these columns are NOT NULL
        if v is None:
            raise ValueError("may be omitted but not null")
        return v


class ProductDeleteIn(BaseModel):
    id: int


class UploadUrlIn(BaseModel):
    path: Optional[str] = None
    bucket: Optional[str] = None


M = TypeVar("M", bound=BaseModel)


def parse_payload(model: Type[M], data: Any) -> M:
    """Validate `data` against `model`, reporting every failing field."""
    try:
        return model.model_validate(data if data is not None else {})
    except ValidationError as e:
        issues = [
            {"field": ".".join(str(p) for p in err["loc"]) or "body", "message": err["msg"]}
            for err in e.errors()
        ]
        raise PayloadValidationError(issues)


# ---------------------------
# Row builders
# ---------------------------
def _coalesce(values: Dict[str, Any]) -> Dict[str, Any]:
    """Map absent optionals to the empty form each column stores."""
    out = dict(values)
    if "sabores" in out:
        out["sabores"] = out["sabores"] or None
    if "url_imagen" in out and out["url_imagen"] is None:
        out["url_imagen"] = ""
    return out


def make_product_row(p: ProductIn) -> Dict[str, Any]:
    return _coalesce(p.model_dump())


def make_product_changes(p: ProductPatchIn) -> Dict[str, Any]:
    # only the fields the caller actually sent
    changes = p.model_dump(exclude_unset=True)
    changes.pop("id", None)
    return _coalesce(changes)
