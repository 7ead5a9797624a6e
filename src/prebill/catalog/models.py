"""Normalized catalog entities.

The commerce backend and older clients disagree on field names
(``shop_name`` vs ``name``, ``shop_id`` vs ``shopId``, ``unit_type`` vs
``unit``). Records are normalized once here; nothing past this module sees
the dual names.
"""

from decimal import Decimal
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class Availability(Enum):
    AVAILABLE = "available"
    IN_STOCK = "in_stock"
    LOW_STOCK = "low_stock"
    OUT_OF_STOCK = "out_of_stock"


LOW_STOCK_THRESHOLD = 5


def _first(raw: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        value = raw.get(key)
        if value is not None and value != "":
            return value
    return None


def resolve_image_url(image: str | None, server_url: str | None = None) -> str | None:
    """Resolve a backend-relative upload path (``/uploads/x.png``) against the server URL."""
    if not image:
        return None
    if image.startswith("http") or not server_url:
        return image
    separator = "" if image.startswith("/") else "/"
    return f"{server_url.rstrip('/')}{separator}{image}"


class Shop(BaseModel):
    id: str
    name: str
    address: str | None = None
    image: str | None = None
    category: str | None = None
    is_open: bool = True

    @classmethod
    def from_backend(cls, raw: dict[str, Any], server_url: str | None = None) -> "Shop":
        shop_id = str(raw["id"])
        is_open = _first(raw, "is_open", "isOpen")
        return cls(
            id=shop_id,
            name=_first(raw, "shop_name", "name") or f"Shop #{shop_id}",
            address=_first(raw, "shop_address", "address"),
            image=resolve_image_url(_first(raw, "image"), server_url),
            category=_first(raw, "shop_category", "category"),
            is_open=True if is_open is None else bool(is_open),
        )

    @classmethod
    def placeholder(cls, shop_ref: str) -> "Shop":
        """Stand-in used when the catalog no longer knows a shop that still has cart lines."""
        return cls(id=shop_ref, name=f"Shop #{shop_ref}", address="Unknown Address", category="Unknown")


class Product(BaseModel):
    id: str
    shop_ref: str
    name: str
    price: Decimal = Field(ge=0)
    unit: str | None = None
    stock: int | None = None
    availability: Availability = Availability.AVAILABLE
    image: str | None = None

    @classmethod
    def from_backend(cls, raw: dict[str, Any], server_url: str | None = None) -> "Product":
        shop_ref = _first(raw, "shop_id", "shopId")
        if shop_ref is None and isinstance(raw.get("shop"), dict):
            shop_ref = raw["shop"].get("id")
        if shop_ref is None:
            raise ValueError(f"Product {raw.get('id')} has no shop reference")

        stock = _first(raw, "stock")
        stock = int(stock) if stock is not None else None

        availability = _first(raw, "availability")
        if availability is None:
            availability = availability_for_stock(stock)

        return cls(
            id=str(raw["id"]),
            shop_ref=str(shop_ref),
            name=raw.get("name") or "",
            price=Decimal(str(raw.get("price") or 0)),
            unit=_first(raw, "unit_type", "unit"),
            stock=stock,
            availability=availability,
            image=resolve_image_url(_first(raw, "product_image", "image"), server_url),
        )


def availability_for_stock(stock: int | None) -> Availability:
    if stock is None:
        return Availability.AVAILABLE
    if stock <= 0:
        return Availability.OUT_OF_STOCK
    if stock <= LOW_STOCK_THRESHOLD:
        return Availability.LOW_STOCK
    return Availability.IN_STOCK
