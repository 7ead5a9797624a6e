"""Pydantic request/response schemas for the pre-bill API.

These are external contracts, kept separate from the internal aggregates.
"""

from decimal import Decimal

from pydantic import BaseModel, Field

from prebill.cart.cart import Cart, CartLine
from prebill.cart.grouping import ShopGroup
from prebill.catalog.models import Shop
from prebill.packing.packing import PackingStatus
from prebill.workflow.coordinator import ShopDetail


# ---------------------------------------------------------------------------
# Request Schemas
# ---------------------------------------------------------------------------
class AddToPrebillRequest(BaseModel):
    product_ref: str
    quantity: int = Field(default=1)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "product_ref": "101",
                    "quantity": 2,
                }
            ]
        }
    }


class UpdateQuantityRequest(BaseModel):
    # Zero or less removes the line
    quantity: int


class AdvancePackingRequest(BaseModel):
    status: PackingStatus


# ---------------------------------------------------------------------------
# Response Schemas
# ---------------------------------------------------------------------------
class CartLineResponse(BaseModel):
    product_ref: str
    shop_ref: str
    name: str | None = None
    unit: str | None = None
    quantity: int
    unit_price: Decimal
    subtotal: Decimal

    @classmethod
    def from_line(cls, line: CartLine) -> "CartLineResponse":
        return cls(
            product_ref=line.product_ref,
            shop_ref=line.shop_ref,
            name=line.name,
            unit=line.unit,
            quantity=line.quantity,
            unit_price=line.unit_price,
            subtotal=line.subtotal,
        )


class PrebillResponse(BaseModel):
    session_id: str
    lines: list[CartLineResponse]
    groups: list[ShopGroup]
    item_count: int
    grand_total: Decimal

    @classmethod
    def from_cart(cls, cart: Cart, groups: list[ShopGroup]) -> "PrebillResponse":
        return cls(
            session_id=cart.session_id,
            lines=[CartLineResponse.from_line(line) for line in cart.lines],
            groups=groups,
            item_count=cart.item_count,
            grand_total=cart.grand_total(),
        )


class ShopDetailResponse(BaseModel):
    shop: Shop
    group: ShopGroup
    lines: list[CartLineResponse]

    @classmethod
    def from_detail(cls, detail: ShopDetail) -> "ShopDetailResponse":
        return cls(
            shop=detail.shop,
            group=detail.group,
            lines=[CartLineResponse.from_line(line) for line in detail.lines],
        )


class PackingStatusResponse(BaseModel):
    shop_ref: str
    status: PackingStatus


class DeleteShopGroupResponse(BaseModel):
    shop_ref: str
    lines_removed: int


class StatusResponse(BaseModel):
    status: str = "ok"
