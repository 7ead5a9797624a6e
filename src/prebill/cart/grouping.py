"""Shop grouping: the per-shop view of a cart.

Groups are derived on every read and never stored; a group exists exactly
while at least one cart line belongs to its shop.
"""

from collections.abc import Mapping
from decimal import Decimal

from pydantic import BaseModel

from prebill.cart.cart import Cart, CartLine
from prebill.packing.packing import PackingStatus


class ShopGroup(BaseModel):
    shop_ref: str
    line_count: int
    total: Decimal
    status: PackingStatus = PackingStatus.ABSENT


def lines_for_shop(cart: Cart, shop_ref) -> list[CartLine]:
    return [line for line in cart.lines if line.shop_ref == str(shop_ref)]


def groups_by_shop(cart: Cart, statuses: Mapping[str, PackingStatus] | None = None) -> list[ShopGroup]:
    """One group per shop present in the cart, in first-seen order."""
    statuses = statuses or {}

    totals: dict[str, list] = {}
    for line in cart.lines:
        count_and_total = totals.setdefault(line.shop_ref, [0, Decimal("0")])
        count_and_total[0] += 1
        count_and_total[1] += line.subtotal

    return [
        ShopGroup(
            shop_ref=shop_ref,
            line_count=count,
            total=total,
            status=statuses.get(shop_ref, PackingStatus.ABSENT),
        )
        for shop_ref, (count, total) in totals.items()
    ]


def group_for_shop(
    cart: Cart, shop_ref, statuses: Mapping[str, PackingStatus] | None = None
) -> ShopGroup | None:
    return next((g for g in groups_by_shop(cart, statuses) if g.shop_ref == str(shop_ref)), None)
