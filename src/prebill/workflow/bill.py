"""Per-shop bill shown when the customer confirms a packing request."""

import os
from datetime import UTC, datetime
from decimal import Decimal

from pydantic import BaseModel

from prebill.cart.cart import CartLine
from prebill.catalog.models import Shop
from prebill.packing.packing import PackingStatus


class BillLine(BaseModel):
    product_ref: str
    name: str | None = None
    unit: str | None = None
    quantity: int
    unit_price: Decimal
    line_total: Decimal


class Bill(BaseModel):
    invoice_id: str
    issued_at: datetime
    shop: Shop
    status: PackingStatus
    lines: list[BillLine]
    subtotal: Decimal
    discount: Decimal
    packing_fee: Decimal
    grand_total: Decimal
    currency: str


def default_currency() -> str:
    return os.environ.get("PREBILL_CURRENCY", "LKR")


def default_packing_fee() -> Decimal:
    return Decimal(os.environ.get("PREBILL_PACKING_FEE", "0"))


def invoice_id_for(issued_at: datetime) -> str:
    """``INV-`` followed by the last six digits of the issue time in epoch milliseconds."""
    millis = round(issued_at.timestamp() * 1000)
    return f"INV-{str(millis)[-6:]}"


def build_bill(
    shop: Shop,
    lines: list[CartLine],
    status: PackingStatus = PackingStatus.ABSENT,
    discount: Decimal = Decimal("0"),
    packing_fee: Decimal | None = None,
    currency: str | None = None,
    issued_at: datetime | None = None,
) -> Bill:
    issued_at = issued_at or datetime.now(UTC)
    packing_fee = default_packing_fee() if packing_fee is None else packing_fee

    bill_lines = [
        BillLine(
            product_ref=line.product_ref,
            name=line.name,
            unit=line.unit,
            quantity=line.quantity,
            unit_price=line.unit_price,
            line_total=line.subtotal,
        )
        for line in lines
    ]
    subtotal = sum((line.line_total for line in bill_lines), Decimal("0"))
    grand_total = max(Decimal("0"), subtotal - discount + packing_fee)

    return Bill(
        invoice_id=invoice_id_for(issued_at),
        issued_at=issued_at,
        shop=shop,
        status=status,
        lines=bill_lines,
        subtotal=subtotal,
        discount=discount,
        packing_fee=packing_fee,
        grand_total=grand_total,
        currency=currency or default_currency(),
    )
