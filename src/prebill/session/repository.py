"""Repositories for session state.

A session owns two independently persisted entries in the key-value store:

* ``<session>:shoppingList``: JSON array of cart lines
  (``productRef``, ``shopRef``, ``quantity``, ``unitPrice``, ``name``, ``unit``)
* ``<session>:packingStatus``: JSON object of ``shopRef`` → status

The two are written separately; a crash between the writes can leave them
out of step (e.g. a pending request for a shop whose lines are gone).

Both repositories read and write the configured store (``get_store()``);
assign ``store`` on an instance to point it elsewhere.
"""

import json
from decimal import Decimal, InvalidOperation as DecimalError

import structlog
from protean.exceptions import ValidationError

from prebill.cart.cart import Cart, CartLine
from prebill.domain import prebill
from prebill.packing.packing import PackingLedger, PackingStatus
from prebill.store import get_store

logger = structlog.get_logger(__name__)

CART_KEY = "shoppingList"
PACKING_KEY = "packingStatus"


def session_key(session_id: str, name: str) -> str:
    return f"{session_id}:{name}"


def _line_record(line: CartLine) -> dict:
    return {
        "productRef": line.product_ref,
        "shopRef": line.shop_ref,
        "quantity": line.quantity,
        "unitPrice": str(line.unit_price),
        "name": line.name,
        "unit": line.unit,
    }


def _line_from_record(record: dict) -> CartLine | None:
    quantity = int(record.get("quantity", 0))
    if quantity <= 0:
        return None
    return CartLine(
        product_ref=str(record["productRef"]),
        shop_ref=str(record["shopRef"]),
        quantity=quantity,
        unit_price=Decimal(str(record["unitPrice"])),
        name=record.get("name"),
        unit=record.get("unit"),
    )


@prebill.repository(part_of=Cart)
class CartRepository:
    def __init__(self, domain, provider):
        super().__init__(domain, provider)
        self.store = get_store()

    def get(self, session_id) -> Cart:
        """Load the session's cart; a missing or unreadable entry yields an empty cart."""
        session_id = str(session_id)
        raw = self.store.get(session_key(session_id, CART_KEY))
        if raw is None:
            return Cart.create(session_id)

        try:
            lines = [line for line in map(_line_from_record, json.loads(raw)) if line is not None]
        except (
            json.JSONDecodeError,
            ValidationError,
            DecimalError,
            KeyError,
            TypeError,
            ValueError,
            AttributeError,
        ) as exc:
            logger.error("Discarding unreadable cart", session_id=session_id, error=str(exc))
            return Cart.create(session_id)

        return Cart.create(session_id, lines)

    def add(self, cart: Cart) -> Cart:
        payload = [_line_record(line) for line in cart.lines]
        self.store.set(session_key(cart.session_id, CART_KEY), json.dumps(payload))
        return cart


@prebill.repository(part_of=PackingLedger)
class PackingLedgerRepository:
    def __init__(self, domain, provider):
        super().__init__(domain, provider)
        self.store = get_store()

    def get(self, session_id) -> PackingLedger:
        session_id = str(session_id)
        raw = self.store.get(session_key(session_id, PACKING_KEY))
        if raw is None:
            return PackingLedger.create(session_id)

        try:
            stored = json.loads(raw)
        except json.JSONDecodeError as exc:
            logger.error("Discarding unreadable packing statuses", session_id=session_id, error=str(exc))
            return PackingLedger.create(session_id)
        if not isinstance(stored, dict):
            logger.error("Discarding unreadable packing statuses", session_id=session_id, error="not an object")
            return PackingLedger.create(session_id)

        statuses = {}
        for shop_ref, value in stored.items():
            try:
                status = PackingStatus(value)
            except ValueError:
                logger.warning("Ignoring unknown packing status", session_id=session_id, shop_ref=shop_ref, status=value)
                continue
            if status is not PackingStatus.ABSENT:
                statuses[str(shop_ref)] = status

        return PackingLedger.create(session_id, statuses)

    def add(self, ledger: PackingLedger) -> PackingLedger:
        payload = {shop_ref: status.value for shop_ref, status in ledger.statuses.items()}
        self.store.set(session_key(ledger.session_id, PACKING_KEY), json.dumps(payload))
        return ledger

    def session_ids(self) -> list[str]:
        """Every session with a stored packing entry, sorted."""
        suffix = f":{PACKING_KEY}"
        return [key[: -len(suffix)] for key in self.store.keys() if key.endswith(suffix)]

    def find_requests_for_shop(self, shop_ref, status: PackingStatus | None = None) -> list[tuple[str, PackingStatus]]:
        """List ``(session_id, status)`` for every session with a request at one shop.

        ``status`` narrows the list to requests in that state.
        """
        shop_ref = str(shop_ref)
        found = []
        for session_id in self.session_ids():
            current = self.get(session_id).status_of(shop_ref)
            if current is PackingStatus.ABSENT:
                continue
            if status is not None and current is not status:
                continue
            found.append((session_id, current))
        return found
