"""Pre-bill workflow: the session-scoped service the presentation layer calls.

The service owns one session's Cart and PackingLedger, both injected through
the constructor. Cart mutators persist the cart; packing transitions persist
the status map. Shop groups are recomputed from the cart on every read.

The one cross-aggregate rule lives here: a shop group whose packing request
is pending or processing cannot be deleted (cancel first).

``for_session`` loads both aggregates through the domain's repositories, so
it runs inside an active ``prebill`` domain context.
"""

from dataclasses import dataclass
from decimal import Decimal

import structlog
from protean.utils.globals import current_domain

from prebill.cart.cart import Cart, CartLine
from prebill.cart.grouping import ShopGroup, group_for_shop, groups_by_shop, lines_for_shop
from prebill.catalog import get_catalog
from prebill.catalog.models import Product, Shop
from prebill.catalog.port import CatalogPort
from prebill.errors import CatalogUnavailable, NotFound, OperationBlocked
from prebill.packing.packing import PackingLedger, PackingStatus
from prebill.store.port import KeyValueStore
from prebill.workflow.bill import Bill, build_bill

logger = structlog.get_logger(__name__)


@dataclass
class ShopDetail:
    shop: Shop
    group: ShopGroup
    lines: list[CartLine]

    @property
    def status(self) -> PackingStatus:
        return self.group.status


class PrebillService:
    def __init__(
        self,
        cart: Cart,
        packing: PackingLedger,
        cart_repository,
        packing_repository,
        catalog: CatalogPort,
    ):
        self.cart = cart
        self.packing = packing
        self.cart_repository = cart_repository
        self.packing_repository = packing_repository
        self.catalog = catalog

    @classmethod
    def for_session(
        cls,
        session_id: str,
        store: KeyValueStore | None = None,
        catalog: CatalogPort | None = None,
    ) -> "PrebillService":
        """Load a session's state through the repositories.

        ``store`` and ``catalog`` default to the configured adapters.
        """
        cart_repository = current_domain.repository_for(Cart)
        packing_repository = current_domain.repository_for(PackingLedger)
        if store is not None:
            cart_repository.store = store
            packing_repository.store = store

        return cls(
            cart=cart_repository.get(session_id),
            packing=packing_repository.get(session_id),
            cart_repository=cart_repository,
            packing_repository=packing_repository,
            catalog=catalog or get_catalog(),
        )

    @property
    def session_id(self) -> str:
        return self.cart.session_id

    def _save_cart(self) -> None:
        self.cart_repository.add(self.cart)

    def _save_packing(self) -> None:
        self.packing_repository.add(self.packing)

    # -------------------------------------------------------------------
    # Cart
    # -------------------------------------------------------------------
    def add_to_cart(self, product_ref, quantity: int) -> CartLine | None:
        """Look a product up in the catalog and add it at its current price.

        There is no price to snapshot while the catalog is down, so
        ``CatalogUnavailable`` propagates and the cart is left untouched.
        """
        product = self.catalog.get_product(str(product_ref))
        if product is None:
            raise NotFound({"product_ref": [f"Product {product_ref} does not exist"]})
        return self.add(product, quantity)

    def add(self, product: Product, quantity: int) -> CartLine | None:
        line = self.cart.add(product, quantity)
        if line is None:
            return None

        self._save_cart()
        logger.info(
            "Added to pre-bill",
            session_id=self.session_id,
            product_ref=line.product_ref,
            shop_ref=line.shop_ref,
            quantity=line.quantity,
        )
        return line

    def set_quantity(self, product_ref, quantity: int) -> CartLine | None:
        if self.cart.line_for(product_ref) is None:
            return None

        line = self.cart.set_quantity(product_ref, quantity)
        self._save_cart()
        logger.info(
            "Updated pre-bill quantity",
            session_id=self.session_id,
            product_ref=str(product_ref),
            quantity=max(quantity, 0),
        )
        return line

    def remove(self, product_ref) -> bool:
        removed = self.cart.remove(product_ref)
        if removed:
            self._save_cart()
            logger.info("Removed from pre-bill", session_id=self.session_id, product_ref=str(product_ref))
        return removed

    def clear(self) -> None:
        """Empty the cart. Refused while any shop in it is being packed."""
        blocked = [shop_ref for shop_ref in self.cart.shop_refs() if self.packing.is_blocking(shop_ref)]
        if blocked:
            logger.warning("Refused to clear pre-bill", session_id=self.session_id, blocked_shops=blocked)
            raise OperationBlocked(
                {"shop_ref": [f"Packing for shop {shop_ref} is in progress" for shop_ref in blocked]}
            )

        self.cart.clear()
        self._save_cart()
        logger.info("Cleared pre-bill", session_id=self.session_id)

    def grand_total(self) -> Decimal:
        return self.cart.grand_total()

    # -------------------------------------------------------------------
    # Grouping
    # -------------------------------------------------------------------
    def groups(self) -> list[ShopGroup]:
        return groups_by_shop(self.cart, self.packing.statuses)

    def lines_for_shop(self, shop_ref) -> list[CartLine]:
        return lines_for_shop(self.cart, shop_ref)

    def _require_group(self, shop_ref) -> ShopGroup:
        group = group_for_shop(self.cart, shop_ref, self.packing.statuses)
        if group is None:
            raise NotFound({"shop_ref": [f"No items from shop {shop_ref} in the pre-bill"]})
        return group

    def _shop(self, shop_ref) -> Shop:
        """The catalog's shop, or a placeholder when it is unknown or the catalog is down."""
        shop_ref = str(shop_ref)
        try:
            shop = self.catalog.get_shop(shop_ref)
        except CatalogUnavailable as exc:
            logger.warning(
                "Catalog unavailable, showing placeholder shop",
                session_id=self.session_id,
                shop_ref=shop_ref,
                error=str(exc),
            )
            shop = None
        return shop or Shop.placeholder(shop_ref)

    def open_shop_detail(self, shop_ref) -> ShopDetail:
        group = self._require_group(shop_ref)
        return ShopDetail(
            shop=self._shop(shop_ref),
            group=group,
            lines=self.lines_for_shop(shop_ref),
        )

    def bill(self, shop_ref, discount: Decimal = Decimal("0")) -> Bill:
        group = self._require_group(shop_ref)
        return build_bill(
            shop=self._shop(shop_ref),
            lines=self.lines_for_shop(shop_ref),
            status=group.status,
            discount=discount,
        )

    def delete_shop_group(self, shop_ref) -> int:
        """Remove every line of one shop; the shop's packing record is left as is."""
        shop_ref = str(shop_ref)
        status = self.packing.status_of(shop_ref)
        if self.packing.is_blocking(shop_ref):
            logger.warning(
                "Refused to delete shop group",
                session_id=self.session_id,
                shop_ref=shop_ref,
                status=status.value,
            )
            raise OperationBlocked(
                {"shop_ref": [f"Packing for shop {shop_ref} is {status.value}; cancel the request first"]}
            )

        removed = self.cart.remove_shop(shop_ref)
        if removed:
            self._save_cart()
            logger.info("Deleted shop group", session_id=self.session_id, shop_ref=shop_ref, lines_removed=removed)
        return removed

    # -------------------------------------------------------------------
    # Packing
    # -------------------------------------------------------------------
    def packing_status(self, shop_ref) -> PackingStatus:
        return self.packing.status_of(shop_ref)

    def request_packing(self, shop_ref) -> PackingStatus:
        shop_ref = str(shop_ref)
        previous = self.packing.status_of(shop_ref)
        self.packing.request(shop_ref, line_count=len(self.lines_for_shop(shop_ref)))
        self._save_packing()
        logger.info(
            "Packing requested",
            session_id=self.session_id,
            shop_ref=shop_ref,
            previous_status=previous.value,
        )
        return self.packing.status_of(shop_ref)

    def cancel_packing(self, shop_ref) -> PackingStatus:
        shop_ref = str(shop_ref)
        if self.packing.cancel(shop_ref):
            self._save_packing()
            logger.info("Packing request cancelled", session_id=self.session_id, shop_ref=shop_ref)
        else:
            logger.debug(
                "Nothing to cancel",
                session_id=self.session_id,
                shop_ref=shop_ref,
                status=self.packing.status_of(shop_ref).value,
            )
        return self.packing.status_of(shop_ref)

    def advance_packing(self, shop_ref, status: PackingStatus) -> PackingStatus:
        """Record the shop's progress on a packing request (processing, then completed)."""
        shop_ref = str(shop_ref)
        previous = self.packing.advance(shop_ref, status)
        self._save_packing()
        logger.info(
            "Packing status advanced",
            session_id=self.session_id,
            shop_ref=shop_ref,
            previous_status=previous.value,
            status=status.value,
        )
        return status

    def clear_completed_packing(self, shop_ref) -> bool:
        shop_ref = str(shop_ref)
        cleared = self.packing.clear(shop_ref)
        if cleared:
            self._save_packing()
            logger.info("Completed packing record cleared", session_id=self.session_id, shop_ref=shop_ref)
        return cleared
