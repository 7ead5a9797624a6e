"""HTTP catalog adapter: reads shops and products from the commerce REST backend.

Shop details are public (``GET /api/shops/{id}`` returns the shop with its
products). Single-product lookups (``GET /api/products/{id}``) need a bearer
token; without one, a product is resolved by re-reading the detail of the
shop it was last seen in, so the price is always read live at call time.

A 404 means "not found". Any other failed response, or a transport error,
is raised as ``CatalogUnavailable``.
"""

from collections import OrderedDict

import httpx
import structlog

from prebill.catalog.models import Product, Shop
from prebill.catalog.port import CatalogPort
from prebill.errors import CatalogUnavailable

logger = structlog.get_logger(__name__)

# Products remembered with the shop they were last seen in
DEFAULT_MAX_REMEMBERED_PRODUCTS = 10_000


class HttpCatalog(CatalogPort):
    def __init__(
        self,
        base_url: str,
        api_token: str | None = None,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
        max_remembered_products: int = DEFAULT_MAX_REMEMBERED_PRODUCTS,
    ):
        self.base_url = base_url.rstrip("/")
        headers = {"Authorization": f"Bearer {api_token}"} if api_token else {}
        self.has_token = bool(api_token)
        self._client = httpx.Client(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )
        self.max_remembered_products = max_remembered_products
        self._product_shops: OrderedDict[str, str] = OrderedDict()

    def close(self) -> None:
        self._client.close()
        self._product_shops.clear()

    def _remember(self, product_ref: str, shop_ref: str) -> None:
        self._product_shops[product_ref] = shop_ref
        self._product_shops.move_to_end(product_ref)
        while len(self._product_shops) > self.max_remembered_products:
            self._product_shops.popitem(last=False)

    def _get_json(self, path: str):
        try:
            response = self._client.get(path)
            if response.status_code == 404:
                return None
            response.raise_for_status()
            return response.json()
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("Catalog request failed", path=path, error=str(exc))
            raise CatalogUnavailable({"catalog": [f"Catalog request {path} failed: {exc}"]}) from exc

    def _shop_detail(self, shop_ref: str) -> tuple[Shop, list[Product]] | None:
        payload = self._get_json(f"/api/shops/{shop_ref}")
        if payload is None:
            return None

        # Older backends return the bare shop row instead of {shop, products, ...}
        raw_shop = payload.get("shop", payload)
        shop = Shop.from_backend(raw_shop, server_url=self.base_url)

        products = []
        for raw_product in payload.get("products") or []:
            raw_product.setdefault("shop_id", shop.id)
            product = Product.from_backend(raw_product, server_url=self.base_url)
            self._remember(product.id, shop.id)
            products.append(product)
        return shop, products

    def get_shop(self, shop_ref: str) -> Shop | None:
        detail = self._shop_detail(str(shop_ref))
        if detail is None:
            logger.info("Shop not found in catalog", shop_ref=str(shop_ref))
            return None
        return detail[0]

    def get_product(self, product_ref: str) -> Product | None:
        product_ref = str(product_ref)

        if self.has_token:
            payload = self._get_json(f"/api/products/{product_ref}")
            if payload is None:
                return None
            if isinstance(payload, list):
                if not payload:
                    return None
                payload = payload[0]
            return Product.from_backend(payload, server_url=self.base_url)

        shop_ref = self._product_shops.get(product_ref)
        if shop_ref is None:
            logger.warning(
                "Product lookup needs an API token or a prior shop lookup",
                product_ref=product_ref,
            )
            return None

        detail = self._shop_detail(shop_ref)
        if detail is None:
            return None
        return next((p for p in detail[1] if p.id == product_ref), None)
