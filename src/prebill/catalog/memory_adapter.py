"""In-memory catalog: deterministic shop/product lookup for tests and development."""

from decimal import Decimal

from prebill.catalog.models import Product, Shop
from prebill.catalog.port import CatalogPort


class InMemoryCatalog(CatalogPort):
    def __init__(self):
        self.shops: dict[str, Shop] = {}
        self.products: dict[str, Product] = {}

    def add_shop(self, shop_ref: str, name: str, address: str | None = None, **extra) -> Shop:
        shop = Shop(id=str(shop_ref), name=name, address=address, **extra)
        self.shops[shop.id] = shop
        return shop

    def add_product(self, product_ref: str, shop_ref: str, name: str, price, **extra) -> Product:
        product = Product(
            id=str(product_ref),
            shop_ref=str(shop_ref),
            name=name,
            price=Decimal(str(price)),
            **extra,
        )
        self.products[product.id] = product
        return product

    def set_price(self, product_ref: str, price) -> None:
        """Change a live catalog price (cart lines keep their snapshot)."""
        product = self.products[str(product_ref)]
        self.products[product.id] = product.model_copy(update={"price": Decimal(str(price))})

    def get_shop(self, shop_ref: str) -> Shop | None:
        return self.shops.get(str(shop_ref))

    def get_product(self, product_ref: str) -> Product | None:
        return self.products.get(str(product_ref))

    def reset(self) -> None:
        self.shops.clear()
        self.products.clear()
