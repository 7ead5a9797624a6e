"""Catalog port: read-only access to shops and products.

The pre-bill core programs against this interface; adapters are swapped via
configuration.
"""

from abc import ABC, abstractmethod

from prebill.catalog.models import Product, Shop


class CatalogPort(ABC):
    """Abstract interface for catalog adapters."""

    @abstractmethod
    def get_shop(self, shop_ref: str) -> Shop | None:
        """Return the normalized shop, or None when it does not exist.

        Raises ``CatalogUnavailable`` when the backend cannot answer.
        """
        ...

    @abstractmethod
    def get_product(self, product_ref: str) -> Product | None:
        """Return the normalized product, or None when it does not exist."""
        ...
