"""Catalog adapter abstraction: pluggable shop/product lookup."""

import os

_catalog_instance = None


def get_catalog():
    """Return the configured catalog adapter (singleton).

    Uses InMemoryCatalog by default. Set CATALOG_ADAPTER=http (with
    CATALOG_BASE_URL and optionally CATALOG_API_TOKEN) to read from the
    commerce backend.
    """
    global _catalog_instance
    if _catalog_instance is None:
        adapter = os.environ.get("CATALOG_ADAPTER", "memory")
        if adapter == "memory":
            from prebill.catalog.memory_adapter import InMemoryCatalog

            _catalog_instance = InMemoryCatalog()
        elif adapter == "http":
            from prebill.catalog.http_adapter import HttpCatalog

            _catalog_instance = HttpCatalog(
                base_url=os.environ.get("CATALOG_BASE_URL", "http://localhost:5000"),
                api_token=os.environ.get("CATALOG_API_TOKEN") or None,
                timeout=float(os.environ.get("CATALOG_TIMEOUT", "10")),
                max_remembered_products=int(os.environ.get("CATALOG_MAX_REMEMBERED_PRODUCTS", "10000")),
            )
        else:
            raise ValueError(f"Unknown catalog adapter: {adapter}")
    return _catalog_instance


def reset_catalog():
    """Reset the catalog singleton (useful for testing)."""
    global _catalog_instance
    _catalog_instance = None
