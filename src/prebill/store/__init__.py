"""Key-value store abstraction: pluggable durable storage for session state."""

import os

_store_instance = None


def get_store():
    """Return the configured key-value store (singleton).

    Uses InMemoryStore by default. Set PREBILL_STORE=sql to persist through
    SQLAlchemy at PREBILL_DATABASE_URI (SQLite file by default).
    """
    global _store_instance
    if _store_instance is None:
        adapter = os.environ.get("PREBILL_STORE", "memory")
        if adapter == "memory":
            from prebill.store.memory_adapter import InMemoryStore

            _store_instance = InMemoryStore()
        elif adapter == "sql":
            from prebill.store.sql_adapter import SqlKeyValueStore

            _store_instance = SqlKeyValueStore(
                database_uri=os.environ.get("PREBILL_DATABASE_URI", "sqlite:///prebill.db"),
            )
            _store_instance.setup()
        else:
            raise ValueError(f"Unknown store adapter: {adapter}")
    return _store_instance


def reset_store():
    """Reset the store singleton (useful for testing)."""
    global _store_instance
    _store_instance = None
