"""Key-value store port: durable storage of serialized session state.

Values are opaque strings (the repositories store JSON). Each ``set`` is
durable on return; there is no transaction spanning several keys.
"""

from abc import ABC, abstractmethod


class KeyValueStore(ABC):
    """Abstract interface for key-value store adapters."""

    @abstractmethod
    def get(self, key: str) -> str | None:
        """Return the stored value, or None when the key is absent."""
        ...

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """Insert or overwrite the value stored under ``key``."""
        ...

    @abstractmethod
    def delete(self, key: str) -> None:
        """Remove ``key``; removing an absent key is not an error."""
        ...

    @abstractmethod
    def keys(self, prefix: str = "") -> list[str]:
        """Return the stored keys starting with ``prefix``, sorted."""
        ...
