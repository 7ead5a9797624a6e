"""Errors raised by the pre-bill core.

Each error is a protean exception, so the standard FastAPI handlers map it
to a status code (``NotFound`` 404, ``OperationBlocked`` 409,
``InvalidOperation`` 422). Every error also keeps a ``messages`` mapping of
field name to a list of messages; ``str(error)`` joins them.
"""

from protean.exceptions import (
    InvalidOperationError,
    InvalidStateError,
    ObjectNotFoundError,
    ProteanException,
)


class PrebillError(Exception):
    """Base class for pre-bill errors."""

    def __init__(self, messages: dict[str, list[str]]):
        self.messages = messages
        super().__init__("; ".join(message for field in messages.values() for message in field))


class InvalidOperation(PrebillError, InvalidOperationError):
    """The operation makes no sense in the current state (e.g. packing an empty group)."""


class OperationBlocked(PrebillError, InvalidStateError):
    """The operation is refused while a packing request is in flight."""


class NotFound(PrebillError, ObjectNotFoundError):
    """An explicit lookup referenced a shop, product or group that does not exist."""


class CatalogUnavailable(PrebillError, ProteanException):
    """The catalog backend failed or could not be reached."""
