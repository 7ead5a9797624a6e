"""Packing requests: one small state machine per shop.

State Machine:
    ABSENT → PENDING → PROCESSING → COMPLETED
    PENDING → ABSENT (cancel by the customer)
    COMPLETED → PENDING (the customer asks the shop to pack again)
    COMPLETED → ABSENT (explicit clear)

ABSENT is the absence of a record, never a stored value. PENDING is entered
by the customer; PROCESSING and COMPLETED are driven by the shop owner.
"""

from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import HasMany, Identifier, String

from prebill.domain import prebill
from prebill.errors import InvalidOperation, OperationBlocked


class PackingStatus(Enum):
    ABSENT = "absent"
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"


# State machine transition map
_VALID_TRANSITIONS = {
    PackingStatus.ABSENT: {PackingStatus.PENDING},
    PackingStatus.PENDING: {PackingStatus.PROCESSING, PackingStatus.ABSENT},
    PackingStatus.PROCESSING: {PackingStatus.COMPLETED},
    PackingStatus.COMPLETED: {PackingStatus.PENDING, PackingStatus.ABSENT},
}

# Transitions only the shop side may trigger
_EXTERNAL_TRANSITIONS = {
    (PackingStatus.PENDING, PackingStatus.PROCESSING),
    (PackingStatus.PROCESSING, PackingStatus.COMPLETED),
}

# While a shop is in one of these states its cart lines must not be deleted
BLOCKING_STATES = frozenset({PackingStatus.PENDING, PackingStatus.PROCESSING})


@prebill.entity(part_of="PackingLedger")
class PackingRequest:
    shop_ref = Identifier(required=True)
    status = String(choices=PackingStatus, required=True)


@prebill.aggregate
class PackingLedger:
    """Packing status of every shop the customer has asked to pack."""

    session_id = Identifier(identifier=True)
    requests = HasMany(PackingRequest)

    @invariant.post
    def absent_requests_are_never_recorded(self):
        if any(request.status == PackingStatus.ABSENT.value for request in self.requests):
            raise ValidationError({"requests": ["An absent packing request cannot be recorded"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def create(cls, session_id, statuses=None):
        """Build a ledger from a ``shop_ref → PackingStatus`` mapping."""
        requests = [
            PackingRequest(shop_ref=str(shop_ref), status=PackingStatus(status).value)
            for shop_ref, status in (statuses or {}).items()
        ]
        return cls(session_id=str(session_id), requests=requests)

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def statuses(self) -> dict[str, PackingStatus]:
        return {request.shop_ref: PackingStatus(request.status) for request in self.requests}

    def _request_for(self, shop_ref: str) -> PackingRequest | None:
        return next((request for request in self.requests if request.shop_ref == shop_ref), None)

    def status_of(self, shop_ref) -> PackingStatus:
        request = self._request_for(str(shop_ref))
        return PackingStatus(request.status) if request else PackingStatus.ABSENT

    def is_blocking(self, shop_ref) -> bool:
        return self.status_of(shop_ref) in BLOCKING_STATES

    def _transition(self, shop_ref: str, target: PackingStatus) -> PackingStatus:
        current = self.status_of(shop_ref)
        if target not in _VALID_TRANSITIONS[current]:
            raise InvalidOperation(
                {"status": [f"Cannot move packing request from {current.value} to {target.value}"]}
            )

        request = self._request_for(shop_ref)
        if target is PackingStatus.ABSENT:
            self.remove_requests(request)
        elif request is None:
            self.add_requests(PackingRequest(shop_ref=shop_ref, status=target.value))
        else:
            request.status = target.value
        return current

    # -------------------------------------------------------------------
    # Customer-initiated transitions
    # -------------------------------------------------------------------
    def request(self, shop_ref, line_count: int) -> None:
        """Ask the shop to pack its group; the group must hold at least one line.

        A completed request may be sent again; one still pending or
        processing may not.
        """
        shop_ref = str(shop_ref)
        if line_count < 1:
            raise InvalidOperation({"shop_ref": [f"Nothing to pack for shop {shop_ref}"]})
        self._transition(shop_ref, PackingStatus.PENDING)

    def cancel(self, shop_ref) -> bool:
        """Withdraw a pending request.

        Anything but a pending request is left as it is and False is
        returned: there is nothing to cancel once the shop has started.
        """
        shop_ref = str(shop_ref)
        if self.status_of(shop_ref) is not PackingStatus.PENDING:
            return False
        self._transition(shop_ref, PackingStatus.ABSENT)
        return True

    # -------------------------------------------------------------------
    # Shop-driven transitions
    # -------------------------------------------------------------------
    def advance(self, shop_ref, target: PackingStatus) -> PackingStatus:
        """Apply an external fulfillment signal; returns the previous status."""
        shop_ref = str(shop_ref)
        current = self.status_of(shop_ref)
        if (current, target) not in _EXTERNAL_TRANSITIONS:
            raise InvalidOperation(
                {"status": [f"Shop cannot move packing request from {current.value} to {target.value}"]}
            )
        return self._transition(shop_ref, target)

    def clear(self, shop_ref) -> bool:
        """Drop a completed record. Returns False when there was no record."""
        shop_ref = str(shop_ref)
        current = self.status_of(shop_ref)
        if current is PackingStatus.ABSENT:
            return False
        if current in BLOCKING_STATES:
            raise OperationBlocked({"shop_ref": [f"Packing for shop {shop_ref} is {current.value}"]})
        self._transition(shop_ref, PackingStatus.ABSENT)
        return True
