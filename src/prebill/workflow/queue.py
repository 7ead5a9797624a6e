"""Shop-owner packing queue: every session that asked one shop to pack.

The queue is read by scanning the stored ``<session>:packingStatus``
entries; each entry found for the shop is joined with that session's cart
group so the shop owner sees what is to be packed.
"""

from decimal import Decimal

import structlog
from protean.utils.globals import current_domain
from pydantic import BaseModel

from prebill.cart.cart import Cart
from prebill.cart.grouping import group_for_shop
from prebill.packing.packing import PackingLedger, PackingStatus
from prebill.store.port import KeyValueStore

logger = structlog.get_logger(__name__)


class QueuedPackingRequest(BaseModel):
    session_id: str
    shop_ref: str
    status: PackingStatus
    # Zero when the session's lines for the shop are gone
    line_count: int = 0
    total: Decimal = Decimal("0")


def packing_queue(
    shop_ref,
    status: PackingStatus | None = None,
    store: KeyValueStore | None = None,
) -> list[QueuedPackingRequest]:
    """Packing requests sent to ``shop_ref``, ordered by session id.

    ``status`` narrows the queue to one state (e.g. only pending requests).
    """
    shop_ref = str(shop_ref)
    packing_repository = current_domain.repository_for(PackingLedger)
    cart_repository = current_domain.repository_for(Cart)
    if store is not None:
        packing_repository.store = store
        cart_repository.store = store

    queue = []
    for session_id, current in packing_repository.find_requests_for_shop(shop_ref, status=status):
        group = group_for_shop(cart_repository.get(session_id), shop_ref)
        queue.append(
            QueuedPackingRequest(
                session_id=session_id,
                shop_ref=shop_ref,
                status=current,
                line_count=group.line_count if group else 0,
                total=group.total if group else Decimal("0"),
            )
        )

    logger.debug(
        "Read packing queue",
        shop_ref=shop_ref,
        status=status.value if status else None,
        requests=len(queue),
    )
    return queue
