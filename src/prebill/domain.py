"""Pre-bill bounded context: a customer's cart grouped by shop, and the
per-shop packing requests sent from it.

The Cart and the PackingLedger are standard (not event sourced) aggregates.
Both are persisted per session in the configured key-value store.
"""

import structlog
from protean.domain import Domain

prebill = Domain(name="prebill")

logger = structlog.get_logger(__name__)
