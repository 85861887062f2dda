"""Ordering bounded context: customer carts and the order lifecycle.

Owns the server-side cart for each customer, assembles carts into
immutable orders at checkout, and advances orders through the
stall fulfillment state machine.
"""

import structlog
from protean.domain import Domain

ordering = Domain(name="ordering")

logger = structlog.get_logger(__name__)
