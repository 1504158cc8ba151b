"""Marketplace bounded context: products, delivery slots, carts and orders.

Delivery-slot capacity, cart bookings, the event-sourced order lifecycle and
the commission breakdown all live in this one domain so that a booking and
its slot reservation commit in the same unit of work.
"""

import structlog
from protean.domain import Domain

marketplace = Domain(name="marketplace")

logger = structlog.get_logger(__name__)
