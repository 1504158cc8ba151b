"""Per-user state tracking for Locust load test scenarios.

Each Locust user instance maintains its own state. State tracks entity IDs
returned by creation endpoints so follow-up operations can reference them.
"""

from dataclasses import dataclass, field


@dataclass
class CatalogState:
    """Tracks a producer's product and its delivery slot."""

    product_id: str | None = None
    slot_id: str | None = None
    max_capacity: int = 0


@dataclass
class CartState:
    """Tracks a shopping cart up to checkout."""

    cart_id: str | None = None
    booking_ids: list[str] = field(default_factory=list)
    booked_quantity: int = 0


@dataclass
class OrderState:
    """Tracks a single order lifecycle."""

    order_id: str | None = None
    current_status: str = "Pending"
    booking_ids: list[str] = field(default_factory=list)
