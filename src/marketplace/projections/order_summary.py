"""Order summary: lightweight listing view behind ``GET /orders``.

Only placed orders ever reach this view; active carts are a separate
aggregate, so listings and counts never contain unfinished orders.
"""

import json

from protean.core.projector import on
from protean.fields import DateTime, Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.order.events import (
    OrderBookingCancelled,
    OrderCancelled,
    OrderConfirmed,
    OrderDelivered,
    OrderItemRemoved,
    OrderPlaced,
    OrderShipped,
    PaymentStatusChanged,
)
from marketplace.order.order import Order


@marketplace.projection
class OrderSummary:
    order_id = Identifier(identifier=True, required=True)
    user_id = Identifier(required=True)
    status = String(required=True)
    item_count = Integer(default=0)
    booking_count = Integer(default=0)
    grand_total = Float()
    currency = String(default="CHF")
    payment_method = String()
    payment_status = String()
    placed_at = DateTime()
    updated_at = DateTime()


@marketplace.projector(projector_for=OrderSummary, aggregates=[Order])
class OrderSummaryProjector:
    @on(OrderPlaced)
    def on_order_placed(self, event):
        items = json.loads(event.items) if isinstance(event.items, str) else []
        bookings = json.loads(event.bookings) if isinstance(event.bookings, str) else []
        current_domain.repository_for(OrderSummary).add(
            OrderSummary(
                order_id=event.order_id,
                user_id=event.user_id,
                status="Pending",
                item_count=len(items),
                booking_count=len(bookings),
                grand_total=event.grand_total,
                currency=event.currency or "CHF",
                payment_method=event.payment_method,
                payment_status=event.payment_status,
                placed_at=event.placed_at,
                updated_at=event.placed_at,
            )
        )

    def _update(self, order_id, **changes):
        repo = current_domain.repository_for(OrderSummary)
        summary = repo.get_or_none(order_id)
        if summary is None:
            return
        for name, value in changes.items():
            setattr(summary, name, value)
        repo.add(summary)

    @on(OrderConfirmed)
    def on_order_confirmed(self, event):
        self._update(event.order_id, status="Confirmed", updated_at=event.confirmed_at)

    @on(OrderShipped)
    def on_order_shipped(self, event):
        self._update(event.order_id, status="Shipped", updated_at=event.shipped_at)

    @on(OrderDelivered)
    def on_order_delivered(self, event):
        self._update(event.order_id, status="Delivered", updated_at=event.delivered_at)

    @on(OrderCancelled)
    def on_order_cancelled(self, event):
        self._update(event.order_id, status="Cancelled", updated_at=event.cancelled_at)

    @on(OrderItemRemoved)
    def on_item_removed(self, event):
        summary = current_domain.repository_for(OrderSummary).get_or_none(event.order_id)
        if summary is None:
            return
        self._update(
            event.order_id,
            item_count=max((summary.item_count or 1) - 1, 0),
            grand_total=event.grand_total,
        )

    @on(OrderBookingCancelled)
    def on_booking_cancelled(self, event):
        summary = current_domain.repository_for(OrderSummary).get_or_none(event.order_id)
        if summary is None:
            return
        self._update(
            event.order_id,
            booking_count=max((summary.booking_count or 1) - 1, 0),
            grand_total=event.grand_total,
        )

    @on(PaymentStatusChanged)
    def on_payment_status_changed(self, event):
        self._update(event.order_id, payment_status=event.payment_status, updated_at=event.changed_at)


def list_orders(user_id=None, status=None) -> list[OrderSummary]:
    """Placed orders, newest first, optionally filtered by client and status."""
    criteria = {}
    if user_id:
        criteria["user_id"] = user_id
    if status:
        criteria["status"] = status

    query = current_domain.repository_for(OrderSummary)._dao.query
    if criteria:
        query = query.filter(**criteria)
    results = query.limit(None).all().items
    return sorted(results, key=lambda s: s.placed_at.isoformat() if s.placed_at else "", reverse=True)


def count_orders(user_id=None, status=None) -> int:
    return len(list_orders(user_id=user_id, status=status))
