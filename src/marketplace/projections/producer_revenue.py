"""Producer revenue: each producer's share of every order.

One row per (order, producer) holding that producer's lines and their
commission split. Revenue is *pending* until the order is delivered and
*available* afterwards; cancelled orders drop out of both. Delivery fees are
platform revenue and never part of a producer's share.
"""

import json
from decimal import Decimal

from protean.core.projector import on
from protean.fields import DateTime, Float, Identifier, String, Text
from protean.utils.globals import current_domain

from marketplace.checkout.pricing import ZERO, calculate_breakdown, producer_breakdowns, to_money
from marketplace.domain import marketplace
from marketplace.order.events import (
    OrderBookingCancelled,
    OrderCancelled,
    OrderDelivered,
    OrderItemRemoved,
    OrderPlaced,
)
from marketplace.order.order import Order
from marketplace.policy import commission_rate, currency


@marketplace.projection
class ProducerOrderRevenue:
    share_id = Identifier(identifier=True, required=True)  # "<order_id>:<producer_id>"
    order_id = Identifier(required=True)
    producer_id = Identifier(required=True)
    status = String(default="Pending")
    items = Text()  # JSON: this producer's item lines
    bookings = Text()  # JSON: this producer's booking lines
    gross = Float(default=0.0)
    commission = Float(default=0.0)
    net = Float(default=0.0)
    placed_at = DateTime()


def _lines_of(raw, producer_id):
    lines = json.loads(raw) if isinstance(raw, str) and raw else []
    return [line for line in lines if str(line.get("producer_id")) == str(producer_id)]


@marketplace.projector(projector_for=ProducerOrderRevenue, aggregates=[Order])
class ProducerRevenueProjector:
    def _shares(self, order_id):
        repo = current_domain.repository_for(ProducerOrderRevenue)
        return repo._dao.query.filter(order_id=str(order_id)).limit(None).all().items

    @on(OrderPlaced)
    def on_order_placed(self, event):
        items = json.loads(event.items) if isinstance(event.items, str) else []
        bookings = json.loads(event.bookings) if isinstance(event.bookings, str) else []
        repo = current_domain.repository_for(ProducerOrderRevenue)
        for producer_id, breakdown in producer_breakdowns(items, bookings).items():
            repo.add(
                ProducerOrderRevenue(
                    share_id=f"{event.order_id}:{producer_id}",
                    order_id=event.order_id,
                    producer_id=producer_id,
                    items=json.dumps(_lines_of(event.items, producer_id)),
                    bookings=json.dumps(_lines_of(event.bookings, producer_id)),
                    gross=float(breakdown.subtotal),
                    commission=float(breakdown.commission),
                    net=float(breakdown.producer_net),
                    placed_at=event.placed_at,
                )
            )

    def _set_status(self, order_id, status):
        repo = current_domain.repository_for(ProducerOrderRevenue)
        for share in self._shares(order_id):
            share.status = status
            repo.add(share)

    @on(OrderDelivered)
    def on_order_delivered(self, event):
        self._set_status(event.order_id, "Delivered")

    @on(OrderCancelled)
    def on_order_cancelled(self, event):
        self._set_status(event.order_id, "Cancelled")

    def _drop_line(self, order_id, line_id, field_name):
        repo = current_domain.repository_for(ProducerOrderRevenue)
        shares = self._shares(order_id)
        changed = False
        for share in shares:
            lines = json.loads(getattr(share, field_name) or "[]")
            remaining = [line for line in lines if line.get("id") != str(line_id)]
            if len(remaining) != len(lines):
                setattr(share, field_name, json.dumps(remaining))
                changed = True
        if not changed:
            return

        # Commission is re-split across every producer of the order
        items = [line for share in shares for line in json.loads(share.items or "[]")]
        bookings = [line for share in shares for line in json.loads(share.bookings or "[]")]
        breakdowns = producer_breakdowns(items, bookings)
        for share in shares:
            breakdown = breakdowns.get(str(share.producer_id), calculate_breakdown(ZERO))
            share.gross = float(breakdown.subtotal)
            share.commission = float(breakdown.commission)
            share.net = float(breakdown.producer_net)
            repo.add(share)

    @on(OrderItemRemoved)
    def on_item_removed(self, event):
        self._drop_line(event.order_id, event.item_id, "items")

    @on(OrderBookingCancelled)
    def on_booking_cancelled(self, event):
        self._drop_line(event.order_id, event.booking_id, "bookings")


def _bucket(shares) -> dict:
    return {
        "gross": float(to_money(sum((Decimal(str(s.gross or 0)) for s in shares), ZERO))),
        "commission": float(to_money(sum((Decimal(str(s.commission or 0)) for s in shares), ZERO))),
        "net": float(to_money(sum((Decimal(str(s.net or 0)) for s in shares), ZERO))),
        "order_count": len(shares),
    }


def producer_revenue(producer_id) -> dict:
    """Pending and available revenue for one producer."""
    repo = current_domain.repository_for(ProducerOrderRevenue)
    shares = repo._dao.query.filter(producer_id=str(producer_id)).limit(None).all().items
    live = [s for s in shares if s.status != "Cancelled"]
    return {
        "producer_id": str(producer_id),
        "currency": currency(),
        "commission_rate": float(commission_rate()),
        "pending": _bucket([s for s in live if s.status != "Delivered"]),
        "available": _bucket([s for s in live if s.status == "Delivered"]),
    }
