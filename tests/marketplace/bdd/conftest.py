"""Shared BDD fixtures and step definitions for the marketplace domain."""

import json
from datetime import UTC, datetime

import pytest
from marketplace.errors import InvalidTransition
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
from marketplace.order.metadata import OrderMetadata, serialize_metadata
from marketplace.order.order import Order
from marketplace.slot.slot import DeliverySlot
from protean import current_domain
from protean.exceptions import ValidationError
from protean.testing import given as given_
from pytest_bdd import given, parsers, then

# Map event name strings to classes for dynamic lookup in Then steps
_ORDER_EVENT_CLASSES = {
    "OrderPlaced": OrderPlaced,
    "OrderConfirmed": OrderConfirmed,
    "OrderShipped": OrderShipped,
    "OrderDelivered": OrderDelivered,
    "OrderCancelled": OrderCancelled,
    "OrderItemRemoved": OrderItemRemoved,
    "OrderBookingCancelled": OrderBookingCancelled,
    "PaymentStatusChanged": PaymentStatusChanged,
}


# ---------------------------------------------------------------------------
# Scalar fixtures
# ---------------------------------------------------------------------------
@pytest.fixture()
def order_id():
    return "ord-001"


@pytest.fixture()
def user_id():
    return "user-001"


@pytest.fixture()
def error():
    """Container for captured errors (used by booking scenarios)."""
    return {"exc": None}


@pytest.fixture()
def booked_slot(slot):
    """The slot already carries the 3 units booked by the placed order."""
    repo = current_domain.repository_for(DeliverySlot)
    booked = repo.get(slot.id)
    booked.reserve(3)
    repo.add(booked)
    return booked


# ---------------------------------------------------------------------------
# Event fixtures (what happened)
# ---------------------------------------------------------------------------
@pytest.fixture()
def order_placed(order_id, user_id, booked_slot, producer_id):
    return OrderPlaced(
        order_id=order_id,
        user_id=user_id,
        cart_id="cart-001",
        items=json.dumps(
            [
                {
                    "id": "item-1",
                    "product_id": "prod-dried-001",
                    "producer_id": producer_id,
                    "product_name": "Dried shiitake",
                    "quantity": 2,
                    "unit_price": 12.5,
                }
            ]
        ),
        bookings=json.dumps(
            [
                {
                    "id": "bkg-1",
                    "slot_id": str(booked_slot.id),
                    "product_id": str(booked_slot.product_id),
                    "producer_id": producer_id,
                    "product_name": "Oyster mushrooms",
                    "delivery_date": booked_slot.date.isoformat(),
                    "quantity": 3,
                    "price": None,
                    "product_price": 20.0,
                    "status": "Confirmed",
                }
            ]
        ),
        delivery_info=json.dumps({"delivery_type": "pickup"}),
        metadata=serialize_metadata(OrderMetadata(payment_method="bank_transfer", payment_status="Pending")),
        subtotal=85.0,
        delivery_fee=0.0,
        commission=4.25,
        producer_net=80.75,
        grand_total=85.0,
        currency="CHF",
        payment_method="bank_transfer",
        payment_status="Pending",
        placed_at=datetime.now(UTC),
    )


@pytest.fixture()
def order_confirmed(order_id):
    return OrderConfirmed(order_id=order_id, confirmed_at=datetime.now(UTC))


@pytest.fixture()
def order_shipped(order_id):
    return OrderShipped(order_id=order_id, shipped_at=datetime.now(UTC))


@pytest.fixture()
def order_delivered(order_id):
    return OrderDelivered(order_id=order_id, delivered_at=datetime.now(UTC))


# ---------------------------------------------------------------------------
# Given steps: Order
# ---------------------------------------------------------------------------
@given("an order was placed", target_fixture="order")
def _(order_placed):
    return given_(Order, order_placed)


@given("the order was confirmed", target_fixture="order")
def _(order, order_confirmed):
    return order.after(order_confirmed)


@given("the order was shipped", target_fixture="order")
def _(order, order_shipped):
    return order.after(order_shipped)


@given("the order was delivered", target_fixture="order")
def _(order, order_delivered):
    return order.after(order_delivered)


# ---------------------------------------------------------------------------
# Then steps: Order (shared, plain assertions)
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def _(order, status):
    assert order.status == status


@then("the order action fails with a validation error")
def _(order):
    assert order.rejected
    assert isinstance(order.rejection, ValidationError)


@then("the order action fails with an invalid transition")
def _(order):
    assert order.rejected
    assert isinstance(order.rejection, InvalidTransition)


@then(parsers.cfparse("an {event_type} order event is raised"))
def _(order, event_type):
    event_cls = _ORDER_EVENT_CLASSES[event_type]
    assert event_cls in order.events


# ---------------------------------------------------------------------------
# Then steps: Delivery slot
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the slot has {reserved:d} units reserved"))
def _(slot, reserved):
    assert current_domain.repository_for(DeliverySlot).get(slot.id).reserved == reserved


@then("the slot is fully booked")
def _(slot):
    assert current_domain.repository_for(DeliverySlot).get(slot.id).is_fully_booked
