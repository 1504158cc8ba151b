"""Tests for the Order aggregate: placement snapshot, state machine, line edits and payment status."""

from datetime import date, timedelta

import pytest
from marketplace.cart.cart import ShoppingCart
from marketplace.errors import InvalidTransition, NotFound, ValidationFailed
from marketplace.order.events import (
    OrderBookingCancelled,
    OrderCancelled,
    OrderConfirmed,
    OrderItemRemoved,
    OrderPlaced,
    PaymentStatusChanged,
)
from marketplace.order.metadata import Address
from marketplace.order.order import Order, OrderStatus, PaymentStatus
from marketplace.product.product import Product
from marketplace.slot.slot import DeliverySlot

TOMORROW = date.today() + timedelta(days=1)

ADDRESS = Address(
    full_name="Anna Muster",
    street="Bahnhofstrasse 1",
    postal_code="8001",
    city="Zürich",
    phone="+41 44 123 45 67",
)


def _cart_with_lines():
    """Cart with one dried item (2 x 12.50) and one booking (3 x 20.00)."""
    cart = ShoppingCart.create(user_id="user-001")
    dried = Product.register(producer_id="producer-001", name="Dried shiitake", price=12.5, product_type="DRIED")
    fresh = Product.register(producer_id="producer-002", name="Oyster mushrooms", price=20.0, product_type="FRESH")
    slot = DeliverySlot.create(product_id=fresh.id, date=TOMORROW, max_capacity=10)
    cart.add_item(dried, 2)
    cart.add_booking(slot, fresh, 3)
    return cart


def _place(delivery_type="pickup", address=None, payment_method="bank_transfer", payment_status="Pending"):
    order = Order.place(
        _cart_with_lines(),
        delivery_type=delivery_type,
        address=address,
        payment_method=payment_method,
        payment_status=payment_status,
    )
    order._events.clear()
    return order


def _order_at(status):
    order = _place()
    if status == OrderStatus.PENDING:
        return order
    if status == OrderStatus.CANCELLED:
        order.cancel("Changed plans")
        order._events.clear()
        return order
    order.confirm()
    if status == OrderStatus.CONFIRMED:
        order._events.clear()
        return order
    order.ship()
    if status == OrderStatus.SHIPPED:
        order._events.clear()
        return order
    order.deliver()
    order._events.clear()
    return order


class TestOrderPlacement:
    def test_order_snapshots_cart(self):
        cart = _cart_with_lines()
        order = Order.place(
            cart, delivery_type="pickup", address=None, payment_method="bank_transfer", payment_status="Pending"
        )

        assert order.status == OrderStatus.PENDING.value
        assert str(order.user_id) == "user-001"
        assert str(order.cart_id) == str(cart.id)
        assert [str(i.id) for i in order.items] == [str(i.id) for i in cart.items]
        assert [str(b.id) for b in order.bookings] == [str(b.id) for b in cart.bookings]
        assert order.bookings[0].status == "Confirmed"

    def test_placement_raises_order_placed(self):
        order = Order.place(
            _cart_with_lines(),
            delivery_type="pickup",
            address=None,
            payment_method="card",
            payment_status="Paid",
        )
        assert len(order._events) == 1
        assert isinstance(order._events[0], OrderPlaced)

    def test_pickup_pricing(self):
        order = _place()
        assert order.pricing.subtotal == 85.0
        assert order.pricing.delivery_fee == 0.0
        assert order.pricing.commission == 4.25
        assert order.pricing.producer_net == 80.75
        assert order.pricing.grand_total == 85.0

    def test_delivery_pricing_adds_fee_to_grand_total_only(self):
        order = _place(delivery_type="delivery", address=ADDRESS)
        assert order.pricing.delivery_fee == 15.0
        assert order.pricing.grand_total == 100.0
        assert order.pricing.commission == 4.25

    def test_delivery_address_is_kept(self):
        order = _place(delivery_type="delivery", address=ADDRESS)
        assert order.delivery_info.delivery_type == "delivery"
        assert order.delivery_info.city == "Zürich"

    def test_pickup_drops_address(self):
        order = _place(delivery_type="pickup", address=ADDRESS)
        assert order.delivery_info.to_address() is None

    def test_metadata_is_versioned(self):
        order = _place(
            delivery_type="delivery",
            address=ADDRESS,
            payment_method="invoice",
            payment_status="Invoice_Pending",
        )
        record = order.metadata_record()
        assert record.schema_version == 2
        assert record.is_delivery
        assert record.address.postal_code == "8001"
        assert record.payment_method == "invoice"
        assert record.payment_status == "Invoice_Pending"

    def test_explicit_order_id(self):
        order = Order.place(
            _cart_with_lines(),
            delivery_type="pickup",
            address=None,
            payment_method="bank_transfer",
            payment_status="Pending",
            order_id="ord-fixed-001",
        )
        assert str(order.id) == "ord-fixed-001"


class TestOrderStateMachine:
    def test_happy_path(self):
        order = _place()
        order.confirm()
        order.ship()
        order.deliver()
        assert order.status == OrderStatus.DELIVERED.value
        assert order.delivered_at is not None

    def test_confirm_raises_event(self):
        order = _place()
        order.confirm()
        assert isinstance(order._events[-1], OrderConfirmed)

    @pytest.mark.parametrize(
        "start, action",
        [
            (OrderStatus.PENDING, "ship"),
            (OrderStatus.PENDING, "deliver"),
            (OrderStatus.CONFIRMED, "confirm"),
            (OrderStatus.CONFIRMED, "cancel"),
            (OrderStatus.SHIPPED, "cancel"),
            (OrderStatus.DELIVERED, "cancel"),
            (OrderStatus.CANCELLED, "confirm"),
        ],
    )
    def test_invalid_transitions(self, start, action):
        order = _order_at(start)
        with pytest.raises(InvalidTransition):
            getattr(order, action)()
        assert order.status == start.value
        assert order._events == []

    def test_cancel_returns_bookings_for_release(self):
        order = _place()
        released = order.cancel("Out of stock")

        assert order.status == OrderStatus.CANCELLED.value
        assert order.cancellation_reason == "Out of stock"
        assert [b.quantity for b in released] == [3]
        assert isinstance(order._events[-1], OrderCancelled)

    def test_change_status_dispatches(self):
        order = _place()
        assert order.change_status("Confirmed") == []
        assert order.status == OrderStatus.CONFIRMED.value

    def test_change_status_to_cancelled_returns_bookings(self):
        order = _place()
        released = order.change_status("Cancelled", reason="Client request")
        assert len(released) == 1

    def test_change_status_to_pending_is_invalid(self):
        with pytest.raises(InvalidTransition):
            _place().change_status("Pending")

    def test_change_status_unknown_value(self):
        with pytest.raises(ValidationFailed):
            _place().change_status("Draft")


class TestOrderLineEdits:
    def test_remove_item_reprices(self):
        order = _place()
        order.remove_item(order.items[0].id)

        assert order.items == []
        assert order.pricing.subtotal == 60.0
        assert order.pricing.commission == 3.0
        assert isinstance(order._events[-1], OrderItemRemoved)

    def test_cancel_booking_reprices_and_returns_booking(self):
        order = _place(delivery_type="delivery", address=ADDRESS)
        booking = order.cancel_booking(order.bookings[0].id)

        assert booking.quantity == 3
        assert order.bookings == []
        assert order.pricing.subtotal == 25.0
        assert order.pricing.grand_total == 40.0
        assert isinstance(order._events[-1], OrderBookingCancelled)

    def test_lines_frozen_after_confirmation(self):
        order = _order_at(OrderStatus.CONFIRMED)
        with pytest.raises(InvalidTransition):
            order.remove_item(order.items[0].id)
        with pytest.raises(InvalidTransition):
            order.cancel_booking(order.bookings[0].id)

    def test_unknown_lines(self):
        order = _place()
        with pytest.raises(NotFound):
            order.remove_item("missing")
        with pytest.raises(NotFound):
            order.cancel_booking("missing")


class TestPaymentStatus:
    def test_bank_transfer_can_be_marked_paid(self):
        order = _place()
        order.record_payment_status("Paid")
        assert order.payment_status == PaymentStatus.PAID.value
        assert order.metadata_record().payment_status == "Paid"
        assert isinstance(order._events[-1], PaymentStatusChanged)

    def test_recording_current_status_is_a_no_op(self):
        order = _place()
        order.record_payment_status("Pending")
        assert order._events == []

    def test_invoice_overdue_then_paid(self):
        order = _place(payment_method="invoice", payment_status="Invoice_Pending")
        order.record_payment_status("Invoice_Overdue")
        order.record_payment_status("Invoice_Paid")
        assert order.payment_status == "Invoice_Paid"

    def test_invoice_order_cannot_jump_to_paid(self):
        order = _place(payment_method="invoice", payment_status="Invoice_Pending")
        with pytest.raises(InvalidTransition):
            order.record_payment_status("Paid")

    def test_failed_card_capture_can_still_be_paid(self):
        order = _place(payment_method="card", payment_status="Pending")
        order.record_payment_status("Failed")
        assert order.payment_status == PaymentStatus.FAILED.value
        order.record_payment_status("Paid")
        assert order.payment_status == "Paid"

    def test_paid_is_terminal(self):
        order = _place(payment_method="card", payment_status="Paid")
        with pytest.raises(InvalidTransition):
            order.record_payment_status("Pending")

    def test_unknown_payment_status(self):
        with pytest.raises(ValidationFailed):
            _place().record_payment_status("Refunded")


class TestOrderReplay:
    def test_rebuild_from_events(self):
        order = Order.place(
            _cart_with_lines(),
            delivery_type="delivery",
            address=ADDRESS,
            payment_method="invoice",
            payment_status="Invoice_Pending",
        )
        order.confirm()
        order.record_payment_status("Invoice_Paid")

        rebuilt = Order.from_events(list(order._events))

        assert str(rebuilt.id) == str(order.id)
        assert rebuilt.status == OrderStatus.CONFIRMED.value
        assert rebuilt.payment_status == "Invoice_Paid"
        assert rebuilt.pricing.grand_total == order.pricing.grand_total
        assert rebuilt.bookings[0].delivery_date == TOMORROW
