"""Application tests for order status changes, line edits and capacity release."""

import pytest
from marketplace.cart.bookings import AddBooking
from marketplace.cart.cart import ShoppingCart
from marketplace.cart.items import AddCartItem
from marketplace.checkout.checkout import CheckoutCart
from marketplace.errors import InvalidTransition, NotFound, ValidationFailed
from marketplace.order.management import CancelOrderBooking, ChangeOrderStatus, RecordPaymentStatus, RemoveOrderItem
from marketplace.order.order import Order, OrderStatus
from marketplace.slot.slot import DeliverySlot
from protean import current_domain


def _placed_order(user_id, slot_id, quantity, dried_product_id=None, payment_method="bank_transfer"):
    cart_repo = current_domain.repository_for(ShoppingCart)
    cart = ShoppingCart.create(user_id=user_id)
    cart_repo.add(cart)

    current_domain.process(
        AddBooking(cart_id=str(cart.id), slot_id=str(slot_id), quantity=quantity),
        asynchronous=False,
    )
    if dried_product_id:
        current_domain.process(
            AddCartItem(cart_id=str(cart.id), product_id=str(dried_product_id), quantity=2),
            asynchronous=False,
        )
    result = current_domain.process(
        CheckoutCart(cart_id=str(cart.id), delivery_type="pickup", payment_method=payment_method),
        asynchronous=False,
    )
    return result["order_id"]


def _change_status(order_id, status, reason=None):
    current_domain.process(ChangeOrderStatus(order_id=order_id, status=status, reason=reason), asynchronous=False)


def _order(order_id):
    return current_domain.repository_for(Order).get(order_id)


def _reserved(slot_id):
    return current_domain.repository_for(DeliverySlot).get(slot_id).reserved


class TestCancellationReleasesCapacity:
    def test_each_cancellation_returns_its_own_quantity(self, slot):
        first = _placed_order("user-a", slot.id, 3)
        second = _placed_order("user-b", slot.id, 5)
        assert _reserved(slot.id) == 8

        _change_status(first, "Cancelled", reason="Client request")
        assert _reserved(slot.id) == 5

        _change_status(second, "Cancelled")
        assert _reserved(slot.id) == 0

    def test_cancelled_order_records_reason(self, slot):
        order_id = _placed_order("user-a", slot.id, 3)
        _change_status(order_id, "Cancelled", reason="Harvest failed")

        order = _order(order_id)
        assert order.status == OrderStatus.CANCELLED.value
        assert order.cancellation_reason == "Harvest failed"

    def test_confirmed_order_cannot_be_cancelled(self, slot):
        order_id = _placed_order("user-a", slot.id, 3)
        _change_status(order_id, "Confirmed")

        with pytest.raises(InvalidTransition):
            _change_status(order_id, "Cancelled")
        assert _reserved(slot.id) == 3

    def test_freed_capacity_can_be_booked_again(self, slot):
        first = _placed_order("user-a", slot.id, 8)
        _change_status(first, "Cancelled")
        _placed_order("user-b", slot.id, 10)
        assert _reserved(slot.id) == 10


class TestStatusChanges:
    def test_full_fulfilment(self, slot):
        order_id = _placed_order("user-a", slot.id, 2)
        for status in ("Confirmed", "Shipped", "Delivered"):
            _change_status(order_id, status)
        assert _order(order_id).status == OrderStatus.DELIVERED.value
        # Delivered orders keep their capacity
        assert _reserved(slot.id) == 2

    def test_skipping_a_step_is_refused(self, slot):
        order_id = _placed_order("user-a", slot.id, 2)
        with pytest.raises(InvalidTransition):
            _change_status(order_id, "Delivered")
        assert _order(order_id).status == OrderStatus.PENDING.value

    def test_unknown_status(self, slot):
        order_id = _placed_order("user-a", slot.id, 2)
        with pytest.raises(ValidationFailed):
            _change_status(order_id, "Draft")


class TestLineEdits:
    def test_cancel_booking_releases_its_quantity(self, slot, dried_product):
        order_id = _placed_order("user-a", slot.id, 4, dried_product_id=dried_product.id)
        booking_id = str(_order(order_id).bookings[0].id)

        current_domain.process(CancelOrderBooking(order_id=order_id, booking_id=booking_id), asynchronous=False)

        order = _order(order_id)
        assert order.bookings == []
        assert order.pricing.subtotal == 25.0
        assert _reserved(slot.id) == 0

    def test_remove_item_reprices(self, slot, dried_product):
        order_id = _placed_order("user-a", slot.id, 4, dried_product_id=dried_product.id)
        item_id = str(_order(order_id).items[0].id)

        current_domain.process(RemoveOrderItem(order_id=order_id, item_id=item_id), asynchronous=False)

        order = _order(order_id)
        assert order.items == []
        assert order.pricing.subtotal == 80.0
        assert _reserved(slot.id) == 4

    def test_unknown_booking(self, slot):
        order_id = _placed_order("user-a", slot.id, 1)
        with pytest.raises(NotFound):
            current_domain.process(CancelOrderBooking(order_id=order_id, booking_id="missing"), asynchronous=False)

    def test_lines_frozen_once_confirmed(self, slot):
        order_id = _placed_order("user-a", slot.id, 1)
        _change_status(order_id, "Confirmed")
        booking_id = str(_order(order_id).bookings[0].id)

        with pytest.raises(InvalidTransition):
            current_domain.process(CancelOrderBooking(order_id=order_id, booking_id=booking_id), asynchronous=False)
        assert _reserved(slot.id) == 1


class TestPaymentStatus:
    def test_bank_transfer_marked_paid(self, slot):
        order_id = _placed_order("user-a", slot.id, 1)
        current_domain.process(RecordPaymentStatus(order_id=order_id, payment_status="Paid"), asynchronous=False)
        order = _order(order_id)
        assert order.payment_status == "Paid"
        assert order.metadata_record().payment_status == "Paid"
