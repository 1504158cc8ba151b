"""Application tests for product stock: what cart lines and bookings take and give back."""

from datetime import UTC, datetime, timedelta

import pytest
from marketplace.cart.bookings import AddBooking, CancelBooking
from marketplace.cart.cart import ShoppingCart
from marketplace.cart.items import AddCartItem, RemoveCartItem
from marketplace.checkout.checkout import CheckoutCart
from marketplace.errors import InsufficientStock
from marketplace.order.management import ChangeOrderStatus
from marketplace.product.management import AdjustProductStock
from marketplace.product.product import Product
from marketplace.slot.management import CreateDeliverySlot, UpdateSlotCapacity
from marketplace.slot.slot import DeliverySlot
from marketplace.sweeper.sweeper import sweep_stale_bookings
from protean import current_domain


def _stock(product_id):
    return current_domain.repository_for(Product).get(product_id).stock


def _set_stock(product_id, stock):
    current_domain.process(AdjustProductStock(product_id=str(product_id), stock=stock), asynchronous=False)


def _book(cart_id, slot_id, quantity):
    return current_domain.process(
        AddBooking(cart_id=str(cart_id), slot_id=str(slot_id), quantity=quantity),
        asynchronous=False,
    )


@pytest.fixture()
def stocked(fresh_product, slot):
    _set_stock(fresh_product.id, 12.0)
    return fresh_product


class TestBookingsTakeStock:
    def test_booking_takes_stock(self, cart, slot, stocked):
        _book(cart.id, slot.id, 4)
        assert _stock(stocked.id) == 8

    def test_booking_beyond_stock_changes_nothing(self, cart, slot, stocked):
        _set_stock(stocked.id, 3.0)

        with pytest.raises(InsufficientStock):
            _book(cart.id, slot.id, 4)

        assert _stock(stocked.id) == 3
        assert current_domain.repository_for(DeliverySlot).get(slot.id).reserved == 0
        assert current_domain.repository_for(ShoppingCart).get(cart.id).bookings == []

    def test_cancelled_booking_gives_stock_back(self, cart, slot, stocked):
        booking_id = _book(cart.id, slot.id, 4)
        current_domain.process(CancelBooking(cart_id=str(cart.id), booking_id=booking_id), asynchronous=False)
        assert _stock(stocked.id) == 12

    def test_expired_booking_gives_stock_back(self, cart, slot, stocked):
        _book(cart.id, slot.id, 4)
        sweep_stale_bookings(as_of=datetime.now(UTC) + timedelta(hours=3))
        assert _stock(stocked.id) == 12

    def test_cancelled_order_gives_stock_back(self, cart, slot, stocked):
        _book(cart.id, slot.id, 4)
        result = current_domain.process(
            CheckoutCart(cart_id=str(cart.id), delivery_type="pickup", payment_method="bank_transfer"),
            asynchronous=False,
        )
        assert _stock(stocked.id) == 8

        current_domain.process(ChangeOrderStatus(order_id=result["order_id"], status="Cancelled"), asynchronous=False)
        assert _stock(stocked.id) == 12


class TestCartItemsTakeStock:
    def test_item_takes_and_returns_stock(self, cart, dried_product):
        _set_stock(dried_product.id, 5.0)
        current_domain.process(
            AddCartItem(cart_id=str(cart.id), product_id=str(dried_product.id), quantity=2),
            asynchronous=False,
        )
        assert _stock(dried_product.id) == 3

        item_id = current_domain.repository_for(ShoppingCart).get(cart.id).items[0].id
        current_domain.process(RemoveCartItem(cart_id=str(cart.id), item_id=str(item_id)), asynchronous=False)
        assert _stock(dried_product.id) == 5

    def test_untracked_product_stays_untracked(self, cart, dried_product):
        current_domain.process(
            AddCartItem(cart_id=str(cart.id), product_id=str(dried_product.id), quantity=200),
            asynchronous=False,
        )
        assert _stock(dried_product.id) is None


class TestSlotCapacityAgainstStock:
    def test_slot_cannot_promise_more_than_stock(self, stocked, tomorrow):
        with pytest.raises(InsufficientStock):
            current_domain.process(
                CreateDeliverySlot(product_id=str(stocked.id), date=tomorrow + timedelta(days=1), max_capacity=20),
                asynchronous=False,
            )

    def test_raising_capacity_is_capped_by_stock(self, cart, slot, stocked):
        _book(cart.id, slot.id, 4)

        # 4 reserved plus the 8 still in stock
        current_domain.process(UpdateSlotCapacity(slot_id=str(slot.id), max_capacity=12), asynchronous=False)
        with pytest.raises(InsufficientStock):
            current_domain.process(UpdateSlotCapacity(slot_id=str(slot.id), max_capacity=12.5), asynchronous=False)

        assert current_domain.repository_for(DeliverySlot).get(slot.id).max_capacity == 12
