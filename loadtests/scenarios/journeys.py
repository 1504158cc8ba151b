"""Marketplace load test journeys.

Stateful SequentialTaskSet journeys covering a producer opening delivery
slots, a client booking and checking out, and an order moving through its
fulfilment lifecycle or being cancelled.
"""

import random

from locust import SequentialTaskSet, task

from loadtests.data_generators import (
    booking_quantity,
    checkout_data,
    product_data,
    slot_data,
    user_id,
)
from loadtests.helpers.response import EXPECTED_CONFLICTS, error_kind, extract_error_detail
from loadtests.helpers.state import CartState, CatalogState, OrderState


class _CatalogMixin:
    """Create a FRESH product with one slot, shared by the journey's later steps."""

    def create_product_and_slot(self, max_capacity=None):
        with self.client.post(
            "/products",
            json=product_data("FRESH"),
            catch_response=True,
            name="POST /products",
        ) as resp:
            if resp.status_code != 201:
                resp.failure(f"Register product failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()
            self.catalog.product_id = resp.json()["product_id"]

        payload = slot_data(self.catalog.product_id, max_capacity=max_capacity)
        with self.client.post(
            "/delivery-slots",
            json=payload,
            catch_response=True,
            name="POST /delivery-slots",
        ) as resp:
            if resp.status_code != 201:
                resp.failure(f"Create slot failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()
            self.catalog.slot_id = resp.json()["slot_id"]
            self.catalog.max_capacity = payload["max_capacity"]

    def open_cart_and_book(self):
        with self.client.post("/carts", json={"user_id": user_id()}, catch_response=True, name="POST /carts") as resp:
            if resp.status_code != 201:
                resp.failure(f"Open cart failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()
            self.cart.cart_id = resp.json()["cart_id"]

        quantity = booking_quantity()
        with self.client.post(
            "/bookings",
            json={"cart_id": self.cart.cart_id, "slot_id": self.catalog.slot_id, "quantity": quantity},
            catch_response=True,
            name="POST /bookings",
        ) as resp:
            if resp.status_code == 201:
                self.cart.booking_ids.append(resp.json()["booking_id"])
                self.cart.booked_quantity += quantity
            elif error_kind(resp) in EXPECTED_CONFLICTS:
                resp.success()
                self.interrupt()
            else:
                resp.failure(f"Booking failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()


class ProducerSlotJourney(SequentialTaskSet, _CatalogMixin):
    """Register Product -> Open Slot -> List Slots -> Resize -> Close.

    Models a producer planning the week's harvest.
    """

    def on_start(self):
        self.catalog = CatalogState()

    @task
    def open_slot(self):
        self.create_product_and_slot()

    @task
    def list_slots(self):
        with self.client.get(
            "/delivery-slots",
            params={"product_id": self.catalog.product_id},
            catch_response=True,
            name="GET /delivery-slots",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"List slots failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def resize_slot(self):
        with self.client.patch(
            f"/delivery-slots/{self.catalog.slot_id}",
            json={"max_capacity": self.catalog.max_capacity + random.randint(1, 10)},
            catch_response=True,
            name="PATCH /delivery-slots/{id}",
        ) as resp:
            if resp.status_code != 200:
                resp.failure(f"Resize slot failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def close_slot(self):
        self.client.patch(
            f"/delivery-slots/{self.catalog.slot_id}",
            json={"is_available": False},
            name="PATCH /delivery-slots/{id}",
        )

    @task
    def done(self):
        self.interrupt()


class BookingToCheckoutJourney(SequentialTaskSet, _CatalogMixin):
    """Open Slot -> Open Cart -> Book -> Checkout Summary -> Checkout.

    The most common purchase path.
    """

    def on_start(self):
        self.catalog = CatalogState()
        self.cart = CartState()

    @task
    def prepare(self):
        self.create_product_and_slot()
        self.open_cart_and_book()

    @task
    def checkout_summary(self):
        self.client.get(f"/carts/{self.cart.cart_id}/checkout-summary", name="GET /carts/{id}/checkout-summary")

    @task
    def checkout(self):
        with self.client.post(
            f"/carts/{self.cart.cart_id}/checkout",
            json=checkout_data(),
            catch_response=True,
            name="POST /carts/{id}/checkout",
        ) as resp:
            if resp.status_code != 201:
                resp.failure(f"Checkout failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task
    def done(self):
        self.interrupt()


class OrderLifecycleJourney(SequentialTaskSet, _CatalogMixin):
    """Checkout -> Confirm -> Ship -> Deliver, or Checkout -> Cancel.

    One in four orders is cancelled while still pending, giving its booked
    capacity back to the slot.
    """

    def on_start(self):
        self.catalog = CatalogState()
        self.cart = CartState()
        self.order = OrderState()

    @task
    def place_order(self):
        self.create_product_and_slot()
        self.open_cart_and_book()
        with self.client.post(
            f"/carts/{self.cart.cart_id}/checkout",
            json=checkout_data(payment_method="bank_transfer"),
            catch_response=True,
            name="POST /carts/{id}/checkout",
        ) as resp:
            if resp.status_code != 201:
                resp.failure(f"Checkout failed: {resp.status_code}: {extract_error_detail(resp)}")
                self.interrupt()
            self.order.order_id = resp.json()["order_id"]

    @task
    def advance(self):
        statuses = ["Cancelled"] if random.random() < 0.25 else ["Confirmed", "Shipped", "Delivered"]
        for status in statuses:
            with self.client.patch(
                f"/orders/{self.order.order_id}/status",
                json={"status": status, "reason": "Load test"},
                catch_response=True,
                name=f"PATCH /orders/{{id}}/status [{status}]",
            ) as resp:
                if resp.status_code == 200:
                    self.order.current_status = status
                else:
                    resp.failure(f"{status} failed: {resp.status_code}: {extract_error_detail(resp)}")
                    break

    @task
    def read_back(self):
        self.client.get(f"/orders/{self.order.order_id}", name="GET /orders/{id}")

    @task
    def done(self):
        self.interrupt()
