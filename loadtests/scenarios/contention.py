"""Capacity contention on a single delivery slot.

Every HotSlotUser books the same slot. Refusals with CapacityExceeded or
ConcurrentModification are the correct answer once the slot fills up;
the test stop hook in ``locustfile`` checks that the slot never ended up
oversold.
"""

import requests
from locust import HttpUser, between, events, task

from loadtests.data_generators import booking_quantity, product_data, slot_data, user_id
from loadtests.helpers.response import EXPECTED_CONFLICTS, error_kind, extract_error_detail

HOT_SLOT_CAPACITY = 50

# Created once per test run in ``create_hot_slot``
HOT_SLOT = {"product_id": None, "slot_id": None}


@events.test_start.add_listener
def create_hot_slot(environment, **_kwargs):
    if not environment.host:
        return
    product = requests.post(f"{environment.host}/products", json=product_data("FRESH"), timeout=10)
    product.raise_for_status()
    HOT_SLOT["product_id"] = product.json()["product_id"]

    slot = requests.post(
        f"{environment.host}/delivery-slots",
        json=slot_data(HOT_SLOT["product_id"], max_capacity=HOT_SLOT_CAPACITY, days_ahead=1),
        timeout=10,
    )
    slot.raise_for_status()
    HOT_SLOT["slot_id"] = slot.json()["slot_id"]


def hot_slot_figures(host: str) -> dict | None:
    if not HOT_SLOT["product_id"]:
        return None
    resp = requests.get(f"{host}/delivery-slots", params={"product_id": HOT_SLOT["product_id"]}, timeout=10)
    resp.raise_for_status()
    return next((s for s in resp.json()["slots"] if s["slot_id"] == HOT_SLOT["slot_id"]), None)


class HotSlotUser(HttpUser):
    """Books, and sometimes cancels, units of the one hot slot."""

    wait_time = between(0.1, 0.5)

    def on_start(self):
        resp = self.client.post("/carts", json={"user_id": user_id()}, name="POST /carts")
        self.cart_id = resp.json()["cart_id"]
        self.booking_ids = []

    @task(5)
    def book(self):
        with self.client.post(
            "/bookings",
            json={"cart_id": self.cart_id, "slot_id": HOT_SLOT["slot_id"], "quantity": booking_quantity()},
            catch_response=True,
            name="[HOT] POST /bookings",
        ) as resp:
            if resp.status_code == 201:
                self.booking_ids.append(resp.json()["booking_id"])
            elif error_kind(resp) in EXPECTED_CONFLICTS:
                resp.success()
            else:
                resp.failure(f"Booking failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task(2)
    def cancel(self):
        if not self.booking_ids:
            return
        booking_id = self.booking_ids.pop()
        with self.client.delete(
            f"/bookings/{booking_id}",
            params={"cart_id": self.cart_id},
            catch_response=True,
            name="[HOT] DELETE /bookings/{id}",
        ) as resp:
            if resp.status_code == 200:
                return
            if error_kind(resp) in EXPECTED_CONFLICTS:
                # Cancellation lost the race; try again later
                self.booking_ids.append(booking_id)
                resp.success()
            else:
                resp.failure(f"Cancel failed: {resp.status_code}: {extract_error_detail(resp)}")

    @task(1)
    def look(self):
        self.client.get("/delivery-slots", params={"product_id": HOT_SLOT["product_id"]}, name="[HOT] GET /delivery-slots")
