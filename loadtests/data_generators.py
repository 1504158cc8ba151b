"""Faker-based data generators for Locust load test scenarios.

Each generator produces payloads that pass the marketplace's validation
rules (positive prices, known product types, Swiss postal codes, etc.) and
match the field names expected by the API's Pydantic request schemas.
"""

import random
import uuid
from datetime import date, timedelta

from faker import Faker

fake = Faker("de_CH")

# Vocabulary for product names
_SPECIES = ["Oyster", "Shiitake", "Lion's mane", "King trumpet", "Enoki", "Chestnut", "Pioppino"]
_FORMS = {
    "FRESH": ["mushrooms", "cluster", "box"],
    "DRIED": ["slices", "powder", "whole caps"],
    "SUBSTRATE": ["grow kit", "spawn bag", "straw block"],
    "WELLNESS": ["tincture", "extract", "capsules"],
}


def producer_id() -> str:
    """Producers are owned by another system; any stable id will do."""
    return f"producer-{random.randint(1, 20):03d}"


def user_id() -> str:
    return f"user-lt-{uuid.uuid4().hex[:8]}"


def product_data(product_type: str = "FRESH", producer: str | None = None) -> dict:
    """Generate a product registration payload."""
    return {
        "producer_id": producer or producer_id(),
        "name": f"{random.choice(_SPECIES)} {random.choice(_FORMS[product_type])}",
        "unit": "kg" if product_type == "FRESH" else "pack",
        "price": round(random.uniform(5.0, 45.0), 2),
        "product_type": product_type,
        "accept_deferred": random.random() < 0.7,
    }


def slot_data(product_id: str, max_capacity: int | None = None, days_ahead: int | None = None) -> dict:
    """Generate a delivery slot payload for a date in the coming two weeks."""
    delivery_date = date.today() + timedelta(days=days_ahead or random.randint(1, 14))
    return {
        "product_id": product_id,
        "date": delivery_date.isoformat(),
        "max_capacity": max_capacity or random.randint(10, 50),
    }


def booking_quantity() -> int:
    return random.choices([1, 2, 3, 5], weights=[50, 25, 15, 10])[0]


def delivery_address() -> dict:
    """Address that passes the delivery form validation."""
    return {
        "full_name": fake.name()[:100],
        "company": fake.company()[:100] if random.random() < 0.5 else None,
        "street": fake.street_address()[:200],
        "postal_code": f"{random.randint(1000, 9658)}",
        "city": fake.city()[:100],
        "phone": f"+41 {random.randint(21, 91)} {random.randint(100, 999)} {random.randint(10, 99)} {random.randint(10, 99)}",
        "notes": fake.sentence()[:200] if random.random() < 0.3 else None,
    }


def checkout_data(payment_method: str | None = None) -> dict:
    """Pickup or delivery checkout with a payment method every cart accepts."""
    delivery_type = random.choice(["pickup", "delivery"])
    payload = {
        "delivery_type": delivery_type,
        "payment_method": payment_method or random.choice(["card", "bank_transfer"]),
    }
    if delivery_type == "delivery":
        payload["delivery_info"] = delivery_address()
    return payload
