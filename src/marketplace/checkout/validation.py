"""Delivery form validation at checkout."""

import re

from marketplace.checkout.pricing import DeliveryType
from marketplace.errors import ValidationFailed
from marketplace.order.metadata import Address

POSTAL_CODE_PATTERN = re.compile(r"^\d{4}$")
PHONE_PATTERN = re.compile(r"^\+?[0-9\s\-()]{8,15}$")

_REQUIRED_FIELDS = {
    "full_name": "Full name is required",
    "street": "Street address is required",
    "postal_code": "Postal code is required",
    "city": "City is required",
    "phone": "Phone number is required",
}


def delivery_errors(delivery_type: str, address: Address | None) -> dict[str, list[str]]:
    """Field-keyed errors for the delivery form. Pickup orders need no address."""
    if delivery_type == DeliveryType.PICKUP.value:
        return {}
    if delivery_type != DeliveryType.DELIVERY.value:
        return {"delivery_type": [f"Unknown delivery type {delivery_type!r}"]}

    address = address or Address()
    errors: dict[str, list[str]] = {}
    for field_name, message in _REQUIRED_FIELDS.items():
        if not (getattr(address, field_name) or "").strip():
            errors[field_name] = [message]

    if "postal_code" not in errors and not POSTAL_CODE_PATTERN.match(address.postal_code.strip()):
        errors["postal_code"] = ["Postal code must be 4 digits"]
    if "phone" not in errors and not PHONE_PATTERN.match(address.phone.strip()):
        errors["phone"] = ["Phone number is not valid"]
    return errors


def validate_delivery(delivery_type: str, address: Address | None) -> None:
    errors = delivery_errors(delivery_type, address)
    if errors:
        raise ValidationFailed(errors)
