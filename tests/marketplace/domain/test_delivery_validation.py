"""Tests for delivery form validation at checkout."""

import pytest
from marketplace.checkout.validation import delivery_errors, validate_delivery
from marketplace.errors import ValidationFailed
from marketplace.order.metadata import Address

VALID = Address(
    full_name="Anna Muster",
    street="Bahnhofstrasse 1",
    postal_code="8001",
    city="Zürich",
    phone="+41 44 123 45 67",
)


def test_pickup_needs_no_address():
    assert delivery_errors("pickup", None) == {}


def test_valid_delivery_address():
    assert delivery_errors("delivery", VALID) == {}


def test_delivery_without_address_lists_every_required_field():
    errors = delivery_errors("delivery", None)
    assert set(errors) == {"full_name", "street", "postal_code", "city", "phone"}


def test_blank_values_count_as_missing():
    address = Address(**{**vars(VALID), "full_name": "  "})
    errors = delivery_errors("delivery", address)
    assert list(errors) == ["full_name"]


@pytest.mark.parametrize("postal_code", ["800", "80011", "80a1"])
def test_postal_code_must_be_four_digits(postal_code):
    address = Address(**{**vars(VALID), "postal_code": postal_code})
    assert delivery_errors("delivery", address) == {"postal_code": ["Postal code must be 4 digits"]}


@pytest.mark.parametrize("phone", ["123", "call me maybe", "+41 44 123 45 67 89 01"])
def test_phone_must_look_like_a_phone_number(phone):
    address = Address(**{**vars(VALID), "phone": phone})
    assert "phone" in delivery_errors("delivery", address)


def test_unknown_delivery_type():
    assert "delivery_type" in delivery_errors("drone", VALID)


def test_validate_delivery_raises_field_keyed_errors():
    with pytest.raises(ValidationFailed) as exc:
        validate_delivery("delivery", Address(full_name="Anna Muster"))
    assert "street" in exc.value.messages
    assert exc.value.kind == "ValidationFailed"
