"""Versioned order metadata and the adapter for its historical shapes.

Orders persist delivery and payment details as a versioned record::

    {
        "schema_version": 2,
        "delivery": {"type": "delivery", "address": {"full_name": ..., ...}},
        "payment": {"method": "invoice", "status": "Invoice_Pending", "due_date": "2026-11-18"}
    }

Older records were free-form JSON strings: the delivery type under
``deliveryType``, ``type`` or ``deliveryInfo.type``, address fields either
flat or nested in ``deliveryInfo``, camelCase keys and upper-case payment
statuses. ``parse_metadata`` migrates every known shape to ``OrderMetadata``
and never raises: malformed or missing metadata reads as pickup with no
payment details.
"""

import json
from dataclasses import asdict, dataclass, replace
from datetime import date
from typing import Any

import structlog

logger = structlog.get_logger(__name__)

SCHEMA_VERSION = 2

PICKUP = "pickup"
DELIVERY = "delivery"

# camelCase keys used by legacy records, mapped to address fields
_LEGACY_ADDRESS_KEYS = {
    "full_name": ("fullName", "full_name", "name"),
    "company": ("company",),
    "street": ("address", "street", "streetAddress"),
    "postal_code": ("postalCode", "postal_code", "zip"),
    "city": ("city",),
    "phone": ("phone", "phoneNumber"),
    "notes": ("notes", "deliveryNotes"),
}


@dataclass(frozen=True)
class Address:
    full_name: str | None = None
    company: str | None = None
    street: str | None = None
    postal_code: str | None = None
    city: str | None = None
    phone: str | None = None
    notes: str | None = None

    def is_blank(self) -> bool:
        return not any(asdict(self).values())


@dataclass(frozen=True)
class OrderMetadata:
    delivery_type: str = PICKUP
    address: Address | None = None
    payment_method: str | None = None
    payment_status: str | None = None
    due_date: date | None = None
    schema_version: int = SCHEMA_VERSION

    @property
    def is_delivery(self) -> bool:
        return self.delivery_type == DELIVERY

    def to_dict(self) -> dict[str, Any]:
        return {
            "schema_version": SCHEMA_VERSION,
            "delivery": {
                "type": self.delivery_type,
                "address": asdict(self.address) if self.address else None,
            },
            "payment": {
                "method": self.payment_method,
                "status": self.payment_status,
                "due_date": self.due_date.isoformat() if self.due_date else None,
            },
        }


def serialize_metadata(metadata: OrderMetadata) -> str:
    return json.dumps(metadata.to_dict())


def normalize_status(value: Any) -> str | None:
    """Bring legacy upper-case statuses (``INVOICE_PAID``) to ``Invoice_Paid``."""
    if not value or not isinstance(value, str):
        return None
    return "_".join(part.capitalize() for part in value.strip().split("_"))


def _parse_date(value: Any) -> date | None:
    if isinstance(value, date):
        return value
    if not isinstance(value, str) or not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def _text(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _address_from(source: dict[str, Any], keys: dict[str, tuple[str, ...]]) -> Address | None:
    values = {}
    for field_name, candidates in keys.items():
        values[field_name] = next(
            (_text(source[key]) for key in candidates if isinstance(source.get(key), (str, int)) and _text(source[key])),
            None,
        )
    address = Address(**values)
    return None if address.is_blank() else address


def _from_v2(raw: dict[str, Any]) -> OrderMetadata:
    delivery = raw.get("delivery") or {}
    payment = raw.get("payment") or {}
    address_data = delivery.get("address") or {}
    address = _address_from(address_data, {name: (name,) for name in _LEGACY_ADDRESS_KEYS})
    return OrderMetadata(
        delivery_type=DELIVERY if delivery.get("type") == DELIVERY else PICKUP,
        address=address,
        payment_method=_text(payment.get("method")),
        payment_status=normalize_status(payment.get("status")),
        due_date=_parse_date(payment.get("due_date")),
    )


def _from_legacy(raw: dict[str, Any]) -> OrderMetadata:
    nested = raw.get("deliveryInfo") if isinstance(raw.get("deliveryInfo"), dict) else {}
    delivery_type = raw.get("deliveryType") or raw.get("type") or nested.get("type") or PICKUP

    # Nested deliveryInfo wins over flat keys when both are present
    nested_address = raw.get("address") if isinstance(raw.get("address"), dict) else {}
    address = _address_from({**raw, **nested_address, **nested}, _LEGACY_ADDRESS_KEYS)
    return OrderMetadata(
        delivery_type=DELIVERY if str(delivery_type).lower() == DELIVERY else PICKUP,
        address=address,
        payment_method=_text(raw.get("paymentMethod") or raw.get("payment_method")),
        payment_status=normalize_status(raw.get("paymentStatus") or raw.get("payment_status")) or "Pending",
        due_date=_parse_date(raw.get("dueDate") or raw.get("due_date")),
        schema_version=1,
    )


def parse_metadata(raw: Any) -> OrderMetadata:
    """Read order metadata in any known shape. Never raises."""
    if raw is None or raw == "":
        return OrderMetadata()

    data = raw
    if isinstance(raw, (str, bytes)):
        try:
            data = json.loads(raw)
        except (TypeError, ValueError):
            logger.warning("Unreadable order metadata, using defaults", raw=str(raw)[:200])
            return OrderMetadata()

    if not isinstance(data, dict):
        return OrderMetadata()

    try:
        if data.get("schema_version") == SCHEMA_VERSION:
            return _from_v2(data)
        return _from_legacy(data)
    except (AttributeError, TypeError, ValueError) as exc:
        logger.warning("Malformed order metadata, using defaults", error=str(exc))
        return OrderMetadata()


def with_invoice(metadata: OrderMetadata, invoice_status: str | None, invoice_due_date=None) -> OrderMetadata:
    """Overlay invoice figures: the invoice's own status and due date win over the metadata."""
    if not invoice_status:
        return metadata
    return replace(
        metadata,
        payment_status=f"Invoice_{normalize_status(invoice_status)}",
        due_date=_parse_date(invoice_due_date) or metadata.due_date,
    )
