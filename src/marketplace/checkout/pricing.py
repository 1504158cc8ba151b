"""Commission and payment breakdown.

Pure functions over line snapshots. The same calculation backs the cart
summary, checkout, order detail, invoice amount and producer revenue, so the
figures agree wherever they are shown::

    subtotal     = sum(unit_price * quantity) over items and bookings
    delivery_fee = DELIVERY_FEE if delivery_type == "delivery" else 0
    commission   = round_half_up(subtotal * COMMISSION_RATE, 2)
    producer_net = subtotal - commission
    grand_total  = subtotal + delivery_fee

Commission is a split of the subtotal, never a surcharge: the client pays
``grand_total`` and nothing else.
"""

from collections import defaultdict
from dataclasses import dataclass
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal
from enum import Enum
from typing import Any, Iterable, NamedTuple

from marketplace import policy
from marketplace.utils.quantity import to_quantity

CENT = Decimal("0.01")
ZERO = Decimal("0.00")


class DeliveryType(Enum):
    PICKUP = "pickup"
    DELIVERY = "delivery"


class PaymentMethod(Enum):
    INVOICE = "invoice"
    CARD = "card"
    BANK_TRANSFER = "bank_transfer"


IMMEDIATE_PAYMENT_METHODS = [PaymentMethod.CARD.value, PaymentMethod.BANK_TRANSFER.value]


class PricedLine(NamedTuple):
    producer_id: str
    unit_price: Decimal
    quantity: Decimal

    @property
    def total(self) -> Decimal:
        return to_money(self.unit_price * self.quantity)


@dataclass(frozen=True)
class CommissionBreakdown:
    subtotal: Decimal
    delivery_fee: Decimal
    commission: Decimal
    producer_net: Decimal
    grand_total: Decimal
    commission_rate: Decimal

    def to_dict(self) -> dict[str, float]:
        return {
            "subtotal": float(self.subtotal),
            "delivery_fee": float(self.delivery_fee),
            "commission": float(self.commission),
            "producer_net": float(self.producer_net),
            "grand_total": float(self.grand_total),
            "commission_rate": float(self.commission_rate),
        }


def to_money(value) -> Decimal:
    """Quantize to cents, rounding half up. Floats go through ``str`` to avoid binary noise."""
    if value is None:
        return ZERO
    if not isinstance(value, Decimal):
        value = Decimal(str(value))
    return value.quantize(CENT, rounding=ROUND_HALF_UP)


def _field(line: Any, name: str, default=None):
    if isinstance(line, dict):
        return line.get(name, default)
    return getattr(line, name, default)


def booking_unit_price(booking: Any) -> Decimal:
    """A booking's own price override wins over the product price captured at booking time."""
    override = _field(booking, "price")
    if override is not None:
        return to_money(override)
    return to_money(_field(booking, "product_price"))


def priced_lines(items: Iterable[Any] = (), bookings: Iterable[Any] = ()) -> list[PricedLine]:
    """Normalize cart/order items and bookings (entities or dicts) into priced lines."""
    lines = [
        PricedLine(
            producer_id=str(_field(item, "producer_id") or ""),
            unit_price=to_money(_field(item, "unit_price")),
            quantity=to_quantity(_field(item, "quantity")),
        )
        for item in items or ()
    ]
    lines.extend(
        PricedLine(
            producer_id=str(_field(booking, "producer_id") or ""),
            unit_price=booking_unit_price(booking),
            quantity=to_quantity(_field(booking, "quantity")),
        )
        for booking in bookings or ()
    )
    return lines


def subtotal_of(lines: Iterable[PricedLine]) -> Decimal:
    return to_money(sum((line.total for line in lines), ZERO))


def delivery_fee_for(delivery_type: str | None) -> Decimal:
    if delivery_type == DeliveryType.DELIVERY.value:
        return to_money(policy.delivery_fee())
    return ZERO


def calculate_breakdown(subtotal, delivery_type: str | None = None) -> CommissionBreakdown:
    """Breakdown for a subtotal and a delivery type."""
    subtotal = to_money(subtotal)
    rate = policy.commission_rate()
    fee = delivery_fee_for(delivery_type)
    commission = to_money(subtotal * rate)
    return CommissionBreakdown(
        subtotal=subtotal,
        delivery_fee=fee,
        commission=commission,
        producer_net=subtotal - commission,
        grand_total=subtotal + fee,
        commission_rate=rate,
    )


def breakdown_for(items=(), bookings=(), delivery_type: str | None = None) -> CommissionBreakdown:
    return calculate_breakdown(subtotal_of(priced_lines(items, bookings)), delivery_type)


def allocate_cents(total: Decimal, weights: dict[str, Decimal]) -> dict[str, Decimal]:
    """Split ``total`` (whole cents) in proportion to exact ``weights`` by largest remainder.

    Each share is its weight rounded down to the cent; the cents still missing
    go one each to the shares with the largest remainders, ties broken by key.
    The shares always add up to ``total``.
    """
    shares = {key: weight.quantize(CENT, rounding=ROUND_DOWN) for key, weight in weights.items()}
    missing = int((total - sum(shares.values(), ZERO)) / CENT)
    by_remainder = sorted(weights, key=lambda key: (-(weights[key] - shares[key]), key))
    for key in by_remainder[:missing]:
        shares[key] += CENT
    return shares


def producer_breakdowns(items=(), bookings=()) -> dict[str, CommissionBreakdown]:
    """Per-producer split of an order. Delivery fees belong to the platform, not to producers.

    The order's commission is allocated across producers with ``allocate_cents``,
    so the producer commissions add up to exactly the order's commission.
    """
    by_producer: dict[str, list[PricedLine]] = defaultdict(list)
    for line in priced_lines(items, bookings):
        by_producer[line.producer_id].append(line)
    subtotals = {producer_id: subtotal_of(lines) for producer_id, lines in by_producer.items()}

    rate = policy.commission_rate()
    order_commission = to_money(sum(subtotals.values(), ZERO) * rate)
    commissions = allocate_cents(order_commission, {p: subtotal * rate for p, subtotal in subtotals.items()})
    return {
        producer_id: CommissionBreakdown(
            subtotal=subtotal,
            delivery_fee=ZERO,
            commission=commissions[producer_id],
            producer_net=subtotal - commissions[producer_id],
            grand_total=subtotal,
            commission_rate=rate,
        )
        for producer_id, subtotal in subtotals.items()
    }


def available_payment_methods(products: Iterable[Any]) -> list[str]:
    """Invoice (deferred) payment is offered only when every product accepts it."""
    products = list(products)
    methods = list(IMMEDIATE_PAYMENT_METHODS)
    if products and all(_field(product, "accept_deferred") for product in products):
        methods.insert(0, PaymentMethod.INVOICE.value)
    return methods
