"""Cart checkout: command, handler and checkout summary.

Checkout turns the active cart into a Pending order in one unit of work:

1. bookings whose hold already ran out are dropped and their capacity released
2. the delivery form is validated (pickup needs no address)
3. the payment method must be one the cart's products allow
4. card orders are authorized through the payment gateway; a decline aborts
   checkout with nothing changed. The authorization is captured by
   ``CardPaymentEventHandler`` once the order has been committed
5. invoice orders get an invoice due ``INVOICE_DUE_DAYS`` after today
6. the order is placed and the cart is marked checked out

The handler returns the new order id and the commission breakdown.
"""

import json
from dataclasses import fields
from datetime import UTC, datetime
from uuid import uuid4

from protean import handle
from protean.fields import Identifier, String, Text
from protean.utils.globals import current_domain

from marketplace.cart.cart import ShoppingCart
from marketplace.checkout.pricing import (
    DeliveryType,
    PaymentMethod,
    available_payment_methods,
    breakdown_for,
)
from marketplace.checkout.validation import validate_delivery
from marketplace.domain import logger, marketplace
from marketplace.errors import PaymentDeclined, ValidationFailed
from marketplace.invoice.invoice import Invoice, due_date_from
from marketplace.order.metadata import Address
from marketplace.order.order import Order, PaymentStatus
from marketplace.payment.gateway import get_gateway
from marketplace.policy import currency
from marketplace.product.management import restore_stock_for
from marketplace.product.product import Product
from marketplace.slot.slot import DeliverySlot

# Statuses a client may declare for a bank transfer at checkout
_BANK_TRANSFER_STATUSES = {PaymentStatus.PENDING.value, PaymentStatus.PAID.value}


@marketplace.command(part_of="ShoppingCart")
class CheckoutCart:
    cart_id = Identifier(required=True)
    delivery_type = String(required=True, max_length=20)
    delivery_info = Text()  # JSON: address fields, required for delivery
    payment_method = String(required=True, max_length=20)
    payment_status = String(max_length=20)


def address_from(data) -> Address | None:
    """Build an address from a request payload, ignoring unknown keys."""
    if not data:
        return None
    if isinstance(data, str):
        data = json.loads(data)
    names = {f.name for f in fields(Address)}
    values = {k: (str(v).strip() or None) if v is not None else None for k, v in data.items() if k in names}
    address = Address(**values)
    return None if address.is_blank() else address


def cart_products(cart) -> list[Product]:
    repo = current_domain.repository_for(Product)
    product_ids = dict.fromkeys(str(line.product_id) for line in [*cart.items, *cart.bookings])
    return [repo.get(product_id) for product_id in product_ids]


def checkout_summary(cart) -> dict:
    """What the checkout page shows: both delivery options and the allowed payment methods."""
    return {
        "cart_id": str(cart.id),
        "status": cart.status,
        "currency": currency(),
        "item_count": len(cart.items),
        "booking_count": len(cart.bookings),
        "pickup": breakdown_for(cart.items, cart.bookings, DeliveryType.PICKUP.value).to_dict(),
        "delivery": breakdown_for(cart.items, cart.bookings, DeliveryType.DELIVERY.value).to_dict(),
        "payment_methods": available_payment_methods(cart_products(cart)),
    }


def _release_expired(cart, now) -> int:
    slot_repo = current_domain.repository_for(DeliverySlot)
    expired = cart.expire_bookings(now)
    for booking in expired:
        slot = slot_repo.get(booking.slot_id)
        slot.release(booking.quantity)
        slot_repo.add(slot)
    restore_stock_for(expired)
    return len(expired)


def _check_payment_method(cart, payment_method):
    if payment_method not in {m.value for m in PaymentMethod}:
        raise ValidationFailed({"payment_method": [f"Unknown payment method {payment_method!r}"]})
    allowed = available_payment_methods(cart_products(cart))
    if payment_method not in allowed:
        raise ValidationFailed(
            {"payment_method": [f"Payment method {payment_method} is not available for this cart"]}
        )


@marketplace.command_handler(part_of=ShoppingCart)
class CheckoutHandler:
    @handle(CheckoutCart)
    def checkout(self, command):
        now = datetime.now(UTC)
        cart_repo = current_domain.repository_for(ShoppingCart)
        cart = cart_repo.get(command.cart_id)
        cart.assert_active("check out")

        expired = _release_expired(cart, now)
        if cart.is_empty:
            raise ValidationFailed({"cart": ["Cannot check out an empty cart"]})

        address = address_from(command.delivery_info)
        validate_delivery(command.delivery_type, address)
        _check_payment_method(cart, command.payment_method)

        breakdown = cart.breakdown(command.delivery_type)
        order_id = str(uuid4())
        payment_reference = None
        due_date = None
        invoice = None

        if command.payment_method == PaymentMethod.CARD.value:
            # A re-run of this handler for the same cart and amount gets the
            # authorization it already holds
            result = get_gateway().authorize(
                amount=float(breakdown.grand_total),
                currency=currency(),
                payment_method_type=command.payment_method,
                idempotency_key=f"checkout-{cart.id}-{breakdown.grand_total}",
            )
            if not result.success:
                logger.warning(
                    "Card payment declined at checkout",
                    cart_id=str(cart.id),
                    reason=result.failure_reason,
                )
                raise PaymentDeclined({"payment_method": [result.failure_reason or "Card declined"]})
            payment_status = PaymentStatus.PENDING.value
            payment_reference = result.reference
        elif command.payment_method == PaymentMethod.INVOICE.value:
            payment_status = PaymentStatus.INVOICE_PENDING.value
            due_date = due_date_from(now.date())
            invoice = Invoice.issue(
                order_id=order_id,
                user_id=cart.user_id,
                amount=float(breakdown.grand_total),
                due_date=due_date,
            )
        else:
            payment_status = command.payment_status or PaymentStatus.PENDING.value
            if payment_status not in _BANK_TRANSFER_STATUSES:
                raise ValidationFailed({"payment_status": [f"Invalid payment status {payment_status!r}"]})

        order = Order.place(
            cart,
            delivery_type=command.delivery_type,
            address=address,
            payment_method=command.payment_method,
            payment_status=payment_status,
            payment_reference=payment_reference,
            due_date=due_date,
            invoice_id=str(invoice.id) if invoice else None,
            order_id=order_id,
        )
        cart.check_out(order.id)

        cart_repo.add(cart)
        current_domain.repository_for(Order).add(order)
        if invoice:
            current_domain.repository_for(Invoice).add(invoice)

        logger.info(
            "Cart checked out",
            cart_id=str(cart.id),
            order_id=str(order.id),
            payment_method=command.payment_method,
            payment_status=payment_status,
            grand_total=float(breakdown.grand_total),
            expired_bookings=expired,
        )
        return {"order_id": str(order.id), "breakdown": breakdown.to_dict()}
