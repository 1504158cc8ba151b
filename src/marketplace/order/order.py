"""Order aggregate (Event Sourced): an immutable snapshot of a checked-out cart.

All state changes are captured as domain events and rebuilt through
``@apply`` handlers, which are also what the live path runs when an event is
raised. Orders never exist in a draft state: the working basket is the
ShoppingCart, and an Order is only created at checkout, so no listing can
ever surface an unfinished order.

State Machine:
    PENDING → CONFIRMED → SHIPPED → DELIVERED
    PENDING → CANCELLED

Payment sub-status (orthogonal to fulfilment):
    PENDING → PAID
    PENDING → FAILED → PAID
    INVOICE_PENDING → INVOICE_PAID
    INVOICE_PENDING → INVOICE_OVERDUE → INVOICE_PAID
"""

import json
from dataclasses import replace
from datetime import UTC, date, datetime
from enum import Enum

from protean import apply
from protean.fields import (
    Date,
    DateTime,
    Float,
    HasMany,
    Identifier,
    String,
    Text,
    ValueObject,
)

from marketplace.checkout.pricing import DeliveryType, breakdown_for
from marketplace.domain import marketplace
from marketplace.errors import InvalidTransition, NotFound, ValidationFailed
from marketplace.order.events import (
    OrderBookingCancelled,
    OrderCancelled,
    OrderConfirmed,
    OrderDelivered,
    OrderItemRemoved,
    OrderPlaced,
    OrderShipped,
    PaymentStatusChanged,
)
from marketplace.order.metadata import Address, OrderMetadata, parse_metadata, serialize_metadata
from marketplace.policy import currency
from marketplace.utils.quantity import MIN_QUANTITY


class OrderStatus(Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    SHIPPED = "Shipped"
    DELIVERED = "Delivered"
    CANCELLED = "Cancelled"


class PaymentStatus(Enum):
    PENDING = "Pending"
    PAID = "Paid"
    INVOICE_PENDING = "Invoice_Pending"
    INVOICE_PAID = "Invoice_Paid"
    INVOICE_OVERDUE = "Invoice_Overdue"
    FAILED = "Failed"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.SHIPPED},
    OrderStatus.SHIPPED: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}

_PAYMENT_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.PAID, PaymentStatus.FAILED},
    PaymentStatus.PAID: set(),
    PaymentStatus.FAILED: {PaymentStatus.PAID},
    PaymentStatus.INVOICE_PENDING: {PaymentStatus.INVOICE_PAID, PaymentStatus.INVOICE_OVERDUE},
    PaymentStatus.INVOICE_OVERDUE: {PaymentStatus.INVOICE_PAID},
    PaymentStatus.INVOICE_PAID: set(),
}


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@marketplace.value_object(part_of="Order")
class DeliveryInfo:
    """How the order reaches the client: pickup, or delivery to an address."""

    delivery_type = String(required=True, choices=DeliveryType, default=DeliveryType.PICKUP.value)
    full_name = String(max_length=200)
    company = String(max_length=200)
    street = String(max_length=255)
    postal_code = String(max_length=10)
    city = String(max_length=100)
    phone = String(max_length=30)
    notes = String(max_length=1000)

    @classmethod
    def build(cls, delivery_type, address: Address | None):
        address = address if delivery_type == DeliveryType.DELIVERY.value else None
        values = {} if address is None else {k: v for k, v in vars(address).items() if v is not None}
        return cls(delivery_type=delivery_type, **values)

    def to_address(self) -> Address | None:
        if self.delivery_type != DeliveryType.DELIVERY.value:
            return None
        return Address(
            full_name=self.full_name,
            company=self.company,
            street=self.street,
            postal_code=self.postal_code,
            city=self.city,
            phone=self.phone,
            notes=self.notes,
        )


@marketplace.value_object(part_of="Order")
class OrderPricing:
    """Breakdown frozen at checkout. Only ``grand_total`` is ever charged to the client."""

    subtotal = Float(default=0.0)
    delivery_fee = Float(default=0.0)
    commission = Float(default=0.0)
    producer_net = Float(default=0.0)
    grand_total = Float(default=0.0)
    currency = String(max_length=3, default="CHF")


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@marketplace.entity(part_of="Order")
class OrderItem:
    product_id = Identifier(required=True)
    producer_id = Identifier(required=True)
    product_name = String(max_length=200)
    quantity = Float(required=True, min_value=MIN_QUANTITY)
    unit_price = Float(required=True, min_value=0.0)


@marketplace.entity(part_of="Order")
class OrderBooking:
    """Slot capacity owned by the order. Released back to the slot on cancellation."""

    slot_id = Identifier(required=True)
    product_id = Identifier(required=True)
    producer_id = Identifier(required=True)
    product_name = String(max_length=200)
    delivery_date = Date(required=True)
    quantity = Float(required=True, min_value=MIN_QUANTITY)
    price = Float(min_value=0.0)
    product_price = Float(required=True, min_value=0.0)
    status = String(max_length=20, default="Confirmed")


def _item_snapshot(item) -> dict:
    return {
        "id": str(item.id),
        "product_id": str(item.product_id),
        "producer_id": str(item.producer_id),
        "product_name": item.product_name,
        "quantity": item.quantity,
        "unit_price": item.unit_price,
    }


def _booking_snapshot(booking) -> dict:
    return {
        "id": str(booking.id),
        "slot_id": str(booking.slot_id),
        "product_id": str(booking.product_id),
        "producer_id": str(booking.producer_id),
        "product_name": booking.product_name,
        "delivery_date": booking.delivery_date.isoformat(),
        "quantity": booking.quantity,
        "price": booking.price,
        "product_price": booking.product_price,
        "status": "Confirmed",
    }


def _booking_from_snapshot(data: dict) -> OrderBooking:
    delivery_date = data.get("delivery_date")
    if isinstance(delivery_date, str):
        delivery_date = date.fromisoformat(delivery_date)
    return OrderBooking(**{**data, "delivery_date": delivery_date})


# ---------------------------------------------------------------------------
# Aggregate Root (Event Sourced)
# ---------------------------------------------------------------------------
@marketplace.aggregate(is_event_sourced=True)
class Order:
    user_id = Identifier(required=True)
    cart_id = Identifier()
    status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    items = HasMany(OrderItem)
    bookings = HasMany(OrderBooking)
    total = Float(default=0.0)
    pricing = ValueObject(OrderPricing)
    delivery_info = ValueObject(DeliveryInfo)
    metadata = Text()
    payment_method = String(max_length=20)
    payment_status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    payment_reference = String(max_length=255)
    due_date = Date()
    invoice_id = Identifier()
    cancellation_reason = String(max_length=500)
    placed_at = DateTime()
    confirmed_at = DateTime()
    shipped_at = DateTime()
    delivered_at = DateTime()
    cancelled_at = DateTime()
    updated_at = DateTime()

    # -------------------------------------------------------------------
    # Factory method
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        cart,
        delivery_type,
        address,
        payment_method,
        payment_status,
        payment_reference=None,
        due_date=None,
        invoice_id=None,
        order_id=None,
    ):
        """Freeze ``cart`` into a new Pending order.

        Line identities are carried over from the cart so a booking keeps the
        same id before and after checkout. ``order_id`` lets the caller link
        other aggregates (the invoice) before the order exists.
        """
        now = datetime.now(UTC)
        breakdown = cart.breakdown(delivery_type)
        delivery_info = DeliveryInfo.build(delivery_type, address)
        metadata = OrderMetadata(
            delivery_type=delivery_type,
            address=delivery_info.to_address(),
            payment_method=payment_method,
            payment_status=payment_status,
            due_date=due_date,
        )

        order = cls._create_new(id=order_id) if order_id else cls._create_new()
        order.raise_(
            OrderPlaced(
                order_id=str(order.id),
                user_id=str(cart.user_id),
                cart_id=str(cart.id),
                items=json.dumps([_item_snapshot(item) for item in cart.items]),
                bookings=json.dumps([_booking_snapshot(booking) for booking in cart.bookings]),
                delivery_info=json.dumps(delivery_info.to_dict()),
                metadata=serialize_metadata(metadata),
                subtotal=float(breakdown.subtotal),
                delivery_fee=float(breakdown.delivery_fee),
                commission=float(breakdown.commission),
                producer_net=float(breakdown.producer_net),
                grand_total=float(breakdown.grand_total),
                currency=currency(),
                payment_method=payment_method,
                payment_status=payment_status,
                payment_reference=payment_reference,
                due_date=due_date,
                invoice_id=invoice_id,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    @property
    def delivery_type(self) -> str:
        return self.delivery_info.delivery_type if self.delivery_info else DeliveryType.PICKUP.value

    def breakdown(self):
        return breakdown_for(self.items, self.bookings, self.delivery_type)

    def metadata_record(self) -> OrderMetadata:
        return parse_metadata(self.metadata)

    def _assert_can_transition(self, target_status):
        current = OrderStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidTransition({"status": [f"Cannot transition from {current.value} to {target_status.value}"]})

    def _assert_lines_editable(self):
        if OrderStatus(self.status) != OrderStatus.PENDING:
            raise InvalidTransition({"status": [f"Order lines cannot be changed once the order is {self.status}"]})

    def _pricing_without(self, item_id=None, booking_id=None):
        items = [i for i in self.items if str(i.id) != str(item_id)]
        bookings = [b for b in self.bookings if str(b.id) != str(booking_id)]
        return breakdown_for(items, bookings, self.delivery_type)

    # -------------------------------------------------------------------
    # Fulfilment lifecycle
    # -------------------------------------------------------------------
    def confirm(self):
        self._assert_can_transition(OrderStatus.CONFIRMED)
        self.raise_(OrderConfirmed(order_id=str(self.id), confirmed_at=datetime.now(UTC)))

    def ship(self):
        self._assert_can_transition(OrderStatus.SHIPPED)
        self.raise_(OrderShipped(order_id=str(self.id), shipped_at=datetime.now(UTC)))

    def deliver(self):
        self._assert_can_transition(OrderStatus.DELIVERED)
        self.raise_(OrderDelivered(order_id=str(self.id), delivered_at=datetime.now(UTC)))

    def cancel(self, reason=None):
        """Cancel a pending order. Returns the bookings whose capacity must be released."""
        self._assert_can_transition(OrderStatus.CANCELLED)
        released = list(self.bookings)
        self.raise_(
            OrderCancelled(
                order_id=str(self.id),
                reason=reason,
                released_bookings=json.dumps(
                    [
                        {"booking_id": str(b.id), "slot_id": str(b.slot_id), "quantity": b.quantity}
                        for b in released
                    ]
                ),
                invoice_id=str(self.invoice_id) if self.invoice_id else None,
                cancelled_at=datetime.now(UTC),
            )
        )
        return released

    def change_status(self, status, reason=None):
        """Apply one requested status change (admin/producer PATCH)."""
        try:
            target = OrderStatus(status)
        except ValueError:
            raise ValidationFailed({"status": [f"Unknown order status {status!r}"]}) from None

        actions = {
            OrderStatus.CONFIRMED: self.confirm,
            OrderStatus.SHIPPED: self.ship,
            OrderStatus.DELIVERED: self.deliver,
        }
        if target == OrderStatus.CANCELLED:
            return self.cancel(reason)
        if target not in actions:
            self._assert_can_transition(target)
        actions[target]()
        return []

    # -------------------------------------------------------------------
    # Line edits while pending
    # -------------------------------------------------------------------
    def remove_item(self, item_id):
        """Drop an item from a pending order and return it."""
        self._assert_lines_editable()
        item = next((i for i in self.items if str(i.id) == str(item_id)), None)
        if item is None:
            raise NotFound(f"Item {item_id} not found in order {self.id}")

        breakdown = self._pricing_without(item_id=item_id)
        self.raise_(
            OrderItemRemoved(
                order_id=str(self.id),
                item_id=str(item_id),
                subtotal=float(breakdown.subtotal),
                commission=float(breakdown.commission),
                producer_net=float(breakdown.producer_net),
                grand_total=float(breakdown.grand_total),
                invoice_id=str(self.invoice_id) if self.invoice_id else None,
            )
        )
        return item

    def cancel_booking(self, booking_id):
        """Drop a booking from a pending order. Returns it so the caller can release its capacity."""
        self._assert_lines_editable()
        booking = next((b for b in self.bookings if str(b.id) == str(booking_id)), None)
        if booking is None:
            raise NotFound(f"Booking {booking_id} not found in order {self.id}")

        breakdown = self._pricing_without(booking_id=booking_id)
        self.raise_(
            OrderBookingCancelled(
                order_id=str(self.id),
                booking_id=str(booking.id),
                slot_id=str(booking.slot_id),
                quantity=booking.quantity,
                subtotal=float(breakdown.subtotal),
                commission=float(breakdown.commission),
                producer_net=float(breakdown.producer_net),
                grand_total=float(breakdown.grand_total),
                invoice_id=str(self.invoice_id) if self.invoice_id else None,
            )
        )
        return booking

    # -------------------------------------------------------------------
    # Payment sub-status
    # -------------------------------------------------------------------
    def record_payment_status(self, payment_status):
        """Move the payment sub-status. Re-recording the current status is a no-op."""
        try:
            target = PaymentStatus(payment_status)
        except ValueError:
            raise ValidationFailed({"payment_status": [f"Unknown payment status {payment_status!r}"]}) from None

        current = PaymentStatus(self.payment_status)
        if target == current:
            return
        if target not in _PAYMENT_TRANSITIONS.get(current, set()):
            raise InvalidTransition(
                {"payment_status": [f"Cannot move payment from {current.value} to {target.value}"]}
            )
        self.raise_(
            PaymentStatusChanged(
                order_id=str(self.id),
                previous_status=current.value,
                payment_status=target.value,
                changed_at=datetime.now(UTC),
            )
        )

    # -------------------------------------------------------------------
    # @apply methods: rebuild state during event replay
    # -------------------------------------------------------------------
    @apply
    def _on_order_placed(self, event: OrderPlaced):
        self.id = event.order_id
        self.user_id = event.user_id
        self.cart_id = event.cart_id
        self.status = OrderStatus.PENDING.value

        items_data = json.loads(event.items) if isinstance(event.items, str) else []
        self.items = [OrderItem(**item_data) for item_data in items_data]
        bookings_data = json.loads(event.bookings) if isinstance(event.bookings, str) else []
        self.bookings = [_booking_from_snapshot(booking_data) for booking_data in bookings_data]

        delivery_data = json.loads(event.delivery_info) if isinstance(event.delivery_info, str) else {}
        self.delivery_info = DeliveryInfo(**delivery_data) if delivery_data else None

        self.total = event.subtotal
        self.pricing = OrderPricing(
            subtotal=event.subtotal,
            delivery_fee=event.delivery_fee,
            commission=event.commission,
            producer_net=event.producer_net,
            grand_total=event.grand_total,
            currency=event.currency or "CHF",
        )
        self.metadata = event.metadata
        self.payment_method = event.payment_method
        self.payment_status = event.payment_status
        self.payment_reference = event.payment_reference
        self.due_date = event.due_date
        self.invoice_id = event.invoice_id
        self.placed_at = event.placed_at
        self.updated_at = event.placed_at

    @apply
    def _on_order_confirmed(self, event: OrderConfirmed):
        self.status = OrderStatus.CONFIRMED.value
        self.confirmed_at = event.confirmed_at
        self.updated_at = event.confirmed_at

    @apply
    def _on_order_shipped(self, event: OrderShipped):
        self.status = OrderStatus.SHIPPED.value
        self.shipped_at = event.shipped_at
        self.updated_at = event.shipped_at

    @apply
    def _on_order_delivered(self, event: OrderDelivered):
        self.status = OrderStatus.DELIVERED.value
        self.delivered_at = event.delivered_at
        self.updated_at = event.delivered_at

    @apply
    def _on_order_cancelled(self, event: OrderCancelled):
        self.status = OrderStatus.CANCELLED.value
        self.cancellation_reason = event.reason
        self.cancelled_at = event.cancelled_at
        self.updated_at = event.cancelled_at

    def _reprice(self, event):
        self.total = event.subtotal
        self.pricing = OrderPricing(
            subtotal=event.subtotal,
            delivery_fee=self.pricing.delivery_fee if self.pricing else 0.0,
            commission=event.commission,
            producer_net=event.producer_net,
            grand_total=event.grand_total,
            currency=self.pricing.currency if self.pricing else "CHF",
        )

    @apply
    def _on_item_removed(self, event: OrderItemRemoved):
        item = next((i for i in self.items if str(i.id) == str(event.item_id)), None)
        if item:
            self.remove_items(item)
        self._reprice(event)

    @apply
    def _on_booking_cancelled(self, event: OrderBookingCancelled):
        booking = next((b for b in self.bookings if str(b.id) == str(event.booking_id)), None)
        if booking:
            self.remove_bookings(booking)
        self._reprice(event)

    @apply
    def _on_payment_status_changed(self, event: PaymentStatusChanged):
        self.payment_status = event.payment_status
        self.metadata = serialize_metadata(replace(self.metadata_record(), payment_status=event.payment_status))
        self.updated_at = event.changed_at
