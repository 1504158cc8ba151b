"""Domain events for the Order aggregate.

Orders are event sourced: these events are the order's only persisted state
and feed the order summary, order detail and producer revenue projections.
Line snapshots and delivery details travel as JSON text.
"""

from protean.fields import Date, DateTime, Float, Identifier, String, Text

from marketplace.domain import marketplace


@marketplace.event(part_of="Order")
class OrderPlaced:
    """A cart was checked out and frozen into an order awaiting confirmation."""

    __version__ = 1

    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    cart_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of item dicts
    bookings = Text(required=True)  # JSON: list of booking dicts
    delivery_info = Text(required=True)  # JSON: DeliveryInfo dict
    metadata = Text()  # JSON: versioned metadata record
    subtotal = Float(required=True)
    delivery_fee = Float(required=True)
    commission = Float(required=True)
    producer_net = Float(required=True)
    grand_total = Float(required=True)
    currency = String(max_length=3, default="CHF")
    payment_method = String(required=True, max_length=20)
    payment_status = String(required=True, max_length=20)
    payment_reference = String(max_length=255)
    due_date = Date()
    invoice_id = Identifier()
    placed_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderConfirmed:
    __version__ = 1

    order_id = Identifier(required=True)
    confirmed_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderShipped:
    __version__ = 1

    order_id = Identifier(required=True)
    shipped_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderDelivered:
    __version__ = 1

    order_id = Identifier(required=True)
    delivered_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderCancelled:
    """A pending order was cancelled. Booked slot capacity went back to the slots."""

    __version__ = 1

    order_id = Identifier(required=True)
    reason = String(max_length=500)
    released_bookings = Text()  # JSON: list of {booking_id, slot_id, quantity}
    invoice_id = Identifier()
    cancelled_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderItemRemoved:
    """A line was removed from a pending order."""

    __version__ = 1

    order_id = Identifier(required=True)
    item_id = Identifier(required=True)
    subtotal = Float(required=True)
    commission = Float(required=True)
    producer_net = Float(required=True)
    grand_total = Float(required=True)
    invoice_id = Identifier()


@marketplace.event(part_of="Order")
class OrderBookingCancelled:
    """A booking was cancelled on a pending order and its capacity released."""

    __version__ = 1

    order_id = Identifier(required=True)
    booking_id = Identifier(required=True)
    slot_id = Identifier(required=True)
    quantity = Float(required=True)
    subtotal = Float(required=True)
    commission = Float(required=True)
    producer_net = Float(required=True)
    grand_total = Float(required=True)
    invoice_id = Identifier()


@marketplace.event(part_of="Order")
class PaymentStatusChanged:
    """The payment sub-status moved, e.g. Invoice_Pending to Invoice_Paid."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True, max_length=20)
    payment_status = String(required=True, max_length=20)
    changed_at = DateTime(required=True)
