"""Domain events for the ShoppingCart aggregate."""

from protean.fields import Date, DateTime, Float, Identifier, Integer, String

from marketplace.domain import marketplace


@marketplace.event(part_of="ShoppingCart")
class CartCreated:
    __version__ = 1

    cart_id = Identifier(required=True)
    user_id = Identifier(required=True)
    created_at = DateTime(required=True)


@marketplace.event(part_of="ShoppingCart")
class CartItemAdded:
    """A non-FRESH product line was added or its quantity increased."""

    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Float(required=True)
    unit_price = Float(required=True)
    new_total = Float(required=True)


@marketplace.event(part_of="ShoppingCart")
class CartItemRemoved:
    __version__ = 1

    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)
    new_total = Float(required=True)


@marketplace.event(part_of="ShoppingCart")
class BookingAdded:
    """Slot capacity was reserved and attached to the cart as a temporary booking."""

    __version__ = 1

    cart_id = Identifier(required=True)
    booking_id = Identifier(required=True)
    slot_id = Identifier(required=True)
    product_id = Identifier(required=True)
    delivery_date = Date(required=True)
    quantity = Float(required=True)
    expires_at = DateTime(required=True)
    new_total = Float(required=True)


@marketplace.event(part_of="ShoppingCart")
class BookingCancelled:
    """A booking left the cart. ``reason`` is Client, Expired or Abandoned."""

    __version__ = 1

    cart_id = Identifier(required=True)
    booking_id = Identifier(required=True)
    slot_id = Identifier(required=True)
    quantity = Float(required=True)
    reason = String(required=True, max_length=20)
    new_total = Float(required=True)


@marketplace.event(part_of="ShoppingCart")
class CartCheckedOut:
    __version__ = 1

    cart_id = Identifier(required=True)
    user_id = Identifier(required=True)
    order_id = Identifier(required=True)
    checked_out_at = DateTime(required=True)


@marketplace.event(part_of="ShoppingCart")
class CartAbandoned:
    __version__ = 1

    cart_id = Identifier(required=True)
    user_id = Identifier(required=True)
    released_bookings = Integer(default=0)
    abandoned_at = DateTime(required=True)
