"""Shopping Cart aggregate (CQRS): the client's working basket before checkout.

Each user has at most one Active cart. It holds ordinary product lines
(``CartItem``) and slot bookings (``Booking``) for FRESH products. Bookings
hold real slot capacity, so they expire after a hold period and the
expiration sweeper gives their capacity back. At checkout the cart is frozen
into an immutable Order and marked Checked_Out; it is never shown in order
listings.

State Machine:
    ACTIVE → CHECKED_OUT
    ACTIVE → ABANDONED
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Date, DateTime, Float, HasMany, Identifier, String

from marketplace.cart.events import (
    BookingAdded,
    BookingCancelled,
    CartAbandoned,
    CartCheckedOut,
    CartCreated,
    CartItemAdded,
    CartItemRemoved,
)
from marketplace.checkout.pricing import breakdown_for, priced_lines, subtotal_of
from marketplace.domain import marketplace
from marketplace.errors import InvalidTransition, NotFound, ProductUnavailable, ValidationFailed
from marketplace.policy import booking_hold
from marketplace.utils import quantity as qty


class CartStatus(Enum):
    ACTIVE = "Active"
    CHECKED_OUT = "Checked_Out"
    ABANDONED = "Abandoned"


class BookingStatus(Enum):
    TEMPORARY = "Temporary"
    CONFIRMED = "Confirmed"
    CANCELLED = "Cancelled"


class CancellationReason(Enum):
    CLIENT = "Client"
    EXPIRED = "Expired"
    ABANDONED = "Abandoned"


def as_utc(value: datetime | None) -> datetime | None:
    """Treat naive datetimes coming back from storage as UTC."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


@marketplace.entity(part_of="ShoppingCart")
class CartItem:
    product_id = Identifier(required=True)
    producer_id = Identifier(required=True)
    product_name = String(max_length=200)
    quantity = Float(required=True, min_value=qty.MIN_QUANTITY)
    unit_price = Float(required=True, min_value=0.0)
    added_at = DateTime()


@marketplace.entity(part_of="ShoppingCart")
class Booking:
    """Capacity held on a delivery slot for a FRESH product."""

    slot_id = Identifier(required=True)
    product_id = Identifier(required=True)
    producer_id = Identifier(required=True)
    product_name = String(max_length=200)
    delivery_date = Date(required=True)
    quantity = Float(required=True, min_value=qty.MIN_QUANTITY)
    price = Float(min_value=0.0)  # Optional override of the product price
    product_price = Float(required=True, min_value=0.0)
    status = String(choices=BookingStatus, default=BookingStatus.TEMPORARY.value)
    booked_at = DateTime()
    expires_at = DateTime()

    def is_expired(self, as_of) -> bool:
        return self.expires_at is not None and as_utc(self.expires_at) < as_utc(as_of)


@marketplace.aggregate
class ShoppingCart:
    user_id = Identifier(required=True)
    status = String(choices=CartStatus, default=CartStatus.ACTIVE.value)
    items = HasMany(CartItem)
    bookings = HasMany(Booking)
    total = Float(default=0.0)
    created_at = DateTime()
    updated_at = DateTime()

    @invariant.post
    def total_must_not_be_negative(self):
        if self.total is not None and self.total < 0:
            raise ValidationError({"total": ["Cart total cannot be negative"]})

    @classmethod
    def create(cls, user_id):
        now = datetime.now(UTC)
        cart = cls(
            user_id=user_id,
            status=CartStatus.ACTIVE.value,
            total=0.0,
            created_at=now,
            updated_at=now,
        )
        cart.raise_(CartCreated(cart_id=str(cart.id), user_id=str(user_id), created_at=now))
        return cart

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    @property
    def is_active(self) -> bool:
        return CartStatus(self.status) == CartStatus.ACTIVE

    @property
    def is_empty(self) -> bool:
        return not self.items and not self.bookings

    def assert_active(self, action):
        if not self.is_active:
            raise InvalidTransition({"status": [f"Cannot {action} a cart that is {self.status}"]})

    def _recalculate_total(self):
        self.total = float(subtotal_of(priced_lines(self.items, self.bookings)))
        self.updated_at = datetime.now(UTC)

    def find_item(self, item_id):
        item = next((i for i in self.items if str(i.id) == str(item_id)), None)
        if item is None:
            raise NotFound(f"Item {item_id} not found in cart {self.id}")
        return item

    def find_booking(self, booking_id):
        booking = next((b for b in self.bookings if str(b.id) == str(booking_id)), None)
        if booking is None:
            raise NotFound(f"Booking {booking_id} not found in cart {self.id}")
        return booking

    def breakdown(self, delivery_type=None):
        return breakdown_for(self.items, self.bookings, delivery_type)

    def idle_since(self) -> datetime | None:
        return as_utc(self.updated_at or self.created_at)

    # -------------------------------------------------------------------
    # Ordinary lines
    # -------------------------------------------------------------------
    def add_item(self, product, quantity):
        """Add a non-FRESH product, merging with an existing line for the same product.

        The unit price is captured now; later price changes on the product do
        not affect the line.
        """
        self.assert_active("add items to")
        if product.is_fresh:
            raise ProductUnavailable(
                {"product_id": [f"{product.name} is a FRESH product and must be booked on a delivery slot"]}
            )
        product.assert_orderable(quantity)

        now = datetime.now(UTC)
        existing = next((i for i in self.items if str(i.product_id) == str(product.id)), None)
        if existing:
            existing.quantity = qty.add(existing.quantity, quantity)
            item = existing
        else:
            item = CartItem(
                product_id=product.id,
                producer_id=product.producer_id,
                product_name=product.name,
                quantity=quantity,
                unit_price=product.price,
                added_at=now,
            )
            self.add_items(item)

        self._recalculate_total()
        self.raise_(
            CartItemAdded(
                cart_id=str(self.id),
                item_id=str(item.id),
                product_id=str(product.id),
                quantity=quantity,
                unit_price=item.unit_price,
                new_total=self.total,
            )
        )
        return item

    def remove_item(self, item_id):
        """Drop a line and return it; the caller gives its quantity back to stock."""
        self.assert_active("remove items from")
        item = self.find_item(item_id)
        self.remove_items(item)
        self._recalculate_total()
        self.raise_(CartItemRemoved(cart_id=str(self.id), item_id=str(item_id), new_total=self.total))
        return item

    # -------------------------------------------------------------------
    # Slot bookings
    # -------------------------------------------------------------------
    def add_booking(self, slot, product, quantity, price=None, now=None):
        """Attach a booking for capacity already reserved on ``slot``.

        The caller reserves the capacity on the slot in the same unit of work;
        the booking expires after the configured hold period unless the cart
        is checked out first.
        """
        self.assert_active("add bookings to")
        if str(slot.product_id) != str(product.id):
            raise ValidationFailed({"slot_id": ["Delivery slot does not belong to this product"]})

        now = now or datetime.now(UTC)
        booking = Booking(
            slot_id=slot.id,
            product_id=product.id,
            producer_id=product.producer_id,
            product_name=product.name,
            delivery_date=slot.date,
            quantity=quantity,
            price=price,
            product_price=product.price,
            status=BookingStatus.TEMPORARY.value,
            booked_at=now,
            expires_at=now + booking_hold(),
        )
        self.add_bookings(booking)
        self._recalculate_total()
        self.raise_(
            BookingAdded(
                cart_id=str(self.id),
                booking_id=str(booking.id),
                slot_id=str(slot.id),
                product_id=str(product.id),
                delivery_date=slot.date,
                quantity=quantity,
                expires_at=booking.expires_at,
                new_total=self.total,
            )
        )
        return booking

    def _drop_booking(self, booking, reason):
        self.remove_bookings(booking)
        self._recalculate_total()
        self.raise_(
            BookingCancelled(
                cart_id=str(self.id),
                booking_id=str(booking.id),
                slot_id=str(booking.slot_id),
                quantity=booking.quantity,
                reason=reason.value,
                new_total=self.total,
            )
        )

    def cancel_booking(self, booking_id):
        """Remove a booking; the caller releases its capacity on the slot."""
        self.assert_active("cancel bookings in")
        booking = self.find_booking(booking_id)
        self._drop_booking(booking, CancellationReason.CLIENT)
        return booking

    def expire_bookings(self, as_of):
        """Drop bookings whose hold ran out before ``as_of`` and return them."""
        if not self.is_active:
            return []
        expired = [b for b in self.bookings if b.is_expired(as_of)]
        for booking in expired:
            self._drop_booking(booking, CancellationReason.EXPIRED)
        return expired

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def check_out(self, order_id):
        """Freeze the cart after an order was placed from it.

        Bookings become Confirmed and stop expiring: their capacity now
        belongs to the order.
        """
        self.assert_active("check out")
        if self.is_empty:
            raise ValidationFailed({"cart": ["Cannot check out an empty cart"]})

        now = datetime.now(UTC)
        for booking in self.bookings:
            booking.status = BookingStatus.CONFIRMED.value
            booking.expires_at = None
        self.status = CartStatus.CHECKED_OUT.value
        self.updated_at = now
        self.raise_(
            CartCheckedOut(
                cart_id=str(self.id),
                user_id=str(self.user_id),
                order_id=str(order_id),
                checked_out_at=now,
            )
        )

    def abandon(self):
        """Close an idle cart, dropping its bookings. Returns the dropped bookings."""
        self.assert_active("abandon")
        dropped = list(self.bookings)
        for booking in dropped:
            self._drop_booking(booking, CancellationReason.ABANDONED)

        now = datetime.now(UTC)
        self.status = CartStatus.ABANDONED.value
        self.updated_at = now
        self.raise_(
            CartAbandoned(
                cart_id=str(self.id),
                user_id=str(self.user_id),
                released_bookings=len(dropped),
                abandoned_at=now,
            )
        )
        return dropped
