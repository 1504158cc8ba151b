"""DeliverySlot aggregate (CQRS): per-product, per-date capacity ledger.

A slot holds ``max_capacity`` units of one FRESH product for one calendar
day. Bookings take capacity with ``reserve`` and give it back with
``release``. The slot is persisted with optimistic version control, so a
reservation computed against a stale copy of the slot cannot be written:
the check ``reserved + quantity <= max_capacity`` and the increment land
together or not at all.

Quantities are fractional (kg). The capacity check runs at gram precision,
so float noise never lets a slot go over.

Invariant:
    0 <= reserved <= max_capacity
"""

from datetime import date as date_type

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, Date, Float, Identifier

from marketplace.domain import marketplace
from marketplace.errors import CapacityExceeded, SlotExpired, SlotUnavailable, ValidationFailed
from marketplace.policy import almost_full_threshold
from marketplace.slot.events import (
    DeliverySlotCreated,
    SlotAvailabilityChanged,
    SlotCapacityChanged,
    SlotCapacityReleased,
    SlotCapacityReserved,
)
from marketplace.utils import quantity as qty


@marketplace.aggregate
class DeliverySlot:
    product_id = Identifier(required=True)
    date = Date(required=True)
    max_capacity = Float(required=True, min_value=qty.MIN_QUANTITY)
    reserved = Float(default=0.0, min_value=0.0)
    is_available = Boolean(default=True)

    @invariant.post
    def reserved_must_stay_within_capacity(self):
        if self.reserved is None or self.max_capacity is None:
            return
        if self.reserved < 0 or qty.exceeds(self.reserved, self.max_capacity):
            raise ValidationError(
                {"reserved": [f"Reserved quantity {self.reserved} outside 0..{self.max_capacity}"]}
            )

    @classmethod
    def create(cls, product_id, date, max_capacity, today=None):
        today = today or date_type.today()
        if date < today:
            raise ValidationFailed({"date": ["Delivery slots cannot be created in the past"]})

        slot = cls(product_id=product_id, date=date, max_capacity=max_capacity, reserved=0.0)
        slot.raise_(
            DeliverySlotCreated(
                slot_id=str(slot.id),
                product_id=str(product_id),
                date=date,
                max_capacity=max_capacity,
            )
        )
        return slot

    # -------------------------------------------------------------------
    # Derived figures
    # -------------------------------------------------------------------
    @property
    def available_capacity(self) -> float:
        return qty.subtract(self.max_capacity, self.reserved)

    @property
    def occupancy_rate(self) -> float:
        """Fraction of capacity already reserved. Presentation only."""
        if not self.max_capacity:
            return 0.0
        return self.reserved / self.max_capacity

    @property
    def is_almost_full(self) -> bool:
        return self.occupancy_rate > almost_full_threshold()

    @property
    def is_fully_booked(self) -> bool:
        return not qty.exceeds(self.max_capacity, self.reserved)

    def is_expired(self, today=None) -> bool:
        return self.date < (today or date_type.today())

    def can_book(self, today=None) -> bool:
        return bool(self.is_available) and not self.is_fully_booked and not self.is_expired(today)

    # -------------------------------------------------------------------
    # Capacity ledger
    # -------------------------------------------------------------------
    def reserve(self, quantity, today=None):
        """Take ``quantity`` units from the slot.

        Raises ``SlotExpired`` for a past date, ``SlotUnavailable`` when the
        producer closed the slot, and ``CapacityExceeded`` when the remaining
        capacity is smaller than ``quantity``. Nothing changes on failure.
        """
        if not qty.is_positive(quantity):
            raise ValidationFailed({"quantity": ["Quantity must be greater than zero"]})
        if self.is_expired(today):
            raise SlotExpired({"slot_id": [f"Delivery slot for {self.date.isoformat()} has already passed"]})
        if not self.is_available:
            raise SlotUnavailable({"slot_id": ["Delivery slot is closed for booking"]})
        if qty.exceeds(qty.add(self.reserved, quantity), self.max_capacity):
            raise CapacityExceeded(
                {
                    "quantity": [
                        f"Only {qty.display(self.available_capacity)} units left in this slot, "
                        f"{qty.display(quantity)} requested"
                    ]
                }
            )

        self.reserved = qty.add(self.reserved, quantity)
        self.raise_(
            SlotCapacityReserved(
                slot_id=str(self.id),
                quantity=quantity,
                reserved=self.reserved,
                max_capacity=self.max_capacity,
            )
        )

    def release(self, quantity):
        """Give ``quantity`` units back, never going below zero.

        The ledger does not track which bookings were already released;
        callers release each booking once.
        """
        released = float(min(qty.to_quantity(quantity), qty.to_quantity(self.reserved)))
        self.reserved = qty.subtract(self.reserved, released)
        self.raise_(
            SlotCapacityReleased(
                slot_id=str(self.id),
                quantity=released,
                reserved=self.reserved,
            )
        )

    # -------------------------------------------------------------------
    # Producer configuration
    # -------------------------------------------------------------------
    def update_capacity(self, max_capacity):
        if qty.exceeds(self.reserved, max_capacity):
            raise ValidationFailed(
                {
                    "max_capacity": [
                        f"Capacity cannot be lower than the {qty.display(self.reserved)} units already reserved"
                    ]
                }
            )
        previous = self.max_capacity
        self.max_capacity = max_capacity
        self.raise_(
            SlotCapacityChanged(
                slot_id=str(self.id),
                previous_capacity=previous,
                max_capacity=max_capacity,
            )
        )

    def set_availability(self, is_available):
        self.is_available = is_available
        self.raise_(SlotAvailabilityChanged(slot_id=str(self.id), is_available=is_available))
