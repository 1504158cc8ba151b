"""Domain events for the DeliverySlot aggregate."""

from protean.fields import Boolean, Date, Float, Identifier

from marketplace.domain import marketplace


@marketplace.event(part_of="DeliverySlot")
class DeliverySlotCreated:
    __version__ = 1

    slot_id = Identifier(required=True)
    product_id = Identifier(required=True)
    date = Date(required=True)
    max_capacity = Float(required=True)


@marketplace.event(part_of="DeliverySlot")
class SlotCapacityReserved:
    """Capacity was taken from the slot for a booking."""

    __version__ = 1

    slot_id = Identifier(required=True)
    quantity = Float(required=True)
    reserved = Float(required=True)
    max_capacity = Float(required=True)


@marketplace.event(part_of="DeliverySlot")
class SlotCapacityReleased:
    """Capacity held by a booking went back to the slot."""

    __version__ = 1

    slot_id = Identifier(required=True)
    quantity = Float(required=True)
    reserved = Float(required=True)


@marketplace.event(part_of="DeliverySlot")
class SlotCapacityChanged:
    __version__ = 1

    slot_id = Identifier(required=True)
    previous_capacity = Float(required=True)
    max_capacity = Float(required=True)


@marketplace.event(part_of="DeliverySlot")
class SlotAvailabilityChanged:
    __version__ = 1

    slot_id = Identifier(required=True)
    is_available = Boolean(required=True)
