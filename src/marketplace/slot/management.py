"""Delivery slot configuration commands issued by producers.

A slot's capacity can never exceed the product's stock on hand, both when
the slot is created and when the producer raises its capacity later.
"""

from protean import handle
from protean.fields import Boolean, Date, Float, Identifier
from protean.utils.globals import current_domain

from marketplace.domain import logger, marketplace
from marketplace.errors import ValidationFailed
from marketplace.product.product import Product
from marketplace.slot.slot import DeliverySlot
from marketplace.utils.quantity import MIN_QUANTITY


@marketplace.command(part_of="DeliverySlot")
class CreateDeliverySlot:
    product_id = Identifier(required=True)
    date = Date(required=True)
    max_capacity = Float(required=True, min_value=MIN_QUANTITY)


@marketplace.command(part_of="DeliverySlot")
class UpdateSlotCapacity:
    slot_id = Identifier(required=True)
    max_capacity = Float(required=True, min_value=MIN_QUANTITY)


@marketplace.command(part_of="DeliverySlot")
class SetSlotAvailability:
    slot_id = Identifier(required=True)
    is_available = Boolean(required=True)


@marketplace.command_handler(part_of=DeliverySlot)
class DeliverySlotCommandHandler:
    @handle(CreateDeliverySlot)
    def create_slot(self, command):
        product = current_domain.repository_for(Product).get(command.product_id)
        if not product.is_fresh:
            raise ValidationFailed({"product_id": ["Delivery slots can only be created for FRESH products"]})
        product.assert_capacity_covered(command.max_capacity)

        repo = current_domain.repository_for(DeliverySlot)
        if repo.on_date(command.product_id, command.date) is not None:
            raise ValidationFailed({"date": [f"A slot already exists for {command.date.isoformat()}"]})

        slot = DeliverySlot.create(
            product_id=command.product_id,
            date=command.date,
            max_capacity=command.max_capacity,
        )
        repo.add(slot)
        logger.info(
            "Delivery slot created",
            slot_id=str(slot.id),
            product_id=command.product_id,
            date=command.date.isoformat(),
        )
        return str(slot.id)

    @handle(UpdateSlotCapacity)
    def update_capacity(self, command):
        repo = current_domain.repository_for(DeliverySlot)
        slot = repo.get(command.slot_id)
        if command.max_capacity > slot.max_capacity:
            # Units already reserved were taken from stock when they were booked
            product = current_domain.repository_for(Product).get(slot.product_id)
            product.assert_capacity_covered(command.max_capacity - slot.reserved)
        slot.update_capacity(command.max_capacity)
        repo.add(slot)

    @handle(SetSlotAvailability)
    def set_availability(self, command):
        repo = current_domain.repository_for(DeliverySlot)
        slot = repo.get(command.slot_id)
        slot.set_availability(command.is_available)
        repo.add(slot)
