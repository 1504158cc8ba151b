"""Repository queries for delivery slots."""

from datetime import date as date_type

from marketplace.domain import marketplace
from marketplace.slot.slot import DeliverySlot


@marketplace.repository(part_of=DeliverySlot)
class DeliverySlotRepository:
    def for_product(self, product_id) -> list[DeliverySlot]:
        """All slots of a product, oldest date first, including expired ones."""
        slots = self._dao.query.filter(product_id=product_id).limit(None).all().items
        return sorted(slots, key=lambda slot: slot.date)

    def on_date(self, product_id, date) -> DeliverySlot | None:
        return next((slot for slot in self.for_product(product_id) if slot.date == date), None)

    def available_for_product(self, product_id, today=None) -> list[DeliverySlot]:
        """Slots a client can still book. Expired and closed slots are left out."""
        today = today or date_type.today()
        return [slot for slot in self.for_product(product_id) if slot.can_book(today)]
