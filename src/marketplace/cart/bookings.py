"""Slot bookings: reserve delivery-slot capacity and attach it to a cart.

The slot reservation, the stock taken from the product and the cart booking
are written in the same unit of work. The aggregates are version-checked on
commit, so a reservation computed against a slot that changed in the meantime
is never written. Protean re-runs the handler against fresh state when that
happens, and the re-run either fits the remaining capacity or fails with
``CapacityExceeded``; a slot is never oversold.
"""

from protean import handle
from protean.fields import Float, Identifier
from protean.utils.globals import current_domain

from marketplace.cart.cart import ShoppingCart
from marketplace.domain import logger, marketplace
from marketplace.errors import ProductUnavailable
from marketplace.product.management import restore_stock_for
from marketplace.product.product import Product
from marketplace.slot.slot import DeliverySlot
from marketplace.utils.quantity import MIN_QUANTITY


@marketplace.command(part_of="ShoppingCart")
class AddBooking:
    cart_id = Identifier(required=True)
    slot_id = Identifier(required=True)
    quantity = Float(required=True, min_value=MIN_QUANTITY)
    price = Float(min_value=0.0)


@marketplace.command(part_of="ShoppingCart")
class CancelBooking:
    cart_id = Identifier(required=True)
    booking_id = Identifier(required=True)


@marketplace.command_handler(part_of=ShoppingCart)
class CartBookingsHandler:
    @handle(AddBooking)
    def add_booking(self, command):
        cart_repo = current_domain.repository_for(ShoppingCart)
        slot_repo = current_domain.repository_for(DeliverySlot)
        product_repo = current_domain.repository_for(Product)

        cart = cart_repo.get(command.cart_id)
        cart.assert_active("add bookings to")

        slot = slot_repo.get(command.slot_id)
        product = product_repo.get(slot.product_id)
        if not product.is_fresh:
            raise ProductUnavailable({"product_id": [f"{product.name} is not sold through delivery slots"]})
        product.assert_orderable(command.quantity)

        slot.reserve(command.quantity)
        product.take_stock(command.quantity)
        booking = cart.add_booking(slot, product, command.quantity, price=command.price)

        slot_repo.add(slot)
        product_repo.add(product)
        cart_repo.add(cart)

        logger.info(
            "Slot capacity booked",
            cart_id=str(cart.id),
            booking_id=str(booking.id),
            slot_id=str(slot.id),
            quantity=command.quantity,
            reserved=slot.reserved,
            max_capacity=slot.max_capacity,
        )
        return str(booking.id)

    @handle(CancelBooking)
    def cancel_booking(self, command):
        cart_repo = current_domain.repository_for(ShoppingCart)
        slot_repo = current_domain.repository_for(DeliverySlot)

        cart = cart_repo.get(command.cart_id)
        booking = cart.cancel_booking(command.booking_id)

        slot = slot_repo.get(booking.slot_id)
        slot.release(booking.quantity)
        restore_stock_for([booking])

        slot_repo.add(slot)
        cart_repo.add(cart)
