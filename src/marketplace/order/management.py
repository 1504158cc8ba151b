"""Order lifecycle and line edits: commands and handler.

Cancelling an order, or cancelling one of its bookings, gives the booked
capacity back to the delivery slots in the same unit of work as the order
change. Every line dropped from a pending order also returns its quantity to
the product stock.
"""

import structlog
from protean import handle
from protean.fields import Identifier, String
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.order.order import Order, OrderStatus
from marketplace.product.management import restore_stock_for
from marketplace.slot.slot import DeliverySlot

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Order")
class ChangeOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=20)
    reason = String(max_length=500)


@marketplace.command(part_of="Order")
class RemoveOrderItem:
    order_id = Identifier(required=True)
    item_id = Identifier(required=True)


@marketplace.command(part_of="Order")
class CancelOrderBooking:
    order_id = Identifier(required=True)
    booking_id = Identifier(required=True)


@marketplace.command(part_of="Order")
class RecordPaymentStatus:
    """Move the order's payment sub-status, e.g. when its invoice is paid."""

    order_id = Identifier(required=True)
    payment_status = String(required=True, max_length=20)


def _release(slot_id, quantity):
    slot_repo = current_domain.repository_for(DeliverySlot)
    slot = slot_repo.get(slot_id)
    slot.release(quantity)
    slot_repo.add(slot)


@marketplace.command_handler(part_of=Order)
class OrderManagementHandler:
    @handle(ChangeOrderStatus)
    def change_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        previous = order.status
        items = list(order.items)

        released = order.change_status(command.status, reason=command.reason)
        for booking in released:
            _release(booking.slot_id, booking.quantity)
        if order.status == OrderStatus.CANCELLED.value:
            restore_stock_for([*items, *released])
        repo.add(order)

        logger.info(
            "Order status changed",
            order_id=str(order.id),
            previous_status=previous,
            status=order.status,
            released_bookings=len(released),
        )

    @handle(RemoveOrderItem)
    def remove_item(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        item = order.remove_item(command.item_id)
        restore_stock_for([item])
        repo.add(order)

    @handle(CancelOrderBooking)
    def cancel_booking(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        booking = order.cancel_booking(command.booking_id)
        _release(booking.slot_id, booking.quantity)
        restore_stock_for([booking])
        repo.add(order)

        logger.info(
            "Order booking cancelled",
            order_id=str(order.id),
            booking_id=str(booking.id),
            slot_id=str(booking.slot_id),
            quantity=booking.quantity,
        )

    @handle(RecordPaymentStatus)
    def record_payment_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        order.record_payment_status(command.payment_status)
        repo.add(order)
