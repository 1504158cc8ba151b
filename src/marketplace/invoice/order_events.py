"""Invoice reacts to Order events.

A cancelled order cancels its open invoice, and removing lines from a
pending order lowers the amount due to the order's new grand total.
"""

import structlog
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from marketplace.domain import marketplace
from marketplace.invoice.invoice import Invoice
from marketplace.order.events import OrderBookingCancelled, OrderCancelled, OrderItemRemoved

logger = structlog.get_logger(__name__)


@marketplace.event_handler(part_of=Invoice, stream_category="marketplace::order")
class OrderInvoiceEventHandler:
    def _open_invoice(self, invoice_id):
        if not invoice_id:
            return None
        invoice = current_domain.repository_for(Invoice).get(invoice_id)
        return invoice if invoice.is_open else None

    @handle(OrderCancelled)
    def on_order_cancelled(self, event: OrderCancelled) -> None:
        invoice = self._open_invoice(event.invoice_id)
        if invoice is None:
            return
        invoice.cancel(reason=f"Order cancelled: {event.reason}" if event.reason else "Order cancelled")
        current_domain.repository_for(Invoice).add(invoice)
        logger.info("Invoice cancelled with its order", invoice_id=str(invoice.id), order_id=str(event.order_id))

    def _adjust(self, event) -> None:
        invoice = self._open_invoice(event.invoice_id)
        if invoice is None:
            return
        invoice.adjust_amount(event.grand_total)
        current_domain.repository_for(Invoice).add(invoice)

    @handle(OrderItemRemoved)
    def on_order_item_removed(self, event: OrderItemRemoved) -> None:
        self._adjust(event)

    @handle(OrderBookingCancelled)
    def on_order_booking_cancelled(self, event: OrderBookingCancelled) -> None:
        self._adjust(event)
