"""Order reacts to Invoice events by moving its payment sub-status."""

import structlog
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from marketplace.domain import marketplace
from marketplace.invoice.events import InvoiceOverdue, InvoicePaid
from marketplace.order.management import RecordPaymentStatus
from marketplace.order.order import Order, PaymentStatus

logger = structlog.get_logger(__name__)


@marketplace.event_handler(part_of=Order, stream_category="marketplace::invoice")
class InvoiceOrderEventHandler:
    @handle(InvoicePaid)
    def on_invoice_paid(self, event: InvoicePaid) -> None:
        logger.info("Recording invoice payment on order", order_id=str(event.order_id))
        current_domain.process(
            RecordPaymentStatus(order_id=event.order_id, payment_status=PaymentStatus.INVOICE_PAID.value),
            asynchronous=False,
        )

    @handle(InvoiceOverdue)
    def on_invoice_overdue(self, event: InvoiceOverdue) -> None:
        logger.info("Recording overdue invoice on order", order_id=str(event.order_id))
        current_domain.process(
            RecordPaymentStatus(order_id=event.order_id, payment_status=PaymentStatus.INVOICE_OVERDUE.value),
            asynchronous=False,
        )
