"""Card payments react to Order events.

``OrderPlaced`` is dispatched only after the checkout unit of work has
committed, so the authorization taken at checkout is captured exactly once
and only for an order that exists. A failed capture marks the payment
Failed; the order stays Pending for an admin to follow up.

Cancelling an order before its card payment was captured voids the
authorization.
"""

import structlog
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from marketplace.checkout.pricing import PaymentMethod
from marketplace.domain import marketplace
from marketplace.order.events import OrderCancelled, OrderPlaced
from marketplace.order.management import RecordPaymentStatus
from marketplace.order.order import Order, PaymentStatus
from marketplace.payment.gateway import get_gateway

logger = structlog.get_logger(__name__)


@marketplace.event_handler(part_of=Order, stream_category="marketplace::order")
class CardPaymentEventHandler:
    @handle(OrderPlaced)
    def capture_card_payment(self, event: OrderPlaced) -> None:
        if event.payment_method != PaymentMethod.CARD.value or not event.payment_reference:
            return

        result = get_gateway().capture(event.payment_reference)
        if result.success:
            status = PaymentStatus.PAID.value
            logger.info("Card payment captured", order_id=str(event.order_id), reference=result.reference)
        else:
            status = PaymentStatus.FAILED.value
            logger.error(
                "Card capture failed",
                order_id=str(event.order_id),
                reference=event.payment_reference,
                reason=result.failure_reason,
            )
        current_domain.process(
            RecordPaymentStatus(order_id=event.order_id, payment_status=status),
            asynchronous=False,
        )

    @handle(OrderCancelled)
    def void_card_authorization(self, event: OrderCancelled) -> None:
        order = current_domain.repository_for(Order).get(event.order_id)
        if order.payment_method != PaymentMethod.CARD.value or not order.payment_reference:
            return
        if order.payment_status == PaymentStatus.PAID.value:
            # Refunds are settled outside the marketplace
            logger.warning("Cancelled order was already paid by card", order_id=str(order.id))
            return

        result = get_gateway().void(order.payment_reference)
        logger.info(
            "Card authorization voided",
            order_id=str(order.id),
            reference=order.payment_reference,
            voided=result.success,
        )
