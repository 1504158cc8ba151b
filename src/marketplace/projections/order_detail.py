"""Order detail: full order view for detail pages.

Combines the order snapshot with its invoice. The payment status shown to
clients is the effective one: for invoice orders the invoice's own status and
due date win over what was recorded at checkout.
"""

import json

from protean.core.projector import on
from protean.fields import Date, DateTime, Float, Identifier, String, Text
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.invoice.events import (
    InvoiceAmountAdjusted,
    InvoiceCancelled,
    InvoiceIssued,
    InvoiceOverdue,
    InvoicePaid,
)
from marketplace.invoice.invoice import Invoice
from marketplace.order.events import (
    OrderBookingCancelled,
    OrderCancelled,
    OrderConfirmed,
    OrderDelivered,
    OrderItemRemoved,
    OrderPlaced,
    OrderShipped,
    PaymentStatusChanged,
)
from marketplace.order.metadata import parse_metadata, with_invoice
from marketplace.order.order import Order


@marketplace.projection
class OrderDetail:
    order_id = Identifier(identifier=True, required=True)
    user_id = Identifier(required=True)
    cart_id = Identifier()
    status = String(required=True)
    items = Text()  # JSON: list of item dicts
    bookings = Text()  # JSON: list of booking dicts
    delivery_info = Text()  # JSON: DeliveryInfo dict
    metadata = Text()  # JSON: versioned metadata record
    subtotal = Float()
    delivery_fee = Float()
    commission = Float()
    producer_net = Float()
    grand_total = Float()
    currency = String(default="CHF")
    payment_method = String()
    payment_status = String()
    payment_reference = String()
    due_date = Date()
    invoice_id = Identifier()
    invoice_number = String()
    invoice_status = String()
    invoice_amount = Float()
    cancellation_reason = String()
    placed_at = DateTime()
    updated_at = DateTime()

    def effective_payment(self):
        """Metadata with the invoice overlay applied. A cancelled invoice no longer speaks for the order."""
        metadata = parse_metadata(self.metadata)
        if self.invoice_status == "Cancelled":
            return metadata
        return with_invoice(metadata, self.invoice_status, self.due_date)


@marketplace.projector(projector_for=OrderDetail, aggregates=[Order, Invoice])
class OrderDetailProjector:
    @on(OrderPlaced)
    def on_order_placed(self, event):
        detail = OrderDetail(
            order_id=event.order_id,
            user_id=event.user_id,
            cart_id=event.cart_id,
            status="Pending",
            items=event.items,
            bookings=event.bookings,
            delivery_info=event.delivery_info,
            metadata=event.metadata,
            subtotal=event.subtotal,
            delivery_fee=event.delivery_fee,
            commission=event.commission,
            producer_net=event.producer_net,
            grand_total=event.grand_total,
            currency=event.currency or "CHF",
            payment_method=event.payment_method,
            payment_status=event.payment_status,
            payment_reference=event.payment_reference,
            due_date=event.due_date,
            invoice_id=event.invoice_id,
            placed_at=event.placed_at,
            updated_at=event.placed_at,
        )
        if event.invoice_id:
            # The invoice is written in the same unit of work and may be projected first
            invoice = current_domain.repository_for(Invoice).get_or_none(event.invoice_id)
            if invoice is not None:
                detail.invoice_number = invoice.invoice_number
                detail.invoice_status = invoice.status
                detail.invoice_amount = invoice.amount
        current_domain.repository_for(OrderDetail).add(detail)

    def _update(self, order_id, **changes):
        repo = current_domain.repository_for(OrderDetail)
        detail = repo.get_or_none(order_id)
        if detail is None:
            return None
        for name, value in changes.items():
            setattr(detail, name, value)
        repo.add(detail)
        return detail

    @on(OrderConfirmed)
    def on_order_confirmed(self, event):
        self._update(event.order_id, status="Confirmed", updated_at=event.confirmed_at)

    @on(OrderShipped)
    def on_order_shipped(self, event):
        self._update(event.order_id, status="Shipped", updated_at=event.shipped_at)

    @on(OrderDelivered)
    def on_order_delivered(self, event):
        self._update(event.order_id, status="Delivered", updated_at=event.delivered_at)

    @on(OrderCancelled)
    def on_order_cancelled(self, event):
        self._update(
            event.order_id,
            status="Cancelled",
            cancellation_reason=event.reason,
            updated_at=event.cancelled_at,
        )

    @on(OrderItemRemoved)
    def on_item_removed(self, event):
        detail = current_domain.repository_for(OrderDetail).get_or_none(event.order_id)
        if detail is None:
            return
        items = json.loads(detail.items) if detail.items else []
        self._update(
            event.order_id,
            items=json.dumps([i for i in items if i.get("id") != str(event.item_id)]),
            subtotal=event.subtotal,
            commission=event.commission,
            producer_net=event.producer_net,
            grand_total=event.grand_total,
        )

    @on(OrderBookingCancelled)
    def on_booking_cancelled(self, event):
        detail = current_domain.repository_for(OrderDetail).get_or_none(event.order_id)
        if detail is None:
            return
        bookings = json.loads(detail.bookings) if detail.bookings else []
        self._update(
            event.order_id,
            bookings=json.dumps([b for b in bookings if b.get("id") != str(event.booking_id)]),
            subtotal=event.subtotal,
            commission=event.commission,
            producer_net=event.producer_net,
            grand_total=event.grand_total,
        )

    @on(PaymentStatusChanged)
    def on_payment_status_changed(self, event):
        detail = current_domain.repository_for(OrderDetail).get_or_none(event.order_id)
        if detail is None:
            return
        metadata = json.loads(detail.metadata) if detail.metadata else {}
        if metadata.get("payment"):
            metadata["payment"]["status"] = event.payment_status
        self._update(
            event.order_id,
            payment_status=event.payment_status,
            metadata=json.dumps(metadata) if metadata else detail.metadata,
            updated_at=event.changed_at,
        )

    # Invoice events
    @on(InvoiceIssued)
    def on_invoice_issued(self, event):
        self._update(
            event.order_id,
            invoice_id=event.invoice_id,
            invoice_number=event.invoice_number,
            invoice_status="Pending",
            invoice_amount=event.amount,
            due_date=event.due_date,
        )

    @on(InvoicePaid)
    def on_invoice_paid(self, event):
        self._update(event.order_id, invoice_status="Paid")

    @on(InvoiceOverdue)
    def on_invoice_overdue(self, event):
        self._update(event.order_id, invoice_status="Overdue")

    @on(InvoiceCancelled)
    def on_invoice_cancelled(self, event):
        self._update(event.order_id, invoice_status="Cancelled")

    @on(InvoiceAmountAdjusted)
    def on_invoice_amount_adjusted(self, event):
        self._update(event.order_id, invoice_amount=event.amount)
