"""Application tests for invoices: settlement drives the order's payment status and
order changes flow back into the invoice."""

import pytest
from marketplace.cart.bookings import AddBooking
from marketplace.cart.items import AddCartItem
from marketplace.checkout.checkout import CheckoutCart
from marketplace.errors import InvalidTransition
from marketplace.invoice.invoice import Invoice, InvoiceStatus
from marketplace.invoice.settlement import MarkInvoiceOverdue, MarkInvoicePaid
from marketplace.order.management import ChangeOrderStatus, RemoveOrderItem
from marketplace.order.order import Order
from protean import current_domain


@pytest.fixture()
def invoice_order(cart, slot, dried_product):
    """Invoice order for 2 x 12.50 dried + 3 x 20.00 booked, picked up: 85.00."""
    current_domain.process(
        AddCartItem(cart_id=str(cart.id), product_id=str(dried_product.id), quantity=2),
        asynchronous=False,
    )
    current_domain.process(AddBooking(cart_id=str(cart.id), slot_id=str(slot.id), quantity=3), asynchronous=False)
    result = current_domain.process(
        CheckoutCart(cart_id=str(cart.id), delivery_type="pickup", payment_method="invoice"),
        asynchronous=False,
    )
    return current_domain.repository_for(Order).get(result["order_id"])


def _invoice(invoice_id):
    return current_domain.repository_for(Invoice).get(invoice_id)


class TestSettlement:
    def test_paying_the_invoice_marks_the_order_paid(self, invoice_order):
        current_domain.process(MarkInvoicePaid(invoice_id=str(invoice_order.invoice_id)), asynchronous=False)

        assert _invoice(invoice_order.invoice_id).status == InvoiceStatus.PAID.value
        order = current_domain.repository_for(Order).get(invoice_order.id)
        assert order.payment_status == "Invoice_Paid"
        assert order.metadata_record().payment_status == "Invoice_Paid"

    def test_overdue_then_paid(self, invoice_order):
        invoice_id = str(invoice_order.invoice_id)
        current_domain.process(MarkInvoiceOverdue(invoice_id=invoice_id), asynchronous=False)
        assert current_domain.repository_for(Order).get(invoice_order.id).payment_status == "Invoice_Overdue"

        current_domain.process(MarkInvoicePaid(invoice_id=invoice_id), asynchronous=False)
        assert current_domain.repository_for(Order).get(invoice_order.id).payment_status == "Invoice_Paid"

    def test_paid_invoice_cannot_go_overdue(self, invoice_order):
        invoice_id = str(invoice_order.invoice_id)
        current_domain.process(MarkInvoicePaid(invoice_id=invoice_id), asynchronous=False)
        with pytest.raises(InvalidTransition):
            current_domain.process(MarkInvoiceOverdue(invoice_id=invoice_id), asynchronous=False)


class TestOrderChangesReachTheInvoice:
    def test_cancelled_order_cancels_its_invoice(self, invoice_order):
        current_domain.process(
            ChangeOrderStatus(order_id=str(invoice_order.id), status="Cancelled", reason="Client request"),
            asynchronous=False,
        )
        invoice = _invoice(invoice_order.invoice_id)
        assert invoice.status == InvoiceStatus.CANCELLED.value
        assert invoice.cancellation_reason == "Order cancelled: Client request"

    def test_removed_line_lowers_the_amount_due(self, invoice_order):
        assert _invoice(invoice_order.invoice_id).amount == 85.0

        current_domain.process(
            RemoveOrderItem(order_id=str(invoice_order.id), item_id=str(invoice_order.items[0].id)),
            asynchronous=False,
        )
        assert _invoice(invoice_order.invoice_id).amount == 60.0

    def test_paid_invoice_keeps_its_amount(self, invoice_order):
        current_domain.process(MarkInvoicePaid(invoice_id=str(invoice_order.invoice_id)), asynchronous=False)
        current_domain.process(
            RemoveOrderItem(order_id=str(invoice_order.id), item_id=str(invoice_order.items[0].id)),
            asynchronous=False,
        )
        assert _invoice(invoice_order.invoice_id).amount == 85.0
