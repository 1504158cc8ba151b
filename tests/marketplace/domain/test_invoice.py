"""Tests for the Invoice aggregate."""

from datetime import date

import pytest
from marketplace.errors import InvalidTransition
from marketplace.invoice.events import InvoiceAmountAdjusted, InvoiceIssued, InvoicePaid
from marketplace.invoice.invoice import Invoice, InvoiceStatus, due_date_from


def _invoice(amount=100.0):
    invoice = Invoice.issue(order_id="ord-001", user_id="user-001", amount=amount, due_date=date(2026, 7, 1))
    invoice._events.clear()
    return invoice


class TestIssue:
    def test_issue_sets_number_and_pending_status(self):
        invoice = Invoice.issue(order_id="ord-001", user_id="user-001", amount=85.0, due_date=date(2026, 7, 1))
        assert invoice.status == InvoiceStatus.PENDING.value
        assert invoice.invoice_number.startswith("INV-")
        assert len(invoice.invoice_number) == 12
        assert isinstance(invoice._events[-1], InvoiceIssued)

    def test_due_date_is_thirty_days_out(self):
        assert due_date_from(date(2026, 6, 1)) == date(2026, 7, 1)


class TestTransitions:
    def test_mark_paid(self):
        invoice = _invoice()
        invoice.mark_paid()
        assert invoice.status == InvoiceStatus.PAID.value
        assert invoice.paid_at is not None
        assert isinstance(invoice._events[-1], InvoicePaid)

    def test_overdue_invoice_can_still_be_paid(self):
        invoice = _invoice()
        invoice.mark_overdue()
        invoice.mark_paid()
        assert invoice.status == InvoiceStatus.PAID.value

    def test_paid_invoice_cannot_go_overdue(self):
        invoice = _invoice()
        invoice.mark_paid()
        with pytest.raises(InvalidTransition):
            invoice.mark_overdue()

    def test_paid_invoice_cannot_be_cancelled(self):
        invoice = _invoice()
        invoice.mark_paid()
        with pytest.raises(InvalidTransition):
            invoice.cancel("Order cancelled")

    def test_cancel_closes_invoice(self):
        invoice = _invoice()
        invoice.cancel("Order cancelled")
        assert not invoice.is_open
        assert invoice.cancellation_reason == "Order cancelled"


class TestAdjustAmount:
    def test_open_invoice_follows_order_total(self):
        invoice = _invoice(amount=100.0)
        invoice.adjust_amount(60.0)
        assert invoice.amount == 60.0
        event = invoice._events[-1]
        assert isinstance(event, InvoiceAmountAdjusted)
        assert event.previous_amount == 100.0

    def test_unchanged_amount_raises_nothing(self):
        invoice = _invoice(amount=100.0)
        invoice.adjust_amount(100.0)
        assert invoice._events == []

    def test_closed_invoice_is_left_alone(self):
        invoice = _invoice(amount=100.0)
        invoice.mark_paid()
        invoice._events.clear()
        invoice.adjust_amount(40.0)
        assert invoice.amount == 100.0
        assert invoice._events == []
