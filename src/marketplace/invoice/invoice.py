"""Invoice aggregate (CQRS): deferred payment for invoice orders.

An invoice is issued at checkout when the client pays by invoice. Its amount
is the order's grand total, and it falls due a fixed number of days after
checkout.

State Machine:
    PENDING → PAID
    PENDING → OVERDUE → PAID
    PENDING → CANCELLED
    OVERDUE → CANCELLED
"""

from datetime import UTC, date, datetime, timedelta
from enum import Enum
from uuid import uuid4

from protean.fields import Date, DateTime, Float, Identifier, String

from marketplace.domain import marketplace
from marketplace.errors import InvalidTransition
from marketplace.invoice.events import (
    InvoiceAmountAdjusted,
    InvoiceCancelled,
    InvoiceIssued,
    InvoiceOverdue,
    InvoicePaid,
)
from marketplace.policy import invoice_due_days


class InvoiceStatus(Enum):
    PENDING = "Pending"
    PAID = "Paid"
    OVERDUE = "Overdue"
    CANCELLED = "Cancelled"


_VALID_TRANSITIONS = {
    InvoiceStatus.PENDING: {InvoiceStatus.PAID, InvoiceStatus.OVERDUE, InvoiceStatus.CANCELLED},
    InvoiceStatus.OVERDUE: {InvoiceStatus.PAID, InvoiceStatus.CANCELLED},
    InvoiceStatus.PAID: set(),  # Terminal
    InvoiceStatus.CANCELLED: set(),  # Terminal
}


def due_date_from(issued_on: date) -> date:
    return issued_on + timedelta(days=invoice_due_days())


@marketplace.aggregate
class Invoice:
    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    invoice_number = String(required=True, max_length=50)
    amount = Float(required=True, min_value=0.0)
    status = String(choices=InvoiceStatus, default=InvoiceStatus.PENDING.value)
    due_date = Date(required=True)
    paid_at = DateTime()
    cancellation_reason = String(max_length=500)
    created_at = DateTime()
    updated_at = DateTime()

    def _assert_can_transition(self, target_status: InvoiceStatus) -> None:
        current = InvoiceStatus(self.status)
        if target_status not in _VALID_TRANSITIONS.get(current, set()):
            raise InvalidTransition(
                {"status": [f"Cannot transition invoice from {current.value} to {target_status.value}"]}
            )

    @classmethod
    def issue(cls, order_id, user_id, amount, due_date):
        now = datetime.now(UTC)
        invoice = cls(
            order_id=order_id,
            user_id=user_id,
            invoice_number=f"INV-{uuid4().hex[:8].upper()}",
            amount=amount,
            due_date=due_date,
            created_at=now,
            updated_at=now,
        )
        invoice.raise_(
            InvoiceIssued(
                invoice_id=str(invoice.id),
                order_id=str(order_id),
                user_id=str(user_id),
                invoice_number=invoice.invoice_number,
                amount=amount,
                due_date=due_date,
                issued_at=now,
            )
        )
        return invoice

    @property
    def is_open(self) -> bool:
        return InvoiceStatus(self.status) in (InvoiceStatus.PENDING, InvoiceStatus.OVERDUE)

    def mark_paid(self) -> None:
        self._assert_can_transition(InvoiceStatus.PAID)
        now = datetime.now(UTC)
        self.status = InvoiceStatus.PAID.value
        self.paid_at = now
        self.updated_at = now
        self.raise_(InvoicePaid(invoice_id=str(self.id), order_id=str(self.order_id), paid_at=now))

    def mark_overdue(self) -> None:
        self._assert_can_transition(InvoiceStatus.OVERDUE)
        now = datetime.now(UTC)
        self.status = InvoiceStatus.OVERDUE.value
        self.updated_at = now
        self.raise_(
            InvoiceOverdue(
                invoice_id=str(self.id),
                order_id=str(self.order_id),
                due_date=self.due_date,
                marked_at=now,
            )
        )

    def cancel(self, reason=None) -> None:
        self._assert_can_transition(InvoiceStatus.CANCELLED)
        now = datetime.now(UTC)
        self.status = InvoiceStatus.CANCELLED.value
        self.cancellation_reason = reason
        self.updated_at = now
        self.raise_(
            InvoiceCancelled(
                invoice_id=str(self.id),
                order_id=str(self.order_id),
                reason=reason,
                cancelled_at=now,
            )
        )

    def adjust_amount(self, amount: float) -> None:
        """Lower the amount due after the order lost a line. Closed invoices are left alone."""
        if not self.is_open or amount == self.amount:
            return
        now = datetime.now(UTC)
        previous = self.amount
        self.amount = amount
        self.updated_at = now
        self.raise_(
            InvoiceAmountAdjusted(
                invoice_id=str(self.id),
                order_id=str(self.order_id),
                previous_amount=previous,
                amount=amount,
                adjusted_at=now,
            )
        )
