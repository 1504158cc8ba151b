"""Domain events for the Invoice aggregate."""

from protean.fields import Date, DateTime, Float, Identifier, String

from marketplace.domain import marketplace


@marketplace.event(part_of="Invoice")
class InvoiceIssued:
    """An invoice was issued for an order paid on deferred terms."""

    __version__ = 1

    invoice_id = Identifier(required=True)
    order_id = Identifier(required=True)
    user_id = Identifier(required=True)
    invoice_number = String(required=True)
    amount = Float(required=True)
    due_date = Date(required=True)
    issued_at = DateTime(required=True)


@marketplace.event(part_of="Invoice")
class InvoicePaid:
    __version__ = 1

    invoice_id = Identifier(required=True)
    order_id = Identifier(required=True)
    paid_at = DateTime(required=True)


@marketplace.event(part_of="Invoice")
class InvoiceOverdue:
    __version__ = 1

    invoice_id = Identifier(required=True)
    order_id = Identifier(required=True)
    due_date = Date(required=True)
    marked_at = DateTime(required=True)


@marketplace.event(part_of="Invoice")
class InvoiceCancelled:
    __version__ = 1

    invoice_id = Identifier(required=True)
    order_id = Identifier(required=True)
    reason = String(max_length=500)
    cancelled_at = DateTime(required=True)


@marketplace.event(part_of="Invoice")
class InvoiceAmountAdjusted:
    """The order lost a line while pending, so the amount due went down."""

    __version__ = 1

    invoice_id = Identifier(required=True)
    order_id = Identifier(required=True)
    previous_amount = Float(required=True)
    amount = Float(required=True)
    adjusted_at = DateTime(required=True)
