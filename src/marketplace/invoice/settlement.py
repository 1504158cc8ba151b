"""Invoice settlement: commands and handler."""

from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.invoice.invoice import Invoice


@marketplace.command(part_of="Invoice")
class MarkInvoicePaid:
    invoice_id = Identifier(required=True)


@marketplace.command(part_of="Invoice")
class MarkInvoiceOverdue:
    invoice_id = Identifier(required=True)


@marketplace.command_handler(part_of=Invoice)
class InvoiceSettlementHandler:
    @handle(MarkInvoicePaid)
    def mark_paid(self, command):
        repo = current_domain.repository_for(Invoice)
        invoice = repo.get(command.invoice_id)
        invoice.mark_paid()
        repo.add(invoice)

    @handle(MarkInvoiceOverdue)
    def mark_overdue(self, command):
        repo = current_domain.repository_for(Invoice)
        invoice = repo.get(command.invoice_id)
        invoice.mark_overdue()
        repo.add(invoice)
