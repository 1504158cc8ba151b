"""FastAPI routes for orders, invoices, producer revenue and producer payouts."""

import json

from fastapi import APIRouter
from protean.utils.globals import current_domain

from marketplace.api.schemas import (
    BreakdownSchema,
    ChangeStatusRequest,
    CountResponse,
    DeliveryInfoSchema,
    InvoiceResponse,
    OrderDetailResponse,
    OrderListResponse,
    OrderSummaryResponse,
    PaymentSchema,
    ProducerRevenueResponse,
    SettleWithdrawalRequest,
    StatusResponse,
    WalletResponse,
    WithdrawalIdResponse,
    WithdrawalRequest,
)
from marketplace.errors import NotFound
from marketplace.invoice.invoice import Invoice
from marketplace.invoice.settlement import MarkInvoiceOverdue, MarkInvoicePaid
from marketplace.order.management import CancelOrderBooking, ChangeOrderStatus, RemoveOrderItem
from marketplace.policy import commission_rate
from marketplace.projections.order_detail import OrderDetail
from marketplace.projections.order_summary import count_orders, list_orders
from marketplace.projections.producer_revenue import producer_revenue
from marketplace.wallet.management import (
    CompleteWithdrawal,
    RejectWithdrawal,
    RequestWithdrawal,
    wallet_summary,
)

# ---------------------------------------------------------------------------
# Order Router
# ---------------------------------------------------------------------------
order_router = APIRouter(prefix="/orders", tags=["orders"])


def _iso(value):
    return value.isoformat() if value else None


def summary_response(summary) -> OrderSummaryResponse:
    return OrderSummaryResponse(
        order_id=str(summary.order_id),
        user_id=str(summary.user_id),
        status=summary.status,
        item_count=summary.item_count or 0,
        booking_count=summary.booking_count or 0,
        grand_total=summary.grand_total or 0.0,
        currency=summary.currency,
        payment_method=summary.payment_method,
        payment_status=summary.payment_status,
        placed_at=_iso(summary.placed_at),
    )


def detail_response(detail) -> OrderDetailResponse:
    metadata = detail.effective_payment()
    address = metadata.address
    return OrderDetailResponse(
        order_id=str(detail.order_id),
        user_id=str(detail.user_id),
        status=detail.status,
        items=json.loads(detail.items) if detail.items else [],
        bookings=json.loads(detail.bookings) if detail.bookings else [],
        delivery=DeliveryInfoSchema(type=metadata.delivery_type, **(vars(address) if address else {})),
        payment=PaymentSchema(
            method=metadata.payment_method or detail.payment_method,
            status=metadata.payment_status or detail.payment_status,
            reference=detail.payment_reference,
            due_date=metadata.due_date,
            invoice_id=str(detail.invoice_id) if detail.invoice_id else None,
            invoice_number=detail.invoice_number,
        ),
        breakdown=BreakdownSchema(
            subtotal=detail.subtotal or 0.0,
            delivery_fee=detail.delivery_fee or 0.0,
            commission=detail.commission or 0.0,
            producer_net=detail.producer_net or 0.0,
            grand_total=detail.grand_total or 0.0,
            commission_rate=float(commission_rate()),
        ),
        currency=detail.currency,
        cancellation_reason=detail.cancellation_reason,
        placed_at=_iso(detail.placed_at),
        updated_at=_iso(detail.updated_at),
    )


@order_router.get("", response_model=OrderListResponse)
async def get_orders(user_id: str | None = None, status: str | None = None) -> OrderListResponse:
    return OrderListResponse(orders=[summary_response(s) for s in list_orders(user_id=user_id, status=status)])


@order_router.get("/count", response_model=CountResponse)
async def get_order_count(user_id: str | None = None, status: str | None = None) -> CountResponse:
    return CountResponse(count=count_orders(user_id=user_id, status=status))


@order_router.get("/{order_id}", response_model=OrderDetailResponse)
async def get_order(order_id: str) -> OrderDetailResponse:
    detail = current_domain.repository_for(OrderDetail).get_or_none(order_id)
    if detail is None:
        raise NotFound(f"Order {order_id} not found")
    return detail_response(detail)


@order_router.patch("/{order_id}/status", response_model=StatusResponse)
async def change_order_status(order_id: str, body: ChangeStatusRequest) -> StatusResponse:
    command = ChangeOrderStatus(order_id=order_id, status=body.status, reason=body.reason)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@order_router.delete("/{order_id}/items/{item_id}", response_model=StatusResponse)
async def remove_order_item(order_id: str, item_id: str) -> StatusResponse:
    current_domain.process(RemoveOrderItem(order_id=order_id, item_id=item_id), asynchronous=False)
    return StatusResponse()


@order_router.delete("/{order_id}/bookings/{booking_id}", response_model=StatusResponse)
async def cancel_order_booking(order_id: str, booking_id: str) -> StatusResponse:
    current_domain.process(CancelOrderBooking(order_id=order_id, booking_id=booking_id), asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Invoice Router
# ---------------------------------------------------------------------------
invoice_router = APIRouter(prefix="/invoices", tags=["invoices"])


def invoice_response(invoice) -> InvoiceResponse:
    return InvoiceResponse(
        invoice_id=str(invoice.id),
        order_id=str(invoice.order_id),
        user_id=str(invoice.user_id),
        invoice_number=invoice.invoice_number,
        amount=invoice.amount,
        status=invoice.status,
        due_date=invoice.due_date,
        paid_at=_iso(invoice.paid_at),
    )


@invoice_router.get("/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(invoice_id: str) -> InvoiceResponse:
    return invoice_response(current_domain.repository_for(Invoice).get(invoice_id))


@invoice_router.post("/{invoice_id}/paid", response_model=StatusResponse)
async def mark_invoice_paid(invoice_id: str) -> StatusResponse:
    current_domain.process(MarkInvoicePaid(invoice_id=invoice_id), asynchronous=False)
    return StatusResponse()


@invoice_router.post("/{invoice_id}/overdue", response_model=StatusResponse)
async def mark_invoice_overdue(invoice_id: str) -> StatusResponse:
    current_domain.process(MarkInvoiceOverdue(invoice_id=invoice_id), asynchronous=False)
    return StatusResponse()


# ---------------------------------------------------------------------------
# Producer Router
# ---------------------------------------------------------------------------
producer_router = APIRouter(prefix="/producers", tags=["producers"])


@producer_router.get("/{producer_id}/revenue", response_model=ProducerRevenueResponse)
async def get_producer_revenue(producer_id: str) -> ProducerRevenueResponse:
    return ProducerRevenueResponse(**producer_revenue(producer_id))


@producer_router.get("/{producer_id}/wallet", response_model=WalletResponse)
async def get_wallet(producer_id: str) -> WalletResponse:
    return WalletResponse(**wallet_summary(producer_id))


@producer_router.post("/{producer_id}/withdrawals", status_code=201, response_model=WithdrawalIdResponse)
async def request_withdrawal(producer_id: str, body: WithdrawalRequest) -> WithdrawalIdResponse:
    command = RequestWithdrawal(producer_id=producer_id, amount=body.amount, reason=body.reason)
    return WithdrawalIdResponse(withdrawal_id=current_domain.process(command, asynchronous=False))


@producer_router.post("/{producer_id}/withdrawals/{withdrawal_id}/complete", response_model=StatusResponse)
async def complete_withdrawal(producer_id: str, withdrawal_id: str, body: SettleWithdrawalRequest) -> StatusResponse:
    command = CompleteWithdrawal(producer_id=producer_id, withdrawal_id=withdrawal_id, reference=body.reference)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()


@producer_router.post("/{producer_id}/withdrawals/{withdrawal_id}/reject", response_model=StatusResponse)
async def reject_withdrawal(producer_id: str, withdrawal_id: str, body: SettleWithdrawalRequest) -> StatusResponse:
    command = RejectWithdrawal(producer_id=producer_id, withdrawal_id=withdrawal_id, reason=body.reason)
    current_domain.process(command, asynchronous=False)
    return StatusResponse()
