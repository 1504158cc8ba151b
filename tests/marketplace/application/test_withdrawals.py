"""Application tests for producer withdrawals against delivered revenue."""

import pytest
from marketplace.cart.bookings import AddBooking
from marketplace.checkout.checkout import CheckoutCart
from marketplace.errors import InsufficientBalance, NotFound, ValidationFailed
from marketplace.order.management import ChangeOrderStatus
from marketplace.wallet.management import (
    CompleteWithdrawal,
    RejectWithdrawal,
    RequestWithdrawal,
    wallet_summary,
)
from protean import current_domain


def _request(amount, producer_id="producer-001"):
    return current_domain.process(RequestWithdrawal(producer_id=producer_id, amount=amount), asynchronous=False)


@pytest.fixture()
def delivered_order(cart, slot):
    """10 x 20.00 booked and delivered: 190.00 net for producer-001."""
    current_domain.process(AddBooking(cart_id=str(cart.id), slot_id=str(slot.id), quantity=10), asynchronous=False)
    result = current_domain.process(
        CheckoutCart(cart_id=str(cart.id), delivery_type="pickup", payment_method="card"),
        asynchronous=False,
    )
    for status in ("Confirmed", "Shipped", "Delivered"):
        current_domain.process(ChangeOrderStatus(order_id=result["order_id"], status=status), asynchronous=False)
    return result["order_id"]


class TestRequestWithdrawal:
    def test_withdrawal_lowers_the_balance(self, delivered_order):
        withdrawal_id = _request(50.0)

        summary = wallet_summary("producer-001")
        assert summary["available_revenue"] == 190.0
        assert summary["withdrawn"] == 50.0
        assert summary["balance"] == 140.0
        assert summary["withdrawals"][0]["withdrawal_id"] == withdrawal_id
        assert summary["withdrawals"][0]["status"] == "Pending"

    def test_pending_revenue_cannot_be_withdrawn(self, cart, slot):
        current_domain.process(AddBooking(cart_id=str(cart.id), slot_id=str(slot.id), quantity=10), asynchronous=False)
        current_domain.process(
            CheckoutCart(cart_id=str(cart.id), delivery_type="pickup", payment_method="card"),
            asynchronous=False,
        )

        with pytest.raises(InsufficientBalance):
            _request(50.0)

    def test_more_than_the_balance_is_refused(self, delivered_order):
        with pytest.raises(InsufficientBalance):
            _request(200.0)
        assert wallet_summary("producer-001")["withdrawals"] == []

    def test_second_request_waits_for_the_first(self, delivered_order):
        _request(20.0)
        with pytest.raises(ValidationFailed):
            _request(20.0)


class TestSettleWithdrawal:
    def test_completed_withdrawal_stays_withdrawn(self, delivered_order):
        withdrawal_id = _request(100.0)
        current_domain.process(
            CompleteWithdrawal(producer_id="producer-001", withdrawal_id=withdrawal_id, reference="PAYOUT-7"),
            asynchronous=False,
        )

        summary = wallet_summary("producer-001")
        assert summary["balance"] == 90.0
        assert summary["withdrawals"][0]["status"] == "Completed"
        assert summary["withdrawals"][0]["reference"] == "PAYOUT-7"

        with pytest.raises(InsufficientBalance):
            _request(100.0)

    def test_rejected_withdrawal_is_given_back(self, delivered_order):
        withdrawal_id = _request(100.0)
        current_domain.process(
            RejectWithdrawal(producer_id="producer-001", withdrawal_id=withdrawal_id, reason="IBAN missing"),
            asynchronous=False,
        )

        assert wallet_summary("producer-001")["balance"] == 190.0
        _request(190.0)
        assert wallet_summary("producer-001")["balance"] == 0.0

    def test_producer_without_wallet(self):
        with pytest.raises(NotFound):
            current_domain.process(
                CompleteWithdrawal(producer_id="producer-404", withdrawal_id="missing"),
                asynchronous=False,
            )
