"""Tests for the ProducerWallet aggregate."""

from decimal import Decimal

import pytest
from marketplace.errors import InsufficientBalance, InvalidTransition, NotFound, ValidationFailed
from marketplace.wallet.events import WithdrawalCompleted, WithdrawalRejected, WithdrawalRequested
from marketplace.wallet.wallet import ProducerWallet, WithdrawalStatus

REVENUE = Decimal("190.00")


@pytest.fixture()
def wallet():
    return ProducerWallet.open("producer-001")


class TestOpen:
    def test_wallet_is_keyed_by_producer(self, wallet):
        assert wallet.id == "producer-001"
        assert wallet.withdrawn == Decimal("0.00")
        assert wallet.balance(REVENUE) == REVENUE


class TestRequestWithdrawal:
    def test_request_holds_the_amount(self, wallet):
        withdrawal = wallet.request_withdrawal(50.0, REVENUE, reason="Monthly payout")

        assert withdrawal.status == WithdrawalStatus.PENDING.value
        assert wallet.withdrawn == Decimal("50.00")
        assert wallet.balance(REVENUE) == Decimal("140.00")
        event = wallet._events[-1]
        assert isinstance(event, WithdrawalRequested)
        assert event.amount == 50.0
        assert event.currency == "CHF"

    def test_whole_balance_can_be_withdrawn(self, wallet):
        wallet.request_withdrawal(190.0, REVENUE)
        assert wallet.balance(REVENUE) == Decimal("0.00")

    def test_more_than_the_balance_is_refused(self, wallet):
        with pytest.raises(InsufficientBalance) as exc:
            wallet.request_withdrawal(190.01, REVENUE)
        assert exc.value.messages == {"amount": ["Balance is 190.00 CHF, 190.01 CHF requested"]}
        assert wallet.withdrawals == []

    @pytest.mark.parametrize("amount", [9.99, 10000.01])
    def test_amount_outside_limits(self, wallet, amount):
        with pytest.raises(ValidationFailed) as exc:
            wallet.request_withdrawal(amount, Decimal("20000.00"))
        assert exc.value.messages == {"amount": ["Amount must be between 10.00 and 10000.00 CHF"]}

    def test_more_than_two_decimals(self, wallet):
        with pytest.raises(ValidationFailed) as exc:
            wallet.request_withdrawal(10.005, REVENUE)
        assert exc.value.messages == {"amount": ["Amount cannot have more than two decimals"]}

    def test_one_pending_request_at_a_time(self, wallet):
        wallet.request_withdrawal(20.0, REVENUE)
        with pytest.raises(ValidationFailed):
            wallet.request_withdrawal(20.0, REVENUE)


class TestSettlement:
    def test_complete_keeps_the_amount_withdrawn(self, wallet):
        withdrawal = wallet.request_withdrawal(40.0, REVENUE)
        wallet.complete_withdrawal(withdrawal.id, reference="PAYOUT-1")

        assert withdrawal.status == WithdrawalStatus.COMPLETED.value
        assert withdrawal.reference == "PAYOUT-1"
        assert withdrawal.processed_at is not None
        assert wallet.balance(REVENUE) == Decimal("150.00")
        assert isinstance(wallet._events[-1], WithdrawalCompleted)

    def test_reject_gives_the_amount_back(self, wallet):
        withdrawal = wallet.request_withdrawal(40.0, REVENUE)
        wallet.reject_withdrawal(withdrawal.id, reason="IBAN missing")

        assert withdrawal.status == WithdrawalStatus.REJECTED.value
        assert withdrawal.reason == "IBAN missing"
        assert wallet.balance(REVENUE) == REVENUE
        assert isinstance(wallet._events[-1], WithdrawalRejected)

        # A rejected request no longer blocks a new one
        wallet.request_withdrawal(40.0, REVENUE)

    def test_settled_withdrawal_cannot_move_again(self, wallet):
        withdrawal = wallet.request_withdrawal(40.0, REVENUE)
        wallet.complete_withdrawal(withdrawal.id)
        with pytest.raises(InvalidTransition):
            wallet.reject_withdrawal(withdrawal.id)

    def test_unknown_withdrawal(self, wallet):
        with pytest.raises(NotFound):
            wallet.complete_withdrawal("missing")
