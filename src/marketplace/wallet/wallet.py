"""ProducerWallet aggregate (CQRS): payouts of a producer's earned revenue.

What a producer may withdraw is the net revenue of its delivered orders
(the *available* bucket of the producer revenue projection) minus every
withdrawal that is pending or completed. Rejected withdrawals give their
amount back.

All withdrawals of a producer live in one aggregate, so two concurrent
requests are version-checked against each other and cannot both spend the
same balance.

State Machine (per withdrawal):
    PENDING → COMPLETED
    PENDING → REJECTED
"""

from datetime import UTC, datetime
from decimal import Decimal
from enum import Enum

from protean.fields import DateTime, Float, HasMany, Identifier, String

from marketplace.checkout.pricing import ZERO, to_money
from marketplace.domain import marketplace
from marketplace.errors import InsufficientBalance, InvalidTransition, NotFound, ValidationFailed
from marketplace.policy import currency, max_withdrawal, min_withdrawal
from marketplace.wallet.events import WithdrawalCompleted, WithdrawalRejected, WithdrawalRequested


class WithdrawalStatus(Enum):
    PENDING = "Pending"
    COMPLETED = "Completed"
    REJECTED = "Rejected"


@marketplace.entity(part_of="ProducerWallet")
class Withdrawal:
    amount = Float(required=True, min_value=0.0)
    status = String(choices=WithdrawalStatus, default=WithdrawalStatus.PENDING.value)
    reason = String(max_length=200)
    reference = String(max_length=100)
    requested_at = DateTime()
    processed_at = DateTime()

    @property
    def holds_balance(self) -> bool:
        return WithdrawalStatus(self.status) != WithdrawalStatus.REJECTED


@marketplace.aggregate
class ProducerWallet:
    producer_id = Identifier(required=True)
    withdrawals = HasMany(Withdrawal)
    created_at = DateTime()

    @classmethod
    def open(cls, producer_id):
        # One wallet per producer, keyed by the producer id
        return cls(id=str(producer_id), producer_id=producer_id, created_at=datetime.now(UTC))

    # -------------------------------------------------------------------
    # Balance
    # -------------------------------------------------------------------
    @property
    def withdrawn(self) -> Decimal:
        """Pending and completed withdrawals."""
        return to_money(sum((to_money(w.amount) for w in self.withdrawals if w.holds_balance), ZERO))

    @property
    def pending_withdrawal(self) -> Withdrawal | None:
        return next(
            (w for w in self.withdrawals if WithdrawalStatus(w.status) == WithdrawalStatus.PENDING),
            None,
        )

    def balance(self, available_revenue) -> Decimal:
        return to_money(available_revenue) - self.withdrawn

    def find_withdrawal(self, withdrawal_id) -> Withdrawal:
        withdrawal = next((w for w in self.withdrawals if str(w.id) == str(withdrawal_id)), None)
        if withdrawal is None:
            raise NotFound(f"Withdrawal {withdrawal_id} not found for producer {self.producer_id}")
        return withdrawal

    # -------------------------------------------------------------------
    # Withdrawals
    # -------------------------------------------------------------------
    def request_withdrawal(self, amount, available_revenue, reason=None) -> Withdrawal:
        """Hold ``amount`` of the balance for a payout.

        Raises ``ValidationFailed`` outside the allowed amount range, for more
        than two decimals, or while another request is pending, and
        ``InsufficientBalance`` when the balance does not cover ``amount``.
        """
        value = Decimal(str(amount))
        if value != to_money(value):
            raise ValidationFailed({"amount": ["Amount cannot have more than two decimals"]})
        if value < min_withdrawal() or value > max_withdrawal():
            raise ValidationFailed(
                {"amount": [f"Amount must be between {min_withdrawal()} and {max_withdrawal()} {currency()}"]}
            )
        if self.pending_withdrawal is not None:
            raise ValidationFailed({"amount": ["A withdrawal is already being processed"]})

        balance = self.balance(available_revenue)
        if value > balance:
            raise InsufficientBalance(
                {"amount": [f"Balance is {balance} {currency()}, {value} {currency()} requested"]}
            )

        now = datetime.now(UTC)
        withdrawal = Withdrawal(
            amount=float(value),
            status=WithdrawalStatus.PENDING.value,
            reason=reason,
            requested_at=now,
        )
        self.add_withdrawals(withdrawal)
        self.raise_(
            WithdrawalRequested(
                wallet_id=str(self.id),
                producer_id=str(self.producer_id),
                withdrawal_id=str(withdrawal.id),
                amount=float(value),
                currency=currency(),
                requested_at=now,
            )
        )
        return withdrawal

    def _settle(self, withdrawal_id, target) -> Withdrawal:
        withdrawal = self.find_withdrawal(withdrawal_id)
        if WithdrawalStatus(withdrawal.status) != WithdrawalStatus.PENDING:
            raise InvalidTransition(
                {"status": [f"Cannot move withdrawal from {withdrawal.status} to {target.value}"]}
            )
        withdrawal.status = target.value
        withdrawal.processed_at = datetime.now(UTC)
        return withdrawal

    def complete_withdrawal(self, withdrawal_id, reference=None):
        withdrawal = self._settle(withdrawal_id, WithdrawalStatus.COMPLETED)
        withdrawal.reference = reference
        self.raise_(
            WithdrawalCompleted(
                wallet_id=str(self.id),
                producer_id=str(self.producer_id),
                withdrawal_id=str(withdrawal.id),
                amount=withdrawal.amount,
                reference=reference,
                processed_at=withdrawal.processed_at,
            )
        )

    def reject_withdrawal(self, withdrawal_id, reason=None):
        withdrawal = self._settle(withdrawal_id, WithdrawalStatus.REJECTED)
        withdrawal.reason = reason or withdrawal.reason
        self.raise_(
            WithdrawalRejected(
                wallet_id=str(self.id),
                producer_id=str(self.producer_id),
                withdrawal_id=str(withdrawal.id),
                amount=withdrawal.amount,
                reason=reason,
                processed_at=withdrawal.processed_at,
            )
        )
