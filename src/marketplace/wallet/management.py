"""Producer payout commands and the wallet summary.

A withdrawal request is checked against the producer's available revenue
read from the ``ProducerOrderRevenue`` projection at request time.
"""

from protean import handle
from protean.fields import Float, Identifier, String
from protean.utils.globals import current_domain

from marketplace.checkout.pricing import to_money
from marketplace.domain import logger, marketplace
from marketplace.errors import NotFound
from marketplace.policy import currency
from marketplace.projections.producer_revenue import producer_revenue
from marketplace.wallet.wallet import ProducerWallet


@marketplace.command(part_of="ProducerWallet")
class RequestWithdrawal:
    producer_id = Identifier(required=True)
    amount = Float(required=True, min_value=0.0)
    reason = String(max_length=200)


@marketplace.command(part_of="ProducerWallet")
class CompleteWithdrawal:
    producer_id = Identifier(required=True)
    withdrawal_id = Identifier(required=True)
    reference = String(max_length=100)


@marketplace.command(part_of="ProducerWallet")
class RejectWithdrawal:
    producer_id = Identifier(required=True)
    withdrawal_id = Identifier(required=True)
    reason = String(max_length=200)


def available_revenue(producer_id):
    return to_money(producer_revenue(producer_id)["available"]["net"])


def _wallet(producer_id) -> ProducerWallet:
    wallet = current_domain.repository_for(ProducerWallet).for_producer(producer_id)
    if wallet is None:
        raise NotFound(f"No wallet for producer {producer_id}")
    return wallet


def wallet_summary(producer_id) -> dict:
    """Available revenue, what was already withdrawn, and the balance left."""
    wallet = current_domain.repository_for(ProducerWallet).for_producer(producer_id)
    wallet = wallet or ProducerWallet.open(producer_id)
    revenue = available_revenue(producer_id)
    withdrawals = sorted(wallet.withdrawals, key=lambda w: w.requested_at, reverse=True)
    return {
        "producer_id": str(producer_id),
        "currency": currency(),
        "available_revenue": float(revenue),
        "withdrawn": float(wallet.withdrawn),
        "balance": float(wallet.balance(revenue)),
        "withdrawals": [
            {
                "withdrawal_id": str(w.id),
                "amount": w.amount,
                "status": w.status,
                "reason": w.reason,
                "reference": w.reference,
                "requested_at": w.requested_at.isoformat() if w.requested_at else None,
                "processed_at": w.processed_at.isoformat() if w.processed_at else None,
            }
            for w in withdrawals
        ],
    }


@marketplace.command_handler(part_of=ProducerWallet)
class WalletCommandHandler:
    @handle(RequestWithdrawal)
    def request_withdrawal(self, command):
        repo = current_domain.repository_for(ProducerWallet)
        wallet = repo.for_producer(command.producer_id) or ProducerWallet.open(command.producer_id)
        withdrawal = wallet.request_withdrawal(
            command.amount,
            available_revenue(command.producer_id),
            reason=command.reason,
        )
        repo.add(wallet)
        logger.info(
            "Withdrawal requested",
            producer_id=command.producer_id,
            withdrawal_id=str(withdrawal.id),
            amount=withdrawal.amount,
        )
        return str(withdrawal.id)

    @handle(CompleteWithdrawal)
    def complete_withdrawal(self, command):
        wallet = _wallet(command.producer_id)
        wallet.complete_withdrawal(command.withdrawal_id, reference=command.reference)
        current_domain.repository_for(ProducerWallet).add(wallet)
        logger.info("Withdrawal completed", producer_id=command.producer_id, withdrawal_id=command.withdrawal_id)

    @handle(RejectWithdrawal)
    def reject_withdrawal(self, command):
        wallet = _wallet(command.producer_id)
        wallet.reject_withdrawal(command.withdrawal_id, reason=command.reason)
        current_domain.repository_for(ProducerWallet).add(wallet)
        logger.info("Withdrawal rejected", producer_id=command.producer_id, withdrawal_id=command.withdrawal_id)
