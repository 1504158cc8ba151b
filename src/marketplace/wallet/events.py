"""Domain events for the ProducerWallet aggregate."""

from protean.fields import DateTime, Float, Identifier, String

from marketplace.domain import marketplace


@marketplace.event(part_of="ProducerWallet")
class WithdrawalRequested:
    """A producer asked to be paid out. The amount is held until the request is settled."""

    __version__ = 1

    wallet_id = Identifier(required=True)
    producer_id = Identifier(required=True)
    withdrawal_id = Identifier(required=True)
    amount = Float(required=True)
    currency = String(max_length=3)
    requested_at = DateTime(required=True)


@marketplace.event(part_of="ProducerWallet")
class WithdrawalCompleted:
    __version__ = 1

    wallet_id = Identifier(required=True)
    producer_id = Identifier(required=True)
    withdrawal_id = Identifier(required=True)
    amount = Float(required=True)
    reference = String(max_length=100)
    processed_at = DateTime(required=True)


@marketplace.event(part_of="ProducerWallet")
class WithdrawalRejected:
    """The payout was refused; its amount is available again."""

    __version__ = 1

    wallet_id = Identifier(required=True)
    producer_id = Identifier(required=True)
    withdrawal_id = Identifier(required=True)
    amount = Float(required=True)
    reason = String(max_length=200)
    processed_at = DateTime(required=True)
