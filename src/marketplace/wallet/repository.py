"""Repository queries for producer wallets."""

from marketplace.domain import marketplace
from marketplace.wallet.wallet import ProducerWallet


@marketplace.repository(part_of=ProducerWallet)
class ProducerWalletRepository:
    def for_producer(self, producer_id) -> ProducerWallet | None:
        wallets = self._dao.query.filter(producer_id=str(producer_id)).all().items
        return wallets[0] if wallets else None
