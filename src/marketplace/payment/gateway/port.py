"""Card payment port: authorize at checkout, capture once the order exists.

Checkout only *authorizes* the grand total while its unit of work is open.
The authorization is captured after the order has been committed, and voided
when the order is cancelled before capture. A checkout that never commits
leaves an uncaptured authorization behind, which the provider lets lapse; the
client is never charged for an order that does not exist.

``idempotency_key`` makes ``authorize`` safe to repeat: Protean re-runs a
handler whose commit lost a version race, and the re-run must get the
authorization it already holds instead of a second one.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class PaymentResult:
    """Outcome of one gateway operation. Declines are results, not exceptions."""

    success: bool
    reference: str | None = None
    gateway_status: str | None = None
    failure_reason: str | None = None


class PaymentGateway(ABC):
    @abstractmethod
    def authorize(
        self,
        amount: float,
        currency: str,
        payment_method_type: str,
        idempotency_key: str,
    ) -> PaymentResult:
        """Hold ``amount`` on the card. Repeating a key returns the original authorization."""

    @abstractmethod
    def capture(self, reference: str) -> PaymentResult:
        """Collect an authorization. Capturing twice collects once."""

    @abstractmethod
    def void(self, reference: str) -> PaymentResult:
        """Release an authorization that was never captured."""
