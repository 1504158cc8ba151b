"""In-memory card processor for development and tests.

Keeps authorizations by idempotency key and honours the same rules a real
processor does: one authorization per key, one capture per authorization,
no capture after a void and no void after a capture. Declines are not
remembered, so a client may retry a declined card under the same key.
"""

from uuid import uuid4

from marketplace.payment.gateway.port import PaymentGateway, PaymentResult

AUTHORIZED = "authorized"
CAPTURED = "captured"
VOIDED = "voided"


class FakeGateway(PaymentGateway):
    def __init__(self) -> None:
        self.decline_reason: str | None = None
        self.capture_failure: str | None = None
        self.authorizations: dict[str, dict] = {}  # reference -> authorization
        self._by_key: dict[str, str] = {}  # idempotency key -> reference
        self.operations: list[tuple[str, str]] = []  # (operation, reference or key)

    def decline_cards(self, reason: str | None = "Card declined") -> None:
        """Decline every new authorization with ``reason``; ``None`` approves again."""
        self.decline_reason = reason

    def fail_captures(self, reason: str | None = "Authorization expired") -> None:
        self.capture_failure = reason

    def authorize(self, amount, currency, payment_method_type, idempotency_key) -> PaymentResult:
        self.operations.append(("authorize", idempotency_key))
        known = self._by_key.get(idempotency_key)
        if known is not None:
            return PaymentResult(success=True, reference=known, gateway_status=self.authorizations[known]["state"])

        if self.decline_reason:
            return PaymentResult(success=False, gateway_status="declined", failure_reason=self.decline_reason)

        reference = f"auth_{uuid4().hex[:12]}"
        self._by_key[idempotency_key] = reference
        self.authorizations[reference] = {
            "amount": amount,
            "currency": currency,
            "payment_method_type": payment_method_type,
            "idempotency_key": idempotency_key,
            "state": AUTHORIZED,
        }
        return PaymentResult(success=True, reference=reference, gateway_status=AUTHORIZED)

    def _transition(self, operation, reference, target, allowed_from) -> PaymentResult:
        self.operations.append((operation, reference))
        authorization = self.authorizations.get(reference)
        if authorization is None:
            return PaymentResult(success=False, reference=reference, failure_reason="Unknown authorization")
        if authorization["state"] == target:
            return PaymentResult(success=True, reference=reference, gateway_status=target)
        if authorization["state"] != allowed_from:
            return PaymentResult(
                success=False,
                reference=reference,
                gateway_status=authorization["state"],
                failure_reason=f"Authorization is already {authorization['state']}",
            )
        authorization["state"] = target
        return PaymentResult(success=True, reference=reference, gateway_status=target)

    def capture(self, reference) -> PaymentResult:
        if self.capture_failure and reference in self.authorizations:
            self.operations.append(("capture", reference))
            return PaymentResult(success=False, reference=reference, failure_reason=self.capture_failure)
        return self._transition("capture", reference, CAPTURED, AUTHORIZED)

    def void(self, reference) -> PaymentResult:
        return self._transition("void", reference, VOIDED, AUTHORIZED)

    def captured_amount(self) -> float:
        return sum(a["amount"] for a in self.authorizations.values() if a["state"] == CAPTURED)
