"""Domain error taxonomy for the marketplace.

Every rule violation raised by an aggregate or handler carries a
machine-readable ``kind`` next to its field-keyed messages. The classes build
on Protean's ``ValidationError`` so command processing and the testing DSL
treat them as ordinary rejections; ``NotFound`` builds on
``ObjectNotFoundError`` for the same reason.
"""

from protean.exceptions import ObjectNotFoundError, ValidationError


class MarketplaceError(ValidationError):
    """Base class for recoverable marketplace rule violations."""

    kind = "ValidationFailed"
    http_status = 400
    default_field = "_entity"

    def __init__(self, messages, **kwargs):
        if isinstance(messages, str):
            messages = {self.default_field: [messages]}
        super().__init__(messages, **kwargs)

    @property
    def message(self) -> str:
        """First human-readable message, used as the response headline."""
        if isinstance(self.messages, dict):
            for errors in self.messages.values():
                if errors:
                    return errors[0] if isinstance(errors, list) else str(errors)
        return str(self.messages)


class ValidationFailed(MarketplaceError):
    """One or more input fields are invalid. Messages are keyed by field name."""


class ProductUnavailable(MarketplaceError):
    kind = "ProductUnavailable"
    http_status = 422
    default_field = "product_id"


class MinimumQuantityNotMet(MarketplaceError):
    kind = "MinimumQuantityNotMet"
    http_status = 422
    default_field = "quantity"


class CapacityExceeded(MarketplaceError):
    kind = "CapacityExceeded"
    http_status = 409
    default_field = "quantity"


class InsufficientStock(MarketplaceError):
    kind = "InsufficientStock"
    http_status = 409
    default_field = "quantity"


class SlotExpired(MarketplaceError):
    kind = "SlotExpired"
    http_status = 409
    default_field = "slot_id"


class SlotUnavailable(MarketplaceError):
    kind = "SlotUnavailable"
    http_status = 409
    default_field = "slot_id"


class InvalidTransition(MarketplaceError):
    kind = "InvalidTransition"
    http_status = 409
    default_field = "status"


class PaymentDeclined(MarketplaceError):
    kind = "PaymentDeclined"
    http_status = 402
    default_field = "payment_method"


class InsufficientBalance(MarketplaceError):
    kind = "InsufficientBalance"
    http_status = 409
    default_field = "amount"


class NotFound(ObjectNotFoundError):
    """An order, cart, slot, booking or invoice does not exist."""

    kind = "NotFound"
    http_status = 404
