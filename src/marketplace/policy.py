"""Business policy constants, read from the ``[custom]`` section of domain.toml.

Values are looked up on every call so tests and the ``[production]`` overlay
can override them without re-importing modules.
"""

from datetime import timedelta
from decimal import Decimal

from marketplace.domain import marketplace


def _setting(name, default):
    return getattr(marketplace, name, default)


def currency() -> str:
    return _setting("CURRENCY", "CHF")


def commission_rate() -> Decimal:
    return Decimal(str(_setting("COMMISSION_RATE", "0.05")))


def delivery_fee() -> Decimal:
    return Decimal(str(_setting("DELIVERY_FEE", "15.00")))


def booking_hold() -> timedelta:
    """How long a Temporary booking holds slot capacity before the sweeper reclaims it."""
    return timedelta(minutes=int(_setting("BOOKING_HOLD_MINUTES", 120)))


def abandonment_threshold() -> timedelta:
    """Idle time after which an active cart is considered abandoned."""
    return timedelta(minutes=int(_setting("ABANDONMENT_THRESHOLD_MINUTES", 1440)))


def invoice_due_days() -> int:
    return int(_setting("INVOICE_DUE_DAYS", 30))


def sweep_interval_seconds() -> float:
    return float(_setting("SWEEP_INTERVAL_SECONDS", 300))


def almost_full_threshold() -> float:
    return float(_setting("ALMOST_FULL_THRESHOLD", 0.8))


def min_withdrawal() -> Decimal:
    return Decimal(str(_setting("MIN_WITHDRAWAL", "10.00")))


def max_withdrawal() -> Decimal:
    return Decimal(str(_setting("MAX_WITHDRAWAL", "10000.00")))
