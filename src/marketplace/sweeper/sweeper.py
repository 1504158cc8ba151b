"""Expiration sweeper: give held slot capacity back.

Runs periodically from the server runner and is nudged by the cleanup
endpoints, the checkout summary and the slot listing. For every active cart:

- bookings whose hold ran out before ``as_of`` are cancelled, their quantity
  released on the slot and returned to the product stock;
- carts idle for longer than the abandonment threshold are marked Abandoned
  after releasing all of their bookings.

``sweep_stale_bookings`` issues one ``ExpireStaleBookings`` per cart, so each
cart is swept in its own unit of work. A cart that cannot be swept, including
one whose slot was changed concurrently more often than Protean's version
retry absorbs, is logged and skipped; the other carts still get their
capacity back.
"""

from datetime import UTC, datetime

import structlog
from protean.fields import DateTime, Identifier
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from marketplace.cart.cart import ShoppingCart, as_utc
from marketplace.domain import marketplace
from marketplace.policy import abandonment_threshold
from marketplace.product.management import restore_stock_for
from marketplace.slot.slot import DeliverySlot

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="ShoppingCart")
class ExpireStaleBookings:
    """Reclaim expired bookings of one cart, or the whole cart once it is abandoned.

    ``as_of`` defaults to now.
    """

    cart_id = Identifier(required=True)
    as_of = DateTime()


def _load_slots(bookings) -> dict[str, DeliverySlot]:
    slot_repo = current_domain.repository_for(DeliverySlot)
    return {str(b.slot_id): slot_repo.get(b.slot_id) for b in bookings}


def _sweep_cart(cart: ShoppingCart, as_of: datetime) -> int:
    idle_since = cart.idle_since()
    abandon = idle_since is not None and as_of - idle_since > abandonment_threshold()
    doomed = list(cart.bookings) if abandon else [b for b in cart.bookings if b.is_expired(as_of)]
    if not doomed and not abandon:
        return 0

    # Every slot is loaded before the cart changes, so a missing slot leaves the cart untouched
    slots = _load_slots(doomed)

    released = cart.abandon() if abandon else cart.expire_bookings(as_of)
    slot_repo = current_domain.repository_for(DeliverySlot)
    for booking in released:
        slot = slots[str(booking.slot_id)]
        slot.release(booking.quantity)
    for slot in slots.values():
        slot_repo.add(slot)
    restore_stock_for(released)
    current_domain.repository_for(ShoppingCart).add(cart)

    if abandon:
        logger.info("Cart abandoned", cart_id=str(cart.id), released_bookings=len(released))
    return len(released)


@marketplace.command_handler(part_of=ShoppingCart)
class ExpireStaleBookingsHandler:
    @handle(ExpireStaleBookings)
    def expire_stale_bookings(self, command: ExpireStaleBookings) -> int:
        as_of = as_utc(command.as_of) or datetime.now(UTC)
        cart = current_domain.repository_for(ShoppingCart).get(command.cart_id)
        if not cart.is_active:
            return 0
        return _sweep_cart(cart, as_of)


def sweep_stale_bookings(as_of=None, cart_id=None) -> int:
    """Sweep every active cart (or just ``cart_id``), one unit of work per cart.

    Must be called outside a command handler: a command processed inside
    another handler joins that handler's unit of work, and one failing cart
    would then roll back every other cart's release.
    """
    as_of = as_of or datetime.now(UTC)
    if cart_id:
        cart_ids = [str(cart_id)]
    else:
        cart_ids = [str(cart.id) for cart in current_domain.repository_for(ShoppingCart).active()]

    released = 0
    for cart_id in cart_ids:
        try:
            released += (
                current_domain.process(ExpireStaleBookings(cart_id=cart_id, as_of=as_of), asynchronous=False)
                or 0
            )
        except Exception as exc:
            logger.error("Cart sweep failed", cart_id=cart_id, error=str(exc), exc_info=True)

    if released:
        logger.info("Stale bookings released", released=released, carts=len(cart_ids), as_of=str(as_of))
    return released


def nudge_sweep(cart_id=None) -> int:
    """Run a sweep on behalf of a request. A failed nudge is logged, never raised."""
    try:
        return sweep_stale_bookings(cart_id=cart_id)
    except Exception as exc:
        logger.error("Sweep nudge failed", cart_id=cart_id, error=str(exc), exc_info=True)
        return 0
