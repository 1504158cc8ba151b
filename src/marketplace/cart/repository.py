"""Repository queries for shopping carts."""

from marketplace.cart.cart import CartStatus, ShoppingCart
from marketplace.domain import marketplace


@marketplace.repository(part_of=ShoppingCart)
class ShoppingCartRepository:
    def active_for_user(self, user_id) -> ShoppingCart | None:
        """The user's current cart, if one is open."""
        carts = self._dao.query.filter(user_id=user_id, status=CartStatus.ACTIVE.value).all().items
        return carts[0] if carts else None

    def active(self) -> list[ShoppingCart]:
        return self._dao.query.filter(status=CartStatus.ACTIVE.value).limit(None).all().items
