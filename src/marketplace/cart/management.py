"""Cart lifecycle commands."""

from protean import handle
from protean.fields import Identifier
from protean.utils.globals import current_domain

from marketplace.cart.cart import ShoppingCart
from marketplace.domain import logger, marketplace


@marketplace.command(part_of="ShoppingCart")
class OpenCart:
    """Return the user's active cart, creating one when none is open."""

    user_id = Identifier(required=True)


@marketplace.command_handler(part_of=ShoppingCart)
class CartLifecycleHandler:
    @handle(OpenCart)
    def open_cart(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.active_for_user(command.user_id)
        if cart is None:
            cart = ShoppingCart.create(user_id=command.user_id)
            repo.add(cart)
            logger.info("Cart opened", cart_id=str(cart.id), user_id=command.user_id)
        return str(cart.id)
