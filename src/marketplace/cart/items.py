"""Cart item management: ordinary (non-slot) product lines.

Adding a line sets its quantity aside from the product's stock in the same
unit of work; removing it gives the quantity back.
"""

from protean import handle
from protean.fields import Float, Identifier
from protean.utils.globals import current_domain

from marketplace.cart.cart import ShoppingCart
from marketplace.domain import marketplace
from marketplace.product.management import restore_stock_for
from marketplace.product.product import Product
from marketplace.utils.quantity import MIN_QUANTITY


@marketplace.command(part_of="ShoppingCart")
class AddCartItem:
    cart_id = Identifier(required=True)
    product_id = Identifier(required=True)
    quantity = Float(required=True, min_value=MIN_QUANTITY)


@marketplace.command(part_of="ShoppingCart")
class RemoveCartItem:
    cart_id = Identifier(required=True)
    item_id = Identifier(required=True)


@marketplace.command_handler(part_of=ShoppingCart)
class ManageCartItemsHandler:
    @handle(AddCartItem)
    def add_item(self, command):
        product_repo = current_domain.repository_for(Product)
        product = product_repo.get(command.product_id)
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get(command.cart_id)

        item = cart.add_item(product, command.quantity)
        product.take_stock(command.quantity)

        product_repo.add(product)
        repo.add(cart)
        return str(item.id)

    @handle(RemoveCartItem)
    def remove_item(self, command):
        repo = current_domain.repository_for(ShoppingCart)
        cart = repo.get(command.cart_id)
        item = cart.remove_item(command.item_id)
        restore_stock_for([item])
        repo.add(cart)
