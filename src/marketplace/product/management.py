"""Product catalogue commands: register, reprice, toggle availability, recount stock."""

from collections import defaultdict

from protean import handle
from protean.fields import Boolean, Float, Identifier, String
from protean.utils.globals import current_domain

from marketplace.domain import logger, marketplace
from marketplace.product.product import Product, ProductType
from marketplace.utils import quantity as qty


@marketplace.command(part_of="Product")
class RegisterProduct:
    producer_id = Identifier(required=True)
    name = String(required=True, max_length=200)
    unit = String(max_length=20, default="kg")
    price = Float(required=True)
    product_type = String(required=True, choices=ProductType)
    min_order_quantity = Float(min_value=qty.MIN_QUANTITY)
    accept_deferred = Boolean(default=False)
    stock = Float(min_value=0.0)


@marketplace.command(part_of="Product")
class ChangeProductPrice:
    product_id = Identifier(required=True)
    price = Float(required=True)


@marketplace.command(part_of="Product")
class ChangeProductAvailability:
    product_id = Identifier(required=True)
    available = Boolean(required=True)


@marketplace.command(part_of="Product")
class AdjustProductStock:
    product_id = Identifier(required=True)
    stock = Float(required=True, min_value=0.0)


def restore_stock_for(lines) -> None:
    """Give the quantities of dropped cart or order lines back to their products.

    Quantities are summed per product first so each product is loaded and
    saved once in the current unit of work.
    """
    totals = defaultdict(float)
    for line in lines:
        totals[str(line.product_id)] = qty.add(totals[str(line.product_id)], line.quantity)

    repo = current_domain.repository_for(Product)
    for product_id, quantity in totals.items():
        product = repo.get(product_id)
        if not product.tracks_stock:
            continue
        product.restore_stock(quantity)
        repo.add(product)


@marketplace.command_handler(part_of=Product)
class ProductCommandHandler:
    @handle(RegisterProduct)
    def register_product(self, command):
        product = Product.register(
            producer_id=command.producer_id,
            name=command.name,
            price=command.price,
            product_type=command.product_type,
            unit=command.unit,
            min_order_quantity=command.min_order_quantity,
            accept_deferred=command.accept_deferred,
            stock=command.stock,
        )
        current_domain.repository_for(Product).add(product)
        return str(product.id)

    @handle(ChangeProductPrice)
    def change_price(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.change_price(command.price)
        repo.add(product)

    @handle(ChangeProductAvailability)
    def change_availability(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.change_availability(command.available)
        repo.add(product)

    @handle(AdjustProductStock)
    def adjust_stock(self, command):
        repo = current_domain.repository_for(Product)
        product = repo.get(command.product_id)
        product.adjust_stock(command.stock)
        repo.add(product)
        logger.info("Product stock adjusted", product_id=str(product.id), stock=command.stock)
