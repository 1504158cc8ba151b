"""Product aggregate (CQRS): what a producer sells and how it is fulfilled.

FRESH products are only sold through delivery slots; every other type goes
through ordinary cart lines. ``accept_deferred`` decides whether an order
containing the product may be paid by invoice.

``stock`` is what the producer has on hand. Cart lines and slot bookings take
from it when they are added and give it back when they are dropped. A
product registered without a stock figure is not stock-tracked.
"""

from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Boolean, Float, Identifier, String

from marketplace.domain import marketplace
from marketplace.errors import InsufficientStock, MinimumQuantityNotMet, ProductUnavailable
from marketplace.product.events import (
    ProductAvailabilityChanged,
    ProductPriceChanged,
    ProductRegistered,
    ProductStockChanged,
)
from marketplace.utils import quantity as qty


class ProductType(Enum):
    FRESH = "FRESH"
    DRIED = "DRIED"
    SUBSTRATE = "SUBSTRATE"
    WELLNESS = "WELLNESS"


DEFAULT_MIN_ORDER_QUANTITY = 1.0


@marketplace.aggregate
class Product:
    producer_id = Identifier(required=True)
    name = String(required=True, max_length=200)
    unit = String(max_length=20, default="kg")
    price = Float(required=True, min_value=0.0)
    product_type = String(required=True, choices=ProductType)
    available = Boolean(default=True)
    min_order_quantity = Float(min_value=qty.MIN_QUANTITY)
    accept_deferred = Boolean(default=False)
    stock = Float(min_value=0.0)

    @invariant.post
    def price_must_be_positive(self):
        if self.price is not None and self.price <= 0:
            raise ValidationError({"price": ["Price must be greater than zero"]})

    @invariant.post
    def stock_must_not_be_negative(self):
        if self.stock is not None and self.stock < 0:
            raise ValidationError({"stock": ["Stock cannot be negative"]})

    @classmethod
    def register(
        cls,
        producer_id,
        name,
        price,
        product_type,
        unit="kg",
        min_order_quantity=None,
        accept_deferred=False,
        stock=None,
    ):
        product = cls(
            producer_id=producer_id,
            name=name,
            unit=unit,
            price=price,
            product_type=product_type,
            min_order_quantity=min_order_quantity,
            accept_deferred=accept_deferred,
            stock=stock,
        )
        product.raise_(
            ProductRegistered(
                product_id=str(product.id),
                producer_id=str(producer_id),
                name=name,
                unit=unit,
                price=price,
                product_type=product_type,
                min_order_quantity=min_order_quantity,
                accept_deferred=accept_deferred,
                stock=stock,
            )
        )
        return product

    @property
    def is_fresh(self) -> bool:
        return ProductType(self.product_type) == ProductType.FRESH

    @property
    def minimum_quantity(self) -> float:
        return self.min_order_quantity or DEFAULT_MIN_ORDER_QUANTITY

    @property
    def tracks_stock(self) -> bool:
        return self.stock is not None

    def change_price(self, new_price):
        previous = self.price
        self.price = new_price
        self.raise_(
            ProductPriceChanged(
                product_id=str(self.id),
                previous_price=previous,
                new_price=new_price,
            )
        )

    def change_availability(self, available):
        if bool(self.available) == bool(available):
            return
        self.available = available
        self.raise_(ProductAvailabilityChanged(product_id=str(self.id), available=available))

    def assert_orderable(self, quantity):
        """Check an order line of ``quantity`` units against this product's rules.

        Raises ``ProductUnavailable`` for disabled products and
        ``MinimumQuantityNotMet`` below the minimum order quantity.
        """
        if not self.available:
            raise ProductUnavailable({"product_id": [f"Product {self.name} is not available"]})
        if qty.exceeds(self.minimum_quantity, quantity):
            raise MinimumQuantityNotMet(
                {
                    "quantity": [
                        f"Minimum order quantity for {self.name} is {qty.display(self.minimum_quantity)} {self.unit}"
                    ]
                }
            )

    # -------------------------------------------------------------------
    # Stock
    # -------------------------------------------------------------------
    def _set_stock(self, stock, reason):
        previous = self.stock
        self.stock = stock
        self.raise_(
            ProductStockChanged(
                product_id=str(self.id),
                previous_stock=previous,
                stock=stock,
                reason=reason,
            )
        )

    def take_stock(self, quantity):
        """Set ``quantity`` aside for a cart line or booking. No-op for untracked products."""
        if not self.tracks_stock:
            return
        if qty.exceeds(quantity, self.stock):
            raise InsufficientStock(
                {
                    "quantity": [
                        f"Only {qty.display(self.stock)} {self.unit} of {self.name} in stock, "
                        f"{qty.display(quantity)} requested"
                    ]
                }
            )
        self._set_stock(qty.subtract(self.stock, quantity), "Taken")

    def restore_stock(self, quantity):
        if not self.tracks_stock:
            return
        self._set_stock(qty.add(self.stock, quantity), "Restored")

    def adjust_stock(self, stock):
        """Producer inventory count. Quantities already set aside stay with their lines."""
        self._set_stock(stock, "Adjusted")

    def assert_capacity_covered(self, max_capacity):
        """A delivery slot cannot promise more than the producer has in stock."""
        if self.tracks_stock and qty.exceeds(max_capacity, self.stock):
            raise InsufficientStock(
                {
                    "max_capacity": [
                        f"Capacity cannot exceed the {qty.display(self.stock)} {self.unit} in stock"
                    ]
                }
            )
