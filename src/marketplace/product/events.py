"""Domain events for the Product aggregate."""

from protean.fields import Boolean, Float, Identifier, String

from marketplace.domain import marketplace


@marketplace.event(part_of="Product")
class ProductRegistered:
    """A producer published a new product."""

    __version__ = 1

    product_id = Identifier(required=True)
    producer_id = Identifier(required=True)
    name = String(required=True)
    unit = String(required=True)
    price = Float(required=True)
    product_type = String(required=True)
    min_order_quantity = Float()
    accept_deferred = Boolean(default=False)
    stock = Float()


@marketplace.event(part_of="Product")
class ProductPriceChanged:
    """The unit price changed. Lines already in carts keep their captured price."""

    __version__ = 1

    product_id = Identifier(required=True)
    previous_price = Float(required=True)
    new_price = Float(required=True)


@marketplace.event(part_of="Product")
class ProductAvailabilityChanged:
    __version__ = 1

    product_id = Identifier(required=True)
    available = Boolean(required=True)


@marketplace.event(part_of="Product")
class ProductStockChanged:
    """Stock was taken by a cart line or booking, restored, or recounted."""

    __version__ = 1

    product_id = Identifier(required=True)
    previous_stock = Float()
    stock = Float(required=True)
    reason = String(max_length=20)
