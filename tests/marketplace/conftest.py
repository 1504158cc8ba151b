from datetime import date, timedelta

import pytest
from protean.integrations.pytest import DomainFixture


@pytest.fixture(scope="session")
def marketplace_bed():
    from marketplace.domain import marketplace

    bed = DomainFixture(marketplace)
    bed.setup()
    yield bed
    bed.teardown()


@pytest.fixture(autouse=True)
def _ctx(marketplace_bed):
    with marketplace_bed.domain_context():
        yield


# ---------------------------------------------------------------------------
# Catalogue fixtures (persisted)
# ---------------------------------------------------------------------------
@pytest.fixture()
def producer_id():
    return "producer-001"


@pytest.fixture()
def tomorrow():
    return date.today() + timedelta(days=1)


@pytest.fixture()
def fresh_product(producer_id):
    from marketplace.product.product import Product
    from protean import current_domain

    product = Product.register(
        producer_id=producer_id,
        name="Oyster mushrooms",
        price=20.0,
        product_type="FRESH",
        accept_deferred=True,
    )
    current_domain.repository_for(Product).add(product)
    return product


@pytest.fixture()
def dried_product(producer_id):
    from marketplace.product.product import Product
    from protean import current_domain

    product = Product.register(
        producer_id=producer_id,
        name="Dried shiitake",
        price=12.5,
        product_type="DRIED",
        unit="pack",
        accept_deferred=True,
    )
    current_domain.repository_for(Product).add(product)
    return product


@pytest.fixture()
def slot(fresh_product, tomorrow):
    """A slot for tomorrow with room for 10 units."""
    from marketplace.slot.slot import DeliverySlot
    from protean import current_domain

    slot = DeliverySlot.create(product_id=fresh_product.id, date=tomorrow, max_capacity=10)
    current_domain.repository_for(DeliverySlot).add(slot)
    return slot


@pytest.fixture()
def cart():
    from marketplace.cart.cart import ShoppingCart
    from protean import current_domain

    cart = ShoppingCart.create(user_id="user-001")
    current_domain.repository_for(ShoppingCart).add(cart)
    return cart
