"""BDD tests for the order state machine."""

from marketplace.order.management import ChangeOrderStatus
from pytest_bdd import parsers, scenarios, when

scenarios("features/order_state_machine.feature")


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when("the order is confirmed", target_fixture="order")
def _(order, order_id):
    return order.process(ChangeOrderStatus(order_id=order_id, status="Confirmed"))


@when("the order is shipped", target_fixture="order")
def _(order, order_id):
    return order.process(ChangeOrderStatus(order_id=order_id, status="Shipped"))


@when("the order is delivered", target_fixture="order")
def _(order, order_id):
    return order.process(ChangeOrderStatus(order_id=order_id, status="Delivered"))


@when(parsers.cfparse('the order status is set to "{status}"'), target_fixture="order")
def _(order, order_id, status):
    return order.process(ChangeOrderStatus(order_id=order_id, status=status))
