"""Shared BDD fixtures and step definitions for the marketplace domain."""

import pytest
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, then, when

from marketplace.errors import ConflictError, NotAuthorizedError
from marketplace.order.events import (
    CourierOrderAccepted,
    DeliveryStatusUpdated,
    OrderAssignedToCourier,
    OrderCancelled,
    OrderPlaced,
    OrderStatusChanged,
)
from marketplace.order.order import DeliveryAddress, Order
from marketplace.payment.events import PaymentCompleted, PaymentProcessed, PaymentRefunded
from marketplace.payment.payment import Payment

# Map event name strings to classes for dynamic lookup
_EVENT_CLASSES = {
    "OrderPlaced": OrderPlaced,
    "OrderStatusChanged": OrderStatusChanged,
    "OrderCancelled": OrderCancelled,
    "OrderAssignedToCourier": OrderAssignedToCourier,
    "CourierOrderAccepted": CourierOrderAccepted,
    "DeliveryStatusUpdated": DeliveryStatusUpdated,
    "PaymentProcessed": PaymentProcessed,
    "PaymentCompleted": PaymentCompleted,
    "PaymentRefunded": PaymentRefunded,
}

_ERROR_CLASSES = {
    "validation": ValidationError,
    "conflict": ConflictError,
    "authorization": NotAuthorizedError,
}


@pytest.fixture()
def error():
    """Container for the exception raised by a When step."""
    return {"exc": None}


def capture(error, action, *args, **kwargs):
    try:
        return action(*args, **kwargs)
    except (ValidationError, NotAuthorizedError) as exc:
        error["exc"] = exc
        return None


# ---------------------------------------------------------------------------
# Order Given steps
# ---------------------------------------------------------------------------
def _make_order(fee):
    order = Order.place(
        order_number="ORD-260101-0001",
        customer_id="cust-001",
        store_id="store-001",
        items_data=[{"product_id": "prod-001", "name": "Falafel wrap", "unit_price": 1500.0, "quantity": 2}],
        delivery_address=DeliveryAddress(full_name="Lina Haddad", phone_number="+963900000001", full_address="x"),
        delivery_fee=fee,
    )
    order._events.clear()
    return order


@given(parsers.cfparse("a pending order with a delivery fee of {fee:f}"), target_fixture="order")
def _pending_order(fee):
    return _make_order(fee)


@given("a pending order", target_fixture="order")
def _default_pending_order():
    return _make_order(500.0)


@given(parsers.cfparse('the order has moved to "{status}"'), target_fixture="order")
def _order_moved_to(order, status):
    path = ["confirmed", "preparing", "ready", "picked_up", "delivering", "delivered"]
    for step in path[: path.index(status) + 1]:
        order.transition_to(step)
    order._events.clear()
    return order


@given(parsers.cfparse('the order is assigned to courier "{courier_id}"'), target_fixture="order")
def _order_assigned(order, courier_id):
    order.assign_courier(courier_id)
    order._events.clear()
    return order


# ---------------------------------------------------------------------------
# Payment Given steps
# ---------------------------------------------------------------------------
@given(parsers.cfparse('a completed {method} payment of {amount:f}'), target_fixture="payment")
def _completed_payment(method, amount):
    payment = Payment.create(
        order_id="ord-001",
        customer_id="cust-001",
        store_id="store-001",
        amount=amount,
        payment_method=method,
    )
    payment.confirm()
    payment._events.clear()
    return payment


# ---------------------------------------------------------------------------
# Shared When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse('the order is moved to "{status}"'), target_fixture="order")
def _move_order(order, status, error):
    capture(error, order.transition_to, status, actor="staff-001")
    return order


# ---------------------------------------------------------------------------
# Shared Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse('the order status is "{status}"'))
def _order_status(order, status):
    assert order.order_status == status


@then(parsers.cfparse("the order history has {count:d} entries"))
def _history_length(order, count):
    assert len(order.status_history) == count


@then(parsers.cfparse('the payment status is "{status}"'))
def _payment_status(payment, status):
    assert payment.status == status


@then(parsers.cfparse("the action fails with a {kind} error"))
def _action_failed(error, kind):
    exc = error["exc"]
    assert exc is not None, "Expected the action to fail"
    assert isinstance(exc, _ERROR_CLASSES[kind]), f"Expected {kind} error, got {type(exc).__name__}"


@then("the action succeeds")
def _action_succeeded(error):
    assert error["exc"] is None, f"Unexpected error: {error['exc']}"


@then(parsers.cfparse("a {event_type} event is raised on the {target}"))
def _event_raised(request, event_type, target):
    aggregate = request.getfixturevalue(target)
    event_cls = _EVENT_CLASSES[event_type]
    assert any(
        isinstance(e, event_cls) for e in aggregate._events
    ), f"No {event_type} event found. Events: {[type(e).__name__ for e in aggregate._events]}"
