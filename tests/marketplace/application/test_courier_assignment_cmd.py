"""Application tests for candidate search, assignment, acceptance and rejection."""

import json

import pytest
from protean import current_domain
from protean.exceptions import ObjectNotFoundError, ValidationError

from marketplace.courier.administration import ReviewCourierVerification, SuspendCourier
from marketplace.courier.assignment import AcceptOrder, AssignOrderToCourier, RejectOrder, find_candidates
from marketplace.courier.courier import CourierProfile
from marketplace.courier.profile import RegisterCourier, UpdateCourierLocation, UpdateCourierStatus
from marketplace.errors import ConflictError, NotAuthorizedError
from marketplace.order.order import Order
from marketplace.order.placement import PlaceOrder
from marketplace.order.status import UpdateOrderStatus


def _ready_order(location=None):
    address = {"full_name": "Lina", "phone_number": "1", "full_address": "12 Baghdad St"}
    if location:
        address["location"] = {"longitude": location[0], "latitude": location[1]}
    order_id = current_domain.process(
        PlaceOrder(
            customer_id="cust-001",
            store_id="store-001",
            items=json.dumps([{"product_id": "p1", "name": "Manakish", "unit_price": 2500.0, "quantity": 2}]),
            delivery_address=json.dumps(address),
        ),
        asynchronous=False,
    )
    for status in ("confirmed", "preparing", "ready"):
        current_domain.process(UpdateOrderStatus(order_id=order_id, status=status), asynchronous=False)
    return order_id


def _online_courier(account_id, location=None, verified=True):
    courier_id = current_domain.process(RegisterCourier(account_id=account_id, name=account_id), asynchronous=False)
    if verified:
        current_domain.process(
            ReviewCourierVerification(courier_id=courier_id, verification_status="approved"),
            asynchronous=False,
        )
    current_domain.process(UpdateCourierStatus(account_id=account_id, status="available"), asynchronous=False)
    if location:
        current_domain.process(
            UpdateCourierLocation(account_id=account_id, longitude=location[0], latitude=location[1]),
            asynchronous=False,
        )
    return courier_id


def _assign(order_id, courier_id):
    current_domain.process(AssignOrderToCourier(order_id=order_id, courier_id=courier_id), asynchronous=False)


class TestFindCandidates:
    def test_nearest_first_within_radius(self):
        order_id = _ready_order(location=(36.29, 33.51))
        far = _online_courier("acct-far", location=(36.35, 33.55))
        near = _online_courier("acct-near", location=(36.291, 33.511))
        _online_courier("acct-out", location=(37.13, 36.20))

        candidates = find_candidates(order_id)
        assert [str(c.id) for c in candidates] == [near, far]

    def test_unverified_and_offline_excluded(self):
        order_id = _ready_order(location=(36.29, 33.51))
        _online_courier("acct-new", location=(36.29, 33.51), verified=False)
        offline = _online_courier("acct-off", location=(36.29, 33.51))
        current_domain.process(UpdateCourierStatus(account_id="acct-off", status="offline"), asynchronous=False)

        assert offline not in [str(c.id) for c in find_candidates(order_id)]
        assert find_candidates(order_id) == []

    def test_without_delivery_point_any_available_courier(self):
        order_id = _ready_order()
        courier_id = _online_courier("acct-001")
        assert [str(c.id) for c in find_candidates(order_id)] == [courier_id]


class TestAssignOrder:
    def test_assign_does_not_touch_courier(self):
        order_id = _ready_order()
        courier_id = _online_courier("acct-001")
        _assign(order_id, courier_id)

        order = current_domain.repository_for(Order).get(order_id)
        courier = current_domain.repository_for(CourierProfile).get(courier_id)
        assert order.courier_id == courier_id
        assert courier.status == "available"
        assert courier.active_deliveries == []

    def test_suspended_courier_cannot_be_assigned(self):
        order_id = _ready_order()
        courier_id = _online_courier("acct-001")
        current_domain.process(SuspendCourier(courier_id=courier_id, reason="Complaints"), asynchronous=False)
        with pytest.raises(ValidationError):
            _assign(order_id, courier_id)

    def test_unverified_courier_cannot_be_assigned(self):
        order_id = _ready_order()
        courier_id = _online_courier("acct-001", verified=False)
        with pytest.raises(ValidationError):
            _assign(order_id, courier_id)

    def test_unknown_courier(self):
        order_id = _ready_order()
        with pytest.raises(ObjectNotFoundError):
            _assign(order_id, "courier-missing")


class TestAcceptOrder:
    def test_accept_makes_courier_busy(self):
        order_id = _ready_order()
        courier_id = _online_courier("acct-001")
        _assign(order_id, courier_id)
        current_domain.process(AcceptOrder(account_id="acct-001", order_id=order_id), asynchronous=False)

        order = current_domain.repository_for(Order).get(order_id)
        courier = current_domain.repository_for(CourierProfile).get(courier_id)
        assert order.courier_accepted_at is not None
        assert courier.status == "busy"
        assert courier.active_order_ids == [order_id]

    def test_other_courier_cannot_accept(self):
        order_id = _ready_order()
        courier_id = _online_courier("acct-001")
        intruder_id = _online_courier("acct-002")
        _assign(order_id, courier_id)

        with pytest.raises(NotAuthorizedError):
            current_domain.process(AcceptOrder(account_id="acct-002", order_id=order_id), asynchronous=False)

        order = current_domain.repository_for(Order).get(order_id)
        intruder = current_domain.repository_for(CourierProfile).get(intruder_id)
        assert order.courier_accepted_at is None
        assert intruder.active_deliveries == []

    def test_reassign_after_acceptance_conflicts(self):
        order_id = _ready_order()
        courier_id = _online_courier("acct-001")
        other_id = _online_courier("acct-002")
        _assign(order_id, courier_id)
        current_domain.process(AcceptOrder(account_id="acct-001", order_id=order_id), asynchronous=False)

        with pytest.raises(ConflictError):
            _assign(order_id, other_id)

    def test_account_without_profile(self):
        order_id = _ready_order()
        with pytest.raises(ObjectNotFoundError):
            current_domain.process(AcceptOrder(account_id="acct-ghost", order_id=order_id), asynchronous=False)


class TestRejectOrder:
    def test_reject_unassigns_order(self):
        order_id = _ready_order()
        courier_id = _online_courier("acct-001")
        _assign(order_id, courier_id)
        current_domain.process(
            RejectOrder(account_id="acct-001", order_id=order_id, reason="Too far"),
            asynchronous=False,
        )
        order = current_domain.repository_for(Order).get(order_id)
        assert order.courier_id is None

    def test_reject_after_accept_frees_courier(self):
        order_id = _ready_order()
        courier_id = _online_courier("acct-001")
        _assign(order_id, courier_id)
        current_domain.process(AcceptOrder(account_id="acct-001", order_id=order_id), asynchronous=False)
        current_domain.process(
            RejectOrder(account_id="acct-001", order_id=order_id, reason="Bike broke down"),
            asynchronous=False,
        )

        courier = current_domain.repository_for(CourierProfile).get(courier_id)
        assert courier.status == "available"
        assert courier.active_deliveries == []

    def test_rejected_order_can_be_reassigned(self):
        order_id = _ready_order()
        first = _online_courier("acct-001")
        second = _online_courier("acct-002")
        _assign(order_id, first)
        current_domain.process(RejectOrder(account_id="acct-001", order_id=order_id, reason="Busy"), asynchronous=False)
        _assign(order_id, second)
        order = current_domain.repository_for(Order).get(order_id)
        assert order.courier_id == second
