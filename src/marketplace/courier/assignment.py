"""Courier assignment — candidate search, assign, accept and reject.

Flow:
    store/admin assigns a READY order to a courier (courier untouched)
    → the courier accepts (order locked, courier busy)
    or rejects (order unassigned again, back to the dispatch pool)
"""

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from marketplace.courier.courier import CourierProfile
from marketplace.courier.profile import courier_for_account
from marketplace.domain import marketplace
from marketplace.order.order import Order
from marketplace.shared.geo import haversine_km
from marketplace.shared.revision import check_revision

logger = structlog.get_logger(__name__)

CANDIDATE_RADIUS_KM = 10
CANDIDATE_FALLBACK_LIMIT = 20


def find_candidates(order_id) -> list[CourierProfile]:
    """Couriers that could take the order, nearest first.

    Without a delivery point there is nothing to measure against, so any
    available courier qualifies, capped at ``CANDIDATE_FALLBACK_LIMIT``.
    """
    order = current_domain.repository_for(Order).get(order_id)
    available = current_domain.repository_for(CourierProfile).find_available()

    point = order.delivery_point
    if point is None:
        return available[:CANDIDATE_FALLBACK_LIMIT]

    ranked = []
    for courier in available:
        location = courier.current_location
        if location is None:
            continue
        distance = haversine_km(point.longitude, point.latitude, location.longitude, location.latitude)
        if distance <= CANDIDATE_RADIUS_KM:
            ranked.append((distance, courier))
    ranked.sort(key=lambda pair: pair[0])
    return [courier for _, courier in ranked]


@marketplace.command(part_of="Order")
class AssignOrderToCourier:
    order_id = Identifier(required=True)
    courier_id = Identifier(required=True)
    assigned_by = Identifier()
    expected_revision = Integer()


@marketplace.command(part_of="Order")
class AcceptOrder:
    account_id = Identifier(required=True)
    order_id = Identifier(required=True)
    notes = Text()
    expected_revision = Integer()


@marketplace.command(part_of="Order")
class RejectOrder:
    account_id = Identifier(required=True)
    order_id = Identifier(required=True)
    reason = String(required=True, max_length=500)
    expected_revision = Integer()


@marketplace.command_handler(part_of=Order)
class CourierAssignmentHandler:
    @handle(AssignOrderToCourier)
    def assign(self, command):
        order_repo = current_domain.repository_for(Order)
        order = order_repo.get(command.order_id)
        check_revision(order, command.expected_revision)

        courier = current_domain.repository_for(CourierProfile).get(command.courier_id)
        if courier.is_suspended:
            raise ValidationError({"courier_id": ["Courier is suspended"]})
        if not courier.is_verified:
            raise ValidationError({"courier_id": ["Courier is not verified"]})

        order.assign_courier(courier.id, assigned_by=command.assigned_by)
        order_repo.add(order)

        logger.info(
            "Order assigned to courier",
            order_id=str(order.id),
            courier_id=str(courier.id),
            assigned_by=str(command.assigned_by) if command.assigned_by else None,
        )

    @handle(AcceptOrder)
    def accept(self, command):
        courier = courier_for_account(command.account_id)
        order_repo = current_domain.repository_for(Order)
        order = order_repo.get(command.order_id)
        check_revision(order, command.expected_revision)

        order.accept_by_courier(courier.id, notes=command.notes)
        courier.take_delivery(order.id)

        order_repo.add(order)
        current_domain.repository_for(CourierProfile).add(courier)

        logger.info("Courier accepted order", order_id=str(order.id), courier_id=str(courier.id))

    @handle(RejectOrder)
    def reject(self, command):
        courier = courier_for_account(command.account_id)
        order_repo = current_domain.repository_for(Order)
        order = order_repo.get(command.order_id)
        check_revision(order, command.expected_revision)

        order.reject_by_courier(courier.id, reason=command.reason)
        order_repo.add(order)

        if courier.release_delivery(order.id):
            current_domain.repository_for(CourierProfile).add(courier)

        logger.info(
            "Courier rejected order",
            order_id=str(order.id),
            courier_id=str(courier.id),
            reason=command.reason,
        )
