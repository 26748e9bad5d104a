"""Courier self-service — registration, availability and location.

Couriers act through their account id; the profile id is resolved here.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Float, Identifier, Integer, String
from protean.utils.globals import current_domain

from marketplace.courier.courier import CourierProfile
from marketplace.domain import marketplace
from marketplace.errors import ConflictError
from marketplace.order.order import Order
from marketplace.shared.geo import haversine_km
from marketplace.shared.revision import check_revision

logger = structlog.get_logger(__name__)

AVAILABLE_COURIERS_DEFAULT_RADIUS_M = 10000
AVAILABLE_COURIERS_LIMIT = 20


@marketplace.command(part_of="CourierProfile")
class RegisterCourier:
    account_id = Identifier(required=True)
    name = String(required=True, max_length=150)
    phone_number = String(max_length=30)
    zone_id = Identifier()
    commission_rate = Float()


@marketplace.command(part_of="CourierProfile")
class UpdateCourierStatus:
    account_id = Identifier(required=True)
    status = String(required=True, max_length=20)
    expected_revision = Integer()


@marketplace.command(part_of="CourierProfile")
class UpdateCourierLocation:
    account_id = Identifier(required=True)
    longitude = Float(required=True, min_value=-180.0, max_value=180.0)
    latitude = Float(required=True, min_value=-90.0, max_value=90.0)


def courier_for_account(account_id) -> CourierProfile:
    courier = current_domain.repository_for(CourierProfile).find_by_account(str(account_id))
    if courier is None:
        raise ObjectNotFoundError(f"No courier profile for account {account_id}")
    return courier


@marketplace.command_handler(part_of=CourierProfile)
class CourierProfileHandler:
    @handle(RegisterCourier)
    def register(self, command):
        repo = current_domain.repository_for(CourierProfile)
        if repo.find_by_account(str(command.account_id)) is not None:
            raise ConflictError({"account_id": ["Account already has a courier profile"]})

        courier = CourierProfile.register(
            account_id=command.account_id,
            name=command.name,
            phone_number=command.phone_number,
            zone_id=command.zone_id,
            commission_rate=command.commission_rate,
        )
        repo.add(courier)
        logger.info("Courier registered", courier_id=str(courier.id), account_id=str(command.account_id))
        return str(courier.id)

    @handle(UpdateCourierStatus)
    def update_status(self, command):
        courier = courier_for_account(command.account_id)
        check_revision(courier, command.expected_revision)
        courier.change_status(command.status)
        current_domain.repository_for(CourierProfile).add(courier)

    @handle(UpdateCourierLocation)
    def update_location(self, command):
        courier = courier_for_account(command.account_id)
        courier.update_location(command.longitude, command.latitude)
        current_domain.repository_for(CourierProfile).add(courier)


def find_available_couriers(
    longitude: float,
    latitude: float,
    max_distance_m: float = AVAILABLE_COURIERS_DEFAULT_RADIUS_M,
    limit: int = AVAILABLE_COURIERS_LIMIT,
) -> list[CourierProfile]:
    """Available, verified, unsuspended couriers with a known location, nearest first."""
    ranked = []
    for courier in current_domain.repository_for(CourierProfile).find_available():
        location = courier.current_location
        if location is None:
            continue
        distance_m = haversine_km(longitude, latitude, location.longitude, location.latitude) * 1000
        if distance_m <= max_distance_m:
            ranked.append((distance_m, courier))
    ranked.sort(key=lambda pair: pair[0])
    return [courier for _, courier in ranked[:limit]]


def active_delivery_orders(account_id) -> list[Order]:
    courier = courier_for_account(account_id)
    repo = current_domain.repository_for(Order)
    return [repo.get(order_id) for order_id in courier.active_order_ids]


def earnings_summary(account_id) -> dict:
    courier = courier_for_account(account_id)
    deliveries = courier.total_deliveries or 0
    earnings = courier.total_earnings or 0.0
    return {
        "courier_id": str(courier.id),
        "total_deliveries": deliveries,
        "total_earnings": earnings,
        "average_per_delivery": round(earnings / deliveries, 2) if deliveries else 0.0,
        "commission_rate": courier.commission_rate,
        "active_deliveries": len(courier.active_deliveries),
    }
