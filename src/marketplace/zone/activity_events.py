"""Keeps zone counters in step with order and courier activity.

Counters are statistics, not invariants: a missing or deleted zone is logged
and skipped.
"""

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from marketplace.courier.events import CourierRegistered, CourierSuspended, CourierUnsuspended
from marketplace.domain import marketplace
from marketplace.order.events import OrderPlaced
from marketplace.zone.zone import DeliveryZone

logger = structlog.get_logger(__name__)


def _bump(zone_id, counter, delta):
    if not zone_id:
        return
    repo = current_domain.repository_for(DeliveryZone)
    try:
        zone = repo.get(zone_id)
    except ObjectNotFoundError:
        logger.warning("Zone counter update skipped, zone not found", zone_id=str(zone_id), counter=counter)
        return
    zone.adjust_counter(counter, delta)
    repo.add(zone)


@marketplace.event_handler(part_of=DeliveryZone, stream_category="marketplace::order")
class ZoneOrderActivityHandler:
    @handle(OrderPlaced)
    def on_order_placed(self, event: OrderPlaced) -> None:
        _bump(event.zone_id, "total_orders", 1)


@marketplace.event_handler(part_of=DeliveryZone, stream_category="marketplace::courier_profile")
class ZoneCourierActivityHandler:
    @handle(CourierRegistered)
    def on_courier_registered(self, event: CourierRegistered) -> None:
        _bump(event.zone_id, "active_couriers", 1)

    @handle(CourierSuspended)
    def on_courier_suspended(self, event: CourierSuspended) -> None:
        _bump(event.zone_id, "active_couriers", -1)

    @handle(CourierUnsuspended)
    def on_courier_unsuspended(self, event: CourierUnsuspended) -> None:
        _bump(event.zone_id, "active_couriers", 1)
