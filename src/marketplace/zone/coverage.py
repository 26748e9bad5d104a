"""Store coverage — which stores deliver into which zones, and at what price.

Adding or removing coverage also moves the zone's ``active_stores`` counter
in the same unit of work.
"""

import structlog
from protean import handle
from protean.exceptions import ObjectNotFoundError
from protean.fields import Float, Identifier, Integer
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.zone.store_zone import OVERRIDE_FIELDS, StoreDeliveryZone
from marketplace.zone.zone import DeliveryZone

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="StoreDeliveryZone")
class AddStoreToZone:
    store_id = Identifier(required=True)
    zone_id = Identifier(required=True)
    custom_delivery_fee = Float()
    custom_min_order_amount = Float()
    custom_free_delivery_threshold = Float()
    custom_estimated_time_min = Integer()
    custom_estimated_time_max = Integer()
    priority = Integer()


@marketplace.command(part_of="StoreDeliveryZone")
class RemoveStoreFromZone:
    store_id = Identifier(required=True)
    zone_id = Identifier(required=True)


@marketplace.command(part_of="StoreDeliveryZone")
class UpdateStoreZoneSettings:
    store_id = Identifier(required=True)
    zone_id = Identifier(required=True)
    custom_delivery_fee = Float()
    custom_min_order_amount = Float()
    custom_free_delivery_threshold = Float()
    custom_estimated_time_min = Integer()
    custom_estimated_time_max = Integer()
    priority = Integer()


def _overrides(command):
    return {field: getattr(command, field) for field in OVERRIDE_FIELDS if getattr(command, field) is not None}


@marketplace.command_handler(part_of=StoreDeliveryZone)
class StoreCoverageHandler:
    @handle(AddStoreToZone)
    def add_store_to_zone(self, command):
        zone_repo = current_domain.repository_for(DeliveryZone)
        try:
            zone = zone_repo.get(command.zone_id)
        except ObjectNotFoundError:
            raise ObjectNotFoundError(f"Delivery zone {command.zone_id} not found") from None
        if not zone.is_active:
            raise ObjectNotFoundError(f"Delivery zone {command.zone_id} is not active")

        repo = current_domain.repository_for(StoreDeliveryZone)
        row = repo.find_for(str(command.store_id), str(command.zone_id))
        if row is None:
            row = StoreDeliveryZone.register(
                store_id=command.store_id,
                zone_id=command.zone_id,
                **_overrides(command),
            )
            activated = True
        else:
            activated = row.reactivate(**_overrides(command))
        repo.add(row)

        if activated:
            zone.adjust_counter("active_stores", 1)
            zone_repo.add(zone)

        logger.info(
            "Store coverage registered",
            store_id=str(command.store_id),
            zone_id=str(command.zone_id),
            activated=activated,
        )
        return str(row.id)

    @handle(RemoveStoreFromZone)
    def remove_store_from_zone(self, command):
        repo = current_domain.repository_for(StoreDeliveryZone)
        row = repo.find_for(str(command.store_id), str(command.zone_id))
        if row is None or not row.deactivate():
            return

        repo.add(row)

        zone_repo = current_domain.repository_for(DeliveryZone)
        try:
            zone = zone_repo.get(command.zone_id)
        except ObjectNotFoundError:
            logger.warning("Coverage removed for unknown zone", zone_id=str(command.zone_id))
            return
        zone.adjust_counter("active_stores", -1)
        zone_repo.add(zone)

    @handle(UpdateStoreZoneSettings)
    def update_store_zone_settings(self, command):
        repo = current_domain.repository_for(StoreDeliveryZone)
        row = repo.find_for(str(command.store_id), str(command.zone_id))
        if row is None:
            raise ObjectNotFoundError(f"Store {command.store_id} does not cover zone {command.zone_id}")

        row.update_settings(**_overrides(command))
        repo.add(row)


def store_zones(store_id) -> list[StoreDeliveryZone]:
    """Active coverage rows for a store, highest priority first."""
    return current_domain.repository_for(StoreDeliveryZone).find_active_for_store(str(store_id))


def zone_stores(zone_id) -> list[StoreDeliveryZone]:
    """Active coverage rows for a zone, highest priority first."""
    return current_domain.repository_for(StoreDeliveryZone).find_active_for_zone(str(zone_id))
