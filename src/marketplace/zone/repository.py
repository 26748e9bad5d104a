"""Query repositories for zones and store coverage rows."""

from marketplace.domain import marketplace
from marketplace.zone.store_zone import StoreDeliveryZone
from marketplace.zone.zone import DeliveryZone, ZoneStatus


@marketplace.repository(part_of=DeliveryZone)
class DeliveryZoneRepository:
    def find_by_name(self, name: str) -> DeliveryZone | None:
        results = self._dao.query.filter(name=name).all().items
        return results[0] if results else None

    def find_active(self, zone_type: str | None = None) -> list[DeliveryZone]:
        query = self._dao.query.filter(status=ZoneStatus.ACTIVE.value)
        if zone_type:
            query = query.filter(zone_type=zone_type)
        return query.all().items

    def find_children(self, parent_zone_id: str, include_inactive: bool = False) -> list[DeliveryZone]:
        children = self._dao.query.filter(parent_zone_id=parent_zone_id).all().items
        if include_inactive:
            return children
        return [zone for zone in children if zone.status != ZoneStatus.INACTIVE.value]

    def find_all(self) -> list[DeliveryZone]:
        return self._dao.query.all().items


@marketplace.repository(part_of=StoreDeliveryZone)
class StoreDeliveryZoneRepository:
    def find_for(self, store_id: str, zone_id: str) -> StoreDeliveryZone | None:
        results = self._dao.query.filter(store_id=store_id, zone_id=zone_id).all().items
        return results[0] if results else None

    def find_active_for_store(self, store_id: str) -> list[StoreDeliveryZone]:
        rows = self._dao.query.filter(store_id=store_id, is_active=True).all().items
        return sorted(rows, key=lambda row: row.priority or 0, reverse=True)

    def find_active_for_zone(self, zone_id: str) -> list[StoreDeliveryZone]:
        rows = self._dao.query.filter(zone_id=zone_id, is_active=True).all().items
        return sorted(rows, key=lambda row: row.priority or 0, reverse=True)
