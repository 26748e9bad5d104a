"""Domain events for DeliveryZone and StoreDeliveryZone."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from marketplace.domain import marketplace


@marketplace.event(part_of="DeliveryZone")
class ZoneCreated:
    """A delivery zone was defined."""

    __version__ = 1

    zone_id = Identifier(required=True)
    name = String(required=True)
    zone_type = String(required=True)
    parent_zone_id = Identifier()
    delivery_fee = Float(required=True)
    created_at = DateTime(required=True)


@marketplace.event(part_of="DeliveryZone")
class ZoneUpdated:
    """Zone settings or geometry changed."""

    __version__ = 1

    zone_id = Identifier(required=True)
    changed_fields = String()
    updated_at = DateTime(required=True)


@marketplace.event(part_of="DeliveryZone")
class ZoneDeactivated:
    """A zone was soft-deleted and no longer accepts coverage or lookups."""

    __version__ = 1

    zone_id = Identifier(required=True)
    deactivated_at = DateTime(required=True)


@marketplace.event(part_of="StoreDeliveryZone")
class StoreCoverageActivated:
    """A store started delivering into a zone."""

    __version__ = 1

    store_zone_id = Identifier(required=True)
    store_id = Identifier(required=True)
    zone_id = Identifier(required=True)
    priority = Integer()


@marketplace.event(part_of="StoreDeliveryZone")
class StoreCoverageDeactivated:
    """A store stopped delivering into a zone."""

    __version__ = 1

    store_zone_id = Identifier(required=True)
    store_id = Identifier(required=True)
    zone_id = Identifier(required=True)


@marketplace.event(part_of="StoreDeliveryZone")
class StoreCoverageSettingsUpdated:
    """A store changed its per-zone pricing overrides."""

    __version__ = 1

    store_zone_id = Identifier(required=True)
    store_id = Identifier(required=True)
    zone_id = Identifier(required=True)
    changed_fields = String()
