"""DeliveryZone aggregate — a priced, optionally nested delivery area.

A zone carries the default pricing used for every store delivering into it,
an optional polygon for point-in-polygon resolution, and counters that the
coordinator maintains from order, store and courier activity.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, Identifier, Integer, String, Text, ValueObject

from marketplace.domain import marketplace
from marketplace.shared.geo import GeoPoint, dump_polygon, load_polygon, ring_centroid, validate_polygon
from marketplace.zone.events import ZoneCreated, ZoneDeactivated, ZoneUpdated


class ZoneStatus(Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    SUSPENDED = "suspended"


class ZoneType(Enum):
    GOVERNORATE = "governorate"
    CITY = "city"
    DISTRICT = "district"
    NEIGHBORHOOD = "neighborhood"


_COUNTERS = ("total_orders", "active_stores", "active_couriers")

# Fields an admin may change through update_details
_EDITABLE = (
    "name",
    "zone_type",
    "parent_zone_id",
    "delivery_fee",
    "min_order_amount",
    "free_delivery_threshold",
    "estimated_time_min",
    "estimated_time_max",
    "status",
)


@marketplace.aggregate
class DeliveryZone:
    name: String(required=True, max_length=100)
    zone_type: String(choices=ZoneType, default=ZoneType.CITY.value)
    parent_zone_id: Identifier()
    delivery_fee: Float(default=0.0, min_value=0.0)
    min_order_amount: Float(default=0.0, min_value=0.0)
    free_delivery_threshold: Float(min_value=0.0)
    estimated_time_min: Integer(default=30, min_value=0)
    estimated_time_max: Integer(default=60, min_value=0)
    polygon: Text()
    center: ValueObject(GeoPoint)
    status: String(choices=ZoneStatus, default=ZoneStatus.ACTIVE.value)
    total_orders: Integer(default=0, min_value=0)
    active_stores: Integer(default=0, min_value=0)
    active_couriers: Integer(default=0, min_value=0)
    created_by: Identifier()
    updated_by: Identifier()
    created_at: DateTime()
    updated_at: DateTime()

    @invariant.post
    def time_window_must_be_ordered(self):
        if (
            self.estimated_time_min is not None
            and self.estimated_time_max is not None
            and self.estimated_time_min > self.estimated_time_max
        ):
            raise ValidationError({"estimated_time_max": ["Maximum delivery time must not be below the minimum"]})

    @classmethod
    def create(cls, name, created_by=None, coordinates=None, **settings):
        now = datetime.now(UTC)
        zone = cls(name=name, created_by=created_by, created_at=now, updated_at=now, **settings)
        if coordinates:
            zone._apply_polygon(coordinates)

        zone.raise_(
            ZoneCreated(
                zone_id=zone.id,
                name=zone.name,
                zone_type=zone.zone_type,
                parent_zone_id=zone.parent_zone_id,
                delivery_fee=zone.delivery_fee,
                created_at=now,
            )
        )
        return zone

    # -------------------------------------------------------------------
    # Geometry
    # -------------------------------------------------------------------
    @property
    def coordinates(self) -> list | None:
        return load_polygon(self.polygon)

    def _apply_polygon(self, coordinates):
        coordinates = validate_polygon(coordinates)
        self.polygon = dump_polygon(coordinates)
        lng, lat = ring_centroid(coordinates)
        self.center = GeoPoint(longitude=lng, latitude=lat)

    # -------------------------------------------------------------------
    # Administration
    # -------------------------------------------------------------------
    def update_details(self, updated_by=None, coordinates=None, **changes):
        unknown = set(changes) - set(_EDITABLE)
        if unknown:
            raise ValidationError({field: ["Field cannot be updated"] for field in sorted(unknown)})

        for field, value in changes.items():
            setattr(self, field, value)
        if coordinates is not None:
            self._apply_polygon(coordinates)

        self.updated_by = updated_by
        self.updated_at = datetime.now(UTC)

        changed = sorted(changes) + (["polygon"] if coordinates is not None else [])
        self.raise_(
            ZoneUpdated(
                zone_id=self.id,
                changed_fields=",".join(changed),
                updated_at=self.updated_at,
            )
        )

    def deactivate(self, deactivated_by=None):
        if self.status == ZoneStatus.INACTIVE.value:
            raise ValidationError({"status": ["Zone is already inactive"]})

        self.status = ZoneStatus.INACTIVE.value
        self.updated_by = deactivated_by
        self.updated_at = datetime.now(UTC)
        self.raise_(ZoneDeactivated(zone_id=self.id, deactivated_at=self.updated_at))

    @property
    def is_active(self) -> bool:
        return self.status == ZoneStatus.ACTIVE.value

    # -------------------------------------------------------------------
    # Counters (coordinator-only)
    # -------------------------------------------------------------------
    def adjust_counter(self, counter, delta):
        if counter not in _COUNTERS:
            raise ValueError(f"Unknown zone counter: {counter}")
        setattr(self, counter, max(0, (getattr(self, counter) or 0) + delta))
