"""StoreDeliveryZone aggregate — a store's coverage of one zone, with pricing overrides."""

from datetime import UTC, datetime

from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, Identifier, Integer

from marketplace.domain import marketplace
from marketplace.zone.events import (
    StoreCoverageActivated,
    StoreCoverageDeactivated,
    StoreCoverageSettingsUpdated,
)

OVERRIDE_FIELDS = (
    "custom_delivery_fee",
    "custom_min_order_amount",
    "custom_free_delivery_threshold",
    "custom_estimated_time_min",
    "custom_estimated_time_max",
    "priority",
)


@marketplace.aggregate
class StoreDeliveryZone:
    """One row per (store, zone) pair.

    ``None`` in a ``custom_*`` field means "use the zone default". Rows are
    never deleted; removing coverage flips ``is_active``.
    """

    store_id = Identifier(required=True)
    zone_id = Identifier(required=True)
    custom_delivery_fee = Float(min_value=0.0)
    custom_min_order_amount = Float(min_value=0.0)
    custom_free_delivery_threshold = Float(min_value=0.0)
    custom_estimated_time_min = Integer(min_value=0)
    custom_estimated_time_max = Integer(min_value=0)
    priority = Integer(default=0)
    is_active = Boolean(default=True)
    created_at = DateTime()
    updated_at = DateTime()

    @classmethod
    def register(cls, store_id, zone_id, **overrides):
        now = datetime.now(UTC)
        row = cls(store_id=store_id, zone_id=zone_id, created_at=now, updated_at=now, **overrides)
        row._raise_activated()
        return row

    def reactivate(self, **overrides):
        """Apply new overrides; returns True if the row went from inactive to active."""
        self._apply(overrides)
        self.updated_at = datetime.now(UTC)
        if self.is_active:
            return False
        self.is_active = True
        self._raise_activated()
        return True

    def deactivate(self):
        """Returns True if the row was active."""
        if not self.is_active:
            return False
        self.is_active = False
        self.updated_at = datetime.now(UTC)
        self.raise_(
            StoreCoverageDeactivated(
                store_zone_id=self.id,
                store_id=self.store_id,
                zone_id=self.zone_id,
            )
        )
        return True

    def update_settings(self, **overrides):
        self._apply(overrides)
        self.updated_at = datetime.now(UTC)
        self.raise_(
            StoreCoverageSettingsUpdated(
                store_zone_id=self.id,
                store_id=self.store_id,
                zone_id=self.zone_id,
                changed_fields=",".join(sorted(overrides)),
            )
        )

    def _apply(self, overrides):
        unknown = set(overrides) - set(OVERRIDE_FIELDS)
        if unknown:
            raise ValidationError({field: ["Not a store zone setting"] for field in sorted(unknown)})
        for field, value in overrides.items():
            setattr(self, field, value)

    def _raise_activated(self):
        self.raise_(
            StoreCoverageActivated(
                store_zone_id=self.id,
                store_id=self.store_id,
                zone_id=self.zone_id,
                priority=self.priority,
            )
        )
