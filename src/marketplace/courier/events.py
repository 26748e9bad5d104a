"""Domain events for the CourierProfile aggregate."""

from protean.fields import DateTime, Float, Identifier, Integer, String

from marketplace.domain import marketplace


@marketplace.event(part_of="CourierProfile")
class CourierRegistered:
    """A courier profile was created for an account."""

    __version__ = 1

    courier_id = Identifier(required=True)
    account_id = Identifier(required=True)
    name = String(required=True)
    zone_id = Identifier()
    registered_at = DateTime(required=True)


@marketplace.event(part_of="CourierProfile")
class CourierStatusChanged:
    """Availability changed (available, busy, offline, on_break)."""

    __version__ = 1

    courier_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    changed_at = DateTime(required=True)


@marketplace.event(part_of="CourierProfile")
class CourierLocationUpdated:
    __version__ = 1

    courier_id = Identifier(required=True)
    longitude = Float(required=True)
    latitude = Float(required=True)
    updated_at = DateTime(required=True)


@marketplace.event(part_of="CourierProfile")
class CourierDeliveryCompleted:
    """A delivered order was credited to the courier."""

    __version__ = 1

    courier_id = Identifier(required=True)
    order_id = Identifier(required=True)
    earning = Float(required=True)
    total_deliveries = Integer(required=True)
    total_earnings = Float(required=True)
    completed_at = DateTime(required=True)


@marketplace.event(part_of="CourierProfile")
class CourierSuspended:
    __version__ = 1

    courier_id = Identifier(required=True)
    zone_id = Identifier()
    suspended_by = Identifier()
    reason = String(required=True)
    suspended_at = DateTime(required=True)


@marketplace.event(part_of="CourierProfile")
class CourierUnsuspended:
    __version__ = 1

    courier_id = Identifier(required=True)
    zone_id = Identifier()
    unsuspended_by = Identifier()
    unsuspended_at = DateTime(required=True)


@marketplace.event(part_of="CourierProfile")
class CommissionRateUpdated:
    __version__ = 1

    courier_id = Identifier(required=True)
    previous_rate = Float(required=True)
    new_rate = Float(required=True)
    updated_by = Identifier()


@marketplace.event(part_of="CourierProfile")
class CourierVerificationReviewed:
    __version__ = 1

    courier_id = Identifier(required=True)
    verification_status = String(required=True)
    reviewed_by = Identifier()
    notes = String()
    reviewed_at = DateTime(required=True)
