"""CourierProfile aggregate — availability, active deliveries and earnings.

A courier is ``busy`` exactly while it holds active deliveries. The status is
derived from the delivery set by the coordinator; couriers can only toggle
between available, offline and on_break while idle.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change
from protean.exceptions import ValidationError
from protean.fields import Boolean, DateTime, Float, HasMany, Identifier, Integer, String, ValueObject

from marketplace.courier.events import (
    CommissionRateUpdated,
    CourierDeliveryCompleted,
    CourierLocationUpdated,
    CourierRegistered,
    CourierStatusChanged,
    CourierSuspended,
    CourierUnsuspended,
    CourierVerificationReviewed,
)
from marketplace.domain import marketplace
from marketplace.errors import ConflictError, parse_choice
from marketplace.shared.geo import GeoPoint

DEFAULT_COMMISSION_RATE = 80.0


class CourierStatus(Enum):
    AVAILABLE = "available"
    BUSY = "busy"
    OFFLINE = "offline"
    ON_BREAK = "on_break"


class VerificationStatus(Enum):
    PENDING = "pending"
    APPROVED = "approved"
    REJECTED = "rejected"


@marketplace.entity(part_of="CourierProfile")
class ActiveDelivery:
    order_id = Identifier(required=True)
    accepted_at = DateTime(required=True)


@marketplace.aggregate
class CourierProfile:
    account_id: Identifier(required=True)
    name: String(required=True, max_length=150)
    phone_number: String(max_length=30)
    zone_id: Identifier()
    status: String(choices=CourierStatus, default=CourierStatus.OFFLINE.value)
    active_deliveries: HasMany(ActiveDelivery)
    commission_rate: Float(default=DEFAULT_COMMISSION_RATE, min_value=0.0, max_value=100.0)
    total_deliveries: Integer(default=0, min_value=0)
    total_earnings: Float(default=0.0, min_value=0.0)
    current_location: ValueObject(GeoPoint)
    last_location_update: DateTime()
    verification_status: String(choices=VerificationStatus, default=VerificationStatus.PENDING.value)
    is_suspended: Boolean(default=False)
    suspension_reason: String(max_length=500)
    suspended_by: Identifier()
    suspended_at: DateTime()
    registered_at: DateTime()
    revision: Integer(default=0)

    @classmethod
    def register(cls, account_id, name, phone_number=None, zone_id=None, commission_rate=None):
        now = datetime.now(UTC)
        courier = cls(
            account_id=account_id,
            name=name,
            phone_number=phone_number,
            zone_id=zone_id,
            commission_rate=DEFAULT_COMMISSION_RATE if commission_rate is None else commission_rate,
            registered_at=now,
        )
        courier.raise_(
            CourierRegistered(
                courier_id=courier.id,
                account_id=account_id,
                name=name,
                zone_id=zone_id,
                registered_at=now,
            )
        )
        return courier

    # -------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------
    @property
    def active_order_ids(self) -> list[str]:
        return [str(delivery.order_id) for delivery in self.active_deliveries]

    def has_delivery(self, order_id) -> bool:
        return str(order_id) in self.active_order_ids

    @property
    def is_verified(self) -> bool:
        return self.verification_status == VerificationStatus.APPROVED.value

    @property
    def can_take_orders(self) -> bool:
        return not self.is_suspended and self.is_verified

    # -------------------------------------------------------------------
    # Availability
    # -------------------------------------------------------------------
    def _bump(self):
        self.revision = (self.revision or 0) + 1

    def _set_status(self, status: CourierStatus):
        previous = self.status
        if previous == status.value:
            return
        self.status = status.value
        self.raise_(
            CourierStatusChanged(
                courier_id=self.id,
                previous_status=previous,
                new_status=status.value,
                changed_at=datetime.now(UTC),
            )
        )

    def _idle_status(self) -> CourierStatus:
        return CourierStatus.OFFLINE if self.is_suspended else CourierStatus.AVAILABLE

    def change_status(self, status):
        target = parse_choice(CourierStatus, status)
        if target == CourierStatus.BUSY:
            raise ValidationError({"status": ["Busy is set by accepting an order"]})
        if self.active_deliveries:
            raise ValidationError({"status": ["Cannot change status while deliveries are in progress"]})
        if self.is_suspended and target == CourierStatus.AVAILABLE:
            raise ValidationError({"status": ["Suspended couriers cannot go online"]})

        self._set_status(target)
        self._bump()

    def update_location(self, longitude, latitude):
        now = datetime.now(UTC)
        self.current_location = GeoPoint(longitude=longitude, latitude=latitude)
        self.last_location_update = now
        self._bump()
        self.raise_(
            CourierLocationUpdated(
                courier_id=self.id,
                longitude=longitude,
                latitude=latitude,
                updated_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Deliveries
    # -------------------------------------------------------------------
    def take_delivery(self, order_id):
        if self.has_delivery(order_id):
            raise ConflictError({"order_id": [f"Order {order_id} is already an active delivery"]})

        with atomic_change(self):
            self.add_active_deliveries(ActiveDelivery(order_id=order_id, accepted_at=datetime.now(UTC)))
            self._set_status(CourierStatus.BUSY)
            self._bump()

    def _drop_delivery(self, order_id) -> bool:
        delivery = next((d for d in self.active_deliveries if str(d.order_id) == str(order_id)), None)
        if delivery is None:
            return False
        self.remove_active_deliveries(delivery)
        if not self.active_deliveries:
            self._set_status(self._idle_status())
        return True

    def complete_delivery(self, order_id, delivery_fee):
        """Credit a delivered order and release it; returns the amount earned."""
        earning = round((delivery_fee or 0.0) * (self.commission_rate or 0.0) / 100, 2)
        now = datetime.now(UTC)

        with atomic_change(self):
            self._drop_delivery(order_id)
            self.total_deliveries = (self.total_deliveries or 0) + 1
            self.total_earnings = round((self.total_earnings or 0.0) + earning, 2)
            self._bump()

        self.raise_(
            CourierDeliveryCompleted(
                courier_id=self.id,
                order_id=order_id,
                earning=earning,
                total_deliveries=self.total_deliveries,
                total_earnings=self.total_earnings,
                completed_at=now,
            )
        )
        return earning

    def release_delivery(self, order_id) -> bool:
        """Drop an order without crediting it (rejected or cancelled)."""
        with atomic_change(self):
            released = self._drop_delivery(order_id)
            if released:
                self._bump()
        return released

    # -------------------------------------------------------------------
    # Administration
    # -------------------------------------------------------------------
    def suspend(self, reason, suspended_by=None):
        if self.is_suspended:
            raise ConflictError({"is_suspended": ["Courier is already suspended"]})
        if not reason:
            raise ValidationError({"reason": ["A suspension reason is required"]})

        now = datetime.now(UTC)
        with atomic_change(self):
            self.is_suspended = True
            self.suspension_reason = reason
            self.suspended_by = suspended_by
            self.suspended_at = now
            # In-flight deliveries finish; the courier goes offline afterwards
            if not self.active_deliveries:
                self._set_status(CourierStatus.OFFLINE)
            self._bump()

        self.raise_(
            CourierSuspended(
                courier_id=self.id,
                zone_id=self.zone_id,
                suspended_by=suspended_by,
                reason=reason,
                suspended_at=now,
            )
        )

    def unsuspend(self, unsuspended_by=None):
        if not self.is_suspended:
            raise ConflictError({"is_suspended": ["Courier is not suspended"]})

        with atomic_change(self):
            self.is_suspended = False
            self.suspension_reason = None
            self.suspended_by = None
            self.suspended_at = None
            self._bump()

        self.raise_(
            CourierUnsuspended(
                courier_id=self.id,
                zone_id=self.zone_id,
                unsuspended_by=unsuspended_by,
                unsuspended_at=datetime.now(UTC),
            )
        )

    def update_commission_rate(self, rate, updated_by=None):
        if rate is None or not 0 <= rate <= 100:
            raise ValidationError({"commission_rate": ["Commission rate must be between 0 and 100"]})

        previous = self.commission_rate
        self.commission_rate = rate
        self._bump()
        self.raise_(
            CommissionRateUpdated(
                courier_id=self.id,
                previous_rate=previous,
                new_rate=rate,
                updated_by=updated_by,
            )
        )

    def review_verification(self, status, reviewed_by=None, notes=None):
        target = parse_choice(VerificationStatus, status, "verification_status")
        if target == VerificationStatus.PENDING:
            raise ValidationError({"verification_status": ["A review must approve or reject"]})

        self.verification_status = target.value
        self._bump()
        self.raise_(
            CourierVerificationReviewed(
                courier_id=self.id,
                verification_status=target.value,
                reviewed_by=reviewed_by,
                notes=notes,
                reviewed_at=datetime.now(UTC),
            )
        )
