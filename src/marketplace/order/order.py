"""Order aggregate — the order status state machine.

State Machine:
    PENDING → CONFIRMED → PREPARING → READY → PICKED_UP → DELIVERING → DELIVERED
    CANCELLED (from any state before DELIVERED)

Every status write appends to ``status_history``; the last history entry
always matches ``order_status``. ``payment_status`` mirrors the Payment
aggregate and is written only through ``marketplace.payment.ledger``.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import (
    DateTime,
    Float,
    HasMany,
    Identifier,
    Integer,
    String,
    Text,
    ValueObject,
)

from marketplace.domain import marketplace
from marketplace.errors import ConflictError, NotAuthorizedError, parse_choice
from marketplace.order.events import (
    CourierOrderAccepted,
    CourierOrderRejected,
    DeliveryStatusUpdated,
    OrderAssignedToCourier,
    OrderCancelled,
    OrderPlaced,
    OrderStatusChanged,
)
from marketplace.shared.geo import GeoPoint


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class OrderStatus(Enum):
    PENDING = "pending"
    CONFIRMED = "confirmed"
    PREPARING = "preparing"
    READY = "ready"
    PICKED_UP = "picked_up"
    DELIVERING = "delivering"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"


class PaymentMethod(Enum):
    CASH = "cash"
    CARD = "card"
    POINTS = "points"
    WALLET = "wallet"
    MIXED = "mixed"


class OrderPaymentStatus(Enum):
    PENDING = "pending"
    PAID = "paid"
    FAILED = "failed"
    REFUNDED = "refunded"


_VALID_TRANSITIONS = {
    OrderStatus.PENDING: {OrderStatus.CONFIRMED, OrderStatus.CANCELLED},
    OrderStatus.CONFIRMED: {OrderStatus.PREPARING, OrderStatus.CANCELLED},
    OrderStatus.PREPARING: {OrderStatus.READY, OrderStatus.CANCELLED},
    OrderStatus.READY: {OrderStatus.PICKED_UP, OrderStatus.CANCELLED},
    OrderStatus.PICKED_UP: {OrderStatus.DELIVERING},
    OrderStatus.DELIVERING: {OrderStatus.DELIVERED},
    OrderStatus.DELIVERED: set(),  # Terminal
    OrderStatus.CANCELLED: set(),  # Terminal
}

_TERMINAL_STATES = {OrderStatus.DELIVERED, OrderStatus.CANCELLED}

# Statuses a courier may set through the delivery flow
DELIVERY_STATUSES = {OrderStatus.PICKED_UP, OrderStatus.DELIVERING, OrderStatus.DELIVERED}

_MONEY_TOLERANCE = 0.005


# ---------------------------------------------------------------------------
# Value Objects
# ---------------------------------------------------------------------------
@marketplace.value_object(part_of="Order")
class DeliveryAddress:
    """Address snapshot taken from the customer's address book at placement time."""

    full_name = String(required=True, max_length=150)
    phone_number = String(required=True, max_length=30)
    full_address = String(required=True, max_length=500)
    city = String(max_length=100)
    district = String(max_length=100)
    notes = String(max_length=500)
    location = ValueObject(GeoPoint)


# ---------------------------------------------------------------------------
# Entities
# ---------------------------------------------------------------------------
@marketplace.entity(part_of="Order")
class OrderItem:
    product_id = Identifier(required=True)
    name = String(required=True, max_length=255)
    unit_price = Float(required=True, min_value=0.0)
    quantity = Integer(required=True, min_value=1)

    @property
    def line_total(self) -> float:
        return round(self.unit_price * self.quantity, 2)


@marketplace.entity(part_of="Order")
class StatusHistoryEntry:
    sequence = Integer(required=True, min_value=1)
    status = String(required=True, choices=OrderStatus)
    changed_at = DateTime(required=True)
    changed_by = Identifier()
    note = Text()


# ---------------------------------------------------------------------------
# Aggregate Root
# ---------------------------------------------------------------------------
@marketplace.aggregate
class Order:
    order_number = String(required=True, max_length=20)
    customer_id = Identifier(required=True)
    store_id = Identifier(required=True)
    courier_id = Identifier()
    zone_id = Identifier()
    items = HasMany(OrderItem)
    subtotal = Float(default=0.0, min_value=0.0)
    delivery_fee = Float(default=0.0, min_value=0.0)
    discount = Float(default=0.0, min_value=0.0)
    tax = Float(default=0.0, min_value=0.0)
    total = Float(default=0.0, min_value=0.0)
    payment_method = String(choices=PaymentMethod, default=PaymentMethod.CASH.value)
    payment_status = String(choices=OrderPaymentStatus, default=OrderPaymentStatus.PENDING.value)
    order_status = String(choices=OrderStatus, default=OrderStatus.PENDING.value)
    delivery_address = ValueObject(DeliveryAddress)
    status_history = HasMany(StatusHistoryEntry)
    courier_accepted_at = DateTime()
    actual_delivery_time = DateTime()
    cancellation_reason = String(max_length=500)
    cancelled_by = Identifier()
    cancelled_at = DateTime()
    placed_at = DateTime()
    updated_at = DateTime()
    revision = Integer(default=0)

    @invariant.post
    def total_must_match_components(self):
        expected = (self.subtotal or 0) + (self.delivery_fee or 0) + (self.tax or 0) - (self.discount or 0)
        if abs((self.total or 0) - expected) > _MONEY_TOLERANCE:
            raise ValidationError({"total": ["Total must equal subtotal + delivery fee + tax - discount"]})

    @invariant.post
    def history_must_end_at_current_status(self):
        if not self.status_history:
            return
        if self.history[-1].status != self.order_status:
            raise ValidationError({"status_history": ["Last history entry must match the order status"]})

    # -------------------------------------------------------------------
    # Factory
    # -------------------------------------------------------------------
    @classmethod
    def place(
        cls,
        order_number,
        customer_id,
        store_id,
        items_data,
        delivery_address,
        payment_method=PaymentMethod.CASH.value,
        zone_id=None,
        delivery_fee=0.0,
        discount=0.0,
        tax=0.0,
    ):
        """Create a PENDING order.

        Args:
            items_data: List of dicts with product_id, name, unit_price, quantity.
            delivery_address: A DeliveryAddress snapshot.
        """
        if not items_data:
            raise ValidationError({"items": ["An order needs at least one item"]})

        items = [OrderItem(**item) for item in items_data]
        subtotal = round(sum(item.line_total for item in items), 2)
        total = round(subtotal + delivery_fee + tax - discount, 2)
        if total < 0:
            raise ValidationError({"discount": ["Discount cannot exceed the order value"]})

        now = datetime.now(UTC)
        order = cls(
            order_number=order_number,
            customer_id=customer_id,
            store_id=store_id,
            zone_id=zone_id,
            subtotal=subtotal,
            delivery_fee=delivery_fee,
            discount=discount,
            tax=tax,
            total=total,
            payment_method=payment_method,
            delivery_address=delivery_address,
            placed_at=now,
            updated_at=now,
        )
        with atomic_change(order):
            for item in items:
                order.add_items(item)
            order.add_status_history(
                StatusHistoryEntry(
                    sequence=1,
                    status=OrderStatus.PENDING.value,
                    changed_at=now,
                    changed_by=customer_id,
                )
            )

        order.raise_(
            OrderPlaced(
                order_id=order.id,
                order_number=order_number,
                customer_id=customer_id,
                store_id=store_id,
                zone_id=zone_id,
                item_count=len(items),
                subtotal=subtotal,
                delivery_fee=delivery_fee,
                total=total,
                payment_method=payment_method,
                placed_at=now,
            )
        )
        return order

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    @property
    def history(self) -> list[StatusHistoryEntry]:
        return sorted(self.status_history, key=lambda entry: entry.sequence)

    @property
    def status(self) -> OrderStatus:
        return OrderStatus(self.order_status)

    @property
    def delivery_point(self) -> GeoPoint | None:
        if self.delivery_address is None:
            return None
        return self.delivery_address.location

    def _touch(self, now=None):
        self.revision = (self.revision or 0) + 1
        self.updated_at = now or datetime.now(UTC)

    def _assert_can_transition(self, target):
        current = self.status
        if target not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"order_status": [f"Cannot transition from {current.value} to {target.value}"]})

    def _record_status(self, target, actor, note, now):
        with atomic_change(self):
            self.order_status = target.value
            self.add_status_history(
                StatusHistoryEntry(
                    sequence=len(self.status_history) + 1,
                    status=target.value,
                    changed_at=now,
                    changed_by=actor,
                    note=note,
                )
            )
            if target == OrderStatus.DELIVERED:
                self.actual_delivery_time = now
            self._touch(now)

    # -------------------------------------------------------------------
    # Status transitions
    # -------------------------------------------------------------------
    def transition_to(self, status, actor=None, note=None):
        """Move to ``status``, appending a history entry.

        Cancellation goes through ``cancel`` so that its reason is captured.
        """
        target = parse_choice(OrderStatus, status)
        if target == OrderStatus.CANCELLED:
            raise ValidationError({"order_status": ["Use cancel() to cancel an order"]})
        self._assert_can_transition(target)

        previous = self.order_status
        now = datetime.now(UTC)
        self._record_status(target, actor, note, now)

        self.raise_(
            OrderStatusChanged(
                order_id=self.id,
                previous_status=previous,
                new_status=target.value,
                changed_by=actor,
                note=note,
                changed_at=now,
            )
        )

    def cancel(self, reason, actor=None):
        if self.status in _TERMINAL_STATES:
            raise ValidationError({"order_status": [f"Cannot cancel an order that is {self.order_status}"]})
        if not reason:
            raise ValidationError({"reason": ["A cancellation reason is required"]})

        previous = self.order_status
        now = datetime.now(UTC)
        self._record_status(OrderStatus.CANCELLED, actor, reason, now)
        self.cancellation_reason = reason
        self.cancelled_by = actor
        self.cancelled_at = now

        self.raise_(
            OrderCancelled(
                order_id=self.id,
                previous_status=previous,
                reason=reason,
                cancelled_by=actor,
                courier_id=self.courier_id,
                cancelled_at=now,
            )
        )

    # -------------------------------------------------------------------
    # Courier assignment
    # -------------------------------------------------------------------
    def assert_assigned_to(self, courier_id):
        if not self.courier_id or str(self.courier_id) != str(courier_id):
            raise NotAuthorizedError({"order_id": [f"Order {self.id} is not assigned to this courier"]})

    def assign_courier(self, courier_id, assigned_by=None):
        if self.status != OrderStatus.READY:
            raise ValidationError({"order_status": [f"Only ready orders can be assigned, order is {self.order_status}"]})
        if self.courier_accepted_at is not None:
            raise ConflictError({"courier_id": ["Order was already accepted by a courier"]})

        now = datetime.now(UTC)
        self.courier_id = courier_id
        self._touch(now)
        self.raise_(
            OrderAssignedToCourier(
                order_id=self.id,
                courier_id=courier_id,
                assigned_by=assigned_by,
                assigned_at=now,
            )
        )

    def accept_by_courier(self, courier_id, notes=None):
        self.assert_assigned_to(courier_id)
        if self.status != OrderStatus.READY:
            raise ValidationError({"order_status": [f"Only ready orders can be accepted, order is {self.order_status}"]})
        if self.courier_accepted_at is not None:
            raise ConflictError({"order_id": ["Order was already accepted"]})

        now = datetime.now(UTC)
        self.courier_accepted_at = now
        self._touch(now)
        self.raise_(
            CourierOrderAccepted(
                order_id=self.id,
                courier_id=courier_id,
                notes=notes,
                accepted_at=now,
            )
        )

    def reject_by_courier(self, courier_id, reason):
        self.assert_assigned_to(courier_id)
        if self.status != OrderStatus.READY:
            raise ValidationError({"order_status": ["Orders cannot be rejected once picked up"]})
        if not reason:
            raise ValidationError({"reason": ["A rejection reason is required"]})

        now = datetime.now(UTC)
        self.courier_id = None
        self.courier_accepted_at = None
        self._touch(now)
        self.raise_(
            CourierOrderRejected(
                order_id=self.id,
                courier_id=courier_id,
                reason=reason,
                rejected_at=now,
            )
        )

    def advance_delivery(self, courier_id, status, proof_of_delivery=None):
        self.assert_assigned_to(courier_id)
        target = parse_choice(OrderStatus, status)
        if target not in DELIVERY_STATUSES:
            raise ValidationError({"status": [f"Couriers cannot set status {target.value}"]})
        if self.courier_accepted_at is None:
            raise ValidationError({"order_id": ["Order must be accepted before delivery starts"]})

        self.transition_to(target, actor=courier_id, note=proof_of_delivery)
        self.raise_(
            DeliveryStatusUpdated(
                order_id=self.id,
                courier_id=courier_id,
                status=target.value,
                proof_of_delivery=proof_of_delivery,
                delivery_fee=self.delivery_fee,
                updated_at=self.updated_at,
            )
        )

    # -------------------------------------------------------------------
    # Payment mirror
    # -------------------------------------------------------------------
    def mirror_payment_status(self, payment_status):
        self.payment_status = OrderPaymentStatus(payment_status).value
        self._touch()
