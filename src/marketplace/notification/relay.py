"""Relays domain events to the notifier under their external names.

    OrderAssignedToCourier  → order.assigned.to.courier
    CourierOrderAccepted    → courier.order.accepted
    CourierOrderRejected    → courier.order.rejected
    DeliveryStatusUpdated   → delivery.status.updated
    PaymentProcessed        → payment.processed
    PaymentCompleted        → payment.completed
    PaymentFailed           → payment.failed
    PaymentRefunded         → payment.refunded
    CourierSuspended        → courier.suspended
    CourierUnsuspended      → courier.unsuspended

Publication is fire-and-forget: notifier errors are logged and dropped.
"""

import structlog
from protean.utils.mixins import handle

from marketplace.courier.courier import CourierProfile
from marketplace.courier.events import CourierSuspended, CourierUnsuspended
from marketplace.domain import marketplace
from marketplace.notification import get_notifier
from marketplace.order.events import (
    CourierOrderAccepted,
    CourierOrderRejected,
    DeliveryStatusUpdated,
    OrderAssignedToCourier,
)
from marketplace.order.order import Order
from marketplace.payment.events import PaymentCompleted, PaymentFailed, PaymentProcessed, PaymentRefunded
from marketplace.payment.payment import Payment

logger = structlog.get_logger(__name__)

_PAYMENT_FIELDS = ("payment_id", "order_id", "customer_id", "store_id", "amount", "payment_method")


def _value(value):
    if value is None or isinstance(value, (int, float, bool)):
        return value
    if hasattr(value, "isoformat"):
        return value.isoformat()
    return str(value)


def relay(event_name: str, event, fields) -> None:
    payload = {field: _value(getattr(event, field)) for field in fields}
    try:
        get_notifier().publish(event_name, payload)
    except Exception as exc:
        logger.error("Failed to relay event", event_name=event_name, error=str(exc))


@marketplace.event_handler(part_of=Order)
class OrderNotificationRelay:
    @handle(OrderAssignedToCourier)
    def on_assigned(self, event: OrderAssignedToCourier) -> None:
        relay("order.assigned.to.courier", event, ("order_id", "courier_id", "assigned_by"))

    @handle(CourierOrderAccepted)
    def on_accepted(self, event: CourierOrderAccepted) -> None:
        relay("courier.order.accepted", event, ("courier_id", "order_id", "notes"))

    @handle(CourierOrderRejected)
    def on_rejected(self, event: CourierOrderRejected) -> None:
        relay("courier.order.rejected", event, ("courier_id", "order_id", "reason"))

    @handle(DeliveryStatusUpdated)
    def on_delivery_status(self, event: DeliveryStatusUpdated) -> None:
        relay("delivery.status.updated", event, ("courier_id", "order_id", "status", "proof_of_delivery"))


@marketplace.event_handler(part_of=Payment)
class PaymentNotificationRelay:
    @handle(PaymentProcessed)
    def on_processed(self, event: PaymentProcessed) -> None:
        relay("payment.processed", event, (*_PAYMENT_FIELDS, "transaction_id"))

    @handle(PaymentCompleted)
    def on_completed(self, event: PaymentCompleted) -> None:
        relay("payment.completed", event, (*_PAYMENT_FIELDS, "transaction_id", "confirmed_by"))

    @handle(PaymentFailed)
    def on_failed(self, event: PaymentFailed) -> None:
        relay("payment.failed", event, (*_PAYMENT_FIELDS, "reason"))

    @handle(PaymentRefunded)
    def on_refunded(self, event: PaymentRefunded) -> None:
        relay("payment.refunded", event, (*_PAYMENT_FIELDS, "refund_amount", "total_refunded", "reason"))


@marketplace.event_handler(part_of=CourierProfile)
class CourierNotificationRelay:
    @handle(CourierSuspended)
    def on_suspended(self, event: CourierSuspended) -> None:
        relay("courier.suspended", event, ("courier_id", "suspended_by", "reason"))

    @handle(CourierUnsuspended)
    def on_unsuspended(self, event: CourierUnsuspended) -> None:
        relay("courier.unsuspended", event, ("courier_id", "unsuspended_by"))
