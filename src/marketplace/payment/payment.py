"""Payment aggregate — one payment per order, with its refund trail.

State Machine:
    PENDING → PROCESSING → COMPLETED → PARTIALLY_REFUNDED → REFUNDED
    PENDING → COMPLETED (cash collected on delivery)
    PENDING/PROCESSING → FAILED → PROCESSING (retry)

Refunds are append-only; ``total_refunded`` always equals their sum and never
exceeds ``amount``.
"""

from datetime import UTC, datetime
from enum import Enum

from protean import atomic_change, invariant
from protean.exceptions import ValidationError
from protean.fields import DateTime, Float, HasMany, Identifier, Integer, String, Text, ValueObject

from marketplace.domain import marketplace
from marketplace.errors import ConflictError
from marketplace.order.order import PaymentMethod
from marketplace.payment.events import PaymentCompleted, PaymentFailed, PaymentProcessed, PaymentRefunded

_MONEY_TOLERANCE = 0.005


def _cents(value) -> int:
    return round((value or 0) * 100)


class PaymentStatus(Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    REFUNDED = "refunded"
    PARTIALLY_REFUNDED = "partially_refunded"


_VALID_TRANSITIONS = {
    PaymentStatus.PENDING: {PaymentStatus.PROCESSING, PaymentStatus.COMPLETED, PaymentStatus.FAILED},
    PaymentStatus.PROCESSING: {PaymentStatus.PROCESSING, PaymentStatus.COMPLETED, PaymentStatus.FAILED},
    PaymentStatus.FAILED: {PaymentStatus.PROCESSING},
    PaymentStatus.COMPLETED: {PaymentStatus.PARTIALLY_REFUNDED, PaymentStatus.REFUNDED},
    PaymentStatus.PARTIALLY_REFUNDED: {PaymentStatus.PARTIALLY_REFUNDED, PaymentStatus.REFUNDED},
    PaymentStatus.REFUNDED: set(),  # Terminal
}

# Statuses in which money has been captured and can be refunded
_CAPTURED_STATES = {PaymentStatus.COMPLETED, PaymentStatus.PARTIALLY_REFUNDED, PaymentStatus.REFUNDED}


@marketplace.value_object(part_of="Payment")
class PaymentBreakdown:
    """Split of a mixed payment across tenders."""

    cash = Float(default=0.0, min_value=0.0)
    card = Float(default=0.0, min_value=0.0)
    points = Float(default=0.0, min_value=0.0)
    wallet = Float(default=0.0, min_value=0.0)

    @property
    def total(self) -> float:
        return (self.cash or 0) + (self.card or 0) + (self.points or 0) + (self.wallet or 0)


@marketplace.entity(part_of="Payment")
class Refund:
    sequence = Integer(required=True, min_value=1)
    amount = Float(required=True, min_value=0.0)
    reason = String(required=True, max_length=500)
    refunded_at = DateTime(required=True)
    refunded_by = Identifier()


@marketplace.aggregate
class Payment:
    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    store_id = Identifier(required=True)
    amount = Float(required=True, min_value=0.0)
    payment_method = String(choices=PaymentMethod, required=True)
    status = String(choices=PaymentStatus, default=PaymentStatus.PENDING.value)
    breakdown = ValueObject(PaymentBreakdown)
    transaction_id = String(max_length=255)
    gateway_response = Text()  # JSON
    notes = Text()
    confirmed_by = Identifier()
    refunds = HasMany(Refund)
    total_refunded = Float(default=0.0, min_value=0.0)
    paid_at = DateTime()
    failed_at = DateTime()
    failure_reason = String(max_length=500)
    created_at = DateTime()
    updated_at = DateTime()
    revision = Integer(default=0)

    @invariant.post
    def refunds_cannot_exceed_amount(self):
        refunded = sum(_cents(refund.amount) for refund in self.refunds)
        if refunded > _cents(self.amount):
            raise ValidationError({"refunds": ["Refunds cannot exceed the payment amount"]})

    @invariant.post
    def total_refunded_matches_refunds(self):
        recorded = sum(_cents(refund.amount) for refund in self.refunds)
        if recorded != _cents(self.total_refunded):
            raise ValidationError({"total_refunded": ["Total refunded must equal the sum of refunds"]})

    @invariant.post
    def breakdown_must_cover_amount(self):
        if self.breakdown is None:
            return
        if abs(self.breakdown.total - (self.amount or 0)) > _MONEY_TOLERANCE:
            raise ValidationError({"breakdown": ["Payment breakdown must add up to the payment amount"]})

    @classmethod
    def create(cls, order_id, customer_id, store_id, amount, payment_method, breakdown=None):
        now = datetime.now(UTC)
        return cls(
            order_id=order_id,
            customer_id=customer_id,
            store_id=store_id,
            amount=amount,
            payment_method=payment_method,
            breakdown=breakdown,
            created_at=now,
            updated_at=now,
        )

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    @property
    def is_cash(self) -> bool:
        return self.payment_method == PaymentMethod.CASH.value

    @property
    def is_completed(self) -> bool:
        return self.status == PaymentStatus.COMPLETED.value

    @property
    def refund_history(self) -> list[Refund]:
        return sorted(self.refunds, key=lambda refund: refund.sequence)

    def _assert_can_transition(self, target):
        current = PaymentStatus(self.status)
        if target not in _VALID_TRANSITIONS.get(current, set()):
            raise ValidationError({"status": [f"Cannot transition from {current.value} to {target.value}"]})

    def _touch(self, now):
        self.updated_at = now
        self.revision = (self.revision or 0) + 1

    def _payload(self) -> dict:
        return {
            "payment_id": self.id,
            "order_id": self.order_id,
            "customer_id": self.customer_id,
            "store_id": self.store_id,
            "amount": self.amount,
            "payment_method": self.payment_method,
        }

    # -------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------
    def process(self, transaction_id=None, gateway_response=None, breakdown=None):
        if self.is_completed:
            raise ConflictError({"status": ["Payment is already completed"]})
        self._assert_can_transition(PaymentStatus.PROCESSING)

        now = datetime.now(UTC)
        with atomic_change(self):
            self.status = PaymentStatus.PROCESSING.value
            self.transaction_id = transaction_id or str(self.id)
            if gateway_response is not None:
                self.gateway_response = gateway_response
            if breakdown is not None:
                self.breakdown = breakdown
            self._touch(now)

        self.raise_(
            PaymentProcessed(
                **self._payload(),
                transaction_id=self.transaction_id,
                processed_at=now,
            )
        )

    def confirm(self, transaction_id=None, confirmed_by=None, notes=None):
        if self.is_completed:
            raise ConflictError({"status": ["Payment is already completed"]})
        self._assert_can_transition(PaymentStatus.COMPLETED)

        now = datetime.now(UTC)
        with atomic_change(self):
            self.status = PaymentStatus.COMPLETED.value
            self.paid_at = now
            if transaction_id:
                self.transaction_id = transaction_id
            if notes:
                self.notes = notes
            self.confirmed_by = confirmed_by
            self._touch(now)

        self.raise_(
            PaymentCompleted(
                **self._payload(),
                transaction_id=self.transaction_id,
                confirmed_by=confirmed_by,
                paid_at=now,
            )
        )

    def fail(self, reason):
        if not reason:
            raise ValidationError({"reason": ["A failure reason is required"]})
        self._assert_can_transition(PaymentStatus.FAILED)

        now = datetime.now(UTC)
        with atomic_change(self):
            self.status = PaymentStatus.FAILED.value
            self.failed_at = now
            self.failure_reason = reason
            self._touch(now)

        self.raise_(PaymentFailed(**self._payload(), reason=reason, failed_at=now))

    def refund(self, amount, reason, refunded_by=None) -> bool:
        """Record a refund; returns True when the payment is now fully refunded."""
        if PaymentStatus(self.status) not in _CAPTURED_STATES:
            raise ValidationError({"status": [f"Only completed payments can be refunded, payment is {self.status}"]})
        if amount is None or amount <= 0:
            raise ValidationError({"amount": ["Refund amount must be positive"]})
        if not reason:
            raise ValidationError({"reason": ["A refund reason is required"]})

        if round(amount, 2) != amount:
            raise ValidationError({"amount": ["Refund amount must be in whole cents"]})

        # Compared in whole cents
        already = _cents(self.total_refunded)
        remaining = _cents(self.amount) - already
        if _cents(amount) > remaining:
            raise ValidationError(
                {"amount": [f"Refund of {amount} exceeds the remaining refundable amount {remaining / 100}"]}
            )

        new_total = (already + _cents(amount)) / 100
        fully_refunded = _cents(amount) == remaining
        target = PaymentStatus.REFUNDED if fully_refunded else PaymentStatus.PARTIALLY_REFUNDED
        self._assert_can_transition(target)

        now = datetime.now(UTC)
        with atomic_change(self):
            self.add_refunds(
                Refund(
                    sequence=len(self.refunds) + 1,
                    amount=amount,
                    reason=reason,
                    refunded_at=now,
                    refunded_by=refunded_by,
                )
            )
            self.total_refunded = new_total
            self.status = target.value
            self._touch(now)

        self.raise_(
            PaymentRefunded(
                **self._payload(),
                refund_amount=amount,
                total_refunded=new_total,
                reason=reason,
                refunded_by=refunded_by,
                status=target.value,
                refunded_at=now,
            )
        )
        return fully_refunded
