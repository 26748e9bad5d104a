"""Payment ledger — the only code that writes Payment together with Order.payment_status.

``Order.payment_status`` is a denormalized copy of the payment state kept so
orders can be filtered without loading payments. Each operation below
mutates the Payment, then the Order mirror, then persists both back to back
inside the caller's unit of work. The mirror is eventually consistent with
the Payment: nothing spans the two writes.

    Payment status           Order.payment_status
    PROCESSING               pending
    COMPLETED                paid
    FAILED                   failed
    PARTIALLY_REFUNDED       paid
    REFUNDED                 refunded
"""

import json

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from marketplace.errors import ConflictError
from marketplace.order.order import Order, OrderPaymentStatus
from marketplace.payment.payment import Payment, PaymentBreakdown
from marketplace.shared.revision import check_revision

logger = structlog.get_logger(__name__)

CASH_CONFIRMATION_NOTE = "Cash payment confirmed by courier upon delivery"


def _order(order_id) -> Order:
    try:
        return current_domain.repository_for(Order).get(order_id)
    except ObjectNotFoundError:
        raise ObjectNotFoundError(f"Order {order_id} not found") from None


def _payment(payment_id) -> Payment:
    try:
        return current_domain.repository_for(Payment).get(payment_id)
    except ObjectNotFoundError:
        raise ObjectNotFoundError(f"Payment {payment_id} not found") from None


def _payment_for_order(order_id) -> Payment:
    payment = current_domain.repository_for(Payment).find_by_order(str(order_id))
    if payment is None:
        raise ObjectNotFoundError(f"No payment for order {order_id}")
    return payment


def _breakdown(data) -> PaymentBreakdown | None:
    if not data:
        return None
    if isinstance(data, PaymentBreakdown):
        return data
    return PaymentBreakdown(**data)


def _save(payment: Payment, order: Order, mirror: OrderPaymentStatus | None) -> None:
    """Persist the payment and, right after it, the order's mirror of its state."""
    current_domain.repository_for(Payment).add(payment)
    if mirror is not None:
        order.mirror_payment_status(mirror.value)
        current_domain.repository_for(Order).add(order)


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------
def create_payment(order_id, payment_method, breakdown=None) -> Payment:
    """Open the payment for an order; the amount is the order total at this moment."""
    order = _order(order_id)
    if current_domain.repository_for(Payment).find_by_order(str(order_id)) is not None:
        raise ConflictError({"order_id": [f"Order {order_id} already has a payment"]})

    payment = Payment.create(
        order_id=order.id,
        customer_id=order.customer_id,
        store_id=order.store_id,
        amount=order.total,
        payment_method=payment_method,
        breakdown=_breakdown(breakdown),
    )
    _save(payment, order, None)
    logger.info("Payment created", payment_id=str(payment.id), order_id=str(order.id), amount=payment.amount)
    return payment


def process_payment(order_id, payment_method, breakdown=None, gateway_response=None) -> Payment:
    order = _order(order_id)
    payment = current_domain.repository_for(Payment).find_by_order(str(order_id))
    if payment is None:
        payment = create_payment(order_id, payment_method, breakdown)

    gateway_response = gateway_response or {}
    payment.process(
        transaction_id=gateway_response.get("transaction_id"),
        gateway_response=json.dumps(gateway_response) if gateway_response else None,
        breakdown=_breakdown(breakdown),
    )
    _save(payment, order, OrderPaymentStatus.PENDING)
    logger.info("Payment processing", payment_id=str(payment.id), transaction_id=payment.transaction_id)
    return payment


def confirm_payment(payment_id, transaction_id=None, confirmed_by=None, expected_revision=None) -> Payment:
    payment = _payment(payment_id)
    check_revision(payment, expected_revision)
    order = _order(payment.order_id)

    payment.confirm(transaction_id=transaction_id, confirmed_by=confirmed_by)
    _save(payment, order, OrderPaymentStatus.PAID)
    logger.info("Payment confirmed", payment_id=str(payment.id), order_id=str(order.id))
    return payment


def confirm_cash_by_order_id(order_id, confirmer_id=None) -> Payment:
    """Confirm cash collected on delivery.

    Safe to call repeatedly: a payment that is already COMPLETED is returned
    as is.
    """
    payment = _payment_for_order(order_id)
    if not payment.is_cash:
        raise ValidationError({"payment_method": [f"Payment for order {order_id} is not a cash payment"]})
    if payment.is_completed:
        logger.debug("Cash payment already confirmed", payment_id=str(payment.id))
        return payment

    order = _order(order_id)
    payment.confirm(confirmed_by=confirmer_id, notes=CASH_CONFIRMATION_NOTE)
    _save(payment, order, OrderPaymentStatus.PAID)
    logger.info(
        "Cash payment confirmed",
        payment_id=str(payment.id),
        order_id=str(order_id),
        confirmed_by=str(confirmer_id) if confirmer_id else None,
    )
    return payment


def fail_payment(payment_id, reason) -> Payment:
    payment = _payment(payment_id)
    order = _order(payment.order_id)

    payment.fail(reason)
    _save(payment, order, OrderPaymentStatus.FAILED)
    logger.warning("Payment failed", payment_id=str(payment.id), reason=reason)
    return payment


def refund_payment(payment_id, amount, reason, refunded_by=None) -> Payment:
    payment = _payment(payment_id)
    order = _order(payment.order_id)

    fully_refunded = payment.refund(amount, reason, refunded_by=refunded_by)
    mirror = OrderPaymentStatus.REFUNDED if fully_refunded else OrderPaymentStatus.PAID
    _save(payment, order, mirror)
    logger.info(
        "Payment refunded",
        payment_id=str(payment.id),
        refund_amount=amount,
        total_refunded=payment.total_refunded,
        status=payment.status,
    )
    return payment
