"""Domain events for the Payment aggregate.

Every payment event carries the same identifying payload (payment, order,
customer, store, amount, method) so notification and earnings consumers never
need to load the aggregate.
"""

from protean.fields import DateTime, Float, Identifier, String

from marketplace.domain import marketplace


@marketplace.event(part_of="Payment")
class PaymentProcessed:
    """The payment was handed to the gateway (or to the courier, for cash)."""

    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    store_id = Identifier(required=True)
    amount = Float(required=True)
    payment_method = String(required=True)
    transaction_id = String()
    processed_at = DateTime(required=True)


@marketplace.event(part_of="Payment")
class PaymentCompleted:
    """Funds were captured, or cash was collected on delivery."""

    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    store_id = Identifier(required=True)
    amount = Float(required=True)
    payment_method = String(required=True)
    transaction_id = String()
    confirmed_by = Identifier()
    paid_at = DateTime(required=True)


@marketplace.event(part_of="Payment")
class PaymentFailed:
    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    store_id = Identifier(required=True)
    amount = Float(required=True)
    payment_method = String(required=True)
    reason = String(required=True)
    failed_at = DateTime(required=True)


@marketplace.event(part_of="Payment")
class PaymentRefunded:
    """A full or partial refund was recorded."""

    __version__ = 1

    payment_id = Identifier(required=True)
    order_id = Identifier(required=True)
    customer_id = Identifier(required=True)
    store_id = Identifier(required=True)
    amount = Float(required=True)
    payment_method = String(required=True)
    refund_amount = Float(required=True)
    total_refunded = Float(required=True)
    reason = String(required=True)
    refunded_by = Identifier()
    status = String(required=True)
    refunded_at = DateTime(required=True)
