"""Order-stream subscriber that confirms cash payments when an order is delivered.

Both the courier flow and a store or admin status update end in the same
``OrderStatusChanged`` event, so either way into DELIVERED confirms cash.

The delivery has already been committed when this runs. A failure here is
logged and handed to the recovery queue; it never propagates back to whoever
reported the delivery.
"""

import structlog
from protean.utils.globals import current_domain
from protean.utils.mixins import handle

from marketplace.domain import marketplace
from marketplace.errors import describe_error
from marketplace.order.events import OrderStatusChanged
from marketplace.order.order import OrderStatus
from marketplace.payment import ledger
from marketplace.payment.payment import Payment
from marketplace.payment.recovery import FailedCashConfirmation, get_recovery

logger = structlog.get_logger(__name__)


@marketplace.event_handler(part_of=Payment, stream_category="marketplace::order")
class DeliveryPaymentEventHandler:
    @handle(OrderStatusChanged)
    def on_order_status_changed(self, event: OrderStatusChanged) -> None:
        if event.new_status != OrderStatus.DELIVERED.value:
            return

        order_id = str(event.order_id)
        confirmed_by = str(event.changed_by) if event.changed_by else None
        payment = current_domain.repository_for(Payment).find_by_order(order_id)
        if payment is None:
            logger.info("Delivered order has no payment, nothing to confirm", order_id=order_id)
            return
        if not payment.is_cash:
            return

        try:
            ledger.confirm_cash_by_order_id(order_id, confirmed_by)
        except Exception as exc:
            details = describe_error(exc)
            logger.error(
                "Cash confirmation after delivery failed",
                order_id=order_id,
                confirmed_by=confirmed_by,
                error_kind=details["kind"],
                error=details["message"],
            )
            get_recovery().enqueue(
                FailedCashConfirmation(
                    order_id=order_id,
                    confirmed_by=confirmed_by,
                    error_kind=details["kind"],
                    error_message=details["message"],
                )
            )
