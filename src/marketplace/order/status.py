"""Order status updates and cancellation — commands and handler.

Used by stores and admins. Couriers advance delivery through
``marketplace.courier.tracking`` instead, which adds the ownership check.
"""

import structlog
from protean import handle
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from marketplace.courier.settlement import release_delivery, settle_delivery
from marketplace.domain import marketplace
from marketplace.order.order import Order, OrderStatus
from marketplace.shared.revision import check_revision

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Order")
class UpdateOrderStatus:
    order_id = Identifier(required=True)
    status = String(required=True, max_length=20)
    changed_by = Identifier()
    note = Text()
    expected_revision = Integer()


@marketplace.command(part_of="Order")
class CancelOrder:
    order_id = Identifier(required=True)
    reason = String(required=True, max_length=500)
    cancelled_by = Identifier()
    expected_revision = Integer()


@marketplace.command_handler(part_of=Order)
class OrderStatusHandler:
    @handle(UpdateOrderStatus)
    def update_status(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        check_revision(order, command.expected_revision)

        order.transition_to(command.status, actor=command.changed_by, note=command.note)
        if order.status == OrderStatus.DELIVERED:
            settle_delivery(order)
        repo.add(order)

        logger.info(
            "Order status updated",
            order_id=str(order.id),
            status=order.order_status,
            revision=order.revision,
        )

    @handle(CancelOrder)
    def cancel_order(self, command):
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        check_revision(order, command.expected_revision)

        order.cancel(reason=command.reason, actor=command.cancelled_by)
        if order.courier_id:
            release_delivery(order)
        repo.add(order)

        logger.info("Order cancelled", order_id=str(order.id), reason=command.reason)
