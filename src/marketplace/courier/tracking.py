"""Delivery tracking — the courier advances an accepted order.

On DELIVERED the courier is credited in the same unit of work. Cash payment
confirmation follows from the DeliveryStatusUpdated event and never blocks
the status change (see ``marketplace.payment.delivery_events``).
"""

import structlog
from protean import handle
from protean.fields import Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from marketplace.courier.profile import courier_for_account
from marketplace.courier.settlement import settle_delivery
from marketplace.domain import marketplace
from marketplace.order.order import Order, OrderStatus
from marketplace.shared.revision import check_revision

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Order")
class UpdateDeliveryStatus:
    account_id = Identifier(required=True)
    order_id = Identifier(required=True)
    status = String(required=True, max_length=20)
    proof_of_delivery = Text()
    expected_revision = Integer()


@marketplace.command_handler(part_of=Order)
class DeliveryTrackingHandler:
    @handle(UpdateDeliveryStatus)
    def update_delivery_status(self, command):
        courier = courier_for_account(command.account_id)
        repo = current_domain.repository_for(Order)
        order = repo.get(command.order_id)
        check_revision(order, command.expected_revision)

        order.advance_delivery(courier.id, command.status, proof_of_delivery=command.proof_of_delivery)
        if order.status == OrderStatus.DELIVERED:
            settle_delivery(order)
        repo.add(order)

        logger.info(
            "Delivery status updated",
            order_id=str(order.id),
            courier_id=str(courier.id),
            status=order.order_status,
        )
