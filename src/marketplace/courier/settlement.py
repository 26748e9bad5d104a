"""Courier side effects of an order leaving the delivery flow.

Called by the order and delivery handlers inside their unit of work so the
order and courier writes stay adjacent.
"""

import structlog
from protean.exceptions import ObjectNotFoundError
from protean.utils.globals import current_domain

from marketplace.courier.courier import CourierProfile

logger = structlog.get_logger(__name__)


def _courier_for(order) -> CourierProfile | None:
    if not order.courier_id:
        return None
    try:
        return current_domain.repository_for(CourierProfile).get(order.courier_id)
    except ObjectNotFoundError:
        logger.warning(
            "Order references an unknown courier",
            order_id=str(order.id),
            courier_id=str(order.courier_id),
        )
        return None


def settle_delivery(order) -> CourierProfile | None:
    """Credit the courier for a delivered order and free it from their active deliveries."""
    courier = _courier_for(order)
    if courier is None:
        return None

    earning = courier.complete_delivery(order.id, order.delivery_fee)
    current_domain.repository_for(CourierProfile).add(courier)

    logger.info(
        "Delivery settled",
        order_id=str(order.id),
        courier_id=str(courier.id),
        earning=earning,
        courier_status=courier.status,
    )
    return courier


def release_delivery(order) -> CourierProfile | None:
    """Take the order off the courier's active deliveries without crediting it."""
    courier = _courier_for(order)
    if courier is None or not courier.release_delivery(order.id):
        return courier

    current_domain.repository_for(CourierProfile).add(courier)
    logger.info("Delivery released", order_id=str(order.id), courier_id=str(courier.id))
    return courier
