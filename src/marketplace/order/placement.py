"""Order placement — command and handler.

The delivery fee is quoted from the zone pricing engine when the order names
a delivery zone; otherwise delivery is free.
"""

import json
from datetime import UTC, datetime

import structlog
from protean import handle
from protean.fields import Float, Identifier, String, Text
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.order.order import DeliveryAddress, Order, PaymentMethod
from marketplace.shared.geo import GeoPoint
from marketplace.zone.pricing import calculate_delivery_fee

logger = structlog.get_logger(__name__)


@marketplace.command(part_of="Order")
class PlaceOrder:
    customer_id = Identifier(required=True)
    store_id = Identifier(required=True)
    items = Text(required=True)  # JSON: list of {product_id, name, unit_price, quantity}
    delivery_address = Text(required=True)  # JSON: address dict, optional "location": {longitude, latitude}
    payment_method = String(max_length=10, default=PaymentMethod.CASH.value)
    zone_id = Identifier()
    discount = Float(default=0.0)
    tax = Float(default=0.0)


def _load(value):
    return json.loads(value) if isinstance(value, str) else value


def build_delivery_address(data: dict) -> DeliveryAddress:
    data = dict(data)
    location = data.pop("location", None)
    if location:
        data["location"] = GeoPoint(longitude=location["longitude"], latitude=location["latitude"])
    return DeliveryAddress(**data)


@marketplace.command_handler(part_of=Order)
class PlaceOrderHandler:
    @handle(PlaceOrder)
    def place_order(self, command):
        items_data = _load(command.items)
        address = build_delivery_address(_load(command.delivery_address))

        subtotal = round(sum(item["unit_price"] * item["quantity"] for item in items_data), 2)
        delivery_fee = 0.0
        if command.zone_id:
            delivery_fee = calculate_delivery_fee(command.store_id, command.zone_id, subtotal).fee

        repo = current_domain.repository_for(Order)
        order = Order.place(
            order_number=repo.next_order_number(datetime.now(UTC)),
            customer_id=command.customer_id,
            store_id=command.store_id,
            items_data=items_data,
            delivery_address=address,
            payment_method=command.payment_method or PaymentMethod.CASH.value,
            zone_id=command.zone_id,
            delivery_fee=delivery_fee,
            discount=command.discount or 0.0,
            tax=command.tax or 0.0,
        )
        repo.add(order)

        logger.info(
            "Order placed",
            order_id=str(order.id),
            order_number=order.order_number,
            total=order.total,
        )
        return str(order.id)
