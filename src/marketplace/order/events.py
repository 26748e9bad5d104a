"""Domain events for the Order aggregate.

Order events are the backbone of the coordinator: payment, courier, zone and
notification subscribers all listen on the order stream.
"""

from protean.fields import DateTime, Float, Identifier, Integer, String, Text

from marketplace.domain import marketplace


@marketplace.event(part_of="Order")
class OrderPlaced:
    """A customer placed an order with a store."""

    __version__ = 1

    order_id = Identifier(required=True)
    order_number = String(required=True)
    customer_id = Identifier(required=True)
    store_id = Identifier(required=True)
    zone_id = Identifier()
    item_count = Integer(required=True)
    subtotal = Float(required=True)
    delivery_fee = Float(required=True)
    total = Float(required=True)
    payment_method = String(required=True)
    placed_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderStatusChanged:
    """The order moved to a new status."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    new_status = String(required=True)
    changed_by = Identifier()
    note = Text()
    changed_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderCancelled:
    """The order was cancelled before delivery."""

    __version__ = 1

    order_id = Identifier(required=True)
    previous_status = String(required=True)
    reason = String(required=True)
    cancelled_by = Identifier()
    courier_id = Identifier()
    cancelled_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class OrderAssignedToCourier:
    """A courier was proposed for a ready order; the courier has yet to accept."""

    __version__ = 1

    order_id = Identifier(required=True)
    courier_id = Identifier(required=True)
    assigned_by = Identifier()
    assigned_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class CourierOrderAccepted:
    """The assigned courier took the order."""

    __version__ = 1

    order_id = Identifier(required=True)
    courier_id = Identifier(required=True)
    notes = Text()
    accepted_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class CourierOrderRejected:
    """The assigned courier turned the order down; it is unassigned again."""

    __version__ = 1

    order_id = Identifier(required=True)
    courier_id = Identifier(required=True)
    reason = String(required=True)
    rejected_at = DateTime(required=True)


@marketplace.event(part_of="Order")
class DeliveryStatusUpdated:
    """The courier advanced the delivery (picked up, delivering, delivered)."""

    __version__ = 1

    order_id = Identifier(required=True)
    courier_id = Identifier(required=True)
    status = String(required=True)
    proof_of_delivery = Text()
    delivery_fee = Float()
    updated_at = DateTime(required=True)
