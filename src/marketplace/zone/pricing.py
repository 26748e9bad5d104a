"""Delivery fee calculation and store coverage checks.

The quote for a (store, zone, order amount) triple resolves each pricing
setting independently: an active store override wins, otherwise the zone
default applies.
"""

from dataclasses import dataclass

import structlog
from protean.exceptions import ObjectNotFoundError, ValidationError
from protean.utils.globals import current_domain

from marketplace.zone.store_zone import StoreDeliveryZone
from marketplace.zone.zone import DeliveryZone

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class DeliveryQuote:
    fee: float
    is_free: bool
    estimated_time_min: int
    estimated_time_max: int
    min_order_amount: float
    free_delivery_threshold: float | None
    zone_id: str
    store_id: str


def _resolve(override_value, default_value):
    return override_value if override_value is not None else default_value


def quote_delivery(zone: DeliveryZone, override: StoreDeliveryZone | None, order_amount: float, store_id=None):
    """Pure fee computation over a zone and an optional override row.

    Raises:
        ValidationError: if ``order_amount`` is below the resolved minimum order.
    """
    if override is not None and not override.is_active:
        override = None

    def pick(custom_field, zone_field):
        custom = getattr(override, custom_field) if override is not None else None
        return _resolve(custom, getattr(zone, zone_field))

    fee = pick("custom_delivery_fee", "delivery_fee") or 0.0
    threshold = pick("custom_free_delivery_threshold", "free_delivery_threshold")
    min_order = pick("custom_min_order_amount", "min_order_amount") or 0.0
    time_min = pick("custom_estimated_time_min", "estimated_time_min")
    time_max = pick("custom_estimated_time_max", "estimated_time_max")

    if order_amount < min_order:
        raise ValidationError(
            {"order_amount": [f"Order amount {order_amount} is below the minimum of {min_order} for this zone"]}
        )

    is_free = threshold is not None and order_amount >= threshold
    return DeliveryQuote(
        fee=0.0 if is_free else fee,
        is_free=is_free,
        estimated_time_min=time_min,
        estimated_time_max=time_max,
        min_order_amount=min_order,
        free_delivery_threshold=threshold,
        zone_id=str(zone.id),
        store_id=str(store_id or (override.store_id if override is not None else "")),
    )


def calculate_delivery_fee(store_id, zone_id, order_amount) -> DeliveryQuote:
    zone_repo = current_domain.repository_for(DeliveryZone)
    try:
        zone = zone_repo.get(zone_id)
    except ObjectNotFoundError:
        raise ObjectNotFoundError(f"Delivery zone {zone_id} not found") from None

    override = current_domain.repository_for(StoreDeliveryZone).find_for(str(store_id), str(zone_id))
    quote = quote_delivery(zone, override, order_amount, store_id=store_id)

    logger.debug(
        "Delivery fee calculated",
        store_id=str(store_id),
        zone_id=str(zone_id),
        order_amount=order_amount,
        fee=quote.fee,
        is_free=quote.is_free,
    )
    return quote


def check_coverage(store_id, zone_id) -> bool:
    """True iff the store has an active coverage row for an active zone."""
    row = current_domain.repository_for(StoreDeliveryZone).find_for(str(store_id), str(zone_id))
    if row is None or not row.is_active:
        return False
    try:
        zone = current_domain.repository_for(DeliveryZone).get(zone_id)
    except ObjectNotFoundError:
        return False
    return zone.is_active
