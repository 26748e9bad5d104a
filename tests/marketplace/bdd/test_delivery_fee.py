"""BDD tests for delivery fee resolution."""

import pytest
from protean.exceptions import ValidationError
from pytest_bdd import given, parsers, scenarios, then, when

from marketplace.zone.pricing import quote_delivery
from marketplace.zone.store_zone import StoreDeliveryZone
from marketplace.zone.zone import DeliveryZone

scenarios("features/delivery_fee.feature")


@pytest.fixture()
def override():
    return None


# ---------------------------------------------------------------------------
# Given steps
# ---------------------------------------------------------------------------
@given(
    parsers.cfparse("a zone with a delivery fee of {fee:f} and free delivery from {threshold:f}"),
    target_fixture="zone",
)
def _(fee, threshold):
    return DeliveryZone.create(name="Mezzeh", delivery_fee=fee, free_delivery_threshold=threshold)


@given(parsers.cfparse("the zone requires a minimum order of {amount:f}"), target_fixture="zone")
def _(zone, amount):
    zone.update_details(min_order_amount=amount)
    return zone


@given(parsers.cfparse("the store overrides the delivery fee with {fee:f}"), target_fixture="override")
def _(zone, fee):
    return StoreDeliveryZone.register(store_id="store-001", zone_id=str(zone.id), custom_delivery_fee=fee)


@given("the store stops covering the zone", target_fixture="override")
def _(override):
    override.deactivate()
    return override


# ---------------------------------------------------------------------------
# When steps
# ---------------------------------------------------------------------------
@when(parsers.cfparse("the fee is quoted for an order of {amount:f}"), target_fixture="quote")
def _(zone, override, amount, error):
    try:
        return quote_delivery(zone, override, amount, store_id="store-001")
    except ValidationError as exc:
        error["exc"] = exc
        return None


# ---------------------------------------------------------------------------
# Then steps
# ---------------------------------------------------------------------------
@then(parsers.cfparse("the delivery fee is {fee:f}"))
def _(quote, fee):
    assert quote.fee == fee


@then("delivery is free")
def _(quote):
    assert quote.is_free is True


@then("delivery is not free")
def _(quote):
    assert quote.is_free is False


@then("the quote is rejected")
def _(quote, error):
    assert quote is None
    assert isinstance(error["exc"], ValidationError)
