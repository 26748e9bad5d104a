"""Zone administration — create, update and delete delivery zones.

Commands carry polygon coordinates as a JSON string of GeoJSON rings.
"""

import json

import structlog
from protean import handle
from protean.exceptions import ValidationError
from protean.fields import Float, Identifier, Integer, String, Text
from protean.utils.globals import current_domain

from marketplace.domain import marketplace
from marketplace.errors import ConflictError
from marketplace.zone.zone import DeliveryZone

logger = structlog.get_logger(__name__)

_SETTINGS = (
    "zone_type",
    "parent_zone_id",
    "delivery_fee",
    "min_order_amount",
    "free_delivery_threshold",
    "estimated_time_min",
    "estimated_time_max",
)


@marketplace.command(part_of="DeliveryZone")
class CreateZone:
    name = String(required=True, max_length=100)
    zone_type = String(max_length=20)
    parent_zone_id = Identifier()
    delivery_fee = Float()
    min_order_amount = Float()
    free_delivery_threshold = Float()
    estimated_time_min = Integer()
    estimated_time_max = Integer()
    coordinates = Text()
    created_by = Identifier()


@marketplace.command(part_of="DeliveryZone")
class UpdateZone:
    """Partial update; omitted fields keep their value."""

    zone_id = Identifier(required=True)
    name = String(max_length=100)
    zone_type = String(max_length=20)
    parent_zone_id = Identifier()
    delivery_fee = Float()
    min_order_amount = Float()
    free_delivery_threshold = Float()
    estimated_time_min = Integer()
    estimated_time_max = Integer()
    status = String(max_length=20)
    coordinates = Text()
    updated_by = Identifier()


@marketplace.command(part_of="DeliveryZone")
class DeleteZone:
    zone_id = Identifier(required=True)
    deleted_by = Identifier()


def _provided(command, fields):
    return {field: getattr(command, field) for field in fields if getattr(command, field) is not None}


def _coordinates(raw):
    if not raw:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        raise ValidationError({"coordinates": ["Coordinates must be a JSON list of rings"]}) from None


def _check_parent(repo, zone_id: str, parent_id: str) -> None:
    """Reject a parent that is the zone itself or one of its descendants."""
    seen = set()
    current = parent_id
    while current and current not in seen:
        if current == zone_id:
            raise ValidationError({"parent_zone_id": ["A zone cannot be nested inside itself"]})
        seen.add(current)
        parent = repo.get(current).parent_zone_id
        current = str(parent) if parent else None


@marketplace.command_handler(part_of=DeliveryZone)
class ZoneManagementHandler:
    @handle(CreateZone)
    def create_zone(self, command):
        repo = current_domain.repository_for(DeliveryZone)
        if repo.find_by_name(command.name) is not None:
            raise ConflictError({"name": [f"A zone named {command.name!r} already exists"]})
        if command.parent_zone_id:
            repo.get(command.parent_zone_id)

        zone = DeliveryZone.create(
            name=command.name,
            created_by=command.created_by,
            coordinates=_coordinates(command.coordinates),
            **_provided(command, _SETTINGS),
        )
        repo.add(zone)
        logger.info("Delivery zone created", zone_id=str(zone.id), name=zone.name)
        return str(zone.id)

    @handle(UpdateZone)
    def update_zone(self, command):
        repo = current_domain.repository_for(DeliveryZone)
        zone = repo.get(command.zone_id)

        if command.name and command.name != zone.name:
            existing = repo.find_by_name(command.name)
            if existing is not None and str(existing.id) != str(zone.id):
                raise ConflictError({"name": [f"A zone named {command.name!r} already exists"]})
        if command.parent_zone_id:
            _check_parent(repo, str(zone.id), str(command.parent_zone_id))

        zone.update_details(
            updated_by=command.updated_by,
            coordinates=_coordinates(command.coordinates),
            **_provided(command, ("name", "status", *_SETTINGS)),
        )
        repo.add(zone)
        logger.info("Delivery zone updated", zone_id=str(zone.id))

    @handle(DeleteZone)
    def delete_zone(self, command):
        repo = current_domain.repository_for(DeliveryZone)
        zone = repo.get(command.zone_id)

        if repo.find_children(str(zone.id)):
            raise ValidationError({"zone_id": ["Cannot delete a zone that still has child zones"]})

        zone.deactivate(deactivated_by=command.deleted_by)
        repo.add(zone)
        logger.info("Delivery zone deactivated", zone_id=str(zone.id))
