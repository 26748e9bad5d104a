"""Read-side zone queries: location resolution, proximity search, hierarchy and stats.

The memory provider has no spatial index, so geometry is evaluated over the
active zones returned by the repository.
"""

from collections import Counter

from protean.utils.globals import current_domain

from marketplace.shared.geo import haversine_km, point_in_polygon, polygon_area
from marketplace.zone.zone import DeliveryZone

NEARBY_ZONES_DEFAULT_RADIUS_M = 10000


def find_zone_by_location(longitude: float, latitude: float) -> DeliveryZone | None:
    """Active zone whose polygon contains the point.

    When zones are nested the smallest containing polygon wins, so a district
    is preferred over the city around it.
    """
    containing = [
        zone
        for zone in current_domain.repository_for(DeliveryZone).find_active()
        if zone.polygon and point_in_polygon(zone.coordinates, longitude, latitude)
    ]
    if not containing:
        return None
    return min(containing, key=lambda zone: polygon_area(zone.coordinates))


def find_nearby_zones(
    longitude: float,
    latitude: float,
    max_distance_m: float = NEARBY_ZONES_DEFAULT_RADIUS_M,
) -> list[DeliveryZone]:
    """Active zones whose center lies within ``max_distance_m``, nearest first."""
    ranked = []
    for zone in current_domain.repository_for(DeliveryZone).find_active():
        if zone.center is None:
            continue
        distance_m = haversine_km(longitude, latitude, zone.center.longitude, zone.center.latitude) * 1000
        if distance_m <= max_distance_m:
            ranked.append((distance_m, zone))
    ranked.sort(key=lambda pair: pair[0])
    return [zone for _, zone in ranked]


def zone_tree(zone_type: str | None = None) -> list[dict]:
    """Active zones as nested ``{"zone": ..., "children": [...]}`` nodes.

    A zone whose parent is missing or inactive is promoted to a root.
    """
    zones = current_domain.repository_for(DeliveryZone).find_active(zone_type)
    nodes = {str(zone.id): {"zone": zone, "children": []} for zone in zones}
    roots = []
    for zone in zones:
        node = nodes[str(zone.id)]
        parent = nodes.get(str(zone.parent_zone_id)) if zone.parent_zone_id else None
        if parent is not None:
            parent["children"].append(node)
        else:
            roots.append(node)
    return roots


def zone_stats() -> dict:
    zones = current_domain.repository_for(DeliveryZone).find_all()
    return {
        "total_zones": len(zones),
        "by_status": dict(Counter(zone.status for zone in zones)),
        "by_type": dict(Counter(zone.zone_type for zone in zones)),
        "total_orders": sum(zone.total_orders or 0 for zone in zones),
        "active_stores": sum(zone.active_stores or 0 for zone in zones),
        "active_couriers": sum(zone.active_couriers or 0 for zone in zones),
    }
