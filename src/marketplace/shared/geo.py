"""GeoPoint value object and the plane/sphere geometry used for zone and courier lookups.

Coordinates follow the GeoJSON convention throughout: a position is
``[longitude, latitude]`` and a polygon is a list of linear rings, the first
ring being the outer boundary.
"""

import json
import math

from protean import invariant
from protean.exceptions import ValidationError
from protean.fields import Float

from marketplace.domain import marketplace

EARTH_RADIUS_KM = 6371.0088


@marketplace.value_object
class GeoPoint:
    """A WGS84 position."""

    longitude: Float(required=True, min_value=-180.0, max_value=180.0)
    latitude: Float(required=True, min_value=-90.0, max_value=90.0)

    @invariant.post
    def both_coordinates_required(self):
        if self.latitude is None or self.longitude is None:
            raise ValidationError({"location": ["Both longitude and latitude are required"]})

    def distance_km(self, other: "GeoPoint") -> float:
        return haversine_km(self.longitude, self.latitude, other.longitude, other.latitude)


def haversine_km(lng1: float, lat1: float, lng2: float, lat2: float) -> float:
    """Great-circle distance between two positions, in kilometres."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lng2 - lng1)

    a = math.sin(d_phi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))


def _ring_contains(ring: list, lng: float, lat: float) -> bool:
    # Ray casting towards +longitude
    inside = False
    n = len(ring)
    j = n - 1
    for i in range(n):
        xi, yi = ring[i][0], ring[i][1]
        xj, yj = ring[j][0], ring[j][1]
        if (yi > lat) != (yj > lat):
            x_cross = (xj - xi) * (lat - yi) / (yj - yi) + xi
            if lng < x_cross:
                inside = not inside
        j = i
    return inside


def point_in_polygon(coordinates: list, lng: float, lat: float) -> bool:
    """True when the position lies inside the outer ring and outside every hole."""
    if not coordinates or not coordinates[0]:
        return False
    if not _ring_contains(coordinates[0], lng, lat):
        return False
    return not any(_ring_contains(hole, lng, lat) for hole in coordinates[1:])


def ring_centroid(coordinates: list) -> tuple[float, float] | None:
    """Average of the first ring's positions, as ``(lng, lat)``."""
    if not coordinates or not coordinates[0]:
        return None
    ring = coordinates[0]
    avg_lng = sum(position[0] for position in ring) / len(ring)
    avg_lat = sum(position[1] for position in ring) / len(ring)
    return avg_lng, avg_lat


def polygon_area(coordinates: list) -> float:
    """Planar area of the outer ring in square degrees (shoelace); used for ordering only."""
    if not coordinates or not coordinates[0]:
        return 0.0
    ring = coordinates[0]
    total = 0.0
    for i in range(len(ring)):
        x1, y1 = ring[i][0], ring[i][1]
        x2, y2 = ring[(i + 1) % len(ring)][0], ring[(i + 1) % len(ring)][1]
        total += x1 * y2 - x2 * y1
    return abs(total) / 2


def validate_polygon(coordinates) -> list:
    """Check the ring structure and return the coordinates unchanged.

    Raises:
        ValidationError: if any ring has fewer than three positions or a position
            is not a ``[lng, lat]`` pair inside WGS84 bounds.
    """
    if not isinstance(coordinates, (list, tuple)) or not coordinates:
        raise ValidationError({"polygon": ["Polygon must contain at least one ring"]})
    for ring in coordinates:
        if not isinstance(ring, (list, tuple)) or len(ring) < 3:
            raise ValidationError({"polygon": ["Each ring needs at least three positions"]})
        for position in ring:
            if not isinstance(position, (list, tuple)) or len(position) != 2:
                raise ValidationError({"polygon": ["Positions must be [longitude, latitude] pairs"]})
            lng, lat = position
            if not (-180.0 <= lng <= 180.0 and -90.0 <= lat <= 90.0):
                raise ValidationError({"polygon": [f"Position out of range: {list(position)}"]})
    return [[list(position) for position in ring] for ring in coordinates]


def dump_polygon(coordinates: list | None) -> str | None:
    return json.dumps(coordinates) if coordinates else None


def load_polygon(raw: str | None) -> list | None:
    return json.loads(raw) if raw else None
