import pytest
from protean.exceptions import ValidationError

from marketplace.shared.geo import (
    GeoPoint,
    haversine_km,
    point_in_polygon,
    polygon_area,
    ring_centroid,
    validate_polygon,
)

SQUARE = [[[0.0, 0.0], [2.0, 0.0], [2.0, 2.0], [0.0, 2.0], [0.0, 0.0]]]
SQUARE_WITH_HOLE = SQUARE + [[[0.5, 0.5], [1.5, 0.5], [1.5, 1.5], [0.5, 1.5], [0.5, 0.5]]]


class TestGeoPoint:
    def test_out_of_range_latitude_rejected(self):
        with pytest.raises(ValidationError):
            GeoPoint(longitude=10.0, latitude=95.0)

    def test_distance_between_points(self):
        damascus = GeoPoint(longitude=36.2765, latitude=33.5138)
        aleppo = GeoPoint(longitude=37.1343, latitude=36.2021)
        assert 300 < damascus.distance_km(aleppo) < 320


class TestHaversine:
    def test_same_point_is_zero(self):
        assert haversine_km(36.0, 33.0, 36.0, 33.0) == 0.0

    def test_one_degree_latitude(self):
        assert haversine_km(0.0, 0.0, 0.0, 1.0) == pytest.approx(111.19, abs=0.05)


class TestPointInPolygon:
    def test_inside(self):
        assert point_in_polygon(SQUARE, 1.0, 1.0) is True

    def test_outside(self):
        assert point_in_polygon(SQUARE, 3.0, 1.0) is False

    def test_hole_is_excluded(self):
        assert point_in_polygon(SQUARE_WITH_HOLE, 1.0, 1.0) is False
        assert point_in_polygon(SQUARE_WITH_HOLE, 0.25, 0.25) is True

    def test_empty_polygon(self):
        assert point_in_polygon([], 1.0, 1.0) is False


class TestPolygonHelpers:
    def test_area(self):
        assert polygon_area(SQUARE) == pytest.approx(4.0)

    def test_centroid(self):
        lng, lat = ring_centroid([[[0.0, 0.0], [2.0, 0.0], [2.0, 2.0], [0.0, 2.0]]])
        assert (lng, lat) == (1.0, 1.0)

    def test_validate_accepts_square(self):
        assert validate_polygon(SQUARE) == SQUARE

    @pytest.mark.parametrize(
        "coordinates",
        [
            [],
            [[[0.0, 0.0], [1.0, 1.0]]],
            [[[0.0, 0.0], [1.0, 1.0], [200.0, 0.0]]],
            [[[0.0, 0.0, 0.0], [1.0, 1.0], [1.0, 0.0]]],
        ],
    )
    def test_validate_rejects_bad_rings(self, coordinates):
        with pytest.raises(ValidationError):
            validate_polygon(coordinates)
