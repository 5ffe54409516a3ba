import pytest

from exceptions import InvalidGeometryError
from geofencing import BorderGeometry, ZoneRegistry, point_in_polygon
from models import AirportDefinition, GeoPoint, ZoneDefinition, ZoneSeverity
import config

TRIANGLE = [(0.0, 0.0), (0.0, 10.0), (10.0, 0.0)]


def point(lat, lng):
    return GeoPoint(latitude=lat, longitude=lng)


def test_triangle_membership():
    border = BorderGeometry(TRIANGLE)
    assert border.is_inside(point(1, 1))
    assert not border.is_inside(point(20, 20))
    assert not border.is_inside(point(6, 6))


@pytest.mark.parametrize("probe", [(1, 1), (4.9, 4.9), (5, 5), (0, 5), (9.99, 0.001), (20, 20), (-1, 3), (3, 0)])
def test_membership_does_not_depend_on_ring_start(probe):
    expected = point_in_polygon(probe, TRIANGLE)
    for shift in range(1, len(TRIANGLE)):
        rotated = TRIANGLE[shift:] + TRIANGLE[:shift]
        assert point_in_polygon(probe, rotated) == expected


def test_ray_level_with_vertex_counts_once():
    square = [(0.0, 0.0), (0.0, 4.0), (4.0, 4.0), (4.0, 0.0)]
    diamond = [(0.0, 2.0), (2.0, 4.0), (4.0, 2.0), (2.0, 0.0)]
    assert point_in_polygon((2.0, 2.0), square)
    # The ray at lat 2.0 passes exactly through the vertex (2.0, 4.0)
    assert point_in_polygon((2.0, 1.0), diamond)
    assert not point_in_polygon((2.0, 5.0), diamond)


def test_default_border_contains_interior_and_excludes_neighbours():
    border = BorderGeometry(config.BORDER_POLYGON)
    assert border.mode == "polygon"
    assert border.is_inside(point(42.66, 21.17))   # Pristina
    assert border.is_inside(point(42.60, 20.90))
    assert not border.is_inside(point(42.00, 21.43))  # Skopje
    assert not border.is_inside(point(42.07, 19.51))  # Shkoder
    assert not border.is_inside(point(43.32, 21.90))  # Nis


def test_degenerate_polygon_is_an_input_fault():
    with pytest.raises(InvalidGeometryError):
        BorderGeometry([])
    with pytest.raises(InvalidGeometryError):
        BorderGeometry([(0.0, 0.0), (1.0, 1.0)])


def test_bounding_box_mode_is_explicit():
    border = BorderGeometry.from_bounding_box(config.FALLBACK_BOUNDS)
    assert border.mode == "bounding_box"
    assert border.polygon == ()
    assert border.is_inside(point(42.0, 20.0))
    assert border.is_inside(point(43.27, 21.80))
    assert not border.is_inside(point(43.30, 21.0))


def test_inverted_fallback_bounds_rejected():
    with pytest.raises(InvalidGeometryError):
        BorderGeometry.from_bounding_box({'north': 41.0, 'south': 42.0, 'east': 21.0, 'west': 20.0})


@pytest.fixture
def zones():
    return ZoneRegistry(
        zones=[
            ZoneDefinition(name='Base', type='military', center=point(42.0, 21.0), radius=1000, max_altitude=0),
            ZoneDefinition(name='Dam', type='critical_infrastructure', center=point(42.5, 21.0),
                           radius=1000, max_altitude=60),
        ],
        airports=[
            AirportDefinition(name='Field', code='FLD', center=point(42.0, 20.5),
                              restricted_radius=2000, caution_radius=5000),
        ]
    )


def test_airport_core_is_no_fly(zones):
    result = zones.classify(point(42.005, 20.5))
    assert result.restricted
    assert result.severity == ZoneSeverity.NO_FLY
    assert result.zone_type == 'airport'


def test_zone_without_altitude_allowance_is_no_fly(zones):
    result = zones.classify(point(42.0, 21.0))
    assert result.severity == ZoneSeverity.NO_FLY
    assert result.zone_name == 'Base'


def test_capped_zone_is_caution_with_cap(zones):
    result = zones.classify(point(42.5, 21.001))
    assert result.severity == ZoneSeverity.CAUTION
    assert result.altitude_cap == 60


def test_airport_caution_ring(zones):
    result = zones.classify(point(42.03, 20.5))  # ~3.3 km from the field
    assert result.severity == ZoneSeverity.CAUTION
    assert result.altitude_cap is None
    assert result.zone_type == 'airport_vicinity'


def test_clear_point(zones):
    result = zones.classify(point(42.3, 20.8))
    assert not result.restricted
    assert result.severity == ZoneSeverity.NONE


def test_airport_takes_precedence_over_overlapping_zone():
    registry = ZoneRegistry(
        zones=[ZoneDefinition(name='Cap', type='heritage', center=point(42.0, 20.5), radius=3000, max_altitude=80)],
        airports=[AirportDefinition(name='Field', center=point(42.0, 20.5),
                                    restricted_radius=1000, caution_radius=2000)]
    )
    assert registry.classify(point(42.0, 20.5)).zone_name == 'Field'
    assert registry.classify(point(42.015, 20.5)).zone_name == 'Cap'


def test_nearest_airport(zones):
    nearest = zones.nearest_airport(point(42.0, 20.6))
    assert nearest.code == 'FLD'
    assert 8000 < nearest.distance < 8500
    assert ZoneRegistry().nearest_airport(point(42.0, 20.6)) is None
