import math

import pytest

from geofencing import BorderGeometry
from models import CircleArea, GeoPoint, RectangleArea
import path_sampling


def point(lat, lng):
    return GeoPoint(latitude=lat, longitude=lng)


def test_haversine_one_degree_of_latitude():
    assert path_sampling.haversine_distance(42.0, 21.0, 43.0, 21.0) == pytest.approx(111195, rel=1e-3)
    assert path_sampling.haversine_distance(42.0, 21.0, 42.0, 21.0) == 0


def test_sample_segment_includes_endpoints_and_respects_spacing():
    p1, p2 = point(42.60, 20.90), point(42.61, 20.90)  # ~1112 m
    samples = path_sampling.sample_segment(p1, p2, spacing=50)

    assert samples[0] == p1
    assert samples[-1] == p2
    assert len(samples) == math.ceil(path_sampling.point_distance(p1, p2) / 50) + 1
    for a, b in zip(samples, samples[1:]):
        assert path_sampling.point_distance(a, b) <= 50


def test_sample_segment_of_a_single_point():
    p = point(42.6, 20.9)
    assert path_sampling.sample_segment(p, p) == [p, p]


def test_sample_segment_rejects_non_positive_spacing():
    with pytest.raises(ValueError):
        path_sampling.sample_segment(point(42.6, 20.9), point(42.7, 20.9), spacing=0)


def test_sample_path_chains_segments_without_repeating_vertices():
    a, b, c = point(42.60, 20.90), point(42.601, 20.90), point(42.601, 20.901)
    samples = path_sampling.sample_path([a, b, c], spacing=50)

    assert samples.count(b) == 1
    assert samples[0] == a and samples[-1] == c
    assert path_sampling.sample_path([a]) == [a]
    assert path_sampling.sample_path([]) == []


def test_sample_area_circle_has_center_and_eight_perimeter_points():
    area = CircleArea(center=point(42.6, 20.9), radius=500)
    samples = path_sampling.sample_area(area)

    assert len(samples) == 9
    assert samples[0] == area.center
    for sample in samples[1:]:
        assert path_sampling.point_distance(sample, area.center) == pytest.approx(500, rel=0.01)


@pytest.mark.parametrize("lat,lng", [(89.999, 0.0), (45.0, 179.999), (-45.0, -179.999)])
def test_sample_area_circle_drops_points_past_pole_or_antimeridian(lat, lng):
    area = CircleArea(center=point(lat, lng), radius=1000)
    samples = path_sampling.sample_area(area)

    assert samples[0] == area.center
    assert 1 < len(samples) < 9
    for sample in samples:
        assert -90 <= sample.latitude <= 90
        assert -180 <= sample.longitude <= 180


def test_sample_area_rectangle_has_nine_points():
    area = RectangleArea(bounds={'north': 42.62, 'south': 42.60, 'east': 20.92, 'west': 20.90})
    samples = path_sampling.sample_area(area)

    assert len(samples) == 9
    assert samples[0].latitude == pytest.approx(42.61)
    assert samples[0].longitude == pytest.approx(20.91)
    for corner in [point(42.62, 20.90), point(42.62, 20.92), point(42.60, 20.92), point(42.60, 20.90)]:
        assert corner in samples


def test_crosses_border_none_when_all_intermediate_points_inside():
    border = BorderGeometry([(0.0, 0.0), (0.0, 10.0), (10.0, 10.0), (10.0, 0.0)])
    assert path_sampling.crosses_border(point(1, 1), point(9, 9), border) is None


# U-shaped border: the straight line between the arms leaves it
U_BORDER = [(0.0, 0.0), (0.0, 10.0), (10.0, 10.0), (10.0, 7.0),
            (2.0, 7.0), (2.0, 3.0), (10.0, 3.0), (10.0, 0.0)]


def test_crosses_border_returns_first_outside_sample():
    border = BorderGeometry(U_BORDER)
    p1, p2 = point(5, 1.1), point(5, 9.1)
    assert border.is_inside(p1) and border.is_inside(p2)

    crossing = path_sampling.crosses_border(p1, p2, border)
    assert crossing is not None
    assert not border.is_inside(crossing)
    assert 3 < crossing.longitude < 7
    assert crossing.longitude == pytest.approx(1.1 + 8 * 5 / 20)


def test_crosses_border_sample_on_east_facing_edge_is_outside():
    border = BorderGeometry(U_BORDER)
    crossing = path_sampling.crosses_border(point(5, 1), point(5, 9), border)
    assert crossing == point(5, 3.0)


def test_is_point_in_area():
    circle = CircleArea(center=point(42.6, 20.9), radius=300)
    rectangle = RectangleArea(bounds={'north': 42.62, 'south': 42.60, 'east': 20.92, 'west': 20.90})

    assert path_sampling.is_point_in_area(point(42.601, 20.9), circle)
    assert not path_sampling.is_point_in_area(point(42.61, 20.9), circle)
    assert path_sampling.is_point_in_area(point(42.62, 20.90), rectangle)
    assert not path_sampling.is_point_in_area(point(42.63, 20.91), rectangle)


def test_bounds_overlap_with_buffer():
    a = {'north': 42.60, 'south': 42.59, 'east': 20.90, 'west': 20.89}
    near = {'north': 42.60, 'south': 42.59, 'east': 20.915, 'west': 20.905}
    far = {'north': 42.60, 'south': 42.59, 'east': 20.93, 'west': 20.92}

    assert path_sampling.bounds_overlap(a, near)
    assert not path_sampling.bounds_overlap(a, far)
    assert not path_sampling.bounds_overlap(a, None)


def test_circle_area_bounds_widen_in_longitude():
    bounds = path_sampling.area_bounds(CircleArea(center=point(42.6, 20.9), radius=1113.2))
    assert bounds['north'] - 42.6 == pytest.approx(0.01)
    assert bounds['east'] - 20.9 > 0.01


def test_path_length():
    points = [point(42.0, 21.0), point(42.5, 21.0), point(43.0, 21.0)]
    assert path_sampling.path_length(points) == pytest.approx(111195, rel=1e-3)
