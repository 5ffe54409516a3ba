import pytest

from conftest import BASE_LAT, BASE_LNG, METERS_PER_DEG_LAT, at, circle_request, flight_plan, path_request, rectangle_request
from conflict_detection import ConflictIndex, flight_bounds
from flight_registry import FlightRegistry
from models import FlightRequest

EAST_LEG = [(BASE_LAT, BASE_LNG), (BASE_LAT, BASE_LNG + 0.01)]


def north_of(meters):
    return meters / METERS_PER_DEG_LAT


def request(data):
    return FlightRequest.model_validate(data)


@pytest.fixture
def registry():
    registry = FlightRegistry()
    registry.insert(flight_plan('flight_a', at(10), at(10, 30), max_altitude=100.0, points=EAST_LEG))
    return registry


@pytest.fixture
def index(registry):
    return ConflictIndex(registry)


def parallel_leg(offset_m):
    lat = BASE_LAT + north_of(offset_m)
    return [(lat, BASE_LNG), (lat, BASE_LNG + 0.01)]


def test_close_parallel_path_conflicts(index):
    candidate = request(path_request(parallel_leg(150), at(10, 15), at(10, 45), max_altitude=110.0))
    conflicts = index.find_conflicts(candidate)

    assert len(conflicts) == 1
    conflict = conflicts[0]
    assert conflict.other_flight_id == 'flight_a'
    assert conflict.flight_number == index.registry.get('flight_a').flight_number
    assert conflict.conflict_type == 'path_proximity'
    assert conflict.min_distance == pytest.approx(150, abs=1)
    assert conflict.scheduled_start == at(10)


def test_vertical_separation_clears_conflict(index):
    candidate = request(path_request(parallel_leg(150), at(10, 15), at(10, 45), max_altitude=140.0))
    assert index.find_conflicts(candidate) == []


@pytest.mark.parametrize("altitude,conflicts", [(129.0, 1), (130.0, 0), (70.0, 0), (71.0, 1)])
def test_vertical_separation_threshold(index, altitude, conflicts):
    candidate = request(path_request(EAST_LEG, at(10), at(10, 30), max_altitude=altitude))
    assert len(index.find_conflicts(candidate)) == conflicts


def test_adjacent_windows_do_not_conflict(index):
    candidate = request(path_request(EAST_LEG, at(10, 30), at(11)))
    assert index.find_conflicts(candidate) == []


def test_distant_parallel_path_is_clear(index):
    candidate = request(path_request(parallel_leg(250), at(10), at(10, 30)))
    assert index.find_conflicts(candidate) == []


def test_far_away_flight_rejected_by_bounds(index):
    candidate = request(path_request([(BASE_LAT + 0.2, BASE_LNG), (BASE_LAT + 0.2, BASE_LNG + 0.01)],
                                     at(10), at(10, 30)))
    assert index.spatial_conflict(candidate, index.registry.get('flight_a')) is None


def test_excluded_flight_is_ignored(index):
    candidate = request(path_request(EAST_LEG, at(10), at(10, 30)))
    assert index.find_conflicts(candidate, exclude_id='flight_a') == []


def test_path_entering_area():
    index = ConflictIndex(FlightRegistry())
    area = request(circle_request(BASE_LAT, BASE_LNG + 0.005, 300, at(10), at(10, 30)))
    crossing = request(path_request(EAST_LEG, at(10), at(10, 30)))
    passing = request(path_request(parallel_leg(1000), at(10), at(10, 30)))

    assert index.spatial_conflict(crossing, area) == ('path_enters_area', 0.0)
    assert index.spatial_conflict(area, crossing) == ('path_enters_area', 0.0)
    assert index.spatial_conflict(passing, area) is None


def test_circle_overlap_uses_center_distance():
    index = ConflictIndex(FlightRegistry())
    first = request(circle_request(BASE_LAT, BASE_LNG, 600, at(10), at(10, 30)))
    overlapping = request(circle_request(BASE_LAT + north_of(1000), BASE_LNG, 600, at(10), at(10, 30)))
    apart = request(circle_request(BASE_LAT + north_of(1000), BASE_LNG, 350, at(10), at(10, 30)))

    conflict_type, distance = index.spatial_conflict(first, overlapping)
    assert conflict_type == 'area_overlap'
    assert distance == pytest.approx(1000, abs=1)
    assert index.spatial_conflict(apart, first) is None


def test_rectangles_conflict_on_padded_bounds():
    index = ConflictIndex(FlightRegistry())
    first = request(rectangle_request(42.62, 42.60, 20.92, 20.90, at(10), at(10, 30)))
    touching = request(rectangle_request(42.62, 42.60, 20.93, 20.925, at(10), at(10, 30)))
    far = request(rectangle_request(42.62, 42.60, 21.00, 20.95, at(10), at(10, 30)))

    assert index.spatial_conflict(first, touching) == ('area_overlap', 0.0)
    assert index.spatial_conflict(first, far) is None


def test_pair_check_is_symmetric():
    index = ConflictIndex(FlightRegistry())
    first = request(path_request(EAST_LEG, at(10), at(10, 30)))
    second = request(path_request(parallel_leg(120), at(10), at(10, 30)))
    assert index.min_path_distance(first, second) == pytest.approx(index.min_path_distance(second, first))
    assert index.check_pair(first, second) is not None
    assert index.check_pair(second, first) is not None


def test_flight_bounds():
    path = request(path_request(EAST_LEG, at(10), at(10, 30)))
    bounds = flight_bounds(path)
    assert bounds == {'north': BASE_LAT, 'south': BASE_LAT, 'east': BASE_LNG + 0.01, 'west': BASE_LNG}
