import math

import pytest

from throttlelife.core.geo import LatLng, haversine_miles
from throttlelife.core.route import build_route_metrics, project_point_to_route

# ~6.9 miles per 0.1 degree of longitude at the equator.
EQUATOR_ROUTE = [LatLng(0, 0), LatLng(0, 0.1), LatLng(0, 0.2)]


def test_build_route_metrics_empty_and_single_point():
    empty = build_route_metrics([])
    assert empty.cumulative_miles == ()
    assert empty.total_miles == 0.0

    single = build_route_metrics([LatLng(37.5, -77.4)])
    assert single.cumulative_miles == (0.0,)
    assert single.total_miles == 0.0


def test_cumulative_miles_monotonic_and_aligned():
    path = [
        LatLng(37.5407, -77.4360),
        LatLng(37.6000, -77.4000),
        LatLng(37.6000, -77.4000),  # repeated vertex
        LatLng(37.7000, -77.5000),
        LatLng(37.6500, -77.6000),
    ]
    metrics = build_route_metrics(path)

    assert len(metrics.cumulative_miles) == len(path)
    assert metrics.cumulative_miles[0] == 0.0
    assert all(b >= a for a, b in zip(metrics.cumulative_miles, metrics.cumulative_miles[1:]))
    assert metrics.total_miles == metrics.cumulative_miles[-1]
    assert metrics.cumulative_miles[1] == pytest.approx(haversine_miles(path[0], path[1]))


def test_projecting_a_route_vertex_returns_zero_offset():
    metrics = build_route_metrics(EQUATOR_ROUTE)
    for i, vertex in enumerate(EQUATOR_ROUTE):
        projection = project_point_to_route(EQUATOR_ROUTE, metrics.cumulative_miles, vertex)
        assert projection.distance_to_route_miles == pytest.approx(0.0, abs=1e-9)
        assert projection.route_distance_miles == pytest.approx(metrics.cumulative_miles[i], abs=0.05)


def test_projection_of_offset_point_midway_along_segment():
    metrics = build_route_metrics(EQUATOR_ROUTE)
    projection = project_point_to_route(EQUATOR_ROUTE, metrics.cumulative_miles, LatLng(0.001, 0.05))

    # 0.001 degree of latitude is ~111 m.
    assert projection.distance_to_route_miles == pytest.approx(111.132 / 1609.34, rel=1e-6)
    assert projection.route_distance_miles == pytest.approx(3.46, abs=0.01)
    assert projection.segment_index == 0
    assert projection.projected_point.lat == pytest.approx(0.0, abs=1e-12)
    assert projection.projected_point.lng == pytest.approx(0.05)


def test_projection_clamps_to_route_end():
    metrics = build_route_metrics(EQUATOR_ROUTE)
    projection = project_point_to_route(EQUATOR_ROUTE, metrics.cumulative_miles, LatLng(0, 0.3))

    assert projection.segment_index == 1
    assert projection.projected_point.lng == pytest.approx(0.2)
    assert projection.distance_to_route_miles == pytest.approx(11_132 / 1609.34, rel=1e-6)
    assert projection.route_distance_miles == pytest.approx(metrics.total_miles, abs=0.05)


def test_projection_picks_nearest_segment():
    path = [LatLng(0, 0), LatLng(0, 0.1), LatLng(0.1, 0.1)]  # east, then north
    metrics = build_route_metrics(path)
    projection = project_point_to_route(path, metrics.cumulative_miles, LatLng(0.05, 0.101))

    assert projection.segment_index == 1
    assert projection.route_distance_miles > metrics.cumulative_miles[1]


def test_projection_shared_vertex_tie_keeps_first_segment():
    metrics = build_route_metrics(EQUATOR_ROUTE)
    projection = project_point_to_route(EQUATOR_ROUTE, metrics.cumulative_miles, LatLng(0.001, 0.1))
    assert projection.segment_index == 0


def test_projection_on_degenerate_routes():
    point = LatLng(37.5, -77.4)

    empty = project_point_to_route([], [], point)
    assert empty.distance_to_route_miles == math.inf
    assert empty.route_distance_miles == 0.0
    assert empty.segment_index == 0
    assert empty.projected_point == point

    only = LatLng(37.0, -77.0)
    single = project_point_to_route([only], [0.0], point)
    assert single.distance_to_route_miles == math.inf
    assert single.projected_point == only


def test_zero_length_segment_does_not_divide_by_zero():
    path = [LatLng(1, 1), LatLng(1, 1)]
    projection = project_point_to_route(path, [0.0, 0.0], LatLng(1.001, 1))
    assert math.isfinite(projection.distance_to_route_miles)
    assert projection.route_distance_miles == 0.0


def test_non_finite_vertex_is_bridged_not_zeroed():
    nan = float("nan")
    path = [LatLng(0, 0), LatLng(nan, 0), LatLng(1, 0)]
    direct = haversine_miles(LatLng(0, 0), LatLng(1, 0))

    metrics = build_route_metrics(path)
    assert metrics.cumulative_miles == pytest.approx((0.0, 0.0, direct))
    assert metrics.total_miles == pytest.approx(direct)

    # Halfway up the bridged segment, directly on it.
    projection = project_point_to_route(path, metrics.cumulative_miles, LatLng(0.5, 0))
    assert projection.segment_index == 0
    assert projection.distance_to_route_miles == pytest.approx(0.0, abs=1e-9)
    assert projection.route_distance_miles == pytest.approx(0.5 * 111_132 / 1609.34)


def test_route_without_two_finite_vertices_has_no_segments():
    nan = float("nan")
    path = [LatLng(0, 0), LatLng(nan, nan)]

    assert build_route_metrics(path).total_miles == 0.0
    assert math.isinf(project_point_to_route(path, (0.0, 0.0), LatLng(0, 0)).distance_to_route_miles)
