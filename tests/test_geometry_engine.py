"""Tests for the survey geometry engine."""
import logging

import pytest

from common.units import Q_
from geosurvey import geometry_engine as ge
from geosurvey.coordinate import Coordinate
from geosurvey.errors import InsufficientPointsError

from conftest import METERS_PER_DEGREE, square_ring


def bowtie():
    return [Coordinate(0, 0), Coordinate(0.01, 0.01), Coordinate(0.01, 0), Coordinate(0, 0.01)]


class TestDistance:
    def test_coordinates_use_3d_distance(self):
        a, b = Coordinate(0, 0, 0), Coordinate(0, 0, 30)
        assert ge.calculate_distance(a, b) == pytest.approx(30.0)

    def test_two_dimensional(self):
        a, b = Coordinate(0, 0, 0), Coordinate(0, 1, 500)
        assert ge.calculate_distance(a, b, include_elevation=False) == pytest.approx(METERS_PER_DEGREE)

    def test_records(self):
        a = {"latitude": 0, "longitude": 0, "elevation": 0}
        b = {"lat": 0, "lng": 0, "altitude": 40}
        assert ge.calculate_distance(a, b) == pytest.approx(40.0)

    def test_malformed_input_gives_zero(self, caplog):
        with caplog.at_level(logging.ERROR):
            assert ge.calculate_distance(None, {"lat": 1, "lng": 1}) == 0.0
        assert "Invalid coordinate format" in caplog.text

    def test_geodesic_distance_is_close_to_spherical(self):
        a, b = Coordinate(40.7128, -74.0060), Coordinate(51.5074, -0.1278)
        geodesic = ge.calculate_geodesic_distance(a, b)
        assert geodesic == pytest.approx(5_570_000, rel=1e-3)
        assert geodesic == pytest.approx(ge.calculate_distance(a, b), rel=5e-3)

    def test_bearing(self):
        assert ge.calculate_bearing(Coordinate(0, 0), {"lat": 0, "lng": 1}) == pytest.approx(90.0)

    def test_bearing_malformed(self):
        assert ge.calculate_bearing(None, Coordinate(0, 0)) == 0.0


class TestPerimeterAndLength:
    def test_triangle_perimeter_is_sum_of_edges(self):
        a, b, c = Coordinate(0, 0, 0), Coordinate(0, 0.01, 10), Coordinate(0.01, 0, 20)
        expected = a.distance_to(b) + b.distance_to(c) + c.distance_to(a)
        assert ge.calculate_perimeter([a, b, c]) == pytest.approx(expected)

    def test_closed_ring_is_not_closed_twice(self, square):
        assert ge.calculate_perimeter(square + [square[0]]) == pytest.approx(
            ge.calculate_perimeter(square)
        )

    def test_square_perimeter(self, square):
        assert ge.calculate_perimeter(square) == pytest.approx(4000.0, rel=2e-3)

    def test_short_inputs(self):
        assert ge.calculate_perimeter([]) == 0.0
        assert ge.calculate_perimeter([Coordinate(0, 0)]) == 0.0

    def test_path_length_closes_rings_like_perimeter(self):
        path = [Coordinate(0, 0), Coordinate(0, 0.01), Coordinate(0.01, 0.01)]
        expected = sum(a.distance_to(b) for a, b in zip(path, path[1:] + path[:1]))
        assert ge.calculate_path_length(path) == pytest.approx(expected)
        assert ge.calculate_path_length(path) == ge.calculate_perimeter(path)

    def test_path_length_of_two_points_is_one_edge(self):
        a, b = Coordinate(0, 0), Coordinate(0, 0.01)
        assert ge.calculate_path_length([a, b]) == pytest.approx(a.distance_to(b))

    def test_path_center_walks_open_path(self):
        path = [Coordinate(0, 0, 0), Coordinate(0, 0.01, 0), Coordinate(0.01, 0.01, 0)]
        center = ge.calculate_path_center(path)
        assert center.latitude == pytest.approx(0.0, abs=1e-9)
        assert center.longitude == pytest.approx(0.01, abs=1e-6)


class TestArea:
    def test_one_kilometre_square_spherical(self, square):
        assert ge.calculate_area(square, include_elevation=False) == pytest.approx(1e6, rel=1e-2)

    def test_one_kilometre_square_3d(self, square):
        assert ge.calculate_area(square) == pytest.approx(1e6, rel=1e-2)

    def test_closing_point_does_not_change_area(self, square):
        assert ge.calculate_area(square + [square[0]], include_elevation=False) == pytest.approx(
            ge.calculate_area(square, include_elevation=False)
        )

    def test_orientation_does_not_matter(self, square):
        assert ge.calculate_area(square[::-1], include_elevation=False) == pytest.approx(
            ge.calculate_area(square, include_elevation=False)
        )

    def test_sloped_parcel_is_larger_than_footprint(self):
        sloped = square_ring(40.0, -105.0, elevations=(0.0, 0.0, 100.0, 100.0))
        flat_area = ge.calculate_area(sloped, include_elevation=False)
        assert ge.calculate_area(sloped) > flat_area * 1.003

    def test_small_triangle(self):
        # Right triangle with 100 m legs
        leg = 100.0 / METERS_PER_DEGREE
        triangle = [Coordinate(0, 0), Coordinate(0, leg), Coordinate(leg, 0)]
        assert ge.calculate_area(triangle, include_elevation=False) == pytest.approx(5000.0, rel=1e-3)

    def test_records_are_accepted(self, square):
        records = [c.to_record() for c in square]
        assert ge.calculate_area(records) == pytest.approx(ge.calculate_area(square))

    def test_too_few_points(self):
        with pytest.raises(InsufficientPointsError):
            ge.calculate_area([Coordinate(0, 0), Coordinate(0, 1)])

    def test_self_intersecting_falls_back_with_warning(self, caplog):
        with caplog.at_level(logging.WARNING):
            area = ge.calculate_area(bowtie())
        assert area >= 0.0
        assert "Self-intersecting polygon" in caplog.text


class TestSelfIntersection:
    def test_bowtie(self):
        assert ge.has_self_intersections(bowtie())
        assert ge.has_self_intersections(bowtie() + [Coordinate(0, 0)])

    def test_square(self, square):
        assert not ge.has_self_intersections(square)
        assert not ge.has_self_intersections(square + [square[0]])

    def test_fewer_than_four_points(self):
        assert not ge.has_self_intersections([Coordinate(0, 0), Coordinate(1, 1), Coordinate(0, 1)])


class TestContainment:
    def test_centroid_is_inside(self, square):
        assert ge.is_point_in_polygon(ge.calculate_centroid(square), square)

    def test_far_point_is_outside(self, square):
        assert not ge.is_point_in_polygon(Coordinate(0, 0), square)

    def test_alias(self, square):
        assert ge.point_in_polygon is ge.is_point_in_polygon

    def test_polygon_in_other_projection(self, square):
        nad83 = [c.to_projection("NAD83") for c in square]
        assert ge.is_point_in_polygon(Coordinate(40.0, -105.0), nad83)


class TestCentroids:
    def test_centroid_is_vertex_mean(self):
        tri = [Coordinate(0, 0, 0), Coordinate(0, 3, 30), Coordinate(3, 0, 60)]
        centroid = ge.calculate_centroid(tri)
        assert (centroid.latitude, centroid.longitude, centroid.elevation) == pytest.approx(
            (1.0, 1.0, 30.0)
        )

    def test_centroid_needs_three_points(self):
        with pytest.raises(InsufficientPointsError):
            ge.calculate_centroid([Coordinate(0, 0), Coordinate(1, 1)])

    def test_polygon_centroid_without_holes(self, square):
        assert ge.calculate_polygon_centroid(square) == ge.calculate_centroid(square)

    def test_hole_shifts_centroid_away(self, square):
        hole = square_ring(40.002, -104.997, side_m=200.0)
        centroid = ge.calculate_polygon_centroid(square, [hole])
        plain = ge.calculate_centroid(square)
        assert centroid.latitude < plain.latitude
        assert centroid.longitude < plain.longitude

    def test_degenerate_holes_are_ignored(self, square):
        centroid = ge.calculate_polygon_centroid(square, [[Coordinate(40, -105)], []])
        assert centroid == ge.calculate_centroid(square)

    def test_short_exterior_returns_first_point(self, caplog):
        first = Coordinate(1, 2, 3)
        with caplog.at_level(logging.WARNING):
            result = ge.calculate_polygon_centroid([first, Coordinate(4, 5)])
        assert result == first
        assert result is not first
        assert "need at least 3 coordinates" in caplog.text

    def test_empty_exterior_returns_none(self):
        assert ge.calculate_polygon_centroid([]) is None

    def test_path_center_of_straight_line(self):
        path = [Coordinate(0, 0, 0), Coordinate(0, 0.01, 0), Coordinate(0, 0.03, 0)]
        center = ge.calculate_path_center(path)
        assert center.latitude == pytest.approx(0.0, abs=1e-9)
        assert center.longitude == pytest.approx(0.015, abs=1e-9)

    def test_path_center_small_inputs(self):
        single = Coordinate(1, 1, 1)
        assert ge.calculate_path_center([single]) == single
        mid = ge.calculate_path_center([Coordinate(0, 0, 0), Coordinate(2, 2, 10)])
        assert (mid.latitude, mid.longitude, mid.elevation) == (1.0, 1.0, 5.0)

    def test_path_center_empty(self):
        with pytest.raises(InsufficientPointsError):
            ge.calculate_path_center([])


class TestConstructions:
    def test_circle(self):
        center = Coordinate(40.0, -105.0, 1600.0)
        circle = ge.create_circle(center, 1000, 8)
        assert len(circle) == 9
        for point in circle:
            assert ge.calculate_distance(center, point, include_elevation=False) == pytest.approx(
                1000.0, rel=1e-9
            )
        assert circle[0].latitude == pytest.approx(circle[-1].latitude)
        assert circle[0].longitude == pytest.approx(circle[-1].longitude)

    def test_circle_points_keep_center_elevation(self):
        circle = ge.create_circle(Coordinate(0, 0, 12.0), 100, 4)
        assert all(p.elevation == 12.0 for p in circle)

    def test_arc_bearings_are_degrees(self):
        center = Coordinate(10.0, 0.0)
        arc = ge.create_arc(center, 500, 0, 90, 4)
        assert len(arc) == 5
        bearings = [center.bearing_to(p) for p in arc]
        assert bearings == pytest.approx([0.0, 22.5, 45.0, 67.5, 90.0], abs=1e-6)

    def test_arc_accepts_quantities(self):
        center = Coordinate(0.0, 0.0)
        arc = ge.create_arc(center, Q_(1, "kilometer"), 0, 180, 2)
        assert center.distance_to(arc[1]) == pytest.approx(1000.0, rel=1e-9)

    @pytest.mark.parametrize("segments", [0, -3])
    def test_arc_needs_a_segment(self, segments):
        with pytest.raises(InsufficientPointsError, match="at least 1 segment"):
            ge.create_arc(Coordinate(0, 0), 100, 0, 90, segments)

    def test_circle_needs_a_segment(self):
        with pytest.raises(ValueError):
            ge.create_circle(Coordinate(0, 0), 100, 0)

    def test_rectangle(self):
        center = Coordinate(45.0, 7.0)
        rect = ge.create_rectangle(center, 200, 100)
        assert len(rect) == 5
        assert rect[0] == rect[-1]
        assert rect[0].distance_to(rect[1]) == pytest.approx(200.0, rel=1e-3)
        assert rect[1].distance_to(rect[2]) == pytest.approx(100.0, rel=1e-3)
        for corner in rect[:4]:
            assert center.distance_to(corner) == pytest.approx(111.8034, rel=1e-5)

    def test_rectangle_corners_start_south_west(self):
        center = Coordinate(45.0, 7.0)
        sw = ge.create_rectangle(center, 200, 100)[0]
        assert sw.latitude < center.latitude
        assert sw.longitude < center.longitude

    def test_rotated_rectangle_keeps_area(self):
        center = Coordinate(45.0, 7.0)
        plain = ge.calculate_area(ge.create_rectangle(center, 200, 100), include_elevation=False)
        rotated = ge.calculate_area(ge.create_rectangle(center, 200, 100, 30), include_elevation=False)
        assert rotated == pytest.approx(plain, rel=1e-3)
        assert plain == pytest.approx(20_000.0, rel=1e-3)

    def test_destination(self):
        end = ge.destination_coordinate(Coordinate(0, 0, 5), METERS_PER_DEGREE, 90)
        assert end.latitude == pytest.approx(0.0, abs=1e-9)
        assert end.longitude == pytest.approx(1.0)
        assert end.elevation == 5.0

    def test_destination_wraps_antimeridian(self):
        end = ge.destination_coordinate(Coordinate(0, 179.9), 0.2 * METERS_PER_DEGREE, 90)
        assert end.longitude == pytest.approx(-179.9)

    def test_destination_rejects_wrong_units(self):
        with pytest.raises(ValueError, match="incompatible units"):
            ge.destination_coordinate(Coordinate(0, 0), Q_(5, "second"), 0)

    def test_destination_malformed_start(self):
        assert ge.destination_coordinate(None, 10, 0) is None


class TestOffsets:
    @pytest.fixture
    def line(self):
        return [Coordinate(0, 0, 0), Coordinate(0, 0.01, 100)]

    def test_perpendicular_offset(self, line):
        result = ge.calculate_perpendicular_offset(line, 0, 0.5, 10)
        assert result.segment_bearing == pytest.approx(90.0)
        assert result.perpendicular_bearing == pytest.approx(180.0)
        assert result.segment_position == 0.5
        assert result.point_index == 0
        assert result.nearest_point.longitude == pytest.approx(0.005)
        assert result.nearest_point.elevation == pytest.approx(50.0)
        assert result.offset_point.latitude < 0
        assert result.offset_point.elevation == pytest.approx(50.0)
        assert result.nearest_point.distance_to(result.offset_point) == pytest.approx(10.0, rel=1e-6)

    def test_position_is_clamped(self, line):
        assert ge.calculate_perpendicular_offset(line, 0, 1.7, 10).segment_position == 1.0

    def test_flat_offset(self, line):
        result = ge.calculate_perpendicular_offset(line, 0, 0.5, 10, enable_3d=False)
        assert result.nearest_point.elevation == 0.0

    @pytest.mark.parametrize("index", [-1, 1, 5])
    def test_invalid_index(self, line, index):
        with pytest.raises(InsufficientPointsError):
            ge.calculate_perpendicular_offset(line, index, 0.5, 10)

    def test_offset_line(self):
        path = [Coordinate(0, 0), Coordinate(0, 0.01), Coordinate(0, 0.02)]
        offset = ge.create_offset_line(path, 10)
        assert len(offset) == 3
        for point in offset:
            assert point.latitude == pytest.approx(-10 / METERS_PER_DEGREE, rel=1e-6)

    def test_negative_offset_goes_left(self):
        offset = ge.create_offset_line([Coordinate(0, 0), Coordinate(0, 0.01)], -10)
        assert all(p.latitude > 0 for p in offset)

    def test_closed_offset_line(self):
        path = [Coordinate(0, 0), Coordinate(0, 0.01), Coordinate(0.01, 0.01)]
        offset = ge.create_offset_line(path, 5, closed=True)
        assert len(offset) == 4
        assert offset[-1] == offset[0]

    def test_offset_line_needs_two_points(self):
        with pytest.raises(InsufficientPointsError):
            ge.create_offset_line([Coordinate(0, 0)], 5)

    def test_nearest_point_on_segment(self):
        result = ge.nearest_point_on_segment(
            Coordinate(0, 0), Coordinate(0, 0.01), Coordinate(0.001, 0.005)
        )
        assert result.fraction == pytest.approx(0.5)
        assert result.point.longitude == pytest.approx(0.005)
        assert result.point.latitude == pytest.approx(0.0)
        assert result.distance == pytest.approx(0.001 * METERS_PER_DEGREE, rel=1e-6)

    def test_nearest_point_beyond_end(self):
        result = ge.nearest_point_on_segment(
            {"lat": 0, "lng": 0}, {"lat": 0, "lng": 0.01}, {"lat": 0, "lng": 0.05}
        )
        assert result.fraction == 1.0
        assert result.point.longitude == pytest.approx(0.01)

    def test_degenerate_segment(self):
        result = ge.nearest_point_on_segment(Coordinate(1, 1), Coordinate(1, 1), Coordinate(2, 2))
        assert result.fraction == 0.0


class TestElevationChange:
    def test_gain_and_loss(self):
        path = [Coordinate(0, 0, e) for e in (0, 10, 5, 20)]
        assert ge.calculate_elevation_gain(path) == pytest.approx(25.0)
        assert ge.calculate_elevation_loss(path) == pytest.approx(5.0)

    def test_pairs_without_elevation_are_skipped(self):
        path = [
            {"lat": 0, "lng": 0, "elevation": 0},
            {"lat": 0, "lng": 1},
            {"lat": 0, "lng": 2, "elevation": 10},
            {"lat": 0, "lng": 3, "elevation": 4},
        ]
        assert ge.calculate_elevation_gain(path) == 0.0
        assert ge.calculate_elevation_loss(path) == pytest.approx(6.0)

    def test_malformed_elevation_skips_pair(self, caplog):
        path = [
            {"lat": 0, "lng": 0, "elevation": "abc"},
            {"lat": 0, "lng": 1, "elevation": 5},
            {"lat": 0, "lng": 2, "altitude": "12.5"},
        ]
        with caplog.at_level(logging.WARNING):
            assert ge.calculate_elevation_gain(path) == pytest.approx(7.5)
        assert "Invalid elevation" in caplog.text

    def test_non_finite_elevation_skips_pair(self):
        path = [{"lat": 0, "lng": 0, "z": float("inf")}, {"lat": 0, "lng": 1, "z": 3}]
        assert ge.calculate_elevation_loss(path) == 0.0
        assert ge.calculate_elevation_gain(path) == 0.0

    def test_short_paths(self):
        assert ge.calculate_elevation_gain([]) == 0.0
        assert ge.calculate_elevation_loss([Coordinate(0, 0, 5)]) == 0.0
