import pytest

from chargemap.analysis import spatial_ops
from chargemap.analysis.spatial_ops import (
    AttributeJoiner,
    SpatialAggregator,
    check_crs,
    spatial_join,
)
from chargemap.errors import CoordinateSystemMismatchError, UnknownAttributeError


def test_three_points_in_one_square(two_squares, make_point):
    points = [make_point(0.2, 0.2), make_point(0.5, 0.5), make_point(0.8, 0.3)]

    counts = SpatialAggregator().aggregate(points, two_squares)
    joined = AttributeJoiner("median_income", ["median_income"]).join(two_squares, counts)

    assert counts == {"T1": 3}
    assert [(r.region_id, r.count, r.presence) for r in joined] == [
        ("T1", 3, True),
        ("T2", 0, False),
    ]


def test_shared_boundary_point_goes_to_first_region(two_squares, make_point):
    points = [make_point(1.0, 0.5)]

    counts = SpatialAggregator().aggregate(points, two_squares)
    reversed_counts = SpatialAggregator().aggregate(points, tuple(reversed(two_squares)))

    assert counts == {"T1": 1}
    assert reversed_counts == {"T2": 1}


def test_shared_corner_point_counted_once(make_region, square, make_point):
    regions = [
        make_region("NW", square(0, 1)),
        make_region("NE", square(1, 1)),
        make_region("SW", square(0, 0)),
        make_region("SE", square(1, 0)),
    ]

    counts = SpatialAggregator().aggregate([make_point(1.0, 1.0)], regions)

    assert counts == {"NW": 1}


def test_points_outside_all_regions_are_dropped(two_squares, make_point):
    points = [make_point(0.5, 0.5), make_point(5.0, 5.0), make_point(-1.0, 0.5)]

    assert SpatialAggregator().aggregate(points, two_squares) == {"T1": 1}


def test_each_interior_point_counts_for_its_region_only(two_squares, make_point):
    points = [make_point(0.5, 0.5), make_point(1.5, 0.5), make_point(1.5, 0.9)]

    assert SpatialAggregator().aggregate(points, two_squares) == {"T1": 1, "T2": 2}


def test_aggregation_is_idempotent(two_squares, make_point):
    points = (make_point(0.5, 0.5), make_point(1.0, 0.5), make_point(1.5, 0.1))
    aggregator = SpatialAggregator()

    assert aggregator.aggregate(points, two_squares) == aggregator.aggregate(points, two_squares)


def test_empty_inputs_give_empty_counts(two_squares, make_point):
    assert SpatialAggregator().aggregate([], two_squares) == {}
    assert SpatialAggregator().aggregate([make_point(0.5, 0.5)], []) == {}


def test_crs_mismatch_raises_before_containment(two_squares, make_point, monkeypatch):
    def fail_sjoin(*args, **kwargs):
        raise AssertionError("containment test should not run")

    monkeypatch.setattr(spatial_ops.gpd, "sjoin", fail_sjoin)
    points = [make_point(0.5, 0.5, crs="EPSG:3857")]

    with pytest.raises(CoordinateSystemMismatchError) as excinfo:
        SpatialAggregator().aggregate(points, two_squares)

    assert excinfo.value.point_crs == "EPSG:3857"
    assert excinfo.value.region_crs == "EPSG:4326"


def test_crs_mismatch_within_regions(make_region, square):
    regions = [make_region("A", square(0, 0)), make_region("B", square(1, 0), crs="EPSG:4269")]

    with pytest.raises(CoordinateSystemMismatchError) as excinfo:
        check_crs([], regions)

    assert excinfo.value.region_id == "B"


def test_crs_spelling_does_not_matter(two_squares, make_point):
    assert check_crs([make_point(0.5, 0.5, crs="epsg:4326")], two_squares) is not None


def test_joiner_drops_regions_without_required_attribute(make_region, square):
    regions = [
        make_region("T1", square(0, 0), median_income=50000),
        make_region("T2", square(1, 0), median_income=70000),
        make_region("T3", square(2, 0), median_income=None),
    ]
    joiner = AttributeJoiner("median_income", ["median_income"])

    joined, dropped = joiner.join_with_dropped(regions, {"T1": 1, "T3": 4})

    assert [r.region_id for r in joined] == ["T1", "T2"]
    assert joined[1].count == 0 and joined[1].presence is False
    assert dropped == ("T3",)


def test_joiner_rejects_unknown_required_attribute():
    with pytest.raises(UnknownAttributeError) as excinfo:
        AttributeJoiner("median_incme", ["median_income", "pct_white"])

    assert excinfo.value.name == "median_incme"
    assert excinfo.value.available == ["median_income", "pct_white"]


def test_spatial_join_convenience(two_squares, make_point):
    result = spatial_join([make_point(1.5, 0.5)], two_squares, "median_income")

    assert dict(result.counts) == {"T2": 1}
    assert [(r.region_id, r.count) for r in result.regions] == [("T1", 0), ("T2", 1)]
    assert result.dropped == ()
