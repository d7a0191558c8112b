import pytest

from chargemap.models import (
    UNDEFINED,
    BinBreaks,
    ClassifiedRegion,
    Defined,
    JoinedRegion,
    Undefined,
    as_float,
    measure,
)


def test_measure_wraps_numbers_and_none():
    assert measure(3) == Defined(3.0)
    assert measure(None) is UNDEFINED
    assert Undefined() is UNDEFINED
    assert not UNDEFINED.is_defined
    assert Defined(1.0).is_defined


def test_region_attribute_prefers_derived_and_defaults_to_undefined(make_region):
    region = make_region("R1", median_income=52000, derived={"pct_white": 40.0})

    assert region.attribute("median_income") == Defined(52000.0)
    assert region.attribute("pct_white") == Defined(40.0)
    assert region.attribute("not_there") is UNDEFINED
    assert set(region.attribute_names) == {"median_income", "pct_white"}


def test_region_mappings_are_read_only(make_region):
    region = make_region("R1", median_income=52000)

    with pytest.raises(TypeError):
        region.estimates["median_income"] = None


def test_joined_region_presence_follows_count(make_region):
    region = make_region("R1", median_income=1)

    assert JoinedRegion(region, 0).presence is False
    assert JoinedRegion(region, 2).presence is True
    assert JoinedRegion(region, 2).value("count") == Defined(2.0)
    with pytest.raises(ValueError):
        JoinedRegion(region, -1)


def test_classified_region_labels(make_joined):
    classified = ClassifiedRegion(make_joined("R1", count=1, median_income=5), x_bin=2, y_bin=3)

    assert classified.class_label == (2, 3)
    assert classified.bi_class == "2-3"
    assert classified.count == 1
    assert classified.region_id == "R1"


def test_bin_breaks_lower_closed_top_closed():
    breaks = BinBreaks(field="x", boundaries=(1.0, 100.0, 102.0))

    assert breaks.k == 2
    assert breaks.bin_for(1.0) == 1
    assert breaks.bin_for(99.9) == 1
    assert breaks.bin_for(100.0) == 2
    assert breaks.bin_for(102.0) == 2
    with pytest.raises(ValueError):
        breaks.bin_for(103.0)


def test_as_float():
    assert as_float(Defined(2.5)) == 2.5
    assert as_float(UNDEFINED) is None


def test_as_float_missing_value():
    assert as_float(UNDEFINED, missing=-1.0) == -1.0
    assert as_float(Defined(3.0), missing=-1.0) == 3.0


def test_regions_are_hashable(make_region, make_joined):
    region = make_region("R1", median_income=52000, derived={"pct_white": 40.0})
    joined = make_joined("R2", count=1, median_income=1)
    classified = ClassifiedRegion(joined, x_bin=1, y_bin=1)

    assert len({region, region}) == 1
    assert {joined: "R2"}[joined] == "R2"
    assert classified in {classified}
