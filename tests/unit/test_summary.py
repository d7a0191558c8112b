import math

import pandas as pd

from chargemap.analysis.summary import (
    count_distribution,
    points_to_frame,
    regions_to_frame,
    summarize_by_presence,
)
from chargemap.models import ClassifiedRegion


def test_regions_to_frame_unwraps_measures(make_joined):
    joined = [
        make_joined("A", count=2, income=50000, pct_white=None),
        make_joined("B", count=0, income=60000, pct_white=40),
    ]

    frame = regions_to_frame(joined)

    assert list(frame["region_id"]) == ["A", "B"]
    assert list(frame["presence"]) == [True, False]
    assert frame.loc[0, "income"] == 50000
    assert math.isnan(frame.loc[0, "pct_white"])
    assert frame.crs.to_epsg() == 4326
    assert "x_bin" not in frame.columns


def test_regions_to_frame_for_classified(make_joined):
    classified = [ClassifiedRegion(make_joined("A", count=1, income=1), x_bin=1, y_bin=3)]

    frame = regions_to_frame(classified, fields=["income", "count"])

    assert list(frame.columns[:5]) == ["region_id", "name", "count", "presence", "income"]
    assert frame.loc[0, "bi_class"] == "1-3"
    assert frame.loc[0, "count"] == 1


def test_points_to_frame(make_point):
    frame = points_to_frame([make_point(-87.6, 41.8, access_code="public")])

    assert frame.loc[0, "access_code"] == "public"
    assert frame.geometry.iloc[0].x == -87.6
    assert frame.geometry.iloc[0].y == 41.8


def test_summarize_by_presence(make_joined):
    joined = [
        make_joined("A", count=0, income=40000),
        make_joined("B", count=0, income=None),
        make_joined("C", count=0, income=60000),
        make_joined("D", count=3, income=90000),
    ]

    table = summarize_by_presence(joined, ["income"])

    assert list(table.index) == [False, True]
    assert table.loc[False, "regions"] == 3
    assert table.loc[False, "income_n"] == 2
    assert table.loc[False, "income_mean"] == 50000
    assert table.loc[True, "stations"] == 3
    assert table.loc[True, "income_median"] == 90000


def test_summarize_without_station_regions(make_joined):
    table = summarize_by_presence([make_joined("A", count=0, income=1)], ["income"])

    assert table.loc[True, "regions"] == 0
    assert pd.isna(table.loc[True, "income_mean"])


def test_count_distribution(make_joined):
    joined = [make_joined(str(i), count=c, income=1) for i, c in enumerate([0, 2, 0, 1, 2, 2])]

    distribution = count_distribution(joined)

    assert distribution.to_dict() == {0: 2, 1: 1, 2: 3}
    assert distribution.name == "regions"
