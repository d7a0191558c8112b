"""
Tabular views and summary statistics for joined regions.

Frames built here are the hand-off to rendering and reporting; this is
the only place undefined measures become NaN.
"""

from typing import Iterable, List, Optional, Sequence, Union

import geopandas as gpd
import numpy as np
import pandas as pd
from shapely.geometry import Point

from chargemap.models import ClassifiedRegion, JoinedRegion, PointFeature, as_float

AnyJoined = Union[JoinedRegion, ClassifiedRegion]


def _as_joined(region: AnyJoined) -> JoinedRegion:
    if isinstance(region, ClassifiedRegion):
        return region.joined
    return region


def regions_to_frame(
    regions: Iterable[AnyJoined],
    fields: Optional[Sequence[str]] = None,
    crs: Optional[str] = None
) -> gpd.GeoDataFrame:
    """Build a GeoDataFrame with one row per joined or classified region.

    Args:
        regions: Joined or classified regions
        fields: Attribute columns to include (default: every attribute)
        crs: CRS for the frame (default: the regions' CRS)

    Returns:
        GeoDataFrame with ``region_id``, ``name``, ``count``, ``presence``,
        one float column per attribute and, for classified regions,
        ``x_bin``, ``y_bin`` and ``bi_class``
    """
    regions = list(regions)
    if fields is None:
        seen: List[str] = []
        for region in regions:
            for name in _as_joined(region).region.attribute_names:
                if name not in seen:
                    seen.append(name)
        fields = seen
    fields = [name for name in fields if name != "count"]

    rows = []
    for region in regions:
        joined = _as_joined(region)
        row = {
            "region_id": joined.region_id,
            "name": joined.region.name,
            "count": joined.count,
            "presence": joined.presence,
        }
        for name in fields:
            row[name] = as_float(joined.value(name), missing=np.nan)
        if isinstance(region, ClassifiedRegion):
            row["x_bin"] = region.x_bin
            row["y_bin"] = region.y_bin
            row["bi_class"] = region.bi_class
        rows.append(row)

    if crs is None and regions:
        crs = _as_joined(regions[0]).region.crs

    columns = ["region_id", "name", "count", "presence", *fields]
    if regions and isinstance(regions[0], ClassifiedRegion):
        columns.extend(["x_bin", "y_bin", "bi_class"])

    frame = pd.DataFrame(rows, columns=columns)
    geometry = [_as_joined(region).region.geometry for region in regions]
    return gpd.GeoDataFrame(frame, geometry=geometry, crs=crs)


def points_to_frame(points: Iterable[PointFeature], crs: Optional[str] = None) -> gpd.GeoDataFrame:
    """Build a GeoDataFrame of station points."""
    points = list(points)
    frame = pd.DataFrame(
        [
            {
                "station_id": p.station_id,
                "name": p.name,
                "status_code": p.status_code,
                "access_code": p.access_code,
                "fuel_type_code": p.fuel_type_code,
                "owner_type_code": p.owner_type_code,
            }
            for p in points
        ],
        columns=[
            "station_id", "name", "status_code", "access_code",
            "fuel_type_code", "owner_type_code",
        ],
    )
    if crs is None and points:
        crs = points[0].crs
    geometry = [Point(p.longitude, p.latitude) for p in points]
    return gpd.GeoDataFrame(frame, geometry=geometry, crs=crs)


def summarize_by_presence(
    regions: Iterable[AnyJoined],
    fields: Sequence[str]
) -> pd.DataFrame:
    """Descriptive statistics of fields for regions with and without stations.

    Undefined values are skipped per field.

    Returns:
        DataFrame indexed by ``presence`` (False, True) with a ``regions``
        column and ``<field>_mean``, ``<field>_median`` and ``<field>_n``
        columns
    """
    frame = regions_to_frame(regions, fields=fields)
    table = pd.DataFrame(index=pd.Index([False, True], name="presence"))

    grouped = frame.groupby("presence")
    table["regions"] = grouped.size().reindex(table.index, fill_value=0).astype(int)
    table["stations"] = grouped["count"].sum().reindex(table.index, fill_value=0).astype(int)
    for name in fields:
        column = grouped[name]
        table[f"{name}_n"] = column.count().reindex(table.index, fill_value=0).astype(int)
        table[f"{name}_mean"] = column.mean().reindex(table.index)
        table[f"{name}_median"] = column.median().reindex(table.index)
    return table


def count_distribution(regions: Iterable[AnyJoined]) -> pd.Series:
    """Number of regions per station count, ascending by count."""
    counts = pd.Series([_as_joined(r).count for r in regions], dtype=int, name="count")
    distribution = counts.value_counts().sort_index()
    distribution.index.name = "count"
    distribution.name = "regions"
    return distribution
