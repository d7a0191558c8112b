"""
Spatial operations joining stations to census regions.

This module assigns station points to the region containing them,
counts stations per region and merges those counts back onto the
region attribute table.
"""

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, Mapping, Optional, Sequence, Tuple

import geopandas as gpd
from pyproj import CRS

from chargemap.errors import CoordinateSystemMismatchError, UnknownAttributeError
from chargemap.models import JoinedRegion, PointFeature, Region

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class JoinResult:
    """Result of joining stations to regions.

    Attributes:
        counts: Region id -> station count, for regions with stations only
        regions: Joined regions in input order, minus dropped regions
        dropped: Ids of regions dropped for an undefined required attribute
    """
    counts: Mapping[str, int]
    regions: Tuple[JoinedRegion, ...]
    dropped: Tuple[str, ...] = ()


def check_crs(points: Sequence[PointFeature], regions: Sequence[Region]) -> Optional[CRS]:
    """Verify that points and regions share one coordinate reference system.

    Returns:
        The shared CRS, or None when both collections are empty

    Raises:
        CoordinateSystemMismatchError: On any disagreement
    """
    shared: Optional[CRS] = None
    shared_label = None

    for feature in points:
        crs = CRS.from_user_input(feature.crs)
        if shared is None:
            shared, shared_label = crs, feature.crs
        elif crs != shared:
            raise CoordinateSystemMismatchError(feature.crs, shared_label)

    for region in regions:
        crs = CRS.from_user_input(region.crs)
        if shared is None:
            shared, shared_label = crs, region.crs
        elif crs != shared:
            raise CoordinateSystemMismatchError(shared_label, region.crs, region.region_id)

    return shared


class SpatialAggregator:
    """Counts stations per containing region.

    A point on a boundary shared by several regions is assigned to the
    first of those regions in the order the regions were given. Points
    outside every region are dropped.
    """

    def aggregate(
        self,
        points: Iterable[PointFeature],
        regions: Iterable[Region]
    ) -> Dict[str, int]:
        """Count points per region.

        Args:
            points: Station features
            regions: Region features, in tie-break order

        Returns:
            Region id -> count, only for regions with at least one point

        Raises:
            CoordinateSystemMismatchError: If points and regions differ in
                CRS. Raised before any containment test.
        """
        points = tuple(points)
        regions = tuple(regions)

        crs = check_crs(points, regions)
        if not points or not regions:
            return {}

        point_frame = gpd.GeoDataFrame(
            {"_point": range(len(points))},
            geometry=gpd.points_from_xy(
                [p.longitude for p in points],
                [p.latitude for p in points],
            ),
            crs=crs,
        )
        region_frame = gpd.GeoDataFrame(
            {
                "_region_order": range(len(regions)),
                "region_id": [r.region_id for r in regions],
            },
            geometry=[r.geometry for r in regions],
            crs=crs,
        )

        # Boundary points match every touching region
        candidates = gpd.sjoin(point_frame, region_frame, how="inner", predicate="intersects")
        assigned = (
            candidates
            .sort_values(["_point", "_region_order"])
            .drop_duplicates("_point", keep="first")
        )

        per_region = assigned.groupby("region_id").size()
        counts = {
            region.region_id: int(per_region[region.region_id])
            for region in regions
            if region.region_id in per_region.index
        }

        logger.info(
            "Assigned %d of %d points to %d regions (%d outside all regions)",
            len(assigned), len(points), len(counts), len(points) - len(assigned)
        )
        return counts


class AttributeJoiner:
    """Merges station counts onto regions.

    Regions whose required attribute is undefined are dropped from the
    output rather than zero-filled.
    """

    def __init__(self, required_attribute: str, known_attributes: Iterable[str]):
        """Initialize the joiner.

        Args:
            required_attribute: Attribute that must be defined to keep a region
            known_attributes: Attribute names the regions can provide

        Raises:
            UnknownAttributeError: If ``required_attribute`` is not known
        """
        known = set(known_attributes)
        if required_attribute not in known:
            raise UnknownAttributeError(required_attribute, list(known))
        self.required_attribute = required_attribute

    def join(
        self,
        regions: Iterable[Region],
        counts: Mapping[str, int]
    ) -> Tuple[JoinedRegion, ...]:
        """Attach counts (default 0) and drop regions lacking the required attribute."""
        return self.join_with_dropped(regions, counts)[0]

    def join_with_dropped(
        self,
        regions: Iterable[Region],
        counts: Mapping[str, int]
    ) -> Tuple[Tuple[JoinedRegion, ...], Tuple[str, ...]]:
        joined = []
        dropped = []
        for region in regions:
            if not region.attribute(self.required_attribute).is_defined:
                dropped.append(region.region_id)
                continue
            joined.append(JoinedRegion(region=region, count=counts.get(region.region_id, 0)))

        if dropped:
            logger.info(
                "Dropped %d regions with undefined %s", len(dropped), self.required_attribute
            )
            logger.debug("Dropped regions: %s", dropped)
        return tuple(joined), tuple(dropped)


def spatial_join(
    points: Sequence[PointFeature],
    regions: Sequence[Region],
    required_attribute: str,
    known_attributes: Optional[Iterable[str]] = None
) -> JoinResult:
    """Convenience function counting points per region and joining the counts.

    Args:
        points: Station features
        regions: Region features
        required_attribute: Attribute that must be defined to keep a region
        known_attributes: Attribute names the regions provide (defaults to
            every name carried by any region)

    Returns:
        JoinResult with counts, joined regions and dropped ids

    Example:
        >>> result = spatial_join(stations, tracts, "median_income")
        >>> [(r.region_id, r.count) for r in result.regions]
    """
    if known_attributes is None:
        known_attributes = {name for region in regions for name in region.attribute_names}

    joiner = AttributeJoiner(required_attribute, known_attributes)
    counts = SpatialAggregator().aggregate(points, regions)
    joined, dropped = joiner.join_with_dropped(regions, counts)
    return JoinResult(counts=counts, regions=joined, dropped=dropped)
