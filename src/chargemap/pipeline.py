"""Pipeline orchestration: fetch, load, join, classify and summarize."""

import logging
from dataclasses import dataclass
from typing import Any, Iterable, Mapping, Optional, Tuple

import pandas as pd
from pyproj import CRS

from chargemap.analysis.classify import Classifier
from chargemap.analysis.spatial_ops import AttributeJoiner, SpatialAggregator
from chargemap.analysis.summary import summarize_by_presence
from chargemap.config import PipelineConfig
from chargemap.data.clients import AreaQuery, CensusClient, StationQuery, StationsClient
from chargemap.data.loaders import PointFeatureLoader, PolygonFeatureLoader
from chargemap.errors import CoordinateSystemMismatchError
from chargemap.models import BinBreaks, ClassifiedRegion, JoinedRegion, PointFeature, Region

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PipelineResult:
    """Every stage output of one pipeline run."""

    points: Tuple[PointFeature, ...]
    regions: Tuple[Region, ...]
    counts: Mapping[str, int]
    joined: Tuple[JoinedRegion, ...]
    dropped: Tuple[str, ...]
    classified: Tuple[ClassifiedRegion, ...]
    x_breaks: BinBreaks
    y_breaks: BinBreaks
    summary: pd.DataFrame

    @property
    def stations_in_area(self) -> int:
        return sum(self.counts.values())


class ChargingAccessPipeline:
    """End-to-end station access pipeline.

    Handles:
    - Fetching stations and census regions from their APIs
    - Loading raw records into typed features
    - Counting stations per region and joining counts to attributes
    - Bivariate classification and presence summaries
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        stations_client: Optional[StationsClient] = None,
        census_client: Optional[CensusClient] = None
    ):
        """Initialize the pipeline.

        Raises:
            CoordinateSystemMismatchError: If station coordinates and region
                boundaries would not share one CRS
            UnknownAttributeError: If the required attribute is not one the
                configured variables and derived attributes provide
        """
        self.config = config or PipelineConfig()
        self.stations_client = stations_client
        self.census_client = census_client

        # Fail before any fetch rather than after the download
        if CRS.from_user_input(self.config.station_crs) != CRS.from_user_input(self.config.crs):
            raise CoordinateSystemMismatchError(self.config.station_crs, self.config.crs)

        self.point_loader = PointFeatureLoader(
            crs=self.config.station_crs,
            filters=self.config.station_filters,
        )
        self.polygon_loader = PolygonFeatureLoader(
            crs=self.config.crs,
            derived=self.config.derived,
            aliases=self.config.variables,
        )
        if self.config.variables:
            AttributeJoiner(self.config.required_attribute, self.polygon_loader.attribute_names)

        self.aggregator = SpatialAggregator()
        self.classifier = Classifier()

    def _stations(self) -> StationsClient:
        if self.stations_client is None:
            api = self.config.api
            self.stations_client = StationsClient(
                api_key=api.nrel_api_key,
                base_url=api.nrel_base_url,
                timeout=api.timeout,
            )
        return self.stations_client

    def _census(self) -> CensusClient:
        if self.census_client is None:
            api, area = self.config.api, self.config.area
            self.census_client = CensusClient(
                api_key=api.census_api_key,
                year=area.year,
                dataset=area.dataset,
                crs=self.config.crs,
                base_url=api.census_base_url,
                boundary_base_url=api.boundary_base_url,
                timeout=api.timeout,
            )
        return self.census_client

    def fetch(self) -> Tuple[list, list]:
        """Fetch raw station and polygon records for the configured area."""
        area = self.config.area
        logger.info("Fetching stations for %s", area.state_abbr)
        point_records = self._stations().fetch(StationQuery(state=area.state_abbr))

        logger.info(
            "Fetching %s estimates for state %s county %s",
            area.geography, area.state, area.county or "*"
        )
        polygon_records = self._census().fetch(
            area.geography,
            self.config.variable_codes,
            AreaQuery(state=area.state, county=area.county),
        )
        return point_records, polygon_records

    def run(self) -> PipelineResult:
        """Fetch from the APIs and run every stage."""
        point_records, polygon_records = self.fetch()
        return self.run_records(point_records, polygon_records)

    def run_records(
        self,
        point_records: Iterable[Mapping[str, Any]],
        polygon_records: Iterable[Mapping[str, Any]]
    ) -> PipelineResult:
        """Run every stage on already-decoded records.

        Any error aborts the run; no partial result is produced.
        """
        settings = self.config.classification

        logger.info("Loading records...")
        points = self.point_loader.load(point_records)
        regions = self.polygon_loader.load(polygon_records)

        logger.info("Counting stations per region...")
        counts = self.aggregator.aggregate(points, regions)

        logger.info("Joining counts to region attributes...")
        known = set(self.polygon_loader.attribute_names)
        known.update(name for region in regions for name in region.attribute_names)
        joiner = AttributeJoiner(self.config.required_attribute, known)
        joined, dropped = joiner.join_with_dropped(regions, counts)

        logger.info(
            "Classifying %s x %s into %d classes...",
            settings.x_field, settings.y_field, settings.k
        )
        classification = self.classifier.classify_with_breaks(
            joined, settings.x_field, settings.y_field, settings.k
        )

        fields = [self.config.required_attribute, settings.x_field, settings.y_field]
        summary_fields = [name for name in dict.fromkeys(fields) if name != "count"]
        summary = summarize_by_presence(joined, summary_fields)

        logger.info(
            "Run complete: %d stations, %d regions joined, %d classified",
            len(points), len(joined), len(classification.regions)
        )
        return PipelineResult(
            points=points,
            regions=regions,
            counts=counts,
            joined=joined,
            dropped=dropped,
            classified=classification.regions,
            x_breaks=classification.x_breaks,
            y_breaks=classification.y_breaks,
            summary=summary,
        )
