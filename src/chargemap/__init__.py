"""
Public charging-station access by census region.

This package counts EV charging stations per census region, joins the
counts to American Community Survey attributes and classifies regions on
two attributes for bivariate mapping.

Modules:
    data: API clients and record loaders
    analysis: Spatial join, natural-breaks classification, summaries
    visualizer: Exploratory maps
    pipeline: End-to-end orchestration
    config: Pipeline configuration and ACS presets

Example:
    >>> from chargemap import ChargingAccessPipeline, PipelineConfig
    >>>
    >>> pipeline = ChargingAccessPipeline(PipelineConfig())
    >>> result = pipeline.run_records(station_records, tract_records)
    >>> [(r.region_id, r.class_label) for r in result.classified]
"""

__version__ = "0.1.0"

from chargemap.analysis import (
    AttributeJoiner,
    Classifier,
    SpatialAggregator,
    fisher_jenks_breaks,
    regions_to_frame,
    spatial_join,
    summarize_by_presence,
)
from chargemap.config import DerivedAttribute, PipelineConfig, load_config_from_env
from chargemap.data import (
    AreaQuery,
    CensusClient,
    PointFeatureLoader,
    PolygonFeatureLoader,
    StationQuery,
    StationsClient,
)
from chargemap.errors import (
    ApiRequestError,
    ChargemapError,
    CoordinateSystemMismatchError,
    DuplicateIdentifierError,
    InsufficientDataError,
    MalformedRecordError,
    UnknownAttributeError,
)
from chargemap.models import (
    UNDEFINED,
    BinBreaks,
    ClassifiedRegion,
    Defined,
    Estimate,
    JoinedRegion,
    PointFeature,
    Region,
)
from chargemap.pipeline import ChargingAccessPipeline, PipelineResult

__all__ = [
    # Pipeline
    "ChargingAccessPipeline",
    "PipelineResult",
    "PipelineConfig",
    "DerivedAttribute",
    "load_config_from_env",
    # Data
    "AreaQuery",
    "CensusClient",
    "PointFeatureLoader",
    "PolygonFeatureLoader",
    "StationQuery",
    "StationsClient",
    # Analysis
    "AttributeJoiner",
    "Classifier",
    "SpatialAggregator",
    "fisher_jenks_breaks",
    "regions_to_frame",
    "spatial_join",
    "summarize_by_presence",
    # Models
    "UNDEFINED",
    "BinBreaks",
    "ClassifiedRegion",
    "Defined",
    "Estimate",
    "JoinedRegion",
    "PointFeature",
    "Region",
    # Errors
    "ApiRequestError",
    "ChargemapError",
    "CoordinateSystemMismatchError",
    "DuplicateIdentifierError",
    "InsufficientDataError",
    "MalformedRecordError",
    "UnknownAttributeError",
]
