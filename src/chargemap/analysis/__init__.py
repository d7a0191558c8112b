"""Spatial join, classification and summary statistics."""

from chargemap.analysis.classify import ClassificationResult, Classifier, fisher_jenks_breaks
from chargemap.analysis.spatial_ops import (
    AttributeJoiner,
    JoinResult,
    SpatialAggregator,
    check_crs,
    spatial_join,
)
from chargemap.analysis.summary import (
    count_distribution,
    points_to_frame,
    regions_to_frame,
    summarize_by_presence,
)

__all__ = [
    "ClassificationResult",
    "Classifier",
    "fisher_jenks_breaks",
    "AttributeJoiner",
    "JoinResult",
    "SpatialAggregator",
    "check_crs",
    "spatial_join",
    "count_distribution",
    "points_to_frame",
    "regions_to_frame",
    "summarize_by_presence",
]
