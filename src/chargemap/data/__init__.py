"""Data loading for charging stations and census regions."""

from chargemap.data.clients import AreaQuery, CensusClient, StationQuery, StationsClient
from chargemap.data.loaders import PointFeatureLoader, PolygonFeatureLoader, field_equals

__all__ = [
    "AreaQuery",
    "CensusClient",
    "StationQuery",
    "StationsClient",
    "PointFeatureLoader",
    "PolygonFeatureLoader",
    "field_equals",
]
