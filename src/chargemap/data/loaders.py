"""
Loaders that turn decoded API records into typed features.

Raw records arrive as plain mappings from the API clients. The loaders
validate them once at this boundary so downstream stages only ever see
``PointFeature`` and ``Region`` objects.
"""

import logging
import math
from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Mapping, Optional, Sequence, Tuple

from shapely.geometry import MultiPolygon, Polygon, shape
from shapely.errors import ShapelyError
from shapely.geometry.base import BaseGeometry

from chargemap.config import DerivedAttribute
from chargemap.errors import DuplicateIdentifierError, MalformedRecordError, UnknownAttributeError
from chargemap.models import (
    POINT_ATTRIBUTES,
    UNDEFINED,
    Defined,
    Estimate,
    Measure,
    PointFeature,
    Region,
)

logger = logging.getLogger(__name__)

PointPredicate = Callable[[PointFeature], bool]

# Census annotation values that stand in for a missing estimate or MOE
CENSUS_ANNOTATIONS = frozenset({
    -111111111,
    -222222222,
    -333333333,
    -555555555,
    -666666666,
    -888888888,
    -999999999,
})


class FeatureLoader(ABC):
    """Abstract base class for record loaders."""

    def __init__(self, crs: str):
        self.crs = crs

    @abstractmethod
    def load(self, records: Iterable[Mapping[str, Any]]) -> tuple:
        """Validate raw records and return typed features."""
        pass


def field_equals(attribute: str, expected: str) -> PointPredicate:
    """Predicate matching points whose attribute equals ``expected``."""
    if attribute not in POINT_ATTRIBUTES:
        raise UnknownAttributeError(attribute, list(POINT_ATTRIBUTES))

    def predicate(feature: PointFeature) -> bool:
        return feature.get(attribute) == expected

    predicate.__name__ = f"{attribute}=={expected}"
    return predicate


class PointFeatureLoader(FeatureLoader):
    """Loads station records into ``PointFeature`` objects.

    Records carry numeric ``latitude`` and ``longitude`` plus string
    attributes, either at the top level (the NREL response shape) or
    under an ``attributes`` mapping. Only features satisfying every
    filter and predicate are returned.
    """

    def __init__(
        self,
        crs: str,
        filters: Optional[Mapping[str, str]] = None,
        predicates: Optional[Sequence[PointPredicate]] = None
    ):
        """Initialize the loader.

        Args:
            crs: Coordinate reference system the coordinates are expressed in
            filters: Attribute name -> required value
            predicates: Extra callables a feature must satisfy

        Raises:
            UnknownAttributeError: If a filter names an unknown attribute
        """
        super().__init__(crs)
        self.filters = dict(filters or {})
        self.predicates: List[PointPredicate] = [
            field_equals(name, value) for name, value in self.filters.items()
        ]
        self.predicates.extend(predicates or [])

    def load(self, records: Iterable[Mapping[str, Any]]) -> Tuple[PointFeature, ...]:
        """Load and filter point records.

        Raises:
            MalformedRecordError: If a record lacks usable coordinates
        """
        features = []
        total = 0
        for index, record in enumerate(records):
            total += 1
            feature = self._to_feature(index, record)
            if all(predicate(feature) for predicate in self.predicates):
                features.append(feature)

        logger.info(
            "Loaded %d of %d point records (%d filtered out)",
            len(features), total, total - len(features)
        )
        return tuple(features)

    def _to_feature(self, index: int, record: Mapping[str, Any]) -> PointFeature:
        if not isinstance(record, Mapping):
            raise MalformedRecordError(
                f"expected a mapping, got {type(record).__name__}", index=index
            )

        latitude = _coordinate(record, "latitude", index, limit=90.0)
        longitude = _coordinate(record, "longitude", index, limit=180.0)

        attributes = record.get("attributes")
        if not isinstance(attributes, Mapping):
            attributes = record

        return PointFeature(
            latitude=latitude,
            longitude=longitude,
            crs=self.crs,
            status_code=_optional_text(attributes.get("status_code")),
            access_code=_optional_text(attributes.get("access_code")),
            fuel_type_code=_optional_text(attributes.get("fuel_type_code")),
            owner_type_code=_optional_text(attributes.get("owner_type_code")),
            station_id=_optional_text(record.get("id")),
            name=_optional_text(record.get("station_name")),
        )


class PolygonFeatureLoader(FeatureLoader):
    """Loads census polygon records into ``Region`` objects.

    Each raw record holds a ``region_id``, a ``geometry`` (shapely or
    GeoJSON-like), an optional ``name`` and ``variables`` mapping a
    variable code to an ``(estimate, moe)`` pair. Variable codes listed in
    ``aliases`` are exposed under their alias; other codes keep their code.
    """

    def __init__(
        self,
        crs: str,
        derived: Optional[Sequence[DerivedAttribute]] = None,
        aliases: Optional[Mapping[str, str]] = None
    ):
        """Initialize the loader.

        Args:
            crs: Coordinate reference system of the geometries
            derived: Percentage attributes to compute for every region
            aliases: Variable code -> attribute name

        Raises:
            UnknownAttributeError: If ``aliases`` are given and a derived
                attribute refers to a variable they do not provide
        """
        super().__init__(crs)
        self.aliases = dict(aliases or {})

        if self.aliases:
            provided = set(self.aliases.values()) | set(self.aliases)
            for attr in derived or []:
                for name in (attr.numerator, attr.denominator):
                    if name not in provided:
                        raise UnknownAttributeError(name, list(provided))

        # Derived attributes may name a variable by code or by alias
        self.derived = [
            DerivedAttribute(
                numerator=self.aliases.get(attr.numerator, attr.numerator),
                denominator=self.aliases.get(attr.denominator, attr.denominator),
                name=attr.name,
            )
            for attr in derived or []
        ]

    @property
    def attribute_names(self) -> FrozenSet[str]:
        """Attribute names every loaded region will answer."""
        return frozenset(self.aliases.values()) | {attr.name for attr in self.derived}

    def load(self, records: Iterable[Mapping[str, Any]]) -> Tuple[Region, ...]:
        """Load polygon records, one Region per identifier.

        Raises:
            MalformedRecordError: If a record lacks an id, geometry or has a
                non-numeric estimate
            DuplicateIdentifierError: If an id repeats with another geometry
        """
        regions: Dict[str, Region] = {}
        first_seen: Dict[str, int] = {}

        for index, record in enumerate(records):
            region = self._to_region(index, record)
            if region.region_id in regions:
                existing = regions[region.region_id]
                if not existing.geometry.equals(region.geometry):
                    raise DuplicateIdentifierError(
                        region.region_id, first_seen[region.region_id], index
                    )
                logger.debug(
                    "Skipping repeated region %s at record %d", region.region_id, index
                )
                continue
            regions[region.region_id] = region
            first_seen[region.region_id] = index

        logger.info("Loaded %d regions", len(regions))
        return tuple(regions.values())

    def _to_region(self, index: int, record: Mapping[str, Any]) -> Region:
        if not isinstance(record, Mapping):
            raise MalformedRecordError(
                f"expected a mapping, got {type(record).__name__}", index=index
            )

        region_id = record.get("region_id")
        if region_id is None or str(region_id).strip() == "":
            raise MalformedRecordError("missing region_id", index=index, field="region_id")
        region_id = str(region_id)

        geometry = _to_multipolygon(record.get("geometry"), index)

        estimates = {}
        for code, raw in (record.get("variables") or {}).items():
            name = self.aliases.get(code, code)
            estimates[name] = _to_estimate(raw, index, code)

        derived = {
            attr.name: derive_percentage(attr, estimates) for attr in self.derived
        }

        return Region(
            region_id=region_id,
            geometry=geometry,
            crs=self.crs,
            estimates=estimates,
            derived=derived,
            name=_optional_text(record.get("name")),
        )


def derive_percentage(attr: DerivedAttribute, estimates: Mapping[str, Estimate]) -> Measure:
    """numerator / denominator * 100, or UNDEFINED when not computable."""
    numerator = estimates.get(attr.numerator)
    denominator = estimates.get(attr.denominator)
    if numerator is None or denominator is None:
        return UNDEFINED

    num, den = numerator.estimate, denominator.estimate
    if not isinstance(num, Defined) or not isinstance(den, Defined):
        return UNDEFINED
    if den.value == 0:
        return UNDEFINED
    return Defined(num.value * 100.0 / den.value)


def _coordinate(record: Mapping[str, Any], name: str, index: int, limit: float) -> float:
    raw = record.get(name)
    if raw is None or isinstance(raw, bool):
        raise MalformedRecordError(f"missing {name}", index=index, field=name)
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise MalformedRecordError(
            f"{name} is not numeric: {raw!r}", index=index, field=name
        ) from None
    if math.isnan(value) or abs(value) > limit:
        raise MalformedRecordError(
            f"{name} out of range: {raw!r}", index=index, field=name
        )
    return value


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def _to_multipolygon(geometry: Any, index: int) -> MultiPolygon:
    if geometry is None:
        raise MalformedRecordError("missing geometry", index=index, field="geometry")

    if not isinstance(geometry, BaseGeometry):
        try:
            geometry = shape(geometry)
        except (AttributeError, KeyError, TypeError, ValueError, ShapelyError) as exc:
            raise MalformedRecordError(
                f"unreadable geometry: {exc}", index=index, field="geometry"
            ) from exc

    if geometry.is_empty:
        raise MalformedRecordError("empty geometry", index=index, field="geometry")
    if isinstance(geometry, Polygon):
        return MultiPolygon([geometry])
    if isinstance(geometry, MultiPolygon):
        return geometry
    raise MalformedRecordError(
        f"expected a polygon geometry, got {geometry.geom_type}",
        index=index,
        field="geometry",
    )


def _to_measure(raw: Any, index: int, code: str) -> Measure:
    if raw is None or (isinstance(raw, str) and raw.strip() == ""):
        return UNDEFINED
    if isinstance(raw, bool):
        raise MalformedRecordError(f"non-numeric value {raw!r}", index=index, field=code)
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise MalformedRecordError(
            f"non-numeric value {raw!r}", index=index, field=code
        ) from None
    if math.isnan(value) or value in CENSUS_ANNOTATIONS:
        return UNDEFINED
    return Defined(value)


def _to_estimate(raw: Any, index: int, code: str) -> Estimate:
    if isinstance(raw, Estimate):
        return raw
    if isinstance(raw, Mapping):
        return Estimate(
            _to_measure(raw.get("estimate"), index, code),
            _to_measure(raw.get("moe"), index, code),
        )
    if isinstance(raw, (tuple, list)):
        if len(raw) != 2:
            raise MalformedRecordError(
                f"expected (estimate, moe), got {len(raw)} values", index=index, field=code
            )
        return Estimate(_to_measure(raw[0], index, code), _to_measure(raw[1], index, code))
    return Estimate(_to_measure(raw, index, code))
