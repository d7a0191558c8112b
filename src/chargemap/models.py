"""
Typed records passed between pipeline stages.

Every object in this module is immutable. Numeric attributes use the
``Measure`` tagged union (``Defined`` or ``UNDEFINED``) instead of NaN so
that stages must handle missing values explicitly.
"""

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any, Mapping, Optional, Tuple, Union

from shapely.geometry import MultiPolygon


@dataclass(frozen=True)
class Defined:
    """A numeric value that is present."""
    value: float

    @property
    def is_defined(self) -> bool:
        return True


class Undefined:
    """The absent numeric value. Use the ``UNDEFINED`` singleton."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super().__new__(cls)
        return cls._instance

    @property
    def is_defined(self) -> bool:
        return False

    def __repr__(self) -> str:
        return "UNDEFINED"

    def __reduce__(self):
        return (Undefined, ())


UNDEFINED = Undefined()

Measure = Union[Defined, Undefined]


def measure(value: Optional[float]) -> Measure:
    """Wrap a plain number, mapping ``None`` to ``UNDEFINED``."""
    if value is None:
        return UNDEFINED
    return Defined(float(value))


def _frozen(mapping: Optional[Mapping]) -> Mapping:
    return MappingProxyType(dict(mapping or {}))


@dataclass(frozen=True)
class Estimate:
    """A survey estimate and its margin of error."""
    estimate: Measure
    moe: Measure = UNDEFINED


@dataclass(frozen=True)
class PointFeature:
    """A geo-located charging station.

    Attributes:
        latitude: Latitude in ``crs``
        longitude: Longitude in ``crs``
        crs: Coordinate reference system identifier (e.g. "EPSG:4326")
        status_code: Station status ("E" available, "P" planned, ...)
        access_code: "public" or "private"
        fuel_type_code: Fuel type ("ELEC", "CNG", ...)
        owner_type_code: Owner type ("P" private, "T" utility, ...)
        station_id: Source identifier, for diagnostics only
        name: Station name, for diagnostics only
    """
    latitude: float
    longitude: float
    crs: str
    status_code: Optional[str] = None
    access_code: Optional[str] = None
    fuel_type_code: Optional[str] = None
    owner_type_code: Optional[str] = None
    station_id: Optional[str] = None
    name: Optional[str] = None

    def get(self, attribute: str) -> Optional[str]:
        return getattr(self, attribute)


POINT_ATTRIBUTES = (
    "status_code",
    "access_code",
    "fuel_type_code",
    "owner_type_code",
)


@dataclass(frozen=True)
class Region:
    """A polygon feature with survey attributes.

    Attributes:
        region_id: Unique identifier (e.g. tract GEOID)
        geometry: Boundary as a MultiPolygon
        crs: Coordinate reference system identifier
        estimates: Variable name -> Estimate
        derived: Derived attribute name -> Measure (percentages, 0-100)
        name: Human-readable name
    """
    region_id: str
    geometry: MultiPolygon
    crs: str
    estimates: Mapping[str, Estimate] = field(default_factory=dict, hash=False)
    derived: Mapping[str, Measure] = field(default_factory=dict, hash=False)
    name: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, "estimates", _frozen(self.estimates))
        object.__setattr__(self, "derived", _frozen(self.derived))

    @property
    def attribute_names(self) -> Tuple[str, ...]:
        return tuple(self.derived) + tuple(self.estimates)

    def has_attribute(self, name: str) -> bool:
        return name in self.derived or name in self.estimates

    def attribute(self, name: str) -> Measure:
        """Look up a derived attribute or an estimate by name.

        Names the region does not carry are ``UNDEFINED``.
        """
        if name in self.derived:
            return self.derived[name]
        if name in self.estimates:
            return self.estimates[name].estimate
        return UNDEFINED


@dataclass(frozen=True)
class JoinedRegion:
    """A region with its station count."""
    region: Region
    count: int = 0

    def __post_init__(self):
        if self.count < 0:
            raise ValueError(f"count must be >= 0, got {self.count}")

    @property
    def region_id(self) -> str:
        return self.region.region_id

    @property
    def presence(self) -> bool:
        return self.count > 0

    def has_field(self, name: str) -> bool:
        return name == "count" or self.region.has_attribute(name)

    def value(self, name: str) -> Measure:
        """Numeric value of a field; ``count`` is the station count."""
        if name == "count":
            return Defined(float(self.count))
        return self.region.attribute(name)


@dataclass(frozen=True)
class ClassifiedRegion:
    """A joined region with its bivariate class."""
    joined: JoinedRegion
    x_bin: int
    y_bin: int

    @property
    def region_id(self) -> str:
        return self.joined.region_id

    @property
    def region(self) -> Region:
        return self.joined.region

    @property
    def count(self) -> int:
        return self.joined.count

    @property
    def presence(self) -> bool:
        return self.joined.presence

    @property
    def class_label(self) -> Tuple[int, int]:
        return (self.x_bin, self.y_bin)

    @property
    def bi_class(self) -> str:
        return f"{self.x_bin}-{self.y_bin}"

    def value(self, name: str) -> Measure:
        return self.joined.value(name)


@dataclass(frozen=True)
class BinBreaks:
    """Class boundaries for one field.

    ``boundaries`` holds ``k + 1`` non-decreasing values. Bin ``i`` covers
    ``[boundaries[i-1], boundaries[i])``; the top bin also includes its
    upper boundary.
    """
    field: str
    boundaries: Tuple[float, ...]

    @property
    def k(self) -> int:
        return len(self.boundaries) - 1

    def bin_for(self, value: float) -> int:
        """1-based bin index of a value inside the classified range."""
        if value < self.boundaries[0] or value > self.boundaries[-1]:
            raise ValueError(
                f"{value} is outside [{self.boundaries[0]}, {self.boundaries[-1]}] "
                f"for field '{self.field}'"
            )
        for i in range(1, self.k):
            if value < self.boundaries[i]:
                return i
        return self.k


def as_float(value: Measure, missing: Any = None) -> Any:
    """Unwrap a Measure for rendering; undefined becomes ``missing``."""
    if isinstance(value, Defined):
        return value.value
    return missing
