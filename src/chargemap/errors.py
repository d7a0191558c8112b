"""Error taxonomy for the station/region pipeline.

Every error here is fatal to a pipeline run. Each carries the context
needed to diagnose the failure without re-running the fetch.
"""

from typing import Any, Optional


class ChargemapError(Exception):
    """Base class for pipeline failures."""

    error_code = "CHARGEMAP_ERROR"


class MalformedRecordError(ChargemapError):
    """Raised when a raw record cannot be turned into a feature."""

    error_code = "MALFORMED_RECORD"

    def __init__(self, message: str, index: Optional[int] = None, field: Optional[str] = None):
        self.index = index
        self.field = field
        if index is not None:
            message = f"record {index}: {message}"
        super().__init__(message)


class DuplicateIdentifierError(ChargemapError):
    """Raised when two polygon records share an id but not a geometry."""

    error_code = "DUPLICATE_IDENTIFIER"

    def __init__(self, region_id: str, first_index: int, second_index: int):
        self.region_id = region_id
        self.first_index = first_index
        self.second_index = second_index
        super().__init__(
            f"Region '{region_id}' appears at records {first_index} and "
            f"{second_index} with differing geometry"
        )


class CoordinateSystemMismatchError(ChargemapError):
    """Raised before a containment join when point and region CRS differ."""

    error_code = "CRS_MISMATCH"

    def __init__(self, point_crs: Any, region_crs: Any, region_id: Optional[str] = None):
        self.point_crs = point_crs
        self.region_crs = region_crs
        self.region_id = region_id
        detail = f" (region '{region_id}')" if region_id is not None else ""
        super().__init__(
            f"Coordinate reference systems differ: points use {point_crs}, "
            f"regions use {region_crs}{detail}"
        )


class UnknownAttributeError(ChargemapError):
    """Raised when a caller names an attribute the data cannot provide."""

    error_code = "UNKNOWN_ATTRIBUTE"

    def __init__(self, name: str, available: Optional[list] = None):
        self.name = name
        self.available = sorted(available) if available is not None else None
        message = f"Unknown attribute '{name}'"
        if self.available is not None:
            message += f". Available attributes: {self.available}"
        super().__init__(message)


class InsufficientDataError(ChargemapError):
    """Raised when classification breakpoints cannot be computed."""

    error_code = "INSUFFICIENT_DATA"

    def __init__(self, field: str, distinct: int, k: int):
        self.field = field
        self.distinct = distinct
        self.k = k
        super().__init__(
            f"Field '{field}' has {distinct} distinct defined values; "
            f"at least {k} are needed for {k} classes"
        )


class ApiRequestError(ChargemapError):
    """Raised when an external data API call fails."""

    error_code = "API_ERROR"

    def __init__(self, message: str, url: Optional[str] = None, status: Optional[int] = None):
        self.url = url
        self.status = status
        super().__init__(message)
