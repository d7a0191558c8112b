"""
Clients for the station and census APIs.

Both clients perform a single blocking request per resource and raise
``ApiRequestError`` on any failure. Credentials are passed in at
construction time.
"""

import io
import logging
from dataclasses import dataclass, field
from types import TracebackType
from typing import Any, Dict, List, Mapping, Optional, Sequence, Type

import geopandas as gpd
import pandas as pd
import requests

from chargemap.errors import ApiRequestError

logger = logging.getLogger(__name__)

USER_AGENT = "chargemap/0.1"

NREL_STATIONS_URL = "https://developer.nrel.gov/api/alt-fuel-stations/v1.json"
CENSUS_DATA_URL = "https://api.census.gov/data"
CENSUS_BOUNDARY_URL = "https://www2.census.gov/geo/tiger"

# Census API geography name, cartographic boundary file token, GEOID parts
GEOGRAPHIES: Dict[str, Dict[str, Any]] = {
    "county": {
        "api_name": "county",
        "file_token": "county",
        "national_file": True,
        "geoid_parts": ["state", "county"],
    },
    "tract": {
        "api_name": "tract",
        "file_token": "tract",
        "national_file": False,
        "geoid_parts": ["state", "county", "tract"],
    },
    "block group": {
        "api_name": "block group",
        "file_token": "bg",
        "national_file": False,
        "geoid_parts": ["state", "county", "tract", "block group"],
    },
}


@dataclass(frozen=True)
class StationQuery:
    """Query parameters for the alternative fuel stations endpoint.

    Attributes:
        state: Two-letter state abbreviation
        fuel_type: Fuel type code(s), comma separated
        status: Station status code
        access: "public" or "private"
        limit: Maximum records, or "all"
        extra: Additional raw query parameters
    """
    state: Optional[str] = None
    fuel_type: Optional[str] = "ELEC"
    status: Optional[str] = "E"
    access: Optional[str] = "public"
    limit: str = "all"
    extra: Mapping[str, str] = field(default_factory=dict)

    def to_params(self) -> Dict[str, str]:
        params = {
            "state": self.state,
            "fuel_type": self.fuel_type,
            "status": self.status,
            "access": self.access,
            "limit": self.limit,
        }
        params = {key: value for key, value in params.items() if value is not None}
        params.update(self.extra)
        return params


@dataclass(frozen=True)
class AreaQuery:
    """Area of interest as FIPS codes; ``county=None`` means the whole state."""
    state: str
    county: Optional[str] = None


class ApiClient:
    """Shared session handling for the data API clients."""

    def __init__(self, timeout: float = 60.0, session: Optional[requests.Session] = None):
        self.timeout = timeout
        self.session = session or requests.Session()
        self.session.headers.setdefault("User-Agent", USER_AGENT)

    def close(self) -> None:
        self.session.close()

    def __enter__(self):
        return self

    def __exit__(
        self,
        exc_type: Optional[Type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        self.close()

    def _get(self, url: str, params: Optional[Dict[str, Any]] = None) -> requests.Response:
        try:
            response = self.session.get(url, params=params, timeout=self.timeout)
        except requests.RequestException as exc:
            raise ApiRequestError(f"Request to {url} failed: {exc}", url=url) from exc

        if response.status_code >= 400:
            raise ApiRequestError(
                f"HTTP status {response.status_code} from {url}",
                url=url,
                status=response.status_code,
            )
        return response

    def _get_json(self, url: str, params: Optional[Dict[str, Any]] = None) -> Any:
        response = self._get(url, params)
        try:
            return response.json()
        except ValueError as exc:
            raise ApiRequestError(f"Invalid JSON payload from {url}", url=url) from exc


class StationsClient(ApiClient):
    """Client for the NREL alternative fuel stations API."""

    def __init__(
        self,
        api_key: str,
        base_url: str = NREL_STATIONS_URL,
        timeout: float = 60.0,
        session: Optional[requests.Session] = None
    ):
        super().__init__(timeout=timeout, session=session)
        self.api_key = api_key
        self.base_url = base_url

    def fetch(self, query: StationQuery) -> List[Dict[str, Any]]:
        """Fetch raw station records matching the query.

        Returns:
            List of station mappings as decoded from the API

        Raises:
            ApiRequestError: If the request fails or the payload has no
                ``fuel_stations`` list
        """
        params = query.to_params()
        params["api_key"] = self.api_key

        payload = self._get_json(self.base_url, params)
        stations = payload.get("fuel_stations") if isinstance(payload, dict) else None
        if not isinstance(stations, list):
            raise ApiRequestError(
                f"Unexpected payload from {self.base_url}: no fuel_stations list",
                url=self.base_url,
            )

        logger.info("Fetched %d station records", len(stations))
        return stations


class CensusClient(ApiClient):
    """Client for ACS estimates joined to cartographic boundaries.

    Estimates come from the Census Data API; geometries come from the
    Census cartographic boundary shapefiles for the same year and are
    reprojected to ``crs`` before they leave the client.
    """

    def __init__(
        self,
        api_key: Optional[str] = None,
        year: int = 2022,
        dataset: str = "acs/acs5",
        crs: str = "EPSG:4326",
        base_url: str = CENSUS_DATA_URL,
        boundary_base_url: str = CENSUS_BOUNDARY_URL,
        timeout: float = 60.0,
        session: Optional[requests.Session] = None
    ):
        super().__init__(timeout=timeout, session=session)
        self.api_key = api_key
        self.year = year
        self.dataset = dataset
        self.crs = crs
        self.base_url = base_url
        self.boundary_base_url = boundary_base_url

    def fetch(
        self,
        geography_level: str,
        variable_codes: Sequence[str],
        area: AreaQuery
    ) -> List[Dict[str, Any]]:
        """Fetch polygon records with estimates and margins of error.

        Args:
            geography_level: "county", "tract" or "block group"
            variable_codes: ACS variable codes without the E/M suffix
            area: State and optional county FIPS codes

        Returns:
            Raw polygon records with ``region_id``, ``name``, ``geometry``
            and ``variables`` (code -> (estimate, moe))
        """
        estimates = self.fetch_estimates(geography_level, variable_codes, area)
        boundaries = self.fetch_boundaries(geography_level, area)

        merged = boundaries[["GEOID", "geometry"]].merge(estimates, on="GEOID", how="inner")
        logger.info(
            "Matched %d of %d %s estimates to boundaries",
            len(merged), len(estimates), geography_level
        )

        records = []
        for _, row in merged.iterrows():
            records.append({
                "region_id": row["GEOID"],
                "name": row.get("NAME"),
                "geometry": row["geometry"],
                "variables": {
                    code: (row[f"{code}E"], row[f"{code}M"]) for code in variable_codes
                },
            })
        return records

    def fetch_estimates(
        self,
        geography_level: str,
        variable_codes: Sequence[str],
        area: AreaQuery
    ) -> pd.DataFrame:
        """Fetch the estimate table for an area, keyed by ``GEOID``."""
        geography = _geography(geography_level)
        columns = ["NAME"]
        for code in variable_codes:
            columns.extend([f"{code}E", f"{code}M"])

        params: Dict[str, Any] = {"get": ",".join(columns)}
        params.update(_area_clauses(geography_level, area))
        if self.api_key:
            params["key"] = self.api_key

        url = f"{self.base_url}/{self.year}/{self.dataset}"
        payload = self._get_json(url, params)

        # First row is the header
        if not isinstance(payload, list) or len(payload) < 1:
            raise ApiRequestError(f"Unexpected payload from {url}", url=url)
        table = pd.DataFrame(payload[1:], columns=payload[0])

        missing = [col for col in columns if col not in table.columns]
        if missing:
            raise ApiRequestError(
                f"Census response from {url} is missing columns {missing}", url=url
            )

        table["GEOID"] = table[geography["geoid_parts"]].astype(str).agg("".join, axis=1)
        logger.info("Fetched %d %s estimate rows", len(table), geography_level)
        return table

    def boundary_url(self, geography_level: str, area: AreaQuery) -> str:
        geography = _geography(geography_level)
        scope = "us" if geography["national_file"] else area.state
        return (
            f"{self.boundary_base_url}/GENZ{self.year}/shp/"
            f"cb_{self.year}_{scope}_{geography['file_token']}_500k.zip"
        )

    def fetch_boundaries(self, geography_level: str, area: AreaQuery) -> gpd.GeoDataFrame:
        """Download cartographic boundaries for an area in the client CRS."""
        url = self.boundary_url(geography_level, area)
        response = self._get(url)
        shapes = gpd.read_file(io.BytesIO(response.content))

        shapes = shapes[shapes["STATEFP"] == area.state]
        if area.county is not None:
            shapes = shapes[shapes["COUNTYFP"] == area.county]

        return shapes.to_crs(self.crs)


def _geography(geography_level: str) -> Dict[str, Any]:
    if geography_level not in GEOGRAPHIES:
        raise ValueError(
            f"Unsupported geography '{geography_level}'. "
            f"Available geographies: {list(GEOGRAPHIES)}"
        )
    return GEOGRAPHIES[geography_level]


def _area_clauses(geography_level: str, area: AreaQuery) -> Dict[str, str]:
    """Build the ``for``/``in`` clauses of a Census Data API query."""
    county = area.county or "*"
    if geography_level == "county":
        return {"for": f"county:{county}", "in": f"state:{area.state}"}

    api_name = _geography(geography_level)["api_name"]
    return {
        "for": f"{api_name}:*",
        "in": f"state:{area.state} county:{county}",
    }
