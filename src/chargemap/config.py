"""Configuration for the charging-station access pipeline."""

import os
from dataclasses import dataclass, field
from typing import Dict, List, Optional


@dataclass(frozen=True)
class DerivedAttribute:
    """A percentage computed as numerator / denominator * 100.

    Attributes:
        numerator: Variable name of the numerator
        denominator: Variable name of the denominator
        name: Output attribute name
    """
    numerator: str
    denominator: str
    name: str


# ACS 5-year variables, keyed by the names regions expose
ACS_VARIABLES: Dict[str, str] = {
    "B19013_001": "median_income",
    "B03002_001": "total_pop",
    "B03002_003": "white",
    "B03002_004": "black",
    "B03002_006": "asian",
    "B03002_012": "hispanic",
}

PCT_WHITE = DerivedAttribute("white", "total_pop", "pct_white")
PCT_BLACK = DerivedAttribute("black", "total_pop", "pct_black")
PCT_ASIAN = DerivedAttribute("asian", "total_pop", "pct_asian")
PCT_HISPANIC = DerivedAttribute("hispanic", "total_pop", "pct_hispanic")

DEFAULT_DERIVED: List[DerivedAttribute] = [
    PCT_WHITE,
    PCT_BLACK,
    PCT_ASIAN,
    PCT_HISPANIC,
]

# Open, publicly accessible electric stations
DEFAULT_STATION_FILTERS: Dict[str, str] = {
    "fuel_type_code": "ELEC",
    "status_code": "E",
    "access_code": "public",
}


@dataclass
class ApiConfig:
    """Credentials and endpoints for the data APIs."""

    nrel_api_key: str = field(
        default_factory=lambda: os.getenv("NREL_API_KEY", "DEMO_KEY")
    )
    census_api_key: Optional[str] = field(
        default_factory=lambda: os.getenv("CENSUS_API_KEY") or None
    )
    nrel_base_url: str = field(
        default_factory=lambda: os.getenv(
            "NREL_BASE_URL",
            "https://developer.nrel.gov/api/alt-fuel-stations/v1.json",
        )
    )
    census_base_url: str = field(
        default_factory=lambda: os.getenv("CENSUS_BASE_URL", "https://api.census.gov/data")
    )
    boundary_base_url: str = "https://www2.census.gov/geo/tiger"
    timeout: float = field(
        default_factory=lambda: float(os.getenv("CHARGEMAP_TIMEOUT", "60"))
    )


@dataclass
class AreaConfig:
    """Area of interest, as Census FIPS codes."""

    state: str = field(default_factory=lambda: os.getenv("CHARGEMAP_STATE", "17"))
    county: Optional[str] = field(
        default_factory=lambda: os.getenv("CHARGEMAP_COUNTY", "031") or None
    )
    state_abbr: str = field(
        default_factory=lambda: os.getenv("CHARGEMAP_STATE_ABBR", "IL")
    )
    geography: str = "tract"
    year: int = field(default_factory=lambda: int(os.getenv("CHARGEMAP_YEAR", "2022")))
    dataset: str = "acs/acs5"


@dataclass
class ClassificationConfig:
    """Bivariate classification settings."""

    x_field: str = "median_income"
    y_field: str = "pct_white"
    k: int = 3


@dataclass
class PipelineConfig:
    """Main configuration container."""

    api: ApiConfig = field(default_factory=ApiConfig)
    area: AreaConfig = field(default_factory=AreaConfig)
    classification: ClassificationConfig = field(default_factory=ClassificationConfig)

    # Boundaries are reprojected to this CRS
    crs: str = "EPSG:4326"
    # Station coordinates as delivered (NREL returns WGS84 degrees); must equal crs
    station_crs: str = "EPSG:4326"

    station_filters: Dict[str, str] = field(
        default_factory=lambda: dict(DEFAULT_STATION_FILTERS)
    )
    variables: Dict[str, str] = field(default_factory=lambda: dict(ACS_VARIABLES))
    derived: List[DerivedAttribute] = field(default_factory=lambda: list(DEFAULT_DERIVED))

    # Regions where this is undefined are dropped after the join
    required_attribute: str = "median_income"

    @property
    def variable_codes(self) -> List[str]:
        return list(self.variables)


def load_config_from_env() -> PipelineConfig:
    """Load configuration from environment variables."""
    return PipelineConfig(
        api=ApiConfig(),
        area=AreaConfig(),
        classification=ClassificationConfig(),
    )
