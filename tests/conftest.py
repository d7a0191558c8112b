import matplotlib

matplotlib.use("Agg")

import pytest
from shapely.geometry import MultiPolygon, box

from chargemap.models import UNDEFINED, Estimate, JoinedRegion, PointFeature, Region, measure

CRS = "EPSG:4326"


def _square(x0: float, y0: float, size: float = 1.0) -> MultiPolygon:
    return MultiPolygon([box(x0, y0, x0 + size, y0 + size)])


def _region(region_id, geometry=None, crs=CRS, derived=None, **estimates):
    return Region(
        region_id=region_id,
        geometry=geometry if geometry is not None else _square(0, 0),
        crs=crs,
        estimates={
            name: Estimate(measure(value), UNDEFINED) for name, value in estimates.items()
        },
        derived={name: measure(value) for name, value in (derived or {}).items()},
        name=f"Region {region_id}",
    )


def _point(lon, lat, crs=CRS, **attributes):
    return PointFeature(latitude=lat, longitude=lon, crs=crs, **attributes)


@pytest.fixture
def square():
    return _square


@pytest.fixture
def make_region():
    return _region


@pytest.fixture
def make_point():
    return _point


@pytest.fixture
def make_joined():
    def factory(region_id, count=0, **estimates):
        return JoinedRegion(region=_region(region_id, **estimates), count=count)

    return factory


@pytest.fixture
def two_squares():
    """T1 is the unit square at the origin, T2 the unit square to its east."""
    return (
        _region("T1", _square(0, 0), median_income=50000),
        _region("T2", _square(1, 0), median_income=70000),
    )


@pytest.fixture
def station_records():
    return [
        {
            "id": 1,
            "station_name": "Library",
            "latitude": 0.5,
            "longitude": 0.5,
            "status_code": "E",
            "access_code": "public",
            "fuel_type_code": "ELEC",
            "owner_type_code": "LG",
        },
        {
            "id": 2,
            "station_name": "Depot",
            "latitude": 0.25,
            "longitude": 0.75,
            "status_code": "E",
            "access_code": "private",
            "fuel_type_code": "ELEC",
            "owner_type_code": "P",
        },
        {
            "id": 3,
            "station_name": "Market",
            "latitude": 0.5,
            "longitude": 1.5,
            "status_code": "E",
            "access_code": "public",
            "fuel_type_code": "ELEC",
            "owner_type_code": "P",
        },
        {
            "id": 4,
            "station_name": "Planned",
            "latitude": 0.5,
            "longitude": 0.2,
            "status_code": "P",
            "access_code": "public",
            "fuel_type_code": "ELEC",
            "owner_type_code": None,
        },
    ]


@pytest.fixture
def tract_records(square):
    """Four tracts in a row; T4 has a suppressed income estimate."""
    def record(region_id, x0, income, total, white):
        return {
            "region_id": region_id,
            "name": f"Census Tract {region_id}",
            "geometry": square(x0, 0),
            "variables": {
                "B19013_001": (income, 1500),
                "B03002_001": (total, 120),
                "B03002_003": (white, 90),
                "B03002_004": (0, 10),
                "B03002_006": (0, 10),
                "B03002_012": (0, 10),
            },
        }

    return [
        record("T1", 0, "48000", "1000", "800"),
        record("T2", 1, "95000", "2000", "500"),
        record("T3", 2, "61000", "1500", "1200"),
        record("T4", 3, "-666666666", "0", "0"),
    ]
