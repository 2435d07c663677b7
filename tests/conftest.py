#!/usr/bin/env python3
"""
Pytest configuration and fixtures for fire_phenology tests.
"""

from datetime import datetime, timedelta

import geopandas as gpd
import numpy as np
import pandas as pd
import pytest
from shapely.geometry import MultiPolygon, Polygon, box

from fire_phenology.phenology import double_logistic

UTM_33N = "EPSG:32633"


@pytest.fixture
def square_1km():
    """1000 m x 1000 m square AOI"""
    return box(0, 0, 1000, 1000)


@pytest.fixture
def square_10km():
    """10 km x 10 km square AOI"""
    return box(500000, 4500000, 510000, 4510000)


@pytest.fixture
def aoi_with_hole():
    """Square AOI with a 400 m square hole in the middle"""
    return Polygon(
        [(0, 0), (1000, 0), (1000, 1000), (0, 1000)],
        holes=[[(300, 300), (700, 300), (700, 700), (300, 700)]],
    )


@pytest.fixture
def two_patches():
    """Two disjoint burned patches"""
    return MultiPolygon([box(0, 0, 500, 500), box(2000, 2000, 2500, 2500)])


@pytest.fixture
def regions_file(tmp_path):
    """GeoPackage with two named regions in UTM 33N"""
    gdf = gpd.GeoDataFrame(
        {"NAME": ["Sierra", "Valle"]},
        geometry=[
            box(500000, 4500000, 505000, 4505000),
            box(520000, 4500000, 523000, 4503000),
        ],
        crs=UTM_33N,
    )
    path = tmp_path / "regions.gpkg"
    gdf.to_file(path)
    return path


@pytest.fixture
def geographic_file(tmp_path):
    """GeoPackage with one AOI in WGS84 around 13.5E, 49N"""
    gdf = gpd.GeoDataFrame(
        {"NAME": ["Bavarian Forest"]},
        geometry=[box(13.4, 48.95, 13.5, 49.05)],
        crs="EPSG:4326",
    )
    path = tmp_path / "geographic.gpkg"
    gdf.to_file(path)
    return path


@pytest.fixture
def season_params():
    """Double-logistic parameters of a typical temperate forest season"""
    return [0.2, 0.8, 0.08, 120.0, 0.08, 280.0]


def _season_rows(point_id, year, params, step_days):
    start = datetime(year, 1, 1)
    rows = []
    for offset in range(0, 365, step_days):
        day = start + timedelta(days=offset)
        doy = day.timetuple().tm_yday
        rows.append(
            {
                "point_id": point_id,
                "date": day,
                "NDVI": float(double_logistic(doy, *params)),
            }
        )
    return rows


@pytest.fixture
def synthetic_time_series(season_params):
    """Clean NDVI series for two points over 2021-2022, every 8 days.

    Point 2 in 2022 only has five observations (mostly cloudy year).
    """
    rows = []
    rows += _season_rows(1, 2021, season_params, 8)
    rows += _season_rows(1, 2022, season_params, 8)
    rows += _season_rows(2, 2021, season_params, 8)
    rows += _season_rows(2, 2022, season_params, 8)[10:15]
    frame = pd.DataFrame(rows)
    frame["date"] = pd.to_datetime(frame["date"])
    return frame


@pytest.fixture
def mock_reduced_features():
    """Features as returned by reduceRegions(...).flatten().getInfo()"""
    return [
        {
            "type": "Feature",
            "geometry": None,
            "properties": {"point_id": 1, "date": "2021-06-01", "NDVI": 0.71, "NBR": 0.45},
        },
        {
            "type": "Feature",
            "geometry": None,
            "properties": {"point_id": 1, "date": "2021-06-01", "NDVI": 0.69, "NBR": 0.43},
        },
        {
            "type": "Feature",
            "geometry": None,
            "properties": {"point_id": 2, "date": "2021-06-01", "NDVI": None, "NBR": None},
        },
        {
            "type": "Feature",
            "geometry": None,
            "properties": {"point_id": 2, "date": "2021-05-27", "NDVI": 0.55, "NBR": 0.30},
        },
    ]


@pytest.fixture
def min_pairwise_distance():
    """Smallest distance between any two sample points"""

    def _min_distance(points):
        coords = np.array([(p.x, p.y) for p in points])
        if len(coords) < 2:
            return np.inf
        diff = coords[:, None, :] - coords[None, :, :]
        dist = np.sqrt((diff**2).sum(axis=-1))
        np.fill_diagonal(dist, np.inf)
        return dist.min()

    return _min_distance
