#!/usr/bin/env python3
"""
Tests for writing and reading sample point files.
"""

import geopandas as gpd
import pandas as pd
import pytest
from shapely.geometry import box

from fire_phenology.exceptions import InvalidInputError
from fire_phenology.export import (
    points_to_geodataframe,
    read_points,
    write_points,
    write_points_csv,
)
from fire_phenology.sampling import SamplePoint

UTM_33N = "EPSG:32633"


@pytest.fixture
def sample_points():
    return [
        SamplePoint(1, 500100.0, 4500200.0),
        SamplePoint(2, 503000.5, 4504000.25),
        SamplePoint(3, 509000.0, 4509900.0),
    ]


class TestPointsToGeoDataFrame:
    def test_columns_and_crs(self, sample_points):
        gdf = points_to_geodataframe(sample_points, UTM_33N)

        assert list(gdf.columns) == ["point_id", "x", "y", "geometry"]
        assert gdf.crs.to_epsg() == 32633
        assert gdf["point_id"].tolist() == [1, 2, 3]
        assert gdf.geometry.iloc[1].x == 503000.5

    def test_empty_points(self):
        gdf = points_to_geodataframe([], UTM_33N)
        assert len(gdf) == 0


class TestWritePoints:
    def test_write_and_read_back(self, tmp_path, sample_points):
        """Test a written point file is readable as WGS84 records"""
        path = write_points(sample_points, UTM_33N, tmp_path / "out" / "points.gpkg")

        assert path.exists()
        records = read_points(path)
        assert [r["point_id"] for r in records] == [1, 2, 3]
        for record in records:
            # UTM 33N near 40.6N, 15E
            assert 14.9 < record["lon"] < 15.2
            assert 40.5 < record["lat"] < 40.8

    def test_write_csv(self, tmp_path, sample_points):
        """Test CSV output carries projected and geographic coordinates"""
        path = write_points_csv(sample_points, UTM_33N, tmp_path / "points.csv")

        frame = pd.read_csv(path)
        assert list(frame.columns) == ["point_id", "x", "y", "lon", "lat"]
        assert frame["x"].tolist() == [p.x for p in sample_points]
        assert frame["lon"].between(-180, 180).all()
        assert frame["lat"].between(-90, 90).all()


class TestReadPoints:
    def test_missing_file(self, tmp_path):
        with pytest.raises(InvalidInputError, match="not found"):
            read_points(tmp_path / "nothing.gpkg")

    def test_missing_point_id(self, tmp_path):
        path = tmp_path / "no_id.gpkg"
        gpd.GeoDataFrame(
            {"name": ["a"]}, geometry=gpd.points_from_xy([500000], [4500000]), crs=UTM_33N
        ).to_file(path)

        with pytest.raises(InvalidInputError, match="point_id"):
            read_points(path)

    def test_non_point_geometries(self, tmp_path):
        path = tmp_path / "polygons.gpkg"
        gpd.GeoDataFrame(
            {"point_id": [1]}, geometry=[box(0, 0, 1, 1)], crs=UTM_33N
        ).to_file(path)

        with pytest.raises(InvalidInputError, match="non-point"):
            read_points(path)
