#!/usr/bin/env python3
"""
Reading and writing sample point files.
"""

from pathlib import Path
from typing import Any, Dict, List, Sequence, Union

import geopandas as gpd
import pandas as pd
from loguru import logger

from .exceptions import InvalidInputError
from .sampling import SamplePoint
from .spatial_utils import validate_coordinates

POINT_COLUMNS = ["point_id", "x", "y"]


def points_to_geodataframe(points: Sequence[SamplePoint], crs: Any) -> gpd.GeoDataFrame:
    """Build a point GeoDataFrame with ``point_id``, ``x`` and ``y`` attributes"""
    frame = pd.DataFrame(list(points), columns=POINT_COLUMNS).astype(
        {"point_id": int, "x": float, "y": float}
    )
    return gpd.GeoDataFrame(
        frame,
        geometry=gpd.points_from_xy(frame["x"], frame["y"]),
        crs=crs,
    )


def write_points(
    points: Sequence[SamplePoint], crs: Any, path: Union[str, Path]
) -> Path:
    """Write points to a vector file, driver chosen from the file extension"""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    points_to_geodataframe(points, crs).to_file(path)
    logger.info(f"Wrote {len(points)} points to {path}")
    return path


def write_points_csv(
    points: Sequence[SamplePoint], crs: Any, path: Union[str, Path]
) -> Path:
    """Write points to CSV with projected and WGS84 coordinates"""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    gdf = points_to_geodataframe(points, crs)
    wgs84 = gdf.geometry.to_crs("EPSG:4326")
    frame = pd.DataFrame(gdf[POINT_COLUMNS])
    frame["lon"] = wgs84.x.round(7)
    frame["lat"] = wgs84.y.round(7)
    frame.to_csv(path, index=False)
    logger.info(f"Wrote {len(points)} points to {path}")
    return path


def read_points(path: Union[str, Path]) -> List[Dict[str, Any]]:
    """Read a point file as WGS84 records of ``point_id``, ``lon`` and ``lat``"""
    path = Path(path)
    if not path.exists():
        raise InvalidInputError(f"Point file not found: {path}")

    gdf = gpd.read_file(path)
    if gdf.crs is None:
        raise InvalidInputError(f"Point file {path} has no coordinate reference system")
    if "point_id" not in gdf.columns:
        raise InvalidInputError(f"Point file {path} has no point_id column")
    if not (gdf.geometry.geom_type == "Point").all():
        raise InvalidInputError(f"Point file {path} contains non-point geometries")

    gdf = gdf.to_crs("EPSG:4326")
    records = []
    for point_id, geom in zip(gdf["point_id"], gdf.geometry):
        if not validate_coordinates(geom.y, geom.x):
            raise InvalidInputError(f"Point {point_id} has invalid coordinates")
        records.append({"point_id": int(point_id), "lon": geom.x, "lat": geom.y})

    logger.debug(f"Read {len(records)} points from {path}")
    return records
