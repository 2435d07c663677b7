#!/usr/bin/env python3
"""
Spatial utilities for loading and checking the area of interest.
"""

from pathlib import Path
from typing import Any, Optional, Tuple, Union

import geopandas as gpd
from loguru import logger
from pyproj import CRS
from shapely.geometry.base import BaseGeometry

from .exceptions import InvalidInputError


def validate_coordinates(lat: float, lon: float) -> bool:
    """Validate coordinate ranges"""
    return -90 <= lat <= 90 and -180 <= lon <= 180


def ensure_projected(crs: Any) -> CRS:
    """Return ``crs`` as a pyproj CRS, refusing missing or geographic systems"""
    if crs is None:
        raise InvalidInputError("AOI has no coordinate reference system")
    crs = CRS.from_user_input(crs)
    if not crs.is_projected:
        raise InvalidInputError(
            f"AOI CRS {crs.to_string()} is not projected; distances must be metric"
        )
    return crs


def validate_aoi(geometry: Optional[BaseGeometry]) -> BaseGeometry:
    """Check that the AOI is a non-empty, valid polygonal geometry"""
    if geometry is None or geometry.is_empty:
        raise InvalidInputError("AOI geometry is empty")
    if geometry.geom_type not in ("Polygon", "MultiPolygon"):
        raise InvalidInputError(
            f"AOI must be a Polygon or MultiPolygon, got {geometry.geom_type}"
        )
    if not geometry.is_valid:
        raise InvalidInputError("AOI geometry is invalid")
    if geometry.area <= 0:
        raise InvalidInputError("AOI geometry has zero area")
    return geometry


def load_aoi(
    path: Union[str, Path],
    region_field: Optional[str] = None,
    region_name: Optional[str] = None,
    target_crs: Optional[Any] = None,
) -> Tuple[BaseGeometry, CRS]:
    """Load the AOI polygon from a vector file in a projected CRS

    Rows are filtered to ``region_field == region_name`` when both are given and
    dissolved into a single geometry. Geographic inputs are reprojected to
    ``target_crs`` or, when unset, to their estimated UTM zone.

    Returns (geometry, crs)
    """
    path = Path(path)
    if not path.exists():
        raise InvalidInputError(f"AOI file not found: {path}")

    gdf = gpd.read_file(path)
    logger.debug(f"Read {len(gdf)} features from {path}")

    if region_field is not None and region_name is not None:
        if region_field not in gdf.columns:
            raise InvalidInputError(f"AOI file has no column {region_field!r}")
        gdf = gdf[gdf[region_field].astype(str) == str(region_name)]
        if gdf.empty:
            raise InvalidInputError(
                f"No AOI features with {region_field} == {region_name!r}"
            )
        logger.debug(f"Filtered AOI to {len(gdf)} features for {region_name}")

    if gdf.empty:
        raise InvalidInputError(f"AOI file {path} contains no features")
    if gdf.crs is None:
        raise InvalidInputError(f"AOI file {path} has no coordinate reference system")

    if target_crs is not None:
        gdf = gdf.to_crs(target_crs)
    elif gdf.crs.is_geographic:
        utm = gdf.estimate_utm_crs()
        logger.info(f"Reprojecting AOI from {gdf.crs.to_string()} to {utm.to_string()}")
        gdf = gdf.to_crs(utm)

    crs = ensure_projected(gdf.crs)
    geometry = validate_aoi(gdf.geometry.union_all())
    logger.info(
        f"AOI loaded: area {geometry.area / 1e6:.2f} km², CRS {crs.to_string()}"
    )
    return geometry, crs
