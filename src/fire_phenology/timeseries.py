#!/usr/bin/env python3
"""
Extract vegetation index time series at sample points with Google Earth Engine.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Union

import ee
import pandas as pd
from loguru import logger

from .config import COLLECTIONS

SENSORS: Dict[str, Dict[str, Any]] = {
    "sentinel2": {
        "collection": COLLECTIONS["sentinel2"],
        "bands": ["B2", "B4", "B8", "B11", "B12"],
        "cloud_property": "CLOUDY_PIXEL_PERCENTAGE",
        "scale": 10,
        "multiplier": 0.0001,
        "offset": 0.0,
    },
    "landsat8": {
        "collection": COLLECTIONS["landsat8"],
        "bands": ["SR_B2", "SR_B4", "SR_B5", "SR_B6", "SR_B7"],
        "cloud_property": "CLOUD_COVER",
        "scale": 30,
        "multiplier": 0.0000275,
        "offset": -0.2,
    },
    "landsat9": {
        "collection": COLLECTIONS["landsat9"],
        "bands": ["SR_B2", "SR_B4", "SR_B5", "SR_B6", "SR_B7"],
        "cloud_property": "CLOUD_COVER",
        "scale": 30,
        "multiplier": 0.0000275,
        "offset": -0.2,
    },
}

# Common names for the sensor bands listed above, in the same order
COMMON_BANDS = ["blue", "red", "nir", "swir1", "swir2"]

NORMALIZED_DIFFERENCES: Dict[str, List[str]] = {
    "NDVI": ["nir", "red"],
    "NBR": ["nir", "swir2"],
    "NDMI": ["nir", "swir1"],
}


def init_ee(project: Optional[str] = None):
    """Initialize Earth Engine."""
    try:
        ee.Initialize(project=project)
    except Exception:
        ee.Authenticate()
        ee.Initialize(project=project)


def mask_clouds(image, sensor: str):
    """Mask cloud and cloud-shadow pixels using the sensor's QA band"""
    if sensor == "sentinel2":
        qa = image.select("QA60")
        cloud_mask = qa.bitwiseAnd(1 << 10).eq(0).And(qa.bitwiseAnd(1 << 11).eq(0))
    else:
        qa = image.select("QA_PIXEL")
        # Dilated cloud, cloud, cloud shadow
        cloud_mask = (
            qa.bitwiseAnd(1 << 1)
            .eq(0)
            .And(qa.bitwiseAnd(1 << 3).eq(0))
            .And(qa.bitwiseAnd(1 << 4).eq(0))
        )
    return image.updateMask(cloud_mask)


def add_indices(image, sensor: str, indices: Sequence[str]):
    """Scale reflectance, rename to common band names and add index bands"""
    spec = SENSORS[sensor]
    reflectance = (
        image.select(spec["bands"], COMMON_BANDS)
        .multiply(spec["multiplier"])
        .add(spec["offset"])
    )

    bands = []
    for name in indices:
        if name == "EVI":
            band = reflectance.expression(
                "2.5 * ((NIR - RED) / (NIR + 6 * RED - 7.5 * BLUE + 1))",
                {
                    "NIR": reflectance.select("nir"),
                    "RED": reflectance.select("red"),
                    "BLUE": reflectance.select("blue"),
                },
            ).rename("EVI")
        else:
            band = reflectance.normalizedDifference(
                NORMALIZED_DIFFERENCES[name]
            ).rename(name)
        bands.append(band)

    return ee.Image(
        ee.Image.cat(bands).copyProperties(image, ["system:time_start"])
    ).set("date", image.date().format("YYYY-MM-dd"))


def build_index_collection(
    sensor: str,
    start_date: str,
    end_date: str,
    region,
    indices: Sequence[str],
    max_cloud_cover: float = 60,
):
    """Cloud-masked image collection holding one band per requested index"""
    spec = SENSORS[sensor]
    return (
        ee.ImageCollection(spec["collection"])
        .filterBounds(region)
        .filterDate(start_date, end_date)
        .filter(ee.Filter.lt(spec["cloud_property"], max_cloud_cover))
        .map(lambda img: add_indices(mask_clouds(img, sensor), sensor, indices))
    )


def points_to_feature_collection(points: Sequence[Dict[str, Any]]):
    """Convert ``point_id``/``lon``/``lat`` records to an ee.FeatureCollection"""
    return ee.FeatureCollection(
        [
            ee.Feature(
                ee.Geometry.Point([p["lon"], p["lat"]]), {"point_id": p["point_id"]}
            )
            for p in points
        ]
    )


def fetch_year(
    points_fc,
    sensor: str,
    year: int,
    indices: Sequence[str],
    max_cloud_cover: float = 60,
) -> List[Dict]:
    """Fetch per-point index means for every acquisition in ``year``"""
    collection = build_index_collection(
        sensor,
        f"{year}-01-01",
        f"{year + 1}-01-01",
        points_fc.geometry(),
        indices,
        max_cloud_cover,
    )
    scale = SENSORS[sensor]["scale"]

    def reduce_image(image):
        date = image.get("date")
        return image.reduceRegions(
            collection=points_fc,
            reducer=ee.Reducer.mean(),
            scale=scale,
        ).map(lambda f: f.set("date", date))

    return collection.map(reduce_image).flatten().getInfo()["features"]


def features_to_frame(features: Sequence[Dict], indices: Sequence[str]) -> pd.DataFrame:
    """Convert reduced features to a tidy ``point_id, date, <indices>`` frame

    Fully masked observations are dropped and same-day observations of a point
    (overlapping tiles) are averaged.
    """
    columns = ["point_id", "date", *indices]
    rows = []
    for feature in features:
        props = feature["properties"]
        # A single-band reduction is reported under the reducer's name
        if len(indices) == 1 and indices[0] not in props and "mean" in props:
            props = {**props, indices[0]: props["mean"]}
        row = {name: props.get(name) for name in indices}
        if all(value is None for value in row.values()):
            continue
        row["point_id"] = props["point_id"]
        row["date"] = props["date"]
        rows.append(row)

    if not rows:
        return pd.DataFrame(columns=columns)

    frame = pd.DataFrame(rows, columns=columns)
    frame["point_id"] = frame["point_id"].astype(int)
    frame["date"] = pd.to_datetime(frame["date"])
    frame[list(indices)] = frame[list(indices)].astype(float)
    frame = frame.groupby(["point_id", "date"], as_index=False)[list(indices)].mean()
    return frame.sort_values(["point_id", "date"]).reset_index(drop=True)


def fetch_time_series(
    points: Sequence[Dict[str, Any]],
    sensor: str,
    start_year: int,
    end_year: int,
    indices: Sequence[str],
    max_cloud_cover: float = 60,
    max_workers: int = 5,
) -> pd.DataFrame:
    """Fetch index time series for all points over ``start_year``..``end_year``

    Years are requested in parallel. A failing year is logged and skipped so the
    remaining years are still returned.
    """
    points_fc = points_to_feature_collection(points)
    years = list(range(start_year, end_year + 1))
    logger.info(
        f"Extracting {', '.join(indices)} from {sensor} for {len(points)} points, "
        f"{start_year}-{end_year}, using {max_workers} parallel threads"
    )

    frames = []
    failed = []
    with ThreadPoolExecutor(max_workers=max_workers) as executor:
        futures = {
            executor.submit(
                fetch_year, points_fc, sensor, year, indices, max_cloud_cover
            ): year
            for year in years
        }

        for completed, future in enumerate(as_completed(futures), 1):
            year = futures[future]
            try:
                frame = features_to_frame(future.result(), indices)
            except Exception as e:
                failed.append(year)
                logger.error(f"[{completed}/{len(years)}] {year}: Failed - {e}")
                continue
            frames.append(frame)
            logger.info(f"[{completed}/{len(years)}] {year}: {len(frame)} observations")

    if failed:
        logger.warning(f"Extraction failed for years: {sorted(failed)}")

    non_empty = [frame for frame in frames if not frame.empty]
    if not non_empty:
        return pd.DataFrame(columns=["point_id", "date", *indices])
    return (
        pd.concat(non_empty, ignore_index=True)
        .sort_values(["point_id", "date"])
        .reset_index(drop=True)
    )


def write_time_series(frame: pd.DataFrame, path: Union[str, Path]) -> Path:
    """Write a time-series frame to CSV, or Excel for ``.xlsx`` paths"""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    output = frame.copy()
    output["date"] = pd.to_datetime(output["date"]).dt.strftime("%Y-%m-%d")
    if path.suffix.lower() == ".xlsx":
        output.to_excel(path, index=False)
    else:
        output.to_csv(path, index=False)
    logger.info(f"Wrote {len(output)} observations to {path}")
    return path


def read_time_series(path: Union[str, Path]) -> pd.DataFrame:
    """Read a time-series file written by ``write_time_series``"""
    path = Path(path)
    if path.suffix.lower() == ".xlsx":
        frame = pd.read_excel(path)
    else:
        frame = pd.read_csv(path)
    frame["date"] = pd.to_datetime(frame["date"])
    return frame
