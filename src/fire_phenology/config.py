#!/usr/bin/env python3
"""
Configuration for the fire phenology pipeline.

Defaults live in the module-level dictionaries below. ``load_config`` merges the
sections of a ``config.yaml`` file over them and returns frozen dataclasses that
are passed explicitly into each pipeline stage.
"""

from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import yaml  # type: ignore
from loguru import logger

from .exceptions import ConfigError

SAMPLING: Dict[str, Any] = {
    "aoi_path": "data/aoi.shp",
    "region_field": None,
    "region_name": None,
    "target_crs": None,  # None = estimated UTM zone for geographic inputs
    "target_count": 100,
    "min_distance_m": 500.0,
    "oversample_factor": 5.0,
    "random_seed": 1234,
    "output_path": "output/sample_points.shp",
}

EXTRACTION: Dict[str, Any] = {
    "project": None,
    "sensor": "sentinel2",
    "indices": ["NDVI", "EVI", "NBR"],
    "start_year": 2017,
    "end_year": 2023,
    "max_cloud_cover": 60,
    "max_workers": 5,
    "points_path": "output/sample_points.shp",
    "output_path": "output/time_series.csv",
}

PHENOLOGY: Dict[str, Any] = {
    "index": "NDVI",
    "threshold": 0.5,  # Fraction of seasonal amplitude defining SOS/EOS
    "min_observations": 8,
    "outlier_window_days": 30,
    "outlier_percentile": 80,
    "outlier_threshold_below": 0.15,
    "outlier_floor": 0.05,  # Values below are always outliers
    "gap_threshold_days": 16,
    "input_path": "output/time_series.csv",
    "output_path": "output/phenology.csv",
}

COLLECTIONS: Dict[str, str] = {
    "sentinel2": "COPERNICUS/S2_SR_HARMONIZED",
    "landsat8": "LANDSAT/LC08/C02/T1_L2",
    "landsat9": "LANDSAT/LC09/C02/T1_L2",
}

SUPPORTED_INDICES: List[str] = ["NDVI", "EVI", "NBR", "NDMI"]


def _get_int(section: Mapping[str, Any], key: str, minimum: Optional[int] = None) -> int:
    """Get integer config value with type safety"""
    value = section[key]
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigError(f"Config {key} expected int, got {type(value).__name__}")
    if minimum is not None and value < minimum:
        raise ConfigError(f"Config {key} must be >= {minimum}, got {value}")
    return value


def _get_float(
    section: Mapping[str, Any], key: str, minimum: Optional[float] = None
) -> float:
    """Get float config value with type safety"""
    value = section[key]
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ConfigError(f"Config {key} expected float, got {type(value).__name__}")
    if minimum is not None and value < minimum:
        raise ConfigError(f"Config {key} must be >= {minimum}, got {value}")
    return float(value)


def _get_optional_str(section: Mapping[str, Any], key: str) -> Optional[str]:
    value = section.get(key)
    if value is None:
        return None
    if not isinstance(value, (str, int)):
        raise ConfigError(f"Config {key} expected str, got {type(value).__name__}")
    return str(value)


def _get_list_str(section: Mapping[str, Any], key: str) -> Tuple[str, ...]:
    """Get list of str config value with type safety"""
    value = section[key]
    if isinstance(value, (list, tuple)) and all(isinstance(x, str) for x in value):
        return tuple(value)
    raise ConfigError(f"Config {key} expected List[str], got {value!r}")


@dataclass(frozen=True)
class SamplingConfig:
    """Parameters for the spatial sample generator and its I/O"""

    target_count: int = SAMPLING["target_count"]
    min_distance: float = SAMPLING["min_distance_m"]
    oversample_factor: float = SAMPLING["oversample_factor"]
    random_seed: int = SAMPLING["random_seed"]
    aoi_path: str = SAMPLING["aoi_path"]
    region_field: Optional[str] = SAMPLING["region_field"]
    region_name: Optional[str] = SAMPLING["region_name"]
    target_crs: Optional[str] = SAMPLING["target_crs"]
    output_path: str = SAMPLING["output_path"]

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "SamplingConfig":
        section = {**SAMPLING, **values}
        return cls(
            target_count=_get_int(section, "target_count", minimum=1),
            min_distance=_get_float(section, "min_distance_m", minimum=0.0),
            oversample_factor=_get_float(section, "oversample_factor", minimum=1.0),
            random_seed=_get_int(section, "random_seed"),
            aoi_path=str(section["aoi_path"]),
            region_field=_get_optional_str(section, "region_field"),
            region_name=_get_optional_str(section, "region_name"),
            target_crs=_get_optional_str(section, "target_crs"),
            output_path=str(section["output_path"]),
        )


@dataclass(frozen=True)
class ExtractionConfig:
    """Parameters for Earth Engine time-series extraction"""

    project: Optional[str] = EXTRACTION["project"]
    sensor: str = EXTRACTION["sensor"]
    indices: Tuple[str, ...] = tuple(EXTRACTION["indices"])
    start_year: int = EXTRACTION["start_year"]
    end_year: int = EXTRACTION["end_year"]
    max_cloud_cover: float = EXTRACTION["max_cloud_cover"]
    max_workers: int = EXTRACTION["max_workers"]
    points_path: str = EXTRACTION["points_path"]
    output_path: str = EXTRACTION["output_path"]

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "ExtractionConfig":
        section = {**EXTRACTION, **values}
        sensor = str(section["sensor"])
        if sensor not in COLLECTIONS:
            raise ConfigError(
                f"Unknown sensor {sensor!r}, expected one of {sorted(COLLECTIONS)}"
            )
        indices = _get_list_str(section, "indices")
        unknown = [name for name in indices if name not in SUPPORTED_INDICES]
        if unknown:
            raise ConfigError(f"Unsupported indices: {unknown}")
        start_year = _get_int(section, "start_year")
        end_year = _get_int(section, "end_year")
        if end_year < start_year:
            raise ConfigError(f"end_year {end_year} is before start_year {start_year}")
        return cls(
            project=_get_optional_str(section, "project"),
            sensor=sensor,
            indices=indices,
            start_year=start_year,
            end_year=end_year,
            max_cloud_cover=_get_float(section, "max_cloud_cover", minimum=0.0),
            max_workers=_get_int(section, "max_workers", minimum=1),
            points_path=str(section["points_path"]),
            output_path=str(section["output_path"]),
        )


@dataclass(frozen=True)
class PhenologyConfig:
    """Parameters for outlier screening and double-logistic fitting"""

    index: str = PHENOLOGY["index"]
    threshold: float = PHENOLOGY["threshold"]
    min_observations: int = PHENOLOGY["min_observations"]
    outlier_window_days: int = PHENOLOGY["outlier_window_days"]
    outlier_percentile: float = PHENOLOGY["outlier_percentile"]
    outlier_threshold_below: float = PHENOLOGY["outlier_threshold_below"]
    outlier_floor: float = PHENOLOGY["outlier_floor"]
    gap_threshold_days: int = PHENOLOGY["gap_threshold_days"]
    input_path: str = PHENOLOGY["input_path"]
    output_path: str = PHENOLOGY["output_path"]

    @classmethod
    def from_mapping(cls, values: Mapping[str, Any]) -> "PhenologyConfig":
        section = {**PHENOLOGY, **values}
        index = str(section["index"])
        if index not in SUPPORTED_INDICES:
            raise ConfigError(f"Unsupported index {index!r}")
        threshold = _get_float(section, "threshold", minimum=0.0)
        if threshold >= 1.0:
            raise ConfigError(f"Config threshold must be < 1, got {threshold}")
        return cls(
            index=index,
            threshold=threshold,
            min_observations=_get_int(section, "min_observations", minimum=6),
            outlier_window_days=_get_int(section, "outlier_window_days", minimum=1),
            outlier_percentile=_get_float(section, "outlier_percentile", minimum=0.0),
            outlier_threshold_below=_get_float(
                section, "outlier_threshold_below", minimum=0.0
            ),
            outlier_floor=_get_float(section, "outlier_floor"),
            gap_threshold_days=_get_int(section, "gap_threshold_days", minimum=0),
            input_path=str(section["input_path"]),
            output_path=str(section["output_path"]),
        )


@dataclass(frozen=True)
class PipelineConfig:
    """All stage configurations loaded from one YAML file"""

    sampling: SamplingConfig = field(default_factory=SamplingConfig)
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    phenology: PhenologyConfig = field(default_factory=PhenologyConfig)


def _section(raw: Mapping[str, Any], name: str) -> Dict[str, Any]:
    value = raw.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"Config section {name!r} must be a mapping")
    return value


def load_config(path: Union[str, Path, None] = "config.yaml") -> PipelineConfig:
    """Load configuration from YAML, falling back to defaults if the file is absent"""
    raw: Dict[str, Any] = {}
    if path is not None and Path(path).exists():
        with open(path, "r") as f:
            raw = yaml.safe_load(f) or {}
        if not isinstance(raw, dict):
            raise ConfigError(f"{path} must contain a mapping at the top level")
        logger.debug(f"Loaded configuration from {path}")
    else:
        logger.debug(f"No configuration file at {path}, using defaults")

    return PipelineConfig(
        sampling=SamplingConfig.from_mapping(_section(raw, "sampling")),
        extraction=ExtractionConfig.from_mapping(_section(raw, "extraction")),
        phenology=PhenologyConfig.from_mapping(_section(raw, "phenology")),
    )


def config_fields(config: Any) -> List[str]:
    """Names of the fields of a stage config, in declaration order"""
    return [f.name for f in fields(config)]
