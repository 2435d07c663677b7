#!/usr/bin/env python3
"""
Pipeline stages and their command line entry points.

1. sample   - minimum-distance sample points inside the AOI
2. extract  - vegetation index time series at the points (Earth Engine)
3. phenology - double-logistic fits and SOS/POS/EOS per point and year
"""

import argparse
import dataclasses
import sys
from pathlib import Path
from typing import List, Optional

import pandas as pd
from loguru import logger

from .config import (
    ExtractionConfig,
    PhenologyConfig,
    PipelineConfig,
    SamplingConfig,
    config_fields,
    load_config,
)
from .export import read_points, write_points, write_points_csv
from .phenology import fit_phenology
from .sampling import SamplingResult, SpatialSampleGenerator
from .spatial_utils import load_aoi
from .timeseries import (
    fetch_time_series,
    init_ee,
    read_time_series,
    write_time_series,
)

LOG_FORMAT = (
    "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | "
    "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> - "
    "<level>{message}</level>"
)


def setup_logger(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Replace loguru's default handler with the pipeline's stderr format"""
    logger.remove()  # Remove default handler
    logger.add(sys.stderr, level=level, format=LOG_FORMAT)
    if log_file:
        logger.add(log_file, level="DEBUG", format=LOG_FORMAT, colorize=False)


def _log_config(config) -> None:
    for name in config_fields(config):
        logger.debug(f"  {name} = {getattr(config, name)!r}")


def run_sampling(config: SamplingConfig) -> SamplingResult:
    """Load the AOI, generate sample points and write them out"""
    logger.info("=== Generating sample points ===")
    _log_config(config)

    aoi, crs = load_aoi(
        config.aoi_path,
        region_field=config.region_field,
        region_name=config.region_name,
        target_crs=config.target_crs,
    )
    result = SpatialSampleGenerator(config).generate(aoi)

    output = write_points(result.points, crs, config.output_path)
    write_points_csv(result.points, crs, output.with_suffix(".csv"))
    logger.info(
        f"Sampling completed: {len(result.points)}/{result.requested} points "
        f"from {result.candidate_count} candidates"
    )
    return result


def run_extraction(config: ExtractionConfig) -> pd.DataFrame:
    """Extract index time series for the sample points"""
    logger.info("=== Extracting vegetation index time series ===")
    _log_config(config)

    points = read_points(config.points_path)
    init_ee(config.project)
    frame = fetch_time_series(
        points,
        config.sensor,
        config.start_year,
        config.end_year,
        config.indices,
        max_cloud_cover=config.max_cloud_cover,
        max_workers=config.max_workers,
    )
    write_time_series(frame, config.output_path)
    logger.info(f"Extraction completed: {len(frame)} observations")
    return frame


def run_phenology(config: PhenologyConfig) -> pd.DataFrame:
    """Fit phenology curves to an extracted time series"""
    logger.info("=== Fitting phenology ===")
    _log_config(config)

    frame = read_time_series(config.input_path)
    results = fit_phenology(frame, config)

    output = Path(config.output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    if output.suffix.lower() == ".xlsx":
        results.to_excel(output, index=False)
    else:
        results.to_csv(output, index=False)
    logger.info(f"Phenology results saved to {output}")
    return results


def _base_parser(description: str) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description=description)
    parser.add_argument("--config", default="config.yaml", help="YAML configuration")
    parser.add_argument("--log-level", default="INFO")
    parser.add_argument("--log-file", default=None)
    return parser


def _overrides(args: argparse.Namespace, names: List[str]) -> dict:
    return {
        name: getattr(args, name)
        for name in names
        if getattr(args, name, None) is not None
    }


def _load(args: argparse.Namespace) -> PipelineConfig:
    setup_logger(args.log_level, args.log_file)
    return load_config(args.config)


def sample_main(argv: Optional[List[str]] = None) -> int:
    """Command line entry point for the sampling stage"""
    parser = _base_parser("Generate minimum-distance random sample points")
    parser.add_argument("--aoi-path", dest="aoi_path")
    parser.add_argument("--region-field", dest="region_field")
    parser.add_argument("--region-name", dest="region_name")
    parser.add_argument("--target-crs", dest="target_crs")
    parser.add_argument("--target-count", dest="target_count", type=int)
    parser.add_argument("--min-distance", dest="min_distance", type=float)
    parser.add_argument("--oversample-factor", dest="oversample_factor", type=float)
    parser.add_argument("--seed", dest="random_seed", type=int)
    parser.add_argument("--output", dest="output_path")
    args = parser.parse_args(argv)

    base = dataclasses.asdict(_load(args).sampling)
    values = {**base, **_overrides(args, config_fields(SamplingConfig))}
    values["min_distance_m"] = values.pop("min_distance")
    config = SamplingConfig.from_mapping(values)
    run_sampling(config)
    return 0


def extract_main(argv: Optional[List[str]] = None) -> int:
    """Command line entry point for the extraction stage"""
    parser = _base_parser("Extract vegetation index time series with Earth Engine")
    parser.add_argument("--project")
    parser.add_argument("--sensor")
    parser.add_argument("--start-year", dest="start_year", type=int)
    parser.add_argument("--end-year", dest="end_year", type=int)
    parser.add_argument("--points", dest="points_path")
    parser.add_argument("--output", dest="output_path")
    args = parser.parse_args(argv)

    base = dataclasses.asdict(_load(args).extraction)
    config = ExtractionConfig.from_mapping(
        {**base, **_overrides(args, config_fields(ExtractionConfig))}
    )
    run_extraction(config)
    return 0


def phenology_main(argv: Optional[List[str]] = None) -> int:
    """Command line entry point for the phenology stage"""
    parser = _base_parser("Fit double-logistic phenology to index time series")
    parser.add_argument("--index")
    parser.add_argument("--threshold", type=float)
    parser.add_argument("--input", dest="input_path")
    parser.add_argument("--output", dest="output_path")
    args = parser.parse_args(argv)

    base = dataclasses.asdict(_load(args).phenology)
    config = PhenologyConfig.from_mapping(
        {**base, **_overrides(args, config_fields(PhenologyConfig))}
    )
    run_phenology(config)
    return 0
