#!/usr/bin/env python3
"""
Fire Phenology

Sample points over a burned or forested area of interest, extract multi-year
vegetation index time series with Google Earth Engine and fit phenology curves
to find the start, peak and end of each season.
"""

from .config import PipelineConfig, SamplingConfig, load_config
from .exceptions import InvalidInputError, SamplingShortfall
from .sampling import SamplePoint, SpatialSampleGenerator, generate_samples

__version__ = "1.0.0"
__author__ = "Fire Phenology Team"

__all__ = [
    "generate_samples",
    "InvalidInputError",
    "load_config",
    "PipelineConfig",
    "SamplePoint",
    "SamplingConfig",
    "SamplingShortfall",
    "SpatialSampleGenerator",
]
