#!/usr/bin/env python3
"""
Minimum-distance random point sampling inside an area of interest.

A candidate pool is drawn uniformly inside the AOI, oversampled relative to the
requested count. Points are then accepted one at a time at random, and every
candidate within ``min_distance`` of an accepted point is discarded. The loop
stops when the requested count is reached or the pool runs out; running out is
reported as a ``SamplingShortfall`` warning, not an error.

Candidates at exactly ``min_distance`` from an accepted point are discarded
(inclusive boundary, exact floating-point comparison).
"""

import math
import warnings
from dataclasses import dataclass, field
from typing import List, NamedTuple

import numpy as np
import shapely
from loguru import logger
from shapely.geometry import Point
from shapely.geometry.base import BaseGeometry

from .config import SamplingConfig
from .exceptions import InvalidInputError, SamplingShortfall
from .spatial_utils import validate_aoi

# Upper bound on coordinates drawn per rejection batch
MAX_CANDIDATE_BATCH = 1_000_000


class SamplePoint(NamedTuple):
    """Accepted sample point; ``point_id`` is its 1-based acceptance order"""

    point_id: int
    x: float
    y: float

    @property
    def geometry(self) -> Point:
        return Point(self.x, self.y)


@dataclass
class SamplingResult:
    """Accepted points plus diagnostics of one sampling run"""

    points: List[SamplePoint]
    requested: int
    candidate_count: int
    pool_sizes: List[int] = field(default_factory=list)

    @property
    def shortfall(self) -> bool:
        return len(self.points) < self.requested

    def __len__(self) -> int:
        return len(self.points)


def _validate_parameters(
    target_count: int, min_distance: float, oversample_factor: float
) -> None:
    if isinstance(target_count, bool) or not isinstance(target_count, int):
        raise InvalidInputError(f"target_count must be an int, got {target_count!r}")
    if target_count <= 0:
        raise InvalidInputError(f"target_count must be > 0, got {target_count}")
    if not math.isfinite(min_distance) or min_distance < 0:
        raise InvalidInputError(f"min_distance must be >= 0, got {min_distance}")
    if not math.isfinite(oversample_factor) or oversample_factor < 1:
        raise InvalidInputError(
            f"oversample_factor must be >= 1, got {oversample_factor}"
        )


def draw_candidates(
    aoi: BaseGeometry, count: int, rng: np.random.Generator
) -> np.ndarray:
    """Draw ``count`` uniform random coordinates inside ``aoi``

    Rejection sampling against the bounding box, in batches sized from the
    polygon's fill ratio and capped at ``MAX_CANDIDATE_BATCH`` so thin or
    scattered AOIs are drawn over more rounds. Returns an (count, 2) array in
    draw order.
    """
    minx, miny, maxx, maxy = aoi.bounds
    fill_ratio = aoi.area / ((maxx - minx) * (maxy - miny))

    xs: List[np.ndarray] = []
    ys: List[np.ndarray] = []
    accepted = 0
    while accepted < count:
        batch = min(
            max(int(math.ceil((count - accepted) / fill_ratio * 1.2)), 16),
            MAX_CANDIDATE_BATCH,
        )
        x = rng.uniform(minx, maxx, batch)
        y = rng.uniform(miny, maxy, batch)
        inside = shapely.contains_xy(aoi, x, y)
        xs.append(x[inside])
        ys.append(y[inside])
        accepted += int(inside.sum())

    coords = np.column_stack([np.concatenate(xs), np.concatenate(ys)])
    return coords[:count]


class SpatialSampleGenerator:
    """Generate well-spaced random sample points for one configuration"""

    def __init__(self, config: SamplingConfig):
        _validate_parameters(
            config.target_count, config.min_distance, config.oversample_factor
        )
        self.config = config

    def generate(self, aoi: BaseGeometry) -> SamplingResult:
        """Run the oversample-then-exclude loop over ``aoi``"""
        aoi = validate_aoi(aoi)
        target_count = self.config.target_count
        min_distance = self.config.min_distance

        rng = np.random.default_rng(self.config.random_seed)
        candidate_count = math.ceil(target_count * self.config.oversample_factor)
        pool = shapely.points(draw_candidates(aoi, candidate_count, rng))
        logger.debug(
            f"Drew {candidate_count} candidates for {target_count} points "
            f"(min distance {min_distance} m, seed {self.config.random_seed})"
        )

        points: List[SamplePoint] = []
        pool_sizes = [len(pool)]
        for point_id in range(1, target_count + 1):
            if len(pool) == 0:
                break

            selected = pool[rng.integers(len(pool))]
            points.append(SamplePoint(point_id, selected.x, selected.y))

            # Exclusion disk, evaluated exactly as a distance predicate
            excluded = shapely.distance(pool, selected) <= min_distance
            pool = pool[~excluded]
            pool_sizes.append(len(pool))
            logger.debug(
                f"Point {point_id} at ({selected.x:.1f}, {selected.y:.1f}) "
                f"removed {int(excluded.sum())} candidates, {len(pool)} left"
            )

        result = SamplingResult(
            points=points,
            requested=target_count,
            candidate_count=candidate_count,
            pool_sizes=pool_sizes,
        )
        if result.shortfall:
            shortfall = SamplingShortfall(len(points), target_count)
            logger.warning(str(shortfall))
            warnings.warn(shortfall, stacklevel=2)
        else:
            logger.info(f"Generated {len(points)} sample points")
        return result


def generate_samples(
    aoi: BaseGeometry,
    target_count: int,
    min_distance: float,
    oversample_factor: float = 5.0,
    random_seed: int = 1234,
) -> List[SamplePoint]:
    """Generate up to ``target_count`` points in ``aoi`` at least ``min_distance`` apart

    Args:
        aoi: Polygon or MultiPolygon in a projected (metric) CRS
        target_count: Number of points requested
        min_distance: Minimum distance between accepted points, in CRS units
        oversample_factor: Candidate pool size as a multiple of ``target_count``
        random_seed: Seed making the output reproducible

    Returns:
        Accepted points in acceptance order. Fewer than ``target_count`` points
        are returned, with a ``SamplingShortfall`` warning, when the pool runs out.
    """
    config = SamplingConfig(
        target_count=target_count,
        min_distance=min_distance,
        oversample_factor=oversample_factor,
        random_seed=random_seed,
    )
    return SpatialSampleGenerator(config).generate(aoi).points
