#!/usr/bin/env python3
"""
Quality screening for vegetation index time series.
"""

from datetime import date, timedelta
from typing import List, Sequence, Tuple

import numpy as np


def detect_outliers_upper_envelope(
    dates: Sequence[date],
    values: Sequence[float],
    window_days: int = 30,
    percentile: float = 80,
    threshold_below: float = 0.15,
    floor: float = 0.05,
) -> List[bool]:
    """
    Detect outliers based on deviation from the upper envelope.

    Clouds, smoke and shadows depress vegetation indices, so an observation is
    flagged when it falls more than ``threshold_below`` under the chosen
    percentile of its ``window_days`` neighbourhood.

    Args:
        dates: Observation dates, any order
        values: Index values aligned with ``dates`` (NaN for missing)
        window_days: Size of rolling window in days
        percentile: Which percentile to use for upper envelope (e.g., 80th)
        threshold_below: How far below envelope to consider outlier
        floor: Values below this are always outliers and never shape the envelope

    Returns:
        List of boolean values indicating if each point is an outlier
    """
    values_arr = np.asarray(values, dtype=float)
    flags = [False] * len(values_arr)
    half_window = timedelta(days=window_days // 2)

    valid = [
        (d, v) for d, v in zip(dates, values_arr) if not np.isnan(v) and v >= floor
    ]

    for i, (target_date, target_value) in enumerate(zip(dates, values_arr)):
        if np.isnan(target_value):
            continue
        if target_value < floor:
            flags[i] = True
            continue

        window_values = [
            v
            for d, v in valid
            if target_date - half_window <= d <= target_date + half_window
        ]
        if window_values:
            envelope = np.percentile(window_values, percentile)
            flags[i] = bool(envelope - target_value > threshold_below)

    return flags


def calculate_gaps(
    dates: Sequence[date], threshold_days: int = 16
) -> Tuple[int, int, float]:
    """Calculate gap statistics for observation dates

    Returns (max_gap_days, gap_count, weighted_gap_score) where only gaps longer
    than ``threshold_days`` are counted and the score is the sum of squared gaps
    divided by the number of intervals.
    """
    days = np.unique(np.asarray(list(dates), dtype="datetime64[D]"))
    if days.size < 2:
        return 0, 0, 0.0

    intervals = np.diff(days).astype(int)
    long_gaps = intervals[intervals > threshold_days]
    if long_gaps.size == 0:
        return 0, 0, 0.0

    score = float(np.sum(long_gaps**2)) / intervals.size
    return int(long_gaps.max()), int(long_gaps.size), score
