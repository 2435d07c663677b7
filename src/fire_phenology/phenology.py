#!/usr/bin/env python3
"""
Double-logistic phenology fitting and season metrics.

Each point-year series is screened for outliers, fitted with a double-logistic
curve (scipy ``curve_fit``) and summarised by its start (SOS), peak (POS) and
end (EOS) of season, all as day of year.
"""

import math
from datetime import date, timedelta
from typing import Any, Dict, Optional, Sequence

import numpy as np
import pandas as pd
from loguru import logger
from scipy.optimize import curve_fit
from scipy.special import expit

from .config import PhenologyConfig
from .exceptions import InvalidInputError, PhenologyFitError
from .quality import calculate_gaps, detect_outliers_upper_envelope

PARAMETER_NAMES = ["vmin", "vmax", "sos_rate", "sos_mid", "eos_rate", "eos_mid"]

METRIC_NAMES = [
    "sos",
    "pos",
    "eos",
    "season_length",
    "base_value",
    "peak_value",
    "amplitude",
    "rmse",
]

# Bounds in PARAMETER_NAMES order
LOWER_BOUNDS = [-1.0, -1.0, 0.001, 1.0, 0.001, 1.0]
UPPER_BOUNDS = [1.5, 1.5, 1.0, 366.0, 1.0, 366.0]


def double_logistic(t, vmin, vmax, sos_rate, sos_mid, eos_rate, eos_mid):
    """Double-logistic seasonal curve

    Rises from ``vmin`` to ``vmax`` around ``sos_mid`` and falls back around
    ``eos_mid``; the rates control the steepness of each transition.
    """
    t = np.asarray(t, dtype=float)
    green_up = expit(sos_rate * (t - sos_mid))
    senescence = expit(-eos_rate * (t - eos_mid))
    return vmin + (vmax - vmin) * (green_up + senescence - 1.0)


def _initial_guess(doy: np.ndarray, values: np.ndarray) -> np.ndarray:
    vmin = float(np.percentile(values, 5))
    vmax = float(np.percentile(values, 95))
    midpoint = (vmin + vmax) / 2

    above = doy[values > midpoint]
    sos_mid, eos_mid = (120.0, 270.0)
    if len(above) >= 2 and above[-1] > above[0]:
        sos_mid, eos_mid = float(above[0]), float(above[-1])

    guess = np.array([vmin, vmax, 0.05, sos_mid, 0.05, eos_mid])
    return np.clip(guess, LOWER_BOUNDS, UPPER_BOUNDS)


def fit_double_logistic(
    doy: Sequence[float], values: Sequence[float], min_observations: int = 8
) -> np.ndarray:
    """Fit the double-logistic model to one season

    Args:
        doy: Day of year of each observation
        values: Index values (NaN entries are ignored)
        min_observations: Minimum valid observations required

    Returns:
        Fitted parameters in ``PARAMETER_NAMES`` order

    Raises:
        PhenologyFitError: too few observations, a flat series, optimizer failure,
            or a fit without a growing season
    """
    doy_arr = np.asarray(doy, dtype=float)
    values_arr = np.asarray(values, dtype=float)
    valid = ~(np.isnan(doy_arr) | np.isnan(values_arr))
    doy_arr, values_arr = doy_arr[valid], values_arr[valid]

    if len(values_arr) < min_observations:
        raise PhenologyFitError(
            f"{len(values_arr)} observations, at least {min_observations} required"
        )
    if np.ptp(values_arr) <= 0:
        raise PhenologyFitError("Series has no seasonal amplitude")

    order = np.argsort(doy_arr)
    doy_arr, values_arr = doy_arr[order], values_arr[order]

    try:
        params, _ = curve_fit(
            double_logistic,
            doy_arr,
            values_arr,
            p0=_initial_guess(doy_arr, values_arr),
            bounds=(LOWER_BOUNDS, UPPER_BOUNDS),
            maxfev=10000,
        )
    except (RuntimeError, ValueError) as e:
        raise PhenologyFitError(f"Curve fit failed: {e}") from e

    vmin, vmax, _, sos_mid, _, eos_mid = params
    if vmax <= vmin or eos_mid <= sos_mid:
        raise PhenologyFitError("Fitted curve has no growing season")
    return params


def extract_phenometrics(params: Sequence[float], threshold: float = 0.5) -> Dict:
    """Derive SOS, POS and EOS from fitted parameters

    SOS and EOS are the first and last days the daily fitted curve reaches
    ``base + threshold * amplitude``; POS is the day of the curve maximum.
    """
    days = np.arange(1, 367, dtype=float)
    curve = double_logistic(days, *params)
    base = float(curve.min())
    peak = float(curve.max())
    level = base + threshold * (peak - base)

    in_season = days[curve >= level]
    sos = int(in_season[0])
    eos = int(in_season[-1])
    return {
        "sos": sos,
        "pos": int(days[np.argmax(curve)]),
        "eos": eos,
        "season_length": eos - sos,
        "base_value": round(base, 4),
        "peak_value": round(peak, 4),
        "amplitude": round(peak - base, 4),
    }


def doy_to_date(year: int, doy: Optional[float]) -> Optional[str]:
    if doy is None or (isinstance(doy, float) and math.isnan(doy)):
        return None
    return (date(year, 1, 1) + timedelta(days=int(doy) - 1)).isoformat()


def fit_point_year(
    dates: Sequence[pd.Timestamp],
    values: Sequence[float],
    config: PhenologyConfig,
) -> Dict[str, Any]:
    """Screen, fit and summarise one point-year series

    Fit failures do not raise; the returned row carries NaN metrics and the
    failure message in ``error``.
    """
    obs_dates = [pd.Timestamp(d).date() for d in dates]
    values_arr = np.asarray(values, dtype=float)

    outliers = np.array(
        detect_outliers_upper_envelope(
            obs_dates,
            values_arr,
            window_days=config.outlier_window_days,
            percentile=config.outlier_percentile,
            threshold_below=config.outlier_threshold_below,
            floor=config.outlier_floor,
        ),
        dtype=bool,
    )
    clean = ~outliers & ~np.isnan(values_arr)
    clean_dates = [d for d, keep in zip(obs_dates, clean) if keep]
    max_gap, gap_count, gap_score = calculate_gaps(
        clean_dates, threshold_days=config.gap_threshold_days
    )

    row: Dict[str, Any] = {
        "n_observations": int(clean.sum()),
        "n_outliers": int(outliers.sum()),
        "max_gap_days": max_gap,
        "gap_count": gap_count,
        "weighted_gap_score": round(gap_score, 2),
        **{name: np.nan for name in METRIC_NAMES},
        **{name: np.nan for name in PARAMETER_NAMES},
        "error": None,
    }

    doy = np.array([d.timetuple().tm_yday for d in clean_dates], dtype=float)
    try:
        params = fit_double_logistic(
            doy, values_arr[clean], min_observations=config.min_observations
        )
    except PhenologyFitError as e:
        row["error"] = str(e)
        return row

    residuals = values_arr[clean] - double_logistic(doy, *params)
    row.update(extract_phenometrics(params, threshold=config.threshold))
    row.update({name: round(float(v), 4) for name, v in zip(PARAMETER_NAMES, params)})
    row["rmse"] = round(float(np.sqrt(np.mean(residuals**2))), 4)
    return row


def fit_phenology(frame: pd.DataFrame, config: PhenologyConfig) -> pd.DataFrame:
    """Fit every (point_id, year) series in a time-series frame

    Returns one row per point-year with gap statistics, fitted parameters,
    SOS/POS/EOS (day of year and ISO date) and an ``error`` column.
    """
    for column in ("point_id", "date", config.index):
        if column not in frame.columns:
            raise InvalidInputError(f"Time series has no {column!r} column")

    data = frame[["point_id", "date", config.index]].copy()
    data["date"] = pd.to_datetime(data["date"])
    data["year"] = data["date"].dt.year

    rows = []
    failures = 0
    for (point_id, year), group in data.groupby(["point_id", "year"], sort=True):
        group = group.sort_values("date")
        row = fit_point_year(group["date"], group[config.index], config)
        if row["error"]:
            failures += 1
            logger.warning(f"Point {point_id} {year}: {row['error']}")
        else:
            logger.debug(
                f"Point {point_id} {year}: SOS {row['sos']}, POS {row['pos']}, "
                f"EOS {row['eos']}"
            )
        for metric in ("sos", "pos", "eos"):
            row[f"{metric}_date"] = doy_to_date(int(year), row[metric])
        rows.append({"point_id": int(point_id), "year": int(year), **row})

    logger.info(
        f"Fitted {config.index} phenology for {len(rows)} point-years, "
        f"{failures} failed"
    )
    return pd.DataFrame(rows)
