#!/usr/bin/env python3
"""
Tests for double-logistic phenology fitting.
"""

import numpy as np
import pandas as pd
import pytest

from fire_phenology.config import PhenologyConfig
from fire_phenology.exceptions import InvalidInputError, PhenologyFitError
from fire_phenology.phenology import (
    double_logistic,
    doy_to_date,
    extract_phenometrics,
    fit_double_logistic,
    fit_phenology,
    fit_point_year,
)


class TestDoubleLogistic:
    """Test the seasonal curve itself"""

    def test_shape(self, season_params):
        days = np.arange(1, 366)
        curve = double_logistic(days, *season_params)

        assert curve[0] == pytest.approx(0.2, abs=0.01)
        assert curve[-1] == pytest.approx(0.2, abs=0.02)
        assert curve.max() == pytest.approx(0.8, abs=0.01)
        assert 180 <= days[np.argmax(curve)] <= 220

    def test_half_amplitude_at_midpoints(self, season_params):
        assert double_logistic(120, *season_params) == pytest.approx(0.5, abs=0.01)
        assert double_logistic(280, *season_params) == pytest.approx(0.5, abs=0.01)

    def test_no_overflow_for_steep_rates(self):
        values = double_logistic(np.array([1.0, 366.0]), 0.1, 0.9, 1.0, 180, 1.0, 190)
        assert np.isfinite(values).all()


class TestFitDoubleLogistic:
    """Test curve fitting of single seasons"""

    def test_recovers_parameters(self, season_params):
        doy = np.arange(1, 366, 5, dtype=float)
        values = double_logistic(doy, *season_params)

        params = fit_double_logistic(doy, values)

        assert params[3] == pytest.approx(120, abs=3)
        assert params[5] == pytest.approx(280, abs=3)
        assert params[1] - params[0] == pytest.approx(0.6, abs=0.05)

    def test_tolerates_noise_and_gaps(self, season_params):
        rng = np.random.default_rng(2024)
        doy = np.sort(rng.choice(np.arange(1, 366), size=30, replace=False)).astype(float)
        values = double_logistic(doy, *season_params) + rng.normal(0, 0.01, len(doy))
        values[5] = np.nan

        params = fit_double_logistic(doy, values)

        assert params[3] == pytest.approx(120, abs=10)
        assert params[5] == pytest.approx(280, abs=10)

    def test_too_few_observations(self, season_params):
        doy = np.array([100.0, 150.0, 200.0, 250.0])
        values = double_logistic(doy, *season_params)

        with pytest.raises(PhenologyFitError, match="4 observations"):
            fit_double_logistic(doy, values, min_observations=8)

    def test_flat_series(self):
        doy = np.arange(1, 366, 10, dtype=float)
        with pytest.raises(PhenologyFitError, match="amplitude"):
            fit_double_logistic(doy, np.full(len(doy), 0.4))


class TestExtractPhenometrics:
    """Test SOS/POS/EOS derivation"""

    def test_midpoint_threshold(self, season_params):
        metrics = extract_phenometrics(season_params, threshold=0.5)

        assert metrics["sos"] == pytest.approx(120, abs=2)
        assert metrics["eos"] == pytest.approx(280, abs=2)
        assert metrics["sos"] < metrics["pos"] < metrics["eos"]
        assert metrics["season_length"] == metrics["eos"] - metrics["sos"]
        assert metrics["amplitude"] == pytest.approx(0.6, abs=0.02)

    def test_lower_threshold_widens_season(self, season_params):
        narrow = extract_phenometrics(season_params, threshold=0.5)
        wide = extract_phenometrics(season_params, threshold=0.2)

        assert wide["sos"] < narrow["sos"]
        assert wide["eos"] > narrow["eos"]

    def test_doy_to_date(self):
        assert doy_to_date(2021, 1) == "2021-01-01"
        assert doy_to_date(2020, 60) == "2020-02-29"
        assert doy_to_date(2021, float("nan")) is None
        assert doy_to_date(2021, None) is None


class TestFitPointYear:
    """Test screening and fitting of one point-year"""

    def test_clean_series(self, synthetic_time_series):
        subset = synthetic_time_series[
            (synthetic_time_series["point_id"] == 1)
            & (synthetic_time_series["date"].dt.year == 2021)
        ]

        row = fit_point_year(subset["date"], subset["NDVI"], PhenologyConfig())

        assert row["error"] is None
        assert row["n_observations"] == len(subset)
        assert row["n_outliers"] == 0
        assert row["sos"] == pytest.approx(120, abs=5)
        assert row["eos"] == pytest.approx(280, abs=5)
        assert row["rmse"] < 0.01

    def test_cloud_dip_removed_before_fit(self, synthetic_time_series):
        subset = synthetic_time_series[
            (synthetic_time_series["point_id"] == 1)
            & (synthetic_time_series["date"].dt.year == 2021)
        ].copy()
        # Mid-summer cloud contamination
        summer = subset["date"].dt.month == 7
        first_july = subset.index[summer.to_numpy()][0]
        subset.loc[first_july, "NDVI"] = 0.25

        row = fit_point_year(subset["date"], subset["NDVI"], PhenologyConfig())

        assert row["n_outliers"] == 1
        assert row["n_observations"] == len(subset) - 1
        assert row["error"] is None

    def test_failure_recorded_not_raised(self, synthetic_time_series):
        subset = synthetic_time_series.head(4)

        row = fit_point_year(subset["date"], subset["NDVI"], PhenologyConfig())

        assert "observations" in row["error"]
        assert np.isnan(row["sos"])


class TestFitPhenology:
    """Test batch fitting over point-years"""

    def test_one_row_per_point_year(self, synthetic_time_series):
        results = fit_phenology(synthetic_time_series, PhenologyConfig())

        assert list(zip(results["point_id"], results["year"])) == [
            (1, 2021),
            (1, 2022),
            (2, 2021),
            (2, 2022),
        ]

    def test_failed_point_year_flagged(self, synthetic_time_series):
        results = fit_phenology(synthetic_time_series, PhenologyConfig())
        failed = results[(results["point_id"] == 2) & (results["year"] == 2022)].iloc[0]
        fitted = results[results["error"].isna()]

        assert "5 observations" in failed["error"]
        assert pd.isna(failed["sos_date"])
        assert len(fitted) == 3
        assert fitted["sos"].between(115, 125).all()
        assert fitted["sos_date"].str[5:7].isin(["04", "05"]).all()

    def test_missing_index_column(self, synthetic_time_series):
        config = PhenologyConfig(index="NBR")
        with pytest.raises(InvalidInputError, match="NBR"):
            fit_phenology(synthetic_time_series, config)

    def test_empty_frame(self):
        frame = pd.DataFrame(columns=["point_id", "date", "NDVI"])
        results = fit_phenology(frame, PhenologyConfig())
        assert results.empty
