"""
Tests for per-group linear fits
"""
import logging

import numpy as np
import pandas as pd
import pytest

from mobility_engine.stats import regression
from mobility_engine.stats.errors import (
    ColumnNotFoundError,
    ColumnTypeError,
    InsufficientDataError,
    InvalidTableError,
)
from mobility_engine.stats.regression import (
    SlopeMap,
    fit_group,
    fit_group_models,
    fit_slope_grid,
    fit_slopes,
    partition_by_group,
)

from .conftest import INTERCEPTS, SLOPES


@pytest.fixture
def ab_table():
    return pd.DataFrame({
        "group": ["A", "A", "A", "B", "B", "B"],
        "x": [1, 2, 3, 1, 2, 3],
        "y": [2, 4, 6, 1, 1, 1],
    })


class TestFitSlopes:
    def test_two_groups_example(self, ab_table):
        result = fit_slopes(ab_table, "group", "y", "x")

        assert set(result) == {"A", "B"}
        assert result["A"] == pytest.approx(2.0, abs=1e-9)
        assert result["B"] == pytest.approx(0.0, abs=1e-9)

    def test_returns_slope_map_without_skips(self, ab_table):
        result = fit_slopes(ab_table, "group", "y", "x")

        assert isinstance(result, SlopeMap)
        assert result.skipped == []

    def test_exact_linear_group(self):
        x = [0.0, 1.0, 2.0, 5.0, 7.0]
        df = pd.DataFrame({"g": ["only"] * 5, "x": x, "y": [3.5 - 1.25 * v for v in x]})

        assert fit_slopes(df, "g", "y", "x")["only"] == pytest.approx(-1.25, abs=1e-9)

    def test_one_slope_per_group(self, mobility_frame):
        result = fit_slopes(mobility_frame, "country", "total_cases", "parks")

        assert len(result) == 3
        for country, slope in SLOPES.items():
            assert result[country] == pytest.approx(slope, abs=1e-9)

    def test_missing_values_are_excluded(self, mobility_frame):
        fits = fit_group_models(mobility_frame, "country", "total_cases", "parks")

        assert fits.models["Italy"].n_obs == 9
        assert fits.models["Spain"].n_obs == 10
        assert fits.models["Italy"].intercept == pytest.approx(INTERCEPTS["Italy"], abs=1e-6)

    @pytest.mark.parametrize("offset", [0.0, 1e4, 1e8])
    def test_exact_linear_with_large_predictor_values(self, offset):
        x = offset + np.arange(10, dtype=float)
        df = pd.DataFrame({"g": ["A"] * 10, "x": x, "y": 3.0 + 2.0 * x})

        fits = fit_group_models(df, "g", "y", "x")

        assert fits.models["A"].slope == pytest.approx(2.0, abs=1e-9)
        assert fits.models["A"].intercept == pytest.approx(3.0, abs=1e-6)

    def test_accepts_record_sequences(self):
        records = [
            {"country": "A", "x": 1, "y": 2},
            {"country": "A", "x": 2, "y": 4},
            {"country": "B", "x": 1, "y": 5},
            {"country": "B", "x": 3, "y": 1},
        ]
        result = fit_slopes(records, "country", "y", "x")

        assert result == pytest.approx({"A": 2.0, "B": -2.0})

    def test_idempotent_and_does_not_mutate_input(self, mobility_frame):
        before = mobility_frame.copy()

        first = fit_slopes(mobility_frame, "country", "total_cases", "parks")
        second = fit_slopes(mobility_frame, "country", "total_cases", "parks")

        assert first == second
        pd.testing.assert_frame_equal(mobility_frame, before)


class TestInsufficientData:
    @pytest.fixture
    def table(self):
        return pd.DataFrame({
            "g": ["A", "A", "A", "C", "C"],
            "x": [1.0, 2.0, 3.0, 1.0, None],
            "y": [2.0, 4.0, 6.0, 5.0, 7.0],
        })

    def test_single_usable_record_raises(self, table):
        with pytest.raises(InsufficientDataError) as exc:
            fit_slopes(table, "g", "y", "x")

        assert exc.value.group == "C"
        assert exc.value.n_usable == 1

    def test_skip_reports_skipped_groups(self, table, caplog):
        with caplog.at_level(logging.WARNING, logger="mobility_engine.stats.regression"):
            result = fit_slopes(table, "g", "y", "x", on_insufficient="skip")

        assert dict(result) == pytest.approx({"A": 2.0})
        assert [s.group for s in result.skipped] == ["C"]
        assert result.skipped[0].n_usable == 1
        assert "Skipping group 'C'" in caplog.text

    def test_constant_predictor_is_insufficient(self):
        df = pd.DataFrame({"g": ["A", "A", "A"], "x": [2, 2, 2], "y": [1, 2, 3]})

        with pytest.raises(InsufficientDataError) as exc:
            fit_slopes(df, "g", "y", "x")

        assert "no variance" in exc.value.reason
        assert "all 3 usable records" in exc.value.reason
        assert exc.value.n_usable == 3

    def test_min_obs_is_respected(self, ab_table):
        with pytest.raises(InsufficientDataError):
            fit_slopes(ab_table, "group", "y", "x", min_obs=4)

    def test_min_obs_below_two_rejected(self, ab_table):
        with pytest.raises(ValueError):
            fit_slopes(ab_table, "group", "y", "x", min_obs=1)

    def test_unknown_policy_rejected(self, ab_table):
        with pytest.raises(ValueError):
            fit_slopes(ab_table, "group", "y", "x", on_insufficient="ignore")


class TestTableValidation:
    def test_missing_response_column_raises_before_partitioning(self, ab_table, monkeypatch):
        def boom(*args, **kwargs):
            raise AssertionError("partitioned before validating columns")

        monkeypatch.setattr(regression, "partition_by_group", boom)

        with pytest.raises(ColumnNotFoundError) as exc:
            fit_slopes(ab_table, "group", "cases", "x")

        assert exc.value.column == "cases"
        assert exc.value.available == ["group", "x", "y"]

    def test_missing_group_column(self, ab_table):
        with pytest.raises(ColumnNotFoundError):
            fit_slopes(ab_table, "country", "y", "x")

    def test_null_group_key(self):
        df = pd.DataFrame({"g": ["A", None, "A"], "x": [1, 2, 3], "y": [1, 2, 3]})

        with pytest.raises(InvalidTableError):
            fit_slopes(df, "g", "y", "x")

    def test_empty_table(self):
        with pytest.raises(InvalidTableError):
            fit_slopes([], "g", "y", "x")

    def test_non_numeric_values(self):
        df = pd.DataFrame({"g": ["A", "A"], "x": ["low", "high"], "y": [1, 2]})

        with pytest.raises(ColumnTypeError):
            fit_slopes(df, "g", "y", "x")

    def test_numeric_strings_are_coerced(self):
        df = pd.DataFrame({"g": ["A", "A", "A"], "x": ["1", "2", ""], "y": [3, 5, 100]})

        assert fit_slopes(df, "g", "y", "x")["A"] == pytest.approx(2.0)


class TestGroupKeys:
    @pytest.fixture
    def messy(self):
        return pd.DataFrame({
            "country": ["Italy", " italy", "ITALY", "Spain", "spain "],
            "x": [1, 2, 3, 1, 2],
            "y": [1, 2, 3, 2, 4],
        })

    def test_spellings_are_merged(self, messy):
        result = fit_slopes(messy, "country", "y", "x")

        assert set(result) == {"Italy", "Spain"}
        assert result["Italy"] == pytest.approx(1.0)

    def test_normalization_can_be_disabled(self, messy):
        fits = fit_group_models(messy, "country", "y", "x", on_insufficient="skip", normalize_keys=False)

        assert fits.models == {}
        assert len(fits.skipped) == 5

    def test_partitions_cover_table(self, messy):
        parts = partition_by_group(messy, "country")

        assert [k.label for k in parts] == ["Italy", "Spain"]
        assert sum(len(p) for p in parts.values()) == len(messy)


class TestFitGroup:
    def test_perfect_fit_statistics(self):
        df = pd.DataFrame({"x": [1.0, 2.0, 3.0, 4.0], "y": [3.0, 5.0, 7.0, 9.0]})
        model = fit_group("A", df, "y", "x")

        assert model.group == "A"
        assert model.slope == pytest.approx(2.0)
        assert model.intercept == pytest.approx(1.0)
        assert model.r_squared == pytest.approx(1.0)
        assert model.n_obs == 4
        np.testing.assert_allclose(model.predict([0, 10]), [1.0, 21.0])

    def test_two_points_have_no_standard_error(self):
        df = pd.DataFrame({"x": [0.0, 2.0], "y": [1.0, 5.0]})
        model = fit_group("A", df, "y", "x")

        assert model.slope == pytest.approx(2.0)
        assert model.slope_stderr is None
        assert model.p_value is None

    def test_noisy_fit_has_standard_error(self):
        df = pd.DataFrame({"x": [1.0, 2.0, 3.0, 4.0, 5.0], "y": [1.1, 1.9, 3.2, 3.8, 5.1]})
        model = fit_group("A", df, "y", "x")

        assert model.slope_stderr is not None and model.slope_stderr > 0
        assert 0 <= model.p_value < 0.01
        assert 0.9 < model.r_squared < 1.0


class TestSlopeGrid:
    def test_long_table(self, mobility_frame):
        grid = fit_slope_grid(mobility_frame, "country", "total_cases", ["parks", "workplaces"])

        assert list(grid.columns) == regression.GRID_COLUMNS
        assert len(grid) == 6
        parks = grid[grid["predictor"] == "parks"].set_index("group")["slope"]
        assert parks["Norway"] == pytest.approx(SLOPES["Norway"], abs=1e-9)
        assert grid.attrs["skipped"] == []

    def test_skipped_pairs_are_listed(self):
        df = pd.DataFrame({
            "g": ["A", "A", "B", "B"],
            "x1": [1, 2, 1, 2],
            "x2": [1, 2, None, None],
            "y": [1, 2, 3, 4],
        })
        grid = fit_slope_grid(df, "g", "y", ["x1", "x2"])

        assert len(grid) == 3
        assert grid.attrs["skipped"] == [
            {"predictor": "x2", "group": "B", "n_usable": 0, "reason": "0 usable record(s), need at least 2"}
        ]

    def test_checks_every_predictor_column(self, mobility_frame):
        with pytest.raises(ColumnNotFoundError):
            fit_slope_grid(mobility_frame, "country", "total_cases", ["parks", "cinemas"])

    def test_requires_predictors(self, mobility_frame):
        with pytest.raises(ValueError):
            fit_slope_grid(mobility_frame, "country", "total_cases", [])
