"""Tests for centering and scaling steps."""

import numpy as np
import pandas as pd
import pytest

from blueprint_tlbx.blueprint import Blueprint
from blueprint_tlbx.data import Dataset
from blueprint_tlbx.errors import ConfigurationError, DivisionByZeroError
from blueprint_tlbx.selectors import all_numeric_predictors, names
from blueprint_tlbx.steps import StepCenter, StepNormalize, StepScale


@pytest.fixture
def dataset(housing_df: pd.DataFrame, housing_roles: dict[str, str]) -> Dataset:
    return Dataset(housing_df, roles=housing_roles)


class TestCenterScale:
    """Center, scale and normalize."""

    def test_center_then_scale_gives_zero_mean_unit_sd(self, dataset: Dataset) -> None:
        center = StepCenter(all_numeric_predictors())
        scale = StepScale(all_numeric_predictors())

        centered = center.apply(dataset, center.fit(dataset))
        out = scale.apply(centered, scale.fit(centered)).df

        for col in ["lot_area", "living_area", "year_built"]:
            assert out[col].mean() == pytest.approx(0.0, abs=1e-9)
            assert out[col].std() == pytest.approx(1.0)

    def test_normalize_matches_center_and_scale(self, dataset: Dataset) -> None:
        step = StepNormalize(all_numeric_predictors())
        params = step.fit(dataset)
        out = step.apply(dataset, params).df
        raw = dataset.df

        expected = (raw["lot_area"] - raw["lot_area"].mean()) / raw["lot_area"].std()
        np.testing.assert_allclose(out["lot_area"], expected)
        assert params.columns == ("lot_area", "living_area", "year_built")
        # untouched columns
        pd.testing.assert_series_equal(out["sale_price"], raw["sale_price"])

    def test_ddof_zero(self, dataset: Dataset) -> None:
        step = StepScale(names("living_area"), ddof=0)
        out = step.apply(dataset, step.fit(dataset)).df
        assert out["living_area"].std(ddof=0) == pytest.approx(1.0)

    def test_parameters_come_from_reference_only(self, dataset: Dataset) -> None:
        step = StepNormalize(names("living_area"))
        params = step.fit(dataset)

        other = dataset.df
        other["living_area"] = other["living_area"] * 10 + 3
        out = step.apply(Dataset(other, dataset.schema), params).df

        expected = (other["living_area"] - params.means["living_area"]) / params.sds["living_area"]
        np.testing.assert_allclose(out["living_area"], expected)
        assert params == step.fit(dataset)

    def test_zero_sd_raises_division_by_zero(self) -> None:
        ds = Dataset(pd.DataFrame({"x": [3.0, 3.0, 3.0], "y": [1.0, 2.0, 3.0]}))

        with pytest.raises(DivisionByZeroError, match="x"):
            StepScale(["x", "y"]).fit(ds)
        with pytest.raises(ConfigurationError):
            StepNormalize("x").fit(ds)

    def test_single_row_reference_raises(self) -> None:
        """The sample sd of one row is undefined."""
        df = pd.DataFrame({"x": [3.0]})
        bp = Blueprint.from_data(df).add_step(StepScale("x"))
        with pytest.raises(DivisionByZeroError, match="x"):
            bp.fit(df)

    def test_all_missing_column_raises(self) -> None:
        ds = Dataset(pd.DataFrame({"x": [np.nan, np.nan, np.nan], "y": [1.0, 2.0, 4.0]}))
        with pytest.raises(DivisionByZeroError, match="x"):
            StepNormalize(["x", "y"]).fit(ds)

    def test_nominal_column_is_rejected(self, dataset: Dataset) -> None:
        with pytest.raises(ConfigurationError, match="numeric"):
            StepCenter("neighborhood").fit(dataset)

    def test_invalid_ddof(self) -> None:
        with pytest.raises(ConfigurationError, match="ddof"):
            StepScale(all_numeric_predictors(), ddof=2)

    def test_missing_values_propagate(self) -> None:
        ds = Dataset(pd.DataFrame({"x": [1.0, np.nan, 3.0]}))
        step = StepNormalize("x")
        out = step.apply(ds, step.fit(ds)).df

        assert np.isnan(out.loc[1, "x"])
        assert out.loc[0, "x"] == pytest.approx(-out.loc[2, "x"])
