"""Tests for missing-value imputation steps."""

import numpy as np
import pandas as pd
import pytest

from blueprint_tlbx.blueprint import Blueprint
from blueprint_tlbx.data import Dataset
from blueprint_tlbx.errors import ConfigurationError, InvalidDomainError
from blueprint_tlbx.steps import StepImputeBag, StepImputeKnn, StepImputeMean, StepImputeMedian, StepImputeMode


@pytest.fixture
def simple() -> Dataset:
    return Dataset(
        pd.DataFrame(
            {
                "x": [1.0, 2.0, 3.0, np.nan, 100.0],
                "tie": [1.0, 2.0, np.nan, np.nan, np.nan],
                "g": ["a", "b", "b", np.nan, "a"],
            },
        ),
    )


class TestSimpleImputers:
    """Mean, median and mode."""

    def test_mean(self, simple: Dataset) -> None:
        step = StepImputeMean("x")
        params = step.fit(simple)
        out = step.apply(simple, params).df

        assert params.values["x"] == pytest.approx(26.5)
        assert out["x"].tolist() == [1.0, 2.0, 3.0, 26.5, 100.0]

    def test_trimmed_mean(self, simple: Dataset) -> None:
        params = StepImputeMean("x", trim=0.25).fit(simple)
        assert params.values["x"] == pytest.approx(2.5)

    @pytest.mark.parametrize("trim", [-0.1, 0.5])
    def test_invalid_trim(self, trim: float) -> None:
        with pytest.raises(ConfigurationError, match="trim"):
            StepImputeMean("x", trim=trim)

    def test_median(self, simple: Dataset) -> None:
        step = StepImputeMedian("x")
        out = step.apply(simple, step.fit(simple)).df
        assert out.loc[3, "x"] == pytest.approx(2.5)

    def test_mode_for_nominal_and_numeric(self, simple: Dataset) -> None:
        step = StepImputeMode(["tie", "g"])
        params = step.fit(simple)
        out = step.apply(simple, params).df

        # a tie resolves to the smallest value
        assert params.values["tie"] == 1.0
        assert params.values["g"] in {"a", "b"}
        assert out["tie"].isna().sum() == 0
        assert out["g"].isna().sum() == 0

    def test_mode_most_frequent_label(self) -> None:
        ds = Dataset(pd.DataFrame({"g": ["a", "b", "b", np.nan]}))
        step = StepImputeMode("g")
        out = step.apply(ds, step.fit(ds)).df
        assert out["g"].tolist() == ["a", "b", "b", "b"]

    def test_all_missing_column_cannot_be_imputed(self) -> None:
        ds = Dataset(pd.DataFrame({"x": [np.nan, np.nan]}))
        with pytest.raises(InvalidDomainError, match="no observed values"):
            StepImputeMedian("x").fit(ds)

    def test_observed_values_untouched_on_new_data(self, simple: Dataset) -> None:
        step = StepImputeMean("x")
        params = step.fit(simple)
        new = Dataset(pd.DataFrame({"x": [np.nan, -5.0], "tie": [0.0, 0.0], "g": ["a", "a"]}))
        assert step.apply(new, params).df["x"].tolist() == [26.5, -5.0]


class TestStepImputeKnn:
    """Nearest-neighbour imputation."""

    @pytest.fixture
    def reference(self) -> Dataset:
        return Dataset(
            pd.DataFrame(
                {
                    "x": [1.0, 2.0, 3.0, 10.0, 11.0, 12.0],
                    "y": [1.0, 2.0, 3.0, 10.0, np.nan, 12.0],
                },
            ),
        )

    def test_mean_of_nearest_donors(self, reference: Dataset) -> None:
        step = StepImputeKnn("y", impute_with="x", neighbors=2)
        out = step.apply(reference, step.fit(reference)).df
        assert out.loc[4, "y"] == pytest.approx(11.0)

    def test_donors_come_from_reference(self, reference: Dataset) -> None:
        step = StepImputeKnn("y", impute_with="x", neighbors=2)
        params = step.fit(reference)
        new = Dataset(pd.DataFrame({"x": [2.2, 50.0], "y": [np.nan, 7.0]}))
        out = step.apply(new, params).df

        assert out.loc[0, "y"] == pytest.approx(2.5)
        assert out.loc[1, "y"] == 7.0
        assert params.donor_columns == ("y", "x")

    def test_complete_rows_pass_through(self, reference: Dataset) -> None:
        step = StepImputeKnn("y", impute_with="x", neighbors=2)
        params = step.fit(reference)
        complete = Dataset(pd.DataFrame({"x": [1.5, 40.0], "y": [8.0, -2.0]}))
        pd.testing.assert_frame_equal(step.apply(complete, params).df, complete.df)

    def test_empty_dataset(self, reference: Dataset) -> None:
        fitted = Blueprint.from_data(reference).add_step(StepImputeKnn("y", impute_with="x")).fit(reference)
        baked = fitted.bake(reference.df.iloc[:0])

        assert baked.empty
        assert list(baked.columns) == ["x", "y"]

    def test_required_columns_include_predictors(self, reference: Dataset) -> None:
        step = StepImputeKnn("y", impute_with="x")
        assert step.required_columns(step.fit(reference)) == ("y", "x")

    def test_invalid_neighbors(self) -> None:
        with pytest.raises(ConfigurationError, match="neighbors"):
            StepImputeKnn("y", neighbors=0)


class TestStepImputeBag:
    """Bagged-tree imputation."""

    def test_regression_target(self) -> None:
        x = np.linspace(0, 10, 60)
        y = 2 * x
        y[::7] = np.nan
        ref = Dataset(pd.DataFrame({"x": x, "y": y}))
        step = StepImputeBag("y", impute_with="x", trees=10, seed=1)
        params = step.fit(ref)

        new = Dataset(pd.DataFrame({"x": [2.5, 7.5], "y": [np.nan, np.nan]}))
        out = step.apply(new, params).df

        np.testing.assert_allclose(out["y"], [5.0, 15.0], atol=1.0)
        assert isinstance(params.models["y"], str)

    def test_classification_target(self) -> None:
        x = np.arange(20, dtype=float)
        label = np.where(x < 10, "low", "high").astype(object)
        label[[3, 15]] = np.nan
        ref = Dataset(pd.DataFrame({"x": x, "label": label}))
        step = StepImputeBag("label", impute_with="x", trees=5)
        params = step.fit(ref)

        new = Dataset(pd.DataFrame({"x": [1.0, 18.0], "label": pd.Series([np.nan, np.nan], dtype=object)}))
        assert step.apply(new, params).df["label"].tolist() == ["low", "high"]

    def test_fit_is_reproducible(self) -> None:
        rng = np.random.default_rng(3)
        x = rng.normal(size=40)
        y = x + rng.normal(scale=0.1, size=40)
        y[:5] = np.nan
        ref = Dataset(pd.DataFrame({"x": x, "y": y}))
        step = StepImputeBag("y", impute_with="x", trees=5, seed=7)

        first = step.apply(ref, step.fit(ref)).df
        second = step.apply(ref, step.fit(ref)).df
        pd.testing.assert_frame_equal(first, second)

    def test_needs_numeric_predictors(self) -> None:
        ref = Dataset(pd.DataFrame({"y": [1.0, np.nan, 3.0], "g": ["a", "b", "a"]}))
        with pytest.raises(ConfigurationError, match="no numeric predictors"):
            StepImputeBag("y", impute_with="g").fit(ref)

    @pytest.mark.parametrize(("trees", "sample_fraction"), [(0, 1.0), (5, 0.0), (5, 1.5)])
    def test_invalid_config(self, trees: int, sample_fraction: float) -> None:
        with pytest.raises(ConfigurationError):
            StepImputeBag("y", trees=trees, sample_fraction=sample_fraction)
