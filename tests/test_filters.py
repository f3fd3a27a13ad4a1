"""Tests for zero-variance and near-zero-variance filters."""

import numpy as np
import pandas as pd
import pytest

from blueprint_tlbx.data import Dataset
from blueprint_tlbx.errors import ConfigurationError
from blueprint_tlbx.selectors import everything
from blueprint_tlbx.steps import StepNearZeroVariance, StepZeroVariance
from blueprint_tlbx.steps.filters import frequency_ratio


@pytest.fixture
def dataset() -> Dataset:
    n = 99
    return Dataset(
        pd.DataFrame(
            {
                "constant": ["same"] * n,
                "uniform": np.tile(["a", "b", "c"], n // 3),
                "rare": ["common"] * 95 + ["rare"] * 4,
                "x": np.arange(n, dtype=float),
                "all_missing": [np.nan] * n,
            },
        ),
    )


class TestFrequencyRatio:
    def test_ratio(self) -> None:
        assert frequency_ratio(pd.Series(["a"] * 6 + ["b"] * 3 + ["c"])) == 2.0

    def test_single_value(self) -> None:
        assert frequency_ratio(pd.Series([1, 1, np.nan])) is None


class TestZeroVariance:
    """Single-valued columns are removed."""

    def test_flags_constant_columns(self, dataset: Dataset) -> None:
        step = StepZeroVariance(everything())
        params = step.fit(dataset)
        out = step.apply(dataset, params)

        assert params.removed == ("constant", "all_missing")
        assert out.columns == ["uniform", "rare", "x"]


class TestNearZeroVariance:
    """Frequency ratio / unique ratio filter."""

    def test_default_thresholds(self, dataset: Dataset) -> None:
        params = StepNearZeroVariance(everything()).fit(dataset)

        assert "constant" in params.removed
        assert "all_missing" in params.removed
        assert "rare" in params.removed
        assert "uniform" not in params.removed
        assert "x" not in params.removed
        assert params.freq_ratio["uniform"] == pytest.approx(1.0)
        assert params.freq_ratio["constant"] is None
        assert params.unique_ratio["x"] == pytest.approx(1.0)

    def test_uniform_levels_never_flagged(self) -> None:
        for k in (3, 4, 10):
            ds = Dataset(pd.DataFrame({"g": np.repeat([f"l{i}" for i in range(k)], 30)}))
            assert StepNearZeroVariance("g").fit(ds).removed == ()

    def test_ninety_five_five_split_is_flagged(self) -> None:
        ds = Dataset(pd.DataFrame({"g": ["a"] * 95 + ["b"] * 5}))
        assert StepNearZeroVariance("g").fit(ds).removed == ("g",)

    def test_single_value_flagged_regardless_of_thresholds(self) -> None:
        ds = Dataset(pd.DataFrame({"g": [1.0] * 10}))
        step = StepNearZeroVariance("g", freq_cut=1000, unique_cut=0.0)
        assert step.fit(ds).removed == ("g",)

    def test_unique_cut_protects_high_cardinality(self) -> None:
        values = ["a"] * 60 + [f"u{i}" for i in range(3)]
        ds = Dataset(pd.DataFrame({"g": values}))
        assert StepNearZeroVariance("g", freq_cut=10, unique_cut=0.01).fit(ds).removed == ()
        assert StepNearZeroVariance("g", freq_cut=10, unique_cut=0.10).fit(ds).removed == ("g",)

    def test_apply_tolerates_already_missing_columns(self, dataset: Dataset) -> None:
        step = StepNearZeroVariance(everything())
        params = step.fit(dataset)
        assert step.required_columns(params) == ()

        reduced = Dataset(dataset.df.drop(columns=["constant"]))
        assert step.apply(reduced, params).columns == ["uniform", "x"]

    @pytest.mark.parametrize(("freq_cut", "unique_cut"), [(0.5, 0.1), (19, 1.5), (19, -0.1)])
    def test_invalid_configuration(self, freq_cut: float, unique_cut: float) -> None:
        with pytest.raises(ConfigurationError):
            StepNearZeroVariance(everything(), freq_cut=freq_cut, unique_cut=unique_cut)
