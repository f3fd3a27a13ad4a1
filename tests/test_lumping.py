"""Tests for rare-level lumping."""

import numpy as np
import pandas as pd
import pytest

from blueprint_tlbx.data import ColumnType, Dataset
from blueprint_tlbx.errors import ConfigurationError
from blueprint_tlbx.steps import StepOther


@pytest.fixture
def dataset() -> Dataset:
    return Dataset(pd.DataFrame({"g": ["a"] * 50 + ["b"] * 45 + ["c"] * 3 + ["d"] * 2, "x": np.arange(100.0)}))


def test_rare_and_unseen_levels_become_other(dataset: Dataset) -> None:
    step = StepOther("g", threshold=0.1)
    params = step.fit(dataset)
    new = Dataset(pd.DataFrame({"g": ["a", "c", "z", np.nan, "b"], "x": np.zeros(5)}))
    out = step.apply(new, params)

    assert params.retained["g"] == ("a", "b")
    assert list(out.df["g"].astype(str)) == ["a", "other", "other", "nan", "b"]
    assert out.schema["g"].ctype is ColumnType.CATEGORICAL
    assert out.schema["g"].levels == ("a", "b", "other")


def test_count_threshold(dataset: Dataset) -> None:
    params = StepOther("g", threshold=3).fit(dataset)
    assert params.retained["g"] == ("a", "b", "c")


def test_custom_label(dataset: Dataset) -> None:
    step = StepOther("g", threshold=0.1, other="rest")
    out = step.apply(dataset, step.fit(dataset)).df
    assert set(out["g"].astype(str)) == {"a", "b", "rest"}


def test_label_collision_raises() -> None:
    ds = Dataset(pd.DataFrame({"g": ["other"] * 5 + ["a"] * 5}))
    with pytest.raises(ConfigurationError, match="collides"):
        StepOther("g", threshold=0.1).fit(ds)


def test_numeric_columns_are_rejected(dataset: Dataset) -> None:
    with pytest.raises(ConfigurationError):
        StepOther("x").fit(dataset)


@pytest.mark.parametrize("threshold", [0, -0.2, 2.5])
def test_invalid_threshold(threshold: float) -> None:
    with pytest.raises(ConfigurationError):
        StepOther("g", threshold=threshold)
