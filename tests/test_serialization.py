"""Tests for saving and restoring fitted blueprints."""

import json
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from blueprint_tlbx.blueprint import FORMAT_VERSION, Blueprint, FittedBlueprint
from blueprint_tlbx.errors import ConfigurationError
from blueprint_tlbx.selectors import all_nominal_predictors, all_numeric_predictors, names
from blueprint_tlbx.steps import (
    STEP_REGISTRY,
    StepDummy,
    StepImputeBag,
    StepImputeKnn,
    StepImputeMode,
    StepNormalize,
    StepOther,
    StepPCA,
    StepYeoJohnson,
)


@pytest.fixture
def messy_df(housing_df: pd.DataFrame) -> pd.DataFrame:
    df = housing_df.copy()
    df.loc[[3, 17, 40], "lot_area"] = np.nan
    df.loc[[5, 22, 81], "living_area"] = np.nan
    df["neighborhood"] = df["neighborhood"].astype(object)
    df.loc[[8, 90], "neighborhood"] = np.nan
    return df


@pytest.fixture
def fitted(messy_df: pd.DataFrame, housing_roles: dict[str, str]) -> FittedBlueprint:
    bp = (
        Blueprint.from_data(messy_df, roles=housing_roles)
        .add_step(StepImputeKnn(names("lot_area"), impute_with=names("living_area", "year_built"), neighbors=3))
        .add_step(StepImputeBag(names("living_area"), impute_with=names("lot_area", "year_built"), trees=5))
        .add_step(StepImputeMode(names("neighborhood")))
        .add_step(StepOther(names("neighborhood"), threshold=0.25))
        .add_step(StepDummy(all_nominal_predictors()))
        .add_step(StepYeoJohnson(names("lot_area")))
        .add_step(StepNormalize(all_numeric_predictors()))
        .add_step(StepPCA(all_numeric_predictors(), num_comp=2))
    )
    return bp.fit(messy_df)


def test_every_step_kind_is_registered() -> None:
    assert set(STEP_REGISTRY) == {
        "center",
        "scale",
        "normalize",
        "log",
        "boxcox",
        "yeojohnson",
        "zv",
        "nzv",
        "other",
        "dummy",
        "integer",
        "impute_mean",
        "impute_median",
        "impute_mode",
        "impute_knn",
        "impute_bag",
        "pca",
    }


class TestRoundTrip:
    """save/load and to_dict/from_dict."""

    def test_loaded_blueprint_applies_identically(
        self,
        fitted: FittedBlueprint,
        messy_df: pd.DataFrame,
        tmp_path: Path,
    ) -> None:
        path = fitted.save(tmp_path / "artifacts" / "blueprint.json")
        loaded = FittedBlueprint.load(path)

        assert path.exists()
        pd.testing.assert_frame_equal(loaded.bake(messy_df), fitted.bake(messy_df))
        assert list(fitted.bake(messy_df).columns) == ["id", "sale_price", "PC1", "PC2"]

    def test_parameters_and_schemas_survive(self, fitted: FittedBlueprint, tmp_path: Path) -> None:
        loaded = FittedBlueprint.load(fitted.save(tmp_path / "bp.json"))

        # parameters hold NaN (KNN donors), so compare their serialized form
        assert json.dumps(loaded.to_dict()) == json.dumps(fitted.to_dict())
        assert loaded.schemas == fitted.schemas
        assert [step.kind for step in loaded.steps] == [step.kind for step in fitted.steps]

    def test_selectors_are_restored_as_fitted_names(self, fitted: FittedBlueprint) -> None:
        loaded = FittedBlueprint.from_dict(fitted.to_dict())
        pca = loaded.steps[-1]
        assert pca.selector.resolve(fitted.schemas[-2]) == list(fitted.parameters[-1].columns)
        assert repr(loaded.steps[0].impute_with) == "names(living_area, year_built)"

    def test_document_layout(self, fitted: FittedBlueprint, tmp_path: Path) -> None:
        payload = json.loads(fitted.save(tmp_path / "bp.json").read_text(encoding="utf-8"))

        assert payload["format_version"] == FORMAT_VERSION
        assert [entry["kind"] for entry in payload["steps"]][:3] == ["impute_knn", "impute_bag", "impute_mode"]
        assert payload["steps"][3]["config"] == {"threshold": 0.25, "other": "other"}
        assert len(payload["schemas"]) == len(payload["steps"]) + 1

    def test_unknown_format_version(self, fitted: FittedBlueprint) -> None:
        payload = fitted.to_dict()
        payload["format_version"] = FORMAT_VERSION + 1
        with pytest.raises(ConfigurationError, match="format version"):
            FittedBlueprint.from_dict(payload)

    def test_unknown_step_kind(self, fitted: FittedBlueprint) -> None:
        payload = fitted.to_dict()
        payload["steps"][0]["kind"] = "bogus"
        with pytest.raises(ConfigurationError, match="bogus"):
            FittedBlueprint.from_dict(payload)


class TestImmutability:
    """Fitted parameters cannot be changed after the fact."""

    def test_parameter_mappings_are_read_only(self, fitted: FittedBlueprint) -> None:
        normalize = fitted.parameters[6]
        with pytest.raises(TypeError):
            normalize.means["lot_area"] = 0.0

    def test_parameter_fields_are_frozen(self, fitted: FittedBlueprint) -> None:
        with pytest.raises(AttributeError):
            fitted.parameters[0].columns = ("other",)

    def test_to_dict_returns_fresh_containers(self, fitted: FittedBlueprint) -> None:
        payload = fitted.to_dict()
        payload["steps"][6]["params"]["means"]["lot_area"] = 1e9
        assert fitted.parameters[6].means["lot_area"] != 1e9
