"""Principal component projection step."""

from __future__ import annotations

from dataclasses import dataclass
from typing import ClassVar

import numpy as np
import pandas as pd
from sklearn.decomposition import PCA

from blueprint_tlbx.data.columns import ColumnMetadata, ColumnRole, ColumnType
from blueprint_tlbx.data.dataset import Dataset
from blueprint_tlbx.errors import ConfigurationError, InvalidDomainError

from .base import BaseStep, StepParameters, check_fraction


_VARIANCE_TOL = 1e-9


def n_components_for_threshold(explained_ratio: np.ndarray, threshold: float) -> int:
    """Smallest number of leading components whose cumulative explained ratio reaches ``threshold``.

    A tolerance of ``1e-9`` absorbs floating point error, so components that
    explain exactly the threshold are counted as reaching it.
    """
    cumulative = np.cumsum(explained_ratio)
    reached = np.flatnonzero(cumulative >= threshold - _VARIANCE_TOL)
    return int(reached[0] + 1) if reached.size else len(explained_ratio)


@dataclass(frozen=True)
class PCAParameters(StepParameters):
    center: tuple[float, ...]
    """Column means subtracted before projection."""
    loadings: tuple[tuple[float, ...], ...]
    """Retained components, one row per component (shape ``k x p``)."""
    explained_variance_ratio: tuple[float, ...]
    """Explained variance ratio of every component, before trimming."""
    n_components: int
    prefix: str = "PC"

    @property
    def component_names(self) -> list[str]:
        return [f"{self.prefix}{i + 1}" for i in range(self.n_components)]

    def explained_variance(self) -> pd.DataFrame:
        """Per-component ``explained_ratio`` and ``cumulative_ratio`` table."""
        ratio = np.asarray(self.explained_variance_ratio, dtype=float)
        return pd.DataFrame(
            {
                "PC": [f"{self.prefix}{i + 1}" for i in range(len(ratio))],
                "explained_ratio": ratio,
                "cumulative_ratio": ratio.cumsum(),
            },
        )

    def loadings_frame(self) -> pd.DataFrame:
        """Loadings with original columns as index and ``PC1..PCk`` as columns."""
        return pd.DataFrame(
            np.asarray(self.loadings, dtype=float).T,
            index=list(self.columns),
            columns=self.component_names,
        )


@dataclass(frozen=True)
class StepPCA(BaseStep):
    r"""Project numeric columns onto their leading principal components.

    Components come from :class:`sklearn.decomposition.PCA` fitted on the
    reference data. Either a fixed ``num_comp`` is kept or, by default, the
    minimal number of components whose cumulative explained variance ratio is
    at least ``threshold``. The projected columns are dropped and replaced by
    ``PC1..PCk`` (role: predictor), named with ``prefix``.

    Input columns should usually be centered and scaled by earlier steps.

    Attributes:
        threshold: Target cumulative explained variance ratio in ``(0, 1]``.
        num_comp: Fixed number of components; overrides ``threshold``.
        prefix: Name prefix of the component columns.
    """

    kind: ClassVar[str] = "pca"
    params_type: ClassVar[type[StepParameters]] = PCAParameters

    threshold: float = 0.95
    num_comp: int | None = None
    prefix: str = "PC"

    def validate(self) -> None:
        check_fraction("threshold", self.threshold, inclusive_low=False)
        if self.num_comp is not None and (int(self.num_comp) != self.num_comp or self.num_comp < 1):
            raise ConfigurationError(f"num_comp must be a positive integer, got {self.num_comp}")

    def fit(self, dataset: Dataset) -> PCAParameters:
        cols = self.select(dataset, numeric=True)
        if not cols:
            raise ConfigurationError(f"Step '{self.kind}' selected no columns")
        features = dataset.df[cols]
        if features.isna().to_numpy().any():
            raise InvalidDomainError(f"Step '{self.kind}' cannot handle missing values; impute first")

        model = PCA(n_components=None).fit(features.to_numpy(dtype=float))
        ratio = model.explained_variance_ratio_
        if self.num_comp is not None:
            k = min(int(self.num_comp), len(ratio))
        else:
            k = n_components_for_threshold(ratio, self.threshold)

        return PCAParameters(
            columns=tuple(cols),
            center=model.mean_,
            loadings=model.components_[:k],
            explained_variance_ratio=ratio,
            n_components=k,
            prefix=self.prefix,
        )

    def apply(self, dataset: Dataset, params: PCAParameters) -> Dataset:
        df = dataset.df
        cols = list(params.columns)
        centered = df[cols].to_numpy(dtype=float) - np.asarray(params.center, dtype=float)
        loadings = np.asarray(params.loadings, dtype=float).reshape(params.n_components, len(cols))
        scores = pd.DataFrame(centered @ loadings.T, columns=params.component_names, index=df.index)

        out = pd.concat([df.drop(columns=cols), scores], axis=1)
        new_meta = [ColumnMetadata(name, ColumnType.NUMERIC, ColumnRole.PREDICTOR) for name in scores.columns]
        return dataset.with_df(out, new_meta)
