"""Blueprint steps: one frozen dataclass per transformation kind."""

from .base import STEP_REGISTRY, BaseStep, StepParameters
from .center_scale import StepCenter, StepNormalize, StepScale
from .encoding import StepDummy, StepInteger
from .filters import StepNearZeroVariance, StepZeroVariance
from .imputation import StepImputeBag, StepImputeKnn, StepImputeMean, StepImputeMedian, StepImputeMode
from .lumping import StepOther
from .pca import StepPCA
from .power import StepBoxCox, StepLog, StepYeoJohnson


__all__ = [
    "STEP_REGISTRY",
    "BaseStep",
    "StepBoxCox",
    "StepCenter",
    "StepDummy",
    "StepImputeBag",
    "StepImputeKnn",
    "StepImputeMean",
    "StepImputeMedian",
    "StepImputeMode",
    "StepInteger",
    "StepLog",
    "StepNearZeroVariance",
    "StepNormalize",
    "StepOther",
    "StepPCA",
    "StepParameters",
    "StepScale",
    "StepYeoJohnson",
    "StepZeroVariance",
]
