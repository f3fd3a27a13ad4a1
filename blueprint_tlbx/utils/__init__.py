from .log import configure_logging
from .plotting_config import DEFAULT_PLOT_CFG, PlottingConfig


__all__ = [
    "DEFAULT_PLOT_CFG",
    "PlottingConfig",
    "configure_logging",
]
