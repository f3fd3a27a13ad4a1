"""Test configuration for the blueprint toolbox."""

from pathlib import Path
import sys

import matplotlib
import numpy as np
import pandas as pd
import pytest


matplotlib.use("Agg")

# Ensure the local package is importable when the repo isn't installed.
REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))


@pytest.fixture
def housing_df() -> pd.DataFrame:
    """Small synthetic housing table with an id, numeric and nominal predictors, and an outcome."""
    rng = np.random.default_rng(42)
    n = 120
    lot_area = rng.lognormal(mean=9.0, sigma=0.4, size=n)
    living_area = rng.normal(1500, 300, size=n)
    year_built = rng.integers(1950, 2010, size=n)
    neighborhood = rng.choice(["north", "south", "east"], size=n, p=[0.5, 0.3, 0.2])
    sale_price = 50 * living_area + 0.5 * lot_area + 300 * (year_built - 1950) + rng.normal(0, 5000, size=n)
    return pd.DataFrame(
        {
            "id": np.arange(n),
            "lot_area": lot_area,
            "living_area": living_area,
            "year_built": year_built,
            "neighborhood": neighborhood,
            "sale_price": sale_price,
        },
    )


@pytest.fixture
def housing_roles() -> dict[str, str]:
    return {"id": "identifier", "sale_price": "outcome"}
