# tests/conftest.py
from __future__ import annotations

import numpy as np
import pandas as pd
import pytest
from loguru import logger

from hdstats.config import Settings


@pytest.fixture(autouse=True)
def disable_file_logger():
    logger.remove()
    logger.add(lambda msg: None)
    yield


@pytest.fixture
def rng() -> np.random.Generator:
    return np.random.default_rng(20240601)


@pytest.fixture
def cfg() -> Settings:
    return Settings(n_lambdas=30, cv_folds=5, random_seed=7)


@pytest.fixture
def sparse_regression(rng):
    """
    n=80, p=10, only the first three features matter.
    """
    n, p = 80, 10
    X = rng.normal(size=(n, p))
    beta = np.array([3.0, -2.0, 1.5] + [0.0] * (p - 3))
    y = 1.0 + X @ beta + rng.normal(scale=1.0, size=n)
    return X, y, beta


@pytest.fixture
def regression_frame(sparse_regression) -> pd.DataFrame:
    X, y, _ = sparse_regression
    df = pd.DataFrame(X, columns=[f"g{j}" for j in range(X.shape[1])])
    df["y"] = y
    return df


@pytest.fixture
def survival_frame(rng) -> pd.DataFrame:
    """Exponential survival times with hazard exp(x1 - 0.8 x2); x3 is noise."""
    n = 150
    X = rng.normal(size=(n, 3))
    hazard = np.exp(X @ np.array([1.0, -0.8, 0.0]))
    t_event = rng.exponential(1.0 / hazard)
    t_cens = rng.exponential(2.0, size=n)
    return pd.DataFrame(
        {
            "x1": X[:, 0],
            "x2": X[:, 1],
            "x3": X[:, 2],
            "time": np.minimum(t_event, t_cens),
            "status": (t_event <= t_cens).astype(int),
        }
    )


@pytest.fixture
def expression(rng):
    """
    500 genes x 8 samples (4 control, 4 treated); the first 20 genes are
    up-regulated in the treated group. Gene-specific noise levels.
    """
    n_genes, n_de = 500, 20
    groups = np.array(["ctrl"] * 4 + ["trt"] * 4)
    sd = np.sqrt(0.5 * 8 / rng.chisquare(8, size=n_genes))
    Y = rng.normal(size=(n_genes, 8)) * sd[:, None]
    Y[:n_de, 4:] += 4.0 * sd[:n_de, None]
    index = [f"gene{i}" for i in range(n_genes)]
    return pd.DataFrame(Y, index=index, columns=[f"s{j}" for j in range(8)]), groups, n_de
