import numpy as np
import pytest

from hdstats.errors import ModelingError, RankDeficientError
from hdstats.stats.design import DesignMatrix, build_design
from hdstats.stats.linear import check_full_rank, ols


def test_ols_recovers_coefficients(regression_frame, sparse_regression):
    _, _, beta = sparse_regression
    design = build_design(regression_frame, "y")

    result = ols(design)

    assert result["n"] == 80 and result["p"] == 10
    assert result["params"]["const"] == pytest.approx(1.0, abs=0.4)
    estimated = np.array([result["params"][f"g{j}"] for j in range(10)])
    np.testing.assert_allclose(estimated, beta, atol=0.5)
    assert result["pvalues"]["g0"] < 1e-6
    assert 0.0 < result["adj_r2"] < result["r2"] < 1.0


def test_ols_matches_normal_equations(rng):
    X = rng.normal(size=(25, 3))
    y = rng.normal(size=25)
    design = DesignMatrix(X=X, y=y, feature_names=["a", "b", "c"])

    result = ols(design, add_intercept=False)

    expected = np.linalg.solve(X.T @ X, X.T @ y)
    np.testing.assert_allclose([result["params"][k] for k in "abc"], expected)
    assert "const" not in result["params"]


def test_wide_design_is_refused(rng):
    design = DesignMatrix(X=rng.normal(size=(10, 12)), y=rng.normal(size=10), feature_names=[f"x{i}" for i in range(12)])

    with pytest.raises(RankDeficientError):
        ols(design)


def test_collinear_design_is_refused(rng):
    X = rng.normal(size=(30, 3))
    X[:, 2] = X[:, 0] - 2 * X[:, 1]
    design = DesignMatrix(X=X, y=rng.normal(size=30), feature_names=["a", "b", "c"])

    with pytest.raises(RankDeficientError) as info:
        ols(design)
    # callers can handle every modeling failure in one place
    assert isinstance(info.value, ModelingError)


def test_check_full_rank_returns_rank(rng):
    assert check_full_rank(rng.normal(size=(8, 4))) == 4
