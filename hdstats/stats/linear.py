"""Multiple linear regression (ordinary least squares)."""

from typing import Any, Dict

import numpy as np
import statsmodels.api as sm

from hdstats.errors import RankDeficientError
from hdstats.stats.design import DesignMatrix


def check_full_rank(X: np.ndarray) -> int:
    """Return rank(X); raise RankDeficientError if XᵀX is singular."""
    n, k = X.shape
    rank = int(np.linalg.matrix_rank(X))
    if rank < k:
        raise RankDeficientError(
            f"Design matrix is rank deficient (rank {rank} < {k} columns, n={n}); "
            "least squares coefficients are not identifiable. Use a penalized fit."
        )
    return rank


def ols(design: DesignMatrix, add_intercept: bool = True) -> Dict[str, Any]:
    """
    Ordinary Least Squares (Linear) Regression.

    Predict y from all design columns. Rank-deficient designs (including
    p >= n) are refused instead of returning arbitrary coefficients.
    """
    names = list(design.feature_names)
    X = design.X
    if add_intercept:
        X = sm.add_constant(X, has_constant="add")
        names = ["const"] + names

    if design.n <= X.shape[1]:
        raise RankDeficientError(
            f"Need more than {X.shape[1]} observations for regression with "
            f"{design.p} predictors (got {design.n})"
        )
    check_full_rank(X)

    model = sm.OLS(design.y, X).fit()

    def _named(values) -> Dict[str, float]:
        return {k: float(v) for k, v in zip(names, np.asarray(values))}

    return {
        "n": int(model.nobs),
        "p": design.p,
        "r2": float(model.rsquared),
        "adj_r2": float(model.rsquared_adj),
        "f_stat": float(model.fvalue) if model.fvalue is not None else None,
        "f_p_value": float(model.f_pvalue) if model.f_pvalue is not None else None,
        "params": _named(model.params),
        "std_errors": _named(model.bse),
        "t_values": _named(model.tvalues),
        "pvalues": _named(model.pvalues),
        "residual_std_error": float(np.sqrt(model.mse_resid)),
    }
