"""
Penalized linear regression: Ridge / Lasso / Elastic-Net paths.

For every λ on a descending path the fitted coefficients minimize

    RSS(β) + λ(α‖β‖₁ + (1-α)‖β‖₂²)

with an unpenalized intercept. α = 0 is solved in closed form (one SVD for the
whole path); α > 0 is delegated to scikit-learn's coordinate descent.
"""

from __future__ import annotations

import warnings
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from loguru import logger
from sklearn.exceptions import ConvergenceWarning
from sklearn.linear_model import enet_path

from hdstats.config import Settings, settings as default_settings
from hdstats.errors import ConvergenceError, ModelingError, RankDeficientError

# Ridge paths use the λ_max of a nearly-pure ridge mix for their starting point
_MIN_ALPHA_FOR_LAMBDA_MAX = 1e-3


@dataclass
class PathFit:
    lambdas: np.ndarray
    coefs: np.ndarray  # (n_lambdas, p), original feature scale
    intercepts: np.ndarray
    alpha: float
    converged: np.ndarray
    n_iter: np.ndarray
    feature_names: List[str] = field(default_factory=list)

    @property
    def n_features(self) -> int:
        return int(self.coefs.shape[1])

    @property
    def df(self) -> np.ndarray:
        """Number of non-zero coefficients per λ."""
        return np.count_nonzero(self.coefs, axis=1)

    def coef_at(self, index: int) -> np.ndarray:
        return self.coefs[index]

    def predict(self, X: np.ndarray) -> np.ndarray:
        """Predictions for every λ: shape (n, n_lambdas)."""
        X = np.asarray(X, dtype=float)
        if X.ndim != 2 or X.shape[1] != self.n_features:
            raise ValueError(f"X must have {self.n_features} columns")
        return X @ self.coefs.T + self.intercepts[None, :]

    def to_frame(self) -> pd.DataFrame:
        names = self.feature_names or [f"x{j}" for j in range(self.n_features)]
        df = pd.DataFrame(self.coefs, columns=names)
        df.insert(0, "intercept", self.intercepts)
        df.insert(0, "lambda", self.lambdas)
        return df

    def summary(self, index: Optional[int] = None) -> Dict[str, Any]:
        names = self.feature_names or [f"x{j}" for j in range(self.n_features)]
        out: Dict[str, Any] = {
            "alpha": float(self.alpha),
            "n_lambdas": int(len(self.lambdas)),
            "lambdas": self.lambdas.tolist(),
            "df": self.df.tolist(),
            "all_converged": bool(np.all(self.converged)),
        }
        if index is not None:
            out["lambda"] = float(self.lambdas[index])
            out["intercept"] = float(self.intercepts[index])
            out["coefficients"] = {k: float(v) for k, v in zip(names, self.coefs[index])}
        return out


# ---------------------------------------------------------------------------
# Penalty path
# ---------------------------------------------------------------------------

def validate_path(lambdas: Sequence[float]) -> np.ndarray:
    lam = np.asarray(lambdas, dtype=float).ravel()
    if lam.size == 0:
        raise ValueError("Penalty path is empty")
    if not np.all(np.isfinite(lam)) or np.any(lam < 0):
        raise ValueError("Penalty strengths must be finite and non-negative")
    if lam.size > 1 and np.any(np.diff(lam) >= 0):
        raise ValueError("Penalty path must be strictly descending")
    return lam


def _prepare(
    X: np.ndarray, y: np.ndarray, standardize: bool, fit_intercept: bool
) -> Tuple[np.ndarray, np.ndarray, np.ndarray, np.ndarray, float]:
    X = np.asarray(X, dtype=float)
    y = np.asarray(y, dtype=float).ravel()
    if X.ndim != 2:
        raise ValueError("X must be a 2-D array")
    if X.shape[0] != y.shape[0]:
        raise ValueError(f"X has {X.shape[0]} rows but y has {y.shape[0]}")
    if not (np.all(np.isfinite(X)) and np.all(np.isfinite(y))):
        raise ValueError("X and y must not contain NaN or infinite values")

    if fit_intercept:
        x_mean = X.mean(axis=0)
        y_mean = float(y.mean())
    else:
        x_mean = np.zeros(X.shape[1])
        y_mean = 0.0

    Xc = X - x_mean
    if standardize:
        x_scale = np.sqrt((Xc ** 2).mean(axis=0))
        x_scale = np.where(x_scale > 0, x_scale, 1.0)
    else:
        x_scale = np.ones(X.shape[1])

    return Xc / x_scale, y - y_mean, x_mean, x_scale, y_mean


def _lambda_max(Xs: np.ndarray, yc: np.ndarray, alpha: float) -> float:
    a = max(alpha, _MIN_ALPHA_FOR_LAMBDA_MAX)
    return float(2.0 * np.max(np.abs(Xs.T @ yc)) / a)


def lambda_max(
    X: np.ndarray,
    y: np.ndarray,
    alpha: float = 1.0,
    standardize: bool = True,
    fit_intercept: bool = True,
) -> float:
    """Smallest λ at which every coefficient is exactly zero (α > 0)."""
    Xs, yc, *_ = _prepare(X, y, standardize, fit_intercept)
    return _lambda_max(Xs, yc, alpha)


def _geometric_path(lmax: float, n: int, p: int, n_lambdas: int, ratio: Optional[float]) -> np.ndarray:
    if lmax <= 0:
        raise ModelingError("Response has zero variance (or is orthogonal to every feature)")
    if ratio is None:
        ratio = 1e-4 if n > p else 1e-2
    return np.geomspace(lmax, lmax * ratio, num=n_lambdas)


def make_penalty_path(
    X: np.ndarray,
    y: np.ndarray,
    alpha: float = 1.0,
    n_lambdas: Optional[int] = None,
    lambda_min_ratio: Optional[float] = None,
    standardize: bool = True,
    fit_intercept: bool = True,
    cfg: Optional[Settings] = None,
) -> np.ndarray:
    """Log-spaced descending path from λ_max to λ_max * lambda_min_ratio."""
    cfg = cfg or default_settings
    Xs, yc, *_ = _prepare(X, y, standardize, fit_intercept)
    return _geometric_path(
        _lambda_max(Xs, yc, alpha),
        Xs.shape[0],
        Xs.shape[1],
        n_lambdas or cfg.n_lambdas,
        lambda_min_ratio if lambda_min_ratio is not None else cfg.lambda_min_ratio,
    )


# ---------------------------------------------------------------------------
# Solvers (prepared data, no intercept)
# ---------------------------------------------------------------------------

def _singular_tol(d: np.ndarray, shape: Tuple[int, int]) -> float:
    return float((d.max() if d.size else 0.0) * max(shape) * np.finfo(float).eps)


def _refuse_unpenalized(lam: np.ndarray, rank: int, p: int) -> None:
    """λ = 0 is plain least squares, which has no unique solution below full column rank."""
    if np.any(lam == 0) and rank < p:
        raise RankDeficientError(
            f"λ = 0 requested on a rank-deficient design (rank {rank} < {p}); "
            "the unpenalized fit is not unique"
        )


def ridge_path(X: np.ndarray, y: np.ndarray, lambdas: Sequence[float]) -> np.ndarray:
    """
    Closed-form ridge coefficients (XᵀX + λI)⁻¹Xᵀy for every λ.

    Uses X = U diag(d) Vᵀ so that β(λ) = V diag(d / (d² + λ)) Uᵀy.
    Returns an array of shape (n_lambdas, p).
    """
    lam = validate_path(lambdas)
    U, d, Vt = np.linalg.svd(X, full_matrices=False)
    tol = _singular_tol(d, X.shape)
    _refuse_unpenalized(lam, int(np.sum(d > tol)), X.shape[1])

    d = np.where(d > tol, d, 0.0)
    Uty = U.T @ y
    with np.errstate(divide="ignore", invalid="ignore"):
        factors = d[None, :] / (d[None, :] ** 2 + lam[:, None])
    factors = np.nan_to_num(factors, nan=0.0, posinf=0.0)
    return (factors * Uty[None, :]) @ Vt


def elastic_net_path(
    X: np.ndarray,
    y: np.ndarray,
    alpha: float,
    lambdas: Sequence[float],
    tol: float = 1e-7,
    max_iter: int = 100_000,
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Coordinate-descent path for α ∈ (0, 1].

    scikit-learn minimizes 1/(2n)‖y - Xβ‖² + a·r‖β‖₁ + a(1-r)/2‖β‖₂²; the
    objective above maps to r = α / (2 - α) and a = λ(2 - α) / (2n).

    Returns (coefs of shape (n_lambdas, p), iterations per λ).
    """
    if not 0 < alpha <= 1:
        raise ValueError("elastic_net_path needs 0 < alpha <= 1")
    lam = validate_path(lambdas)
    n = X.shape[0]

    if lam[-1] == 0:
        d = np.linalg.svd(X, compute_uv=False)
        _refuse_unpenalized(lam, int(np.sum(d > _singular_tol(d, X.shape))), X.shape[1])

    l1_ratio = alpha / (2.0 - alpha)
    alphas_sk = lam * (2.0 - alpha) / (2.0 * n)

    with warnings.catch_warnings():
        # non-convergence is reported from n_iter below
        warnings.simplefilter("ignore", category=ConvergenceWarning)
        warnings.filterwarnings("ignore", message=".*without L1 regularization.*")
        _, coefs, _, n_iters = enet_path(
            np.asfortranarray(X),
            y,
            l1_ratio=l1_ratio,
            alphas=alphas_sk,
            tol=tol,
            max_iter=max_iter,
            return_n_iter=True,
        )
    return coefs.T.copy(), np.asarray(n_iters, dtype=int)


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------

def fit_path(
    X: np.ndarray,
    y: np.ndarray,
    alpha: float = 1.0,
    lambdas: Optional[Sequence[float]] = None,
    n_lambdas: Optional[int] = None,
    lambda_min_ratio: Optional[float] = None,
    standardize: bool = True,
    fit_intercept: bool = True,
    feature_names: Optional[List[str]] = None,
    cfg: Optional[Settings] = None,
) -> PathFit:
    """
    Fit a Ridge (α=0), Lasso (α=1) or Elastic-Net path.

    Args:
        X, y: Raw design and response
        alpha: L1/L2 mixing parameter in [0, 1]
        lambdas: Explicit descending penalty path; generated when omitted
        standardize: Penalize coefficients of unit-variance columns
        fit_intercept: Center X and y and report an unpenalized intercept

    Coefficients are always returned on the original feature scale.
    """
    cfg = cfg or default_settings
    if not 0 <= alpha <= 1:
        raise ValueError("alpha must lie in [0, 1]")

    Xs, yc, x_mean, x_scale, y_mean = _prepare(X, y, standardize, fit_intercept)
    n, p = Xs.shape

    if lambdas is None:
        lam = _geometric_path(
            _lambda_max(Xs, yc, alpha),
            n,
            p,
            n_lambdas or cfg.n_lambdas,
            lambda_min_ratio if lambda_min_ratio is not None else cfg.lambda_min_ratio,
        )
    else:
        lam = validate_path(lambdas)

    if alpha == 0:
        coefs_s = ridge_path(Xs, yc, lam)
        n_iter = np.zeros(lam.size, dtype=int)
        converged = np.ones(lam.size, dtype=bool)
    else:
        coefs_s, n_iter = elastic_net_path(
            Xs, yc, alpha, lam, tol=cfg.enet_tol, max_iter=cfg.enet_max_iter
        )
        converged = n_iter < cfg.enet_max_iter

    if not np.all(converged):
        bad = lam[~converged]
        msg = (
            f"Coordinate descent did not converge for {bad.size} of {lam.size} penalty values "
            f"(alpha={alpha}, max_iter={cfg.enet_max_iter}): lambdas={np.round(bad, 6).tolist()}"
        )
        if cfg.strict_convergence:
            raise ConvergenceError(msg)
        logger.warning(msg)

    coefs = coefs_s / x_scale[None, :]
    intercepts = y_mean - coefs @ x_mean

    logger.debug(
        f"fit_path alpha={alpha} n={n} p={p} lambdas=[{lam[0]:.4g} .. {lam[-1]:.4g}] "
        f"max_df={int(np.count_nonzero(coefs, axis=1).max())}"
    )

    return PathFit(
        lambdas=lam,
        coefs=coefs,
        intercepts=intercepts,
        alpha=float(alpha),
        converged=converged,
        n_iter=n_iter,
        feature_names=list(feature_names) if feature_names else [],
    )
