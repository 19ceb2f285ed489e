"""
K-fold cross-validation over a penalty path.

The fold assignment is fixed for one run; each fold is refit on the held-in
rows across the whole path and scored on its held-out rows. Fold errors are
averaged per λ (unweighted), non-finite entries excluded.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np
from loguru import logger
from sklearn.model_selection import KFold

from hdstats.config import Settings, settings as default_settings
from hdstats.errors import DegenerateFoldError, ModelingError
from hdstats.stats.penalized import PathFit, fit_path, validate_path

FitAndScore = Callable[[np.ndarray, np.ndarray], np.ndarray]

MEASURES = ("mse", "mae")


@dataclass
class CVResult:
    lambdas: np.ndarray
    cvm: np.ndarray
    cvsd: np.ndarray
    fold_errors: np.ndarray  # (n_folds, n_lambdas); NaN where excluded
    n_used: np.ndarray
    foldid: np.ndarray
    index_min: int
    index_1se: int
    measure: str

    @property
    def lambda_min(self) -> float:
        return float(self.lambdas[self.index_min])

    @property
    def lambda_1se(self) -> float:
        return float(self.lambdas[self.index_1se])

    @property
    def n_folds(self) -> int:
        return int(self.fold_errors.shape[0])

    def index_for(self, rule: str) -> int:
        if rule == "min":
            return self.index_min
        if rule == "1se":
            return self.index_1se
        raise ValueError(f"Unknown selection rule: {rule!r} (use 'min' or '1se')")

    def summary(self) -> Dict[str, Any]:
        def _clean(a: np.ndarray) -> List[Optional[float]]:
            return [float(v) if np.isfinite(v) else None for v in a]

        return {
            "measure": self.measure,
            "n_folds": self.n_folds,
            "lambdas": self.lambdas.tolist(),
            "cvm": _clean(self.cvm),
            "cvsd": _clean(self.cvsd),
            "n_used": self.n_used.tolist(),
            "lambda_min": self.lambda_min,
            "lambda_1se": self.lambda_1se,
            "index_min": self.index_min,
            "index_1se": self.index_1se,
        }


def make_folds(n: int, n_folds: int, seed: Optional[int] = None) -> np.ndarray:
    """Shuffled K-fold partition as a fold-id array (values 0..K-1)."""
    if n_folds < 2:
        raise ValueError("n_folds must be at least 2")
    if n_folds > n:
        raise ValueError(f"n_folds ({n_folds}) cannot exceed the number of observations ({n})")

    foldid = np.empty(n, dtype=int)
    kf = KFold(n_splits=n_folds, shuffle=True, random_state=seed)
    for k, (_, test_idx) in enumerate(kf.split(np.zeros((n, 1)))):
        foldid[test_idx] = k
    return foldid


def _check_foldid(foldid: Sequence[int], n: int) -> np.ndarray:
    foldid = np.asarray(foldid, dtype=int).ravel()
    if foldid.size != n:
        raise ValueError(f"foldid has {foldid.size} entries for {n} observations")
    if np.unique(foldid).size < 2:
        raise ValueError("foldid must define at least 2 folds")
    return foldid


def cross_validate_grid(
    n: int,
    lambdas: Sequence[float],
    fit_and_score: FitAndScore,
    n_folds: Optional[int] = None,
    seed: Optional[int] = None,
    foldid: Optional[Sequence[int]] = None,
    measure: str = "mse",
    cfg: Optional[Settings] = None,
) -> CVResult:
    """
    Generic K-fold driver.

    `fit_and_score(train_idx, test_idx)` returns one error per λ (lower is
    better) or raises DegenerateFoldError to drop the fold entirely.
    """
    cfg = cfg or default_settings
    lam = validate_path(lambdas)

    if foldid is None:
        foldid = make_folds(n, n_folds or cfg.cv_folds, cfg.random_seed if seed is None else seed)
    else:
        foldid = _check_foldid(foldid, n)

    folds = np.unique(foldid)
    errors = np.full((folds.size, lam.size), np.nan)

    for row, k in enumerate(folds):
        test_idx = np.flatnonzero(foldid == k)
        train_idx = np.flatnonzero(foldid != k)
        try:
            fold_err = np.asarray(fit_and_score(train_idx, test_idx), dtype=float).ravel()
        except DegenerateFoldError as exc:
            logger.warning(f"Skipping degenerate fold {k}: {exc}")
            continue

        if fold_err.size != lam.size:
            raise ValueError(f"fit_and_score returned {fold_err.size} errors for {lam.size} lambdas")

        bad = ~np.isfinite(fold_err)
        if np.any(bad):
            logger.warning(
                f"Fold {k}: excluding {int(bad.sum())} non-finite error values from the CV average"
            )
            fold_err[bad] = np.nan
        errors[row] = fold_err

    finite = np.isfinite(errors)
    n_used = finite.sum(axis=0)
    sums = np.where(finite, errors, 0.0).sum(axis=0)

    with np.errstate(divide="ignore", invalid="ignore"):
        cvm = np.where(n_used > 0, sums / n_used, np.nan)
        sq = np.where(finite, (errors - cvm[None, :]) ** 2, 0.0).sum(axis=0)
        cvsd = np.where(n_used > 1, np.sqrt(sq / (n_used - 1) / n_used), np.nan)

    usable = (n_used > 0) & np.isfinite(cvm)
    if not np.any(usable):
        raise ModelingError("Cross-validation produced no usable fold errors for any penalty value")

    index_min = int(np.argmin(np.where(usable, cvm, np.inf)))
    se_min = cvsd[index_min] if np.isfinite(cvsd[index_min]) else 0.0
    within = usable & (cvm <= cvm[index_min] + se_min)
    # path is descending, so the first qualifying index is the largest λ
    index_1se = int(np.flatnonzero(within)[0])

    logger.debug(
        f"CV {measure}: folds={folds.size} lambda_min={lam[index_min]:.4g} "
        f"lambda_1se={lam[index_1se]:.4g} cvm_min={cvm[index_min]:.4g}"
    )

    return CVResult(
        lambdas=lam,
        cvm=cvm,
        cvsd=cvsd,
        fold_errors=errors,
        n_used=n_used,
        foldid=np.asarray(foldid),
        index_min=index_min,
        index_1se=index_1se,
        measure=measure,
    )


def prediction_error(y_true: np.ndarray, preds: np.ndarray, measure: str = "mse") -> np.ndarray:
    """Per-λ error of an (n, n_lambdas) prediction matrix."""
    resid = np.asarray(y_true, dtype=float)[:, None] - preds
    if measure == "mse":
        return np.mean(resid ** 2, axis=0)
    if measure == "mae":
        return np.mean(np.abs(resid), axis=0)
    raise ValueError(f"Unknown measure: {measure!r} (use one of {MEASURES})")


def cv_penalized(
    X: np.ndarray,
    y: np.ndarray,
    alpha: float = 1.0,
    n_folds: Optional[int] = None,
    lambdas: Optional[Sequence[float]] = None,
    measure: str = "mse",
    seed: Optional[int] = None,
    foldid: Optional[Sequence[int]] = None,
    standardize: bool = True,
    fit_intercept: bool = True,
    feature_names: Optional[List[str]] = None,
    cfg: Optional[Settings] = None,
) -> Tuple[PathFit, CVResult]:
    """
    Cross-validated penalized regression.

    The path is computed once on the full data; every fold is refit on the
    same λ values. Returns the full-data fit and the CV curve.
    """
    cfg = cfg or default_settings
    if measure not in MEASURES:
        raise ValueError(f"Unknown measure: {measure!r} (use one of {MEASURES})")

    X = np.asarray(X, dtype=float)
    y = np.asarray(y, dtype=float).ravel()

    full = fit_path(
        X,
        y,
        alpha=alpha,
        lambdas=lambdas,
        standardize=standardize,
        fit_intercept=fit_intercept,
        feature_names=feature_names,
        cfg=cfg,
    )

    def fit_and_score(train_idx: np.ndarray, test_idx: np.ndarray) -> np.ndarray:
        y_train = y[train_idx]
        if np.var(y_train) == 0:
            raise DegenerateFoldError("held-in response has zero variance")
        fold_fit = fit_path(
            X[train_idx],
            y_train,
            alpha=alpha,
            lambdas=full.lambdas,
            standardize=standardize,
            fit_intercept=fit_intercept,
            cfg=cfg,
        )
        return prediction_error(y[test_idx], fold_fit.predict(X[test_idx]), measure)

    cv = cross_validate_grid(
        n=X.shape[0],
        lambdas=full.lambdas,
        fit_and_score=fit_and_score,
        n_folds=n_folds,
        seed=seed,
        foldid=foldid,
        measure=measure,
        cfg=cfg,
    )
    return full, cv


def select_alpha(
    X: np.ndarray,
    y: np.ndarray,
    alphas: Sequence[float] = (0.0, 0.25, 0.5, 0.75, 1.0),
    n_folds: Optional[int] = None,
    measure: str = "mse",
    seed: Optional[int] = None,
    cfg: Optional[Settings] = None,
    **kwargs: Any,
) -> Tuple[float, Dict[float, Tuple[PathFit, CVResult]]]:
    """Pick the mixing parameter with the lowest minimum CV error (shared folds)."""
    cfg = cfg or default_settings
    if len(alphas) == 0:
        raise ValueError("alphas must not be empty")

    foldid = make_folds(
        np.asarray(X).shape[0], n_folds or cfg.cv_folds, cfg.random_seed if seed is None else seed
    )
    results: Dict[float, Tuple[PathFit, CVResult]] = {}
    for a in alphas:
        results[float(a)] = cv_penalized(
            X, y, alpha=float(a), measure=measure, foldid=foldid, cfg=cfg, **kwargs
        )

    best = min(results, key=lambda a: results[a][1].cvm[results[a][1].index_min])
    return best, results
