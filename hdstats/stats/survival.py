"""
Survival analysis: Kaplan-Meier curves, (penalized) Cox proportional hazards,
cross-validated penalty selection and IPCW Brier scores.

Estimation is delegated to lifelines; this module wires designs in, scores
held-out folds and reshapes results.
"""

from __future__ import annotations

import warnings
from typing import Any, Dict, Optional, Sequence, Tuple

import numpy as np
import pandas as pd
from lifelines import CoxPHFitter, KaplanMeierFitter
from lifelines.exceptions import ConvergenceError as LifelinesConvergenceError
from lifelines.utils import concordance_index
from loguru import logger
from scipy.integrate import trapezoid

from hdstats.config import Settings, settings as default_settings
from hdstats.errors import ConvergenceError, DegenerateFoldError, ModelingError
from hdstats.stats.cross_validation import CVResult, cross_validate_grid
from hdstats.stats.design import SurvivalDesign
from hdstats.stats.penalized import validate_path

DURATION_COL = "__time__"
EVENT_COL = "__event__"


# ---------------------------------------------------------------------------
# Kaplan-Meier
# ---------------------------------------------------------------------------

def _step_lookup(timeline: np.ndarray, values: np.ndarray, t: np.ndarray, left: bool) -> np.ndarray:
    """Evaluate a right-continuous step function at t (or its left limit)."""
    side = "left" if left else "right"
    idx = np.searchsorted(timeline, t, side=side) - 1
    return np.where(idx >= 0, values[np.clip(idx, 0, None)], 1.0)


def kaplan_meier(time: Sequence[float], event: Sequence[int], alpha: float = 0.05) -> Dict[str, Any]:
    """
    Kaplan-Meier survival curve.

    Returns the step-function table (timeline, survival, pointwise confidence
    bounds) and the median survival time (None if the curve never drops to 0.5).
    """
    time = np.asarray(time, dtype=float)
    event = np.asarray(event, dtype=int)
    if time.size == 0:
        raise ModelingError("No observations for Kaplan-Meier estimation")

    kmf = KaplanMeierFitter(alpha=alpha).fit(time, event_observed=event)
    sf = kmf.survival_function_.iloc[:, 0]
    ci = kmf.confidence_interval_

    median = float(kmf.median_survival_time_)
    return {
        "n": int(time.size),
        "n_events": int(event.sum()),
        "timeline": sf.index.to_numpy(dtype=float).tolist(),
        "survival": sf.to_numpy(dtype=float).tolist(),
        "ci_lower": ci.iloc[:, 0].to_numpy(dtype=float).tolist(),
        "ci_upper": ci.iloc[:, 1].to_numpy(dtype=float).tolist(),
        "median_survival": median if np.isfinite(median) else None,
        "confidence_level": 1 - alpha,
    }


def censoring_survival(time: np.ndarray, event: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """KM estimate G of the censoring distribution as (timeline, values)."""
    kmf = KaplanMeierFitter().fit(time, event_observed=1 - np.asarray(event, dtype=int))
    sf = kmf.survival_function_.iloc[:, 0]
    return sf.index.to_numpy(dtype=float), sf.to_numpy(dtype=float)


# ---------------------------------------------------------------------------
# Brier score
# ---------------------------------------------------------------------------

def brier_score(
    time: Sequence[float],
    event: Sequence[int],
    surv_prob: Sequence[float],
    t: float,
) -> float:
    """
    Inverse-probability-of-censoring weighted Brier score at time t.

    Subjects with an event by t contribute S(t)² / G(T_i-), subjects still at
    risk after t contribute (1 - S(t))² / G(t); subjects censored before t
    contribute 0 but count in the denominator.
    """
    time = np.asarray(time, dtype=float)
    event = np.asarray(event, dtype=int)
    surv_prob = np.asarray(surv_prob, dtype=float)
    if not (time.size == event.size == surv_prob.size):
        raise ValueError("time, event and surv_prob must have the same length")

    timeline, G = censoring_survival(time, event)
    g_before = _step_lookup(timeline, G, time, left=True)
    g_t = float(_step_lookup(timeline, G, np.array([t]), left=False)[0])

    died = (time <= t) & (event == 1)
    alive = time > t

    contrib = np.zeros_like(surv_prob)
    with np.errstate(divide="ignore", invalid="ignore"):
        contrib[died] = surv_prob[died] ** 2 / g_before[died]
        if np.any(alive):
            contrib[alive] = (1.0 - surv_prob[alive]) ** 2 / g_t
    if not np.all(np.isfinite(contrib)):
        raise ModelingError(f"Censoring distribution is zero before t={t}; Brier score undefined")
    return float(contrib.mean())


def integrated_brier_score(
    time: Sequence[float],
    event: Sequence[int],
    surv_matrix: np.ndarray,
    times: Sequence[float],
) -> Dict[str, Any]:
    """Brier curve over `times` and its time-averaged integral."""
    times = np.asarray(times, dtype=float)
    surv_matrix = np.asarray(surv_matrix, dtype=float)
    if surv_matrix.shape != (len(time), times.size):
        raise ValueError("surv_matrix must have shape (n_subjects, n_times)")
    if times.size < 2 or np.any(np.diff(times) <= 0):
        raise ValueError("times must be strictly increasing with at least two points")

    scores = np.array([brier_score(time, event, surv_matrix[:, j], t) for j, t in enumerate(times)])
    ibs = float(trapezoid(scores, times) / (times[-1] - times[0]))
    return {"times": times.tolist(), "brier": scores.tolist(), "integrated_brier": ibs}


# ---------------------------------------------------------------------------
# Cox proportional hazards
# ---------------------------------------------------------------------------

def _frame(design: SurvivalDesign, rows: Optional[np.ndarray] = None) -> pd.DataFrame:
    df = design.to_frame(duration_col=DURATION_COL, event_col=EVENT_COL)
    return df if rows is None else df.iloc[rows].reset_index(drop=True)


def fit_cox(
    design: SurvivalDesign,
    penalizer: float = 0.0,
    l1_ratio: float = 0.0,
    rows: Optional[np.ndarray] = None,
) -> CoxPHFitter:
    """Fit a (penalized) Cox model on all rows or a subset."""
    if penalizer < 0 or not 0 <= l1_ratio <= 1:
        raise ValueError("penalizer must be >= 0 and l1_ratio in [0, 1]")

    cph = CoxPHFitter(penalizer=penalizer, l1_ratio=l1_ratio)
    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        try:
            cph.fit(_frame(design, rows), duration_col=DURATION_COL, event_col=EVENT_COL)
        except LifelinesConvergenceError as exc:
            raise ConvergenceError(f"Cox fit did not converge (penalizer={penalizer}): {exc}") from exc
    return cph


def cox_summary(cph: CoxPHFitter) -> Dict[str, Any]:
    s = cph.summary
    return {
        "n": int(len(cph.durations)),
        "penalizer": float(cph.penalizer),
        "l1_ratio": float(cph.l1_ratio),
        "concordance": float(cph.concordance_index_),
        "log_likelihood": float(cph.log_likelihood_),
        "coefficients": {
            str(name): {
                "coef": float(row["coef"]),
                "hazard_ratio": float(row["exp(coef)"]),
                "se": float(row["se(coef)"]),
                "p_value": float(row["p"]),
            }
            for name, row in s.iterrows()
        },
    }


def cox_path(design: SurvivalDesign, penalizers: Sequence[float], l1_ratio: float = 0.0) -> pd.DataFrame:
    """Coefficients for each penalizer (rows) and feature (columns)."""
    pen = validate_path(penalizers)
    rows = []
    for value in pen:
        cph = fit_cox(design, penalizer=float(value), l1_ratio=l1_ratio)
        rows.append(cph.params_.reindex(design.feature_names).to_numpy(dtype=float))
    return pd.DataFrame(rows, index=pd.Index(pen, name="penalizer"), columns=design.feature_names)


def cox_survival_at(cph: CoxPHFitter, design: SurvivalDesign, times: Sequence[float]) -> np.ndarray:
    """Predicted survival probabilities, shape (n_subjects, n_times)."""
    X = pd.DataFrame(design.X, columns=design.feature_names)
    sf = cph.predict_survival_function(X, times=np.asarray(times, dtype=float))
    return sf.to_numpy(dtype=float).T


def default_penalizers(n_values: int = 20, high: float = 1.0, low: float = 1e-3) -> np.ndarray:
    return np.geomspace(high, low, num=n_values)


def cv_cox(
    design: SurvivalDesign,
    penalizers: Optional[Sequence[float]] = None,
    l1_ratio: float = 0.0,
    n_folds: Optional[int] = None,
    seed: Optional[int] = None,
    foldid: Optional[Sequence[int]] = None,
    cfg: Optional[Settings] = None,
) -> Tuple[CVResult, CoxPHFitter]:
    """
    Cross-validate the Cox penalizer by held-out concordance.

    The CV error is 1 - C, so the usual min / 1-SE rules apply. Returns the CV
    curve and the full-data fit at the minimizing penalizer.
    """
    cfg = cfg or default_settings
    pen = validate_path(penalizers if penalizers is not None else default_penalizers())

    def fit_and_score(train_idx: np.ndarray, test_idx: np.ndarray) -> np.ndarray:
        if design.event[test_idx].sum() == 0:
            raise DegenerateFoldError("held-out fold has no events")
        if design.event[train_idx].sum() == 0:
            raise DegenerateFoldError("held-in fold has no events")

        test_X = pd.DataFrame(design.X[test_idx], columns=design.feature_names)
        errs = np.full(pen.size, np.nan)
        for j, value in enumerate(pen):
            try:
                cph = fit_cox(design, penalizer=float(value), l1_ratio=l1_ratio, rows=train_idx)
            except ConvergenceError as exc:
                logger.warning(str(exc))
                continue
            risk = cph.predict_partial_hazard(test_X).to_numpy(dtype=float).ravel()
            try:
                c = concordance_index(design.time[test_idx], -risk, design.event[test_idx])
            except ZeroDivisionError:
                continue
            errs[j] = 1.0 - c
        return errs

    cv = cross_validate_grid(
        n=design.n,
        lambdas=pen,
        fit_and_score=fit_and_score,
        n_folds=n_folds,
        seed=seed,
        foldid=foldid,
        measure="1-concordance",
        cfg=cfg,
    )
    best = fit_cox(design, penalizer=cv.lambda_min, l1_ratio=l1_ratio)
    return cv, best
