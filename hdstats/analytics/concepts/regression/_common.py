from __future__ import annotations

from typing import Any, Dict

from hdstats.models.specs import PenalizedSpec
from hdstats.stats.cross_validation import cv_penalized
from hdstats.stats.design import build_design
from hdstats.stats.penalized import fit_path, make_penalty_path

from .._base import AnalysisContext


def run_penalized(ctx: AnalysisContext, params: Dict[str, Any], default_alpha: float) -> Dict[str, Any]:
    """Shared body of the ridge / lasso / elastic-net concepts."""
    spec = PenalizedSpec(**params)
    alpha = default_alpha if spec.alpha is None else spec.alpha
    design = build_design(ctx.frame, spec.y, spec.x)

    if not spec.cv:
        fit = fit_path(
            design.X,
            design.y,
            alpha=alpha,
            lambdas=spec.lambdas,
            n_lambdas=spec.n_lambdas,
            standardize=spec.standardize,
            fit_intercept=spec.fit_intercept,
            feature_names=design.feature_names,
            cfg=ctx.settings,
        )
        return {"path": fit.summary(), "coefficient_path": fit.coefs.tolist()}

    lambdas = spec.lambdas
    if lambdas is None and spec.n_lambdas is not None:
        lambdas = make_penalty_path(
            design.X, design.y, alpha=alpha, n_lambdas=spec.n_lambdas,
            standardize=spec.standardize, fit_intercept=spec.fit_intercept, cfg=ctx.settings,
        )

    fit, cv = cv_penalized(
        design.X,
        design.y,
        alpha=alpha,
        n_folds=spec.n_folds,
        lambdas=lambdas,
        measure=spec.measure,
        seed=spec.seed,
        standardize=spec.standardize,
        fit_intercept=spec.fit_intercept,
        feature_names=design.feature_names,
        cfg=ctx.settings,
    )
    idx = cv.index_for(spec.rule)
    return {
        "rule": spec.rule,
        "selected": fit.summary(index=idx),
        "cv": cv.summary(),
    }
