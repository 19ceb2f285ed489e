from __future__ import annotations

from typing import Any, Dict

from fastapi.concurrency import run_in_threadpool

from hdstats.models.specs import CoxSpec
from hdstats.stats.design import build_survival_design
from hdstats.stats.survival import cox_summary, cv_cox, fit_cox

from .._base import AnalysisContext, ConceptMeta

META = ConceptMeta(
    topic_slug='survival',
    slug='cox-regression',
    title='Cox Proportional Hazards (penalized)',
    concept_type='model',
    level='advanced',
    output_keys=['model', 'cv'],
    tags=['survival', 'regularization'],
)


async def run(ctx: AnalysisContext, params: Dict[str, Any]) -> Dict[str, Any]:
    """
    Fixed `penalizer`: a single fit. Otherwise the penalizer is chosen by
    cross-validated concordance over `penalizers` (or a default grid).
    """
    spec = CoxSpec(**params)
    design = build_survival_design(ctx.frame, spec.duration, spec.event, spec.x)

    if spec.penalizer is not None:
        cph = fit_cox(design, penalizer=spec.penalizer, l1_ratio=spec.l1_ratio)
        return {"model": cox_summary(cph)}

    cv, cph = await run_in_threadpool(
        cv_cox,
        design,
        penalizers=spec.penalizers,
        l1_ratio=spec.l1_ratio,
        n_folds=spec.n_folds,
        seed=spec.seed,
        cfg=ctx.settings,
    )
    return {"model": cox_summary(cph), "cv": cv.summary()}
