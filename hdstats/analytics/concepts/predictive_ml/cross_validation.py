from __future__ import annotations

from typing import Any, Dict

from fastapi.concurrency import run_in_threadpool

from hdstats.models.specs import CrossValidationSpec
from hdstats.stats.cross_validation import select_alpha
from hdstats.stats.design import build_design

from .._base import AnalysisContext, ConceptMeta

META = ConceptMeta(
    topic_slug='predictive-ml',
    slug='cross-validation',
    title='Cross-Validation',
    concept_type='procedure',
    level='intro',
    output_keys=['best_alpha', 'curves', 'selected'],
    tags=['validation', 'regularization'],
)


async def run(ctx: AnalysisContext, params: Dict[str, Any]) -> Dict[str, Any]:
    """Cross-validate penalty strength for several L1/L2 mixes on shared folds."""
    spec = CrossValidationSpec(**params)
    design = build_design(ctx.frame, spec.y, spec.x)

    best, results = await run_in_threadpool(
        select_alpha,
        design.X,
        design.y,
        alphas=spec.alphas,
        n_folds=spec.n_folds,
        measure=spec.measure,
        seed=spec.seed,
        cfg=ctx.settings,
        standardize=spec.standardize,
        feature_names=design.feature_names,
    )
    fit, cv = results[best]
    return {
        "best_alpha": best,
        "rule": spec.rule,
        "curves": {str(a): res[1].summary() for a, res in results.items()},
        "selected": fit.summary(index=cv.index_for(spec.rule)),
    }
