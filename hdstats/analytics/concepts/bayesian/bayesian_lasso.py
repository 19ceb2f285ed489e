from __future__ import annotations

from typing import Any, Dict

from fastapi.concurrency import run_in_threadpool

from hdstats.models.specs import BayesianLassoSpec
from hdstats.stats.design import build_design

from .._base import AnalysisContext, ConceptMeta

META = ConceptMeta(
    topic_slug='bayesian',
    slug='bayesian-lasso',
    title='Bayesian Lasso (MCMC)',
    concept_type='model',
    level='advanced',
    output_keys=['coefficients'],
    tags=['shrinkage', 'mcmc'],
)


async def run(ctx: AnalysisContext, params: Dict[str, Any]) -> Dict[str, Any]:
    # PyMC is imported on first use only; it is slow to import
    from hdstats.stats.bayes import bayesian_lasso

    spec = BayesianLassoSpec(**params)
    design = build_design(ctx.frame, spec.y, spec.x)
    # sampling runs off the event loop
    return await run_in_threadpool(
        bayesian_lasso,
        design.X,
        design.y,
        feature_names=design.feature_names,
        draws=spec.draws,
        tune=spec.tune,
        chains=spec.chains,
        seed=spec.seed,
        cfg=ctx.settings,
    )
