from __future__ import annotations

from typing import Any, Dict

from hdstats.models.specs import RegressionSpec
from hdstats.stats.design import build_design
from hdstats.stats.linear import ols

from .._base import AnalysisContext, ConceptMeta

META = ConceptMeta(
    topic_slug='regression',
    slug='multiple-linear-regression',
    title='Multiple Linear Regression',
    concept_type='model',
    level='intro',
    output_keys=['params', 'pvalues', 'r2'],
    tags=['regression'],
)


async def run(ctx: AnalysisContext, params: Dict[str, Any]) -> Dict[str, Any]:
    """OLS fit; refuses rank-deficient designs (p >= n)."""
    spec = RegressionSpec(**params)
    design = build_design(ctx.frame, spec.y, spec.x)
    return ols(design, add_intercept=spec.add_intercept)
