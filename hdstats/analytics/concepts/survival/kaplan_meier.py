from __future__ import annotations

from typing import Any, Dict

from hdstats.models.specs import KaplanMeierSpec
from hdstats.stats.design import require_columns
from hdstats.stats.survival import kaplan_meier

from .._base import AnalysisContext, ConceptMeta

META = ConceptMeta(
    topic_slug='survival',
    slug='kaplan-meier',
    title='Kaplan-Meier Estimator',
    concept_type='model',
    level='intro',
    output_keys=['curves'],
    tags=['survival'],
)


async def run(ctx: AnalysisContext, params: Dict[str, Any]) -> Dict[str, Any]:
    """Survival curve overall or per group."""
    spec = KaplanMeierSpec(**params)
    cols = [spec.duration, spec.event] + ([spec.group] if spec.group else [])
    require_columns(ctx.frame, cols)
    df = ctx.frame[cols].dropna()

    if not spec.group:
        return {"curves": {"all": kaplan_meier(df[spec.duration], df[spec.event], alpha=spec.alpha)}}

    return {
        "curves": {
            str(level): kaplan_meier(sub[spec.duration], sub[spec.event], alpha=spec.alpha)
            for level, sub in df.groupby(spec.group, sort=True)
        }
    }
