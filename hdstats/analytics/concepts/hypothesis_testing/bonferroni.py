from __future__ import annotations

from typing import Any, Dict

from hdstats.models.specs import PValueSpec
from hdstats.stats.design import require_columns
from hdstats.stats.multitest import bonferroni, rejection_summary

from .._base import AnalysisContext, ConceptMeta

META = ConceptMeta(
    topic_slug='hypothesis-testing',
    slug='bonferroni',
    title='Bonferroni Correction',
    concept_type='metric',
    level='intro',
    output_keys=['adjusted', 'rejections'],
    tags=['testing', 'multiple-testing'],
)


async def run(ctx: AnalysisContext, params: Dict[str, Any]) -> Dict[str, Any]:
    spec = PValueSpec(**params)
    require_columns(ctx.frame, [spec.column])
    p = ctx.frame[spec.column].astype(float).to_numpy()
    return {
        "method": "bonferroni",
        "adjusted": bonferroni(p).tolist(),
        "rejections": rejection_summary(p, alpha=spec.alpha),
    }
