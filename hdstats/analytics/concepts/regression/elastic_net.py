from __future__ import annotations

from typing import Any, Dict

from .._base import AnalysisContext, ConceptMeta
from ._common import run_penalized

META = ConceptMeta(
    topic_slug='regression',
    slug='elastic-net',
    title='Elastic Net',
    concept_type='model',
    level='advanced',
    output_keys=['selected', 'cv', 'path'],
    tags=['regularization'],
)


async def run(ctx: AnalysisContext, params: Dict[str, Any]) -> Dict[str, Any]:
    return run_penalized(ctx, params, default_alpha=0.5)
