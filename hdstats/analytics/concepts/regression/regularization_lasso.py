from __future__ import annotations

from typing import Any, Dict

from .._base import AnalysisContext, ConceptMeta
from ._common import run_penalized

META = ConceptMeta(
    topic_slug='regression',
    slug='regularization-lasso',
    title='Lasso Regression',
    concept_type='model',
    level='intermediate',
    output_keys=['selected', 'cv', 'path'],
    tags=['regularization', 'variable-selection'],
)


async def run(ctx: AnalysisContext, params: Dict[str, Any]) -> Dict[str, Any]:
    """Lasso path (pure L1), penalty picked by cross-validation."""
    return run_penalized(ctx, params, default_alpha=1.0)
