"""
Statistical analysis service.

Resolves an analysis name (concept slug or alias) to its concept module,
runs it on the given dataset and returns a JSON-serializable result.
"""

from __future__ import annotations

import math
from typing import Any, Dict, Optional

import numpy as np
import pandas as pd
from loguru import logger

from hdstats.analytics.concepts._base import AnalysisContext
from hdstats.analytics.concepts.registry import concept_modules
from hdstats.config import Settings, settings as default_settings

# The preferred contract is to call with a concept slug; these map the
# shorter analysis names onto slugs.
ALIASES = {
    "ols": "multiple-linear-regression",
    "regression": "multiple-linear-regression",
    "linear-regression": "multiple-linear-regression",
    "ridge": "regularization-ridge",
    "lasso": "regularization-lasso",
    "enet": "elastic-net",
    "elasticnet": "elastic-net",
    "cv": "cross-validation",
    "ttest": "two-sample-t-test",
    "ttest_2samp": "two-sample-t-test",
    "limma": "moderated-t-test",
    "ebayes": "moderated-t-test",
    "benjamini-hochberg": "fdr",
    "bh": "fdr",
    "km": "kaplan-meier",
    "cox": "cox-regression",
    "coxph": "cox-regression",
    "brier": "brier-score",
    "blasso": "bayesian-lasso",
}


class UnknownAnalysisError(KeyError):
    pass


def resolve_analysis(analysis: str) -> str:
    slug = ALIASES.get(analysis, analysis)
    if slug not in concept_modules():
        raise UnknownAnalysisError(analysis)
    return slug


def _jsonable(obj: Any) -> Any:
    """Recursively convert numpy / pandas values; non-finite floats become None."""
    if isinstance(obj, dict):
        return {str(k): _jsonable(v) for k, v in obj.items()}
    if isinstance(obj, (list, tuple)):
        return [_jsonable(v) for v in obj]
    if isinstance(obj, np.ndarray):
        return [_jsonable(v) for v in obj.tolist()]
    if isinstance(obj, (np.bool_, bool)):
        return bool(obj)
    if isinstance(obj, (np.integer,)):
        return int(obj)
    if isinstance(obj, (float, np.floating)):
        f = float(obj)
        return f if math.isfinite(f) else None
    if isinstance(obj, pd.Timestamp):
        return obj.isoformat()
    return obj


async def run_stats(
    frame: pd.DataFrame,
    analysis: str,
    params: Optional[Dict[str, Any]] = None,
    cfg: Optional[Settings] = None,
) -> Dict[str, Any]:
    """
    Main routing function for statistical analyses.

    Raises:
        UnknownAnalysisError: no concept matches `analysis`
        ModelingError: the model cannot be fitted on this data
        ValueError: invalid parameters or columns
    """
    slug = resolve_analysis(analysis)
    module = concept_modules()[slug]
    ctx = AnalysisContext(frame=frame, settings=cfg or default_settings)

    logger.info(f"run_stats: {slug} rows={len(frame)} cols={frame.shape[1]}")
    result = await module.run(ctx, dict(params or {}))
    return _jsonable(result)
