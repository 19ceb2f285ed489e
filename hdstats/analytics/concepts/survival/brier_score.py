from __future__ import annotations

from typing import Any, Dict

import numpy as np

from hdstats.models.specs import BrierSpec
from hdstats.stats.design import build_survival_design
from hdstats.stats.survival import cox_survival_at, fit_cox, integrated_brier_score

from .._base import AnalysisContext, ConceptMeta

META = ConceptMeta(
    topic_slug='survival',
    slug='brier-score',
    title='Brier Score (IPCW)',
    concept_type='metric',
    level='advanced',
    output_keys=['brier', 'integrated_brier'],
    tags=['survival', 'prediction-error'],
)


async def run(ctx: AnalysisContext, params: Dict[str, Any]) -> Dict[str, Any]:
    """
    Apparent prediction error of a penalized Cox model over time.

    Default evaluation times are the 10%..80% quantiles of the observed event times.
    """
    spec = BrierSpec(**params)
    design = build_survival_design(ctx.frame, spec.duration, spec.event, spec.x)
    if design.event.sum() == 0:
        raise ValueError("No events observed; Brier score needs at least one event")

    if spec.times:
        times = np.asarray(sorted(set(spec.times)), dtype=float)
    else:
        times = np.unique(np.quantile(design.time[design.event == 1], np.linspace(0.1, 0.8, 8)))

    cph = fit_cox(design, penalizer=spec.penalizer, l1_ratio=spec.l1_ratio)
    surv = cox_survival_at(cph, design, times)
    out = integrated_brier_score(design.time, design.event, surv, times)
    out["penalizer"] = spec.penalizer
    return out
