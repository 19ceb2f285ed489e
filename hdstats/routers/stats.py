from __future__ import annotations

from typing import List

import pandas as pd
from fastapi import APIRouter, HTTPException

from hdstats.analytics.concepts.registry import load_all_meta
from hdstats.errors import ModelingError
from hdstats.models.common import ConceptInfo
from hdstats.models.stats import AnalysisRequest, StatsResponse
from hdstats.services.stats_service import UnknownAnalysisError, resolve_analysis, run_stats

router = APIRouter()


@router.get("", response_model=List[ConceptInfo])
async def list_analyses():
    return [ConceptInfo(**m.__dict__) for m in load_all_meta()]


@router.post("/{analysis}", response_model=StatsResponse)
async def run_analysis(analysis: str, req: AnalysisRequest):
    try:
        slug = resolve_analysis(analysis)
    except UnknownAnalysisError:
        raise HTTPException(status_code=404, detail=f"Unknown analysis: {analysis}")

    lengths = {len(v) for v in req.data.values()}
    if len(lengths) > 1:
        raise HTTPException(status_code=400, detail="All data columns must have the same length")

    try:
        result = await run_stats(pd.DataFrame(req.data), slug, req.params)
    except ModelingError as e:
        raise HTTPException(status_code=422, detail=str(e))
    except (ValueError, KeyError) as e:
        raise HTTPException(status_code=400, detail=str(e))

    return StatsResponse(test=slug, result=result)
