from pydantic import BaseModel, Field
from typing import Any, Dict, List


class AnalysisRequest(BaseModel):
    # column name -> values, all columns the same length
    data: Dict[str, List[Any]]
    params: Dict[str, Any] = Field(default_factory=dict)


class StatsResponse(BaseModel):
    test: str
    result: Dict[str, Any]
