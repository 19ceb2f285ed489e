from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

import pandas as pd

from hdstats.config import Settings, settings


@dataclass(frozen=True)
class ConceptMeta:
    topic_slug: str
    slug: str
    title: str
    concept_type: str
    level: str
    output_keys: List[str]
    tags: List[str]


@dataclass
class AnalysisContext:
    """What a concept run sees: the dataset (one row per observation) and settings."""

    frame: pd.DataFrame
    settings: Settings = field(default_factory=lambda: settings)
