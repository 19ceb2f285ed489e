from pydantic import BaseModel
from typing import List


class ConceptInfo(BaseModel):
    slug: str
    topic_slug: str
    title: str
    concept_type: str
    level: str
    output_keys: List[str]
    tags: List[str]
