from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, confloat, conint
from pydantic.alias_generators import to_camel

# Numbers only: booleans and numeric strings are rejected, ints stay ints.
MatchScore = Union[conint(strict=True, ge=0, le=100), confloat(strict=True, ge=0, le=100)]


class VectorRecord(BaseModel):
    id: str
    values: List[float]
    metadata: Dict[str, Any] = Field(default_factory=dict)


class Match(BaseModel):
    id: str
    score: float
    metadata: Optional[Dict[str, Any]] = None

    @property
    def category(self) -> str:
        return (self.metadata or {}).get("category") or "Unknown"

    @property
    def text(self) -> str:
        return (self.metadata or {}).get("text") or ""


class IndexStats(BaseModel):
    total_vectors: int = 0
    dimension: Optional[int] = None
    fullness_ratio: float = 0.0
    namespaces: Dict[str, int] = Field(default_factory=dict)


class RetrievalContext(BaseModel):
    general: str = ""
    role_specific: str = ""
    career: str = ""
    all_matches: List[Match] = Field(default_factory=list)

    def sections(self) -> List[tuple]:
        """(heading, text) pairs for the non-empty categories, in prompt order."""
        pairs = [
            ("RESUME BEST PRACTICES", self.general),
            ("ROLE-SPECIFIC SKILLS", self.role_specific),
            ("CAREER AND INTERVIEW ADVICE", self.career),
        ]
        return [(h, t) for h, t in pairs if t]


class AnalysisResult(BaseModel):
    """Validated model output. Out-of-range scores are rejected, not clamped."""

    match_score: MatchScore
    strengths: List[str]
    weaknesses: List[str]
    missing_keywords: List[str]
    verdict: str


class AnalysisMetadata(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    rag_enabled: bool
    context_sources: int
    job_role: str
    model: str
    timestamp: datetime


class AnalysisResponse(BaseModel):
    analysis: AnalysisResult
    metadata: AnalysisMetadata


class IngestionReport(BaseModel):
    documents: int
    chunks: int
    vectors_upserted: int
    batches: int
    stats: Optional[IndexStats] = None
    smoke_test_matches: List[Match] = Field(default_factory=list)
