"""
Shared fixtures: in-memory fakes for the three external services and
settings groups pinned to test values.
"""

from typing import Any, Dict, List, Optional, Sequence
from unittest.mock import MagicMock

import pytest

from careerrag.config import GenerationSettings, IngestionSettings, RetrievalSettings
from careerrag.schemas import IndexStats, Match, VectorRecord
from careerrag.vectorstore import VectorIndex, matches_filter


class FakeEmbedder:
    """Deterministic 3-dim vectors; records every text it embeds."""

    dimension = 3

    def __init__(self, fail_on: Optional[str] = None):
        self.calls: List[str] = []
        self.fail_on = fail_on

    def embed(self, text: str) -> List[float]:
        self.calls.append(text)
        if self.fail_on is not None and self.fail_on in text:
            from careerrag.errors import EmbeddingError

            raise EmbeddingError("embedding model unavailable")
        return [float(len(text)), 1.0, 0.0]


class FakeIndex(VectorIndex):
    """
    Returns canned matches per category (already in descending score order)
    and keeps every upserted batch.
    """

    def __init__(self, matches_by_category: Optional[Dict[str, List[Match]]] = None):
        self.matches_by_category = matches_by_category or {}
        self.batches: List[List[VectorRecord]] = []
        self.queries: List[Dict[str, Any]] = []
        self.failing_categories: set = set()

    def upsert(self, records: Sequence[VectorRecord]) -> int:
        self.batches.append(list(records))
        return len(records)

    def query(self, vector, top_k, filter=None, include_metadata=True) -> List[Match]:
        self.queries.append({"vector": vector, "top_k": top_k, "filter": filter})
        category = ((filter or {}).get("category") or {}).get("$eq")
        if category in self.failing_categories:
            from careerrag.errors import IndexUnavailableError

            raise IndexUnavailableError("index down", operation="query")
        if category is None:
            pool = [m for ms in self.matches_by_category.values() for m in ms]
            pool.sort(key=lambda m: m.score, reverse=True)
        else:
            pool = [m for m in self.matches_by_category.get(category, []) if matches_filter(m.metadata or {}, filter)]
        return pool[:top_k]

    def stats(self) -> IndexStats:
        total = sum(len(b) for b in self.batches)
        return IndexStats(total_vectors=total, dimension=3, namespaces={"": total})


def make_match(id: str, score: float, category: str, text: str = "") -> Match:
    return Match(id=id, score=score, metadata={"category": category, "text": text or f"text of {id}"})


@pytest.fixture
def fake_embedder() -> FakeEmbedder:
    return FakeEmbedder()


@pytest.fixture
def fake_index() -> FakeIndex:
    return FakeIndex()


@pytest.fixture
def fake_llm() -> MagicMock:
    llm = MagicMock()
    llm.generate.return_value = (
        '{"match_score": 75, "strengths": ["Python"], "weaknesses": ["No Go"], '
        '"missing_keywords": ["Kubernetes"], "verdict": "Interview"}'
    )
    return llm


@pytest.fixture
def ingestion_settings() -> IngestionSettings:
    return IngestionSettings(
        corpus_dir="unused",
        chunk_size=1000,
        chunk_overlap=200,
        batch_size=100,
        embed_delay_seconds=0.1,
        batch_delay_seconds=0.5,
        progress_every=10,
    )


@pytest.fixture
def retrieval_settings() -> RetrievalSettings:
    return RetrievalSettings(
        general_category="resume_best_practices",
        role_category="technical_skills_keywords",
        career_category="interview_career_advice",
        general_top_k=3,
        role_top_k=2,
        career_top_k=2,
        min_score=0.65,
        max_query_chars=4000,
    )


@pytest.fixture
def generation_settings() -> GenerationSettings:
    return GenerationSettings(
        provider="openai",
        primary_model="gpt-4o",
        fallback_model="gpt-3.5-turbo",
        temperature=0.0,
        max_tokens=1500,
    )
