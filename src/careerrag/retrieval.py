from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from .config import RetrievalSettings
from .embeddings import Embedder
from .schemas import Match, RetrievalContext
from .vectorstore import VectorIndex, category_filter

logger = logging.getLogger(__name__)

SOURCE_SEPARATOR = "\n\n---\n\n"


def format_context(matches: Sequence[Match]) -> str:
    if not matches:
        return ""
    blocks = []
    for i, m in enumerate(matches, start=1):
        blocks.append(f"[Source {i}: {m.category} (Relevance: {m.score:.3f})]\n{m.text}")
    return SOURCE_SEPARATOR.join(blocks)


class Retriever:
    """
    Categorized similarity retrieval over the career-advice knowledge base.

    `embedder` and `index` may be None when retrieval is not configured; every
    category is then empty and analysis runs without retrieved evidence.
    """

    def __init__(
        self, embedder: Optional[Embedder], index: Optional[VectorIndex], cfg: RetrievalSettings
    ):
        self._embedder = embedder
        self._index = index
        self._cfg = cfg

    @property
    def enabled(self) -> bool:
        return self._index is not None and self._embedder is not None

    def search(self, text: str, *, top_k: int, category: Optional[str], min_score: float) -> List[Match]:
        """
        Fetch 2*top_k raw matches, drop those under `min_score`, keep the first top_k.
        The index ranking is kept as is; the threshold only trims the tail.
        """
        if not self.enabled:
            return []
        vector = self._embedder.embed(text)
        raw = self._index.query(vector, top_k=top_k * 2, filter=category_filter(category), include_metadata=True)
        kept = [m for m in raw if m.score >= min_score][:top_k]
        logger.info("Retrieved %d relevant chunks from %s (score >= %.2f)", len(kept), category, min_score)
        return kept

    def _safe_search(self, label: str, text: str, *, top_k: int, category: str) -> List[Match]:
        try:
            return self.search(text, top_k=top_k, category=category, min_score=self._cfg.min_score)
        except Exception as e:
            logger.warning("Retrieval for %s context failed, continuing without it: %s", label, e)
            return []

    def retrieve_context(self, query_text: str, role: Optional[str] = None) -> RetrievalContext:
        query_text = query_text[: self._cfg.max_query_chars]

        general = self._safe_search(
            "general", query_text, top_k=self._cfg.general_top_k, category=self._cfg.general_category
        )
        role_specific: List[Match] = []
        if role:
            role_specific = self._safe_search(
                "role-specific",
                f"{role} skills requirements",
                top_k=self._cfg.role_top_k,
                category=self._cfg.role_category,
            )
        career = self._safe_search(
            "career", query_text, top_k=self._cfg.career_top_k, category=self._cfg.career_category
        )

        return RetrievalContext(
            general=format_context(general),
            role_specific=format_context(role_specific),
            career=format_context(career),
            all_matches=[*general, *role_specific, *career],
        )
