"""
Builds the pipeline objects from settings. Only the outer surfaces (CLI, API,
Streamlit) go through here; everything below takes its collaborators explicitly.
"""

from __future__ import annotations

import logging

from .analysis import ResumeAnalyzer
from .config import Settings
from .embeddings import make_embedder
from .errors import ConfigurationError
from .ingestion import IngestionPipeline
from .llm import make_llm
from .retrieval import Retriever
from .vectorstore import make_vector_index

logger = logging.getLogger(__name__)


def build_retriever(settings: Settings) -> Retriever:
    """Retrieval degrades to "no context" when the embedder or index is not configured."""
    try:
        embedder = make_embedder(settings.embedding)
        index = make_vector_index(settings.vector_index)
    except ConfigurationError as e:
        logger.warning("Retrieval disabled: %s", e.message)
        return Retriever(None, None, settings.retrieval)
    return Retriever(embedder, index, settings.retrieval)


def build_analyzer(settings: Settings) -> ResumeAnalyzer:
    return ResumeAnalyzer(build_retriever(settings), make_llm(settings.generation), settings.generation)


def build_ingestion_pipeline(settings: Settings) -> IngestionPipeline:
    """Unlike retrieval, ingestion needs both services and fails on missing config."""
    return IngestionPipeline(
        make_embedder(settings.embedding),
        make_vector_index(settings.vector_index),
        settings.ingestion,
    )
