"""
Application settings.

Each external collaborator gets its own settings group with an env prefix;
``Settings`` aggregates them. Values are read from the environment and ``.env``.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Optional

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _config(prefix: str) -> SettingsConfigDict:
    return SettingsConfigDict(
        env_prefix=prefix,
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )


class EmbeddingSettings(BaseSettings):
    """Embedding model configuration."""

    model_config = _config("EMBEDDING_")

    provider: str = Field(default="openai", description="'openai' or 'local'")
    api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("EMBEDDING_API_KEY", "OPENAI_API_KEY"),
    )
    base_url: str = Field(default="https://api.openai.com/v1")
    model: str = Field(default="text-embedding-3-small")
    dimension: int = Field(default=1536, gt=0, description="Fixed by the embedding model")
    timeout_seconds: float = Field(default=30.0)


class VectorIndexSettings(BaseSettings):
    """Vector index configuration (Pinecone in production, SQLite locally)."""

    model_config = _config("VECTOR_INDEX_")

    provider: str = Field(default="pinecone", description="'pinecone' or 'sqlite'")
    api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("VECTOR_INDEX_API_KEY", "PINECONE_API_KEY"),
    )
    index_name: str = Field(default="careerconnect")
    host: Optional[str] = Field(
        default=None,
        description="Data-plane host; resolved from the control plane when empty",
    )
    control_plane_url: str = Field(default="https://api.pinecone.io")
    namespace: str = Field(default="")
    persist_dir: str = Field(default=".data/vectors", description="SQLite index location")
    timeout_seconds: float = Field(default=30.0)


class GenerationSettings(BaseSettings):
    """Generation model configuration with primary/fallback policy."""

    model_config = _config("GENERATION_")

    provider: str = Field(default="openai", description="'openai' or 'ollama'")
    api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("GENERATION_API_KEY", "OPENAI_API_KEY"),
    )
    base_url: str = Field(default="https://api.openai.com/v1")
    ollama_url: str = Field(default="http://127.0.0.1:11434")
    primary_model: str = Field(default="gpt-4o")
    fallback_model: str = Field(default="gpt-3.5-turbo")
    temperature: float = Field(default=0.0)
    max_tokens: int = Field(default=1500, gt=0)
    timeout_seconds: float = Field(default=120.0)


class IngestionSettings(BaseSettings):
    """Knowledge-base ingestion configuration."""

    model_config = _config("INGESTION_")

    corpus_dir: str = Field(default="data/knowledge_base")
    chunk_size: int = Field(default=1000, gt=0)
    chunk_overlap: int = Field(default=200, ge=0)
    batch_size: int = Field(default=100, gt=0)
    embed_delay_seconds: float = Field(default=0.1, ge=0, description="Delay between embedding calls")
    batch_delay_seconds: float = Field(default=0.5, ge=0, description="Delay after each upsert batch")
    progress_every: int = Field(default=10, gt=0)
    smoke_test_query: str = Field(default="What are the best practices for writing a resume?")

    @model_validator(mode="after")
    def _overlap_below_size(self) -> "IngestionSettings":
        if self.chunk_overlap >= self.chunk_size:
            raise ValueError("chunk_overlap must be smaller than chunk_size")
        return self


class RetrievalSettings(BaseSettings):
    """Categorized retrieval configuration."""

    model_config = _config("RETRIEVAL_")

    general_category: str = Field(default="resume_best_practices")
    role_category: str = Field(default="technical_skills_keywords")
    career_category: str = Field(default="interview_career_advice")
    general_top_k: int = Field(default=3, gt=0)
    role_top_k: int = Field(default=2, gt=0)
    career_top_k: int = Field(default=2, gt=0)
    min_score: float = Field(default=0.65)
    max_query_chars: int = Field(default=4000, gt=0)


class Settings(BaseSettings):
    """Aggregated application settings."""

    model_config = _config("")

    environment: str = Field(default="development")
    log_level: str = Field(default="INFO")

    embedding: EmbeddingSettings = Field(default_factory=EmbeddingSettings)
    vector_index: VectorIndexSettings = Field(default_factory=VectorIndexSettings)
    generation: GenerationSettings = Field(default_factory=GenerationSettings)
    ingestion: IngestionSettings = Field(default_factory=IngestionSettings)
    retrieval: RetrievalSettings = Field(default_factory=RetrievalSettings)


@lru_cache
def get_settings() -> Settings:
    return Settings()
